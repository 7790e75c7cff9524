"""Email delivery over SMTP with a local simulated fallback."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional, Protocol

from app.config import settings
from app.errors import MailDeliveryError

logger = logging.getLogger(__name__)

HTML_TEMPLATE_BASE = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body { font-family: 'Inter', -apple-system, sans-serif; background-color: #f8f9fa; color: #333; margin: 0; padding: 0; }
        .container { max-width: 600px; margin: 40px auto; background: #ffffff; border-radius: 12px; overflow: hidden; box-shadow: 0 4px 6px -1px rgba(0,0,0,0.1); }
        .header { background: #0d6efd; padding: 30px 40px; text-align: center; }
        .header h1 { color: #ffffff; margin: 0; font-size: 24px; letter-spacing: -0.5px; }
        .content { padding: 40px; line-height: 1.6; }
        .content p { margin: 0 0 16px 0; }
        .button-wrap { text-align: center; margin-top: 30px; }
        .btn { display: inline-block; background: #0d6efd; color: #ffffff; text-decoration: none; padding: 14px 28px; border-radius: 8px; font-weight: 600; text-transform: uppercase; font-size: 14px; letter-spacing: 0.5px; }
        .footer { background: #f1f3f5; padding: 20px; text-align: center; color: #6c757d; font-size: 13px; }
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>Vision Calling</h1>
        </div>
        <div class="content">
            {body}
        </div>
        <div class="footer">
            <p>You received this email because you registered with Vision Calling.</p>
        </div>
    </div>
</body>
</html>
"""


class MailSender(Protocol):
    async def send(self, recipient_email: str, subject: str, html_body: str) -> None:
        """Deliver one message. Raises ``MailDeliveryError`` on failure."""
        ...


def _render(name: Optional[str], paragraph: str, link: str, label: str) -> str:
    body = f"""
    <h2>Hello {escape(name or "there")}!</h2>
    <p>{paragraph}</p>
    <div class="button-wrap">
        <a href="{escape(link)}" class="btn">{label}</a>
    </div>
    """
    return HTML_TEMPLATE_BASE.replace("{body}", body)


def verification_email(name: Optional[str], activation_key: str) -> tuple:
    """Subject and HTML for the account activation mail."""
    link = f"{settings.HOSTNAME}/api/auth/verify-email-id?key={activation_key}"
    return "Verify Email ID", _render(
        name, "Click the button below to verify your Email ID.", link, "Verify Email"
    )


def reset_password_email(name: Optional[str], forgot_password_key: str) -> tuple:
    """Subject and HTML for the password reset mail."""
    link = f"{settings.HOSTNAME}/verify-password-key?key={forgot_password_key}"
    return "Reset Password", _render(
        name, "Click the button below to reset your Password.", link, "Reset Password"
    )


class SmtpMailSender:
    """Sends mail through the configured SMTP relay, or logs it when unconfigured."""

    def __init__(
        self,
        server: str = settings.SMTP_SERVER,
        port: int = settings.SMTP_PORT,
        username: str = settings.SMTP_USERNAME,
        password: str = settings.SMTP_PASSWORD,
        sender: str = settings.MAIL_SENDER,
    ):
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username

    @property
    def simulated(self) -> bool:
        return not self.username or not self.password

    def _send_sync(self, recipient_email: str, subject: str, html_body: str) -> None:
        """Synchronous send; run in a worker thread."""
        if self.simulated:
            logger.info(f"Simulated email to {recipient_email}: {subject}")
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"Vision Calling <{self.sender}>"
        msg["To"] = recipient_email
        msg.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(self.server, self.port, timeout=15) as server:
                server.starttls()
                server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"Failed to send email to {recipient_email}: {e}") from e
        logger.info(f"Email successfully sent to {recipient_email}")

    async def send(self, recipient_email: str, subject: str, html_body: str) -> None:
        # Run synchronous SMTP in a threadpool to avoid blocking the event loop
        await asyncio.to_thread(self._send_sync, recipient_email, subject, html_body)
