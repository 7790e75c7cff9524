"""
Vision Calling – Typed failures raised by the core services.

Every kind carries a stable ``code`` and the HTTP status the API layer
renders it with, so callers never need to parse ``detail`` text.
"""


class AppError(Exception):
    """Base class for every failure the core reports to its caller."""

    code = "app_error"
    status_code = 400

    def __init__(self, detail: str = ""):
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class MissingField(AppError):
    """A required field was not provided."""

    code = "missing_field"
    status_code = 400

    def __init__(self, field: str, detail: str = ""):
        self.field = field
        super().__init__(detail or f"{field} must be provided")


class NotFound(AppError):
    """No matching record."""

    code = "not_found"
    status_code = 404


class InvalidCredentials(AppError):
    """Incorrect email ID or password."""

    code = "invalid_credentials"
    status_code = 401


class NotActivated(AppError):
    """User not activated."""

    code = "not_activated"
    status_code = 401


class NotAuthenticated(AppError):
    """Not authenticated."""

    code = "not_authenticated"
    status_code = 401


class Mismatch(AppError):
    """New password and confirm password do not match."""

    code = "mismatch"
    status_code = 400


class NoOpChange(AppError):
    """New password cannot be the same as the current password."""

    code = "no_op_change"
    status_code = 400


class EmailTaken(AppError):
    """Email ID already taken."""

    code = "email_taken"
    status_code = 409


class DuplicateTokenError(AppError):
    """Generated token collides with one already outstanding."""

    code = "duplicate_token"
    status_code = 409


class TokenAllocationExhausted(AppError):
    """Could not allocate a unique token."""

    code = "token_allocation_exhausted"
    status_code = 503


class InvalidType(AppError):
    """Unknown notification type."""

    code = "invalid_type"
    status_code = 400


class MissingSignalingData(AppError):
    """Call invitations need both a session code and a media token."""

    code = "missing_signaling_data"
    status_code = 400


class MissingPushAddress(AppError):
    """Receiver has no registered push address."""

    code = "missing_push_address"
    status_code = 400


class InvalidTransition(AppError):
    """Delivery outcome already recorded with a different terminal state."""

    code = "invalid_transition"
    status_code = 409


# ── Collaborator failures (recorded, never surfaced to API callers) ──

class MailDeliveryError(Exception):
    """The mail transport rejected or failed to send a message."""


class PushDeliveryError(Exception):
    """The push transport rejected or failed to send a payload."""
