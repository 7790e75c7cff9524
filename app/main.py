"""
Vision Calling — FastAPI application entry-point.

Run with:
    uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app import models  # noqa: F401  (registers every table on Base.metadata)
from app.config import settings
from app.database import Base, engine
from app.errors import AppError

# ── Import routers ──
from app.routers import auth, calls, messages, users

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: create tables on startup ──
@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Accounts, call invitations and message push notifications.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=("*",))

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


# ── Typed failures → stable JSON ──
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.detail},
    )


# ── Register API routers ──
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(messages.router)
app.include_router(calls.router)


@app.get("/")
async def root():
    return {"app": settings.APP_NAME}


@app.get("/api/status")
async def api_status():
    return {"status": "success"}


# ── HTML pages behind emailed links ──
@app.get("/verify-password-key", response_class=HTMLResponse)
async def verify_password_key(request: Request, key: str = ""):
    """Password reset form; it posts to the reset endpoint with the emailed key."""
    return templates.TemplateResponse(
        request,
        "forgot_password.html",
        {
            "app_name": settings.APP_NAME,
            "redirect_url": f"/api/auth/reset-password?key={quote(key)}",
        },
    )


@app.get("/status", response_class=HTMLResponse)
async def status_page(request: Request, status: str = ""):
    return templates.TemplateResponse(
        request,
        "status.html",
        {"app_name": settings.APP_NAME, "status": status},
    )
