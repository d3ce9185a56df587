#!/usr/bin/env python3
"""Yurushiri - community event web application"""

from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware
from starlette_csrf.middleware import CSRFMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from yurushiri.auth.session import AuthEvents, log_auth_event
from yurushiri.backends.auth_client import AuthClient
from yurushiri.backends.storage_client import StorageClient
from yurushiri.config import config
from yurushiri.logging_config import get_logger, setup_logging
from yurushiri.routers import admin, auth, dify, pages
from yurushiri.routers.health import health

# Configure logging (INFO -> stdout, WARNING/ERROR -> stderr)
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the per-app auth event store and external service clients"""
    app.state.auth_events = AuthEvents()
    unsubscribe = app.state.auth_events.subscribe(log_auth_event)
    app.state.auth_client = AuthClient(config)
    app.state.storage_client = StorageClient(config)
    logger.info("Yurushiri started")
    try:
        yield
    finally:
        unsubscribe()
        logger.info("Yurushiri stopped")


# Create FastAPI app
app = FastAPI(
    title="Yurushiri",
    description="Community events: browse, register and review participant analytics",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

# Trust proxy headers so request.url.scheme reflects the original HTTPS protocol
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

session_secret_key = config["session_secret_key"]
if not session_secret_key or len(session_secret_key) < 32:
    raise RuntimeError(
        "SESSION_SECRET_KEY must be set to a secure random string (>=32 characters)."
    )

secure_cookies = config["secure_cookies"]

# Signed cookie holding the auth tokens of the signed-in user
app.add_middleware(
    SessionMiddleware,
    secret_key=session_secret_key,
    max_age=60 * 60 * 24 * 7,  # 7 days, refresh tokens extend the session
    https_only=secure_cookies,
    same_site="lax",
)

# Enable CSRF protection for session-backed browser flows
app.add_middleware(
    CSRFMiddleware,
    secret=session_secret_key,
    sensitive_cookies={"session"},
    cookie_secure=secure_cookies,
    cookie_samesite="lax",
    header_name="X-CSRFToken",
)

# Include routers
app.include_router(health)
app.include_router(pages.router)
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(dify.router)

# Mount static files (page scripts and styles)
static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")


if __name__ == "__main__":
    port = config.get("port")
    logger.info(f"Starting Yurushiri on 0.0.0.0:{port}")
    logger.info("Health check available at /health")

    try:
        uvicorn.run(
            app, host="0.0.0.0", port=port, log_level=config["log_level"].lower()
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        raise
