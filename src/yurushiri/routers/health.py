from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request
from sqlmodel import Session, text

from yurushiri.config import config
from yurushiri.models.database import engine

health = APIRouter()


def _base_status() -> dict:
    return {
        "status": "healthy",
        "service": "yurushiri",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": config.get("environment", "development"),
    }


@health.get("/health")
async def health_check():
    """Basic health check endpoint"""
    return _base_status()


@health.get("/health/detailed")
async def detailed_health_check(request: Request):
    """Detailed health check with database and external service configuration"""
    health_status = _base_status()
    health_status["checks"] = {}

    # Database connectivity check
    try:
        with Session(engine) as session:
            result = session.exec(text("SELECT 1")).first()
            health_status["checks"]["database"] = "healthy" if result else "unhealthy"
    except Exception as e:
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "unhealthy"

    # Auth is required for every organizer page; the AI assistant is optional
    auth_client = request.app.state.auth_client
    if auth_client.is_configured:
        health_status["checks"]["auth"] = "configured"
    else:
        health_status["checks"]["auth"] = "missing: SUPABASE_URL / SUPABASE_ANON_KEY"
        health_status["status"] = "unhealthy"

    health_status["checks"]["ai"] = (
        "configured" if config.get("dify_api_key") else "disabled"
    )

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
