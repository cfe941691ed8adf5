"""
Health API Routes
"""
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import check_database_connection, database_health
from app.services.billing_scheduler import billing_scheduler

router = APIRouter()


@router.get("/health")
async def health_check() -> JSONResponse:
    """Application and database health"""
    db = database_health()
    ok = bool(db.get("ok")) and check_database_connection()
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ok else "degraded",
            "database": db,
        },
    )


@router.get("/health/integrations")
async def check_integrations() -> dict:
    """Report which billing integrations are configured."""
    checks = {
        "cron_secret": bool(settings.cron_secret and settings.cron_secret.get_secret_value()),
        "supabase_service_key": bool(settings.supabase_service_key.get_secret_value()),
        "resend": bool(settings.resend_api_key and settings.resend_api_key.get_secret_value()),
        "smtp": bool(settings.smtp_host and settings.smtp_username and settings.smtp_password),
    }
    email_ready = checks["resend"] or checks["smtp"]
    return {
        "integrations": checks,
        "ready": checks["cron_secret"] and checks["supabase_service_key"] and email_ready,
        "missing": [k for k, v in checks.items() if not v],
        "billing_run_in_progress": billing_scheduler.is_running,
    }
