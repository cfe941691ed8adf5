"""
Go Moto Billing - FastAPI Application
Seller subscription lifecycle, listing visibility and the daily billing trigger
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.api.dependencies import get_current_user
from app.api.routes import auth, health
from app.api.v1 import billing_cron, subscriptions
from app.config import settings
from app.core.logger import get_logger
from app.database import init_db
from app.services.billing_scheduler import billing_scheduler

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting %s...", settings.app_name)

    try:
        init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.error("Database initialization failed: %s", e)

    logger.info("API running on %s environment", settings.app_env)
    if settings.billing_scheduler_enabled:
        billing_scheduler.start()
    app.state.billing_scheduler = billing_scheduler
    yield
    if settings.billing_scheduler_enabled:
        await billing_scheduler.stop()
    logger.info("Shutting down %s...", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Billing backend for the Go Moto marketplace",
    version="1.0.0",
    lifespan=lifespan,
)

# Respect proxy forwarded proto/host so redirects don't downgrade to http.
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict:
    return {
        "name": settings.app_name,
        "environment": settings.app_env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


prefix = settings.api_v1_prefix

app.include_router(health.router, prefix=prefix, tags=["Health"])
app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Auth"])
app.include_router(billing_cron.router, prefix=f"{prefix}/cron", tags=["Cron"])
app.include_router(
    subscriptions.router,
    prefix=f"{prefix}/subscriptions",
    tags=["Subscriptions"],
    dependencies=[Depends(get_current_user)],
)
