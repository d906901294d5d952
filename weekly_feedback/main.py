"""
Weekly Feedback - Main Application Entry Point

FastAPI application with the workspace API and the weekly email scheduler.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from . import __version__
from .database import init_database, close_database, get_database
from .integrations.gmail import GmailSender
from .runtime import RuntimeConfig, get_runtime_config
from .scheduler.jobs import get_scheduler_manager
from .utils.datetime_utils import current_period, get_local_now
from .web.responses import error_response, install_exception_handlers, ok

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    logger.info(f"Starting {settings.app_name}...")

    try:
        if await init_database():
            logger.info("Database initialized")
        else:
            logger.warning("Database not configured or failed to initialize")
    except Exception as e:
        logger.warning(f"Database init failed: {e}")

    config = RuntimeConfig.from_settings()
    if not config.email_configured:
        logger.warning("Gmail credentials not configured; weekly emails will not be sent")
    if not config.analysis_configured:
        logger.warning("DEEPSEEK_API_KEY not set; reports will use the fallback analysis")

    scheduler = get_scheduler_manager()
    if settings.enable_scheduler:
        try:
            scheduler.start()
        except Exception as e:
            logger.warning(f"Scheduler failed: {e}")
    else:
        logger.info("Scheduler disabled")

    yield

    logger.info("Shutting down...")
    try:
        scheduler.stop()
    except Exception as e:
        logger.warning(f"Failed to stop scheduler during shutdown: {e}")

    try:
        await close_database()
    except Exception as e:
        logger.warning(f"Failed to close database during shutdown: {e}")

    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Weekly team feedback collection and AI-assisted reports",
        version=__version__,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    from .web.routes import router as api_router
    app.include_router(api_router)

    @app.get("/health")
    async def health_check(config: RuntimeConfig = Depends(get_runtime_config)):
        """
        Database and email credential health.

        Unhealthy (503) when the database check fails; degraded when the
        email credentials would not work.
        """
        db_health = {"status": "not_configured"}
        try:
            db_health = await get_database().health_check()
        except Exception as e:
            db_health = {"status": "error", "error": str(e)}

        email = await GmailSender(config).validate_config()

        if db_health.get("status") != "healthy":
            status = "unhealthy"
        elif not email.valid:
            status = "degraded"
        else:
            status = "healthy"

        period = current_period(tz_name=config.timezone)
        payload = {
            "status": status,
            "version": __version__,
            "timestamp": get_local_now(config.timezone).isoformat(),
            "services": {
                "database": db_health.get("status", "unknown"),
                "email": {
                    "valid": email.valid,
                    "auth_method": email.auth_method,
                    "errors": email.errors,
                },
                "analysis": config.analysis_configured,
                "scheduler": bool(get_scheduler_manager().scheduler),
            },
            "current_week": period.week,
            "current_year": period.year,
        }

        if status == "unhealthy":
            logger.error(f"Health check failed: database {db_health}")
            return error_response(503, "SERVICE_UNHEALTHY", "Database health check failed", payload)
        return ok(payload)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "weekly_feedback.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
