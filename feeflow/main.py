# feeflow/main.py - API process hosting the fee-due scheduler
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging
import traceback

from feeflow.api.routers import fee_dues, scheduler as scheduler_router
from feeflow.core.config import settings
from feeflow.core.db import DatabaseManager, db_manager as default_db_manager
from feeflow.core.logging_config import configure_logging
from feeflow.models.base import Base
from feeflow.scheduler.factory import build_dispatcher, build_scheduler
from feeflow.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


def create_app(
    database: Optional[DatabaseManager] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    start_scheduler: Optional[bool] = None,
) -> FastAPI:
    database = database or default_db_manager
    start_scheduler = settings.SCHEDULER_ENABLED if start_scheduler is None else start_scheduler

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        configure_logging()
        logger.info("Starting FeeFlow API...")
        logger.info(f"Environment: {settings.ENV}")

        database.initialize()
        if settings.is_development or settings.ENV == "test":
            logger.info("Creating database tables...")
            try:
                Base.metadata.create_all(bind=database.engine)
                logger.info("Database tables created successfully")
            except Exception as e:
                logger.error(f"Error creating tables: {e}")

        if not settings.smtp_configured:
            logger.warning("SMTP is not configured, reminder emails will fail")
        if not settings.sms_configured:
            logger.warning("SMS provider is not configured, SMS reminders are only logged")
        app.state.dispatcher = dispatcher or build_dispatcher()
        app.state.scheduler = build_scheduler(database=database, dispatcher=app.state.dispatcher)
        if start_scheduler:
            app.state.scheduler.start()
        else:
            logger.info("Scheduler disabled, jobs run only when triggered through the API")

        yield

        logger.info("Shutting down FeeFlow API...")
        await app.state.scheduler.stop()

    app = FastAPI(
        title=settings.API_TITLE,
        description="Fee-due lifecycle and reminder service",
        version=settings.API_VERSION,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions"""
        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
        logger.error(traceback.format_exc())
        if settings.is_development:
            return JSONResponse(status_code=500, content={"detail": str(exc)})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "environment": settings.ENV,
            "version": settings.API_VERSION,
            "database": database.health_check(),
            "scheduler_running": app.state.scheduler.running,
        }

    app.include_router(fee_dues.router, prefix="/api/fee-dues", tags=["Fee Dues"])
    app.include_router(scheduler_router.router, prefix="/api/scheduler", tags=["Scheduler"])
    return app


app = create_app()
