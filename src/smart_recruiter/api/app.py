from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smart_recruiter.api.routes import health_payload
from smart_recruiter.api.routes import router as api_router
from smart_recruiter.api.schemas import HealthResponse
from smart_recruiter.config import Settings, get_settings
from smart_recruiter.core.pipeline import ApplicationPipeline
from smart_recruiter.core.runtime import build_pipeline
from smart_recruiter.db.init import init_database
from smart_recruiter.logging_config import configure_logging

logger = logging.getLogger(__name__)

ENDPOINTS = {
    "webhook": "POST /api/webhook/process-job",
    "webhook_sync": "POST /api/webhook/process-job/sync",
    "webhook_health": "GET /api/webhook/health",
    "health": "GET /health",
    "user_logs": "GET /api/logs/users/{user_id}",
    "user_log_stats": "GET /api/logs/users/{user_id}/stats",
    "application_logs": "GET /api/logs/applications/{application_id}",
    "user_applications": "GET /api/users/{user_id}/applications",
    "user_notifications": "GET /api/users/{user_id}/notifications",
}


def create_app(settings: Settings | None = None, pipeline: ApplicationPipeline | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.pipeline = pipeline

    @app.on_event("startup")
    def _startup() -> None:
        configure_logging()
        init_database()
        if app.state.pipeline is None:
            app.state.pipeline = build_pipeline(settings)

        missing = settings.missing_credentials()
        if missing:
            logger.warning("Missing credentials, related features disabled: %s", ", ".join(missing))

        transport = app.state.pipeline.delivery.transport
        if transport is not None:
            transport.verify(timeout_sec=settings.smtp_verify_timeout_sec)

        logger.info("%s v%s started (env=%s)", settings.app_name, settings.app_version, settings.app_env)

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return health_payload()

    @app.get("/")
    def index() -> dict:
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "description": "Generates and sends cover letters for job offers pushed by automation webhooks",
            "endpoints": ENDPOINTS,
        }

    app.include_router(api_router)
    return app
