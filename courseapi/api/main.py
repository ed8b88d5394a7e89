"""
FastAPI application setup with monitoring and structured error handling.
"""
import logging
import time

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from courseapi.core.settings import settings
from courseapi.core.exceptions import (
    CourseAPIException,
    course_api_exception_handler,
    general_exception_handler,
)
from courseapi.core.monitoring import (
    init_sentry,
    metrics,
    increment_http_requests,
    observe_http_request_duration,
)

# Setup structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level.upper())
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Backend Interview Course API",
        description="Interview-prep course catalog with subscription gating and one-time payments",
        version=settings.app_version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    setup_middleware(app)
    setup_monitoring(app)
    setup_exception_handlers(app)
    setup_routers(app)
    setup_event_handlers(app)

    return app


def setup_middleware(app: FastAPI):
    """Setup CORS for the configured frontend origins."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
        max_age=3600 if settings.is_production else 600,
    )
    logger.info("CORS configured", allowed_origins=settings.allowed_origins)


def setup_monitoring(app: FastAPI):
    """Setup Sentry and Prometheus request metrics."""

    init_sentry()

    if not settings.enable_metrics:
        logger.info("Metrics disabled via configuration")
        return

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        # Label by route template so path parameters don't explode cardinality
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        duration = time.time() - start_time

        increment_http_requests(request.method, endpoint, str(response.status_code))
        observe_http_request_duration(request.method, endpoint, duration)

        return response

    @app.get("/metrics", include_in_schema=False)
    async def get_metrics():
        """Expose Prometheus metrics."""
        return metrics.get_metrics_response()


def setup_exception_handlers(app: FastAPI):
    """Setup exception handlers."""
    app.add_exception_handler(CourseAPIException, course_api_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)


def setup_routers(app: FastAPI):
    """Setup API routers."""

    from courseapi.api.routers import admin, courses, payments

    app.include_router(payments.router, prefix="/api")
    app.include_router(courses.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")

    @app.get("/healthz")
    async def health_check():
        """Basic health check endpoint."""
        return {"status": "healthy", "version": settings.app_version}

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "Backend Interview Course API",
            "version": settings.app_version,
            "docs": "/docs" if settings.is_development else None,
        }


def setup_event_handlers(app: FastAPI):
    """Setup application event handlers."""

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            "Course API starting up",
            environment=settings.environment,
            payment_provider=settings.payment_provider
        )

        for issue in settings.validate_production_config():
            logger.warning("Production configuration issue", issue=issue)

        if settings.auto_create_tables:
            from courseapi.db.session import create_db_and_tables
            create_db_and_tables()
            logger.info("Database tables ensured")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Course API shutting down")


app = create_application()
