"""
FastAPI application setup with structured logging, metrics and error handling.
"""
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from qrfeedback import __version__
from qrfeedback.core.settings import settings
from qrfeedback.core.logging import configure_logging
from qrfeedback.core.exceptions import (
    QRFeedbackException,
    qrfeedback_exception_handler,
    http_exception_handler,
    general_exception_handler,
)
from qrfeedback.core.metrics import metrics
from qrfeedback.db.session import create_db_and_tables

configure_logging(settings.log_level)

logger = structlog.get_logger()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="QR Feedback API",
        description="QR feedback collection with Razorpay subscription billing",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    setup_middleware(app)
    setup_exception_handlers(app)
    setup_routers(app)
    setup_event_handlers(app)

    return app


def setup_middleware(app: FastAPI):
    """Setup application middleware."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
        max_age=3600 if settings.is_production else 600,
    )
    logger.info("CORS configured", allowed_origins=settings.allowed_origins)


def setup_exception_handlers(app: FastAPI):
    """Setup exception handlers rendering the {success, message} envelope."""

    app.add_exception_handler(QRFeedbackException, qrfeedback_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.error("Validation error",
                     path=request.url.path,
                     method=request.method,
                     errors=str(exc.errors()))

        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": "Input validation failed",
                "error": {"details": jsonable_errors(exc)},
            }
        )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


def setup_routers(app: FastAPI):
    """Setup API routers."""
    from qrfeedback.api.routers import custom_url, subscriptions, webhooks

    app.include_router(webhooks.router, prefix="/api")
    app.include_router(subscriptions.router, prefix="/api")
    app.include_router(custom_url.router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {"message": "Server is running", "version": __version__}

    if settings.enable_metrics:
        @app.get("/metrics")
        async def get_metrics():
            """Expose Prometheus metrics."""
            return metrics.get_metrics_response()


def setup_event_handlers(app: FastAPI):
    """Setup application event handlers."""

    @app.on_event("startup")
    async def startup_event():
        logger.info("QR Feedback API starting up",
                    environment=settings.environment,
                    billing_mode=settings.billing_mode)

        for issue in settings.validate_production_config():
            logger.warning("Production configuration issue", issue=issue)

        create_db_and_tables()
        logger.info("QR Feedback API started successfully")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("QR Feedback API shutting down")


# Create application instance
app = create_application()
