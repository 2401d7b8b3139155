from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import settings, setup_logging
from app.dependencies import ServiceContainer, build_services
from app.services import restore_cache

from app.routers import main_router, SERVICE_NAME, SERVICE_VERSION


setup_logging()
logger = logging.getLogger(__name__)


def create_app(services: ServiceContainer | None = None, *, start_scheduler: bool = True) -> FastAPI:
    """
    Create the FastAPI application

    Args:
        services: Pre-built service graph; built from settings when None
        start_scheduler: Start the cron refresh job during lifespan
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events"""
        logger.info("Starting EPG Service...")

        container = services or build_services(settings)
        app.state.services = container

        try:
            logger.info("Restoring EPG cache...")
            source = await restore_cache(container.pipeline)
            logger.info("EPG cache ready (source: %s)", source)

            if start_scheduler:
                logger.info("Starting scheduler...")
                container.scheduler.start()
                logger.info("Scheduler started successfully")

            logger.info("EPG Service started successfully")
        except Exception as e:
            logger.error(f"Failed to start EPG Service: {e}", exc_info=True)
            raise

        yield

        logger.info("Shutting down EPG Service...")

        try:
            container.scheduler.shutdown()
        except Exception as e:
            logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)

        logger.info("EPG Service stopped")

    application = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        lifespan=lifespan
    )

    application.include_router(main_router)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    return application


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation details: {exc.errors()}")

    errors = []
    for error in exc.errors():
        error_dict = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        }
        errors.append(error_dict)

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors
        }
    )


app = create_app()
