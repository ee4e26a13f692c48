from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Optional
import structlog
import time
import uvicorn

from app.core.config import Settings, settings
from app.core.logging import configure_logging
from app.api import events, health
from app.services.event_store import EventStore
from app.services.kafka_consumer import EventConsumer
from app.services.kafka_producer import EventPublisher

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect Kafka clients on startup, tear them down in reverse on shutdown"""
    app_settings: Settings = app.state.settings
    publisher: EventPublisher = app.state.publisher
    consumer: EventConsumer = app.state.consumer

    logger.info(
        "application_startup",
        app_name=app_settings.app_name,
        environment=app_settings.environment,
        port=app_settings.port
    )

    await publisher.connect()
    if app_settings.consumer_enabled:
        await consumer.connect()
        await consumer.start_consuming()

    logger.info("application_started")
    yield

    # The server has stopped accepting requests by the time we get here
    logger.info("application_shutdown")
    try:
        await consumer.disconnect()
    except Exception as e:
        logger.error("consumer_shutdown_failed", error=str(e))
    try:
        await publisher.disconnect()
    except Exception as e:
        logger.error("producer_shutdown_failed", error=str(e))
    logger.info("application_shutdown_completed")


def create_app(
        app_settings: Settings = settings,
        event_store: Optional[EventStore] = None,
        publisher: Optional[EventPublisher] = None,
        consumer: Optional[EventConsumer] = None
) -> FastAPI:
    """
    Build the application and wire its components.

    Each component is created once here and shared through ``app.state``;
    tests pass their own doubles in.
    """
    configure_logging(app_settings.log_level)

    event_store = event_store or EventStore()
    publisher = publisher or EventPublisher(app_settings)
    consumer = consumer or EventConsumer(app_settings, event_store)

    app = FastAPI(
        title=app_settings.app_name,
        debug=app_settings.debug,
        lifespan=lifespan
    )

    app.state.settings = app_settings
    app.state.event_store = event_store
    app.state.publisher = publisher
    app.state.consumer = consumer

    # Middleware for logging requests
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2)
        )

        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": "Not Found",
                    "message": f"Route {request.method} {request.url.path} not found"
                }
            )
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("unhandled_error", path=request.url.path, error=str(exc), exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal Server Error",
                "message": str(exc) if app_settings.environment == "development" else "An error occurred"
            }
        )

    # Include routers
    app.include_router(events.router)
    app.include_router(health.router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "service": app_settings.app_name,
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "health": "/health",
                "generateEvent": "POST /events/generate",
                "processedEvents": "GET /events/processed",
                "docs": "/docs"
            }
        }

    return app


app = create_app()


def run():
    """Console entry point: serve the app with uvicorn"""
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, log_config=None)
