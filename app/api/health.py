from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from app.api.deps import get_consumer, get_event_store, get_publisher, get_settings
from app.core.config import Settings
from app.schemas.health import EventStoreStatus, HealthResponse, KafkaStatus
from app.services.event_store import EventStore
from app.services.kafka_consumer import EventConsumer
from app.services.kafka_producer import EventPublisher

router = APIRouter(tags=["health"])


def _connection_state(connected: bool) -> str:
    return "connected" if connected else "disconnected"


@router.get("/health", response_model=HealthResponse, responses={503: {"model": HealthResponse}})
async def health_check(
        publisher: EventPublisher = Depends(get_publisher),
        consumer: EventConsumer = Depends(get_consumer),
        event_store: EventStore = Depends(get_event_store),
        settings: Settings = Depends(get_settings)
):
    """
    Health check endpoint.

    Healthy (200) while the producer is connected, otherwise 503, since
    events cannot be accepted without it. The body always reports "ok";
    the status code carries the verdict.
    """
    healthy = publisher.is_connected

    health = HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=settings.app_name,
        kafka=KafkaStatus(
            producer=_connection_state(publisher.is_connected),
            consumer=_connection_state(consumer.is_connected)
        ),
        event_store=EventStoreStatus(processed_events=event_store.get_event_count())
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=health.model_dump(by_alias=True)
    )
