from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from app.core.errors import EventValidationError
from app.schemas.event import Event, EventType
from app.services.kafka_producer import EventPublisher
from app.services.validator import validate_event_payload
import structlog

logger = structlog.get_logger()


class IngestionService:
    """Service for validating, enriching and publishing inbound events"""

    def __init__(self, publisher: EventPublisher):
        self.publisher = publisher

    async def generate_event(self, body: Any) -> Event:
        """
        Validate a raw request body, build an Event and publish it.

        Raises:
            EventValidationError: the body failed validation, nothing was published
            BrokerUnavailableError / PublishFailureError: from the publisher
        """
        validation = validate_event_payload(body)
        if not validation.valid:
            logger.info("event_validation_failed", errors=validation.errors)
            raise EventValidationError(validation.errors)

        event = Event(
            event_id=str(uuid4()),
            user_id=body["userId"],
            event_type=EventType(body["eventType"]),
            timestamp=datetime.now(timezone.utc).isoformat(),
            payload=dict(body.get("payload") or {})
        )

        metadata = await self.publisher.publish_event(event)

        logger.info(
            "event_generated",
            event_id=event.event_id,
            user_id=event.user_id,
            event_type=event.event_type.value,
            partition=metadata.partition,
            offset=metadata.offset
        )

        return event
