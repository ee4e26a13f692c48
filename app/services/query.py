from app.schemas.event import ProcessedEventsResponse
from app.services.event_store import EventStore
import structlog

logger = structlog.get_logger()


class EventQueryService:
    """Read side over the event store"""

    def __init__(self, event_store: EventStore):
        self.event_store = event_store

    def get_processed_events(self) -> ProcessedEventsResponse:
        """Full snapshot of consumed events, in the order they were stored"""
        events = self.event_store.get_all_events()

        logger.info("processed_events_retrieved", count=len(events))
        return ProcessedEventsResponse(count=len(events), events=events)
