import threading
from typing import List, Optional, Set

from app.schemas.event import Event
import structlog

logger = structlog.get_logger()


class EventStore:
    """In-memory idempotent ledger of consumed events"""

    def __init__(self):
        # One lock guards both structures so they never drift apart
        self._lock = threading.Lock()
        self._events: List[Event] = []
        self._event_ids: Set[str] = set()

    def add_event(self, event: Optional[Event]) -> bool:
        """
        Store an event unless it was already seen.

        Returns:
            True if the event was stored, False if it was invalid or a duplicate
        """
        event_id = getattr(event, "event_id", None) if event is not None else None
        if not event_id:
            logger.warning("event_store_invalid_event")
            return False

        with self._lock:
            if event_id in self._event_ids:
                duplicate = True
            else:
                duplicate = False
                self._events.append(event)
                self._event_ids.add(event_id)

        if duplicate:
            logger.info("duplicate_event_skipped", event_id=event_id)
            return False

        logger.info("event_stored", event_id=event_id)
        return True

    def get_all_events(self) -> List[Event]:
        """Deep copies of the stored events in insertion order"""
        with self._lock:
            return [event.model_copy(deep=True) for event in self._events]

    def get_event_count(self) -> int:
        with self._lock:
            return len(self._events)

    def has_event(self, event_id: str) -> bool:
        with self._lock:
            return event_id in self._event_ids

    def clear(self) -> None:
        """Drop every stored event (test isolation / admin reset)"""
        with self._lock:
            self._events = []
            self._event_ids = set()
        logger.info("event_store_cleared")
