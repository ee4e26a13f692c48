# Pydantic schemas

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional


class EventType(str, Enum):
    """Closed set of accepted event types"""

    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    PRODUCT_VIEW = "PRODUCT_VIEW"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class Event(BaseModel):
    """A user activity event as published to and consumed from Kafka"""

    event_id: str = Field(..., alias="eventId", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)
    event_type: EventType = Field(..., alias="eventType")
    timestamp: str
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """camelCase JSON-compatible representation"""
        return self.model_dump(by_alias=True, mode="json")


class EventPublishedResponse(BaseModel):
    """Response for a successfully published event"""

    message: str = "Event published successfully"
    event_id: str = Field(..., alias="eventId")
    timestamp: str

    model_config = ConfigDict(populate_by_name=True)


class ProcessedEventsResponse(BaseModel):
    """Snapshot of the event store"""

    count: int
    events: list[Event]


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
    details: Optional[list[str]] = None


class PublishMetadata(BaseModel):
    """Where the broker put a published event"""

    topic: str
    partition: int
    offset: int
