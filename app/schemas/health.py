from pydantic import BaseModel, ConfigDict, Field


class KafkaStatus(BaseModel):
    """Connection state of the Kafka clients"""
    producer: str
    consumer: str


class EventStoreStatus(BaseModel):
    """Event store summary"""
    processed_events: int = Field(..., alias="processedEvents")

    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    timestamp: str
    service: str
    kafka: KafkaStatus
    event_store: EventStoreStatus = Field(..., alias="eventStore")

    model_config = ConfigDict(populate_by_name=True)
