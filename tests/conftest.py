from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.core.config import Settings
from app.schemas.event import Event, EventType
from app.services.event_store import EventStore


@pytest.fixture
def test_settings():
    return Settings(
        app_name="test-event-service",
        environment="test",
        kafka_broker="kafka-test:9092",
        kafka_topic="test-events",
        kafka_consumer_group="test-group",
        kafka_connection_timeout_ms=1000
    )


@pytest.fixture
def event_store():
    return EventStore()


@pytest.fixture
def make_event():
    """Factory for valid events"""
    def _make(event_id=None, user_id="user-1", event_type=EventType.LOGIN, payload=None):
        return Event(
            event_id=event_id or str(uuid4()),
            user_id=user_id,
            event_type=event_type,
            timestamp=datetime.now(timezone.utc).isoformat(),
            payload=payload or {}
        )
    return _make


@pytest.fixture
def mock_kafka_producer():
    """Stand-in for a started AIOKafkaProducer"""
    producer = AsyncMock()
    producer.start = AsyncMock()
    producer.stop = AsyncMock()
    producer.send_and_wait = AsyncMock(
        return_value=SimpleNamespace(topic="test-events", partition=0, offset=123)
    )
    return producer


@pytest.fixture
def make_record():
    """Factory for minimal ConsumerRecord-like objects"""
    def _make(value, topic="test-events", partition=0, offset=0):
        return SimpleNamespace(topic=topic, partition=partition, offset=offset, value=value)
    return _make
