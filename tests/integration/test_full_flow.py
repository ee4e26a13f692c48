import pytest
from httpx import AsyncClient, ASGITransport
from types import SimpleNamespace
from unittest.mock import AsyncMock

from aiokafka.errors import KafkaTimeoutError

from app.main import create_app
from app.services.event_store import EventStore
from app.services.kafka_consumer import EventConsumer
from app.services.kafka_producer import EventPublisher


@pytest.fixture
def publisher(test_settings, mock_kafka_producer):
    """Real publisher with the aiokafka client swapped for a mock"""
    publisher = EventPublisher(test_settings)
    publisher.producer = mock_kafka_producer
    publisher.is_connected = True
    return publisher


@pytest.fixture
def store():
    return EventStore()


@pytest.fixture
def consumer(test_settings, store):
    return EventConsumer(test_settings, store)


@pytest.fixture
def client(test_settings, store, publisher, consumer):
    app = create_app(test_settings, event_store=store, publisher=publisher, consumer=consumer)
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def delivered_record(mock_kafka_producer, offset=0):
    """Turn the last message handed to the producer into a consumed record"""
    args, kwargs = mock_kafka_producer.send_and_wait.call_args
    return SimpleNamespace(topic=args[0], partition=0, offset=offset, value=kwargs["value"])


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health endpoint"""
    async with client:
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "test-event-service"
        assert data["kafka"]["producer"] == "connected"
        assert data["eventStore"] == {"processedEvents": 0}
        assert "timestamp" in data


@pytest.mark.asyncio
async def test_health_check_unavailable_when_producer_disconnected(client, publisher):
    publisher.is_connected = False

    async with client:
        response = await client.get("/health")
        assert response.status_code == 503
        assert response.json()["kafka"]["producer"] == "disconnected"
        assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_root_lists_endpoints(client):
    async with client:
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["endpoints"]["generateEvent"] == "POST /events/generate"


@pytest.mark.asyncio
async def test_unknown_route(client):
    async with client:
        response = await client.get("/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found", "message": "Route GET /nope not found"}


@pytest.mark.asyncio
async def test_generate_publish_consume_query_flow(client, mock_kafka_producer, consumer):
    """Test complete flow: generate → publish → consume → query"""

    async with client:
        # 1. Generate
        response = await client.post("/events/generate", json={
            "userId": "user-999",
            "eventType": "PRODUCT_VIEW",
            "payload": {"productId": "prod-456"}
        })
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Event published successfully"
        assert data["eventId"]
        assert data["timestamp"]

        mock_kafka_producer.send_and_wait.assert_awaited_once()
        assert mock_kafka_producer.send_and_wait.call_args.kwargs["key"] == b"user-999"

        # 2. Deliver the published message to the consumer twice
        record = delivered_record(mock_kafka_producer)
        assert await consumer.handle_message(record) is True
        assert await consumer.handle_message(record) is False

        # 3. Query
        response = await client.get("/events/processed")
        assert response.status_code == 200
        processed = response.json()
        assert processed["count"] == 1
        assert processed["events"][0] == {
            "eventId": data["eventId"],
            "userId": "user-999",
            "eventType": "PRODUCT_VIEW",
            "timestamp": data["timestamp"],
            "payload": {"productId": "prod-456"}
        }


@pytest.mark.asyncio
async def test_event_ids_are_unique(client):
    async with client:
        body = {"userId": "user-123", "eventType": "LOGIN"}
        first = await client.post("/events/generate", json=body)
        second = await client.post("/events/generate", json=body)

        assert first.status_code == second.status_code == 201
        assert first.json()["eventId"] != second.json()["eventId"]


@pytest.mark.asyncio
async def test_payload_defaults_to_empty_object(client, mock_kafka_producer, consumer, store):
    async with client:
        response = await client.post("/events/generate", json={"userId": "u1", "eventType": "LOGOUT"})
        assert response.status_code == 201

    await consumer.handle_message(delivered_record(mock_kafka_producer))
    assert store.get_all_events()[0].payload == {}


@pytest.mark.asyncio
async def test_caller_supplied_event_id_is_ignored(client):
    async with client:
        response = await client.post("/events/generate", json={
            "eventId": "caller-chosen",
            "userId": "u1",
            "eventType": "LOGIN"
        })
        assert response.status_code == 201
        assert response.json()["eventId"] != "caller-chosen"


@pytest.mark.asyncio
async def test_validation_errors(client, mock_kafka_producer):
    """Test input validation"""

    async with client:
        # Missing userId
        response = await client.post("/events/generate", json={"eventType": "LOGIN"})
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation failed"
        assert "userId is required and must be a string" in data["details"]

        # Unknown event type
        response = await client.post("/events/generate", json={"userId": "u1", "eventType": "BOGUS"})
        assert response.status_code == 400
        assert response.json()["details"] == ["eventType must be one of: LOGIN, LOGOUT, PRODUCT_VIEW"]

        # Scalar payload
        response = await client.post("/events/generate", json={
            "userId": "u1",
            "eventType": "LOGIN",
            "payload": "x"
        })
        assert response.status_code == 400
        assert response.json()["details"] == ["payload must be an object"]

        # No body at all
        response = await client.post("/events/generate", content=b"", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["details"] == ["payload is required"]

    mock_kafka_producer.send_and_wait.assert_not_awaited()


@pytest.mark.asyncio
async def test_publish_while_disconnected_is_503(client, publisher):
    publisher.is_connected = False

    async with client:
        response = await client.post("/events/generate", json={"userId": "u1", "eventType": "LOGIN"})
        assert response.status_code == 503
        assert response.json()["error"] == "Service unavailable"


@pytest.mark.asyncio
async def test_broker_rejection_is_500(client, mock_kafka_producer):
    mock_kafka_producer.send_and_wait = AsyncMock(side_effect=KafkaTimeoutError())

    async with client:
        response = await client.post("/events/generate", json={"userId": "u1", "eventType": "LOGIN"})
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "message": "Failed to publish event"}


@pytest.mark.asyncio
async def test_processed_events_empty(client):
    async with client:
        response = await client.get("/events/processed")
        assert response.status_code == 200
        assert response.json() == {"count": 0, "events": []}


@pytest.mark.asyncio
async def test_health_counts_processed_events(client, store, make_event):
    store.add_event(make_event())
    store.add_event(make_event())

    async with client:
        response = await client.get("/health")
        assert response.json()["eventStore"]["processedEvents"] == 2
