from unittest.mock import AsyncMock, MagicMock, call

import pytest

from app.main import create_app, lifespan


def tracked_components():
    """Publisher/consumer doubles that record calls on one shared parent"""
    manager = MagicMock()
    publisher = AsyncMock()
    consumer = AsyncMock()
    manager.attach_mock(publisher, "publisher")
    manager.attach_mock(consumer, "consumer")
    return manager, publisher, consumer


@pytest.mark.asyncio
async def test_startup_and_shutdown_order(test_settings, event_store):
    manager, publisher, consumer = tracked_components()
    app = create_app(test_settings, event_store=event_store, publisher=publisher, consumer=consumer)

    async with lifespan(app):
        assert manager.mock_calls == [
            call.publisher.connect(),
            call.consumer.connect(),
            call.consumer.start_consuming(),
        ]

    assert manager.mock_calls[3:] == [
        call.consumer.disconnect(),
        call.publisher.disconnect(),
    ]


@pytest.mark.asyncio
async def test_consumer_can_be_disabled(test_settings, event_store):
    manager, publisher, consumer = tracked_components()
    test_settings.consumer_enabled = False
    app = create_app(test_settings, event_store=event_store, publisher=publisher, consumer=consumer)

    async with lifespan(app):
        consumer.connect.assert_not_awaited()
        consumer.start_consuming.assert_not_awaited()

    publisher.disconnect.assert_awaited_once()


@pytest.mark.asyncio
async def test_producer_closed_even_if_consumer_shutdown_fails(test_settings, event_store):
    manager, publisher, consumer = tracked_components()
    consumer.disconnect.side_effect = RuntimeError("stuck")
    app = create_app(test_settings, event_store=event_store, publisher=publisher, consumer=consumer)

    async with lifespan(app):
        pass

    publisher.disconnect.assert_awaited_once()


@pytest.mark.asyncio
async def test_startup_failure_propagates(test_settings, event_store):
    manager, publisher, consumer = tracked_components()
    publisher.connect.side_effect = ConnectionError("no broker")
    app = create_app(test_settings, event_store=event_store, publisher=publisher, consumer=consumer)

    with pytest.raises(ConnectionError):
        async with lifespan(app):
            pass

    consumer.connect.assert_not_awaited()
