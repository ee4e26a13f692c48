import asyncio
import json
from typing import Optional

from aiokafka import AIOKafkaProducer
import structlog

from app.core.config import Settings
from app.core.errors import BrokerConnectionError, BrokerUnavailableError, PublishFailureError
from app.schemas.event import Event, PublishMetadata

logger = structlog.get_logger()


class EventPublisher:
    """Publishes events to Kafka keyed by user id"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.topic = settings.kafka_topic
        self.producer: Optional[AIOKafkaProducer] = None
        self.is_connected = False

    async def connect(self):
        """Start the Kafka producer. No-op while already connected."""
        if self.is_connected:
            return

        self.producer = AIOKafkaProducer(
            bootstrap_servers=self.settings.kafka_broker,
            client_id=self.settings.kafka_client_id,
            request_timeout_ms=self.settings.kafka_request_timeout_ms,
            retry_backoff_ms=self.settings.kafka_retry_backoff_ms,
            acks="all"
        )

        try:
            await asyncio.wait_for(
                self.producer.start(),
                timeout=self.settings.kafka_connection_timeout_ms / 1000
            )
        except Exception as e:
            logger.error("kafka_producer_connect_failed", error=str(e), broker=self.settings.kafka_broker)
            await self._close_quietly()
            raise BrokerConnectionError("producer", str(e)) from e

        self.is_connected = True
        logger.info("kafka_producer_connected", broker=self.settings.kafka_broker, topic=self.topic)

    async def publish_event(self, event: Event) -> PublishMetadata:
        """
        Publish one event.

        The message key is the user id, so every event of a user lands on
        the same partition and is consumed in publish order.

        Raises:
            BrokerUnavailableError: producer is not connected
            PublishFailureError: the broker rejected or timed out the send
        """
        if not self.is_connected or self.producer is None:
            raise BrokerUnavailableError()

        value = json.dumps(event.to_wire()).encode("utf-8")
        headers = [
            ("eventType", event.event_type.value.encode("utf-8")),
            ("timestamp", event.timestamp.encode("utf-8")),
        ]

        try:
            record = await self.producer.send_and_wait(
                self.topic,
                value=value,
                key=event.user_id.encode("utf-8"),
                headers=headers
            )
        except Exception as e:
            logger.error("event_publish_failed", event_id=event.event_id, error=str(e))
            raise PublishFailureError(event.event_id, str(e)) from e

        logger.info(
            "event_published",
            event_id=event.event_id,
            topic=record.topic,
            partition=record.partition,
            offset=record.offset
        )

        return PublishMetadata(topic=record.topic, partition=record.partition, offset=record.offset)

    async def disconnect(self):
        """Stop the producer. Safe to call repeatedly."""
        if self.producer is None:
            self.is_connected = False
            return

        try:
            await self.producer.stop()
            logger.info("kafka_producer_disconnected")
        except Exception as e:
            logger.error("kafka_producer_disconnect_failed", error=str(e))
            raise
        finally:
            self.producer = None
            self.is_connected = False

    async def _close_quietly(self):
        try:
            await self.producer.stop()
        except Exception as e:
            logger.warning("kafka_producer_cleanup_failed", error=str(e))
        self.producer = None
