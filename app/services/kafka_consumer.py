"""
Kafka event consumer

Subscribes to the events topic from the earliest retained offset and feeds
every delivered message into the event store. The store's duplicate check
is what makes replaying the topic safe.
"""

import asyncio
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from aiokafka import AIOKafkaConsumer
from pydantic import ValidationError
import structlog

from app.core.config import Settings
from app.core.errors import BrokerConnectionError, ConsumerStateError, MalformedMessageError
from app.schemas.event import Event
from app.services.event_store import EventStore

logger = structlog.get_logger()
audit_logger = structlog.get_logger().bind(logger="audit")

REQUIRED_FIELDS = ("eventId", "userId", "eventType")


class ConsumerState(str, Enum):
    DISCONNECTED = "disconnected"
    SUBSCRIBED = "subscribed"
    RUNNING = "running"
    STOPPED = "stopped"


class EventConsumer:
    """Consumes events from Kafka into the event store"""

    def __init__(self, settings: Settings, event_store: EventStore):
        self.settings = settings
        self.topic = settings.kafka_topic
        self.event_store = event_store
        self.consumer: Optional[AIOKafkaConsumer] = None
        self.state = ConsumerState.DISCONNECTED
        self._task: Optional[asyncio.Task] = None

        self.processed = 0
        self.duplicates = 0
        self.malformed = 0

    @property
    def is_connected(self) -> bool:
        return self.state in (ConsumerState.SUBSCRIBED, ConsumerState.RUNNING)

    async def connect(self):
        """Connect and subscribe to the topic from the earliest offset"""
        if self.is_connected:
            return

        # Reconnecting after the loop died: release the old task and client first
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        if self.consumer is not None:
            await self._close_quietly()

        self.consumer = AIOKafkaConsumer(
            self.topic,
            bootstrap_servers=self.settings.kafka_broker,
            client_id=self.settings.kafka_client_id,
            group_id=self.settings.kafka_consumer_group,
            auto_offset_reset="earliest",
            enable_auto_commit=True,
            session_timeout_ms=self.settings.kafka_session_timeout_ms,
            heartbeat_interval_ms=self.settings.kafka_heartbeat_interval_ms,
            request_timeout_ms=self.settings.kafka_request_timeout_ms,
            retry_backoff_ms=self.settings.kafka_retry_backoff_ms
        )

        try:
            await asyncio.wait_for(
                self.consumer.start(),
                timeout=self.settings.kafka_connection_timeout_ms / 1000
            )
        except Exception as e:
            logger.error("kafka_consumer_connect_failed", error=str(e), broker=self.settings.kafka_broker)
            await self._close_quietly()
            raise BrokerConnectionError("consumer", str(e)) from e

        self.state = ConsumerState.SUBSCRIBED
        logger.info(
            "kafka_consumer_subscribed",
            topic=self.topic,
            group_id=self.settings.kafka_consumer_group
        )

    async def start_consuming(self):
        """Start the receive loop on a background task"""
        if self.state != ConsumerState.SUBSCRIBED:
            raise ConsumerStateError("start consuming", self.state.value)

        self.state = ConsumerState.RUNNING
        self._task = asyncio.create_task(self._consume_loop())
        logger.info("kafka_consumer_started", topic=self.topic)

    async def _consume_loop(self):
        try:
            async for record in self.consumer:
                await self.handle_message(record)
        except asyncio.CancelledError:
            logger.info("kafka_consumer_loop_cancelled")
            raise
        except Exception as e:
            # Only client-level failures get here; per-message errors are handled below
            logger.error("kafka_consumer_loop_failed", error=str(e))
            self.state = ConsumerState.STOPPED

    async def handle_message(self, record: Any) -> bool:
        """
        Process one Kafka record. Never raises.

        Returns:
            True if the record produced a newly stored event
        """
        try:
            event = self.deserialize(record.value)

            logger.info(
                "message_received",
                topic=record.topic,
                partition=record.partition,
                offset=record.offset,
                event_id=event.event_id,
                user_id=event.user_id,
                event_type=event.event_type.value
            )

            return self.process_event(event)
        except MalformedMessageError as e:
            self.malformed += 1
            logger.error(
                "malformed_message_dropped",
                reason=e.reason,
                topic=record.topic,
                partition=record.partition,
                offset=record.offset,
                raw_message=e.raw
            )
            return False
        except Exception as e:
            logger.error(
                "message_processing_failed",
                topic=getattr(record, "topic", None),
                partition=getattr(record, "partition", None),
                offset=getattr(record, "offset", None),
                error=str(e)
            )
            return False

    @staticmethod
    def deserialize(raw: Optional[bytes]) -> Event:
        """Turn a raw message value into an Event or raise MalformedMessageError"""
        if raw is None:
            raise MalformedMessageError("empty message value")

        try:
            text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else str(raw)
        except UnicodeDecodeError as e:
            raise MalformedMessageError(f"value is not utf-8: {e}", repr(raw)) from e

        try:
            data = json.loads(text)
        except (ValueError, RecursionError) as e:
            # JSONDecodeError, oversized integer literals and deep nesting
            raise MalformedMessageError(f"value is not JSON: {e}", text) from e

        if not isinstance(data, dict):
            raise MalformedMessageError("value is not a JSON object", text)

        missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
        if missing:
            raise MalformedMessageError(f"missing required fields: {', '.join(missing)}", text)

        if not data.get("timestamp"):
            data["timestamp"] = datetime.now(timezone.utc).isoformat()

        try:
            return Event.model_validate(data)
        except ValidationError as e:
            raise MalformedMessageError(f"invalid event: {e.error_count()} field error(s)", text) from e

    def process_event(self, event: Event) -> bool:
        """Store the event and announce it if it was new"""
        stored = self.event_store.add_event(event)

        if stored:
            self.processed += 1
            audit_logger.info(
                "event_consumed",
                action="EVENT_CONSUMED",
                event_id=event.event_id,
                user_id=event.user_id,
                event_type=event.event_type.value,
                consumed_at=datetime.now(timezone.utc).isoformat()
            )
        else:
            self.duplicates += 1

        return stored

    async def disconnect(self):
        """Stop the receive loop, then close the Kafka connection"""
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

        if self.consumer is not None:
            try:
                await self.consumer.stop()
                logger.info("kafka_consumer_disconnected")
            except Exception as e:
                logger.error("kafka_consumer_disconnect_failed", error=str(e))
                raise
            finally:
                self.consumer = None

        if self.state != ConsumerState.DISCONNECTED:
            self.state = ConsumerState.STOPPED

    async def _close_quietly(self):
        try:
            await self.consumer.stop()
        except Exception as e:
            logger.warning("kafka_consumer_cleanup_failed", error=str(e))
        self.consumer = None

    def stats(self) -> dict:
        return {
            "state": self.state.value,
            "processed": self.processed,
            "duplicates": self.duplicates,
            "malformed": self.malformed
        }
