"""
Consume Worker - Tails the events topic outside the API process

Runs the same consumer and idempotent store the API uses, printing a
running tally. Handy for checking what is on the topic without the HTTP
front end.

Usage:
    python scripts/consume_worker.py
"""
import asyncio
import signal
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import settings
from app.core.logging import configure_logging
from app.services.event_store import EventStore
from app.services.kafka_consumer import EventConsumer
import structlog

logger = structlog.get_logger()


async def run_worker(report_interval: int = 5):
    """Consume until interrupted, reporting stats every ``report_interval`` seconds"""
    consumer = EventConsumer(settings, EventStore())
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await consumer.connect()
    await consumer.start_consuming()
    logger.info("worker_started", topic=settings.kafka_topic, group_id=settings.kafka_consumer_group)

    print("Consume Worker started. Press Ctrl+C to stop.")

    try:
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=report_interval)
            except asyncio.TimeoutError:
                pass

            stats = consumer.stats()
            print(f"Stored: {stats['processed']} | "
                  f"Duplicates: {stats['duplicates']} | "
                  f"Malformed: {stats['malformed']} | "
                  f"State: {stats['state']}")
    finally:
        await consumer.disconnect()
        logger.info("worker_stopped", **consumer.stats())
        print("\nWorker stopped.")


def main():
    configure_logging(settings.log_level)
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
