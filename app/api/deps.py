# Dependencies resolving the components wired up in app.main.create_app

from fastapi import Depends, Request

from app.core.config import Settings
from app.services.event_store import EventStore
from app.services.ingestion import IngestionService
from app.services.kafka_consumer import EventConsumer
from app.services.kafka_producer import EventPublisher
from app.services.query import EventQueryService


def get_event_store(request: Request) -> EventStore:
    return request.app.state.event_store


def get_publisher(request: Request) -> EventPublisher:
    return request.app.state.publisher


def get_consumer(request: Request) -> EventConsumer:
    return request.app.state.consumer


def get_ingestion_service(publisher: EventPublisher = Depends(get_publisher)) -> IngestionService:
    return IngestionService(publisher)


def get_query_service(event_store: EventStore = Depends(get_event_store)) -> EventQueryService:
    return EventQueryService(event_store)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
