from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from app.api.deps import get_ingestion_service, get_query_service
from app.core.errors import BrokerUnavailableError, EventValidationError
from app.schemas.event import ErrorResponse, EventPublishedResponse, ProcessedEventsResponse
from app.services.ingestion import IngestionService
from app.services.query import EventQueryService
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/events", tags=["events"])


def error_response(status_code: int, error: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error.model_dump(exclude_none=True))


@router.post(
    "/generate",
    response_model=EventPublishedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse}
    }
)
async def generate_event(
        request: Request,
        service: IngestionService = Depends(get_ingestion_service)
):
    """
    Validate, enrich and publish a single event.

    - **userId**: user identity, also the Kafka partition key
    - **eventType**: one of LOGIN, LOGOUT, PRODUCT_VIEW
    - **payload**: optional object, defaults to {}

    The event id and timestamp are generated by the service.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None

    try:
        event = await service.generate_event(body)

    except EventValidationError as e:
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            ErrorResponse(error="Validation failed", details=e.errors)
        )

    except BrokerUnavailableError as e:
        logger.error("event_generation_unavailable", error=str(e))
        return error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            ErrorResponse(error="Service unavailable", message="Kafka producer is not available")
        )

    except Exception as e:
        logger.error("event_generation_failed", error=str(e))
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorResponse(error="Internal server error", message="Failed to publish event")
        )

    return EventPublishedResponse(event_id=event.event_id, timestamp=event.timestamp)


@router.get("/processed", response_model=ProcessedEventsResponse)
async def get_processed_events(service: EventQueryService = Depends(get_query_service)):
    """Return every event the consumer has stored, in consumption order"""
    try:
        return service.get_processed_events()

    except Exception as e:
        logger.error("processed_events_query_failed", error=str(e))
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorResponse(error="Internal server error", message="Failed to retrieve processed events")
        )
