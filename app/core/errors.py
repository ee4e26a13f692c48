"""
Pipeline exceptions

Raised by the ingestion, publish and consume stages. The API layer maps
them onto HTTP status codes; the consumer loop logs and drops them.
"""
from typing import List


class PipelineError(Exception):
    """Base exception for event pipeline errors"""
    pass


class EventValidationError(PipelineError):
    """Raised when an ingestion request fails validation"""
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Validation failed: {'; '.join(self.errors)}")


class BrokerConnectionError(PipelineError):
    """Raised when a Kafka client cannot connect"""
    def __init__(self, component: str, reason: str):
        self.component = component
        super().__init__(f"Kafka {component} failed to connect: {reason}")


class BrokerUnavailableError(PipelineError):
    """Raised when publishing while the producer is not connected"""
    def __init__(self):
        super().__init__("Producer is not connected to Kafka")


class PublishFailureError(PipelineError):
    """Raised when the broker rejects or times out a send"""
    def __init__(self, event_id: str, reason: str):
        self.event_id = event_id
        super().__init__(f"Failed to publish event '{event_id}': {reason}")


class MalformedMessageError(PipelineError):
    """Raised when a consumed message cannot be turned into an Event"""
    def __init__(self, reason: str, raw: str = ""):
        self.reason = reason
        self.raw = raw[:100]
        super().__init__(f"Malformed message: {reason}")


class ConsumerStateError(PipelineError):
    """Raised on an illegal consumer state transition"""
    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while consumer is {state}")
