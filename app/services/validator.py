from dataclasses import dataclass, field
from typing import Any, List, Mapping

from app.schemas.event import EventType

VALID_EVENT_TYPES = EventType.values()


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def validate_event_payload(candidate: Any) -> ValidationResult:
    """
    Check the shape of an inbound event request.

    Every rule is applied and all violations are collected, in rule order.
    Only a missing candidate short-circuits.

    Returns:
        ValidationResult with ``valid`` set iff ``errors`` is empty
    """
    if candidate is None:
        return ValidationResult(valid=False, errors=["payload is required"])

    if not isinstance(candidate, Mapping):
        return ValidationResult(valid=False, errors=["payload must be a JSON object"])

    errors = []

    user_id = candidate.get("userId")
    if not user_id or not isinstance(user_id, str):
        errors.append("userId is required and must be a string")

    event_type = candidate.get("eventType")
    if not event_type or not isinstance(event_type, str):
        errors.append("eventType is required and must be a string")
    elif event_type not in VALID_EVENT_TYPES:
        errors.append(f"eventType must be one of: {', '.join(VALID_EVENT_TYPES)}")

    # payload is optional; null counts as absent
    payload = candidate.get("payload")
    if payload is not None and not isinstance(payload, Mapping):
        errors.append("payload must be an object")

    return ValidationResult(valid=not errors, errors=errors)
