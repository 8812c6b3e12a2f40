"""Save AI-generated event use case."""

from datetime import date
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from event_assistant.config.logging_config import get_logger
from event_assistant.domain.exceptions import ValidationError
from event_assistant.domain.extraction_constants import DEFAULT_LOCATION
from event_assistant.domain.models import EventDraft
from event_assistant.domain.protocols import EventStoreProtocol

logger = get_logger(__name__)

UNTITLED_EVENT = "Untitled Event"
NO_DESCRIPTION = "No description provided"


def _as_int(value: Any) -> int:
    try:
        return max(int(float(value)), 0)
    except (TypeError, ValueError):
        return 0


def _as_budget(value: Any) -> float | None:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    return amount if amount > 0 else None


def clean_event_document(
    event_data: EventDraft | dict[str, Any], today: date | None = None
) -> dict[str, Any]:
    """Fill the fields an event page cannot render without.

    Accepts a draft or a camelCase document as edited by the user.
    """
    document = (
        event_data.to_document()
        if isinstance(event_data, EventDraft)
        else dict(event_data)
    )
    organizer = document.get("organizer")
    guests = _as_int(document.get("expectedGuests"))

    document.update(
        {
            "date": str(document.get("date") or (today or date.today()).isoformat()),
            "expectedGuests": guests,
            "maxAttendees": max(_as_int(document.get("maxAttendees")), guests),
            "budget": _as_budget(document.get("budget")),
            "title": document.get("title") or UNTITLED_EVENT,
            "description": document.get("description") or NO_DESCRIPTION,
            "location": document.get("location") or DEFAULT_LOCATION,
            "organizer": organizer
            if isinstance(organizer, dict)
            else {"name": "", "image": ""},
            "schedule": document.get("schedule")
            if isinstance(document.get("schedule"), list)
            else [],
            "attendees": document.get("attendees")
            if isinstance(document.get("attendees"), list)
            else [],
        }
    )
    return document


def save_ai_generated_event(
    store: EventStoreProtocol,
    event_data: EventDraft | dict[str, Any],
    user_id: str,
    today: date | None = None,
) -> str:
    """Persist an extracted event on behalf of a user.

    Args:
        store: Event store
        event_data: Extracted draft, possibly edited by the user
        user_id: Creating user (stored as ``createdBy``)
        today: Date used when the draft has none

    Returns:
        New event id

    Raises:
        ValidationError: If the cleaned document is still not a valid event
        PersistenceError: On store failures
    """
    document = clean_event_document(event_data, today)
    try:
        draft = EventDraft.model_validate(document)
    except PydanticValidationError as e:
        raise ValidationError(f"Event data is invalid: {e}") from e

    event_id = store.create({**draft.to_document(), "aiGenerated": True}, user_id)
    logger.info(
        "ai_event_saved", event_id=event_id, created_by=user_id, event_type=draft.type
    )
    return event_id
