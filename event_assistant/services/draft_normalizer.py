"""Normalization of language model payloads into ``EventDraft``.

Model output is loosely typed: times arrive as "7pm", guest counts as
strings, fields go missing. Every field is coerced when possible and taken
from the heuristic draft for the same text otherwise, so the result is
always a draft that satisfies the model invariants.
"""

import math
from collections.abc import Callable
from datetime import date
from typing import Any, Final

from dateutil import parser as dateutil_parser
from pydantic import ValidationError as PydanticValidationError

from event_assistant.domain.exceptions import MalformedModelOutputError
from event_assistant.domain.extraction_constants import (
    DEFAULT_DURATION_HOURS,
    MAX_STATED_AMOUNT,
    MAX_STATED_COUNT,
)
from event_assistant.domain.models import EventDraft, Organizer, ScheduleDay
from event_assistant.services import date_resolver, field_extractors

TEXT_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("title", "title"),
    ("type", "type"),
    ("location", "location"),
    ("description", "description"),
    ("image", "image"),
)
"""(payload key, attribute) pairs copied when they hold a non-empty string."""


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _count(value: Any) -> int | None:
    count: int | None = None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        count = value
    elif isinstance(value, float) and value.is_integer():
        count = int(value)
    elif isinstance(value, str) and value.strip().isdecimal() and len(value.strip()) <= 9:
        count = int(value.strip())
    if count is None or not 0 <= count <= MAX_STATED_COUNT:
        return None
    return count


def _amount(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            amount = float(value)
        elif isinstance(value, str):
            amount = float(value.strip().lstrip("$").replace(",", ""))
        else:
            return None
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(amount) or not 0 <= amount <= MAX_STATED_AMOUNT:
        return None
    return amount


def _iso_date(value: Any) -> str | None:
    text = _text(value)
    if text is None:
        return None
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        pass
    try:
        return dateutil_parser.parse(text).date().isoformat()
    except (ValueError, OverflowError):
        return None


def _price(value: Any) -> str | None:
    text = _text(value)
    if text is not None:
        return text
    amount = _amount(value)
    if amount is None:
        return None
    return f"${int(amount)}" if amount.is_integer() else f"${amount:.2f}"


def _organizer(value: Any, fallback: Organizer) -> Organizer:
    if isinstance(value, dict):
        return Organizer(
            name=_text(value.get("name")) or fallback.name,
            image=_text(value.get("image")) or fallback.image,
        )
    name = _text(value)
    if name is not None:
        return Organizer(name=name, image=fallback.image)
    return fallback


def _schedule(value: Any) -> list[ScheduleDay] | None:
    if not isinstance(value, list) or not value:
        return None
    try:
        days = [ScheduleDay.model_validate(day) for day in value]
    except PydanticValidationError:
        return None
    return days if any(day.items for day in days) else None


def _first(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def _normalize(
    payload: dict[str, Any],
    fallback: EventDraft,
    default_duration_hours: int = DEFAULT_DURATION_HOURS,
    max_attendees_for: Callable[[int], int] = field_extractors.compute_max_attendees,
) -> EventDraft:
    values: dict[str, Any] = {}
    for key, attribute in TEXT_FIELDS:
        values[attribute] = _first(_text(payload.get(key)), getattr(fallback, attribute))

    values["date"] = _first(_iso_date(payload.get("date")), fallback.date)

    start = date_resolver.parse_clock(str(payload.get("time") or ""))
    end = date_resolver.parse_clock(str(payload.get("endTime") or payload.get("end_time") or ""))
    if start is None:
        start = fallback.time
        if end is None:
            end = fallback.end_time
    if end is None or end < start:
        end = date_resolver.add_minutes(start, default_duration_hours * 60)
    values["time"], values["end_time"] = start, end

    event_type = values["type"]
    values["category"] = _first(
        _text(payload.get("category")),
        field_extractors.category_for_type(event_type),
    )
    address = payload.get("address")
    values["address"] = address.strip() if isinstance(address, str) else fallback.address
    values["organizer"] = _organizer(payload.get("organizer"), fallback.organizer)
    values["price"] = _first(_price(payload.get("price")), fallback.price)

    guests = _first(_count(payload.get("expectedGuests")), fallback.expected_guests)
    capacity = _count(payload.get("maxAttendees"))
    if capacity is None or capacity < guests:
        capacity = max_attendees_for(guests)
    values["expected_guests"], values["max_attendees"] = guests, capacity

    values["budget"] = _first(_amount(payload.get("budget")), fallback.budget)
    values["notes"] = _first(_text(payload.get("notes")), fallback.notes)

    schedule = _schedule(payload.get("schedule"))
    if schedule is None:
        schedule = field_extractors.build_schedule(event_type, start, end)
    values["schedule"] = schedule

    return EventDraft(**values)


def normalize_payload(
    payload: dict[str, Any],
    fallback: EventDraft,
    default_duration_hours: int = DEFAULT_DURATION_HOURS,
    max_attendees_for: Callable[[int], int] = field_extractors.compute_max_attendees,
) -> EventDraft:
    """Coerce a model payload into a valid draft.

    Args:
        payload: Parsed JSON object returned by the model
        fallback: Heuristic draft for the same input text
        default_duration_hours: Duration used when the model end time is unusable
        max_attendees_for: Capacity rule applied when the model gives none

    Returns:
        Draft combining model values with heuristic fallbacks

    Raises:
        MalformedModelOutputError: If the combined values still fail validation
            or a value cannot be converted
    """
    try:
        return _normalize(payload, fallback, default_duration_hours, max_attendees_for)
    except (PydanticValidationError, ValueError, OverflowError, TypeError) as e:
        raise MalformedModelOutputError(
            f"Model payload is unusable ({type(e).__name__})"
        ) from e
