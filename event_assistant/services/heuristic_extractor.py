"""Deterministic rule-based event extraction.

Composes the field extractors and the date/time resolver into one complete
``EventDraft``. Used whenever the language model path is disabled or fails,
and to fill fields the model left out.
"""

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from event_assistant.domain.extraction_constants import (
    DEFAULT_DURATION_HOURS,
    DEFAULT_GUEST_COUNT,
    DEFAULT_LOCATION,
    DEFAULT_ORGANIZER,
    DEFAULT_PRICE,
    DEFAULT_START_TIME,
    MAX_ATTENDEES_FLOOR,
    MAX_ATTENDEES_MULTIPLIER,
    ORGANIZER_IMAGE_URL,
)
from event_assistant.domain.models import EventDraft, Organizer
from event_assistant.services import date_resolver, field_extractors

if TYPE_CHECKING:
    from event_assistant.config.settings import Settings


@dataclass(frozen=True, slots=True)
class ExtractionDefaults:
    """Values applied when the text does not state a field."""

    guest_count: int = DEFAULT_GUEST_COUNT
    start_time: str = DEFAULT_START_TIME
    duration_hours: int = DEFAULT_DURATION_HOURS
    attendee_multiplier: float = MAX_ATTENDEES_MULTIPLIER
    attendee_floor: int = MAX_ATTENDEES_FLOOR

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ExtractionDefaults":
        return cls(
            guest_count=settings.default_guest_count,
            start_time=settings.default_start_time,
            duration_hours=settings.default_duration_hours,
            attendee_multiplier=settings.max_attendees_multiplier,
            attendee_floor=settings.max_attendees_floor,
        )


class HeuristicExtractor:
    """Build an ``EventDraft`` from free-form text without a language model.

    Never raises on any input string and is deterministic for identical text
    and reference date.

    Example:
        >>> extractor = HeuristicExtractor()
        >>> draft = extractor.extract("Team sync tomorrow at 10am", date(2026, 10, 18))
        >>> draft.type, draft.date, draft.time
        ('Meeting', '2026-10-19', '10:00')
    """

    def __init__(self, defaults: ExtractionDefaults | None = None) -> None:
        self.defaults = defaults or ExtractionDefaults()

    def extract(self, text: str, reference_date: date) -> EventDraft:
        defaults = self.defaults

        event_type = field_extractors.extract_event_type(text)
        start = date_resolver.resolve_time(text, default=defaults.start_time)
        end = date_resolver.resolve_end_time(
            text, start, default_duration_hours=defaults.duration_hours
        )

        guests = field_extractors.extract_guest_count(text)
        if guests is None:
            guests = defaults.guest_count
        capacity = field_extractors.compute_max_attendees(
            guests, defaults.attendee_multiplier, defaults.attendee_floor
        )
        stated_capacity = field_extractors.extract_capacity(text)
        if stated_capacity is not None:
            capacity = max(capacity, stated_capacity)

        budget = field_extractors.extract_budget(text)

        return EventDraft(
            title=field_extractors.extract_title(text, event_type),
            type=event_type,
            date=date_resolver.resolve_date(text, reference_date),
            time=start,
            end_time=end,
            location=field_extractors.extract_location(text) or DEFAULT_LOCATION,
            address=field_extractors.extract_address(text) or "",
            category=field_extractors.category_for_type(event_type),
            description=text.strip(),
            organizer=Organizer(
                name=field_extractors.extract_organizer(text) or DEFAULT_ORGANIZER,
                image=ORGANIZER_IMAGE_URL,
            ),
            price=field_extractors.extract_price(text) or DEFAULT_PRICE,
            expected_guests=guests,
            max_attendees=capacity,
            budget=float(budget) if budget is not None else None,
            notes=field_extractors.extract_notes(text),
            schedule=field_extractors.build_schedule(event_type, start, end),
            image=field_extractors.image_hint_for_type(event_type),
        )
