"""Domain models for the event assistant.

All models use Pydantic v2 for validation and serialization. Attributes are
snake_case in Python and serialize with camelCase aliases, which is the shape
stored in the event document store and exchanged with the language model.
"""

import re
from datetime import date as calendar_date
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from event_assistant.domain.extraction_constants import (
    DEFAULT_LOCATION,
    DEFAULT_PRICE,
)

CLOCK_PATTERN = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")
"""24-hour "HH:MM" clock value."""


class CamelModel(BaseModel):
    """Base model serializing with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventType(str, Enum):
    """Event types recognised by the heuristic classifier."""

    BIRTHDAY_PARTY = "Birthday Party"
    WEDDING = "Wedding"
    MEETING = "Meeting"
    MEAL = "Meal"
    PARTY = "Party"
    CONCERT = "Concert"
    WORKSHOP = "Workshop"
    TRIP = "Trip"
    FESTIVAL = "Festival"
    EXHIBITION = "Exhibition"
    OTHER = "Other"


class Organizer(CamelModel):
    """Event organizer shown on the event page."""

    name: str = ""
    image: str = ""


class ScheduleItem(CamelModel):
    """Single schedule entry; time is display formatted ("7:00 PM")."""

    time: str
    title: str


class ScheduleDay(CamelModel):
    """Ordered schedule items for one day of the event."""

    day: str
    items: list[ScheduleItem] = Field(default_factory=list)


class EventDraft(CamelModel):
    """Structured event record produced by extraction, not yet persisted."""

    title: str = Field(..., min_length=1, description="Event title")
    type: str = Field(..., min_length=1, description="Event type, e.g. 'Meeting'")
    date: str = Field(..., description="ISO-8601 calendar date")
    time: str = Field(..., description="Start time, 24-hour HH:MM")
    end_time: str = Field(..., description="End time, 24-hour HH:MM")
    location: str = Field(default=DEFAULT_LOCATION, description="Venue name")
    address: str = Field(default="", description="Street address, may be empty")
    category: str = Field(default="", description="Category derived from type")
    description: str = Field(default="", description="Free-form description")
    organizer: Organizer = Field(default_factory=Organizer)
    price: str = Field(default=DEFAULT_PRICE, description="'$50', 'Free' or '$0'")
    expected_guests: int = Field(default=0, ge=0, description="Expected guests")
    max_attendees: int = Field(default=0, ge=0, description="Capacity")
    budget: float | None = Field(default=None, ge=0, description="Budget or None")
    notes: str | None = Field(default=None, description="Notes for the host")
    schedule: list[ScheduleDay] = Field(default_factory=list)
    attendees: list[Any] = Field(default_factory=list)
    images: list[str] = Field(
        default_factory=list, description="Populated by the external upload flow"
    )
    image: str = Field(default="", description="Image hint for the image service")

    @field_validator("date")
    @classmethod
    def date_is_iso(cls, v: str) -> str:
        calendar_date.fromisoformat(v)
        return v

    @field_validator("time", "end_time")
    @classmethod
    def clock_is_24h(cls, v: str) -> str:
        if not CLOCK_PATTERN.match(v):
            raise ValueError(f"time must be HH:MM (24-hour), got {v!r}")
        return v

    @model_validator(mode="after")
    def check_ranges(self) -> "EventDraft":
        if self.end_time < self.time:
            raise ValueError("endTime must not be earlier than time")
        if self.max_attendees < self.expected_guests:
            raise ValueError("maxAttendees must be >= expectedGuests")
        return self

    def to_document(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON document shape."""
        return self.model_dump(mode="json", by_alias=True)


class Event(EventDraft):
    """Persisted event as returned by the event store."""

    id: str = Field(..., description="Store document id")
    created_by: str | None = None
    ai_generated: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None


class ChatMessage(CamelModel):
    """One turn of the assistant conversation."""

    role: Literal["user", "assistant"]
    content: str


class ExtractionSource(str, Enum):
    """Which path produced an extracted draft."""

    MODEL = "model"
    HEURISTIC = "heuristic"


class FallbackReason(str, Enum):
    """Why the model path was abandoned for the heuristic path."""

    MODEL_DISABLED = "model_disabled"
    MODEL_UNAVAILABLE = "model_unavailable"
    MODEL_TIMEOUT = "model_timeout"
    MALFORMED_OUTPUT = "malformed_output"
    INVALID_PAYLOAD = "invalid_payload"


class ExtractionResult(CamelModel):
    """Extraction output: the draft plus the message shown to the user."""

    event_data: EventDraft
    ai_message: str
    source: ExtractionSource
    fallback_reason: FallbackReason | None = None


class EditCategory(str, Enum):
    """Field categories an edit request can target."""

    TIMING = "date or time"
    LOCATION = "location"
    DESCRIPTION = "description"
    SCHEDULE = "schedule"
    TITLE = "title"
    GUESTS = "guest count"
    BUDGET = "budget"
    PRICE = "price"


class EditField(str, Enum):
    """Editable event fields, named as in the event document."""

    TITLE = "title"
    DATE = "date"
    TIME = "time"
    END_TIME = "endTime"
    LOCATION = "location"
    ADDRESS = "address"
    DESCRIPTION = "description"
    SCHEDULE = "schedule"
    EXPECTED_GUESTS = "expectedGuests"
    MAX_ATTENDEES = "maxAttendees"
    BUDGET = "budget"
    PRICE = "price"


class EditIntent(CamelModel):
    """Classification of a free-form edit request against one event."""

    message: str
    fields: list[EditField] = Field(default_factory=list)
    categories: list[EditCategory] = Field(default_factory=list)
    requires_clarification: bool = False
    clarification_question: str | None = None


class ChangeValidation(CamelModel):
    """Non-fatal validation warnings attached to a proposed change."""

    warnings: list[str] = Field(default_factory=list)


class ProposedChange(CamelModel):
    """Field-level diff entry of an edit proposal."""

    field: EditField
    current_value: Any = None
    proposed_value: Any = None
    reasoning: str = ""
    validation: ChangeValidation = Field(default_factory=ChangeValidation)


class Urgency(str, Enum):
    """How soon the affected event starts."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class OverallImpact(CamelModel):
    """Impact flags derived from which fields a proposal changes."""

    attendee_notification: bool = False
    reschedule_required: bool = False
    venue_change: bool = False
    cost_implication: bool = False
    urgency: Urgency = Urgency.NORMAL


class EditProposal(CamelModel):
    """Validated, impact-assessed change set for one event."""

    changes: list[ProposedChange] = Field(default_factory=list)
    summary: str = ""
    overall_impact: OverallImpact = Field(default_factory=OverallImpact)
    recommendations: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)

    @property
    def changed_fields(self) -> list[EditField]:
        return [change.field for change in self.changes]


class AppliedResult(CamelModel):
    """Outcome of applying a proposal to the stored event."""

    event_id: str
    applied_fields: list[EditField]
    summary: str
    updated_by: str
    updated_at: datetime


class LLMCallMetadata(BaseModel):
    """Metadata for a single language model call."""

    prompt_hash: str
    model: str
    tokens_in: int = 0
    tokens_out: int = 0
    cost_usd: float = 0.0
    latency_ms: int = 0
    ts: datetime
