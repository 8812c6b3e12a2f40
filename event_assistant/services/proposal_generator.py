"""Edit proposal generation.

Turns an analyzed edit intent into a field-level diff against the event,
attaches validation warnings, and derives the overall impact assessment
(reschedule, venue change, cost, notification, urgency) from which fields
change.
"""

import copy
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any, Final

import pytz
from rapidfuzz import fuzz

from event_assistant.config.logging_config import get_logger
from event_assistant.domain.exceptions import AmbiguousEditRequestError
from event_assistant.domain.extraction_constants import (
    DEFAULT_SCHEDULE_DAY,
    MAX_ATTENDEES_FLOOR,
    MAX_ATTENDEES_MULTIPLIER,
    URGENCY_WINDOW_HOURS,
)
from event_assistant.domain.models import (
    ChangeValidation,
    EditField,
    EditIntent,
    EditProposal,
    Event,
    OverallImpact,
    ProposedChange,
    Urgency,
)
from event_assistant.services import date_resolver, field_extractors
from event_assistant.services.edit_intent import (
    CLARIFICATION_MENU,
    EditValues,
    ScheduleChange,
    TimingChange,
    extract_edit_values,
)
from event_assistant.services.validators import ChangeValidator

if TYPE_CHECKING:
    from event_assistant.config.settings import Settings

logger = get_logger(__name__)

SCHEDULE_MATCH_THRESHOLD: Final[float] = 80.0
"""Minimum rapidfuzz partial ratio for a schedule item to be removed."""

FIELD_LABELS: Final[dict[EditField, str]] = {
    EditField.TITLE: "title",
    EditField.DATE: "date",
    EditField.TIME: "start time",
    EditField.END_TIME: "end time",
    EditField.LOCATION: "location",
    EditField.ADDRESS: "address",
    EditField.DESCRIPTION: "description",
    EditField.SCHEDULE: "schedule",
    EditField.EXPECTED_GUESTS: "expected guests",
    EditField.MAX_ATTENDEES: "maximum attendees",
    EditField.BUDGET: "budget",
    EditField.PRICE: "price",
}

RESCHEDULE_FIELDS: Final[frozenset[EditField]] = frozenset(
    {EditField.DATE, EditField.TIME, EditField.END_TIME}
)
VENUE_FIELDS: Final[frozenset[EditField]] = frozenset(
    {EditField.LOCATION, EditField.ADDRESS}
)
COST_FIELDS: Final[frozenset[EditField]] = frozenset(
    {EditField.BUDGET, EditField.PRICE}
)


def _display(field: EditField, value: Any) -> str:
    if value in (None, ""):
        return "(empty)"
    if field is EditField.DATE:
        return date_resolver.format_long_date(value)
    if field in (EditField.TIME, EditField.END_TIME):
        return date_resolver.format_12h(value)
    if field is EditField.BUDGET:
        return f"${value:,.2f}".replace(".00", "")
    return str(value)


def explain_change(field: EditField, current: Any, proposed: Any) -> str:
    """Templated reasoning for one field change."""
    label = FIELD_LABELS[field]
    if field is EditField.SCHEDULE:
        return "Update the schedule items as requested."
    if field is EditField.LOCATION and not proposed:
        return "Clear the location as requested."
    if field is EditField.END_TIME:
        return (
            f"Set the end time to {_display(field, proposed)} "
            "so the event keeps a consistent time range."
        )
    if field is EditField.MAX_ATTENDEES:
        return (
            f"Raise capacity to {proposed} so it covers the expected guests."
            if isinstance(current, int) and proposed > current
            else f"Set capacity to {proposed} as requested."
        )
    return (
        f"Change the {label} from {_display(field, current)} "
        f"to {_display(field, proposed)} as requested."
    )


def assess_impact(
    changed: set[EditField],
    start: datetime | None,
    now: datetime,
    urgency_window_hours: int = URGENCY_WINDOW_HOURS,
) -> OverallImpact:
    """Derive impact flags from the changed fields.

    Args:
        changed: Fields the proposal changes
        start: Event start after the proposal is applied
        now: Current time (timezone-aware)
        urgency_window_hours: Starts within this window are urgent

    Returns:
        Impact assessment; urgency is "low" when nothing changes
    """
    reschedule = bool(changed & RESCHEDULE_FIELDS)
    venue = bool(changed & VENUE_FIELDS)
    if not changed:
        urgency = Urgency.LOW
    elif start is not None and now <= start <= now + timedelta(
        hours=urgency_window_hours
    ):
        urgency = Urgency.HIGH
    else:
        urgency = Urgency.NORMAL

    return OverallImpact(
        attendee_notification=reschedule or venue or EditField.DESCRIPTION in changed,
        reschedule_required=reschedule,
        venue_change=venue,
        cost_implication=bool(changed & COST_FIELDS),
        urgency=urgency,
    )


def recommend(impact: OverallImpact) -> list[str]:
    """Recommendation bullets selected by impact flags."""
    recommendations: list[str] = []
    if impact.reschedule_required:
        recommendations.append(
            "Notify all attendees about the new date and time immediately."
        )
        recommendations.append(
            "Update calendar invitations and any published listings."
        )
    if impact.venue_change:
        recommendations.append("Share the new venue and directions with attendees.")
        recommendations.append("Confirm the booking with the new venue.")
    if impact.cost_implication:
        recommendations.append(
            "Review the budget and ticket pricing before confirming."
        )
    if impact.attendee_notification and not (
        impact.reschedule_required or impact.venue_change
    ):
        recommendations.append(
            "Let attendees know about the updated event details."
        )
    if not recommendations:
        recommendations.append(
            "No attendee communication is needed for this change."
        )
    return recommendations


def list_risks(
    impact: OverallImpact, warnings: list[str], urgency_window_hours: int
) -> list[str]:
    """Risk bullets selected by impact flags, followed by validation warnings."""
    risks: list[str] = []
    if impact.urgency is Urgency.HIGH:
        risks.append(
            f"The event starts within {urgency_window_hours} hours; "
            "attendees may not see the update in time."
        )
    if impact.reschedule_required:
        risks.append("Some attendees may not be able to make the new time.")
    if impact.venue_change:
        risks.append("Attendees may still go to the previous location.")
    if impact.cost_implication:
        risks.append(
            "Attendees who already paid may be affected by the cost change."
        )
    return risks + warnings


def _schedule_sort_key(item: dict[str, Any]) -> int:
    minutes = date_resolver.parse_12h(item.get("time", ""))
    return date_resolver.MINUTES_PER_DAY if minutes is None else minutes


def apply_schedule_change(
    schedule: list[dict[str, Any]], change: ScheduleChange, default_time: str
) -> list[dict[str, Any]] | None:
    """Return a new schedule with the item added or removed.

    Added items go to the first day, sorted by time. Removal picks the most
    similar item title; None is returned when nothing matches.
    """
    days = copy.deepcopy(schedule)
    if change.action == "add":
        if not days:
            days = [{"day": DEFAULT_SCHEDULE_DAY, "items": []}]
        items = days[0].setdefault("items", [])
        items.append(
            {
                "time": date_resolver.format_12h(change.time or default_time),
                "title": change.title,
            }
        )
        items.sort(key=_schedule_sort_key)
        return days

    target = change.title.lower()
    best_score = 0.0
    best_match: tuple[int, int] | None = None
    for day_index, day in enumerate(days):
        for item_index, item in enumerate(day.get("items", [])):
            score = fuzz.partial_ratio(target, str(item.get("title", "")).lower())
            if score >= SCHEDULE_MATCH_THRESHOLD and score > best_score:
                best_score = score
                best_match = (day_index, item_index)

    if best_match is None:
        return None
    day_index, item_index = best_match
    del days[day_index]["items"][item_index]
    return days


class ProposalGenerator:
    """Builds validated, impact-assessed edit proposals."""

    def __init__(
        self,
        validator: ChangeValidator | None = None,
        *,
        urgency_window_hours: int = URGENCY_WINDOW_HOURS,
        attendee_multiplier: float = MAX_ATTENDEES_MULTIPLIER,
        attendee_floor: int = MAX_ATTENDEES_FLOOR,
        tz_name: str = "UTC",
    ) -> None:
        self.validator = validator or ChangeValidator()
        self.urgency_window_hours = urgency_window_hours
        self.attendee_multiplier = attendee_multiplier
        self.attendee_floor = attendee_floor
        try:
            self.tz = pytz.timezone(tz_name)
        except pytz.UnknownTimeZoneError:
            self.tz = pytz.UTC

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ProposalGenerator":
        return cls(
            ChangeValidator(settings.venue_open_time, settings.venue_close_time),
            urgency_window_hours=settings.urgency_window_hours,
            attendee_multiplier=settings.max_attendees_multiplier,
            attendee_floor=settings.max_attendees_floor,
            tz_name=settings.tz_default,
        )

    def generate(
        self, intent: EditIntent, event: Event, now: datetime | None = None
    ) -> EditProposal:
        """Generate a proposal for an analyzed edit request.

        Args:
            intent: Result of EditIntentAnalyzer.analyze for this event
            event: Event snapshot the proposal is computed against
            now: Current time; naive values are read in the configured timezone

        Returns:
            Proposal; ``changes`` is empty when no targeted field would change

        Raises:
            AmbiguousEditRequestError: If the intent requires clarification
        """
        if intent.requires_clarification:
            raise AmbiguousEditRequestError(
                intent.clarification_question or CLARIFICATION_MENU
            )

        current_time = self._aware(now or datetime.now(self.tz))
        today = current_time.date()
        values = extract_edit_values(intent.message, today)
        proposed = self._propose(intent, event, values)

        document = event.to_document()
        changes: list[ProposedChange] = []
        warnings: list[str] = []
        for field in EditField:
            if field not in proposed:
                continue
            current = document.get(field.value)
            value = proposed[field]
            if value == current:
                continue
            field_warnings = self._warnings(field, value, proposed, today)
            warnings.extend(field_warnings)
            changes.append(
                ProposedChange(
                    field=field,
                    current_value=current,
                    proposed_value=value,
                    reasoning=explain_change(field, current, value),
                    validation=ChangeValidation(warnings=field_warnings),
                )
            )

        changed = {change.field for change in changes}
        start = self._start_after(event, proposed) if changed else None
        impact = assess_impact(changed, start, current_time, self.urgency_window_hours)
        proposal = EditProposal(
            changes=changes,
            summary=self._summary(event, changes),
            overall_impact=impact,
            recommendations=recommend(impact) if changes else [],
            risks=(
                list_risks(impact, warnings, self.urgency_window_hours)
                if changes
                else []
            ),
        )

        logger.info(
            "edit_proposal_generated",
            event_id=event.id,
            fields=[change.field.value for change in changes],
            warnings=len(warnings),
            urgency=impact.urgency.value,
        )
        return proposal

    def _aware(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return self.tz.localize(value)
        return value.astimezone(self.tz)

    def _propose(
        self, intent: EditIntent, event: Event, values: EditValues
    ) -> dict[EditField, Any]:
        fields = set(intent.fields)
        proposed: dict[EditField, Any] = {}

        proposed.update(self._propose_timing(values.timing, event, fields))

        if EditField.LOCATION in fields:
            if values.clear_location:
                proposed[EditField.LOCATION] = ""
            elif values.location is not None:
                proposed[EditField.LOCATION] = values.location
        if EditField.ADDRESS in fields and values.address is not None:
            proposed[EditField.ADDRESS] = values.address

        if EditField.DESCRIPTION in fields and values.description:
            if values.description_append and event.description.strip():
                proposed[EditField.DESCRIPTION] = (
                    f"{event.description.rstrip()} {values.description}"
                )
            else:
                proposed[EditField.DESCRIPTION] = values.description

        if EditField.SCHEDULE in fields and values.schedule is not None:
            schedule = apply_schedule_change(
                event.to_document()["schedule"], values.schedule, event.end_time
            )
            if schedule is not None:
                proposed[EditField.SCHEDULE] = schedule

        if EditField.TITLE in fields and values.title:
            proposed[EditField.TITLE] = values.title

        proposed.update(self._propose_capacity(values, event, fields))

        if EditField.BUDGET in fields and values.budget is not None:
            proposed[EditField.BUDGET] = values.budget
        if EditField.PRICE in fields and values.price is not None:
            proposed[EditField.PRICE] = values.price
        return proposed

    def _propose_timing(
        self, timing: TimingChange, event: Event, fields: set[EditField]
    ) -> dict[EditField, Any]:
        proposed: dict[EditField, Any] = {}
        if EditField.DATE in fields and timing.new_date is not None:
            proposed[EditField.DATE] = timing.new_date.isoformat()

        duration = date_resolver.to_minutes(event.end_time) - date_resolver.to_minutes(
            event.time
        )
        if EditField.TIME in fields and timing.start is not None:
            start = timing.start
            if timing.duration_hours is not None:
                end = date_resolver.add_minutes(start, timing.duration_hours * 60)
            elif timing.end is not None and timing.end >= start:
                end = timing.end
            else:
                end = date_resolver.add_minutes(start, duration)
            proposed[EditField.TIME] = start
            proposed[EditField.END_TIME] = end
        elif EditField.END_TIME in fields:
            if timing.end is not None and timing.end >= event.time:
                proposed[EditField.END_TIME] = timing.end
            elif timing.duration_hours is not None:
                proposed[EditField.END_TIME] = date_resolver.add_minutes(
                    event.time, timing.duration_hours * 60
                )
        return proposed

    def _propose_capacity(
        self, values: EditValues, event: Event, fields: set[EditField]
    ) -> dict[EditField, Any]:
        proposed: dict[EditField, Any] = {}
        guests = event.expected_guests
        if EditField.EXPECTED_GUESTS in fields and values.guests is not None:
            guests = values.guests
            proposed[EditField.EXPECTED_GUESTS] = guests

        capacity = event.max_attendees
        if EditField.MAX_ATTENDEES in fields and values.capacity is not None:
            capacity = values.capacity
            proposed[EditField.MAX_ATTENDEES] = max(capacity, guests)
        if guests > capacity:
            proposed[EditField.MAX_ATTENDEES] = field_extractors.compute_max_attendees(
                guests, self.attendee_multiplier, self.attendee_floor
            )
        return proposed

    def _warnings(
        self,
        field: EditField,
        value: Any,
        proposed: dict[EditField, Any],
        today: date,
    ) -> list[str]:
        if field is EditField.DATE:
            return self.validator.validate_date(value, today)
        if field in (EditField.TIME, EditField.END_TIME):
            return self.validator.validate_venue_hours(field, value)
        if field is EditField.LOCATION:
            return self.validator.validate_location(
                value, proposed.get(EditField.ADDRESS)
            )
        return []

    def _start_after(self, event: Event, proposed: dict[EditField, Any]) -> datetime:
        new_date = date.fromisoformat(proposed.get(EditField.DATE, event.date))
        hours, minutes = proposed.get(EditField.TIME, event.time).split(":")
        return self.tz.localize(
            datetime.combine(new_date, time(int(hours), int(minutes)))
        )

    @staticmethod
    def _summary(event: Event, changes: list[ProposedChange]) -> str:
        if not changes:
            return f'No changes to "{event.title}" were found in the request.'
        labels = [FIELD_LABELS[change.field] for change in changes]
        if len(labels) == 1:
            listed = labels[0]
        else:
            listed = ", ".join(labels[:-1]) + f" and {labels[-1]}"
        return f'Update the {listed} of "{event.title}".'
