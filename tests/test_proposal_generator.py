"""Tests for edit proposal generation and impact assessment."""

from datetime import datetime

import pytest
import pytz

from event_assistant.config.settings import Settings
from event_assistant.domain.exceptions import AmbiguousEditRequestError
from event_assistant.domain.models import EditField, EditProposal, Event, Urgency
from event_assistant.services.edit_intent import EditIntentAnalyzer, ScheduleChange
from event_assistant.services.proposal_generator import (
    RESCHEDULE_FIELDS,
    ProposalGenerator,
    apply_schedule_change,
    assess_impact,
)
from event_assistant.services.validators import ChangeValidator

hypothesis = pytest.importorskip("hypothesis")
given = hypothesis.given
st = hypothesis.strategies

NOW = datetime(2026, 10, 18, 12, 0)


def _propose(
    message: str,
    event: Event,
    generator: ProposalGenerator | None = None,
    now: datetime = NOW,
) -> EditProposal:
    intent = EditIntentAnalyzer().analyze(message, event, now.date())
    return (generator or ProposalGenerator()).generate(intent, event, now=now)


def _change(proposal: EditProposal, field: EditField):
    return next(change for change in proposal.changes if change.field is field)


def test_new_start_keeps_duration(stored_event: Event) -> None:
    proposal = _propose("move it to 8pm", stored_event)

    assert proposal.changed_fields == [EditField.TIME, EditField.END_TIME]
    assert _change(proposal, EditField.TIME).proposed_value == "20:00"
    assert _change(proposal, EditField.END_TIME).proposed_value == "22:00"
    assert proposal.overall_impact.reschedule_required
    assert proposal.overall_impact.attendee_notification
    assert proposal.overall_impact.urgency is Urgency.NORMAL
    assert proposal.summary == (
        f'Update the start time and end time of "{stored_event.title}".'
    )


def test_reschedule_close_to_start_is_urgent(stored_event: Event) -> None:
    proposal = _propose(
        "move it to 8pm", stored_event, now=datetime(2026, 10, 24, 10, 0)
    )

    assert proposal.overall_impact.urgency is Urgency.HIGH
    assert proposal.risks[0].startswith("The event starts within 48 hours")


def test_past_date_is_warned_not_blocked(stored_event: Event) -> None:
    proposal = _propose("Move it to 10/01/2026", stored_event)

    change = _change(proposal, EditField.DATE)
    assert change.proposed_value == "2026-10-01"
    assert change.validation.warnings == ["The new date 2026-10-01 is in the past."]
    assert "The new date 2026-10-01 is in the past." in proposal.risks


def test_venue_hours_warning(stored_event: Event) -> None:
    generator = ProposalGenerator(ChangeValidator("09:00", "22:00"))
    proposal = _propose("move it to 9pm", stored_event, generator)

    assert _change(proposal, EditField.TIME).validation.warnings == []
    assert _change(proposal, EditField.END_TIME).validation.warnings == [
        "11:00 PM is outside venue hours (9:00 AM - 10:00 PM)."
    ]


def test_location_clear_is_warned(stored_event: Event) -> None:
    proposal = _propose("Remove the location", stored_event)

    change = _change(proposal, EditField.LOCATION)
    assert change.proposed_value == ""
    assert change.reasoning == "Clear the location as requested."
    assert change.validation.warnings == [
        "The location is being cleared without a replacement address."
    ]
    assert proposal.overall_impact.venue_change
    assert not proposal.overall_impact.reschedule_required


def test_new_venue(stored_event: Event) -> None:
    proposal = _propose("Change the venue to Central Park", stored_event)

    change = _change(proposal, EditField.LOCATION)
    assert (change.current_value, change.proposed_value) == (
        "Lakeview Hall",
        "Central Park",
    )
    assert change.validation.warnings == []
    assert "Confirm the booking with the new venue." in proposal.recommendations


def test_more_guests_raise_capacity(stored_event: Event) -> None:
    proposal = _propose("Set guests to 40", stored_event)

    assert proposal.changed_fields == [
        EditField.EXPECTED_GUESTS,
        EditField.MAX_ATTENDEES,
    ]
    assert _change(proposal, EditField.MAX_ATTENDEES).proposed_value == 60
    assert not proposal.overall_impact.attendee_notification
    assert proposal.recommendations == [
        "No attendee communication is needed for this change."
    ]


def test_fewer_guests_keep_capacity(stored_event: Event) -> None:
    proposal = _propose("Set guests to 20", stored_event)
    assert proposal.changed_fields == [EditField.EXPECTED_GUESTS]


def test_budget_change_has_cost_implication(stored_event: Event) -> None:
    proposal = _propose("Increase the budget to $750", stored_event)

    change = _change(proposal, EditField.BUDGET)
    assert (change.current_value, change.proposed_value) == (500.0, 750.0)
    assert change.reasoning == "Change the budget from $500 to $750 as requested."
    assert proposal.overall_impact.cost_implication


def test_description_append(stored_event: Event) -> None:
    proposal = _propose("Add that gifts are optional to the description", stored_event)

    change = _change(proposal, EditField.DESCRIPTION)
    assert change.proposed_value == f"{stored_event.description} gifts are optional"
    assert proposal.overall_impact.attendee_notification
    assert proposal.recommendations == [
        "Let attendees know about the updated event details."
    ]


def test_schedule_item_added_in_time_order(stored_event: Event) -> None:
    proposal = _propose("Add a toast at 8pm to the schedule", stored_event)

    items = _change(proposal, EditField.SCHEDULE).proposed_value[0]["items"]
    assert [(item["time"], item["title"]) for item in items] == [
        ("7:00 PM", "Arrival & Welcome"),
        ("8:00 PM", "Food & Drinks"),
        ("8:00 PM", "Toast"),
        ("9:00 PM", "Cake Cutting"),
    ]
    assert not proposal.overall_impact.reschedule_required


def test_schedule_item_removed_by_similar_title(stored_event: Event) -> None:
    proposal = _propose("Remove the cake cutting from the schedule", stored_event)

    items = _change(proposal, EditField.SCHEDULE).proposed_value[0]["items"]
    assert [item["title"] for item in items] == ["Arrival & Welcome", "Food & Drinks"]


def test_unmatched_removal_changes_nothing(stored_event: Event) -> None:
    proposal = _propose("Remove the fireworks from the schedule", stored_event)

    assert proposal.changes == []
    assert proposal.summary == (
        f'No changes to "{stored_event.title}" were found in the request.'
    )
    assert proposal.overall_impact.urgency is Urgency.LOW
    assert proposal.recommendations == []
    assert proposal.risks == []


def test_clarification_intent_raises(stored_event: Event) -> None:
    intent = EditIntentAnalyzer().analyze(
        "maybe change something", stored_event, NOW.date()
    )
    with pytest.raises(AmbiguousEditRequestError) as exc_info:
        ProposalGenerator().generate(intent, stored_event, now=NOW)
    assert exc_info.value.question == intent.clarification_question


def test_apply_schedule_change_to_empty_schedule() -> None:
    days = apply_schedule_change([], ScheduleChange("add", "Toast"), "21:00")
    assert days == [{"day": "Day 1", "items": [{"time": "9:00 PM", "title": "Toast"}]}]


def test_apply_schedule_change_does_not_mutate_input() -> None:
    schedule = [{"day": "Day 1", "items": [{"time": "7:00 PM", "title": "Dinner"}]}]
    apply_schedule_change(schedule, ScheduleChange("remove", "dinner"), "21:00")
    assert schedule[0]["items"] == [{"time": "7:00 PM", "title": "Dinner"}]


@given(
    base=st.sets(st.sampled_from(list(EditField))),
    extra=st.sets(st.sampled_from(list(EditField))),
)
def test_impact_flags_are_monotonic(
    base: set[EditField], extra: set[EditField]
) -> None:
    """Changing more fields never clears an impact flag."""
    now = pytz.UTC.localize(NOW)
    smaller = assess_impact(base, None, now)
    larger = assess_impact(base | extra, None, now)

    assert smaller.reschedule_required == bool(base & RESCHEDULE_FIELDS)
    for flag in (
        "attendee_notification",
        "reschedule_required",
        "venue_change",
        "cost_implication",
    ):
        assert getattr(larger, flag) >= getattr(smaller, flag)


def test_urgency_window_edges() -> None:
    now = pytz.UTC.localize(NOW)
    changed = {EditField.TIME}

    assert assess_impact(changed, now, now).urgency is Urgency.HIGH
    start = pytz.UTC.localize(datetime(2026, 10, 20, 12, 0))
    assert assess_impact(changed, start, now).urgency is Urgency.HIGH
    start = pytz.UTC.localize(datetime(2026, 10, 20, 12, 1))
    assert assess_impact(changed, start, now).urgency is Urgency.NORMAL
    assert assess_impact(set(), now, now).urgency is Urgency.LOW


def test_from_settings_reads_venue_hours(settings: Settings) -> None:
    configured = settings.model_copy(
        update={"venue_open_time": "10:00", "venue_close_time": "20:00"}
    )
    generator = ProposalGenerator.from_settings(configured)
    assert generator.validator.venue_close_time == "20:00"
    assert generator.tz.zone == pytz.timezone(configured.tz_default).zone
