"""Tests for the heuristic event extractor."""

from datetime import date

import pytest

from event_assistant.domain.models import EventDraft
from event_assistant.services.heuristic_extractor import (
    ExtractionDefaults,
    HeuristicExtractor,
)
from tests.conftest import SCENARIO_TEXT

hypothesis = pytest.importorskip("hypothesis")
given = hypothesis.given
hypothesis_settings = hypothesis.settings
st = hypothesis.strategies


def test_birthday_scenario(scenario_draft: EventDraft) -> None:
    """The reference scenario resolves every stated field."""
    assert scenario_draft.type == "Birthday Party"
    assert scenario_draft.date == "2026-10-24"
    assert scenario_draft.time == "19:00"
    assert scenario_draft.end_time == "21:00"
    assert scenario_draft.location == "Lakeview Hall"
    assert scenario_draft.expected_guests == 25
    assert scenario_draft.budget == 500
    assert scenario_draft.max_attendees >= 38
    assert scenario_draft.category == "Celebration"
    assert scenario_draft.attendees == []
    assert scenario_draft.images == []


def test_scenario_schedule_within_event_time(scenario_draft: EventDraft) -> None:
    items = scenario_draft.schedule[0].items
    assert [item.time for item in items] == ["7:00 PM", "8:00 PM", "9:00 PM"]


def test_defaults_when_nothing_is_stated(reference_date: date) -> None:
    draft = HeuristicExtractor().extract("something fun", reference_date)

    assert draft.type == "Other"
    assert draft.title == "Other"
    assert draft.date == reference_date.isoformat()
    assert draft.time == "18:00"
    assert draft.end_time == "20:00"
    assert draft.location == "TBD"
    assert draft.address == ""
    assert draft.expected_guests == 10
    assert draft.max_attendees == 20
    assert draft.budget is None
    assert draft.price == "$0"
    assert draft.notes is None
    assert draft.organizer.name == "Event Host"


def test_stated_capacity_above_guests_is_kept(reference_date: date) -> None:
    draft = HeuristicExtractor().extract(
        "Workshop with 10 participants, capacity 15", reference_date
    )
    assert draft.max_attendees == 20
    draft = HeuristicExtractor().extract(
        "Workshop with 10 participants, capacity 60", reference_date
    )
    assert draft.max_attendees == 60


@pytest.mark.parametrize(
    "text",
    [
        "party with budget $1" + "0" * 400,
        "party for 1" + "0" * 400 + " guests, capacity 9" + "9" * 400,
        "party with budget $2,500,000,000,000 for 1234567890 guests",
    ],
)
def test_implausibly_large_numbers_are_not_stated(
    text: str, reference_date: date
) -> None:
    draft = HeuristicExtractor().extract(text, reference_date)

    assert draft.budget is None
    assert draft.expected_guests == 10
    assert draft.max_attendees == 20


@hypothesis_settings(max_examples=50, deadline=None)
@given(digits=st.integers(min_value=10, max_value=500))
def test_long_digit_runs_never_raise(digits: int) -> None:
    text = f"budget ${'7' * digits} for {'8' * digits} guests, price ${'9' * digits}"
    draft = HeuristicExtractor().extract(text, date(2026, 10, 18))

    assert draft.budget is None
    assert draft.expected_guests == 10
    assert draft.price == "$0"


def test_configured_defaults_are_used(reference_date: date) -> None:
    extractor = HeuristicExtractor(
        ExtractionDefaults(
            guest_count=4,
            start_time="12:00",
            duration_hours=1,
            attendee_multiplier=2.0,
            attendee_floor=5,
        )
    )
    draft = extractor.extract("lunch", reference_date)

    assert (draft.time, draft.end_time) == ("12:00", "13:00")
    assert (draft.expected_guests, draft.max_attendees) == (4, 8)


def test_extraction_is_idempotent(reference_date: date) -> None:
    extractor = HeuristicExtractor()
    first = extractor.extract(SCENARIO_TEXT, reference_date)
    second = extractor.extract(SCENARIO_TEXT, reference_date)
    assert first.model_dump_json() == second.model_dump_json()


@hypothesis_settings(max_examples=200, deadline=None)
@given(text=st.text(max_size=300))
def test_never_raises_and_keeps_invariants(text: str) -> None:
    """Any input yields a valid draft honouring the capacity rule."""
    draft = HeuristicExtractor().extract(text, date(2026, 10, 18))

    assert draft.time <= draft.end_time
    assert draft.max_attendees >= max(round(draft.expected_guests * 1.5), 20)
    assert draft.budget is None or draft.budget >= 0
