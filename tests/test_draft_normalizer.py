"""Tests for model payload normalization."""

import pytest

from event_assistant.domain.exceptions import MalformedModelOutputError
from event_assistant.domain.models import EventDraft
from event_assistant.services.draft_normalizer import normalize_payload


def test_complete_payload_is_taken_as_is(scenario_draft: EventDraft) -> None:
    payload = {
        "title": "Sam turns 30",
        "type": "Birthday Party",
        "date": "2026-10-24",
        "time": "19:00",
        "endTime": "23:00",
        "location": "Lakeview Hall",
        "address": "1 Lake Rd, Springfield",
        "category": "Celebration",
        "description": "Surprise party",
        "organizer": {"name": "Alex", "image": "https://example.com/a.png"},
        "price": "Free",
        "expectedGuests": 25,
        "maxAttendees": 40,
        "budget": 500,
        "notes": "Keep it secret",
        "schedule": [
            {"day": "Day 1", "items": [{"time": "7:00 PM", "title": "Surprise!"}]}
        ],
    }

    draft = normalize_payload(payload, scenario_draft)

    assert draft.title == "Sam turns 30"
    assert draft.end_time == "23:00"
    assert draft.address == "1 Lake Rd, Springfield"
    assert draft.organizer.name == "Alex"
    assert draft.price == "Free"
    assert draft.max_attendees == 40
    assert draft.budget == 500.0
    assert draft.schedule[0].items[0].title == "Surprise!"


def test_loose_values_are_coerced(scenario_draft: EventDraft) -> None:
    payload = {
        "title": "Party",
        "type": "Party",
        "date": "October 30, 2026",
        "time": "8pm",
        "endTime": "11:30 PM",
        "expectedGuests": "30",
        "budget": "$1,200",
        "price": 15,
        "organizer": "Jordan",
    }

    draft = normalize_payload(payload, scenario_draft)

    assert draft.date == "2026-10-30"
    assert (draft.time, draft.end_time) == ("20:00", "23:30")
    assert draft.expected_guests == 30
    assert draft.max_attendees == 45
    assert draft.budget == 1200.0
    assert draft.price == "$15"
    assert draft.organizer.name == "Jordan"
    assert draft.category == "Social"


def test_missing_fields_fall_back_to_heuristic_draft(
    scenario_draft: EventDraft,
) -> None:
    draft = normalize_payload({"title": "Sam's party"}, scenario_draft)

    assert draft.title == "Sam's party"
    assert draft.date == scenario_draft.date
    assert (draft.time, draft.end_time) == ("19:00", "21:00")
    assert draft.location == "Lakeview Hall"
    assert draft.expected_guests == 25
    assert draft.budget == 500.0
    assert draft.schedule == scenario_draft.schedule


def test_end_before_start_uses_default_duration(scenario_draft: EventDraft) -> None:
    draft = normalize_payload(
        {"time": "20:00", "endTime": "18:00"},
        scenario_draft,
        default_duration_hours=3,
    )
    assert (draft.time, draft.end_time) == ("20:00", "23:00")


def test_capacity_below_guests_is_recomputed(scenario_draft: EventDraft) -> None:
    draft = normalize_payload(
        {"expectedGuests": 50, "maxAttendees": 10}, scenario_draft
    )
    assert draft.max_attendees == 75


def test_invalid_schedule_is_rebuilt(scenario_draft: EventDraft) -> None:
    draft = normalize_payload(
        {"time": "10:00", "endTime": "12:00", "type": "Meeting", "schedule": "soon"},
        scenario_draft,
    )
    assert [item.title for item in draft.schedule[0].items] == [
        "Meeting Start",
        "Discussion",
        "Wrap-up",
    ]


def test_negative_numbers_are_ignored(scenario_draft: EventDraft) -> None:
    draft = normalize_payload({"expectedGuests": -5, "budget": -1}, scenario_draft)
    assert draft.expected_guests == 25
    assert draft.budget == 500.0


def test_unusable_combination_raises_malformed_output(
    scenario_draft: EventDraft,
) -> None:
    """A capacity rule that breaks the model invariants surfaces as an error."""
    with pytest.raises(MalformedModelOutputError) as exc_info:
        normalize_payload(
            {"expectedGuests": 50},
            scenario_draft,
            max_attendees_for=lambda guests: guests - 1,
        )
    assert "ValidationError" in str(exc_info.value)


@pytest.mark.parametrize(
    "payload",
    [
        {"budget": int("1" + "0" * 400), "expectedGuests": int("1" + "0" * 400)},
        {"budget": "1" + "0" * 400, "expectedGuests": "1" + "0" * 400},
        {"budget": 1e308, "expectedGuests": 1e308, "maxAttendees": 10**20},
        {"budget": float("inf"), "expectedGuests": float("nan")},
        {"budget": "$2,500,000,000,000", "expectedGuests": "²⁵"},
    ],
)
def test_implausible_numbers_fall_back(
    payload: dict, scenario_draft: EventDraft
) -> None:
    draft = normalize_payload(payload, scenario_draft)

    assert draft.budget == 500.0
    assert draft.expected_guests == 25
    assert draft.max_attendees == scenario_draft.max_attendees


def test_unconvertible_value_raises_malformed_output(
    scenario_draft: EventDraft,
) -> None:
    with pytest.raises(MalformedModelOutputError):
        normalize_payload(
            {"expectedGuests": 30},
            scenario_draft,
            max_attendees_for=lambda guests: int("x"),
        )
