"""Tests for edit intent analysis."""

from datetime import date

import pytest
from pytest_mock import MockerFixture

from event_assistant.domain.models import EditCategory, EditField, Event
from event_assistant.services.edit_intent import (
    CLARIFICATION_MENU,
    EditIntentAnalyzer,
    ScheduleChange,
    clarification_question,
    extract_edit_values,
    parse_timing,
)


@pytest.fixture
def analyzer() -> EditIntentAnalyzer:
    return EditIntentAnalyzer()


def test_vague_request_asks_for_clarification(
    analyzer: EditIntentAnalyzer, stored_event: Event, reference_date: date
) -> None:
    intent = analyzer.analyze("maybe change something", stored_event, reference_date)

    assert intent.requires_clarification
    assert intent.fields == []
    assert intent.clarification_question == CLARIFICATION_MENU


def test_several_categories_without_values_ask_which_one(
    analyzer: EditIntentAnalyzer, stored_event: Event, reference_date: date
) -> None:
    intent = analyzer.analyze(
        "Can you update the time and the location?", stored_event, reference_date
    )

    assert intent.requires_clarification
    assert intent.categories == [EditCategory.TIMING, EditCategory.LOCATION]
    assert "date or time or location" in (intent.clarification_question or "")


def test_single_category_without_value_is_resolved(
    analyzer: EditIntentAnalyzer, stored_event: Event, reference_date: date
) -> None:
    intent = analyzer.analyze("Can we change the budget?", stored_event, reference_date)

    assert not intent.requires_clarification
    assert intent.fields == [EditField.BUDGET]


@pytest.mark.parametrize(
    ("message", "fields"),
    [
        ("move it to 8pm", [EditField.TIME, EditField.END_TIME]),
        ("Push it to next Saturday", [EditField.DATE]),
        ("Let's end at 11pm", [EditField.END_TIME]),
        ("Change the venue to Central Park", [EditField.LOCATION]),
        ("Remove the location", [EditField.LOCATION]),
        (
            "Change the description to: Dinner and dancing under the stars",
            [EditField.DESCRIPTION],
        ),
        ("Add a toast at 8pm to the schedule", [EditField.SCHEDULE]),
        ("Rename it to Sam's 30th", [EditField.TITLE]),
        ("Set guests to 40", [EditField.EXPECTED_GUESTS]),
        ("Increase the budget to $750", [EditField.BUDGET]),
        ("Make it free", [EditField.PRICE]),
    ],
)
def test_fields_with_values(
    analyzer: EditIntentAnalyzer,
    stored_event: Event,
    reference_date: date,
    message: str,
    fields: list[EditField],
) -> None:
    intent = analyzer.analyze(message, stored_event, reference_date)

    assert not intent.requires_clarification
    assert intent.fields == fields


def test_time_and_place_in_one_request(
    analyzer: EditIntentAnalyzer, stored_event: Event, reference_date: date
) -> None:
    intent = analyzer.analyze(
        "Move it to 8pm at Central Park", stored_event, reference_date
    )

    assert intent.categories == [EditCategory.TIMING, EditCategory.LOCATION]
    assert intent.fields == [EditField.TIME, EditField.END_TIME, EditField.LOCATION]


def test_bare_time_is_a_new_start(reference_date: date) -> None:
    timing = parse_timing("move it to 8pm", reference_date)
    assert (timing.start, timing.end) == ("20:00", None)


def test_range_inherits_end_meridiem(reference_date: date) -> None:
    timing = parse_timing("from 7 to 10pm on Friday", reference_date)

    assert (timing.start, timing.end) == ("19:00", "22:00")
    assert timing.new_date == date(2026, 10, 23)


def test_until_sets_end_only(reference_date: date) -> None:
    timing = parse_timing("keep it going until 11pm", reference_date)
    assert (timing.start, timing.end) == (None, "23:00")


def test_duration_is_read(reference_date: date) -> None:
    timing = parse_timing("make it run for 3 hours", reference_date)
    assert timing.duration_hours == 3
    assert timing.start is None


def test_schedule_item_time_is_not_a_reschedule(reference_date: date) -> None:
    values = extract_edit_values("Add a toast at 8pm to the schedule", reference_date)

    assert values.schedule == ScheduleChange("add", "Toast", "20:00")
    assert values.timing.start is None
    assert values.location is None


def test_schedule_removal(reference_date: date) -> None:
    values = extract_edit_values(
        "Remove the cake cutting from the schedule", reference_date
    )
    assert values.schedule == ScheduleChange("remove", "cake cutting")
    assert not values.clear_location


def test_description_append(reference_date: date) -> None:
    values = extract_edit_values(
        "Add that gifts are optional to the description", reference_date
    )
    assert values.description == "gifts are optional"
    assert values.description_append


def test_location_candidates_that_are_times_are_rejected(
    reference_date: date,
) -> None:
    values = extract_edit_values("Move it to 10/01/2026", reference_date)

    assert values.location is None
    assert values.timing.new_date == date(2026, 10, 1)


def test_price_values(reference_date: date) -> None:
    assert extract_edit_values("Make it free", reference_date).price == "Free"
    assert extract_edit_values("Set the price to $25", reference_date).price == "$25"


def test_clarification_question_lists_options() -> None:
    question = clarification_question([EditCategory.BUDGET, EditCategory.PRICE])
    assert question.startswith("Did you want to change the budget or price?")
    assert clarification_question([]) == CLARIFICATION_MENU


@pytest.mark.parametrize(
    "message",
    [
        "Change the guests to 1" + "0" * 400,
        "Set the budget to $1" + "0" * 400,
        "Set the price to $9" + "9" * 400,
        "Set the budget to $2,500,000,000,000",
    ],
)
def test_implausibly_large_edit_values_are_ignored(
    message: str, reference_date: date
) -> None:
    values = extract_edit_values(message, reference_date)

    assert values.guests is None
    assert values.budget is None
    assert values.price is None


def test_default_today_uses_analyzer_timezone(
    stored_event: Event, mocker: MockerFixture
) -> None:
    today = mocker.patch(
        "event_assistant.services.date_resolver.today_in_timezone",
        return_value=date(2026, 10, 18),
    )

    intent = EditIntentAnalyzer("Pacific/Auckland").analyze(
        "Push it to next Saturday", stored_event
    )

    today.assert_called_once_with("Pacific/Auckland")
    assert intent.fields == [EditField.DATE]
