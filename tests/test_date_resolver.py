"""Tests for date and time resolution service."""

from datetime import date, timedelta

import pytest

from event_assistant.services import date_resolver

hypothesis = pytest.importorskip("hypothesis")
given = hypothesis.given
st = hypothesis.strategies

reference_dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31))


def test_resolve_date_relative_keywords(reference_date: date) -> None:
    """Relative keywords add a fixed number of days."""
    assert date_resolver.resolve_date("lunch today", reference_date) == "2026-10-18"
    assert date_resolver.resolve_date("lunch tomorrow", reference_date) == "2026-10-19"
    assert date_resolver.resolve_date("next week please", reference_date) == "2026-10-25"
    assert date_resolver.resolve_date("sometime next month", reference_date) == "2026-11-17"


def test_resolve_date_day_after_tomorrow_wins_over_tomorrow(
    reference_date: date,
) -> None:
    """The longer phrase must be checked before "tomorrow"."""
    result = date_resolver.resolve_date("party the day after tomorrow", reference_date)
    assert result == "2026-10-20"


def test_resolve_date_next_weekday(reference_date: date) -> None:
    """"next Saturday" from Sunday Oct 18 is Oct 24."""
    assert date_resolver.resolve_date("next Saturday", reference_date) == "2026-10-24"


def test_resolve_date_next_weekday_same_day_is_a_week_later(
    reference_date: date,
) -> None:
    """"next Sunday" on a Sunday is seven days ahead, never today."""
    assert date_resolver.resolve_date("next Sunday", reference_date) == "2026-10-25"


def test_resolve_date_numeric_formats(reference_date: date) -> None:
    """MM/DD/YYYY, MM-DD-YYYY and two-digit years are supported."""
    assert date_resolver.resolve_date("on 12/05/2026", reference_date) == "2026-12-05"
    assert date_resolver.resolve_date("on 12-05-2026", reference_date) == "2026-12-05"
    assert date_resolver.resolve_date("on 1/2/27", reference_date) == "2027-01-02"


def test_resolve_date_invalid_numeric_date_falls_through(reference_date: date) -> None:
    """An impossible numeric date is skipped, not raised."""
    assert date_resolver.resolve_date("on 13/45/2026", reference_date) == "2026-10-18"


def test_resolve_date_month_day(reference_date: date) -> None:
    """Month names with optional ordinal suffixes."""
    assert date_resolver.resolve_date("on Dec 5th", reference_date) == "2026-12-05"
    assert date_resolver.resolve_date("on November 2", reference_date) == "2026-11-02"


def test_resolve_date_month_day_in_past_rolls_to_next_year(
    reference_date: date,
) -> None:
    """A month/day already passed this year means next year."""
    assert date_resolver.resolve_date("on March 3rd", reference_date) == "2027-03-03"


def test_resolve_date_defaults_to_reference(reference_date: date) -> None:
    """No date expression resolves to the reference date."""
    assert date_resolver.resolve_date("a party", reference_date) == "2026-10-18"
    assert date_resolver.find_date("a party", reference_date) is None


@given(reference=reference_dates)
def test_tomorrow_is_always_one_day_later(reference: date) -> None:
    """"tomorrow" is reference + 1 for every reference date."""
    result = date_resolver.resolve_date("dinner tomorrow at 7pm", reference)
    assert result == (reference + timedelta(days=1)).isoformat()


@given(
    reference=reference_dates,
    weekday=st.sampled_from(sorted(date_resolver.WEEKDAYS)),
)
def test_next_weekday_is_that_weekday_strictly_in_future(
    reference: date, weekday: str
) -> None:
    """"next <weekday>" lands on that weekday within the next seven days."""
    result = date.fromisoformat(
        date_resolver.resolve_date(f"meet next {weekday.title()}", reference)
    )
    assert result.weekday() == date_resolver.WEEKDAYS[weekday]
    assert reference < result <= reference + timedelta(days=7)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("dinner at 7pm", "19:00"),
        ("dinner at 7:30 PM", "19:30"),
        ("from 9am onwards", "09:00"),
        ("starts 11:15am sharp", "11:15"),
        ("meeting at 14:30", "14:30"),
        ("lunch at 12pm", "12:00"),
        ("late snack at 12am", "00:00"),
        ("no time here", "18:00"),
    ],
)
def test_resolve_time(text: str, expected: str) -> None:
    """Start time rules in priority order, defaulting to 18:00."""
    assert date_resolver.resolve_time(text) == expected


def test_resolve_time_prefers_at_over_bare_time() -> None:
    """The "at" rule is checked before a bare time."""
    assert date_resolver.resolve_time("doors 6pm, show at 8pm") == "20:00"


def test_resolve_time_ignores_invalid_clock() -> None:
    """Hours outside 1-12 with a meridiem are not times."""
    assert date_resolver.resolve_time("at 13pm") == "18:00"


def test_resolve_end_time_duration_wins() -> None:
    """"for N hours" beats an explicit end."""
    text = "from 6pm to 8pm for 3 hours"
    assert date_resolver.resolve_end_time(text, "18:00") == "21:00"


def test_resolve_end_time_explicit_end() -> None:
    assert date_resolver.resolve_end_time("party 6pm until 11pm", "18:00") == "23:00"


def test_resolve_end_time_default_duration() -> None:
    assert date_resolver.resolve_end_time("party at 6pm", "18:00") == "20:00"


def test_resolve_end_time_ignores_end_before_start() -> None:
    """An end earlier than the start falls back to the default duration."""
    assert date_resolver.resolve_end_time("at 8pm till 7am", "20:00") == "22:00"


def test_resolve_end_time_clamps_at_midnight() -> None:
    """Ends past midnight are clamped to 23:59."""
    assert date_resolver.resolve_end_time("at 11pm", "23:00") == "23:59"
    assert date_resolver.resolve_end_time("at 10pm for 5 hours", "22:00") == "23:59"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("19:00", "19:00"),
        ("7pm", "19:00"),
        ("7:30 PM", "19:30"),
        ("7 p.m.", "19:00"),
        ("", None),
        ("soon", None),
        ("25:00", None),
    ],
)
def test_parse_clock(value: str, expected: str | None) -> None:
    """Lenient normalization used for model output."""
    assert date_resolver.parse_clock(value) == expected


def test_format_helpers() -> None:
    assert date_resolver.format_12h("19:00") == "7:00 PM"
    assert date_resolver.format_12h("00:30") == "12:30 AM"
    assert date_resolver.format_12h("12:05") == "12:05 PM"
    assert date_resolver.format_long_date("2026-10-24") == "Saturday, October 24, 2026"
    assert date_resolver.parse_12h("7:00 PM") == 19 * 60
    assert date_resolver.parse_12h("whenever") is None


def test_today_in_timezone_unknown_zone_falls_back_to_utc() -> None:
    assert isinstance(date_resolver.today_in_timezone("Not/AZone"), date)
