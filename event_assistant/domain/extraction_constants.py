"""Default values used when a field cannot be resolved from text.

These are compatibility constants carried over from the event client's
behavior. They are defaults, not inferred intent: every one of them can be
overridden through settings (``extraction`` section of config/main.yaml).
"""

from typing import Final

DEFAULT_GUEST_COUNT: Final[int] = 10
"""Expected guests when the text states no count."""

DEFAULT_START_TIME: Final[str] = "18:00"
"""Start time when the text states no time."""

DEFAULT_DURATION_HOURS: Final[int] = 2
"""Duration applied when neither an end time nor a duration is stated."""

MAX_ATTENDEES_MULTIPLIER: Final[float] = 1.5
"""maxAttendees = max(round(expectedGuests * multiplier), floor)."""

MAX_ATTENDEES_FLOOR: Final[int] = 20
"""Lower bound for the derived maxAttendees."""

DEFAULT_LOCATION: Final[str] = "TBD"
DEFAULT_ORGANIZER: Final[str] = "Event Host"
DEFAULT_PRICE: Final[str] = "$0"
FREE_PRICE: Final[str] = "Free"
DEFAULT_EVENT_TYPE: Final[str] = "Other"
DEFAULT_CATEGORY: Final[str] = "Miscellaneous"
DEFAULT_SCHEDULE_DAY: Final[str] = "Day 1"

MAX_INPUT_CHARS: Final[int] = 2000
"""Practical upper bound on extraction input; longer text is truncated."""

MAX_STATED_COUNT: Final[int] = 1_000_000
"""Guest counts and capacities above this are treated as not stated."""

MAX_STATED_AMOUNT: Final[float] = 1_000_000_000.0
"""Budgets and prices above this are treated as not stated."""

MIN_TITLE_LENGTH: Final[int] = 3
MAX_TITLE_SPAN_LENGTH: Final[int] = 50
"""A "for ..." span at least this long is not used as a title."""

LATEST_END_TIME: Final[str] = "23:59"
"""End times that would cross midnight are clamped to this value."""

URGENCY_WINDOW_HOURS: Final[int] = 48
"""Edits to events starting within this window are high urgency."""

EVENT_IMAGE_URL_TEMPLATE: Final[str] = "https://source.unsplash.com/random/1200x600/?{keywords}"
ORGANIZER_IMAGE_URL: Final[str] = "https://source.unsplash.com/random/100x100/?person"
