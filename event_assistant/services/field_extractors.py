"""Rule-based field extractors for event text.

Each extractor is a pure ``text -> value | None`` function driven by an
ordered rule table; the first matching rule wins. ``None`` means the text
states nothing for that field and the caller applies its default.
"""

import math
import re
from typing import Final

from event_assistant.domain.extraction_constants import (
    DEFAULT_CATEGORY,
    DEFAULT_EVENT_TYPE,
    DEFAULT_SCHEDULE_DAY,
    EVENT_IMAGE_URL_TEMPLATE,
    FREE_PRICE,
    MAX_ATTENDEES_FLOOR,
    MAX_ATTENDEES_MULTIPLIER,
    MAX_STATED_AMOUNT,
    MAX_STATED_COUNT,
    MAX_TITLE_SPAN_LENGTH,
    MIN_TITLE_LENGTH,
)
from event_assistant.domain.models import EventType, ScheduleDay, ScheduleItem
from event_assistant.services.date_resolver import (
    MONTH_DAY_PATTERN,
    format_12h,
    from_minutes,
    to_minutes,
)


def _keyword_pattern(*keywords: str) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(keyword) for keyword in keywords)
    return re.compile(rf"\b(?:{alternatives})(?:s|es)?\b", flags=re.IGNORECASE)


EVENT_TYPE_RULES: Final[tuple[tuple[re.Pattern[str], EventType], ...]] = (
    (_keyword_pattern("birthday", "bday", "birth day"), EventType.BIRTHDAY_PARTY),
    (_keyword_pattern("wedding", "marriage", "ceremony"), EventType.WEDDING),
    (
        _keyword_pattern("meeting", "conference", "sync", "discussion", "call"),
        EventType.MEETING,
    ),
    (
        _keyword_pattern("dinner", "lunch", "breakfast", "brunch", "meal"),
        EventType.MEAL,
    ),
    (
        _keyword_pattern("party", "parties", "celebration", "gathering", "get-together"),
        EventType.PARTY,
    ),
    (_keyword_pattern("concert", "show", "performance", "gig"), EventType.CONCERT),
    (
        _keyword_pattern("workshop", "seminar", "class", "training"),
        EventType.WORKSHOP,
    ),
    (
        _keyword_pattern("trip", "vacation", "getaway", "journey", "travel"),
        EventType.TRIP,
    ),
    (_keyword_pattern("festival", "fair", "carnival"), EventType.FESTIVAL),
    (_keyword_pattern("exhibition", "expo", "showcase"), EventType.EXHIBITION),
)
"""Event type keyword table, checked in order."""

CATEGORY_BY_TYPE: Final[dict[str, str]] = {
    EventType.BIRTHDAY_PARTY.value: "Celebration",
    EventType.WEDDING.value: "Celebration",
    EventType.PARTY.value: "Social",
    EventType.MEETING.value: "Business",
    EventType.MEAL.value: "Food & Drink",
    EventType.CONCERT.value: "Entertainment",
    EventType.WORKSHOP.value: "Education",
    EventType.TRIP.value: "Travel",
    EventType.FESTIVAL.value: "Entertainment",
    EventType.EXHIBITION.value: "Arts & Culture",
    EventType.OTHER.value: DEFAULT_CATEGORY,
}

SCHEDULE_TEMPLATES: Final[dict[str, tuple[str, ...]]] = {
    EventType.BIRTHDAY_PARTY.value: ("Arrival & Welcome", "Food & Drinks", "Cake Cutting"),
    EventType.MEETING.value: ("Meeting Start", "Discussion", "Wrap-up"),
    EventType.WEDDING.value: ("Ceremony", "Reception", "Dinner", "Dancing"),
}
"""Schedule item titles by event type; other types use Start/Main Activity/End."""

MAIN_ACTIVITY_MIN_MINUTES: Final[int] = 120

FOR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\bfor\b", flags=re.IGNORECASE)
TITLE_TERMINATORS: Final[tuple[str, ...]] = (" at ", " on ", " in ", ". ")
NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"\b(?:for|of|with)\s+([A-Z][a-z]+)")

_TIME_TOKEN = r"\d{1,2}(?::\d{2})?\s*[ap]\.?m\b"
LOCATION_END = (
    r"(?=\s+(?:on|at|from|for|to|until|till|with|by|next|this|tomorrow|today)\b"
    rf"|\s+{_TIME_TOKEN}|[,.!?;\n]|$)"
)

LOCATION_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(rf"\bat\s+([^,.!?;\n]+?){LOCATION_END}", flags=re.IGNORECASE),
    re.compile(rf"\bin\s+([^,.!?;\n]+?){LOCATION_END}", flags=re.IGNORECASE),
    re.compile(
        rf"\blocation\s*(?:is|at|in)?\s*:?\s*([^,.!?;\n]+?){LOCATION_END}",
        flags=re.IGNORECASE,
    ),
    re.compile(
        rf"\bplace\s*(?:is|at|in)?\s*:?\s*([^,.!?;\n]+?){LOCATION_END}",
        flags=re.IGNORECASE,
    ),
)
"""Location rules in priority order; every match is a candidate."""

NOT_A_PLACE_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(rf"^{_TIME_TOKEN}", flags=re.IGNORECASE),
    re.compile(r"^\d{1,2}(?::\d{2})?$"),
    re.compile(
        r"^(?:a|an|one|\d+)\s+(?:minutes?|hours?|days?|weeks?|months?|years?)\b",
        flags=re.IGNORECASE,
    ),
    re.compile(
        r"^(?:the\s+)?(?:morning|afternoon|evening|night|noon|midnight)\b",
        flags=re.IGNORECASE,
    ),
    re.compile(
        r"^(?:january|february|march|april|may|june|july|august|september"
        r"|october|november|december)(?:\s+\d{4})?$",
        flags=re.IGNORECASE,
    ),
    re.compile(
        r"^(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
        flags=re.IGNORECASE,
    ),
)
"""Candidates matching any of these are times or dates, not places."""

ADDRESS_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:address(?:\s+is)?|located\s+at)\s*:?\s*([^,.]+?(?:,\s*[^,.]+){1,3})(?:[,.]|$)",
    flags=re.IGNORECASE,
)

GUEST_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(
        r"\b(\d{1,9})\s+(?:people|guests|attendees|participants|friends|family members)\b",
        flags=re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:people|guests|attendees|participants|headcount)\s*(?:count\s*)?"
        r"(?::|to|is|of)?\s*(\d{1,9})\b",
        flags=re.IGNORECASE,
    ),
    re.compile(r"\b(?:expecting|expect|invite|inviting)\s+(\d{1,9})\b", flags=re.IGNORECASE),
)
"""Guest count rules, checked in order."""

CAPACITY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:capacity|max(?:imum)?\s+attendees)\s*(?::|to|is|of)?\s*(\d{1,9})\b",
    flags=re.IGNORECASE,
)

_AMOUNT = r"\$?\s*(\d{1,3}(?:,\d{3}){1,4}|\d{1,12})(?![\d,]?\d)"

BUDGET_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"\b(?:budget|cost|spending)\s*(?:of|is|:|to)?\s*:?\s*{_AMOUNT}",
    flags=re.IGNORECASE,
)
PRICE_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"\b(?:price|cost|fee|admission)\s*(?:is|:|to)?\s*:?\s*{_AMOUNT}",
    flags=re.IGNORECASE,
)
FREE_PATTERN: Final[re.Pattern[str]] = re.compile(r"\bfree\b", flags=re.IGNORECASE)

NOTE_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(
        r"\b(?:note|remember|don['’]t forget|bring)\s+([^,.]+?)(?:[,.]|$)",
        flags=re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:important|special)\s+(?:note|requirement)s?\s*:?\s*([^,.]+?)(?:[,.]|$)",
        flags=re.IGNORECASE,
    ),
)

ORGANIZER_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i:organized\s+by|host(?:ed)?\s+by|organizer\s+is)\s+([A-Z][a-z]+(?: [A-Z][a-z]+)?)"
)
"""Keyword is case-insensitive; the name must be capitalised."""


def extract_event_type(text: str) -> str:
    """Classify the event type from keywords; defaults to "Other"."""
    for pattern, event_type in EVENT_TYPE_RULES:
        if pattern.search(text):
            return event_type.value
    return DEFAULT_EVENT_TYPE


def extract_title(text: str, event_type: str) -> str:
    """Derive a title from the "for ..." span or a proper name.

    The span after "for" runs to the nearest of " at ", " on ", " in ", ". ".
    Spans of 50+ or fewer than 3 characters are discarded; the fallback is
    "<Type> for <Name>" and finally the type itself.
    """
    for_match = FOR_PATTERN.search(text)
    if for_match:
        start = for_match.end()
        lowered = text.lower()
        ends = [
            index
            for index in (lowered.find(term, start) for term in TITLE_TERMINATORS)
            if index != -1
        ]
        end = min(ends) if ends else len(text)
        span = text[start:end].strip().rstrip(".,!?;:").strip()
        if MIN_TITLE_LENGTH <= len(span) < MAX_TITLE_SPAN_LENGTH:
            return span

    name_match = NAME_PATTERN.search(text)
    if name_match:
        return f"{event_type} for {name_match.group(1)}"
    return event_type


def is_place_candidate(value: str) -> bool:
    """True when a captured span can be a venue name."""
    candidate = value.strip()
    if len(candidate) <= 2:
        return False
    if any(pattern.search(candidate) for pattern in NOT_A_PLACE_PATTERNS):
        return False
    if MONTH_DAY_PATTERN.match(candidate):
        return False
    return True


def extract_location(text: str) -> str | None:
    """Extract a venue from "at X", "in X", "location is X" or "place is X"."""
    for pattern in LOCATION_PATTERNS:
        for match in pattern.finditer(text):
            candidate = match.group(1).strip()
            if is_place_candidate(candidate):
                return candidate
    return None


def extract_address(text: str) -> str | None:
    match = ADDRESS_PATTERN.search(text)
    return match.group(1).strip() if match else None


def stated_count(raw: str) -> int | None:
    """Parse a stated count; implausibly large values count as not stated."""
    value = int(raw)
    return value if value <= MAX_STATED_COUNT else None


def stated_amount(raw: str) -> int | None:
    """Parse "1,500" or "1500"; implausibly large values count as not stated."""
    value = int(raw.replace(",", ""))
    return value if value <= MAX_STATED_AMOUNT else None


def extract_guest_count(text: str) -> int | None:
    for pattern in GUEST_PATTERNS:
        match = pattern.search(text)
        if match:
            return stated_count(match.group(1))
    return None


def extract_capacity(text: str) -> int | None:
    match = CAPACITY_PATTERN.search(text)
    return stated_count(match.group(1)) if match else None


def extract_budget(text: str) -> int | None:
    match = BUDGET_PATTERN.search(text)
    return stated_amount(match.group(1)) if match else None


def extract_price(text: str) -> str | None:
    """Return "$N", "Free", or None when the text states no price."""
    match = PRICE_PATTERN.search(text)
    if match:
        amount = stated_amount(match.group(1))
        return f"${amount}" if amount is not None else None
    if FREE_PATTERN.search(text):
        return FREE_PRICE
    return None


def extract_notes(text: str) -> str | None:
    for pattern in NOTE_PATTERNS:
        match = pattern.search(text)
        if match:
            note = match.group(1).strip()
            if note:
                return note
    return None


def extract_organizer(text: str) -> str | None:
    match = ORGANIZER_PATTERN.search(text)
    return match.group(1).strip() if match else None


def category_for_type(event_type: str) -> str:
    return CATEGORY_BY_TYPE.get(event_type, DEFAULT_CATEGORY)


def image_hint_for_type(event_type: str) -> str:
    """Image service URL keyed by the event type ("Birthday Party" -> "birthday,party")."""
    keywords = event_type.lower().replace(" ", ",")
    return EVENT_IMAGE_URL_TEMPLATE.format(keywords=keywords)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_max_attendees(
    expected_guests: int,
    multiplier: float = MAX_ATTENDEES_MULTIPLIER,
    floor: int = MAX_ATTENDEES_FLOOR,
) -> int:
    """Capacity derived from the guest count.

    Example:
        >>> compute_max_attendees(25)
        38
    """
    return max(round_half_up(expected_guests * multiplier), floor, expected_guests)


def build_schedule(event_type: str, start: str, end: str) -> list[ScheduleDay]:
    """Synthesize a one-day schedule spread evenly over [start, end].

    Birthday, meeting and wedding events use their own templates; any other
    type gets Start, a midpoint Main Activity (only for 2h+ events) and End.
    """
    start_minutes = to_minutes(start)
    span = max(to_minutes(end) - start_minutes, 0)

    titles = SCHEDULE_TEMPLATES.get(event_type)
    if titles is None:
        titles = (
            ("Start", "Main Activity", "End")
            if span >= MAIN_ACTIVITY_MIN_MINUTES
            else ("Start", "End")
        )

    steps = len(titles) - 1
    items = [
        ScheduleItem(
            time=format_12h(from_minutes(start_minutes + (span * index) // steps)),
            title=title,
        )
        for index, title in enumerate(titles)
    ]
    return [ScheduleDay(day=DEFAULT_SCHEDULE_DAY, items=items)]
