"""Edit intent analysis.

Classifies a free-form edit request ("move it to 8pm at Central Park")
against an existing event: which field categories it targets, which concrete
values it states, and whether it needs a clarifying question first.
"""

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Final

from event_assistant.config.logging_config import get_logger
from event_assistant.domain.extraction_constants import FREE_PRICE, MAX_STATED_AMOUNT
from event_assistant.domain.models import EditCategory, EditField, EditIntent, Event
from event_assistant.services import date_resolver, field_extractors

logger = get_logger(__name__)

_SCHEDULE_WORDS = r"(?:schedule|agenda|program(?:me)?|itinerary)"

SCHEDULE_ADD_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"\badd\s+(?:an?\s+|the\s+|some\s+)?(.+?)\s+(?:to|into|in|on)\s+the\s+{_SCHEDULE_WORDS}\b",
    flags=re.IGNORECASE,
)
SCHEDULE_REMOVE_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"\b(?:remove|delete|drop|cancel)\s+(?:the\s+)?(.+?)\s+from\s+the\s+{_SCHEDULE_WORDS}\b",
    flags=re.IGNORECASE,
)
DESCRIPTION_SET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:description|details|summary)\s*(?:(?:to|as|should\s+be|should\s+say)\s*:?|:)\s*"
    r"[\"“']?(.+?)[\"”']?\s*$",
    flags=re.IGNORECASE | re.DOTALL,
)
DESCRIPTION_ADD_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:add|append|mention|include)\s+(?:that\s+)?[\"“']?(.+?)[\"”']?\s+"
    r"(?:to|in)\s+the\s+(?:description|details)\b",
    flags=re.IGNORECASE | re.DOTALL,
)
TITLE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:rename\s+(?:it|this|the\s+event)?\s*(?:to|as)?|(?:title|name)\s+(?:to|:|as|should\s+be))"
    r"\s+[\"“']?(.+?)[\"”']?\s*$",
    flags=re.IGNORECASE,
)

END_AT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:end|ends|ending|finish|finishes|finishing|wrap\s+up)\s+(?:at\s+)?"
    r"(\d{1,2}(?::\d{2})?\s*[ap]\.?m\.?)(?![a-z])",
    flags=re.IGNORECASE,
)

_TIME_TEXT = r"\d{1,2}(?::\d{2})?\s*[ap]\.?m\.?(?![a-z])"

FROM_TO_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\bfrom\s+(\d{1,2}(?::\d{2})?(?:\s*[ap]\.?m\.?)?)\s*(?:to|until|till|-)\s*("
    + _TIME_TEXT
    + ")",
    flags=re.IGNORECASE,
)
UNTIL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:until|till)\s+(" + _TIME_TEXT + ")", flags=re.IGNORECASE
)
MERIDIEM_PATTERN: Final[re.Pattern[str]] = re.compile(r"([ap])\.?m", flags=re.IGNORECASE)
BARE_WEEKDAY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:on|to|for|until)\s+(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    flags=re.IGNORECASE,
)

LOCATION_SET_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(
        r"\b(?:location|venue|place)\s+(?:to|is|:|should\s+be)\s+([^,.!?;\n]+?)"
        + field_extractors.LOCATION_END,
        flags=re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:move|moving|relocate|relocating|switch|change)\s+"
        r"(?:it|this|the\s+\w+|everything)?\s*to\s+([^,.!?;\n]+?)"
        + field_extractors.LOCATION_END,
        flags=re.IGNORECASE,
    ),
)
LOCATION_CLEAR_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:remove|clear|delete|drop|reset)\s+(?:the\s+)?(?:location|venue)\b",
    flags=re.IGNORECASE,
)
FIELD_WORDS_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:description|details|schedule|agenda|title|budget|price|guests?|time|date)\b",
    flags=re.IGNORECASE,
)
"""A location candidate naming another event field is not a place."""

GUEST_EDIT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:guests?|guest\s+count|attendees|headcount|people|participants)\b"
    r"[^\d$]{0,20}?\b(?:to|:|is|of)\s+(\d{1,9})\b",
    flags=re.IGNORECASE,
)
BUDGET_EDIT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:budget|spending)\b[^\d$]{0,20}?\$?\s*"
    r"(\d{1,3}(?:,\d{3}){1,4}|\d{1,12}(?:\.\d{1,2})?)(?![\d,]?\d)",
    flags=re.IGNORECASE,
)
PRICE_EDIT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:price|tickets?|fee|admission|cost)\b[^\d$]{0,20}?\$\s*"
    r"(\d{1,3}(?:,\d{3}){1,4}|\d{1,12})(?![\d,]?\d)"
    r"|\b(?:price|tickets?|fee|admission|cost)\s+(?:to|is|:)\s+(\d{1,12})\b",
    flags=re.IGNORECASE,
)
MAKE_FREE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:make\s+(?:it|the\s+event|tickets?|admission)\s+free|free\s+(?:entry|admission|event)"
    r"|(?:price|tickets?|admission)\s+(?:to\s+)?free)\b",
    flags=re.IGNORECASE,
)


def _keywords(*words: str) -> re.Pattern[str]:
    return re.compile(rf"\b(?:{'|'.join(words)})\b", flags=re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class CategoryRule:
    """One row of the category table."""

    category: EditCategory
    keywords: re.Pattern[str]
    default_fields: tuple[EditField, ...]


CATEGORY_RULES: Final[tuple[CategoryRule, ...]] = (
    CategoryRule(
        EditCategory.TIMING,
        _keywords(
            "time", "times", "date", r"reschedul\w*", r"postpon\w*", "earlier",
            "later", r"start\w*", "begin", "end", "ends", r"finish\w*", "when",
        ),
        (EditField.DATE, EditField.TIME),
    ),
    CategoryRule(
        EditCategory.LOCATION,
        _keywords("location", "venue", "place", "address", "where", r"relocat\w*"),
        (EditField.LOCATION,),
    ),
    CategoryRule(
        EditCategory.DESCRIPTION,
        _keywords("description", "details", "about", "summary"),
        (EditField.DESCRIPTION,),
    ),
    CategoryRule(
        EditCategory.SCHEDULE,
        _keywords("schedule", "agenda", r"program\w*", "itinerary", r"activit\w*"),
        (EditField.SCHEDULE,),
    ),
    CategoryRule(
        EditCategory.TITLE,
        _keywords("title", "rename", "name"),
        (EditField.TITLE,),
    ),
    CategoryRule(
        EditCategory.GUESTS,
        _keywords("guests?", "attendees", "people", "capacity", "headcount"),
        (EditField.EXPECTED_GUESTS,),
    ),
    CategoryRule(
        EditCategory.BUDGET,
        _keywords("budget", "spending"),
        (EditField.BUDGET,),
    ),
    CategoryRule(
        EditCategory.PRICE,
        _keywords("price", r"tickets?", "fee", "admission", "cost", "free"),
        (EditField.PRICE,),
    ),
)
"""Ordered category table; earlier rows are listed first in intents."""

CLARIFICATION_MENU: Final[str] = (
    "What would you like to change? I can update the date or time, location, "
    "description, schedule, title, guest count, budget or price. For example: "
    '"Move it to 8pm" or "Change the venue to Central Park".'
)


@dataclass(frozen=True, slots=True)
class TimingChange:
    new_date: date | None = None
    start: str | None = None
    end: str | None = None
    duration_hours: int | None = None

    @property
    def stated(self) -> bool:
        return any(
            value is not None
            for value in (self.new_date, self.start, self.end, self.duration_hours)
        )


@dataclass(frozen=True, slots=True)
class ScheduleChange:
    action: str
    title: str
    time: str | None = None


@dataclass(slots=True)
class EditValues:
    """Concrete values stated in an edit request."""

    timing: TimingChange = field(default_factory=TimingChange)
    location: str | None = None
    address: str | None = None
    clear_location: bool = False
    description: str | None = None
    description_append: bool = False
    schedule: ScheduleChange | None = None
    title: str | None = None
    guests: int | None = None
    capacity: int | None = None
    budget: float | None = None
    price: str | None = None

    def fields_for(self, category: EditCategory) -> tuple[EditField, ...]:
        """Fields of a category that carry a concrete value."""
        if category is EditCategory.TIMING:
            found: list[EditField] = []
            if self.timing.new_date is not None:
                found.append(EditField.DATE)
            if self.timing.start is not None:
                found.extend((EditField.TIME, EditField.END_TIME))
            elif self.timing.end is not None or self.timing.duration_hours is not None:
                found.append(EditField.END_TIME)
            return tuple(found)
        if category is EditCategory.LOCATION:
            found = []
            if self.location is not None or self.clear_location:
                found.append(EditField.LOCATION)
            if self.address is not None:
                found.append(EditField.ADDRESS)
            return tuple(found)
        if category is EditCategory.DESCRIPTION:
            return (EditField.DESCRIPTION,) if self.description else ()
        if category is EditCategory.SCHEDULE:
            return (EditField.SCHEDULE,) if self.schedule else ()
        if category is EditCategory.TITLE:
            return (EditField.TITLE,) if self.title else ()
        if category is EditCategory.GUESTS:
            found = []
            if self.guests is not None:
                found.append(EditField.EXPECTED_GUESTS)
            if self.capacity is not None:
                found.append(EditField.MAX_ATTENDEES)
            return tuple(found)
        if category is EditCategory.BUDGET:
            return (EditField.BUDGET,) if self.budget is not None else ()
        if category is EditCategory.PRICE:
            return (EditField.PRICE,) if self.price is not None else ()
        return ()


def _cut(text: str, match: re.Match[str]) -> str:
    return text[: match.start()] + " " + text[match.end() :]


def _upcoming_weekday(text: str, reference: date) -> date | None:
    match = BARE_WEEKDAY_PATTERN.search(text)
    if not match:
        return None
    weekday = date_resolver.WEEKDAYS[match.group(1).lower()]
    days_ahead = (weekday - reference.weekday()) % 7 or 7
    return reference + timedelta(days=days_ahead)


def parse_timing(text: str, reference: date) -> TimingChange:
    """Read date, start, end and duration statements from an edit request.

    "from 7 to 10pm" sets both ends; "end at"/"until" set the end only. Any
    other clock time ("move it to 8pm") is a new start.
    """
    start: str | None = None
    end: str | None = None
    remaining = text

    range_match = FROM_TO_PATTERN.search(remaining)
    if range_match:
        start_text, end_text = range_match.group(1), range_match.group(2)
        if not MERIDIEM_PATTERN.search(start_text):
            meridiem = MERIDIEM_PATTERN.search(end_text)
            if meridiem:
                start_text = f"{start_text}{meridiem.group(1)}m"
        start = date_resolver.parse_clock(start_text)
        end = date_resolver.parse_clock(end_text)
        remaining = _cut(remaining, range_match)

    for pattern in (END_AT_PATTERN, UNTIL_PATTERN):
        match = pattern.search(remaining)
        if match:
            end = end or date_resolver.parse_clock(match.group(1))
            remaining = _cut(remaining, match)

    new_date = date_resolver.find_date(text, reference) or _upcoming_weekday(
        text, reference
    )
    return TimingChange(
        new_date=new_date,
        start=start or date_resolver.find_time(remaining),
        end=end,
        duration_hours=date_resolver.find_duration_hours(text),
    )


def _is_new_place(candidate: str, reference: date) -> bool:
    return (
        field_extractors.is_place_candidate(candidate)
        and not FIELD_WORDS_PATTERN.search(candidate)
        and date_resolver.find_date(candidate, reference) is None
        and date_resolver.find_time(candidate) is None
    )


def parse_location(text: str, reference: date) -> tuple[str | None, bool]:
    """Return (new location, clear requested) from an edit request."""
    if LOCATION_CLEAR_PATTERN.search(text):
        return None, True

    for pattern in LOCATION_SET_PATTERNS:
        for match in pattern.finditer(text):
            candidate = match.group(1).strip()
            if _is_new_place(candidate, reference):
                return candidate, False

    candidate = field_extractors.extract_location(text)
    if candidate is not None and _is_new_place(candidate, reference):
        return candidate, False
    return None, False


def parse_schedule(text: str) -> ScheduleChange | None:
    match = SCHEDULE_ADD_PATTERN.search(text)
    if match:
        item_text = match.group(1)
        item_time = date_resolver.find_time(item_text)
        title = re.sub(
            r"\s+(?:at|from)\s+\d{1,2}(?::\d{2})?\s*(?:[ap]\.?m\.?)?\s*$",
            "",
            item_text,
            flags=re.IGNORECASE,
        ).strip()
        return ScheduleChange("add", title[:1].upper() + title[1:], item_time)

    match = SCHEDULE_REMOVE_PATTERN.search(text)
    if match:
        return ScheduleChange("remove", match.group(1).strip())
    return None


def parse_price(text: str) -> str | None:
    if MAKE_FREE_PATTERN.search(text):
        return FREE_PRICE
    match = PRICE_EDIT_PATTERN.search(text)
    if match:
        amount = field_extractors.stated_amount(match.group(1) or match.group(2))
        return f"${amount}" if amount is not None else None
    return None


def extract_edit_values(message: str, reference: date) -> EditValues:
    """Collect every concrete value stated in an edit request.

    Free-text clauses (schedule items, description and title text) are read
    first and removed, so dates or times inside them are not mistaken for a
    reschedule.
    """
    values = EditValues()
    residual = message

    schedule_match = SCHEDULE_ADD_PATTERN.search(residual) or SCHEDULE_REMOVE_PATTERN.search(
        residual
    )
    if schedule_match:
        values.schedule = parse_schedule(residual)
        residual = residual.replace(schedule_match.group(0), " ")

    description_match = DESCRIPTION_ADD_PATTERN.search(residual)
    if description_match:
        values.description = description_match.group(1).strip()
        values.description_append = True
        residual = residual.replace(description_match.group(0), " ")
    else:
        description_match = DESCRIPTION_SET_PATTERN.search(residual)
        if description_match:
            values.description = description_match.group(1).strip()
            residual = residual.replace(description_match.group(0), " ")

    title_match = TITLE_PATTERN.search(residual)
    if title_match:
        values.title = title_match.group(1).strip()
        residual = residual.replace(title_match.group(0), " ")

    values.timing = parse_timing(residual, reference)
    values.location, values.clear_location = parse_location(residual, reference)
    values.address = field_extractors.extract_address(residual)

    guest_match = GUEST_EDIT_PATTERN.search(residual)
    values.guests = (
        field_extractors.stated_count(guest_match.group(1))
        if guest_match
        else field_extractors.extract_guest_count(residual)
    )
    values.capacity = field_extractors.extract_capacity(residual)

    budget_match = BUDGET_EDIT_PATTERN.search(residual)
    if budget_match:
        budget = float(budget_match.group(1).replace(",", ""))
        values.budget = budget if budget <= MAX_STATED_AMOUNT else None
    values.price = parse_price(residual)
    return values


def clarification_question(categories: list[EditCategory]) -> str:
    """Question listing the possible interpretations of an ambiguous request."""
    if not categories:
        return CLARIFICATION_MENU
    names = [category.value for category in categories]
    options = names[0] if len(names) == 1 else ", ".join(names[:-1]) + f" or {names[-1]}"
    return (
        f"Did you want to change the {options}? "
        "Please tell me the new value, for example a time, a venue or a number."
    )


class EditIntentAnalyzer:
    """Classify edit requests against the category table.

    Categories whose concrete value can be extracted win. With no concrete
    value, a single matched category is still resolved; zero or several
    categories need a clarifying question.
    """

    def __init__(self, tz_name: str = "UTC") -> None:
        """Initialize analyzer.

        Args:
            tz_name: Timezone the default "today" is computed in
        """
        self.tz_name = tz_name

    def analyze(
        self, message: str, event: Event, today: date | None = None
    ) -> EditIntent:
        """Analyze an edit request.

        Args:
            message: Free-form edit request
            event: Event the request refers to
            today: Date relative expressions resolve against (default: today in
                the analyzer timezone)

        Returns:
            Edit intent; ``requires_clarification`` is set with a question
            when the request cannot be resolved to fields
        """
        reference = today or date_resolver.today_in_timezone(self.tz_name)
        values = extract_edit_values(message, reference)

        matched: list[EditCategory] = []
        with_value: list[EditCategory] = []
        for rule in CATEGORY_RULES:
            has_value = bool(values.fields_for(rule.category))
            if has_value:
                with_value.append(rule.category)
            if has_value or rule.keywords.search(message):
                matched.append(rule.category)

        if with_value:
            fields = [f for c in with_value for f in values.fields_for(c)]
            intent = EditIntent(message=message, fields=fields, categories=with_value)
        elif len(matched) == 1:
            rule = next(r for r in CATEGORY_RULES if r.category is matched[0])
            intent = EditIntent(
                message=message, fields=list(rule.default_fields), categories=matched
            )
        else:
            intent = EditIntent(
                message=message,
                categories=matched,
                requires_clarification=True,
                clarification_question=clarification_question(matched),
            )

        logger.info(
            "edit_intent_analyzed",
            event_id=event.id,
            categories=[c.name.lower() for c in intent.categories],
            fields=[f.value for f in intent.fields],
            requires_clarification=intent.requires_clarification,
        )
        return intent
