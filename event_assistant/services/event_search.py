"""Fuzzy lookup of an event from a free-form reference.

Lets a user say "edit the Lakeview birthday" instead of passing an id.
"""

from rapidfuzz import fuzz

from event_assistant.config.settings import SEARCH_MIN_SCORE_DEFAULT
from event_assistant.domain.models import Event


def score_event(query: str, event: Event) -> float:
    """Best rapidfuzz similarity (0-100) of the query to the event's text fields."""
    normalized = query.lower().strip()
    scores = [
        fuzz.token_set_ratio(normalized, candidate.lower())
        for candidate in (event.title, event.location, event.description)
        if candidate
    ]
    return max(scores, default=0.0)


def find_event_by_query(
    query: str, events: list[Event], min_score: float = SEARCH_MIN_SCORE_DEFAULT
) -> Event | None:
    """Return the event that best matches the query, or None.

    Example:
        >>> find_event_by_query("lakeview birthday", store.list_events())
        Event(id='3f2a...', title='Birthday Party for Sam', ...)
    """
    if not query or not query.strip():
        return None

    best_score = 0.0
    best_event = None
    for event in events:
        score = score_event(query, event)
        if score >= min_score and score > best_score:
            best_score = score
            best_event = event
    return best_event
