"""Tests for fuzzy event lookup."""

from datetime import date

from event_assistant.adapters.sqlite_store import SQLiteEventStore
from event_assistant.domain.models import Event
from event_assistant.services.event_search import find_event_by_query, score_event
from event_assistant.services.heuristic_extractor import HeuristicExtractor


def _add(store: SQLiteEventStore, text: str) -> Event:
    draft = HeuristicExtractor().extract(text, date(2026, 10, 18))
    return store.get(store.create(draft.to_document(), created_by="user-1"))


def test_best_match_wins(store: SQLiteEventStore, stored_event: Event) -> None:
    meeting = _add(store, "Team meeting at Riverside Office tomorrow at 10am")
    events = store.list_events()

    assert find_event_by_query("lakeview birthday", events) == stored_event
    assert find_event_by_query("riverside meeting", events) == meeting


def test_no_match_below_threshold(stored_event: Event) -> None:
    assert find_event_by_query("quarterly tax review", [stored_event]) is None
    assert find_event_by_query("lakeview", [stored_event], min_score=101) is None


def test_blank_query(stored_event: Event) -> None:
    assert find_event_by_query("   ", [stored_event]) is None
    assert find_event_by_query("lakeview", []) is None


def test_score_is_case_insensitive(stored_event: Event) -> None:
    assert score_event("LAKEVIEW HALL", stored_event) == 100
