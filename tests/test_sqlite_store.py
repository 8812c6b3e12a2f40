"""Tests for the SQLite event store and conversation log."""

import sqlite3

import pytest

from event_assistant.adapters.sqlite_store import SQLiteConversationLog, SQLiteEventStore
from event_assistant.adapters.store_factory import (
    create_conversation_log,
    create_event_store,
)
from event_assistant.config.settings import Settings
from event_assistant.domain.exceptions import (
    ConcurrentModificationError,
    EventNotFoundError,
    PersistenceError,
)
from event_assistant.domain.models import EventDraft


def test_create_and_get_round_trip(
    store: SQLiteEventStore, scenario_draft: EventDraft
) -> None:
    event_id = store.create(scenario_draft.to_document(), created_by="user-1")
    event = store.get(event_id)

    assert event.id == event_id
    assert event.created_by == "user-1"
    assert event.created_at is not None
    assert EventDraft.model_validate(event.to_document()) == scenario_draft


def test_update_merges_fields(store: SQLiteEventStore, scenario_draft: EventDraft) -> None:
    event_id = store.create(scenario_draft.to_document(), created_by="user-1")
    store.update(event_id, {"location": "Central Park", "updatedBy": "user-2"})

    event = store.get(event_id)
    assert event.location == "Central Park"
    assert event.updated_by == "user-2"
    assert event.title == scenario_draft.title


def test_missing_event(store: SQLiteEventStore) -> None:
    with pytest.raises(EventNotFoundError):
        store.get("nope")
    with pytest.raises(EventNotFoundError):
        store.update("nope", {"title": "x"})


def test_update_rejects_moved_expected_values(
    store: SQLiteEventStore, scenario_draft: EventDraft
) -> None:
    event_id = store.create(scenario_draft.to_document(), created_by="user-1")

    with pytest.raises(ConcurrentModificationError) as exc_info:
        store.update(
            event_id,
            {"time": "20:00"},
            expected={"time": "18:00", "location": scenario_draft.location},
        )

    assert exc_info.value.stale_fields == ["time"]
    assert store.get(event_id).time == scenario_draft.time


def test_update_with_matching_expected_values(
    store: SQLiteEventStore, scenario_draft: EventDraft
) -> None:
    event_id = store.create(scenario_draft.to_document(), created_by="user-1")

    store.update(event_id, {"time": "20:00"}, expected={"time": scenario_draft.time})

    assert store.get(event_id).time == "20:00"


def test_list_events_newest_first(
    store: SQLiteEventStore, scenario_draft: EventDraft
) -> None:
    first = store.create(scenario_draft.to_document(), created_by="user-1")
    second = store.create(
        {**scenario_draft.to_document(), "title": "Second"}, created_by="user-1"
    )

    ids = [event.id for event in store.list_events()]
    assert set(ids) == {first, second}
    assert len(ids) == 2


def test_corrupt_document_is_a_persistence_error(
    store: SQLiteEventStore, settings: Settings
) -> None:
    conn = sqlite3.connect(settings.db_path)
    conn.execute(
        "INSERT INTO events (id, document, created_by, created_at, updated_at) "
        "VALUES ('bad', '{\"title\": \"\"}', 'x', 'now', 'now')"
    )
    conn.commit()
    conn.close()

    with pytest.raises(PersistenceError):
        store.get("bad")


def test_conversation_log(settings: Settings) -> None:
    log = SQLiteConversationLog(db_path=settings.db_path)
    log.append("Party tomorrow", "I've extracted the following event details:")
    log.append("Lunch", "I've extracted the following event details:")
    assert log.count() == 2


def test_factories(settings: Settings) -> None:
    assert isinstance(create_event_store(settings), SQLiteEventStore)
    assert isinstance(create_conversation_log(settings), SQLiteConversationLog)
