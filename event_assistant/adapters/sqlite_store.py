"""SQLite adapters for the event document store and conversation log.

Implements EventStoreProtocol and ConversationLogProtocol. Events are stored
as camelCase JSON documents keyed by id.
"""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytz
from pydantic import ValidationError as PydanticValidationError

from event_assistant.config.logging_config import get_logger
from event_assistant.domain.exceptions import (
    ConcurrentModificationError,
    EventNotFoundError,
    PersistenceError,
)
from event_assistant.domain.models import Event

logger = get_logger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(document: dict[str, Any]) -> str:
    return json.dumps(document, default=_json_default, ensure_ascii=False)


class _SQLiteBase:
    def __init__(self, db_path: str) -> None:
        """Initialize adapter and ensure schema.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._create_schema()

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _create_schema(self) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                    id TEXT PRIMARY KEY,
                    document TEXT NOT NULL,
                    created_by TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS ai_conversations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_message TEXT NOT NULL,
                    ai_response TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to create schema: {e}") from e
        finally:
            conn.close()


class SQLiteEventStore(_SQLiteBase):
    """SQLite-backed event document store."""

    def get(self, event_id: str) -> Event:
        """Fetch the live event.

        Raises:
            EventNotFoundError: If no event has this id
            PersistenceError: On storage errors or an unreadable document
        """
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT document FROM events WHERE id = ?", (event_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to get event {event_id}: {e}") from e
        finally:
            conn.close()

        if row is None:
            raise EventNotFoundError(event_id)
        return self._row_to_event(event_id, row["document"])

    def update(
        self,
        event_id: str,
        partial_fields: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> None:
        """Merge camelCase fields into the stored document.

        When ``expected`` is given, each of its fields must still hold that
        value in the stored event; the comparison and the write happen in
        one write transaction.

        Raises:
            ConcurrentModificationError: If an expected value no longer matches
            EventNotFoundError: If no event has this id
            PersistenceError: On storage errors
        """
        now = datetime.now(tz=pytz.UTC).isoformat()
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT document FROM events WHERE id = ?", (event_id,)
            ).fetchone()
            if row is None:
                conn.rollback()
                raise EventNotFoundError(event_id)

            if expected:
                try:
                    live = self._row_to_event(event_id, row["document"]).to_document()
                except PersistenceError:
                    conn.rollback()
                    raise
                stale = [
                    field
                    for field, value in expected.items()
                    if live.get(field) != value
                ]
                if stale:
                    conn.rollback()
                    raise ConcurrentModificationError(event_id, stale)

            document = json.loads(row["document"])
            document.update(json.loads(_dumps(partial_fields)))
            conn.execute(
                "UPDATE events SET document = ?, updated_at = ? WHERE id = ?",
                (_dumps(document), now, event_id),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Failed to update event {event_id}: {e}") from e
        finally:
            conn.close()

        logger.info(
            "event_updated", event_id=event_id, fields=sorted(partial_fields.keys())
        )

    def create(self, document: dict[str, Any], created_by: str) -> str:
        """Create a new event document and return its id.

        ``createdBy``, ``createdAt`` and ``updatedAt`` are set by the store.
        """
        event_id = uuid4().hex
        now = datetime.now(tz=pytz.UTC).isoformat()
        stored = {
            **document,
            "createdBy": created_by,
            "createdAt": now,
            "updatedAt": now,
        }
        stored.pop("id", None)

        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT INTO events (id, document, created_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (event_id, _dumps(stored), created_by, now, now),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to create event: {e}") from e
        finally:
            conn.close()

        logger.info("event_created", event_id=event_id, created_by=created_by)
        return event_id

    def list_events(self) -> list[Event]:
        """List all stored events, most recently created first."""
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT id, document FROM events ORDER BY created_at DESC, id"
            ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to list events: {e}") from e
        finally:
            conn.close()

        return [self._row_to_event(row["id"], row["document"]) for row in rows]

    @staticmethod
    def _row_to_event(event_id: str, raw_document: str) -> Event:
        try:
            return Event.model_validate({**json.loads(raw_document), "id": event_id})
        except (json.JSONDecodeError, PydanticValidationError) as e:
            raise PersistenceError(f"Stored event {event_id} is invalid: {e}") from e


class SQLiteConversationLog(_SQLiteBase):
    """SQLite-backed assistant conversation log."""

    def append(self, user_text: str, ai_text: str) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT INTO ai_conversations (user_message, ai_response, created_at)
                VALUES (?, ?, ?)
                """,
                (user_text, ai_text, datetime.now(tz=pytz.UTC).isoformat()),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to log conversation: {e}") from e
        finally:
            conn.close()

    def count(self) -> int:
        """Number of logged exchanges."""
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT COUNT(*) AS n FROM ai_conversations").fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to count conversations: {e}") from e
        finally:
            conn.close()
        return int(row["n"])
