"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Generator
from datetime import date
from pathlib import Path

import pytest

from event_assistant.adapters.sqlite_store import SQLiteEventStore
from event_assistant.config.settings import Settings
from event_assistant.domain.models import Event, EventDraft
from event_assistant.services.heuristic_extractor import HeuristicExtractor

SCENARIO_TEXT = (
    "Birthday party for Sam next Saturday at 7pm at Lakeview Hall "
    "for 25 guests, budget $500"
)


@pytest.fixture(autouse=True)
def project_root_cwd(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test from the project root so config/ paths resolve."""

    monkeypatch.chdir(Path(__file__).parent.parent)


@pytest.fixture
def settings(tmp_path_factory: pytest.TempPathFactory) -> Settings:
    """Settings with a temporary database and the model path disabled."""

    base_settings = Settings(openai_api_key=None)
    db_path = tmp_path_factory.mktemp("db") / "test.sqlite"
    return base_settings.model_copy(
        update={"db_path": str(db_path), "llm_enabled": False}
    )


@pytest.fixture
def store(settings: Settings) -> Generator[SQLiteEventStore, None, None]:
    """Provide an event store on a throwaway database."""

    event_store = SQLiteEventStore(db_path=settings.db_path)
    try:
        yield event_store
    finally:
        db_path = Path(settings.db_path)
        if db_path.exists():
            try:
                db_path.unlink()
            except OSError:
                pass


@pytest.fixture
def reference_date() -> date:
    """Reference date for testing: Sunday, Oct 18, 2026."""
    return date(2026, 10, 18)


@pytest.fixture
def scenario_draft(reference_date: date) -> EventDraft:
    """Heuristic draft for the birthday party scenario."""
    return HeuristicExtractor().extract(SCENARIO_TEXT, reference_date)


@pytest.fixture
def stored_event(store: SQLiteEventStore, scenario_draft: EventDraft) -> Event:
    """Scenario draft persisted in the store."""
    event_id = store.create(scenario_draft.to_document(), created_by="user-1")
    return store.get(event_id)
