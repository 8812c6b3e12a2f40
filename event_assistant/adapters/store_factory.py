"""Factory for creating the event store and conversation log."""

from event_assistant.adapters.sqlite_store import SQLiteConversationLog, SQLiteEventStore
from event_assistant.config.logging_config import get_logger
from event_assistant.config.settings import Settings
from event_assistant.domain.protocols import ConversationLogProtocol, EventStoreProtocol

logger = get_logger(__name__)


def create_event_store(settings: Settings) -> EventStoreProtocol:
    """Create the event store configured in settings.

    Raises:
        PersistenceError: If the database schema cannot be created
    """
    logger.info("event_store_sqlite_selected", path=settings.db_path)
    return SQLiteEventStore(db_path=settings.db_path)


def create_conversation_log(settings: Settings) -> ConversationLogProtocol:
    """Create the conversation log; it shares the event database file."""
    return SQLiteConversationLog(db_path=settings.db_path)
