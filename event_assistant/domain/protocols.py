"""Protocol definitions for dependency inversion.

These abstract interfaces define contracts that adapters must implement.
"""

from typing import Any, Protocol

from event_assistant.domain.models import Event


class LanguageModelClientProtocol(Protocol):
    """Protocol for the generative model used by extraction."""

    def prompt(self, prompt_text: str) -> str:
        """Send a prompt and return the raw completion text.

        Args:
            prompt_text: Fully rendered user prompt

        Returns:
            Raw completion text (expected to contain a JSON object)

        Raises:
            ModelUnavailableError: On API/connection errors
            ModelTimeoutError: When the call exceeds its timeout
        """
        ...


class EventStoreProtocol(Protocol):
    """Protocol for the persisted event document store."""

    def get(self, event_id: str) -> Event:
        """Fetch the live event.

        Args:
            event_id: Event document id

        Returns:
            Persisted event

        Raises:
            EventNotFoundError: If no event has this id
            PersistenceError: On storage errors
        """
        ...

    def update(
        self,
        event_id: str,
        partial_fields: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> None:
        """Merge camelCase fields into the stored document.

        Args:
            event_id: Event document id
            partial_fields: Fields to overwrite, keyed by document name
            expected: Values the stored fields must still hold, checked
                atomically with the write

        Raises:
            ConcurrentModificationError: If an expected value no longer matches
            EventNotFoundError: If no event has this id
            PersistenceError: On storage errors
        """
        ...

    def create(self, document: dict[str, Any], created_by: str) -> str:
        """Create a new event document.

        Args:
            document: camelCase event document
            created_by: Actor id recorded as the creator

        Returns:
            New event id

        Raises:
            PersistenceError: On storage errors
        """
        ...

    def list_events(self) -> list[Event]:
        """List all stored events, most recently created first."""
        ...


class ConversationLogProtocol(Protocol):
    """Protocol for the assistant conversation log."""

    def append(self, user_text: str, ai_text: str) -> None:
        """Append one exchange.

        Raises:
            PersistenceError: On storage errors
        """
        ...
