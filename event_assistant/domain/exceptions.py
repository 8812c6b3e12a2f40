"""Custom exception hierarchy for the event assistant.

Following error taxonomy: retryable, non-retryable, validation, conflict.
"""


class EventAssistantError(Exception):
    """Base exception for all application errors."""

    pass


class RetryableError(EventAssistantError):
    """Errors that can be retried (network issues, temporary failures)."""

    pass


class NonRetryableError(EventAssistantError):
    """Errors that should not be retried (validation, conflicts, logic errors)."""

    pass


class ValidationError(NonRetryableError):
    """Data validation errors."""

    pass


class ModelUnavailableError(RetryableError):
    """Language model could not be reached or returned an API error."""

    pass


class ModelTimeoutError(ModelUnavailableError):
    """Language model call exceeded its timeout."""

    pass


class MalformedModelOutputError(NonRetryableError):
    """Model completion could not be parsed into an event payload."""

    pass


class AmbiguousEditRequestError(NonRetryableError):
    """Edit request needs clarification before a proposal can be generated."""

    def __init__(self, question: str) -> None:
        """Initialize with the clarification question shown to the user."""
        self.question = question
        super().__init__(question)


class ConcurrentModificationError(NonRetryableError):
    """Event changed between proposal and apply (optimistic concurrency)."""

    def __init__(self, event_id: str, stale_fields: list[str]) -> None:
        """Initialize with the event id and the fields whose values moved."""
        self.event_id = event_id
        self.stale_fields = stale_fields
        super().__init__(
            f"Event {event_id} was modified since the proposal was created "
            f"(stale fields: {', '.join(stale_fields)})"
        )


class EventNotFoundError(NonRetryableError):
    """Requested event does not exist in the store."""

    def __init__(self, event_id: str) -> None:
        """Initialize with the missing event id."""
        self.event_id = event_id
        super().__init__(f"Event not found: {event_id}")


class PersistenceError(RetryableError):
    """Database/storage errors."""

    pass
