"""Apply edit proposal use case.

Merges an accepted proposal into the stored event with optimistic
concurrency: every change records the value it was computed against, and
the apply fails if any of those values moved in the meantime. The store
repeats that check inside its write transaction, so two interleaved applies
cannot both succeed.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytz
from pydantic import ValidationError as PydanticValidationError

from event_assistant.config.logging_config import get_logger
from event_assistant.domain.exceptions import (
    ConcurrentModificationError,
    ValidationError,
)
from event_assistant.domain.models import AppliedResult, EditProposal, Event
from event_assistant.domain.protocols import EventStoreProtocol
from event_assistant.observability.tracing import correlation_scope

logger = get_logger(__name__)


def stale_fields(proposal: EditProposal, live: Event) -> list[str]:
    """Fields whose current value in the proposal no longer matches the live event."""
    document = live.to_document()
    return [
        change.field.value
        for change in proposal.changes
        if document.get(change.field.value) != change.current_value
    ]


class ChangeApplier:
    """Applies edit proposals to the event store."""

    def __init__(
        self,
        store: EventStoreProtocol,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize applier.

        Args:
            store: Event store the proposal is written to
            clock: Returns the current UTC time (override in tests)
        """
        self.store = store
        self._clock = clock or (lambda: datetime.now(tz=pytz.UTC))

    def apply(
        self, event_id: str, proposal: EditProposal, actor_id: str
    ) -> AppliedResult:
        """Apply a proposal to the live event.

        Args:
            event_id: Id of the event the proposal was computed for
            proposal: Accepted proposal
            actor_id: User applying the change (stored as ``updatedBy``)

        Returns:
            Applied fields and the proposal summary

        Raises:
            ConcurrentModificationError: If the event changed since the proposal
            ValidationError: If the merged event would be invalid
            EventNotFoundError: If the event no longer exists
            PersistenceError: On store failures
        """
        with correlation_scope("apply_changes", event_id=event_id):
            live = self.store.get(event_id)

            stale = stale_fields(proposal, live)
            if stale:
                logger.warning(
                    "edit_apply_conflict", event_id=event_id, stale_fields=stale
                )
                raise ConcurrentModificationError(event_id, stale)

            updated_at = self._clock()
            updates: dict[str, Any] = {
                change.field.value: change.proposed_value for change in proposal.changes
            }
            updates["updatedBy"] = actor_id
            updates["updatedAt"] = updated_at.isoformat()

            try:
                Event.model_validate({**live.to_document(), **updates})
            except PydanticValidationError as e:
                raise ValidationError(
                    f"Proposal would leave event {event_id} invalid: {e}"
                ) from e

            expected = {
                change.field.value: change.current_value for change in proposal.changes
            }
            try:
                self.store.update(event_id, updates, expected=expected)
            except ConcurrentModificationError as e:
                logger.warning(
                    "edit_apply_conflict",
                    event_id=event_id,
                    stale_fields=e.stale_fields,
                )
                raise

            applied_fields = list(proposal.changed_fields)
            logger.info(
                "edit_applied",
                event_id=event_id,
                fields=[field.value for field in applied_fields],
                updated_by=actor_id,
            )
            return AppliedResult(
                event_id=event_id,
                applied_fields=applied_fields,
                summary=proposal.summary,
                updated_by=actor_id,
                updated_at=updated_at,
            )
