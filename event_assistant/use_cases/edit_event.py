"""Edit event use case.

An edit runs as an explicit session value: ``start`` takes a snapshot of the
event and analyzes the request, ``apply`` consumes the proposal exactly once,
``cancel`` discards it. No state is kept between calls outside the session.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

import pytz

from event_assistant.config.logging_config import get_logger
from event_assistant.domain.exceptions import (
    AmbiguousEditRequestError,
    EventNotFoundError,
    ValidationError,
)
from event_assistant.domain.models import AppliedResult, EditIntent, EditProposal, Event
from event_assistant.domain.protocols import EventStoreProtocol
from event_assistant.observability.tracing import correlation_scope
from event_assistant.services.edit_intent import (
    EditIntentAnalyzer,
    clarification_question,
)
from event_assistant.services.event_search import find_event_by_query
from event_assistant.services.proposal_generator import ProposalGenerator
from event_assistant.use_cases.apply_changes import ChangeApplier

if TYPE_CHECKING:
    from event_assistant.config.settings import Settings

logger = get_logger(__name__)


class EditStatus(str, Enum):
    """Lifecycle of an edit session."""

    PROPOSED = "proposed"
    NEEDS_CLARIFICATION = "needs_clarification"
    APPLIED = "applied"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class EditSession:
    """One edit request against an event snapshot."""

    event_id: str
    snapshot: Event
    message: str
    intent: EditIntent
    status: EditStatus
    proposal: EditProposal | None = None
    question: str | None = None
    result: AppliedResult | None = None


class EditWorkflow:
    """Runs edit sessions: analyze, propose, then apply or cancel."""

    def __init__(
        self,
        store: EventStoreProtocol,
        analyzer: EditIntentAnalyzer | None = None,
        generator: ProposalGenerator | None = None,
        applier: ChangeApplier | None = None,
        *,
        search_min_score: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize workflow.

        Args:
            store: Event store snapshots are read from and changes written to
            analyzer: Edit intent analyzer
            generator: Proposal generator
            applier: Change applier (defaults to one over ``store``)
            search_min_score: Minimum score for ``start_by_query`` matches
            clock: Returns the current time (override in tests)
        """
        self.store = store
        self.analyzer = analyzer or EditIntentAnalyzer()
        self.generator = generator or ProposalGenerator()
        self.applier = applier or ChangeApplier(store)
        self.search_min_score = search_min_score
        self._clock = clock or (lambda: datetime.now(tz=pytz.UTC))

    @classmethod
    def from_settings(
        cls, settings: "Settings", store: EventStoreProtocol
    ) -> "EditWorkflow":
        generator = ProposalGenerator.from_settings(settings)
        return cls(
            store,
            analyzer=EditIntentAnalyzer(settings.tz_default),
            generator=generator,
            search_min_score=settings.search_min_score,
            clock=lambda: datetime.now(tz=generator.tz),
        )

    def start(self, event_id: str, message: str) -> EditSession:
        """Open an edit session for an event.

        Returns:
            Session in status ``proposed`` with a non-empty proposal, or in
            status ``needs_clarification`` with a question for the user

        Raises:
            EventNotFoundError: If the event does not exist
            PersistenceError: On store failures
        """
        with correlation_scope("edit_event", event_id=event_id):
            snapshot = self.store.get(event_id)
            now = self._clock()
            intent = self.analyzer.analyze(message, snapshot, today=now.date())

            try:
                proposal = self.generator.generate(intent, snapshot, now=now)
            except AmbiguousEditRequestError as e:
                return self._clarify(event_id, snapshot, message, intent, e.question)

            if not proposal.changes:
                return self._clarify(
                    event_id,
                    snapshot,
                    message,
                    intent,
                    clarification_question(intent.categories),
                )

            return EditSession(
                event_id=event_id,
                snapshot=snapshot,
                message=message,
                intent=intent,
                status=EditStatus.PROPOSED,
                proposal=proposal,
            )

    def start_by_query(self, query: str, message: str) -> EditSession:
        """Open an edit session for the event best matching a free-form query.

        Raises:
            EventNotFoundError: If no event matches the query
        """
        events = self.store.list_events()
        if self.search_min_score is None:
            event = find_event_by_query(query, events)
        else:
            event = find_event_by_query(query, events, self.search_min_score)
        if event is None:
            raise EventNotFoundError(query)
        return self.start(event.id, message)

    def apply(self, session: EditSession, actor_id: str) -> AppliedResult:
        """Apply the session's proposal; a session can be applied only once.

        Raises:
            ValidationError: If the session is not in status ``proposed``
            ConcurrentModificationError: If the event changed since ``start``;
                start a new session against the fresh event
        """
        if session.status is not EditStatus.PROPOSED or session.proposal is None:
            raise ValidationError(
                f"Edit session for event {session.event_id} is "
                f"{session.status.value} and cannot be applied"
            )

        result = self.applier.apply(session.event_id, session.proposal, actor_id)
        session.status = EditStatus.APPLIED
        session.result = result
        return result

    def cancel(self, session: EditSession) -> EditSession:
        """Discard a session that has not been applied."""
        if session.status is EditStatus.APPLIED:
            raise ValidationError(
                f"Edit session for event {session.event_id} was already applied"
            )
        session.status = EditStatus.CANCELLED
        logger.info("edit_cancelled", event_id=session.event_id)
        return session

    @staticmethod
    def _clarify(
        event_id: str,
        snapshot: Event,
        message: str,
        intent: EditIntent,
        question: str,
    ) -> EditSession:
        logger.info("edit_needs_clarification", event_id=event_id)
        return EditSession(
            event_id=event_id,
            snapshot=snapshot,
            message=message,
            intent=intent,
            status=EditStatus.NEEDS_CLARIFICATION,
            question=question,
        )
