"""Propose, and optionally apply, a free-form edit to a stored event.

Usage:
    python scripts/edit_event.py --event-id 3f2a... "move it to 8pm"
    python scripts/edit_event.py --query "Sam birthday" --apply "change the venue to Central Park"
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from event_assistant.adapters.store_factory import create_event_store
from event_assistant.config.logging_config import get_logger, setup_logging
from event_assistant.config.settings import get_settings
from event_assistant.domain.exceptions import (
    ConcurrentModificationError,
    EventAssistantError,
)
from event_assistant.services.summary_renderer import (
    render_clarification,
    render_edit_proposal,
)
from event_assistant.use_cases.edit_event import EditStatus, EditWorkflow

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Edit an event with a free-form request")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--event-id", help="Id of the event to edit")
    target.add_argument("--query", help="Free-form reference to the event")
    parser.add_argument("message", help="Edit request, e.g. 'move it to 8pm'")
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Apply the proposal instead of only printing it",
    )
    parser.add_argument(
        "--actor-id",
        default="cli",
        help="User recorded as updatedBy (with --apply)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs in JSON format",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level, json_logs=args.json_logs or settings.log_json)

    try:
        workflow = EditWorkflow.from_settings(settings, create_event_store(settings))
        if args.event_id:
            session = workflow.start(args.event_id, args.message)
        else:
            session = workflow.start_by_query(args.query, args.message)

        if session.status is EditStatus.NEEDS_CLARIFICATION:
            print(render_clarification(session.question or ""))
            return 3

        assert session.proposal is not None
        print(render_edit_proposal(session.proposal))

        if args.apply:
            result = workflow.apply(session, args.actor_id)
            fields = ", ".join(field.value for field in result.applied_fields)
            print(f"\nApplied to event {result.event_id}: {fields}")
    except ConcurrentModificationError as e:
        logger.error("edit_cli_conflict", event_id=e.event_id, stale_fields=e.stale_fields)
        print("The event changed in the meantime; run the edit again.")
        return 1
    except EventAssistantError as e:
        logger.error("edit_cli_failed", error=str(e), error_type=type(e).__name__)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
