"""Extract an event from free-form text.

Prints the assistant summary and the extracted event document. With
``--save`` the draft is stored as an AI-generated event.

Usage:
    python scripts/extract_event.py "Birthday party for Sam next Saturday at 7pm"
    python scripts/extract_event.py --no-llm --save --user-id u1 "Team sync tomorrow"
"""

import argparse
import json
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from event_assistant.adapters.llm_client import create_llm_client
from event_assistant.adapters.store_factory import (
    create_conversation_log,
    create_event_store,
)
from event_assistant.config.logging_config import get_logger, setup_logging
from event_assistant.config.settings import get_settings
from event_assistant.domain.exceptions import EventAssistantError
from event_assistant.domain.models import ChatMessage
from event_assistant.use_cases.extract_event import ExtractionOrchestrator
from event_assistant.use_cases.save_event import save_ai_generated_event

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract an event from text")
    parser.add_argument("text", help="Free-form event description")
    parser.add_argument(
        "--history-file",
        type=Path,
        help="JSON file with earlier turns: [{\"role\": ..., \"content\": ...}]",
    )
    parser.add_argument(
        "--no-llm",
        action="store_true",
        help="Skip the language model and use the heuristic extractor only",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Store the extracted event",
    )
    parser.add_argument(
        "--user-id",
        default="cli",
        help="Creating user stored with the event (with --save)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs in JSON format",
    )
    return parser.parse_args(argv)


def load_history(path: Path | None) -> list[ChatMessage]:
    if path is None:
        return []
    raw = json.loads(path.read_text(encoding="utf-8"))
    return [ChatMessage.model_validate(item) for item in raw]


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level, json_logs=args.json_logs or settings.log_json)

    llm_client = None if args.no_llm else create_llm_client(settings)
    try:
        history = load_history(args.history_file)
        conversation_log = create_conversation_log(settings)
        with ThreadPoolExecutor(max_workers=1) as log_executor:
            orchestrator = ExtractionOrchestrator.from_settings(
                settings, llm_client, conversation_log, log_executor
            )
            result = orchestrator.extract(args.text, history)

        print(result.ai_message)
        print()
        print(json.dumps(result.event_data.to_document(), indent=2, ensure_ascii=False))

        if args.save:
            store = create_event_store(settings)
            event_id = save_ai_generated_event(store, result.event_data, args.user_id)
            print(f"\nSaved event {event_id}")
    except (OSError, ValueError) as e:
        logger.error("extract_cli_input_failed", error=str(e))
        return 2
    except EventAssistantError as e:
        logger.error("extract_cli_failed", error=str(e), error_type=type(e).__name__)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
