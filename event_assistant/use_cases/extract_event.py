"""Extract event use case.

Turns free-form text into an ``EventDraft``. The language model is tried
first; every failure on that path (disabled client, API error, timeout,
malformed completion, unusable payload) degrades to the heuristic extractor,
so a complete draft is always returned.
"""

import json
from collections.abc import Callable
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import date
from typing import Any, Generic, TypeVar

from event_assistant.config.logging_config import get_logger
from event_assistant.config.settings import Settings
from event_assistant.domain.exceptions import (
    MalformedModelOutputError,
    ModelTimeoutError,
    ModelUnavailableError,
)
from event_assistant.domain.extraction_constants import (
    DEFAULT_DURATION_HOURS,
    MAX_INPUT_CHARS,
)
from event_assistant.domain.models import (
    ChatMessage,
    EventDraft,
    ExtractionResult,
    ExtractionSource,
    FallbackReason,
)
from event_assistant.domain.protocols import (
    ConversationLogProtocol,
    LanguageModelClientProtocol,
)
from event_assistant.observability.tracing import correlation_scope
from event_assistant.services import field_extractors
from event_assistant.services.date_resolver import today_in_timezone
from event_assistant.services.draft_normalizer import normalize_payload
from event_assistant.services.heuristic_extractor import (
    ExtractionDefaults,
    HeuristicExtractor,
)
from event_assistant.services.prompt_builder import build_extraction_prompt
from event_assistant.services.summary_renderer import render_extraction_message

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Result of one step on the model path: a value or a fallback reason."""

    value: T | None = None
    reason: FallbackReason | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, reason: FallbackReason, detail: str = "") -> "Outcome[T]":
        return cls(reason=reason, detail=detail)


def find_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring that parses as an object.

    Braces inside JSON strings are ignored.

    Example:
        >>> find_json_object('Sure! {"title": "Sync {weekly}"} Done.')
        '{"title": "Sync {weekly}"}'
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    candidate = text[start : index + 1]
                    try:
                        if isinstance(json.loads(candidate), dict):
                            return candidate
                    except (ValueError, RecursionError):
                        pass
                    break
        start = text.find("{", start + 1)
    return None


def parse_completion(raw: str) -> Outcome[dict[str, Any]]:
    """Parse a model completion into a JSON object.

    Tries the whole completion first, then the first embedded object.
    """
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        embedded = find_json_object(raw)
        if embedded is None:
            return Outcome.failure(
                FallbackReason.MALFORMED_OUTPUT, "no JSON object in completion"
            )
        return Outcome.success(json.loads(embedded))

    if not isinstance(parsed, dict):
        return Outcome.failure(
            FallbackReason.INVALID_PAYLOAD,
            f"completion is a JSON {type(parsed).__name__}, not an object",
        )
    return Outcome.success(parsed)


class ExtractionOrchestrator:
    """Coordinates model extraction, heuristic fallback and conversation logging."""

    def __init__(
        self,
        llm_client: LanguageModelClientProtocol | None,
        conversation_log: ConversationLogProtocol | None = None,
        heuristic: HeuristicExtractor | None = None,
        *,
        max_input_chars: int = MAX_INPUT_CHARS,
        default_duration_hours: int = DEFAULT_DURATION_HOURS,
        tz_name: str = "UTC",
        log_executor: Executor | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            llm_client: Model client, or None to use the heuristic path only
            conversation_log: Optional log every exchange is appended to
            heuristic: Heuristic extractor (default rules if omitted)
            max_input_chars: Input longer than this is truncated
            default_duration_hours: Duration used when model end times are unusable
            tz_name: Timezone that "today" is computed in
            log_executor: Runs conversation logging in the background when given
            today: Clock override returning the reference date
        """
        self.llm_client = llm_client
        self.conversation_log = conversation_log
        self.heuristic = heuristic or HeuristicExtractor()
        self.max_input_chars = max_input_chars
        self.default_duration_hours = default_duration_hours
        self.log_executor = log_executor
        self._today = today or (lambda: today_in_timezone(tz_name))

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        llm_client: LanguageModelClientProtocol | None,
        conversation_log: ConversationLogProtocol | None = None,
        log_executor: Executor | None = None,
    ) -> "ExtractionOrchestrator":
        return cls(
            llm_client,
            conversation_log,
            HeuristicExtractor(ExtractionDefaults.from_settings(settings)),
            max_input_chars=settings.max_input_chars,
            default_duration_hours=settings.default_duration_hours,
            tz_name=settings.tz_default,
            log_executor=log_executor,
        )

    def extract(
        self,
        text: str,
        history: list[ChatMessage] | None = None,
        reference_date: date | None = None,
    ) -> ExtractionResult:
        """Extract an event draft and its summary message from free-form text.

        Args:
            text: User text describing the event
            history: Earlier conversation turns passed to the model
            reference_date: Date that "today" refers to (default: today in tz)

        Returns:
            Extraction result; ``source`` tells which path produced the draft
        """
        with correlation_scope("extract_event"):
            if len(text) > self.max_input_chars:
                logger.info(
                    "extraction_input_truncated",
                    length=len(text),
                    limit=self.max_input_chars,
                )
            capped = text[: self.max_input_chars]
            reference = reference_date or self._today()

            heuristic_draft = self.heuristic.extract(capped, reference)
            outcome = self._model_draft(capped, history, reference, heuristic_draft)

            if outcome.ok and outcome.value is not None:
                result = ExtractionResult(
                    event_data=outcome.value,
                    ai_message=render_extraction_message(outcome.value),
                    source=ExtractionSource.MODEL,
                )
            else:
                logger.warning(
                    "extraction_fallback",
                    reason=outcome.reason.value if outcome.reason else None,
                    detail=outcome.detail,
                )
                result = ExtractionResult(
                    event_data=heuristic_draft,
                    ai_message=render_extraction_message(heuristic_draft),
                    source=ExtractionSource.HEURISTIC,
                    fallback_reason=outcome.reason,
                )

            logger.info(
                "event_extracted",
                source=result.source.value,
                event_type=result.event_data.type,
                event_date=result.event_data.date,
                guests=result.event_data.expected_guests,
            )
            self._log_conversation(capped, result.ai_message)
            return result

    def _model_draft(
        self,
        text: str,
        history: list[ChatMessage] | None,
        reference: date,
        fallback: EventDraft,
    ) -> Outcome[EventDraft]:
        if self.llm_client is None:
            return Outcome.failure(FallbackReason.MODEL_DISABLED)

        prompt = build_extraction_prompt(text, reference, history)
        try:
            raw = self.llm_client.prompt(prompt)
        except ModelTimeoutError as e:
            return Outcome.failure(FallbackReason.MODEL_TIMEOUT, str(e))
        except ModelUnavailableError as e:
            return Outcome.failure(FallbackReason.MODEL_UNAVAILABLE, str(e))
        except Exception as e:
            logger.warning(
                "llm_client_unexpected_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            return Outcome.failure(
                FallbackReason.MODEL_UNAVAILABLE, f"{type(e).__name__}: {e}"
            )

        parsed = parse_completion(raw)
        if not parsed.ok or parsed.value is None:
            return Outcome.failure(
                parsed.reason or FallbackReason.MALFORMED_OUTPUT, parsed.detail
            )

        try:
            draft = normalize_payload(
                parsed.value,
                fallback,
                default_duration_hours=self.default_duration_hours,
                max_attendees_for=self._max_attendees_for,
            )
        except MalformedModelOutputError as e:
            return Outcome.failure(FallbackReason.INVALID_PAYLOAD, str(e))
        return Outcome.success(draft)

    def _max_attendees_for(self, guests: int) -> int:
        defaults = self.heuristic.defaults
        return field_extractors.compute_max_attendees(
            guests, defaults.attendee_multiplier, defaults.attendee_floor
        )

    def _log_conversation(self, user_text: str, ai_text: str) -> None:
        if self.conversation_log is None:
            return
        if self.log_executor is not None:
            self.log_executor.submit(self._append_log, user_text, ai_text)
        else:
            self._append_log(user_text, ai_text)

    def _append_log(self, user_text: str, ai_text: str) -> None:
        if self.conversation_log is None:
            return
        try:
            self.conversation_log.append(user_text, ai_text)
        except Exception as e:
            logger.warning(
                "conversation_log_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
