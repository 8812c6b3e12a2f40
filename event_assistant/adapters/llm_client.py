"""LLM client adapter for event extraction.

Implements LanguageModelClientProtocol with OpenAI integration.
"""

import hashlib
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, cast

import pytz
import yaml
from openai import APIError, APITimeoutError, OpenAI
from openai import RateLimitError as OpenAIRateLimitError

from event_assistant.config.logging_config import get_logger
from event_assistant.domain.exceptions import ModelTimeoutError, ModelUnavailableError
from event_assistant.domain.models import LLMCallMetadata

if TYPE_CHECKING:
    from event_assistant.config.settings import Settings

# Token cost per 1M tokens
TOKEN_COSTS: Final[dict[str, dict[str, float]]] = {
    "gpt-4o-mini": {"input": 0.150, "output": 0.600},
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4.1-mini": {"input": 0.40, "output": 1.60},
    "gpt-3.5-turbo": {"input": 0.50, "output": 1.50},
}

DEFAULT_PROMPT_PATH: Final[Path] = Path("config/prompts/extraction.yaml")

logger = cast(Any, get_logger(__name__))


@dataclass(frozen=True)
class PromptFileData:
    """Loaded prompt payload with metadata."""

    content: str
    version: str | None
    checksum: str
    size_bytes: int
    path: Path


@dataclass
class _PromptCacheEntry:
    """Cache entry storing metadata for a prompt file."""

    mtime: float
    data: PromptFileData


_PROMPT_CACHE: dict[Path, _PromptCacheEntry] = {}


def checksum(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def load_prompt_from_file(file_path: str) -> PromptFileData:
    """Load a system prompt from a file with caching and metadata.

    YAML files must be a mapping with ``version`` and ``system`` strings;
    any other file is read as plain text.

    Args:
        file_path: Path to the prompt file

    Returns:
        Prompt payload metadata

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If YAML prompt file has invalid structure
    """

    raw_path = Path(file_path).expanduser()
    path = raw_path if raw_path.is_absolute() else (Path.cwd() / raw_path).resolve()

    if not path.exists():
        repo_root = Path(__file__).resolve().parents[2]
        alt_path = (repo_root / raw_path).resolve()
        if alt_path.exists():
            path = alt_path
        else:
            raise FileNotFoundError(f"Prompt file not found: {file_path}")

    stat_result = path.stat()
    cache_entry = _PROMPT_CACHE.get(path)
    if cache_entry and cache_entry.mtime == stat_result.st_mtime:
        return cache_entry.data

    if path.suffix.lower() in {".yaml", ".yml"}:
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(parsed, dict):
            raise ValueError(f"Prompt YAML must be a mapping: {path}")

        version = parsed.get("version")
        if not isinstance(version, str):
            raise ValueError(f"Prompt YAML missing 'version' string: {path}")

        system_prompt = parsed.get("system")
        if not isinstance(system_prompt, str):
            raise ValueError(f"Prompt YAML missing 'system' string: {path}")
    else:
        system_prompt = path.read_text(encoding="utf-8")
        version = None

    prompt_data = PromptFileData(
        content=system_prompt,
        version=version,
        checksum=checksum(system_prompt),
        size_bytes=len(system_prompt.encode("utf-8")),
        path=path,
    )

    _PROMPT_CACHE[path] = _PromptCacheEntry(
        mtime=stat_result.st_mtime, data=prompt_data
    )
    return prompt_data


class LLMClient:
    """OpenAI chat completion client returning raw JSON-mode completions.

    Prompts and completions are never logged; only checksums, sizes, token
    counts and latency are.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        timeout: int = 30,
        prompt_file: str | None = None,
        system_prompt: str | None = None,
    ) -> None:
        """Initialize LLM client.

        Args:
            api_key: OpenAI API key
            model: Model name
            temperature: Sampling temperature
            timeout: Request timeout in seconds
            prompt_file: Path to the system prompt file
            system_prompt: Inline system prompt (takes precedence over prompt_file)
        """
        self.client = OpenAI(api_key=api_key, timeout=timeout)
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.prompt_version: str | None = None
        prompt_path: Path | None = None

        if system_prompt is not None:
            self.system_prompt = system_prompt
        else:
            prompt_data = load_prompt_from_file(prompt_file or str(DEFAULT_PROMPT_PATH))
            self.system_prompt = prompt_data.content
            self.prompt_version = prompt_data.version
            prompt_path = prompt_data.path

        self._system_prompt_hash = checksum(self.system_prompt)
        self._last_call_metadata: LLMCallMetadata | None = None

        logger.info(
            "llm_system_prompt_ready",
            prompt_hash=self._system_prompt_hash,
            prompt_version=self.prompt_version,
            prompt_path=str(prompt_path) if prompt_path else "<inline>",
            prompt_size_bytes=len(self.system_prompt.encode("utf-8")),
        )

    def prompt(self, prompt_text: str) -> str:
        """Send one prompt and return the raw completion text.

        Args:
            prompt_text: Rendered user prompt

        Returns:
            Completion text; empty string when the model returned no content

        Raises:
            ModelTimeoutError: When the request exceeds the client timeout
            ModelUnavailableError: On rate limits and other API errors
        """
        start_time = time.time()
        logger.info(
            "llm_request_started",
            model=self.model,
            prompt_hash=checksum(prompt_text),
            prompt_size_bytes=len(prompt_text.encode("utf-8")),
        )

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": prompt_text},
                ],
                temperature=self.temperature,
                response_format={"type": "json_object"},
            )
        except APITimeoutError as e:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.warning("llm_request_timeout", latency_ms=latency_ms, error=str(e))
            raise ModelTimeoutError(
                f"OpenAI request timed out after {self.timeout}s"
            ) from e
        except OpenAIRateLimitError as e:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.warning("llm_rate_limited", latency_ms=latency_ms, error=str(e))
            raise ModelUnavailableError(f"Rate limit exceeded: {e}") from e
        except APIError as e:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.warning("llm_api_error", latency_ms=latency_ms, error=str(e))
            raise ModelUnavailableError(f"OpenAI API error: {e}") from e

        latency_ms = int((time.time() - start_time) * 1000)
        if not response.choices:
            logger.warning("llm_empty_response", latency_ms=latency_ms)
            raise ModelUnavailableError("OpenAI returned no choices")
        content = response.choices[0].message.content or ""

        tokens_in = response.usage.prompt_tokens if response.usage else 0
        tokens_out = response.usage.completion_tokens if response.usage else 0
        cost_usd = self._calculate_cost(tokens_in, tokens_out)

        self._last_call_metadata = LLMCallMetadata(
            prompt_hash=self._system_prompt_hash,
            model=self.model,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            cost_usd=cost_usd,
            latency_ms=latency_ms,
            ts=datetime.now(tz=pytz.UTC),
        )

        logger.info(
            "llm_request_completed",
            model=self.model,
            latency_ms=latency_ms,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            cost_usd=round(cost_usd, 6),
            response_hash=checksum(content),
            response_size_bytes=len(content.encode("utf-8")),
        )
        return content

    def get_call_metadata(self) -> LLMCallMetadata:
        """Get metadata for last LLM call.

        Raises:
            RuntimeError: If no call has been made
        """
        if self._last_call_metadata is None:
            raise RuntimeError("No LLM call has been made yet")

        return self._last_call_metadata

    def _calculate_cost(self, tokens_in: int, tokens_out: int) -> float:
        """Calculate cost for API call in USD."""
        costs = TOKEN_COSTS.get(self.model, TOKEN_COSTS["gpt-4o-mini"])
        cost_in = (tokens_in / 1_000_000) * costs["input"]
        cost_out = (tokens_out / 1_000_000) * costs["output"]
        return cost_in + cost_out


def create_llm_client(settings: "Settings") -> LLMClient | None:
    """Create the model client, or None when the model path is unavailable.

    The model path is unavailable when it is disabled in config or no API
    key is configured; extraction then uses the heuristic extractor only.
    """
    if not settings.llm_available or settings.openai_api_key is None:
        logger.info(
            "llm_client_disabled",
            enabled=settings.llm_enabled,
            has_api_key=settings.openai_api_key is not None,
        )
        return None

    return LLMClient(
        api_key=settings.openai_api_key.get_secret_value(),
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        timeout=settings.llm_timeout_seconds,
        prompt_file=settings.llm_prompt_file,
    )
