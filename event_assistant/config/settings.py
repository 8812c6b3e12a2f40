"""Application settings with Pydantic Settings validation.

Secrets (the OpenAI API key) are loaded from the environment or .env file.
Non-sensitive configuration is loaded from config/main.yaml and config/*.yaml
files. All configs are merged and validated against JSON schemas.
"""

import json
from pathlib import Path
from typing import Any, Final, cast

import yaml
from jsonschema import ValidationError as JSONSchemaValidationError
from jsonschema import validate
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from event_assistant.config.logging_config import get_logger
from event_assistant.domain.extraction_constants import (
    DEFAULT_DURATION_HOURS,
    DEFAULT_GUEST_COUNT,
    DEFAULT_START_TIME,
    MAX_ATTENDEES_FLOOR,
    MAX_ATTENDEES_MULTIPLIER,
    MAX_INPUT_CHARS,
    URGENCY_WINDOW_HOURS,
)
from event_assistant.domain.models import CLOCK_PATTERN

CONFIG_DIR: Final[Path] = Path("config")
SCHEMA_DIR: Final[Path] = CONFIG_DIR / "schemas"

LLM_TIMEOUT_SECONDS_DEFAULT: Final[int] = 30
SEARCH_MIN_SCORE_DEFAULT: Final[float] = 60.0
"""Minimum rapidfuzz score (0-100) for a free-form event query to match."""

logger = cast(Any, get_logger(__name__))


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge into base (takes precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_schema(schema_name: str) -> dict[str, Any]:
    """Load JSON Schema from config/schemas/.

    Args:
        schema_name: Schema name without extension (e.g., "main")

    Returns:
        JSON Schema dictionary or empty dict if not found
    """
    schema_path = SCHEMA_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        return {}

    try:
        with open(schema_path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(
            "config_schema_load_failed",
            schema=schema_name,
            error=str(e),
        )
        return {}


def validate_config_section(
    config: dict[str, Any], schema_name: str, file_path: str = ""
) -> None:
    """Validate config section against JSON Schema.

    Args:
        config: Configuration dictionary to validate
        schema_name: Name of schema to validate against
        file_path: Optional file path for error messages

    Raises:
        ValueError: If validation fails
    """
    schema = load_schema(schema_name)
    if not schema:
        return

    try:
        validate(instance=config, schema=schema)
        logger.debug("config_validation_succeeded", schema=schema_name)
    except JSONSchemaValidationError as e:
        error_msg = f"Config validation failed for {schema_name}"
        if file_path:
            error_msg += f" (file: {file_path})"
        error_msg += f": {e.message}"
        raise ValueError(error_msg) from e


def _load_yaml_file(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_all_configs() -> dict[str, Any]:
    """Load and merge all YAML configs from the config/ directory.

    Loading order (later overrides earlier):
    1. config/main.yaml
    2. All other config/*.yaml files (sorted alphabetically)

    Each file is validated against config/schemas/<stem>.schema.json when
    that schema exists.

    Returns:
        Merged configuration dictionary

    Raises:
        ValueError: If a config file fails schema validation
    """
    merged_config: dict[str, Any] = {}
    loaded = 0

    main_path = CONFIG_DIR / "main.yaml"
    if main_path.exists():
        try:
            main_config = _load_yaml_file(main_path)
        except (yaml.YAMLError, OSError) as e:
            logger.warning("config_file_load_failed", path=str(main_path), error=str(e))
        else:
            validate_config_section(main_config, "main", str(main_path))
            merged_config = main_config
            loaded += 1
            logger.debug("config_file_loaded", path=str(main_path), schema="main")

    if CONFIG_DIR.is_dir():
        yaml_files = sorted(
            f for f in CONFIG_DIR.glob("*.yaml") if f.name != "main.yaml"
        )
        for yaml_file in yaml_files:
            schema_name = yaml_file.stem
            try:
                file_config = _load_yaml_file(yaml_file)
            except (yaml.YAMLError, OSError) as e:
                logger.warning(
                    "config_file_load_failed", path=str(yaml_file), error=str(e)
                )
                continue
            try:
                validate_config_section(file_config, schema_name, str(yaml_file))
            except ValueError as e:
                logger.error(
                    "config_validation_failed",
                    path=str(yaml_file),
                    schema=schema_name,
                    error=str(e),
                )
                raise
            merged_config = deep_merge(merged_config, file_config)
            loaded += 1
            logger.debug("config_file_loaded", path=str(yaml_file), schema=schema_name)

    logger.info("config_load_complete", file_count=loaded)
    return merged_config


class Settings(BaseSettings):
    """Application settings.

    Secrets are loaded from the environment or .env file.
    Non-sensitive config is loaded from config/*.yaml with fallback to defaults.
    Values provided through the environment (or constructor) win over YAML.
    """

    model_config = SettingsConfigDict(
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === SECRETS (from .env) ===

    openai_api_key: SecretStr | None = Field(
        default=None,
        description="OpenAI API key; without it only the heuristic path runs",
    )

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: SecretStr | str | None) -> SecretStr | None:
        if value is None:
            return None
        secret_value = (
            value.get_secret_value() if isinstance(value, SecretStr) else str(value)
        )
        if not secret_value.strip():
            return None
        return value if isinstance(value, SecretStr) else SecretStr(secret_value)

    def __init__(self, **data: Any):
        """Initialize settings with auto-loaded configs from all YAML files."""
        config = load_all_configs()

        super().__init__(**data)
        self._apply_yaml_defaults(config)

    def _apply_yaml_defaults(self, config: dict[str, Any]) -> None:
        """Apply YAML-sourced defaults without overriding env-provided values."""

        fields_from_env = set(self.model_fields_set)

        def _assign(field_name: str, value: Any) -> None:
            if value is None:
                return
            if field_name in fields_from_env:
                return

            object.__setattr__(self, field_name, value)
            self.model_fields_set.add(field_name)

        llm_config = config.get("llm") or {}
        _assign("llm_enabled", llm_config.get("enabled"))
        _assign("llm_model", llm_config.get("model"))
        _assign("llm_temperature", llm_config.get("temperature"))
        _assign("llm_timeout_seconds", llm_config.get("timeout_seconds"))
        _assign("llm_prompt_file", llm_config.get("prompt_file"))

        database_config = config.get("database") or {}
        _assign("db_path", database_config.get("path"))

        processing_config = config.get("processing") or {}
        _assign("tz_default", processing_config.get("tz_default"))

        extraction_config = config.get("extraction") or {}
        _assign("default_guest_count", extraction_config.get("default_guest_count"))
        _assign("default_start_time", extraction_config.get("default_start_time"))
        _assign(
            "default_duration_hours", extraction_config.get("default_duration_hours")
        )
        _assign(
            "max_attendees_multiplier",
            extraction_config.get("max_attendees_multiplier"),
        )
        _assign("max_attendees_floor", extraction_config.get("max_attendees_floor"))
        _assign("max_input_chars", extraction_config.get("max_input_chars"))

        venue_config = config.get("venue") or {}
        _assign("venue_open_time", venue_config.get("open_time"))
        _assign("venue_close_time", venue_config.get("close_time"))

        edit_config = config.get("edit") or {}
        _assign("urgency_window_hours", edit_config.get("urgency_window_hours"))
        _assign("search_min_score", edit_config.get("search_min_score"))

        logging_config = config.get("logging") or {}
        _assign("log_level", logging_config.get("level"))
        _assign("log_json", logging_config.get("json"))

    # LLM configuration
    llm_enabled: bool = Field(
        default=True, description="Use the language model before the heuristics"
    )
    llm_model: str = Field(default="gpt-4o-mini", description="OpenAI model to use")
    llm_temperature: float = Field(default=0.2, description="LLM temperature")
    llm_timeout_seconds: int = Field(
        default=LLM_TIMEOUT_SECONDS_DEFAULT, ge=1, description="LLM request timeout"
    )
    llm_prompt_file: str = Field(
        default="config/prompts/extraction.yaml",
        description="YAML file holding the extraction system prompt",
    )

    # Database configuration
    db_path: str = Field(default="data/events.db", description="SQLite database path")

    # Processing configuration
    tz_default: str = Field(
        default="UTC", description="Timezone used for 'today' in date resolution"
    )

    # Extraction defaults
    default_guest_count: int = Field(
        default=DEFAULT_GUEST_COUNT, ge=0, description="Guests when none stated"
    )
    default_start_time: str = Field(
        default=DEFAULT_START_TIME, description="Start time when none stated"
    )
    default_duration_hours: int = Field(
        default=DEFAULT_DURATION_HOURS, ge=0, le=23, description="Default duration"
    )
    max_attendees_multiplier: float = Field(
        default=MAX_ATTENDEES_MULTIPLIER, ge=1.0, description="Capacity multiplier"
    )
    max_attendees_floor: int = Field(
        default=MAX_ATTENDEES_FLOOR, ge=0, description="Minimum derived capacity"
    )
    max_input_chars: int = Field(
        default=MAX_INPUT_CHARS, ge=1, description="Extraction input cap"
    )

    # Edit configuration
    venue_open_time: str | None = Field(
        default=None, description="Venue opening time (HH:MM), optional"
    )
    venue_close_time: str | None = Field(
        default=None, description="Venue closing time (HH:MM), optional"
    )
    urgency_window_hours: int = Field(
        default=URGENCY_WINDOW_HOURS, ge=0, description="High urgency window"
    )
    search_min_score: float = Field(
        default=SEARCH_MIN_SCORE_DEFAULT,
        ge=0.0,
        le=100.0,
        description="Minimum fuzzy score for event search",
    )

    # Observability
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Render logs as JSON")

    @field_validator(
        "default_start_time", "venue_open_time", "venue_close_time", mode="after"
    )
    @classmethod
    def _validate_clock(cls, value: str | None) -> str | None:
        if value is not None and not CLOCK_PATTERN.match(value):
            raise ValueError(f"expected HH:MM (24-hour), got {value!r}")
        return value

    @property
    def llm_available(self) -> bool:
        """True when the model path is enabled and an API key is configured."""
        return self.llm_enabled and self.openai_api_key is not None


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
