# src/esrollup/core/config.py
"""Configuration schema and loading for esrollup.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Precedence, highest first:
    1. Command-line flags
    2. Environment variables (ESROLLUP_*)
    3. Settings file (YAML)
    4. Defaults from the Pydantic schema
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from esrollup.contracts.errors import ConfigurationError

DEFAULT_INPUT_HOST = "http://localhost:9200"

# Elasticsearch time units accepted for scroll keepalive (e.g. "5m", "90s")
_KEEPALIVE_PATTERN = re.compile(r"^\d+(nanos|micros|ms|s|m|h|d)$")


class BenchmarkSettings(BaseModel):
    """Parameter grid for the benchmark command.

    Example YAML:
        benchmark:
          iterations: 3
          thread_options: [1, 2, 4]
          buffer_options: [500, 1000]
    """

    model_config = {"frozen": True, "extra": "forbid"}

    iterations: int = Field(default=3, ge=1, description="Runs per (threads, buffer_size) combination")
    thread_options: tuple[int, ...] = Field(default=(1, 2, 3, 4, 5), description="Reader concurrency limits to try")
    buffer_options: tuple[int, ...] = Field(default=(100, 1000, 2000, 5000, 10000), description="Page/bulk sizes to try")

    @field_validator("thread_options", "buffer_options")
    @classmethod
    def _validate_options(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if not v:
            raise ValueError("at least one option is required")
        if any(option < 1 for option in v):
            raise ValueError("options must be >= 1")
        return v


class RollupSettings(BaseModel):
    """Validated settings for one rollup run.

    Example YAML:
        input_filter: "^logstash-2016\\\\.0[1-3]\\\\."
        input_pattern: "logstash-%Y.%m.%d"
        output_pattern: "logstash-%Y.%m"
        input_host: http://old-cluster:9200
        output_host: ${TARGET_HOST:-http://new-cluster:9200}
        threads: 3
        buffer_size: 1000
    """

    model_config = {"frozen": True, "extra": "forbid"}

    input_filter: str = Field(description="Regex matched against source index names (infilter)")
    input_pattern: str = Field(description="strptime pattern decoding a source index name to a date (inpattern)")
    output_pattern: str = Field(description="strftime pattern producing the destination index name (outpattern)")
    input_host: str = Field(default=DEFAULT_INPUT_HOST, description="Cluster to read indexes from (inhost)")
    output_host: str = Field(default=DEFAULT_INPUT_HOST, description="Cluster to write to (outhost); defaults to input_host")
    threads: int = Field(default=3, ge=1, description="Maximum concurrently running index readers")
    buffer_size: int = Field(default=1000, ge=1, description="Scroll page size and bulk batch size")
    progress_batch: int = Field(default=100, ge=1, description="Documents between ledger updates")
    tick_interval_seconds: float = Field(default=1.0, gt=0, description="Progress/termination poll period")
    admission_poll_seconds: float = Field(default=0.1, gt=0, description="Admission retry backoff")
    scroll_keepalive: str = Field(default="5m", description="Scroll context keepalive")
    request_timeout_seconds: float = Field(default=120.0, gt=0, description="Per-request client timeout")
    bulk_workers: int = Field(default=2, ge=1, description="Concurrent bulk requests")
    preserve_types: bool = Field(default=False, description="Send non-_doc mapping types to the target (pre-8.x targets only)")
    benchmark: BenchmarkSettings = Field(default_factory=BenchmarkSettings)

    @field_validator("input_filter")
    @classmethod
    def _validate_input_filter(cls, v: str) -> str:
        if not v:
            raise ValueError("Input filter (infilter) cannot be blank")
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Input filter could not be compiled to a regex: {e}") from e
        return v

    @field_validator("input_pattern", "output_pattern", "input_host")
    @classmethod
    def _validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("cannot be blank")
        return v

    @field_validator("scroll_keepalive")
    @classmethod
    def _validate_keepalive(cls, v: str) -> str:
        if not _KEEPALIVE_PATTERN.match(v):
            raise ValueError(f"'{v}' is not an Elasticsearch time unit (e.g. '5m', '90s')")
        return v

    @model_validator(mode="before")
    @classmethod
    def _default_output_host(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("output_host"):
            data = {**data, "output_host": data.get("input_host") or DEFAULT_INPUT_HOST}
        return data

    @property
    def input_regex(self) -> re.Pattern[str]:
        return re.compile(self.input_filter)


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Unset variables without a default are left as-is.
    """

    def replacer(match: re.Match[str]) -> str:
        env_value = os.environ.get(match.group(1))
        if env_value is not None:
            return env_value
        default = match.group(2)
        if default is not None:
            return default
        return match.group(0)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _ENV_VAR_PATTERN.sub(replacer, value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def load_raw_settings(config_path: Path | None = None) -> dict[str, Any]:
    """Load an unvalidated settings dict from YAML plus ESROLLUP_* env vars.

    With no config_path only the environment is read.
    Environment variable format: ESROLLUP_THREADS=4, ESROLLUP_BENCHMARK__ITERATIONS=5.

    Raises:
        FileNotFoundError: If config_path is given but doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="ESROLLUP",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys and a few internal settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    if isinstance(raw_config.get("benchmark"), dict):
        raw_config["benchmark"] = {k.lower(): v for k, v in raw_config["benchmark"].items()}
    return _expand_env_vars(raw_config)


def format_validation_errors(error: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into 'field: message' lines."""
    problems = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"]) or "settings"
        problems.append(f"{loc}: {item['msg']}")
    return problems


def resolve_settings(
    config_path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RollupSettings:
    """Build validated settings from an optional file plus flag overrides.

    Overrides whose value is None are treated as "flag not given". Dict
    overrides (e.g. benchmark) are merged into the file's dict one level deep.

    Raises:
        ConfigurationError: If the combined settings are invalid
        FileNotFoundError: If config_path is given but missing
    """
    raw = load_raw_settings(config_path)
    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if isinstance(value, Mapping) and isinstance(raw.get(key), Mapping):
            raw[key] = {**raw[key], **{k: v for k, v in value.items() if v is not None}}
        elif isinstance(value, Mapping):
            raw[key] = {k: v for k, v in value.items() if v is not None}
        else:
            raw[key] = value

    try:
        return RollupSettings(**raw)
    except ValidationError as e:
        raise ConfigurationError("Invalid configuration", problems=format_validation_errors(e)) from e
