"""Configured mirror sources loaded from the JSON configuration file.

The file is a JSON array. Every element is a source descriptor::

    {"name": "rules", "markdownURL": "https://...", "webhookURL": "https://..."}

An optional leading element without a ``name`` carries global settings::

    {"timezone": "Europe/Berlin", "pollingRateMS": 60000}

Any problem with the file is fatal at startup and surfaces as ConfigError.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Raised when the sources configuration cannot be loaded."""


class SourceConfig(BaseModel):
    """One document-to-message mapping."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    markdown_url: str = Field(alias="markdownURL", min_length=1)
    webhook_url: str = Field(alias="webhookURL", min_length=1)

    @field_validator("webhook_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class GlobalSettings(BaseModel):
    """Optional leading record of the configuration list."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    timezone: str | None = None
    polling_rate_ms: int | None = Field(default=None, alias="pollingRateMS", gt=0)

    @property
    def poll_interval_seconds(self) -> float | None:
        if self.polling_rate_ms is None:
            return None
        return self.polling_rate_ms / 1000


@dataclass(frozen=True)
class SourcesFile:
    """Parsed configuration file."""

    sources: tuple[SourceConfig, ...]
    global_settings: GlobalSettings = field(default_factory=GlobalSettings)

    @property
    def names(self) -> list[str]:
        return [s.name for s in self.sources]


def _is_global_record(entry: object) -> bool:
    return (
        isinstance(entry, dict)
        and "name" not in entry
        and ("timezone" in entry or "pollingRateMS" in entry)
    )


def parse_sources(entries: object) -> SourcesFile:
    """Validate decoded configuration data.

    Args:
        entries: The decoded JSON document.

    Returns:
        SourcesFile with sources in configuration order.

    Raises:
        ConfigError: If the document is not a list of valid, uniquely
            named source descriptors.
    """
    if not isinstance(entries, list):
        raise ConfigError("Configuration must be a JSON array of sources")

    global_settings = GlobalSettings()
    if entries and _is_global_record(entries[0]):
        try:
            global_settings = GlobalSettings.model_validate(entries[0])
        except ValidationError as e:
            raise ConfigError(f"Invalid global settings record: {e}") from e
        entries = entries[1:]

    sources: list[SourceConfig] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        try:
            source = SourceConfig.model_validate(entry)
        except ValidationError as e:
            raise ConfigError(f"Invalid source at position {index}: {e}") from e
        if source.name in seen:
            raise ConfigError(f"Duplicate source name: {source.name!r}")
        seen.add(source.name)
        sources.append(source)

    if not sources:
        raise ConfigError("Configuration does not define any sources")

    return SourcesFile(sources=tuple(sources), global_settings=global_settings)


def load_sources(path: str | Path) -> SourcesFile:
    """Read and validate the configuration file at ``path``."""
    config_path = Path(path)
    try:
        with open(config_path, encoding="utf-8") as f:
            entries = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found at '{config_path}'") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Configuration file at '{config_path}' is not valid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read configuration file '{config_path}': {e}") from e

    return parse_sources(entries)
