"""
Theme settings.

Settings come from a plain mapping or from the ``[theme]`` table of a TOML
file::

    [theme]
    default = "default"
    available = ["default", "dark"]
    cookie_name = "theme"
    query_param = "theme"
    engine = "nested"
    templates_path = "templates"

    [theme.engines.nested]
    templates_path = "templates/nested"
    cookie_name = "nested_theme"
    query_param = "nested_theme"

Engine-specific values take precedence over the global ones.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from .conventions import DEFAULT_CONVENTION, EngineConvention
from .errors import ConfigError

DEFAULT_THEME_NAME = "default"
DEFAULT_COOKIE_NAME = "theme"
DEFAULT_QUERY_PARAM = "theme"


def _strip_or_none(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


class EngineSettings(BaseModel):
    """Per-engine overrides. None means "use the global value"."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    templates_path: str | None = None
    cookie_name: str | None = None
    query_param: str | None = None

    @field_validator("templates_path", "cookie_name", "query_param", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        return _strip_or_none(value)


class ThemeSettings(BaseModel):
    """
    Theme configuration.

    Attributes:
        default: Name of the default theme
        available: If non-empty, only these theme directories are catalogued
        cookie_name: Cookie persisting an explicit theme choice
        query_param: Query parameter selecting a theme
        templates_path: Themes directory, relative to the application root
        engine: Engine convention in use (``flat`` or ``nested``)
        engines: Per-engine overrides keyed by convention name
        require_default: Fail discovery instead of promoting the first theme
        cookie_max_age: Max-Age of the persisted theme cookie (None = session)
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    default: str = DEFAULT_THEME_NAME
    available: frozenset[str] = Field(default_factory=frozenset)
    cookie_name: str = DEFAULT_COOKIE_NAME
    query_param: str = DEFAULT_QUERY_PARAM
    templates_path: str | None = None
    engine: str = DEFAULT_CONVENTION
    engines: dict[str, EngineSettings] = Field(default_factory=dict)
    require_default: bool = Field(default=False, strict=True)
    cookie_max_age: int | None = Field(default=None, ge=0, strict=True)

    @field_validator("default", "cookie_name", "query_param", "engine", mode="before")
    @classmethod
    def _blank_is_default(cls, value: Any, info: ValidationInfo) -> Any:
        value = _strip_or_none(value)
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("templates_path", mode="before")
    @classmethod
    def _blank_path_is_unset(cls, value: Any) -> Any:
        return _strip_or_none(value)

    @field_validator("available", mode="before")
    @classmethod
    def _single_name_is_a_set(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return frozenset({value})
        return value

    @field_validator("engines", mode="before")
    @classmethod
    def _missing_engines_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ThemeSettings:
        """
        Build settings from a plain mapping.

        Raises:
            ConfigError: Unknown keys or values of the wrong type or range
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise ConfigError(f"Invalid theme settings: {_describe(e)}") from e

    def engine_settings(self, engine: str | None = None) -> EngineSettings:
        return self.engines.get(engine or self.engine, EngineSettings())

    def cookie_name_for(self, engine: str | None = None) -> str:
        return self.engine_settings(engine).cookie_name or self.cookie_name

    def query_param_for(self, engine: str | None = None) -> str:
        return self.engine_settings(engine).query_param or self.query_param

    def templates_path_for(self, convention: EngineConvention) -> str:
        """Themes directory: engine override, then global path, then convention default."""
        return (
            self.engine_settings(convention.name).templates_path
            or self.templates_path
            or convention.themes_dir
        )

    def themes_dir(self, root_path: Path, convention: EngineConvention) -> Path:
        path = Path(self.templates_path_for(convention))
        if not path.is_absolute():
            path = root_path / path
        return path


def load_settings(path: Path, table: str = "theme") -> ThemeSettings:
    """
    Load settings from a TOML file.

    Args:
        path: TOML file to read
        table: Table holding the settings (default ``[theme]``)

    Returns:
        ThemeSettings; defaults when the table is absent
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    section = data.get(table, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{table}] in {path} must be a table")
    return ThemeSettings.from_mapping(section)


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)
