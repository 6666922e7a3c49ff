"""
Engine conventions.

Template backends disagree on where a theme keeps its templates and how a
theme marks itself as the default. Rather than one catalog/renderer pair per
backend, those rules are captured in a small parameter object that the
catalog and renderer consult.

Built-in conventions:

- ``flat``: templates live directly in the theme directory; the default
  theme is named in settings.
- ``nested``: templates live in ``<theme>/templates``; the default theme is
  named in settings or carries a ``.default`` marker file.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigError

MANIFEST_FILENAME = "theme.json"
DEFAULT_MARKER = ".default"


@dataclass(frozen=True)
class EngineConvention:
    """
    Path and default-detection rules for one template backend.

    Attributes:
        name: Convention identifier, also the key under ``engines`` in settings
        themes_dir: Default themes directory segment, relative to the root path
        templates_subdir: Template directory inside a theme ('' = theme root)
        default_marker: Marker file flagging the default theme, or None
        manifest_name: Per-theme manifest file name
    """

    name: str
    themes_dir: str = "themes"
    templates_subdir: str = ""
    default_marker: str | None = None
    manifest_name: str = MANIFEST_FILENAME


FLAT = EngineConvention(name="flat")
NESTED = EngineConvention(
    name="nested",
    templates_subdir="templates",
    default_marker=DEFAULT_MARKER,
)

_CONVENTIONS: dict[str, EngineConvention] = {
    FLAT.name: FLAT,
    NESTED.name: NESTED,
}

DEFAULT_CONVENTION = FLAT.name


def get_convention(name: str) -> EngineConvention:
    """Look up a registered convention by name."""
    try:
        return _CONVENTIONS[name]
    except KeyError:
        known = ", ".join(sorted(_CONVENTIONS))
        raise ConfigError(f"Unknown engine convention {name!r} (known: {known})") from None


def register_convention(convention: EngineConvention) -> None:
    """Register a custom convention, replacing any existing one of the same name."""
    _CONVENTIONS[convention.name] = convention


def list_conventions() -> list[str]:
    return sorted(_CONVENTIONS)
