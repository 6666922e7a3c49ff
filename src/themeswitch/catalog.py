"""
Theme catalog.

Discovers themes from a directory layout plus settings, builds the
name -> Theme mapping once, and serves read-only lookups afterwards.

Layout (``flat`` convention)::

    templates/themes/
        default/
            theme.json          # optional manifest
            home.html
        dark/
            theme.json          # {"parent": "default"}
            home.html

The catalog is immutable after discovery and safe to share across
concurrent requests.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from .conventions import EngineConvention, get_convention
from .errors import NoDefaultTheme, ThemeNotFound
from .logging import log_with_context
from .models import Theme
from .settings import ThemeSettings

logger = logging.getLogger(__name__)


class ThemeCatalog:
    """Immutable set of discovered themes plus the chosen default."""

    def __init__(
        self,
        themes: Mapping[str, Theme],
        convention: EngineConvention,
        themes_dir: Path | None = None,
    ):
        self._themes: dict[str, Theme] = dict(themes)
        self.convention = convention
        self.themes_dir = themes_dir
        defaults = [t.name for t in self._themes.values() if t.is_default]
        if self._themes and len(defaults) != 1:
            raise ValueError(
                f"A catalog needs exactly one default theme, got {len(defaults)}: {defaults}"
            )
        self._default_name: str | None = defaults[0] if defaults else None

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    @classmethod
    def discover(
        cls,
        root_path: Path,
        settings: ThemeSettings | None = None,
        convention: EngineConvention | None = None,
    ) -> ThemeCatalog:
        """
        Scan the themes directory and build a catalog.

        Args:
            root_path: Application root; relative themes paths resolve against it
            settings: Theme settings (defaults when None)
            convention: Engine convention; looked up from ``settings.engine`` when None

        Returns:
            The discovered catalog (empty if the themes directory is missing)

        Raises:
            NoDefaultTheme: ``settings.require_default`` is set and no theme is
                flagged default
        """
        settings = settings or ThemeSettings()
        convention = convention or get_convention(settings.engine)
        themes_dir = settings.themes_dir(Path(root_path), convention).resolve()

        if not themes_dir.is_dir():
            logger.info("Themes directory %s not found, catalog is empty", themes_dir)
            return cls({}, convention, themes_dir)

        candidates = sorted(
            (p for p in themes_dir.iterdir() if p.is_dir() and not p.name.startswith(".")),
            key=lambda p: p.name,
        )

        themes: dict[str, Theme] = {}
        markers: list[str] = []
        for directory in candidates:
            name = directory.name
            if settings.available and name not in settings.available:
                logger.debug("Skipping theme %r: not in available themes", name)
                continue
            themes[name] = _build_theme(directory, convention)
            if convention.default_marker and (directory / convention.default_marker).is_file():
                markers.append(name)

        default_name = _choose_default(themes, settings, markers)
        if default_name is None and themes:
            if settings.require_default:
                raise NoDefaultTheme(
                    f"No default theme flagged in {themes_dir} "
                    f"(configured default {settings.default!r} not found)"
                )
            default_name = next(iter(themes))
            logger.warning(
                "Default theme %r not found in %s, promoting %r",
                settings.default,
                themes_dir,
                default_name,
            )

        if default_name is not None:
            themes[default_name] = themes[default_name].with_default(True)

        log_with_context(
            logger,
            logging.INFO,
            f"Discovered {len(themes)} theme(s) in {themes_dir}",
            themes=list(themes),
            default=default_name,
            convention=convention.name,
        )
        return cls(themes, convention, themes_dir)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def load(self, name: str) -> Theme:
        """Return the named theme or raise ThemeNotFound."""
        theme = self._themes.get(name)
        if theme is None:
            raise ThemeNotFound(name)
        return theme

    def get_theme(self, name: str) -> Theme | None:
        return self._themes.get(name)

    def theme_exists(self, name: str) -> bool:
        return name in self._themes

    def get_default_theme(self) -> Theme:
        if self._default_name is None:
            raise NoDefaultTheme()
        return self._themes[self._default_name]

    @property
    def default_name(self) -> str | None:
        return self._default_name

    def is_default(self, name: str) -> bool:
        return name == self._default_name

    def get_available_themes(self) -> list[Theme]:
        return list(self._themes.values())

    @property
    def themes(self) -> Mapping[str, Theme]:
        return dict(self._themes)

    def parent_of(self, theme: Theme) -> Theme | None:
        """
        Return the theme's parent.

        Parents are looked up in the catalog first. A parent filtered out
        of the catalog (e.g. by ``available``) is still reachable when its
        directory sits next to the child's.
        """
        if not theme.parent_name:
            return None
        parent = self._themes.get(theme.parent_name)
        if parent is not None:
            return parent
        if not _is_plain_theme_name(theme.parent_name):
            logger.warning(
                "Ignoring parent %r of theme %r: not a theme directory name",
                theme.parent_name,
                theme.name,
            )
            return None
        themes_dir = theme.root_path.parent.resolve()
        sibling = (themes_dir / theme.parent_name).resolve()
        if sibling.parent == themes_dir and sibling.is_dir():
            return _build_theme(sibling, self.convention)
        logger.debug("Parent %r of theme %r not found", theme.parent_name, theme.name)
        return None

    def lineage(self, theme: Theme) -> list[Theme]:
        """
        Return the theme followed by its ancestors, nearest first.

        Stops at the first repeated name, so parent cycles terminate.
        """
        chain = [theme]
        seen = {theme.name}
        current = self.parent_of(theme)
        while current is not None:
            if current.name in seen:
                logger.warning(
                    "Parent cycle detected for theme %r at %r", theme.name, current.name
                )
                break
            chain.append(current)
            seen.add(current.name)
            current = self.parent_of(current)
        return chain

    def __contains__(self, name: object) -> bool:
        return name in self._themes

    def __iter__(self) -> Iterator[Theme]:
        return iter(list(self._themes.values()))

    def __len__(self) -> int:
        return len(self._themes)

    def __repr__(self) -> str:
        return f"ThemeCatalog(themes={list(self._themes)}, default={self._default_name!r})"


def _build_theme(directory: Path, convention: EngineConvention) -> Theme:
    config = _read_manifest(directory / convention.manifest_name)
    parent = config.get("parent")
    if parent is not None and not isinstance(parent, str):
        logger.warning("Ignoring non-string parent in %s", directory / convention.manifest_name)
        parent = None
    return Theme(
        name=directory.name,
        root_path=directory,
        parent_name=parent or None,
        config=config,
        templates_subdir=convention.templates_subdir,
    )


def _is_plain_theme_name(name: str) -> bool:
    """A single visible path segment: no separators, no leading dot."""
    return bool(name) and not name.startswith(".") and "/" not in name and "\\" not in name


def _read_manifest(path: Path) -> dict[str, Any]:
    """Read a theme manifest; any problem yields an empty config."""
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable theme manifest %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring theme manifest %s: expected a JSON object", path)
        return {}
    return data


def _choose_default(
    themes: Mapping[str, Theme],
    settings: ThemeSettings,
    markers: list[str],
) -> str | None:
    if settings.default in themes:
        return settings.default
    if markers:
        if len(markers) > 1:
            logger.warning("Multiple default markers found %s, using %r", markers, markers[0])
        return markers[0]
    return None
