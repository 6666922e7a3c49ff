"""Shared pytest fixtures for themeswitch tests."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from themeswitch.catalog import ThemeCatalog
from themeswitch.settings import ThemeSettings


def make_theme(
    themes_dir: Path,
    name: str,
    templates: dict[str, str] | None = None,
    manifest: dict[str, Any] | str | None = None,
    *,
    templates_subdir: str = "",
    default_marker: bool = False,
    assets: dict[str, str] | None = None,
) -> Path:
    """Create a theme directory with templates, an optional manifest and assets."""
    theme_dir = themes_dir / name
    template_dir = theme_dir / templates_subdir if templates_subdir else theme_dir
    template_dir.mkdir(parents=True, exist_ok=True)

    for template_name, source in (templates or {}).items():
        path = template_dir / template_name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")

    if manifest is not None:
        content = manifest if isinstance(manifest, str) else json.dumps(manifest)
        (theme_dir / "theme.json").write_text(content, encoding="utf-8")

    if default_marker:
        (theme_dir / ".default").write_text("", encoding="utf-8")

    for asset_name, content in (assets or {}).items():
        path = theme_dir / "assets" / asset_name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    return theme_dir


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Undo logging configuration done by CLI invocations."""
    yield
    package_logger = logging.getLogger("themeswitch")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def theme_factory() -> Any:
    """Return the ``make_theme`` helper."""
    return make_theme


@pytest.fixture
def app_root(tmp_path: Path) -> Path:
    """Application root with a flat ``themes/`` directory: default + dark(parent=default)."""
    themes_dir = tmp_path / "themes"
    make_theme(
        themes_dir,
        "default",
        {
            "home.html": "<h1>{{ title }}</h1><p>default home</p>",
            "layout.html": "<main>{% block content %}layout{% endblock %}</main>",
            "about.html": "about from {{ theme.name }}",
            "partials/nav.html": "nav:{{ theme.name }}",
        },
        {"label": "Default", "version": "1.0.0"},
        assets={"site.css": "body { color: black; }", "logo.svg": "<svg/>"},
    )
    make_theme(
        themes_dir,
        "dark",
        {
            "home.html": "<h1>{{ title }}</h1><p>dark home</p>",
            "layout.html": (
                '{% extends "parent://layout.html" %}'
                "{% block content %}dark:{{ super() }}{% endblock %}"
            ),
        },
        {"parent": "default", "label": "Dark"},
        assets={"site.css": "body { color: white; }"},
    )
    return tmp_path


@pytest.fixture
def catalog(app_root: Path) -> ThemeCatalog:
    return ThemeCatalog.discover(app_root, ThemeSettings())
