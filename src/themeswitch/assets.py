"""Static asset serving for themes.

Each theme's ``assets/`` directory is mounted under ``/themes/<name>/``.
A file missing from a theme is looked up in its parent chain (first match
wins), mirroring template inheritance.

Cache policy: fonts are cached for a year and marked immutable, everything
else for an hour.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Any

from starlette.responses import Response
from starlette.staticfiles import StaticFiles

from .helpers import DEFAULT_ASSETS_PREFIX

if TYPE_CHECKING:
    from starlette.applications import Starlette
    from starlette.types import Scope

    from .catalog import ThemeCatalog

FONT_SUFFIXES = frozenset({".woff2", ".woff", ".ttf", ".otf", ".eot"})
FONT_CACHE_SECONDS = 365 * 24 * 3600
ASSET_CACHE_SECONDS = 3600


def cache_control_for(path: str | PurePath) -> str:
    """Cache-Control value for an asset path."""
    if PurePath(path).suffix.lower() in FONT_SUFFIXES:
        return f"public, max-age={FONT_CACHE_SECONDS}, immutable"
    return f"public, max-age={ASSET_CACHE_SECONDS}"


class LineageStaticFiles(StaticFiles):
    """Serve files from a theme's assets directory, then its ancestors'.

    Directories are given nearest first. The farthest existing one is the
    StaticFiles base directory; the nearer ones are searched before it so a
    child theme shadows its parent.
    """

    def __init__(self, directories: Sequence[Path], **kwargs: Any) -> None:
        existing = [d.resolve() for d in directories if d.is_dir()]
        self.search_dirs = existing
        # With no directory at all every lookup misses and answers 404
        base = str(existing[-1]) if existing else None
        kwargs.setdefault("check_dir", False)
        super().__init__(directory=base, **kwargs)

    def lookup_path(self, path: str) -> tuple[str, os.stat_result | None]:
        relative = path.lstrip("/")
        for directory in self.search_dirs[:-1]:
            candidate = (directory / relative).resolve()
            if not candidate.is_relative_to(directory):
                continue
            if candidate.is_file():
                return str(candidate), candidate.stat()
        return super().lookup_path(path)

    def file_response(
        self,
        full_path: Any,
        stat_result: os.stat_result,
        scope: Scope,
        status_code: int = 200,
    ) -> Response:
        response = super().file_response(full_path, stat_result, scope, status_code)
        response.headers.setdefault("Cache-Control", cache_control_for(str(full_path)))
        return response


def mount_theme_assets(
    app: Starlette,
    catalog: ThemeCatalog,
    prefix: str = DEFAULT_ASSETS_PREFIX,
) -> None:
    """Mount every catalogued theme's assets under ``<prefix>/<name>``."""
    base = prefix.rstrip("/")
    for theme in catalog:
        app.mount(
            f"{base}/{theme.name}",
            LineageStaticFiles([t.assets_path for t in catalog.lineage(theme)]),
            name=f"theme-assets-{theme.name}",
        )
