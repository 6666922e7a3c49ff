"""
Theme-aware template rendering.

``TemplateRenderer`` is shared by every request and takes the active theme
as an explicit argument; it holds only process-wide globals and the
backend's environment cache. ``BoundRenderer`` is the lightweight view one
request works with: it remembers its theme and any request-local globals.

Template lookup walks the theme's lineage (theme, parent, grandparent, ...)
and returns the first directory holding the template. Inside Jinja2 a child
theme can reach the original it overrides through the ``parent://`` prefix::

    {% extends "parent://layout.html" %}

The prefix is relative to the theme owning the referencing template, so a
grandchild, child and parent can each extend the next one up.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from jinja2 import BaseLoader, Environment, select_autoescape
from jinja2 import TemplateNotFound as JinjaTemplateNotFound
from jinja2.loaders import split_template_path
from starlette.responses import HTMLResponse

from .errors import TemplateNotFound
from .models import Theme

if TYPE_CHECKING:
    from .catalog import ThemeCatalog

logger = logging.getLogger(__name__)

PARENT_PREFIX = "parent://"
# Internal names produced by ``LineageEnvironment.join_path``: search from a lineage index
LINEAGE_PREFIX = "lineage://"


def locate_template(search_path: Sequence[Path], name: str) -> tuple[int, Path] | None:
    """
    Find a template along ``search_path`` (nearest first).

    ``parent://x`` starts the search one step up the lineage and
    ``lineage://N/x`` at index N. Names escaping the directories are not found.

    Returns:
        ``(index, path)`` of the first directory holding the template, or None
    """
    start = 0
    if name.startswith(PARENT_PREFIX):
        start, name = 1, name[len(PARENT_PREFIX) :]
    elif name.startswith(LINEAGE_PREFIX):
        index, _, name = name[len(LINEAGE_PREFIX) :].partition("/")
        if not index.isdigit():
            return None
        start = int(index)
    try:
        pieces = split_template_path(name)
    except JinjaTemplateNotFound:
        return None
    if not pieces:
        return None
    for index in range(start, len(search_path)):
        candidate = search_path[index].joinpath(*pieces)
        if candidate.is_file():
            return index, candidate
    return None


class LineageLoader(BaseLoader):
    """
    Loads templates along a theme lineage, nearest theme first.

    Understands the ``parent://`` and ``lineage://N/`` prefixes of
    ``locate_template``.
    """

    def __init__(self, search_path: Sequence[Path], encoding: str = "utf-8"):
        self.search_path = tuple(search_path)
        self.encoding = encoding

    def locate(self, template: str) -> tuple[int, Path] | None:
        return locate_template(self.search_path, template)

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str, Callable[[], bool]]:
        found = self.locate(template)
        if found is None:
            raise JinjaTemplateNotFound(template)
        path = found[1]
        source = path.read_text(encoding=self.encoding)
        mtime = path.stat().st_mtime

        def uptodate() -> bool:
            try:
                return path.stat().st_mtime == mtime
            except OSError:
                return False

        return source, str(path), uptodate


class LineageEnvironment(Environment):
    """
    Environment resolving ``parent://`` relative to the referencing template.

    ``{% extends "parent://layout.html" %}`` in a template found at lineage
    index N loads ``layout.html`` starting at index N + 1, so every level of a
    deep lineage reaches the next ancestor instead of looping on itself.
    """

    def join_path(self, template: str, parent: str) -> str:
        if template.startswith(PARENT_PREFIX) and isinstance(self.loader, LineageLoader):
            found = self.loader.locate(parent)
            if found is not None:
                return f"{LINEAGE_PREFIX}{found[0] + 1}/{template[len(PARENT_PREFIX) :]}"
        return template


class TemplateBackend(Protocol):
    """A template engine able to render a named template from a search path."""

    def render(self, search_path: Sequence[Path], template: str, context: dict[str, Any]) -> str:
        """Render ``template`` looked up along ``search_path`` (nearest first)."""
        ...


class Jinja2Backend:
    """
    Jinja2 backend.

    One Environment is built per distinct search path and reused, so
    rendering the same theme twice does not rebuild loaders. Environments
    carry no per-request state; request data travels in the render context.
    """

    def __init__(
        self,
        *,
        autoescape_extensions: Sequence[str] = ("html", "htm", "xml"),
        extensions: Sequence[str] = (),
        filters: Mapping[str, Callable[..., Any]] | None = None,
        auto_reload: bool = True,
    ):
        self.autoescape_extensions = tuple(autoescape_extensions)
        self.extensions = tuple(extensions)
        self.filters: dict[str, Callable[..., Any]] = dict(filters or {})
        self.auto_reload = auto_reload
        self._environments: dict[tuple[Path, ...], Environment] = {}
        self._lock = threading.Lock()

    def add_filter(self, name: str, func: Callable[..., Any]) -> None:
        with self._lock:
            self.filters[name] = func
            for env in self._environments.values():
                env.filters[name] = func

    def get_environment(self, search_path: Sequence[Path]) -> Environment:
        key = tuple(search_path)
        with self._lock:
            env = self._environments.get(key)
            if env is None:
                env = self._create_environment(key)
                self._environments[key] = env
            return env

    def render(self, search_path: Sequence[Path], template: str, context: dict[str, Any]) -> str:
        env = self.get_environment(search_path)
        return env.get_template(template).render(context)

    def clear_cache(self) -> None:
        with self._lock:
            self._environments.clear()

    def _create_environment(self, search_path: tuple[Path, ...]) -> Environment:
        env = LineageEnvironment(
            loader=LineageLoader(search_path),
            autoescape=select_autoescape(list(self.autoescape_extensions)),
            extensions=list(self.extensions),
            trim_blocks=True,
            lstrip_blocks=True,
            auto_reload=self.auto_reload,
        )
        env.filters.update(self.filters)
        logger.debug("Created Jinja2 environment for %s", [str(p) for p in search_path])
        return env


class TemplateRenderer:
    """
    Renders templates for an explicitly given theme.

    Safe to share between concurrent requests.
    """

    def __init__(self, catalog: ThemeCatalog, backend: TemplateBackend | None = None):
        self.catalog = catalog
        self.backend: TemplateBackend = backend or Jinja2Backend()
        self._globals: dict[str, Any] = {}
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Globals
    # -------------------------------------------------------------------------

    def add_global(self, name: str, value: Any) -> None:
        """Register a value injected into every subsequent render."""
        with self._lock:
            self._globals[name] = value

    @property
    def globals(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._globals)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def template_path_chain(self, theme: Theme) -> list[Path]:
        """Template directories of the theme and its ancestors, nearest first."""
        return [t.templates_path for t in self.catalog.lineage(theme)]

    def template_exists(self, theme: Theme, template: str) -> bool:
        return self._find(theme, template) is not None

    def get_template_path(self, theme: Theme, template: str) -> Path:
        """
        Resolve a template to a file along the theme's lineage.

        Raises:
            TemplateNotFound: No theme in the lineage has the template
        """
        path = self._find(theme, template)
        if path is None:
            raise TemplateNotFound(template, theme.name)
        return path

    def list_templates(self, theme: Theme) -> dict[str, Theme]:
        """
        Every template visible to ``theme``, mapped to the theme providing it.

        A template overridden along the lineage is reported once, for the
        nearest theme. Assets, the manifest and hidden files are skipped.
        """
        manifest = self.catalog.convention.manifest_name
        found: dict[str, Theme] = {}
        for owner in self.catalog.lineage(theme):
            base = owner.templates_path
            if not base.is_dir():
                continue
            for path in base.rglob("*"):
                if not path.is_file() or path.is_relative_to(owner.assets_path):
                    continue
                relative = path.relative_to(base)
                if any(part.startswith(".") for part in relative.parts):
                    continue
                if relative.as_posix() == manifest:
                    continue
                found.setdefault(relative.as_posix(), owner)
        return dict(sorted(found.items()))

    def _find(self, theme: Theme, template: str) -> Path | None:
        found = locate_template(self.template_path_chain(theme), template)
        return found[1] if found else None

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def build_context(
        self,
        theme: Theme,
        data: Mapping[str, Any] | None = None,
        extra_globals: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Assemble the render context.

        Globals never replace caller data; ``theme`` is always the active theme.
        """
        context = self.globals
        if extra_globals:
            context.update(extra_globals)
        if data:
            context.update(data)
        context["theme"] = theme
        return context

    def render(
        self,
        theme: Theme,
        template: str,
        data: Mapping[str, Any] | None = None,
        extra_globals: Mapping[str, Any] | None = None,
    ) -> str:
        """
        Render ``template`` for ``theme``.

        Raises:
            TemplateNotFound: The template is missing from the whole lineage
        """
        if not self.template_exists(theme, template):
            raise TemplateNotFound(template, theme.name)
        context = self.build_context(theme, data, extra_globals)
        return self.backend.render(self.template_path_chain(theme), template, context)

    def bind(self, theme: Theme) -> BoundRenderer:
        return BoundRenderer(self, theme)


class BoundRenderer:
    """
    A renderer view bound to one theme, created per request.

    ``set_theme`` rebinds the view and drops its local globals, matching a
    renderer that reinitialises its engine for the new theme.
    """

    def __init__(self, renderer: TemplateRenderer, theme: Theme):
        self.renderer = renderer
        self._theme = theme
        self._globals: dict[str, Any] = {}

    @property
    def theme(self) -> Theme:
        return self._theme

    def get_theme(self) -> Theme:
        return self._theme

    def set_theme(self, theme: Theme) -> None:
        self._theme = theme
        self._globals = {}

    def add_global(self, name: str, value: Any) -> None:
        self._globals[name] = value

    @property
    def globals(self) -> dict[str, Any]:
        return {**self.renderer.globals, **self._globals}

    def template_exists(self, template: str) -> bool:
        return self.renderer.template_exists(self._theme, template)

    def get_template_path(self, template: str) -> Path:
        return self.renderer.get_template_path(self._theme, template)

    def render(self, template: str, data: Mapping[str, Any] | None = None) -> str:
        return self.renderer.render(self._theme, template, data, self._globals)

    def template_response(
        self,
        template: str,
        data: Mapping[str, Any] | None = None,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> HTMLResponse:
        """Render into an HTML response."""
        content = self.render(template, data)
        return HTMLResponse(content, status_code=status_code, headers=dict(headers or {}))
