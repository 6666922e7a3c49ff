"""
Theme middleware for Starlette / FastAPI applications.

For every request:
1. Resolve the theme (query parameter, then cookie, then default)
2. Bind a renderer view to it and expose both on ``request.state``
3. Publish the theme through the request context variable
4. Call the next handler
5. If the query explicitly selected a catalogued theme, persist the
   choice in a cookie
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .catalog import ThemeCatalog
from .context import reset_current_theme, set_current_theme
from .conventions import EngineConvention, get_convention
from .helpers import DEFAULT_ASSETS_PREFIX, request_globals
from .models import Theme
from .renderer import BoundRenderer, TemplateBackend, TemplateRenderer
from .resolver import RequestSignals, ThemeResolver
from .settings import DEFAULT_COOKIE_NAME, DEFAULT_QUERY_PARAM, ThemeSettings

if TYPE_CHECKING:
    from starlette.applications import Starlette

logger = logging.getLogger(__name__)


class ThemeMiddleware(BaseHTTPMiddleware):
    """Resolves the theme for each request and binds it into the renderer."""

    def __init__(
        self,
        app: Any,
        catalog: ThemeCatalog,
        renderer: TemplateRenderer,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        query_param: str = DEFAULT_QUERY_PARAM,
        cookie_max_age: int | None = None,
        cookie_secure: bool = False,
        assets_prefix: str = DEFAULT_ASSETS_PREFIX,
    ) -> None:
        super().__init__(app)
        self.catalog = catalog
        self.renderer = renderer
        self.cookie_name = cookie_name
        self.query_param = query_param
        self.cookie_max_age = cookie_max_age
        self.cookie_secure = cookie_secure
        self.assets_prefix = assets_prefix

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Any]
    ) -> Response:
        signals = RequestSignals.from_request(request, self.query_param, self.cookie_name)
        resolver = ThemeResolver(self.catalog, self.cookie_name, self.query_param)
        theme = resolver.resolve(signals)

        view = self.renderer.bind(theme)
        for name, value in request_globals(request, theme, self.assets_prefix).items():
            view.add_global(name, value)

        request.state.theme = theme
        request.state.renderer = view
        request.state.theme_resolver = resolver

        token = set_current_theme(theme)
        try:
            response: Response = await call_next(request)
        finally:
            reset_current_theme(token)

        if resolver.source == "query":
            self._persist_choice(response, theme)
        return response

    def _persist_choice(self, response: Response, theme: Theme) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=theme.name,
            max_age=self.cookie_max_age,
            path="/",
            secure=self.cookie_secure,
            httponly=True,
            samesite="lax",
        )
        logger.debug("Persisting theme choice %r in cookie %r", theme.name, self.cookie_name)


# =============================================================================
# Application wiring
# =============================================================================


def install_themes(
    app: Starlette,
    root_path: Path,
    settings: ThemeSettings | None = None,
    *,
    convention: EngineConvention | None = None,
    backend: TemplateBackend | None = None,
    serve_assets: bool = False,
    assets_prefix: str = DEFAULT_ASSETS_PREFIX,
    cookie_secure: bool = False,
) -> TemplateRenderer:
    """
    Discover themes and install the middleware on an application.

    Stores the catalog, renderer and settings on ``app.state`` as
    ``theme_catalog``, ``theme_renderer`` and ``theme_settings``.

    Args:
        app: Starlette or FastAPI application
        root_path: Application root the themes path is relative to
        settings: Theme settings (defaults when None)
        convention: Engine convention (from ``settings.engine`` when None)
        backend: Template backend (Jinja2 when None)
        serve_assets: Mount each theme's ``assets/`` under ``assets_prefix``
        assets_prefix: URL prefix for theme assets
        cookie_secure: Mark the persisted theme cookie Secure

    Returns:
        The shared TemplateRenderer
    """
    from .exception_handlers import register_exception_handlers

    settings = settings or ThemeSettings()
    convention = convention or get_convention(settings.engine)
    catalog = ThemeCatalog.discover(root_path, settings, convention)
    renderer = TemplateRenderer(catalog, backend)

    app.add_middleware(
        ThemeMiddleware,
        catalog=catalog,
        renderer=renderer,
        cookie_name=settings.cookie_name_for(convention.name),
        query_param=settings.query_param_for(convention.name),
        cookie_max_age=settings.cookie_max_age,
        cookie_secure=cookie_secure,
        assets_prefix=assets_prefix,
    )
    register_exception_handlers(app)

    if serve_assets:
        from .assets import mount_theme_assets

        mount_theme_assets(app, catalog, assets_prefix)

    app.state.theme_catalog = catalog
    app.state.theme_renderer = renderer
    app.state.theme_settings = settings

    logger.info(
        "Themes installed (convention=%s, themes=%d, default=%s)",
        convention.name,
        len(catalog),
        catalog.default_name,
    )
    return renderer


# =============================================================================
# Dependency Helpers
# =============================================================================


def get_theme(request: Request) -> Theme:
    """FastAPI dependency returning the theme resolved for this request."""
    theme = getattr(request.state, "theme", None)
    if theme is None:
        raise RuntimeError("ThemeMiddleware is not installed on this application")
    return theme  # type: ignore[no-any-return]


def get_renderer(request: Request) -> BoundRenderer:
    """FastAPI dependency returning the renderer bound to this request's theme."""
    renderer = getattr(request.state, "renderer", None)
    if renderer is None:
        raise RuntimeError("ThemeMiddleware is not installed on this application")
    return renderer  # type: ignore[no-any-return]
