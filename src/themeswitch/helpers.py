"""
Request-derived template helpers.

Templates often need the current URL or a route URL. These helpers are
built from the request being handled and passed to the renderer as
request-local globals, so nothing reads process-wide request state.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from starlette.datastructures import URL
from starlette.routing import NoMatchFound

if TYPE_CHECKING:
    from starlette.requests import Request

    from .models import Theme

DEFAULT_ASSETS_PREFIX = "/themes"


def request_globals(
    request: Request,
    theme: Theme,
    assets_prefix: str = DEFAULT_ASSETS_PREFIX,
) -> dict[str, Any]:
    """
    Build the helper functions exposed to templates for one request.

    ``url_for`` and ``full_url_for`` take route path parameters as keywords
    and an optional ``query`` mapping appended as the query string, so a
    route cannot use ``query`` as a path parameter name through them.

    Returns:
        Dict with ``request``, ``url_for``, ``full_url_for``, ``current_url``,
        ``is_current_url`` and ``asset_url``.
    """

    def _route_url(name: str, query: Mapping[str, Any] | None, path_params: Any) -> URL:
        url = request.url_for(name, **path_params)
        if query:
            url = url.include_query_params(**query)
        return url

    def url_for(name: str, /, query: Mapping[str, Any] | None = None, **path_params: Any) -> str:
        return path_with_query(_route_url(name, query, path_params))

    def full_url_for(
        name: str, /, query: Mapping[str, Any] | None = None, **path_params: Any
    ) -> str:
        return str(_route_url(name, query, path_params))

    def current_url() -> str:
        return path_with_query(request.url)

    def is_current_url(name: str, /, **path_params: Any) -> bool:
        # Compares paths only; the current query string is ignored
        try:
            return request.url_for(name, **path_params).path == request.url.path
        except NoMatchFound:
            return False

    def asset_url(path: str) -> str:
        return theme_asset_url(theme, path, assets_prefix)

    return {
        "request": request,
        "url_for": url_for,
        "full_url_for": full_url_for,
        "current_url": current_url,
        "is_current_url": is_current_url,
        "asset_url": asset_url,
    }


def path_with_query(url: URL) -> str:
    """Path of ``url`` plus its query string, without scheme or host."""
    return f"{url.path}?{url.query}" if url.query else url.path


def theme_asset_url(theme: Theme, path: str, prefix: str = DEFAULT_ASSETS_PREFIX) -> str:
    """URL of a theme asset as served by ``mount_theme_assets``."""
    return f"{prefix.rstrip('/')}/{theme.name}/{path.lstrip('/')}"
