"""
Per-request theme resolution.

Precedence (highest first):
1. Query parameter (default ``?theme=``)
2. Cookie (default ``theme``)
3. Catalog default

A name that is not in the catalog falls through to the next source, so an
unknown theme silently degrades to the default. Only an empty catalog is an
error.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from .errors import ThemeNotFound
from .models import Theme
from .settings import DEFAULT_COOKIE_NAME, DEFAULT_QUERY_PARAM

if TYPE_CHECKING:
    from starlette.requests import Request

    from .catalog import ThemeCatalog

logger = logging.getLogger(__name__)

ResolutionSource = Literal["query", "cookie", "default"]


@dataclass(frozen=True)
class RequestSignals:
    """Theme names carried by a request. Empty values count as absent."""

    query_value: str | None = None
    cookie_value: str | None = None

    @classmethod
    def from_mappings(
        cls,
        query: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
        query_param: str = DEFAULT_QUERY_PARAM,
        cookie_name: str = DEFAULT_COOKIE_NAME,
    ) -> RequestSignals:
        return cls(
            query_value=_clean((query or {}).get(query_param)),
            cookie_value=_clean((cookies or {}).get(cookie_name)),
        )

    @classmethod
    def from_request(
        cls,
        request: Request,
        query_param: str = DEFAULT_QUERY_PARAM,
        cookie_name: str = DEFAULT_COOKIE_NAME,
    ) -> RequestSignals:
        return cls.from_mappings(request.query_params, request.cookies, query_param, cookie_name)


class ThemeResolver:
    """
    Picks the theme for one request and caches it until ``reset()``.

    A resolver carries request-scoped state; create one per request rather
    than sharing it between concurrent requests.
    """

    def __init__(
        self,
        catalog: ThemeCatalog,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        query_param: str = DEFAULT_QUERY_PARAM,
    ):
        self.catalog = catalog
        self.cookie_name = cookie_name
        self.query_param = query_param
        self._resolved: Theme | None = None
        self._source: ResolutionSource | None = None

    def resolve(self, signals: RequestSignals | None = None) -> Theme:
        """
        Resolve the theme for the given request signals.

        Returns the cached theme if this resolver already resolved one.

        Raises:
            NoDefaultTheme: The catalog is empty
        """
        if self._resolved is not None:
            return self._resolved

        signals = signals or RequestSignals()
        candidates: list[tuple[ResolutionSource, str | None]] = [
            ("query", signals.query_value),
            ("cookie", signals.cookie_value),
        ]
        for source, name in candidates:
            if not name:
                continue
            try:
                theme = self.catalog.load(name)
            except ThemeNotFound:
                logger.info("Theme %r from %s not found, falling back", name, source)
                continue
            return self._remember(theme, source)

        return self._remember(self.catalog.get_default_theme(), "default")

    def resolve_request(self, request: Request) -> Theme:
        """Resolve straight from a Starlette request."""
        signals = RequestSignals.from_request(request, self.query_param, self.cookie_name)
        return self.resolve(signals)

    def reset(self) -> None:
        """Forget the cached theme so the next ``resolve`` starts fresh."""
        self._resolved = None
        self._source = None

    @property
    def resolved_theme(self) -> Theme | None:
        return self._resolved

    @property
    def source(self) -> ResolutionSource | None:
        """Which signal produced the cached theme, or None when unresolved."""
        return self._source

    def get_theme(self) -> Theme:
        """The resolved theme, or the catalog default when nothing is resolved yet."""
        if self._resolved is not None:
            return self._resolved
        return self.catalog.get_default_theme()

    def is_default(self) -> bool:
        return self.get_theme().is_default

    def get_available_themes(self) -> list[Theme]:
        return self.catalog.get_available_themes()

    def _remember(self, theme: Theme, source: ResolutionSource) -> Theme:
        logger.debug("Resolved theme %r from %s", theme.name, source)
        self._resolved = theme
        self._source = source
        return theme


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None
