"""
Request context for the active theme.

The middleware publishes the theme chosen for the request being handled,
so code without access to the request object (template filters, services)
can still find it.
"""

from __future__ import annotations

from contextvars import ContextVar, Token

from .models import Theme

_current_theme: ContextVar[Theme | None] = ContextVar("themeswitch_current_theme", default=None)


def get_current_theme() -> Theme | None:
    """Get the theme of the request being handled, if any."""
    return _current_theme.get()


def set_current_theme(theme: Theme | None) -> Token[Theme | None]:
    """Set the current theme; returns a token for ``reset_current_theme``."""
    return _current_theme.set(theme)


def reset_current_theme(token: Token[Theme | None]) -> None:
    _current_theme.reset(token)
