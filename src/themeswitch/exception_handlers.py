"""
Exception handlers for themed applications.

Translates theme errors raised by route handlers into responses:
- TemplateNotFound: 404 (the page has no template in the active theme)
- NoDefaultTheme: 500 (no theme can render anything)
- ThemeNotFound: 404 (only reachable when code calls ``catalog.load`` directly)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .errors import NoDefaultTheme, TemplateNotFound, ThemeNotFound

if TYPE_CHECKING:
    from starlette.applications import Starlette

logger = logging.getLogger(__name__)


def register_exception_handlers(app: Starlette) -> None:
    """
    Register theme exception handlers on a Starlette or FastAPI application.

    Args:
        app: Application instance
    """

    async def template_not_found_handler(request: Request, exc: TemplateNotFound) -> Response:
        """Convert a missing template to 404 Not Found."""
        logger.warning("%s (path=%s)", exc.message, request.url.path)
        return JSONResponse(
            status_code=404,
            content={
                "detail": exc.message,
                "type": "template_not_found",
                "template": exc.template,
                "theme": exc.theme_name,
            },
        )

    async def theme_not_found_handler(request: Request, exc: ThemeNotFound) -> Response:
        """Convert a missing theme to 404 Not Found."""
        return JSONResponse(
            status_code=404,
            content={"detail": exc.message, "type": "theme_not_found", "theme": exc.theme_name},
        )

    async def no_default_theme_handler(request: Request, exc: NoDefaultTheme) -> Response:
        """Convert a missing default theme to 500 Internal Server Error."""
        logger.error("%s (path=%s)", exc.message, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": exc.message, "type": "no_default_theme"},
        )

    app.add_exception_handler(TemplateNotFound, template_not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ThemeNotFound, theme_not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(NoDefaultTheme, no_default_theme_handler)  # type: ignore[arg-type]
