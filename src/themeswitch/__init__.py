"""
themeswitch - per-request theme selection and themed template rendering
for Starlette and FastAPI applications.

Themes are directories of templates and assets, optionally inheriting from
a parent theme. Each request picks a theme from a query parameter, a cookie
or the configured default, and renders through a Jinja2 environment that
falls back along the parent chain.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version

from .assets import LineageStaticFiles, mount_theme_assets
from .catalog import ThemeCatalog
from .context import get_current_theme
from .conventions import FLAT, NESTED, EngineConvention, get_convention, register_convention
from .errors import ConfigError, NoDefaultTheme, TemplateNotFound, ThemeError, ThemeNotFound
from .exception_handlers import register_exception_handlers
from .logging import setup_logging
from .middleware import ThemeMiddleware, get_renderer, get_theme, install_themes
from .models import Theme
from .renderer import BoundRenderer, Jinja2Backend, TemplateBackend, TemplateRenderer
from .resolver import RequestSignals, ThemeResolver
from .settings import EngineSettings, ThemeSettings, load_settings

try:
    __version__ = _metadata_version("themeswitch")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    # Model
    "Theme",
    "ThemeCatalog",
    "ThemeResolver",
    "RequestSignals",
    # Rendering
    "TemplateBackend",
    "Jinja2Backend",
    "TemplateRenderer",
    "BoundRenderer",
    # Conventions and settings
    "EngineConvention",
    "FLAT",
    "NESTED",
    "get_convention",
    "register_convention",
    "EngineSettings",
    "ThemeSettings",
    "load_settings",
    # Web integration
    "ThemeMiddleware",
    "install_themes",
    "get_theme",
    "get_renderer",
    "get_current_theme",
    "register_exception_handlers",
    "LineageStaticFiles",
    "mount_theme_assets",
    "setup_logging",
    # Errors
    "ThemeError",
    "ThemeNotFound",
    "TemplateNotFound",
    "NoDefaultTheme",
    "ConfigError",
]
