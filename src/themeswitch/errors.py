"""
Error types for theme discovery, resolution, and rendering.
"""


class ThemeError(Exception):
    """Base exception for all themeswitch errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ThemeNotFound(ThemeError):
    """
    Raised when a theme name is absent from the catalog.

    The resolver recovers from this locally by falling back to the next
    request signal and finally to the default theme.
    """

    def __init__(self, theme_name: str):
        self.theme_name = theme_name
        super().__init__(f'Theme "{theme_name}" could not be found')


class TemplateNotFound(ThemeError):
    """
    Raised when a template is missing from the active theme and every
    theme in its parent chain.

    Always surfaced to the caller; never silently recovered.
    """

    def __init__(self, template: str, theme_name: str):
        self.template = template
        self.theme_name = theme_name
        super().__init__(f'Template "{template}" not found in theme "{theme_name}"')


class NoDefaultTheme(ThemeError):
    """
    Raised when no default theme is available.

    Examples:
    - The themes directory is missing or empty
    - ``require_default`` is set and no theme is flagged default
    """

    def __init__(self, message: str = "No default theme is available"):
        super().__init__(message)


class ConfigError(ThemeError):
    """Raised when theme settings are malformed."""

    pass
