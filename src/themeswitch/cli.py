"""CLI for inspecting themes.

``themeswitch list``      List discovered themes.
``themeswitch resolve``   Show which theme a request would get.
``themeswitch which``     Show which file a template resolves to.
``themeswitch render``    Render a template to stdout.
``themeswitch show``      Show a theme, its lineage and effective templates.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from .catalog import ThemeCatalog
from .errors import ThemeError
from .logging import setup_logging
from .models import Theme
from .renderer import TemplateRenderer
from .resolver import RequestSignals, ThemeResolver
from .settings import ThemeSettings, load_settings

app = typer.Typer(help="Theme discovery, resolution and rendering tools", no_args_is_help=True)

_ROOT_OPTION = typer.Option(Path("."), "--root", "-r", help="Application root directory")
_CONFIG_OPTION = typer.Option(
    None, "--config", "-c", help="TOML file with a [theme] table"
)
_ENGINE_OPTION = typer.Option(None, "--engine", "-e", help="Engine convention (flat, nested)")

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON Lines"),
) -> None:
    """Theme discovery, resolution and rendering tools."""
    setup_logging(logging.DEBUG if verbose else logging.WARNING, json_output=json_logs)


def _load_catalog(root: Path, config: Path | None, engine: str | None) -> ThemeCatalog:
    settings = load_settings(config) if config else ThemeSettings()
    if engine:
        settings = settings.model_copy(update={"engine": engine})
    return ThemeCatalog.discover(root.resolve(), settings)


def _fail(error: ThemeError) -> NoReturn:
    typer.echo(f"Error: {error.message}", err=True)
    raise typer.Exit(code=1)


def _pick_theme(catalog: ThemeCatalog, name: str | None) -> Theme:
    if name is None:
        return catalog.get_default_theme()
    return catalog.load(name)


@app.command(name="list")
def list_command(
    root: Path = _ROOT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    engine: str | None = _ENGINE_OPTION,
) -> None:
    """List discovered themes."""
    try:
        catalog = _load_catalog(root, config, engine)
    except ThemeError as e:
        _fail(e)

    if not len(catalog):
        typer.echo(f"No themes found in {catalog.themes_dir}")
        raise typer.Exit(code=0)

    for theme in catalog:
        marker = "*" if theme.is_default else " "
        parent = f" (parent: {theme.parent_name})" if theme.parent_name else ""
        typer.echo(f"{marker} {theme.name}{parent}  {theme.templates_path}")


@app.command(name="resolve")
def resolve_command(
    query: str | None = typer.Option(None, "--query", "-q", help="Query parameter value"),
    cookie: str | None = typer.Option(None, "--cookie", help="Cookie value"),
    root: Path = _ROOT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    engine: str | None = _ENGINE_OPTION,
) -> None:
    """Show which theme a request with the given signals would get."""
    try:
        catalog = _load_catalog(root, config, engine)
        resolver = ThemeResolver(catalog)
        theme = resolver.resolve(RequestSignals(query_value=query, cookie_value=cookie))
    except ThemeError as e:
        _fail(e)
    typer.echo(f"{theme.name} (from {resolver.source})")


@app.command(name="which")
def which_command(
    template: str = typer.Argument(..., help="Template name, e.g. home.html"),
    theme_name: str | None = typer.Option(None, "--theme", "-t", help="Theme (default theme if omitted)"),
    root: Path = _ROOT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    engine: str | None = _ENGINE_OPTION,
) -> None:
    """Show the file a template resolves to, walking the parent chain."""
    try:
        catalog = _load_catalog(root, config, engine)
        theme = _pick_theme(catalog, theme_name)
        path = TemplateRenderer(catalog).get_template_path(theme, template)
    except ThemeError as e:
        _fail(e)
    typer.echo(str(path))


@app.command(name="render")
def render_command(
    template: str = typer.Argument(..., help="Template name, e.g. home.html"),
    theme_name: str | None = typer.Option(None, "--theme", "-t", help="Theme (default theme if omitted)"),
    data: str | None = typer.Option(None, "--data", "-d", help="Template data as a JSON object"),
    root: Path = _ROOT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    engine: str | None = _ENGINE_OPTION,
) -> None:
    """Render a template with the given theme and print the result."""
    context: dict[str, object] = {}
    if data:
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError as e:
            typer.echo(f"Error: --data is not valid JSON: {e}", err=True)
            raise typer.Exit(code=2) from e
        if not isinstance(parsed, dict):
            typer.echo("Error: --data must be a JSON object", err=True)
            raise typer.Exit(code=2)
        context = parsed

    try:
        catalog = _load_catalog(root, config, engine)
        theme = _pick_theme(catalog, theme_name)
        output = TemplateRenderer(catalog).render(theme, template, context)
    except ThemeError as e:
        _fail(e)
    typer.echo(output)


@app.command(name="show")
def show_command(
    theme_name: str | None = typer.Argument(None, help="Theme (default theme if omitted)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    root: Path = _ROOT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    engine: str | None = _ENGINE_OPTION,
) -> None:
    """Show a theme, its parent chain and the templates it renders."""
    try:
        catalog = _load_catalog(root, config, engine)
        theme = _pick_theme(catalog, theme_name)
    except ThemeError as e:
        _fail(e)

    lineage = [t.name for t in catalog.lineage(theme)]
    templates = TemplateRenderer(catalog).list_templates(theme)

    if json_output:
        data = {
            "name": theme.name,
            "label": theme.label,
            "version": theme.version,
            "default": theme.is_default,
            "parent": theme.parent_name,
            "lineage": lineage,
            "templates_path": str(theme.templates_path),
            "assets_path": str(theme.assets_path),
            "config": theme.config,
            "templates": {name: owner.name for name, owner in templates.items()},
        }
        console.print_json(json.dumps(data, default=str))
        return

    console.print(f"[bold]{theme.label}[/bold] ({theme.name})")
    console.print(f"  Default:   {'yes' if theme.is_default else 'no'}")
    console.print(f"  Version:   {theme.version or '[dim]not set[/dim]'}")
    console.print(f"  Lineage:   {' -> '.join(lineage)}")
    console.print(f"  Templates: {theme.templates_path}", soft_wrap=True)
    console.print(f"  Assets:    {theme.assets_path}", soft_wrap=True)

    if not templates:
        console.print("[dim]No templates found.[/dim]")
        return

    table = Table(title="Templates")
    table.add_column("Template")
    table.add_column("Provided by")
    for name, owner in templates.items():
        style = None if owner.name == theme.name else "dim"
        table.add_row(name, owner.name, style=style)
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
