"""Tests for theme-aware template rendering."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from themeswitch.catalog import ThemeCatalog
from themeswitch.errors import TemplateNotFound
from themeswitch.renderer import BoundRenderer, Jinja2Backend, TemplateRenderer, locate_template


@pytest.fixture
def renderer(catalog: ThemeCatalog) -> TemplateRenderer:
    return TemplateRenderer(catalog)


class TestTemplateLookup:
    def test_path_chain_nearest_first(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        dark = catalog.load("dark")
        chain = renderer.template_path_chain(dark)
        assert chain == [dark.templates_path, catalog.load("default").templates_path]

    def test_own_template_wins(self, renderer: TemplateRenderer, catalog: ThemeCatalog) -> None:
        dark = catalog.load("dark")
        assert renderer.get_template_path(dark, "home.html") == dark.root_path / "home.html"

    def test_falls_back_to_parent(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        dark = catalog.load("dark")
        default = catalog.load("default")
        assert renderer.template_exists(dark, "about.html")
        assert renderer.get_template_path(dark, "about.html") == default.root_path / "about.html"
        assert (
            renderer.get_template_path(dark, "partials/nav.html")
            == default.root_path / "partials" / "nav.html"
        )

    def test_missing_everywhere(self, renderer: TemplateRenderer, catalog: ThemeCatalog) -> None:
        dark = catalog.load("dark")
        assert renderer.template_exists(dark, "missing.html") is False
        with pytest.raises(TemplateNotFound) as exc_info:
            renderer.get_template_path(dark, "missing.html")
        assert exc_info.value.template == "missing.html"
        assert exc_info.value.theme_name == "dark"
        assert str(exc_info.value) == 'Template "missing.html" not found in theme "dark"'

    def test_theme_without_parent_has_no_fallback(
        self, tmp_path: Path, theme_factory: Any
    ) -> None:
        theme_factory(tmp_path / "themes", "default", {"a.html": "a"})
        theme_factory(tmp_path / "themes", "solo", {"b.html": "b"})
        catalog = ThemeCatalog.discover(tmp_path)
        renderer = TemplateRenderer(catalog)
        assert renderer.template_exists(catalog.load("solo"), "a.html") is False

    def test_parent_prefix_skips_own_theme(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        dark = catalog.load("dark")
        default = catalog.load("default")
        assert (
            renderer.get_template_path(dark, "parent://home.html")
            == default.root_path / "home.html"
        )
        assert renderer.template_exists(default, "parent://home.html") is False

    def test_directory_traversal_rejected(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        (catalog.themes_dir / "secret.html").write_text("secret", encoding="utf-8")
        dark = catalog.load("dark")
        assert renderer.template_exists(dark, "../secret.html") is False
        with pytest.raises(TemplateNotFound):
            renderer.render(dark, "../secret.html")

    def test_directories_are_not_templates(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        assert renderer.template_exists(catalog.load("default"), "partials") is False


class TestRendering:
    def test_renders_own_template(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        html = renderer.render(catalog.load("dark"), "home.html", {"title": "Hi"})
        assert html == "<h1>Hi</h1><p>dark home</p>"

    def test_renders_inherited_template_with_active_theme(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        assert renderer.render(catalog.load("dark"), "about.html") == "about from dark"

    def test_extends_parent_version(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        assert renderer.render(catalog.load("dark"), "layout.html") == "<main>dark:layout</main>"
        assert renderer.render(catalog.load("default"), "layout.html") == "<main>layout</main>"

    def test_parent_prefix_chains_across_three_levels(
        self, app_root: Path, theme_factory: Any
    ) -> None:
        theme_factory(
            app_root / "themes",
            "midnight",
            {
                "layout.html": (
                    '{% extends "parent://layout.html" %}'
                    "{% block content %}mid:{{ super() }}{% endblock %}"
                )
            },
            {"parent": "dark"},
        )
        catalog = ThemeCatalog.discover(app_root)
        renderer = TemplateRenderer(catalog)
        midnight = catalog.load("midnight")

        assert renderer.render(midnight, "layout.html") == "<main>mid:dark:layout</main>"
        assert renderer.render(catalog.load("dark"), "layout.html") == "<main>dark:layout</main>"

    def test_locate_template_start_index(self, catalog: ThemeCatalog) -> None:
        dark, default = (t.templates_path for t in catalog.lineage(catalog.load("dark")))
        chain = [dark, default]
        assert locate_template(chain, "layout.html") == (0, dark / "layout.html")
        assert locate_template(chain, "parent://layout.html") == (1, default / "layout.html")
        assert locate_template(chain, "lineage://1/home.html") == (1, default / "home.html")
        assert locate_template(chain, "lineage://2/home.html") is None
        assert locate_template(chain, "lineage://x/home.html") is None

    def test_missing_template_raises(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        with pytest.raises(TemplateNotFound):
            renderer.render(catalog.load("default"), "missing.html")

    def test_html_is_autoescaped(self, renderer: TemplateRenderer, catalog: ThemeCatalog) -> None:
        html = renderer.render(catalog.load("default"), "home.html", {"title": "<b>x</b>"})
        assert "&lt;b&gt;x&lt;/b&gt;" in html

    def test_theme_variable_cannot_be_overridden(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        renderer.add_global("theme", "bogus")
        html = renderer.render(catalog.load("dark"), "about.html", {"theme": "bogus"})
        assert html == "about from dark"


class TestGlobals:
    def test_globals_reach_templates(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        renderer.add_global("title", "Global title")
        assert renderer.render(catalog.load("default"), "home.html").startswith(
            "<h1>Global title</h1>"
        )

    def test_data_beats_globals(self, renderer: TemplateRenderer, catalog: ThemeCatalog) -> None:
        renderer.add_global("title", "Global title")
        html = renderer.render(catalog.load("default"), "home.html", {"title": "Page"})
        assert html.startswith("<h1>Page</h1>")

    def test_build_context_order(self, renderer: TemplateRenderer, catalog: ThemeCatalog) -> None:
        renderer.add_global("a", "global")
        renderer.add_global("b", "global")
        dark = catalog.load("dark")
        context = renderer.build_context(dark, {"a": "data"}, {"b": "extra", "c": "extra"})
        assert context == {"a": "data", "b": "extra", "c": "extra", "theme": dark}

    def test_globals_property_is_a_copy(self, renderer: TemplateRenderer) -> None:
        renderer.add_global("site", "x")
        renderer.globals["site"] = "changed"
        assert renderer.globals == {"site": "x"}


class TestBoundRenderer:
    def test_bind_renders_for_theme(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        view = renderer.bind(catalog.load("dark"))
        assert isinstance(view, BoundRenderer)
        assert view.get_theme().name == "dark"
        assert view.render("home.html", {"title": "T"}) == "<h1>T</h1><p>dark home</p>"

    def test_local_globals_do_not_leak(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        first = renderer.bind(catalog.load("default"))
        second = renderer.bind(catalog.load("default"))
        first.add_global("title", "first")

        assert first.render("home.html").startswith("<h1>first</h1>")
        assert second.render("home.html").startswith("<h1></h1>")
        assert "title" not in renderer.globals

    def test_set_theme_clears_local_globals(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        renderer.add_global("site", "shared")
        view = renderer.bind(catalog.load("default"))
        view.add_global("title", "local")

        view.set_theme(catalog.load("dark"))

        assert view.theme.name == "dark"
        assert view.globals == {"site": "shared"}
        assert view.render("about.html") == "about from dark"

    def test_bound_lookup(self, renderer: TemplateRenderer, catalog: ThemeCatalog) -> None:
        view = renderer.bind(catalog.load("dark"))
        assert view.template_exists("partials/nav.html")
        assert view.get_template_path("home.html") == catalog.load("dark").root_path / "home.html"

    def test_template_response(self, renderer: TemplateRenderer, catalog: ThemeCatalog) -> None:
        view = renderer.bind(catalog.load("default"))
        response = view.template_response(
            "home.html", {"title": "T"}, status_code=201, headers={"X-Theme": "default"}
        )
        assert response.status_code == 201
        assert response.body == b"<h1>T</h1><p>default home</p>"
        assert response.headers["x-theme"] == "default"
        assert response.media_type == "text/html"


class TestBackends:
    def test_custom_backend_receives_chain_and_context(self, catalog: ThemeCatalog) -> None:
        backend = MagicMock()
        backend.render.return_value = "rendered"
        renderer = TemplateRenderer(catalog, backend=backend)
        dark = catalog.load("dark")

        assert renderer.render(dark, "about.html", {"x": 1}) == "rendered"

        backend.render.assert_called_once_with(
            renderer.template_path_chain(dark), "about.html", {"x": 1, "theme": dark}
        )

    def test_custom_backend_not_called_for_missing_template(self, catalog: ThemeCatalog) -> None:
        backend = MagicMock()
        renderer = TemplateRenderer(catalog, backend=backend)
        with pytest.raises(TemplateNotFound):
            renderer.render(catalog.load("dark"), "missing.html")
        backend.render.assert_not_called()

    def test_environment_cached_per_search_path(self, catalog: ThemeCatalog) -> None:
        backend = Jinja2Backend()
        renderer = TemplateRenderer(catalog, backend=backend)
        chain = renderer.template_path_chain(catalog.load("dark"))

        env = backend.get_environment(chain)
        assert backend.get_environment(list(chain)) is env
        assert backend.get_environment(chain[1:]) is not env

        backend.clear_cache()
        assert backend.get_environment(chain) is not env

    def test_filters(self, catalog: ThemeCatalog, theme_factory: Any) -> None:
        theme_factory(catalog.themes_dir, "default", {"shout.html": "{{ word|shout }}"})
        backend = Jinja2Backend(filters={"shout": lambda s: s.upper() + "!"})
        renderer = TemplateRenderer(catalog, backend=backend)
        assert renderer.render(catalog.load("default"), "shout.html", {"word": "hi"}) == "HI!"

    def test_add_filter_updates_existing_environments(self, catalog: ThemeCatalog) -> None:
        backend = Jinja2Backend()
        renderer = TemplateRenderer(catalog, backend=backend)
        chain = renderer.template_path_chain(catalog.load("default"))
        env = backend.get_environment(chain)

        backend.add_filter("double", lambda s: s * 2)

        assert env.filters["double"]("ab") == "abab"


class TestListTemplates:
    def test_nearest_theme_provides_each_template(
        self, renderer: TemplateRenderer, catalog: ThemeCatalog
    ) -> None:
        templates = renderer.list_templates(catalog.load("dark"))
        assert {name: owner.name for name, owner in templates.items()} == {
            "about.html": "default",
            "home.html": "dark",
            "layout.html": "dark",
            "partials/nav.html": "default",
        }

    def test_skips_assets_manifest_and_hidden_files(
        self, tmp_path: Path, theme_factory: Any
    ) -> None:
        theme_factory(
            tmp_path / "themes",
            "default",
            {"page.html": "p", ".draft.html": "d"},
            {"label": "Default"},
            templates_subdir="",
            assets={"app.js": "js"},
        )
        catalog = ThemeCatalog.discover(tmp_path)
        assert list(TemplateRenderer(catalog).list_templates(catalog.load("default"))) == [
            "page.html"
        ]
