"""
Theme value entity.

A Theme is an immutable descriptor of one discovered theme directory. The
catalog builds every instance; nothing mutates them afterwards.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Theme(BaseModel):
    """
    Descriptor of a discovered theme.

    Example:
        Theme(
            name="dark",
            root_path=Path("/srv/app/templates/themes/dark"),
            parent_name="default",
            config={"parent": "default", "label": "Dark"},
        )
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Unique theme identifier, keys the catalog")
    root_path: Path = Field(description="Absolute path to the theme directory")
    is_default: bool = Field(default=False, description="Whether this is the catalog default")
    parent_name: str | None = Field(
        default=None, description="Name of the theme consulted for missing templates"
    )
    config: dict[str, Any] = Field(
        default_factory=dict, description="Contents of the theme.json manifest"
    )
    templates_subdir: str = Field(
        default="", description="Template directory relative to root_path ('' = root)"
    )

    @property
    def assets_path(self) -> Path:
        return self.root_path / "assets"

    @property
    def templates_path(self) -> Path:
        if not self.templates_subdir:
            return self.root_path
        return self.root_path / self.templates_subdir

    @property
    def label(self) -> str:
        """Human-readable name from the manifest, falling back to the theme name."""
        label = self.config.get("label")
        if isinstance(label, str) and label.strip():
            return label.strip()
        return self.name

    @property
    def version(self) -> str | None:
        version = self.config.get("version")
        return str(version) if version is not None else None

    def with_default(self, is_default: bool) -> Theme:
        """Return a copy with a different default flag."""
        if is_default == self.is_default:
            return self
        return self.model_copy(update={"is_default": is_default})

    def __str__(self) -> str:
        return self.name
