"""flutter-scaffold configuration.

Typed configuration for the engine and CLI.  Pydantic v2 models validate at
construction time and serialise to/from JSON or environment variables.
Command-line flags override whatever the configuration provides.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}


class ToolchainConfig(BaseModel):
    """Post-write toolchain behaviour."""

    enabled: bool = Field(default=False, description="Run TemplateSet toolchain steps after writing")
    timeout: int = Field(default=300, ge=10, description="Per-step timeout in seconds")


class Config(BaseModel):
    """Global flutter-scaffold configuration.

    Instances are created once by the CLI entry point (or a test) and passed
    to :class:`~flutter_scaffold.engine.ScaffoldEngine`.
    """

    project_root: Path = Field(default=Path("."), description="Flutter project to scaffold into")
    templates_dir: Optional[Path] = Field(
        default=None, description="Template registry root; the bundled templates when unset"
    )
    commands_dir: Optional[Path] = Field(
        default=None, description="Command catalog directory; the bundled catalog when unset"
    )
    package_name: str = Field(
        default="", description="Overrides the package name read from pubspec.yaml"
    )
    dry_run: bool = Field(default=False, description="Plan and report without writing")
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            FLUTTER_SCAFFOLD_ROOT, FLUTTER_SCAFFOLD_TEMPLATES_DIR,
            FLUTTER_SCAFFOLD_COMMANDS_DIR, FLUTTER_SCAFFOLD_PACKAGE_NAME,
            FLUTTER_SCAFFOLD_DRY_RUN, FLUTTER_SCAFFOLD_RUN_TOOLCHAIN,
            FLUTTER_SCAFFOLD_TOOLCHAIN_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("FLUTTER_SCAFFOLD_ROOT"):
            kwargs["project_root"] = Path(os.environ["FLUTTER_SCAFFOLD_ROOT"])
        if os.environ.get("FLUTTER_SCAFFOLD_TEMPLATES_DIR"):
            kwargs["templates_dir"] = Path(os.environ["FLUTTER_SCAFFOLD_TEMPLATES_DIR"])
        if os.environ.get("FLUTTER_SCAFFOLD_COMMANDS_DIR"):
            kwargs["commands_dir"] = Path(os.environ["FLUTTER_SCAFFOLD_COMMANDS_DIR"])
        if os.environ.get("FLUTTER_SCAFFOLD_PACKAGE_NAME"):
            kwargs["package_name"] = os.environ["FLUTTER_SCAFFOLD_PACKAGE_NAME"]
        if os.environ.get("FLUTTER_SCAFFOLD_DRY_RUN"):
            kwargs["dry_run"] = os.environ["FLUTTER_SCAFFOLD_DRY_RUN"].lower() in _TRUTHY

        toolchain_kwargs: dict[str, Any] = {}
        if os.environ.get("FLUTTER_SCAFFOLD_RUN_TOOLCHAIN"):
            toolchain_kwargs["enabled"] = (
                os.environ["FLUTTER_SCAFFOLD_RUN_TOOLCHAIN"].lower() in _TRUTHY
            )
        if os.environ.get("FLUTTER_SCAFFOLD_TOOLCHAIN_TIMEOUT"):
            toolchain_kwargs["timeout"] = int(os.environ["FLUTTER_SCAFFOLD_TOOLCHAIN_TIMEOUT"])

        return cls(toolchain=ToolchainConfig(**toolchain_kwargs), **kwargs)
