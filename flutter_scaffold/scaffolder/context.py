"""Project context: facts about the target Flutter project.

Reads ``pubspec.yaml`` through the :class:`FileSystem` collaborator to supply
the ``package_name`` binding and the declared dependencies used by the
checker's dependency warnings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import yaml

from flutter_scaffold.scaffolder.fs import FileSystem
from flutter_scaffold.scaffolder.naming import pascal_to_snake

PUBSPEC = "pubspec.yaml"


@dataclass(frozen=True)
class ProjectContext:
    """Project facts consumed by the binder and the checker."""

    package_name: str
    dependencies: frozenset[str] = field(default_factory=frozenset)
    has_pubspec: bool = False

    def bindings(self) -> dict[str, str]:
        return {"package_name": self.package_name}


def load_project_context(
    fs: FileSystem,
    fallback_name: str = "",
    override_name: str = "",
) -> ProjectContext:
    """Build a :class:`ProjectContext` for the project behind *fs*.

    ``package_name`` resolution order: *override_name*, the ``name`` key of
    ``pubspec.yaml``, then *fallback_name* (usually the project directory
    name) normalised to snake_case.  A ``pubspec.yaml`` that is not valid
    YAML, or not UTF-8, is treated as absent.
    """
    pubspec: dict = {}
    has_pubspec = fs.is_file(PUBSPEC)
    if has_pubspec:
        try:
            loaded = yaml.safe_load(fs.read_text(PUBSPEC))
        except (yaml.YAMLError, UnicodeDecodeError):
            loaded = None
        if isinstance(loaded, dict):
            pubspec = loaded

    name = override_name or str(pubspec.get("name") or "") or _package_slug(fallback_name)

    deps: set[str] = set()
    for section in ("dependencies", "dev_dependencies"):
        entries = pubspec.get(section)
        if isinstance(entries, dict):
            deps.update(str(key) for key in entries)

    return ProjectContext(
        package_name=name,
        dependencies=frozenset(deps),
        has_pubspec=has_pubspec,
    )


def _package_slug(name: str) -> str:
    """Dart package names are lowercase with underscores."""
    slug = re.sub(r"[^a-z0-9]+", "_", pascal_to_snake(name.strip()))
    return slug.strip("_") or "app"
