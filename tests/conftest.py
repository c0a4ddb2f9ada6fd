"""Shared pytest fixtures for the flutter-scaffold test suite.

Provides reusable fixtures for:
- An in-memory filesystem standing in for the target project
- The bundled command catalog and template registry (loaded once)
- Engines wired to the in-memory filesystem
- Small hand-written command definitions for resolver/binder tests
"""

from __future__ import annotations

import textwrap
from pathlib import Path, PurePosixPath

import pytest

from flutter_scaffold.commands.loader import CommandCatalog, parse_command
from flutter_scaffold.commands.models import CommandSpec
from flutter_scaffold.config import Config
from flutter_scaffold.engine import ScaffoldEngine
from flutter_scaffold.scaffolder.registry import TemplateRegistry
from flutter_scaffold.scaffolder.templates import TemplateRenderer


# ---------------------------------------------------------------------------
# In-memory filesystem
# ---------------------------------------------------------------------------


class MemoryFileSystem:
    """Dict-backed :class:`~flutter_scaffold.scaffolder.fs.FileSystem` fake.

    Directories are implied by the files below them; ``mkdir`` records
    empty ones.  Every write is logged in ``writes`` so tests can assert the
    writer stayed untouched.
    """

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.dirs: set[str] = set()
        self.writes: list[tuple[str, str]] = []

    @staticmethod
    def _norm(path: str) -> str:
        return str(PurePosixPath(path))

    def mkdir(self, path: str) -> None:
        self.dirs.add(self._norm(path))

    def exists(self, path: str) -> bool:
        return self.is_file(path) or self.is_dir(path)

    def is_file(self, path: str) -> bool:
        return self._norm(path) in self.files

    def is_dir(self, path: str) -> bool:
        path = self._norm(path)
        if path in self.dirs:
            return True
        prefix = path.rstrip("/") + "/"
        return any(f.startswith(prefix) for f in self.files) or any(
            d.startswith(prefix) for d in self.dirs
        )

    def read_text(self, path: str) -> str:
        try:
            return self.files[self._norm(path)]
        except KeyError:
            raise FileNotFoundError(path) from None

    def write_text(self, path: str, content: str) -> None:
        self.writes.append(("write", self._norm(path)))
        self.files[self._norm(path)] = content

    def append_text(self, path: str, content: str) -> None:
        self.writes.append(("append", self._norm(path)))
        path = self._norm(path)
        self.files[path] = self.files.get(path, "") + content


# ---------------------------------------------------------------------------
# Bundled catalog and registry
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def catalog() -> CommandCatalog:
    return CommandCatalog.load()


@pytest.fixture(scope="session")
def registry() -> TemplateRegistry:
    return TemplateRegistry.load()


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    """Empty project."""
    return MemoryFileSystem()


@pytest.fixture
def flutter_fs() -> MemoryFileSystem:
    """Project with a pubspec declaring the usual state-management packages."""
    pubspec = textwrap.dedent("""\
        name: shop_app
        dependencies:
          flutter:
            sdk: flutter
          flutter_riverpod: ^2.5.0
        dev_dependencies:
          flutter_test:
            sdk: flutter
    """)
    return MemoryFileSystem({"pubspec.yaml": pubspec, "lib/main.dart": "void main() {}\n"})


@pytest.fixture
def engine(catalog, registry, memory_fs) -> ScaffoldEngine:
    """Engine over an empty in-memory project named ``app``."""
    config = Config(project_root=Path("/projects/app"))
    return ScaffoldEngine(config, catalog=catalog, registry=registry, fs=memory_fs)


@pytest.fixture
def flutter_engine(catalog, registry, flutter_fs) -> ScaffoldEngine:
    """Engine over the in-memory project with a pubspec."""
    config = Config(project_root=Path("/projects/shop_app"))
    return ScaffoldEngine(config, catalog=catalog, registry=registry, fs=flutter_fs)


# ---------------------------------------------------------------------------
# Hand-written command definitions
# ---------------------------------------------------------------------------


SAMPLE_COMMAND = textwrap.dedent("""\
    ---
    name: sample
    description: Sample command for tests
    primary:
      name: feature
      convention: snake
    arguments:
      - name: state
        kind: choice
        choices: [riverpod, bloc]
        default: riverpod
      - name: migrate
        kind: choice
        choices: [riverpod, bloc]
        distinct_from: state
      - name: with-tests
        kind: boolean
      - name: tags
        kind: list
        choices: [a, b, c]
        default: [a]
      - name: owner
        kind: string
        convention: snake
      - name: backend
        kind: choice
        choices: [firebase, rest]
        required: true
    templates: sample
    variant_argument: state
    overwrite_arguments: [migrate]
    migrate_argument: migrate
    ---
    # /sample

    Usage notes.
""")


@pytest.fixture
def sample_command() -> CommandSpec:
    return parse_command(SAMPLE_COMMAND, source="sample.md")


@pytest.fixture
def make_fs():
    """Factory for pre-populated in-memory projects: ``make_fs({path: text})``."""
    return MemoryFileSystem
