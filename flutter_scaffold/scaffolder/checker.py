"""Conflict and precondition checks against the target project.

Every rendered path is classified into a :class:`PlannedChange`:

``create``         path does not exist yet
``overwrite``      path exists and the invocation asked to overwrite
``conflict``       path exists and no overwrite was requested
``update-barrel``  aggregator file exists; missing export lines get appended
``unchanged``      aggregator file already contains every line

Barrel templates sharing a path are merged before classification.  The
checker collects every problem instead of stopping at the first one so the
caller can report all of them at once.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field

from flutter_scaffold.commands.models import (
    Precondition,
    PreconditionKind,
    ResolvedOptions,
)
from flutter_scaffold.errors import (
    FileAlreadyExists,
    PreconditionNotMet,
    ScaffoldError,
)
from flutter_scaffold.scaffolder.fs import FileSystem
from flutter_scaffold.scaffolder.registry import conditions_hold
from flutter_scaffold.scaffolder.templates import RenderedFile, TemplateRenderer


class Action(str, Enum):
    CREATE = "create"
    OVERWRITE = "overwrite"
    CONFLICT = "conflict"
    UPDATE_BARREL = "update-barrel"
    UNCHANGED = "unchanged"


class PlannedChange(BaseModel):
    """What the writer will do with one target path."""

    path: str = Field(..., description="Project-relative target path")
    action: Action
    provenance: list[str] = Field(default_factory=list, description="Producing template ids")
    content: str = Field(default="", description="Full content for create/overwrite")
    append_lines: list[str] = Field(
        default_factory=list, description="Lines appended to an existing barrel"
    )


@dataclass
class CheckResult:
    """Outcome of :func:`check_plan`."""

    changes: list[PlannedChange] = field(default_factory=list)
    errors: list[ScaffoldError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def check_plan(
    files: Sequence[RenderedFile],
    fs: FileSystem,
    *,
    overwrite: bool = False,
    preconditions: Sequence[Precondition] = (),
    options: ResolvedOptions | None = None,
    bindings: Mapping[str, str] | None = None,
    renderer: TemplateRenderer | None = None,
    dependencies: Iterable[str] = (),
    declared_dependencies: Iterable[str] | None = None,
) -> CheckResult:
    """Classify *files* against *fs* and verify preconditions.

    Args:
        files: Renderer output.
        fs: Filesystem query collaborator.
        overwrite: Allow existing non-barrel files to be replaced.
        preconditions: Command preconditions; their path patterns are
            rendered with *bindings* and their triggers evaluated against
            *options*.
        dependencies: pubspec packages the generated code needs.
        declared_dependencies: Packages the project declares, or ``None``
            when the project has no ``pubspec.yaml`` (dependency warnings
            are then skipped).
    """
    result = CheckResult()

    if preconditions:
        if options is None or bindings is None or renderer is None:
            raise ValueError("preconditions need options, bindings and a renderer")
        result.errors.extend(
            check_preconditions(preconditions, fs, options, bindings, renderer)
        )

    for path, group in _group_by_path(files):
        if group[0].barrel:
            change = _classify_barrel(path, group, fs)
        else:
            change = _classify_file(path, group[0], fs, overwrite)
        if change.action is Action.CONFLICT:
            result.errors.append(FileAlreadyExists(path))
        result.changes.append(change)

    if declared_dependencies is not None:
        declared = set(declared_dependencies)
        for dep in dependencies:
            if dep not in declared:
                result.warnings.append(
                    f"pubspec.yaml does not declare '{dep}' (run: flutter pub add {dep})"
                )
    return result


def check_preconditions(
    preconditions: Sequence[Precondition],
    fs: FileSystem,
    options: ResolvedOptions,
    bindings: Mapping[str, str],
    renderer: TemplateRenderer,
) -> list[PreconditionNotMet]:
    """Evaluate every applicable precondition; return the failures."""
    failures: list[PreconditionNotMet] = []
    for pre in preconditions:
        if not conditions_hold(pre.when, options):
            continue
        path = renderer.render_string(pre.path, bindings, f"precondition '{pre.description}'")
        description = renderer.render_string(pre.description, bindings)
        if pre.kind is PreconditionKind.DIR:
            holds = fs.is_dir(path)
        elif pre.kind is PreconditionKind.FILE:
            holds = fs.is_file(path)
        else:
            holds = fs.exists(path)
        if not holds:
            failures.append(PreconditionNotMet(description, path))
    return failures


# ---------------------------------------------------------------------------
# Barrel merging
# ---------------------------------------------------------------------------

def barrel_lines(content: str) -> list[str]:
    """Meaningful lines of a barrel body: stripped, non-empty, first occurrence wins."""
    seen: dict[str, None] = {}
    for line in content.splitlines():
        stripped = line.strip()
        if stripped:
            seen.setdefault(stripped, None)
    return list(seen)


def missing_barrel_lines(existing: str, wanted: Iterable[str]) -> list[str]:
    """Lines of *wanted* not already present in *existing*, in *wanted* order."""
    present = set(barrel_lines(existing))
    missing: list[str] = []
    for line in wanted:
        if line not in present and line not in missing:
            missing.append(line)
    return missing


def merge_barrel(existing: str, lines: Sequence[str]) -> str:
    """Return *existing* with *lines* appended; existing order is untouched."""
    if not lines:
        return existing
    prefix = existing
    if prefix and not prefix.endswith("\n"):
        prefix += "\n"
    return prefix + "".join(f"{line}\n" for line in lines)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _group_by_path(files: Sequence[RenderedFile]) -> list[tuple[str, list[RenderedFile]]]:
    groups: dict[str, list[RenderedFile]] = {}
    for item in files:
        groups.setdefault(item.path, []).append(item)
    return list(groups.items())


def _classify_file(
    path: str, item: RenderedFile, fs: FileSystem, overwrite: bool
) -> PlannedChange:
    if not fs.exists(path):
        action = Action.CREATE
    elif overwrite and fs.is_file(path):
        action = Action.OVERWRITE
    else:
        action = Action.CONFLICT
    return PlannedChange(
        path=path, action=action, provenance=[item.provenance], content=item.content
    )


def _classify_barrel(path: str, group: list[RenderedFile], fs: FileSystem) -> PlannedChange:
    wanted: list[str] = []
    for item in group:
        for line in barrel_lines(item.content):
            if line not in wanted:
                wanted.append(line)
    provenance = [item.provenance for item in group]

    if not fs.exists(path):
        return PlannedChange(
            path=path,
            action=Action.CREATE,
            provenance=provenance,
            content=merge_barrel("", wanted),
        )
    if not fs.is_file(path):
        return PlannedChange(path=path, action=Action.CONFLICT, provenance=provenance)
    try:
        existing = fs.read_text(path)
    except UnicodeDecodeError:
        return PlannedChange(path=path, action=Action.CONFLICT, provenance=provenance)

    missing = missing_barrel_lines(existing, wanted)
    return PlannedChange(
        path=path,
        action=Action.UPDATE_BARREL if missing else Action.UNCHANGED,
        provenance=provenance,
        append_lines=missing,
    )
