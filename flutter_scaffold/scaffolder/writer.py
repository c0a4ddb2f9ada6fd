"""Materialise a checked plan on the target filesystem.

The writer is all-or-nothing per invocation: it refuses a plan that still
contains conflicts, so a batch is either applied completely or not touched.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from flutter_scaffold.errors import FileAlreadyExists, ScaffoldAborted
from flutter_scaffold.scaffolder.checker import Action, PlannedChange, merge_barrel
from flutter_scaffold.scaffolder.fs import FileSystem


@dataclass
class WriteResult:
    """Paths touched by :func:`write_plan`, in plan order."""

    created: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)


def write_plan(changes: Sequence[PlannedChange], fs: FileSystem) -> WriteResult:
    """Apply *changes* to *fs*.

    ``create`` and ``overwrite`` entries are written in full, ``update-barrel``
    entries get their missing lines appended, ``unchanged`` entries are left
    alone.

    Raises:
        ScaffoldAborted: If any change is a conflict; nothing is written.
    """
    conflicts = [c for c in changes if c.action is Action.CONFLICT]
    if conflicts:
        raise ScaffoldAborted([FileAlreadyExists(c.path) for c in conflicts])

    result = WriteResult()
    for change in changes:
        if change.action is Action.CREATE:
            fs.write_text(change.path, change.content)
            result.created.append(change.path)
        elif change.action is Action.OVERWRITE:
            fs.write_text(change.path, change.content)
            result.modified.append(change.path)
        elif change.action is Action.UPDATE_BARREL:
            existing = fs.read_text(change.path)
            appended = merge_barrel(existing, change.append_lines)
            fs.append_text(change.path, appended[len(existing):])
            result.modified.append(change.path)
        else:
            result.unchanged.append(change.path)
    return result
