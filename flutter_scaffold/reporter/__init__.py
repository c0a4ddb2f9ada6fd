"""Execution reports for scaffolding invocations.

The :class:`ReportBuilder` is fed by the engine while the checker and writer
run and is finalised exactly once into an :class:`ExecutionReport`.  Text
output (:func:`format_report`) and terminal output (:func:`print_report`) are
pure projections of that structure; JSON comes from ``model_dump_json``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, Field, computed_field
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from flutter_scaffold.errors import ScaffoldError
from flutter_scaffold.scaffolder.checker import Action, PlannedChange
from flutter_scaffold.scaffolder.writer import WriteResult
from flutter_scaffold.toolchain import ToolchainResult
from flutter_scaffold.utils import format_duration

__all__ = [
    "ExecutionReport",
    "PlannedEntry",
    "ReportBuilder",
    "ReportError",
    "SkippedPath",
    "format_report",
    "print_report",
]


# ---------------------------------------------------------------------------
# Data Models
# ---------------------------------------------------------------------------

class PlannedEntry(BaseModel):
    """One path the invocation planned to touch."""

    path: str
    action: Action
    provenance: list[str] = Field(default_factory=list)


class SkippedPath(BaseModel):
    path: str
    reason: str


class ReportError(BaseModel):
    """Serialisable form of a :class:`ScaffoldError`."""

    category: str = Field(..., description="'input', 'template' or 'filesystem'")
    type: str = Field(..., description="Exception class name")
    message: str

    @classmethod
    def from_exception(cls, exc: ScaffoldError) -> "ReportError":
        return cls(category=exc.category, type=type(exc).__name__, message=str(exc))


class ExecutionReport(BaseModel):
    """Everything one invocation planned, wrote, skipped and advised."""

    command: str = Field(..., description="Command name")
    primary: str = Field(default="", description="Primary argument value")
    variant: str = Field(default="", description="Selected TemplateSet variant")
    dry_run: bool = Field(default=False)
    written: bool = Field(default=False, description="Whether the writer ran")
    planned: list[PlannedEntry] = Field(default_factory=list)
    created: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    skipped: list[SkippedPath] = Field(default_factory=list)
    flagged_for_removal: list[str] = Field(
        default_factory=list, description="Files to delete by hand after a migration"
    )
    errors: list[ReportError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    agents: list[str] = Field(default_factory=list, description="Advisory agent references")
    toolchain: list[ToolchainResult] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        """True when no errors were recorded."""
        return not self.errors


# ---------------------------------------------------------------------------
# ReportBuilder
# ---------------------------------------------------------------------------

class ReportBuilder:
    """Accumulates report data during an invocation.

    Usage::

        builder = ReportBuilder("flutter-new-feature", primary="products")
        builder.record_plan(check.changes)
        builder.record_write(write_plan(check.changes, fs))
        report = builder.finalize()
    """

    def __init__(self, command: str, primary: str = "", dry_run: bool = False) -> None:
        self._data: dict = {
            "command": command,
            "primary": primary,
            "dry_run": dry_run,
            "planned": [],
            "created": [],
            "modified": [],
            "skipped": [],
            "flagged_for_removal": [],
            "errors": [],
            "warnings": [],
            "next_steps": [],
            "agents": [],
            "toolchain": [],
        }
        self._report: ExecutionReport | None = None

    def _check_open(self) -> None:
        if self._report is not None:
            raise RuntimeError("report already finalised")

    def set_invocation(self, primary: str, variant: str) -> None:
        self._check_open()
        self._data["primary"] = primary
        self._data["variant"] = variant

    def set_agents(self, agents: Iterable[str]) -> None:
        self._check_open()
        self._data["agents"] = list(agents)

    def set_next_steps(self, steps: Iterable[str]) -> None:
        self._check_open()
        self._data["next_steps"] = list(steps)

    def record_plan(self, changes: Sequence[PlannedChange]) -> None:
        self._check_open()
        for change in changes:
            self._data["planned"].append(
                PlannedEntry(path=change.path, action=change.action, provenance=change.provenance)
            )
            if change.action is Action.CONFLICT:
                self._data["skipped"].append(
                    SkippedPath(path=change.path, reason="file already exists")
                )
            elif change.action is Action.UNCHANGED:
                self._data["skipped"].append(
                    SkippedPath(path=change.path, reason="barrel already exports every line")
                )

    def record_write(self, result: WriteResult) -> None:
        self._check_open()
        self._data["written"] = True
        self._data["created"].extend(result.created)
        self._data["modified"].extend(result.modified)

    def record_errors(self, errors: Iterable[ScaffoldError]) -> None:
        self._check_open()
        self._data["errors"].extend(ReportError.from_exception(e) for e in errors)

    def add_warnings(self, warnings: Iterable[str]) -> None:
        self._check_open()
        self._data["warnings"].extend(warnings)

    def flag_for_removal(self, paths: Iterable[str]) -> None:
        self._check_open()
        self._data["flagged_for_removal"].extend(paths)

    def add_toolchain_results(self, results: Iterable[ToolchainResult]) -> None:
        self._check_open()
        for result in results:
            self._data["toolchain"].append(result)
            if not result.ok:
                self._data["warnings"].append(
                    f"toolchain step failed ({result.exit_code}): {result.display}"
                )

    def finalize(self) -> ExecutionReport:
        """Freeze the accumulated data; later mutations raise ``RuntimeError``."""
        if self._report is None:
            self._report = ExecutionReport(**self._data)
        return self._report


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------

_ACTION_STYLES: dict[Action, str] = {
    Action.CREATE: "green",
    Action.OVERWRITE: "yellow",
    Action.UPDATE_BARREL: "cyan",
    Action.UNCHANGED: "dim",
    Action.CONFLICT: "red",
}


def format_report(report: ExecutionReport) -> str:
    """Plain-text rendering of *report*, one fact per line."""
    status = "OK" if report.success else "FAILED"
    mode = "dry run" if report.dry_run else ("written" if report.written else "not written")
    lines = [
        f"{report.command} {report.primary} [{report.variant}]: {status} ({mode})",
    ]

    if report.written:
        lines.extend(f"  created   {path}" for path in report.created)
        lines.extend(f"  modified  {path}" for path in report.modified)
    else:
        lines.extend(
            f"  planned   {entry.action.value:<13} {entry.path}" for entry in report.planned
        )
    lines.extend(f"  skipped   {s.path} ({s.reason})" for s in report.skipped)

    if report.toolchain:
        lines.append("Toolchain:")
        for step in report.toolchain:
            outcome = "ok" if step.ok else f"exit {step.exit_code}"
            lines.append(
                f"  {outcome:<8} {format_duration(step.duration_seconds):>7}  {step.display}"
            )
    if report.flagged_for_removal:
        lines.append("Flagged for removal (delete manually):")
        lines.extend(f"  - {path}" for path in report.flagged_for_removal)
    if report.errors:
        lines.append("Errors:")
        lines.extend(f"  - {err.type}: {err.message}" for err in report.errors)
    if report.warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {w}" for w in report.warnings)
    if report.success and report.next_steps:
        lines.append("Next steps:")
        lines.extend(f"  {i}. {step}" for i, step in enumerate(report.next_steps, 1))
    if report.agents:
        lines.append(f"Agents: {', '.join(report.agents)}")
    return "\n".join(lines)


def print_report(report: ExecutionReport, console: Console) -> None:
    """Pretty-print *report* with Rich."""
    status = "[green bold]SUCCESS[/green bold]" if report.success else "[red bold]FAILED[/red bold]"
    mode = "dry run" if report.dry_run else ("written" if report.written else "nothing written")
    console.print(
        Panel(
            f"[bold]{report.command}[/bold] {report.primary}\n"
            f"Variant: {report.variant or '-'}\n"
            f"Status: {status} ({mode})\n"
            f"Created: {len(report.created)}  Modified: {len(report.modified)}",
            title="flutter-scaffold",
            border_style="green" if report.success else "red",
        )
    )

    if report.planned:
        table = Table(title="Files", show_header=True, header_style="bold cyan")
        table.add_column("Action", no_wrap=True)
        table.add_column("Path")
        table.add_column("Template", style="dim")
        for entry in report.planned:
            style = _ACTION_STYLES.get(entry.action, "white")
            table.add_row(
                f"[{style}]{entry.action.value}[/{style}]",
                entry.path,
                ", ".join(entry.provenance),
            )
        console.print(table)

    if report.toolchain:
        steps = Table(title="Toolchain", show_header=True, header_style="bold cyan")
        steps.add_column("Step")
        steps.add_column("Exit", justify="right")
        steps.add_column("Time", justify="right", style="dim")
        for step in report.toolchain:
            style = "green" if step.ok else "red"
            steps.add_row(
                escape(step.display),
                f"[{style}]{step.exit_code}[/{style}]",
                format_duration(step.duration_seconds),
            )
        console.print(steps)

    if report.flagged_for_removal:
        console.print("\n[yellow bold]Flagged for removal (delete manually):[/yellow bold]")
        for path in report.flagged_for_removal:
            console.print(f"  [yellow]- {path}[/yellow]")

    if report.warnings:
        console.print("\n[yellow bold]Warnings:[/yellow bold]")
        for warning in report.warnings:
            console.print(f"  [yellow]- {warning}[/yellow]")

    if report.success and report.next_steps:
        console.print("\n[bold]Next steps:[/bold]")
        for i, step in enumerate(report.next_steps, 1):
            console.print(f"  {i}. {step}")

    if report.agents:
        console.print(f"\n[dim]Agents: {', '.join(report.agents)}[/dim]")
    console.print("")
