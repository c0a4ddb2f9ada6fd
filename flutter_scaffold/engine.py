"""flutter-scaffold engine and CLI entry point.

Runs one scaffolding invocation through its fixed sequence of steps:

1. RESOLVE -- parse tokens against the command definition.
2. BIND    -- derive placeholder bindings (primary name forms, options, package).
3. LOOKUP  -- select the TemplateSet variant and its triggered files.
4. RENDER  -- substitute placeholders in every path and body.
5. CHECK   -- classify targets, verify preconditions and dependencies.
6. WRITE   -- apply the plan, all-or-nothing.
7. REPORT  -- finalise the ExecutionReport.

Usage::

    python -m flutter_scaffold.engine flutter-new-feature products --state riverpod
    python -m flutter_scaffold.engine --root ./app flutter-new-widget UserAvatar --type consumer
    python -m flutter_scaffold.engine --list
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from rich.markdown import Markdown
from rich.table import Table

from flutter_scaffold.commands.loader import CommandCatalog
from flutter_scaffold.commands.models import CommandSpec, ResolvedOptions
from flutter_scaffold.commands.resolver import resolve_options
from flutter_scaffold.config import Config
from flutter_scaffold.errors import ScaffoldError
from flutter_scaffold.reporter import ExecutionReport, ReportBuilder, print_report
from flutter_scaffold.scaffolder.checker import CheckResult, check_plan
from flutter_scaffold.scaffolder.context import ProjectContext, load_project_context
from flutter_scaffold.scaffolder.fs import FileSystem, LocalFileSystem
from flutter_scaffold.scaffolder.naming import VariableBindings, bind
from flutter_scaffold.scaffolder.registry import TemplateRegistry, TemplateSet, verify_registry
from flutter_scaffold.scaffolder.templates import RenderedFile, TemplateRenderer, normalize_path
from flutter_scaffold.scaffolder.writer import write_plan
from flutter_scaffold.toolchain import run_toolchain
from flutter_scaffold.utils import console, print_error, print_success, print_warning


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


@dataclass
class ScaffoldPlan:
    """Everything computed for an invocation before the writer runs."""

    command: CommandSpec
    options: ResolvedOptions
    context: ProjectContext
    bindings: VariableBindings
    template_set: TemplateSet
    rendered: list[RenderedFile]
    check: CheckResult
    flagged_for_removal: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    toolchain: list[list[str]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ScaffoldEngine:
    """Runs scaffolding commands against one project.

    The command catalog and template registry are loaded once and shared
    read-only by every invocation; per-invocation state lives in
    :class:`ScaffoldPlan` and the report.

    Attributes:
        config: Engine configuration.
        catalog: Loaded command definitions.
        registry: Loaded template sets.
        fs: Filesystem collaborator rooted at the project.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        catalog: CommandCatalog | None = None,
        registry: TemplateRegistry | None = None,
        fs: FileSystem | None = None,
    ) -> None:
        self.config = config or Config()
        self.catalog = catalog or CommandCatalog.load(self.config.commands_dir)
        self.registry = registry or TemplateRegistry.load(self.config.templates_dir)
        self.renderer = TemplateRenderer()
        self.fs = fs or LocalFileSystem(self.config.project_root)

    # -- Public API --------------------------------------------------------

    def verify(self) -> list[str]:
        """Registry/catalog consistency problems; empty when consistent."""
        return verify_registry(self.registry, self.catalog, self.renderer)

    def plan(self, command_name: str, tokens: Sequence[str]) -> ScaffoldPlan:
        """Run steps 1-5 without touching the filesystem beyond queries.

        Raises:
            InputError: For invalid tokens or identifiers.
            TemplateError: For registry defects.
        """
        command = self.catalog.get(command_name)
        options = resolve_options(command, tokens)
        context = load_project_context(
            self.fs,
            fallback_name=Path(self.config.project_root).resolve().name,
            override_name=self.config.package_name,
        )
        bindings = bind(command, options, context.bindings())

        template_set = self.registry.lookup(command.templates, options.variant)
        files = [f for f in template_set.files if f.applies(options)]
        rendered = self.renderer.render(files, bindings)

        overwrite = any(options.is_set(name) for name in command.overwrite_arguments)
        check = check_plan(
            rendered,
            self.fs,
            overwrite=overwrite,
            preconditions=command.preconditions,
            options=options,
            bindings=bindings,
            renderer=self.renderer,
            dependencies=template_set.dependencies,
            declared_dependencies=context.dependencies if context.has_pubspec else None,
        )

        return ScaffoldPlan(
            command=command,
            options=options,
            context=context,
            bindings=bindings,
            template_set=template_set,
            rendered=rendered,
            check=check,
            flagged_for_removal=self._migration_advisory(command, options, bindings, rendered),
            next_steps=self.renderer.render_all(
                template_set.next_steps, bindings, f"{template_set.key} next_steps"
            ),
            toolchain=[
                self.renderer.render_all(step, bindings, f"{template_set.key} toolchain")
                for step in template_set.toolchain
            ],
        )

    def run(
        self,
        command_name: str,
        tokens: Sequence[str],
        *,
        dry_run: bool | None = None,
        run_toolchain_steps: bool | None = None,
    ) -> ExecutionReport:
        """Run a full invocation and return its report.

        Errors never escape as exceptions: they are recorded in the report,
        whose ``success`` is then ``False`` and whose ``written`` stays
        ``False``.
        """
        dry_run = self.config.dry_run if dry_run is None else dry_run
        if run_toolchain_steps is None:
            run_toolchain_steps = self.config.toolchain.enabled

        builder = ReportBuilder(command_name, dry_run=dry_run)
        try:
            if command_name in self.catalog:
                builder.set_agents(self.catalog.get(command_name).agents)
            plan = self.plan(command_name, tokens)
        except ScaffoldError as exc:
            builder.record_errors([exc])
            return builder.finalize()

        builder.set_invocation(plan.options.primary, plan.options.variant)
        builder.record_plan(plan.check.changes)
        builder.add_warnings(plan.check.warnings)
        builder.flag_for_removal(plan.flagged_for_removal)
        builder.set_next_steps(plan.next_steps)

        if not plan.check.ok:
            builder.record_errors(plan.check.errors)
            return builder.finalize()
        if dry_run:
            return builder.finalize()

        try:
            builder.record_write(write_plan(plan.check.changes, self.fs))
        except ScaffoldError as exc:
            builder.record_errors([exc])
            return builder.finalize()

        if run_toolchain_steps and plan.toolchain:
            results = asyncio.run(
                run_toolchain(
                    plan.toolchain,
                    cwd=self.config.project_root,
                    timeout=self.config.toolchain.timeout,
                )
            )
            builder.add_toolchain_results(results)

        return builder.finalize()

    # -- Migration advisories ----------------------------------------------

    def _migration_advisory(
        self,
        command: CommandSpec,
        options: ResolvedOptions,
        bindings: VariableBindings,
        rendered: list[RenderedFile],
    ) -> list[str]:
        """Existing files of the migrated-from variant; nothing is deleted."""
        if not command.migrate_argument:
            return []
        old_variant = options.get(command.migrate_argument)
        if not old_variant:
            return []

        old_options = options.model_copy(update={"variant": old_variant})
        old_set = self.registry.lookup(command.templates, old_variant)
        new_paths = {item.path for item in rendered}

        flagged: list[str] = []
        for template_file in old_set.files:
            if template_file.barrel or not template_file.applies(old_options):
                continue
            path = normalize_path(
                self.renderer.render_string(template_file.path, bindings, template_file.id)
            )
            if path not in new_paths and path not in flagged and self.fs.is_file(path):
                flagged.append(path)
        return flagged


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _print_command_list(catalog: CommandCatalog) -> None:
    table = Table(title="Commands", show_header=True, header_style="bold cyan")
    table.add_column("Command", no_wrap=True)
    table.add_column("Argument", style="dim")
    table.add_column("Description")
    for command in catalog:
        table.add_row(command.name, f"<{command.primary.name}>", command.description)
    console.print(table)


def _print_command_help(command: CommandSpec) -> None:
    table = Table(title=f"{command.name} <{command.primary.name}>", header_style="bold cyan")
    table.add_column("Flag", no_wrap=True)
    table.add_column("Kind", style="dim")
    table.add_column("Default")
    table.add_column("Description")
    for spec in command.arguments:
        kind = spec.kind.value
        if spec.choices:
            kind = f"{kind}: {'|'.join(spec.choices)}"
        default = "required" if spec.required else ("" if spec.default is None else str(spec.default))
        table.add_row(f"--{spec.name}", kind, default, spec.description)
    console.print(table)
    if command.body:
        console.print(Markdown(command.body))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flutter-scaffold",
        description="Template-driven Flutter code scaffolding",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  flutter-scaffold flutter-new-feature products --state riverpod --crud\n"
            "  flutter-scaffold --root ./app flutter-new-widget UserAvatar --type consumer\n"
            "  flutter-scaffold flutter-add-state orders --type bloc --migrate riverpod\n"
            "  flutter-scaffold --describe flutter-add-auth\n"
        ),
    )
    parser.add_argument("command", nargs="?", help="Command name, e.g. flutter-new-feature")
    parser.add_argument(
        "tokens",
        nargs=argparse.REMAINDER,
        help="Primary argument followed by the command's flags",
    )
    parser.add_argument("--root", "-C", default=None, help="Flutter project root (default: .)")
    parser.add_argument("--config", default=None, help="JSON configuration file")
    parser.add_argument("--package-name", default=None, help="Override the pubspec package name")
    parser.add_argument("--dry-run", action="store_true", help="Plan and report without writing")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument(
        "--run-toolchain", action="store_true", help="Run toolchain steps after writing"
    )
    parser.add_argument("--list", action="store_true", help="List available commands")
    parser.add_argument("--describe", metavar="COMMAND", help="Show a command's flags and notes")
    parser.add_argument(
        "--check", action="store_true", help="Verify the template registry against the commands"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for ``python -m flutter_scaffold.engine``."""
    args = build_parser().parse_args(argv)

    config = Config.load(Path(args.config)) if args.config else Config.from_env()
    updates: dict = {}
    if args.root:
        updates["project_root"] = Path(args.root)
    if args.package_name:
        updates["package_name"] = args.package_name
    if args.dry_run:
        updates["dry_run"] = True
    if args.run_toolchain:
        updates["toolchain"] = config.toolchain.model_copy(update={"enabled": True})
    config = config.model_copy(update=updates)

    try:
        engine = ScaffoldEngine(config)
    except ScaffoldError as exc:
        print_error(f"{type(exc).__name__}: {exc}")
        return 1

    if args.list:
        _print_command_list(engine.catalog)
        return 0
    if args.describe:
        try:
            _print_command_help(engine.catalog.get(args.describe))
        except ScaffoldError as exc:
            print_error(f"{type(exc).__name__}: {exc}")
            return 1
        return 0
    if args.check:
        problems = engine.verify()
        for problem in problems:
            print_error(problem)
        if problems:
            return 1
        print_success(
            f"{len(engine.catalog)} commands and {len(engine.registry)} template sets are consistent"
        )
        return 0
    if not args.command:
        print_error("No command given (use --list to see the available commands)")
        return 1

    report = engine.run(args.command, args.tokens)

    if args.json:
        console.out(report.model_dump_json(indent=2), highlight=False)
        for warning in report.warnings:
            print_warning(f"warning: {warning}")
    else:
        print_report(report, console)

    for err in report.errors:
        print_error(f"{err.type}: {err.message}")
    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())
