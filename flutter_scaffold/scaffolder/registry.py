"""Template registry: named, parametrised file trees.

On disk a template group is a directory of variants, each carrying a
``manifest.yaml``::

    templates/
      new_feature/
        _common/manifest.yaml      # prepended to every variant
        _shared/entity.dart.j2     # bodies only, not a variant
        riverpod/manifest.yaml
        riverpod/providers.dart.j2

A manifest lists the files of its TemplateSet::

    files:
      - template: providers.dart.j2
        path: lib/features/{{feature}}/presentation/providers/{{feature}}_providers.dart
      - template: ../_shared/test.dart.j2
        path: test/features/{{feature}}/{{feature}}_test.dart
        when: [with_tests]
    next_steps:
      - Register the providers in ProviderScope
    dependencies: [flutter_riverpod]
    toolchain:
      - [dart, format, "lib/features/{{feature}}"]

Bodies are loaded verbatim; placeholders are the renderer's business.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from flutter_scaffold.commands.models import CommandSpec, ResolvedOptions
from flutter_scaffold.errors import RegistryError, UnknownTemplateVariant
from flutter_scaffold.scaffolder.naming import binding_names


_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

MANIFEST = "manifest.yaml"
COMMON_VARIANT = "_common"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class TemplateFile(BaseModel):
    """One file of a TemplateSet."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Provenance tag: body path relative to the template root")
    path: str = Field(..., description="Target path pattern, relative to the project root")
    body: str = Field(..., description="Body pattern, stored verbatim")
    when: tuple[str, ...] = Field(
        default=(), description="Trigger conditions; all must hold for inclusion"
    )
    barrel: bool = Field(
        default=False, description="Aggregator file: lines are merged, never overwritten"
    )

    def applies(self, options: ResolvedOptions) -> bool:
        return conditions_hold(self.when, options)


class TemplateSet(BaseModel):
    """Ordered files plus advisory text for one (group, variant) key."""

    model_config = ConfigDict(frozen=True)

    group: str
    variant: str
    files: tuple[TemplateFile, ...] = ()
    next_steps: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = Field(
        default=(), description="pubspec packages the generated code imports"
    )
    toolchain: tuple[tuple[str, ...], ...] = Field(
        default=(), description="Post-write commands, argv patterns"
    )

    @property
    def key(self) -> str:
        return f"{self.group}/{self.variant}"


class _ManifestFile(BaseModel):
    template: str
    path: str
    when: list[str] = Field(default_factory=list)
    barrel: bool = False


class _Manifest(BaseModel):
    files: list[_ManifestFile] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    toolchain: list[list[str]] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Trigger conditions
# ---------------------------------------------------------------------------

def condition_key(condition: str) -> str:
    """Argument key a condition refers to: ``!with_tests`` -> ``with_tests``."""
    return condition.lstrip("!").split("=", 1)[0].strip()


def condition_holds(condition: str, options: ResolvedOptions) -> bool:
    """Evaluate one trigger.

    ``key`` is truthy, ``!key`` is falsy, ``key=value`` compares for equality
    (membership for list arguments).
    """
    condition = condition.strip()
    if condition.startswith("!"):
        return not condition_holds(condition[1:], options)
    if "=" in condition:
        key, expected = (part.strip() for part in condition.split("=", 1))
        actual = options.get(key)
        if isinstance(actual, (list, tuple)):
            return expected in actual
        if isinstance(actual, bool):
            return str(actual).lower() == expected.lower()
        return str(actual) == expected
    return options.is_set(condition)


def conditions_hold(conditions: Iterable[str], options: ResolvedOptions) -> bool:
    return all(condition_holds(c, options) for c in conditions)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TemplateRegistry:
    """Read-only lookup of TemplateSets by ``<group>/<variant>`` key."""

    def __init__(self, sets: Iterable[TemplateSet]) -> None:
        self._sets: dict[str, TemplateSet] = {}
        for template_set in sets:
            self._sets[template_set.key] = template_set

    @classmethod
    def load(cls, template_dir: str | Path | None = None) -> "TemplateRegistry":
        """Load every group under *template_dir*.

        Raises:
            RegistryError: For a missing directory, malformed manifest or a
                manifest entry pointing at a missing body file.
        """
        root = Path(template_dir) if template_dir else _DEFAULT_TEMPLATE_DIR
        if not root.is_dir():
            raise RegistryError(f"template directory not found: {root}")

        sets: list[TemplateSet] = []
        for group_dir in sorted(p for p in root.iterdir() if p.is_dir()):
            common = _load_manifest(root, group_dir / COMMON_VARIANT)
            for variant_dir in sorted(group_dir.iterdir()):
                if not variant_dir.is_dir() or variant_dir.name.startswith("_"):
                    continue
                own = _load_manifest(root, variant_dir)
                if own is None:
                    continue
                sets.append(_merge(group_dir.name, variant_dir.name, common, own))
        return cls(sets)

    def lookup(self, group: str, variant: str) -> TemplateSet:
        key = f"{group}/{variant}"
        try:
            return self._sets[key]
        except KeyError:
            raise UnknownTemplateVariant(key) from None

    def select(self, group: str, options: ResolvedOptions) -> list[TemplateFile]:
        """Files of the options' variant whose triggers hold, in manifest order."""
        template_set = self.lookup(group, options.variant)
        return [f for f in template_set.files if f.applies(options)]

    def has_group(self, group: str) -> bool:
        return any(s.group == group for s in self._sets.values())

    def variants(self, group: str) -> list[str]:
        return sorted(s.variant for s in self._sets.values() if s.group == group)

    def __iter__(self):
        return iter(self._sets[key] for key in sorted(self._sets))

    def __len__(self) -> int:
        return len(self._sets)


def _load_manifest(
    root: Path, directory: Path
) -> tuple[_Manifest, dict[str, tuple[str, str]]] | None:
    """Parse ``manifest.yaml`` in *directory* and read the bodies it names.

    Bodies are keyed by the manifest's ``template`` value and carry their
    root-relative path, used as the provenance tag.
    """
    manifest_path = directory / MANIFEST
    if not manifest_path.is_file():
        return None
    source = str(manifest_path.relative_to(root))

    try:
        raw: Any = yaml.safe_load(manifest_path.read_text(encoding="utf-8")) or {}
        manifest = _Manifest.model_validate(raw)
    except yaml.YAMLError as exc:
        raise RegistryError(f"invalid YAML: {exc}", source) from exc
    except ValidationError as exc:
        raise RegistryError(f"invalid manifest: {exc}", source) from exc

    resolved_root = root.resolve()
    bodies: dict[str, tuple[str, str]] = {}
    for entry in manifest.files:
        body_path = (directory / entry.template).resolve()
        if not body_path.is_file():
            raise RegistryError(f"template body not found: {entry.template}", source)
        try:
            tag = body_path.relative_to(resolved_root).as_posix()
        except ValueError:
            raise RegistryError(
                f"template body outside the template root: {entry.template}", source
            ) from None
        bodies[entry.template] = (tag, body_path.read_text(encoding="utf-8"))
    return manifest, bodies


def _merge(
    group: str,
    variant: str,
    common: tuple[_Manifest, dict[str, tuple[str, str]]] | None,
    own: tuple[_Manifest, dict[str, tuple[str, str]]],
) -> TemplateSet:
    files: list[TemplateFile] = []
    next_steps: list[str] = []
    dependencies: list[str] = []
    toolchain: list[tuple[str, ...]] = []

    for part in (common, own):
        if part is None:
            continue
        manifest, bodies = part
        for entry in manifest.files:
            tag, body = bodies[entry.template]
            files.append(
                TemplateFile(
                    id=tag,
                    path=entry.path,
                    body=body,
                    when=tuple(entry.when),
                    barrel=entry.barrel,
                )
            )
        next_steps.extend(manifest.next_steps)
        dependencies.extend(d for d in manifest.dependencies if d not in dependencies)
        toolchain.extend(tuple(step) for step in manifest.toolchain)

    return TemplateSet(
        group=group,
        variant=variant,
        files=tuple(files),
        next_steps=tuple(next_steps),
        dependencies=tuple(dependencies),
        toolchain=tuple(toolchain),
    )


# ---------------------------------------------------------------------------
# Consistency check
# ---------------------------------------------------------------------------

def verify_registry(
    registry: TemplateRegistry,
    commands: Iterable[CommandSpec],
    renderer: Any,
) -> list[str]:
    """Cross-check commands against the registry; return a list of problems.

    For every command: its template group exists, each selectable variant has
    a TemplateSet, every placeholder in every path/body/next-step/toolchain
    pattern is a binding the binder produces, and every trigger refers to a
    declared argument.  An empty list means ``UnknownTemplateVariant`` and
    ``UnresolvedPlaceholder`` cannot occur for validated input.

    *renderer* is a :class:`~flutter_scaffold.scaffolder.templates.TemplateRenderer`.
    """
    problems: list[str] = []
    for command in commands:
        if not registry.has_group(command.templates):
            problems.append(f"{command.name}: template group '{command.templates}' not found")
            continue

        names = binding_names(command)
        arg_keys = {spec.key for spec in command.arguments}

        for pre in command.preconditions:
            used = renderer.placeholders(pre.path) | renderer.placeholders(pre.description)
            for placeholder in sorted(used - names):
                problems.append(
                    f"{command.name}: precondition '{pre.description}' uses unknown "
                    f"placeholder '{placeholder}'"
                )
            for cond in pre.when:
                if condition_key(cond) not in arg_keys:
                    problems.append(
                        f"{command.name}: precondition trigger '{cond}' names no argument"
                    )

        for variant in command.variants:
            try:
                template_set = registry.lookup(command.templates, variant)
            except UnknownTemplateVariant as exc:
                problems.append(f"{command.name}: {exc}")
                continue

            patterns: list[tuple[str, str]] = []
            for tf in template_set.files:
                patterns.append((tf.id, tf.path))
                patterns.append((tf.id, tf.body))
                for cond in tf.when:
                    if condition_key(cond) not in arg_keys:
                        problems.append(
                            f"{command.name}: {tf.id} trigger '{cond}' names no argument"
                        )
            patterns.extend((f"{template_set.key} next_steps", s) for s in template_set.next_steps)
            patterns.extend(
                (f"{template_set.key} toolchain", arg)
                for step in template_set.toolchain
                for arg in step
            )

            for source, pattern in patterns:
                for placeholder in sorted(renderer.placeholders(pattern) - names):
                    problems.append(
                        f"{command.name}: unresolved placeholder '{placeholder}' in {source}"
                    )
    return problems
