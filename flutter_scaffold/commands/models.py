"""Pydantic v2 models describing scaffolding commands.

A :class:`CommandSpec` is loaded once at startup from the command catalog and
never mutated afterwards.  :class:`ResolvedOptions` is produced per
invocation by the option resolver.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ArgumentKind(str, Enum):
    """Value kinds an argument can declare."""
    STRING = "string"
    BOOLEAN = "boolean"
    CHOICE = "choice"
    LIST = "list"


class NamingConvention(str, Enum):
    """Identifier conventions enforced by the variable binder."""
    SNAKE = "snake"
    PASCAL = "pascal"


class PreconditionKind(str, Enum):
    """What a precondition asserts about its path."""
    EXISTS = "exists"
    FILE = "file"
    DIR = "dir"


DEFAULT_VARIANT = "default"


# ---------------------------------------------------------------------------
# Argument specs
# ---------------------------------------------------------------------------

class PrimaryArgumentSpec(BaseModel):
    """The positional argument every command takes (feature or widget name)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Binding base name, e.g. 'feature' or 'widget'")
    convention: NamingConvention = Field(
        default=NamingConvention.SNAKE, description="Naming convention the value must follow"
    )
    description: str = Field(default="", description="Help text")
    examples: list[str] = Field(default_factory=list, description="Example values")


class ArgumentSpec(BaseModel):
    """A ``--flag`` accepted by a command."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Flag name without dashes, e.g. 'with-tests'")
    kind: ArgumentKind = Field(default=ArgumentKind.STRING)
    required: bool = Field(default=False)
    default: Optional[Any] = Field(default=None)
    choices: list[str] = Field(
        default_factory=list,
        description="Allowed values for 'choice', or allowed items for 'list'",
    )
    examples: list[str] = Field(default_factory=list)
    description: str = Field(default="")
    convention: Optional[NamingConvention] = Field(
        default=None, description="Identifier convention enforced on string values"
    )
    distinct_from: Optional[str] = Field(
        default=None, description="Name of another argument this value must differ from"
    )

    @model_validator(mode="after")
    def _check_invariants(self) -> "ArgumentSpec":
        if self.kind is ArgumentKind.CHOICE and not self.choices:
            raise ValueError(f"choice argument '{self.name}' declares no allowed values")
        if self.required and self.default is not None:
            raise ValueError(f"required argument '{self.name}' cannot have a default")
        if (
            self.kind is ArgumentKind.CHOICE
            and self.default is not None
            and self.default not in self.choices
        ):
            raise ValueError(
                f"default '{self.default}' of '{self.name}' is not one of {self.choices}"
            )
        return self

    @property
    def key(self) -> str:
        """Python/template-safe key: ``with-tests`` -> ``with_tests``."""
        return self.name.replace("-", "_")


class Precondition(BaseModel):
    """A filesystem fact that must hold before scaffolding proceeds."""

    model_config = ConfigDict(frozen=True)

    description: str = Field(..., description="Human-readable requirement")
    path: str = Field(..., description="Path pattern, may contain placeholders")
    kind: PreconditionKind = Field(default=PreconditionKind.EXISTS)
    when: list[str] = Field(
        default_factory=list, description="Trigger conditions, same syntax as template files"
    )


# ---------------------------------------------------------------------------
# Command spec
# ---------------------------------------------------------------------------

class CommandSpec(BaseModel):
    """A scaffolding command, loaded from the command catalog."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Command name, e.g. 'flutter-new-feature'")
    description: str = Field(default="")
    primary: PrimaryArgumentSpec
    arguments: list[ArgumentSpec] = Field(default_factory=list)
    agents: list[str] = Field(
        default_factory=list,
        description="Advisory agent references; copied into the report verbatim",
    )
    templates: str = Field(..., description="Template group in the registry")
    variant_argument: Optional[str] = Field(
        default=None, description="Choice argument that selects the TemplateSet"
    )
    overwrite_arguments: list[str] = Field(
        default_factory=list,
        description="Arguments that, when set, allow existing files to be overwritten",
    )
    migrate_argument: Optional[str] = Field(
        default=None,
        description="Choice argument naming the variant being migrated away from",
    )
    preconditions: list[Precondition] = Field(default_factory=list)
    body: str = Field(default="", description="Markdown usage text of the definition file")

    @model_validator(mode="after")
    def _check_references(self) -> "CommandSpec":
        names = [a.name for a in self.arguments]
        if len(set(names)) != len(names):
            raise ValueError(f"command '{self.name}' declares duplicate arguments")
        by_name = {a.name: a for a in self.arguments}
        for ref in (self.variant_argument, self.migrate_argument):
            if ref is None:
                continue
            spec = by_name.get(ref)
            if spec is None or spec.kind is not ArgumentKind.CHOICE:
                raise ValueError(
                    f"command '{self.name}' references '{ref}' which is not a choice argument"
                )
        for ref in self.overwrite_arguments:
            if ref not in by_name:
                raise ValueError(f"command '{self.name}' references unknown argument '{ref}'")
        for spec in self.arguments:
            if spec.distinct_from and spec.distinct_from not in by_name:
                raise ValueError(
                    f"argument '{spec.name}' is distinct from unknown argument '{spec.distinct_from}'"
                )
        return self

    def argument(self, name: str) -> Optional[ArgumentSpec]:
        for spec in self.arguments:
            if spec.name == name:
                return spec
        return None

    @property
    def variants(self) -> list[str]:
        """Every TemplateSet key this command can select."""
        if self.variant_argument is None:
            return [DEFAULT_VARIANT]
        return list(self.argument(self.variant_argument).choices)  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Per-invocation values
# ---------------------------------------------------------------------------

class ResolvedOptions(BaseModel):
    """Typed, validated option values for one invocation."""

    model_config = ConfigDict(frozen=True)

    command: str
    primary: str = Field(..., description="Raw primary argument value")
    values: dict[str, Any] = Field(
        default_factory=dict, description="Argument key -> typed value"
    )
    variant: str = Field(default=DEFAULT_VARIANT, description="Selected TemplateSet key")

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key.replace("-", "_"), default)

    def is_set(self, key: str) -> bool:
        """True for ``true`` booleans, non-empty strings and non-empty lists."""
        return bool(self.get(key))
