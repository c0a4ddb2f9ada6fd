"""Command catalog: definitions, loading and option resolution."""

from flutter_scaffold.commands.loader import CommandCatalog, parse_command
from flutter_scaffold.commands.models import (
    ArgumentKind,
    ArgumentSpec,
    CommandSpec,
    NamingConvention,
    Precondition,
    PrimaryArgumentSpec,
    ResolvedOptions,
)
from flutter_scaffold.commands.resolver import resolve_options

__all__ = [
    "ArgumentKind",
    "ArgumentSpec",
    "CommandCatalog",
    "CommandSpec",
    "NamingConvention",
    "Precondition",
    "PrimaryArgumentSpec",
    "ResolvedOptions",
    "parse_command",
    "resolve_options",
]
