"""Variable binding: primary argument + options -> template placeholders.

Case transforms are pure and idempotent.  For a command whose primary
argument is named ``feature`` and invoked with ``user_profile`` the binder
produces::

    feature        -> user_profile
    Feature        -> UserProfile
    feature_snake  -> user_profile
    feature_pascal -> UserProfile
    feature_camel  -> userProfile
    feature_kebab  -> user-profile
    feature_title  -> User Profile

plus one binding per option and the project-context bindings.

A PascalCase primary keeps its spelling for the Pascal forms and treats a
run of capitals as one word for the rest, so ``HTTPClient`` binds
``widget`` to ``http_client``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from flutter_scaffold.commands.models import (
    ArgumentKind,
    CommandSpec,
    NamingConvention,
    ResolvedOptions,
)
from flutter_scaffold.errors import InvalidIdentifier

VariableBindings = Mapping[str, str]

CONTEXT_BINDINGS: tuple[str, ...] = ("package_name",)

_SNAKE_RE = re.compile(r"^[a-z][a-z0-9]*(?:_[a-z0-9]+)*$")
_PASCAL_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_WORD_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")

_PRIMARY_SUFFIXES: tuple[str, ...] = ("snake", "pascal", "camel", "kebab", "title")


# ---------------------------------------------------------------------------
# Case transforms
# ---------------------------------------------------------------------------

def snake_to_pascal(value: str) -> str:
    """``user_profile`` -> ``UserProfile``.  Already-Pascal input is returned as is."""
    if "_" not in value and value[:1].isupper():
        return value
    return "".join(part[:1].upper() + part[1:] for part in value.split("_") if part)


def pascal_to_snake(value: str) -> str:
    """``UserProfile`` / ``userProfile`` -> ``user_profile``.  Idempotent on snake_case.

    Every interior capital starts a new segment, so ``XY`` -> ``x_y`` and the
    round trip through :func:`snake_to_pascal` is stable.
    """
    spaced = re.sub(r"(?<=[A-Za-z0-9])([A-Z])", r"_\1", value)
    return re.sub(r"_+", "_", spaced).lower()


def pascal_to_file_stem(value: str) -> str:
    """``HTTPClient`` -> ``http_client``: a run of capitals is one word.

    File and directory names for a PascalCase primary use this form.
    :func:`pascal_to_snake` keeps one segment per capital (``XY`` -> ``x_y``).
    """
    return _WORD_BOUNDARY_RE.sub("_", value).lower()


def to_camel(value: str) -> str:
    pascal = snake_to_pascal(pascal_to_snake(value))
    return pascal[:1].lower() + pascal[1:]


def to_kebab(value: str) -> str:
    return pascal_to_snake(value).replace("_", "-")


def to_title(value: str) -> str:
    parts = re.split(r"[_\s]+", pascal_to_snake(value))
    return " ".join(part.capitalize() for part in parts if part)


def is_valid_identifier(value: str, convention: NamingConvention) -> bool:
    if convention is NamingConvention.PASCAL:
        return bool(_PASCAL_RE.match(value))
    return bool(_SNAKE_RE.match(value))


def validate_identifier(value: str, convention: NamingConvention) -> str:
    if not is_valid_identifier(value, convention):
        raise InvalidIdentifier(value, convention.value)
    return value


# ---------------------------------------------------------------------------
# Binding
# ---------------------------------------------------------------------------

def binding_names(command: CommandSpec) -> frozenset[str]:
    """Every placeholder name :func:`bind` produces for *command*.

    Depends only on the command definition, so template/command consistency
    can be checked without invoking the command.
    """
    base = command.primary.name
    names = {base, _capitalized(base)}
    names.update(f"{base}_{suffix}" for suffix in _PRIMARY_SUFFIXES)
    for spec in command.arguments:
        names.add(spec.key)
        if spec.kind is ArgumentKind.LIST:
            names.add(f"{spec.key}_quoted")
    names.update(CONTEXT_BINDINGS)
    return frozenset(names)


def bind(
    command: CommandSpec,
    options: ResolvedOptions,
    context: Mapping[str, str],
) -> VariableBindings:
    """Derive the full, read-only placeholder mapping for one invocation.

    Args:
        command: Command definition (primary name, argument kinds, conventions).
        options: Resolved option values.
        context: Project-context bindings (``package_name``).

    Raises:
        InvalidIdentifier: If the primary value, or a string option that
            declares a convention, violates it.
    """
    value = validate_identifier(options.primary, command.primary.convention)
    if command.primary.convention is NamingConvention.PASCAL:
        snake, pascal = pascal_to_file_stem(value), value
    else:
        snake, pascal = value, snake_to_pascal(value)

    base = command.primary.name
    bindings: dict[str, str] = {
        base: snake,
        _capitalized(base): pascal,
        f"{base}_snake": snake,
        f"{base}_pascal": pascal,
        f"{base}_camel": to_camel(snake),
        f"{base}_kebab": to_kebab(snake),
        f"{base}_title": to_title(snake),
    }

    for spec in command.arguments:
        raw = options.get(spec.key)
        if spec.convention is not None and raw:
            validate_identifier(str(raw), spec.convention)
        bindings[spec.key] = _format_option(raw)
        if spec.kind is ArgumentKind.LIST:
            bindings[f"{spec.key}_quoted"] = ", ".join(f"'{item}'" for item in raw or [])

    for name in CONTEXT_BINDINGS:
        bindings[name] = context.get(name, "")

    return MappingProxyType(bindings)


def _capitalized(name: str) -> str:
    return name[:1].upper() + name[1:]


def _format_option(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)
