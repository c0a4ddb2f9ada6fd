"""Option resolution: invocation tokens -> :class:`ResolvedOptions`.

Accepted token shapes after the command name::

    <primary> --flag value --flag=value --boolean-flag --boolean-flag false

Resolution is deterministic and never reads the environment.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from flutter_scaffold.commands.models import (
    DEFAULT_VARIANT,
    ArgumentKind,
    ArgumentSpec,
    CommandSpec,
    ResolvedOptions,
)
from flutter_scaffold.errors import (
    InvalidChoice,
    MissingArgumentValue,
    MissingRequiredArgument,
    UnknownArgument,
)

_TRUE = {"true", "yes", "1"}
_FALSE = {"false", "no", "0"}


def resolve_options(command: CommandSpec, tokens: Sequence[str]) -> ResolvedOptions:
    """Parse *tokens* against *command* and return the typed option values.

    Raises:
        UnknownArgument: For flags the command does not declare, or for a
            second positional value.
        MissingArgumentValue: For a non-boolean flag without a value.
        InvalidChoice: For values outside a choice or list's allowed set, or
            an argument equal to the one it must be distinct from.
        MissingRequiredArgument: For an absent primary or required flag.
    """
    primary, raw = _split_tokens(command, tokens)
    if primary is None:
        raise MissingRequiredArgument(command.primary.name)

    values: dict[str, Any] = {}
    for spec in command.arguments:
        if spec.name in raw:
            values[spec.key] = _coerce(spec, raw[spec.name])
        elif spec.required:
            raise MissingRequiredArgument(spec.name)
        else:
            values[spec.key] = _default_for(spec)

    for spec in command.arguments:
        if not spec.distinct_from:
            continue
        other = command.argument(spec.distinct_from)
        value = values[spec.key]
        if value and other is not None and value == values[other.key]:
            allowed = [c for c in spec.choices if c != value]
            raise InvalidChoice(spec.name, value, allowed)

    variant = DEFAULT_VARIANT
    if command.variant_argument:
        variant = values[command.argument(command.variant_argument).key]  # type: ignore[union-attr]

    return ResolvedOptions(
        command=command.name,
        primary=primary,
        values=values,
        variant=variant,
    )


# ---------------------------------------------------------------------------
# Tokenising
# ---------------------------------------------------------------------------

def _split_tokens(
    command: CommandSpec, tokens: Sequence[str]
) -> tuple[str | None, dict[str, Any]]:
    """Separate the primary value from flags.

    Flag values are kept as raw strings (``True`` for bare booleans); list
    flags given more than once accumulate into a list of raw strings.
    """
    primary: str | None = None
    raw: dict[str, Any] = {}
    items = list(tokens)
    i = 0
    while i < len(items):
        token = items[i]
        i += 1

        if not token.startswith("--"):
            if primary is not None:
                raise UnknownArgument(token, positional=True)
            primary = token
            continue

        name, has_inline, inline = token[2:].partition("=")
        spec = command.argument(name)
        if spec is None:
            raise UnknownArgument(name)

        if spec.kind is ArgumentKind.BOOLEAN:
            if has_inline:
                value: Any = inline
            elif i < len(items) and items[i].lower() in _TRUE | _FALSE:
                value = items[i]
                i += 1
            else:
                value = True
        elif has_inline:
            value = inline
        elif i < len(items) and not items[i].startswith("--"):
            value = items[i]
            i += 1
        else:
            raise MissingArgumentValue(name)

        if spec.kind is ArgumentKind.LIST and name in raw:
            raw[name] = f"{raw[name]},{value}"
        else:
            raw[name] = value
    return primary, raw


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------

def _coerce(spec: ArgumentSpec, raw: Any) -> Any:
    if spec.kind is ArgumentKind.BOOLEAN:
        if raw is True:
            return True
        text = str(raw).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise InvalidChoice(spec.name, str(raw), ["true", "false"])

    if spec.kind is ArgumentKind.LIST:
        items = [part.strip() for part in str(raw).split(",")]
        items = [item for item in items if item]
        if spec.choices:
            for item in items:
                if item not in spec.choices:
                    raise InvalidChoice(spec.name, item, spec.choices)
        # Keep first occurrence order, drop repeats.
        return list(dict.fromkeys(items))

    value = str(raw).strip()
    if spec.kind is ArgumentKind.CHOICE and value not in spec.choices:
        raise InvalidChoice(spec.name, value, spec.choices)
    return value


def _default_for(spec: ArgumentSpec) -> Any:
    if spec.kind is ArgumentKind.BOOLEAN:
        return bool(spec.default)
    if spec.kind is ArgumentKind.LIST:
        if spec.default is None:
            return []
        if isinstance(spec.default, str):
            return _coerce(spec, spec.default)
        return list(spec.default)
    return spec.default
