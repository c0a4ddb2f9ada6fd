"""Command catalog loading.

Commands are Markdown files with a YAML front matter block, the same shape as
the slash-command documents they were written from::

    ---
    name: flutter-new-feature
    description: Scaffold a feature module
    primary: {name: feature, convention: snake}
    arguments:
      - {name: state, kind: choice, choices: [riverpod, bloc], default: riverpod}
    templates: new_feature
    variant_argument: state
    ---
    # Usage notes shown by --describe
"""

from __future__ import annotations

import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from flutter_scaffold.commands.models import CommandSpec
from flutter_scaffold.errors import RegistryError, UnknownCommand


_DEFAULT_COMMANDS_DIR = Path(__file__).parent / "definitions"

_FRONT_MATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)(.*)\Z", re.DOTALL)


def parse_command(text: str, source: str = "") -> CommandSpec:
    """Parse one command definition document into a :class:`CommandSpec`.

    Raises:
        RegistryError: If the front matter is missing, is not valid YAML, or
            does not validate against the model.
    """
    match = _FRONT_MATTER_RE.match(text)
    if not match:
        raise RegistryError("missing YAML front matter", source)

    try:
        meta = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        raise RegistryError(f"invalid YAML front matter: {exc}", source) from exc
    if not isinstance(meta, dict):
        raise RegistryError("front matter must be a mapping", source)

    meta.setdefault("body", match.group(2).strip())
    try:
        return CommandSpec.model_validate(meta)
    except ValidationError as exc:
        raise RegistryError(f"invalid command definition: {exc}", source) from exc


class CommandCatalog:
    """Read-only collection of :class:`CommandSpec` keyed by name."""

    def __init__(self, commands: list[CommandSpec]) -> None:
        self._commands: dict[str, CommandSpec] = {}
        for command in commands:
            if command.name in self._commands:
                raise RegistryError(f"duplicate command '{command.name}'")
            self._commands[command.name] = command

    @classmethod
    def load(cls, commands_dir: str | Path | None = None) -> "CommandCatalog":
        """Load every ``*.md`` definition under *commands_dir*."""
        directory = Path(commands_dir) if commands_dir else _DEFAULT_COMMANDS_DIR
        if not directory.is_dir():
            raise RegistryError(f"commands directory not found: {directory}")
        commands = [
            parse_command(path.read_text(encoding="utf-8"), source=path.name)
            for path in sorted(directory.glob("*.md"))
        ]
        return cls(commands)

    def get(self, name: str) -> CommandSpec:
        try:
            return self._commands[name]
        except KeyError:
            raise UnknownCommand(name, self.names()) from None

    def names(self) -> list[str]:
        return sorted(self._commands)

    def __iter__(self):
        return iter(self._commands[name] for name in self.names())

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands
