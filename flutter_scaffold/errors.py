"""Error taxonomy for the scaffolding engine.

Three families, all rooted at :class:`ScaffoldError`:

* :class:`InputError` -- bad invocation tokens, raised by the option resolver
  and the variable binder before any template work begins.
* :class:`TemplateError` -- defects in the shipped template set or command
  catalog.  A correctly authored registry never raises these at runtime.
* :class:`FileSystemError` -- the target project is not in a state the
  command can scaffold into.  Recoverable by the caller.

Every error renders to a single line so the CLI can print one line per
failure.
"""

from __future__ import annotations

from collections.abc import Sequence


class ScaffoldError(Exception):
    """Base class for every error raised by the engine."""

    category = "error"


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------


class InputError(ScaffoldError):
    """Raised when invocation tokens do not satisfy the command definition."""

    category = "input"


class UnknownCommand(InputError):
    def __init__(self, name: str, available: Sequence[str] = ()) -> None:
        self.name = name
        self.available = list(available)
        hint = f" (available: {', '.join(self.available)})" if self.available else ""
        super().__init__(f"Unknown command '{name}'{hint}")


class MissingRequiredArgument(InputError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Missing required argument '{name}'")


class MissingArgumentValue(InputError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Argument '--{name}' expects a value")


class InvalidChoice(InputError):
    def __init__(self, argument: str, value: str, allowed: Sequence[str]) -> None:
        self.argument = argument
        self.value = value
        self.allowed = list(allowed)
        super().__init__(
            f"Invalid value '{value}' for '--{argument}' "
            f"(choose from: {', '.join(self.allowed)})"
        )


class UnknownArgument(InputError):
    def __init__(self, name: str, positional: bool = False) -> None:
        self.name = name
        self.positional = positional
        if positional:
            message = f"Unexpected positional argument '{name}'"
        else:
            message = f"Unknown argument '--{name}'"
        super().__init__(message)


class InvalidIdentifier(InputError):
    def __init__(self, value: str, convention: str = "") -> None:
        self.value = value
        self.convention = convention
        rule = {
            "snake": "lower snake_case starting with a letter",
            "pascal": "PascalCase starting with an uppercase letter",
        }.get(convention, "a valid identifier")
        super().__init__(f"Invalid identifier '{value}': must be {rule}")


# ---------------------------------------------------------------------------
# Template errors
# ---------------------------------------------------------------------------


class TemplateError(ScaffoldError):
    """Raised when the template registry or command catalog is inconsistent."""

    category = "template"


class RegistryError(TemplateError):
    """A manifest or command definition file is malformed."""

    def __init__(self, message: str, source: str = "") -> None:
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class UnknownTemplateVariant(TemplateError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Unknown template variant '{key}'")


class UnresolvedPlaceholder(TemplateError):
    def __init__(self, name: str, file: str) -> None:
        self.name = name
        self.file = file
        super().__init__(f"Unresolved placeholder '{{{{{name}}}}}' in template {file}")


class DuplicateTarget(TemplateError):
    def __init__(self, path: str, provenance: Sequence[str] = ()) -> None:
        self.path = path
        self.provenance = list(provenance)
        super().__init__(
            f"Several templates render to {path}: {', '.join(self.provenance)}"
        )


# ---------------------------------------------------------------------------
# Filesystem errors
# ---------------------------------------------------------------------------


class FileSystemError(ScaffoldError):
    """Raised when the target project blocks the scaffold."""

    category = "filesystem"


class FileAlreadyExists(FileSystemError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"File already exists: {path} (pass --force to overwrite)"
        )


class PreconditionNotMet(FileSystemError):
    def __init__(self, description: str, path: str = "") -> None:
        self.description = description
        self.path = path
        suffix = f" [{path}]" if path else ""
        super().__init__(f"Precondition not met: {description}{suffix}")


class ScaffoldAborted(ScaffoldError):
    """Raised by the writer when asked to apply a plan that has errors."""

    def __init__(self, errors: Sequence[ScaffoldError]) -> None:
        self.errors = list(errors)
        super().__init__(
            f"Scaffold aborted: {len(self.errors)} error(s), nothing written"
        )
