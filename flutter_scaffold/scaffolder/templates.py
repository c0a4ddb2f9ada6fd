"""Jinja2 rendering of template paths and bodies.

Provides the TemplateRenderer class which substitutes ``{{placeholder}}``
markers in every selected :class:`TemplateFile` path and body.  Rendering is
pure: no filesystem access, and the same inputs always yield the same
:class:`RenderedFile` list.  A placeholder that the bindings do not define is
reported as :class:`UnresolvedPlaceholder` before anything is rendered.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, meta
from pydantic import BaseModel, ConfigDict, Field

from flutter_scaffold.errors import DuplicateTarget, RegistryError, UnresolvedPlaceholder
from flutter_scaffold.scaffolder.naming import pascal_to_snake, snake_to_pascal, to_camel
from flutter_scaffold.scaffolder.registry import TemplateFile


class RenderedFile(BaseModel):
    """A template after substitution; lives between renderer and writer."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Final project-relative path")
    content: str = Field(..., description="Final file content")
    provenance: str = Field(..., description="Id of the TemplateFile that produced it")
    barrel: bool = Field(default=False)


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders template patterns with a fixed binding mapping.

    Autoescaping is off (the output is source code), trailing newlines are
    kept, and undefined names are errors rather than empty strings.
    """

    def __init__(self) -> None:
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        # Register custom filters
        self.env.filters["pascal_case"] = snake_to_pascal
        self.env.filters["snake_case"] = pascal_to_snake
        self.env.filters["camel_case"] = to_camel

    # -- Placeholder discovery ---------------------------------------------

    def placeholders(self, pattern: str, source: str = "") -> set[str]:
        """Return every variable name *pattern* reads.

        Raises:
            RegistryError: If *pattern* is not valid template syntax.
        """
        try:
            ast = self.env.parse(pattern)
        except TemplateSyntaxError as exc:
            raise RegistryError(f"template syntax error: {exc.message}", source) from exc
        return set(meta.find_undeclared_variables(ast))

    # -- String rendering --------------------------------------------------

    def render_string(
        self, pattern: str, bindings: Mapping[str, str], source: str = ""
    ) -> str:
        """Render one pattern after checking all of its placeholders are bound."""
        missing = sorted(self.placeholders(pattern, source) - set(bindings))
        if missing:
            raise UnresolvedPlaceholder(missing[0], source or "<inline>")
        return self.env.from_string(pattern).render(**bindings)

    def render_all(
        self, patterns: Iterable[str], bindings: Mapping[str, str], source: str = ""
    ) -> list[str]:
        return [self.render_string(p, bindings, source) for p in patterns]

    # -- Template files ----------------------------------------------------

    def render(
        self, files: Sequence[TemplateFile], bindings: Mapping[str, str]
    ) -> list[RenderedFile]:
        """Render the path and body of every file, in order.

        Raises:
            UnresolvedPlaceholder: If any path or body uses an unbound name.
            DuplicateTarget: If two non-barrel templates render the same path.
        """
        rendered: list[RenderedFile] = []
        for template_file in files:
            path = self.render_string(template_file.path, bindings, template_file.id)
            content = self.render_string(template_file.body, bindings, template_file.id)
            rendered.append(
                RenderedFile(
                    path=normalize_path(path),
                    content=content,
                    provenance=template_file.id,
                    barrel=template_file.barrel,
                )
            )

        by_path: dict[str, list[RenderedFile]] = {}
        for item in rendered:
            by_path.setdefault(item.path, []).append(item)
        for path, items in by_path.items():
            if len(items) > 1 and not all(item.barrel for item in items):
                raise DuplicateTarget(path, [item.provenance for item in items])
        return rendered


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def normalize_path(path: str) -> str:
    """Collapse doubled slashes left by empty bindings and strip a leading ``./``."""
    parts = [p for p in path.replace("\\", "/").split("/") if p and p != "."]
    return "/".join(parts)
