"""Scaffolder -- binds, renders, checks and writes template sets.

Quick usage::

    from flutter_scaffold.scaffolder import TemplateRegistry, TemplateRenderer

    registry = TemplateRegistry.load()
    files = registry.select("new_feature", options)
    rendered = TemplateRenderer().render(files, bindings)
"""

from flutter_scaffold.scaffolder.checker import Action, PlannedChange, check_plan
from flutter_scaffold.scaffolder.fs import FileSystem, LocalFileSystem
from flutter_scaffold.scaffolder.registry import TemplateFile, TemplateRegistry, TemplateSet
from flutter_scaffold.scaffolder.templates import RenderedFile, TemplateRenderer
from flutter_scaffold.scaffolder.writer import write_plan

__all__ = [
    "Action",
    "FileSystem",
    "LocalFileSystem",
    "PlannedChange",
    "RenderedFile",
    "TemplateFile",
    "TemplateRegistry",
    "TemplateRenderer",
    "TemplateSet",
    "check_plan",
    "write_plan",
]
