"""Post-write toolchain steps (``dart format``, ``flutter pub get``, ...).

Steps are argv patterns declared by a TemplateSet, rendered with the
invocation's bindings and run one after another in the project root.  Their
outcome is informational: a failing step never undoes or invalidates the
scaffold that preceded it.
"""

from __future__ import annotations

import shlex
import time
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, Field, computed_field

from flutter_scaffold.utils import run_command


class ToolchainResult(BaseModel):
    """Outcome of one toolchain step."""

    command: list[str] = Field(..., description="Rendered argv")
    exit_code: int = Field(..., description="Process exit code, -1 on timeout or launch failure")
    stdout: str = Field(default="")
    stderr: str = Field(default="")
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @computed_field  # type: ignore[misc]
    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def display(self) -> str:
        return shlex.join(self.command)


async def run_toolchain(
    steps: Sequence[Sequence[str]],
    cwd: str | Path,
    timeout: int = 300,
) -> list[ToolchainResult]:
    """Run *steps* sequentially in *cwd*.

    A step whose executable is missing is recorded with exit code ``-1``
    instead of raising; later steps still run.
    """
    results: list[ToolchainResult] = []
    for step in steps:
        argv = [str(arg) for arg in step]
        started = time.monotonic()
        try:
            code, out, err = await run_command(argv, cwd=cwd, timeout=timeout)
        except (FileNotFoundError, PermissionError) as exc:
            code, out, err = -1, "", f"{argv[0]}: {exc.strerror or exc}"
        results.append(
            ToolchainResult(
                command=argv,
                exit_code=code,
                stdout=out,
                stderr=err,
                duration_seconds=round(time.monotonic() - started, 3),
            )
        )
    return results
