"""External tool resolution and invocation.

Tools are resolved once from an ordered list of candidates (first match wins)
and the resolved `ExternalTool` is injected into the collaborators that need
it, instead of re-probing `PATH` on every call.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from permission_gate.errors import ToolExecutionError, ToolNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    args: list[str]
    stdout: str
    stderr: str
    returncode: int

    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True)
class ToolCandidate:
    """One way of running a tool, e.g. `aapt2` on PATH or `java -jar bundletool.jar`."""

    label: str
    argv: tuple[str, ...]
    requires_files: tuple[str, ...] = ()

    def resolve(self) -> Optional[tuple[str, ...]]:
        if not self.argv:
            return None
        exe = shutil.which(self.argv[0])
        if exe is None:
            return None
        for f in self.requires_files:
            if not f or not os.path.isfile(f):
                return None
        return (exe, *self.argv[1:])


class ExternalTool:
    def __init__(self, name: str, argv: Sequence[str], *, timeout_s: float | None = None) -> None:
        self.name = name
        self._argv = list(argv)
        self._timeout_s = timeout_s

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    def run(self, *args: str, check: bool = True, timeout_s: float | None = None) -> ToolResult:
        cmd = self._argv + [str(a) for a in args]
        logger.debug("running: %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout_s if timeout_s is None else float(timeout_s),
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(f"{self.name} not found: {cmd[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise ToolExecutionError(f"{self.name} timed out: {' '.join(cmd)}") from e

        result = ToolResult(
            args=cmd,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            returncode=proc.returncode,
        )
        if check and not result.ok():
            raise ToolExecutionError(
                f"{self.name} failed (rc={result.returncode}): {' '.join(cmd)}\n"
                f"stderr: {result.stderr.strip()}"
            )
        return result


def resolve_tool(
    name: str,
    candidates: Sequence[ToolCandidate],
    *,
    hint: str = "",
    timeout_s: float | None = None,
) -> ExternalTool:
    for candidate in candidates:
        argv = candidate.resolve()
        if argv is not None:
            logger.debug("using %s for %s: %s", candidate.label, name, " ".join(argv))
            return ExternalTool(name, argv, timeout_s=timeout_s)
    tried = ", ".join(c.label for c in candidates) or "<none>"
    msg = f"{name} not found (tried: {tried})"
    if hint:
        msg += f". {hint}"
    raise ToolNotFoundError(msg)
