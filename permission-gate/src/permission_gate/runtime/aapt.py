"""Android inspection collaborator (aapt2 / aapt).

Probe order: `aapt2` on PATH, `$ANDROID_HOME/build-tools/<version>/aapt2`,
`aapt` on PATH.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from permission_gate.errors import ToolExecutionError
from permission_gate.runtime.tools import ExternalTool, ToolCandidate, resolve_tool

logger = logging.getLogger(__name__)

DEFAULT_BUILD_TOOLS_VERSION = "35.0.0"


def aapt_candidates(
    *, android_home: Optional[str], build_tools_version: str = DEFAULT_BUILD_TOOLS_VERSION
) -> list[ToolCandidate]:
    candidates = [ToolCandidate(label="aapt2", argv=("aapt2",))]
    if android_home:
        sdk_aapt2 = os.path.join(android_home, "build-tools", build_tools_version, "aapt2")
        candidates.append(ToolCandidate(label=sdk_aapt2, argv=(sdk_aapt2,)))
    candidates.append(ToolCandidate(label="aapt", argv=("aapt",)))
    return candidates


class AaptInspector:
    """Dumps permission and badging text for an APK."""

    def __init__(self, tool: ExternalTool) -> None:
        self._tool = tool

    @classmethod
    def resolve(
        cls,
        *,
        android_home: Optional[str] = None,
        build_tools_version: str = DEFAULT_BUILD_TOOLS_VERSION,
        timeout_s: float | None = None,
    ) -> "AaptInspector":
        tool = resolve_tool(
            "aapt",
            aapt_candidates(android_home=android_home, build_tools_version=build_tools_version),
            hint="Neither aapt nor aapt2 found. Please install Android SDK build-tools.",
            timeout_s=timeout_s,
        )
        return cls(tool)

    def _dump(self, what: str, package_path: Path) -> str:
        res = self._tool.run("dump", what, str(package_path), check=False)
        # aapt exits non-zero on some resource lookups while still printing
        # the full dump, so only an empty dump counts as a failure.
        if not res.ok():
            if not res.stdout.strip():
                raise ToolExecutionError(
                    f"{self._tool.name} dump {what} failed (rc={res.returncode}) "
                    f"for {package_path}: {res.stderr.strip()}"
                )
            logger.debug(
                "%s dump %s exited rc=%d with output; continuing",
                self._tool.name,
                what,
                res.returncode,
            )
        return res.stdout

    def dump_permissions(self, package_path: Path) -> str:
        logger.debug("running: %s dump permissions", self._tool.name)
        return self._dump("permissions", package_path)

    def dump_badging(self, package_path: Path) -> str:
        logger.debug("running: %s dump badging", self._tool.name)
        return self._dump("badging", package_path)
