"""Bundle-format converter collaborator: AAB -> universal APK via bundletool."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from permission_gate.errors import UnpackError
from permission_gate.runtime.archive import extract_zip, find_first
from permission_gate.runtime.tools import ExternalTool, ToolCandidate, resolve_tool

logger = logging.getLogger(__name__)


def bundletool_candidates(*, bundletool_jar: Optional[str]) -> list[ToolCandidate]:
    candidates = [ToolCandidate(label="bundletool", argv=("bundletool",))]
    if bundletool_jar:
        candidates.append(
            ToolCandidate(
                label=f"java -jar {bundletool_jar}",
                argv=("java", "-jar", bundletool_jar),
                requires_files=(bundletool_jar,),
            )
        )
    return candidates


class BundletoolConverter:
    def __init__(self, tool: ExternalTool) -> None:
        self._tool = tool

    @classmethod
    def resolve(
        cls, *, bundletool_jar: Optional[str] = None, timeout_s: float | None = None
    ) -> "BundletoolConverter":
        tool = resolve_tool(
            "bundletool",
            bundletool_candidates(bundletool_jar=bundletool_jar),
            hint="Required for AAB processing.",
            timeout_s=timeout_s,
        )
        return cls(tool)

    def build_universal_apk(self, bundle_path: Path, work_dir: Path) -> Path:
        """Build a universal APK set under work_dir and return the extracted APK.

        work_dir is owned by the caller and must outlive the returned path.
        """

        work_dir = Path(work_dir)
        apks_path = work_dir / "universal.apks"
        logger.debug("building universal APK from %s", bundle_path)
        self._tool.run(
            "build-apks",
            f"--bundle={bundle_path}",
            f"--output={apks_path}",
            "--mode=universal",
        )

        out_dir = extract_zip(apks_path, work_dir / "apks")
        apk = find_first(out_dir, "**/*.apk")
        if apk is None or not apk.is_file():
            raise UnpackError(f"could not extract APK from AAB: {bundle_path}")
        logger.debug("found extracted APK: %s", apk.name)
        return apk
