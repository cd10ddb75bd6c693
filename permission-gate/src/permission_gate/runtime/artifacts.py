"""Resolve gate inputs (local paths or URLs) into local artifact files."""

from __future__ import annotations

import logging
import tempfile
from contextlib import ExitStack
from pathlib import Path
from typing import Optional

from permission_gate.errors import InputError
from permission_gate.runtime.fetch import SUPPORTED_SUFFIXES, RemoteFetcher, is_url

logger = logging.getLogger(__name__)


def validate_local_artifact(path: Path) -> Path:
    p = Path(path)
    if not p.is_file():
        raise InputError(f"artifact not found: {p}")
    if p.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise InputError(f"unsupported file type: {p} (expected .ipa, .apk or .aab)")
    if p.stat().st_size == 0:
        raise InputError(f"artifact is empty: {p}")
    logger.debug("validated local file: %s (%d bytes)", p, p.stat().st_size)
    return p


class ArtifactResolver:
    """Turns an input into a local file whose lifetime is bound to an ExitStack.

    Downloads land in one temporary directory per resolver scope; it is
    removed when the stack closes.
    """

    def __init__(self, fetcher: Optional[RemoteFetcher] = None) -> None:
        self._fetcher = fetcher

    def resolve(self, artifact: str, stack: ExitStack) -> Path:
        if not is_url(artifact):
            return validate_local_artifact(Path(artifact))

        if self._fetcher is None:
            raise InputError(f"remote artifacts are not supported here: {artifact}")
        download_dir = stack.enter_context(
            tempfile.TemporaryDirectory(prefix="permission_gate_dl_")
        )
        return validate_local_artifact(self._fetcher.fetch(artifact, Path(download_dir)))
