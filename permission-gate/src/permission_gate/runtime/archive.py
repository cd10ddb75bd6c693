"""Archive unpacking collaborator (IPA, .apks)."""

from __future__ import annotations

import logging
import tempfile
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from permission_gate.errors import UnpackError

logger = logging.getLogger(__name__)


def extract_zip(archive_path: Path, dest_dir: Path) -> Path:
    archive_path = Path(archive_path)
    dest_dir = Path(dest_dir)
    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            zf.extractall(dest_dir)
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise UnpackError(f"not a valid archive: {archive_path}: {e}") from e
    except OSError as e:
        raise UnpackError(f"cannot unpack {archive_path}: {e}") from e
    return dest_dir


@contextmanager
def unpack(archive_path: Path, *, prefix: str = "permission_gate_") -> Iterator[Path]:
    """Unpack into a temporary directory that is removed on exit, even on failure."""

    with tempfile.TemporaryDirectory(prefix=prefix) as td:
        logger.debug("unpacking %s into %s", archive_path, td)
        yield extract_zip(Path(archive_path), Path(td))


def find_first(root: Path, pattern: str, *, dirs_only: bool = False) -> Optional[Path]:
    matches = sorted(p for p in Path(root).glob(pattern) if (p.is_dir() or not dirs_only))
    return matches[0] if matches else None
