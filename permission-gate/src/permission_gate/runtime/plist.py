"""Property-list reader collaborator."""

from __future__ import annotations

import plistlib
from pathlib import Path
from typing import Any, Dict
from xml.parsers.expat import ExpatError

from permission_gate.errors import PlistConversionError


class PlistReader:
    """Reads XML or binary property lists into a plain dict."""

    def read_structured(self, plist_path: Path) -> Dict[str, Any]:
        path = Path(plist_path)
        try:
            with path.open("rb") as f:
                data = plistlib.load(f)
        except (plistlib.InvalidFileException, ExpatError, ValueError, OSError) as e:
            raise PlistConversionError(f"could not read property list {path}: {e}") from e

        if not isinstance(data, dict):
            raise PlistConversionError(
                f"property list top level must be a dictionary: {path} ({type(data).__name__})"
            )
        return data
