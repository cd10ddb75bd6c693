"""Baseline store.

The baseline is a flat JSON document:

  {
    "ios": {"NSCameraUsageDescription": "..."},
    "android": [{"name": "android.permission.CAMERA"}, {"name": "X", "maxSdkVersion": 28}],
    "lastUpdated": "2024-01-01T00:00:00.000Z"
  }

A missing file is not an error: it signals the first run. A missing `ios` or
`android` key reads as an empty set for that platform. Saving always
replaces the whole document atomically; it never merges.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema

from permission_gate.builder import (
    COLLISION_LOWEST,
    android_set_from_document,
    android_set_to_document,
)
from permission_gate.errors import BaselineFormatError
from permission_gate.model import (
    AndroidPermissionSet,
    CurrentPermissions,
    IosPermissionSet,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

DEFAULT_BASELINE_FILENAME = "baseline-permissions.json"


def _schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "baseline.schema.json"


@lru_cache(maxsize=1)
def _load_schema() -> dict[str, Any]:
    schema_path = _schema_path()
    data = json.loads(schema_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise BaselineFormatError(f"schema must be an object: {schema_path}")
    jsonschema.Draft202012Validator.check_schema(data)
    return data


def validate_baseline_document(doc: Any, *, where: str) -> None:
    validator = jsonschema.Draft202012Validator(_load_schema())
    errors = sorted(validator.iter_errors(doc), key=lambda e: list(e.path))
    if errors:
        msgs = []
        for e in errors[:20]:
            loc = "/".join(str(p) for p in e.path)
            msgs.append(f"- {where}:{loc}: {e.message}")
        if len(errors) > 20:
            msgs.append(f"... ({len(errors) - 20} more)")
        raise BaselineFormatError("invalid baseline document:\n" + "\n".join(msgs))


@dataclass
class Baseline:
    ios: IosPermissionSet = field(default_factory=dict)
    android: AndroidPermissionSet = field(default_factory=dict)
    last_updated: Optional[str] = None
    exists: bool = False

    @classmethod
    def from_current(cls, current: CurrentPermissions) -> "Baseline":
        return cls(ios=dict(current.ios), android=dict(current.android))

    def to_document(self, *, last_updated: Optional[str] = None) -> Dict[str, Any]:
        return {
            "ios": {k: self.ios[k] for k in sorted(self.ios)},
            "android": android_set_to_document(self.android),
            "lastUpdated": last_updated or self.last_updated or utc_timestamp(),
        }


def baseline_from_document(
    doc: Any, *, where: str = "baseline", collision_policy: str = COLLISION_LOWEST
) -> Baseline:
    validate_baseline_document(doc, where=where)
    return Baseline(
        ios={str(k): str(v) for k, v in doc.get("ios", {}).items()},
        android=android_set_from_document(
            doc.get("android", []), collision_policy=collision_policy
        ),
        last_updated=doc.get("lastUpdated"),
        exists=True,
    )


def _file_mode(path: Path) -> int:
    """Mode for a rewritten file: keep the existing one, else 0o666 minus umask."""

    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


class BaselineStore:
    def __init__(self, path: Path, *, collision_policy: str = COLLISION_LOWEST) -> None:
        self._path = Path(path)
        self._collision_policy = collision_policy

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> Baseline:
        if not self.exists():
            logger.info("no baseline found at %s (first run)", self._path)
            return Baseline()

        try:
            doc = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise BaselineFormatError(f"cannot read baseline {self._path}: {e}") from e

        baseline = baseline_from_document(
            doc, where=self._path.name, collision_policy=self._collision_policy
        )
        logger.info("loaded baseline %s", self._path)
        logger.debug(
            "baseline contains: iOS=%d, Android=%d permissions",
            len(baseline.ios),
            len(baseline.android),
        )
        return baseline

    def save(self, baseline: Baseline) -> Dict[str, Any]:
        """Atomically replace the baseline file; returns the written document."""

        doc = baseline.to_document(last_updated=utc_timestamp())
        text = json.dumps(doc, indent=2, ensure_ascii=False) + "\n"

        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=str(self._path.parent)
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.chmod(tmp_path, _file_mode(self._path))
            os.replace(tmp_path, self._path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        baseline.last_updated = doc["lastUpdated"]
        baseline.exists = True
        logger.info("wrote baseline %s", self._path)
        return doc
