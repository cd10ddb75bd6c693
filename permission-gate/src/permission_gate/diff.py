"""Diff engine: added/removed permission identifiers per platform.

Only the key space is compared (Android: normalized name, iOS: plist key).
Description text and `maxSdkVersion` changes on a known key are not drift;
the gate tracks capability surface, not metadata.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Dict

from permission_gate.model import AndroidPermissionSet, IosPermissionSet

VERDICT_PASS = "PASS"
VERDICT_FAIL = "FAIL"


@dataclass(frozen=True)
class DiffResult:
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()

    @property
    def has_drift(self) -> bool:
        return bool(self.added or self.removed)

    def to_json(self) -> Dict[str, Any]:
        return {"added": list(self.added), "removed": list(self.removed)}


def diff_keys(current: Iterable[str], baseline: Iterable[str]) -> DiffResult:
    cur = set(current)
    base = set(baseline)
    return DiffResult(added=tuple(sorted(cur - base)), removed=tuple(sorted(base - cur)))


def diff_android(current: AndroidPermissionSet, baseline: AndroidPermissionSet) -> DiffResult:
    return diff_keys(current.keys(), baseline.keys())


def diff_ios(current: IosPermissionSet, baseline: IosPermissionSet) -> DiffResult:
    return diff_keys(current.keys(), baseline.keys())


def verdict(diffs: Mapping[str, DiffResult]) -> str:
    if any(d.has_drift for d in diffs.values()):
        return VERDICT_FAIL
    return VERDICT_PASS
