"""iOS permission extraction from an IPA's Info.plist.

Permission keys are platform-defined strings (`NSCameraUsageDescription`,
`NSLocationWhenInUseUsageDescription`, ...), so they are compared as-is. Any
key matching one of the patterns below counts as a permission key.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from permission_gate.builder import build_ios_set
from permission_gate.errors import BundleNotFoundError, InputError
from permission_gate.model import PLATFORM_IOS, IosPermissionSet, utc_timestamp
from permission_gate.runtime.archive import find_first, unpack
from permission_gate.runtime.plist import PlistReader

logger = logging.getLogger(__name__)

SOURCE_IPA = "ipa"

_PERMISSION_KEY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Usage|Permission|Privacy", re.IGNORECASE),
    re.compile(r"^NS.*Usage", re.IGNORECASE),
    re.compile(r"UsageDescription$", re.IGNORECASE),
    re.compile(r"^Privacy", re.IGNORECASE),
)

_BUNDLE_INFO_KEYS = {
    "bundleId": "CFBundleIdentifier",
    "bundleVersion": "CFBundleVersion",
    "shortVersion": "CFBundleShortVersionString",
}


def is_permission_key(key: str) -> bool:
    return any(p.search(str(key)) for p in _PERMISSION_KEY_PATTERNS)


def _as_description(value: Any) -> str:
    if isinstance(value, str):
        return value
    # Dictionary/array valued keys (e.g. NSLocationTemporaryUsageDescriptionDictionary)
    # are kept as canonical JSON so the set stays string -> string.
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


def filter_permission_keys(plist: Mapping[str, Any]) -> Dict[str, str]:
    return {str(k): _as_description(v) for k, v in plist.items() if is_permission_key(str(k))}


@dataclass
class IosExtraction:
    artifact_path: Path
    app_bundle: str
    permissions: Dict[str, str]
    bundle_info: Dict[str, Optional[str]] = field(default_factory=dict)
    extracted_at: str = field(default_factory=utc_timestamp)

    def permission_set(self) -> IosPermissionSet:
        return build_ios_set(self.permissions)

    def to_summary(self) -> Dict[str, Any]:
        return {
            "platform": PLATFORM_IOS,
            "source": SOURCE_IPA,
            "ipaPath": str(self.artifact_path),
            "appBundle": self.app_bundle,
            "bundleInfo": dict(self.bundle_info),
            "extractedAt": self.extracted_at,
            "permissions": dict(self.permissions),
            "totalPermissions": len(self.permissions),
        }


def extract_from_plist(
    plist: Mapping[str, Any], *, artifact_path: Path, app_bundle: str
) -> IosExtraction:
    permissions = filter_permission_keys(plist)
    bundle_info: Dict[str, Optional[str]] = {}
    for out_key, plist_key in _BUNDLE_INFO_KEYS.items():
        value = plist.get(plist_key)
        bundle_info[out_key] = str(value) if value is not None else None

    logger.debug("found %d iOS permissions", len(permissions))
    for key in sorted(permissions):
        logger.debug("  - %s: %s", key, permissions[key])

    return IosExtraction(
        artifact_path=Path(artifact_path),
        app_bundle=app_bundle,
        permissions=permissions,
        bundle_info=bundle_info,
    )


class IosExtractor:
    def __init__(self, plist_reader: Optional[PlistReader] = None) -> None:
        self._plist_reader = plist_reader or PlistReader()

    def extract(self, artifact_path: Path) -> IosExtraction:
        path = Path(artifact_path)
        if not path.is_file():
            raise InputError(f"IPA file not found: {path}")
        if path.suffix.lower() != ".ipa":
            raise InputError(f"unsupported file type: {path} (expected .ipa)")

        logger.debug("extracting IPA: %s", path)
        with unpack(path, prefix="permission_gate_ipa_") as root:
            app_dir = find_first(root / "Payload", "*.app", dirs_only=True)
            if app_dir is None:
                raise BundleNotFoundError(f"no .app bundle found in IPA: {path}")
            logger.debug("found app bundle: %s", app_dir.name)

            info_plist = app_dir / "Info.plist"
            if not info_plist.is_file():
                raise BundleNotFoundError(f"Info.plist not found in app bundle {app_dir.name}")

            plist = self._plist_reader.read_structured(info_plist)
            logger.debug("available plist keys: %s", ", ".join(sorted(map(str, plist))))
            return extract_from_plist(plist, artifact_path=path, app_bundle=app_dir.name)
