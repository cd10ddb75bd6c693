"""Android permission extraction from aapt/aapt2 dumps.

`aapt dump badging` prints the package identity:

  package: name='com.example.app' versionCode='42' versionName='1.2.3' ...

`aapt dump permissions` prints one line per declaration:

  package: com.example.app
  uses-permission: name='android.permission.CAMERA'
  uses-permission: name='android.permission.WRITE_EXTERNAL_STORAGE' maxSdkVersion='28'
  uses-permission: name='com.example.app.C2D_MESSAGE'

Every declared name is normalized against the package identity (see
`permission_gate.normalize`).
"""

from __future__ import annotations

import logging
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from permission_gate.builder import COLLISION_LOWEST, build_android_set
from permission_gate.errors import InputError, PackageIdentityError
from permission_gate.model import (
    PLATFORM_ANDROID,
    AndroidPermissionSet,
    NormalizedPermission,
    OwnerIdentity,
    PermissionRecord,
    utc_timestamp,
)
from permission_gate.normalize import is_valid_owner_identity, normalize_permission

logger = logging.getLogger(__name__)

SOURCE_APK = "apk"
SOURCE_AAB = "aab"

_PACKAGE_LINE_RE = re.compile(r"^\s*package:\s*(?P<rest>.*)$")
_USES_PERMISSION_RE = re.compile(r"^\s*uses-permission(?:-sdk-23|-sdk-m)?:\s*(?P<rest>.*)$")
_BARE_NAME_RE = re.compile(r"^(?P<name>[^\s=']+)\s*$")
_SDK_VERSION_RE = re.compile(r"[0-9]+")


def _attr(text: str, key: str) -> Optional[str]:
    m = re.search(rf"(?:^|\s){re.escape(key)}='(?P<value>[^']*)'", text)
    if not m:
        return None
    return m.group("value").strip()


@dataclass(frozen=True)
class PackageInfo:
    owner: OwnerIdentity
    version_code: str = ""
    version_name: str = ""


def parse_package_info(badging_text: str, permissions_text: str = "") -> PackageInfo:
    """Owner identity from the first well-formed `package:` line.

    Badging lines (`package: name='...'`) are preferred; the bare
    `package: com.x` header of the permissions dump is the fallback.
    """

    seen: List[str] = []
    for line in str(badging_text or "").replace("\r", "").splitlines():
        m = _PACKAGE_LINE_RE.match(line)
        if not m:
            continue
        rest = m.group("rest")
        name = _attr(rest, "name")
        if name is None:
            continue
        if is_valid_owner_identity(name):
            return PackageInfo(
                owner=OwnerIdentity(name),
                version_code=_attr(rest, "versionCode") or "",
                version_name=_attr(rest, "versionName") or "",
            )
        seen.append(name)

    for line in str(permissions_text or "").replace("\r", "").splitlines():
        m = _PACKAGE_LINE_RE.match(line)
        if not m:
            continue
        bare = _BARE_NAME_RE.match(m.group("rest").strip())
        if bare is None:
            continue
        name = bare.group("name")
        if is_valid_owner_identity(name):
            return PackageInfo(owner=OwnerIdentity(name))
        seen.append(name)

    got = ", ".join(repr(s) for s in seen) if seen else "nothing"
    raise PackageIdentityError(f"failed to extract a valid package name (got: {got})")


def parse_uses_permissions(permissions_text: str) -> List[PermissionRecord]:
    """Parse `uses-permission:` lines; lines without `name='...'` are skipped."""

    records: List[PermissionRecord] = []
    for line in str(permissions_text or "").replace("\r", "").splitlines():
        m = _USES_PERMISSION_RE.match(line)
        if not m:
            continue
        rest = m.group("rest")
        name = _attr(rest, "name")
        if not name:
            continue
        max_sdk_raw = _attr(rest, "maxSdkVersion")
        max_sdk = None
        if max_sdk_raw and _SDK_VERSION_RE.fullmatch(max_sdk_raw):
            max_sdk = int(max_sdk_raw)
        records.append(PermissionRecord(raw_name=name, max_sdk_version=max_sdk))
    return records


@dataclass
class AndroidExtraction:
    artifact_path: Path
    source: str
    package: PackageInfo
    permissions: List[NormalizedPermission]
    extracted_at: str = field(default_factory=utc_timestamp)

    @property
    def owner(self) -> OwnerIdentity:
        return self.package.owner

    @property
    def dynamic_count(self) -> int:
        return sum(1 for p in self.permissions if p.is_dynamic)

    def permission_set(self, *, collision_policy: str = COLLISION_LOWEST) -> AndroidPermissionSet:
        return build_android_set(self.permissions, collision_policy=collision_policy)

    def to_summary(self) -> Dict[str, Any]:
        return {
            "platform": PLATFORM_ANDROID,
            "source": self.source,
            "artifactPath": str(self.artifact_path),
            "extractedAt": self.extracted_at,
            "packageInfo": {
                "packageName": self.owner.value,
                "versionCode": self.package.version_code,
                "versionName": self.package.version_name,
            },
            "permissions": [p.to_json() for p in self.permissions],
            "totalPermissions": len(self.permissions),
            "dynamicPermissions": self.dynamic_count,
        }


def extract_from_dumps(
    *,
    artifact_path: Path,
    permissions_text: str,
    badging_text: str,
    source: str = SOURCE_APK,
) -> AndroidExtraction:
    package = parse_package_info(badging_text, permissions_text)
    logger.debug(
        "package info - name: %r, version: %s (%s)",
        package.owner.value,
        package.version_name,
        package.version_code,
    )

    records = parse_uses_permissions(permissions_text)
    logger.debug("found %d permission entries", len(records))

    permissions: List[NormalizedPermission] = []
    for record in records:
        perm = normalize_permission(record, package.owner)
        if perm.is_dynamic:
            logger.debug("dynamic permission: %s -> %s", record.raw_name, perm.name)
        else:
            logger.debug(
                "found permission: %s%s",
                record.raw_name,
                "" if record.max_sdk_version is None else f" (maxSdk: {record.max_sdk_version})",
            )
        permissions.append(perm)

    return AndroidExtraction(
        artifact_path=Path(artifact_path),
        source=source,
        package=package,
        permissions=permissions,
    )


def android_source_for(path: Path) -> str:
    suffix = Path(path).suffix.lower()
    if suffix == ".apk":
        return SOURCE_APK
    if suffix == ".aab":
        return SOURCE_AAB
    raise InputError(f"unsupported file type: {path} (expected .apk or .aab)")


class AndroidExtractor:
    """Runs the inspection tool (and bundletool for AABs) and parses the output.

    `toolchain` exposes `.inspector` (dump_permissions/dump_badging) and
    `.converter` (build_universal_apk); each is resolved on first use.
    """

    def __init__(self, toolchain: Any) -> None:
        self._toolchain = toolchain

    def _inspect(self, apk_path: Path, *, artifact_path: Path, source: str) -> AndroidExtraction:
        inspector = self._toolchain.inspector
        logger.debug("extracting permissions from APK: %s", apk_path)
        permissions_text = inspector.dump_permissions(apk_path)
        badging_text = inspector.dump_badging(apk_path)
        return extract_from_dumps(
            artifact_path=artifact_path,
            permissions_text=permissions_text,
            badging_text=badging_text,
            source=source,
        )

    def extract(self, artifact_path: Path) -> AndroidExtraction:
        path = Path(artifact_path)
        if not path.is_file():
            raise InputError(f"Android artifact not found: {path}")
        source = android_source_for(path)
        logger.debug("extracting Android permissions from %s: %s", source, path)

        if source == SOURCE_APK:
            return self._inspect(path, artifact_path=path, source=source)

        converter = self._toolchain.converter
        with tempfile.TemporaryDirectory(prefix="permission_gate_aab_") as td:
            apk = converter.build_universal_apk(path, Path(td))
            return self._inspect(apk, artifact_path=path, source=source)
