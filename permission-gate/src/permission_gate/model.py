from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

PLATFORM_ANDROID = "android"
PLATFORM_IOS = "ios"
PLATFORMS: tuple[str, ...] = (PLATFORM_IOS, PLATFORM_ANDROID)


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """Format a UTC timestamp as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""

    dt = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class PermissionRecord:
    """A permission exactly as declared by the artifact, before normalization."""

    raw_name: str
    max_sdk_version: Optional[int] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class OwnerIdentity:
    """Reverse-domain package (Android) or bundle (iOS) identifier."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NormalizedPermission:
    name: str
    is_dynamic: bool
    max_sdk_version: Optional[int] = None
    raw_name: Optional[str] = None

    def to_json(self) -> Dict[str, object]:
        out: Dict[str, object] = {
            "name": self.name,
            "rawName": self.raw_name if self.raw_name is not None else self.name,
            "isDynamic": self.is_dynamic,
        }
        if self.max_sdk_version is not None:
            out["maxSdkVersion"] = self.max_sdk_version
        return out


# Android set: normalized name -> permission. iOS set: plist key -> description.
AndroidPermissionSet = Dict[str, NormalizedPermission]
IosPermissionSet = Dict[str, str]


@dataclass
class CurrentPermissions:
    """Aggregate of the current run, keyed by platform.

    Only platforms that were actually extracted take part in the diff.
    """

    ios: IosPermissionSet = field(default_factory=dict)
    android: AndroidPermissionSet = field(default_factory=dict)
    processed: set[str] = field(default_factory=set)

    def set_ios(self, permissions: IosPermissionSet) -> None:
        self.ios = dict(permissions)
        self.processed.add(PLATFORM_IOS)

    def set_android(self, permissions: AndroidPermissionSet) -> None:
        self.android = dict(permissions)
        self.processed.add(PLATFORM_ANDROID)
