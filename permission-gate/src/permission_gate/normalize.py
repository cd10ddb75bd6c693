"""Identifier normalization for Android permission names.

An app may declare its own ("dynamic") permissions namespaced under its
package, e.g. `com.example.app.CUSTOM_PERM`. Release builds of the same app can
ship under different package names (flavors, suffixes), so the package prefix
is stripped before comparison:

  com.example.app.CUSTOM_PERM  (owner com.example.app)  ->  CUSTOM_PERM
  android.permission.CAMERA    (owner com.example.app)  ->  android.permission.CAMERA

Matching is a literal prefix check of `owner + "."`. An empty owner never
matches anything.
"""

from __future__ import annotations

import re
from typing import Optional

from permission_gate.model import NormalizedPermission, OwnerIdentity, PermissionRecord

_OWNER_IDENTITY_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*(?:\.[A-Za-z][A-Za-z0-9_]*)+$")


def _clean(value: object) -> str:
    return str(value or "").strip()


def is_valid_owner_identity(value: object) -> bool:
    return bool(_OWNER_IDENTITY_RE.match(_clean(value)))


def _owner_prefix(owner: OwnerIdentity | str | None) -> Optional[str]:
    owner_str = _clean(owner.value if isinstance(owner, OwnerIdentity) else owner)
    if not owner_str:
        return None
    return owner_str + "."


def is_dynamic(raw_name: str, owner: OwnerIdentity | str | None) -> bool:
    prefix = _owner_prefix(owner)
    if prefix is None:
        return False
    return _clean(raw_name).startswith(prefix)


def normalize(raw_name: str, owner: OwnerIdentity | str | None) -> str:
    name = _clean(raw_name)
    prefix = _owner_prefix(owner)
    if prefix is not None and name.startswith(prefix):
        return name[len(prefix) :]
    return name


def normalize_permission(
    record: PermissionRecord, owner: OwnerIdentity | str | None
) -> NormalizedPermission:
    return NormalizedPermission(
        name=normalize(record.raw_name, owner),
        is_dynamic=is_dynamic(record.raw_name, owner),
        max_sdk_version=record.max_sdk_version,
        raw_name=_clean(record.raw_name),
    )
