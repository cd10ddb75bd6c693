"""Permission set builder.

Android sets are keyed by normalized name. When two declarations collapse onto
the same name (a dynamic and a static permission, or a duplicate line), the
`maxSdkVersion` ceiling is merged by a collision policy:

  lowest  the tightest ceiling wins; an absent ceiling (unbounded) loses to any
          bound. Independent of declaration order. Default.
  last    the last declaration wins.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List, Optional

from permission_gate.errors import BaselineFormatError
from permission_gate.model import AndroidPermissionSet, IosPermissionSet, NormalizedPermission

COLLISION_LOWEST = "lowest"
COLLISION_LAST = "last"
COLLISION_POLICIES = (COLLISION_LOWEST, COLLISION_LAST)

_SDK_VERSION_RE = re.compile(r"[0-9]+")


def _merge_ceiling(old: Optional[int], new: Optional[int], *, policy: str) -> Optional[int]:
    if policy == COLLISION_LAST:
        return new
    if old is None:
        return new
    if new is None:
        return old
    return min(old, new)


def build_android_set(
    permissions: Iterable[NormalizedPermission],
    *,
    collision_policy: str = COLLISION_LOWEST,
) -> AndroidPermissionSet:
    if collision_policy not in COLLISION_POLICIES:
        raise ValueError(f"unknown collision policy: {collision_policy!r}")

    out: AndroidPermissionSet = {}
    for perm in permissions:
        prev = out.get(perm.name)
        if prev is None:
            out[perm.name] = perm
            continue
        ceiling = _merge_ceiling(
            prev.max_sdk_version, perm.max_sdk_version, policy=collision_policy
        )
        keep = perm if collision_policy == COLLISION_LAST else prev
        out[perm.name] = NormalizedPermission(
            name=perm.name,
            is_dynamic=prev.is_dynamic or perm.is_dynamic,
            max_sdk_version=ceiling,
            raw_name=keep.raw_name,
        )
    return out


def build_ios_set(permissions: Mapping[str, str]) -> IosPermissionSet:
    return {str(k): str(v) for k, v in permissions.items()}


def _coerce_sdk(value: Any, *, where: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise BaselineFormatError(f"{where}: maxSdkVersion must be an integer")
    if isinstance(value, int):
        return value
    # Older baselines stored the ceiling as a string.
    s = str(value).strip()
    if _SDK_VERSION_RE.fullmatch(s):
        return int(s)
    raise BaselineFormatError(f"{where}: maxSdkVersion must be an integer, got {value!r}")


def android_set_to_document(permissions: AndroidPermissionSet) -> List[Dict[str, Any]]:
    """Persisted Android shape: list of `{name, maxSdkVersion?}` sorted by name."""

    doc: List[Dict[str, Any]] = []
    for name in sorted(permissions):
        item: Dict[str, Any] = {"name": name}
        ceiling = permissions[name].max_sdk_version
        if ceiling is not None:
            item["maxSdkVersion"] = ceiling
        doc.append(item)
    return doc


def android_set_from_document(
    items: Iterable[Mapping[str, Any]],
    *,
    collision_policy: str = COLLISION_LOWEST,
) -> AndroidPermissionSet:
    perms: List[NormalizedPermission] = []
    for idx, item in enumerate(items):
        name = str(item.get("name") or "").strip()
        if not name:
            raise BaselineFormatError(f"android[{idx}]: missing permission name")
        perms.append(
            NormalizedPermission(
                name=name,
                is_dynamic=False,
                max_sdk_version=_coerce_sdk(item.get("maxSdkVersion"), where=f"android[{idx}]"),
            )
        )
    return build_android_set(perms, collision_policy=collision_policy)
