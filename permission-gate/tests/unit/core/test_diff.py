from __future__ import annotations

import pytest

from permission_gate.diff import (
    VERDICT_FAIL,
    VERDICT_PASS,
    DiffResult,
    diff_android,
    diff_ios,
    diff_keys,
    verdict,
)
from permission_gate.model import NormalizedPermission

_SETS = [
    set(),
    {"CAMERA"},
    {"CAMERA", "LOCATION"},
    {"LOCATION", "MICROPHONE", "z.last", "A.first"},
]


def _android(*names: str, sdk: int | None = None) -> dict[str, NormalizedPermission]:
    return {n: NormalizedPermission(name=n, is_dynamic=False, max_sdk_version=sdk) for n in names}


@pytest.mark.parametrize("a", _SETS)
@pytest.mark.parametrize("b", _SETS)
def test_diff_is_symmetric(a: set, b: set) -> None:
    ab = diff_keys(a, b)
    ba = diff_keys(b, a)
    assert ab.added == ba.removed
    assert ab.removed == ba.added


@pytest.mark.parametrize("a", _SETS)
def test_diff_with_itself_is_empty(a: set) -> None:
    d = diff_keys(a, a)
    assert d.added == () and d.removed == ()
    assert d.has_drift is False


def test_output_is_sorted_and_stable() -> None:
    current = ["zeta", "alpha", "Mid", "beta"]
    first = diff_keys(current, [])
    second = diff_keys(list(reversed(current)), [])
    assert first.added == ("Mid", "alpha", "beta", "zeta")
    assert first == second


def test_new_android_permission_fails_gate() -> None:
    d = diff_android(
        _android("android.permission.CAMERA", "android.permission.ACCESS_FINE_LOCATION"),
        _android("android.permission.CAMERA"),
    )
    assert d.added == ("android.permission.ACCESS_FINE_LOCATION",)
    assert d.removed == ()
    assert verdict({"android": d}) == VERDICT_FAIL


def test_ceiling_change_is_not_drift() -> None:
    d = diff_android(_android("X", sdk=28), _android("X", sdk=None))
    assert d.has_drift is False


def test_ios_description_change_is_not_drift() -> None:
    d = diff_ios({"NSCameraUsageDescription": "new"}, {"NSCameraUsageDescription": "old"})
    assert d == DiffResult()
    assert verdict({"ios": d}) == VERDICT_PASS


def test_verdict_fails_if_any_platform_drifts() -> None:
    diffs = {"ios": DiffResult(), "android": DiffResult(removed=("X",))}
    assert verdict(diffs) == VERDICT_FAIL
    assert verdict({}) == VERDICT_PASS
