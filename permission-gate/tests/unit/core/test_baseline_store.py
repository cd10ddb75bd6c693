from __future__ import annotations

import json
import os
import re
import stat
from pathlib import Path

import pytest

from permission_gate.baseline import Baseline, BaselineStore
from permission_gate.errors import BaselineFormatError, InputError
from permission_gate.model import NormalizedPermission

_TS_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def test_missing_file_is_first_run(tmp_path: Path) -> None:
    store = BaselineStore(tmp_path / "baseline-permissions.json")
    baseline = store.load()
    assert baseline.exists is False
    assert baseline.ios == {}
    assert baseline.android == {}


def test_save_writes_full_document(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "baseline.json"
    store = BaselineStore(path)
    baseline = Baseline(
        ios={"NSMicrophoneUsageDescription": "Voice notes", "NSCameraUsageDescription": "Scan"},
        android={
            "android.permission.CAMERA": NormalizedPermission("android.permission.CAMERA", False),
            "C2D_MESSAGE": NormalizedPermission("C2D_MESSAGE", True, 30),
        },
    )
    store.save(baseline)

    doc = json.loads(path.read_text(encoding="utf-8"))
    assert list(doc["ios"]) == ["NSCameraUsageDescription", "NSMicrophoneUsageDescription"]
    assert doc["android"] == [
        {"name": "C2D_MESSAGE", "maxSdkVersion": 30},
        {"name": "android.permission.CAMERA"},
    ]
    assert _TS_RE.match(doc["lastUpdated"])
    assert baseline.exists is True
    assert [p.name for p in path.parent.iterdir()] == ["baseline.json"]


def test_save_overwrites_instead_of_merging(tmp_path: Path) -> None:
    path = tmp_path / "baseline.json"
    path.write_text(
        json.dumps(
            {
                "ios": {"NSCameraUsageDescription": "old"},
                "android": [{"name": "android.permission.CAMERA"}],
                "lastUpdated": "2024-01-01T00:00:00.000Z",
            }
        ),
        encoding="utf-8",
    )
    store = BaselineStore(path)
    store.save(Baseline(ios={}, android={"X": NormalizedPermission("X", False)}))

    reloaded = store.load()
    assert reloaded.exists is True
    assert reloaded.ios == {}
    assert sorted(reloaded.android) == ["X"]
    assert reloaded.last_updated != "2024-01-01T00:00:00.000Z"


def test_load_accepts_legacy_documents(tmp_path: Path) -> None:
    path = tmp_path / "baseline.json"
    path.write_text(
        json.dumps(
            {
                "ios": {},
                "android": [
                    {"name": "android.permission.WRITE_EXTERNAL_STORAGE", "maxSdkVersion": "28"}
                ],
            }
        ),
        encoding="utf-8",
    )
    baseline = BaselineStore(path).load()
    assert baseline.android["android.permission.WRITE_EXTERNAL_STORAGE"].max_sdk_version == 28
    assert baseline.last_updated is None


@pytest.mark.parametrize(
    "text",
    [
        "{not json",
        "[]",
        json.dumps({"ios": [], "android": []}),
        json.dumps({"ios": {"NSCameraUsageDescription": 1}, "android": []}),
        json.dumps({"ios": {}, "android": [{"maxSdkVersion": 1}]}),
        json.dumps({"ios": {}, "android": {}}),
    ],
)
def test_malformed_baseline_is_rejected(tmp_path: Path, text: str) -> None:
    path = tmp_path / "baseline.json"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(BaselineFormatError) as exc_info:
        BaselineStore(path).load()
    assert isinstance(exc_info.value, InputError)


@pytest.mark.parametrize(
    "doc,ios,android",
    [
        ({"android": [{"name": "android.permission.CAMERA"}]}, {}, ["android.permission.CAMERA"]),
        ({"ios": {"NSCameraUsageDescription": "Scan"}}, {"NSCameraUsageDescription": "Scan"}, []),
        ({}, {}, []),
    ],
)
def test_missing_platform_key_loads_as_empty(tmp_path: Path, doc, ios, android) -> None:
    path = tmp_path / "baseline.json"
    path.write_text(json.dumps(doc), encoding="utf-8")
    baseline = BaselineStore(path).load()
    assert baseline.exists
    assert baseline.ios == ios
    assert sorted(baseline.android) == android


@pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
def test_save_keeps_existing_file_mode(tmp_path: Path) -> None:
    path = tmp_path / "baseline.json"
    path.write_text(json.dumps({"ios": {}, "android": []}), encoding="utf-8")
    os.chmod(path, 0o644)

    BaselineStore(path).save(Baseline())

    assert stat.S_IMODE(path.stat().st_mode) == 0o644


@pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
def test_new_baseline_honours_umask(tmp_path: Path) -> None:
    old = os.umask(0o022)
    try:
        BaselineStore(tmp_path / "baseline.json").save(Baseline())
    finally:
        os.umask(old)

    assert stat.S_IMODE((tmp_path / "baseline.json").stat().st_mode) == 0o644
