from __future__ import annotations

from pathlib import Path

import pytest
from fakes import FakeConverter, FakeInspector, FakeToolchain, fixture_text, write_artifact

from permission_gate.errors import InputError, PackageIdentityError
from permission_gate.extractors.android import (
    AndroidExtractor,
    extract_from_dumps,
    parse_package_info,
    parse_uses_permissions,
)

PERMISSIONS_DUMP = fixture_text("aapt2_dump_permissions_com_example_app.txt")
BADGING_DUMP = fixture_text("aapt2_dump_badging_com_example_app.txt")


def test_package_info_from_badging() -> None:
    info = parse_package_info(BADGING_DUMP, PERMISSIONS_DUMP)
    assert info.owner.value == "com.example.app"
    assert info.version_code == "4021"
    assert info.version_name == "4.2.1"


def test_package_info_falls_back_to_permissions_header() -> None:
    info = parse_package_info("", PERMISSIONS_DUMP)
    assert info.owner.value == "com.example.app"
    assert info.version_code == ""


def test_package_info_skips_malformed_lines() -> None:
    badging = (
        "package: name='12345' versionCode='1'\n"
        "package: name='com.good.app' versionCode='7'\n"
    )
    info = parse_package_info(badging)
    assert info.owner.value == "com.good.app"
    assert info.version_code == "7"


@pytest.mark.parametrize(
    "badging,permissions",
    [
        ("", ""),
        ("package: name='' versionCode='1'\n", ""),
        ("package: name='12345'\n", "package: 12345\n"),
        ("ERROR: dump failed because no AndroidManifest.xml found\n", ""),
    ],
)
def test_package_identity_errors(badging: str, permissions: str) -> None:
    with pytest.raises(PackageIdentityError):
        parse_package_info(badging, permissions)


def test_uses_permission_lines() -> None:
    records = parse_uses_permissions(PERMISSIONS_DUMP)
    assert [r.raw_name for r in records] == [
        "android.permission.INTERNET",
        "android.permission.CAMERA",
        "android.permission.WRITE_EXTERNAL_STORAGE",
        "com.example.app.DYNAMIC_RECEIVER_NOT_EXPORTED_PERMISSION",
        "com.example.app.permission.C2D_MESSAGE",
        "android.permission.ACCESS_FINE_LOCATION",
    ]
    by_name = {r.raw_name: r for r in records}
    assert by_name["android.permission.WRITE_EXTERNAL_STORAGE"].max_sdk_version == 28
    assert by_name["android.permission.CAMERA"].max_sdk_version is None


def test_lines_without_name_are_skipped() -> None:
    text = "uses-permission: \nuses-permission: maxSdkVersion='18'\nuses-permission: name='A.B'\n"
    assert [r.raw_name for r in parse_uses_permissions(text)] == ["A.B"]


@pytest.mark.parametrize("ceiling", ["Q", "\u00b2", "\u0663", "-1"])
def test_non_numeric_ceiling_is_treated_as_absent(ceiling: str) -> None:
    records = parse_uses_permissions(f"uses-permission: name='A.B' maxSdkVersion='{ceiling}'\n")
    assert records[0].max_sdk_version is None


def test_extract_from_dumps_summary() -> None:
    extraction = extract_from_dumps(
        artifact_path=Path("app-release.apk"),
        permissions_text=PERMISSIONS_DUMP,
        badging_text=BADGING_DUMP,
    )
    summary = extraction.to_summary()
    assert summary["platform"] == "android"
    assert summary["source"] == "apk"
    assert summary["artifactPath"] == "app-release.apk"
    assert summary["packageInfo"] == {
        "packageName": "com.example.app",
        "versionCode": "4021",
        "versionName": "4.2.1",
    }
    assert summary["totalPermissions"] == 6
    assert summary["dynamicPermissions"] == 2

    dynamic = [p for p in summary["permissions"] if p["isDynamic"]]
    assert {p["name"] for p in dynamic} == {
        "DYNAMIC_RECEIVER_NOT_EXPORTED_PERMISSION",
        "permission.C2D_MESSAGE",
    }
    camera = next(p for p in summary["permissions"] if p["rawName"] == "android.permission.CAMERA")
    assert camera == {
        "name": "android.permission.CAMERA",
        "rawName": "android.permission.CAMERA",
        "isDynamic": False,
    }

    perms = extraction.permission_set()
    assert "android.permission.CAMERA" in perms
    assert perms["android.permission.WRITE_EXTERNAL_STORAGE"].max_sdk_version == 28


def test_renamed_package_yields_same_permission_set() -> None:
    staging = PERMISSIONS_DUMP.replace("com.example.app", "com.example.app.staging")
    staging_badging = BADGING_DUMP.replace("com.example.app", "com.example.app.staging")
    release = extract_from_dumps(
        artifact_path=Path("a.apk"), permissions_text=PERMISSIONS_DUMP, badging_text=BADGING_DUMP
    )
    other = extract_from_dumps(
        artifact_path=Path("b.apk"), permissions_text=staging, badging_text=staging_badging
    )
    assert sorted(release.permission_set()) == sorted(other.permission_set())


def test_extractor_inspects_apk_directly(tmp_path: Path) -> None:
    apk = write_artifact(tmp_path / "app.apk")
    inspector = FakeInspector(permissions_text=PERMISSIONS_DUMP, badging_text=BADGING_DUMP)
    toolchain = FakeToolchain(inspector)

    extraction = AndroidExtractor(toolchain).extract(apk)

    assert extraction.source == "apk"
    assert inspector.calls == [("permissions", apk), ("badging", apk)]
    assert toolchain.converter.calls == []


def test_extractor_converts_aab_and_cleans_up(tmp_path: Path) -> None:
    aab = write_artifact(tmp_path / "app.aab")
    inspector = FakeInspector(permissions_text=PERMISSIONS_DUMP, badging_text=BADGING_DUMP)
    converter = FakeConverter()

    extraction = AndroidExtractor(FakeToolchain(inspector, converter)).extract(aab)

    assert converter.calls == [aab]
    assert extraction.source == "aab"
    assert extraction.artifact_path == aab
    assert inspector.calls[0][1].name == "universal.apk"
    assert not converter.work_dirs[0].exists()


def test_extractor_cleans_up_when_parsing_fails(tmp_path: Path) -> None:
    aab = write_artifact(tmp_path / "app.aab")
    inspector = FakeInspector(permissions_text="", badging_text="")
    converter = FakeConverter()

    with pytest.raises(PackageIdentityError):
        AndroidExtractor(FakeToolchain(inspector, converter)).extract(aab)
    assert not converter.work_dirs[0].exists()


@pytest.mark.parametrize("name", ["app.ipa", "app.zip", "missing.apk"])
def test_extractor_input_errors(tmp_path: Path, name: str) -> None:
    path = tmp_path / name
    if not name.startswith("missing"):
        write_artifact(path)
    toolchain = FakeToolchain(FakeInspector(permissions_text="", badging_text=""))
    with pytest.raises(InputError):
        AndroidExtractor(toolchain).extract(path)
