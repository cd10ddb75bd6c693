from __future__ import annotations

import plistlib
import zipfile
from pathlib import Path
from typing import Any, Mapping, Optional

FIXTURES_DIR = Path(__file__).resolve().parents[1] / "fixtures"


def fixture_text(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def android_dumps(
    package: str, permissions: list[str], *, version_code: str = "1", version_name: str = "1.0"
) -> tuple[str, str]:
    """Build (permissions_dump, badging_dump) text in aapt2's format."""

    perm_lines = [f"package: {package}"]
    for p in permissions:
        perm_lines.append(f"uses-permission: name='{p}'")
    badging = (
        f"package: name='{package}' versionCode='{version_code}' "
        f"versionName='{version_name}' platformBuildVersionName='14'\n"
    )
    return "\n".join(perm_lines) + "\n", badging


class FakeInspector:
    def __init__(self, *, permissions_text: str, badging_text: str) -> None:
        self.permissions_text = permissions_text
        self.badging_text = badging_text
        self.calls: list[tuple[str, Path]] = []

    def dump_permissions(self, package_path: Path) -> str:
        self.calls.append(("permissions", Path(package_path)))
        return self.permissions_text

    def dump_badging(self, package_path: Path) -> str:
        self.calls.append(("badging", Path(package_path)))
        return self.badging_text


class FakeConverter:
    def __init__(self) -> None:
        self.calls: list[Path] = []
        self.work_dirs: list[Path] = []

    def build_universal_apk(self, bundle_path: Path, work_dir: Path) -> Path:
        self.calls.append(Path(bundle_path))
        self.work_dirs.append(Path(work_dir))
        apk = Path(work_dir) / "apks" / "universal.apk"
        apk.parent.mkdir(parents=True, exist_ok=True)
        apk.write_bytes(b"PK\x03\x04fake")
        return apk


class FakeToolchain:
    def __init__(
        self, inspector: FakeInspector, converter: Optional[FakeConverter] = None
    ) -> None:
        self.inspector = inspector
        self.converter = converter or FakeConverter()


def write_artifact(path: Path, content: bytes = b"PK\x03\x04fake") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def build_ipa(
    path: Path,
    info: Mapping[str, Any],
    *,
    app_name: str = "Example.app",
    binary: bool = False,
) -> Path:
    """Write a minimal IPA (zip with Payload/<app>/Info.plist)."""

    fmt = plistlib.FMT_BINARY if binary else plistlib.FMT_XML
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(f"Payload/{app_name}/Info.plist", plistlib.dumps(dict(info), fmt=fmt))
        zf.writestr(f"Payload/{app_name}/Example", b"\x00")
    return path
