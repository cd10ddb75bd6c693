"""Gate configuration.

Resolution order (later wins): defaults, optional YAML/JSON config file,
environment variables, CLI flags (applied by the caller via `with_overrides`).

Example config file:

  baseline_path: ci/baseline-permissions.json
  android_build_tools_version: "34.0.0"
  distinct_exit_codes: true
  collision_policy: lowest
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from permission_gate.baseline import DEFAULT_BASELINE_FILENAME
from permission_gate.builder import COLLISION_LOWEST, COLLISION_POLICIES
from permission_gate.errors import InputError
from permission_gate.runtime.aapt import DEFAULT_BUILD_TOOLS_VERSION, AaptInspector
from permission_gate.runtime.bundletool import BundletoolConverter
from permission_gate.runtime.fetch import Credentials, RemoteFetcher, TlsPolicy

_TRUE_STRINGS = {"1", "true", "yes", "y", "on"}


def _env_flag(env: Mapping[str, str], *names: str) -> Optional[bool]:
    for name in names:
        raw = env.get(name)
        if raw is not None and str(raw).strip() != "":
            return str(raw).strip().lower() in _TRUE_STRINGS
    return None


def _env_str(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        raw = env.get(name)
        if raw is not None and str(raw).strip() != "":
            return str(raw).strip()
    return None


@dataclass(frozen=True)
class GateConfig:
    baseline_path: Path = Path(DEFAULT_BASELINE_FILENAME)
    android_home: Optional[str] = None
    android_build_tools_version: str = DEFAULT_BUILD_TOOLS_VERSION
    bundletool_jar: Optional[str] = None
    gocd_username: Optional[str] = None
    gocd_password: Optional[str] = None
    gocd_token: Optional[str] = None
    insecure: bool = False
    ca_bundle: Optional[str] = None
    fetch_timeout_s: Optional[float] = None
    tool_timeout_s: Optional[float] = None
    collision_policy: str = COLLISION_LOWEST
    distinct_exit_codes: bool = False

    def with_overrides(self, **overrides: Any) -> "GateConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def credentials(self) -> Credentials:
        return Credentials(
            username=self.gocd_username, password=self.gocd_password, token=self.gocd_token
        )

    def tls_policy(self) -> TlsPolicy:
        return TlsPolicy(insecure=self.insecure, ca_bundle=self.ca_bundle)

    def fetcher(self) -> RemoteFetcher:
        return RemoteFetcher(
            credentials=self.credentials(), tls=self.tls_policy(), timeout_s=self.fetch_timeout_s
        )


def load_config_file(path: Path) -> Dict[str, Any]:
    """Load a YAML/JSON config file; the top level must be an object."""

    if not path.exists():
        raise InputError(f"config file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        elif path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            raise InputError(f"unsupported config file extension: {path}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise InputError(f"cannot parse config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InputError(f"top-level config must be an object: {path}")
    return data


def _coerce_config_value(name: str, value: Any) -> Any:
    if name == "baseline_path":
        return Path(str(value))
    if name in {"insecure", "distinct_exit_codes"}:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUE_STRINGS
    if name in {"fetch_timeout_s", "tool_timeout_s"}:
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise InputError(f"{name} must be a number, got {value!r}") from e
    if name == "collision_policy":
        if value not in COLLISION_POLICIES:
            raise InputError(f"collision_policy must be one of {COLLISION_POLICIES}, got {value!r}")
        return value
    return str(value)


def load_config(
    path: Optional[Path] = None, *, env: Optional[Mapping[str, str]] = None
) -> GateConfig:
    env = os.environ if env is None else env
    known = {f.name for f in fields(GateConfig)}
    values: Dict[str, Any] = {}

    if path is not None:
        file_data = load_config_file(Path(path))
        unknown = sorted(set(file_data) - known)
        if unknown:
            raise InputError(f"unknown config keys in {path}: {', '.join(unknown)}")
        values.update(file_data)

    env_values: Dict[str, Any] = {
        "baseline_path": _env_str(env, "PERMISSION_GATE_BASELINE"),
        "android_home": _env_str(env, "ANDROID_HOME", "ANDROID_SDK_ROOT"),
        "android_build_tools_version": _env_str(env, "ANDROID_BUILD_TOOLS_VERSION"),
        "bundletool_jar": _env_str(env, "BUNDLETOOL_JAR"),
        "gocd_username": _env_str(env, "GOCD_USERNAME"),
        "gocd_password": _env_str(env, "GOCD_PASSWORD"),
        "gocd_token": _env_str(env, "GOCD_TOKEN"),
        "insecure": _env_flag(env, "CURL_INSECURE", "GOCD_INSECURE"),
        "ca_bundle": _env_str(env, "CURL_CA_BUNDLE", "GOCD_CA_BUNDLE"),
        "fetch_timeout_s": _env_str(env, "PERMISSION_GATE_FETCH_TIMEOUT_S"),
    }
    values.update({k: v for k, v in env_values.items() if v is not None})

    coerced = {k: _coerce_config_value(k, v) for k, v in values.items() if v is not None}
    return GateConfig(**coerced)


class AndroidToolchain:
    """Android tools resolved once, on first use.

    iOS-only runs never probe for aapt, and APK-only runs never need bundletool.
    """

    def __init__(self, config: GateConfig) -> None:
        self._config = config

    @cached_property
    def inspector(self) -> AaptInspector:
        return AaptInspector.resolve(
            android_home=self._config.android_home,
            build_tools_version=self._config.android_build_tools_version,
            timeout_s=self._config.tool_timeout_s,
        )

    @cached_property
    def converter(self) -> BundletoolConverter:
        return BundletoolConverter.resolve(
            bundletool_jar=self._config.bundletool_jar, timeout_s=self._config.tool_timeout_s
        )
