"""Shared argparse plumbing for the permission-gate CLIs."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from permission_gate.baseline import BaselineStore
from permission_gate.config import AndroidToolchain, GateConfig, load_config
from permission_gate.errors import PermissionGateError
from permission_gate.extractors.android import AndroidExtractor
from permission_gate.extractors.ios import IosExtractor
from permission_gate.gate import GateController
from permission_gate.runtime.artifacts import ArtifactResolver

logger = logging.getLogger("permission_gate.cli")


def add_common_args(parser: argparse.ArgumentParser, *, with_config: bool = True) -> None:
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable step-by-step diagnostics on stderr (stdout is unaffected).",
    )
    if not with_config:
        return
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional YAML/JSON config file (environment variables override it).",
    )


def add_gate_args(parser: argparse.ArgumentParser) -> None:
    add_common_args(parser)
    parser.add_argument(
        "--baseline",
        type=Path,
        default=None,
        help="Path to the baseline JSON (default: ./baseline-permissions.json).",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        default=None,
        help="Disable TLS certificate verification for artifact downloads.",
    )


def build_config(args: argparse.Namespace) -> GateConfig:
    config = load_config(args.config)
    return config.with_overrides(
        baseline_path=getattr(args, "baseline", None),
        insecure=getattr(args, "insecure", None),
        distinct_exit_codes=getattr(args, "distinct_exit_codes", None),
    )


def android_extractor(config: GateConfig) -> AndroidExtractor:
    return AndroidExtractor(AndroidToolchain(config))


def ios_extractor() -> IosExtractor:
    return IosExtractor()


def print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def handle_error(e: PermissionGateError, *, distinct_exit_codes: bool = False) -> int:
    logger.error("%s", e)
    return e.resolve_exit_code(distinct=distinct_exit_codes)


def gate_controller(config: GateConfig) -> GateController:
    return GateController(
        store=BaselineStore(config.baseline_path, collision_policy=config.collision_policy),
        android_extractor=android_extractor(config),
        ios_extractor=ios_extractor(),
        resolver=ArtifactResolver(config.fetcher()),
        collision_policy=config.collision_policy,
    )
