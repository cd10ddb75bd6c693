"""Validate app artifacts against the permission baseline.

Exit codes: 0 no drift (or initial baseline created), 1 drift detected or any
failure. With --distinct-exit-codes, infrastructure failures (missing tools,
unreadable artifacts, download errors) exit 2 instead of 1.
"""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from permission_gate.cli.common import (
    add_gate_args,
    build_config,
    gate_controller,
    handle_error,
    print_json,
)
from permission_gate.errors import PermissionGateError
from permission_gate.log import configure_logging
from permission_gate.reporting.report import render_validation_report


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Fail when app artifacts add or remove permissions relative to the baseline."
    )
    parser.add_argument(
        "artifacts",
        nargs="+",
        help="Artifacts to check (.ipa, .apk, .aab); http(s) URLs are downloaded first.",
    )
    add_gate_args(parser)
    parser.add_argument(
        "--distinct-exit-codes",
        action="store_true",
        default=None,
        help="Exit 2 (instead of 1) on infrastructure failures; drift still exits 1.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print a machine-readable verdict instead of the text report.",
    )
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    distinct = bool(args.distinct_exit_codes)
    try:
        config = build_config(args)
        distinct = config.distinct_exit_codes
        outcome = gate_controller(config).validate(args.artifacts)
        if args.json:
            print_json(outcome.to_json())
        else:
            print(render_validation_report(outcome))
        outcome.raise_for_drift()
    except PermissionGateError as e:
        return handle_error(e, distinct_exit_codes=distinct)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
