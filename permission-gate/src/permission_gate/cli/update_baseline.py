"""Overwrite the permission baseline with the permissions of the given artifacts.

Artifacts may be local files or http(s) URLs (CI artifact links). For GoCD
servers set GOCD_USERNAME/GOCD_PASSWORD or GOCD_TOKEN; GOCD_INSECURE=1 or
--insecure disables TLS verification, GOCD_CA_BUNDLE points at a custom CA.

Examples:
  permission-gate-update-baseline ./app.ipa ./app.aab
  permission-gate-update-baseline https://gocd.example.com/go/files/app/1/build/1/job/app.ipa
"""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from permission_gate.cli.common import add_gate_args, build_config, gate_controller, handle_error
from permission_gate.errors import PermissionGateError
from permission_gate.log import configure_logging
from permission_gate.reporting.report import render_update_summary


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replace the permission baseline with the artifacts' current permissions.",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "artifacts",
        nargs="+",
        help="Artifacts (.ipa, .apk, .aab) or http(s) URLs to download.",
    )
    add_gate_args(parser)
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    distinct = False
    try:
        config = build_config(args)
        distinct = config.distinct_exit_codes
        outcome = gate_controller(config).update(args.artifacts)
    except PermissionGateError as e:
        return handle_error(e, distinct_exit_codes=distinct)

    print(render_update_summary(outcome))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
