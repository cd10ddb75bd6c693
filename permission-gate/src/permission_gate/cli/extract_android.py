from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from permission_gate.cli.common import (
    add_common_args,
    android_extractor,
    build_config,
    handle_error,
    print_json,
)
from permission_gate.errors import PermissionGateError
from permission_gate.log import configure_logging


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Extract declared permissions from an Android APK or AAB as JSON."
    )
    parser.add_argument("artifact", type=Path, help="Path to an .apk or .aab file")
    add_common_args(parser)
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    distinct = False
    try:
        config = build_config(args)
        distinct = config.distinct_exit_codes
        extraction = android_extractor(config).extract(args.artifact)
    except PermissionGateError as e:
        return handle_error(e, distinct_exit_codes=distinct)

    print_json(extraction.to_summary())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
