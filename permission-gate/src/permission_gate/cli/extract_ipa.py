from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from permission_gate.cli.common import add_common_args, handle_error, ios_extractor, print_json
from permission_gate.errors import PermissionGateError
from permission_gate.log import configure_logging


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Extract privacy/permission usage keys from an iOS IPA as JSON."
    )
    parser.add_argument("artifact", type=Path, help="Path to an .ipa file")
    add_common_args(parser, with_config=False)
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    try:
        extraction = ios_extractor().extract(args.artifact)
    except PermissionGateError as e:
        return handle_error(e)

    print_json(extraction.to_summary())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
