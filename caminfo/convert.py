"""Command that converts a calibration file between INI and YAML."""

from __future__ import annotations

import logging
import os
import sys
from typing import Sequence

from .models import CalibrationError
from .parse import read_calibration, write_calibration

log = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    """Convert ``argv[0]`` into ``argv[1]``; formats follow the extensions."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "convert"
        print(
            f"Usage: {prog} input.yml output.ini\n"
            f"       {prog} input.ini output.yml"
        )
        return 0

    source, target = args[0], args[1]
    try:
        name, cam_info = read_calibration(source)
    except CalibrationError as exc:
        log.debug("read failed: %s", exc)
        print(f"Failed to load camera model from file {source}", file=sys.stderr)
        return 1
    try:
        write_calibration(target, name, cam_info)
    except CalibrationError as exc:
        log.debug("write failed: %s", exc)
        print(f"Failed to save camera model to file {target}", file=sys.stderr)
        return 1

    print(f"Saved {target}")
    return 0


if __name__ == "__main__":
    sys.exit(main())