"""Reading and writing calibrations in the legacy Videre INI format."""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import IO, Sequence

from .models import PLUMB_BOB, RATIONAL_POLYNOMIAL, CalibrationError, CameraInfo

log = logging.getLogger(__name__)

_SKIP = re.compile(r"(?:\s+|#[^\n]*\n?)*")
_REAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_UINT = re.compile(r"\d+")
_UINT_MAX = 0xFFFFFFFF


def _matrix_text(rows: int, cols: int, data: Sequence[float]) -> str:
    lines = []
    for row in range(rows):
        values = data[row * cols:(row + 1) * cols]
        lines.append("".join(f"{value:.5f} " for value in values) + "\n")
    return "".join(lines)


def write_ini(stream: IO[str], camera_name: str, cam_info: CameraInfo) -> None:
    """Write a calibration in INI format to a text stream.

    Only the plumb bob model with five coefficients can be stored.
    """
    if cam_info.distortion_model != PLUMB_BOB or len(cam_info.d) != 5:
        raise CalibrationError(
            "Videre INI format can only save calibrations using the plumb bob "
            "distortion model; use the YAML format instead "
            f"(distortion_model = {cam_info.distortion_model!r}, expected "
            f"{PLUMB_BOB!r}; {len(cam_info.d)} coefficients, expected 5)"
        )
    stream.write("# Camera intrinsics\n\n")
    stream.write("[image]\n\n")
    stream.write(f"width\n{cam_info.width}\n\n")
    stream.write(f"height\n{cam_info.height}\n\n")
    stream.write(f"[{camera_name}]\n\n")
    stream.write("camera matrix\n" + _matrix_text(3, 3, cam_info.k))
    stream.write("\ndistortion\n" + _matrix_text(1, 5, cam_info.d))
    stream.write("\n\nrectification\n" + _matrix_text(3, 3, cam_info.r))
    stream.write("\nprojection\n" + _matrix_text(3, 4, cam_info.p))


def dump_ini(camera_name: str, cam_info: CameraInfo) -> str:
    """Return a calibration rendered in INI format."""
    buffer = io.StringIO()
    write_ini(buffer, camera_name, cam_info)
    return buffer.getvalue()


def save_ini(file_name: str | Path, camera_name: str, cam_info: CameraInfo) -> None:
    """Write a calibration to an INI file, creating missing directories."""
    text = dump_ini(camera_name, cam_info)
    path = Path(file_name)
    directory = path.parent
    if str(directory) not in ("", ".") and not directory.exists():
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError:
            log.error(
                "Unable to create directory for camera calibration file [%s]",
                directory,
            )
    try:
        with path.open("w", encoding="utf-8") as out:
            out.write(text)
    except OSError as exc:
        raise CalibrationError(
            f"Unable to open camera calibration file [{path}] for writing"
        ) from exc


class _Mismatch(Exception):
    pass


class _Scanner:
    """Token reader that skips whitespace and '#' line comments."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def skip(self) -> None:
        self.pos = _SKIP.match(self.text, self.pos).end()

    def expect(self, literal: str) -> None:
        self.skip()
        if not self.text.startswith(literal, self.pos):
            raise _Mismatch(f"expected {literal!r}")
        self.pos += len(literal)

    def uint(self) -> int:
        self.skip()
        match = _UINT.match(self.text, self.pos)
        if match is None:
            raise _Mismatch("expected an unsigned integer")
        value = int(match.group())
        if value > _UINT_MAX:
            raise _Mismatch("integer out of range")
        self.pos = match.end()
        return value

    def real(self) -> float:
        self.skip()
        match = _REAL.match(self.text, self.pos)
        if match is None:
            raise _Mismatch("expected a number")
        self.pos = match.end()
        return float(match.group())

    def reals(self, count: int) -> list[float]:
        return [self.real() for _ in range(count)]

    def any_reals(self) -> list[float]:
        values = []
        while True:
            saved = self.pos
            try:
                values.append(self.real())
            except _Mismatch:
                self.pos = saved
                return values

    def bracketed(self) -> str:
        self.expect("[")
        end = self.text.find("]", self.pos)
        if end < 0:
            raise _Mismatch("expected ']'")
        content = self.text[self.pos:end]
        self.pos = end + 1
        return content.strip()


def _parse(scanner: _Scanner) -> tuple[str, CameraInfo]:
    scanner.expect("[image]")
    scanner.expect("width")
    width = scanner.uint()
    scanner.expect("height")
    height = scanner.uint()

    # The [externals] section is part of the format but its values are unused.
    saved = scanner.pos
    try:
        scanner.expect("[externals]")
        scanner.expect("translation")
        scanner.reals(3)
        scanner.expect("rotation")
        scanner.reals(3)
    except _Mismatch:
        scanner.pos = saved

    camera_name = scanner.bracketed()
    scanner.expect("camera matrix")
    k = scanner.reals(9)
    scanner.expect("distortion")
    d = scanner.any_reals()
    scanner.expect("rectification")
    r = scanner.reals(9)
    scanner.expect("projection")
    p = scanner.reals(12)

    if len(d) == 5:
        model = PLUMB_BOB
    elif len(d) == 8:
        model = RATIONAL_POLYNOMIAL
    else:
        model = ""
    info = CameraInfo(
        width=width, height=height, distortion_model=model, d=d, k=k, r=r, p=p
    )
    return camera_name, info


def parse_ini(buffer: str) -> tuple[str, CameraInfo]:
    """Parse INI calibration text into ``(camera_name, CameraInfo)``."""
    scanner = _Scanner(buffer)
    try:
        return _parse(scanner)
    except _Mismatch as exc:
        raise CalibrationError(
            f"invalid INI camera calibration: {exc} at offset {scanner.pos}"
        ) from None


def read_ini(stream: IO[str]) -> tuple[str, CameraInfo]:
    """Parse an INI calibration from a text stream."""
    return parse_ini(stream.read())


def load_ini(file_name: str | Path) -> tuple[str, CameraInfo]:
    """Read an INI calibration file."""
    try:
        with open(file_name, encoding="utf-8") as stream:
            text = stream.read()
    except OSError as exc:
        raise CalibrationError(
            f"Unable to open camera calibration file [{file_name}]"
        ) from exc
    return parse_ini(text)