"""Format-independent reading and writing of calibration files."""

from __future__ import annotations

from pathlib import Path

from .ini import load_ini, parse_ini, save_ini
from .models import CalibrationError, CameraInfo
from .yml import load_yml, save_yml

_YAML_SUFFIXES = (".yml", ".yaml")


def _format_of(file_name: str | Path) -> str:
    lowered = str(file_name).lower()
    if lowered.endswith(".ini"):
        return "ini"
    if lowered.endswith(_YAML_SUFFIXES):
        return "yml"
    raise CalibrationError(
        f"unsupported calibration file extension: [{file_name}] "
        "(expected .ini, .yml or .yaml)"
    )


def write_calibration(
    file_name: str | Path, camera_name: str, cam_info: CameraInfo
) -> None:
    """Write a calibration; the file extension selects INI or YAML."""
    if _format_of(file_name) == "ini":
        save_ini(file_name, camera_name, cam_info)
    else:
        save_yml(file_name, camera_name, cam_info)


def read_calibration(file_name: str | Path) -> tuple[str, CameraInfo]:
    """Read a calibration file in INI or YAML format."""
    if _format_of(file_name) == "ini":
        return load_ini(file_name)
    return load_yml(file_name)


def parse_calibration(buffer: str, format: str) -> tuple[str, CameraInfo]:
    """Parse calibration text held in memory; only "ini" is supported."""
    if format != "ini":
        raise CalibrationError(f"unsupported calibration format: {format!r}")
    return parse_ini(buffer)