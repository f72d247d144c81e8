"""Reading and writing calibrations in YAML format."""

from __future__ import annotations

import io
import logging
import math
from pathlib import Path
from typing import IO, Any, Sequence

import yaml

from .models import PLUMB_BOB, CalibrationError, CameraInfo

log = logging.getLogger(__name__)

CAM_YML_NAME = "camera_name"
WIDTH_YML_NAME = "image_width"
HEIGHT_YML_NAME = "image_height"
K_YML_NAME = "camera_matrix"
D_YML_NAME = "distortion_coefficients"
R_YML_NAME = "rectification_matrix"
P_YML_NAME = "projection_matrix"
DMODEL_YML_NAME = "distortion_model"


def _scalar(text: str) -> str:
    """Render a string as a YAML scalar, quoting it only when needed."""
    rendered = yaml.safe_dump([text], default_flow_style=True, width=1 << 30)
    return rendered.strip()[1:-1]


def _float_text(value: float) -> str:
    if math.isnan(value):
        return ".nan"
    if math.isinf(value):
        return ".inf" if value > 0 else "-.inf"
    return repr(value)


def _matrix_text(key: str, rows: int, cols: int, data: Sequence[float]) -> str:
    values = ", ".join(_float_text(value) for value in data)
    return f"{key}:\n  rows: {rows}\n  cols: {cols}\n  data: [{values}]\n"


def write_yml(stream: IO[str], camera_name: str, cam_info: CameraInfo) -> None:
    """Write a calibration in YAML format to a text stream."""
    stream.write(f"{WIDTH_YML_NAME}: {cam_info.width}\n")
    stream.write(f"{HEIGHT_YML_NAME}: {cam_info.height}\n")
    stream.write(f"{CAM_YML_NAME}: {_scalar(camera_name)}\n")
    stream.write(_matrix_text(K_YML_NAME, 3, 3, cam_info.k))
    stream.write(f"{DMODEL_YML_NAME}: {_scalar(cam_info.distortion_model)}\n")
    stream.write(_matrix_text(D_YML_NAME, 1, len(cam_info.d), cam_info.d))
    stream.write(_matrix_text(R_YML_NAME, 3, 3, cam_info.r))
    stream.write(_matrix_text(P_YML_NAME, 3, 4, cam_info.p))


def dump_yml(camera_name: str, cam_info: CameraInfo) -> str:
    """Return a calibration rendered in YAML format."""
    buffer = io.StringIO()
    write_yml(buffer, camera_name, cam_info)
    return buffer.getvalue()


def save_yml(file_name: str | Path, camera_name: str, cam_info: CameraInfo) -> None:
    """Write a calibration to a YAML file, creating missing directories."""
    text = dump_yml(camera_name, cam_info)
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


def _node(mapping: Any, key: str) -> Any:
    if not isinstance(mapping, dict) or key not in mapping:
        raise CalibrationError(f"missing YAML key {key!r}")
    return mapping[key]


def _to_int(node: Any, what: str) -> int:
    if not isinstance(node, str):
        raise CalibrationError(f"{what} is not an integer scalar")
    try:
        return int(node.strip())
    except ValueError:
        raise CalibrationError(f"{what} is not an integer: {node!r}") from None


def _to_float(node: Any, what: str) -> float:
    if not isinstance(node, str):
        raise CalibrationError(f"{what} is not a numeric scalar")
    text = node.strip()
    special = {
        ".inf": math.inf, "+.inf": math.inf, "-.inf": -math.inf, ".nan": math.nan,
    }
    if text.lower() in special:
        return special[text.lower()]
    try:
        return float(text)
    except ValueError:
        raise CalibrationError(f"{what} is not a number: {node!r}") from None


def _to_str(node: Any, what: str) -> str:
    if not isinstance(node, str):
        raise CalibrationError(f"{what} is not a string scalar")
    return node


def _data(node: Any, key: str, count: int) -> list[float]:
    data = _node(node, "data")
    if not isinstance(data, list) or len(data) < count:
        raise CalibrationError(f"{key} data must hold at least {count} values")
    return [_to_float(value, f"{key} element") for value in data[:count]]


def _read_matrix(doc: Any, key: str, rows: int, cols: int) -> list[float]:
    node = _node(doc, key)
    if _to_int(_node(node, "rows"), f"{key} rows") != rows:
        raise CalibrationError(f"{key} must have {rows} rows")
    if _to_int(_node(node, "cols"), f"{key} cols") != cols:
        raise CalibrationError(f"{key} must have {cols} columns")
    return _data(node, key, rows * cols)


def _from_document(doc: Any) -> tuple[str, CameraInfo]:
    if not isinstance(doc, dict):
        raise CalibrationError("YAML camera calibration is not a mapping")

    if CAM_YML_NAME in doc:
        camera_name = _to_str(doc[CAM_YML_NAME], CAM_YML_NAME)
    else:
        camera_name = "unknown"

    width = _to_int(_node(doc, WIDTH_YML_NAME), WIDTH_YML_NAME)
    height = _to_int(_node(doc, HEIGHT_YML_NAME), HEIGHT_YML_NAME)

    k = _read_matrix(doc, K_YML_NAME, 3, 3)
    r = _read_matrix(doc, R_YML_NAME, 3, 3)
    p = _read_matrix(doc, P_YML_NAME, 3, 4)

    if DMODEL_YML_NAME in doc:
        model = _to_str(doc[DMODEL_YML_NAME], DMODEL_YML_NAME)
    else:
        model = PLUMB_BOB
        log.warning(
            "Camera calibration file did not specify distortion model, "
            "assuming plumb bob"
        )

    d_node = _node(doc, D_YML_NAME)
    d_rows = _to_int(_node(d_node, "rows"), f"{D_YML_NAME} rows")
    d_cols = _to_int(_node(d_node, "cols"), f"{D_YML_NAME} cols")
    count = d_rows * d_cols
    if count < 0:
        raise CalibrationError(f"{D_YML_NAME} has a negative size")
    d = _data(d_node, D_YML_NAME, count)

    try:
        info = CameraInfo(
            width=width, height=height, distortion_model=model,
            d=d, k=k, r=r, p=p,
        )
    except ValueError as exc:
        raise CalibrationError(f"invalid YAML camera calibration: {exc}") from None
    return camera_name, info


def parse_yml(buffer: str) -> tuple[str, CameraInfo]:
    """Parse YAML calibration text into ``(camera_name, CameraInfo)``."""
    try:
        doc = yaml.load(buffer, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        raise CalibrationError(
            f"Exception parsing YAML camera calibration:\n{exc}"
        ) from None
    return _from_document(doc)


def read_yml(stream: IO[str]) -> tuple[str, CameraInfo]:
    """Parse a YAML calibration from a text stream."""
    return parse_yml(stream.read())


def load_yml(file_name: str | Path) -> tuple[str, CameraInfo]:
    """Read a YAML calibration file."""
    try:
        with open(file_name, encoding="utf-8") as stream:
            text = stream.read()
    except OSError as exc:
        raise CalibrationError(
            f"Unable to open camera calibration file [{file_name}]"
        ) from exc
    try:
        return parse_yml(text)
    except CalibrationError as exc:
        raise CalibrationError(
            f"Failed to parse camera calibration from file [{file_name}]: {exc}"
        ) from exc