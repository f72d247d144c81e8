# caminfo

Tools for camera calibration data: the intrinsic camera matrix, the
distortion coefficients, the rectification matrix and the projection
matrix, together with the image size and the camera's name.

The package reads and writes two file formats:

- **YAML** (`.yaml` or `.yml`), which holds any distortion model and
  any number of distortion coefficients;
- **Videre INI** (`.ini`), a legacy format. Only calibrations using the
  `plumb_bob` model with exactly five coefficients can be written to it.
  On reading, five coefficients are taken as `plumb_bob` and eight as
  `rational_polynomial`.

It also provides `CameraInfoManager`, which keeps the current
calibration of a camera, loads it on demand from a calibration URL and
saves new calibrations back to that URL.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Converting between formats

The `caminfo-convert` command reads a calibration file and writes it in
the format chosen by the output file's extension:

```
caminfo-convert input.yaml output.ini
caminfo-convert input.ini output.yaml
```

Run with fewer than two arguments, it prints a usage message and exits
with status 0. If the input cannot be read or the output cannot be
written, it prints a message to standard error and exits with status 1;
on success it prints `Saved <output>`.

## The data model

`caminfo.models.CameraInfo` is a dataclass with the fields `width`,
`height`, `distortion_model`, `d` (distortion coefficients), `k` (3x3
camera matrix), `r` (3x3 rectification matrix) and `p` (3x4 projection
matrix). The matrices are flat, row-major lists of floats and default to
zeros; a `k` whose first element is zero counts as uncalibrated.
Constructing one with matrices of the wrong size or negative image
dimensions raises `ValueError`. `copy()` returns an independent copy.

## Reading and writing calibration files

The functions in `caminfo.parse` choose the format from the file name's
extension, ignoring case:

```python
from caminfo.parse import read_calibration, write_calibration

camera_name, info = read_calibration("left.yaml")
write_calibration("left.ini", camera_name, info)
```

Problems such as an unknown extension, an unreadable file, malformed
data or a calibration that the chosen format cannot hold raise
`caminfo.models.CalibrationError`. Writing creates missing parent
directories.

INI text already in memory can be parsed with
`caminfo.parse.parse_calibration(buffer, "ini")`; any other format name
raises `CalibrationError`.

Each format is also available on its own: `caminfo.yml` and
`caminfo.ini` offer `dump_yml` / `dump_ini` and `parse_yml` /
`parse_ini` for strings, `write_yml` / `write_ini` and `read_yml` /
`read_ini` for open text streams, and `save_yml` / `save_ini` and
`load_yml` / `load_ini` for file names. The parsing functions return a
`(camera_name, CameraInfo)` tuple. A YAML file without a camera name
yields `"unknown"`, and one without a distortion model is read as
`plumb_bob`.

## Calibration URLs

A calibration location is given as a URL:

- `file:///full/path/to/calibration.yaml`
- `package://package_name/calibrations/camera.yaml`, resolved relative to
  the directory of the named package

The scheme is matched without regard to case. `flash:///` URLs are
recognised but not supported.

A URL may contain substitution variables, resolved in a single pass:

- `${NAME}` – the current camera name;
- `${ROS_HOME}` – the `ROS_HOME` environment variable if set, otherwise
  `$HOME/.ros`.

Any other `$` is kept as it is.

An empty URL stands for the default location,
`file://${ROS_HOME}/camera_info/${NAME}.yaml`.

`caminfo.urls` exposes the pieces: `resolve_url`, `parse_url` (returning a
`UrlType`: `EMPTY`, `FILE`, `PACKAGE`, `INVALID` or `FLASH`),
`is_valid_camera_name` and `package_file_name`.

By default, packages are located by `find_package_path`, which searches
the directories listed in the `ROS_PACKAGE_PATH` environment variable for
a `package.xml` whose `<name>` matches. `package_file_name` and
`CameraInfoManager` accept a `package_resolver` callable that maps a
package name to its directory, or to `None` when it is unknown.

## Managing a camera's calibration

```python
from caminfo.manager import CameraInfoManager

manager = CameraInfoManager("example_camera_0001", "file:///tmp/calib/${NAME}.yaml")

if manager.is_calibrated():
    info = manager.get_camera_info()
```

Nothing is loaded until `load_camera_info`, `is_calibrated` or
`get_camera_info` is first called; if loading fails, the calibration is
all zeros. Changing the camera name with `set_camera_name` (letters,
digits and `_` only) forces a reload, since the URL may now resolve
elsewhere. `validate_url` reports whether a URL has a supported form,
without checking that the resource exists.

A new calibration can be installed in memory with `set_camera_info`, or
installed and saved to the current URL with `handle_set_camera_info`,
which returns a `SetCameraInfoResponse` with `success` and
`status_message`. The calibration is installed even when saving fails.
An unsupported URL makes the save fall back to the default location.

## What the package does not do

`CameraInfoManager` offers no network service of its own: a program that
wants to receive new calibrations from elsewhere must call
`handle_set_camera_info` itself. Calibrations cannot be read from or
written to `flash:///` URLs.