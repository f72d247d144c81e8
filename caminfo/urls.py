"""Calibration URL handling: variable substitution, classification and lookup."""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ElementTree
from enum import IntEnum
from pathlib import Path
from typing import Callable, Optional

log = logging.getLogger(__name__)

DEFAULT_CAMERA_INFO_URL = "file://${ROS_HOME}/camera_info/${NAME}.yaml"

PACKAGE_PREFIX = "package://"
FILE_PREFIX = "file:///"
FLASH_PREFIX = "flash:///"

_IGNORE_MARKERS = ("CATKIN_IGNORE", "COLCON_IGNORE", "AMENT_IGNORE")

PackageResolver = Callable[[str], Optional[str]]


class UrlType(IntEnum):
    """Kinds of calibration URL; values from ``INVALID`` on are unsupported."""

    EMPTY = 0
    FILE = 1
    PACKAGE = 2
    INVALID = 3
    FLASH = 4

    @property
    def is_supported(self) -> bool:
        return self < UrlType.INVALID


def _ros_home() -> str:
    if "ROS_HOME" in os.environ:
        return os.environ["ROS_HOME"]
    if "HOME" in os.environ:
        return os.environ["HOME"] + "/.ros"
    return ""


def resolve_url(url: str, camera_name: str) -> str:
    """Substitute ``${NAME}`` and ``${ROS_HOME}`` in a URL, in a single pass.

    A ``$`` not followed by a known variable is kept literally; an unknown
    ``${...}`` variable is also kept, and an error is logged.
    """
    parts: list[str] = []
    rest = 0
    while True:
        dollar = url.find("$", rest)
        if dollar < 0:
            parts.append(url[rest:])
            break
        parts.append(url[rest:dollar])
        after = url[dollar + 1:]
        if not after.startswith("{"):
            parts.append("$")
        elif after.startswith("{NAME}"):
            parts.append(camera_name)
            dollar += len("{NAME}")
        elif after.startswith("{ROS_HOME}"):
            parts.append(_ros_home())
            dollar += len("{ROS_HOME}")
        else:
            log.error("invalid URL substitution (not resolved): %s", url)
            parts.append("$")
        rest = dollar + 1
    return "".join(parts)


def _has_prefix(url: str, prefix: str) -> bool:
    return url[:len(prefix)].lower() == prefix


def parse_url(url: str) -> UrlType:
    """Classify a (resolved) calibration URL."""
    if url == "":
        return UrlType.EMPTY
    if _has_prefix(url, FILE_PREFIX):
        return UrlType.FILE
    if _has_prefix(url, FLASH_PREFIX):
        return UrlType.FLASH
    if _has_prefix(url, PACKAGE_PREFIX):
        # The package name must be non-empty and followed by '/' and more.
        start = len(PACKAGE_PREFIX)
        slash = url.find("/", start)
        if start < slash < len(url) - 1:
            return UrlType.PACKAGE
    return UrlType.INVALID


def is_valid_camera_name(camera_name: str) -> bool:
    """Return True if the name is non-empty and only ASCII letters, digits or '_'."""
    if not camera_name:
        return False
    return all(
        (char.isascii() and char.isalnum()) or char == "_" for char in camera_name
    )


def _manifest_name(manifest: Path) -> Optional[str]:
    try:
        root = ElementTree.parse(manifest).getroot()
    except (ElementTree.ParseError, OSError):
        log.warning("unreadable package manifest: %s", manifest)
        return None
    name = root.findtext("name")
    return name.strip() if name else None


def find_package_path(package: str) -> Optional[str]:
    """Locate a package directory below the roots listed in ``ROS_PACKAGE_PATH``.

    A package is a directory holding a ``package.xml`` whose ``<name>`` matches.
    Directories marked with an ignore file are skipped, and the search does not
    descend into packages.  Returns None when the package is not found.
    """
    if not package:
        return None
    roots = [
        root for root in os.environ.get("ROS_PACKAGE_PATH", "").split(os.pathsep)
        if root
    ]
    for root in roots:
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            if any(marker in filenames for marker in _IGNORE_MARKERS):
                dirnames[:] = []
                continue
            if "package.xml" in filenames:
                dirnames[:] = []
                if _manifest_name(Path(dirpath) / "package.xml") == package:
                    return str(Path(dirpath))
    return None


def package_file_name(
    url: str, package_resolver: Optional[PackageResolver] = None
) -> Optional[str]:
    """Map a ``package://name/path`` URL to a file name.

    Returns None, with a warning, when the package cannot be located.
    """
    resolver = package_resolver or find_package_path
    log.debug("camera calibration URL: %s", url)
    start = len(PACKAGE_PREFIX)
    slash = url.find("/", start)
    if slash < 0:
        slash = len(url)
    package = url[start:slash]
    package_path = resolver(package)
    if not package_path:
        log.warning("unknown package: %s (ignored)", package)
        return None
    return package_path + url[slash:]