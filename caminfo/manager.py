"""Keeps a camera's calibration, loading and saving it through calibration URLs."""

from __future__ import annotations

import logging
import os
import stat
import threading
from dataclasses import dataclass
from typing import Optional

from .models import CalibrationError, CameraInfo
from .parse import read_calibration, write_calibration
from .urls import (
    DEFAULT_CAMERA_INFO_URL,
    PackageResolver,
    UrlType,
    is_valid_camera_name,
    package_file_name,
    parse_url,
    resolve_url,
)

log = logging.getLogger(__name__)

_FILE_SCHEME_LENGTH = len("file://")


@dataclass
class SetCameraInfoResponse:
    """Outcome of a request to store a new calibration."""

    success: bool
    status_message: str = ""


class CameraInfoManager:
    """Provides the current calibration of one camera and stores new ones.

    Nothing is loaded until :meth:`load_camera_info`, :meth:`is_calibrated`
    or :meth:`get_camera_info` is called.  The URL may use the ``${NAME}``
    and ``${ROS_HOME}`` variables; an empty URL means
    ``file://${ROS_HOME}/camera_info/${NAME}.yaml``.
    """

    def __init__(
        self,
        camera_name: str = "camera",
        url: str = "",
        package_resolver: Optional[PackageResolver] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._camera_name = camera_name
        self._url = url
        self._package_resolver = package_resolver
        self._cam_info = CameraInfo()
        self._loaded = False

    def _ensure_loaded(self) -> CameraInfo:
        while True:
            with self._lock:
                if self._loaded:
                    return self._cam_info
                self._loaded = True
                url = self._url
                camera_name = self._camera_name
            # Load without holding the lock; it is not reentrant.
            self._load_calibration(url, camera_name)

    def get_camera_info(self) -> CameraInfo:
        """Return a copy of the current calibration, loading it if needed.

        The matrices are all zero when no calibration is available.
        """
        return self._ensure_loaded().copy()

    def is_calibrated(self) -> bool:
        """Return True if the current calibration has a non-zero camera matrix."""
        return self._ensure_loaded().k[0] != 0.0

    def load_camera_info(self, url: str) -> bool:
        """Set a new URL and load its calibration; True if data were found."""
        with self._lock:
            self._url = url
            camera_name = self._camera_name
            self._loaded = True
        return self._load_calibration(url, camera_name)

    def resolve_url(self, url: str, camera_name: str) -> str:
        """Return the URL with its substitution variables resolved."""
        return resolve_url(url, camera_name)

    def set_camera_name(self, camera_name: str) -> bool:
        """Set a new camera name if its syntax is valid.

        The calibration is reloaded before its next use, since the name may
        change where the URL points.
        """
        if not is_valid_camera_name(camera_name):
            return False
        with self._lock:
            self._camera_name = camera_name
            self._loaded = False
        return True

    def set_camera_info(self, camera_info: CameraInfo) -> bool:
        """Replace the current calibration without saving it."""
        with self._lock:
            self._cam_info = camera_info.copy()
            self._loaded = True
        return True

    def validate_url(self, url: str) -> bool:
        """Return True if the URL's syntax is supported (the resource may not exist)."""
        with self._lock:
            camera_name = self._camera_name
        return parse_url(resolve_url(url, camera_name)).is_supported

    def handle_set_camera_info(self, camera_info: CameraInfo) -> SetCameraInfoResponse:
        """Adopt a new calibration and save it to the current URL.

        The calibration is adopted even when saving fails.
        """
        with self._lock:
            self._cam_info = camera_info.copy()
            url = self._url
            camera_name = self._camera_name
            self._loaded = True
        if self._save_calibration(camera_info, url, camera_name):
            return SetCameraInfoResponse(success=True)
        return SetCameraInfoResponse(
            success=False, status_message="Error storing camera calibration."
        )

    def _load_calibration(self, url: str, camera_name: str) -> bool:
        resolved = resolve_url(url, camera_name)
        url_type = parse_url(resolved)
        if url_type is not UrlType.EMPTY:
            log.info("camera calibration URL: %s", resolved)

        if url_type is UrlType.EMPTY:
            log.info("using default calibration URL")
            return self._load_calibration(DEFAULT_CAMERA_INFO_URL, camera_name)
        if url_type is UrlType.FILE:
            return self._load_calibration_file(
                resolved[_FILE_SCHEME_LENGTH:], camera_name
            )
        if url_type is UrlType.FLASH:
            log.warning("reading from flash not implemented yet")
            return False
        if url_type is UrlType.PACKAGE:
            filename = package_file_name(resolved, self._package_resolver)
            if filename:
                return self._load_calibration_file(filename, camera_name)
            return False
        log.error("Invalid camera calibration URL: %s", resolved)
        return False

    def _load_calibration_file(self, filename: str, camera_name: str) -> bool:
        log.debug("reading camera calibration from %s", filename)
        try:
            file_camera_name, cam_info = read_calibration(filename)
        except CalibrationError as exc:
            log.debug("%s", exc)
            log.warning("Camera calibration file %s not found.", filename)
            return False
        if camera_name != file_camera_name:
            log.warning(
                "[%s] does not match name %s in file %s",
                camera_name, file_camera_name, filename,
            )
        with self._lock:
            self._cam_info = cam_info
        return True

    def _save_calibration(
        self, new_info: CameraInfo, url: str, camera_name: str
    ) -> bool:
        resolved = resolve_url(url, camera_name)
        url_type = parse_url(resolved)

        if url_type is UrlType.EMPTY:
            return self._save_calibration(new_info, DEFAULT_CAMERA_INFO_URL, camera_name)
        if url_type is UrlType.FILE:
            return self._save_calibration_file(
                new_info, resolved[_FILE_SCHEME_LENGTH:], camera_name
            )
        if url_type is UrlType.PACKAGE:
            filename = package_file_name(resolved, self._package_resolver)
            if filename:
                return self._save_calibration_file(new_info, filename, camera_name)
            return False
        log.error("invalid url: %s (ignored)", resolved)
        return self._save_calibration(new_info, DEFAULT_CAMERA_INFO_URL, camera_name)

    def _save_calibration_file(
        self, new_info: CameraInfo, filename: str, camera_name: str
    ) -> bool:
        log.info("writing calibration data to %s", filename)
        last_slash = filename.rfind("/")
        if last_slash < 0:
            log.error("filename [%s] has no '/'", filename)
            return False

        dirname = filename[:last_slash + 1]
        try:
            mode = os.stat(dirname).st_mode
        except FileNotFoundError:
            try:
                os.makedirs(dirname, exist_ok=True)
            except OSError:
                log.error("unable to create path to directory [%s]", dirname)
                return False
        except OSError:
            log.error("directory [%s] not accessible", dirname)
            return False
        else:
            if not stat.S_ISDIR(mode):
                log.error("[%s] is not a directory", dirname)
                return False

        try:
            write_calibration(filename, camera_name, new_info)
        except CalibrationError as exc:
            log.error("%s", exc)
            return False
        return True