"""Camera calibration files in YAML and INI formats, calibration URLs, and a manager for a camera's calibration."""

__version__ = "0.1.0"