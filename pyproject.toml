[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "caminfo"
version = "0.1.0"
description = "Read, write and manage camera calibration data in YAML and Videre INI formats"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "camera",
    "calibration",
    "intrinsics",
    "distortion",
    "yaml",
    "ini",
    "computer-vision",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
caminfo-convert = "caminfo.convert:main"

[tool.hatch.build.targets.wheel]
packages = ["caminfo"]

[tool.pytest.ini_options]
addopts = "-ra"
