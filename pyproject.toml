[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ubxlink"
version = "0.1.0"
description = "UBX protocol framing, message dispatch and receiver configuration for u-blox GNSS devices"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["u-blox", "ubx", "gnss", "gps", "nmea", "rtcm", "serial"]
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
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
    "Topic :: Scientific/Engineering :: GIS",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ubxlink"]

[tool.hatch.build.targets.sdist]
include = ["ubxlink", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
