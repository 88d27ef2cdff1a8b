[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "moondeckbuddy"
version = "1.9.0"
description = "Companion library for controlling a gaming PC and its Steam client remotely: Steam process and log tracking, app state, PC power state and an HTTP request router."
requires-python = ">=3.10"
dependencies = [
    "psutil",
]
keywords = [
    "steam",
    "game-streaming",
    "remote-control",
    "log-tracking",
    "power-management",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["moondeckbuddy"]

[tool.hatch.build.targets.sdist]
include = [
    "moondeckbuddy",
    "tests",
    "README.md",
    "pyproject.toml",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
