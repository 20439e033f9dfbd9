[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "agentsysmetrics"
version = "0.1.0"
description = "Host system metrics: CPU counts, disk I/O rates, filesystem usage, host info, network counters and hwmon sensors."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "metrics",
    "monitoring",
    "system",
    "diskio",
    "filesystem",
    "hwmon",
    "sensors",
    "procfs",
    "sysfs",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["agentsysmetrics"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
