[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "easeprobe"
version = "0.1.0"
description = "Health-probe building blocks: document value extraction, expression evaluation, PID files, log settings, YAML config merging and notification channels"
requires-python = ">=3.10"
keywords = ["monitoring", "probe", "health-check", "xpath", "expression", "yaml"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "lxml",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["easeprobe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
