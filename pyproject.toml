[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "logsink"
version = "0.1.0"
description = "Output writers for JSON log lines: console, logfmt, journald, rotating file and asynchronous"
requires-python = ">=3.10"
dependencies = []
keywords = ["logging", "json", "journald", "logfmt", "rotation", "async"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["logsink"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
