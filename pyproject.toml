[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "n9e"
version = "5.9.6"
description = "SQLite-backed data models and helpers for an alerting and monitoring management service"
requires-python = ">=3.10"
dependencies = []
keywords = ["monitoring", "alerting", "prometheus", "alert-rules", "models", "sqlite"]
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
    "Topic :: Database",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["n9e"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
