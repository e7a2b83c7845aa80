[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "keyedstore"
version = "0.5.1"
description = "An embedded key-value store for Python model classes with primary and secondary key tables"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "database",
    "embedded",
    "key-value",
    "index",
    "secondary-key",
    "snapshot",
]
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
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["keyedstore"]

[tool.hatch.build.targets.sdist]
include = ["keyedstore", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
