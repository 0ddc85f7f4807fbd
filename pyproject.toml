[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "slotdump"
version = "0.1.0"
description = "Dump and browse every storage slot an EVM contract has touched, with an interactive terminal view and CSV export."
requires-python = ">=3.10"
keywords = ["ethereum", "evm", "storage", "state-diff", "forensics", "tui", "csv"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Console :: Curses",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Debuggers",
    "Topic :: Utilities",
]
dependencies = [
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
slotdump = "slotdump.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["slotdump"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
