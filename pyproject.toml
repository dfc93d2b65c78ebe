[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "simos"
version = "0.1.0"
description = "Simulated CPU with paged MMU and TLB, plus I/O interfaces and a block-based file system for a teaching operating system"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "operating-system",
    "simulation",
    "cpu",
    "mmu",
    "tlb",
    "paging",
    "file-system",
    "emulator",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["simos"]

[tool.hatch.build.targets.sdist]
include = ["simos", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
