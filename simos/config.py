"""Reading and writing of ``KEY=VALUE`` configuration files."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

_COMMENT = "#"
_SEPARATOR = "="


def load_config(path: str | Path) -> dict[str, str]:
    """Read a ``KEY=VALUE`` file into a dict, skipping blank and comment lines.

    Only the first ``=`` on a line separates the key from its value. When a key
    appears more than once, the last value wins.
    """
    values: dict[str, str] = {}
    with open(path, encoding="utf-8") as stream:
        for line in stream:
            line = line.strip()
            if not line or line.startswith(_COMMENT):
                continue
            if _SEPARATOR not in line:
                raise ValueError(f"{path}: malformed configuration line: {line!r}")
            key, value = line.split(_SEPARATOR, 1)
            values[key.strip()] = value.strip()
    return values


def save_config(path: str | Path, values: Mapping[str, object]) -> None:
    """Write ``values`` as ``KEY=VALUE`` lines, replacing any existing file."""
    with open(path, "w", encoding="utf-8") as stream:
        for key, value in values.items():
            stream.write(f"{key}{_SEPARATOR}{value}\n")


def get_str(values: Mapping[str, str], key: str) -> str:
    """Return the value stored under ``key``; raise KeyError when it is absent."""
    try:
        return values[key]
    except KeyError:
        raise KeyError(f"missing configuration key: {key}") from None


def get_int(values: Mapping[str, str], key: str) -> int:
    """Return the value stored under ``key`` as an integer."""
    text = get_str(values, key)
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"configuration key {key} is not an integer: {text!r}") from None