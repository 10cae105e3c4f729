"""Reading and writing option and script files."""

from __future__ import annotations

import json
from pathlib import Path

import yaml


def load_json(path: Path) -> dict:
    """Read a JSON options file; {} when it is missing, corrupt or not an object."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def save_json(path: Path, data: dict) -> None:
    """Write options as indented JSON, creating the options directory if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def load_document(path: Path) -> dict:
    """Load a script description from a .yaml/.yml or .json file.

    Raises ValueError if the file does not hold a mapping.
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    return data


def deep_merge(base: dict, changes: dict) -> dict:
    """Lay `changes` over `base` key by key, nested dicts included.

    Neither argument is modified.
    """
    result = base.copy()
    for key, value in changes.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result
