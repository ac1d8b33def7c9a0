"""JSON config file loading utilities."""

import json
from pathlib import Path
from typing import Any

from poseforge.constants import CONFIG_DIR


def load_json(path: Path) -> Any:
    """Load and return parsed JSON from a file."""
    with open(path) as f:
        return json.load(f)


def load_config(name: str, config_dir: Path | None = None) -> Any:
    """Load a config file from assets/config/ (or *config_dir*)."""
    return load_json((config_dir or CONFIG_DIR) / name)


def load_config_section(name: str, section: str, config_dir: Path | None = None) -> dict[str, Any]:
    """Load one top-level section of a config file.

    Files without that section are treated as the section itself.
    """
    data = load_config(name, config_dir)
    if not isinstance(data, dict):
        raise ValueError(f"{name}: expected a JSON object, got {type(data).__name__}")
    section_data = data.get(section, data)
    if not isinstance(section_data, dict):
        raise ValueError(f"{name}: section {section!r} is not a JSON object")
    return section_data
