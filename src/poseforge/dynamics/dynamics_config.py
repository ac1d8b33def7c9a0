"""Tuning parameters for the pose pull solver.

Defaults live in :mod:`poseforge.constants`; ``assets/config/pose_dynamics.json``
may override any of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from poseforge.constants import (
    DEFAULT_CONDUCTION, DYNAMICS_CONFIG_NAME, MAX_TREE_DEPTH,
    NORMALIZABLE_EPSILON, PULL_SUBSTEPS, RELAX_PASSES,
)
from poseforge.core.config_loader import load_config_section

logger = logging.getLogger(__name__)

# camelCase keys accepted in JSON
_KEY_ALIASES = {
    "relaxPasses": "relax_passes",
    "maxDepth": "max_depth",
}


@dataclass(frozen=True)
class DynamicsConfig:
    conduction: float = DEFAULT_CONDUCTION
    substeps: int = PULL_SUBSTEPS
    relax_passes: int = RELAX_PASSES
    epsilon: float = NORMALIZABLE_EPSILON
    max_depth: int = MAX_TREE_DEPTH
    # Average multi-child joints after the substeps
    reconnect: bool = False

    def __post_init__(self):
        if not 0.0 < self.conduction <= 1.0:
            raise ValueError(f"conduction must be in (0, 1], got {self.conduction}")
        if self.substeps < 1:
            raise ValueError(f"substeps must be >= 1, got {self.substeps}")
        if self.relax_passes < 0:
            raise ValueError(f"relax_passes must be >= 0, got {self.relax_passes}")
        if self.epsilon <= 0.0:
            raise ValueError(f"epsilon must be > 0, got {self.epsilon}")
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DynamicsConfig":
        """Build from a JSON-style dict.  Unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            key = _KEY_ALIASES.get(key, key)
            if key not in known:
                continue
            if key in ("substeps", "relax_passes", "max_depth"):
                value = int(value)
            elif key == "reconnect":
                value = bool(value)
            else:
                value = float(value)
            kwargs[key] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_dynamics_config(
    name: str = DYNAMICS_CONFIG_NAME,
    config_dir: Path | None = None,
) -> DynamicsConfig:
    """Load solver settings from config.  Falls back to defaults if missing."""
    try:
        data = load_config_section(name, "dynamics", config_dir)
    except (FileNotFoundError, ValueError) as e:
        logger.warning("Pose dynamics config unavailable, using defaults: %s", e)
        return DynamicsConfig()

    return DynamicsConfig.from_dict(data)
