"""Shared constants and paths for PoseForge."""

from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
ASSETS_DIR = PROJECT_ROOT / "assets"
CONFIG_DIR = ASSETS_DIR / "config"

DYNAMICS_CONFIG_NAME = "pose_dynamics.json"

# Solver defaults
DEFAULT_CONDUCTION = 0.1      # Ancestor damping, in (0, 1]
PULL_SUBSTEPS = 16            # Small pulls per drag increment
RELAX_PASSES = 3              # adjust-parents / adjust-children sweeps per pull
NORMALIZABLE_EPSILON = 1e-5   # Segments shorter than this are treated as points
MAX_TREE_DEPTH = 256          # Deeper skeletons are rejected at construction

# Pull position along a segment: 0 = root, 1 = tail
PULL_POS_MIDPOINT = 0.5
