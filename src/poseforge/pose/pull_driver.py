"""Turn one drag increment into new bone rotations.

The increment is split into many small pulls so the solver's small-motion
heuristics stay valid; the net change of each rod's local angle is then
added to the bone's stored rotation, which keeps multi-turn rotations intact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from poseforge.core.math_utils import Vec2, as_vec2
from poseforge.core.skeleton import SourceBone, get_tree_root, iter_source_preorder
from poseforge.dynamics.bone_dynamics import BoneDynamics
from poseforge.dynamics.dynamics_config import DynamicsConfig
from poseforge.dynamics.rigid_bone import PivotMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PullResult:
    """Outcome of one drag increment.

    ``differences`` and ``rotations`` hold one entry per bone of the
    skeleton, in pre-order from ``top_bone``.
    """
    top_bone: SourceBone
    target_found: bool
    differences: tuple[float, ...]
    rotations: tuple[float, ...]
    dynamics: BoneDynamics


def pull_bone(
    target: SourceBone,
    pull: Vec2,
    pull_pos_rate: float,
    config: Optional[DynamicsConfig] = None,
) -> PullResult:
    """Solve one drag increment applied to *target*.

    Parameters
    ----------
    target : SourceBone
        The grabbed bone.  Its whole connected skeleton is solved.
    pull : Vec2
        Displacement of the grip point since the previous increment.
    pull_pos_rate : float
        Grip position along the segment, 0 at the root and 1 at the tail.
    config : DynamicsConfig, optional
        Solver settings; defaults when omitted.

    Returns
    -------
    PullResult
        Per-bone rotation differences and the resulting rotation values.
    """
    config = config or DynamicsConfig()
    pull = as_vec2(pull)

    top = get_tree_root(target)
    dynamics = BoneDynamics.from_config(top, config)

    rigid_target = dynamics.find_rigid_bone(target)
    if rigid_target is not None:
        step = pull / float(config.substeps)
        for _ in range(config.substeps):
            dynamics.pull_bone(rigid_target, step, pull_pos_rate)
        if config.reconnect:
            dynamics.reconnect_bones()
            dynamics.update_motions(PivotMode.CENTER)
    else:
        logger.debug("Pull target %r not in its rigid tree, skipping", target)

    differences = dynamics.rotation_differences()
    rotations = [
        bone.rotate + diff
        for bone, diff in zip(iter_source_preorder(top), differences)
    ]
    return PullResult(
        top_bone=top,
        target_found=rigid_target is not None,
        differences=tuple(differences),
        rotations=tuple(rotations),
        dynamics=dynamics,
    )
