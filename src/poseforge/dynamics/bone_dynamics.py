"""Pull propagation solver for posing a 2D bone hierarchy.

A pull on one rod is split into a translation and a turn, applied to that
rod, then handed on: ancestors get the root displacement damped by
``conduction`` at every hop, descendants get the tail displacement undamped.
The top of the tree is then re-pinned to its world anchor and a few
relaxation sweeps close the gaps that independent propagation leaves at the
joints.  Nothing here is a global solve; small pulls keep it stable.

Torque sign conventions: a rod pulled at its tail turns about its root and
takes the sign of ``cross(dir, rot)``; a rod pulled at its root turns about
its tail and takes the opposite sign.
"""

from __future__ import annotations

import logging
from typing import Optional

from poseforge.constants import (
    DEFAULT_CONDUCTION, MAX_TREE_DEPTH, NORMALIZABLE_EPSILON,
    PULL_POS_MIDPOINT, RELAX_PASSES,
)
from poseforge.core.math_utils import (
    Vec2, angle_difference, as_vec2, cross, decompose, length,
    normalize, normalize_angle,
)
from poseforge.core.skeleton import SourceBone
from poseforge.dynamics.dynamics_config import DynamicsConfig
from poseforge.dynamics.rigid_bone import PivotMode, RigidBone, RigidTree

logger = logging.getLogger(__name__)


def _ccw_sign(c: float) -> float:
    return 1.0 if c > 0.0 else -1.0


def _cw_sign(c: float) -> float:
    return 1.0 if c < 0.0 else -1.0


class BoneDynamics:
    """Rigid shadow of one connected skeleton, moved by small pulls.

    Create one instance per drag increment from the top bone of the
    skeleton, run :meth:`pull_bone` some number of times, then read
    :meth:`rotation_differences`.
    """

    def __init__(
        self,
        top_bone: SourceBone,
        conduction: float = DEFAULT_CONDUCTION,
        relax_passes: int = RELAX_PASSES,
        epsilon: float = NORMALIZABLE_EPSILON,
        max_depth: int = MAX_TREE_DEPTH,
    ):
        if not 0.0 < conduction <= 1.0:
            raise ValueError(f"conduction must be in (0, 1], got {conduction}")
        if relax_passes < 0:
            raise ValueError(f"relax_passes must be >= 0, got {relax_passes}")
        # Zero-length rods, the top one included, must take the degenerate branch
        if epsilon <= 0.0:
            raise ValueError(f"epsilon must be > 0, got {epsilon}")
        if max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {max_depth}")
        self._conduction = float(conduction)
        self._relax_passes = int(relax_passes)
        self._epsilon = float(epsilon)

        self._tree, self._sources = RigidTree.from_source(top_bone, max_depth)
        self._origin_pos: Vec2 = as_vec2(top_bone.world_pos)

        # Local rotations at snapshot time, the baseline for differences
        self._initial_rotations = [self._local_rotation(node) for node in self._tree.nodes]
        logger.debug("BoneDynamics: %d rigid bones, conduction %.3f",
                     len(self._tree), self._conduction)

    @classmethod
    def from_config(cls, top_bone: SourceBone, config: DynamicsConfig) -> "BoneDynamics":
        return cls(
            top_bone,
            conduction=config.conduction,
            relax_passes=config.relax_passes,
            epsilon=config.epsilon,
            max_depth=config.max_depth,
        )

    # ── Accessors ─────────────────────────────────────────────────────

    @property
    def conduction(self) -> float:
        return self._conduction

    @property
    def tree(self) -> RigidTree:
        return self._tree

    @property
    def rigid_top_bone(self) -> RigidBone:
        return self._tree.root

    @property
    def origin_pos(self) -> Vec2:
        """World anchor the top of the tree is pinned to."""
        return self._origin_pos.copy()

    def source_of(self, node: RigidBone) -> SourceBone:
        return self._sources[node.source_index]

    def find_rigid_bone(self, bone: SourceBone) -> Optional[RigidBone]:
        """Rigid counterpart of a source bone, matched by identity."""
        for node in self._tree.iter_preorder():
            if self._sources[node.source_index] is bone:
                return node
        return None

    # ── Rotation extraction ───────────────────────────────────────────

    def _local_rotation(self, node: RigidBone) -> float:
        parent = self._tree.parent_of(node)
        if parent is None:
            return 0.0
        local_angle = self.source_of(node).local_angle
        return normalize_angle(node.angle - parent.angle - local_angle)

    def rotation_differences(self) -> list[float]:
        """Signed change of every bone's local rotation since construction.

        One entry per rigid bone in pre-order; bones without a parent give 0.
        """
        differences = []
        for node in self._tree.iter_preorder():
            diff = 0.0
            if node.parent is not None:
                diff = angle_difference(self._initial_rotations[node.index],
                                        self._local_rotation(node))
            differences.append(diff)
        return differences

    # ── Single pull ───────────────────────────────────────────────────

    def _apply(self, node: RigidBone, pivot: PivotMode) -> None:
        node.apply_motion(pivot, self._epsilon)

    def pull_bone(self, target: RigidBone, pull: Vec2, pull_pos: float) -> None:
        """Move *target* by one small *pull* gripped at *pull_pos* (0 root, 1 tail)."""
        pull = as_vec2(pull)
        pre_root = target.root_pos.copy()
        pre_tail = target.tail_pos()

        if not target.is_degenerate(self._epsilon):
            at_tail = pull_pos >= PULL_POS_MIDPOINT
            rotate_rate_linear = abs(2.0 * (pull_pos - PULL_POS_MIDPOINT))
            rotate_rate = 1.0 - (1.0 - rotate_rate_linear) ** 2
            rotate_rate = self._conduction * rotate_rate + (1.0 - self._conduction)

            norm_dir = normalize(target.dir())
            vertical, horizontal = decompose(norm_dir, pull)
            target.force = self._conduction * (vertical + (1.0 - rotate_rate) * horizontal)

            rotate = horizontal * rotate_rate
            target.torque = (
                (length(rotate) / target.length)
                * (1.0 if at_tail else -1.0)
                * _ccw_sign(cross(norm_dir, rotate))
            )
            # Pivot at the end opposite the grip
            self._apply(target, PivotMode.FREE if at_tail else PivotMode.TAIL)
        else:
            target.force = pull
            self._apply(target, PivotMode.FREE)

        self.pull_parent_bones(target, target.root_pos - pre_root)
        self.adjust_by_origin_constraint(target)

        self.pull_child_bones(target, target.tail_pos() - pre_tail)

        for _ in range(self._relax_passes):
            self.adjust_parent_bones(target)
            self.adjust_child_bones(target)

    # ── Propagation ───────────────────────────────────────────────────

    def pull_parent_bones(self, target: RigidBone, pull: Vec2) -> None:
        """Drag the ancestors of *target* by its root displacement.

        Each ancestor moves by ``conduction`` times the part of the pull along
        its own axis and forwards only that part, so the effect decays with
        distance.
        """
        pull = as_vec2(pull)
        for parent in self._tree.ancestors(target.index):
            if not parent.is_degenerate(self._epsilon):
                norm_dir = normalize(parent.dir())
                trans, rotate = decompose(norm_dir, pull)
                parent.torque = (length(rotate) / parent.length) * _ccw_sign(cross(norm_dir, rotate))
                parent.force = self._conduction * trans
                self._apply(parent, PivotMode.FREE)
                pull = self._conduction * trans
            else:
                parent.force = self._conduction * pull
                self._apply(parent, PivotMode.FREE)

    def pull_child_bones(self, target: RigidBone, pull: Vec2) -> None:
        """Drag every descendant of *target* by its tail displacement, undamped."""
        pulls: dict[int, Vec2] = {target.index: as_vec2(pull)}
        for child in self._tree.iter_descendants(target.index):
            child_pull = pulls[child.parent]
            trans = child_pull
            if not child.is_degenerate(self._epsilon):
                norm_dir = normalize(child.dir())
                trans, rotate = decompose(norm_dir, child_pull)
                child.torque = (length(rotate) / child.length) * _cw_sign(cross(norm_dir, rotate))
            child.force = trans
            self._apply(child, PivotMode.TAIL)
            pulls[child.index] = trans

    def adjust_by_origin_constraint(self, target: RigidBone) -> Vec2:
        """Re-pin the chain above *target* to the world anchor.

        The gap between the anchor and the top rod is pushed down the chain,
        root-most first; each rod keeps the along-axis part and turns about
        its tail for the rest.  Returns the pull left over at *target*.
        """
        chain = self._tree.chain_to_root(target.index)
        pull = self._origin_pos - chain[0].root_pos
        for node in chain:
            if not node.is_degenerate(self._epsilon):
                norm_dir = normalize(node.dir())
                trans, rotate = decompose(norm_dir, pull)
                node.torque = (length(rotate) / node.length) * _cw_sign(cross(norm_dir, rotate))
                node.force = trans
                self._apply(node, PivotMode.TAIL)
                pull = trans
            else:
                node.force = pull
                self._apply(node, PivotMode.TAIL)
        return pull

    # ── Relaxation ────────────────────────────────────────────────────

    def adjust_parent_bones(self, target: RigidBone) -> None:
        """Pull each ancestor's tail onto its child's root, walking up."""
        prev = target
        for parent in self._tree.ancestors(target.index):
            pull = prev.root_pos - parent.tail_pos()
            if not parent.is_degenerate(self._epsilon):
                norm_dir = normalize(parent.dir())
                trans, rotate = decompose(norm_dir, pull)
                parent.torque = (length(rotate) / parent.length) * _ccw_sign(cross(norm_dir, rotate))
                parent.force = trans
            else:
                parent.force = pull
            self._apply(parent, PivotMode.FREE)
            prev = parent

    def adjust_child_bones(self, target: RigidBone) -> None:
        """Pull each descendant's root onto its parent's tail, walking down."""
        for child in self._tree.iter_descendants(target.index):
            parent = self._tree[child.parent]
            pull = parent.tail_pos() - child.root_pos
            if not child.is_degenerate(self._epsilon):
                norm_dir = normalize(child.dir())
                trans, rotate = decompose(norm_dir, pull)
                child.torque = (length(rotate) / child.length) * _cw_sign(cross(norm_dir, rotate))
                child.force = trans
            else:
                child.force = pull
            self._apply(child, PivotMode.TAIL)

    # ── Joint reconnection ────────────────────────────────────────────

    def joint_connect_pos(self, node: RigidBone) -> Vec2:
        """Average of *node*'s tail and its children's roots."""
        children = self._tree.children_of(node)
        total = node.tail_pos()
        for child in children:
            total = total + child.root_pos
        return total / (1 + len(children))

    def reconnect_bones(self) -> None:
        """Load accumulators that pull every joint onto a shared point.

        Each rod is pulled at its root toward its parent's connect point and at
        its tail toward its own; both act on half the rod as lever.  Nothing
        moves until :meth:`update_motions`.
        """
        top = self._tree.root
        origin = top.tail_pos()
        root_pulls: dict[int, Vec2] = {
            child.index: origin - child.root_pos for child in self._tree.children_of(top)
        }

        for node in self._tree.iter_descendants(top.index):
            root_pull = root_pulls[node.index]
            tail_pos = node.tail_pos()
            connect_pos = self.joint_connect_pos(node)
            tail_pull = connect_pos - tail_pos

            if not node.is_degenerate(self._epsilon):
                half_length = 0.5 * node.length
                norm_dir = normalize(node.dir())
                root_trans, root_rotate = decompose(norm_dir, root_pull)
                tail_trans, tail_rotate = decompose(norm_dir, tail_pull)
                root_torque = (length(root_rotate) / half_length) * _cw_sign(cross(norm_dir, root_rotate))
                tail_torque = (length(tail_rotate) / half_length) * _ccw_sign(cross(norm_dir, tail_rotate))
                node.force = root_trans + tail_trans
                node.torque = root_torque + tail_torque
            else:
                node.force = root_pull + tail_pull
                node.torque = 0.0

            for child in self._tree.children_of(node):
                root_pulls[child.index] = connect_pos - child.root_pos

    def update_motions(self, pivot: PivotMode = PivotMode.CENTER) -> None:
        """Apply every rod's pending force and torque."""
        for node in self._tree.iter_preorder():
            self._apply(node, pivot)
