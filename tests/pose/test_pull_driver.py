"""End-to-end tests for one drag increment."""

import math

import numpy as np
import pytest

from poseforge.core.math_utils import length, vec2
from poseforge.core.skeleton import Bone, build_chain
from poseforge.dynamics.dynamics_config import DynamicsConfig
from poseforge.pose.pull_driver import pull_bone


def _bent_arm():
    # Three rods of length 10 curling from vertical toward horizontal
    return build_chain([math.pi / 2, math.pi / 3, math.pi / 6], 10.0)


def _tip(top):
    return list(top.iter_preorder())[-1]


def _straight_arm():
    return build_chain([math.pi / 2] * 3, 10.0)


class TestPullBone:
    def test_tip_drag_moves_tip_toward_pull(self):
        top = _bent_arm()
        tip = _tip(top)
        tip_before = tip.world_pos.copy()
        root_before = top.world_pos.copy()

        result = pull_bone(tip, vec2(1.0, 0.0), 1.0)
        assert result.target_found
        assert result.top_bone is top

        top.set_rotations(result.rotations)
        assert tip.world_pos[0] > tip_before[0]
        np.testing.assert_array_equal(top.world_pos, root_before)

    def test_whole_arm_responds(self):
        top = _bent_arm()
        result = pull_bone(_tip(top), vec2(1.0, 0.0), 1.0)
        diffs = result.differences
        assert len(diffs) == 4
        assert diffs[0] == 0.0
        # The gripped rod turns clockwise toward +x and most of all
        assert diffs[3] < 0.0
        assert abs(diffs[3]) > max(abs(diffs[1]), abs(diffs[2]))
        # Ancestors are dragged along too
        assert abs(diffs[1]) > 1e-6
        assert abs(diffs[2]) > 1e-6

    def test_opposite_pull_mirrors(self):
        forward = pull_bone(_tip(_bent_arm()), vec2(1.0, 0.0), 1.0)
        backward = pull_bone(_tip(_bent_arm()), vec2(-1.0, 0.0), 1.0)
        assert backward.differences[3] > 0.0
        assert backward.differences[3] == pytest.approx(-forward.differences[3], rel=0.25)

    def test_rigid_top_stays_anchored(self):
        top = _bent_arm()
        result = pull_bone(_tip(top), vec2(1.0, 0.0), 1.0)
        dyn = result.dynamics
        assert length(dyn.rigid_top_bone.root_pos - dyn.origin_pos) < 1e-2

    def test_rotations_add_to_stored_turns(self):
        top = _bent_arm()
        turns = [0.0, 4 * math.pi, 0.0, -2 * math.pi]
        top.set_rotations(turns)

        result = pull_bone(_tip(top), vec2(0.5, 0.0), 1.0)
        assert len(result.rotations) == 4
        for stored, diff, rotation in zip(turns, result.differences, result.rotations):
            assert rotation == pytest.approx(stored + diff)
        # Whole turns are kept, not wrapped away
        assert result.rotations[1] == pytest.approx(4 * math.pi, abs=0.1)
        assert result.rotations[3] == pytest.approx(-2 * math.pi, abs=0.1)

    def test_zero_pull_is_identity(self):
        top = _bent_arm()
        result = pull_bone(_tip(top), vec2(0.0, 0.0), 0.7)
        assert list(result.differences) == pytest.approx([0.0] * 4, abs=1e-12)
        assert list(result.rotations) == pytest.approx(top.get_rotations(), abs=1e-12)

    def test_target_outside_tree_is_noop(self):
        top = _bent_arm()
        stray = Bone(name="stray", length=5.0)
        # Parent link without the matching child link
        stray.parent = top
        result = pull_bone(stray, vec2(1.0, 0.0), 1.0)
        assert not result.target_found
        assert result.differences == (0.0, 0.0, 0.0, 0.0)
        assert list(result.rotations) == top.get_rotations()

    def test_any_bone_solves_whole_skeleton(self):
        top = Bone(name="top")
        left = Bone(name="left", length=10.0, local_angle=math.pi / 2)
        right = Bone(name="right", length=10.0, local_angle=-math.pi / 4)
        hand = Bone(name="hand", length=5.0, local_angle=0.5)
        top.add(left)
        left.add(hand)
        top.add(right)
        top.update_world_transform(force=True)

        result = pull_bone(hand, vec2(0.5, 0.0), 1.0)
        assert result.top_bone is top
        assert len(result.rotations) == 4
        assert result.differences[2] != 0.0

    def test_substep_count_changes_little(self):
        coarse = pull_bone(_tip(_bent_arm()), vec2(1.0, 0.0), 1.0,
                           DynamicsConfig(substeps=4))
        fine = pull_bone(_tip(_bent_arm()), vec2(1.0, 0.0), 1.0,
                         DynamicsConfig(substeps=64))
        assert list(coarse.differences) == pytest.approx(list(fine.differences), abs=1e-2)

    def test_reconnect_pass(self):
        top = _bent_arm()
        result = pull_bone(_tip(top), vec2(1.0, 0.0), 1.0,
                           DynamicsConfig(reconnect=True))
        assert len(result.rotations) == 4
        assert all(math.isfinite(r) for r in result.rotations)
        assert result.differences[3] < 0.0


class TestStraightArm:
    """Tip of an upright three-rod arm dragged sideways, gripped at the tail."""

    def test_tip_moves_and_anchor_holds(self):
        top = _straight_arm()
        tip = _tip(top)
        tip_before = tip.world_pos.copy()

        result = pull_bone(tip, vec2(1.0, 0.0), 1.0)
        dyn = result.dynamics
        assert length(dyn.rigid_top_bone.root_pos - dyn.origin_pos) < 1e-2

        top.set_rotations(result.rotations)
        assert tip.world_pos[0] > tip_before[0]
        np.testing.assert_array_equal(top.world_pos, [0, 0])

    def test_ancestors_turn_with_the_tip(self):
        # Once the tip leans, later substeps carry an along-axis part that
        # reaches its ancestors.
        result = pull_bone(_tip(_straight_arm()), vec2(1.0, 0.0), 1.0)
        diffs = result.differences
        assert diffs[0] == 0.0
        assert diffs[3] < 0.0
        assert diffs[1] != 0.0
        assert diffs[2] != 0.0
        assert diffs[1] * diffs[3] > 0.0
        assert diffs[2] * diffs[3] > 0.0
        assert abs(diffs[3]) > abs(diffs[2]) > abs(diffs[1])

    def test_opposite_pull_is_mirror_image(self):
        right = pull_bone(_tip(_straight_arm()), vec2(1.0, 0.0), 1.0)
        left = pull_bone(_tip(_straight_arm()), vec2(-1.0, 0.0), 1.0)
        assert left.differences[0] == 0.0
        for r, l in zip(right.differences[2:], left.differences[2:]):
            assert l == pytest.approx(-r, rel=1e-9)
        # The anchor-side delta is tiny, so allow for rounding near zero
        assert left.differences[1] == pytest.approx(-right.differences[1], rel=1e-6)
