"""Interactive pose dragging: press on a bone, drag it, release.

The session owns no skeleton and no undo history.  Hit-testing picks the
bone, and a caller-supplied committer stores the rotations, typically by
pushing or amending an undoable command.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

from poseforge.core.events import EventBus, EventType
from poseforge.core.math_utils import (
    Mat3, Vec2, as_vec2, mat3_identity, project_on_segment, transform_point,
)
from poseforge.core.skeleton import SourceBone
from poseforge.core.state import DragState
from poseforge.dynamics.dynamics_config import DynamicsConfig
from poseforge.dynamics.rigid_bone import SkeletonTopologyError
from poseforge.pose.pull_driver import PullResult, pull_bone

logger = logging.getLogger(__name__)


class PoseCommitter(Protocol):
    """Stores the rotations of one drag increment.

    *command* is the handle returned for the previous increment of the same
    drag, or ``None`` for the first one.  The returned handle is passed back
    next time so consecutive increments can merge into one edit.
    """

    def __call__(
        self,
        top_bone: SourceBone,
        rotations: Sequence[float],
        command: Optional[Any],
    ) -> Optional[Any]: ...


class DragSession:
    """Drives the pose solver from cursor events."""

    def __init__(
        self,
        committer: PoseCommitter,
        config: Optional[DynamicsConfig] = None,
        inv_matrix: Optional[Mat3] = None,
        bus: Optional[EventBus] = None,
    ):
        self.committer = committer
        self.config = config or DynamicsConfig()
        # Cursor world coordinates -> skeleton space
        self.inv_matrix: Mat3 = mat3_identity() if inv_matrix is None else inv_matrix
        self.bus = bus
        self.state = DragState()

    def _to_local(self, cursor: Vec2) -> Vec2:
        return transform_point(self.inv_matrix, as_vec2(cursor))

    def _publish(self, event_type: EventType, **data: Any) -> None:
        if self.bus is not None:
            self.bus.publish(event_type, **data)

    def press(self, bone: Optional[SourceBone], cursor: Vec2) -> bool:
        """Grab *bone* at the cursor.  Returns True if a drag started.

        Only bones with a parent have a segment to grab.
        """
        self.state.reset()
        if bone is None or bone.parent is None:
            return False

        start = as_vec2(bone.parent.world_pos)
        end = as_vec2(bone.world_pos)
        cursor_pos = self._to_local(cursor)
        grip, rate = project_on_segment(start, end, cursor_pos)

        self.state.bone = bone
        self.state.pull_pos = grip
        self.state.pull_offset = cursor_pos - grip
        self.state.pull_pos_rate = rate
        self._publish(EventType.PULL_STARTED, bone=bone, pull_pos_rate=rate)
        return True

    def drag(self, cursor: Vec2) -> Optional[PullResult]:
        """Pull the grabbed bone toward the cursor and commit the new pose."""
        state = self.state
        if not state.is_active:
            return None

        next_pos = self._to_local(cursor) - state.pull_offset
        pull = next_pos - state.pull_pos
        state.pull_pos = next_pos

        try:
            result = pull_bone(state.bone, pull, state.pull_pos_rate, self.config)
        except SkeletonTopologyError:
            logger.warning("Cannot pose skeleton of %r, drag cancelled", state.bone)
            state.reset()
            raise
        state.command = self.committer(result.top_bone, result.rotations, state.command)
        state.increments += 1
        logger.debug("Drag increment %d committed (%d bones)",
                     state.increments, len(result.rotations))

        self._publish(EventType.POSE_PULLED, result=result)
        self._publish(EventType.ROTATIONS_COMMITTED, top_bone=result.top_bone,
                      rotations=result.rotations, command=state.command)
        return result

    def release(self) -> None:
        """End the drag."""
        bone, increments = self.state.bone, self.state.increments
        self.state.reset()
        if bone is not None:
            logger.info("Pose drag finished after %d increments", increments)
            self._publish(EventType.PULL_FINISHED, bone=bone, increments=increments)
