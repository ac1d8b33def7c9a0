"""Per-gesture state for interactive pose dragging."""

from dataclasses import dataclass, field
from typing import Any, Optional

from poseforge.core.math_utils import Vec2, vec2


@dataclass
class DragState:
    """State of one pose-drag gesture, from press to release.

    ``command`` is whatever the pose committer returned for the previous
    increment; handing it back lets the command stack merge the increments
    of one drag into a single edit.
    """
    bone: Optional[Any] = None
    # Grip point on the segment, in skeleton space
    pull_pos: Vec2 = field(default_factory=vec2)
    # Cursor minus grip point at press time
    pull_offset: Vec2 = field(default_factory=vec2)
    # 0 = segment root, 1 = segment tail
    pull_pos_rate: float = 0.0
    command: Optional[Any] = None
    increments: int = 0

    @property
    def is_active(self) -> bool:
        return self.bone is not None

    def reset(self) -> None:
        self.bone = None
        self.pull_pos = vec2()
        self.pull_offset = vec2()
        self.pull_pos_rate = 0.0
        self.command = None
        self.increments = 0
