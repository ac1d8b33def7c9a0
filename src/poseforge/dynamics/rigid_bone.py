"""Rigid shadow of a bone hierarchy.

Each source bone gets one :class:`RigidBone`: a rod from the parent's joint to
the bone's own joint with a position, an angle and a fixed length.  The
solver moves rods by writing one-shot ``force`` / ``torque`` corrections and
applying them with :meth:`RigidBone.apply_motion`.

Rods live in a :class:`RigidTree` arena and refer to each other by index.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator, Optional

from poseforge.constants import MAX_TREE_DEPTH, NORMALIZABLE_EPSILON
from poseforge.core.math_utils import Vec2, as_vec2, length, polar, rotate_vec2, vec2
from poseforge.core.skeleton import SourceBone

logger = logging.getLogger(__name__)


class SkeletonTopologyError(ValueError):
    """The source hierarchy cannot be mirrored as a rigid tree."""


class SkeletonDepthError(SkeletonTopologyError):
    """The source hierarchy is deeper than the configured limit."""


class SkeletonCycleError(SkeletonTopologyError):
    """A source bone was reached twice (cycle or shared subtree)."""


class PivotMode(Enum):
    FREE = auto()    # Turn about the (translated) root
    CENTER = auto()  # Turn about the segment midpoint
    TAIL = auto()    # Turn about the segment tail


@dataclass
class RigidBone:
    """One rigid rod of the shadow tree."""
    index: int
    source_index: int
    root_pos: Vec2
    angle: float
    length: float
    parent: Optional[int] = None
    children: list[int] = field(default_factory=list)
    depth: int = 0
    force: Vec2 = field(default_factory=vec2)
    torque: float = 0.0

    def dir(self) -> Vec2:
        return polar(self.length, self.angle)

    def tail_pos(self) -> Vec2:
        return self.root_pos + self.dir()

    def is_degenerate(self, epsilon: float = NORMALIZABLE_EPSILON) -> bool:
        return self.length < epsilon

    def apply_motion(
        self,
        pivot: PivotMode = PivotMode.FREE,
        epsilon: float = NORMALIZABLE_EPSILON,
    ) -> None:
        """Consume the accumulated force and torque.

        The force always translates the root.  The torque then turns the rod
        about *pivot*, located after the translation.  Rods shorter than
        *epsilon* only translate.
        """
        self.root_pos = self.root_pos + self.force
        rotate = 0.0 if self.is_degenerate(epsilon) else self.torque

        if rotate != 0.0:
            if pivot is PivotMode.CENTER:
                center = self.root_pos + 0.5 * self.dir()
                self.root_pos = center + rotate_vec2(self.root_pos - center, rotate)
            elif pivot is PivotMode.TAIL:
                center = self.tail_pos()
                self.root_pos = center + rotate_vec2(self.root_pos - center, rotate)
            self.angle += rotate

        self.force = vec2()
        self.torque = 0.0


class RigidTree:
    """Index-addressed arena of rigid bones.  Index 0 is the tree root."""

    def __init__(self, nodes: list[RigidBone]):
        self.nodes = nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> RigidBone:
        return self.nodes[index]

    @property
    def root(self) -> RigidBone:
        return self.nodes[0]

    def parent_of(self, node: RigidBone) -> Optional[RigidBone]:
        return None if node.parent is None else self.nodes[node.parent]

    def children_of(self, node: RigidBone) -> list[RigidBone]:
        return [self.nodes[i] for i in node.children]

    def iter_preorder(self, start: int = 0) -> Iterator[RigidBone]:
        """Yield the subtree at *start*, parents before children.

        Each call returns a fresh generator.
        """
        stack = [start]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def iter_descendants(self, start: int) -> Iterator[RigidBone]:
        """Pre-order walk of the subtree at *start*, excluding *start*."""
        walk = self.iter_preorder(start)
        next(walk)
        yield from walk

    def ancestors(self, index: int) -> Iterator[RigidBone]:
        """Yield the ancestors of *index*, nearest first."""
        node = self.nodes[index]
        while node.parent is not None:
            node = self.nodes[node.parent]
            yield node

    def chain_to_root(self, index: int) -> list[RigidBone]:
        """Nodes from the tree root down to *index*, inclusive."""
        chain = [self.nodes[index], *self.ancestors(index)]
        chain.reverse()
        return chain

    @classmethod
    def from_source(
        cls,
        top: SourceBone,
        max_depth: int = MAX_TREE_DEPTH,
    ) -> tuple["RigidTree", list[SourceBone]]:
        """Snapshot a source hierarchy.

        Returns the tree and the pre-order source table; ``node.source_index``
        indexes that table, and node indices follow the same order.
        """
        nodes: list[RigidBone] = []
        sources: list[SourceBone] = []
        seen: set[int] = set()

        # (bone, parent index, depth)
        stack: list[tuple[SourceBone, Optional[int], int]] = [(top, None, 0)]
        while stack:
            bone, parent_index, depth = stack.pop()
            if id(bone) in seen:
                raise SkeletonCycleError(f"Bone {bone!r} is reachable more than once")
            if depth > max_depth:
                raise SkeletonDepthError(f"Skeleton deeper than {max_depth} bones")
            seen.add(id(bone))

            index = len(nodes)
            world_pos = as_vec2(bone.world_pos)
            if parent_index is None:
                root_pos = world_pos.copy()
            else:
                root_pos = as_vec2(sources[parent_index].world_pos)
            nodes.append(RigidBone(
                index=index,
                source_index=len(sources),
                root_pos=root_pos,
                angle=float(bone.world_angle),
                length=length(world_pos - root_pos),
                parent=parent_index,
                depth=depth,
            ))
            sources.append(bone)
            if parent_index is not None:
                nodes[parent_index].children.append(index)

            for child in reversed(list(bone.children)):
                stack.append((child, index, depth + 1))

        logger.debug("Rigid tree built: %d bones, depth %d",
                     len(nodes), max(n.depth for n in nodes))
        return cls(nodes), sources
