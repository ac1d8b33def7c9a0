"""2D bone hierarchy with cached world transforms.

A bone is a joint point.  Its segment runs from the parent's joint to its
own joint, so ``world_pos = parent.world_pos + polar(length, world_angle)``
and ``world_angle = parent.world_angle + local_angle + rotate``.  A root bone
sits at ``origin`` and has no segment of its own.

The solver only reads bones through the :class:`SourceBone` protocol; this
module's :class:`Bone` is the concrete skeleton used by tools and tests.
"""

from __future__ import annotations

from typing import Callable, Iterator, Optional, Protocol, Sequence

from poseforge.core.math_utils import Vec2, as_vec2, polar, vec2


class SourceBone(Protocol):
    """Read-only bone capability set consumed by the pose solver."""

    @property
    def parent(self) -> Optional["SourceBone"]: ...

    @property
    def children(self) -> Sequence["SourceBone"]: ...

    @property
    def world_pos(self) -> Vec2: ...

    @property
    def world_angle(self) -> float: ...

    @property
    def local_angle(self) -> float: ...

    @property
    def rotate(self) -> float: ...


def get_tree_root(bone: SourceBone) -> SourceBone:
    """Walk parent links up to the top bone."""
    while bone.parent is not None:
        bone = bone.parent
    return bone


def iter_source_preorder(top: SourceBone) -> Iterator[SourceBone]:
    """Yield *top* and its descendants, parents before children."""
    stack = [top]
    while stack:
        bone = stack.pop()
        yield bone
        stack.extend(reversed(list(bone.children)))


class Bone:
    """A node in the bone hierarchy.

    ``local_angle`` is the rest angle relative to the parent; ``rotate`` is the
    posed rotation on top of it and may hold several turns.
    """

    def __init__(
        self,
        name: str = "",
        length: float = 0.0,
        local_angle: float = 0.0,
        rotate: float = 0.0,
        origin: Vec2 | None = None,
    ):
        self.name = name
        self.parent: Optional[Bone] = None
        self.children: list[Bone] = []

        self.length = float(length)
        self.local_angle = float(local_angle)
        self.rotate = float(rotate)
        self.origin: Vec2 = vec2() if origin is None else as_vec2(origin)

        # Cached world transform
        self.world_pos: Vec2 = self.origin.copy()
        self.world_angle: float = self.local_angle + self.rotate

        self._transform_dirty: bool = True

    def __repr__(self) -> str:
        return f"Bone({self.name!r}, length={self.length:g}, rotate={self.rotate:g})"

    def add(self, child: "Bone") -> "Bone":
        """Add a child bone. Removes from previous parent if any."""
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)
        child.mark_dirty()
        return self

    def remove(self, child: "Bone") -> "Bone":
        """Remove a child bone."""
        if child in self.children:
            self.children.remove(child)
            child.parent = None
            child.mark_dirty()
        return self

    def set_rotate(self, value: float) -> "Bone":
        self.rotate = float(value)
        self.mark_dirty()
        return self

    def mark_dirty(self) -> None:
        """Mark this bone and all descendants as needing a transform update."""
        for bone in self.iter_preorder():
            bone._transform_dirty = True

    def update_world_transform(self, force: bool = False) -> None:
        """Recompute world angle/position for this bone and all descendants."""
        for bone in self.iter_preorder():
            if not (bone._transform_dirty or force):
                continue
            angle = bone.local_angle + bone.rotate
            if bone.parent is None:
                bone.world_angle = angle
                bone.world_pos = bone.origin.copy()
            else:
                bone.world_angle = bone.parent.world_angle + angle
                bone.world_pos = bone.parent.world_pos + polar(bone.length, bone.world_angle)
            bone._transform_dirty = False
            # Children depend on this bone's new transform
            for child in bone.children:
                child._transform_dirty = True

    def iter_preorder(self) -> Iterator["Bone"]:
        """Yield this bone and its descendants, parents before children."""
        return iter_source_preorder(self)

    def traverse(self, callback: Callable[["Bone"], None]) -> None:
        """Visit this bone and all descendants depth-first."""
        for bone in self.iter_preorder():
            callback(bone)

    def find(self, name: str) -> Optional["Bone"]:
        """Find first descendant with given name."""
        for bone in self.iter_preorder():
            if bone.name == name:
                return bone
        return None

    def get_tree_root(self) -> "Bone":
        return get_tree_root(self)

    def get_rotations(self) -> list[float]:
        """Rotation values of the subtree in pre-order."""
        return [bone.rotate for bone in self.iter_preorder()]

    def set_rotations(self, values: Sequence[float]) -> None:
        """Assign rotation values in pre-order and refresh world transforms.

        Extra values are ignored; missing values leave bones untouched.
        """
        for bone, value in zip(self.iter_preorder(), values):
            bone.rotate = float(value)
        self.update_world_transform(force=True)


def build_chain(
    angles: Sequence[float],
    lengths: Sequence[float] | float,
    origin: Vec2 | None = None,
    names: Sequence[str] | None = None,
) -> Bone:
    """Build a single-branch skeleton and return its top bone.

    The top bone is a joint at *origin*; one further bone is appended per
    entry of *angles*, each given as a world angle in radians.  The local
    angles are derived so the chain starts unposed (``rotate == 0``).
    """
    if isinstance(lengths, (int, float)):
        lengths = [float(lengths)] * len(angles)
    names = list(names) if names is not None else [f"bone{i}" for i in range(len(angles) + 1)]

    top = Bone(name=names[0], origin=origin)
    prev, prev_world = top, 0.0
    for i, (angle, seg_length) in enumerate(zip(angles, lengths)):
        bone = Bone(name=names[i + 1], length=seg_length, local_angle=angle - prev_world)
        prev.add(bone)
        prev, prev_world = bone, angle
    top.update_world_transform(force=True)
    return top
