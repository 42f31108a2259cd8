"""
Box Module

Represents an axis-aligned box in the hierarchical decomposition used by IFGF.
"""

import weakref
from typing import List, Optional
import numpy as np
from dataclasses import dataclass, field


ROOT_PARENT = -1


@dataclass(eq=False)
class Box:
    """
    Axis-aligned bounding box of a tree node.

    Boxes live in an arena owned by a tree; the parent is stored as an index
    into that arena (``ROOT_PARENT`` for the root) and resolved through a
    weak reference to the owner.

    Attributes:
        low_corner: Lower corner of the box
        high_corner: Upper corner of the box
        level: Tree level (0 = root)
        index: Position of this box in the arena
        parent_index: Arena index of the parent box
        children: Arena indices of the child boxes
        point_indices: Indices of the points contained in the box
    """
    low_corner: np.ndarray
    high_corner: np.ndarray
    level: int = 0
    index: int = 0
    parent_index: int = ROOT_PARENT
    children: List[int] = field(default_factory=list)
    point_indices: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.intp))

    def __post_init__(self):
        self.low_corner = np.asarray(self.low_corner, dtype=np.float64)
        self.high_corner = np.asarray(self.high_corner, dtype=np.float64)
        self.point_indices = np.asarray(self.point_indices, dtype=np.intp)
        if self.low_corner.shape != self.high_corner.shape:
            raise ValueError("Box corners must have the same dimension")
        if np.any(self.high_corner < self.low_corner):
            raise ValueError("High corner must dominate low corner")
        self._owner_ref = None

    def attach(self, owner) -> None:
        """Register the tree owning the arena this box lives in."""
        self._owner_ref = weakref.ref(owner)

    @property
    def center(self) -> np.ndarray:
        return 0.5 * (self.low_corner + self.high_corner)

    @property
    def radius(self) -> float:
        """Half of the box diagonal."""
        return 0.5 * float(np.linalg.norm(self.high_corner - self.low_corner))

    @property
    def width(self) -> float:
        """Largest side length."""
        return float(np.max(self.high_corner - self.low_corner))

    @property
    def ambient_dimension(self) -> int:
        return len(self.low_corner)

    @property
    def is_leaf(self) -> bool:
        return len(self.children) == 0

    @property
    def is_root(self) -> bool:
        return self.parent_index == ROOT_PARENT

    @property
    def num_points(self) -> int:
        return len(self.point_indices)

    @property
    def parent(self) -> Optional['Box']:
        """Parent box, or None at the root or once the owning tree is gone."""
        if self.is_root or self._owner_ref is None:
            return None
        owner = self._owner_ref()
        if owner is None:
            return None
        return owner.boxes[self.parent_index]

    def contains(self, points: np.ndarray) -> np.ndarray:
        """Boolean mask of the points lying inside the (closed) box."""
        points = np.atleast_2d(points)
        return np.all((points >= self.low_corner) & (points <= self.high_corner), axis=1)

    def __repr__(self) -> str:
        return (f"Box(level={self.level}, idx={self.index}, "
                f"low={self.low_corner}, high={self.high_corner}, n={self.num_points})")


def distance(point: np.ndarray, box: Box) -> float:
    """
    Distance from a point to the nearest point of a box.

    Returns 0 if the point lies inside the box.
    """
    point = np.asarray(point, dtype=np.float64)
    nearest = np.clip(point, box.low_corner, box.high_corner)
    return float(np.linalg.norm(point - nearest))
