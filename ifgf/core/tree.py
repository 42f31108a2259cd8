"""
Tree Module

Implements the hierarchical 2^N-tree decomposition of a point cloud used by IFGF.
"""

import logging
from collections import deque
from typing import Dict, List, Optional
import numpy as np
from dataclasses import dataclass

from .box import Box, ROOT_PARENT

logger = logging.getLogger(__name__)


@dataclass
class TreeConfig:
    """Configuration for tree construction."""
    max_depth: int = 10          # Maximum tree depth
    ncrit: int = 50              # Maximum points per leaf (adaptive refinement)

    def __post_init__(self):
        """Validate configuration."""
        if self.max_depth <= 0:
            raise ValueError("Max depth must be positive")
        if self.ncrit <= 0:
            raise ValueError("Ncrit must be positive")


class BoxTree:
    """
    Hierarchical box tree over a point cloud.

    Boxes are stored in a flat arena (``self.boxes``); parent and children
    links are arena indices. Boxes are cubes, and empty children are not
    created.
    """

    def __init__(self, points: np.ndarray, config: Optional[TreeConfig] = None):
        """
        Build the tree.

        Args:
            points: Array of point coordinates, shape (n, N)
            config: Tree configuration parameters
        """
        if config is None:
            config = TreeConfig()

        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or len(points) == 0:
            raise ValueError("Points must be a non-empty (n, N) array")

        self.points = points
        self.config = config
        self.boxes: List[Box] = []
        self.leaves: List[Box] = []
        self.cells_by_level: List[List[Box]] = []

        self._build_tree()

    @property
    def dimension(self) -> int:
        return self.points.shape[1]

    @property
    def root(self) -> Box:
        return self.boxes[0]

    def _compute_bounding_box(self):
        """Cubic bounding box of all points, slightly padded."""
        min_coords = np.min(self.points, axis=0)
        max_coords = np.max(self.points, axis=0)

        center = (min_coords + max_coords) / 2.0
        size = np.max(max_coords - min_coords)

        # Add small padding to avoid boundary issues
        size = max(size, 1e-12) * 1.01

        return center - size / 2.0, center + size / 2.0

    def _new_box(self, low, high, level: int, parent_index: int,
                 point_indices: np.ndarray) -> Box:
        box = Box(
            low_corner=low,
            high_corner=high,
            level=level,
            index=len(self.boxes),
            parent_index=parent_index,
            point_indices=point_indices,
        )
        box.attach(self)
        self.boxes.append(box)
        return box

    def _build_tree(self):
        """Build the hierarchical tree structure breadth first."""
        low, high = self._compute_bounding_box()
        root = self._new_box(low, high, 0, ROOT_PARENT,
                             np.arange(len(self.points), dtype=np.intp))

        queue = deque([root])
        while queue:
            box = queue.popleft()
            should_subdivide = (
                box.num_points > self.config.ncrit and
                box.level < self.config.max_depth
            )
            if should_subdivide:
                queue.extend(self._subdivide_box(box))

        self._index_levels()
        self.leaves = [box for box in self.boxes if box.is_leaf]

        logger.debug("Built tree with %d boxes, %d leaves, depth %d",
                     len(self.boxes), len(self.leaves), self.get_max_level())

    def _subdivide_box(self, box: Box) -> List[Box]:
        """Split a box into its non-empty 2^N children."""
        center = box.center
        pts = self.points[box.point_indices]

        # Bit d of the child code is set when the point lies above the center along d
        above = pts >= center
        codes = above.astype(np.intp) @ (1 << np.arange(self.dimension))

        children = []
        for code in range(2 ** self.dimension):
            member = box.point_indices[codes == code]
            if len(member) == 0:
                continue
            bits = (code >> np.arange(self.dimension)) & 1
            low = np.where(bits == 1, center, box.low_corner)
            high = np.where(bits == 1, box.high_corner, center)
            child = self._new_box(low, high, box.level + 1, box.index, member)
            box.children.append(child.index)
            children.append(child)

        return children

    def _index_levels(self):
        """Build an index of boxes by their level."""
        max_level = max(box.level for box in self.boxes)
        self.cells_by_level = [[] for _ in range(max_level + 1)]
        for box in self.boxes:
            self.cells_by_level[box.level].append(box)

    def children_of(self, box: Box) -> List[Box]:
        return [self.boxes[i] for i in box.children]

    def get_max_level(self) -> int:
        """Return the maximum tree level."""
        return len(self.cells_by_level) - 1

    def get_cells_at_level(self, level: int) -> List[Box]:
        """Get all boxes at a specific level."""
        if 0 <= level < len(self.cells_by_level):
            return self.cells_by_level[level]
        return []

    def get_statistics(self) -> Dict[str, float]:
        """Summary statistics of the tree."""
        leaf_counts = [leaf.num_points for leaf in self.leaves]
        return {
            'num_points': len(self.points),
            'num_cells': len(self.boxes),
            'num_leaves': len(self.leaves),
            'max_depth': self.get_max_level(),
            'max_particles_per_leaf': max(leaf_counts),
            'avg_particles_per_leaf': float(np.mean(leaf_counts)),
        }
