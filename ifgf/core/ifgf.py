"""
Main IFGF Module

Interpolated Factored Green's Function summation

    C_i = Σ_j K(x_i, y_j) σ_j

Far interactions of a source box Y are evaluated through the factored field

    F_Y(x) = Σ_{j∈Y} K(x, y_j) σ_j / G(x, c_Y)

which is smooth in the cone coordinates of Y and is interpolated on cone
patches with Chebyshev polynomials. Leaf boxes sample F_Y directly; parent
boxes sample the interpolants of their children, corrected by the transfer
factor, so each level reuses the work of the level below.
"""

import copy
import logging
from typing import Dict, List, Optional, Tuple, Union
import numpy as np
from dataclasses import dataclass

from .admissibility import default_eta, is_admissible
from .box import Box
from .chebyshev import ChebyshevInterpolant
from .cone import ConeDomainSpec, ConeGrid, cartesian_to_cone, cone_domain_size_func, cone_to_cartesian
from .near_field import near_interaction
from .transfer import transfer_factor
from .tree import BoxTree, TreeConfig

logger = logging.getLogger(__name__)


@dataclass
class IFGFConfig:
    """Configuration of the interpolation scheme."""
    orders: Tuple[int, ...] = (3, 5, 5)                              # Chebyshev points per cone axis
    ds: Union[float, Tuple[float, ...]] = (1.0, np.pi / 2, np.pi / 2)  # Base cone domain size
    eta: Optional[float] = None                                       # Admissibility parameter (None: N/sqrt(N))
    tolerance: Optional[float] = None                                 # Target error for cone refinement
    max_refinements: int = 4                                          # Maximum halvings of the cone size
    block_size: Optional[int] = None                                  # Near-field target block (None: kernel default)

    def __post_init__(self):
        """Validate configuration."""
        self.orders = tuple(int(p) for p in self.orders)
        if any(p <= 0 for p in self.orders):
            raise ValueError("Interpolation orders must be positive")
        if np.any(np.asarray(self.ds, dtype=np.float64) <= 0):
            raise ValueError("Cone domain size must be positive")
        if self.eta is not None and self.eta <= 0:
            raise ValueError("Eta must be positive")
        if self.tolerance is not None and self.tolerance <= 0:
            raise ValueError("Tolerance must be positive")
        if self.max_refinements < 0:
            raise ValueError("Max refinements must be non-negative")
        if self.block_size is not None and self.block_size <= 0:
            raise ValueError("Block size must be positive")


class IFGFOperator:
    """
    Fast evaluation of kernel sums between a target and a source point cloud.

    Interaction lists are built once from the two trees with the
    admissibility condition; interpolants are rebuilt for each density.
    """

    def __init__(self, kernel, targets: np.ndarray, sources: np.ndarray,
                 config: Optional[IFGFConfig] = None,
                 tree_config: Optional[TreeConfig] = None):
        """
        Initialize the operator.

        Args:
            kernel: Kernel instance (see ifgf.kernels)
            targets: Target points, shape (m, 3)
            sources: Source points, shape (n, 3)
            config: Interpolation configuration
            tree_config: Tree configuration shared by both trees
        """
        if config is None:
            config = IFGFConfig()

        self.targets = np.asarray(targets, dtype=np.float64)
        self.sources = np.asarray(sources, dtype=np.float64)
        if self.targets.ndim != 2 or self.targets.shape[1] != 3:
            raise ValueError("Targets must be an (m, 3) array")
        if self.sources.ndim != 2 or self.sources.shape[1] != 3:
            raise ValueError("Sources must be an (n, 3) array")
        if getattr(kernel, 'dimension', 3) != 3:
            raise ValueError("IFGF operator only supports 3D kernels")
        if len(config.orders) != 3:
            raise ValueError("Orders must have one entry per cone coordinate")

        if config.block_size is not None:
            kernel = copy.copy(kernel)
            kernel.block_size = int(config.block_size)

        self.kernel = kernel
        self.config = config
        self.eta = config.eta if config.eta is not None else default_eta(3)
        self.smax = 1.0 / self.eta
        self._size_for = cone_domain_size_func(kernel.wavenumber(), config.ds)

        self.target_tree = BoxTree(self.targets, tree_config)
        self.source_tree = BoxTree(self.sources, tree_config)

        self.far_lists: Dict[int, List[int]] = {}
        self.near_lists: Dict[int, List[int]] = {}
        self._build_interaction_lists()

        self._grids: Dict[int, ConeGrid] = {}
        self._interpolants: Dict[Tuple[int, Tuple[int, ...]], ChebyshevInterpolant] = {}
        self._sigma: Optional[np.ndarray] = None
        self._dtype = None

    def _build_interaction_lists(self):
        """Dual traversal of the target leaves against the source tree."""
        for leaf in self.target_tree.leaves:
            far, near = [], []
            stack = [self.source_tree.root]
            while stack:
                source = stack.pop()
                if is_admissible(leaf, source, self.eta):
                    far.append(source.index)
                elif source.is_leaf:
                    near.append(source.index)
                else:
                    stack.extend(self.source_tree.children_of(source))
            self.far_lists[leaf.index] = far
            self.near_lists[leaf.index] = near

        logger.debug("Interaction lists: %d far pairs, %d near pairs",
                     sum(len(v) for v in self.far_lists.values()),
                     sum(len(v) for v in self.near_lists.values()))

    def compute(self, sigma: np.ndarray) -> np.ndarray:
        """
        Compute C = K σ.

        Args:
            sigma: Densities, shape (n,) for scalar kernels or (n, 3) for Maxwell

        Returns:
            Array of shape (m,) or (m, 3)
        """
        sigma = np.asarray(sigma)
        if len(sigma) != len(self.sources):
            raise ValueError("Need one density per source point")

        self._sigma = sigma
        self._dtype = np.result_type(self.kernel.output_type.dtype, sigma.dtype)
        self._grids.clear()
        self._interpolants.clear()

        C = np.zeros((len(self.targets),) + sigma.shape[1:], dtype=self._dtype)

        for leaf in self.target_tree.leaves:
            for index in self.near_lists[leaf.index]:
                source = self.source_tree.boxes[index]
                near_interaction(C, self.kernel, self.targets, self.sources, sigma,
                                 leaf.point_indices, source.point_indices)
            for index in self.far_lists[leaf.index]:
                self._far_field(C, leaf, self.source_tree.boxes[index])

        logger.debug("Computed IFGF sum with %d interpolants", len(self._interpolants))
        return C

    __call__ = compute

    def _far_field(self, C: np.ndarray, target: Box, source: Box):
        """C[I] += F_Y(x) G(x, c_Y) for the points of an admissible target leaf."""
        I = target.point_indices
        x = self.targets[I]
        factor = self.kernel.centered_factor(x, source.center)
        field = self._factored_field(source, x)
        C[I] += field * _expand(factor, field.ndim)

    def _grid(self, box: Box) -> ConeGrid:
        grid = self._grids.get(box.index)
        if grid is None:
            ds = self._size_for(box)
            if self.config.tolerance is not None:
                ds = self._refine_cone_size(box, ds)
            grid = ConeGrid(self.smax, ds)
            self._grids[box.index] = grid
        return grid

    def _refine_cone_size(self, box: Box, ds: ConeDomainSpec) -> ConeDomainSpec:
        """
        Halve the cone size along axes whose error estimate exceeds the tolerance.

        The probe patch is the one closest to the box (largest s) in the middle
        of the angular range.
        """
        tol = self.config.tolerance
        for _ in range(self.config.max_refinements):
            grid = ConeGrid(self.smax, ds)
            key = (grid.shape[0] - 1,) + tuple(n // 2 for n in grid.shape[1:])
            low, extents = grid.patch_bounds(key)
            probe = ChebyshevInterpolant(lambda nodes: self._sample(box, nodes),
                                         low, extents, self.config.orders)
            errors = probe.error_estimates()
            if all(e <= tol for e in errors):
                break
            ds = tuple(d / 2 if e > tol else d for d, e in zip(ds, errors))
            logger.debug("Refined cone size of box %d to %s (errors %s)",
                         box.index, ds, errors)
        return ds

    def _interpolant(self, box: Box, key: Tuple[int, ...]) -> ChebyshevInterpolant:
        interp = self._interpolants.get((box.index, key))
        if interp is None:
            low, extents = self._grid(box).patch_bounds(key)
            interp = ChebyshevInterpolant(lambda nodes: self._sample(box, nodes),
                                          low, extents, self.config.orders)
            self._interpolants[(box.index, key)] = interp
        return interp

    def _factored_field(self, box: Box, x: np.ndarray) -> np.ndarray:
        """Interpolated F_Y at Cartesian points lying in the cone range of ``box``."""
        cone = cartesian_to_cone(x, box.center, box.radius)
        field = np.zeros((len(x),) + self._sigma.shape[1:], dtype=self._dtype)
        for key, pos in self._grid(box).group(cone).items():
            field[pos] = self._interpolant(box, key).evaluate(cone[pos])
        return field

    def _direct_factored_field(self, box: Box, x: np.ndarray) -> np.ndarray:
        """F_Y at Cartesian points by direct summation over the points of ``box``."""
        field = np.zeros((len(x),) + self._sigma.shape[1:], dtype=self._dtype)
        near_interaction(field, self.kernel, x, self.sources, self._sigma,
                         np.arange(len(x)), box.point_indices)
        factor = self.kernel.centered_factor(x, box.center)
        return field / _expand(factor, field.ndim)

    def _sample(self, box: Box, cone_nodes: np.ndarray) -> np.ndarray:
        """Values of F_Y at interpolation nodes given in cone coordinates."""
        x = cone_to_cartesian(cone_nodes, box.center, box.radius)
        if box.is_leaf:
            return self._direct_factored_field(box, x)

        field = np.zeros((len(x),) + self._sigma.shape[1:], dtype=self._dtype)
        for child in self.source_tree.children_of(box):
            s = cartesian_to_cone(x, child.center, child.radius)[:, 0]
            inside = s <= self.smax
            if np.any(inside):
                xin = x[inside]
                child_field = self._factored_field(child, xin)
                factor = transfer_factor(self.kernel, xin, child)
                field[inside] += child_field * _expand(factor, child_field.ndim)
            if not np.all(inside):
                xout = x[~inside]
                contribution = np.zeros((len(xout),) + self._sigma.shape[1:], dtype=self._dtype)
                near_interaction(contribution, self.kernel, xout, self.sources, self._sigma,
                                 np.arange(len(xout)), child.point_indices)
                factor = self.kernel.centered_factor(xout, box.center)
                field[~inside] += contribution / _expand(factor, contribution.ndim)
        return field

    def direct_compute(self, sigma: np.ndarray) -> np.ndarray:
        """Compute C = K σ directly (O(m n)) for validation."""
        sigma = np.asarray(sigma)
        dtype = np.result_type(self.kernel.output_type.dtype, sigma.dtype)
        C = np.zeros((len(self.targets),) + sigma.shape[1:], dtype=dtype)
        return near_interaction(C, self.kernel, self.targets, self.sources, sigma,
                                np.arange(len(self.targets)), np.arange(len(self.sources)))

    def get_error_estimate(self, result: np.ndarray,
                           reference: Optional[np.ndarray] = None,
                           sigma: Optional[np.ndarray] = None) -> Dict[str, float]:
        """
        Error metrics of ``result`` against a reference.

        Args:
            result: Output of ``compute``
            reference: Reference values (computed directly from ``sigma`` if omitted)
            sigma: Densities used for the direct reference

        Returns:
            Dictionary with error metrics
        """
        if reference is None:
            if sigma is None:
                sigma = self._sigma
            if sigma is None:
                raise ValueError("No density available: pass sigma or reference, or call compute first")
            reference = self.direct_compute(sigma)

        abs_error = np.abs(result - reference)
        rel_error = abs_error / (np.abs(reference) + 1e-14)

        return {
            'max_absolute_error': float(np.max(abs_error)),
            'mean_absolute_error': float(np.mean(abs_error)),
            'max_relative_error': float(np.max(rel_error)),
            'mean_relative_error': float(np.mean(rel_error)),
            'l2_error': float(np.linalg.norm(result - reference) / np.linalg.norm(reference)),
        }

    def get_statistics(self) -> Dict[str, int]:
        """Counts of interactions and interpolants."""
        return {
            'num_far_pairs': sum(len(v) for v in self.far_lists.values()),
            'num_near_pairs': sum(len(v) for v in self.near_lists.values()),
            'num_interpolants': len(self._interpolants),
            'num_target_leaves': len(self.target_tree.leaves),
            'num_source_boxes': len(self.source_tree.boxes),
        }


def _expand(factor: np.ndarray, ndim: int) -> np.ndarray:
    """Append singleton axes so a per-point factor broadcasts over value axes."""
    return np.reshape(factor, np.shape(factor) + (1,) * (ndim - 1))
