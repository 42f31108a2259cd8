"""
Cone Domain Module

Sizing of the interpolation domains attached to source boxes, and the cone
coordinates in which the factored kernel is interpolated.

Relative to a source box with center c and radius h, a point x is described
by s = h / |x - c| (in 3D together with the polar and azimuthal angles of
x - c, in 2D with the azimuth only). Admissible targets satisfy s < 1/eta,
and in these coordinates the factored kernel is smooth.
"""

from typing import Callable, Dict, Tuple, Union
import numpy as np

from .box import Box

ConeDomainSpec = Tuple[float, ...]


def cone_domain_size_func(k: float,
                          ds: Union[float, Tuple[float, ...]]) -> Callable[[Box], ConeDomainSpec]:
    """
    Build a function ``box -> ds`` giving the size of the interpolation domain
    of ``box``.

    For k == 0 the base size ``ds`` is returned unchanged. For oscillatory
    kernels it is divided by ``max(k*w/2, 1)``, where ``w`` is the largest
    side of the box, so that boxes spanning many wavelengths get
    proportionally smaller cone domains.

    Args:
        k: Wavenumber (0 for non-oscillatory kernels)
        ds: Base size, either a scalar applied to every axis or a tuple

    Returns:
        Function mapping a box to a tuple of per-axis extents
    """
    scalar = np.ndim(ds) == 0
    if not scalar:
        ds = tuple(float(d) for d in ds)

    def base(box: Box) -> np.ndarray:
        if scalar:
            return np.full(box.ambient_dimension, float(ds))
        return np.asarray(ds, dtype=np.float64)

    if k == 0:
        def size_for(box: Box) -> ConeDomainSpec:
            return tuple(base(box))
    else:
        # oscillatory case (e.g. Helmholtz, Maxwell)
        def size_for(box: Box) -> ConeDomainSpec:
            w = np.max(box.high_corner - box.low_corner)
            delta = max(k * w / 2, 1.0)
            return tuple(base(box) / delta)

    return size_for


def cartesian_to_cone(points: np.ndarray, center: np.ndarray, h: float) -> np.ndarray:
    """
    Map Cartesian points to cone coordinates around ``center``.

    Returns (s, theta, phi) in 3D and (s, phi) in 2D, one row per point.
    """
    points = np.atleast_2d(points)
    rel = points - center
    r = np.linalg.norm(rel, axis=1)
    s = h / r
    phi = np.arctan2(rel[:, 1], rel[:, 0])
    if points.shape[1] == 2:
        return np.column_stack([s, phi])
    if points.shape[1] != 3:
        raise ValueError("Cone coordinates are only defined in 2D and 3D")
    theta = np.arccos(np.clip(rel[:, 2] / r, -1.0, 1.0))
    return np.column_stack([s, theta, phi])


def cone_to_cartesian(cone_points: np.ndarray, center: np.ndarray, h: float) -> np.ndarray:
    """Inverse of :func:`cartesian_to_cone`."""
    cone_points = np.atleast_2d(cone_points)
    r = h / cone_points[:, 0]
    if cone_points.shape[1] == 2:
        phi = cone_points[:, 1]
        rel = np.column_stack([np.cos(phi), np.sin(phi)])
    else:
        theta, phi = cone_points[:, 1], cone_points[:, 2]
        rel = np.column_stack([
            np.sin(theta) * np.cos(phi),
            np.sin(theta) * np.sin(phi),
            np.cos(theta),
        ])
    return center + r[:, None] * rel


class ConeGrid:
    """
    Uniform partition of the cone-coordinate box into patches.

    The patch widths never exceed the requested ``ConeDomainSpec``; each
    patch carries its own interpolant.
    """

    def __init__(self, smax: float, ds: ConeDomainSpec, dimension: int = 3):
        """
        Args:
            smax: Largest radial coordinate to cover (1/eta for admissible targets)
            ds: Maximal patch extents, one per cone coordinate
            dimension: Ambient dimension (2 or 3)
        """
        if dimension not in [2, 3]:
            raise ValueError("Dimension must be 2 or 3")
        if len(ds) != dimension:
            raise ValueError("Cone domain size must have one extent per axis")
        if any(d <= 0 for d in ds):
            raise ValueError("Cone domain extents must be positive")

        if dimension == 3:
            self.lower = np.array([0.0, 0.0, -np.pi])
            self.upper = np.array([smax, np.pi, np.pi])
        else:
            self.lower = np.array([0.0, -np.pi])
            self.upper = np.array([smax, np.pi])

        lengths = self.upper - self.lower
        self.shape = tuple(
            max(1, int(np.ceil(length / d - 1e-12)))
            for length, d in zip(lengths, ds)
        )
        self.widths = lengths / np.array(self.shape)

    @property
    def num_patches(self) -> int:
        return int(np.prod(self.shape))

    def patch_index(self, cone_points: np.ndarray) -> np.ndarray:
        """Integer patch coordinates of each cone point, shape (M, N)."""
        idx = np.floor((cone_points - self.lower) / self.widths).astype(np.intp)
        return np.clip(idx, 0, np.array(self.shape) - 1)

    def group(self, cone_points: np.ndarray) -> Dict[Tuple[int, ...], np.ndarray]:
        """Group point positions by the patch they fall in."""
        idx = self.patch_index(cone_points)
        keys, inverse = np.unique(idx, axis=0, return_inverse=True)
        inverse = np.asarray(inverse).ravel()
        return {tuple(int(v) for v in key): np.flatnonzero(inverse == n)
                for n, key in enumerate(keys)}

    def patch_bounds(self, key: Tuple[int, ...]) -> Tuple[np.ndarray, ConeDomainSpec]:
        """Lower corner and extents of a patch."""
        low = self.lower + np.asarray(key) * self.widths
        return low, tuple(self.widths)
