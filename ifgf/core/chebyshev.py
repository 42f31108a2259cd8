"""
Chebyshev Interpolation Module

Tensor-product Chebyshev interpolation of factored kernel functions over
cone domains, together with the per-axis error estimate used to refine
domain sizes and orders.
"""

from typing import Callable, Sequence, Tuple
import numpy as np
from numpy.polynomial.chebyshev import chebvander
from scipy.fft import dct


def chebyshev_nodes(order: int) -> np.ndarray:
    """
    Chebyshev points of the first kind on [-1, 1].

    cos((2k-1)π/(2n)) for k = 1,...,n
    """
    if order <= 0:
        raise ValueError("Order must be positive")
    k = np.arange(1, order + 1)
    return np.cos((2 * k - 1) * np.pi / (2 * order))


def chebyshev_coefficients(values: np.ndarray, ndim: int) -> np.ndarray:
    """
    Chebyshev coefficients from samples on the tensor grid of first-kind nodes.

    Args:
        values: Samples of shape (p_1, ..., p_ndim, *value_shape)
        ndim: Number of leading spatial axes

    Returns:
        Coefficient array with the same shape as ``values``
    """
    values = np.asarray(values)
    if np.iscomplexobj(values):
        return (chebyshev_coefficients(values.real, ndim)
                + 1j * chebyshev_coefficients(values.imag, ndim))

    coefs = values.astype(np.float64)
    for axis in range(ndim):
        n = coefs.shape[axis]
        coefs = dct(coefs, type=2, axis=axis) / n
        first = [slice(None)] * coefs.ndim
        first[axis] = 0
        coefs[tuple(first)] *= 0.5
    return coefs


def chebyshev_evaluate(coefs: np.ndarray, points: np.ndarray, ndim: int) -> np.ndarray:
    """
    Evaluate a tensor-product Chebyshev series at reference points.

    Args:
        coefs: Coefficients of shape (p_1, ..., p_ndim, *value_shape)
        points: Points in [-1, 1]^ndim, shape (M, ndim)
        ndim: Number of leading spatial axes of ``coefs``

    Returns:
        Values of shape (M, *value_shape)
    """
    points = np.clip(np.atleast_2d(points), -1.0, 1.0)

    V = chebvander(points[:, 0], coefs.shape[0] - 1)
    result = np.tensordot(V, coefs, axes=(1, 0))
    # Contract the remaining spatial axes pointwise
    for d in range(1, ndim):
        V = chebvander(points[:, d], coefs.shape[d] - 1)
        result = np.einsum('mi,mi...->m...', V, result)
    return result


def cheb_error_estimate(coefs: np.ndarray, axis: int) -> float:
    """
    Relative error of a Chebyshev interpolant along ``axis``.

    Ratio of the 2-norm of the last coefficient slice along ``axis`` to the
    2-norm of the whole array. A one-wide axis gives 1.0 (no decay can be
    observed); an all-zero array gives 0.0.
    """
    coefs = np.asarray(coefs)
    if coefs.shape[axis] == 1:
        return 1.0
    total = np.linalg.norm(coefs.ravel())
    if total == 0:
        return 0.0
    last = np.take(coefs, [coefs.shape[axis] - 1], axis=axis)
    return float(np.linalg.norm(last.ravel()) / total)


class ChebyshevInterpolant:
    """
    Tensor-product Chebyshev interpolant over an axis-aligned domain.

    The domain is ``[lower, lower + extents]``; ``extents`` is typically the
    ConeDomainSpec of a source box. Vector or tensor valued functions are
    interpolated componentwise; their components occupy the trailing axes
    of the coefficient array.
    """

    def __init__(self, func: Callable[[np.ndarray], np.ndarray],
                 lower: Sequence[float], extents: Sequence[float],
                 orders: Sequence[int]):
        """
        Build the interpolant.

        Args:
            func: Function mapping points of shape (M, N) to values of shape (M, ...)
            lower: Lower corner of the domain
            extents: Per-axis extent of the domain
            orders: Number of Chebyshev points per axis
        """
        self.lower = np.asarray(lower, dtype=np.float64)
        self.extents = np.asarray(extents, dtype=np.float64)
        self.order = tuple(int(p) for p in orders)
        self.dimension = len(self.order)

        if self.lower.shape != (self.dimension,) or self.extents.shape != (self.dimension,):
            raise ValueError("Domain and orders must have the same dimension")
        if np.any(self.extents <= 0):
            raise ValueError("Domain extents must be positive")

        self.nodes = self.node_points(self.lower, self.extents, self.order)
        self.num_nodes = len(self.nodes)

        values = np.asarray(func(self.nodes))
        self.value_shape: Tuple[int, ...] = values.shape[1:]
        values = values.reshape(self.order + self.value_shape)
        self.coefficients = chebyshev_coefficients(values, self.dimension)

    @staticmethod
    def node_points(lower: np.ndarray, extents: np.ndarray,
                    orders: Tuple[int, ...]) -> np.ndarray:
        """Tensor grid of Chebyshev nodes mapped to the domain, shape (M, N)."""
        axes = [
            lower[d] + 0.5 * (chebyshev_nodes(p) + 1.0) * extents[d]
            for d, p in enumerate(orders)
        ]
        grid = np.meshgrid(*axes, indexing='ij')
        return np.column_stack([g.ravel() for g in grid])

    def to_reference(self, points: np.ndarray) -> np.ndarray:
        """Map physical points to [-1, 1]^N."""
        return 2.0 * (np.atleast_2d(points) - self.lower) / self.extents - 1.0

    def evaluate(self, points: np.ndarray) -> np.ndarray:
        """Evaluate the interpolant at points of shape (M, N)."""
        return chebyshev_evaluate(self.coefficients, self.to_reference(points),
                                  self.dimension)

    __call__ = evaluate

    def error_estimate(self, axis: int) -> float:
        """Relative truncation error estimate along ``axis``."""
        return cheb_error_estimate(self.coefficients, axis)

    def error_estimates(self) -> Tuple[float, ...]:
        """Error estimates along every axis."""
        return tuple(self.error_estimate(d) for d in range(self.dimension))
