"""
IFGF Kernels Module

Green's function kernels together with the information IFGF needs about
them: wavenumber, output and density types, the centered factor removed
before interpolation, the transfer factor and a batched near-field
evaluator.
"""

import numbers
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ifgf.core.near_field import (
    DEFAULT_BLOCK_SIZE,
    INV_4PI,
    laplace3d_sl,
    helmholtz3d_sl,
    maxwell3d_sl,
    pointwise_sl,
    scatter_add,
)
from ifgf.core.transfer import transfer_factor


class UnrecognizedKernelTypeError(ValueError):
    """Raised when no density type can be inferred for a kernel output type."""


@dataclass(frozen=True)
class ValueType:
    """
    Algebraic type of a kernel value or a density.

    Attributes:
        dtype: Underlying numeric field
        shape: () for scalars, (n,) for vectors, (n, n) for square tensors
    """
    dtype: np.dtype
    shape: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'dtype', np.dtype(self.dtype))
        object.__setattr__(self, 'shape', tuple(int(n) for n in self.shape))

    @property
    def is_scalar(self) -> bool:
        return self.shape == ()


def density_type_from_kernel_type(T):
    """
    Density type compatible with a kernel output type ``T``.

    Scalar types are returned unchanged. An (n, n) tensor type maps to a
    length-n vector over the same field, so that multiplying a kernel value
    by a density is well defined.

    Raises:
        UnrecognizedKernelTypeError: For any other type
    """
    if isinstance(T, ValueType):
        if T.is_scalar:
            return T
        if len(T.shape) == 2 and T.shape[0] == T.shape[1]:
            return ValueType(T.dtype, (T.shape[1],))
    elif isinstance(T, np.dtype):
        if T.kind in 'biufc':
            return T
    elif isinstance(T, type) and issubclass(T, (numbers.Number, np.number)):
        return T
    raise UnrecognizedKernelTypeError(f"kernel type {T} not recognized")


class Kernel(ABC):
    """
    Abstract base class for IFGF kernels.

    Subclasses implement ``evaluate`` and ``wavenumber``; the default
    ``centered_factor`` is the 3D Helmholtz Green's function (Laplace for
    k = 0) and the default near-field path falls back to pointwise
    evaluation.
    """

    dimension: int = 3
    output_type: ValueType = ValueType(np.float64)
    block_size: int = DEFAULT_BLOCK_SIZE

    @abstractmethod
    def evaluate(self, x: np.ndarray, y: np.ndarray):
        """
        Evaluate kernel K(x, y).

        Must return zero (of the output shape) when x == y.

        Args:
            x: Target point coordinates
            y: Source point coordinates

        Returns:
            Kernel value
        """
        pass

    @abstractmethod
    def wavenumber(self) -> float:
        """Characteristic wavenumber, 0 for non-oscillatory kernels."""
        pass

    def __call__(self, x: np.ndarray, y: np.ndarray):
        return self.evaluate(x, y)

    @property
    def density_type(self):
        return density_type_from_kernel_type(self.output_type)

    def centered_factor(self, x: np.ndarray, center: np.ndarray) -> np.ndarray:
        """
        Reference factor G(x, c) divided out before interpolation.

        exp(ik|x-c|) / (4π|x-c|), evaluated for a point or a batch of points.
        """
        r = np.linalg.norm(np.asarray(x, dtype=np.float64) - center, axis=-1)
        k = self.wavenumber()
        if k == 0:
            return INV_4PI / r
        return np.exp(1j * k * r) * INV_4PI / r

    def transfer_factor(self, x: np.ndarray, box) -> np.ndarray:
        """Transfer factor from ``box`` to its parent at points ``x``."""
        return transfer_factor(self, x, box)

    def near_interaction(self, C: np.ndarray, X: np.ndarray, Y: np.ndarray,
                         sigma: np.ndarray, I, J) -> np.ndarray:
        """Accumulate C[I] += Σ_{j∈J} K(X[I], Y[j]) σ[j]."""
        return scatter_add(C, X, Y, sigma, I, J, self._near_field)

    def _near_field(self, C, X, Y, sigma):
        return pointwise_sl(C, self, X, Y, sigma)


class LaplaceKernel(Kernel):
    """
    Laplace kernel (Green's function for Laplace equation).

    G(x, y) = 1/(4*pi*|x - y|)
    """

    output_type = ValueType(np.float64)

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> float:
        """Evaluate Laplace kernel."""
        r = np.linalg.norm(np.asarray(x, dtype=np.float64) - np.asarray(y, dtype=np.float64))
        if r == 0:
            return 0.0  # Self-interaction
        return INV_4PI / r

    def wavenumber(self) -> float:
        return 0.0

    def _near_field(self, C, X, Y, sigma):
        return laplace3d_sl(C, X, Y, sigma, self.block_size)

    def __repr__(self) -> str:
        return "LaplaceKernel()"


class HelmholtzKernel(Kernel):
    """
    Helmholtz kernel (Green's function for Helmholtz equation).

    G(x, y) = exp(i*k*|x-y|)/(4*pi*|x-y|)
    """

    output_type = ValueType(np.complex128)

    def __init__(self, wavenumber: float):
        """
        Initialize Helmholtz kernel.

        Args:
            wavenumber: Wavenumber k
        """
        if wavenumber < 0:
            raise ValueError("Wavenumber must be non-negative")
        self.k = float(wavenumber)

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> complex:
        """Evaluate Helmholtz kernel (full complex value)."""
        r = np.linalg.norm(np.asarray(x, dtype=np.float64) - np.asarray(y, dtype=np.float64))
        if r == 0:
            return 0j  # Self-interaction
        kr = self.k * r
        return (np.cos(kr) + 1j * np.sin(kr)) * INV_4PI / r

    def wavenumber(self) -> float:
        return self.k

    def _near_field(self, C, X, Y, sigma):
        return helmholtz3d_sl(C, X, Y, sigma, self.k, self.block_size)

    def __repr__(self) -> str:
        return f"HelmholtzKernel(k={self.k})"


class MaxwellKernel(Kernel):
    """
    Maxwell kernel (dyadic Green's function of the time-harmonic Maxwell equations).

    G(x, y) = g I + (g'/r I + (g''/r² - g'/r³) r rᵀ) / k²

    where g is the Helmholtz Green's function and r = x - y. Densities are
    complex 3-vectors.
    """

    output_type = ValueType(np.complex128, (3, 3))

    def __init__(self, wavenumber: float):
        """
        Initialize Maxwell kernel.

        Args:
            wavenumber: Wavenumber k (must be positive)
        """
        if wavenumber <= 0:
            raise ValueError("Maxwell kernel requires a positive wavenumber")
        self.k = float(wavenumber)

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Evaluate the 3x3 dyadic Green's function."""
        rvec = np.asarray(x, dtype=np.float64) - np.asarray(y, dtype=np.float64)
        d = np.linalg.norm(rvec)
        if d == 0:
            return np.zeros((3, 3), dtype=np.complex128)  # Self-interaction
        k = self.k
        g = np.exp(1j * k * d) * INV_4PI / d
        gp = 1j * k * g - g / d
        gpp = 1j * k * gp - gp / d + g / d ** 2
        RRT = np.outer(rvec, rvec)
        return g * np.eye(3) + (gp / d * np.eye(3) + (gpp / d ** 2 - gp / d ** 3) * RRT) / k ** 2

    def wavenumber(self) -> float:
        return self.k

    def _near_field(self, C, X, Y, sigma):
        return maxwell3d_sl(C, X, Y, sigma, self.k, self.block_size)

    def __repr__(self) -> str:
        return f"MaxwellKernel(k={self.k})"


def create_kernel(name: str, **kwargs) -> Kernel:
    """
    Factory function to create kernel instances.

    Args:
        name: Kernel type name ('laplace', 'helmholtz', 'maxwell')
        **kwargs: Kernel-specific parameters

    Returns:
        Kernel instance
    """
    name = name.lower()

    if name == 'laplace':
        return LaplaceKernel()
    elif name == 'helmholtz':
        wavenumber = kwargs.get('wavenumber', 1.0)
        return HelmholtzKernel(wavenumber)
    elif name == 'maxwell':
        wavenumber = kwargs.get('wavenumber', 1.0)
        return MaxwellKernel(wavenumber)
    else:
        raise ValueError(f"Unknown kernel type: {name}")


__all__ = [
    'ValueType',
    'UnrecognizedKernelTypeError',
    'density_type_from_kernel_type',
    'Kernel',
    'LaplaceKernel',
    'HelmholtzKernel',
    'MaxwellKernel',
    'create_kernel',
]
