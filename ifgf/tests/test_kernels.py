"""
Tests for Kernel Abstraction

Tests pointwise evaluation, wavenumbers and density type inference.
"""

import pytest
import numpy as np
from ifgf.kernels import (
    ValueType,
    UnrecognizedKernelTypeError,
    density_type_from_kernel_type,
    LaplaceKernel,
    HelmholtzKernel,
    MaxwellKernel,
    create_kernel,
)


class TestDensityType:
    """Test suite for density type inference."""

    def test_tensor_kernel_type(self):
        """A 3x3 tensor kernel needs a length-3 vector density."""
        T = ValueType(np.complex128, (3, 3))
        V = density_type_from_kernel_type(T)

        assert V == ValueType(np.complex128, (3,))
        assert V.dtype == np.dtype(np.complex128)

    def test_scalar_kernel_type(self):
        """Scalar kernel types map to themselves."""
        T = ValueType(np.float64)
        assert density_type_from_kernel_type(T) is T
        assert density_type_from_kernel_type(np.float64) is np.float64
        assert density_type_from_kernel_type(complex) is complex
        assert density_type_from_kernel_type(np.dtype(np.complex128)) == np.dtype(np.complex128)

    @pytest.mark.parametrize("T", [
        ValueType(np.float64, (3, 2)),
        ValueType(np.float64, (3,)),
        ValueType(np.float64, (2, 2, 2)),
        str,
        "laplace",
        np.dtype('U3'),
    ])
    def test_unrecognized_types(self, T):
        """Anything but scalars and square tensors is rejected."""
        with pytest.raises(UnrecognizedKernelTypeError):
            density_type_from_kernel_type(T)

    def test_error_is_value_error(self):
        """Unrecognized types surface as ValueError to callers."""
        with pytest.raises(ValueError):
            density_type_from_kernel_type(ValueType(np.float64, (4, 1)))

    def test_kernel_density_types(self):
        """Kernels infer their density type from their output type."""
        assert LaplaceKernel().density_type == ValueType(np.float64)
        assert HelmholtzKernel(1.0).density_type == ValueType(np.complex128)
        assert MaxwellKernel(1.0).density_type == ValueType(np.complex128, (3,))


class TestKernels:
    """Test suite for pointwise kernel evaluation."""

    @pytest.fixture
    def points(self):
        """Two distinct points."""
        return np.array([0.1, 0.2, 0.3]), np.array([0.7, -0.4, 1.1])

    def test_self_interaction_is_zero(self, points):
        """Coincident points give a zero of the output shape."""
        x, _ = points

        assert LaplaceKernel().evaluate(x, x) == 0.0
        assert HelmholtzKernel(3.0).evaluate(x, x) == 0.0

        G = MaxwellKernel(3.0).evaluate(x, x)
        assert G.shape == (3, 3)
        assert np.all(G == 0)

    def test_laplace_value(self, points):
        """Test Laplace kernel value."""
        x, y = points
        r = np.linalg.norm(x - y)
        assert np.isclose(LaplaceKernel()(x, y), 1.0 / (4 * np.pi * r))

    def test_helmholtz_value(self, points):
        """Test Helmholtz kernel value."""
        x, y = points
        k = 2.5
        r = np.linalg.norm(x - y)
        expected = np.exp(1j * k * r) / (4 * np.pi * r)
        assert np.isclose(HelmholtzKernel(k)(x, y), expected)

    def test_helmholtz_zero_wavenumber(self, points):
        """Helmholtz with k = 0 reduces to Laplace."""
        x, y = points
        assert np.isclose(HelmholtzKernel(0.0)(x, y), LaplaceKernel()(x, y))

    def test_maxwell_symmetric(self, points):
        """The dyadic Green's function is symmetric and reciprocal."""
        x, y = points
        K = MaxwellKernel(2.0)
        G = K(x, y)

        assert G.shape == (3, 3)
        assert np.allclose(G, G.T)
        assert np.allclose(G, K(y, x))

    def test_wavenumbers(self):
        """Non-oscillatory kernels have zero wavenumber."""
        assert LaplaceKernel().wavenumber() == 0
        assert HelmholtzKernel(4.0).wavenumber() == 4.0
        assert MaxwellKernel(1.5).wavenumber() == 1.5

    def test_centered_factor(self, points):
        """The centered factor is the Helmholtz Green's function at the center."""
        x, c = points
        K = HelmholtzKernel(3.0)
        assert np.isclose(K.centered_factor(x, c), K(x, c))

        batch = np.array([x, x + 1.0])
        assert K.centered_factor(batch, c).shape == (2,)

    def test_invalid_wavenumbers(self):
        """Test parameter validation."""
        with pytest.raises(ValueError):
            HelmholtzKernel(-1.0)
        with pytest.raises(ValueError):
            MaxwellKernel(0.0)

    def test_create_kernel(self):
        """Test kernel factory."""
        assert isinstance(create_kernel('laplace'), LaplaceKernel)
        assert create_kernel('Helmholtz', wavenumber=2.0).wavenumber() == 2.0
        assert isinstance(create_kernel('maxwell', wavenumber=1.0), MaxwellKernel)

        with pytest.raises(ValueError):
            create_kernel('yukawa')
