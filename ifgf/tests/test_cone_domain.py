"""
Tests for Cone Domains

Tests the wavenumber-dependent sizing of interpolation domains, cone
coordinates and the patch grid.
"""

import pytest
import numpy as np
from ifgf.core.box import Box
from ifgf.core.cone import (
    ConeGrid,
    cone_domain_size_func,
    cartesian_to_cone,
    cone_to_cartesian,
)


def cube(width, dimension=3, origin=0.0):
    """Axis-aligned cube of a given width."""
    low = np.full(dimension, origin)
    return Box(low_corner=low, high_corner=low + width)


class TestConeDomainSize:
    """Test suite for cone domain sizing."""

    @pytest.mark.parametrize("width", [1e-3, 0.5, 1.0, 100.0])
    def test_non_oscillatory_scalar(self, width):
        """For k = 0 a scalar size is broadcast, independent of the box."""
        size_for = cone_domain_size_func(0, 0.7)
        assert size_for(cube(width)) == (0.7, 0.7, 0.7)
        assert size_for(cube(width, dimension=2)) == (0.7, 0.7)

    def test_non_oscillatory_tuple(self):
        """For k = 0 a tuple size is returned unchanged."""
        ds = (1.0, np.pi / 2, np.pi / 4)
        size_for = cone_domain_size_func(0, ds)

        for width in [0.01, 1.0, 50.0]:
            assert size_for(cube(width)) == ds

    def test_oscillatory_value(self):
        """delta = max(k*w/2, 1) divides the base size."""
        ds = (1.0, 2.0, 4.0)
        size_for = cone_domain_size_func(4.0, ds)

        assert np.allclose(size_for(cube(2.0)), (0.25, 0.5, 1.0))
        # Sub-wavelength boxes keep the base size
        assert np.allclose(size_for(cube(0.1)), ds)

    def test_oscillatory_uses_largest_side(self):
        """The acoustic size uses the largest box side."""
        box = Box(low_corner=[0.0, 0.0, 0.0], high_corner=[2.0, 0.5, 0.5])
        size_for = cone_domain_size_func(4.0, 1.0)
        assert np.allclose(size_for(box), (0.25, 0.25, 0.25))

    def test_oscillatory_monotonic(self):
        """Shrinking the box never increases the extent, which never exceeds ds."""
        ds = (1.0, np.pi / 2, np.pi / 2)
        size_for = cone_domain_size_func(10.0, ds)

        widths = [4.0, 2.0, 1.0, 0.5, 0.25, 0.1, 0.01]
        sizes = np.array([size_for(cube(w)) for w in widths])

        assert np.all(np.diff(sizes, axis=0) >= 0)
        assert np.all(sizes <= np.array(ds))

    def test_pure(self):
        """Repeated calls give identical results."""
        size_for = cone_domain_size_func(3.0, 0.5)
        box = cube(1.7)
        assert size_for(box) == size_for(box)


class TestConeCoordinates:
    """Test suite for cone coordinates and the patch grid."""

    @pytest.fixture
    def points(self):
        """Random points around a center."""
        np.random.seed(7)
        return np.random.randn(50, 3) * 3.0

    def test_coordinate_ranges(self, points):
        """s = h/r, theta in [0, pi], phi in [-pi, pi]."""
        center = np.array([0.1, -0.2, 0.3])
        cone = cartesian_to_cone(points, center, 0.5)

        r = np.linalg.norm(points - center, axis=1)
        assert np.allclose(cone[:, 0], 0.5 / r)
        assert np.all((cone[:, 1] >= 0) & (cone[:, 1] <= np.pi))
        assert np.all((cone[:, 2] >= -np.pi) & (cone[:, 2] <= np.pi))

    def test_inverse(self, points):
        """cone_to_cartesian inverts cartesian_to_cone."""
        center = np.array([1.0, 2.0, 3.0])
        cone = cartesian_to_cone(points, center, 0.8)
        assert np.allclose(cone_to_cartesian(cone, center, 0.8), points)

    def test_grid_shape(self):
        """Patches never exceed the requested extents."""
        smax = 1 / np.sqrt(3)
        grid = ConeGrid(smax, (1.0, np.pi / 2, np.pi / 2))

        assert grid.shape == (1, 2, 4)
        assert grid.num_patches == 8
        assert np.allclose(grid.widths, [smax, np.pi / 2, np.pi / 2])

        grid = ConeGrid(smax, (0.2, 1.0, 1.0))
        assert grid.shape == (3, 4, 7)
        assert np.all(grid.widths <= [0.2, 1.0, 1.0])

    def test_grid_group(self, points):
        """Every point lands in exactly one patch that contains it."""
        cone = cartesian_to_cone(points, np.zeros(3), 0.1)
        grid = ConeGrid(cone[:, 0].max(), (0.01, 0.5, 0.5))
        groups = grid.group(cone)

        positions = np.sort(np.concatenate(list(groups.values())))
        assert np.array_equal(positions, np.arange(len(points)))

        for key, pos in groups.items():
            low, extents = grid.patch_bounds(key)
            assert np.all(cone[pos] >= low - 1e-12)
            assert np.all(cone[pos] <= low + np.array(extents) + 1e-12)

    def test_grid_validation(self):
        """Test parameter validation."""
        with pytest.raises(ValueError):
            ConeGrid(0.5, (1.0, 1.0))
        with pytest.raises(ValueError):
            ConeGrid(0.5, (1.0, 0.0, 1.0))
        with pytest.raises(ValueError):
            ConeGrid(0.5, (1.0, 1.0, 1.0, 1.0), dimension=4)
