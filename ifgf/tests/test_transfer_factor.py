"""
Tests for the Transfer Factor

Tests the closed form of the transfer factor and that an interpolant of the
factored kernel built around a child box, once transferred, represents the
factored kernel around the parent box.
"""

import pytest
import numpy as np
from ifgf.core.tree import BoxTree, TreeConfig
from ifgf.core.transfer import transfer_factor
from ifgf.core.cone import cartesian_to_cone, cone_to_cartesian
from ifgf.core.chebyshev import ChebyshevInterpolant
from ifgf.core.near_field import near_interaction
from ifgf.kernels import LaplaceKernel, HelmholtzKernel


def factored_field(kernel, x, sources, sigma, J, center):
    """Σ_j K(x, y_j) σ_j / G(x, center) by direct summation."""
    C = np.zeros(len(x), dtype=np.complex128)
    near_interaction(C, kernel, x, sources, sigma, np.arange(len(x)), J)
    return C / kernel.centered_factor(x, center)


class TestTransferFactor:
    """Test suite for the transfer factor."""

    @pytest.fixture
    def tree(self):
        """Box tree over random points in the unit cube."""
        np.random.seed(42)
        return BoxTree(np.random.rand(400, 3), TreeConfig(ncrit=60))

    @pytest.fixture
    def child(self, tree):
        """A non-root box with points."""
        return max(tree.get_cells_at_level(1), key=lambda box: box.num_points)

    @pytest.fixture
    def targets(self, child):
        """Cluster of far target points."""
        np.random.seed(11)
        direction = np.array([0.6, -0.48, 0.64])
        return child.center + 3.0 * direction + 0.1 * np.random.rand(20, 3)

    def test_closed_form(self, child, targets):
        """exp(ik(d - dp)) dp / d."""
        k = 5.0
        yc = child.center
        yp = child.parent.center
        d = np.linalg.norm(targets - yc, axis=1)
        dp = np.linalg.norm(targets - yp, axis=1)

        factor = transfer_factor(HelmholtzKernel(k), targets, child)

        assert factor.shape == (len(targets),)
        assert np.allclose(factor, np.exp(1j * k * (d - dp)) * dp / d)

    def test_ratio_of_centered_factors(self, child, targets):
        """The factor converts the child's centered factor into the parent's."""
        kernel = HelmholtzKernel(3.0)
        factor = kernel.transfer_factor(targets, child)
        ratio = (kernel.centered_factor(targets, child.center)
                 / kernel.centered_factor(targets, child.parent.center))
        assert np.allclose(factor, ratio)

    def test_laplace_has_no_phase(self, child, targets):
        """For k = 0 the factor is the real ratio dp / d."""
        factor = LaplaceKernel().transfer_factor(targets, child)
        d = np.linalg.norm(targets - child.center, axis=1)
        dp = np.linalg.norm(targets - child.parent.center, axis=1)

        assert np.isrealobj(factor)
        assert np.allclose(factor, dp / d)

    def test_single_point(self, child, targets):
        """A single point gives a scalar factor."""
        factor = HelmholtzKernel(2.0).transfer_factor(targets[0], child)
        assert np.ndim(factor) == 0

    def test_root_has_no_parent(self, tree, targets):
        """The root cannot transfer to a parent."""
        with pytest.raises(ValueError):
            LaplaceKernel().transfer_factor(targets, tree.root)

    @pytest.mark.parametrize("kernel", [LaplaceKernel(), HelmholtzKernel(5.0)])
    def test_interpolate_then_transfer(self, tree, child, targets, kernel):
        """Child interpolant times transfer factor equals the parent's factored field."""
        np.random.seed(2)
        sigma = np.random.randn(len(tree.points)) + 1j * np.random.randn(len(tree.points))
        J = child.point_indices
        h = child.radius

        cone = cartesian_to_cone(targets, child.center, h)
        lower = cone.min(axis=0) - 1e-3
        extents = cone.max(axis=0) - cone.min(axis=0) + 2e-3

        def func(nodes):
            x = cone_to_cartesian(nodes, child.center, h)
            return factored_field(kernel, x, tree.points, sigma, J, child.center)

        interp = ChebyshevInterpolant(func, lower, extents, (6, 6, 6))
        transferred = interp.evaluate(cone) * kernel.transfer_factor(targets, child)

        expected = factored_field(kernel, targets, tree.points, sigma, J, child.parent.center)
        assert np.allclose(transferred, expected, rtol=1e-6, atol=0)
