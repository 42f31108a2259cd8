"""
Transfer Factor Module

Correction that lets an interpolant of the factored kernel built around a
box center be reused around the center of the parent box.

Given yc = center(Y), yp = center(parent(Y)), d = |x - yc|, dp = |x - yp|:

    T(x) = exp(ik(d - dp)) * dp / d

which removes the extra phase and the 1/d decay difference between the two
centers. For k = 0 the factor is the real ratio dp / d.
"""

import numpy as np

from .box import Box


def phase_decay_ratio(k: float, x: np.ndarray, yc: np.ndarray,
                      yp: np.ndarray) -> np.ndarray:
    """Closed-form transfer factor between the centers ``yc`` and ``yp``."""
    x = np.asarray(x, dtype=np.float64)
    d = np.linalg.norm(x - yc, axis=-1)
    dp = np.linalg.norm(x - yp, axis=-1)
    if k == 0:
        return dp / d
    return np.exp(1j * k * (d - dp)) * dp / d


def transfer_factor(kernel, x: np.ndarray, box: Box) -> np.ndarray:
    """
    Transfer factor of ``kernel`` from ``box`` to its parent at points ``x``.

    Args:
        kernel: Kernel providing ``wavenumber()``
        x: A point of shape (N,) or a batch of shape (M, N)
        box: Box whose interpolant is being reused by its parent

    Returns:
        Scalar (or array of shape (M,)) multiplying the child's factored value
    """
    parent = box.parent
    if parent is None:
        raise ValueError("Transfer factor requires a box with a parent")
    return phase_decay_ratio(kernel.wavenumber(), x, box.center, parent.center)
