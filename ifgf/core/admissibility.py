"""
Admissibility Module

Decides whether a (target box, source box) pair may be treated in the far
field through interpolation.
"""

from typing import Optional
import numpy as np

from .box import Box, distance


def default_eta(dimension: int) -> float:
    """Default admissibility parameter, N / sqrt(N)."""
    return dimension / np.sqrt(dimension)


def is_admissible(target: Box, source: Box, eta: Optional[float] = None) -> bool:
    """
    Modified admissibility condition.

    The pair is admissible if the target box lies farther than ``eta * h``
    from the source center, where ``h`` is the radius of the source box.
    Larger ``eta`` sends more interactions to the near field.

    Args:
        target: Target box
        source: Source box
        eta: Admissibility parameter (default: N / sqrt(N))

    Returns:
        True if the interaction may use the source box interpolant
    """
    if eta is None:
        eta = default_eta(target.ambient_dimension)
    xc = source.center
    h = source.radius
    dc = distance(xc, target)
    return dc > eta * h
