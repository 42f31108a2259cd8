"""
IFGF Core Module

This module contains the geometric, interpolation and near-field building
blocks of the Interpolated Factored Green's Function method, and the
driver that combines them.
"""

from .box import Box, ROOT_PARENT, distance
from .tree import BoxTree, TreeConfig
from .admissibility import default_eta, is_admissible
from .cone import (
    ConeDomainSpec,
    ConeGrid,
    cone_domain_size_func,
    cartesian_to_cone,
    cone_to_cartesian,
)
from .chebyshev import (
    ChebyshevInterpolant,
    chebyshev_nodes,
    chebyshev_coefficients,
    chebyshev_evaluate,
    cheb_error_estimate,
)
from .transfer import phase_decay_ratio, transfer_factor
from .near_field import (
    fast_invsqrt,
    laplace3d_sl,
    helmholtz3d_sl,
    maxwell3d_sl,
    near_interaction,
)
from .ifgf import IFGFConfig, IFGFOperator

__all__ = [
    'Box',
    'ROOT_PARENT',
    'distance',
    'BoxTree',
    'TreeConfig',
    'default_eta',
    'is_admissible',
    'ConeDomainSpec',
    'ConeGrid',
    'cone_domain_size_func',
    'cartesian_to_cone',
    'cone_to_cartesian',
    'ChebyshevInterpolant',
    'chebyshev_nodes',
    'chebyshev_coefficients',
    'chebyshev_evaluate',
    'cheb_error_estimate',
    'phase_decay_ratio',
    'transfer_factor',
    'fast_invsqrt',
    'laplace3d_sl',
    'helmholtz3d_sl',
    'maxwell3d_sl',
    'near_interaction',
    'IFGFConfig',
    'IFGFOperator',
]
