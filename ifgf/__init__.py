"""
Interpolated Factored Green's Function (IFGF) Implementation

Fast evaluation of kernel sums C_i = Σ_j K(x_i, y_j) σ_j for Laplace,
Helmholtz and Maxwell Green's functions with near-linear cost.

This package includes:
- Modified admissibility condition for far/near classification
- Cone domain sizing adapted to the wavenumber
- Tensor-product Chebyshev interpolation with per-axis error estimates
- Transfer factors reusing child interpolants at the parent level
- Vectorized near-field evaluators for Laplace, Helmholtz and Maxwell
- Box tree construction and a reference IFGF driver
"""

from ifgf.core import (
    Box,
    BoxTree,
    TreeConfig,
    is_admissible,
    cone_domain_size_func,
    ChebyshevInterpolant,
    cheb_error_estimate,
    transfer_factor,
    near_interaction,
    IFGFConfig,
    IFGFOperator,
)
from ifgf.kernels import (
    ValueType,
    UnrecognizedKernelTypeError,
    density_type_from_kernel_type,
    Kernel,
    LaplaceKernel,
    HelmholtzKernel,
    MaxwellKernel,
    create_kernel,
)

__version__ = '0.1.0'

__all__ = [
    # Core
    'Box',
    'BoxTree',
    'TreeConfig',
    'is_admissible',
    'cone_domain_size_func',
    'ChebyshevInterpolant',
    'cheb_error_estimate',
    'transfer_factor',
    'near_interaction',
    'IFGFConfig',
    'IFGFOperator',
    # Kernels
    'ValueType',
    'UnrecognizedKernelTypeError',
    'density_type_from_kernel_type',
    'Kernel',
    'LaplaceKernel',
    'HelmholtzKernel',
    'MaxwellKernel',
    'create_kernel',
]
