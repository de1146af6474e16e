"""
Implicit Multi-Order Differentiation

- partitions: multi-index enumeration
- diffterms: chain-rule expansion bookkeeping
- implicit: order-by-order implicit derivative resolution
- cache: lazily grown partial derivative cache
- arrangements: dependent-variable selection
"""

from .partitions import MultiIndex, ipartition, order_of, unit_index, excess
from .diffterms import ImplicitKey, DiffTerm, DiffTermSet, derive, derive_step
from .implicit import ImplicitDerivativeSolver
from .cache import PartialDerivativeCache
from .arrangements import (
    MAX_ARRANGEMENT_VARS,
    Arrangement,
    select_arrangements,
    check_jacobian,
    permute,
    unpermute,
)

__all__ = [
    'MultiIndex',
    'ipartition',
    'order_of',
    'unit_index',
    'excess',
    'ImplicitKey',
    'DiffTerm',
    'DiffTermSet',
    'derive',
    'derive_step',
    'ImplicitDerivativeSolver',
    'PartialDerivativeCache',
    'MAX_ARRANGEMENT_VARS',
    'Arrangement',
    'select_arrangements',
    'check_jacobian',
    'permute',
    'unpermute',
]
