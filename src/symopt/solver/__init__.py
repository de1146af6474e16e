"""
Solver Module - Critical Points and Extrema

Provides:
- solve_kkt: KKT points over all inequality activity patterns
- find_global_extrema: global minimum/minimizers/maximum
- find_local_extrema: critical point classification
- ExtremaConfig: solver limits and output options
"""

from .config import ExtremaConfig
from .kkt import MAX_INEQUALITIES, solve_kkt
from .global_extrema import find_global_extrema, solve_global, univariate_candidates
from .local_extrema import LocalExtremaClassifier, find_local_extrema

__all__ = [
    'ExtremaConfig',
    'MAX_INEQUALITIES',
    'solve_kkt',
    'find_global_extrema',
    'solve_global',
    'univariate_candidates',
    'LocalExtremaClassifier',
    'find_local_extrema',
]
