"""
symopt - Symbolic Constrained Extrema and Implicit Multi-Order Differentiation

This package finds and classifies extrema of symbolic objectives:
- Global minimum (with every minimizer) and maximum under equality and
  inequality constraints, via closed-form candidate enumeration and KKT
- Local extrema classified as min / max / saddle / possible / undecided
  with bordered Hessians, eigenvalues, derivative walks and higher-order
  Taylor terms
- Implicit partial derivatives of any order where equality constraints
  define dependent variables

Every run appends to a hash-chained receipt log that can be saved and
verified afterwards.

Key Features:
- Exact symbolic results through SymPy, numeric fallbacks through SciPy
- Lazily grown partial derivative cache keyed by multi-index
- Arrangement selection for the dependent variables
- Scoped range assumptions on surrogate variables
"""

from .contract import (
    ConstrainedProblem,
    parse_variable,
    parse_constraint,
)
from .receipts import (
    Receipt,
    ReceiptChain,
    ActionType,
    canonical_dumps,
    canonical_hash,
)
from .core.errors import (
    ExtremaError,
    InvalidArityError,
    SingularJacobianError,
    ExternalSolverError,
)
from .core.output_gate import (
    Point,
    Classification,
    CriticalPoint,
    GlobalExtremaResult,
    LocalExtremaResult,
    OutputGate,
)
from .engine import (
    AssumptionContext,
    SymbolicEngine,
)
from .expr_kinds import (
    ExprKind,
    RelationKind,
    non_smooth_points,
)
from .diff import (
    MultiIndex,
    ipartition,
    DiffTerm,
    DiffTermSet,
    derive,
    ImplicitDerivativeSolver,
    PartialDerivativeCache,
    Arrangement,
    select_arrangements,
)
from .solver import (
    ExtremaConfig,
    solve_kkt,
    find_global_extrema,
    solve_global,
    LocalExtremaClassifier,
    find_local_extrema,
)
from .api import (
    nth_partial_derivative,
    taylor_expansion,
    minimize,
    maximize,
    extrema,
    implicit_diff,
)

__version__ = "0.1.0"

__all__ = [
    # Contract
    'ConstrainedProblem',
    'parse_variable',
    'parse_constraint',
    # Receipts
    'Receipt',
    'ReceiptChain',
    'ActionType',
    'canonical_dumps',
    'canonical_hash',
    # Errors
    'ExtremaError',
    'InvalidArityError',
    'SingularJacobianError',
    'ExternalSolverError',
    # Results
    'Point',
    'Classification',
    'CriticalPoint',
    'GlobalExtremaResult',
    'LocalExtremaResult',
    'OutputGate',
    # Engine
    'AssumptionContext',
    'SymbolicEngine',
    'ExprKind',
    'RelationKind',
    'non_smooth_points',
    # Differentiation
    'MultiIndex',
    'ipartition',
    'DiffTerm',
    'DiffTermSet',
    'derive',
    'ImplicitDerivativeSolver',
    'PartialDerivativeCache',
    'Arrangement',
    'select_arrangements',
    # Solvers
    'ExtremaConfig',
    'solve_kkt',
    'find_global_extrema',
    'solve_global',
    'LocalExtremaClassifier',
    'find_local_extrema',
    # Front-ends
    'nth_partial_derivative',
    'taylor_expansion',
    'minimize',
    'maximize',
    'extrema',
    'implicit_diff',
]
