"""
Core Module - Foundational Components

Provides:
- Canonical JSON serialization
- Result types and classification labels
- Output gate (validates results before they leave the solvers)
- Error types
"""

from .canonical_json import canonical_dumps, canonical_hash, to_jsonable
from .errors import (
    ExtremaError,
    InvalidArityError,
    SingularJacobianError,
    ExternalSolverError,
)
from .output_gate import (
    Point,
    Classification,
    CriticalPoint,
    GlobalExtremaResult,
    LocalExtremaResult,
    OutputGate,
)

__all__ = [
    'canonical_dumps',
    'canonical_hash',
    'to_jsonable',
    'ExtremaError',
    'InvalidArityError',
    'SingularJacobianError',
    'ExternalSolverError',
    'Point',
    'Classification',
    'CriticalPoint',
    'GlobalExtremaResult',
    'LocalExtremaResult',
    'OutputGate',
]
