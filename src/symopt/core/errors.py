"""
Error types raised by the extrema and implicit differentiation engine.

Empty results (no critical points) and inconclusive classifications are
not errors; they are returned as values.
"""


class ExtremaError(Exception):
    """Base class for all symopt errors."""


class InvalidArityError(ExtremaError, ValueError):
    """Malformed input shape or type, detected before any computation."""


class SingularJacobianError(ExtremaError, ArithmeticError):
    """The implicit function theorem precondition does not hold."""


class ExternalSolverError(ExtremaError, RuntimeError):
    """The symbolic or numeric solver failed or did not converge."""
