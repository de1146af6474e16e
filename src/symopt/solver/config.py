"""
Solver configuration.
"""

from dataclasses import dataclass

from ..core.errors import InvalidArityError
from ..diff.arrangements import MAX_ARRANGEMENT_VARS
from ..engine import SymbolicEngine


@dataclass
class ExtremaConfig:
    """Configuration for the extrema solvers."""
    max_order: int = 5
    max_arrangement_vars: int = MAX_ARRANGEMENT_VARS
    max_inequalities: int = 16

    root_samples: int = 200
    zero_tol: float = 1e-10

    simplify_output: bool = True
    verbose: bool = False

    def __post_init__(self):
        if self.max_order < 0:
            raise InvalidArityError(f"max_order must be nonnegative, got {self.max_order}")
        if self.max_inequalities < 0 or self.max_arrangement_vars <= 0:
            raise InvalidArityError("Enumeration limits must be positive")
        if self.root_samples < 2:
            raise InvalidArityError("At least two root samples are required")

    def make_engine(self) -> SymbolicEngine:
        return SymbolicEngine(zero_tol=self.zero_tol, root_samples=self.root_samples)
