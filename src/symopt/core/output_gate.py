"""
Output Gate

Result types returned by the extrema solvers and the gate that checks
them before they leave the solver.

- GlobalExtremaResult: global minimum value, minimizer set, maximum value
- LocalExtremaResult: critical points with their classification labels

An empty candidate set is a legitimate outcome: the global result then
carries ``None`` values and the local result an empty point list.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import sympy as sp

from .errors import InvalidArityError

Point = Tuple[sp.Expr, ...]


class Classification(Enum):
    """Labels a critical point can carry."""
    UNCLASSIFIED = "unclassified"    # classification not requested
    MIN = "min"
    MAX = "max"
    SADDLE = "saddle"
    POSSIBLE_MIN = "possible-min"    # flat direction, minimum not proven
    POSSIBLE_MAX = "possible-max"
    UNDECIDED = "undecided"          # every applied test was inconclusive

    @property
    def is_conclusive(self) -> bool:
        return self in (Classification.MIN, Classification.MAX, Classification.SADDLE)


@dataclass
class CriticalPoint:
    """
    A critical point in original variable order.

    Attributes:
        coordinates: One expression per problem variable
        classification: Label assigned by the classifier
        value: Objective value at the point (if computed)
    """
    coordinates: Point
    classification: Classification = Classification.UNCLASSIFIED
    value: Optional[sp.Expr] = None

    def to_canonical(self) -> Dict[str, Any]:
        return {
            "coordinates": [sp.sstr(c) for c in self.coordinates],
            "classification": self.classification.value,
            "value": sp.sstr(self.value) if self.value is not None else None,
        }


@dataclass
class GlobalExtremaResult:
    """
    Result of a global extrema query.

    Only the minimum carries its point set; the maximum is a single value.
    ``min_value is None`` means no critical point was found.
    """
    variables: Tuple[sp.Symbol, ...]
    min_value: Optional[sp.Expr] = None
    minimizers: List[Point] = field(default_factory=list)
    max_value: Optional[sp.Expr] = None
    candidates: List[Point] = field(default_factory=list)
    receipts: Any = None

    @property
    def is_empty(self) -> bool:
        return self.min_value is None

    def to_canonical(self) -> Dict[str, Any]:
        return {
            "variables": [sp.sstr(v) for v in self.variables],
            "min_value": sp.sstr(self.min_value) if self.min_value is not None else None,
            "minimizers": [[sp.sstr(c) for c in p] for p in self.minimizers],
            "max_value": sp.sstr(self.max_value) if self.max_value is not None else None,
            "n_candidates": len(self.candidates),
            "receipts_hash": self.receipts.final_hash if self.receipts is not None else None,
        }


@dataclass
class LocalExtremaResult:
    """Result of a local extrema query: classified critical points."""
    variables: Tuple[sp.Symbol, ...]
    points: List[CriticalPoint] = field(default_factory=list)
    max_order: int = 0
    receipts: Any = None

    def by_class(self, *labels: Classification) -> List[Point]:
        return [p.coordinates for p in self.points if p.classification in labels]

    @property
    def minima(self) -> List[Point]:
        return self.by_class(Classification.MIN)

    @property
    def maxima(self) -> List[Point]:
        return self.by_class(Classification.MAX)

    @property
    def saddles(self) -> List[Point]:
        return self.by_class(Classification.SADDLE)

    def classification_of(self, point: Sequence) -> Optional[Classification]:
        """Look up the label of a point given in original variable order."""
        target = tuple(sp.sympify(c) for c in point)
        for p in self.points:
            if len(p.coordinates) == len(target) and all(
                sp.simplify(a - b) == 0 for a, b in zip(p.coordinates, target)
            ):
                return p.classification
        return None

    def to_canonical(self) -> Dict[str, Any]:
        return {
            "variables": [sp.sstr(v) for v in self.variables],
            "max_order": self.max_order,
            "points": [p.to_canonical() for p in self.points],
            "receipts_hash": self.receipts.final_hash if self.receipts is not None else None,
        }


class OutputGate:
    """
    Validates results before they are handed to the caller.

    Every minimizer of a global result must satisfy all equality
    constraints exactly and must not strictly violate any inequality
    constraint g <= 0. Local results may only carry known labels.
    """

    def __init__(self, engine: Any):
        self.engine = engine

    def validate_global(
        self,
        result: GlobalExtremaResult,
        equalities: Sequence[sp.Expr],
        inequalities: Sequence[sp.Expr]
    ) -> bool:
        if result.min_value is None:
            if result.minimizers:
                raise ValueError("Minimizers reported without a minimum value")
            return True

        if not result.minimizers:
            raise ValueError("Minimum value reported without minimizers")

        for point in result.minimizers:
            if len(point) != len(result.variables):
                raise InvalidArityError(
                    f"Point {point} does not match {len(result.variables)} variables"
                )
            values = dict(zip(result.variables, point))
            for k, h in enumerate(equalities):
                if self.engine.is_zero(h.subs(values)) is False:
                    raise ValueError(f"Equality constraint {k} violated at {point}")
            for j, g in enumerate(inequalities):
                if self.engine.is_strictly_positive(g.subs(values)) is True:
                    raise ValueError(f"Inequality constraint {j} violated at {point}")

        return True

    def validate_local(self, result: LocalExtremaResult) -> bool:
        for p in result.points:
            if not isinstance(p.classification, Classification):
                raise ValueError(f"Unknown classification {p.classification!r}")
            if len(p.coordinates) != len(result.variables):
                raise InvalidArityError(
                    f"Point {p.coordinates} does not match {len(result.variables)} variables"
                )
        return True

    def emit_global(
        self,
        result: GlobalExtremaResult,
        equalities: Sequence[sp.Expr] = (),
        inequalities: Sequence[sp.Expr] = ()
    ) -> GlobalExtremaResult:
        """Validate and emit a global result."""
        self.validate_global(result, equalities, inequalities)
        return result

    def emit_local(self, result: LocalExtremaResult) -> LocalExtremaResult:
        """Validate and emit a local result."""
        self.validate_local(result)
        return result
