"""
Problem Contract Definition

Defines the extrema problem structure:
- Objective function f
- Equality constraints h_i(x) = 0
- Inequality constraints g_j(x) <= 0
- Variables with optional ranges [lower, upper] (infinite ends allowed)

Constraints may be given as SymPy relationals (Eq, <=, >=) or as bare
expressions meaning ``expr = 0``. Strict inequalities and != are not
supported.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import sympy as sp

from .core.errors import InvalidArityError
from .expr_kinds import RelationKind


def _is_ranged(spec) -> bool:
    return (
        isinstance(spec, (tuple, list)) and len(spec) == 3
        and isinstance(spec[0], sp.Symbol)
        and not any(isinstance(s, sp.Symbol) for s in spec[1:])
    )


def parse_variable(spec) -> Tuple[sp.Symbol, sp.Interval]:
    """
    Parse ``x`` or ``(x, lower, upper)`` into a symbol and its closed range.
    """
    if isinstance(spec, sp.Symbol):
        return spec, sp.Interval(-sp.oo, sp.oo)
    if _is_ranged(spec):
        lower, upper = sp.sympify(spec[1]), sp.sympify(spec[2])
        if not (lower.is_extended_real and upper.is_extended_real):
            raise InvalidArityError(f"Range of {spec[0]} must be real, got [{lower}, {upper}]")
        if (lower > upper) is sp.true:
            raise InvalidArityError(f"Empty range [{lower}, {upper}] for {spec[0]}")
        return spec[0], sp.Interval(lower, upper)
    raise InvalidArityError(f"Expected a symbol or (symbol, lower, upper), got {spec!r}")


def parse_constraint(constraint) -> Tuple[str, sp.Expr]:
    """
    Normalize one constraint.

    Returns:
        ("eq", h) meaning h = 0, or ("ineq", g) meaning g <= 0
    """
    constraint = sp.sympify(constraint)
    kind = RelationKind.of(constraint)
    if kind is RelationKind.EQ:
        return "eq", constraint.lhs - constraint.rhs
    if kind is RelationKind.LE:
        return "ineq", constraint.lhs - constraint.rhs
    if kind is RelationKind.GE:
        return "ineq", constraint.rhs - constraint.lhs
    if kind is not None:
        raise InvalidArityError(f"Unsupported relation {kind.value} in {constraint}")
    if not isinstance(constraint, sp.Expr):
        raise InvalidArityError(f"Constraint {constraint!r} is not an expression")
    return "eq", constraint


@dataclass
class ConstrainedProblem:
    """
    Complete extrema problem specification.

    Represents:
        extremize f(x)
        s.t. h_i(x) = 0,  i = 1..m
             g_j(x) <= 0, j = 1..p
             x_k in ranges[k]

    Attributes:
        objective: Objective expression
        variables: Ordered variables
        ranges: Closed range of each variable
        equalities: Expressions h_i (meaning h_i = 0)
        inequalities: Expressions g_j (meaning g_j <= 0)
        name: Optional problem name
    """
    objective: sp.Expr
    variables: Tuple[sp.Symbol, ...]
    ranges: List[sp.Interval] = field(default_factory=list)
    equalities: List[sp.Expr] = field(default_factory=list)
    inequalities: List[sp.Expr] = field(default_factory=list)
    name: str = "unnamed"

    def __post_init__(self):
        self.objective = sp.sympify(self.objective)
        self.variables = tuple(self.variables)
        self.equalities = [sp.sympify(h) for h in self.equalities]
        self.inequalities = [sp.sympify(g) for g in self.inequalities]

        if not self.variables:
            raise InvalidArityError("At least one variable is required")
        if not all(isinstance(v, sp.Symbol) for v in self.variables):
            raise InvalidArityError(f"Variables must be symbols, got {self.variables}")
        if len(set(self.variables)) != len(self.variables):
            raise InvalidArityError(f"Duplicate variables in {self.variables}")

        if not self.ranges:
            self.ranges = [sp.Interval(-sp.oo, sp.oo) for _ in self.variables]
        if len(self.ranges) != len(self.variables):
            raise InvalidArityError("One range per variable is required")

    @property
    def n_vars(self) -> int:
        return len(self.variables)

    @property
    def n_eq(self) -> int:
        return len(self.equalities)

    @property
    def n_ineq(self) -> int:
        return len(self.inequalities)

    def range_of(self, var: sp.Symbol) -> sp.Interval:
        return self.ranges[self.variables.index(var)]

    def open_range_of(self, var: sp.Symbol) -> sp.Interval:
        r = self.range_of(var)
        return sp.Interval.open(r.inf, r.sup)

    def bound_inequalities(self) -> List[sp.Expr]:
        """Finite range ends as constraints ``lower - x <= 0`` / ``x - upper <= 0``."""
        result = []
        for var, r in zip(self.variables, self.ranges):
            if r.inf.is_finite:
                result.append(r.inf - var)
            if r.sup.is_finite:
                result.append(var - r.sup)
        return result

    def simple_bounds(self, var: sp.Symbol) -> sp.Interval:
        """
        Range of ``var`` tightened by inequality constraints that are
        linear in ``var`` alone (``x <= c``, ``2 - x <= 0``, ...).
        """
        result = self.range_of(var)
        for g in self.inequalities:
            if g.free_symbols != {var}:
                continue
            poly = sp.Poly(g, var) if g.is_polynomial(var) else None
            if poly is None or poly.degree() != 1:
                continue
            a, b = poly.all_coeffs()
            if a.is_positive:
                result = sp.Intersection(result, sp.Interval(-sp.oo, -b / a))
            elif a.is_negative:
                result = sp.Intersection(result, sp.Interval(-b / a, sp.oo))
        return result

    def to_canonical(self) -> Dict[str, Any]:
        """Convert problem to canonical form for hashing/serialization."""
        return {
            "name": self.name,
            "objective": sp.sstr(self.objective),
            "variables": [sp.sstr(v) for v in self.variables],
            "ranges": [[sp.sstr(r.inf), sp.sstr(r.sup)] for r in self.ranges],
            "equalities": [sp.sstr(h) for h in self.equalities],
            "inequalities": [sp.sstr(g) for g in self.inequalities],
        }

    @classmethod
    def create(
        cls,
        objective,
        constraints: Optional[Sequence] = None,
        variables: Optional[Sequence] = None,
        name: str = "unnamed"
    ) -> 'ConstrainedProblem':
        """
        Create a problem from user input.

        Args:
            objective: Objective expression (anything ``sympify`` accepts)
            constraints: Relationals or bare expressions
            variables: Symbols or (symbol, lower, upper) tuples; defaults
                to the sorted free symbols of objective and constraints

        Returns:
            ConstrainedProblem instance
        """
        objective = sp.sympify(objective)
        equalities: List[sp.Expr] = []
        inequalities: List[sp.Expr] = []
        if isinstance(constraints, sp.Basic):
            constraints = [constraints]
        for c in constraints or []:
            kind, expr = parse_constraint(c)
            (equalities if kind == "eq" else inequalities).append(expr)

        if variables is None:
            symbols = set(objective.free_symbols)
            for e in equalities + inequalities:
                symbols |= e.free_symbols
            variables = sorted(symbols, key=lambda s: s.name)
        elif isinstance(variables, sp.Symbol) or _is_ranged(variables):
            variables = [variables]

        parsed = [parse_variable(v) for v in variables]
        return cls(
            objective=objective,
            variables=tuple(v for v, _ in parsed),
            ranges=[r for _, r in parsed],
            equalities=equalities,
            inequalities=inequalities,
            name=name
        )
