"""
Expression Kinds for Non-Smooth Point Detection

Classifies SymPy expression nodes into a closed set of kinds so that
traversals dispatch on an enum instead of probing classes ad hoc:

- RelationKind: =, !=, <=, >=, <, > (constraints and piecewise conditions)
- ExprKind: node kinds at which a univariate function may fail to be
  differentiable (piecewise branches, |u|, sign(u), Heaviside(u), min/max)

NonSmoothPointVisitor walks an expression tree and collects the points
where such a node switches branch. Nested piecewise conditions are
flattened; every relational boundary is reported regardless of its
inequality sign.
"""

from enum import Enum
from typing import List, Optional

import sympy as sp


class RelationKind(Enum):
    """Relational operators."""
    EQ = "=="
    NE = "!="
    LE = "<="
    GE = ">="
    LT = "<"
    GT = ">"

    @classmethod
    def of(cls, expr) -> Optional['RelationKind']:
        """Kind of a relational expression, or None for non-relationals."""
        if isinstance(expr, sp.Equality):
            return cls.EQ
        if isinstance(expr, sp.Unequality):
            return cls.NE
        if isinstance(expr, sp.LessThan):
            return cls.LE
        if isinstance(expr, sp.GreaterThan):
            return cls.GE
        if isinstance(expr, sp.StrictLessThan):
            return cls.LT
        if isinstance(expr, sp.StrictGreaterThan):
            return cls.GT
        return None


class ExprKind(Enum):
    """Node kinds relevant to differentiability."""
    PIECEWISE = "piecewise"
    ABS = "abs"
    SIGN = "sign"
    HEAVISIDE = "heaviside"
    MIN_MAX = "min_max"
    RELATIONAL = "relational"
    BOOLEAN = "boolean"
    ATOM = "atom"
    OTHER = "other"

    @classmethod
    def of(cls, expr) -> 'ExprKind':
        if isinstance(expr, sp.Piecewise):
            return cls.PIECEWISE
        if isinstance(expr, sp.Abs):
            return cls.ABS
        if isinstance(expr, sp.sign):
            return cls.SIGN
        if isinstance(expr, sp.Heaviside):
            return cls.HEAVISIDE
        if isinstance(expr, (sp.Min, sp.Max)):
            return cls.MIN_MAX
        if RelationKind.of(expr) is not None:
            return cls.RELATIONAL
        if isinstance(expr, (sp.And, sp.Or, sp.Not)):
            return cls.BOOLEAN
        if not expr.args:
            return cls.ATOM
        return cls.OTHER


class NonSmoothPointVisitor:
    """
    Collects the switch points of non-smooth nodes of a univariate
    expression.

    Each switch is reported as an expression whose zeros are the switch
    points (``switches``) or, after solving, as the points
    themselves (``points``).
    """

    def __init__(self, var: sp.Symbol):
        self.var = var
        self.switches: List[sp.Expr] = []

    def visit(self, expr) -> None:
        kind = ExprKind.of(expr)
        handler = getattr(self, f"visit_{kind.value}")
        handler(expr)

    def visit_piecewise(self, expr: sp.Piecewise) -> None:
        for piece, cond in expr.args:
            self.visit(piece)
            self.visit(cond)

    def visit_abs(self, expr) -> None:
        self._add(expr.args[0])
        self.visit(expr.args[0])

    def visit_sign(self, expr) -> None:
        self._add(expr.args[0])
        self.visit(expr.args[0])

    def visit_heaviside(self, expr) -> None:
        self._add(expr.args[0])
        self.visit(expr.args[0])

    def visit_min_max(self, expr) -> None:
        args = list(expr.args)
        for i, a in enumerate(args):
            for b in args[i + 1:]:
                self._add(a - b)
        for a in args:
            self.visit(a)

    def visit_relational(self, expr) -> None:
        self._add(expr.lhs - expr.rhs)

    def visit_boolean(self, expr) -> None:
        for arg in expr.args:
            self.visit(arg)

    def visit_atom(self, expr) -> None:
        pass

    def visit_other(self, expr) -> None:
        for arg in expr.args:
            if isinstance(arg, sp.Basic):
                self.visit(arg)

    def _add(self, switch: sp.Expr) -> None:
        switch = sp.sympify(switch)
        if switch.has(self.var) and switch not in self.switches:
            self.switches.append(switch)

    def points(self, engine, lower=-sp.oo, upper=sp.oo) -> List[sp.Expr]:
        """Solve every collected switch expression on [lower, upper]."""
        found: List[sp.Expr] = []
        for switch in self.switches:
            for r in engine.solve_univariate(switch, self.var, lower, upper):
                if r not in found:
                    found.append(r)
        return found


def non_smooth_points(
    expr: sp.Expr,
    var: sp.Symbol,
    engine,
    lower=-sp.oo,
    upper=sp.oo
) -> List[sp.Expr]:
    """Points in [lower, upper] where ``expr`` may not be differentiable."""
    visitor = NonSmoothPointVisitor(var)
    visitor.visit(sp.sympify(expr))
    return visitor.points(engine, lower, upper)
