"""
Implicit Derivative Solver

Resolves the implicit derivatives d^sigma y_i of the dependent variables,
one total order at a time.

Differentiating the identity g_i(x, y(x)) = 0 by a multi-index sigma of
order k gives an equation that is linear in the order-k unknowns: every
top-order unknown enters through a single chain-rule factor with power
one, and all lower-order unknowns are already resolved. Collecting one
equation per (constraint, partition) pair yields a square system A h = b
of size m*P, where P is the number of order-k multi-indices.
"""

from typing import Dict, List, Mapping, Sequence, Tuple

import sympy as sp

from ..core.errors import InvalidArityError
from .diffterms import DiffTermSet, ImplicitKey, unknowns_of
from .partitions import MultiIndex


class ImplicitDerivativeSolver:
    """
    Holds the direct derivatives of every constraint and the resolved
    implicit derivatives.

    Args:
        constraints: Constraint expressions g_i (meaning g_i = 0)
        variables: n free variables followed by m dependent variables
        engine: SymbolicEngine used to differentiate, invert and normalize
    """

    def __init__(self, constraints: Sequence[sp.Expr], variables: Sequence[sp.Symbol], engine):
        self.constraints = [sp.sympify(g) for g in constraints]
        self.variables = tuple(variables)
        self.engine = engine
        self.n_dependent = len(self.constraints)
        self.n_free = len(self.variables) - self.n_dependent
        if self.n_free <= 0:
            raise InvalidArityError(
                f"{self.n_dependent} constraints need more than {len(self.variables)} variables"
            )
        self.constraint_derivatives: List[Dict[Tuple[int, ...], sp.Expr]] = [
            {(0,) * len(self.variables): g} for g in self.constraints
        ]
        self.resolved: Dict[ImplicitKey, sp.Expr] = {}

    def direct_derivative(self, i: int, direct: Tuple[int, ...]) -> sp.Expr:
        """D^direct g_i over the generalized variables (memoized)."""
        table = self.constraint_derivatives[i]
        if direct not in table:
            expr = self.constraints[i]
            for var, count in zip(self.variables, direct):
                if count:
                    expr = self.engine.differentiate(expr, var, count)
            table[direct] = expr
        return table[direct]

    def lookup(self, key: ImplicitKey) -> sp.Expr:
        try:
            return self.resolved[key]
        except KeyError:
            raise RuntimeError(
                f"Implicit derivative {key} requested before its order was resolved"
            ) from None

    def compute_h(self, term_sets: Mapping[MultiIndex, DiffTermSet], order: int) -> None:
        """
        Resolve every implicit derivative of total order ``order``.

        Args:
            term_sets: Chain-rule expansion of each order-``order``
                multi-index, in partition order
            order: The total order being resolved
        """
        if not self.constraints:
            return

        partitions = list(term_sets)
        m, size = self.n_dependent, self.n_dependent * len(partitions)
        columns = {
            ImplicitKey(sigma, d): p * m + d
            for p, sigma in enumerate(partitions)
            for d in range(m)
        }
        for sigma in partitions:
            for key in unknowns_of(term_sets[sigma]):
                if key.order > order or (key.order == order and key not in columns):
                    raise InvalidArityError(
                        f"Expansion of {sigma} refers to {key} outside order {order}"
                    )

        A = sp.zeros(size, size)
        b = sp.zeros(size, 1)
        for i in range(m):
            for j, sigma in enumerate(partitions):
                row = i * len(partitions) + j
                for term, c in term_sets[sigma].items():
                    t = c * self.direct_derivative(i, term.direct)
                    top = None
                    for key, power in term.implicit:
                        if key.order < order:
                            t = t * self.lookup(key) ** power
                        elif power != 1 or top is not None:
                            raise RuntimeError(f"Non-linear top-order unknown in {term}")
                        else:
                            top = key
                    if top is None:
                        b[row] -= t
                    else:
                        A[row, columns[top]] += t

        A = A.applyfunc(self.engine.normalize)
        b = b.applyfunc(self.engine.normalize)
        solution = self.engine.invert(A) * b
        for key, col in columns.items():
            self.resolved[key] = self.engine.normalize(solution[col])
