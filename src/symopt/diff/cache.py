"""
Partial Derivative Cache

Lazily computes partial derivatives of an objective with respect to the
free variables, where the last m variables are implicitly defined by m
equality constraints.

Raising the order to k:
1. Enumerate every order-k multi-index
2. Start each from the nearest cached chain-rule expansion and complete
   it with ``derive``
3. Resolve the order-k implicit derivatives (ImplicitDerivativeSolver)
4. Substitute all known derivatives into every expansion and normalize

Every multi-index of an order is resolved when the cache is raised to
that order, so lower-order lookups are always defined afterwards.
Cached entries are never modified once stored.
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

import sympy as sp

from ..core.errors import InvalidArityError
from ..receipts import ActionType, ReceiptChain
from .diffterms import DiffTermSet, ImplicitKey, derive
from .implicit import ImplicitDerivativeSolver
from .partitions import MultiIndex, excess, ipartition, unit_index


class PartialDerivativeCache:
    """
    Derivative cache for one (objective, constraints, arrangement) triple.

    Args:
        objective: Function to differentiate
        constraints: Equality constraints g_i = 0 defining the dependent
            variables
        variables: Free variables first, then one dependent variable per
            constraint
        engine: SymbolicEngine
        receipts: Optional receipt chain for ORDER_RAISED events
    """

    def __init__(
        self,
        objective: sp.Expr,
        constraints: Sequence[sp.Expr],
        variables: Sequence[sp.Symbol],
        engine,
        receipts: Optional[ReceiptChain] = None
    ):
        self.objective = sp.sympify(objective)
        self.constraints = [sp.sympify(g) for g in constraints]
        self.variables = tuple(variables)
        self.engine = engine
        self.receipts = receipts

        self.n_dependent = len(self.constraints)
        self.n_free = len(self.variables) - self.n_dependent
        if self.n_free <= 0:
            raise InvalidArityError(
                f"{self.n_dependent} constraints need more than "
                f"{len(self.variables)} variables"
            )

        self.order = 0
        zero = (0,) * self.n_free
        self.expansions: Dict[MultiIndex, DiffTermSet] = {
            zero: DiffTermSet.identity(self.n_free, self.n_dependent)
        }
        self.objective_derivatives: Dict[Tuple[int, ...], sp.Expr] = {
            (0,) * len(self.variables): self.objective
        }
        self.partials: Dict[MultiIndex, sp.Expr] = {zero: self.objective}
        self.implicit = ImplicitDerivativeSolver(self.constraints, self.variables, engine)

    @property
    def free_variables(self) -> Tuple[sp.Symbol, ...]:
        return self.variables[:self.n_free]

    @property
    def dependent_variables(self) -> Tuple[sp.Symbol, ...]:
        return self.variables[self.n_free:]

    def _direct(self, direct: Tuple[int, ...]) -> sp.Expr:
        if direct not in self.objective_derivatives:
            expr = self.objective
            for var, count in zip(self.variables, direct):
                if count:
                    expr = self.engine.differentiate(expr, var, count)
            self.objective_derivatives[direct] = expr
        return self.objective_derivatives[direct]

    def _nearest(self, sigma: MultiIndex) -> Tuple[DiffTermSet, MultiIndex]:
        """Cached expansion below ``sigma`` needing the least differentiation."""
        best, best_excess = None, None
        for base, terms in self.expansions.items():
            ex = excess(sigma, base)
            if ex is None:
                continue
            if best_excess is None or sum(ex) < sum(best_excess):
                best, best_excess = terms, ex
        return best, best_excess

    def _substitute(self, terms: DiffTermSet) -> sp.Expr:
        total = sp.S.Zero
        for term, c in terms.items():
            t = c * self._direct(term.direct)
            if t == 0:
                continue
            for key, power in term.implicit:
                t = t * self.implicit.lookup(key) ** power
            total += t
        return self.engine.normalize(total)

    def raise_order(self, order: int) -> None:
        """Resolve every partial derivative up to total order ``order``."""
        if order < 0:
            raise InvalidArityError(f"Order must be nonnegative, got {order}")

        for k in range(self.order + 1, order + 1):
            level = ipartition(k, self.n_free)
            fingerprints = []
            if not self.constraints:
                for sigma in level:
                    self.partials[sigma] = self._direct(sigma)
            else:
                term_sets: Dict[MultiIndex, DiffTermSet] = {}
                for sigma in level:
                    base, ex = self._nearest(sigma)
                    terms = derive(base, ex, self.n_free, self.n_dependent)
                    self.expansions[sigma] = terms
                    term_sets[sigma] = terms
                    fingerprints.append(terms.fingerprint())
                self.implicit.compute_h(term_sets, k)
                for sigma in level:
                    self.partials[sigma] = self._substitute(term_sets[sigma])
            self.order = k
            if self.receipts is not None:
                self.receipts.add_receipt(
                    ActionType.ORDER_RAISED,
                    {"order": k, "n_partials": len(level)},
                    input_data=[sp.sstr(self.objective)] + [sp.sstr(g) for g in self.constraints],
                    output_data=fingerprints
                )

    def _check_index(self, index: Sequence[int]) -> MultiIndex:
        index = tuple(int(i) for i in index)
        if len(index) != self.n_free:
            raise InvalidArityError(
                f"Multi-index {index} must have {self.n_free} entries"
            )
        if any(i < 0 for i in index):
            raise InvalidArityError(f"Negative entry in multi-index {index}")
        return index

    def derivative(self, index: Sequence[int]) -> sp.Expr:
        """Partial derivative for a multi-index over the free variables."""
        index = self._check_index(index)
        if sum(index) > self.order:
            self.raise_order(sum(index))
        return self.partials[index]

    def derivative_wrt(self, variables: Sequence[sp.Symbol]) -> sp.Expr:
        """
        Partial derivative in repeated-variable notation, e.g. [x, x, z]
        for d^3/dx^2 dz.
        """
        index = [0] * self.n_free
        for v in variables:
            try:
                index[self.free_variables.index(v)] += 1
            except ValueError:
                raise InvalidArityError(f"{v} is not a free variable of this cache") from None
        return self.derivative(index)

    def gradient(self) -> List[sp.Expr]:
        return [self.derivative(unit_index(k, self.n_free)) for k in range(self.n_free)]

    def hessian(self) -> sp.Matrix:
        n = self.n_free

        def entry(i, j):
            index = [0] * n
            index[i] += 1
            index[j] += 1
            return self.derivative(index)

        return sp.Matrix(n, n, entry)

    def partial_derivatives(self, order: int) -> Dict[MultiIndex, sp.Expr]:
        """All partial derivatives of total order ``order``."""
        self.raise_order(order)
        return {sigma: self.partials[sigma] for sigma in ipartition(order, self.n_free)}

    def implicit_derivative(self, index: Sequence[int], dependent: int) -> sp.Expr:
        """Resolved d^index y_dependent."""
        index = self._check_index(index)
        if not 0 <= dependent < self.n_dependent:
            raise InvalidArityError(
                f"Dependent index {dependent} out of range for {self.n_dependent} constraints"
            )
        if sum(index) == 0:
            return self.dependent_variables[dependent]
        if sum(index) > self.order:
            self.raise_order(sum(index))
        return self.implicit.lookup(ImplicitKey(index, dependent))

    def taylor_term(self, point: Sequence[sp.Expr], k: int) -> sp.Expr:
        """
        Degree-k homogeneous Taylor term at ``point``.

        ``point`` gives a value for every variable (free and dependent);
        the term is a polynomial in the displacements of the free
        variables.
        """
        if k < 0:
            raise InvalidArityError(f"Taylor degree must be nonnegative, got {k}")
        if len(point) != len(self.variables):
            raise InvalidArityError(
                f"Point has {len(point)} coordinates, expected {len(self.variables)}"
            )
        at = dict(zip(self.variables, point))
        if k == 0:
            return self.objective.subs(at, simultaneous=True)

        term = sp.S.Zero
        for sigma in ipartition(k, self.n_free):
            pd = self.derivative(sigma).subs(at, simultaneous=True)
            if pd == 0:
                continue
            for x, a, s in zip(self.free_variables, point, sigma):
                if s:
                    pd = pd * (x - a) ** s / math.factorial(s)
            term += pd
        return term

    def taylor(self, point: Sequence[sp.Expr], order: int) -> sp.Expr:
        """Taylor polynomial of degree ``order`` at ``point``."""
        if order < 0:
            raise InvalidArityError(f"Taylor order must be nonnegative, got {order}")
        return sum((self.taylor_term(point, k) for k in range(order + 1)), sp.S.Zero)
