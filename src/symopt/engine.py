"""
Symbolic Algebra Engine

Thin collaborator around SymPy (plus NumPy/SciPy for numeric fallbacks)
that the differentiation engine and the extrema solvers call for:

1. Calculus: derivatives, gradients, Hessians, Jacobians
2. Linear algebra: determinant, rank, inverse, eigenvalues
3. Equation solving: symbolic systems, numeric systems near a guess,
   univariate roots on an interval (with bracketing fallback)
4. Normalization and substitution
5. Three-valued comparisons (True / False / None when undecidable)

Variable ranges live in an AssumptionContext, an explicit scoped value
that is pushed before a solve and popped after it.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import sympy as sp
from scipy.optimize import brentq
from sympy.polys.polyerrors import PolynomialError

from .core.errors import ExternalSolverError, SingularJacobianError


REAL_LINE = sp.Interval(-sp.oo, sp.oo)


class AssumptionContext:
    """
    Scoped store of variable ranges.

    Ranges are pushed onto a stack and popped in reverse order. Use
    ``scope()`` to guarantee that everything pushed inside a block is
    popped when the block exits, even on error.
    """

    def __init__(self, tol: float = 1e-10):
        self._stack: List[Tuple[sp.Symbol, sp.Interval]] = []
        self.tol = tol

    def push(self, var: sp.Symbol, interval: sp.Interval) -> None:
        self._stack.append((var, interval))

    def pop(self) -> Tuple[sp.Symbol, sp.Interval]:
        if not self._stack:
            raise RuntimeError("pop() on an empty assumption context")
        return self._stack.pop()

    @property
    def depth(self) -> int:
        return len(self._stack)

    @contextmanager
    def scope(self) -> Iterator['AssumptionContext']:
        mark = len(self._stack)
        try:
            yield self
        finally:
            del self._stack[mark:]

    def range_of(self, var: sp.Symbol) -> sp.Interval:
        """Intersection of every range pushed for ``var``."""
        result = REAL_LINE
        for v, interval in self._stack:
            if v == var:
                result = sp.Intersection(result, interval)
        return result

    def surrogate(self, var: sp.Symbol, interval: sp.Interval = REAL_LINE) -> sp.Dummy:
        """
        Create a real Dummy standing in for ``var`` during a solve.

        Sign assumptions follow the range so that SymPy can discard
        solutions outside it; the range itself is pushed as well.
        """
        kwargs = {'real': True}
        lo, hi = interval.inf, interval.sup
        if lo.is_positive or (lo.is_zero and interval.left_open):
            kwargs['positive'] = True
        elif lo.is_nonnegative:
            kwargs['nonnegative'] = True
        elif hi.is_negative or (hi.is_zero and interval.right_open):
            kwargs['negative'] = True
        elif hi.is_nonpositive:
            kwargs['nonpositive'] = True
        dummy = sp.Dummy(str(var), **kwargs)
        self.push(dummy, interval)
        return dummy

    def representatives(self, var: sp.Symbol) -> List[sp.Expr]:
        """
        Trial values for a variable left free by a solve: zero, the finite
        range ends and the midpoint (or +-1 on an unbounded range), keeping
        only values allowed by the range and the symbol's sign assumptions.
        """
        interval = self.range_of(var)
        trials = [sp.S.Zero]
        if isinstance(interval, sp.Interval):
            lo, hi = interval.inf, interval.sup
            if lo.is_finite:
                trials.append(lo)
            if hi.is_finite:
                trials.append(hi)
            if lo.is_finite and hi.is_finite:
                trials.append((lo + hi) / 2)
            else:
                trials += [sp.S.One, sp.S.NegativeOne]
        else:
            trials += [sp.S.One, sp.S.NegativeOne]

        result = []
        for t in trials:
            if t in result or self.contains(var, t) is False:
                continue
            if (var.is_positive and not t > 0) or (var.is_negative and not t < 0):
                continue
            if (var.is_nonnegative and t < 0) or (var.is_nonpositive and t > 0):
                continue
            result.append(t)
        return result

    def contains(self, var: sp.Symbol, value: sp.Expr) -> Optional[bool]:
        """Whether ``value`` lies in the scoped range of ``var``."""
        interval = self.range_of(var)
        if interval == REAL_LINE:
            return True
        value = sp.sympify(value)
        if value.is_number:
            try:
                z = complex(sp.N(value, 30))
            except (TypeError, ValueError):
                return None
            if abs(z.imag) > self.tol:
                return False
            inside = sp.Interval(interval.inf - self.tol, interval.sup + self.tol)
            if interval.left_open and interval.inf.is_finite and z.real <= float(interval.inf) + self.tol:
                return False
            if interval.right_open and interval.sup.is_finite and z.real >= float(interval.sup) - self.tol:
                return False
            return bool(inside.contains(sp.Float(z.real)))
        answer = interval.contains(value)
        if answer is sp.true:
            return True
        if answer is sp.false:
            return False
        return None


@dataclass
class SymbolicEngine:
    """
    SymPy-backed algebra collaborator.

    Attributes:
        zero_tol: Tolerance for deciding signs of approximate numbers
        root_samples: Sampling density for numeric root bracketing
    """
    zero_tol: float = 1e-10
    root_samples: int = 200

    # Calculus

    def differentiate(self, expr: sp.Expr, var: sp.Symbol, k: int = 1) -> sp.Expr:
        return sp.diff(expr, var, k)

    def gradient(self, expr: sp.Expr, variables: Sequence[sp.Symbol]) -> List[sp.Expr]:
        return [sp.diff(expr, v) for v in variables]

    def hessian(self, expr: sp.Expr, variables: Sequence[sp.Symbol]) -> sp.Matrix:
        return sp.hessian(expr, list(variables))

    def jacobian(self, exprs: Sequence[sp.Expr], variables: Sequence[sp.Symbol]) -> sp.Matrix:
        return sp.Matrix(list(exprs)).jacobian(list(variables))

    # Linear algebra

    def determinant(self, matrix: sp.Matrix) -> sp.Expr:
        return self.normalize(matrix.det())

    def rank(self, matrix: sp.Matrix) -> int:
        return matrix.rank(simplify=True)

    def invert(self, matrix: sp.Matrix) -> sp.Matrix:
        try:
            return matrix.inv()
        except ValueError as exc:
            raise SingularJacobianError(f"Matrix is not invertible: {exc}") from exc

    def eigenvalues(self, matrix: sp.Matrix) -> List[sp.Expr]:
        """
        Eigenvalues with multiplicity.

        Numeric matrices go through NumPy; matrices with free symbols
        through SymPy.
        """
        if not matrix.free_symbols:
            try:
                a = np.array(matrix.evalf(), dtype=np.float64)
            except TypeError as exc:
                raise ExternalSolverError(f"Non-real matrix entries: {exc}") from exc
            if np.allclose(a, a.T):
                values = np.linalg.eigvalsh(a)
            else:
                values = np.real_if_close(np.linalg.eigvals(a))
            return [sp.Float(float(np.real(v))) for v in values]
        try:
            eigs = matrix.eigenvals()
        except (NotImplementedError, ValueError) as exc:
            raise ExternalSolverError(f"Eigenvalue computation failed: {exc}") from exc
        result = []
        for value, multiplicity in eigs.items():
            result.extend([value] * multiplicity)
        return result

    # Solving

    def solve(
        self,
        equations: Sequence[sp.Expr],
        unknowns: Sequence[sp.Symbol]
    ) -> List[Dict[sp.Symbol, sp.Expr]]:
        """
        Solve a system; returns a (possibly empty) list of solution dicts.

        Unknowns missing from a dict are free. A system that vanishes
        identically has the single solution ``{}``.
        """
        equations = [e for e in (sp.sympify(e) for e in equations) if e != 0]
        if not equations:
            return [{}]
        try:
            return sp.solve(equations, list(unknowns), dict=True)
        except (NotImplementedError, PolynomialError) as exc:
            raise ExternalSolverError(f"Symbolic solve failed: {exc}") from exc

    def nsolve(
        self,
        equations: Sequence[sp.Expr],
        unknowns: Sequence[sp.Symbol],
        guess: Sequence[float]
    ) -> Dict[sp.Symbol, sp.Expr]:
        """Find one numeric solution near ``guess``."""
        try:
            result = sp.nsolve(list(equations), list(unknowns), list(guess))
        except (ValueError, ZeroDivisionError, TypeError) as exc:
            raise ExternalSolverError(f"Numeric solve did not converge: {exc}") from exc
        values = list(result) if isinstance(result, sp.MatrixBase) else [result]
        return dict(zip(unknowns, values))

    def solve_univariate(
        self,
        expr: sp.Expr,
        var: sp.Symbol,
        lower: sp.Expr = -sp.oo,
        upper: sp.Expr = sp.oo
    ) -> List[sp.Expr]:
        """
        Real roots of ``expr`` in [lower, upper].

        On a bounded interval roots are found with ``solveset``; if the
        result is not a finite set they are bracketed numerically.
        """
        expr = sp.sympify(expr)
        lower, upper = sp.sympify(lower), sp.sympify(upper)
        if not expr.has(var):
            return []

        if lower.is_finite and upper.is_finite:
            try:
                sol = sp.solveset(expr, var, domain=sp.Interval(lower, upper))
            except (NotImplementedError, ValueError, TypeError):
                sol = None
            if sol is sp.S.EmptySet:
                return []
            if isinstance(sol, sp.FiniteSet):
                return list(sol)
            return self.numeric_roots_in_interval(expr, var, lower, upper)

        try:
            roots = sp.solve(expr, var)
        except (NotImplementedError, PolynomialError) as exc:
            raise ExternalSolverError(f"Cannot find zeros of {expr}: {exc}") from exc
        interval = sp.Interval(lower, upper)
        return [r for r in roots if interval.contains(r) is not sp.false]

    def numeric_roots_in_interval(
        self,
        expr: sp.Expr,
        var: sp.Symbol,
        lower: sp.Expr,
        upper: sp.Expr
    ) -> List[sp.Expr]:
        """Bracket sign changes on a sample grid and refine with brentq."""
        f = sp.lambdify(var, expr, modules="numpy")

        def value(x: float) -> float:
            try:
                with np.errstate(all="ignore"):
                    z = complex(f(x))
            except (TypeError, ValueError, ZeroDivisionError, OverflowError):
                return float("nan")
            if abs(z.imag) > self.zero_tol:
                return float("nan")
            return z.real

        xs = np.linspace(float(lower), float(upper), self.root_samples + 1)
        ys = np.array([value(x) for x in xs])

        roots: List[sp.Expr] = []
        for i, (x, y) in enumerate(zip(xs, ys)):
            if y == 0.0:
                roots.append(sp.Float(x))
                continue
            if i + 1 == len(xs):
                break
            y_next = ys[i + 1]
            if not (np.isfinite(y) and np.isfinite(y_next)) or y * y_next > 0 or y_next == 0.0:
                continue
            try:
                r = brentq(value, x, xs[i + 1], xtol=1e-14)
            except (ValueError, RuntimeError) as exc:
                raise ExternalSolverError(f"Root bracketing failed: {exc}") from exc
            # sign changes across poles are not roots
            if abs(value(r)) < 1e-8:
                roots.append(sp.Float(r))
        return roots

    # Normalization and substitution

    def normalize(self, expr: sp.Expr) -> sp.Expr:
        """Rational normal form (Piecewise expressions are folded instead)."""
        expr = sp.sympify(expr)
        if expr.has(sp.Piecewise):
            return sp.piecewise_fold(expr)
        try:
            return sp.cancel(sp.together(expr))
        except PolynomialError:
            return sp.together(expr)

    def simplify(self, expr):
        if isinstance(expr, (list, tuple)):
            return type(expr)(self.simplify(e) for e in expr)
        return sp.simplify(expr)

    def substitute(
        self,
        expr,
        variables: Sequence[sp.Symbol],
        values: Sequence[sp.Expr]
    ):
        return expr.subs(dict(zip(variables, values)), simultaneous=True)

    # Three-valued comparisons

    def _numeric(self, expr: sp.Expr) -> Optional[complex]:
        if expr.free_symbols:
            return None
        try:
            return complex(sp.N(expr, 30))
        except (TypeError, ValueError):
            return None

    def is_finite(self, expr: sp.Expr) -> bool:
        return not sp.sympify(expr).has(sp.nan, sp.zoo, sp.oo, -sp.oo)

    def is_zero(self, expr: sp.Expr) -> Optional[bool]:
        expr = sp.sympify(expr)
        if not self.is_finite(expr):
            return False
        z = self.normalize(expr)
        if z == 0:
            return True
        exact = z.is_zero
        if exact is not None and not z.has(sp.Float):
            return exact
        v = self._numeric(z)
        if v is None:
            return exact
        return abs(v) <= self.zero_tol

    def is_strictly_positive(self, expr: sp.Expr) -> Optional[bool]:
        expr = sp.sympify(expr)
        if not self.is_finite(expr):
            return None
        exact = expr.is_positive
        if exact is not None and not expr.has(sp.Float):
            return exact
        v = self._numeric(expr)
        if v is None:
            return exact
        if abs(v.imag) > self.zero_tol:
            return False
        return v.real > self.zero_tol

    def is_strictly_greater(self, a: sp.Expr, b: sp.Expr) -> Optional[bool]:
        return self.is_strictly_positive(sp.sympify(a) - sp.sympify(b))

    def is_real(self, expr: sp.Expr) -> Optional[bool]:
        expr = sp.sympify(expr)
        exact = expr.is_extended_real
        if exact is not None:
            return exact
        v = self._numeric(expr)
        if v is None:
            return None
        return abs(v.imag) <= self.zero_tol * max(1.0, abs(v))

    def sign(self, expr: sp.Expr) -> Optional[int]:
        if self.is_zero(expr):
            return 0
        if self.is_strictly_positive(expr):
            return 1
        if self.is_strictly_positive(-sp.sympify(expr)):
            return -1
        return None
