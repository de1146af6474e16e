"""
Tests for the Symbolic Engine and Assumption Context
"""

import pytest
import sympy as sp
from symopt.core.errors import SingularJacobianError
from symopt.engine import AssumptionContext, SymbolicEngine

x, y = sp.symbols('x y')


@pytest.fixture
def engine():
    return SymbolicEngine()


class TestAssumptionContext:
    """Test scoped variable ranges."""

    def test_scope_pops(self):
        """Everything pushed inside a scope is popped on exit."""
        ctx = AssumptionContext()
        with ctx.scope():
            ctx.push(x, sp.Interval(0, 1))
            ctx.push(y, sp.Interval(0, 1))
            assert ctx.depth == 2
        assert ctx.depth == 0

    def test_scope_pops_on_error(self):
        """Ranges are popped when the block raises."""
        ctx = AssumptionContext()
        with pytest.raises(ValueError):
            with ctx.scope():
                ctx.push(x, sp.Interval(0, 1))
                raise ValueError("boom")
        assert ctx.depth == 0

    def test_pop_empty(self):
        """Popping an empty context is an error."""
        with pytest.raises(RuntimeError):
            AssumptionContext().pop()

    def test_range_intersection(self):
        """Ranges pushed for the same variable intersect."""
        ctx = AssumptionContext()
        ctx.push(x, sp.Interval(0, 2))
        ctx.push(x, sp.Interval(1, 3))
        assert ctx.range_of(x) == sp.Interval(1, 2)

    def test_surrogate_assumptions(self):
        """Surrogates carry sign assumptions from their range."""
        ctx = AssumptionContext()
        with ctx.scope():
            s = ctx.surrogate(x, sp.Interval(0, 1))
            assert s.is_real
            assert s.is_nonnegative
            t = ctx.surrogate(y, sp.Interval.open(0, 1))
            assert t.is_positive
            assert ctx.contains(s, sp.Rational(1, 2)) is True
            assert ctx.contains(s, 2) is False
            assert ctx.contains(t, 0) is False

    def test_unbounded_contains(self):
        """Every value lies in the real line."""
        ctx = AssumptionContext()
        assert ctx.contains(x, 100) is True


class TestSolving:
    """Test equation solving."""

    def test_solve_univariate_interval(self, engine):
        """Roots are restricted to the interval."""
        assert engine.solve_univariate(x**2 - 2, x, 0, 2) == [sp.sqrt(2)]

    def test_solve_univariate_unbounded(self, engine):
        """Unbounded search falls back to solve."""
        roots = engine.solve_univariate(x**2 - 4, x)
        assert set(roots) == {-2, 2}

    def test_constant_has_no_roots(self, engine):
        """Expressions free of the variable have no roots."""
        assert engine.solve_univariate(sp.Integer(3), x, 0, 1) == []

    def test_numeric_roots(self, engine):
        """Transcendental roots are bracketed numerically."""
        roots = engine.numeric_roots_in_interval(sp.cos(x) - x, x, 0, 1)
        assert len(roots) == 1
        assert abs(float(roots[0]) - 0.7390851332) < 1e-8

    def test_solve_system(self, engine):
        """Symbolic systems return solution dicts."""
        sols = engine.solve([x + y - 1, x - y], [x, y])
        assert sols == [{x: sp.Rational(1, 2), y: sp.Rational(1, 2)}]

    def test_nsolve(self, engine):
        """Numeric solve near a guess."""
        sol = engine.nsolve([x**2 - 2], [x], [1.0])
        assert abs(float(sol[x]) - 2 ** 0.5) < 1e-10


class TestLinearAlgebra:
    """Test matrix helpers."""

    def test_invert_singular(self, engine):
        """Singular matrices raise SingularJacobianError."""
        with pytest.raises(SingularJacobianError):
            engine.invert(sp.Matrix([[1, 2], [2, 4]]))

    def test_numeric_eigenvalues(self, engine):
        """Numeric matrices use NumPy."""
        eigs = sorted(float(e) for e in engine.eigenvalues(sp.Matrix([[1, 0], [0, -2]])))
        assert eigs == pytest.approx([-2.0, 1.0])

    def test_symbolic_eigenvalues(self, engine):
        """Symbolic matrices keep multiplicities."""
        a = sp.Symbol('a')
        eigs = engine.eigenvalues(sp.Matrix([[a, 0], [0, a]]))
        assert eigs == [a, a]


class TestComparisons:
    """Test three-valued predicates."""

    def test_is_zero(self, engine):
        """Exact and approximate zeros."""
        assert engine.is_zero(sp.sqrt(2) ** 2 - 2) is True
        assert engine.is_zero(sp.Float(1e-12)) is True
        assert engine.is_zero(sp.Integer(1)) is False
        assert engine.is_zero(sp.oo) is False

    def test_is_strictly_positive(self, engine):
        """Signs of numbers and unknowns."""
        assert engine.is_strictly_positive(sp.Rational(1, 3)) is True
        assert engine.is_strictly_positive(-sp.pi) is False
        assert engine.is_strictly_positive(x) is None

    def test_sign(self, engine):
        """Sign is -1, 0, 1 or None."""
        assert engine.sign(sp.Integer(-4)) == -1
        assert engine.sign(sp.Integer(0)) == 0
        assert engine.sign(sp.sqrt(3)) == 1
        assert engine.sign(x) is None

    def test_is_real(self, engine):
        """Real and complex values."""
        assert engine.is_real(sp.sqrt(2)) is True
        assert engine.is_real(sp.I) is False

    def test_normalize(self, engine):
        """Rational normal form cancels common factors."""
        assert engine.normalize((x**2 - 1) / (x - 1)) == x + 1
