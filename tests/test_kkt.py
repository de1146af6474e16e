"""
Tests for the KKT Critical-Point Solver
"""

import pytest
import sympy as sp
from symopt.core.errors import InvalidArityError
from symopt.engine import AssumptionContext, SymbolicEngine
from symopt.receipts import ActionType, ReceiptChain
from symopt.solver.kkt import parametric_instances, solve_kkt

x, y = sp.symbols('x y', real=True)


@pytest.fixture
def engine():
    return SymbolicEngine()


class TestKKT:
    """Test KKT point enumeration."""

    def test_active_half_plane(self, engine):
        """min x^2 + y^2 s.t. x + y >= 1 has its KKT point on the boundary."""
        chain = ReceiptChain()
        points = solve_kkt(
            x**2 + y**2, [1 - x - y], [], [x, y], engine, AssumptionContext(), receipts=chain
        )
        assert points == [(sp.Rational(1, 2), sp.Rational(1, 2))]
        assert len(chain.of_type(ActionType.PATTERN_SOLVED)) == 2

    def test_inactive_constraint(self, engine):
        """An interior minimum needs no active constraint; the wrong-sign multiplier is dropped."""
        points = solve_kkt(x**2, [x - 1], [], [x], engine, AssumptionContext())
        assert points == [(0,)]

    def test_equality_constraint(self, engine):
        """Lagrange points of x*y on x + y = 1."""
        points = solve_kkt(x * y, [], [x + y - 1], [x, y], engine, AssumptionContext())
        assert points == [(sp.Rational(1, 2), sp.Rational(1, 2))]

    def test_candidates_feasible(self, engine):
        """Every returned point satisfies every inequality."""
        g = [x**2 + y**2 - 4, -x]
        points = solve_kkt(x + y, g, [], [x, y], engine, AssumptionContext())
        assert points
        for p in points:
            at = dict(zip([x, y], p))
            for gj in g:
                assert engine.is_strictly_positive(gj.subs(at)) is not True

    def test_range_filter(self, engine):
        """Points outside the scoped ranges are dropped."""
        ctx = AssumptionContext()
        with ctx.scope():
            s = ctx.surrogate(x, sp.Interval(1, 2))
            points = solve_kkt((s - 3)**2, [], [], [s], engine, ctx)
        assert points == []

    def test_solution_family(self, engine):
        """A line of stationary points is represented by one of its points."""
        chain = ReceiptChain()
        points = solve_kkt((x + y)**2, [], [], [x, y], engine, AssumptionContext(), receipts=chain)
        assert points == [(0, 0)]
        sampled = chain.of_type(ActionType.FAMILY_SAMPLED)
        assert len(sampled) == 1
        assert sampled[0].params["constant_objective"] is True

    def test_family_instances(self):
        """Free unknowns take representative values from their range."""
        ctx = AssumptionContext()
        with ctx.scope():
            s = ctx.surrogate(x, sp.Interval(1, 2))
            params, instances = parametric_instances({y: 2 * s}, [s, y], ctx)
            assert params == [s]
            assert [(i[s], i[y]) for i in instances] == [
                (1, 2), (2, 4), (sp.Rational(3, 2), 3)
            ]

    def test_isolated_solution_instance(self):
        """A fully determined solution is its own only instance."""
        params, instances = parametric_instances({x: 1, y: 2}, [x, y], AssumptionContext())
        assert params == []
        assert list(instances) == [{x: 1, y: 2}]

    def test_too_many_inequalities(self, engine):
        """The pattern count is limited."""
        with pytest.raises(InvalidArityError):
            solve_kkt(x, [x - i for i in range(3)], [], [x], engine, AssumptionContext(),
                      max_inequalities=2)
