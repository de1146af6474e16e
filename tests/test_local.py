"""
Tests for the Local Extremum Classifier
"""

import pytest
import sympy as sp
from symopt import extrema
from symopt.core.errors import InvalidArityError
from symopt.core.output_gate import Classification, GlobalExtremaResult
from symopt.receipts import ActionType
from symopt.solver import ExtremaConfig, find_local_extrema, local_extrema

x, y, z = sp.symbols('x y z')
half = sp.Rational(1, 2)


class TestConstrained:
    """Test bordered Hessian classification."""

    def test_line_minimum(self):
        """x^2 + y^2 on x + y = 1 has a unique minimum at (1/2, 1/2)."""
        minima, maxima = extrema(x**2 + y**2, [sp.Eq(x + y, 1)], [x, y])
        assert minima == [(half, half)]
        assert maxima == []

    def test_line_maximum(self):
        """x*y on x + y = 1 has no minimum and a maximum of 1/4 at (1/2, 1/2)."""
        result = find_local_extrema(x * y, [sp.Eq(x + y, 1)], [x, y])
        assert result.minima == []
        assert result.maxima == [(half, half)]
        assert result.points[0].value == sp.Rational(1, 4)

    def test_points_deduplicated_across_arrangements(self):
        """Both arrangements find the same point; it is reported once."""
        result = find_local_extrema(x**2 + y**2, [x + y - 1], [x, y])
        assert len(result.points) == 1
        assert len(result.receipts.of_type(ActionType.ARRANGEMENT_ACCEPT)) == 2

    def test_sphere_three_variables(self):
        """x + y + z on the unit sphere has one minimum and one maximum."""
        result = find_local_extrema(x + y + z, [x**2 + y**2 + z**2 - 1], [x, y, z])
        s = 1 / sp.sqrt(3)
        assert result.classification_of((-s, -s, -s)) == Classification.MIN
        assert result.classification_of((s, s, s)) == Classification.MAX

    def test_inequalities_rejected(self):
        """Only equality constraints are accepted."""
        with pytest.raises(InvalidArityError):
            find_local_extrema(x + y, [sp.Le(x, 1)], [x, y])


class TestUnconstrained:
    """Test eigenvalue, derivative and higher-order classification."""

    def test_saddle(self):
        """x^2 - y^2 has a saddle at the origin."""
        result = find_local_extrema(x**2 - y**2, [], [x, y])
        assert result.saddles == [(0, 0)]
        assert result.minima == []
        assert result.maxima == []

    def test_eigenvalue_minimum(self):
        """A positive definite quadratic has a minimum."""
        result = find_local_extrema(x**2 + x * y + y**2 - 3 * x, [], [x, y])
        assert result.minima == [(2, -1)]

    def test_quartic_minimum(self):
        """x^4 + y^4 needs the fourth-order sphere test."""
        result = find_local_extrema(x**4 + y**4, [], [x, y])
        assert result.classification_of((0, 0)) == Classification.MIN

    def test_quartic_saddle(self):
        """x^4 - y^4 changes sign around the origin."""
        result = find_local_extrema(x**4 - y**4, [], [x, y])
        assert result.classification_of((0, 0)) == Classification.SADDLE

    def test_cubic_saddle(self):
        """An odd-order first nonzero term is a saddle."""
        result = find_local_extrema(x**3 + y**3, [], [x, y])
        assert result.classification_of((0, 0)) == Classification.SADDLE

    def test_order_limit(self):
        """Below the order of the first nonzero term the point is undecided."""
        result = find_local_extrema(x**4 + y**4, [], [x, y], max_order=3)
        assert result.classification_of((0, 0)) == Classification.UNDECIDED
        assert result.receipts.of_type(ActionType.INCONCLUSIVE)


class TestTaylorFallback:
    """Test the unit-sphere test behind inconclusive second-order tests."""

    def test_possible_min(self):
        """x^2 + y^4: the quadratic term vanishes along y, so only possible-min."""
        result = find_local_extrema(x**2 + y**4, [], [x, y])
        assert result.classification_of((0, 0)) == Classification.POSSIBLE_MIN
        assert result.receipts.of_type(ActionType.INCONCLUSIVE)

    def test_possible_max(self):
        """-(x^2 + y^4) is the mirror case."""
        result = find_local_extrema(-(x**2 + y**4), [], [x, y])
        assert result.classification_of((0, 0)) == Classification.POSSIBLE_MAX

    def test_constrained_fallback(self):
        """A zero bordered-Hessian minor hands over to the sphere test."""
        result = find_local_extrema(x**4 + y**4, [sp.Eq(z, 0)], [x, y, z])
        assert result.minima == [(0, 0, 0)]

    def test_line_of_critical_points(self):
        """(x + y)^2 is stationary on a whole line; one point of it is classified."""
        result = find_local_extrema((x + y)**2, [], [x, y])
        assert result.classification_of((0, 0)) == Classification.POSSIBLE_MIN
        assert result.receipts.of_type(ActionType.FAMILY_SAMPLED)

    def test_empty_sphere(self, monkeypatch):
        """No critical point on the sphere leaves the point undecided."""
        monkeypatch.setattr(
            local_extrema, "solve_global",
            lambda problem, **kwargs: GlobalExtremaResult(problem.variables)
        )
        result = find_local_extrema(x**4 + y**4, [], [x, y])
        assert result.classification_of((0, 0)) == Classification.UNDECIDED
        empty = result.receipts.of_type(ActionType.SPHERE_EMPTY)
        assert len(empty) == 1
        assert empty[0].params["order"] == 4


class TestUnivariate:
    """Test the derivative walk."""

    def test_cubic(self):
        """x^3 - 3x: minimum at 1, maximum at -1."""
        assert extrema(x**3 - 3 * x) == ([1], [-1])

    def test_inflection(self):
        """x^3 has an inflection point, neither min nor max."""
        result = find_local_extrema(x**3)
        assert result.saddles == [(0,)]
        assert extrema(x**3) == ([], [])

    def test_flat_minimum(self):
        """x^4 is a minimum found at the fourth derivative."""
        assert extrema(x**4) == ([0], [])

    def test_open_range(self):
        """Critical points on the range boundary are excluded."""
        assert extrema(x**2, variables=[(x, 0, 1)]) == ([], [])
        assert extrema((x - half)**2, variables=[(x, 0, 1)]) == ([half], [])


class TestOptions:
    """Test classification options and reporting."""

    def test_max_order_zero(self):
        """Order 0 returns the unclassified critical points."""
        points = extrema(x**2 + y**2, [sp.Eq(x + y, 1)], [x, y], max_order=0)
        assert points == [(half, half)]
        result = find_local_extrema(x**2 + y**2, [x + y - 1], [x, y], max_order=0)
        assert result.points[0].classification == Classification.UNCLASSIFIED

    def test_receipts_verify(self):
        """Every classification is recorded in a valid chain."""
        result = find_local_extrema(x * y, [x + y - 1], [x, y])
        chain = result.receipts
        assert chain.verify_chain()
        assert len(chain.of_type(ActionType.CLASSIFIED)) == 1
        assert chain.receipts[-1].action == ActionType.TERMINATE

    def test_initial_point(self):
        """A starting point switches to a numeric search."""
        result = find_local_extrema(sp.cos(x) + x**2 / 10, initial=[3.0])
        assert len(result.points) == 1
        point = result.points[0]
        assert point.classification == Classification.MIN
        assert 2.5 < float(point.coordinates[0]) < 3.5

    def test_initial_arity(self):
        """The starting point must give every variable."""
        with pytest.raises(InvalidArityError):
            find_local_extrema(x**2 + y**2, [], [x, y], initial=[1.0])

    def test_verbose_reports_saddle(self, capsys):
        """Verbose runs print non-extremal points."""
        find_local_extrema(x**2 - y**2, [], [x, y], config=ExtremaConfig(verbose=True))
        assert "saddle" in capsys.readouterr().out
