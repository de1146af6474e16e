"""
Tests for the Public API Front-Ends
"""

import pytest
import sympy as sp
from symopt import (
    InvalidArityError,
    SingularJacobianError,
    implicit_diff,
    nth_partial_derivative,
    taylor_expansion,
)

x, y, z = sp.symbols('x y z')


class TestImplicitDiff:
    """Test implicit differentiation front-end."""

    def test_first_derivative(self):
        """x^2 y + y^2 = 1 gives dy/dx = -2xy / (x^2 + 2y)."""
        d = implicit_diff(y, [sp.Eq(x**2 * y + y**2, 1)], y, x)
        assert sp.simplify(d + 2 * x * y / (x**2 + 2 * y)) == 0

    def test_repeated_variables(self):
        """x, x means the second derivative."""
        d = implicit_diff(y, x**2 + y - 1, y, x, x)
        assert d == -2

    def test_function_of_both(self):
        """f = x + y on x^2 + y^2 = 1 gives 1 - x/y."""
        d = implicit_diff(x + y, [x**2 + y**2 - 1], [y], x)
        assert sp.simplify(d - (1 - x / y)) == 0

    def test_mixed_partial(self):
        """z defined by x*y*z = 1: z_xy = 1/(x^2 y^2)."""
        d = implicit_diff(z, [x * y * z - 1], z, x, y)
        assert sp.simplify(d.subs(z, 1 / (x * y)) - 1 / (x**2 * y**2)) == 0

    def test_other_symbols_are_constants(self):
        """Symbols that are not differentiated are held fixed."""
        a = sp.Symbol('a')
        d = implicit_diff(y, [a * x + y], y, x)
        assert d == -a

    def test_dependent_in_diff_vars(self):
        """Differentiating by a dependent variable is an error."""
        with pytest.raises(InvalidArityError):
            implicit_diff(y, [x + y], y, y)

    def test_arity(self):
        """One dependent variable per constraint."""
        with pytest.raises(InvalidArityError):
            implicit_diff(y, [x + y, x - y], y, x)
        with pytest.raises(InvalidArityError):
            implicit_diff(y, [x + y], y)

    def test_singular(self):
        """y cannot be solved from x = 1."""
        with pytest.raises(SingularJacobianError):
            implicit_diff(y, [x - 1], y, x)


class TestDerivativeFrontEnds:
    """Test multi-index derivative and Taylor front-ends."""

    def test_nth_partial_derivative(self):
        """Multi-index over the free variables."""
        d = nth_partial_derivative(y, [x**2 + y - 1], [x, y], (2,))
        assert d == -2

    def test_taylor_expansion(self):
        """Taylor polynomial of the implicit branch of a circle at (0, 1)."""
        t = taylor_expansion(y, [x**2 + y**2 - 1], [x, y], [0, 1], 2)
        assert sp.expand(t - (1 - x**2 / 2)) == 0

    def test_inequalities_rejected(self):
        """Only equalities define dependent variables."""
        with pytest.raises(InvalidArityError):
            nth_partial_derivative(y, [sp.Le(x + y, 1)], [x, y], (1,))
