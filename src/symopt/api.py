"""
Public API

Programmatic entry points:
- find_global_extrema / find_local_extrema: full result objects
- nth_partial_derivative / taylor_expansion: implicit differentiation
- minimize / maximize / extrema / implicit_diff: compact front-ends
"""

from typing import List, Optional, Sequence, Tuple, Union

import sympy as sp

from .contract import ConstrainedProblem
from .core.errors import InvalidArityError
from .core.output_gate import Classification, LocalExtremaResult, Point
from .diff.arrangements import check_jacobian
from .diff.cache import PartialDerivativeCache
from .solver.config import ExtremaConfig
from .solver.global_extrema import find_global_extrema, solve_global
from .solver.local_extrema import find_local_extrema


def _problem(objective, equalities, variables) -> ConstrainedProblem:
    if isinstance(equalities, sp.Basic):
        equalities = [equalities]
    problem = ConstrainedProblem.create(objective, equalities, variables)
    if problem.inequalities:
        raise InvalidArityError("Only equality constraints define dependent variables")
    return problem


def _cache(problem: ConstrainedProblem, config: Optional[ExtremaConfig]) -> PartialDerivativeCache:
    config = config or ExtremaConfig()
    engine = config.make_engine()
    check_jacobian(problem.equalities, problem.variables, engine)
    return PartialDerivativeCache(
        problem.objective, problem.equalities, problem.variables, engine
    )


def nth_partial_derivative(
    objective,
    equalities: Sequence,
    variables: Sequence,
    multi_index: Sequence[int],
    config: Optional[ExtremaConfig] = None
) -> sp.Expr:
    """
    Partial derivative of ``objective`` for a multi-index over the free
    variables; the last ``len(equalities)`` variables are dependent.
    """
    problem = _problem(objective, equalities, variables)
    return _cache(problem, config).derivative(multi_index)


def taylor_expansion(
    objective,
    equalities: Sequence,
    variables: Sequence,
    point: Sequence,
    order: int,
    config: Optional[ExtremaConfig] = None
) -> sp.Expr:
    """
    Taylor polynomial of degree ``order`` at ``point`` in the free
    variables; ``point`` gives a value for every variable.
    """
    problem = _problem(objective, equalities, variables)
    return _cache(problem, config).taylor([sp.sympify(a) for a in point], order)


def minimize(
    objective,
    constraints: Sequence = (),
    variables: Optional[Sequence] = None,
    locus: bool = False,
    config: Optional[ExtremaConfig] = None
) -> Union[Optional[sp.Expr], Tuple[Optional[sp.Expr], List[Point]]]:
    """
    Global minimum of ``objective`` under the constraints.

    Returns:
        The minimum value (None if no candidate was found), or the pair
        (value, minimizers) when ``locus`` is set
    """
    problem = ConstrainedProblem.create(objective, _as_list(constraints), variables)
    result = solve_global(problem, config=config)
    if locus:
        return result.min_value, _unwrap(result.minimizers, problem.n_vars)
    return result.min_value


def maximize(
    objective,
    constraints: Sequence = (),
    variables: Optional[Sequence] = None,
    locus: bool = False,
    config: Optional[ExtremaConfig] = None
) -> Union[Optional[sp.Expr], Tuple[Optional[sp.Expr], List[Point]]]:
    """Global maximum, computed as the minimum of the negated objective."""
    result = minimize(-sp.sympify(objective), constraints, variables, locus=True, config=config)
    value = None if result[0] is None else -result[0]
    if locus:
        return value, result[1]
    return value


def extrema(
    objective,
    constraints: Sequence = (),
    variables: Optional[Sequence] = None,
    max_order: Optional[int] = None,
    initial: Optional[Sequence] = None,
    config: Optional[ExtremaConfig] = None
) -> Union[Tuple[List[Point], List[Point]], List[Point]]:
    """
    Strict local minima and maxima.

    Returns:
        (minima, maxima), or the list of critical points when
        ``max_order`` is 0. One-variable points are plain expressions.
    """
    result: LocalExtremaResult = find_local_extrema(
        objective, _as_list(constraints), variables,
        max_order=max_order, initial=initial, config=config
    )
    n = len(result.variables)
    if result.max_order == 0:
        return _unwrap([p.coordinates for p in result.points], n)
    return (
        _unwrap(result.by_class(Classification.MIN), n),
        _unwrap(result.by_class(Classification.MAX), n),
    )


def implicit_diff(f, constraints, dependent, *diff_vars, config: Optional[ExtremaConfig] = None) -> sp.Expr:
    """
    Differentiate ``f`` where the ``dependent`` variables are defined by
    the constraints as functions of the differentiation variables.

    ``diff_vars`` uses repeated-variable notation: ``x, x, z`` means
    d^3/dx^2 dz. For example, with x**2*y + y**2 = 1 and f = y the
    derivative by x is -2*x*y/(x**2 + 2*y).
    """
    constraints = _as_list(constraints)
    dependent = list(dependent) if isinstance(dependent, (list, tuple)) else [dependent]
    if len(dependent) != len(constraints):
        raise InvalidArityError(
            f"{len(constraints)} constraints define {len(dependent)} dependent variables"
        )
    if not diff_vars:
        raise InvalidArityError("At least one differentiation variable is required")

    free: List[sp.Symbol] = []
    for v in diff_vars:
        if v in dependent:
            raise InvalidArityError(f"Cannot differentiate with respect to dependent variable {v}")
        if v not in free:
            free.append(v)

    problem = _problem(f, constraints, free + dependent)
    cache = _cache(problem, config)
    return cache.derivative_wrt(diff_vars)


def _as_list(items) -> list:
    if items is None:
        return []
    if isinstance(items, sp.Basic):
        return [items]
    return list(items)


def _unwrap(points: Sequence[Point], n_vars: int) -> list:
    """One-variable points are reported as plain values."""
    if n_vars == 1:
        return [p[0] for p in points]
    return list(points)


__all__ = [
    'find_global_extrema',
    'find_local_extrema',
    'nth_partial_derivative',
    'taylor_expansion',
    'minimize',
    'maximize',
    'extrema',
    'implicit_diff',
]
