"""
Global Extrema Evaluator

Collects candidate points, evaluates the objective at each and keeps the
running minimum (with every minimizer) and the running maximum value.

Candidates:
- One variable: zeros of f' (piece by piece for piecewise f'), zeros of
  the denominator of f', points where f is not differentiable, finite
  ends of the variable range and zeros of the inequality constraints.
  With equality constraints only their zeros are candidates.
- Several variables: KKT points, with finite variable bounds added as
  inequality constraints.

Each variable is replaced by a real surrogate symbol carrying sign
assumptions from its range while solving; the ranges are pushed into the
assumption context for the duration of the query only.
"""

from typing import List, Optional, Sequence

import sympy as sp

from ..contract import ConstrainedProblem, parse_constraint
from ..core.errors import InvalidArityError
from ..core.output_gate import GlobalExtremaResult, OutputGate, Point
from ..engine import AssumptionContext, SymbolicEngine
from ..expr_kinds import non_smooth_points
from ..receipts import ActionType, ReceiptChain
from .config import ExtremaConfig
from .kkt import solve_kkt


def find_global_extrema(
    objective,
    equalities: Sequence = (),
    inequalities: Sequence = (),
    variables: Optional[Sequence] = None,
    config: Optional[ExtremaConfig] = None,
    receipts: Optional[ReceiptChain] = None
) -> GlobalExtremaResult:
    """
    Global minimum, minimizers and global maximum of ``objective``.

    Args:
        objective: Objective expression
        equalities: Expressions h (h = 0) or Eq relationals
        inequalities: Expressions g (g <= 0) or <= / >= relationals
        variables: Symbols or (symbol, lower, upper) tuples
        config: Solver configuration
        receipts: Receipt chain to append to (a new one by default)

    Returns:
        GlobalExtremaResult; ``min_value is None`` if there are no candidates
    """
    eqs = []
    for c in equalities:
        kind, expr = parse_constraint(c)
        if kind != "eq":
            raise InvalidArityError(f"{c} is not an equality constraint")
        eqs.append(expr)
    ineqs = []
    for c in inequalities:
        expr = sp.sympify(c)
        if isinstance(expr, sp.Expr):
            ineqs.append(expr)
            continue
        kind, expr = parse_constraint(c)
        if kind != "ineq":
            raise InvalidArityError(f"{c} is not an inequality constraint")
        ineqs.append(expr)

    constraints = eqs + [sp.Le(g, 0, evaluate=False) for g in ineqs]
    problem = ConstrainedProblem.create(objective, constraints, variables)
    return solve_global(problem, config=config, receipts=receipts)


def solve_global(
    problem: ConstrainedProblem,
    config: Optional[ExtremaConfig] = None,
    engine: Optional[SymbolicEngine] = None,
    receipts: Optional[ReceiptChain] = None
) -> GlobalExtremaResult:
    """Run the global evaluator on a parsed problem."""
    config = config or ExtremaConfig()
    engine = engine or config.make_engine()
    receipts = receipts if receipts is not None else ReceiptChain()
    context = AssumptionContext(engine.zero_tol)

    receipts.add_receipt(ActionType.INIT, problem.to_canonical(), input_data=problem.to_canonical())

    with context.scope():
        surrogates = [context.surrogate(v, r) for v, r in zip(problem.variables, problem.ranges)]
        to_s = dict(zip(problem.variables, surrogates))
        f = problem.objective.subs(to_s)
        h = [e.subs(to_s) for e in problem.equalities]
        g = [e.subs(to_s) for e in problem.inequalities]

        if problem.n_vars == 1:
            x = surrogates[0]
            bounds = problem.simple_bounds(problem.variables[0])
            if bounds is sp.S.EmptySet:
                candidates = []
            else:
                points = univariate_candidates(f, g, h, x, bounds, engine)
                candidates = [(p,) for p in points if _feasible((p,), [x], g, h, engine, context)]
        else:
            bound_g = [e.subs(to_s) for e in problem.bound_inequalities()]
            candidates = solve_kkt(
                f, g + bound_g, h, surrogates, engine, context,
                receipts=receipts, max_inequalities=config.max_inequalities
            )

    result = GlobalExtremaResult(variables=problem.variables, receipts=receipts)
    for point in candidates:
        _evaluate(problem, point, result, engine, receipts)

    if config.simplify_output and not result.is_empty:
        result.min_value = sp.simplify(result.min_value)
        result.max_value = sp.simplify(result.max_value)
        result.minimizers = [tuple(engine.simplify(list(p))) for p in result.minimizers]

    if config.verbose:
        print(
            f"Candidates: {len(result.candidates)} | "
            f"Min: {result.min_value} | "
            f"Max: {result.max_value}"
        )

    receipts.add_receipt(
        ActionType.TERMINATE,
        {"min_value": result.min_value, "max_value": result.max_value,
         "n_candidates": len(result.candidates)},
        output_data=result.to_canonical()
    )

    gate = OutputGate(engine)
    return gate.emit_global(result, problem.equalities, problem.inequalities)


def univariate_candidates(
    f: sp.Expr,
    g: Sequence[sp.Expr],
    h: Sequence[sp.Expr],
    x: sp.Symbol,
    bounds: sp.Interval,
    engine: SymbolicEngine
) -> List[sp.Expr]:
    """Candidate points of a one-variable problem on ``bounds``."""
    lo, hi = bounds.inf, bounds.sup
    found: List[sp.Expr] = []

    def extend(points):
        for p in points:
            if not any(engine.is_zero(p - q) is True for q in found):
                found.append(p)

    if h:
        for e in h:
            extend(engine.solve_univariate(e, x, lo, hi))
        return found

    df = engine.differentiate(f, x)
    if df.has(sp.Piecewise):
        folded = sp.piecewise_fold(df)
        pieces = folded.args if isinstance(folded, sp.Piecewise) else [(folded, sp.true)]
        for piece, cond in pieces:
            for r in engine.solve_univariate(piece, x, lo, hi):
                if cond.subs(x, r) is not sp.false:
                    extend([r])
    else:
        extend(engine.solve_univariate(df, x, lo, hi))
        _, den = sp.fraction(sp.together(df))
        if den.has(x):
            extend(engine.solve_univariate(den, x, lo, hi))

    extend(non_smooth_points(f, x, engine, lo, hi))
    extend([e for e in (lo, hi) if e.is_finite])
    for e in g:
        extend(engine.solve_univariate(e, x, lo, hi))
    return found


def _feasible(
    point: Point,
    variables: Sequence[sp.Symbol],
    g: Sequence[sp.Expr],
    h: Sequence[sp.Expr],
    engine: SymbolicEngine,
    context: AssumptionContext
) -> bool:
    at = dict(zip(variables, point))
    for v, p in at.items():
        if engine.is_real(p) is False or context.contains(v, p) is False:
            return False
    if any(engine.is_strictly_positive(e.subs(at)) is True for e in g):
        return False
    return not any(engine.is_zero(e.subs(at)) is False for e in h)


def _evaluate(
    problem: ConstrainedProblem,
    point: Point,
    result: GlobalExtremaResult,
    engine: SymbolicEngine,
    receipts: ReceiptChain
) -> None:
    """Fold one candidate into the running minimum and maximum."""
    value = problem.objective.subs(dict(zip(problem.variables, point)), simultaneous=True)
    value = engine.normalize(value)
    if not engine.is_finite(value) or engine.is_real(value) is False:
        receipts.add_receipt(
            ActionType.CANDIDATE_DROPPED,
            {"reason": "objective not finite", "point": list(point)}
        )
        return

    result.candidates.append(point)
    receipts.add_receipt(
        ActionType.CANDIDATE_EVALUATED,
        {"point": list(point), "value": value}
    )

    if result.min_value is not None and engine.is_zero(value - result.min_value) is True:
        if not any(all(engine.is_zero(a - b) is True for a, b in zip(point, p))
                   for p in result.minimizers):
            result.minimizers.append(point)
    elif result.min_value is None or engine.is_strictly_greater(result.min_value, value) is True:
        result.min_value = value
        result.minimizers = [point]
        receipts.add_receipt(ActionType.INCUMBENT_UPDATE, {"min_value": value})

    if result.max_value is None or engine.is_strictly_greater(value, result.max_value) is True:
        result.max_value = value
