"""
KKT Critical-Point Solver

For min f s.t. g_j <= 0, h_i = 0 the Karush-Kuhn-Tucker conditions are

    grad f + sum mu_j grad g_j + sum lambda_i grad h_i = 0
    h_i = 0
    mu_j * g_j = 0, mu_j >= 0, g_j <= 0

Complementary slackness is handled by enumerating all 2^p activity
patterns: an inactive constraint has mu_j = 0 substituted away, an
active one contributes g_j = 0 and keeps mu_j, which must come out
strictly positive.

A pattern whose solutions form a continuum (some unknowns left free) is
represented by one feasible point of the family, found by trying
representative values of the free unknowns.
"""

import itertools
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import sympy as sp

from ..core.errors import InvalidArityError
from ..core.output_gate import Point
from ..engine import AssumptionContext, SymbolicEngine
from ..receipts import ActionType, ReceiptChain

MAX_INEQUALITIES = 16
MAX_INSTANCES = 64


def solve_kkt(
    f: sp.Expr,
    g: Sequence[sp.Expr],
    h: Sequence[sp.Expr],
    variables: Sequence[sp.Symbol],
    engine: SymbolicEngine,
    context: AssumptionContext,
    receipts: Optional[ReceiptChain] = None,
    max_inequalities: int = MAX_INEQUALITIES
) -> List[Point]:
    """
    Find all KKT points.

    Args:
        f: Objective
        g: Inequality constraints (g_j <= 0)
        h: Equality constraints (h_i = 0)
        variables: Problem variables (their ranges live in ``context``)
        engine: SymbolicEngine
        context: Scoped variable ranges
        receipts: Optional receipt chain
        max_inequalities: Limit on len(g), the exponent of the pattern count

    Returns:
        Deduplicated candidate points in ``variables`` order
    """
    if len(g) > max_inequalities:
        raise InvalidArityError(
            f"{len(g)} inequality constraints exceed the limit {max_inequalities}"
        )

    variables = list(variables)
    mus = [sp.Dummy(f"mu{j}", positive=True) for j in range(len(g))]
    lambdas = [sp.Dummy(f"lambda{i}", real=True) for i in range(len(h))]

    grad_f = engine.gradient(f, variables)
    grad_g = [engine.gradient(gj, variables) for gj in g]
    grad_h = [engine.gradient(hi, variables) for hi in h]
    stationarity = []
    for k in range(len(variables)):
        eq = grad_f[k]
        for j, mu in enumerate(mus):
            eq += mu * grad_g[j][k]
        for i, lam in enumerate(lambdas):
            eq += lam * grad_h[i][k]
        stationarity.append(eq)
    base = stationarity + list(h)

    candidates: List[Point] = []
    for pattern in itertools.product((False, True), repeat=len(g)):
        inactive = {mus[j]: 0 for j, active in enumerate(pattern) if not active}
        active_mus = [mus[j] for j, active in enumerate(pattern) if active]
        equations = [e.subs(inactive) for e in base]
        equations += [g[j] for j, active in enumerate(pattern) if active]
        unknowns = variables + active_mus + lambdas

        solutions = engine.solve(equations, unknowns)
        kept = 0
        for sol in solutions:
            point = _accept(sol, f, g, variables, unknowns, active_mus, engine, context, receipts)
            if point is None:
                continue
            if any(_same_point(point, c, engine) for c in candidates):
                continue
            candidates.append(point)
            kept += 1

        if receipts is not None:
            receipts.add_receipt(
                ActionType.PATTERN_SOLVED,
                {
                    "active": [j for j, active in enumerate(pattern) if active],
                    "n_solutions": len(solutions),
                    "n_kept": kept
                }
            )

    return candidates


def parametric_instances(
    sol: Dict[sp.Symbol, sp.Expr],
    unknowns: Sequence[sp.Symbol],
    context: AssumptionContext,
    limit: int = MAX_INSTANCES
) -> Tuple[List[sp.Symbol], Iterator[Dict[sp.Symbol, sp.Expr]]]:
    """
    Split a solution into its free parameters and concrete instances.

    Unknowns the solver left undetermined (absent from ``sol`` or still
    appearing in solved values) are the parameters of a solution family.
    Each instance gives every parameter one of its representative values;
    an isolated solution is its own single instance.
    """
    unknown_set = set(unknowns)
    used = set()
    for value in sol.values():
        used |= sp.sympify(value).free_symbols & unknown_set
    params = [u for u in unknowns if u not in sol or u in used]

    def instances():
        choices = [context.representatives(p) for p in params]
        for values in itertools.islice(itertools.product(*choices), limit):
            assign = dict(zip(params, values))
            yield {
                u: sp.sympify(sol.get(u, u)).subs(assign, simultaneous=True)
                for u in unknowns
            }

    return params, instances()


def _accept(
    sol: Dict[sp.Symbol, sp.Expr],
    f: sp.Expr,
    g: Sequence[sp.Expr],
    variables: List[sp.Symbol],
    unknowns: List[sp.Symbol],
    active_mus: List[sp.Symbol],
    engine: SymbolicEngine,
    context: AssumptionContext,
    receipts: Optional[ReceiptChain]
) -> Optional[Point]:
    """
    Return the solution's point, or None if it is not a valid KKT point.

    A solution family is represented by its first valid instance.
    """
    params, instances = parametric_instances(sol, unknowns, context)
    reason = "no instance of the solution family"
    for instance in instances:
        reason = _reject_reason(instance, g, variables, active_mus, engine, context)
        if reason is None:
            point = tuple(instance[v] for v in variables)
            if params and receipts is not None:
                value = f.subs(sol, simultaneous=True)
                receipts.add_receipt(
                    ActionType.FAMILY_SAMPLED,
                    {
                        "parameters": [str(p) for p in params],
                        "constant_objective": not (value.free_symbols & set(params)),
                        "point": list(point)
                    },
                    input_data={str(k): sp.sstr(v) for k, v in sol.items()}
                )
            return point

    if receipts is not None:
        receipts.add_receipt(
            ActionType.CANDIDATE_DROPPED,
            {"reason": reason},
            input_data={str(k): sp.sstr(v) for k, v in sol.items()}
        )
    return None


def _reject_reason(
    sol: Dict[sp.Symbol, sp.Expr],
    g: Sequence[sp.Expr],
    variables: List[sp.Symbol],
    active_mus: List[sp.Symbol],
    engine: SymbolicEngine,
    context: AssumptionContext
) -> Optional[str]:
    for v in variables:
        value = sol[v]
        if engine.is_real(value) is False:
            return f"{v} not real"
        if context.contains(v, value) is False:
            return f"{v} out of range"

    at = {v: sol[v] for v in variables}
    for mu in active_mus:
        if engine.is_strictly_positive(sol[mu].subs(at)) is False:
            return "multiplier not positive"
    for j, gj in enumerate(g):
        if engine.is_strictly_positive(gj.subs(at)) is True:
            return f"inequality {j} violated"
    return None


def _same_point(a: Point, b: Point, engine: SymbolicEngine) -> bool:
    return all(engine.is_zero(x - y) is True for x, y in zip(a, b))
