"""
Local Extremum Classifier

Finds the critical points of f subject to equality constraints h = 0 and
labels each as min, max, saddle, possible-min, possible-max or undecided.

Critical points are the zeros of the reduced gradient (computed by
implicit differentiation through the constraints) together with h = 0,
solved once per valid dependent-variable arrangement.

Classification, per point:
1. One variable, no constraints: first nonzero derivative of order >= 2
2. Constraints: sign pattern of the leading principal minors of the
   bordered Hessian
3. Several variables, no constraints: Hessian eigenvalues
4. Still undecided: the first non-vanishing homogeneous Taylor term is
   minimized and maximized over the unit sphere around the point

Inconclusive labels are terminal and reported to the receipt chain.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import sympy as sp

from ..contract import ConstrainedProblem
from ..core.errors import InvalidArityError, SingularJacobianError
from ..core.output_gate import (
    Classification,
    CriticalPoint,
    LocalExtremaResult,
    OutputGate,
    Point,
)
from ..diff.arrangements import permute, select_arrangements, unpermute
from ..diff.cache import PartialDerivativeCache
from ..engine import AssumptionContext, SymbolicEngine
from ..receipts import ActionType, ReceiptChain
from .config import ExtremaConfig
from .global_extrema import solve_global
from .kkt import parametric_instances


def find_local_extrema(
    objective,
    equalities: Sequence = (),
    variables: Optional[Sequence] = None,
    max_order: Optional[int] = None,
    initial: Optional[Sequence] = None,
    config: Optional[ExtremaConfig] = None,
    receipts: Optional[ReceiptChain] = None
) -> LocalExtremaResult:
    """
    Find and classify the critical points of ``objective``.

    Args:
        objective: Objective expression
        equalities: Equality constraints (Eq relationals or bare expressions)
        variables: Symbols or (symbol, lower, upper) tuples; ranges are open
        max_order: Highest derivative order used for classification
            (0 returns unclassified points); defaults to config.max_order
        initial: Starting point for a numeric search of a single critical
            point, in variable order
        config: Solver configuration
        receipts: Receipt chain to append to

    Returns:
        LocalExtremaResult
    """
    if isinstance(equalities, sp.Basic):
        equalities = [equalities]
    problem = ConstrainedProblem.create(objective, equalities, variables)
    if problem.inequalities:
        raise InvalidArityError("Local extrema accept equality constraints only")
    config = config or ExtremaConfig()
    if max_order is None:
        max_order = config.max_order
    classifier = LocalExtremaClassifier(problem, max_order, config, receipts=receipts)
    return classifier.run(initial)


class LocalExtremaClassifier:
    """
    Classifier for one problem.

    Args:
        problem: Parsed problem (inequalities not allowed)
        max_order: Classification order limit
        config: Solver configuration
        engine: SymbolicEngine (built from config by default)
        receipts: Receipt chain
    """

    def __init__(
        self,
        problem: ConstrainedProblem,
        max_order: int,
        config: ExtremaConfig,
        engine: Optional[SymbolicEngine] = None,
        receipts: Optional[ReceiptChain] = None
    ):
        if max_order < 0:
            raise InvalidArityError(f"max_order must be nonnegative, got {max_order}")
        if problem.n_eq >= problem.n_vars:
            raise InvalidArityError(
                f"{problem.n_eq} constraints need more than {problem.n_vars} variables"
            )
        self.problem = problem
        self.max_order = max_order
        self.config = config
        self.engine = engine or config.make_engine()
        self.receipts = receipts if receipts is not None else ReceiptChain()
        self.points: List[CriticalPoint] = []

    @property
    def m(self) -> int:
        return self.problem.n_eq

    def arrangements(self) -> List[Tuple[int, ...]]:
        n = self.problem.n_vars
        if self.m == 0:
            return [tuple(range(n))]
        J = self.engine.jacobian(self.problem.equalities, self.problem.variables)
        if self.engine.rank(J) < self.m:
            raise SingularJacobianError("Constraint Jacobian does not have full rank")
        arrangements = select_arrangements(
            J, self.engine, self.config.max_arrangement_vars, self.receipts
        )
        if not arrangements:
            raise SingularJacobianError("No dependent-variable arrangement is valid")
        return arrangements

    def run(self, initial: Optional[Sequence] = None) -> LocalExtremaResult:
        problem = self.problem
        self.receipts.add_receipt(
            ActionType.INIT,
            dict(problem.to_canonical(), max_order=self.max_order),
            input_data=problem.to_canonical()
        )
        if initial is not None and len(initial) != problem.n_vars:
            raise InvalidArityError(
                f"Initial point has {len(initial)} coordinates, expected {problem.n_vars}"
            )

        context = AssumptionContext(self.engine.zero_tol)
        with context.scope():
            surrogates = [
                context.surrogate(v, problem.open_range_of(v)) for v in problem.variables
            ]
            for arrangement in self.arrangements():
                self._solve_arrangement(arrangement, surrogates, context, initial)

        result = LocalExtremaResult(
            variables=problem.variables,
            points=self.points,
            max_order=self.max_order,
            receipts=self.receipts
        )
        self.receipts.add_receipt(
            ActionType.TERMINATE,
            {"n_points": len(self.points)},
            output_data=result.to_canonical()
        )
        return OutputGate(self.engine).emit_local(result)

    def _solve_arrangement(
        self,
        arrangement: Tuple[int, ...],
        surrogates: List[sp.Symbol],
        context: AssumptionContext,
        initial: Optional[Sequence]
    ) -> None:
        problem, engine = self.problem, self.engine
        ordered = permute(problem.variables, arrangement)
        cache = PartialDerivativeCache(
            problem.objective, problem.equalities, ordered, engine, self.receipts
        )
        unknowns = permute(surrogates, arrangement)
        to_s = dict(zip(ordered, unknowns))
        equations = [e.subs(to_s) for e in cache.gradient() + list(problem.equalities)]

        if initial is not None:
            guess = [float(v) for v in permute(initial, arrangement)]
            solutions = [engine.nsolve(equations, unknowns, guess)]
        else:
            solutions = engine.solve(equations, unknowns)

        for sol in solutions:
            values = self._point_from(sol, unknowns, context)
            if values is None:
                continue
            if self.config.simplify_output:
                values = tuple(engine.simplify(list(values)))
            point = unpermute(values, arrangement)

            existing = self._lookup(point)
            if existing is not None and existing.classification != Classification.UNDECIDED:
                continue

            label = self._classify(cache, values)
            if label is None:
                continue
            if existing is not None:
                existing.classification = label
            else:
                value = problem.objective.subs(dict(zip(problem.variables, point)), simultaneous=True)
                if self.config.simplify_output:
                    value = sp.simplify(value)
                self.points.append(CriticalPoint(point, label, value))
            self._report(point, label)

    def _point_from(
        self,
        sol: Dict[sp.Symbol, sp.Expr],
        unknowns: Sequence[sp.Symbol],
        context: AssumptionContext
    ) -> Optional[Point]:
        params, instances = parametric_instances(sol, unknowns, context)
        reason = "no instance of the solution family"
        for instance in instances:
            reason = None
            for u in unknowns:
                if self.engine.is_real(instance[u]) is False:
                    reason = f"{u} not real"
                elif context.contains(u, instance[u]) is False:
                    reason = f"{u} out of range"
                if reason is not None:
                    break
            if reason is None:
                values = tuple(instance[u] for u in unknowns)
                if params:
                    self.receipts.add_receipt(
                        ActionType.FAMILY_SAMPLED,
                        {"parameters": [str(p) for p in params], "point": list(values)},
                        input_data={str(k): sp.sstr(v) for k, v in sol.items()}
                    )
                return values

        self.receipts.add_receipt(
            ActionType.CANDIDATE_DROPPED,
            {"reason": reason},
            input_data={str(k): sp.sstr(v) for k, v in sol.items()}
        )
        return None

    def _lookup(self, point: Point) -> Optional[CriticalPoint]:
        for p in self.points:
            if all(self.engine.is_zero(a - b) is True for a, b in zip(p.coordinates, point)):
                return p
        return None

    def _report(self, point: Point, label: Classification) -> None:
        self.receipts.add_receipt(
            ActionType.CLASSIFIED,
            {"point": list(point), "classification": label.value}
        )
        if label == Classification.UNCLASSIFIED:
            return
        if not label.is_conclusive:
            self.receipts.add_receipt(
                ActionType.INCONCLUSIVE,
                {"point": list(point), "classification": label.value}
            )
        if self.config.verbose and label not in (Classification.MIN, Classification.MAX):
            coords = ", ".join(sp.sstr(c) for c in point)
            print(f"Critical point ({coords}): {label.value}")

    # Classification

    def _classify(self, cache: PartialDerivativeCache, values: Point) -> Optional[Classification]:
        """
        Label a point given in arrangement order, or None if the point
        must be dropped for this arrangement.
        """
        if self.max_order == 0:
            return Classification.UNCLASSIFIED

        engine = self.engine
        at = dict(zip(cache.variables, values))

        if self.m > 0:
            J_dep = engine.jacobian(self.problem.equalities, cache.dependent_variables)
            J_at = J_dep.subs(at)
            if engine.is_zero(engine.determinant(J_at)) is True:
                self._drop(values, "singular dependent block")
                return None
            if self.max_order < 2:
                return Classification.UNDECIDED
            label = self._bordered_hessian_test(cache, at, J_at)
        elif cache.n_free == 1:
            return self._derivative_walk(cache, values)
        elif self.max_order >= 2:
            H = cache.hessian().subs(at)
            if not all(engine.is_finite(e) for e in H):
                self._drop(values, "Hessian not finite")
                return None
            label = self._eigenvalue_test(H)
        else:
            label = Classification.UNDECIDED

        if label == Classification.UNDECIDED and self.max_order >= 2:
            label = self._taylor_test(cache, values)
        return label

    def _derivative_walk(self, cache: PartialDerivativeCache, values: Point) -> Classification:
        at = dict(zip(cache.variables, values))
        for k in range(2, self.max_order + 1):
            d = sp.simplify(cache.derivative((k,)).subs(at))
            sign = self.engine.sign(d)
            if sign == 0:
                continue
            if sign is None:
                return Classification.UNDECIDED
            if k % 2:
                return Classification.SADDLE
            return Classification.MIN if sign > 0 else Classification.MAX
        return Classification.UNDECIDED

    def _bordered_hessian_test(
        self,
        cache: PartialDerivativeCache,
        at: Dict[sp.Symbol, sp.Expr],
        J_at: sp.Matrix
    ) -> Classification:
        engine, m = self.engine, self.m
        f, h = self.problem.objective, self.problem.equalities
        # dependent variables lead so the first m constraint columns are nonsingular
        variables = list(cache.dependent_variables) + list(cache.free_variables)

        grad_dep = sp.Matrix(engine.gradient(f, cache.dependent_variables)).subs(at)
        multipliers = engine.invert(J_at.T) * grad_dep
        lambdas = [sp.Dummy(f"lambda{i}") for i in range(m)]
        L = f - sum((lam * hi for lam, hi in zip(lambdas, h)), sp.S.Zero)
        H = engine.hessian(L, lambdas + variables).subs(at)
        H = H.subs(dict(zip(lambdas, multipliers)))

        label = Classification.UNDECIDED
        for k in range(1, cache.n_free + 1):
            size = 2 * m + k
            s = engine.sign(engine.determinant(H[:size, :size]))
            if not s:
                return Classification.UNDECIDED
            if label == Classification.SADDLE:
                continue
            if label != Classification.MAX and s * (-1) ** m > 0:
                label = Classification.MIN
            elif label != Classification.MIN and s * (-1) ** (m + k) > 0:
                label = Classification.MAX
            else:
                label = Classification.SADDLE
        return label

    def _eigenvalue_test(self, H: sp.Matrix) -> Classification:
        signs = [self.engine.sign(e) for e in self.engine.eigenvalues(H)]
        if any(not s for s in signs):
            return Classification.UNDECIDED
        if all(s > 0 for s in signs):
            return Classification.MIN
        if all(s < 0 for s in signs):
            return Classification.MAX
        return Classification.SADDLE

    def _taylor_test(self, cache: PartialDerivativeCache, values: Point) -> Classification:
        """Sign of the first non-vanishing Taylor term on the unit sphere."""
        free = cache.free_variables
        center = values[:cache.n_free]
        sphere = sum(((x - a) ** 2 for x, a in zip(free, center)), sp.S.Zero) - 1

        for k in range(2, self.max_order + 1):
            term = cache.taylor_term(values, k)
            if not self.engine.is_finite(term):
                return Classification.UNDECIDED
            p = sp.expand(term)
            if self.engine.is_zero(p) is True:
                continue

            sub_config = ExtremaConfig(
                max_inequalities=self.config.max_inequalities,
                root_samples=self.config.root_samples,
                zero_tol=self.config.zero_tol,
                simplify_output=self.config.simplify_output,
            )
            sub = solve_global(
                ConstrainedProblem(p, free, equalities=[sphere]),
                config=sub_config,
                engine=self.engine
            )
            if sub.is_empty:
                self.receipts.add_receipt(
                    ActionType.SPHERE_EMPTY,
                    {"order": k, "point": list(values), "term": p}
                )
                if self.config.verbose:
                    print(f"Sphere test of order {k} found no critical points")
                return Classification.UNDECIDED

            pmin, pmax = sub.min_value, sub.max_value
            if self.engine.is_zero(pmin) is True and self.engine.is_zero(pmax) is True:
                continue
            if k % 2 or (self.engine.sign(pmin) == -1 and self.engine.sign(pmax) == 1):
                return Classification.SADDLE
            if self.engine.sign(pmin) == 1:
                return Classification.MIN
            if self.engine.sign(pmax) == -1:
                return Classification.MAX
            if self.engine.is_zero(pmin) is True:
                return Classification.POSSIBLE_MIN
            if self.engine.is_zero(pmax) is True:
                return Classification.POSSIBLE_MAX
            return Classification.UNDECIDED
        return Classification.UNDECIDED

    def _drop(self, values: Point, reason: str) -> None:
        self.receipts.add_receipt(
            ActionType.CANDIDATE_DROPPED,
            {"reason": reason, "point": list(values)}
        )
