"""
Variable Arrangement Selector

Chooses which m of the n variables are treated as dependent (solved
implicitly from the m equality constraints). A choice is valid when the
m x m Jacobian block of those variables has a nonzero determinant, which
is the implicit function theorem precondition.
"""

import itertools
from typing import List, Optional, Sequence, Tuple

import sympy as sp

from ..core.errors import InvalidArityError, SingularJacobianError
from ..receipts import ActionType, ReceiptChain

MAX_ARRANGEMENT_VARS = 32

Arrangement = Tuple[int, ...]


def select_arrangements(
    jacobian: sp.Matrix,
    engine,
    max_vars: int = MAX_ARRANGEMENT_VARS,
    receipts: Optional[ReceiptChain] = None
) -> List[Arrangement]:
    """
    Enumerate valid dependent-variable choices.

    All C(n, m) column subsets are tried in lexicographic order. Each
    accepted subset is returned as a permutation of range(n) listing the
    free variables first and the dependent ones last, both in original
    order.

    Args:
        jacobian: m x n constraint Jacobian
        engine: SymbolicEngine (determinant, zero test)
        max_vars: Upper bound on n
        receipts: Optional receipt chain

    Returns:
        Valid arrangements (possibly empty)
    """
    m, n = jacobian.shape
    if m >= n:
        raise InvalidArityError(f"{m} constraints need more than {n} variables")
    if n > max_vars:
        raise InvalidArityError(f"{n} variables exceed the arrangement limit {max_vars}")

    arrangements: List[Arrangement] = []
    for dependent in itertools.combinations(range(n), m):
        free = tuple(j for j in range(n) if j not in dependent)
        if m == 0:
            arrangements.append(free)
            break
        det = engine.determinant(jacobian.extract(list(range(m)), list(dependent)))
        if engine.is_zero(det) is True:
            if receipts is not None:
                receipts.add_receipt(ActionType.ARRANGEMENT_REJECT, {"dependent": list(dependent)})
            continue
        arrangements.append(free + dependent)
        if receipts is not None:
            receipts.add_receipt(
                ActionType.ARRANGEMENT_ACCEPT,
                {"dependent": list(dependent), "determinant": det}
            )
    return arrangements


def check_jacobian(
    constraints: Sequence[sp.Expr],
    variables: Sequence[sp.Symbol],
    engine
) -> sp.Matrix:
    """
    Verify that the trailing variables can be solved from the constraints.

    The constraint Jacobian must have full row rank m and its block over
    the last m variables must be nonsingular.

    Returns:
        The Jacobian

    Raises:
        InvalidArityError: if there are not fewer constraints than variables
        SingularJacobianError: if either condition fails
    """
    m, n = len(constraints), len(variables)
    if m >= n:
        raise InvalidArityError(f"{m} constraints need more than {n} variables")
    if m == 0:
        return sp.zeros(0, n)
    J = engine.jacobian(constraints, variables)
    if engine.rank(J) < m:
        raise SingularJacobianError("Constraint Jacobian does not have full rank")
    det = engine.determinant(J[:, n - m:])
    if engine.is_zero(det) is True:
        raise SingularJacobianError(
            "Dependent variables cannot be solved from the constraints"
        )
    return J


def permute(items: Sequence, arrangement: Arrangement) -> Tuple:
    return tuple(items[j] for j in arrangement)


def unpermute(items: Sequence, arrangement: Arrangement) -> Tuple:
    """Inverse of ``permute``: back to original variable order."""
    result = [None] * len(arrangement)
    for pos, j in enumerate(arrangement):
        result[j] = items[pos]
    return tuple(result)
