"""
Multi-Index Partition Generator

A multi-index assigns a differentiation order to every free variable.
All multi-indices of total order k in n slots are the compositions of k
into n nonnegative parts; there are C(k+n-1, n-1) of them.
"""

from typing import List, Optional, Sequence, Tuple

from ..core.errors import InvalidArityError

MultiIndex = Tuple[int, ...]


def ipartition(order: int, dimension: int) -> List[MultiIndex]:
    """
    Enumerate every multi-index of length ``dimension`` summing to ``order``.

    The first slot is fixed to each value from ``order`` down to 0 and the
    remaining slots are filled recursively, so the result is in
    lexicographically descending order and free of duplicates.

    Args:
        order: Total differentiation order (>= 0)
        dimension: Number of slots (> 0)

    Returns:
        List of multi-indices
    """
    if order < 0:
        raise InvalidArityError(f"Partition order must be nonnegative, got {order}")
    if dimension <= 0:
        raise InvalidArityError(f"Partition dimension must be positive, got {dimension}")
    return list(_compositions(order, dimension))


def _compositions(order: int, dimension: int):
    if dimension == 1:
        yield (order,)
        return
    for first in range(order, -1, -1):
        for rest in _compositions(order - first, dimension - 1):
            yield (first,) + rest


def order_of(index: Sequence[int]) -> int:
    return sum(index)


def unit_index(k: int, dimension: int) -> MultiIndex:
    """The multi-index with a single 1 in slot ``k``."""
    if not 0 <= k < dimension:
        raise InvalidArityError(f"Slot {k} out of range for dimension {dimension}")
    return tuple(1 if i == k else 0 for i in range(dimension))


def excess(target: Sequence[int], base: Sequence[int]) -> Optional[MultiIndex]:
    """
    Componentwise ``target - base``, or None if ``base`` is not <= ``target``.
    """
    if len(target) != len(base):
        raise InvalidArityError(
            f"Multi-index lengths differ: {len(target)} vs {len(base)}"
        )
    diff = tuple(t - b for t, b in zip(target, base))
    if any(d < 0 for d in diff):
        return None
    return diff
