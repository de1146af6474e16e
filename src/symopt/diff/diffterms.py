"""
Diffterm Algebra

Formal bookkeeping for the multivariate chain rule through implicitly
defined variables.

Let y_1..y_m be functions of the free variables x_1..x_n defined by
equality constraints. Differentiating F(x, y(x)) repeatedly produces a sum
of terms

    c * D^direct F * prod (d^sigma y_i)^p

where ``direct`` is an exponent vector over the n + m generalized
variables and each factor d^sigma y_i is an implicit-derivative unknown.
A DiffTerm is one such product (without the coefficient); a DiffTermSet
maps DiffTerms to integer coefficients. Nothing is evaluated here: the
expansion is substituted with actual expressions only after the unknowns
have been resolved.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Sequence, Tuple

from ..core.canonical_json import canonical_hash
from ..core.errors import InvalidArityError
from .partitions import MultiIndex, unit_index


class ImplicitKey(NamedTuple):
    """Names the unknown d^index y_dependent."""
    index: MultiIndex
    dependent: int

    @property
    def order(self) -> int:
        return sum(self.index)

    def raised(self, k: int) -> 'ImplicitKey':
        """The same unknown differentiated once more w.r.t. free variable k."""
        index = list(self.index)
        index[k] += 1
        return ImplicitKey(tuple(index), self.dependent)


@dataclass(frozen=True)
class DiffTerm:
    """
    One product term of a chain-rule expansion.

    Attributes:
        direct: Direct-derivative exponents over the n free then m
            dependent variables
        implicit: Sorted (ImplicitKey, power) pairs, all powers > 0
    """
    direct: Tuple[int, ...]
    implicit: Tuple[Tuple[ImplicitKey, int], ...] = ()

    @classmethod
    def identity(cls, n_free: int, n_dependent: int) -> 'DiffTerm':
        """The undifferentiated function itself."""
        return cls(direct=(0,) * (n_free + n_dependent))

    @classmethod
    def build(cls, direct: Sequence[int], implicit: Mapping[ImplicitKey, int]) -> 'DiffTerm':
        pairs = tuple(sorted((k, p) for k, p in implicit.items() if p > 0))
        return cls(direct=tuple(direct), implicit=pairs)

    def implicit_map(self) -> Dict[ImplicitKey, int]:
        return dict(self.implicit)

    def bump_direct(self, slot: int) -> 'DiffTerm':
        direct = list(self.direct)
        direct[slot] += 1
        return DiffTerm(direct=tuple(direct), implicit=self.implicit)

    def to_canonical(self) -> Dict[str, Any]:
        return {
            "direct": list(self.direct),
            "implicit": [[list(k.index), k.dependent, p] for k, p in self.implicit],
        }


class DiffTermSet(dict):
    """
    Sparse integer-coefficient sum of DiffTerms.

    Zero coefficients are never stored, so two sets are equal exactly when
    they represent the same expansion.
    """

    @classmethod
    def identity(cls, n_free: int, n_dependent: int) -> 'DiffTermSet':
        result = cls()
        result[DiffTerm.identity(n_free, n_dependent)] = 1
        return result

    def add(self, term: DiffTerm, coeff: int) -> None:
        total = self.get(term, 0) + coeff
        if total == 0:
            self.pop(term, None)
        else:
            self[term] = total

    def canonical(self) -> List[Tuple[Any, int]]:
        """Stable ordering of (term, coefficient) pairs."""
        return sorted(
            ((t.to_canonical(), c) for t, c in self.items()),
            key=lambda item: (item[0]["direct"], item[0]["implicit"], item[1])
        )

    def fingerprint(self) -> str:
        return canonical_hash(self.canonical())

    def copy(self) -> 'DiffTermSet':
        return DiffTermSet(self)


def derive_step(terms: Mapping[DiffTerm, int], k: int, n_free: int, n_dependent: int) -> DiffTermSet:
    """Differentiate an expansion once with respect to free variable ``k``."""
    result = DiffTermSet()
    first_order = unit_index(k, n_free)
    for term, c in terms.items():
        # (a) differentiate the underlying function directly
        result.add(term.bump_direct(k), c)

        # (b) power rule on each implicit factor
        implicit = term.implicit_map()
        for key, p in term.implicit:
            h = dict(implicit)
            if p == 1:
                del h[key]
            else:
                h[key] = p - 1
            raised = key.raised(k)
            h[raised] = h.get(raised, 0) + 1
            result.add(DiffTerm.build(term.direct, h), c * p)

        # (c) chain through each dependent variable
        for i in range(n_dependent):
            h = dict(implicit)
            key = ImplicitKey(first_order, i)
            h[key] = h.get(key, 0) + 1
            result.add(DiffTerm.build(term.bump_direct(n_free + i).direct, h), c)
    return result


def derive(
    terms: Mapping[DiffTerm, int],
    remaining: Sequence[int],
    n_free: int,
    n_dependent: int
) -> DiffTermSet:
    """
    Differentiate an expansion by the multi-index ``remaining``.

    Steps are applied one variable-unit at a time, always to the
    right-most nonzero slot of ``remaining``. The input is not modified.
    """
    if len(remaining) != n_free:
        raise InvalidArityError(
            f"Multi-index of length {len(remaining)} for {n_free} free variables"
        )
    if any(r < 0 for r in remaining):
        raise InvalidArityError(f"Negative entry in multi-index {tuple(remaining)}")

    todo = list(remaining)
    current = DiffTermSet(terms)
    while any(todo):
        k = max(i for i, r in enumerate(todo) if r > 0)
        current = derive_step(current, k, n_free, n_dependent)
        todo[k] -= 1
    return current


def unknowns_of(terms: Iterable[DiffTerm]) -> List[ImplicitKey]:
    """Every implicit unknown appearing in a collection of terms."""
    seen: List[ImplicitKey] = []
    for term in terms:
        for key, _ in term.implicit:
            if key not in seen:
                seen.append(key)
    return seen
