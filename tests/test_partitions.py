"""
Tests for Multi-Index Partitions
"""

from math import comb

import pytest
from symopt.core.errors import InvalidArityError
from symopt.diff.partitions import excess, ipartition, order_of, unit_index


class TestIpartition:
    """Test multi-index enumeration."""

    @pytest.mark.parametrize("order,dimension", [(0, 1), (0, 3), (1, 2), (3, 2), (4, 3), (5, 4)])
    def test_count(self, order, dimension):
        """Number of multi-indices is C(k+n-1, n-1)."""
        assert len(ipartition(order, dimension)) == comb(order + dimension - 1, dimension - 1)

    def test_no_duplicates(self):
        """Every multi-index appears once."""
        parts = ipartition(4, 3)
        assert len(set(parts)) == len(parts)

    def test_sums(self):
        """Every multi-index sums to the order and has the right length."""
        for p in ipartition(5, 3):
            assert len(p) == 3
            assert order_of(p) == 5
            assert all(i >= 0 for i in p)

    def test_descending_order(self):
        """Multi-indices come in lexicographically descending order."""
        assert ipartition(2, 2) == [(2, 0), (1, 1), (0, 2)]
        parts = ipartition(3, 3)
        assert parts == sorted(parts, reverse=True)

    def test_order_zero(self):
        """Order zero gives the single zero index."""
        assert ipartition(0, 3) == [(0, 0, 0)]

    def test_invalid(self):
        """Negative order and non-positive dimension are rejected."""
        with pytest.raises(InvalidArityError):
            ipartition(-1, 2)
        with pytest.raises(InvalidArityError):
            ipartition(2, 0)


class TestMultiIndexHelpers:
    """Test unit indices and excess."""

    def test_unit_index(self):
        """A unit index has a single 1."""
        assert unit_index(1, 3) == (0, 1, 0)
        with pytest.raises(InvalidArityError):
            unit_index(3, 3)

    def test_excess(self):
        """Excess is the componentwise difference when base <= target."""
        assert excess((2, 1), (1, 1)) == (1, 0)
        assert excess((2, 1), (0, 2)) is None

    def test_excess_length_mismatch(self):
        """Indices of different length are rejected."""
        with pytest.raises(InvalidArityError):
            excess((1, 1), (1,))
