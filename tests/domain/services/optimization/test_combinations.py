"""Tests for fixed-size subset enumeration."""

import pytest

from fpl_squad_optimizer.domain.common.exceptions import InputError
from fpl_squad_optimizer.domain.services.optimization import (
    count_combinations,
    generate_combinations,
    generate_index_combinations,
)


class TestGenerateCombinations:
    def test_six_choose_three(self):
        items = ["a", "b", "c", "d", "e", "f"]

        subsets = list(generate_combinations(items, 3))

        assert len(subsets) == 20
        assert len({frozenset(s) for s in subsets}) == 20
        assert all(len(s) == 3 for s in subsets)
        assert {item for s in subsets for item in s} == set(items)

    def test_lexicographic_by_index(self):
        assert list(generate_index_combinations(4, 2)) == [
            (0, 1),
            (0, 2),
            (0, 3),
            (1, 2),
            (1, 3),
            (2, 3),
        ]

    def test_size_larger_than_pool_is_empty(self):
        assert list(generate_combinations([1, 2], 3)) == []

    def test_zero_size_yields_empty_tuple(self):
        assert list(generate_combinations([1, 2], 0)) == [()]

    def test_negative_size_rejected(self):
        with pytest.raises(InputError):
            generate_combinations([1, 2], -1)

    def test_identical_inputs_reproduce_sequence(self):
        first = list(generate_index_combinations(7, 5))
        second = list(generate_index_combinations(7, 5))

        assert first == second


class TestCountCombinations:
    @pytest.mark.parametrize(
        "pool,size,expected", [(6, 3, 20), (5, 5, 1), (3, 5, 0), (10, 2, 45)]
    )
    def test_counts(self, pool, size, expected):
        assert count_combinations(pool, size) == expected

    def test_negative_rejected(self):
        with pytest.raises(InputError):
            count_combinations(-1, 2)
