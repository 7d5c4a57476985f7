"""Fixed-size subset enumeration for position pools."""

import itertools
from math import comb
from typing import Iterator, Sequence, Tuple, TypeVar

from fpl_squad_optimizer.domain.common.exceptions import InputError

T = TypeVar("T")


def generate_combinations(items: Sequence[T], size: int) -> Iterator[Tuple[T, ...]]:
    """Yield every ``size``-subset of ``items`` exactly once.

    Subsets come out in index-based lexicographic order, so identical inputs
    always reproduce the same sequence. The pool is enumerated lazily; callers
    should narrow it first, C(N, 5) grows quickly.

    Args:
        items: Pool to choose from (order defines enumeration order)
        size: Subset size

    Returns:
        Iterator over tuples of length ``size``
    """
    if size < 0:
        raise InputError(f"Combination size must be non-negative, got {size}")
    return itertools.combinations(items, size)


def generate_index_combinations(pool_size: int, size: int) -> Iterator[Tuple[int, ...]]:
    """Same enumeration as generate_combinations, over indices 0..pool_size-1."""
    return generate_combinations(range(pool_size), size)


def count_combinations(pool_size: int, size: int) -> int:
    """C(pool_size, size); 0 when size exceeds the pool."""
    if size < 0 or pool_size < 0:
        raise InputError("Pool size and combination size must be non-negative")
    return comb(pool_size, size)
