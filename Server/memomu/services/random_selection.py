"""
Random Selection

Shuffle and sampling primitives used to build rounds. Every function takes
an optional random source so sessions can be seeded.
"""

import random
from typing import List, Sequence, TypeVar

from ..utils.errors import InvalidConfiguration

T = TypeVar('T')


def shuffle(sequence: Sequence[T], rng=random) -> List[T]:
    """
    Returns a uniformly random permutation of sequence (Fisher-Yates).

    The input is left untouched.
    """
    shuffled = list(sequence)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def sample_distinct(pool_size: int, k: int, rng=random) -> List[int]:
    """
    Draws k unique indices from range(pool_size) by rejection sampling.

    Args:
        pool_size: Number of candidate indices
        k: Number of indices to draw

    Returns:
        List[int]: k distinct indices in draw order

    Raises:
        InvalidConfiguration: If k is negative or larger than pool_size
    """
    if k < 0 or k > pool_size:
        raise InvalidConfiguration(f"Cannot draw {k} distinct indices from a pool of {pool_size}")

    chosen: List[int] = []
    seen = set()
    while len(chosen) < k:
        idx = rng.randrange(pool_size)
        if idx not in seen:
            seen.add(idx)
            chosen.append(idx)
    return chosen


def choice_with_replacement(pool: Sequence[T], k: int, rng=random) -> List[T]:
    """Draws k items uniformly from pool, repeats allowed."""
    if k > 0 and not pool:
        raise InvalidConfiguration(f"Cannot draw {k} items from an empty pool")
    return [pool[rng.randrange(len(pool))] for _ in range(k)]
