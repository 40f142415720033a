"""Provides utilities to work with arbitrary collections like lists, sets and tuples."""

from __future__ import annotations

import itertools
from collections.abc import Collection, Generator, Iterable
from typing import TypeVar

T = TypeVar("T")


def enlist(obj: T | Iterable[T]) -> Iterable[T]:
    """Transforms any object into a singular list of that object, if it is not a container already.

    Iterables, including generators and dictionary views, are returned unchanged. Strings are treated as scalar
    values and are wrapped as well.

    Examples
    --------
    >>> enlist(42)
    [42]
    >>> enlist([42])
    [42]
    >>> enlist({42})
    {42}
    """
    if isinstance(obj, str) or not isinstance(obj, Iterable):
        return [obj]
    return obj


def powerset(lst: Collection[T]) -> Iterable[tuple[T, ...]]:
    """Calculates the powerset of the provided iterable.

    The powerset of a set *S* is defined as the set that contains all subsets of *S*. This is includes the empty set, as well
    as the entire set *S*.

    Parameters
    ----------
    lst : Collection[T]
        The "set" *S*

    Returns
    -------
    Iterable[tuple[T, ...]]
        The powerset of *S*. Each tuple correponds to a specific subset. Subsets are produced with increasing size.
    """
    return itertools.chain.from_iterable(
        itertools.combinations(lst, size) for size in range(len(lst) + 1)
    )


def pairs(lst: Iterable[T]) -> Generator[tuple[T, T], None, None]:
    """Provides all pairs of elements of the given iterable, disregarding order and identical pairs.

    Tuples *(a, b)* and *(b, a)* are treated as equal and only the one that respects the iteration order is returned.

    Parameters
    ----------
    lst : Iterable[T]
        The iterable that contains the pairs. It must be possible to iterate over it multiple times (twice, to be exact).

    Yields
    ------
    Generator[tuple[T, T], None, None]
        The element pairs.
    """
    for a_idx, a in enumerate(lst):
        for b_idx, b in enumerate(lst):
            if b_idx <= a_idx:
                continue
            yield a, b
