"""Provides the subset enumeration that splits a relation set into two independent halves.

The dynamic programming optimizer needs all ways to divide a set of relations into two non-empty parts. Each such
bipartition corresponds to a candidate join whose inputs can be optimized independently of each other.

The enumeration is based on a bitmask walk over the relations. Before the walk, the relations are brought into their
deterministic order (see `Relation.sort_key`). Consequently, the same relation set always produces the same sequence of
bipartitions, no matter the iteration order of the container that was passed in. This matters for ties: the optimizer keeps
the first of all minimal candidates.
"""

from __future__ import annotations

import enum
import itertools
from collections.abc import Collection, Iterator

from ._core import Relation, sort_relations


class EnumerationOrder(enum.Enum):
    """Determines which bitmasks are visited by the subset enumeration.

    Both orders produce every unordered bipartition, so the optimal cost does not depend on the order.
    """

    Reference = "reference"
    """Visits all ``2^n - 2`` non-trivial bitmasks in increasing order.

    Each bipartition is produced twice, once as *(S, complement)* and once as *(complement, S)*.
    """

    Canonical = "canonical"
    """Only visits bitmasks that contain the first relation, such that each bipartition is produced exactly once."""


def _apply_mask(relations: list[Relation], mask: int) -> tuple[frozenset[Relation], frozenset[Relation]]:
    """Splits the relations according to the bits of the mask. Bit *i* corresponds to the *i*-th relation."""
    subset = frozenset(rel for idx, rel in enumerate(relations) if mask & (1 << idx))
    complement = frozenset(rel for idx, rel in enumerate(relations) if not mask & (1 << idx))
    return subset, complement


def bipartitions(relations: Collection[Relation], *,
                 order: EnumerationOrder = EnumerationOrder.Canonical
                 ) -> Iterator[tuple[frozenset[Relation], frozenset[Relation]]]:
    """Lazily generates all ways to split a relation set into two non-empty parts.

    Parameters
    ----------
    relations : Collection[Relation]
        The relations to split. Sets with less than two relations do not have any bipartitions.
    order : EnumerationOrder, optional
        Which bitmasks to visit. By default, each bipartition is produced exactly once.

    Yields
    ------
    tuple[frozenset[Relation], frozenset[Relation]]
        The *(subset, complement)* pairs. Both parts are non-empty and their union is the input set.

    Examples
    --------
    For three relations *T1, T2, T3* the canonical order produces *({T1}, {T2, T3})*, *({T1, T2}, {T3})* and
    *({T1, T3}, {T2})*.
    """
    ordered = sort_relations(relations)
    n = len(ordered)
    if n < 2:
        return

    full_mask = (1 << n) - 1
    if order == EnumerationOrder.Reference:
        masks = range(1, full_mask)
    else:
        # the lowest bit is the distinguished element, only odd masks contain it
        masks = range(1, full_mask, 2)

    for mask in masks:
        yield _apply_mask(ordered, mask)


def subsets_of_size(relations: Collection[Relation], size: int) -> Iterator[frozenset[Relation]]:
    """Generates all subsets of the relations that contain exactly `size` elements.

    Subsets are produced in lexicographic order of the deterministic relation ordering.
    """
    for combination in itertools.combinations(sort_relations(relations), size):
        yield frozenset(combination)


def count_bipartitions(n: int, *, order: EnumerationOrder = EnumerationOrder.Canonical) -> int:
    """Computes how many bipartitions `bipartitions` produces for a set of `n` relations."""
    if n < 2:
        return 0
    total = 2 ** n - 2
    return total if order == EnumerationOrder.Reference else total // 2
