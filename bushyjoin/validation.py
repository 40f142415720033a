"""Checks the input of the optimizer before the actual search starts.

Once the relations have passed these checks, the search itself cannot fail anymore (apart from exceeding its time
budget): it only performs integer arithmetic and container lookups on the validated input.
"""

from __future__ import annotations

import collections
from collections.abc import Iterable

from ._core import Relation
from .util import SearchSpaceExhaustedError


def check_relation(relation: object) -> Relation:
    """Ensures that a single object is a well-formed relation.

    Raises
    ------
    TypeError
        If the object is not a `Relation`
    ValueError
        If the tuple count is not a non-negative integer or some attribute is not a string
    """
    if not isinstance(relation, Relation):
        raise TypeError(f"Expected a Relation, not {type(relation).__name__}: {relation!r}")

    tuples = relation.tuples
    if isinstance(tuples, bool) or not isinstance(tuples, int):
        raise ValueError(f"Tuple count of {relation.name} must be an integer, not {tuples!r}")
    if tuples < 0:
        raise ValueError(f"Tuple count of {relation.name} must be non-negative, not {tuples}")

    invalid_attributes = [attr for attr in relation.attributes if not isinstance(attr, str)]
    if invalid_attributes:
        raise ValueError(f"Attributes of {relation.name} must be strings, not {invalid_attributes}")

    return relation


def check_relations(relations: Iterable[Relation], *, max_relations: int | None = None) -> frozenset[Relation]:
    """Ensures that the relations can be passed to the optimizer.

    Parameters
    ----------
    relations : Iterable[Relation]
        The relations to check
    max_relations : int | None, optional
        The largest number of relations that is allowed. *None* disables the check.

    Returns
    -------
    frozenset[Relation]
        The relation set that should be optimized

    Raises
    ------
    TypeError
        If the input is not an iterable of relations
    ValueError
        If the input is empty, contains multiple relations with the same identity, or any of the relations is malformed
    SearchSpaceExhaustedError
        If there are more than `max_relations` relations
    """
    if relations is None or isinstance(relations, (str, bytes)) or not isinstance(relations, Iterable):
        raise TypeError(f"Expected an iterable of relations, not {relations!r}")

    relations = [check_relation(rel) for rel in relations]
    if not relations:
        raise ValueError("Cannot optimize an empty set of relations")

    id_counts = collections.Counter(rel.relation_id for rel in relations)
    duplicate_ids = sorted(rel_id for rel_id, count in id_counts.items() if count > 1)
    if duplicate_ids:
        raise ValueError(f"Relation identities must be unique, but the following ids occur multiple times: {duplicate_ids}")

    if max_relations is not None and len(relations) > max_relations:
        raise SearchSpaceExhaustedError(len(relations), max_relations)

    return frozenset(relations)
