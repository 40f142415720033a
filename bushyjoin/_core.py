"""Fundamental types that are used throughout the join order optimizer."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from typing import Optional

import natsort

from .util import jsondict

Cardinality = int
"""Cardinalities are the (estimated) number of tuples in a relation or an intermediate result."""

_natural_key = natsort.natsort_keygen()

_relation_ids_lock = threading.Lock()
_max_relation_id = 0
"""The largest relation id that has been handed out or assigned so far."""


def _next_relation_id() -> int:
    global _max_relation_id
    with _relation_ids_lock:
        _max_relation_id += 1
        return _max_relation_id


def _reserve_relation_id(relation_id: int) -> int:
    """Makes sure that the automatic ids skip over an id that was assigned by the caller."""
    global _max_relation_id
    with _relation_ids_lock:
        if isinstance(relation_id, int):
            _max_relation_id = max(_max_relation_id, relation_id)
        return relation_id


class Relation:
    """A relation models a base table that participates in the join order optimization.

    Each relation has a fixed number of tuples and a set of attribute names. The attributes are used by the cost model to
    guess the selectivity of a join: attributes that appear in both join partners are treated as (equi-)join columns.

    Relations are identified by their `relation_id`. If no id is supplied, a new one is drawn from a process-wide counter
    that starts at 1. Two relations are equal if and only if they share the same id, no matter their tuple count or their
    attributes. This makes relations usable as the atomic unit of relation sets, which in turn are the keys of the memo
    table.

    Relations are immutable.

    Parameters
    ----------
    tuples : int
        The number of tuples in the relation. Has to be non-negative, but this is only checked when the relation is passed
        to the optimizer.
    attributes : Iterable[str]
        The attribute names of the relation. Duplicates are silently merged.
    relation_id : Optional[int], optional
        The identity of the relation. Defaults to the next value of the global id counter. The counter never hands out an
        id that has already been assigned explicitly.
    name : Optional[str], optional
        A human-readable name. Defaults to *T<id>*, e.g. *T1* for the relation with id 1.

    Examples
    --------
    >>> t1 = Relation(10, ["A", "B", "E"], relation_id=1)
    >>> str(t1)
    'T1[A, B, E]: 10'
    """

    @staticmethod
    def from_json(data: Mapping) -> Relation:
        """Creates a relation from its JSON representation.

        The mapping has to contain the keys *tuples* and *attributes*. The keys *id* and *name* are optional.
        """
        return Relation(data["tuples"], data["attributes"], relation_id=data.get("id"), name=data.get("name"))

    def __init__(self, tuples: int, attributes: Iterable[str], *, relation_id: Optional[int] = None,
                 name: Optional[str] = None) -> None:
        self._id = _reserve_relation_id(relation_id) if relation_id is not None else _next_relation_id()
        self._tuples = tuples
        self._attributes = frozenset(attributes)
        self._name = name if name else f"T{self._id}"
        self._hash_val = hash(self._id)

    __slots__ = ("_id", "_tuples", "_attributes", "_name", "_hash_val")

    @property
    def relation_id(self) -> int:
        """Get the identity of this relation."""
        return self._id

    @property
    def tuples(self) -> Cardinality:
        """Get the number of tuples in this relation."""
        return self._tuples

    @property
    def attributes(self) -> frozenset[str]:
        """Get the names of all attributes of this relation."""
        return self._attributes

    @property
    def name(self) -> str:
        """Get the display name of this relation."""
        return self._name

    def sort_key(self) -> tuple:
        """Provides the key that is used to bring relations into a deterministic order.

        Relations are ordered naturally by name (i.e. *T2* comes before *T10*), ties are broken by id.
        """
        return _natural_key(self._name), self._id

    def __json__(self) -> jsondict:
        return {"id": self._id, "name": self._name, "tuples": self._tuples, "attributes": self._attributes}

    def __hash__(self) -> int:
        return self._hash_val

    def __eq__(self, other: object) -> bool:
        return isinstance(other, type(self)) and self._id == other._id

    def __repr__(self) -> str:
        return f"Relation(id={self._id}, name={self._name!r}, tuples={self._tuples}, attributes={sorted(self._attributes)})"

    def __str__(self) -> str:
        attributes = ", ".join(natsort.natsorted(self._attributes))
        return f"{self._name}[{attributes}]: {self._tuples}"


def relations_from_specs(specs: Iterable[tuple[int, Iterable[str]]]) -> list[Relation]:
    """Creates new relations from *(tuples, attributes)* pairs.

    Each relation receives a fresh id from the global counter. This is a shortcut for callers that just want to describe a
    couple of tables.

    Examples
    --------
    >>> relations_from_specs([(10, ["A", "B"]), (20, ["B", "C"])])  # doctest: +SKIP
    [Relation(id=1, ...), Relation(id=2, ...)]
    """
    return [Relation(tuples, attributes) for tuples, attributes in specs]


def sort_relations(relations: Iterable[Relation]) -> list[Relation]:
    """Brings relations into their deterministic order, see `Relation.sort_key`."""
    return sorted(relations, key=Relation.sort_key)
