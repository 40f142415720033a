from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from . import util
from ._core import Cardinality, Relation
from ._costs import CostModel, default_cost_model
from .util import StateError, jsondict


class JoinPlan:
    """A join plan models the sequence in which relations should be joined.

    A join plan is a binary tree that contains base relations at its leaves and joins as inner nodes. The node type can be
    checked using the `is_scan` and `is_join` methods. Notice that these methods are "binary": ``is_join() = False`` implies
    ``is_scan() = True`` and vice versa. For leaf nodes, the `relation` property is available. For joins, the `left_child`
    and `right_child` properties are available. No matter the specific node type, the `children` property always provides
    iteration support for the input nodes of the current node (which in case of base relations is just an empty tuple).

    All derived values are computed exactly once when the node is created:

    - the `attributes` of a plan are the union of the attributes of its relations
    - the covered `relations()` are the union of the relations of its children
    - the estimated number of `tuples` of a join is determined by the cost model. For leaves, this is just the number of
      tuples in the base relation.
    - the total `cost` of a plan sums the estimated tuples of all join nodes. It is reported for analysis purposes, but the
      optimizer compares plans by their `tuples` only.

    Each plan is immutable. Since the optimizer re-uses the optimal sub-plans in many different candidate plans, children
    are shared between different parent nodes.

    Plans are equal if they join the same relations in the same shape. Notice that this is different from comparing
    attribute sets and tuple counts: two completely different relation sets can easily produce the same attributes and
    cardinalities.

    Use the `scan` and `join` factory methods (or `make_join`) to create new plans rather than calling the constructor
    directly.

    Parameters
    ----------
    relation : Optional[Relation], optional
        The base relation of a leaf node. Accessing this property on join nodes raises an error.
    left_child : Optional[JoinPlan], optional
        The left input of a join node. Accessing this property on leaf nodes raises an error.
    right_child : Optional[JoinPlan], optional
        The right input of a join node. Accessing this property on leaf nodes raises an error.
    tuples : Cardinality
        The estimated number of tuples produced by the plan.
    """

    @staticmethod
    def scan(relation: Relation) -> JoinPlan:
        """Creates a new leaf node for a base relation.

        Parameters
        ----------
        relation : Relation
            The base relation

        Returns
        -------
        JoinPlan
            The leaf node. Its estimated tuple count is the number of tuples of the relation.
        """
        return JoinPlan(relation=relation, tuples=relation.tuples)

    @staticmethod
    def join(left: JoinPlan | Relation, right: JoinPlan | Relation, *,
             cost_model: Optional[CostModel] = None) -> JoinPlan:
        """Creates a new join node by combining two existing plans.

        Parameters
        ----------
        left : JoinPlan | Relation
            The left input. Plain relations are wrapped in a leaf node.
        right : JoinPlan | Relation
            The right input. Plain relations are wrapped in a leaf node.
        cost_model : Optional[CostModel], optional
            The cost model to estimate the number of result tuples. Defaults to the `SharedAttributeCostModel`.

        Returns
        -------
        JoinPlan
            The join node
        """
        left = _as_plan(left)
        right = _as_plan(right)
        cost_model = cost_model if cost_model is not None else default_cost_model()
        return JoinPlan(left_child=left, right_child=right, tuples=cost_model.estimate(left, right))

    def __init__(self, *, relation: Optional[Relation] = None, left_child: Optional[JoinPlan] = None,
                 right_child: Optional[JoinPlan] = None, tuples: Cardinality) -> None:
        if relation is None and (left_child is None or right_child is None):
            raise ValueError("A join plan requires either a relation or two children")
        if relation is not None and (left_child is not None or right_child is not None):
            raise ValueError("A join plan cannot be both a leaf and a join node")

        self._relation = relation
        self._left = left_child
        self._right = right_child
        self._tuples = tuples

        if relation is not None:
            self._attributes = relation.attributes
            self._relations = frozenset([relation])
            self._cost = 0
        else:
            self._attributes = left_child.attributes | right_child.attributes
            self._relations = left_child.relations() | right_child.relations()
            self._cost = left_child.cost + right_child.cost + tuples

        self._hash_val = hash((relation, left_child, right_child))

    __slots__ = ("_relation", "_left", "_right", "_tuples", "_attributes", "_relations", "_cost", "_hash_val")

    @property
    def relation(self) -> Relation:
        """Get the base relation of leaf nodes.

        Accessing this property on a join node raises an error.
        """
        if self._relation is None:
            raise StateError("This join plan does not represent a base relation.")
        return self._relation

    @property
    def left_child(self) -> JoinPlan:
        """Get the left input of the join node.

        Accessing this property on a base relation raises an error.
        """
        if self._left is None:
            raise StateError("This join plan does not represent a join.")
        return self._left

    @property
    def right_child(self) -> JoinPlan:
        """Get the right input of the join node.

        Accessing this property on a base relation raises an error.
        """
        if self._right is None:
            raise StateError("This join plan does not represent a join.")
        return self._right

    @property
    def children(self) -> tuple[JoinPlan, JoinPlan] | tuple[()]:
        """Get the children of the current node.

        For base relations, this is an empty tuple. For join nodes, this is a tuple of the left and right child.
        """
        if self.is_scan():
            return ()
        return self._left, self._right

    @property
    def tuples(self) -> Cardinality:
        """Get the estimated number of tuples produced by this plan."""
        return self._tuples

    @property
    def attributes(self) -> frozenset[str]:
        """Get all attributes that are available in the result of this plan."""
        return self._attributes

    @property
    def cost(self) -> int:
        """Get the sum of the estimated tuples of all joins in this plan. Leaves do not contribute to the cost."""
        return self._cost

    def is_scan(self) -> bool:
        """Check, whether the current plan node is a leaf node."""
        return self._relation is not None

    def is_join(self) -> bool:
        """Check, whether the current plan node is a join."""
        return self._relation is None

    def is_linear(self) -> bool:
        """Checks, whether the plan encodes a linear join sequence.

        In a linear plan each join is always a join between a base relation and another join node or another base
        relation. As a special case, plans that only consist of a single node are also considered to be linear.

        See Also
        --------
        is_bushy
        """
        if self.is_scan():
            return True
        if not self._left.is_scan() and not self._right.is_scan():
            return False
        return self._left.is_linear() and self._right.is_linear()

    def is_bushy(self) -> bool:
        """Checks, whether the plan encodes a bushy join sequence.

        In a bushy plan, at least one join node is a join between two other join nodes.

        See Also
        --------
        is_linear
        """
        return not self.is_linear()

    def is_base_join(self) -> bool:
        """Checks, whether the current join node joins two base relations directly."""
        return self.is_join() and self._left.is_scan() and self._right.is_scan()

    def relations(self) -> frozenset[Relation]:
        """Provides all base relations that are joined by this plan."""
        return self._relations

    def plan_depth(self) -> int:
        """Calculates the depth of the plan.

        The depth is the length of the longest path from the root to a leaf node. A plan with a single node has depth 1.
        """
        if self.is_scan():
            return 1
        return 1 + max(self._left.plan_depth(), self._right.plan_depth())

    def lookup(self, relations: Relation | Iterable[Relation]) -> Optional[JoinPlan]:
        """Traverses the plan to find a specific (intermediate) node.

        Parameters
        ----------
        relations : Relation | Iterable[Relation]
            The relations that should be contained in the intermediate. If a single relation is provided, the corresponding
            leaf node will be returned. If multiple relations are provided, the join node that calculates the intermediate
            *exactly* is returned.

        Returns
        -------
        Optional[JoinPlan]
            The plan node that contains the specified relations. If no such node exists, *None* is returned.
        """
        needle = frozenset(util.enlist(relations))
        if needle == self._relations:
            return self
        if not needle.issubset(self._relations):
            return None

        for child in self.children:
            result = child.lookup(needle)
            if result is not None:
                return result

        return None

    def inspect(self) -> str:
        """Provides a pretty-printed an human-readable representation of the plan."""
        return _inspectify(self)

    def iternodes(self) -> list[JoinPlan]:
        """Provides all nodes in the plan, with left nodes coming first."""
        if self.is_scan():
            return [self]
        return [self] + self._left.iternodes() + self._right.iternodes()

    def iterrelations(self) -> list[Relation]:
        """Provides all base relations in the plan, from left to right."""
        if self.is_scan():
            return [self._relation]
        return self._left.iterrelations() + self._right.iterrelations()

    def iterjoins(self) -> list[JoinPlan]:
        """Provides all join nodes in the plan, in the order in which they have to be executed."""
        if self.is_scan():
            return []
        return self._left.iterjoins() + self._right.iterjoins() + [self]

    def __json__(self) -> jsondict:
        if self.is_scan():
            return {"relation": self._relation, "tuples": self._tuples}
        return {"left": self._left, "right": self._right, "tuples": self._tuples}

    def __contains__(self, x: object) -> bool:
        if isinstance(x, Relation):
            return x in self._relations
        return self.lookup(x) is not None

    def __len__(self) -> int:
        return len(self._relations)

    def __hash__(self) -> int:
        return self._hash_val

    def __eq__(self, other: object) -> bool:
        return (isinstance(other, type(self))
                and self._relation == other._relation
                and self._left == other._left
                and self._right == other._right)

    def __repr__(self) -> str:
        return str(self)

    def __str__(self) -> str:
        if self.is_scan():
            return str(self._relation)
        return f"({self._left} x {self._right})"


def make_join(left: JoinPlan | Relation, right: JoinPlan | Relation, *,
              cost_model: Optional[CostModel] = None) -> JoinPlan:
    """Joins two plans. This is just a shorthand for `JoinPlan.join`."""
    return JoinPlan.join(left, right, cost_model=cost_model)


def covered_relations(plan: JoinPlan) -> frozenset[Relation]:
    """Provides all base relations that are joined by a plan. This is just a shorthand for `JoinPlan.relations`."""
    return plan.relations()


def _as_plan(obj: JoinPlan | Relation) -> JoinPlan:
    if isinstance(obj, JoinPlan):
        return obj
    if isinstance(obj, Relation):
        return JoinPlan.scan(obj)
    raise TypeError(f"Cannot join object of type {type(obj).__name__}: {obj}")


def _inspectify(plan: JoinPlan, *, indentation: int = 0) -> str:
    """Handler method to generate a human-readable string representation of a join plan."""
    padding = " " * indentation
    prefix = "<- " if padding else ""

    if plan.is_scan():
        return f"{padding}{prefix}{plan.relation}"

    join_node = f"{padding}{prefix}⨝ ({plan.tuples})"
    child_inspections = [_inspectify(child, indentation=indentation + 2) for child in plan.children]
    return f"{join_node}\n" + "\n".join(child_inspections)
