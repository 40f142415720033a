"""Cost models estimate the size of join results.

In this simplified setting, the estimated number of result tuples is the only cost measure: the optimizer searches for the
plan whose final result is estimated to be the smallest. All cost models work on the `attributes` and `tuples` of their
input plans and never inspect the plan structure itself.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from ._core import Cardinality
from .util import jsondict

if TYPE_CHECKING:
    from ._jointree import JoinPlan


def shared_attributes(left: JoinPlan, right: JoinPlan) -> int:
    """Counts the attribute names that are available on both sides of a join.

    This is equivalent to ``|attrs(left)| + |attrs(right)| - |attrs(left) ∪ attrs(right)|``.
    """
    return len(left.attributes & right.attributes)


class CostModel(abc.ABC):
    """The cost model estimates the number of tuples that are produced by joining two plans.

    Cost models are only consulted for join nodes. The number of tuples of a base relation is always known exactly.
    Implementations have to be deterministic and free of side effects, since the optimizer re-uses its estimates for all
    plans that share the same inputs.
    """

    @abc.abstractmethod
    def estimate(self, left: JoinPlan, right: JoinPlan) -> Cardinality:
        """Computes the estimated number of tuples of the join between `left` and `right`.

        Parameters
        ----------
        left : JoinPlan
            The left input of the join
        right : JoinPlan
            The right input of the join

        Returns
        -------
        Cardinality
            The estimated result size. Has to be a non-negative integer.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def describe(self) -> jsondict:
        """Provides a JSON-serializable representation of the specific cost model, as well as important parameters.

        Returns
        -------
        jsondict
            The description
        """
        raise NotImplementedError

    def __call__(self, left: JoinPlan, right: JoinPlan) -> Cardinality:
        return self.estimate(left, right)

    def __repr__(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return type(self).__name__


class SharedAttributeCostModel(CostModel):
    """Estimates join results by assuming that each shared attribute halves the cross product.

    For two plans *R* and *S* with *CC(R, S)* attributes in common, the result size is estimated as
    ``|R| * |S| * 0.5^CC(R, S)``. The result is truncated towards zero. Plans without any shared attributes degenerate to a
    plain cross product.

    The estimate is admittedly contrived, but gives the dynamic programming algorithm something to work with. The
    computation uses exact integer arithmetic, such that even large cardinalities are truncated correctly.

    Examples
    --------
    Joining *T1(10 tuples; A, B, E)* with *T2(20 tuples; B, C, D)* shares the attribute *B* and hence produces
    ``floor(10 * 20 * 0.5) = 100`` tuples.
    """

    def estimate(self, left: JoinPlan, right: JoinPlan) -> Cardinality:
        # floor(x / 2^k) == x >> k for non-negative integers
        return (left.tuples * right.tuples) >> shared_attributes(left, right)

    def describe(self) -> jsondict:
        return {"name": "shared_attributes", "selectivity_per_attribute": 0.5}


class CrossProductCostModel(CostModel):
    """Ignores all attributes and estimates each join as a full cross product."""

    def estimate(self, left: JoinPlan, right: JoinPlan) -> Cardinality:
        return left.tuples * right.tuples

    def describe(self) -> jsondict:
        return {"name": "cross_product"}


_DefaultCostModel = SharedAttributeCostModel()

_CostModels: dict[str, type[CostModel]] = {
    "shared_attributes": SharedAttributeCostModel,
    "cross_product": CrossProductCostModel,
}


def default_cost_model() -> CostModel:
    """Provides the cost model that is used if no other model is requested explicitly (the `SharedAttributeCostModel`)."""
    return _DefaultCostModel


def cost_model_for(name: str) -> CostModel:
    """Creates a new instance of a cost model based on its name in the `describe` output.

    Raises
    ------
    ValueError
        If there is no cost model with the given name
    """
    if name not in _CostModels:
        raise ValueError(f"Unknown cost model '{name}'. Available models are {sorted(_CostModels)}")
    return _CostModels[name]()
