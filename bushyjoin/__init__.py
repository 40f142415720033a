"""bushyjoin - cost-based join ordering with dynamic programming over relation subsets.

On a high level, bushyjoin computes the join order for a set of base relations that minimizes the estimated size of the
final result. Each relation has a known number of tuples and a set of attribute names. Attributes that are shared between
two join partners are treated as join columns, and each of them is assumed to halve the size of the cross product. This is
the textbook setting of the "optimal bushy join tree" algorithm from Silberschatz, Korth and Sudarshan: *Database System
Concepts* (Chapter 13, Figure 13.7).

The package is structured as follows:

- `Relation` describes a base table
- `JoinPlan` is the binary tree of joins that is produced by the optimizer. Use `make_join` to combine plans manually.
- `CostModel` estimates the result size of a join. The `SharedAttributeCostModel` implements the attribute halving scheme
  and is used by default.
- the `enumeration` module splits relation sets into independent halves
- `DynamicProgrammingOptimizer` performs the actual search and stores optimal sub-plans in a `MemoTable`
- `OptimizerSettings` bundle the configuration of the optimizer
- the `joingraph` module provides a NetworkX-based view on which relations share attributes
- the `util` package contains general utilities for errors, logging and serialization
- the `vis` module renders plans via Graphviz. It has to be imported explicitly and requires the ``vis`` extra.

Most of the time, `optimal_join_order` is all that is needed:

>>> t1 = Relation(10, ["A", "B", "E"])
>>> t2 = Relation(20, ["B", "C", "D"])
>>> t3 = Relation(15, ["A", "B", "D"])
>>> plan, tuples = optimal_join_order([t1, t2, t3])
>>> tuples
185
"""

from . import enumeration, joingraph, util, validation
from ._core import Cardinality, Relation, relations_from_specs, sort_relations
from ._costs import (
    CostModel,
    CrossProductCostModel,
    SharedAttributeCostModel,
    cost_model_for,
    default_cost_model,
    shared_attributes,
)
from ._dynprog import (
    DynamicProgrammingOptimizer,
    MemoTable,
    OptimizerStatistics,
    optimal_join_order,
    optimize,
)
from ._jointree import JoinPlan, covered_relations, make_join
from .enumeration import EnumerationOrder, bipartitions
from .joingraph import CrossProductWarning, JoinGraph
from .settings import OptimizerSettings

__version__ = "0.1.0"

__all__ = [
    "enumeration", "joingraph", "util", "validation",
    "Cardinality", "Relation", "relations_from_specs", "sort_relations",
    "CostModel", "SharedAttributeCostModel", "CrossProductCostModel", "cost_model_for", "default_cost_model",
    "shared_attributes",
    "JoinPlan", "make_join", "covered_relations",
    "EnumerationOrder", "bipartitions",
    "DynamicProgrammingOptimizer", "MemoTable", "OptimizerStatistics", "optimize", "optimal_join_order",
    "JoinGraph", "CrossProductWarning",
    "OptimizerSettings",
]
