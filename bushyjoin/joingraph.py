"""The join graph shows which relations can be joined without computing a cross product.

Each relation is a node in the graph. Two relations are connected by an edge if they share at least one attribute. The
edge stores the shared attributes in its *attributes* property. The graph is based on NetworkX [nx]_ and the underlying
`nx.Graph` can be accessed directly for further analysis.

References
----------

.. [nx] Aric A. Hagberg, Daniel A. Schult and Pieter J. Swart, "Exploring network structure, dynamics, and function using
        NetworkX", in Proceedings of the 7th Python in Science Conference (SciPy2008), Gäel Varoquaux, Travis Vaught, and
        Jarrod Millman (Eds), (Pasadena, CA USA), pp. 11-15, Aug 2008
"""

from __future__ import annotations

from collections.abc import Iterable

import networkx as nx

from . import util
from ._core import Relation, sort_relations
from ._jointree import JoinPlan


class CrossProductWarning(UserWarning):
    """Issued if relations have to be combined without any shared attributes."""
    pass


class JoinGraph:
    """The join graph of a set of relations.

    Parameters
    ----------
    relations : Iterable[Relation]
        The relations that form the nodes of the graph
    """

    def __init__(self, relations: Iterable[Relation]) -> None:
        self._relations = sort_relations(relations)
        self._graph = nx.Graph()
        self._graph.add_nodes_from(self._relations)

        for first, second in util.pairs(self._relations):
            shared = first.attributes & second.attributes
            if shared:
                self._graph.add_edge(first, second, attributes=shared)

    @property
    def graph(self) -> nx.Graph:
        """Get the underlying NetworkX graph. It should not be modified."""
        return self._graph

    def relations(self) -> list[Relation]:
        """Provides all relations in the graph, in their deterministic order."""
        return list(self._relations)

    def shared_attributes(self, first: Relation, second: Relation) -> frozenset[str]:
        """Provides the attributes that two relations have in common. This is empty if they are not connected."""
        if not self._graph.has_edge(first, second):
            return frozenset()
        return self._graph.edges[first, second]["attributes"]

    def is_connected(self) -> bool:
        """Checks, whether all relations can be joined without a cross product."""
        return len(self._relations) <= 1 or nx.is_connected(self._graph)

    def components(self) -> list[frozenset[Relation]]:
        """Provides the groups of relations that can be joined without cross products among themselves."""
        components = [frozenset(component) for component in nx.connected_components(self._graph)]
        return sorted(components, key=lambda component: sort_relations(component)[0].sort_key())

    def joins_between(self, first: Iterable[Relation], second: Iterable[Relation]) -> bool:
        """Checks, whether any relation of the first group shares an attribute with any relation of the second group."""
        second = set(second)
        return any(partner in second for rel in first for partner in self._graph.adj[rel])

    def cross_products(self, plan: JoinPlan) -> list[JoinPlan]:
        """Provides all join nodes of a plan that combine their inputs without any shared attributes."""
        return [join for join in plan.iterjoins()
                if not self.joins_between(join.left_child.relations(), join.right_child.relations())]

    def __len__(self) -> int:
        return len(self._relations)

    def __contains__(self, relation: object) -> bool:
        return relation in self._graph

    def __repr__(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return f"JoinGraph({len(self._relations)} relations, {self._graph.number_of_edges()} edges)"
