"""Renders join plans and join graphs as Graphviz objects.

This module requires the optional *graphviz* dependency (install with the ``vis`` extra) and has to be imported
explicitly. To store the rendered graphs on disk, the Graphviz binaries have to be available as well.

References
----------

.. Graphviz project: https://graphviz.org/
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Optional, TypeVar

import graphviz as gv

from ._jointree import JoinPlan
from .joingraph import JoinGraph

T = TypeVar("T")


def _gv_escape(node: T, node_id_generator: Callable[[T], int] = id) -> str:
    """Generates a unique identifier of a specific node."""
    return str(node_id_generator(node))


def plot_tree(node: T, label_generator: Callable[[T], tuple[str, dict]], child_supplier: Callable[[T], Sequence[T]], *,
              out_path: str = "", out_format: str = "svg", node_id_generator: Callable[[T], int] = id,
              _graph: Optional[gv.Graph] = None, **kwargs) -> gv.Graph:
    """Transforms an arbitrary tree into a Graphviz graph. The tree traversal is achieved via callback functions.

    Start the traversal at the root node.

    Parameters
    ----------
    node : T
        The node to plot.
    label_generator : Callable[[T], tuple[str, dict]]
        Callback function to generate labels of the nodes in the graph. The dictionary can contain additional formatting
        attributes (e.g. bold font). Consult the Graphviz documentation for allowed values
    child_supplier : Callable[[T], Sequence[T]]
        Provides the children of the current node.
    out_path : str, optional
        An optional file path to store the graph at. If empty, the graph will only be provided as a Graphviz object.
    out_format : str, optional
        The output format of the graph. Defaults to SVG and will only be used if the graph should be stored to disk (according
        to `out_path`).
    node_id_generator : Callable[[T], int], optional
        Callback function to generate unique identifiers for the nodes. Defaults to the object identity, since the same
        (sub-)plan can appear multiple times in a tree only if it is shared.
    _graph : Optional[gv.Graph], optional
        Internal parameter used for state-management within the plotting function. Do not set this parameter yourself!

    Returns
    -------
    gv.Graph
        The Graphviz graph of the tree
    """
    initial = _graph is None
    _graph = gv.Graph(**kwargs) if initial else _graph
    label, params = label_generator(node)
    node_key = _gv_escape(node, node_id_generator=node_id_generator)
    _graph.node(node_key, label=gv.escape(label), **params)

    for child in child_supplier(node):
        child_key = _gv_escape(child, node_id_generator=node_id_generator)
        _graph.edge(node_key, child_key)
        _graph = plot_tree(child, label_generator, child_supplier, node_id_generator=node_id_generator, _graph=_graph)

    if initial and out_path:
        _graph.render(out_path, format=out_format, cleanup=True)
    return _graph


def _join_plan_labels(plan: JoinPlan) -> tuple[str, dict]:
    if plan.is_scan():
        return str(plan.relation), {"style": "bold"}
    return f"⨝\n{plan.tuples} tuples", {}


def plot_join_plan(plan: JoinPlan, *, out_path: str = "", out_format: str = "svg", **kwargs) -> gv.Graph:
    """Visualizes a join plan. Leaves show their relations, joins their estimated number of tuples.

    See `plot_tree` for the parameters.
    """
    return plot_tree(plan, _join_plan_labels, lambda node: node.children, out_path=out_path, out_format=out_format,
                     **kwargs)


def plot_join_graph(join_graph: JoinGraph, *, out_path: str = "", out_format: str = "svg", **kwargs) -> gv.Graph:
    """Visualizes a join graph. Edges are labelled with the shared attributes of their relations."""
    dot = gv.Graph(**kwargs)
    for relation in join_graph.relations():
        dot.node(str(relation.relation_id), label=gv.escape(str(relation)))
    for first, second, shared in join_graph.graph.edges(data="attributes"):
        dot.edge(str(first.relation_id), str(second.relation_id), label=", ".join(sorted(shared)))

    if out_path:
        dot.render(out_path, format=out_format, cleanup=True)
    return dot
