#!/usr/bin/env python3
#
# This script shows how the optimizer can be configured: a larger number of random tables is optimized with a timeout,
# multiple worker threads and verbose logging. Finally, the resulting plan is exported to JSON and, if Graphviz is
# available, rendered as an SVG file.
#
# Requirements: the optional vis dependencies (pip install bushyjoin[vis]) and the Graphviz binaries for the last step.
#

import random
import sys

import bushyjoin as bj
from bushyjoin import util

rng = random.Random(42)
relations = bj.relations_from_specs(
    (rng.randint(100, 10_000), rng.sample("ABCDEFGHIJ", rng.randint(1, 3))) for _ in range(10)
)

join_graph = bj.JoinGraph(relations)
print("Join graph:", join_graph, "- connected:", join_graph.is_connected(), file=sys.stderr)

settings = bj.OptimizerSettings(timeout=30, parallel_workers=4, verbose=True, warn_on_cross_products=True)
plan, tuples = bj.optimal_join_order(relations, settings=settings)

print(plan.inspect())
print("Estimated result size:", tuples)
print("Cross products:", len(join_graph.cross_products(plan)))
print(util.to_json(plan, indent=2))

try:
    from bushyjoin import vis
except ImportError:
    print("Graphviz is not installed, skipping rendering", file=sys.stderr)
else:
    vis.plot_join_plan(plan, out_path="join-plan")
