"""Tests for the Graphviz export. These only build the graph sources and do not require the Graphviz binaries."""
import importlib.util
import unittest

import bushyjoin as bj


@unittest.skipUnless(importlib.util.find_spec("graphviz"), "graphviz is not installed")
class VisualizationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.t1 = bj.Relation(10, ["A", "B", "E"], name="T1")
        self.t2 = bj.Relation(20, ["B", "C", "D"], name="T2")
        self.t3 = bj.Relation(15, ["A", "B", "D"], name="T3")

    def test_plot_join_plan(self) -> None:
        from bushyjoin import vis

        plan = bj.optimize([self.t1, self.t2, self.t3])
        graph = vis.plot_join_plan(plan)
        source = graph.source
        self.assertEqual(source.count(" -- "), 4)
        self.assertIn("185 tuples", source)
        self.assertIn("T2[B, C, D]: 20", source)

    def test_plot_join_graph(self) -> None:
        from bushyjoin import vis

        graph = vis.plot_join_graph(bj.JoinGraph([self.t1, self.t2, self.t3]))
        source = graph.source
        self.assertEqual(source.count(" -- "), 3)
        self.assertIn('label="A, B"', source)


if __name__ == "__main__":
    unittest.main()
