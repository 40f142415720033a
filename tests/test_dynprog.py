"""Tests for the dynamic programming optimizer."""
import itertools
import random
import time
import unittest
import warnings

import bushyjoin as bj
from bushyjoin import util

from tests import regression_suite


class SlowCostModel(bj.CostModel):
    """Shared attribute cost model that takes its time."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._delegate = bj.SharedAttributeCostModel()

    def estimate(self, left: bj.JoinPlan, right: bj.JoinPlan) -> int:
        time.sleep(self.delay)
        return self._delegate.estimate(left, right)

    def describe(self) -> dict:
        return {"name": "slow", "delay": self.delay}


class TextbookExampleTests(regression_suite.JoinPlanTestCase):
    def setUp(self) -> None:
        self.t1 = bj.Relation(10, ["A", "B", "E"], name="T1")
        self.t2 = bj.Relation(20, ["B", "C", "D"], name="T2")
        self.t3 = bj.Relation(15, ["A", "B", "D"], name="T3")
        self.relations = [self.t1, self.t2, self.t3]

    def test_single_relation(self) -> None:
        plan = bj.optimize({self.t1})
        self.assertEqual(plan, bj.JoinPlan.scan(self.t1))
        self.assertEqual(plan.tuples, 10)

    def test_two_relations(self) -> None:
        plan = bj.optimize({self.t2, self.t1})
        self.assertEqual(plan, bj.make_join(self.t1, self.t2))
        self.assertEqual(plan.tuples, 100)

    def test_three_relations(self) -> None:
        plan = bj.optimize(set(self.relations))
        self.assertEqual(plan.tuples, 185)
        self.assertEqual(plan, bj.make_join(bj.make_join(self.t1, self.t3), self.t2))
        self.assertPlanCovers(plan, self.relations)
        self.assertPlanConsistent(plan)

        alternatives = [bj.make_join(bj.make_join(self.t1, self.t2), self.t3),
                        bj.make_join(bj.make_join(self.t2, self.t3), self.t1)]
        for alternative in alternatives:
            self.assertLessEqual(plan.tuples, alternative.tuples)

    def test_memo_contents(self) -> None:
        memo = bj.MemoTable()
        bj.optimize(self.relations, memo=memo)

        expected_keys = [frozenset({self.t1, self.t2}), frozenset({self.t1, self.t3}), frozenset({self.t2, self.t3}),
                         frozenset(self.relations)]
        self.assertEqual(len(memo), 4)
        self.assertEqual(memo.subsets(), expected_keys)
        self.assertEqual(memo[{self.t1, self.t3}].tuples, 37)
        self.assertEqual(memo[{self.t2, self.t3}].tuples, 75)
        self.assertNotIn(frozenset({self.t1}), memo)

    def test_idempotence(self) -> None:
        optimizer = bj.DynamicProgrammingOptimizer()
        memo = bj.MemoTable()

        first_plan = optimizer.optimize(self.relations, memo=memo)
        first_stats = optimizer.statistics()
        self.assertEqual(first_stats.subproblems, 4)
        self.assertEqual(first_stats.candidates, 6)

        second_plan = optimizer.optimize(reversed(self.relations), memo=memo)
        second_stats = optimizer.statistics()
        self.assertIs(second_plan, first_plan)
        self.assertEqual(second_stats.candidates, 0)
        self.assertEqual(second_stats.subproblems, 0)
        self.assertEqual(second_stats.memo_hits, 1)

    def test_memo_is_bound_to_configuration(self) -> None:
        memo = bj.MemoTable()
        cross_product_optimizer = bj.DynamicProgrammingOptimizer(cost_model=bj.CrossProductCostModel())
        self.assertEqual(cross_product_optimizer.optimize(self.relations, memo=memo).tuples, 3000)
        self.assertEqual(memo.configuration["cost_model"]["name"], "cross_product")

        with self.assertRaises(ValueError):
            bj.DynamicProgrammingOptimizer().optimize(self.relations, memo=memo)
        with self.assertRaises(ValueError):
            bj.DynamicProgrammingOptimizer(cost_model=bj.CrossProductCostModel(),
                                           enumeration_order=bj.EnumerationOrder.Reference).optimize(self.relations,
                                                                                                     memo=memo)

        same_configuration = bj.DynamicProgrammingOptimizer(cost_model=bj.CrossProductCostModel())
        self.assertEqual(same_configuration.optimize(self.relations, memo=memo).tuples, 3000)

        memo.reset()
        self.assertIsNone(memo.configuration)
        self.assertEqual(bj.DynamicProgrammingOptimizer().optimize(self.relations, memo=memo).tuples, 185)

    def test_memo_membership(self) -> None:
        memo = bj.MemoTable()
        bj.optimize(self.relations, memo=memo)
        self.assertIn([self.t1, self.t3], memo)
        self.assertIn((rel for rel in self.relations), memo)
        self.assertIn({self.t2, self.t3}, memo)
        self.assertNotIn([self.t1], memo)
        self.assertNotIn(self.t1, memo)
        self.assertNotIn("T1", memo)

    def test_memo_reset(self) -> None:
        memo = bj.MemoTable()
        first_plan = bj.optimize(self.relations, memo=memo)
        memo.reset()
        self.assertEqual(len(memo), 0)

        second_plan = bj.optimize(self.relations, memo=memo)
        self.assertIsNot(second_plan, first_plan)
        self.assertEqual(second_plan, first_plan)

    def test_reference_enumeration_order(self) -> None:
        optimizer = bj.DynamicProgrammingOptimizer(enumeration_order=bj.EnumerationOrder.Reference)
        plan = optimizer.optimize(self.relations)
        self.assertEqual(plan.tuples, 185)
        # the first minimal candidate of the full bitmask walk splits off T2
        self.assertEqual(plan, bj.make_join(self.t2, bj.make_join(self.t1, self.t3)))

        stats = optimizer.statistics()
        self.assertEqual(stats.candidates, 9)
        self.assertEqual(stats.memo_hits, 3)

    def test_optimal_join_order(self) -> None:
        plan, tuples = bj.optimal_join_order(self.relations)
        self.assertEqual(tuples, 185)
        self.assertEqual(tuples, plan.tuples)

    def test_injected_cost_model(self) -> None:
        plan, tuples = bj.optimal_join_order(self.relations, cost_model=bj.CrossProductCostModel())
        self.assertEqual(tuples, 10 * 20 * 15)
        self.assertPlanCovers(plan, self.relations)


class OptimalityTests(regression_suite.JoinPlanTestCase):
    def test_matches_brute_force(self) -> None:
        rng = random.Random(42)
        for n in range(1, 6):
            for _ in range(15):
                relations = regression_suite.random_relations(n, rng=rng)
                plan = bj.optimize(relations)
                self.assertEqual(plan.tuples, regression_suite.brute_force_optimum(relations),
                                 msg=f"Suboptimal plan for relations {relations}: {plan}")
                self.assertPlanCovers(plan, relations)
                self.assertPlanConsistent(plan)

    def test_enumeration_orders_agree_on_cost(self) -> None:
        rng = random.Random(7)
        for _ in range(10):
            relations = regression_suite.random_relations(5, rng=rng)
            canonical = bj.DynamicProgrammingOptimizer(enumeration_order=bj.EnumerationOrder.Canonical)
            reference = bj.DynamicProgrammingOptimizer(enumeration_order=bj.EnumerationOrder.Reference)
            self.assertEqual(canonical.optimize(relations).tuples, reference.optimize(relations).tuples)

    def test_independent_of_input_order(self) -> None:
        rng = random.Random(13)
        relations = regression_suite.random_relations(4, rng=rng)
        expected = bj.optimize(relations)
        for permutation in itertools.permutations(relations):
            self.assertEqual(bj.optimize(list(permutation)), expected)

    def test_zero_tuples(self) -> None:
        empty = bj.Relation(0, ["A"])
        other = bj.Relation(100, ["A", "B"])
        third = bj.Relation(50, ["B"])
        plan = bj.optimize([empty, other, third])
        self.assertEqual(plan.tuples, 0)

    def test_all_subsets_are_memoized(self) -> None:
        rng = random.Random(3)
        relations = regression_suite.random_relations(5, rng=rng)
        memo = bj.MemoTable()
        bj.optimize(relations, memo=memo)
        expected_keys = {frozenset(subset) for subset in util.powerset(relations) if len(subset) >= 2}
        self.assertEqual(set(memo.subsets()), expected_keys)
        for key in memo:
            self.assertEqual(memo[key].relations(), key)


class ParallelOptimizationTests(unittest.TestCase):
    def test_parallel_matches_sequential(self) -> None:
        rng = random.Random(21)
        for n in range(1, 7):
            relations = regression_suite.random_relations(n, rng=rng)
            sequential = bj.DynamicProgrammingOptimizer().optimize(relations)
            parallel = bj.DynamicProgrammingOptimizer(parallel_workers=4).optimize(relations)
            self.assertEqual(parallel, sequential)

    def test_parallel_fills_memo(self) -> None:
        rng = random.Random(5)
        relations = regression_suite.random_relations(5, rng=rng)
        memo = bj.MemoTable()
        bj.DynamicProgrammingOptimizer(parallel_workers=3).optimize(relations, memo=memo)
        self.assertEqual(len(memo), 2 ** 5 - 5 - 1)


class InputValidationTests(unittest.TestCase):
    def test_empty_input(self) -> None:
        with self.assertRaises(ValueError):
            bj.optimize(set())
        with self.assertRaises(ValueError):
            bj.optimal_join_order([])

    def test_duplicate_identity(self) -> None:
        first = bj.Relation(10, ["A"], relation_id=1001)
        second = bj.Relation(20, ["B"], relation_id=1001)
        with self.assertRaises(ValueError):
            bj.optimize([first, second])

    def test_negative_tuples(self) -> None:
        with self.assertRaises(ValueError):
            bj.optimize([bj.Relation(-1, ["A"]), bj.Relation(10, ["A"])])

    def test_non_integer_tuples(self) -> None:
        with self.assertRaises(ValueError):
            bj.optimize([bj.Relation(1.5, ["A"])])

    def test_non_string_attributes(self) -> None:
        with self.assertRaises(ValueError):
            bj.optimize([bj.Relation(10, [1, 2])])

    def test_wrong_types(self) -> None:
        with self.assertRaises(TypeError):
            bj.optimize(["T1", "T2"])
        with self.assertRaises(TypeError):
            bj.optimize(None)

    def test_too_many_relations(self) -> None:
        relations = [bj.Relation(10, ["A"]) for _ in range(4)]
        optimizer = bj.DynamicProgrammingOptimizer(max_relations=3)
        with self.assertRaises(util.SearchSpaceExhaustedError) as context:
            optimizer.optimize(relations)
        self.assertEqual(context.exception.n_relations, 4)
        self.assertEqual(context.exception.limit, 3)

    def test_timeout(self) -> None:
        relations = [bj.Relation(10 + i, ["A", f"B{i}"]) for i in range(8)]
        optimizer = bj.DynamicProgrammingOptimizer(cost_model=SlowCostModel(0.005), timeout=0.05)
        with self.assertRaises(util.OptimizationTimeoutError):
            optimizer.optimize(relations)
        self.assertIsNotNone(optimizer.statistics())

    def test_parallel_timeout(self) -> None:
        relations = [bj.Relation(10 + i, ["A", f"B{i}"]) for i in range(8)]
        optimizer = bj.DynamicProgrammingOptimizer(cost_model=SlowCostModel(0.005), timeout=0.05, parallel_workers=2)
        with self.assertRaises(util.OptimizationTimeoutError):
            optimizer.optimize(relations)


class CrossProductWarningTests(unittest.TestCase):
    def test_warns_for_disconnected_relations(self) -> None:
        settings = bj.OptimizerSettings(warn_on_cross_products=True)
        relations = [bj.Relation(10, ["A"]), bj.Relation(20, ["A"]), bj.Relation(30, ["B"])]
        with self.assertWarns(bj.CrossProductWarning):
            bj.DynamicProgrammingOptimizer(settings=settings).optimize(relations)

    def test_no_warning_for_connected_relations(self) -> None:
        settings = bj.OptimizerSettings(warn_on_cross_products=True)
        relations = [bj.Relation(10, ["A"]), bj.Relation(20, ["A", "B"]), bj.Relation(30, ["B"])]
        with warnings.catch_warnings():
            warnings.simplefilter("error", bj.CrossProductWarning)
            bj.DynamicProgrammingOptimizer(settings=settings).optimize(relations)


class DescriptionTests(unittest.TestCase):
    def test_describe(self) -> None:
        optimizer = bj.DynamicProgrammingOptimizer(enumeration_order=bj.EnumerationOrder.Reference, parallel_workers=2)
        description = optimizer.describe()
        self.assertEqual(description["name"], "dynamic_programming")
        self.assertEqual(description["cost_model"]["name"], "shared_attributes")
        self.assertEqual(description["settings"]["enumeration_order"], "reference")
        self.assertEqual(description["settings"]["parallel_workers"], 2)
        self.assertIsNotNone(util.to_json(description))

    def test_describe_injected_cost_model(self) -> None:
        optimizer = bj.DynamicProgrammingOptimizer(cost_model=bj.CrossProductCostModel())
        description = optimizer.describe()
        self.assertEqual(description["cost_model"]["name"], "cross_product")
        self.assertEqual(description["settings"]["cost_model"], "cross_product")

        slow_description = bj.DynamicProgrammingOptimizer(cost_model=SlowCostModel(0.0)).describe()
        self.assertEqual(slow_description["settings"]["cost_model"], "slow")

    def test_memo_export(self) -> None:
        t1 = bj.Relation(10, ["A", "B", "E"], name="T1")
        t2 = bj.Relation(20, ["B", "C", "D"], name="T2")
        t3 = bj.Relation(15, ["A", "B", "D"], name="T3")
        memo = bj.MemoTable()
        bj.optimize([t1, t2, t3], memo=memo)

        df = memo.as_df()
        self.assertEqual(len(df), 4)
        self.assertEqual(list(df["size"]), [2, 2, 2, 3])
        self.assertEqual(list(df["relations"]), ["{T1, T2}", "{T1, T3}", "{T2, T3}", "{T1, T2, T3}"])
        self.assertEqual(df["tuples"].iloc[-1], 185)
        self.assertIsNotNone(util.to_json(memo))


if __name__ == "__main__":
    unittest.main()
