from __future__ import annotations

import concurrent.futures
import dataclasses
import threading
import time
import warnings
from collections.abc import Iterable, Iterator
from typing import Optional

import pandas as pd

from . import util, validation
from ._core import Cardinality, Relation, sort_relations
from ._costs import CostModel
from ._jointree import JoinPlan
from .enumeration import EnumerationOrder, bipartitions, subsets_of_size
from .joingraph import CrossProductWarning, JoinGraph
from .settings import OptimizerSettings
from .util import OptimizationTimeoutError, jsondict


def _format_relations(relations: Iterable[Relation]) -> str:
    return "{" + ", ".join(rel.name for rel in sort_relations(relations)) + "}"


class MemoTable:
    """The memo table stores the optimal plan for each relation set that has been optimized so far.

    Keys are sets of relations, i.e. two keys are the same if they contain exactly the same relations (based on their
    identity). Only relation sets with at least two relations are stored, since single relations do not need to be
    optimized.

    A memo table belongs to a single optimizer configuration. It can be passed to multiple calls of the optimizer as long
    as all calls use the same cost model and enumeration order, in which case shared subproblems are only solved once. The
    first optimizer that uses the table binds it to its configuration (see `bind`) and optimizers with a different
    configuration are rejected afterwards. Use `reset` to drop all entries along with the binding.

    All operations are thread-safe.
    """

    def __init__(self) -> None:
        self._entries: dict[frozenset[Relation], JoinPlan] = {}
        self._configuration: Optional[jsondict] = None
        self._lock = threading.Lock()

    @property
    def configuration(self) -> Optional[jsondict]:
        """Get the optimizer configuration that populates this table, or *None* if the table has not been used yet."""
        return self._configuration

    def bind(self, configuration: jsondict) -> None:
        """Associates the table with the configuration of the optimizer that populates it.

        Parameters
        ----------
        configuration : jsondict
            The description of the cost model and the enumeration order of the optimizer

        Raises
        ------
        ValueError
            If the table is already bound to a different configuration. Its plans would not be optimal for the new one.
        """
        with self._lock:
            if self._configuration is None:
                self._configuration = configuration
                return
            if self._configuration != configuration:
                raise ValueError(f"Memo table was populated using {self._configuration} and cannot be re-used with "
                                 f"{configuration}. Reset the table or use a new one.")

    def lookup(self, relations: Iterable[Relation]) -> Optional[JoinPlan]:
        """Provides the optimal plan for exactly the given relations, or *None* if it has not been computed yet."""
        key = relations if isinstance(relations, frozenset) else frozenset(relations)
        with self._lock:
            return self._entries.get(key)

    def store(self, relations: Iterable[Relation], plan: JoinPlan) -> None:
        """Registers the optimal plan for the given relations.

        Raises
        ------
        InvariantViolationError
            If the plan does not join exactly the given relations
        """
        key = relations if isinstance(relations, frozenset) else frozenset(relations)
        if plan.relations() != key:
            raise util.InvariantViolationError(f"Plan {plan} does not join relations {_format_relations(key)}")
        with self._lock:
            self._entries[key] = plan

    def reset(self) -> None:
        """Removes all entries from the memo and releases its optimizer configuration."""
        with self._lock:
            self._entries.clear()
            self._configuration = None

    def subsets(self) -> list[frozenset[Relation]]:
        """Provides all relation sets that have an entry, ordered by size."""
        return [key for key, _ in self._snapshot()]

    def as_df(self) -> pd.DataFrame:
        """Exports the memo contents into a data frame.

        The data frame contains one row per relation set, with the columns *relations*, *size*, *plan*, *tuples* and *cost*.
        Rows are ordered by the size of the relation sets.
        """
        rows = [{"relations": _format_relations(key), "size": len(key), "plan": str(plan),
                 "tuples": plan.tuples, "cost": plan.cost}
                for key, plan in self._snapshot()]
        return util.as_df(rows)

    def _snapshot(self) -> list[tuple[frozenset[Relation], JoinPlan]]:
        """Provides a consistent copy of all entries, ordered by the size of the relation sets."""
        with self._lock:
            entries = list(self._entries.items())
        return sorted(entries, key=lambda entry: (len(entry[0]), [rel.sort_key() for rel in sort_relations(entry[0])]))

    def __json__(self) -> jsondict:
        return {"configuration": self._configuration,
                "entries": [{"relations": key, "plan": plan} for key, plan in self._snapshot()]}

    def __contains__(self, relations: object) -> bool:
        if isinstance(relations, (str, Relation)) or not isinstance(relations, Iterable):
            return False
        return self.lookup(relations) is not None

    def __getitem__(self, relations: Iterable[Relation]) -> JoinPlan:
        plan = self.lookup(relations)
        if plan is None:
            raise KeyError(relations)
        return plan

    def __iter__(self) -> Iterator[frozenset[Relation]]:
        return iter(self.subsets())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return f"MemoTable({len(self)} entries)"


@dataclasses.dataclass
class OptimizerStatistics:
    """Describes the work that was performed by a single call to the optimizer.

    Attributes
    ----------
    subproblems : int
        The number of relation sets that have been optimized (and stored in the memo)
    candidates : int
        The number of candidate joins that have been compared
    memo_hits : int
        How often an optimal plan could be retrieved from the memo instead of being recomputed
    elapsed_seconds : float
        The wall-clock time of the optimization
    """

    subproblems: int = 0
    candidates: int = 0
    memo_hits: int = 0
    elapsed_seconds: float = 0.0

    def __json__(self) -> jsondict:
        return dataclasses.asdict(self)


class _SearchState:
    """Bookkeeping of a single optimization run: memo, statistics and the deadline."""

    def __init__(self, memo: MemoTable, *, timeout: Optional[float]) -> None:
        self.memo = memo
        self.stats = OptimizerStatistics()
        self.timeout = timeout
        self._start = time.monotonic()
        self._deadline = self._start + timeout if timeout is not None else None
        self._lock = threading.Lock()

    def count_candidate(self) -> None:
        with self._lock:
            self.stats.candidates += 1

    def count_memo_hit(self) -> None:
        with self._lock:
            self.stats.memo_hits += 1

    def count_subproblem(self) -> None:
        with self._lock:
            self.stats.subproblems += 1

    def check_deadline(self) -> None:
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise OptimizationTimeoutError(self.timeout)

    def finish(self) -> OptimizerStatistics:
        self.stats.elapsed_seconds = time.monotonic() - self._start
        return self.stats


class DynamicProgrammingOptimizer:
    """Computes the optimal bushy join order for a set of relations.

    The optimizer implements the classic dynamic programming algorithm over relation subsets (see Silberschatz et al.,
    Figure 13.7): to optimize a set of relations, each way to split the set into two non-empty halves is considered. Both
    halves are optimized recursively and joined. The candidate with the smallest estimated number of tuples is the optimal
    plan for the set. Since the same subsets occur in many different splits, the optimal plan of each subset is stored in a
    `MemoTable` and computed only once. In total, this requires *O(3^n)* candidate joins for *n* relations, which limits
    the optimizer to small inputs.

    If multiple candidates have the same estimated size, the first one in enumeration order wins. Since the enumeration
    brings the relations into a deterministic order first, the optimizer produces the same plan for the same input,
    regardless of the input order.

    If more than one worker is configured, subsets are solved bottom-up instead: all subsets of the same size are optimized
    concurrently, starting with the smallest ones. Since each subset only depends on strictly smaller subsets, the result is
    exactly the same as for the recursive search.

    Parameters
    ----------
    cost_model : Optional[CostModel], optional
        The cost model to estimate join results. Overrides the cost model of the `settings`.
    settings : Optional[OptimizerSettings], optional
        The configuration of the optimizer. Defaults to the default settings.
    enumeration_order : Optional[EnumerationOrder], optional
        Overrides the enumeration order of the `settings`.
    max_relations : Optional[int], optional
        Overrides the maximum input size of the `settings`.
    timeout : Optional[float], optional
        Overrides the timeout of the `settings`.
    parallel_workers : Optional[int], optional
        Overrides the number of workers of the `settings`.
    verbose : Optional[bool], optional
        Overrides the logging behavior of the `settings`.

    Examples
    --------
    >>> t1 = Relation(10, ["A", "B", "E"])
    >>> t2 = Relation(20, ["B", "C", "D"])
    >>> t3 = Relation(15, ["A", "B", "D"])
    >>> optimizer = DynamicProgrammingOptimizer()
    >>> plan = optimizer.optimize({t1, t2, t3})
    >>> plan.tuples
    185
    """

    def __init__(self, *, cost_model: Optional[CostModel] = None, settings: Optional[OptimizerSettings] = None,
                 enumeration_order: Optional[EnumerationOrder] = None, max_relations: Optional[int] = None,
                 timeout: Optional[float] = None, parallel_workers: Optional[int] = None,
                 verbose: Optional[bool] = None) -> None:
        settings = settings if settings is not None else OptimizerSettings()
        self.settings = settings.with_overrides(enumeration_order=enumeration_order, max_relations=max_relations,
                                                timeout=timeout, parallel_workers=parallel_workers, verbose=verbose)
        self.cost_model = cost_model if cost_model is not None else self.settings.make_cost_model()
        self._log = util.make_logger(self.settings.verbose, prefix=lambda: f"[{util.timestamp()}] dynprog ::")
        self._last_stats: Optional[OptimizerStatistics] = None

    def optimize(self, relations: Iterable[Relation], *, memo: Optional[MemoTable] = None) -> JoinPlan:
        """Computes the plan with the smallest estimated result that joins exactly the given relations.

        Parameters
        ----------
        relations : Iterable[Relation]
            The relations to join. The iteration order does not matter.
        memo : Optional[MemoTable], optional
            The memo table to use. If omitted, a fresh table is created for this call. If a table is supplied, it is
            populated with all subsets that are optimized and existing entries are re-used.

        Returns
        -------
        JoinPlan
            The optimal plan. For a single relation, this is just the leaf node of that relation.

        Raises
        ------
        ValueError
            If the relations are empty or malformed, see `validation.check_relations`. Also raised if the `memo` has been
            populated by an optimizer with a different cost model or enumeration order.
        SearchSpaceExhaustedError
            If there are more relations than the configured maximum
        OptimizationTimeoutError
            If the optimization exceeds the configured timeout
        """
        relations = validation.check_relations(relations, max_relations=self.settings.max_relations)
        memo = memo if memo is not None else MemoTable()
        memo.bind(self._memo_configuration())
        state = _SearchState(memo, timeout=self.settings.timeout)

        if self.settings.warn_on_cross_products:
            self._check_cross_products(relations)

        self._log("Optimizing", len(relations), "relations", _format_relations(relations))
        try:
            if self.settings.parallel_workers > 1 and len(relations) > 2 and relations not in memo:
                plan = self._optimize_layered(relations, state)
            else:
                plan = self._optimize(relations, state)
        finally:
            self._last_stats = state.finish()

        self._log("Optimal plan", plan, "produces", plan.tuples, "tuples; statistics:", self._last_stats)
        return plan

    def statistics(self) -> Optional[OptimizerStatistics]:
        """Provides the statistics of the most recent call to `optimize`, or *None* if the optimizer has not been used."""
        return self._last_stats

    def describe(self) -> jsondict:
        """Provides a JSON-serializable representation of the optimizer and its configuration."""
        cost_model = self.cost_model.describe()
        settings = self.settings.describe()
        settings["cost_model"] = cost_model.get("name", type(self.cost_model).__name__)
        return {
            "name": "dynamic_programming",
            "flavor": "bushy",
            "cost_model": cost_model,
            "settings": settings,
        }

    def _memo_configuration(self) -> jsondict:
        """Describes the parts of the configuration that determine which plans end up in the memo."""
        return {"cost_model": self.cost_model.describe(), "enumeration_order": self.settings.enumeration_order.value}

    def _optimize(self, relations: frozenset[Relation], state: _SearchState) -> JoinPlan:
        """Recursive search for the optimal plan of the given relations."""
        cached_plan = state.memo.lookup(relations)
        if cached_plan is not None:
            state.count_memo_hit()
            return cached_plan

        if len(relations) == 1:
            return JoinPlan.scan(next(iter(relations)))

        state.check_deadline()
        if len(relations) == 2:
            left, right = sort_relations(relations)
            best_plan = JoinPlan.join(left, right, cost_model=self.cost_model)
            state.count_candidate()
        else:
            best_plan = None
            for subset, complement in bipartitions(relations, order=self.settings.enumeration_order):
                left_plan = self._optimize(subset, state)
                right_plan = self._optimize(complement, state)
                candidate = JoinPlan.join(left_plan, right_plan, cost_model=self.cost_model)
                state.count_candidate()
                if best_plan is None or candidate.tuples < best_plan.tuples:
                    best_plan = candidate

        state.memo.store(relations, best_plan)
        state.count_subproblem()
        self._log("Best plan for", _format_relations(relations), "is", best_plan, "with", best_plan.tuples, "tuples")
        return best_plan

    def _optimize_layered(self, relations: frozenset[Relation], state: _SearchState) -> JoinPlan:
        """Bottom-up search that solves all subsets of the same size concurrently.

        When layer *k* is solved, all subsets of size *k - 1* and below are already stored in the memo. Therefore, the
        recursive search of each subset in layer *k* only consists of memo lookups for its inputs.
        """
        n_workers = self.settings.parallel_workers
        with concurrent.futures.ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="dynprog") as pool:
            for size in range(2, len(relations) + 1):
                layer = [subset for subset in subsets_of_size(relations, size) if subset not in state.memo]
                self._log("Solving", len(layer), "subsets of size", size, "with", n_workers, "workers")
                tasks = [pool.submit(self._optimize, subset, state) for subset in layer]
                try:
                    for task in concurrent.futures.as_completed(tasks):
                        task.result()
                except BaseException:
                    for task in tasks:
                        task.cancel()
                    raise

        return state.memo[relations]

    def _check_cross_products(self, relations: frozenset[Relation]) -> None:
        join_graph = JoinGraph(relations)
        if join_graph.is_connected():
            return
        components = ", ".join(_format_relations(component) for component in join_graph.components())
        warnings.warn(f"Relations can only be joined using cross products. Connected components: {components}",
                      category=CrossProductWarning)

    def __repr__(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return f"DynamicProgrammingOptimizer(cost_model={self.cost_model}, order={self.settings.enumeration_order.value})"


def optimize(relations: Iterable[Relation], *, memo: Optional[MemoTable] = None,
             cost_model: Optional[CostModel] = None) -> JoinPlan:
    """Computes the optimal plan for the relations using a default optimizer. See `DynamicProgrammingOptimizer.optimize`."""
    return DynamicProgrammingOptimizer(cost_model=cost_model).optimize(relations, memo=memo)


def optimal_join_order(relations: Iterable[Relation], *, cost_model: Optional[CostModel] = None,
                       settings: Optional[OptimizerSettings] = None) -> tuple[JoinPlan, Cardinality]:
    """Computes the optimal join order for the given relations.

    This is the main entry point for callers that do not need to configure the optimizer in detail.

    Parameters
    ----------
    relations : Iterable[Relation]
        The relations to join
    cost_model : Optional[CostModel], optional
        The cost model to use. Defaults to the `SharedAttributeCostModel`.
    settings : Optional[OptimizerSettings], optional
        Further configuration of the optimizer

    Returns
    -------
    tuple[JoinPlan, Cardinality]
        The optimal plan along with its estimated number of result tuples
    """
    optimizer = DynamicProgrammingOptimizer(cost_model=cost_model, settings=settings)
    plan = optimizer.optimize(relations)
    return plan, plan.tuples
