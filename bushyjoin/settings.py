"""Settings bundle all parameters of the optimizer that are not part of the actual input.

Settings can be created directly, or loaded from a JSON file. A typical configuration file looks like this:

.. code-block:: json

    {
        "cost_model": "shared_attributes",
        "enumeration_order": "canonical",
        "max_relations": 12,
        "timeout": 2.5,
        "parallel_workers": 4,
        "verbose": false,
        "warn_on_cross_products": true
    }

All keys are optional. Unknown keys are rejected to catch typos early.
"""

from __future__ import annotations

import dataclasses
import json
import os
from collections.abc import Mapping
from typing import Any, Optional

from ._costs import CostModel, cost_model_for
from .enumeration import EnumerationOrder
from .util import jsondict

DefaultMaxRelations = 16
"""The largest number of relations that the optimizer accepts by default.

16 relations already produce about 43 million candidate joins (3^16).
"""


@dataclasses.dataclass(frozen=True)
class OptimizerSettings:
    """Configuration of the dynamic programming optimizer.

    Attributes
    ----------
    cost_model : str
        Name of the cost model to use. See `cost_model_for` for the available models. Defaults to *shared_attributes*.
    enumeration_order : EnumerationOrder
        Which bipartitions should be visited. Defaults to `EnumerationOrder.Canonical`.
    max_relations : int
        The largest input that is optimized at all. Larger inputs raise a `SearchSpaceExhaustedError`.
    timeout : Optional[float]
        Number of seconds after which the optimization is aborted with an `OptimizationTimeoutError`. *None* disables the
        timeout.
    parallel_workers : int
        Number of threads that solve subproblems of the same size concurrently. A single worker (the default) uses the
        plain recursive search.
    verbose : bool
        Whether the optimizer should log its decisions to stderr.
    warn_on_cross_products : bool
        Whether to issue a `CrossProductWarning` if the input relations cannot be joined without a cross product.
    """

    cost_model: str = "shared_attributes"
    enumeration_order: EnumerationOrder = EnumerationOrder.Canonical
    max_relations: int = DefaultMaxRelations
    timeout: Optional[float] = None
    parallel_workers: int = 1
    verbose: bool = False
    warn_on_cross_products: bool = False

    @staticmethod
    def from_json(data: Mapping[str, Any]) -> OptimizerSettings:
        """Creates settings from their JSON representation (as produced by `describe`).

        Raises
        ------
        ValueError
            If the data contains unknown keys or invalid values
        """
        known_fields = {field.name for field in dataclasses.fields(OptimizerSettings)}
        unknown_fields = set(data) - known_fields
        if unknown_fields:
            raise ValueError(f"Unknown optimizer settings: {sorted(unknown_fields)}")

        params = dict(data)
        if "enumeration_order" in params:
            params["enumeration_order"] = EnumerationOrder(params["enumeration_order"])
        return OptimizerSettings(**params)

    @staticmethod
    def load(path: str | os.PathLike) -> OptimizerSettings:
        """Reads the settings from a JSON file."""
        with open(path, "r") as config_file:
            return OptimizerSettings.from_json(json.load(config_file))

    def __post_init__(self) -> None:
        if self.max_relations < 1:
            raise ValueError(f"max_relations must be positive, not {self.max_relations}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, not {self.timeout}")
        if self.parallel_workers < 1:
            raise ValueError(f"parallel_workers must be positive, not {self.parallel_workers}")
        if not isinstance(self.enumeration_order, EnumerationOrder):
            object.__setattr__(self, "enumeration_order", EnumerationOrder(self.enumeration_order))
        cost_model_for(self.cost_model)  # fail early for unknown models

    def make_cost_model(self) -> CostModel:
        """Creates a new instance of the configured cost model."""
        return cost_model_for(self.cost_model)

    def with_overrides(self, **kwargs) -> OptimizerSettings:
        """Creates new settings that replace specific values. Parameters that are *None* are ignored."""
        overrides = {key: value for key, value in kwargs.items() if value is not None}
        return dataclasses.replace(self, **overrides)

    def describe(self) -> jsondict:
        """Provides a JSON-serializable representation of the settings."""
        description = dataclasses.asdict(self)
        description["enumeration_order"] = self.enumeration_order.value
        return description

    def __json__(self) -> jsondict:
        return self.describe()
