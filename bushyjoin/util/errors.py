"""Contains various general errors that extend Python's base errors."""
from __future__ import annotations


class LogicError(RuntimeError):
    """Generic error to indicate that any kind of algorithmic problem occurred.

    This error is generally used when some assumption within the optimizer is violated, but it's (probably) not the user's
    fault. As a rule of thumb, if the user supplies faulty input, a `ValueError` should be raised instead.
    Therefore, encoutering a `LogicError` indicates a bug in the optimizer itself.
    """
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)


class StateError(RuntimeError):
    """Indicates that an object is not in the right state to perform an operation."""
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)


class InvariantViolationError(LogicError):
    """Indicates that some contract of a method was violated. The arguments should provide further details."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)


class SearchSpaceExhaustedError(RuntimeError):
    """Indicates that an optimization problem is too large to be solved exhaustively.

    The dynamic programming search grows with *O(3^n)* for *n* relations. Instead of running (practically) unbounded,
    the optimizer refuses inputs that exceed its configured limit.

    Parameters
    ----------
    n_relations : int
        The number of relations that should have been optimized
    limit : int
        The maximum number of relations the optimizer accepts
    """

    def __init__(self, n_relations: int, limit: int) -> None:
        super().__init__(f"Cannot optimize {n_relations} relations exhaustively (limit is {limit})")
        self.n_relations = n_relations
        self.limit = limit


class OptimizationTimeoutError(TimeoutError):
    """Indicates that the optimizer did not finish before its deadline.

    Parameters
    ----------
    timeout : float
        The timeout in seconds that was exceeded
    """

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Optimization did not finish within {timeout} seconds")
        self.timeout = timeout
