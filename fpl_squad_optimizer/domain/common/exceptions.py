"""Exception hierarchy for the optimization engine.

InputError and DataError are raised to callers. ComputationFault and
OptimizationCanceled are raised inside job workers and turned into terminal
job states by the runner.
"""

from typing import Iterable, List


class OptimizerError(Exception):
    """Base class for all engine errors."""


class InputError(OptimizerError, ValueError):
    """Malformed or out-of-range configuration, rejected before any work starts."""


class DataError(OptimizerError):
    """One or more referenced players could not be resolved against the dataset."""

    def __init__(self, message: str, unresolved_names: Iterable[str] = ()):
        super().__init__(message)
        self.unresolved_names: List[str] = list(unresolved_names)


class ComputationFault(OptimizerError):
    """Unexpected failure while running the optimization pipeline."""


class OptimizationCanceled(OptimizerError):
    """Raised inside a worker when its job has been canceled."""
