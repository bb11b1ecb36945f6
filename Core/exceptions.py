"""
Error taxonomy shared by problems, algorithms, stop conditions and the executor.

Configuration and initialisation errors surface before any evaluation happens.
Run errors abort a run in progress; they signal a bug in an algorithm body or a
problem definition and are never retried.
"""

from typing import Any, Optional


class OATError(Exception):
    """Base class for all toolkit errors."""


class ConfigurationError(OATError):
    """An algorithm, problem or stop condition parameter is invalid."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value

    @classmethod
    def invalid(cls, field: str, value: Any) -> "ConfigurationError":
        return cls(f"Invalid {field} {value}", field=field, value=value)


class InitialisationError(OATError):
    """A run component failed to acquire what it needs before the run."""


class AlgorithmRunError(OATError):
    """A structural invariant was violated while a run was in progress."""


class SolutionEvaluationError(AlgorithmRunError):
    """A solution could not be scored, or its score was misused."""


class BudgetExhaustedError(SolutionEvaluationError):
    """Costing was attempted after the evaluation budget ran out."""
