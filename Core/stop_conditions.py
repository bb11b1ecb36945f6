"""
Stop conditions: stateful predicates over run progress.

A problem polls every attached condition from `can_evaluate()`; the run ends
when any of them fires. Conditions latch, so once triggered they stay
triggered until `reset()` (called automatically before each run).
"""

from __future__ import annotations

import abc
import math
import threading
import time
from collections import deque
from datetime import datetime
from typing import TYPE_CHECKING, Any, Deque, Dict, List, Optional

from .exceptions import ConfigurationError, InitialisationError
from .problem import Problem, Solution

if TYPE_CHECKING:
    from .search_algorithm import Algorithm


class StopCondition(abc.ABC):
    """Generic stop condition used to end a problem-algorithm run."""

    name: str = "Stop Condition"

    def __init__(self):
        self._triggered = False
        self.triggered_at: Optional[datetime] = None

    @abc.abstractmethod
    def must_stop_internal(self) -> bool:
        """Implementation of the stop condition."""

    def must_stop(self) -> bool:
        """True if the condition fires now or has fired earlier in the run."""
        if self._triggered:
            return True
        if self.must_stop_internal():
            self._triggered = True
            self.triggered_at = datetime.now()
            return True
        return False

    @property
    def triggered(self) -> bool:
        return self._triggered

    def reset(self) -> None:
        self._triggered = False
        self.triggered_at = None

    def validate_configuration(self) -> None:
        """Default implementation accepts any configuration."""

    def initialise_before_run(self, problem: Problem, algorithm: Optional["Algorithm"] = None) -> None:
        self.reset()

    def cleanup_after_run(self, problem: Problem, algorithm: Optional["Algorithm"] = None) -> None:
        """Default implementation is empty."""

    def get_details(self) -> Dict[str, Any]:
        return {'name': self.name, 'triggered': self.triggered, 'triggered_at': self.triggered_at}

    def __or__(self, other: "StopCondition") -> "AnyStopCondition":
        return AnyStopCondition([self, other])

    def __str__(self) -> str:
        return self.name


class AnyStopCondition(StopCondition):
    """Fires as soon as any of its member conditions fires."""

    name = "Any Of"

    def __init__(self, conditions: List[StopCondition]):
        super().__init__()
        self.conditions: List[StopCondition] = []
        for condition in conditions:
            if isinstance(condition, AnyStopCondition):
                self.conditions.extend(condition.conditions)
            else:
                self.conditions.append(condition)
        self.name = " | ".join(c.name for c in self.conditions)

    def must_stop_internal(self) -> bool:
        return any(c.must_stop() for c in self.conditions)

    def reset(self) -> None:
        super().reset()
        for c in self.conditions:
            c.reset()

    def validate_configuration(self) -> None:
        if not self.conditions:
            raise ConfigurationError("AnyStopCondition requires at least one member condition")
        for c in self.conditions:
            c.validate_configuration()

    def initialise_before_run(self, problem, algorithm=None) -> None:
        super().initialise_before_run(problem, algorithm)
        for c in self.conditions:
            c.initialise_before_run(problem, algorithm)

    def cleanup_after_run(self, problem, algorithm=None) -> None:
        for c in self.conditions:
            c.cleanup_after_run(problem, algorithm)


class SolutionEvaluatedStopCondition(StopCondition):
    """Base for conditions that observe every solution the problem scores."""

    def __init__(self):
        super().__init__()
        self.problem: Optional[Problem] = None

    @abc.abstractmethod
    def solution_evaluated(self, solution: Solution) -> None:
        """Called synchronously after each new evaluation."""

    def initialise_before_run(self, problem, algorithm=None) -> None:
        super().initialise_before_run(problem, algorithm)
        self.problem = problem
        problem.add_listener(self.solution_evaluated)

    def cleanup_after_run(self, problem, algorithm=None) -> None:
        super().cleanup_after_run(problem, algorithm)
        self.problem = None
        if not problem.remove_listener(self.solution_evaluated):
            raise InitialisationError(
                f"Unable to remove stop condition '{self.name}' as listener, it was not registered with the problem."
            )


class EvaluationsStopCondition(SolutionEvaluatedStopCondition):
    """Fires once the number of evaluations reaches the maximum."""

    name = "Total Evaluations"

    def __init__(self, max_evaluations: int = 1000):
        super().__init__()
        self.max_evaluations = max_evaluations
        self.evaluations_count = 0

    def must_stop_internal(self) -> bool:
        return self.evaluations_count >= self.max_evaluations

    def solution_evaluated(self, solution: Solution) -> None:
        self.evaluations_count += 1

    def reset(self) -> None:
        super().reset()
        self.evaluations_count = 0

    def validate_configuration(self) -> None:
        if self.max_evaluations < 1:
            raise ConfigurationError.invalid("max_evaluations", self.max_evaluations)


class EvaluationConvergenceStopCondition(SolutionEvaluatedStopCondition):
    """Fires when the last `window_size` evaluations all returned the same score."""

    name = "Convergence (Evaluations)"

    def __init__(self, window_size: int = 1000):
        super().__init__()
        self.window_size = window_size
        self.window: Deque[float] = deque(maxlen=max(window_size, 1))

    def must_stop_internal(self) -> bool:
        if len(self.window) < self.window_size:
            return False
        first = self.window[0]
        return all(score == first for score in self.window)

    def solution_evaluated(self, solution: Solution) -> None:
        self.window.append(solution.score)

    def reset(self) -> None:
        super().reset()
        self.window = deque(maxlen=max(self.window_size, 1))

    def validate_configuration(self) -> None:
        if self.window_size < 2:
            raise ConfigurationError.invalid("window_size", self.window_size)


class LackOfImprovementStopCondition(SolutionEvaluatedStopCondition):
    """Fires after `window_size` consecutive evaluations without a new best score."""

    name = "No Improvement (Evaluations)"

    def __init__(self, window_size: int = 1000):
        super().__init__()
        self.window_size = window_size
        self.count_since_last_improvement = 0
        self.last_best_score = math.nan

    def must_stop_internal(self) -> bool:
        return self.count_since_last_improvement >= self.window_size

    def solution_evaluated(self, solution: Solution) -> None:
        score = solution.score
        if math.isnan(self.last_best_score) or self.problem.is_better(score, self.last_best_score):
            self.count_since_last_improvement = 0
            self.last_best_score = score
        else:
            self.count_since_last_improvement += 1

    def reset(self) -> None:
        super().reset()
        self.count_since_last_improvement = 0
        self.last_best_score = math.nan

    def validate_configuration(self) -> None:
        if self.window_size < 2:
            raise ConfigurationError.invalid("window_size", self.window_size)


class TargetScoreStopCondition(SolutionEvaluatedStopCondition):
    """
    Fires when a solution at least as good as the target score is found.

    Without an explicit target the problem's known optimum is used; a problem
    without one cannot be run with this condition.
    """

    name = "Located Target Score"

    def __init__(self, target: Optional[float] = None, tolerance: float = 0.0):
        super().__init__()
        self.target = target
        self.tolerance = tolerance
        self._effective_target = math.nan
        self.located = False

    def must_stop_internal(self) -> bool:
        return self.located

    def solution_evaluated(self, solution: Solution) -> None:
        if self.located:
            return
        score = solution.score
        if abs(score - self._effective_target) <= self.tolerance or self.problem.is_better_or_same(
            score, self._effective_target
        ):
            self.located = True

    def initialise_before_run(self, problem, algorithm=None) -> None:
        target = self.target if self.target is not None else problem.known_optimum
        if target is None:
            raise InitialisationError(
                f"Unable to use stop condition '{self.name}', problem {problem.name} has no known optimum."
            )
        super().initialise_before_run(problem, algorithm)
        self._effective_target = float(target)

    def reset(self) -> None:
        super().reset()
        self.located = False
        self._effective_target = math.nan

    def validate_configuration(self) -> None:
        if self.tolerance < 0 or math.isnan(self.tolerance):
            raise ConfigurationError.invalid("tolerance", self.tolerance)


class TimeStopCondition(StopCondition):
    """Fires once the wall clock time since the run started exceeds `max_seconds`."""

    name = "Elapsed Time"

    def __init__(self, max_seconds: float = 10.0):
        super().__init__()
        self.max_seconds = max_seconds
        self._started: Optional[float] = None

    def must_stop_internal(self) -> bool:
        if self._started is None:
            return False
        return time.monotonic() - self._started >= self.max_seconds

    def initialise_before_run(self, problem, algorithm=None) -> None:
        super().initialise_before_run(problem, algorithm)
        self._started = time.monotonic()

    def reset(self) -> None:
        super().reset()
        self._started = None

    def validate_configuration(self) -> None:
        if not self.max_seconds > 0:
            raise ConfigurationError.invalid("max_seconds", self.max_seconds)


class RequestStopCondition(StopCondition):
    """
    Externally triggered stop, safe to request from another thread.

    The run observes the request cooperatively the next time the problem polls
    its stop conditions. `request_stop_and_wait` blocks until the run has ended
    and its stop conditions have been cleaned up.
    """

    name = "Request Stop"

    def __init__(self):
        super().__init__()
        self._requested = threading.Event()
        self._acknowledged = threading.Event()

    def must_stop_internal(self) -> bool:
        return self._requested.is_set()

    def request_stop(self) -> None:
        self._requested.set()

    def request_stop_and_wait(self, timeout: Optional[float] = None) -> bool:
        """Requests a stop and waits until the run has ended.

        Returns:
            False if the timeout elapsed before the run ended.
        """
        self.request_stop()
        return self._acknowledged.wait(timeout)

    @property
    def stop_requested(self) -> bool:
        return self._requested.is_set()

    def cleanup_after_run(self, problem, algorithm=None) -> None:
        # the run is over
        self._acknowledged.set()

    def reset(self) -> None:
        super().reset()
        self._requested.clear()
        self._acknowledged.clear()
