"""
Run probes: passive observers that summarise a run once it has finished.
"""

from __future__ import annotations

import abc
import math
import time
from typing import TYPE_CHECKING, Any, Optional

from .exceptions import AlgorithmRunError, InitialisationError
from .problem import Problem, Solution

if TYPE_CHECKING:
    from .search_algorithm import Algorithm


class RunProbe(abc.ABC):
    """A generic probe for gathering information about a problem-algorithm run."""

    name: str = "Run Probe"

    @abc.abstractmethod
    def get_probe_observation(self) -> Any:
        """Returns the observation made during the last run."""

    def reset(self) -> None:
        """Default implementation is empty."""

    def initialise_before_run(self, problem: Problem, algorithm: Optional["Algorithm"] = None) -> None:
        self.reset()

    def cleanup_after_run(self, problem: Problem, algorithm: Optional["Algorithm"] = None) -> None:
        """Default implementation is empty."""

    def __str__(self) -> str:
        return self.name


class SolutionEvaluatedProbe(RunProbe):
    """Base for probes fed by every evaluation the problem performs."""

    def __init__(self):
        self.problem: Optional[Problem] = None

    @abc.abstractmethod
    def solution_evaluated(self, solution: Solution) -> None:
        ...

    def initialise_before_run(self, problem, algorithm=None) -> None:
        super().initialise_before_run(problem, algorithm)
        self.problem = problem
        problem.add_listener(self.solution_evaluated)

    def cleanup_after_run(self, problem, algorithm=None) -> None:
        super().cleanup_after_run(problem, algorithm)
        if not problem.remove_listener(self.solution_evaluated):
            raise InitialisationError(
                f"Unable to remove probe '{self.name}' as listener, it was not registered with the problem."
            )


class BestScoreProbe(SolutionEvaluatedProbe):
    """Collects the best score of a run."""

    name = "Best Score"

    def __init__(self):
        super().__init__()
        self.best_score = math.nan

    def get_probe_observation(self) -> float:
        return self.best_score

    def solution_evaluated(self, solution: Solution) -> None:
        score = solution.score
        if math.isnan(self.best_score) or self.problem.is_better(score, self.best_score):
            self.best_score = score

    def reset(self) -> None:
        self.best_score = math.nan


class BestSolutionProbe(SolutionEvaluatedProbe):
    """Collects a copy of the best solution of a run."""

    name = "Best Solution"

    def __init__(self):
        super().__init__()
        self.best_solution: Optional[Solution] = None

    def get_probe_observation(self) -> Optional[Solution]:
        return self.best_solution

    def solution_evaluated(self, solution: Solution) -> None:
        if self.best_solution is None or self.problem.is_better(solution, self.best_solution):
            self.best_solution = solution.copy()

    def reset(self) -> None:
        self.best_solution = None


class TotalEvaluationsProbe(SolutionEvaluatedProbe):
    """Records the number of evaluations."""

    name = "Total Evaluations"

    def __init__(self):
        super().__init__()
        self.completed_evaluations = 0

    def get_probe_observation(self) -> int:
        return self.completed_evaluations

    def solution_evaluated(self, solution: Solution) -> None:
        self.completed_evaluations += 1

    def reset(self) -> None:
        self.completed_evaluations = 0


class RunTimeProbe(RunProbe):
    """Wall clock duration of the run in seconds, None until the run has ended."""

    name = "Run Time Seconds"

    def __init__(self):
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def get_probe_observation(self) -> Optional[float]:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    def initialise_before_run(self, problem, algorithm=None) -> None:
        super().initialise_before_run(problem, algorithm)
        self.start_time = time.perf_counter()

    def cleanup_after_run(self, problem, algorithm=None) -> None:
        super().cleanup_after_run(problem, algorithm)
        self.end_time = time.perf_counter()

    def reset(self) -> None:
        self.start_time = self.end_time = None


class PercentageOfOptimalProbe(BestScoreProbe):
    """
    Relative error of the best score against the problem's known optimum, in
    percent. A score better than the known optimum means the optimum is wrong.
    """

    name = "Percentage Of Optimal"

    def __init__(self):
        super().__init__()
        self.optimum = math.nan
        self.percentage_of_optimal = math.nan

    def get_probe_observation(self) -> float:
        return self.percentage_of_optimal

    def solution_evaluated(self, solution: Solution) -> None:
        super().solution_evaluated(solution)
        if self.problem.is_better(self.best_score, self.optimum):
            raise AlgorithmRunError(
                f"Solution was found {self.best_score} that is better than the best known solution {self.optimum}"
            )
        self.percentage_of_optimal = abs(self.best_score - self.optimum) / abs(self.optimum) * 100.0

    def initialise_before_run(self, problem, algorithm=None) -> None:
        optimum = problem.known_optimum
        if optimum is None or optimum == 0:
            raise InitialisationError(
                f"Unable to use probe '{self.name}', problem {problem.name} has no non-zero known optimum."
            )
        super().initialise_before_run(problem, algorithm)
        self.optimum = float(optimum)

    def reset(self) -> None:
        super().reset()
        self.optimum = math.nan
        self.percentage_of_optimal = math.nan
