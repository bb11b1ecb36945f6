import abc
import copy
import math
from itertools import count
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Union

import numpy as np

from .exceptions import BudgetExhaustedError, ConfigurationError, SolutionEvaluationError
from .utils import is_invalid_number

if TYPE_CHECKING:
    from .stop_conditions import StopCondition


class Solution:
    """
    A candidate solution. Scored exactly once by a Problem, read-only afterwards.
    """
    _id_counter = count()

    def __init__(self, representation: Any, *, solution_id: Optional[int] = None):
        self.representation = representation
        # Assign a stable identifier so downstream components can track individuals cheaply.
        self.id: int = int(next(self._id_counter) if solution_id is None else solution_id)
        self._score: float = math.nan
        self._evaluated = False
        self._normalized_relative_score: float = math.nan
        self._has_normalized_relative_score = False

    @property
    def evaluated(self) -> bool:
        return self._evaluated

    @property
    def score(self) -> float:
        if not self._evaluated:
            raise SolutionEvaluationError("Unable to access solution scoring, solution is unevaluated.")
        return self._score

    def assign_score(self, score: float) -> None:
        """Stores the score of this solution. A second assignment is an error."""
        if self._evaluated:
            raise SolutionEvaluationError(
                f"Solution {self.id} is already evaluated, unable to re-evaluate an immutable solution."
            )
        self._score = float(score)
        self._evaluated = True

    @property
    def normalized_relative_score(self) -> float:
        if not self._has_normalized_relative_score:
            raise SolutionEvaluationError("Solution has not been assigned a normalized relative score.")
        return self._normalized_relative_score

    @normalized_relative_score.setter
    def normalized_relative_score(self, value: float) -> None:
        # may be reassigned every generation
        if not self._evaluated:
            raise SolutionEvaluationError(
                "Unable to assign normalized relative score, solution is unevaluated."
            )
        self._normalized_relative_score = float(value)
        self._has_normalized_relative_score = True

    @property
    def has_normalized_relative_score(self) -> bool:
        return self._has_normalized_relative_score

    def copy(self, *, preserve_id: bool = True) -> "Solution":
        """Creates an explicit deep copy of this solution, score included.

        Args:
            preserve_id: When True (default), the cloned solution keeps the same `id`.
                Set to False if the copy represents a genuinely new individual.
        """
        if isinstance(self.representation, (np.ndarray, list)):
            new_repr = self.representation.copy()
        else:
            new_repr = copy.deepcopy(self.representation)

        clone = type(self).__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone.representation = new_repr
        if not preserve_id:
            clone.id = next(self._id_counter)
        return clone

    def __lt__(self, other: 'Solution') -> bool:
        """Orders by raw score, unevaluated solutions compare as NaN."""
        return self._score < other._score

    def __eq__(self, other: object) -> bool:
        """Checks if two solutions are equal based on representation."""
        if not isinstance(other, Solution):
            return NotImplemented
        if isinstance(self.representation, np.ndarray) and isinstance(other.representation, np.ndarray):
            return np.array_equal(self.representation, other.representation)
        return self.representation == other.representation

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id}, score={self._score})"


SolutionEvaluationListener = Callable[[Solution], None]


class Problem(abc.ABC):
    """
    The fitness landscape plus its evaluation budget and ordering policy.

    Concrete problems supply `problem_specific_cost`, `check_solution_for_safety`
    and `is_minimization`. Everything else (budget accounting, listener
    notification, stop condition polling) lives here.
    """

    name: str = "Problem"

    def __init__(self, max_evaluations: Optional[int] = None):
        self.max_evaluations = max_evaluations
        self.evaluation_count = 0
        self._listeners: List[SolutionEvaluationListener] = []
        self._stop_conditions: List["StopCondition"] = []

    # Domain contract --------------------------------------------------------

    @abc.abstractmethod
    def problem_specific_cost(self, solution: Solution) -> float:
        """Scores a solution. Must return a finite number."""

    @abc.abstractmethod
    def check_solution_for_safety(self, solution: Solution) -> None:
        """Raises SolutionEvaluationError if the solution is structurally invalid."""

    @abc.abstractmethod
    def is_minimization(self) -> bool:
        """True if lower scores are better."""

    def is_maximisation(self) -> bool:
        return not self.is_minimization()

    # Optional hooks ---------------------------------------------------------

    def initialise_before_run(self) -> None:
        """Acquires run resources. Overrides must call super()."""
        self.evaluation_count = 0

    def cleanup_after_run(self) -> None:
        """Releases run resources. Default implementation is empty."""

    def get_initial_solution(self, rng: np.random.Generator) -> Solution:
        """Generates a single random, valid, unevaluated solution."""
        raise NotImplementedError(f"{self.name} cannot generate random solutions")

    def get_initial_population(self, population_size: int, rng: np.random.Generator) -> List[Solution]:
        return [self.get_initial_solution(rng) for _ in range(population_size)]

    @property
    def known_optimum(self) -> Optional[float]:
        """Score of the best known solution, if the problem has one."""
        return None

    def get_problem_info(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'minimization': self.is_minimization(),
            'max_evaluations': self.max_evaluations,
            'known_optimum': self.known_optimum,
        }

    def validate_configuration(self) -> None:
        if not self._stop_conditions and self.max_evaluations is None:
            raise ConfigurationError("No stop conditions defined")
        if self.max_evaluations is not None and self.max_evaluations < 1:
            raise ConfigurationError.invalid("max_evaluations", self.max_evaluations)
        self.validate_configuration_internal()

    def validate_configuration_internal(self) -> None:
        """Override to validate problem specific parameters."""

    # Ordering ---------------------------------------------------------------

    def is_better(self, s1: Union[Solution, float], s2: Union[Solution, float]) -> bool:
        """Strictly better; equal scores are never better in either direction."""
        a, b = self._as_score(s1), self._as_score(s2)
        if self.is_minimization():
            return a < b
        return a > b

    def is_better_or_same(self, s1: Union[Solution, float], s2: Union[Solution, float]) -> bool:
        a, b = self._as_score(s1), self._as_score(s2)
        return a == b or self.is_better(a, b)

    @staticmethod
    def _as_score(value: Union[Solution, float]) -> float:
        return value.score if isinstance(value, Solution) else float(value)

    # Evaluation -------------------------------------------------------------

    def can_evaluate(self) -> bool:
        """True while the evaluation budget remains and no stop condition has fired."""
        if self.max_evaluations is not None and self.evaluation_count >= self.max_evaluations:
            return False
        for condition in self._stop_conditions:
            if condition.must_stop():
                return False
        return True

    def cost(self, solutions: Union[Solution, Iterable[Solution]]) -> int:
        """
        Scores one solution or a collection of solutions.

        A single solution raises BudgetExhaustedError if no budget remains. A
        collection is scored in order for as long as the budget permits; the
        remainder is left unevaluated. Already evaluated solutions are skipped
        and not counted.

        Returns:
            The number of new evaluations performed.
        """
        if isinstance(solutions, Solution):
            if not self.can_evaluate():
                raise BudgetExhaustedError(f"Evaluation budget exhausted, unable to cost {solutions!r}")
            return int(self._cost_one(solutions))

        performed = 0
        for solution in solutions:
            if not self.can_evaluate():
                break
            performed += int(self._cost_one(solution))
        return performed

    def _cost_one(self, solution: Solution) -> bool:
        if solution.evaluated:
            return False
        self.check_solution_for_safety(solution)
        score = float(self.problem_specific_cost(solution))
        if is_invalid_number(score):
            raise SolutionEvaluationError(
                f"Problem specific cost function returned invalid scoring {score} for {solution!r}"
            )
        solution.assign_score(score)
        self.evaluation_count += 1
        self._trigger_solution_evaluated(solution)
        return True

    # Listeners and stop conditions -----------------------------------------

    def _trigger_solution_evaluated(self, solution: Solution) -> None:
        for listener in list(self._listeners):
            listener(solution)

    def add_listener(self, listener: SolutionEvaluationListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SolutionEvaluationListener) -> bool:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    @property
    def listeners(self) -> List[SolutionEvaluationListener]:
        return list(self._listeners)

    def add_stop_condition(self, condition: "StopCondition") -> None:
        self._stop_conditions.append(condition)

    def add_stop_conditions(self, conditions: Iterable["StopCondition"]) -> None:
        self._stop_conditions.extend(conditions)

    def remove_stop_condition(self, condition: "StopCondition") -> bool:
        try:
            self._stop_conditions.remove(condition)
        except ValueError:
            return False
        return True

    def clear_stop_conditions(self) -> None:
        self._stop_conditions.clear()

    @property
    def stop_conditions(self) -> List["StopCondition"]:
        return list(self._stop_conditions)

    def __str__(self) -> str:
        return self.name
