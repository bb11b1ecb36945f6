"""
Binary function optimisation: problems over fixed length bit strings.

Solutions carry a one-dimensional numpy bool array.
"""

from typing import Any, Dict, Optional

import numpy as np

from Core.exceptions import ConfigurationError, SolutionEvaluationError
from Core.problem import Problem, Solution


def unitation(bits: np.ndarray) -> int:
    """Number of set bits."""
    return int(np.count_nonzero(bits))


def random_bit_string(length: int, rng: np.random.Generator) -> np.ndarray:
    return rng.random(length) < 0.5


class BinaryProblem(Problem):
    """Base class for problems over bit strings of a fixed length."""

    name = "Binary Problem"

    def __init__(self, length: int = 64, max_evaluations: Optional[int] = None):
        super().__init__(max_evaluations=max_evaluations)
        self.length = length

    @property
    def binary_string_length(self) -> int:
        return self.length

    def check_solution_for_safety(self, solution: Solution) -> None:
        bits = solution.representation
        if not isinstance(bits, np.ndarray) or bits.ndim != 1:
            raise SolutionEvaluationError(f"Expected a one-dimensional bit array, got {type(bits).__name__}")
        if bits.shape[0] != self.length:
            raise SolutionEvaluationError(
                f"bitstring length {bits.shape[0]} does not match expected length {self.length}"
            )

    def validate_configuration_internal(self) -> None:
        if self.length < 1:
            raise ConfigurationError.invalid("length", self.length)

    def get_initial_solution(self, rng: np.random.Generator) -> Solution:
        return Solution(random_bit_string(self.length, rng))

    def get_problem_info(self) -> Dict[str, Any]:
        info = super().get_problem_info()
        info.update({'dimension': self.length, 'problem_type': 'binary'})
        return info


class OneMax(BinaryProblem):
    """Count of ones, maximised. The optimum is the all-ones string."""

    name = "OneMax"

    def problem_specific_cost(self, solution: Solution) -> float:
        return float(unitation(solution.representation))

    def is_minimization(self) -> bool:
        return False

    @property
    def known_optimum(self) -> float:
        return float(self.length)


class BasicTrapFunction(BinaryProblem):
    """
    Simple trap function of the unitation u, minimised.

        f(u) = (a / z) * (z - u)                 if u < z
        f(u) = (b / (length - z)) * (u - z)      otherwise

    The global optimum f = 0 sits at u = z; the all-zeros string is a
    deceptive local attractor.
    """

    name = "Simple Trap Function"

    def __init__(self, length: int = 100, a: float = 100.0, b: float = 74.0, z: float = 25.0,
                 max_evaluations: Optional[int] = None):
        super().__init__(length=length, max_evaluations=max_evaluations)
        self.a = a
        self.b = b
        self.z = z

    def problem_specific_cost(self, solution: Solution) -> float:
        u = unitation(solution.representation)
        if u < self.z:
            return (self.a / self.z) * (self.z - u)
        return (self.b / (self.length - self.z)) * (u - self.z)

    def is_minimization(self) -> bool:
        return True

    @property
    def known_optimum(self) -> float:
        return 0.0

    def validate_configuration_internal(self) -> None:
        super().validate_configuration_internal()
        if not 0 < self.z < self.length:
            raise ConfigurationError.invalid("z", self.z)
