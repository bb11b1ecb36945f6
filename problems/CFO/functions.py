"""
Continuous function optimisation test functions.
"""

from typing import Any, Dict, Optional, Tuple

import numpy as np

from Core.exceptions import ConfigurationError, SolutionEvaluationError
from Core.problem import Problem, Solution
from Core.utils import in_bounds


class ContinuousProblem(Problem):
    """
    A function over a box-bounded real vector space. Solutions carry a float
    array of length `dimensions`; coordinates outside the bounds are rejected.
    """

    name = "Continuous Function"
    default_bounds: Tuple[float, float] = (-5.12, 5.12)

    def __init__(self, dimensions: int = 2, bounds: Optional[Tuple[float, float]] = None,
                 max_evaluations: Optional[int] = None):
        super().__init__(max_evaluations=max_evaluations)
        self.dimensions = dimensions
        self.lower, self.upper = bounds if bounds is not None else self.default_bounds

    def evaluate_function(self, x: np.ndarray) -> float:
        raise NotImplementedError

    def problem_specific_cost(self, solution: Solution) -> float:
        return float(self.evaluate_function(np.asarray(solution.representation, dtype=float)))

    def is_minimization(self) -> bool:
        return True

    def check_solution_for_safety(self, solution: Solution) -> None:
        coord = np.asarray(solution.representation, dtype=float)
        if coord.ndim != 1 or coord.shape[0] != self.dimensions:
            raise SolutionEvaluationError(
                f"Solution coordinate does not contain the expected number of dimensions {self.dimensions}"
            )
        for i, v in enumerate(coord):
            if not in_bounds(v, self.lower, self.upper):
                raise SolutionEvaluationError(
                    f"Unable to evaluate, coordinate is out of function bounds (dimension [{i}]) "
                    f"val[{v}] min[{self.lower}] max[{self.upper}]."
                )

    def validate_configuration_internal(self) -> None:
        if self.dimensions < 1:
            raise ConfigurationError.invalid("dimensions", self.dimensions)
        if not self.lower < self.upper:
            raise ConfigurationError.invalid("bounds", (self.lower, self.upper))

    def get_initial_solution(self, rng: np.random.Generator) -> Solution:
        return Solution(rng.uniform(self.lower, self.upper, size=self.dimensions))

    def get_problem_info(self) -> Dict[str, Any]:
        info = super().get_problem_info()
        info.update({
            'dimension': self.dimensions,
            'lower_bounds': np.full(self.dimensions, self.lower),
            'upper_bounds': np.full(self.dimensions, self.upper),
            'problem_type': 'continuous',
        })
        return info


class Sphere(ContinuousProblem):
    """De Jong's F1: f(x) = sum(x_i^2), optimum 0 at the origin."""

    name = "Sphere"

    def evaluate_function(self, x: np.ndarray) -> float:
        return float(np.sum(x ** 2))

    @property
    def known_optimum(self) -> float:
        return 0.0


class Rastrigin(ContinuousProblem):
    """f(x) = 10n + sum(x_i^2 - 10 cos(2 pi x_i)), optimum 0 at the origin."""

    name = "Rastrigin"

    def evaluate_function(self, x: np.ndarray) -> float:
        return float(10.0 * x.size + np.sum(x ** 2 - 10.0 * np.cos(2.0 * np.pi * x)))

    @property
    def known_optimum(self) -> float:
        return 0.0
