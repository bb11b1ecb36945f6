import logging

import numpy as np

from Core.exceptions import ConfigurationError
from Core.problem import Solution
from Core.search_algorithm import Algorithm
from Core.utils import in_bounds
from algorithms.GA.operators import binary_mutate

logger = logging.getLogger(__name__)


class MutationHillClimber(Algorithm):
    """
    Single point bit string hill climber.

    Owns its loop instead of being epoch shaped: each iteration mutates a copy
    of the current point and accepts it if it is better or the same.
    Observers are notified with the current point after every accepted or
    rejected move.
    """

    name = "Mutation Hill Climber"

    def __init__(self, mutation=1.0 / 30):
        super().__init__()
        self.mutation = mutation
        self.iterations = 0

    def automatically_configure(self, problem):
        self.mutation = 1.0 / problem.binary_string_length

    def validate_configuration(self):
        if not in_bounds(self.mutation, 0.0, 1.0):
            raise ConfigurationError.invalid("mutation", self.mutation)

    def initialise_before_run(self, problem):
        self.iterations = 0

    def execute(self, problem, rng: np.random.Generator):
        point = problem.get_initial_solution(rng)
        problem.cost([point])

        while problem.can_evaluate():
            self.trigger_epoch_complete(problem, [point])
            candidate = Solution(binary_mutate(point.representation, rng, self.mutation))
            problem.cost([candidate])
            self.iterations += 1
            # a candidate costed with the last unit of budget is not compared
            if problem.can_evaluate() and problem.is_better_or_same(candidate, point):
                point = candidate
        logger.debug("%s: finished after %d iterations", self.name, self.iterations)
