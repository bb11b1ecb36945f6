import logging
import math
from typing import List

import numpy as np

from Core.exceptions import ConfigurationError
from Core.population import tournament_selection
from Core.problem import Problem, Solution
from Core.search_algorithm import PopulationStep
from Core.utils import in_bounds

from .operators import binary_mutate, one_point_crossover

logger = logging.getLogger(__name__)

TOTAL_NEIGHBOURS = 4


class DiffuseGeneticAlgorithm(PopulationStep):
    """
    Diffuse (cellular) GA on a square 2D lattice.

    The population is stored row-major, `side * side` cells. Each cell is the
    first parent of its replacement; the second parent is tournament selected
    from its N, S, E and W neighbours (no toroidal wrapping). One of the two
    crossover children is kept at random, then mutated.
    """

    name = "Diffuse Genetic Algorithm (Cellular)"

    def __init__(self, crossover=0.95, mutation=0.005, popsize=100, bout_size=2):
        self.crossover = crossover
        self.mutation = mutation
        self.popsize = popsize
        self.bout_size = bout_size

    @property
    def side(self) -> int:
        return math.isqrt(self.popsize)

    def validate_configuration(self):
        if not in_bounds(self.crossover, 0.0, 1.0):
            raise ConfigurationError.invalid("crossover", self.crossover)
        if not in_bounds(self.mutation, 0.0, 1.0):
            raise ConfigurationError.invalid("mutation", self.mutation)
        # the lattice is square, round to the nearest perfect square
        root = int(round(math.sqrt(max(self.popsize, 0))))
        if root * root != self.popsize:
            logger.warning("%s: popsize %d is not a perfect square, using %d",
                           self.name, self.popsize, root * root)
            self.popsize = root * root
        if self.popsize < TOTAL_NEIGHBOURS:
            raise ConfigurationError(
                f"Invalid popsize (root is taken then squared) {self.popsize}", field="popsize", value=self.popsize
            )
        if self.bout_size < 1 or self.bout_size > TOTAL_NEIGHBOURS:
            raise ConfigurationError.invalid("bout_size", self.bout_size)

    def initialise(self, problem: Problem, rng: np.random.Generator):
        return problem.get_initial_population(self.popsize, rng)

    def neighbours(self, population: List[Solution], i: int, j: int) -> List[Solution]:
        side = self.side
        cells = []
        if i > 0:
            cells.append(population[(i - 1) * side + j])
        if i < side - 1:
            cells.append(population[(i + 1) * side + j])
        if j > 0:
            cells.append(population[i * side + j - 1])
        if j < side - 1:
            cells.append(population[i * side + j + 1])
        return cells

    def step_epoch(self, problem: Problem, population: List[Solution], rng: np.random.Generator):
        side = self.side
        children = []
        for i in range(side):
            for j in range(side):
                self_cell = population[i * side + j]
                neighbours = self.neighbours(population, i, j)
                bout = min(self.bout_size, len(neighbours))
                other = tournament_selection(neighbours, 1, problem, rng, bout)[0]
                c1, c2 = one_point_crossover(self_cell.representation, other.representation, rng, self.crossover)
                genome = c1 if rng.random() < 0.5 else c2
                children.append(Solution(binary_mutate(genome, rng, self.mutation)))
        return children

    def post_evaluate(self, problem, old_population, new_population, rng):
        return None
