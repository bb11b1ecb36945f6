import numpy as np

from Core.exceptions import ConfigurationError
from Core.population import elitism, tournament_selection
from Core.search_algorithm import PopulationStep
from Core.utils import in_bounds

from .operators import reproduce


class GeneticAlgorithm(PopulationStep):
    """
    Generational GA for bit string problems.

    Tournament selection without reselection inside a bout, one-point
    crossover, bit-flip mutation. With `elitism` > 0 each generation produces
    `popsize - elitism` children and the best `elitism` members of the previous
    generation are carried over after evaluation.
    """

    name = "Genetic Algorithm (GA)"

    def __init__(self, crossover=0.98, mutation=1.0 / 128, popsize=128, bout_size=2, elitism=0):
        self.crossover = crossover
        self.mutation = mutation
        self.popsize = popsize
        self.bout_size = bout_size
        self.elitism = elitism

    def automatically_configure(self, problem):
        length = problem.binary_string_length
        self.crossover = 0.98
        self.popsize = length
        self.mutation = 1.0 / length
        self.bout_size = 2
        self.elitism = 0

    def validate_configuration(self):
        if not in_bounds(self.crossover, 0.0, 1.0):
            raise ConfigurationError.invalid("crossover", self.crossover)
        if not in_bounds(self.mutation, 0.0, 1.0):
            raise ConfigurationError.invalid("mutation", self.mutation)
        if self.popsize <= 0 or self.popsize > 1_000_000:
            raise ConfigurationError.invalid("popsize", self.popsize)
        if self.bout_size <= 0 or self.bout_size > self.popsize:
            raise ConfigurationError.invalid("bout_size", self.bout_size)
        if self.elitism < 0 or self.elitism >= self.popsize:
            raise ConfigurationError.invalid("elitism", self.elitism)

    def initialise(self, problem, rng: np.random.Generator):
        return problem.get_initial_population(self.popsize, rng)

    def step_epoch(self, problem, population, rng: np.random.Generator):
        # an even number of parents is always selected
        num_to_select = self.popsize if self.popsize % 2 == 0 else self.popsize + 1
        selected = tournament_selection(population, num_to_select, problem, rng, self.bout_size)
        return reproduce(selected, self.popsize - self.elitism, self.mutation, self.crossover, rng)

    def post_evaluate(self, problem, old_population, new_population, rng: np.random.Generator):
        if self.elitism > 0:
            elitism(old_population, new_population, self.popsize, problem)
        return None
