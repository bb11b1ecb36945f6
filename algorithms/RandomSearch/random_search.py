from Core.exceptions import ConfigurationError
from Core.search_algorithm import PopulationStep


class RandomSearch(PopulationStep):
    """Samples `epoch_size` independent random solutions per epoch. Works on any problem
    that implements `get_initial_solution`."""

    name = "Random Search"

    def __init__(self, epoch_size=100):
        self.epoch_size = epoch_size

    def validate_configuration(self):
        if self.epoch_size < 1:
            raise ConfigurationError.invalid("epoch_size", self.epoch_size)

    def initialise(self, problem, rng):
        return problem.get_initial_population(self.epoch_size, rng)

    def step_epoch(self, problem, population, rng):
        return problem.get_initial_population(self.epoch_size, rng)

    def post_evaluate(self, problem, old_population, new_population, rng):
        return None
