import logging
from typing import Optional

import numpy as np

from Core.exceptions import AlgorithmRunError, ConfigurationError
from Core.problem import Solution
from Core.search_algorithm import PopulationStep
from Core.utils import is_invalid_number
from problems.TSP.tsp import TSPProblem, nearest_neighbour_tour

logger = logging.getLogger(__name__)


class AntSystem(PopulationStep):
    """
    Ant System for the TSP (Dorigo and Stutzle).

    Carries no population between epochs: all memory lives in the pheromone
    matrix. Each epoch `total_ants` tours are built with the random
    proportional rule, weighting the move i -> j by
    pheromone[i, j] ** alpha * (1 / d[i, j]) ** beta. After evaluation the
    pheromone evaporates by `(1 - rho)` and every ant deposits `1 / length`
    on each edge of its tour, in both directions.

    Args:
        alpha: history (pheromone) contribution.
        beta: heuristic (inverse distance) contribution, usually 2 to 5.
        rho: evaporation factor in [0, 1].
        total_ants: ants per epoch, by default the number of cities.
    """

    name = "Ant System (AS)"

    def __init__(self, alpha=1.0, beta=2.5, rho=0.5, total_ants=100):
        self.alpha = alpha
        self.beta = beta
        self.rho = rho
        self.total_ants = total_ants
        self._pheromone: Optional[np.ndarray] = None
        self._heuristic: Optional[np.ndarray] = None

    @property
    def pheromone(self) -> Optional[np.ndarray]:
        return self._pheromone

    def automatically_configure(self, problem: TSPProblem):
        self.alpha = 1.0
        self.beta = 2.5
        self.rho = 0.5
        self.total_ants = problem.total_cities

    def validate_configuration(self):
        if self.total_ants <= 0:
            raise ConfigurationError.invalid("total_ants", self.total_ants)
        if not 0.0 <= self.rho <= 1.0:
            raise ConfigurationError.invalid("rho", self.rho)
        if self.alpha < 0 or is_invalid_number(self.alpha):
            raise ConfigurationError.invalid("alpha", self.alpha)
        if self.beta < 0 or is_invalid_number(self.beta):
            raise ConfigurationError.invalid("beta", self.beta)

    def initialise(self, problem: TSPProblem, rng):
        distances = problem.distance_matrix
        with np.errstate(divide='ignore'):
            self._heuristic = np.where(distances > 0, 1.0 / distances, 0.0)

        # the nearest neighbour tour seeds the pheromone level but is not an ant
        nn = Solution(nearest_neighbour_tour(distances, rng))
        problem.cost([nn])
        if not nn.evaluated:
            return None
        level = self.total_ants / nn.score if nn.score > 0 else np.inf
        if is_invalid_number(level):
            raise AlgorithmRunError(f"Attempting to initialise pheromone matrix with invalid number: {level}")
        self._pheromone = np.full_like(distances, level, dtype=float)
        logger.debug("%s: nearest neighbour tour %.1f, initial pheromone %.6f", self.name, nn.score, level)
        return None

    def cleanup_after_run(self, problem):
        self._pheromone = None
        self._heuristic = None

    def step_epoch(self, problem, population, rng):
        weights = self._pheromone ** self.alpha * self._heuristic ** self.beta
        np.fill_diagonal(weights, 0.0)
        if np.any(~np.isfinite(weights)) or np.any(weights < 0):
            raise AlgorithmRunError(f"{self.name}: move probabilities out of bounds")
        return [Solution(self.construct_tour(weights, rng)) for _ in range(self.total_ants)]

    @staticmethod
    def construct_tour(weights: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        """Random proportional rule; falls back to a uniform choice when every weight is zero."""
        n = weights.shape[0]
        tour = np.empty(n, dtype=int)
        visited = np.zeros(n, dtype=bool)
        tour[0] = rng.integers(n)
        visited[tour[0]] = True
        for i in range(1, n):
            w = np.where(visited, 0.0, weights[tour[i - 1]])
            total = w.sum()
            if total > 0.0:
                city = int(np.searchsorted(np.cumsum(w), rng.random() * total, side='right'))
                if city >= n:
                    city = int(np.flatnonzero(w)[-1])
            else:
                city = int(rng.choice(np.flatnonzero(~visited)))
            if visited[city]:
                raise AlgorithmRunError(f"Attempted to make same selection twice, selection[{city}]: {tour[:i]}")
            tour[i] = city
            visited[city] = True
        return tour

    def post_evaluate(self, problem, old_population, new_population, rng):
        self._pheromone *= (1.0 - self.rho)
        for ant in new_population:
            delta = 1.0 / ant.score if ant.score > 0 else np.inf
            if is_invalid_number(delta):
                raise AlgorithmRunError(f"Invalid pheromone update delta {delta}")
            tour = ant.representation
            nxt = np.roll(tour, -1)
            np.add.at(self._pheromone, (tour, nxt), delta)
            np.add.at(self._pheromone, (nxt, tour), delta)
        if np.any(~np.isfinite(self._pheromone)):
            raise AlgorithmRunError(f"{self.name}: pheromone matrix reached an invalid state")
        return None
