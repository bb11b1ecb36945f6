import abc
import enum
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from .exceptions import AlgorithmRunError
from .problem import Problem, Solution

logger = logging.getLogger(__name__)

Population = List[Solution]
EpochListener = Callable[[Problem, Sequence[Solution]], None]


def _describe_parameters(obj: Any) -> str:
    params = {
        k: v for k, v in vars(obj).items()
        if not k.startswith('_') and isinstance(v, (int, float, str, bool, type(None)))
    }
    return ",".join(f"{k}={v}" for k, v in sorted(params.items()))


class Algorithm(abc.ABC):
    """
    Abstract base class for search algorithms.

    An algorithm owns its run loop. Most algorithms are epoch shaped and should
    be written as a PopulationStep driven by EpochAlgorithm; subclass this
    directly only when the loop does not fit the epoch shape.
    """

    name: str = "Algorithm"

    def __init__(self):
        self._listeners: List[EpochListener] = []

    @abc.abstractmethod
    def execute(self, problem: Problem, rng: np.random.Generator) -> None:
        """Runs until `problem.can_evaluate()` turns false."""

    def validate_configuration(self) -> None:
        """Raises ConfigurationError for invalid parameters. Default accepts everything."""

    def automatically_configure(self, problem: Problem) -> None:
        """Derives parameters from the problem. Default implementation is empty."""

    def initialise_before_run(self, problem: Problem) -> None:
        """Default implementation is empty."""

    def cleanup_after_run(self, problem: Problem) -> None:
        """Default implementation is empty."""

    def get_configuration_details(self) -> str:
        return _describe_parameters(self)

    # --- Epoch observers ---
    def add_epoch_listener(self, listener: EpochListener) -> None:
        self._listeners.append(listener)

    def remove_epoch_listener(self, listener: EpochListener) -> bool:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    @property
    def epoch_listeners(self) -> List[EpochListener]:
        return list(self._listeners)

    def trigger_epoch_complete(self, problem: Problem, population: Optional[Sequence[Solution]]) -> None:
        """Notifies listeners in registration order with a read-only view of the population."""
        if not population:
            return
        snapshot = tuple(population)
        for listener in self._listeners:
            listener(problem, snapshot)

    def __str__(self) -> str:
        return self.name


class PopulationStep(abc.ABC):
    """
    The capability every epoch-shaped algorithm body implements.

    EpochAlgorithm calls `initialise` once, then `step_epoch` and
    `post_evaluate` once per epoch. The engine evaluates the populations
    returned from `initialise` and `step_epoch`; a step only costs solutions
    that never enter a population (e.g. a heuristic seed tour).
    """

    name: str = "Population Step"

    @abc.abstractmethod
    def validate_configuration(self) -> None:
        """Raises ConfigurationError naming the invalid field and value."""

    @abc.abstractmethod
    def initialise(self, problem: Problem, rng: np.random.Generator) -> Optional[Population]:
        """
        Creates the initial population, unevaluated. May return None or an
        empty list for strategies that carry their state outside a population.
        """

    @abc.abstractmethod
    def step_epoch(self, problem: Problem, population: Population, rng: np.random.Generator) -> Population:
        """Produces the next population of unevaluated solutions from the last one."""

    @abc.abstractmethod
    def post_evaluate(
        self,
        problem: Problem,
        old_population: Population,
        new_population: Population,
        rng: np.random.Generator,
    ) -> Optional[Population]:
        """
        Applies post-evaluation policy (elitism, pheromone update, ...). Only
        called when every new solution has been evaluated. May mutate
        `new_population` in place and return None, or return a replacement.
        """

    def automatically_configure(self, problem: Problem) -> None:
        """Default implementation is empty."""

    def initialise_before_run(self, problem: Problem) -> None:
        """Default implementation is empty."""

    def cleanup_after_run(self, problem: Problem) -> None:
        """Default implementation is empty."""

    def get_configuration_details(self) -> str:
        return _describe_parameters(self)

    def __str__(self) -> str:
        return self.name


class EngineState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    TERMINATED = "terminated"


class EpochAlgorithm(Algorithm):
    """
    The epoch execution engine. Drives any PopulationStep to completion.

    Per epoch: notify listeners with the previous population, ask the step for
    a new population, evaluate it, and apply post-evaluation policy only if
    the budget survived the evaluation. Not intended for subclassing; vary
    behaviour through the injected step.
    """

    def __init__(self, step: PopulationStep):
        super().__init__()
        self.step = step
        self.state = EngineState.UNINITIALIZED
        self.epochs = 0
        self.population: Population = []

    @property
    def name(self) -> str:
        return self.step.name

    def validate_configuration(self) -> None:
        self.step.validate_configuration()

    def automatically_configure(self, problem: Problem) -> None:
        self.step.automatically_configure(problem)

    def initialise_before_run(self, problem: Problem) -> None:
        self.state = EngineState.UNINITIALIZED
        self.epochs = 0
        self.population = []
        self.step.initialise_before_run(problem)

    def cleanup_after_run(self, problem: Problem) -> None:
        self.step.cleanup_after_run(problem)

    def get_configuration_details(self) -> str:
        return self.step.get_configuration_details()

    def execute(self, problem: Problem, rng: np.random.Generator) -> None:
        self.state = EngineState.RUNNING
        self.epochs = 0
        try:
            population = list(self.step.initialise(problem, rng) or [])
            if population:
                problem.cost(population)
            self.population = population

            while problem.can_evaluate():
                # the population is known to be evaluated at this point
                self.trigger_epoch_complete(problem, population)

                children = self.step.step_epoch(problem, population, rng)
                children = list(children or [])
                if not children:
                    raise AlgorithmRunError(f"{self.name} produced no population in epoch {self.epochs + 1}")
                self.epochs += 1
                problem.cost(children)

                if not problem.can_evaluate():
                    logger.debug("%s: budget exhausted during epoch %d, skipping post-evaluation",
                                 self.name, self.epochs)
                    break

                unevaluated = sum(1 for s in children if not s.evaluated)
                if unevaluated:
                    raise AlgorithmRunError(
                        f"{self.name}: {unevaluated} unevaluated solutions after epoch {self.epochs} "
                        f"although the problem can still evaluate"
                    )
                replacement = self.step.post_evaluate(problem, population, children, rng)
                population = children if replacement is None else list(replacement)
                self.population = population
        finally:
            self.state = EngineState.TERMINATED
        logger.debug("%s: terminated after %d epochs, %d evaluations",
                     self.name, self.epochs, problem.evaluation_count)

    def get_state(self) -> Dict[str, Any]:
        return {'state': self.state.value, 'epochs': self.epochs, 'population_size': len(self.population)}
