"""
Population helpers shared by algorithm bodies.

Selection, ranking and elitism all order solutions through the problem
(`is_better`), so they work unchanged for minimisation and maximisation.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .exceptions import AlgorithmRunError
from .problem import Problem, Solution
from .utils import is_invalid_number


@dataclass(frozen=True)
class FitnessStatistics:
    minimum: float
    maximum: float
    average: float
    best: float
    evaluated: int


def rank_population(population: Sequence[Solution], problem: Problem) -> List[Solution]:
    """Returns the evaluated solutions ordered best first. Stable for ties."""
    evaluated = [s for s in population if s.evaluated]
    return sorted(evaluated, key=lambda s: s.score, reverse=problem.is_maximisation())


def get_best(population: Sequence[Solution], problem: Problem) -> Optional[Solution]:
    """The best evaluated solution, or None if nothing in the population is evaluated."""
    best = None
    for solution in population:
        if not solution.evaluated:
            continue
        if best is None or problem.is_better(solution, best):
            best = solution
    return best


def strip_unevaluated(population: List[Solution]) -> None:
    """Removes unevaluated solutions in place."""
    population[:] = [s for s in population if s.evaluated]


def is_converged(population: Sequence[Solution]) -> bool:
    """True when every solution has the same representation."""
    return all(population[0] == s for s in population[1:]) if population else True


def tournament_selection(
    population: Sequence[Solution],
    num_to_select: int,
    problem: Problem,
    rng: np.random.Generator,
    bout_size: int,
) -> List[Solution]:
    """
    Tournament selection. Each bout draws `bout_size` distinct members and
    keeps the best; the selected list itself may contain repeats.
    """
    if bout_size > len(population):
        raise AlgorithmRunError(
            f"Bout size {bout_size} exceeds the population size {len(population)}"
        )
    selected = []
    while len(selected) < num_to_select:
        indices = rng.choice(len(population), size=bout_size, replace=False)
        best = get_best([population[i] for i in indices], problem)
        if best is None:
            raise AlgorithmRunError("Unable to locate best solution in tournament, the bout is unevaluated")
        selected.append(best)
    return selected


def elitism(
    last_generation: Sequence[Solution],
    next_generation: List[Solution],
    population_size: int,
    problem: Problem,
) -> None:
    """
    Fills the free slots of `next_generation` with the best of `last_generation`,
    best first. The elites are the same (already evaluated) objects, so they are
    never costed again.
    """
    if len(next_generation) > population_size:
        raise AlgorithmRunError("Unable to add elite solutions, next generation exceeds the population size.")
    num_elites = population_size - len(next_generation)
    if num_elites <= 0:
        raise AlgorithmRunError("Unable to add elite solutions, next generation is already full.")
    ranked = rank_population(last_generation, problem)
    if num_elites > len(ranked):
        raise AlgorithmRunError(
            f"The number of desired elite solutions {num_elites} exceeds the "
            f"evaluated size of the last generation {len(ranked)}"
        )
    next_generation.extend(ranked[:num_elites])


def elitist_selection_strategy(population: List[Solution], desired_size: int, problem: Problem) -> None:
    """Trims the population in place to its `desired_size` best members."""
    if not population or len(population) < desired_size or desired_size <= 0:
        raise AlgorithmRunError(
            f"Unable to perform elitist selection strategy popsize[{len(population)}], desiredsize[{desired_size}]"
        )
    if len(population) != desired_size:
        population[:] = rank_population(population, problem)[:desired_size]


def elitist_replacement(
    parents: Sequence[Solution],
    children: Sequence[Solution],
    problem: Problem,
) -> List[Solution]:
    """Pairwise replacement: slot i keeps the child unless the parent is strictly better."""
    if len(parents) != len(children):
        raise AlgorithmRunError(
            f"Parent {len(parents)} and child {len(children)} population sizes do not match as expected."
        )
    return [p if problem.is_better(p, c) else c for p, c in zip(parents, children)]


def calculate_fitness_statistics(population: Sequence[Solution], problem: Problem) -> Optional[FitnessStatistics]:
    scores = [s.score for s in population if s.evaluated]
    if not scores:
        return None
    minimum, maximum = min(scores), max(scores)
    return FitnessStatistics(
        minimum=minimum,
        maximum=maximum,
        average=float(np.mean(scores)),
        best=minimum if problem.is_minimization() else maximum,
        evaluated=len(scores),
    )


def calculate_normalized_relative_fitness(population: Sequence[Solution], problem: Problem) -> None:
    """
    Assigns each solution a score in [0, 1] relative to the population, where 1
    is always the best regardless of the problem's direction. A population with
    no score range gets 1.0 everywhere.
    """
    if not population:
        raise AlgorithmRunError("Unable to calculate normalized relative fitness, empty population.")
    scores = [s.score for s in population if s.evaluated]
    if not scores or max(scores) == min(scores):
        for s in population:
            s.normalized_relative_score = 1.0
        return

    low, high = min(scores), max(scores)
    for s in population:
        n = (s.score - low) / (high - low)
        if problem.is_minimization():
            n = 1.0 - n
        if is_invalid_number(n):
            raise AlgorithmRunError(
                f"Normalized relative fitness is NaN. min={low}, max={high}, score={s.score}"
            )
        s.normalized_relative_score = n
