"""
Variation operators for bit string genomes.
"""

from typing import List, Sequence, Tuple

import numpy as np

from Core.exceptions import AlgorithmRunError
from Core.problem import Solution


def one_point_crossover(
    p1: np.ndarray,
    p2: np.ndarray,
    rng: np.random.Generator,
    probability: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    One-point crossover. With probability `probability` a cut point is drawn,
    otherwise the cut is at 0 and the children are plain copies of the
    (swapped) parents.
    """
    cut = int(rng.integers(p1.shape[0])) if rng.random() < probability else 0
    c1 = np.concatenate((p1[:cut], p2[cut:]))
    c2 = np.concatenate((p2[:cut], p1[cut:]))
    return c1, c2


def binary_mutate(bits: np.ndarray, rng: np.random.Generator, probability: float) -> np.ndarray:
    """Returns a copy with each bit flipped independently with `probability`."""
    return np.logical_xor(bits, rng.random(bits.shape[0]) < probability)


def reproduce(
    parents: Sequence[Solution],
    total_children: int,
    mutation: float,
    crossover: float,
    rng: np.random.Generator,
) -> List[Solution]:
    """
    Pairs up shuffled parents, applies crossover then mutation, and returns
    `total_children` new unevaluated solutions.
    """
    if len(parents) % 2 != 0:
        raise AlgorithmRunError(f"Selected population size is not even as expected {len(parents)}")
    if total_children > len(parents):
        raise AlgorithmRunError(
            f"The specified number of children {total_children} must be <= the number of parents {len(parents)}"
        )

    order = rng.permutation(len(parents))
    children: List[Solution] = []
    for i in range(0, len(order), 2):
        if len(children) >= total_children:
            break
        p1 = parents[order[i]].representation
        p2 = parents[order[i + 1]].representation
        for genome in one_point_crossover(p1, p2, rng, crossover):
            if len(children) >= total_children:
                break
            children.append(Solution(binary_mutate(genome, rng, mutation)))
    return children
