from .GA import GeneticAlgorithm
from .diffuse_ga import DiffuseGeneticAlgorithm
from .operators import binary_mutate, one_point_crossover, reproduce

__all__ = ["GeneticAlgorithm", "DiffuseGeneticAlgorithm", "binary_mutate", "one_point_crossover", "reproduce"]
