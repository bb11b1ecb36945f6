"""Travelling Salesperson Problem."""

from .tsp import TSPProblem, euclidean_distance_matrix, nearest_neighbour_tour

__all__ = ["TSPProblem", "euclidean_distance_matrix", "nearest_neighbour_tour"]
