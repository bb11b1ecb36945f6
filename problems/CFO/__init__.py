"""Continuous function optimisation problems."""

from .functions import ContinuousProblem, Rastrigin, Sphere

__all__ = ["ContinuousProblem", "Sphere", "Rastrigin"]
