"""Binary function optimisation problems."""

from .binary import BasicTrapFunction, BinaryProblem, OneMax, random_bit_string, unitation

__all__ = ["BinaryProblem", "OneMax", "BasicTrapFunction", "random_bit_string", "unitation"]
