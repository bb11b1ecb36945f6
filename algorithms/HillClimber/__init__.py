from .hill_climber import MutationHillClimber

__all__ = ["MutationHillClimber"]
