"""
Algorithm bodies. Epoch-shaped strategies implement PopulationStep and are
driven by the EpochAlgorithm engine; MutationHillClimber owns its loop.
"""
