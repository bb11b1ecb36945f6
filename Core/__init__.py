"""
Core of the toolkit: problems and solutions, the epoch engine, stop conditions,
run probes and the executor that ties them together.
"""

from .exceptions import (
    AlgorithmRunError,
    BudgetExhaustedError,
    ConfigurationError,
    InitialisationError,
    OATError,
    SolutionEvaluationError,
)
from .problem import Problem, Solution
from .search_algorithm import Algorithm, EngineState, EpochAlgorithm, Population, PopulationStep
from .stop_conditions import (
    AnyStopCondition,
    EvaluationConvergenceStopCondition,
    EvaluationsStopCondition,
    LackOfImprovementStopCondition,
    RequestStopCondition,
    StopCondition,
    TargetScoreStopCondition,
    TimeStopCondition,
)
from .probes import (
    BestScoreProbe,
    BestSolutionProbe,
    PercentageOfOptimalProbe,
    RunProbe,
    RunTimeProbe,
    TotalEvaluationsProbe,
)
from .executor import AlgorithmExecutor, RunResult

__all__ = [
    'OATError', 'ConfigurationError', 'InitialisationError', 'AlgorithmRunError',
    'SolutionEvaluationError', 'BudgetExhaustedError',
    'Problem', 'Solution',
    'Algorithm', 'EngineState', 'EpochAlgorithm', 'Population', 'PopulationStep',
    'StopCondition', 'AnyStopCondition', 'EvaluationsStopCondition',
    'EvaluationConvergenceStopCondition', 'LackOfImprovementStopCondition',
    'TargetScoreStopCondition', 'TimeStopCondition', 'RequestStopCondition',
    'RunProbe', 'BestScoreProbe', 'BestSolutionProbe', 'TotalEvaluationsProbe',
    'RunTimeProbe', 'PercentageOfOptimalProbe',
    'AlgorithmExecutor', 'RunResult',
]
