#!/bin/python
"""
Unified entry point for running one algorithm against one problem.

Example:
    python main.py --problem onemax --algorithm ga --evaluations 5000 --auto-configure
"""
import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional

from Core.exceptions import OATError
from Core.executor import AlgorithmExecutor
from Core.probes import (
    BestScoreProbe,
    BestSolutionProbe,
    PercentageOfOptimalProbe,
    RunTimeProbe,
    TotalEvaluationsProbe,
)
from Core.stop_conditions import EvaluationsStopCondition, StopCondition, TimeStopCondition
from Core.utils import setup_logging
from algorithms.ACO.ant_system import AntSystem
from algorithms.GA.GA import GeneticAlgorithm
from algorithms.GA.diffuse_ga import DiffuseGeneticAlgorithm
from algorithms.HillClimber.hill_climber import MutationHillClimber
from algorithms.RandomSearch.random_search import RandomSearch
from problems.BFO.binary import BasicTrapFunction, BinaryProblem, OneMax
from problems.CFO.functions import Rastrigin, Sphere
from problems.TSP.tsp import TSPProblem

PROBLEMS: Dict[str, Callable[[argparse.Namespace], object]] = {
    "onemax": lambda args: OneMax(length=args.length),
    "trap": lambda args: BasicTrapFunction(length=args.length),
    "sphere": lambda args: Sphere(dimensions=args.dimensions),
    "rastrigin": lambda args: Rastrigin(dimensions=args.dimensions),
    "tsp": lambda args: TSPProblem(
        num_cities=args.cities, instance_seed=args.instance_seed,
        problem_file=args.tsp_file, solution_file=args.tsp_solution,
    ),
}

ALGORITHMS: Dict[str, Callable[[], object]] = {
    "ga": GeneticAlgorithm,
    "diffuse-ga": DiffuseGeneticAlgorithm,
    "random-search": RandomSearch,
    "hill-climber": MutationHillClimber,
    "ant-system": AntSystem,
}

# algorithms that only make sense on one kind of problem
REQUIRES = {
    "ga": BinaryProblem,
    "diffuse-ga": BinaryProblem,
    "hill-climber": BinaryProblem,
    "ant-system": TSPProblem,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run a metaheuristic on a benchmark problem and print the run probes."
    )
    parser.add_argument("--problem", "-p", default="onemax", choices=sorted(PROBLEMS),
                        help="Problem to solve (default: onemax)")
    parser.add_argument("--algorithm", "-a", default="ga", choices=sorted(ALGORITHMS),
                        help="Algorithm to run (default: ga)")
    parser.add_argument("--evaluations", "-e", type=int, default=10000,
                        help="Maximum number of evaluations (default: 10000)")
    parser.add_argument("--seconds", type=float, default=None,
                        help="Optional wall clock limit in seconds")
    parser.add_argument("--seed", "-s", type=int, default=None,
                        help="Random seed for reproducibility (default: drawn once and reported)")
    parser.add_argument("--auto-configure", action="store_true",
                        help="Derive algorithm parameters from the problem")
    parser.add_argument("--length", type=int, default=64,
                        help="Bit string length of binary problems (default: 64)")
    parser.add_argument("--dimensions", type=int, default=2,
                        help="Dimensions of continuous problems (default: 2)")
    parser.add_argument("--cities", "-c", type=int, default=30,
                        help="Number of generated TSP cities (default: 30)")
    parser.add_argument("--instance-seed", type=int, default=42,
                        help="Seed for generated TSP cities (default: 42)")
    parser.add_argument("--tsp-file", type=str, default=None,
                        help="TSPLIB instance file, overrides --cities")
    parser.add_argument("--tsp-solution", type=str, default=None,
                        help="TSPLIB tour file with the optimal tour")
    parser.add_argument("--log-dir", type=str, default=None,
                        help="Directory for the run log file")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log per-epoch detail")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Parse command line arguments and run the selected algorithm."""
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logger = setup_logging("run", args.problem, log_dir=args.log_dir, level=level)
    if args.verbose:
        for package in ("Core", "algorithms", "problems"):
            package_logger = logging.getLogger(package)
            package_logger.setLevel(level)
            for handler in logger.handlers:
                if handler not in package_logger.handlers:
                    package_logger.addHandler(handler)

    problem = PROBLEMS[args.problem](args)
    required = REQUIRES.get(args.algorithm)
    if required is not None and not isinstance(problem, required):
        logger.error("Algorithm '%s' cannot solve problem '%s'", args.algorithm, args.problem)
        return 2
    algorithm = ALGORITHMS[args.algorithm]()

    stop_conditions: List[StopCondition] = [EvaluationsStopCondition(args.evaluations)]
    if args.seconds is not None:
        stop_conditions.append(TimeStopCondition(args.seconds))

    probes = [BestScoreProbe(), BestSolutionProbe(), TotalEvaluationsProbe(), RunTimeProbe()]
    if args.problem == "tsp" and args.tsp_solution:
        probes.append(PercentageOfOptimalProbe())

    executor = AlgorithmExecutor(
        problem, algorithm, stop_conditions, probes,
        seed=args.seed, auto_configure=args.auto_configure, logger=logger,
    )
    try:
        result = executor.execute_and_wait()
    except OATError as e:
        logger.error("Run failed: %s", e)
        return 1

    print(f"Algorithm: {result.algorithm} [{result.configuration}]")
    print(f"Problem:   {result.problem}")
    print(f"Seed:      {result.seed}")
    print(f"Epochs:    {result.epochs}")
    for name, value in result.observations.items():
        print(f"{name}: {value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
