"""
Tests for run probes.
"""

import math
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from Core.exceptions import AlgorithmRunError, InitialisationError
from Core.problem import Problem, Solution
from Core.probes import (
    BestScoreProbe,
    BestSolutionProbe,
    PercentageOfOptimalProbe,
    RunTimeProbe,
    TotalEvaluationsProbe,
)


class ScoreProblem(Problem):
    name = "Score Problem"

    def __init__(self, minimization=True, optimum=None):
        super().__init__(max_evaluations=1000)
        self.minimization = minimization
        self.optimum = optimum

    def problem_specific_cost(self, solution):
        return float(solution.representation)

    def check_solution_for_safety(self, solution):
        pass

    def is_minimization(self):
        return self.minimization

    @property
    def known_optimum(self):
        return self.optimum


def observe(probe, problem, *scores):
    probe.initialise_before_run(problem)
    problem.cost([Solution(float(s)) for s in scores])
    probe.cleanup_after_run(problem)
    return probe.get_probe_observation()


class TestBestScore:
    def test_unobserved_run_is_nan(self):
        assert math.isnan(BestScoreProbe().get_probe_observation())

    def test_minimisation(self):
        assert observe(BestScoreProbe(), ScoreProblem(), 5, 2, 7, 3) == 2.0

    def test_maximisation(self):
        assert observe(BestScoreProbe(), ScoreProblem(minimization=False), 5, 2, 7, 3) == 7.0

    def test_reset_between_runs(self):
        probe = BestScoreProbe()
        problem = ScoreProblem()
        observe(probe, problem, 1)
        assert observe(probe, problem, 4, 6) == 4.0

    def test_listener_detached_after_run(self):
        problem = ScoreProblem()
        probe = BestScoreProbe()
        observe(probe, problem, 1)
        assert problem.listeners == []
        with pytest.raises(InitialisationError):
            probe.cleanup_after_run(problem)


class TestBestSolution:
    def test_keeps_a_copy_of_the_first_best(self):
        problem = ScoreProblem()
        probe = BestSolutionProbe()
        probe.initialise_before_run(problem)
        first, tie = Solution(1.0), Solution(1.0)
        problem.cost([Solution(3.0), first, tie])
        probe.cleanup_after_run(problem)
        best = probe.get_probe_observation()
        assert best.score == 1.0
        assert best.id == first.id
        assert best is not first


class TestTotalEvaluations:
    def test_counts_new_evaluations_only(self):
        problem = ScoreProblem()
        probe = TotalEvaluationsProbe()
        probe.initialise_before_run(problem)
        pop = [Solution(1.0), Solution(2.0)]
        problem.cost(pop)
        problem.cost(pop)
        probe.cleanup_after_run(problem)
        assert probe.get_probe_observation() == 2


class TestRunTime:
    def test_none_until_run_has_ended(self):
        probe = RunTimeProbe()
        problem = ScoreProblem()
        probe.initialise_before_run(problem)
        assert probe.get_probe_observation() is None
        probe.cleanup_after_run(problem)
        assert probe.get_probe_observation() >= 0.0


class TestPercentageOfOptimal:
    def test_relative_error(self):
        problem = ScoreProblem(optimum=100.0)
        assert observe(PercentageOfOptimalProbe(), problem, 150, 110) == pytest.approx(10.0)

    def test_optimum_reached(self):
        problem = ScoreProblem(minimization=False, optimum=8.0)
        assert observe(PercentageOfOptimalProbe(), problem, 4, 8) == pytest.approx(0.0)

    def test_better_than_optimum_is_an_error(self):
        problem = ScoreProblem(optimum=100.0)
        probe = PercentageOfOptimalProbe()
        probe.initialise_before_run(problem)
        with pytest.raises(AlgorithmRunError):
            problem.cost(Solution(90.0))

    @pytest.mark.parametrize("optimum", [None, 0])
    def test_requires_non_zero_optimum(self, optimum):
        with pytest.raises(InitialisationError):
            PercentageOfOptimalProbe().initialise_before_run(ScoreProblem(optimum=optimum))
