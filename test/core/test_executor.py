"""
Tests for AlgorithmExecutor: validation, the initialise/cleanup bracket,
reproducibility and the asynchronous start/stop/wait lifecycle.
"""

import sys
import threading
import time
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from Core.exceptions import AlgorithmRunError, ConfigurationError, InitialisationError, OATError
from Core.executor import AlgorithmExecutor, RunResult
from Core.probes import BestScoreProbe, PercentageOfOptimalProbe
from Core.search_algorithm import Algorithm, EpochAlgorithm
from Core.stop_conditions import EvaluationsStopCondition, TimeStopCondition
from algorithms.GA.GA import GeneticAlgorithm
from algorithms.RandomSearch.random_search import RandomSearch
from problems.BFO.binary import OneMax
from problems.CFO.functions import Sphere


class RecordingOneMax(OneMax):
    """OneMax that records its lifecycle calls."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.events = []

    def initialise_before_run(self):
        super().initialise_before_run()
        self.events.append("initialise")

    def cleanup_after_run(self):
        super().cleanup_after_run()
        self.events.append("cleanup")


class FailingStep(RandomSearch):
    """Random search that breaks in a given epoch."""

    name = "Failing Step"

    def __init__(self, fail_at=3):
        super().__init__(epoch_size=10)
        self.fail_at = fail_at
        self.epochs = 0

    def step_epoch(self, problem, population, rng):
        self.epochs += 1
        if self.epochs == self.fail_at:
            raise AlgorithmRunError(f"broken in epoch {self.epochs}")
        return super().step_epoch(problem, population, rng)


class FailingInitAlgorithm(Algorithm):
    name = "Failing Init"

    def initialise_before_run(self, problem):
        raise InitialisationError("cannot initialise")

    def execute(self, problem, rng):
        raise AssertionError("must not run")


@pytest.fixture
def onemax():
    return RecordingOneMax(length=16)


def ga_executor(problem, evaluations=200, **kwargs):
    return AlgorithmExecutor(
        problem,
        GeneticAlgorithm(popsize=16, mutation=1.0 / 16),
        [EvaluationsStopCondition(evaluations)],
        **kwargs,
    )


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.001)


# =============================================================================
# Synchronous runs
# =============================================================================

class TestExecuteAndWait:
    def test_run_result(self, onemax):
        result = ga_executor(onemax, seed=3).execute_and_wait()
        assert isinstance(result, RunResult)
        assert result.algorithm == "Genetic Algorithm (GA)"
        assert result.problem == "OneMax"
        assert result.seed == 3
        assert result.evaluations == 200
        assert result.stopped_by == ["Total Evaluations"]
        assert result.epochs >= 1
        assert "popsize=16" in result.configuration

    def test_default_probes(self, onemax):
        result = ga_executor(onemax, seed=3).execute_and_wait()
        assert set(result.observations) == {
            "Best Score", "Best Solution", "Total Evaluations", "Run Time Seconds"
        }
        assert result["Total Evaluations"] == 200
        assert 0 <= result["Best Score"] <= 16
        assert result["Best Solution"].score == result["Best Score"]
        assert result["Run Time Seconds"] >= 0.0

    def test_population_step_is_wrapped_in_engine(self, onemax):
        executor = ga_executor(onemax)
        assert isinstance(executor.algorithm, EpochAlgorithm)
        assert executor.algorithm.name == "Genetic Algorithm (GA)"

    def test_lifecycle_bracket(self, onemax):
        ga_executor(onemax, seed=1).execute_and_wait()
        assert onemax.events == ["initialise", "cleanup"]
        assert onemax.listeners == []
        assert [c.name for c in onemax.stop_conditions] == ["Total Evaluations"]

    def test_intrinsic_cap_needs_no_stop_condition(self):
        problem = OneMax(length=16, max_evaluations=50)
        executor = AlgorithmExecutor(problem, GeneticAlgorithm(popsize=16), seed=0)
        result = executor.execute_and_wait()
        assert result.evaluations == 50
        assert result.stopped_by == []

    def test_auto_configure(self):
        problem = OneMax(length=20)
        executor = ga_executor(problem, auto_configure=True, seed=0)
        result = executor.execute_and_wait()
        step = executor.algorithm.step
        assert step.popsize == 20
        assert step.mutation == pytest.approx(0.05)
        assert "popsize=20" in result.configuration

    def test_custom_probes_replace_defaults(self, onemax):
        executor = ga_executor(onemax, probes=[BestScoreProbe()], seed=0)
        assert list(executor.execute_and_wait().observations) == ["Best Score"]

    def test_explicit_empty_list_means_no_observations(self, onemax):
        result = ga_executor(onemax, probes=[], seed=0).execute_and_wait()
        assert result.observations == {}
        assert result.evaluations == 200


class TestReproducibility:
    def test_same_seed_same_outcome(self):
        first = ga_executor(OneMax(length=16), seed=42).execute_and_wait()
        second = ga_executor(OneMax(length=16), seed=42).execute_and_wait()
        assert first["Best Score"] == second["Best Score"]
        assert first["Best Solution"] == second["Best Solution"]
        assert first.epochs == second.epochs

    def test_executor_can_be_rerun(self, onemax):
        executor = ga_executor(onemax, seed=7)
        first = executor.execute_and_wait()
        second = executor.execute_and_wait()
        assert first["Best Score"] == second["Best Score"]
        assert second.evaluations == 200

    def test_drawn_seed_is_reported(self):
        first = ga_executor(OneMax(length=16)).execute_and_wait()
        replay = ga_executor(OneMax(length=16), seed=first.seed).execute_and_wait()
        assert first["Best Solution"] == replay["Best Solution"]


# =============================================================================
# Validation and failures
# =============================================================================

class TestValidation:
    def test_no_stop_conditions(self, onemax):
        executor = AlgorithmExecutor(onemax, GeneticAlgorithm(), [])
        with pytest.raises(ConfigurationError, match="No stop conditions defined"):
            executor.execute_and_wait()
        assert onemax.evaluation_count == 0
        assert onemax.events == []

    def test_missing_algorithm_or_problem(self, onemax):
        with pytest.raises(ConfigurationError, match="No algorithm defined"):
            AlgorithmExecutor(onemax, None, [EvaluationsStopCondition(10)]).execute_and_wait()
        with pytest.raises(ConfigurationError, match="No problem defined"):
            AlgorithmExecutor(None, GeneticAlgorithm(), [EvaluationsStopCondition(10)]).execute_and_wait()

    def test_invalid_mutation_is_rejected_before_any_work(self, onemax):
        algorithm = GeneticAlgorithm(mutation=1.5)
        executor = AlgorithmExecutor(onemax, algorithm, [EvaluationsStopCondition(100)])
        epochs = []
        executor.algorithm.add_epoch_listener(lambda p, pop: epochs.append(pop))

        messages = []
        for _ in range(2):
            with pytest.raises(ConfigurationError) as exc_info:
                executor.execute_and_wait()
            messages.append(str(exc_info.value))

        assert "mutation" in messages[0] and "1.5" in messages[0]
        assert exc_info.value.field == "mutation"
        assert messages[0] == messages[1]
        assert epochs == []
        assert onemax.evaluation_count == 0

    def test_invalid_stop_condition(self, onemax):
        executor = AlgorithmExecutor(onemax, GeneticAlgorithm(), [EvaluationsStopCondition(0)])
        with pytest.raises(ConfigurationError, match="Invalid max_evaluations 0"):
            executor.execute_and_wait()


class TestFailureCleanup:
    def test_probe_initialisation_failure_unwinds(self):
        problem = Sphere()
        executor = AlgorithmExecutor(
            problem, RandomSearch(), [EvaluationsStopCondition(100)],
            [BestScoreProbe(), PercentageOfOptimalProbe()],
        )
        with pytest.raises(InitialisationError):
            executor.execute_and_wait()
        assert problem.listeners == []
        assert [c.name for c in problem.stop_conditions] == ["Total Evaluations"]
        assert problem.evaluation_count == 0

    def test_algorithm_initialisation_failure_unwinds(self, onemax):
        executor = AlgorithmExecutor(onemax, FailingInitAlgorithm(), [EvaluationsStopCondition(100)])
        with pytest.raises(InitialisationError, match="cannot initialise"):
            executor.execute_and_wait()
        assert onemax.events == ["initialise", "cleanup"]
        assert onemax.listeners == []

    def test_run_error_propagates_after_cleanup(self, caplog):
        problem = Sphere()
        executor = AlgorithmExecutor(problem, FailingStep(fail_at=3), [EvaluationsStopCondition(1000)], seed=0)
        with pytest.raises(AlgorithmRunError, match="broken in epoch 3"):
            executor.execute_and_wait()
        assert problem.evaluation_count == 30
        assert problem.listeners == []
        assert "failed" in caplog.text


# =============================================================================
# Asynchronous runs
# =============================================================================

class TestAsynchronous:
    def test_start_stop_wait(self):
        problem = Sphere()
        executor = AlgorithmExecutor(problem, RandomSearch(epoch_size=10), [TimeStopCondition(60)], seed=0)
        executor.start()
        assert executor.is_running
        wait_until(lambda: problem.evaluation_count > 0)
        assert executor.wait(timeout=0.01) is None

        assert executor.stop(timeout=5) is True
        assert not executor.is_running

        result = executor.wait()
        assert "Request Stop" in result.stopped_by
        assert result.evaluations == problem.evaluation_count
        assert problem.listeners == []

    def test_start_while_running_is_rejected(self):
        executor = AlgorithmExecutor(Sphere(), RandomSearch(epoch_size=10), [TimeStopCondition(60)])
        executor.start()
        try:
            with pytest.raises(OATError, match="already running"):
                executor.start()
        finally:
            executor.stop(timeout=5)

    def test_wait_reraises_worker_error(self):
        executor = AlgorithmExecutor(Sphere(), FailingStep(fail_at=2), [EvaluationsStopCondition(1000)])
        executor.start()
        with pytest.raises(AlgorithmRunError, match="broken in epoch 2"):
            executor.wait(timeout=5)

    def test_start_surfaces_configuration_errors_on_caller(self, onemax):
        executor = AlgorithmExecutor(onemax, GeneticAlgorithm(mutation=1.5), [EvaluationsStopCondition(10)])
        with pytest.raises(ConfigurationError):
            executor.start()
        assert not executor.is_running

    def test_wait_before_start(self, onemax):
        with pytest.raises(OATError, match="not been started"):
            ga_executor(onemax).wait()

    def test_run_that_finishes_on_its_own(self, onemax):
        executor = ga_executor(onemax, seed=5)
        executor.start()
        result = executor.wait(timeout=10)
        assert result.evaluations == 200
        assert executor.stop(timeout=1) is True

    def test_stop_before_start_returns_at_once(self, onemax):
        executor = ga_executor(onemax)
        assert executor.stop() is True
        assert not executor.is_running

    def test_stop_after_failed_start_returns_at_once(self, onemax):
        executor = AlgorithmExecutor(onemax, GeneticAlgorithm(mutation=1.5), [EvaluationsStopCondition(10)])
        with pytest.raises(ConfigurationError):
            executor.start()
        outcome = {}
        stopper = threading.Thread(target=lambda: outcome.update(stopped=executor.stop()), daemon=True)
        stopper.start()
        stopper.join(timeout=2.0)
        assert not stopper.is_alive()
        assert outcome['stopped'] is True
