"""
AlgorithmExecutor: validates, brackets and runs one algorithm against one problem.

A run is always one logical thread. `execute_and_wait()` runs on the caller's
thread; `start()` runs on a worker thread that can be cancelled cooperatively
with `stop()`. Either way validation and initialisation happen on the caller's
thread, so configuration and initialisation errors surface before any work is
handed to a worker.
"""

import contextlib
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from .exceptions import ConfigurationError, OATError
from .probes import BestScoreProbe, BestSolutionProbe, RunProbe, RunTimeProbe, TotalEvaluationsProbe
from .problem import Problem
from .search_algorithm import Algorithm, EpochAlgorithm, PopulationStep
from .stop_conditions import RequestStopCondition, StopCondition
from .utils import generate_seed


@dataclass
class RunResult:
    """Outcome of a completed run. Observations are keyed by probe name."""
    algorithm: str
    problem: str
    seed: int
    observations: Dict[str, Any] = field(default_factory=dict)
    evaluations: int = 0
    epochs: Optional[int] = None
    stopped_by: List[str] = field(default_factory=list)
    elapsed: float = 0.0
    configuration: str = ""

    def __getitem__(self, probe_name: str) -> Any:
        return self.observations[probe_name]


def default_probes() -> List[RunProbe]:
    return [BestScoreProbe(), BestSolutionProbe(), TotalEvaluationsProbe(), RunTimeProbe()]


class AlgorithmExecutor:
    """
    Runs an algorithm on a problem until one of the stop conditions fires.

    Args:
        problem: The problem to solve.
        algorithm: An Algorithm, or a PopulationStep which is driven by an
            EpochAlgorithm engine.
        stop_conditions: Conditions ending the run (logical OR). May be empty
            only if the problem carries its own `max_evaluations`.
        probes: Observers summarising the run. Defaults to best score, best
            solution, total evaluations and run time.
        seed: Seed of the run's random generator. Drawn once per run when None.
        auto_configure: Let the algorithm derive its parameters from the
            problem before validation.
        logger: Optional logger, defaults to this module's logger.
    """

    def __init__(
        self,
        problem: Optional[Problem] = None,
        algorithm: Optional[Union[Algorithm, PopulationStep]] = None,
        stop_conditions: Optional[Sequence[StopCondition]] = None,
        probes: Optional[Sequence[RunProbe]] = None,
        *,
        seed: Optional[int] = None,
        auto_configure: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.problem = problem
        self.algorithm = algorithm
        self.stop_conditions: List[StopCondition] = list(stop_conditions or [])
        self.probes: List[RunProbe] = default_probes() if probes is None else list(probes)
        self.seed = seed
        self.auto_configure = auto_configure
        self.logger = logger or logging.getLogger(__name__)

        self._request_stop = RequestStopCondition()
        self._cleanup: Optional[contextlib.ExitStack] = None
        self._thread: Optional[threading.Thread] = None
        self._result_box: Dict[str, RunResult] = {}
        self._error_box: Dict[str, BaseException] = {}
        self._run_seed: Optional[int] = None
        self._started_at = 0.0

    @property
    def algorithm(self) -> Optional[Algorithm]:
        return self._algorithm

    @algorithm.setter
    def algorithm(self, algorithm: Optional[Union[Algorithm, PopulationStep]]) -> None:
        if isinstance(algorithm, PopulationStep):
            algorithm = EpochAlgorithm(algorithm)
        self._algorithm = algorithm

    def add_stop_condition(self, condition: StopCondition) -> None:
        self.stop_conditions.append(condition)

    def add_run_probe(self, probe: RunProbe) -> None:
        self.probes.append(probe)

    # --- Lifecycle ---------------------------------------------------------

    def validate_configuration(self) -> None:
        """Checks everything needed for a run. Raises ConfigurationError, evaluates nothing."""
        if self.algorithm is None:
            raise ConfigurationError("No algorithm defined")
        if self.problem is None:
            raise ConfigurationError("No problem defined")

        if self.auto_configure:
            self.algorithm.automatically_configure(self.problem)

        self.problem.clear_stop_conditions()
        self.problem.add_stop_conditions(self.stop_conditions)
        self.problem.validate_configuration()
        for condition in self.stop_conditions:
            condition.validate_configuration()
        self.algorithm.validate_configuration()

    def initialise_before_run(self) -> None:
        """
        Initialises the problem, stop conditions, probes and algorithm in that
        order. If any of them fails, those already initialised are cleaned up
        in reverse order and the error propagates.
        """
        problem, algorithm = self.problem, self.algorithm
        with contextlib.ExitStack() as stack:
            problem.initialise_before_run()
            stack.callback(problem.cleanup_after_run)

            problem.add_stop_condition(self._request_stop)
            stack.callback(problem.remove_stop_condition, self._request_stop)

            for condition in [*self.stop_conditions, self._request_stop]:
                condition.initialise_before_run(problem, algorithm)
                stack.callback(condition.cleanup_after_run, problem, algorithm)

            for probe in self.probes:
                probe.initialise_before_run(problem, algorithm)
                stack.callback(probe.cleanup_after_run, problem, algorithm)

            algorithm.initialise_before_run(problem)
            stack.callback(algorithm.cleanup_after_run, problem)

            self._cleanup = stack.pop_all()

    def cleanup_after_run(self) -> None:
        if self._cleanup is not None:
            cleanup, self._cleanup = self._cleanup, None
            cleanup.close()

    def _prepare(self) -> np.random.Generator:
        self.validate_configuration()
        self._run_seed = self.seed if self.seed is not None else generate_seed()
        self.initialise_before_run()
        self.logger.info(
            "Starting %s on %s (seed=%d) [%s]",
            self.algorithm.name, self.problem.name, self._run_seed,
            self.algorithm.get_configuration_details(),
        )
        self._started_at = time.perf_counter()
        return np.random.default_rng(self._run_seed)

    def _run(self, rng: np.random.Generator) -> RunResult:
        try:
            self.algorithm.execute(self.problem, rng)
        except OATError:
            self.logger.exception("Run of %s on %s failed", self.algorithm.name, self.problem.name)
            raise
        finally:
            self.cleanup_after_run()
        result = self._collect_result()
        self.logger.info(
            "Finished %s on %s: %d evaluations in %.3fs, stopped by %s",
            result.algorithm, result.problem, result.evaluations, result.elapsed,
            ", ".join(result.stopped_by) or "budget",
        )
        return result

    def _collect_result(self) -> RunResult:
        stopped_by = [c.name for c in self.stop_conditions if c.triggered]
        if self._request_stop.triggered:
            stopped_by.append(self._request_stop.name)
        return RunResult(
            algorithm=self.algorithm.name,
            problem=self.problem.name,
            seed=self._run_seed,
            observations={probe.name: probe.get_probe_observation() for probe in self.probes},
            evaluations=self.problem.evaluation_count,
            epochs=getattr(self.algorithm, 'epochs', None),
            stopped_by=stopped_by,
            elapsed=time.perf_counter() - self._started_at,
            configuration=self.algorithm.get_configuration_details(),
        )

    # --- Synchronous -------------------------------------------------------

    def execute_and_wait(self) -> RunResult:
        """Runs to completion on the calling thread."""
        if self.is_running:
            raise OATError("Executor is already running")
        rng = self._prepare()
        return self._run(rng)

    # --- Asynchronous ------------------------------------------------------

    def start(self) -> None:
        """Validates and initialises on the calling thread, then runs on a worker."""
        if self.is_running:
            raise OATError("Executor is already running")
        self._result_box.clear()
        self._error_box.clear()
        rng = self._prepare()

        def _target() -> None:
            try:
                self._result_box["result"] = self._run(rng)
            except BaseException as exc:
                self._error_box["error"] = exc

        self._thread = threading.Thread(
            target=_target, name=f"oat-{self.algorithm.name}", daemon=True
        )
        self._thread.start()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout: Optional[float] = None) -> Optional[RunResult]:
        """
        Waits for a started run. Returns None if the timeout elapsed first;
        re-raises the worker's error if the run failed.
        """
        if self._thread is None:
            raise OATError("Executor has not been started")
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            return None
        if "error" in self._error_box:
            raise self._error_box["error"]
        return self._result_box.get("result")

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> bool:
        """
        Requests a cooperative stop of a running run. Returns at once when no run
        is in progress.

        Returns:
            True if the run acknowledged the request (or `wait` is False),
            False if the timeout elapsed first.
        """
        if not self.is_running:
            return True
        if not wait:
            self._request_stop.request_stop()
            return True
        acknowledged = self._request_stop.request_stop_and_wait(timeout)
        if acknowledged and self._thread is not None:
            self._thread.join(timeout=timeout)
        return acknowledged
