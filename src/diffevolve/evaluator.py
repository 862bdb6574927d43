# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the parallel evaluator of candidate solutions.
#
# ===--------------------------------------------------------------------------------------===#

import concurrent.futures
import logging
import math
import threading
import time
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from diffevolve.population import Population
from diffevolve.termination import TerminationController, append_query, offer_minimum


class ParallelEvaluator:
    """Evaluates the objective over a population with a fixed partition of workers.

    Slot ``i`` is always handled by worker ``i % threads``, and each worker walks its
    slots sequentially. Since no two workers ever touch the same slot, the
    population and cost arrays are written without locks; only the query log is
    guarded by a mutex and the minimum cost hint is updated on a best-effort basis.

    The worker threads belong to a ``ThreadPoolExecutor`` that lives as long as the
    evaluator is open, and every phase ends with a join on all of its tasks. Use the
    evaluator as a context manager so the pool is shut down when the run ends.

    Note that a worker whose objective call never returns blocks the phase, and
    hence the whole run, indefinitely.
    """

    def __init__(
        self,
        cost_function: Callable[[np.ndarray], float],
        threads: int,
        controller: TerminationController,
        queries: Optional[List[Tuple[np.ndarray, float]]] = None,
        current_minimum_cost: Optional[Any] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initializes the evaluator.

        Args:
            cost_function: Objective to minimize. It is called concurrently from
                several threads and must therefore be thread-safe.
            threads: Number of workers, i.e. of disjoint slot partitions.
            controller: Shared termination state polled and updated by the workers.
            queries: Optional caller-owned list receiving a (candidate, cost) record
                for every evaluation.
            current_minimum_cost: Optional caller-owned object whose ``value``
                attribute is lowered whenever a better cost is observed.
            logger: Logger instance for logging evaluation activities.
        """
        self.cost_function: Callable[[np.ndarray], float] = cost_function
        self.threads: int = threads
        self.controller: TerminationController = controller
        self.queries: Optional[List[Tuple[np.ndarray, float]]] = queries
        self.current_minimum_cost: Optional[Any] = current_minimum_cost
        self.logger: logging.Logger = logger if logger is not None else logging.getLogger(__name__)

        self.num_evaluations: int = 0
        self._queries_lock: threading.Lock = threading.Lock()
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None

    def __repr__(self):
        return (
            f"{self.__class__.__name__}"
            "("
            f"threads={self.threads},"
            f"num_evaluations={self.num_evaluations},"
            f"log_queries={self.queries is not None},"
            f"track_minimum={self.current_minimum_cost is not None}"
            ")"
        )

    def __enter__(self) -> "ParallelEvaluator":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=self.threads, thread_name_prefix="diffevolve-worker"
            )

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def partition(self, num_members: int) -> List[range]:
        """Returns the round-robin slot partition, one range per worker."""
        return [range(j, num_members, self.threads) for j in range(self.threads)]

    def _call_objective(self, candidate: np.ndarray) -> float:
        try:
            return float(self.cost_function(candidate))
        except Exception:
            # the other workers finish their current call and stop there
            self.controller.aborted.set()
            raise

    def _observe(self, candidate: np.ndarray, cost: float) -> None:
        """Publishes a fresh evaluation to the shared state."""
        append_query(self.queries, self._queries_lock, candidate, cost)
        if math.isfinite(cost):
            offer_minimum(self.current_minimum_cost, cost)
            self.controller.record(cost)

    def _score_slots(self, population: Population, slots: range) -> Tuple[int, int]:
        num_evaluated: int = 0
        for i in slots:
            if self.controller.aborted.is_set():
                break
            candidate: np.ndarray = population.members[i]
            cost: float = self._call_objective(candidate)
            num_evaluated += 1
            population.costs[i] = cost if math.isfinite(cost) else np.nan
            self._observe(candidate, cost)
        return num_evaluated, 0

    def _challenge_slots(
        self, population: Population, trials: np.ndarray, slots: range
    ) -> Tuple[int, int]:
        num_evaluated: int = 0
        num_accepted: int = 0
        for i in slots:
            if self.controller.should_stop():
                break
            trial_cost: float = self._call_objective(trials[i])
            num_evaluated += 1
            self._observe(trials[i], trial_cost)
            num_accepted += population.challenge(i, trials[i], trial_cost)
        return num_evaluated, num_accepted

    def _run_phase(self, work: Callable[[range], Tuple[int, int]], num_members: int) -> int:
        """Runs ``work`` on every partition and waits for all of them to finish.

        Returns:
            The total number of accepted trials reported by the workers.

        Raises:
            RuntimeError: If the evaluator has not been opened.
            Exception: The first exception raised by a worker, re-raised after
                every worker of the phase has returned.
        """
        if self._executor is None:
            raise RuntimeError("ParallelEvaluator must be opened before evaluating.")

        futures: List[concurrent.futures.Future] = [
            self._executor.submit(work, slots) for slots in self.partition(num_members)
        ]
        concurrent.futures.wait(futures)

        num_accepted: int = 0
        for worker_id, future in enumerate(futures):
            err: Optional[BaseException] = future.exception()
            if err is not None:
                self.logger.error(f"Worker {worker_id} failed to evaluate the objective: {err!r}.")
                raise err
            evaluated, accepted = future.result()
            self.num_evaluations += evaluated
            num_accepted += accepted
        return num_accepted

    def evaluate_population(self, population: Population) -> None:
        """Scores every member of the population in place.

        Costs that are not finite are stored as NaN, i.e. the slot stays
        unevaluated and the first finite trial for it is accepted.
        """
        self.logger.info(
            "Evaluating %d candidates in parallel with %d workers...",
            len(population),
            self.threads,
        )
        start: float = time.perf_counter()
        self._run_phase(lambda slots: self._score_slots(population, slots), len(population))
        self.logger.info(
            "Evaluated initial population in %.3fs: %d/%d candidates with a finite cost.",
            time.perf_counter() - start,
            population.num_evaluated,
            len(population),
        )

    def evaluate_trials(self, population: Population, trials: np.ndarray) -> int:
        """Scores the trial vectors and applies selection slot by slot.

        Each worker stops issuing new evaluations once the controller reports a
        stop, so after a stop some trials may be left unevaluated; their slots
        simply keep the parent.

        Args:
            population: Current population, updated in place.
            trials: Array of shape (NP, D); row ``i`` competes for slot ``i``.

        Returns:
            The number of trials that replaced their parent.
        """
        start: float = time.perf_counter()
        num_accepted: int = self._run_phase(
            lambda slots: self._challenge_slots(population, trials, slots), len(population)
        )
        self.logger.debug(
            "Evaluated trials in %.3fs, %d accepted.", time.perf_counter() - start, num_accepted
        )
        return num_accepted
