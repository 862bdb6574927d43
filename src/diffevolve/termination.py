# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the state shared between the evaluation workers: the early
# termination flags, the current minimum cost hint and the query log.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Any, List, Optional, Tuple

import math
import threading

import numpy as np


class TerminationController:
    """Cooperative stop logic shared by the generation loop and the workers.

    The controller owns the "target attained" flag and borrows the caller's
    cancellation flag, which may be any object exposing ``is_set()`` (typically
    a ``threading.Event``). Neither flag interrupts an evaluation in progress:
    the generation loop polls ``should_stop`` once per generation and each worker
    polls it before starting a new trial evaluation.

    Attributes:
        target_value: Cost at or below which the run stops early. Only a finite
            value enables the early stop; NaN (the default) or None disables it.
        cancellation: Caller-owned cancellation flag, or None.
        target_attained: Set as soon as any evaluation reaches the target value.
        aborted: Set when an objective evaluation raised, so the remaining
            workers stop issuing evaluations.
    """

    def __init__(
        self, target_value: Optional[float] = math.nan, cancellation: Optional[Any] = None
    ):
        self.target_value: float = math.nan if target_value is None else float(target_value)
        self.cancellation: Optional[Any] = cancellation
        self.target_attained: threading.Event = threading.Event()
        self.aborted: threading.Event = threading.Event()

    def __repr__(self):
        return (
            f"{self.__class__.__name__}"
            "("
            f"target_value={self.target_value},"
            f"target_attained={self.target_attained.is_set()},"
            f"cancelled={self.cancelled()},"
            f"aborted={self.aborted.is_set()}"
            ")"
        )

    def record(self, cost: float) -> bool:
        """Sets the target flag if the cost reaches the target value.

        Returns:
            True if this cost reached the target value.
        """
        if math.isfinite(self.target_value) and cost <= self.target_value:
            self.target_attained.set()
            return True
        return False

    def cancelled(self) -> bool:
        return self.cancellation is not None and bool(self.cancellation.is_set())

    def should_stop(self) -> bool:
        return self.target_attained.is_set() or self.cancelled() or self.aborted.is_set()

    def stop_reason(self) -> Optional[str]:
        if self.aborted.is_set():
            return "objective evaluation failed"
        if self.cancelled():
            return "cancelled"
        if self.target_attained.is_set():
            return "target value attained"
        return None


def offer_minimum(current_minimum_cost: Optional[Any], cost: float) -> None:
    """Lowers the caller's minimum cost hint if ``cost`` improves on it.

    The hint is any object with a float ``value`` attribute, e.g.
    ``multiprocessing.Value(ctypes.c_double, math.inf, lock=False)``. The read and
    the write are not atomic together, so two workers racing may leave a value that
    is not the true minimum; the hint is informational only and must not be used
    to decide termination.
    """
    if current_minimum_cost is None or math.isnan(cost):
        return
    hint: float = current_minimum_cost.value
    if math.isnan(hint) or cost < hint:
        current_minimum_cost.value = cost


def append_query(
    queries: Optional[List[Tuple[np.ndarray, float]]],
    lock: threading.Lock,
    candidate: np.ndarray,
    cost: float,
) -> None:
    """Appends a (candidate, cost) record to the caller's query log.

    The candidate is copied so that later in-place updates of the population do
    not alter the logged record.
    """
    if queries is None:
        return
    record: Tuple[np.ndarray, float] = (candidate.copy(), cost)
    with lock:
        queries.append(record)
