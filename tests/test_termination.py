# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the shared termination state."""

import ctypes
import math
import multiprocessing as mp
import threading

import numpy as np

from diffevolve.termination import TerminationController, append_query, offer_minimum


def test_target_flag_set_only_for_finite_target():
    controller = TerminationController(target_value=1.0)
    assert controller.record(2.0) is False
    assert not controller.should_stop()
    assert controller.record(1.0) is True
    assert controller.should_stop()
    assert controller.stop_reason() == "target value attained"

    for disabled in (math.nan, None, math.inf):
        controller = TerminationController(target_value=disabled)
        assert controller.record(-1e300) is False
        assert not controller.should_stop()


def test_cancellation_is_borrowed_and_polled():
    cancellation = threading.Event()
    controller = TerminationController(cancellation=cancellation)
    assert not controller.cancelled()
    cancellation.set()
    assert controller.cancelled()
    assert controller.should_stop()
    assert controller.stop_reason() == "cancelled"

    assert not TerminationController(cancellation=None).cancelled()


def test_abort_takes_precedence_in_stop_reason():
    cancellation = threading.Event()
    cancellation.set()
    controller = TerminationController(cancellation=cancellation)
    controller.aborted.set()
    assert controller.stop_reason() == "objective evaluation failed"


def test_offer_minimum_only_lowers_the_hint():
    hint = mp.Value(ctypes.c_double, math.inf, lock=False)
    offer_minimum(hint, 3.0)
    assert hint.value == 3.0
    offer_minimum(hint, 5.0)
    assert hint.value == 3.0
    offer_minimum(hint, math.nan)
    assert hint.value == 3.0
    offer_minimum(hint, -1.0)
    assert hint.value == -1.0

    # a NaN hint is treated as "nothing seen yet"
    hint.value = math.nan
    offer_minimum(hint, 7.0)
    assert hint.value == 7.0

    offer_minimum(None, 1.0)


def test_append_query_copies_candidate():
    queries = []
    lock = threading.Lock()
    candidate = np.array([1.0, 2.0])

    append_query(queries, lock, candidate, 5.0)
    candidate[0] = 100.0

    assert len(queries) == 1
    np.testing.assert_array_equal(queries[0][0], [1.0, 2.0])
    assert queries[0][1] == 5.0

    append_query(None, lock, candidate, 1.0)
