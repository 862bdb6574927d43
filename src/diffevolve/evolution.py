# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the main generational loop of differential evolution.
#
# Storn, R., Price, K. (1997). Differential evolution - a simple and efficient heuristic
# for global optimization over continuous spaces. Journal of Global Optimization, 11,
# 341-359.
#
# ===--------------------------------------------------------------------------------------===#

import logging
import math
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from diffevolve.config import DEParameters, validate_parameters
from diffevolve.evaluator import ParallelEvaluator
from diffevolve.population import Population
from diffevolve.termination import TerminationController
from diffevolve.utils.bounds_utils import as_bounds_array, random_initial_population


def sample_donors(i: int, num_members: int, rng: np.random.Generator) -> Tuple[int, int, int]:
    """Draws the three donor slots of the DE/rand/1 mutation for slot ``i``.

    The indices are drawn uniformly and redrawn until r1, r2 and r3 are mutually
    distinct and distinct from ``i``. This terminates with probability one only
    when there are at least four slots.

    Args:
        i: Slot the mutant is generated for.
        num_members: Population size, at least 4.
        rng: Generator the indices are drawn from.

    Returns:
        The tuple (r1, r2, r3).
    """
    r1: int = i
    while r1 == i:
        r1 = int(rng.integers(num_members))
    r2: int = i
    while r2 == i or r2 == r1:
        r2 = int(rng.integers(num_members))
    r3: int = i
    while r3 == i or r3 == r1 or r3 == r2:
        r3 = int(rng.integers(num_members))
    return r1, r2, r3


def generate_trials(
    members: np.ndarray,
    lower_bounds: np.ndarray,
    upper_bounds: np.ndarray,
    mutation_factor: float,
    crossover_probability: float,
    rng: np.random.Generator,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Builds one trial vector per slot by mutation and binomial crossover.

    For every slot, in index order, the generator is consumed as follows: the
    three donors, then the guaranteed-changed dimension, then one uniform number
    per dimension. This runs on the calling thread only, so the trials of a
    generation depend on the seed and never on how the evaluations were scheduled.

    Coordinates taken from the mutant are clamped into the bounds instead of being
    resampled, which cannot stall however far outside the box the mutant lands.

    Args:
        members: Current population, of shape (NP, D).
        lower_bounds: Lower bound of every dimension.
        upper_bounds: Upper bound of every dimension.
        mutation_factor: Scale factor F of the difference vector.
        crossover_probability: Probability CR of taking a coordinate from the mutant.
        rng: Generator consumed by the mutation and crossover draws.
        out: Optional array of shape (NP, D) reused to store the trials.

    Returns:
        The array of trial vectors, ``out`` if given.
    """
    num_members, dimension = members.shape
    trials: np.ndarray = out if out is not None else np.empty_like(members)

    for i in range(num_members):
        r1, r2, r3 = sample_donors(i, num_members, rng)
        guaranteed_changed_idx: int = int(rng.integers(dimension))
        crossover_mask: np.ndarray = rng.random(dimension) < crossover_probability
        # at least one coordinate differs from the parent, see eq. (4) of the reference
        crossover_mask[guaranteed_changed_idx] = True

        mutant: np.ndarray = members[r1] + mutation_factor * (members[r2] - members[r3])
        np.clip(mutant, lower_bounds, upper_bounds, out=mutant)
        trials[i] = np.where(crossover_mask, mutant, members[i])

    return trials


def differential_evolution(
    cost_function: Callable[[np.ndarray], float],
    params: DEParameters,
    rng: Optional[np.random.Generator | int] = None,
    target_value: Optional[float] = math.nan,
    cancellation: Optional[Any] = None,
    queries: Optional[List[Tuple[np.ndarray, float]]] = None,
    current_minimum_cost: Optional[Any] = None,
    logger: Optional[logging.Logger] = None,
) -> np.ndarray:
    """Minimizes a black-box objective over a box with differential evolution.

    The parameters are validated before anything else happens. The initial
    population is sampled uniformly inside the bounds (slot 0 is replaced by the
    initial guess, if any) and evaluated in parallel. Each generation then builds
    one trial per slot on the calling thread and evaluates the trials in parallel,
    each trial replacing its parent iff it has a finite and lower cost.

    The loop ends when the generation budget is exhausted, when the cancellation
    flag is set, or when an evaluation reaches ``target_value``. Stop requests are
    honored between evaluations, never by interrupting one.

    With the same seed, the same thread count and a deterministic objective, the
    sequence of trial vectors, and hence the result, is reproducible.

    Args:
        cost_function: Objective to minimize, mapping a candidate of shape (D,) to
            a real number. It is called concurrently from ``params.threads``
            threads and must be thread-safe. A non-finite result rejects the
            candidate. An exception raised by it aborts the run and is re-raised.
        params: Parameter set of the run.
        rng: Generator consumed for the initial population, mutation and
            crossover, or a seed to build one.
        target_value: If finite, stop as soon as some evaluation has a cost at or
            below it.
        cancellation: Optional caller-owned flag with an ``is_set()`` method,
            typically a ``threading.Event``, polled to stop the run early.
        queries: Optional caller-owned list receiving a (candidate, cost) record
            for every evaluation performed.
        current_minimum_cost: Optional caller-owned object with a float ``value``
            attribute, lowered whenever a better cost is observed. The update is
            best-effort, so the value is informational only.
        logger: Logger instance for logging the progress of the run.

    Returns:
        A copy of the best candidate found, i.e. the slot of the final population
        with the lowest cost (ties going to the lowest slot).

    Raises:
        ConfigurationError: If the parameter set is invalid. Raised before the
            objective is ever called.
    """
    logger = logger if logger is not None else logging.getLogger(__name__)
    validate_parameters(params)

    rng = np.random.default_rng(rng)
    lower_bounds: np.ndarray = as_bounds_array(params.lower_bounds, "lower_bounds")
    upper_bounds: np.ndarray = as_bounds_array(params.upper_bounds, "upper_bounds")

    population: Population = Population.unevaluated(
        random_initial_population(lower_bounds, upper_bounds, params.NP, rng)
    )
    if params.initial_guess is not None:
        population.members[0] = as_bounds_array(params.initial_guess, "initial_guess")

    controller: TerminationController = TerminationController(
        target_value=target_value, cancellation=cancellation
    )

    logger.info("=== DiffEvolve ===")
    logger.info(f"params={params}")
    logger.info(f"controller={controller}")

    with ParallelEvaluator(
        cost_function=cost_function,
        threads=params.threads,
        controller=controller,
        queries=queries,
        current_minimum_cost=current_minimum_cost,
        logger=logger,
    ) as evaluator:
        evaluator.evaluate_population(population)
        logger.info(f"Initial population: {population}")

        trials: np.ndarray = np.empty_like(population.members)
        generation: int = 0
        while generation < params.max_generations and not controller.should_stop():
            generation += 1
            generate_trials(
                population.members,
                lower_bounds,
                upper_bounds,
                params.mutation_factor,
                params.crossover_probability,
                rng,
                out=trials,
            )
            num_accepted: int = evaluator.evaluate_trials(population, trials)
            logger.info(
                "Generation %d: best cost %.8g, %d/%d trials accepted.",
                generation,
                population.best_cost(),
                num_accepted,
                len(population),
            )

    logger.info("====== ALGORITHM FINISHED ======")
    logger.info(
        "Stopped after %d generations (%s) and %d evaluations.",
        generation,
        controller.stop_reason() or "generation budget exhausted",
        evaluator.num_evaluations,
    )
    logger.info(f"Final population: {population}")

    return population.best()
