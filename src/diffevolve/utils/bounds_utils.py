# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements routines for validating box bounds and sampling inside them.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Sequence

import numpy as np

from diffevolve.errors import ConfigurationError


def as_bounds_array(values: Sequence[float], name: str) -> np.ndarray:
    """Converts a sequence of bound values into a flat float64 array.

    Args:
        values: Sequence of real numbers, one per dimension.
        name: Name used in error messages (e.g. "lower_bounds").

    Returns:
        A 1D NumPy array of dtype float64.

    Raises:
        ConfigurationError: If the values cannot be interpreted as a flat
            vector of real numbers.
    """
    try:
        arr: np.ndarray = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as err:
        raise ConfigurationError(f"{name} must be a sequence of real numbers: {err}.") from err
    if arr.ndim != 1:
        raise ConfigurationError(f"{name} must be one-dimensional, but got shape {arr.shape}.")
    return arr


def validate_bounds(lower_bounds: np.ndarray, upper_bounds: np.ndarray) -> None:
    """Checks that a pair of bound vectors describes a non-degenerate box.

    Args:
        lower_bounds: Lower bound of every dimension.
        upper_bounds: Upper bound of every dimension.

    Raises:
        ConfigurationError: If the bounds are empty, of different lengths,
            non-finite, or if some lower bound is not strictly below its upper bound.
    """
    if lower_bounds.size == 0:
        raise ConfigurationError("The bounds must have at least one dimension.")
    if lower_bounds.shape != upper_bounds.shape:
        raise ConfigurationError(
            "The lower and upper bounds must have the same number of dimensions, but got"
            f" {lower_bounds.size} lower bounds and {upper_bounds.size} upper bounds."
        )
    for j, (lb, ub) in enumerate(zip(lower_bounds, upper_bounds)):
        if not (np.isfinite(lb) and np.isfinite(ub)):
            raise ConfigurationError(
                f"The bounds of dimension {j} must be finite, but got [{lb}, {ub}]."
            )
        if lb >= ub:
            raise ConfigurationError(
                f"The lower bound must be strictly below the upper bound, but dimension {j}"
                f" has lower bound {lb} and upper bound {ub}."
            )


def validate_initial_guess(
    initial_guess: np.ndarray, lower_bounds: np.ndarray, upper_bounds: np.ndarray
) -> None:
    """Checks that an initial guess has the right dimension and lies inside the box.

    Raises:
        ConfigurationError: If the guess has the wrong dimension, contains
            non-finite values, or leaves the bounds on some dimension.
    """
    if initial_guess.shape != lower_bounds.shape:
        raise ConfigurationError(
            f"The initial guess must have dimension {lower_bounds.size}, but got"
            f" dimension {initial_guess.size}."
        )
    for j, x in enumerate(initial_guess):
        if not np.isfinite(x):
            raise ConfigurationError(
                f"The initial guess must be finite, but coordinate {j} is {x}."
            )
        if x < lower_bounds[j] or x > upper_bounds[j]:
            raise ConfigurationError(
                f"The initial guess must lie within the bounds, but coordinate {j} = {x}"
                f" is outside [{lower_bounds[j]}, {upper_bounds[j]}]."
            )


def random_initial_population(
    lower_bounds: np.ndarray,
    upper_bounds: np.ndarray,
    num_members: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Samples a population uniformly at random inside the bounds.

    Every coordinate is drawn independently from the uniform distribution on
    [lower_bounds[j], upper_bounds[j]].

    Args:
        lower_bounds: Lower bound of every dimension.
        upper_bounds: Upper bound of every dimension.
        num_members: Number of candidates to sample.
        rng: Generator the samples are drawn from.

    Returns:
        A 2D NumPy array of shape (num_members, dimension).
    """
    samples: np.ndarray = rng.random((num_members, lower_bounds.size))
    population: np.ndarray = lower_bounds + (upper_bounds - lower_bounds) * samples
    # rounding in the affine map can land a hair above the upper bound
    return np.clip(population, lower_bounds, upper_bounds)
