# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements standard benchmark objectives, all with a global minimum of 0.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Callable, Dict

import numpy as np


def sphere(x: np.ndarray) -> float:
    """Sum of squares, minimized at the origin."""
    return float(np.dot(x, x))


def rosenbrock(x: np.ndarray) -> float:
    """Rosenbrock's banana function, minimized at (1, ..., 1)."""
    return float(np.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1.0 - x[:-1]) ** 2))


def rastrigin(x: np.ndarray) -> float:
    """Highly multimodal function, minimized at the origin."""
    return float(10.0 * x.size + np.sum(x**2 - 10.0 * np.cos(2 * np.pi * x)))


def ackley(x: np.ndarray) -> float:
    """Ackley's function, minimized at the origin."""
    d: int = x.size
    sq_term: float = -20.0 * np.exp(-0.2 * np.sqrt(np.sum(x**2) / d))
    cos_term: float = -np.exp(np.sum(np.cos(2 * np.pi * x)) / d)
    # clamp the rounding residue at the optimum
    return max(0.0, float(sq_term + cos_term + 20.0 + np.e))


OBJECTIVES: Dict[str, Callable[[np.ndarray], float]] = {
    "sphere": sphere,
    "rosenbrock": rosenbrock,
    "rastrigin": rastrigin,
    "ackley": ackley,
}


def get_objective(name: str) -> Callable[[np.ndarray], float]:
    """Looks up a benchmark objective by name.

    Raises:
        ValueError: If no objective with this name exists.
    """
    try:
        return OBJECTIVES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported objective: {name}. Available objectives: {sorted(OBJECTIVES)}."
        ) from None
