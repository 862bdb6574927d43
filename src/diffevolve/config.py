# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the parameter set of the optimizer and its validation.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Any, Dict, Optional, Sequence

import math
import numbers
import pathlib
from dataclasses import dataclass, field

import numpy as np
import psutil
import yaml

from diffevolve.errors import ConfigurationError
from diffevolve.utils.bounds_utils import (
    as_bounds_array,
    validate_bounds,
    validate_initial_guess,
)


def _default_threads() -> int:
    return psutil.cpu_count(logical=True) or 1


@dataclass
class DEParameters:
    """Parameters of a differential evolution run.

    Attributes:
        lower_bounds: Lower bound of every dimension.
        upper_bounds: Upper bound of every dimension.
        mutation_factor: Scale factor F applied to the difference vector, in (0, 1).
        crossover_probability: Probability CR that a coordinate is taken from the mutant.
        NP: Population size, at least 4 so that three distinct donors always exist.
        max_generations: Maximum number of generations to run.
        initial_guess: Optional candidate placed in slot 0 of the initial population.
        threads: Number of workers evaluating the objective concurrently.
    """

    lower_bounds: Sequence[float]
    upper_bounds: Sequence[float]
    mutation_factor: float = 0.65
    crossover_probability: float = 0.5
    NP: int = 500
    max_generations: int = 1000
    initial_guess: Optional[Sequence[float]] = None
    threads: int = field(default_factory=_default_threads)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}"
            "("
            f"dimension={len(self.lower_bounds)},"
            f"F={self.mutation_factor},"
            f"CR={self.crossover_probability},"
            f"NP={self.NP},"
            f"max_generations={self.max_generations},"
            f"threads={self.threads},"
            f"initial_guess={self.initial_guess is not None}"
            ")"
        )

    @property
    def dimension(self) -> int:
        return len(self.lower_bounds)


def _is_count(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def validate_parameters(params: DEParameters) -> None:
    """Validates a parameter set, raising on the first violation found.

    The scale factor is required to lie in the open interval (0, 1). Values of F
    at or above 1 halve the number of distinct mutants and lead to erratic
    convergence, see Price, Storn & Lampinen, "Differential Evolution: A Practical
    Approach to Global Optimization", section 2.5.1.

    Args:
        params: Parameter set to validate.

    Raises:
        ConfigurationError: If the bounds, population size, scale factor,
            crossover probability, generation budget, thread count or initial
            guess are invalid.
    """
    lower_bounds: np.ndarray = as_bounds_array(params.lower_bounds, "lower_bounds")
    upper_bounds: np.ndarray = as_bounds_array(params.upper_bounds, "upper_bounds")
    validate_bounds(lower_bounds, upper_bounds)

    if not _is_count(params.NP) or params.NP < 4:
        raise ConfigurationError(
            "The population size must be an integer of at least 4, but requested population"
            f" size of {params.NP}."
        )

    F = params.mutation_factor
    if not math.isfinite(F) or F <= 0 or F >= 1:
        raise ConfigurationError(f"F in (0, 1) is required, but got F={F}.")

    CR = params.crossover_probability
    if math.isnan(CR) or CR < 0 or CR > 1:
        raise ConfigurationError(f"CR in [0, 1] is required, but got CR={CR}.")

    if not _is_count(params.max_generations) or params.max_generations < 1:
        raise ConfigurationError(
            "The number of generations must be an integer of at least 1, but got"
            f" {params.max_generations}."
        )

    if params.initial_guess is not None:
        validate_initial_guess(
            as_bounds_array(params.initial_guess, "initial_guess"), lower_bounds, upper_bounds
        )

    if not _is_count(params.threads) or params.threads < 1:
        raise ConfigurationError(
            f"The number of threads must be an integer of at least 1, but got {params.threads}."
        )


def parameters_from_dict(de_config: Dict[str, Any]) -> DEParameters:
    """Builds a parameter set from a configuration mapping.

    Keys missing from the mapping take the dataclass defaults.

    Args:
        de_config: Mapping of DEParameters field names to values.

    Returns:
        The corresponding DEParameters instance (not yet validated).

    Raises:
        ConfigurationError: If required fields are missing or unknown fields are given.
    """
    unknown = set(de_config) - set(DEParameters.__dataclass_fields__)
    if unknown:
        raise ConfigurationError(f"Unknown DE_CONFIG fields: {sorted(unknown)}.")
    for required in ("lower_bounds", "upper_bounds"):
        if required not in de_config:
            raise ConfigurationError(f"DE_CONFIG must define '{required}'.")
    return DEParameters(**de_config)


def load_config(cfg_path: str | pathlib.Path) -> Dict[str, Any]:
    """Loads a YAML configuration file.

    The file holds a ``DE_CONFIG`` block with the parameter set, plus optional
    top-level run settings (``SEED``, ``OBJECTIVE``, ``TARGET_VALUE``, ``TIMEOUT_S``).
    The ``DE_CONFIG`` block is replaced by the corresponding DEParameters.

    Args:
        cfg_path: Path to the YAML file.

    Returns:
        The configuration dictionary with ``DE_CONFIG`` parsed into DEParameters.

    Raises:
        ConfigurationError: If the file has no ``DE_CONFIG`` block or the block is invalid.
    """
    with open(cfg_path, "r") as f:
        config: Dict[str, Any] = yaml.safe_load(f) or {}

    de_config: Optional[Dict[str, Any]] = config.get("DE_CONFIG", None)
    if not isinstance(de_config, dict):
        raise ConfigurationError(f"Config file '{cfg_path}' must define a DE_CONFIG block.")

    config["DE_CONFIG"] = parameters_from_dict(de_config)
    return config
