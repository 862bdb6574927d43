# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for parameter validation and config loading."""

import math

import numpy as np
import pytest

from diffevolve.config import (
    DEParameters,
    load_config,
    parameters_from_dict,
    validate_parameters,
)
from diffevolve.errors import ConfigurationError
from diffevolve.evolution import differential_evolution


def _mk_params(**overrides) -> DEParameters:
    kwargs = dict(
        lower_bounds=[-5.0, -5.0],
        upper_bounds=[5.0, 5.0],
        NP=10,
        max_generations=5,
        threads=2,
    )
    kwargs.update(overrides)
    return DEParameters(**kwargs)


class CountingObjective:
    """Sphere objective that counts how often it is called."""

    def __init__(self):
        self.calls = 0

    def __call__(self, x: np.ndarray) -> float:
        self.calls += 1
        return float(np.dot(x, x))


def test_valid_parameters_pass():
    validate_parameters(_mk_params())
    validate_parameters(_mk_params(crossover_probability=0.0))
    validate_parameters(_mk_params(crossover_probability=1.0))
    validate_parameters(_mk_params(initial_guess=[5.0, -5.0]))
    validate_parameters(_mk_params(NP=np.int64(10), threads=np.int32(2)))


def test_default_threads_is_positive():
    params = DEParameters(lower_bounds=[0.0], upper_bounds=[1.0])
    assert params.threads >= 1
    assert params.dimension == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"NP": 3},
        {"mutation_factor": 0.0},
        {"mutation_factor": 1.0},
        {"mutation_factor": math.nan},
        {"mutation_factor": math.inf},
        {"max_generations": 0},
        {"threads": 0},
        {"NP": 40.0},
        {"NP": 10.5},
        {"max_generations": 5.0},
        {"threads": 2.0},
        {"threads": True},
    ],
)
def test_rejected_config_never_calls_objective(overrides):
    objective = CountingObjective()
    with pytest.raises(ConfigurationError):
        differential_evolution(objective, _mk_params(**overrides), rng=np.random.default_rng(0))
    assert objective.calls == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"lower_bounds": [1.0, -5.0], "upper_bounds": [0.5, 5.0]},
        {"lower_bounds": [5.0, -5.0]},
        {"lower_bounds": [-5.0]},
        {"lower_bounds": [], "upper_bounds": []},
        {"upper_bounds": [math.inf, 5.0]},
        {"lower_bounds": [math.nan, -5.0]},
        {"crossover_probability": 1.5},
        {"crossover_probability": math.nan},
        {"initial_guess": [0.0]},
        {"initial_guess": [0.0, 6.0]},
        {"initial_guess": [math.nan, 0.0]},
    ],
)
def test_malformed_parameters_are_rejected(overrides):
    with pytest.raises(ConfigurationError):
        validate_parameters(_mk_params(**overrides))


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError, match="population size must be an integer of at least 4"):
        validate_parameters(_mk_params(NP=2))


def test_parameters_from_dict_uses_defaults():
    params = parameters_from_dict({"lower_bounds": [0.0, 0.0], "upper_bounds": [1.0, 2.0]})
    assert params.mutation_factor == 0.65
    assert params.crossover_probability == 0.5
    assert params.NP == 500
    assert params.max_generations == 1000
    assert params.initial_guess is None


def test_parameters_from_dict_rejects_unknown_and_missing_fields():
    with pytest.raises(ConfigurationError, match="Unknown DE_CONFIG fields"):
        parameters_from_dict({"lower_bounds": [0.0], "upper_bounds": [1.0], "pop_size": 10})
    with pytest.raises(ConfigurationError, match="upper_bounds"):
        parameters_from_dict({"lower_bounds": [0.0]})


def test_load_config_parses_de_block(tmp_path):
    cfg_path = tmp_path / "cfg.yaml"
    cfg_path.write_text(
        "SEED: 3\n"
        "OBJECTIVE: rastrigin\n"
        "DE_CONFIG:\n"
        "  lower_bounds: [-1.0, -2.0]\n"
        "  upper_bounds: [1.0, 2.0]\n"
        "  NP: 12\n"
        "  threads: 3\n"
    )

    config = load_config(cfg_path)

    assert config["SEED"] == 3
    assert config["OBJECTIVE"] == "rastrigin"
    params = config["DE_CONFIG"]
    assert isinstance(params, DEParameters)
    assert params.NP == 12
    assert params.threads == 3
    assert list(params.upper_bounds) == [1.0, 2.0]
    validate_parameters(params)


def test_load_config_requires_de_block(tmp_path):
    cfg_path = tmp_path / "cfg.yaml"
    cfg_path.write_text("SEED: 3\n")
    with pytest.raises(ConfigurationError, match="DE_CONFIG"):
        load_config(cfg_path)
