# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the command-line interface of DiffEvolve.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Any, Dict, List, Optional, Tuple

import argparse
import ctypes
import logging
import math
import multiprocessing as mp
import multiprocessing.sharedctypes as mpsct
import os
import shutil
import sys
import threading
from pathlib import Path

import numpy as np
import yaml

from diffevolve.config import DEParameters, load_config
from diffevolve.errors import ConfigurationError
from diffevolve.evolution import differential_evolution
from diffevolve.objectives import get_objective
from diffevolve.utils.logging_utils import get_logger
from diffevolve.utils.results_utils import save_results


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses command-line arguments for a DiffEvolve run.

    Returns:
        Parsed command-line arguments containing the config path, objective,
        output directory, seed, timeout and query logging preference.
    """
    parser = argparse.ArgumentParser(
        description="Minimize a benchmark objective with differential evolution."
    )
    parser.add_argument("--cfg_path", type=str, help="path to .yaml config file.", required=True)
    parser.add_argument(
        "--objective",
        type=str,
        default=None,
        help="benchmark objective to minimize, overrides OBJECTIVE from the config.",
    )
    parser.add_argument(
        "--out_dir",
        type=str,
        default=None,
        help="path to directory that will contain the outputs of the run.",
    )
    parser.add_argument(
        "--seed", type=int, default=None, help="random seed, overrides SEED from the config."
    )
    parser.add_argument(
        "--timeout_s",
        type=float,
        default=None,
        help="cancel the run after this many seconds, overrides TIMEOUT_S from the config.",
    )
    parser.add_argument(
        "--save_queries",
        action="store_true",
        help="if true, records every evaluation and saves the log in out_dir.",
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point of the DiffEvolve command-line interface.

    This function:
    1. Loads the YAML configuration and resolves the objective
    2. Sets up logging and the output directory
    3. Arms a timer flipping the cancellation flag, if a timeout is requested
    4. Runs differential evolution and reports the best candidate
    5. Saves the results, if an output directory is given

    Args:
        argv: Command-line arguments, defaults to ``sys.argv[1:]``.

    Returns:
        0 on success, 1 if the configuration is invalid.
    """
    args: Dict[str, Any] = vars(parse_args(argv))
    cfg_path: Path = Path(args["cfg_path"])

    if not os.path.exists(cfg_path):
        print(f"Path {cfg_path} not found.")
        return 1

    try:
        config: Dict[str, Any] = load_config(cfg_path)
        objective_name: str = args["objective"] or config.get("OBJECTIVE", "sphere")
        objective = get_objective(objective_name)
        target_value: float = float(config.get("TARGET_VALUE", math.nan))
    except (ConfigurationError, ValueError, TypeError, yaml.YAMLError) as err:
        print(str(err))
        return 1

    params: DEParameters = config["DE_CONFIG"]
    seed: Optional[int] = args["seed"] if args["seed"] is not None else config.get("SEED", None)
    timeout_s: Optional[float] = (
        args["timeout_s"] if args["timeout_s"] is not None else config.get("TIMEOUT_S", None)
    )

    out_dir: Optional[Path] = Path(args["out_dir"]) if args["out_dir"] else None
    if out_dir is not None:
        os.makedirs(out_dir, exist_ok=True)
        cfg_copy_path: Path = out_dir.joinpath(cfg_path.name)
        if cfg_copy_path.resolve() != cfg_path.resolve():
            shutil.copyfile(cfg_path, cfg_copy_path)

    logger: logging.Logger = get_logger(run_name=objective_name, results_dir=out_dir)

    # shared state handed to the optimizer
    cancellation: threading.Event = threading.Event()
    current_minimum_cost: mpsct.Synchronized = mp.Value(ctypes.c_double, math.inf, lock=False)
    queries: Optional[List[Tuple[np.ndarray, float]]] = [] if args["save_queries"] else None

    timer: Optional[threading.Timer] = None
    if timeout_s is not None:
        logger.info(f"Run will be cancelled after {timeout_s} seconds.")
        timer = threading.Timer(timeout_s, cancellation.set)
        timer.daemon = True
        timer.start()

    try:
        best: np.ndarray = differential_evolution(
            objective,
            params,
            rng=np.random.default_rng(seed),
            target_value=target_value,
            cancellation=cancellation,
            queries=queries,
            current_minimum_cost=current_minimum_cost,
            logger=logger,
        )
    except ConfigurationError as err:
        print(str(err))
        return 1
    finally:
        if timer is not None:
            timer.cancel()

    best_cost: float = objective(best)
    logger.info(f"Best solution: {best.tolist()} with cost {best_cost:.8g}.")
    print(f"> BEST SOLUTION = {best.tolist()}")
    print(f"> BEST COST = {best_cost:.8g}")

    if out_dir is not None:
        save_results(
            best=best,
            best_cost=best_cost,
            out_dir=out_dir,
            queries=queries,
            metadata={
                "objective": objective_name,
                "seed": seed,
                "cancelled": cancellation.is_set(),
                "current_minimum_cost": current_minimum_cost.value,
            },
            logger=logger,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
