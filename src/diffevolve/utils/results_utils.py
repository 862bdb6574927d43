# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements routines for persisting the outcome of a run.
#
# ===--------------------------------------------------------------------------------------===#

import json
import logging
import pathlib
import pickle as pkl
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

BEST_SOL_FILE: str = "best_sol.json"
QUERIES_FILE: str = "queries.pkl"


def save_results(
    best: np.ndarray,
    best_cost: float,
    out_dir: str | pathlib.Path,
    queries: Optional[List[Tuple[np.ndarray, float]]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Saves the best candidate of a run and, optionally, its query log.

    The best candidate is written as JSON to ``best_sol.json`` together with its
    cost and any extra metadata. The query log, if given, is pickled to
    ``queries.pkl`` for later analysis.

    Args:
        best: Best candidate found.
        best_cost: Objective value of the best candidate.
        out_dir: Directory where the files will be saved.
        queries: Optional list of (candidate, cost) records gathered during the run.
        metadata: Optional JSON-serializable dictionary stored alongside the result.
        logger: Logger instance for logging save operations.
    """
    logger = logger if logger is not None else logging.getLogger(__name__)
    if isinstance(out_dir, str):
        out_dir = pathlib.Path(out_dir)

    data: Dict[str, Any] = {
        "best_sol": [float(x) for x in best],
        "best_cost": float(best_cost),
        "metadata": metadata or {},
    }
    best_sol_path: pathlib.Path = out_dir.joinpath(BEST_SOL_FILE)
    with open(best_sol_path, "w") as f:
        json.dump(data, f, indent=2)
    logger.info(f"Saved best solution at '{best_sol_path}'.")

    if queries is not None:
        queries_path: pathlib.Path = out_dir.joinpath(QUERIES_FILE)
        with open(queries_path, "wb") as f:
            pkl.dump(queries, f, protocol=pkl.HIGHEST_PROTOCOL)
        logger.info(f"Saved {len(queries)} queries at '{queries_path}'.")


def load_results(
    out_dir: str | pathlib.Path,
) -> Tuple[np.ndarray, float, Dict[str, Any], Optional[List[Tuple[np.ndarray, float]]]]:
    """Loads the results saved by ``save_results``.

    Args:
        out_dir: Directory containing the result files.

    Returns:
        A tuple containing:
            - The best candidate as a NumPy array
            - Its cost
            - The stored metadata dictionary
            - The query log, None if it was not saved
    """
    if isinstance(out_dir, str):
        out_dir = pathlib.Path(out_dir)

    with open(out_dir.joinpath(BEST_SOL_FILE), "r") as f:
        data: Dict[str, Any] = json.load(f)

    queries: Optional[List[Tuple[np.ndarray, float]]] = None
    queries_path: pathlib.Path = out_dir.joinpath(QUERIES_FILE)
    if queries_path.exists():
        with open(queries_path, "rb") as f:
            queries = pkl.load(f)

    return (
        np.asarray(data["best_sol"], dtype=np.float64),
        data["best_cost"],
        data.get("metadata", {}),
        queries,
    )
