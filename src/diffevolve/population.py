# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the population container of the optimizer.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Optional

import math
from dataclasses import dataclass

import numpy as np


@dataclass
class Population:
    """Candidates of the current generation together with their costs.

    Row ``i`` of ``members`` and entry ``i`` of ``costs`` always describe the same
    slot. A slot keeps its index for the whole run, so a trial only ever competes
    with the lineage of the slot it was generated for.

    Attributes:
        members: Array of shape (NP, D) holding one candidate per row.
        costs: Array of shape (NP,) holding the objective value of each row, or
            NaN if the row has not been successfully evaluated yet.
    """

    members: np.ndarray
    costs: np.ndarray

    @classmethod
    def unevaluated(cls, members: np.ndarray) -> "Population":
        """Wraps a freshly sampled array of candidates, with every cost unknown."""
        return cls(members=members, costs=np.full(members.shape[0], np.nan))

    def __len__(self) -> int:
        return self.members.shape[0]

    def __repr__(self) -> str:
        best_idx: int = self.best_index()
        return (
            f"{self.__class__.__name__}"
            "("
            f"size={len(self)},"
            f"dimension={self.dimension},"
            f"evaluated={self.num_evaluated},"
            f"best_cost={self.costs[best_idx]:.8g}"
            ")"
        )

    @property
    def dimension(self) -> int:
        return self.members.shape[1]

    @property
    def num_evaluated(self) -> int:
        return int(np.count_nonzero(~np.isnan(self.costs)))

    def best_index(self) -> int:
        """Returns the slot with the lowest cost.

        The scan is exhaustive and linear; ties go to the lowest index and slots
        still holding the NaN sentinel never win against an evaluated slot. If
        no slot was ever evaluated, slot 0 is returned.
        """
        best_idx: int = 0
        best_cost: Optional[float] = None
        for i, cost in enumerate(self.costs):
            if np.isnan(cost):
                continue
            if best_cost is None or cost < best_cost:
                best_idx, best_cost = i, cost
        return best_idx

    def challenge(self, i: int, trial: np.ndarray, trial_cost: float) -> bool:
        """Lets a trial compete for slot ``i``, replacing the parent if it wins.

        The trial wins iff its cost is finite and either beats the parent's cost
        or the parent has not been evaluated yet. A non-finite trial cost is a
        rejected trial, so the cost of a slot never increases.

        Returns:
            True if the trial replaced the parent.
        """
        if not math.isfinite(trial_cost):
            return False
        parent_cost: float = self.costs[i]
        if math.isnan(parent_cost) or trial_cost < parent_cost:
            self.members[i] = trial
            self.costs[i] = trial_cost
            return True
        return False

    def best(self) -> np.ndarray:
        """Returns a copy of the best candidate."""
        return self.members[self.best_index()].copy()

    def best_cost(self) -> float:
        return float(self.costs[self.best_index()])
