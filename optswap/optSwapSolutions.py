#!/usr/bin/env python3
#
# Copyright 2022 Max Planck Insitute Magdeburg
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
#
#
"""Container for OptSwap solutions (OptSwapSolution)"""

from numpy import nan
from typing import Dict, List
from optswap.names import *
import pickle


class OptSwapSolution(object):
    """Container for the result of an OptSwap, OptKnock, RobustKnock or OptSwapYield computation

    Objects of this class are returned by the OptSwap computations. They contain the decoded
    interventions (knockouts and swaps), the raw binary values, the solver status together with
    the information about the setup, the split model and the assembled MILP, which can be used
    to audit the computation.

    Instances of this class are not meant to be created by OptSwap users.

    Args:
        status (str):
            Status string of the computation (e.g.: 'optimal', 'infeasible', 'time_limit_w_sols')

        objective_value (float):
            Optimal (or best found) value of the outer objective. For OptKnock and OptSwapYield
            this is the production of the target chemical, for RobustKnock and OptSwap the
            guaranteed (minimal) production at maximal growth.

        setup (OptSwapSetup):
            The setup of the computation.

        split (OneWayFluxModel):
            The split model with the index sets of knockout and swap candidates.

        milp_problem (MILPProblem):
            The assembled MILP.

        y, q, s (list of int):
            Values of the binaries (1: active, 0: knocked out / inactive). Empty without solution.

        fluxes (dict):
            Net fluxes of the original reactions (OptKnock and OptSwapYield only).

        solver (str), runtime (float):
            Solver backend and wall clock time of the solver call in seconds.

    Returns
        (OptSwapSolution):
        OptSwap solution
    """

    def __init__(self, status, objective_value, setup, split, milp_problem, y=(), q=(), s=(), fluxes=None, solver=None,
                 runtime=0.0):
        self.status = status
        self.objective_value = objective_value
        self.chemical = objective_value
        self.setup = setup
        self.knock_type = setup[KNOCK_TYPE]
        self.K = setup[KNOCKOUT_NUM]
        self.L = setup[SWAP_NUM]
        self.X = setup[INTERVENTION_NUM]
        self.split = split
        self.milp_problem = milp_problem
        self.y_ind = list(split.y_ind)
        self.q_ind = list(split.q_ind)
        self.s_ind = list(split.s_ind)
        self.coupled = split.coupled
        self.qs_coupling = split.qs_coupling
        self.organism_objective_ind = split.model.organism_objective_ind
        self.chemical_ind = split.model.chemical_ind
        self.solver = solver
        self.runtime = runtime
        self.y = list(y)
        self.q = list(q)
        self.s = list(s)
        self.fluxes = fluxes
        reac_ids = split.model.reac_ids
        if self.has_solution():
            self.knockout_dhs = [reac_ids[i] for i, q_k, s_k in zip(self.q_ind, self.q, self.s) if q_k == 0 and s_k == 0]
            self.knockouts = [reac_ids[i] for i, y_k in zip(self.y_ind, self.y) if y_k == 0] + self.knockout_dhs
            self.swaps = [reac_ids[i] for i, s_k in zip(self.q_ind, self.s) if s_k == 1]
        else:
            self.knockout_dhs = []
            self.knockouts = []
            self.swaps = []

    def has_solution(self) -> bool:
        """True if the solver returned an (optimal or time-limited) solution"""
        return self.status in [OPTIMAL, TIME_LIMIT_W_SOL]

    def get_interventions(self) -> Dict[str, str]:
        """Get the interventions as a dict of reaction identifiers and 'knockout' or 'swap'"""
        itv = {r: KNOCKOUT for r in self.knockouts}
        itv.update({r: SWAP for r in self.swaps})
        return itv

    def get_inactive_reactions(self) -> List[str]:
        """Get all reactions that are blocked by the design

        These are the knocked out reactions and, for every swappable reaction, the variant
        (native or swapped) that is not active.
        """
        if not self.has_solution():
            return []
        reac_ids = self.split.model.reac_ids
        inactive = []
        for ind, val in [(self.y_ind, self.y), (self.q_ind, self.q), (self.s_ind, self.s)]:
            inactive += [reac_ids[i] for i, v in zip(ind, val) if v == 0]
        return inactive

    def to_dict(self) -> Dict:
        """Summary of the solution as a dict"""
        return {
            'knock_type': self.knock_type,
            'target': self.setup[TARGET_RXN],
            'status': self.status,
            'chemical': self.chemical if self.has_solution() else nan,
            'knockouts': list(self.knockouts),
            'swaps': list(self.swaps),
            'K': self.K,
            'L': self.L,
            'X': self.X,
            'solver': self.solver,
            'runtime': self.runtime,
        }

    def save(self, filename):
        """Save an OptSwap solution to a file."""
        with open(filename, 'wb') as f:
            pickle.dump(self, f)

    @classmethod
    def load(cls, filename):
        """Load an OptSwap solution from a file."""
        with open(filename, 'rb') as f:
            cls = pickle.load(f)
        return cls

    def __repr__(self):
        return 'OptSwapSolution(' + self.knock_type + ', ' + self.status + ', chemical=' + str(self.chemical) + \
            ', knockouts=' + str(self.knockouts) + ', swaps=' + str(self.swaps) + ')'
