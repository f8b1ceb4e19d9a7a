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
"""Class: MILP driver for OptSwap problems (OptSwapMILP)"""

import time
from numpy import nan
from optswap.names import *
from optswap.solver_interface import MILP_LP
from optswap.optSwapProblem import MILPProblem, BINARY_BLOCKS
from optswap.optSwapSolutions import OptSwapSolution
from optswap.lptools import select_solver
import logging


class OptSwapMILP(MILP_LP):
    """Class that solves an assembled OptSwap MILP and decodes its solution

    This class is a wrapper and inherited from the class MILP_LP. The MILP problem is
    checked against its block manifests before it is passed to the solver, so that an
    inconsistent problem is never dispatched. The maximization problem C'x is translated
    to the minimization of -C'x.

    Example:
        optswap_milp = OptSwapMILP(milp_problem, split, setup)
        solution = optswap_milp.compute_optimal()

    Args:
        problem (MILPProblem):
            The assembled MILP (see OptSwapProblem).

        split (OneWayFluxModel):
            The split model, used to translate binaries to reaction identifiers.

        setup (OptSwapSetup):
            The setup of the computation (solver and solver parameters).

    Returns:
        (OptSwapMILP):
        An instance of OptSwapMILP ready for solving
    """

    def __init__(self, problem: MILPProblem, split, setup):
        problem.validate()
        self.problem = problem
        self.split = split
        self.setup = setup
        solver = select_solver(setup[SOLVER])
        super().__init__(c=[-v for v in problem.C],
                         A_ineq=problem.A,
                         b_ineq=problem.B,
                         lb=problem.lb,
                         ub=problem.ub,
                         vtype=problem.vtype,
                         solver=solver,
                         solver_params=setup[SOLVER_PARAMS])

    def compute_optimal(self) -> OptSwapSolution:
        """Solve the MILP and decode knockouts and swaps

        Binaries are rounded to 0 or 1. Solutions are only decoded if the solver returned
        one (status 'optimal' or 'time_limit_w_sols'). All other statuses are returned
        without interpretation of the variables.

        Returns:
            (OptSwapSolution):
            The solution of the computation
        """
        logging.info('Solving ' + self.problem.knock_type + ' MILP with ' + self.solver + ' (' +
                     str(self.problem.A.shape[0]) + ' constraints, ' + str(len(self.c)) + ' variables, ' +
                     str(len(self.problem.int_vars)) + ' binaries).')
        starttime = time.time()
        x, min_cx, status = self.solve()
        runtime = time.time() - starttime
        if status not in [OPTIMAL, TIME_LIMIT_W_SOL]:
            logging.info('  Solver returned status: ' + str(status) + '.')
            return OptSwapSolution(status, nan, self.setup, self.split, self.problem, solver=self.solver, runtime=runtime)
        cols = self.problem.cols
        y, q, s = ([int(round(x[i])) for i in cols.indices(name)] for name in BINARY_BLOCKS)
        fluxes = None
        if self.problem.knock_type in [OPTKNOCK, OPTSWAPYIELD]:
            fluxes = self.split.net_fluxes(x[cols.slice('v')])
        solution = OptSwapSolution(status,
                                   -min_cx,
                                   self.setup,
                                   self.split,
                                   self.problem,
                                   y=y,
                                   q=q,
                                   s=s,
                                   fluxes=fluxes,
                                   solver=self.solver,
                                   runtime=runtime)
        if status == TIME_LIMIT_W_SOL:
            logging.info('  Time limit reached. Best solution found has objective value ' + str(solution.objective_value) +
                         '.')
        else:
            logging.info('  Optimal objective value: ' + str(solution.objective_value) + '.')
        logging.info('  Knockouts: ' + str(solution.knockouts) + ', swaps: ' + str(solution.swaps))
        return solution
