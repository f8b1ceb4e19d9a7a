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
"""CPLEX backend of MILP_LP"""

from scipy import sparse
from numpy import nan, inf, isinf
from cplex import Cplex, infinity
from cplex.exceptions import CplexError
from typing import Tuple, List
import logging
import io
import sys
from psutil import virtual_memory
from optswap.names import *

# CPLEX status codes grouped by their meaning for the bilevel MILPs
CPX_OPTIMAL = [1, 101, 102, 115, 128, 129, 130]
CPX_TIME_LIMIT_W_SOL = [11, 107]
CPX_TIME_LIMIT = [108]
CPX_INFEASIBLE = [3, 103]
CPX_UNBOUNDED = [2, 4, 118, 119]


class Cplex_MILP_LP(Cplex):
    """CPLEX backend for the problems assembled by OptSwapProblem and lptools

    Problem data is passed in the same form as to MILP_LP (minimization, A_ineq x <= b_ineq,
    A_eq x = b_eq, bounds, vtype string). Numpy infinities are translated to CPLEX
    infinities. For MILPs, CPLEX may use 3/4 of the physical memory as working memory.
    """

    def __init__(self, c, A_ineq, b_ineq, A_eq, b_eq, lb, ub, vtype):
        super().__init__()
        self.objective.set_sense(self.objective.sense.minimize)
        self.ismilp = 'B' in vtype or 'I' in vtype
        if A_ineq.shape[1]:
            self.variables.add(obj=c, lb=[_cpx_inf(v) for v in lb], ub=[_cpx_inf(v) for v in ub], types=vtype)
        self.linear_constraints.add(rhs=[_cpx_inf(v) for v in b_ineq] + list(b_eq),
                                    senses='L' * len(b_ineq) + 'E' * len(b_eq))
        self._set_coefficients(sparse.vstack((A_ineq, A_eq)), 0)
        if self.ismilp:
            self.parameters.workmem.set(round(virtual_memory().total / 1024 / 1024 * 0.75))

    def _set_coefficients(self, A, first_row):
        A = sparse.coo_matrix(A)
        if A.nnz:
            self.linear_constraints.set_coefficients(
                zip([int(i) + first_row for i in A.row], [int(j) for j in A.col], [float(a) for a in A.data]))

    def set_params(self, params):
        """Translate SolverParams to CPLEX parameters"""
        if params[VERBOSITY]:
            self.set_log_stream(sys.stdout)
            self.set_results_stream(sys.stdout)
        else:
            self.set_log_stream(io.StringIO())
            self.set_results_stream(io.StringIO())
        self.set_error_stream(io.StringIO())
        self.set_warning_stream(io.StringIO())
        # CPLEX refuses tolerances below 1e-9
        self.parameters.simplex.tolerances.feasibility.set(max(params[FEAS_TOL], 1e-9))
        self.parameters.simplex.tolerances.optimality.set(max(params[OPT_TOL], 1e-9))
        self.parameters.emphasis.numerical.set(int(bool(params[NUM_EMPHASIS])))
        if self.ismilp:
            self.parameters.mip.tolerances.integrality.set(params[INT_TOL])
            self.parameters.mip.tolerances.mipgap.set(params[REL_GAP])
            self.parameters.mip.tolerances.absmipgap.set(params[ABS_GAP])

    def _run(self) -> Tuple[str, float]:
        """Solve and translate the CPLEX status to a status string and an objective value"""
        super().solve()
        code = self.solution.get_status()
        if code in CPX_OPTIMAL:
            return OPTIMAL, self.solution.get_objective_value()
        if code in CPX_TIME_LIMIT_W_SOL:
            return TIME_LIMIT_W_SOL, self.solution.get_objective_value()
        if code in CPX_TIME_LIMIT:
            return TIME_LIMIT, nan
        if code in CPX_INFEASIBLE:
            return INFEASIBLE, nan
        if code in CPX_UNBOUNDED:
            return UNBOUNDED, -inf
        logging.error('CPLEX returned unhandled status ' + str(code) + ': ' + self.solution.get_status_string())
        return ERROR, nan

    def solve(self) -> Tuple[List, float, str]:
        """Solve the MILP or LP and return (x, min_cx, status)"""
        numvars = self.variables.get_num()
        try:
            status, min_cx = self._run()
        except CplexError as exc:
            logging.error(exc)
            return [nan] * numvars, nan, ERROR
        if status in [OPTIMAL, TIME_LIMIT_W_SOL]:
            return self.solution.get_values(), min_cx, status
        return [nan] * numvars, min_cx, status

    def slim_solve(self) -> float:
        """Solve the MILP or LP and return only the objective value (nan without solution)"""
        try:
            return self._run()[1]
        except CplexError as exc:
            logging.error(exc)
            return nan

    def set_objective(self, c):
        if len(c):
            self.objective.set_linear([[i, float(c_i)] for i, c_i in enumerate(c)])

    def set_time_limit(self, t):
        """Set the computation time limit (in seconds)"""
        self.parameters.timelimit.set(self.parameters.timelimit.max() if isinf(t) else t)

    def add_ineq_constraints(self, A_ineq, b_ineq):
        """Append rows A_ineq x <= b_ineq"""
        first_row = self.linear_constraints.get_num()
        self.linear_constraints.add(rhs=[_cpx_inf(v) for v in b_ineq], senses='L' * A_ineq.shape[0])
        self._set_coefficients(A_ineq, first_row)


def _cpx_inf(v):
    if isinf(v):
        return infinity if v > 0 else -infinity
    return float(v)
