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
"""GLPK backend of MILP_LP"""

from scipy import sparse
from numpy import nan, inf, isinf
from optswap.names import *
from typing import Tuple, List
from swiglpk import *
import logging

GLPK_COL_KIND = {'C': GLP_CV, 'I': GLP_IV, 'B': GLP_BV}


class GLPK_MILP_LP():
    """GLPK backend for the problems assembled by OptSwapProblem and lptools

    Problem data is passed in the same form as to MILP_LP (minimization, A_ineq x <= b_ineq,
    A_eq x = b_eq, bounds, vtype string). MILPs are solved with glp_intopt after the LP
    relaxation has been solved with the simplex method. GLPK has no absolute MIP gap
    parameter, so the absolute gap of the solver parameters is not used.
    """

    def __init__(self, c, A_ineq, b_ineq, A_eq, b_eq, lb, ub, vtype):
        self.glpk = glp_create_prob()
        glp_set_obj_dir(self.glpk, GLP_MIN)
        self.ismilp = any(v != 'C' for v in vtype)
        # GLPK indexing starts with 1
        if len(vtype):
            glp_add_cols(self.glpk, len(vtype))
        for i, v in enumerate(vtype):
            glp_set_col_kind(self.glpk, i + 1, GLPK_COL_KIND[v])
            self._set_col_bnds(i + 1, float(lb[i]), float(ub[i]))
        self.set_objective(c)
        self._add_rows(A_ineq, b_ineq, GLP_UP)
        self._add_rows(A_eq, b_eq, GLP_FX)

        self.lp_params = glp_smcp()
        glp_init_smcp(self.lp_params)
        self.max_tlim = self.lp_params.tm_lim
        self.lp_params.msg_lev = GLP_MSG_OFF
        if self.ismilp:
            self.milp_params = glp_iocp()
            glp_init_iocp(self.milp_params)
            self.milp_params.presolve = 1
            self.milp_params.msg_lev = GLP_MSG_OFF

    def _set_col_bnds(self, j, l, u):
        if isinf(l) and isinf(u):
            kind = GLP_FR
        elif isinf(u):
            kind = GLP_LO
        elif isinf(l):
            kind = GLP_UP
        else:
            kind = GLP_DB if l < u else GLP_FX
        glp_set_col_bnds(self.glpk, j, kind, l, u)

    def _add_rows(self, A, rhs, kind):
        """Append the rows of a sparse matrix with upper bounds (GLP_UP) or fixed values (GLP_FX)"""
        A = sparse.csr_matrix(A, copy=True)
        if not A.shape[0]:
            return
        A.sum_duplicates()
        A.eliminate_zeros()
        first = glp_add_rows(self.glpk, A.shape[0])
        for k in range(A.shape[0]):
            b = float(rhs[k])
            if kind == GLP_UP and isinf(b):
                glp_set_row_bnds(self.glpk, first + k, GLP_FR, -inf, inf)
            else:
                glp_set_row_bnds(self.glpk, first + k, kind, b, b)
            start, end = int(A.indptr[k]), int(A.indptr[k + 1])
            if end > start:
                ind = intArray(end - start + 1)
                val = doubleArray(end - start + 1)
                for n, p in enumerate(range(start, end)):
                    ind[n + 1] = int(A.indices[p]) + 1
                    val[n + 1] = float(A.data[p])
                glp_set_mat_row(self.glpk, first + k, end - start, ind, val)

    def set_params(self, params):
        """Translate SolverParams to the GLPK control parameters"""
        msg_lev = [GLP_MSG_OFF, GLP_MSG_ERR, GLP_MSG_ON, GLP_MSG_ALL][min(params[VERBOSITY], 3)]
        self.lp_params.tol_bnd = params[FEAS_TOL]
        self.lp_params.tol_dj = params[OPT_TOL]
        self.lp_params.msg_lev = msg_lev
        if self.ismilp:
            self.milp_params.tol_int = params[INT_TOL]
            self.milp_params.tol_obj = params[OPT_TOL]
            self.milp_params.mip_gap = params[REL_GAP]
            self.milp_params.msg_lev = msg_lev

    def _run(self) -> Tuple[str, float]:
        """Solve and translate the GLPK status to a status string and an objective value"""
        opt, code, tlim = self.solve_MILP_LP()
        if code in [GLP_OPT, GLP_FEAS]:
            return (TIME_LIMIT_W_SOL if tlim and code == GLP_FEAS else OPTIMAL), round(opt, 12)
        if tlim and code == GLP_UNDEF:
            return TIME_LIMIT, nan
        if code in [GLP_INFEAS, GLP_NOFEAS]:
            return INFEASIBLE, nan
        if code in [GLP_UNBND, GLP_UNDEF]:
            return UNBOUNDED, -inf
        logging.error('GLPK returned unhandled status ' + str(code) + '.')
        return ERROR, nan

    def solve(self) -> Tuple[List, float, str]:
        """Solve the MILP or LP and return (x, min_cx, status)"""
        status, min_cx = self._run()
        numvars = glp_get_num_cols(self.glpk)
        if status not in [OPTIMAL, TIME_LIMIT_W_SOL]:
            return [nan] * numvars, min_cx, status
        col_val = glp_mip_col_val if self.ismilp else glp_get_col_prim
        # workaround, round to 12 decimals
        x = [round(col_val(self.glpk, j + 1), 12) for j in range(numvars)]
        return x, min_cx, status

    def slim_solve(self) -> float:
        """Solve the MILP or LP and return only the objective value (nan without solution)"""
        return self._run()[1]

    def set_objective(self, c):
        for i, c_i in enumerate(c):
            glp_set_obj_coef(self.glpk, i + 1, float(c_i))

    def set_time_limit(self, t):
        """Set the computation time limit (in seconds, GLPK uses ms)"""
        tm_lim = self.max_tlim if isinf(t) or t * 1000 > self.max_tlim else int(t * 1000)
        self.lp_params.tm_lim = tm_lim
        if self.ismilp:
            self.milp_params.tm_lim = tm_lim

    def add_ineq_constraints(self, A_ineq, b_ineq):
        """Append rows A_ineq x <= b_ineq"""
        self._add_rows(A_ineq, b_ineq, GLP_UP)

    def solve_MILP_LP(self) -> Tuple[float, int, bool]:
        """Run simplex (and branch and bound for MILPs), return objective, GLPK status and time limit flag"""
        starttime = glp_time()
        # glp_intopt is only started on problems with a feasible LP relaxation
        if glp_simplex(self.glpk, self.lp_params) == GLP_EFAIL:
            # some feasible LPs fail initially but complete with presolve
            self.lp_params.presolve = 1
            self.lp_params.meth = GLP_DUALP
            glp_simplex(self.glpk, self.lp_params)
            self.lp_params.presolve = 0
            self.lp_params.meth = GLP_PRIMAL
        status = glp_get_status(self.glpk)
        if self.ismilp and status not in [GLP_INFEAS, GLP_NOFEAS]:
            glp_intopt(self.glpk, self.milp_params)
            status = glp_mip_status(self.glpk)
            opt = glp_mip_obj_val(self.glpk)
        else:
            opt = glp_get_obj_val(self.glpk)
        timelim_reached = glp_difftime(glp_time(), starttime) * 1000 >= self.lp_params.tm_lim
        return opt, status, timelim_reached
