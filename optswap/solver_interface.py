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
"""Unified solver interface for LPs and MILPs (MILP_LP)"""

from numpy import inf
from scipy import sparse
from typing import List, Tuple
from optswap import avail_solvers
from optswap.names import *
from optswap.optSwapSetup import SolverParams, ConfigurationError, StructuralError
import logging


class MILP_LP(object):
    """Unified MILP and LP interface

    All LPs and MILPs of the package (FBA, dual bounds, design verification and the
    reformulated bilevel problems) are passed to the solvers through this class. The
    problem is given in the form

        minimize c'x  s.t.  A_ineq x <= b_ineq,  A_eq x = b_eq,  lb <= x <= ub,

    where vtype holds one character per variable: 'C'ontinuous, 'B'inary or 'I'nteger.
    Missing parts are filled with empty matrices, free bounds and continuous variables.
    The number of variables is taken from A_ineq (or A_eq).

    Example:
        milp = MILP_LP(c=c, A_ineq=A_ineq, b_ineq=b_ineq, lb=lb, ub=ub, vtype='CCB', solver='glpk')
        x, min_cx, status = milp.solve()

    Args:
        c, A_ineq, b_ineq, A_eq, b_eq, lb, ub, vtype (optional):
            The problem (see above). Matrices are scipy.sparse matrices, vectors lists of float.

        solver (optional (str)): (Default: 'glpk' if available)
            Solver backend: 'glpk' or 'cplex'.

        solver_params (optional (SolverParams) or (dict)):
            Tolerances, time limit and verbosity of the solver.

        skip_checks (optional (bool)): (Default: False)
            Skip the consistency check of all dimensions. A StructuralError is raised on
            inconsistent dimensions otherwise.
    """

    allowed_keys = {'c', 'A_ineq', 'b_ineq', 'A_eq', 'b_eq', 'lb', 'ub', 'vtype', 'solver', 'solver_params', 'skip_checks'}

    def __init__(self, **kwargs):
        for key in kwargs:
            if key not in self.allowed_keys:
                raise ConfigurationError("Key " + key + " is not supported.")
        for key in self.allowed_keys:
            setattr(self, key, kwargs.get(key))
        self.solver = self._pick_solver(self.solver)
        if self.solver_params is None:
            self.solver_params = SolverParams()
        self._fill_defaults()
        if not self.skip_checks:
            self._check_dimensions()
        self.A_ineq = sparse.csr_matrix(self.A_ineq).astype(float)
        self.A_eq = sparse.csr_matrix(self.A_eq).astype(float)
        for key in ['c', 'b_ineq', 'b_eq', 'lb', 'ub']:
            setattr(self, key, [float(v) for v in getattr(self, key)])
        problem = (self.c, self.A_ineq, self.b_ineq, self.A_eq, self.b_eq, self.lb, self.ub, self.vtype)
        if self.solver == CPLEX:
            from optswap.cplex_interface import Cplex_MILP_LP
            self.backend = Cplex_MILP_LP(*problem)
        else:
            from optswap.glpk_interface import GLPK_MILP_LP
            self.backend = GLPK_MILP_LP(*problem)
        self.set_params(self.solver_params)

    @staticmethod
    def _pick_solver(solver) -> str:
        if solver is None:
            if not avail_solvers:
                raise ConfigurationError('No solver available. Please install swiglpk (GLPK) or cplex.')
            return GLPK if GLPK in avail_solvers else sorted(avail_solvers)[0]
        if solver not in avail_solvers:
            raise ConfigurationError("Selected solver '" + solver + "' is not installed / set up correctly.")
        return solver

    def _fill_defaults(self):
        if self.A_ineq is not None:
            numvars = self.A_ineq.shape[1]
        elif self.A_eq is not None:
            numvars = self.A_eq.shape[1]
        else:
            logging.warning('Problem has no variables.')
            numvars = 0
        defaults = {
            'c': [0.0] * numvars,
            'A_ineq': sparse.csr_matrix((0, numvars)),
            'b_ineq': [],
            'A_eq': sparse.csr_matrix((0, numvars)),
            'b_eq': [],
            'lb': [-inf] * numvars,
            'ub': [inf] * numvars,
            'vtype': 'C' * numvars,
        }
        for key, value in defaults.items():
            if getattr(self, key) is None:
                setattr(self, key, value)
        self.numvars = numvars

    def _check_dimensions(self):
        if self.A_ineq.shape[0] != len(self.b_ineq):
            raise StructuralError('A_ineq has ' + str(self.A_ineq.shape[0]) + ' rows, but b_ineq has ' +
                                  str(len(self.b_ineq)) + ' elements.')
        if self.A_eq.shape[0] != len(self.b_eq):
            raise StructuralError('A_eq has ' + str(self.A_eq.shape[0]) + ' rows, but b_eq has ' + str(len(self.b_eq)) +
                                  ' elements.')
        sizes = {
            'A_ineq': self.A_ineq.shape[1],
            'A_eq': self.A_eq.shape[1],
            'c': len(self.c),
            'lb': len(self.lb),
            'ub': len(self.ub),
            'vtype': len(self.vtype)
        }
        wrong = [k for k, n in sizes.items() if n != self.numvars]
        if wrong:
            raise StructuralError('Dimensions of ' + ', '.join(wrong) + ' do not match the number of variables (' +
                                  str(self.numvars) + ').')

    def solve(self) -> Tuple[List, float, str]:
        """Solve the problem and return (x, min_cx, status). Integer and binary values are rounded."""
        if not self.c:
            return [], 0.0, OPTIMAL
        x, min_cx, status = self.backend.solve()
        if status in [OPTIMAL, TIME_LIMIT_W_SOL]:
            x = [v if t == 'C' else int(round(v)) for v, t in zip(x, self.vtype)]
        return x, min_cx, status

    def slim_solve(self) -> float:
        """Optimal value only (nan if no solution was found)"""
        return self.backend.slim_solve()

    def set_objective(self, c):
        self.c = [float(v) for v in c]
        self.backend.set_objective(self.c)

    def set_params(self, params):
        """Apply solver parameters (tolerances, time limit, verbosity)"""
        if not isinstance(params, SolverParams):
            params = SolverParams(**params)
        self.solver_params = params
        self.backend.set_params(params)
        self.set_time_limit(params[T_LIMIT])

    def set_time_limit(self, t):
        """Set the time limit in seconds"""
        self.tlim = t
        self.backend.set_time_limit(t)

    def add_ineq_constraints(self, A_ineq, b_ineq):
        """Append rows A_ineq x <= b_ineq to the problem"""
        A_ineq = sparse.csr_matrix(A_ineq)
        A_ineq.eliminate_zeros()
        b_ineq = [float(b) for b in b_ineq]
        if A_ineq.shape[1] != len(self.c) or A_ineq.shape[0] != len(b_ineq):
            raise StructuralError('Dimensions of additional inequality constraints do not match the problem.')
        self.A_ineq = sparse.vstack((self.A_ineq, A_ineq)).tocsr()
        self.b_ineq += b_ineq
        self.backend.add_ineq_constraints(A_ineq, b_ineq)
