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
"""A collection of functions for the LP-based analysis of metabolic networks"""

from cobra import Model
from cobra.core import Solution
from scipy import sparse
from pandas import Series
from numpy import nan, isnan, inf
from typing import Dict, List
from optswap import MILP_LP, avail_solvers, DisableLogger
from optswap.names import *
from optswap.optSwapSetup import ConfigurationError
import logging


def select_solver(solver=None) -> str:
    """Select a solver for subsequent MILP/LP computations

    If a solver is provided and available, it is returned. Otherwise the first available
    solver is picked in the order: 'glpk', 'cplex'.

    Example:
        solver = select_solver('cplex')

    Args:
        solver (optional (str)):
            A user preferred solver, that should be checked for availability: 'glpk' or 'cplex'.

    Returns:
        (str):
            The selected solver name as a str.
    """
    if not avail_solvers:
        raise ConfigurationError('No solver available. Please install swiglpk or cplex.')
    if solver:
        if solver in avail_solvers:
            return solver
        logging.warning('Selected solver ' + solver + ' not available.')
    for s in [GLPK, CPLEX]:
        if s in avail_solvers:
            if solver:
                logging.warning('Using ' + s + ' instead.')
            return s


def _array_model(model):
    from optswap.networktools import MetabolicModel
    if isinstance(model, Model):
        return MetabolicModel.from_cobra(model)
    return model


def fba(model, **kwargs) -> Solution:
    """Flux Balance Analysis (FBA)

    Flux Balance Analysis optimizes a linear objective function in the space of steady-state
    flux vectors given by a constraint-based metabolic model.

    Example:
        optim = fba(model, obj='EX_etoh_e', solver='glpk')

    Args:
        model (cobra.Model or MetabolicModel):
            A metabolic model. If no custom objective function is provided, the growth objective
            of the model is used.

        obj (optional (str) or (dict)):
            A reaction identifier or a dict of reaction identifiers and coefficients.

        obj_sense (optional (str)): (Default: 'maximize')
            'maximize' or 'minimize'.

        lb, ub (optional (list of float)):
            Flux bounds replacing the bounds of the model.

        solver (optional (str)):
            The solver that should be used for FBA.

        solver_params (optional (SolverParams)):
            Solver tolerances and time limit.

    Returns:
        (cobra.core.Solution):
            A solution object that contains the objective value, an optimal flux vector and the
            optimization status.
    """
    model = _array_model(model)
    allowed_keys = {'obj', 'obj_sense', 'lb', 'ub', SOLVER, SOLVER_PARAMS}
    for key in kwargs:
        if key not in allowed_keys:
            raise ConfigurationError("Key " + key + " is not supported.")
    c = objective_vector(model, kwargs.get('obj'))
    obj_sense = kwargs.get('obj_sense') or MAXIMIZE
    if obj_sense in ['max', MAXIMIZE]:
        obj_sense = MAXIMIZE
        c = [-v for v in c]
    elif obj_sense in ['min', MINIMIZE]:
        obj_sense = MINIMIZE
    else:
        raise ConfigurationError('Optimization sense must be "' + MINIMIZE + '" or "' + MAXIMIZE + '".')
    lb = model.lb if kwargs.get('lb') is None else kwargs['lb']
    ub = model.ub if kwargs.get('ub') is None else kwargs['ub']

    fba_prob = MILP_LP(c=c,
                       A_eq=model.S,
                       b_eq=[0.0] * model.num_mets,
                       lb=lb,
                       ub=ub,
                       solver=select_solver(kwargs.get(SOLVER)),
                       solver_params=kwargs.get(SOLVER_PARAMS))
    x, opt_cx, status = fba_prob.solve()
    if status == OPTIMAL:
        opt = -opt_cx if obj_sense == MAXIMIZE else opt_cx
    elif status == UNBOUNDED:
        opt = inf if obj_sense == MAXIMIZE else -inf
    else:
        status = INFEASIBLE
        opt = nan
    x = [v if isnan(v) or abs(v) >= 1e-11 else 0.0 for v in x]  # cut off for very small absolute values
    return Solution(objective_value=opt, status=status, fluxes=Series(x, index=model.reac_ids, dtype=float))


def objective_vector(model, obj=None) -> List:
    """Translate an objective (reaction id or dict) into a coefficient vector"""
    if obj is None:
        return list(model.c)
    if isinstance(obj, str):
        obj = {obj: 1.0}
    c = [0.0] * model.num_reacs
    for reac_id, coeff in obj.items():
        c[model.reac_index(reac_id)] = float(coeff)
    return c


def dual_bounds(A, b, c, max_w, solver=None, solver_params=None) -> List:
    """Determine upper bounds of dual variables from the optimal dual face

    For the primal LP max{c'v | A v <= b}, the dual LP min{b'w | A'w = c, 0 <= w <= max_w} is
    solved. Each dual variable is then maximized on the optimal dual face. The returned values
    can replace the uniform bound max_w of the dual variables. Variables that cannot be
    bounded more tightly keep the bound max_w.

    Example:
        ub_w = dual_bounds(A, b, c, 1000)

    Args:
        A (sparse.csr_matrix), b (list of float), c (list of float):
            The primal LP.

        max_w (float):
            Uniform upper bound of the dual variables.

    Returns:
        (list of float):
            Upper bounds of the dual variables.
    """
    num_w = A.shape[0]
    solver = select_solver(solver)
    dual = MILP_LP(c=list(b),
                   A_eq=sparse.csr_matrix(A).transpose().tocsr(),
                   b_eq=list(c),
                   lb=[0.0] * num_w,
                   ub=[max_w] * num_w,
                   solver=solver,
                   solver_params=solver_params)
    _, opt, status = dual.solve()
    if status != OPTIMAL:
        logging.warning('Dual bounds could not be determined (dual LP ' + str(status) + '). Using max_w=' + str(max_w) + '.')
        return [max_w] * num_w
    # restrict dual to its optimal face
    tol = max(1e-9, abs(opt) * 1e-9)
    dual.add_ineq_constraints(sparse.csr_matrix([b]), [opt + tol])
    ub_w = []
    with DisableLogger():
        for i in range(num_w):
            c_i = [0.0] * num_w
            c_i[i] = -1.0
            dual.set_objective(c_i)
            w_max = -dual.slim_solve()
            ub_w.append(max_w if isnan(w_max) else min(max_w, max(0.0, w_max)))
    logging.info('  Dual bounds: ' + str(sum(u < max_w for u in ub_w)) + ' of ' + str(num_w) + ' dual variables tightened.')
    return ub_w


def verify_design(model, chemical, growth, inactive=(), **kwargs) -> Dict:
    """Verify a strain design by flux balance analysis

    All reactions in inactive are blocked. Then the maximal growth rate and the minimal and
    maximal production of the target chemical at maximal growth are determined.

    Example:
        ranges = verify_design(swapped_model, 'EX_etoh_e', 'BIOMASS', inactive=['PFL', 'GAPD'])

    Args:
        model (cobra.Model or MetabolicModel):
            The metabolic model (with swapped reactions for designs with swaps).

        chemical, growth (str):
            Reaction identifiers of the target chemical and the growth reaction.

        inactive (list of str):
            Reactions that are blocked by the design (knockouts and inactive swap variants).

        solver, solver_params (optional):
            See fba.

    Returns:
        (dict):
            'growth', 'chemical_min' and 'chemical_max'. Values are nan if the design is lethal.
    """
    model = _array_model(model)
    lb = list(model.lb)
    ub = list(model.ub)
    for reac_id in inactive:
        i = model.reac_index(reac_id)
        lb[i] = 0.0
        ub[i] = 0.0
    result = {'growth': nan, 'chemical_min': nan, 'chemical_max': nan}
    sol = fba(model, obj=growth, lb=lb, ub=ub, **kwargs)
    if sol.status != OPTIMAL:
        return result
    result['growth'] = sol.objective_value
    growth_ind = model.reac_index(growth)
    chem_ind = model.reac_index(chemical)
    lp = MILP_LP(A_eq=model.S,
                 b_eq=[0.0] * model.num_mets,
                 lb=lb,
                 ub=ub,
                 solver=select_solver(kwargs.get(SOLVER)),
                 solver_params=kwargs.get(SOLVER_PARAMS))
    # fix growth to its maximum (with a small relative tolerance)
    g_row = sparse.csr_matrix(([-1.0], ([0], [growth_ind])), shape=(1, model.num_reacs))
    lp.add_ineq_constraints(g_row, [-sol.objective_value * (1 - 1e-9) + 1e-9])
    c = [0.0] * model.num_reacs
    c[chem_ind] = 1.0
    lp.set_objective(c)
    result['chemical_min'] = lp.slim_solve()
    c[chem_ind] = -1.0
    lp.set_objective(c)
    result['chemical_max'] = -lp.slim_solve()
    return result
