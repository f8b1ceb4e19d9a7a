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
"""Functions: computing OptSwap, OptKnock, RobustKnock and OptSwapYield designs (optswap)"""

import os
import logging
from typing import List
from cobra import Model
from pandas import DataFrame
from optswap.names import *
from optswap.optSwapSetup import OptSwapSetup, ConfigurationError
from optswap.networktools import MetabolicModel, OneWayFluxModel, swap_model, prepare_model, split_one_way_fluxes
from optswap.optSwapProblem import OptSwapProblem
from optswap.optSwapMILP import OptSwapMILP
from optswap.optSwapSolutions import OptSwapSolution
from optswap.lptools import select_solver


def optswap(model, **kwargs) -> OptSwapSolution:
    """Computes a strain design with knockouts and cofactor swaps

    The computation runs through the following steps: For knock types with swaps, cofactor
    swapped variants of the dehydrogenase reactions are added to the model. The model is
    prepared (growth and target objective, removal of numerical noise), reversible reactions
    are split into one-way fluxes and the bilevel problem is reformulated into a single MILP
    that is solved with the selected solver.

    The setup can either be passed as an OptSwapSetup object (setup=...) or through the
    individual keyword arguments of OptSwapSetup. Keyword arguments override the entries
    of a passed setup.

    Example:
        sol = optswap(model, target_rxn='EX_etoh_e', knock_type='optswap', intervention_num=2)

    Args:
        model (cobra.Model or MetabolicModel):
            A metabolic model. Swappable reactions can only be added to models that contain
            the cofactor metabolites.

        setup (optional (OptSwapSetup) or (dict)):
            A setup of the computation.

        **kwargs:
            Any key of OptSwapSetup (knock_type, target_rxn, knockout_num, swap_num,
            intervention_num, knockable_rxns, not_knockable_rxns, max_w, biomass_rxn, dh_rxns,
            allow_dh_knockout, min_biomass, cofactor_pairs, find_max_w, solver, solver_params).

    Returns:
        (OptSwapSolution):
            The decoded solution together with the assembled MILP.
    """
    if SETUP in kwargs:
        setup = dict(kwargs.pop(SETUP))
        setup.update(kwargs)
    else:
        setup = kwargs
    setup = OptSwapSetup(**setup)
    setup[SOLVER] = select_solver(setup[SOLVER])
    logging.info('Preparing ' + setup[KNOCK_TYPE] + ' computation for target ' + setup[TARGET_RXN] + '.')
    logging.info('  Using ' + setup[SOLVER] + ' for solving the MILP.')
    split = prepare_split_model(model, setup)
    problem = OptSwapProblem(split, setup).build()
    solution = OptSwapMILP(problem, split, setup).compute_optimal()
    logging.info('Finished ' + setup[KNOCK_TYPE] + ' computation with status ' + str(solution.status) + '.')
    return solution


def prepare_split_model(model, setup: OptSwapSetup) -> OneWayFluxModel:
    """Add swapped reactions (if needed), prepare the model and split it into one-way fluxes

    Example:
        split = prepare_split_model(model, OptSwapSetup(target_rxn='EX_etoh_e'))

    Args:
        model (cobra.Model or MetabolicModel):
            A metabolic model.

        setup (OptSwapSetup):
            The setup of the computation.

    Returns:
        (OneWayFluxModel):
            The split model with the index sets of knockout and swap candidates.
    """
    if not isinstance(model, (Model, MetabolicModel)):
        raise ConfigurationError('Model must be a cobra.Model or a MetabolicModel.')
    qs_coupling = None
    if setup.is_swap_type():
        cobra_model = model if isinstance(model, Model) else model.to_cobra()
        swapped, _, qs_coupling = swap_model(cobra_model, setup[DH_RXNS], setup[COFACTOR_PAIRS])
        array_model = MetabolicModel.from_cobra(swapped)
    elif isinstance(model, Model):
        array_model = MetabolicModel.from_cobra(model)
    else:
        array_model = model
    prepared = prepare_model(array_model, array_model.reac_index(setup[TARGET_RXN]), setup[BIOMASS_RXN])
    # OptSwapYield has no knockout decisions
    knockable_rxns = [] if setup[KNOCK_TYPE] == OPTSWAPYIELD else setup[KNOCKABLE_RXNS]
    return split_one_way_fluxes(prepared, knockable_rxns, setup[NOT_KNOCKABLE_RXNS], qs_coupling)


def optknock(model, **kwargs) -> OptSwapSolution:
    """OptKnock: maximal production at maximal growth (optimistic), knockouts only. See optswap."""
    kwargs[KNOCK_TYPE] = OPTKNOCK
    return optswap(model, **kwargs)


def robustknock(model, **kwargs) -> OptSwapSolution:
    """RobustKnock: guaranteed production at maximal growth, knockouts only. See optswap."""
    kwargs[KNOCK_TYPE] = ROBUSTKNOCK
    return optswap(model, **kwargs)


def optswap_yield(model, **kwargs) -> OptSwapSolution:
    """OptSwapYield: maximal production with swaps only and a minimum growth rate. See optswap."""
    kwargs[KNOCK_TYPE] = OPTSWAPYIELD
    return optswap(model, **kwargs)


def optswap_batch(model, target_rxns: List[str], log_file=None, **kwargs) -> DataFrame:
    """Run one computation per target reaction

    Example:
        table = optswap_batch(model, ['EX_etoh_e', 'EX_succ_e'], log_file='designs.csv', intervention_num=2)

    Args:
        model (cobra.Model or MetabolicModel):
            A metabolic model.

        target_rxns (list of str):
            Reaction identifiers of the target chemicals.

        log_file (optional (str)):
            A CSV file to which one line per computation is appended.

        **kwargs:
            Setup of the computations (see optswap). target_rxn must not be passed.

    Returns:
        (pandas.DataFrame):
            One row per target with the columns knock_type, target, status, chemical, knockouts,
            swaps, K, L, X, solver and runtime.
    """
    if TARGET_RXN in kwargs:
        raise ConfigurationError('"' + TARGET_RXN + '" is set by optswap_batch for every target.')
    results = []
    for i, target in enumerate(target_rxns):
        logging.info('Computation ' + str(i + 1) + ' of ' + str(len(target_rxns)) + ': ' + target)
        solution = optswap(model, **{**kwargs, TARGET_RXN: target})
        row = solution.to_dict()
        results.append(row)
        if log_file is not None:
            csv_row = {k: ';'.join(v) if isinstance(v, list) else v for k, v in row.items()}
            DataFrame([csv_row]).to_csv(log_file, mode='a', header=not os.path.exists(log_file), index=False)
    return DataFrame(results, columns=['knock_type', 'target', 'status', 'chemical', 'knockouts', 'swaps', 'K', 'L', 'X',
                                       'solver', 'runtime'])
