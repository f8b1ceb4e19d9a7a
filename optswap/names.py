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
"""Static strings used in the OptSwap package

    Knock types

        OPTKNOCK = 'optknock'

        ROBUSTKNOCK = 'robustknock'

        OPTSWAP = 'optswap'

        OPTSWAPYIELD = 'optswapyield'

    Setup

        SETUP = 'setup'

        KNOCK_TYPE = 'knock_type'

        TARGET_RXN = 'target_rxn'

        SWAP_NUM = 'swap_num'

        KNOCKOUT_NUM = 'knockout_num'

        INTERVENTION_NUM = 'intervention_num'

        KNOCKABLE_RXNS = 'knockable_rxns'

        NOT_KNOCKABLE_RXNS = 'not_knockable_rxns'

        MAX_W = 'max_w'

        BIOMASS_RXN = 'biomass_rxn'

        DH_RXNS = 'dh_rxns'

        ALLOW_DH_KO = 'allow_dh_knockout'

        MIN_BIOMASS = 'min_biomass'

        FIND_MAX_W = 'find_max_w'

        COFACTOR_PAIRS = 'cofactor_pairs'

        SOLVER_PARAMS = 'solver_params'

    Solver parameters

        INT_TOL = 'int_tol'

        REL_GAP = 'rel_gap'

        ABS_GAP = 'abs_gap'

        FEAS_TOL = 'feas_tol'

        OPT_TOL = 'opt_tol'

        T_LIMIT = 'time_limit'

        VERBOSITY = 'verbosity'

        NUM_EMPHASIS = 'numerical_emphasis'

    Solvers and status codes

        SOLVER = 'solver'

        CPLEX = 'cplex'

        GLPK = 'glpk'

        OPTIMAL = 'optimal' # from optlang interface

        INFEASIBLE ='infeasible' # from optlang interface

        TIME_LIMIT = 'time_limit' # from optlang interface

        UNBOUNDED = 'unbounded' # from optlang interface

        TIME_LIMIT_W_SOL = 'time_limit_w_sols'

        ERROR = 'error'

    Interventions

        KNOCKOUT = 'knockout'

        SWAP = 'swap'

    Analysis

        MAXIMIZE = 'maximize'

        MINIMIZE = 'minimize'
"""

# Knock types
OPTKNOCK = 'optknock'
ROBUSTKNOCK = 'robustknock'
OPTSWAP = 'optswap'
OPTSWAPYIELD = 'optswapyield'

# Setup
SETUP = 'setup'
KNOCK_TYPE = 'knock_type'
TARGET_RXN = 'target_rxn'
SWAP_NUM = 'swap_num'
KNOCKOUT_NUM = 'knockout_num'
INTERVENTION_NUM = 'intervention_num'
KNOCKABLE_RXNS = 'knockable_rxns'
NOT_KNOCKABLE_RXNS = 'not_knockable_rxns'
MAX_W = 'max_w'
BIOMASS_RXN = 'biomass_rxn'
DH_RXNS = 'dh_rxns'
ALLOW_DH_KO = 'allow_dh_knockout'
MIN_BIOMASS = 'min_biomass'
FIND_MAX_W = 'find_max_w'
COFACTOR_PAIRS = 'cofactor_pairs'
SOLVER_PARAMS = 'solver_params'

# Solver parameters
INT_TOL = 'int_tol'
REL_GAP = 'rel_gap'
ABS_GAP = 'abs_gap'
FEAS_TOL = 'feas_tol'
OPT_TOL = 'opt_tol'
T_LIMIT = 'time_limit'
VERBOSITY = 'verbosity'
NUM_EMPHASIS = 'numerical_emphasis'

# Solvers and status codes
SOLVER = 'solver'
CPLEX = 'cplex'
GLPK = 'glpk'
from optlang.interface import OPTIMAL,    \
                              INFEASIBLE, \
                              TIME_LIMIT, \
                              UNBOUNDED

TIME_LIMIT_W_SOL = 'time_limit_w_sols'
ERROR = 'error'

# Interventions
KNOCKOUT = 'knockout'
SWAP = 'swap'

# Analysis
MAXIMIZE = 'maximize'
MINIMIZE = 'minimize'
