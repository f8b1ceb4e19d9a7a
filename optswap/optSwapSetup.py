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
"""Classes: OptSwap setup (OptSwapSetup), solver parameters (SolverParams) and errors"""

from copy import deepcopy
from numbers import Integral, Real
from typing import Dict
from optswap.names import *

# Dehydrogenases of the E. coli core model that are considered for cofactor swaps by default
DEFAULT_DH_RXNS = ['GAPD', 'ACALD', 'ALCD2x', 'G6PDH2r', 'GLUDy', 'GND']

# Cofactor metabolites that are exchanged against each other in a swap reaction
DEFAULT_COFACTOR_PAIRS = [('nad_c', 'nadp_c'), ('nadh_c', 'nadph_c')]

SWAP_TYPES = [OPTSWAP, OPTSWAPYIELD]
KNOCK_TYPES = [OPTKNOCK, ROBUSTKNOCK, OPTSWAP, OPTSWAPYIELD]


class OptSwapError(Exception):
    """Base class for all errors raised by the OptSwap package"""


class ConfigurationError(OptSwapError):
    """Invalid or missing setup parameters, raised before any problem assembly"""


class ReactionNotFoundError(ConfigurationError):
    """A reaction identifier could not be found in the model"""


class StructuralError(OptSwapError):
    """Inconsistent block dimensions between two stages of the problem assembly"""


class SolverParams(Dict):
    """Convergence and termination parameters handed to the MILP/LP solver

    All parameters are optional. Unset parameters are filled with the defaults below.

    Example:
        params = SolverParams(time_limit=60, rel_gap=1e-4)

    Args:
        int_tol (float): (Default: 1e-8)
            Integer feasibility tolerance.

        rel_gap (float): (Default: 1e-6)
            Relative MIP optimality gap.

        abs_gap (float): (Default: 1e-8)
            Absolute MIP optimality gap.

        feas_tol (float): (Default: 1e-8)
            Primal feasibility tolerance.

        opt_tol (float): (Default: 1e-8)
            Optimality (reduced cost) tolerance.

        time_limit (float): (Default: 10800)
            Time limit in seconds. When it is reached, the best incumbent is returned.

        verbosity (int): (Default: 0)
            Solver output level. 0 suppresses all solver output.

        numerical_emphasis (bool): (Default: True)
            Ask the solver to put emphasis on numerical precision (where supported).
    """

    defaults = {
        INT_TOL: 1e-8,
        REL_GAP: 1e-6,
        ABS_GAP: 1e-8,
        FEAS_TOL: 1e-8,
        OPT_TOL: 1e-8,
        T_LIMIT: 10800.0,
        VERBOSITY: 0,
        NUM_EMPHASIS: True,
    }

    def __init__(self, **kwargs):
        for key, value in kwargs.items():
            if key in self.defaults:
                self[key] = value
            else:
                raise ConfigurationError("Solver parameter " + key + " is not supported.")
        for key, value in self.defaults.items():
            if key not in self or self[key] is None:
                self[key] = value
        for key in [INT_TOL, REL_GAP, ABS_GAP, FEAS_TOL, OPT_TOL, T_LIMIT]:
            if not isinstance(self[key], Real) or self[key] < 0:
                raise ConfigurationError("Solver parameter " + key + " must be a non-negative number.")
            self[key] = float(self[key])
        if not isinstance(self[VERBOSITY], Integral) or self[VERBOSITY] < 0:
            raise ConfigurationError("Solver parameter " + VERBOSITY + " must be a non-negative integer.")


class OptSwapSetup(Dict):
    """Setup of an OptSwap, OptKnock, RobustKnock or OptSwapYield computation

    The setup is validated once upon construction. Missing optional parameters are set to their
    documented defaults, some of which depend on the knock type. The setup is passed unchanged
    through all stages of the problem construction.

    OptKnock:
        Maximize the production of the target chemical assuming that the organism maximizes its
        growth rate. The production is optimistic, i.e., the best flux state among all growth-optimal
        flux states is taken.

    RobustKnock:
        Maximize the minimal production of the target chemical among all growth-optimal flux states.

    OptSwap:
        RobustKnock with additional swap decisions, that exchange the cofactor specificity of
        dehydrogenase reactions (e.g., NADH to NADPH).

    OptSwapYield:
        Maximize the production of the target chemical with swap decisions only, subject to a
        minimum growth rate. No bilevel optimization is carried out.

    Example:
        setup = OptSwapSetup(knock_type='optswap', target_rxn='EX_etoh_e', intervention_num=2)

    Args:
        target_rxn (str):
            Reaction identifier of the target chemical (exchange) reaction. Mandatory.

        knock_type (optional (str)): (Default: 'optswap')
            One of 'optknock', 'robustknock', 'optswap', 'optswapyield'.

        knockout_num (optional (int)): (Default: -1)
            Maximum number of knockouts (K). For swap knock types, a dehydrogenase that is
            neither active in its native nor in its swapped form counts as a knockout.
            Negative values remove the constraint.

        swap_num (optional (int)): (Default: -1)
            Maximum number of swaps (L). Negative values remove the constraint.

        intervention_num (optional (int)): (Default: 1)
            Maximum number of knockouts and swaps together (X). Only used with swap knock types.
            Negative values remove the constraint.

        knockable_rxns (optional (list of str)):
            Reaction identifiers that may be knocked out. By default, all reactions except for
            exchange-like reactions, the growth reaction, the target reaction, reactions with a
            positive lower bound and swappable reactions are knockable.

        not_knockable_rxns (optional (list of str)): (Default: [])
            Reaction identifiers that must not be knocked out.

        max_w (optional (float)): (Default: 1000 for 'optknock' and 'optswapyield', 1e7 otherwise)
            Upper bound of the dual variables.

        biomass_rxn (optional (str) or (list of str)):
            Identifier(s) of the growth reaction. The first reaction found in the model is
            used. By default, the reactions with a nonzero objective coefficient are used.

        dh_rxns (optional (list of str)):
            Identifiers of the swappable dehydrogenase reactions. Only used with swap knock types.

        allow_dh_knockout (optional (bool)): (Default: True)
            Allow that both the native and the swapped variant of a dehydrogenase are inactive.

        min_biomass (optional (float)): (Default: 0.0)
            Minimum growth rate. Only used with 'optswapyield'.

        cofactor_pairs (optional (list of tuple)): (Default: [('nad_c','nadp_c'), ('nadh_c','nadph_c')])
            Pairs of metabolites that are exchanged against each other in swap reactions.

        find_max_w (optional (bool)): (Default: False)
            Calibrate the bounds of the dual variables with additional LPs instead of using max_w.

        solver (optional (str)):
            Solver backend: 'glpk' or 'cplex'.

        solver_params (optional (SolverParams) or (dict)):
            Tolerances and time limit of the solver.
    """

    allowed_keys = {
        KNOCK_TYPE, TARGET_RXN, SWAP_NUM, KNOCKOUT_NUM, INTERVENTION_NUM, KNOCKABLE_RXNS, NOT_KNOCKABLE_RXNS, MAX_W,
        BIOMASS_RXN, DH_RXNS, ALLOW_DH_KO, MIN_BIOMASS, COFACTOR_PAIRS, FIND_MAX_W, SOLVER, SOLVER_PARAMS
    }

    def __init__(self, **kwargs):
        # set all keys passed in kwargs
        for key, value in kwargs.items():
            if key in self.allowed_keys:
                self[key] = value
            else:
                raise ConfigurationError("Key " + key + " is not supported.")
        # set all undefined keys to None
        for key in self.allowed_keys:
            if key not in kwargs.keys():
                self[key] = None

        if self[KNOCK_TYPE] is None:
            self[KNOCK_TYPE] = OPTSWAP
        if self[KNOCK_TYPE] not in KNOCK_TYPES:
            raise ConfigurationError('"' + KNOCK_TYPE + '" must be "' + '", "'.join(KNOCK_TYPES) + '".')
        if not isinstance(self[TARGET_RXN], str) or not self[TARGET_RXN]:
            raise ConfigurationError('A target reaction (' + TARGET_RXN + ') must be provided.')

        for key, default in [(KNOCKOUT_NUM, -1), (SWAP_NUM, -1), (INTERVENTION_NUM, 1)]:
            if self[key] is None:
                self[key] = default
            elif not isinstance(self[key], Integral) or isinstance(self[key], bool):
                raise ConfigurationError('"' + key + '" must be an integer (negative: no limit).')
            self[key] = int(self[key])

        if self[MAX_W] is None:
            self[MAX_W] = 1e3 if self[KNOCK_TYPE] in [OPTKNOCK, OPTSWAPYIELD] else 1e7
        if not isinstance(self[MAX_W], Real) or self[MAX_W] <= 0:
            raise ConfigurationError('"' + MAX_W + '" must be a positive number.')
        self[MAX_W] = float(self[MAX_W])

        if self[BIOMASS_RXN] is not None:
            if isinstance(self[BIOMASS_RXN], str):
                self[BIOMASS_RXN] = [self[BIOMASS_RXN]]
            self[BIOMASS_RXN] = list(self[BIOMASS_RXN])

        for key in [KNOCKABLE_RXNS, NOT_KNOCKABLE_RXNS, DH_RXNS]:
            if isinstance(self[key], str):
                self[key] = [self[key]]
            elif self[key] is not None:
                self[key] = list(self[key])
        if self[NOT_KNOCKABLE_RXNS] is None:
            self[NOT_KNOCKABLE_RXNS] = []

        if self[KNOCK_TYPE] in SWAP_TYPES:
            if self[DH_RXNS] is None:
                self[DH_RXNS] = deepcopy(DEFAULT_DH_RXNS)
            if not self[DH_RXNS]:
                raise ConfigurationError('Knock type "' + self[KNOCK_TYPE] + '" requires swappable reactions (' + DH_RXNS +
                                         ').')
        else:
            self[DH_RXNS] = []

        if self[COFACTOR_PAIRS] is None:
            self[COFACTOR_PAIRS] = deepcopy(DEFAULT_COFACTOR_PAIRS)
        self[COFACTOR_PAIRS] = [tuple(p) for p in self[COFACTOR_PAIRS]]
        if not all(len(p) == 2 for p in self[COFACTOR_PAIRS]):
            raise ConfigurationError('"' + COFACTOR_PAIRS + '" must be a list of metabolite pairs.')

        if self[ALLOW_DH_KO] is None:
            self[ALLOW_DH_KO] = True
        self[ALLOW_DH_KO] = bool(self[ALLOW_DH_KO])
        if self[FIND_MAX_W] is None:
            self[FIND_MAX_W] = False
        self[FIND_MAX_W] = bool(self[FIND_MAX_W])

        if self[MIN_BIOMASS] is None:
            self[MIN_BIOMASS] = 0.0
        if not isinstance(self[MIN_BIOMASS], Real):
            raise ConfigurationError('"' + MIN_BIOMASS + '" must be a number.')
        self[MIN_BIOMASS] = float(self[MIN_BIOMASS])

        if self[SOLVER_PARAMS] is None:
            self[SOLVER_PARAMS] = SolverParams()
        elif not isinstance(self[SOLVER_PARAMS], SolverParams):
            self[SOLVER_PARAMS] = SolverParams(**self[SOLVER_PARAMS])
        if self[SOLVER] is not None and self[SOLVER] not in [GLPK, CPLEX]:
            raise ConfigurationError('"' + SOLVER + '" must be "' + GLPK + '" or "' + CPLEX + '".')

    def is_swap_type(self) -> bool:
        """True for knock types with cofactor swap decisions"""
        return self[KNOCK_TYPE] in SWAP_TYPES

    def copy(self):
        """Create a deep copy of the setup."""
        return OptSwapSetup(**deepcopy(dict(self)))
