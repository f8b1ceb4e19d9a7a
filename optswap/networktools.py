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
"""Metabolic network handling: model record, cofactor swaps, model preparation and flux splitting"""

import logging
import numpy as np
from copy import deepcopy
from scipy import sparse
from typing import Dict, List, Tuple
from cobra import Model, Metabolite, Reaction
from cobra.util import create_stoichiometric_matrix
from optswap.names import *
from optswap.optSwapSetup import ConfigurationError, ReactionNotFoundError, StructuralError, DEFAULT_COFACTOR_PAIRS

# stoichiometric coefficients below this threshold are treated as numerical noise
STOICH_NOISE = 1e-3


class MetabolicModel:
    """Array representation of a stoichiometric model

    The stoichiometric matrix S (metabolites x reactions) is stored as a sparse matrix. Its
    columns correspond 1:1 with the reaction identifiers and the bound and objective vectors.
    The fields organism_objective, organism_objective_ind, c_chemical and chemical_ind are
    only set for prepared models (see prepare_model).

    Example:
        m = MetabolicModel.from_cobra(cobra_model)

    Args:
        reac_ids (list of str):
            Reaction identifiers.

        met_ids (list of str):
            Metabolite identifiers.

        S (sparse matrix or numpy.array):
            Stoichiometric matrix.

        lb, ub (list of float):
            Lower and upper flux bounds.

        c (optional (list of float)):
            Coefficients of the growth objective.

        id (optional (str)): (Default: 'model')
            Model identifier.
    """

    def __init__(self, reac_ids, met_ids, S, lb, ub, c=None, id='model'):
        self.id = id
        self.reac_ids = list(reac_ids)
        self.met_ids = list(met_ids)
        self.S = sparse.csr_matrix(S, dtype=float)
        self.lb = [float(v) for v in lb]
        self.ub = [float(v) for v in ub]
        if c is None:
            c = [0.0] * len(self.reac_ids)
        self.c = [float(v) for v in c]
        self.organism_objective = None
        self.organism_objective_ind = None
        self.c_chemical = None
        self.chemical_ind = None
        numr = len(self.reac_ids)
        if self.S.shape != (len(self.met_ids), numr) or len(self.lb) != numr or len(self.ub) != numr or len(self.c) != numr:
            raise ConfigurationError('Stoichiometric matrix, reaction identifiers, bounds and objective of model ' + str(id) +
                                     ' do not match in size.')
        if len(set(self.reac_ids)) != numr:
            raise ConfigurationError('Reaction identifiers of model ' + str(id) + ' are not unique.')
        if any(l > u for l, u in zip(self.lb, self.ub)):
            raise ConfigurationError('Model ' + str(id) + ' has reactions with lower bounds above their upper bounds.')

    @classmethod
    def from_cobra(cls, model: Model):
        """Create an array representation of a cobra.Model"""
        S = sparse.csr_matrix(create_stoichiometric_matrix(model))
        return cls(model.reactions.list_attr('id'),
                   model.metabolites.list_attr('id'),
                   S, [r.lower_bound for r in model.reactions], [r.upper_bound for r in model.reactions],
                   [r.objective_coefficient for r in model.reactions],
                   id=model.id)

    def to_cobra(self) -> Model:
        """Create a cobra.Model from the array representation"""
        model = Model(self.id)
        mets = [Metabolite(m) for m in self.met_ids]
        model.add_metabolites(mets)
        S = self.S.tocsc()
        reactions = []
        for i, reac_id in enumerate(self.reac_ids):
            r = Reaction(reac_id, lower_bound=self.lb[i], upper_bound=self.ub[i])
            col = S[:, i].tocoo()
            r.add_metabolites({mets[m]: float(v) for m, v in zip(col.row, col.data)})
            reactions.append(r)
        model.add_reactions(reactions)
        for r, c in zip(model.reactions, self.c):
            r.objective_coefficient = c
        return model

    @property
    def num_reacs(self) -> int:
        return len(self.reac_ids)

    @property
    def num_mets(self) -> int:
        return len(self.met_ids)

    def reac_index(self, reac_id) -> int:
        """Index of a reaction identifier, raises ReactionNotFoundError if missing"""
        try:
            return self.reac_ids.index(reac_id)
        except ValueError:
            raise ReactionNotFoundError('Reaction ' + str(reac_id) + ' not found in model ' + str(self.id) + '.') from None

    def copy(self):
        return deepcopy(self)


def prepare_model(model: MetabolicModel, chemical_ind, biomass_rxn=None) -> MetabolicModel:
    """Prepare a model for the bilevel problem construction

    The returned copy of the model carries unit vectors for the growth objective
    (organism_objective) and the target chemical (c_chemical) together with their indices.
    Stoichiometric coefficients with an absolute value below 1e-3 are set to zero.

    Example:
        prepared = prepare_model(model, model.reac_index('EX_etoh_e'), 'BIOMASS_Ecoli_core_w_GAM')

    Args:
        model (MetabolicModel):
            The metabolic model.

        chemical_ind (int):
            Index of the target chemical reaction.

        biomass_rxn (optional (str) or (list of str)):
            Identifier(s) of the growth reaction. The first identifier found in the model is used.
            By default, the reactions with a nonzero objective coefficient are used.

    Returns:
        (MetabolicModel):
            A prepared copy of the model.
    """
    if biomass_rxn is None:
        biomass_rxn = [r for r, c in zip(model.reac_ids, model.c) if c != 0]
        if not biomass_rxn:
            raise ReactionNotFoundError('Model ' + str(model.id) + ' has no growth objective and no biomass reaction was given.')
    elif isinstance(biomass_rxn, str):
        biomass_rxn = [biomass_rxn]
    found = [r for r in biomass_rxn if r in model.reac_ids]
    if not found:
        raise ReactionNotFoundError('Biomass reaction ' + str(biomass_rxn) + ' not found in model ' + str(model.id) + '.')
    if len(found) > 1:
        logging.warning('Multiple biomass reactions found. Using ' + found[0] + ' as growth objective.')
    if not isinstance(chemical_ind, (int, np.integer)) or not 0 <= chemical_ind < model.num_reacs:
        raise ReactionNotFoundError('Target chemical index ' + str(chemical_ind) + ' is not a reaction of model ' +
                                    str(model.id) + '.')
    growth_ind = model.reac_index(found[0])
    if growth_ind == chemical_ind:
        raise ConfigurationError('Growth reaction and target chemical reaction must differ.')

    prepared = model.copy()
    prepared.organism_objective = [0.0] * model.num_reacs
    prepared.organism_objective[growth_ind] = 1.0
    prepared.organism_objective_ind = growth_ind
    prepared.c_chemical = [0.0] * model.num_reacs
    prepared.c_chemical[int(chemical_ind)] = 1.0
    prepared.chemical_ind = int(chemical_ind)
    S = prepared.S.tocsr(copy=True)
    S.data[np.abs(S.data) < STOICH_NOISE] = 0.0
    S.eliminate_zeros()
    prepared.S = S
    return prepared


def swap_model(model: Model, dh_rxns, cofactor_pairs=None) -> Tuple[Model, List, np.ndarray]:
    """Add cofactor-swapped variants of dehydrogenase reactions to a model

    For each reaction in dh_rxns, a copy '<id>_swap' is added to the model in which every
    cofactor is replaced by its partner (by default: nad_c <-> nadp_c and nadh_c <-> nadph_c).
    The swapped reaction inherits the flux bounds of the native reaction. The native reactions
    of the model keep their positions, swapped reactions are appended.

    Example:
        swapped, swap_ids, qs_coupling = swap_model(model, ['GAPD', 'GND'])

    Args:
        model (cobra.Model):
            A metabolic model that is an instance of the cobra.Model class. The model is not altered.

        dh_rxns (list of str):
            Identifiers of the swappable reactions.

        cofactor_pairs (optional (list of tuple)):
            Pairs of metabolite identifiers that are exchanged against each other.

    Returns:
        (Tuple):
            The extended copy of the model, the identifiers of the new reactions and an integer
            array of (native index, swapped index) pairs.
    """
    if cofactor_pairs is None:
        cofactor_pairs = DEFAULT_COFACTOR_PAIRS
    partner = {}
    for a, b in cofactor_pairs:
        partner[a] = b
        partner[b] = a
    if len(set(dh_rxns)) != len(dh_rxns):
        raise ConfigurationError('Swappable reactions must be unique: ' + str(dh_rxns))

    swapped = model.copy()
    reac_ids = swapped.reactions.list_attr('id')
    met_ids = set(swapped.metabolites.list_attr('id'))
    new_reactions = []
    qs_coupling = []
    for k, reac_id in enumerate(dh_rxns):
        if reac_id not in reac_ids:
            raise ReactionNotFoundError('Swappable reaction ' + reac_id + ' not found in model ' + str(model.id) + '.')
        native = swapped.reactions.get_by_id(reac_id)
        if not any(met.id in partner for met in native.metabolites):
            raise ConfigurationError('Reaction ' + reac_id + ' does not use any swappable cofactor.')
        stoich = {}
        for met, coeff in native.metabolites.items():
            if met.id in partner:
                if partner[met.id] not in met_ids:
                    raise ConfigurationError('Cofactor ' + partner[met.id] + ' (swap partner of ' + met.id +
                                             ') not found in model ' + str(model.id) + '.')
                stoich[partner[met.id]] = stoich.get(partner[met.id], 0.0) + coeff
            else:
                stoich[met.id] = stoich.get(met.id, 0.0) + coeff
        swap_id = reac_id + '_swap'
        if swap_id in reac_ids:
            raise ConfigurationError('Reaction ' + swap_id + ' already exists in model ' + str(model.id) + '.')
        r = Reaction(swap_id, lower_bound=native.lower_bound, upper_bound=native.upper_bound)
        r.name = (native.name or reac_id) + ' (swapped cofactors)'
        new_reactions.append((r, stoich))
        qs_coupling.append([reac_ids.index(reac_id), len(reac_ids) + k])
    swapped.add_reactions([r for r, _ in new_reactions])
    for r, stoich in new_reactions:
        r.add_metabolites({swapped.metabolites.get_by_id(m): c for m, c in stoich.items()})
    logging.info('  Added ' + str(len(new_reactions)) + ' cofactor-swapped reactions.')
    return swapped, [r.id for r, _ in new_reactions], np.array(qs_coupling, dtype=int).reshape((-1, 2))


class OneWayFluxModel:
    """A prepared model in which reversible reactions are split into two one-way fluxes

    The forward column of a reversible reaction keeps its index and the bounds [0, ub]. The
    reverse column '<id>_rev' (bounds [0, -lb], stoichiometry -S_i) is appended. All index
    sets refer to the columns of the split model.

    Attributes:
        model (MetabolicModel): The split model (prepared fields extended to the reverse columns).
        num_orig (int): Number of reactions before splitting.
        coupled (numpy.ndarray): Pairs (forward column, reverse column) of split reactions.
        qs_coupling (numpy.ndarray): Pairs (q column, s column) of swappable reactions.
        y_ind, y_coupled, q_ind, q_coupled, s_ind, s_coupled (list of int):
            Knockout candidates, swappable and swapped reactions and their reverse columns.
        not_yqs, not_yqs_coupled (list of int): Ungated forward and reverse columns.
    """

    def __init__(self, model, num_orig, coupled, qs_coupling, y_ind, q_ind, s_ind):
        self.model = model
        self.num_orig = num_orig
        self.coupled = np.array(coupled, dtype=int).reshape((-1, 2))
        self.qs_coupling = np.array(qs_coupling, dtype=int).reshape((-1, 2))
        rev_of = self.rev_of
        self.y_ind = list(y_ind)
        self.q_ind = list(q_ind)
        self.s_ind = list(s_ind)
        self.y_coupled = [rev_of[i] for i in self.y_ind if i in rev_of]
        self.q_coupled = [rev_of[i] for i in self.q_ind if i in rev_of]
        self.s_coupled = [rev_of[i] for i in self.s_ind if i in rev_of]
        gated = set(self.y_ind + self.q_ind + self.s_ind)
        self.not_yqs = [i for i in range(num_orig) if i not in gated]
        self.not_yqs_coupled = [rev_of[i] for i in self.not_yqs if i in rev_of]
        self.validate()

    @property
    def rev_of(self) -> Dict[int, int]:
        """Map from forward columns to the reverse columns of split reactions"""
        return {int(f): int(r) for f, r in self.coupled}

    @property
    def gated(self) -> List[int]:
        """Gated columns in the order y, y_c, q, q_c, s, s_c"""
        return self.y_ind + self.y_coupled + self.q_ind + self.q_coupled + self.s_ind + self.s_coupled

    @property
    def binaries(self) -> List[int]:
        """Columns that are governed by a binary variable in the order y, q, s"""
        return self.y_ind + self.q_ind + self.s_ind

    def validate(self):
        """Check cardinalities, disjointness and bounds of the index sets"""
        if len(self.q_ind) != len(self.s_ind) or len(set(self.q_ind)) != len(self.q_ind) or \
           len(set(self.s_ind)) != len(self.s_ind):
            raise ConfigurationError('Swappable reactions do not match swap reactions (' + str(len(self.q_ind)) + ' vs. ' +
                                     str(len(self.s_ind)) + ').')
        sets = {'y': set(self.y_ind), 'q': set(self.q_ind), 's': set(self.s_ind)}
        for a, b in [('y', 'q'), ('y', 's'), ('q', 's')]:
            overlap = sets[a] & sets[b]
            if overlap:
                raise StructuralError('Index sets ' + a + ' and ' + b + ' overlap in reactions ' +
                                      str([self.model.reac_ids[i] for i in sorted(overlap)]) + '.')
        if len(sets['y']) != len(self.y_ind):
            raise StructuralError('Knockout candidates are not unique.')
        for i in self.gated:
            if np.isinf(self.model.lb[i]) or np.isinf(self.model.ub[i]):
                raise ConfigurationError('Reaction ' + self.model.reac_ids[i] + ' can only be knocked out or swapped ' +
                                         'when its flux bounds are finite.')
        numr = self.model.num_reacs
        if len(self.not_yqs) + len(self.not_yqs_coupled) + len(self.gated) != numr:
            raise StructuralError('Gated and ungated reactions do not cover all ' + str(numr) + ' one-way fluxes.')

    def net_fluxes(self, v) -> Dict[str, float]:
        """Recombine one-way fluxes to net fluxes of the original reactions"""
        x = [float(v[i]) for i in range(self.num_orig)]
        for f, r in self.coupled:
            x[f] -= float(v[r])
        return {self.model.reac_ids[i]: x[i] for i in range(self.num_orig)}


def split_one_way_fluxes(model: MetabolicModel,
                         knockable_rxns=None,
                         not_knockable_rxns=None,
                         qs_coupling=None) -> OneWayFluxModel:
    """Split reversible reactions and determine the knockout and swap index sets

    Every reaction with lb < 0 < ub is split into a forward one-way flux [0, ub] (same column)
    and a reverse one-way flux [0, -lb] that is appended as a new column. Objective vectors
    are extended with the negated coefficients of the forward columns.

    By default, knockout candidates are all reactions except for exchange-like reactions
    (single stoichiometric entry), the growth and target reactions, reactions with a
    positive lower bound or infinite bounds and swappable or swapped reactions. Explicitly
    given candidates must have finite bounds.

    Example:
        split = split_one_way_fluxes(prepared, not_knockable_rxns=['ATPM'], qs_coupling=qs)

    Args:
        model (MetabolicModel):
            A prepared model (see prepare_model).

        knockable_rxns (optional (list of str)):
            Knockout candidates. Overrides the default candidate set.

        not_knockable_rxns (optional (list of str)):
            Reactions that are removed from the candidate set.

        qs_coupling (optional (numpy.ndarray)):
            Pairs of (swappable, swapped) reaction indices (see swap_model).

    Returns:
        (OneWayFluxModel):
            The split model with all index sets and coupling relations.
    """
    if model.organism_objective_ind is None or model.chemical_ind is None:
        raise ConfigurationError('Model must be prepared (prepare_model) before fluxes are split.')
    if qs_coupling is None:
        qs_coupling = np.zeros((0, 2), dtype=int)
    qs_coupling = np.array(qs_coupling, dtype=int).reshape((-1, 2))
    numr = model.num_reacs
    if qs_coupling.size and (qs_coupling.min() < 0 or qs_coupling.max() >= numr):
        raise ConfigurationError('Swap coupling refers to reactions that are not part of the model.')
    q_ind = [int(i) for i in qs_coupling[:, 0]]
    s_ind = [int(i) for i in qs_coupling[:, 1]]

    # knockout candidates
    if knockable_rxns is not None:
        y_ind = [model.reac_index(r) for r in knockable_rxns]
    else:
        S = model.S.tocsc()
        swap_rxns = set(q_ind + s_ind)
        y_ind = [
            i for i in range(numr) if S[:, i].nnz > 1 and i != model.organism_objective_ind and i != model.chemical_ind and
            model.lb[i] <= 0 and i not in swap_rxns and np.isfinite(model.lb[i]) and np.isfinite(model.ub[i])
        ]
    if not_knockable_rxns:
        not_ko = set(model.reac_index(r) for r in not_knockable_rxns)
        y_ind = [i for i in y_ind if i not in not_ko]

    # split reversible reactions
    rev = [i for i in range(numr) if model.lb[i] < 0 < model.ub[i]]
    coupled = [[i, numr + k] for k, i in enumerate(rev)]
    split = model.copy()
    split.reac_ids = model.reac_ids + [model.reac_ids[i] + '_rev' for i in rev]
    split.S = sparse.hstack((model.S, -model.S[:, rev])).tocsr()
    split.lb = [0.0 if i in rev else l for i, l in enumerate(model.lb)] + [0.0] * len(rev)
    split.ub = model.ub + [-model.lb[i] for i in rev]
    split.c = model.c + [-model.c[i] for i in rev]
    split.organism_objective = model.organism_objective + [-model.organism_objective[i] for i in rev]
    split.c_chemical = model.c_chemical + [-model.c_chemical[i] for i in rev]

    one_way = OneWayFluxModel(split, numr, coupled, qs_coupling, y_ind, q_ind, s_ind)
    logging.info('  Split ' + str(len(rev)) + ' reversible reactions into one-way fluxes (' + str(split.num_reacs) +
                 ' fluxes).')
    logging.info('  ' + str(len(one_way.y_ind)) + ' knockout candidates, ' + str(len(one_way.q_ind)) +
                 ' swappable reactions.')
    return one_way
