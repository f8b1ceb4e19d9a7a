import pytest
from cobra import Model, Reaction, Metabolite
from optswap.names import *

# Initialize an empty list for solvers
solvers = [GLPK]

# Add CPLEX to the list if the cplex package is installed
try:
    import cplex
    solvers.append(CPLEX)
except ImportError:
    pass  # CPLEX is not installed


@pytest.fixture(params=solvers, scope="session")
def curr_solver(request: pytest.FixtureRequest) -> str:
    """Provide session-level fixture for parametrized solver names."""
    return request.param


def build_model(model_id, reactions, objective):
    """Build a cobra model from a list of (id, stoichiometry, lower bound, upper bound)"""
    model = Model(model_id)
    mets = {}
    for _, stoich, _, _ in reactions:
        for m in stoich:
            if m not in mets:
                mets[m] = Metabolite(m, compartment='c')
    model.add_metabolites(list(mets.values()))
    reacs = []
    for reac_id, stoich, lb, ub in reactions:
        r = Reaction(reac_id, lower_bound=lb, upper_bound=ub)
        r.add_metabolites({mets[m]: v for m, v in stoich.items()})
        reacs.append(r)
    model.add_reactions(reacs)
    model.objective = objective
    return model


@pytest.fixture
def model_knock():
    """Network in which knocking out R1 couples the production of P to growth.

    Growth is maximal (20) when the substrate is converted by R1. Without R1, all
    substrate is converted by R2, which yields biomass and P in equal amounts (10).
    """
    return build_model('model_knock', [
        ('EX_S', {'S': 1}, 0, 10),
        ('R1', {'S': -1, 'X': 2}, -50, 50),
        ('R2', {'S': -1, 'X': 1, 'P': 1}, 0, 50),
        ('BM', {'X': -1}, 0, 50),
        ('EX_P', {'P': -1}, 0, 50),
    ], 'BM')


@pytest.fixture
def model_swap():
    """Network in which a cofactor swap of DH couples the production of P to growth.

    DH reduces NAD, which is reoxidized by R_nadh. P is only formed by R_P when
    NADPH is available, i.e., when DH uses NADP instead of NAD.
    """
    return build_model('model_swap', [
        ('EX_S', {'S': 1}, 0, 10),
        ('DH', {'S': -1, 'nad_c': -1, 'X': 1, 'nadh_c': 1}, 0, 50),
        ('BM', {'X': -1}, 0, 50),
        ('R_nadh', {'nadh_c': -1, 'nad_c': 1}, 0, 50),
        ('R_P', {'nadph_c': -1, 'nadp_c': 1, 'P': 1}, 0, 50),
        ('EX_P', {'P': -1}, 0, 50),
    ], 'BM')


@pytest.fixture
def model_gate():
    """Linear network with three reversible reactions"""
    return build_model('model_gate', [
        ('EX_A', {'A': 1}, -10, 10),
        ('R1', {'A': -1, 'B': 1}, -5, 8),
        ('EX_B', {'B': -1}, -10, 10),
    ], 'EX_B')
