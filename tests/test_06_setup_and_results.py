"""Test the validation of setups and the handling of solutions (saving, loading, batch computations)."""
import pytest
import optswap as osw
from optswap.names import *
from pandas import read_csv


def test_setup_defaults():
    setup = osw.OptSwapSetup(target_rxn='EX_etoh_e')
    assert (setup[KNOCK_TYPE] == OPTSWAP)
    assert (setup[KNOCKOUT_NUM] == -1 and setup[SWAP_NUM] == -1 and setup[INTERVENTION_NUM] == 1)
    assert (setup[MAX_W] == 1e7)
    assert (setup[DH_RXNS] == osw.DEFAULT_DH_RXNS)
    assert (setup[ALLOW_DH_KO] is True)
    assert (isinstance(setup[SOLVER_PARAMS], osw.SolverParams))
    assert (setup[SOLVER_PARAMS][T_LIMIT] == 10800.0)
    assert (setup.is_swap_type())
    setup = osw.OptSwapSetup(knock_type=OPTKNOCK, target_rxn='EX_etoh_e', dh_rxns=['GAPD'])
    assert (setup[MAX_W] == 1e3)
    assert (setup[DH_RXNS] == [])
    assert (not setup.is_swap_type())
    assert (osw.OptSwapSetup(knock_type=OPTSWAPYIELD, target_rxn='EX_etoh_e')[MAX_W] == 1e3)
    assert (osw.OptSwapSetup(knock_type=ROBUSTKNOCK, target_rxn='EX_etoh_e')[MAX_W] == 1e7)


def test_setup_copy():
    setup = osw.OptSwapSetup(target_rxn='EX_etoh_e', not_knockable_rxns='ATPM')
    assert (setup[NOT_KNOCKABLE_RXNS] == ['ATPM'])
    copy = setup.copy()
    copy[NOT_KNOCKABLE_RXNS].append('PFL')
    assert (setup[NOT_KNOCKABLE_RXNS] == ['ATPM'])


@pytest.mark.parametrize('kwargs', [
    dict(target_rxn='EX_etoh_e', constraints='R1 = 0'),
    dict(knock_type='optswap'),
    dict(target_rxn='EX_etoh_e', knock_type='mcs'),
    dict(target_rxn='EX_etoh_e', knockout_num=1.5),
    dict(target_rxn='EX_etoh_e', swap_num=True),
    dict(target_rxn='EX_etoh_e', max_w=0),
    dict(target_rxn='EX_etoh_e', dh_rxns=[]),
    dict(target_rxn='EX_etoh_e', cofactor_pairs=[('nad_c', 'nadp_c', 'fad_c')]),
    dict(target_rxn='EX_etoh_e', solver='gurobi'),
    dict(target_rxn='EX_etoh_e', solver_params={'mip_emphasis': 1}),
    dict(target_rxn='EX_etoh_e', solver_params={T_LIMIT: -1}),
])
def test_setup_errors(kwargs):
    with pytest.raises(osw.ConfigurationError):
        osw.OptSwapSetup(**kwargs)


def test_unknown_target(curr_solver, model_knock):
    with pytest.raises(osw.ReactionNotFoundError):
        osw.optknock(model_knock, target_rxn='EX_Q', solver=curr_solver)
    with pytest.raises(osw.ConfigurationError):
        osw.optknock('model_knock', target_rxn='EX_P', solver=curr_solver)


@pytest.mark.timeout(120)
def test_save_load(curr_solver, model_swap, tmp_path):
    sol = osw.optswap_yield(model_swap, target_rxn='EX_P', dh_rxns=['DH'], min_biomass=1, solver=curr_solver)
    filename = str(tmp_path / 'solution.pkl')
    sol.save(filename)
    loaded = osw.OptSwapSolution.load(filename)
    assert (loaded.status == sol.status)
    assert (loaded.swaps == sol.swaps == ['DH'])
    assert (loaded.to_dict() == sol.to_dict())
    assert ('optswapyield' in repr(loaded))


@pytest.mark.timeout(120)
def test_batch(curr_solver, model_swap, tmp_path):
    log_file = str(tmp_path / 'designs.csv')
    table = osw.optswap_batch(model_swap, ['EX_P', 'R_P'],
                              log_file=log_file,
                              knock_type=OPTSWAPYIELD,
                              dh_rxns=['DH'],
                              min_biomass=1,
                              solver=curr_solver)
    assert (table.shape == (2, 11))
    assert (list(table['target']) == ['EX_P', 'R_P'])
    assert (list(table['knock_type']) == [OPTSWAPYIELD] * 2)
    assert (table['swaps'][0] == ['DH'])
    log = read_csv(log_file)
    assert (log.shape == (2, 11))
    assert (log['swaps'][0] == 'DH')
    assert (log['chemical'][0] == pytest.approx(10, abs=1e-5))


def test_batch_target_kwarg(model_swap):
    with pytest.raises(osw.ConfigurationError):
        osw.optswap_batch(model_swap, ['EX_P'], target_rxn='EX_P')
