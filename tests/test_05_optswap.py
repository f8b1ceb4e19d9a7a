"""Test the computation of strain designs with OptKnock, RobustKnock, OptSwap and OptSwapYield."""
import pytest
import optswap as osw
from optswap.names import *
from numpy import inf

SOLVER_PARAMETERS = {T_LIMIT: 60}


@pytest.mark.timeout(120)
def test_optknock(curr_solver, model_knock):
    """Knocking out R1 couples the production of P to growth."""
    sol = osw.optknock(model_knock,
                       target_rxn='EX_P',
                       knockable_rxns=['R1'],
                       knockout_num=1,
                       max_w=1000,
                       solver=curr_solver,
                       solver_params=SOLVER_PARAMETERS)
    assert (sol.status == OPTIMAL)
    assert (len(sol.milp_problem.int_vars) == 1)
    assert (sol.chemical == pytest.approx(10, abs=1e-5))
    assert (sol.knockouts == ['R1'])
    assert (sol.swaps == [])
    assert (sol.get_interventions() == {'R1': KNOCKOUT})
    assert (sol.fluxes['EX_P'] == pytest.approx(10, abs=1e-5))
    assert (sol.fluxes['BM'] == pytest.approx(10, abs=1e-5))


@pytest.mark.timeout(120)
def test_optknock_no_knockouts(curr_solver, model_knock):
    """Without knockouts, growth-optimal flux states do not produce P."""
    sol = osw.optknock(model_knock,
                       target_rxn='EX_P',
                       knockable_rxns=['R1'],
                       knockout_num=0,
                       max_w=1000,
                       solver=curr_solver,
                       solver_params=SOLVER_PARAMETERS)
    assert (sol.status == OPTIMAL)
    assert (sol.knockouts == [])
    assert (sol.chemical == pytest.approx(0, abs=1e-5))


@pytest.mark.timeout(120)
def test_optknock_array_model(curr_solver, model_knock):
    """Array models and a setup object give the same result as cobra models with keyword arguments."""
    setup = osw.OptSwapSetup(knock_type=OPTKNOCK, target_rxn='EX_P', knockable_rxns=['R1'], max_w=1000)
    sol = osw.optswap(osw.MetabolicModel.from_cobra(model_knock),
                      setup=setup,
                      solver=curr_solver,
                      solver_params=SOLVER_PARAMETERS)
    assert (sol.knock_type == OPTKNOCK)
    assert (sol.knockouts == ['R1'])
    assert (sol.chemical == pytest.approx(10, abs=1e-5))


@pytest.mark.timeout(120)
def test_optknock_find_max_w(curr_solver, model_knock):
    """Calibrated bounds of the dual variables keep the problem feasible."""
    sol = osw.optknock(model_knock,
                       target_rxn='EX_P',
                       knockable_rxns=['R1'],
                       find_max_w=True,
                       solver=curr_solver,
                       solver_params=SOLVER_PARAMETERS)
    assert (sol.has_solution())
    assert (sol.chemical >= -1e-6)


@pytest.mark.timeout(120)
def test_robustknock(curr_solver, model_knock):
    """The knockout of R1 guarantees production at maximal growth."""
    sol = osw.robustknock(model_knock,
                          target_rxn='EX_P',
                          knockable_rxns=['R1'],
                          knockout_num=1,
                          max_w=1000,
                          solver=curr_solver,
                          solver_params=SOLVER_PARAMETERS)
    assert (sol.status == OPTIMAL)
    assert (sol.knockouts == ['R1'])
    assert (sol.chemical == pytest.approx(10, abs=1e-4))
    assert (sol.fluxes is None)


@pytest.mark.timeout(120)
def test_optswap(curr_solver, model_swap):
    """Swapping DH to NADP provides the NADPH that is needed to produce P."""
    sol = osw.optswap(model_swap,
                      target_rxn='EX_P',
                      dh_rxns=['DH'],
                      intervention_num=1,
                      max_w=1000,
                      solver=curr_solver,
                      solver_params=SOLVER_PARAMETERS)
    assert (sol.status == OPTIMAL)
    assert (sol.swaps == ['DH'])
    assert (sol.knockouts == [])
    assert (sol.chemical == pytest.approx(10, abs=1e-4))
    assert (sol.q == [0] and sol.s == [1])
    # verify the design with FBA on the model with swapped reactions
    swapped, _, _ = osw.swap_model(model_swap, ['DH'])
    assert (sol.get_inactive_reactions() == ['DH'])
    result = osw.verify_design(swapped, 'EX_P', 'BM', inactive=sol.get_inactive_reactions(), solver=curr_solver)
    assert (result['growth'] == pytest.approx(10))
    assert (result['chemical_min'] == pytest.approx(10, abs=1e-6))


@pytest.mark.timeout(120)
def test_optswap_without_interventions(curr_solver, model_swap):
    sol = osw.optswap(model_swap,
                      target_rxn='EX_P',
                      dh_rxns=['DH'],
                      intervention_num=0,
                      max_w=1000,
                      solver=curr_solver,
                      solver_params=SOLVER_PARAMETERS)
    assert (sol.status == OPTIMAL)
    assert (sol.swaps == [] and sol.knockouts == [])
    assert (sol.chemical == pytest.approx(0, abs=1e-4))


@pytest.mark.timeout(120)
def test_optswap_yield(curr_solver, model_swap):
    """Maximal production with a swap of DH and a minimum growth rate."""
    sol = osw.optswap_yield(model_swap,
                            target_rxn='EX_P',
                            dh_rxns=['DH'],
                            min_biomass=1,
                            swap_num=1,
                            solver=curr_solver,
                            solver_params=SOLVER_PARAMETERS)
    assert (sol.status == OPTIMAL)
    assert (sol.y == [])
    assert (sol.swaps == ['DH'])
    assert (sol.chemical == pytest.approx(10, abs=1e-5))
    assert (sol.fluxes['EX_P'] == pytest.approx(10, abs=1e-5))
    assert (sol.fluxes['BM'] >= 1 - 1e-6)


@pytest.mark.timeout(120)
def test_optswap_yield_infeasible(curr_solver, model_swap):
    """A minimum growth rate above the maximal growth rate is infeasible."""
    sol = osw.optswap_yield(model_swap,
                            target_rxn='EX_P',
                            dh_rxns=['DH'],
                            min_biomass=100,
                            solver=curr_solver,
                            solver_params=SOLVER_PARAMETERS)
    assert (not sol.has_solution())
    assert (sol.knockouts == [] and sol.swaps == [])
    assert (sol.get_inactive_reactions() == [])
    assert (sol.to_dict()['status'] == sol.status)


@pytest.mark.timeout(120)
def test_optknock_infinite_bounds(curr_solver, model_knock):
    """A reaction with infinite bounds stays ungated when no candidates are given."""
    m = osw.MetabolicModel.from_cobra(model_knock)
    m.lb[m.reac_index('R1')], m.ub[m.reac_index('R1')] = -inf, inf
    sol = osw.optknock(m,
                       target_rxn='EX_P',
                       knockout_num=1,
                       max_w=1000,
                       solver=curr_solver,
                       solver_params=SOLVER_PARAMETERS)
    assert (sol.status == OPTIMAL)
    assert ('R1' not in sol.knockouts)
    assert (sol.chemical == pytest.approx(0, abs=1e-4))
