"""Test if basic lp-functions finish correctly (FBA, dual bounds, verification of designs)."""
import pytest
import optswap as osw
from optswap.names import *
from numpy import isnan
from scipy import sparse


def test_fba(curr_solver, model_knock):
    """Test FBA with the growth objective."""
    sol = osw.fba(model_knock, solver=curr_solver)
    assert (sol.status == OPTIMAL)
    assert (round(sol.objective_value, 9) == 20)
    assert (round(sol.fluxes['R1'], 9) == 10)


def test_fba_custom_objective(curr_solver, model_knock):
    """Test FBA with a custom objective and sense."""
    # R1 runs backwards (2 X -> S) to recycle the X formed by R2
    sol = osw.fba(model_knock, obj='EX_P', solver=curr_solver)
    assert (round(sol.objective_value, 9) == 20)
    assert (round(sol.fluxes['R1'], 9) == -10)
    sol = osw.fba(model_knock, obj={'EX_P': 1, 'BM': 1}, obj_sense='minimize', solver=curr_solver)
    assert (round(sol.objective_value, 9) == 0)


def test_fba_infeasible(curr_solver, model_knock):
    """Test infeasible FBA."""
    m = osw.MetabolicModel.from_cobra(model_knock)
    lb = list(m.lb)
    lb[m.reac_index('BM')] = 30
    sol = osw.fba(m, lb=lb, solver=curr_solver)
    assert (sol.status == INFEASIBLE)
    assert (isnan(sol.objective_value))


def test_fba_unknown_key(model_knock):
    with pytest.raises(osw.ConfigurationError):
        osw.fba(model_knock, constraints=['R1 = 0'])


def test_dual_bounds(curr_solver):
    """Test dual bounds on the optimal face of max x1 + x2 s.t. x1 <= 2, x2 <= 3, x1 + x2 <= 4."""
    A = sparse.csr_matrix([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    ub_w = osw.dual_bounds(A, [2.0, 3.0, 4.0], [1.0, 1.0], 100.0, solver=curr_solver)
    assert (len(ub_w) == 3)
    assert (ub_w == pytest.approx([0.0, 0.0, 1.0], abs=1e-6))


def test_verify_design(curr_solver, model_knock):
    """Test the verification of a knockout by FBA."""
    wild_type = osw.verify_design(model_knock, 'EX_P', 'BM', solver=curr_solver)
    assert (wild_type['growth'] == pytest.approx(20))
    assert (wild_type['chemical_max'] == pytest.approx(0, abs=1e-6))
    mutant = osw.verify_design(model_knock, 'EX_P', 'BM', inactive=['R1'], solver=curr_solver)
    assert (mutant['growth'] == pytest.approx(10))
    assert (mutant['chemical_min'] == pytest.approx(10))
    assert (mutant['chemical_max'] == pytest.approx(10))


def test_verify_lethal_design(curr_solver, model_knock):
    """Test that a design without substrate uptake has no growth and no production."""
    result = osw.verify_design(model_knock, 'EX_P', 'BM', inactive=['EX_S'], solver=curr_solver)
    assert (result['growth'] == pytest.approx(0, abs=1e-9))
    assert (result['chemical_max'] == pytest.approx(0, abs=1e-9))
