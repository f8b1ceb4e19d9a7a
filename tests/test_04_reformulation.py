"""Test the building blocks of the bilevel reformulation (block manifests, primal and dual systems, MILP rows)."""
import pytest
import optswap as osw
from optswap.names import *
from optswap.optSwapProblem import BlockManifest, block_row, build_primal, separate_transpose_join
from optswap.compute_optswap import prepare_split_model
from numpy import array, inf, ones, zeros
from scipy import sparse


def build_problem(model, **kwargs):
    setup = osw.OptSwapSetup(**kwargs)
    split = prepare_split_model(model, setup)
    return osw.OptSwapProblem(split, setup).build()


def test_block_manifest():
    cols = BlockManifest([('v', 3), ('w', 0), ('y', 2)])
    assert (cols.offset('y') == 3)
    assert (cols.slice('v') == slice(0, 3))
    assert (cols.indices('y') == [3, 4])
    assert (cols.indices('w') == [])
    assert (cols.total == 5)
    assert (cols.names == ['v', 'w', 'y'])
    assert ('w' in cols and 'z' not in cols)
    cols.validate(5)
    with pytest.raises(osw.StructuralError):
        cols.validate(6)
    with pytest.raises(osw.StructuralError):
        cols.add('v', 1)
    with pytest.raises(osw.StructuralError):
        cols.offset('z')


def test_block_row():
    cols = BlockManifest([('v', 3), ('y', 2)])
    M = block_row(cols, 1, y=ones((1, 2)))
    assert (M.toarray().tolist() == [[0, 0, 0, 1, 1]])
    with pytest.raises(osw.StructuralError):
        block_row(cols, 1, y=ones((1, 3)))
    with pytest.raises(osw.StructuralError):
        block_row(cols, 1, z=ones((1, 2)))


def test_strong_duality(curr_solver):
    """The embedded dual of max x1 + x2 s.t. x1 <= 2, x2 <= 3, x1 + x2 <= 4 has the optimal value 4."""
    A = sparse.csr_matrix([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    dual = separate_transpose_join(A, sparse.csr_matrix((3, 0)), [2.0, 3.0, 4.0], [1.0, 1.0], 100.0)
    assert (dual.w_size == 3 and dual.z_size == 0)
    assert (dual.C_w == [-2.0, -3.0, -4.0])
    lp = osw.MILP_LP(c=[-v for v in dual.C_w],
                     A_ineq=dual.A_w,
                     b_ineq=dual.B_w,
                     lb=dual.lb_w,
                     ub=dual.ub_w,
                     solver=curr_solver)
    x, opt, status = lp.solve()
    assert (status == OPTIMAL)
    assert (opt == pytest.approx(4.0))
    assert (x == pytest.approx([0.0, 0.0, 1.0], abs=1e-6))


def test_linearization_rows():
    """Every nonzero of the binary block yields one variable z and three linearization rows."""
    A = sparse.csr_matrix([[1.0], [-1.0]])
    Ay = sparse.csr_matrix([[-5.0], [0.0]])
    dual = separate_transpose_join(A, Ay, [0.0, 0.0], [1.0], 10.0, z_size=1)
    assert (dual.z_rows == [0] and dual.z_cols == [0])
    assert (dual.C_w == [0.0, 0.0, -5.0])
    assert (dual.ub_w == [10.0, 10.0, 10.0])
    for name in ['lin_zw', 'lin_zy', 'lin_wzy']:
        assert (dual.rows.size(name) == 1)
    lin_wzy = dual.rows.offset('lin_wzy')
    assert (dual.A_w[lin_wzy].toarray().tolist() == [[1.0, 0.0, -1.0]])
    assert (dual.Ay_w[lin_wzy].toarray().tolist() == [[10.0]])
    assert (dual.B_w[lin_wzy] == 10.0)
    with pytest.raises(osw.StructuralError):
        separate_transpose_join(A, Ay, [0.0, 0.0], [1.0], 10.0, z_size=2)
    with pytest.raises(osw.StructuralError):
        separate_transpose_join(A, Ay, [0.0], [1.0], 10.0)


def gated_flux_range(split, primal, g, solver):
    """Minimal and maximal net flux of R1 with its binary fixed to g"""
    n = primal.A.shape[1]
    A = sparse.hstack((primal.A, primal.Ay)).tocsr()
    net = zeros(n + 1)
    net[split.model.reac_index('R1')] = 1.0
    net[split.model.reac_index('R1_rev')] = -1.0
    lp = osw.MILP_LP(c=list(-net), A_ineq=A, b_ineq=primal.b, lb=[-inf] * n + [g], ub=[inf] * n + [g], solver=solver)
    _, neg_max, status = lp.solve()
    assert (status == OPTIMAL)
    lp.set_objective(list(net))
    _, min_net, status = lp.solve()
    assert (status == OPTIMAL)
    return min_net, -neg_max


def test_gated_bounds(curr_solver, model_gate):
    """Both one-way fluxes of a split reaction are blocked by the binary of the forward flux."""
    setup = osw.OptSwapSetup(knock_type=OPTKNOCK, target_rxn='EX_A', knockable_rxns=['R1'])
    split = prepare_split_model(model_gate, setup)
    primal = build_primal(split)
    assert (primal.bins.total == 1)
    assert (primal.z_size == 2)
    assert (gated_flux_range(split, primal, 1.0, curr_solver) == pytest.approx((-5.0, 8.0)))
    assert (gated_flux_range(split, primal, 0.0, curr_solver) == pytest.approx((0.0, 0.0), abs=1e-9))


def test_block_layout(model_knock, model_swap):
    optknock = build_problem(model_knock, knock_type=OPTKNOCK, target_rxn='EX_P', knockable_rxns=['R1'])
    assert (optknock.cols.names == ['v', 'w', 'z', 'y', 'q', 's'])
    assert (optknock.rows.names == ['duality', 'primal', 'dual'])
    assert (optknock.int_vars == [optknock.cols.offset('y')])
    assert (optknock.vtype.count('B') == 1)
    robust = build_problem(model_knock, knock_type=ROBUSTKNOCK, target_rxn='EX_P', knockable_rxns=['R1'])
    assert (robust.cols.names == ['u', 'z2', 'v', 'y', 'q', 's'])
    assert (robust.rows.names == ['dual2', 'feasibility'])
    yield_problem = build_problem(model_swap, knock_type=OPTSWAPYIELD, target_rxn='EX_P', dh_rxns=['DH'])
    assert (yield_problem.cols.names == ['v', 'y', 'q', 's'])
    assert (yield_problem.cols.size('y') == 0)
    assert (yield_problem.rows.names == ['primal', 'swap', 'interventions'])


def test_second_level_dimensions(model_swap):
    """The second level dual linearizes the gated bounds and the binary terms of the first level dual."""
    setup = osw.OptSwapSetup(knock_type=OPTSWAP, target_rxn='EX_P', dh_rxns=['DH'])
    problem = osw.OptSwapProblem(prepare_split_model(model_swap, setup), setup)
    milp = problem.build()
    assert (problem.dual2.z_size == problem.primal.z_size + problem.dual.Ay_w.nnz)
    assert (problem.dual2.w_size == milp.cols.size('u'))
    assert (milp.cols.size('v') == problem.primal.A.shape[1])


def test_count_rows(model_knock, model_swap):
    """A negative count omits its row. Swap and intervention counts are only used with swaps."""
    kwargs = dict(target_rxn='EX_P', knockable_rxns=['R1'])
    assert ('knockouts' not in build_problem(model_knock, knock_type=OPTKNOCK, knockout_num=-1, **kwargs).rows)
    problem = build_problem(model_knock, knock_type=OPTKNOCK, knockout_num=1, intervention_num=1, swap_num=1, **kwargs)
    assert (problem.rows.names == ['duality', 'primal', 'dual', 'knockouts'])
    assert (problem.B[-1] == 0)
    kwargs = dict(knock_type=OPTSWAP, target_rxn='EX_P', dh_rxns=['DH'])
    problem = build_problem(model_swap, swap_num=-1, intervention_num=-1, **kwargs)
    assert (not {'knockouts', 'swaps', 'interventions'} & set(problem.rows.names))
    problem = build_problem(model_swap, knockout_num=1, swap_num=2, intervention_num=1, **kwargs)
    for name in ['knockouts', 'swaps', 'interventions']:
        assert (problem.rows.size(name) == 1)
    num_y, num_q = problem.cols.size('y'), problem.cols.size('q')
    assert (problem.B[problem.rows.offset('interventions')] == 1 - num_y - num_q)
    assert (problem.B[problem.rows.offset('swaps')] == 2)


def row_activity(problem, name, x):
    rows = problem.rows.slice(name)
    return problem.A[rows].dot(array(x)), array(problem.B[rows])


def test_swap_rows(model_swap):
    """All-zero binaries (both variants of DH inactive) are only allowed with dehydrogenase knockouts."""
    kwargs = dict(knock_type=OPTSWAPYIELD, target_rxn='EX_P', dh_rxns=['DH'])
    problem = build_problem(model_swap, **kwargs)
    x = zeros(problem.cols.total)
    lhs, rhs = row_activity(problem, 'swap', x)
    assert (all(lhs <= rhs))
    assert ('swap_required' not in problem.rows)
    problem = build_problem(model_swap, allow_dh_knockout=False, **kwargs)
    lhs, rhs = row_activity(problem, 'swap_required', x)
    assert (any(lhs > rhs))
    # one active variant satisfies both rows
    x[problem.cols.offset('s')] = 1
    for name in ['swap', 'swap_required']:
        lhs, rhs = row_activity(problem, name, x)
        assert (all(lhs <= rhs))


def test_milp_validation(model_knock):
    problem = build_problem(model_knock, knock_type=OPTKNOCK, target_rxn='EX_P', knockable_rxns=['R1'])
    problem.validate()
    problem.int_vars = []
    with pytest.raises(osw.StructuralError):
        problem.validate()
    problem = build_problem(model_knock, knock_type=OPTKNOCK, target_rxn='EX_P', knockable_rxns=['R1'])
    problem.B = problem.B[:-1]
    with pytest.raises(osw.StructuralError):
        problem.validate()
