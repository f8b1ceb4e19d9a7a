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
"""Bilevel-to-single-level reformulation of strain design problems (OptSwapProblem)

The inner (organism) problem is an LP in the one-way fluxes v,

    max c'v  s.t.  A v + Ay y <= b,

where y are the binary knockout and swap variables that are fixed by the outer problem.
Duals of the inner problem are embedded with separate_transpose_join. Products of dual
variables and binaries are linearized with big-M constraints. All matrices are sparse and
every row and column block is registered by name in a BlockManifest, so that dimension
mismatches between the assembly stages raise a StructuralError before a solver is called.
"""

from numpy import array, inf, isinf, ones, zeros
from scipy import sparse
from typing import Dict, List, Tuple
from optswap.names import *
from optswap.optSwapSetup import StructuralError, SWAP_TYPES
from optswap.lptools import dual_bounds
import logging

# assembly stages
ASSEMBLE_PRIMAL = 'ASSEMBLE_PRIMAL'
EMBED_DUAL_1 = 'EMBED_DUAL_1'
ASSEMBLE_LEVEL2 = 'ASSEMBLE_LEVEL2'
EMBED_DUAL_2 = 'EMBED_DUAL_2'
APPLY_COUNT_CONSTRAINTS = 'APPLY_COUNT_CONSTRAINTS'

# column blocks of the binary variables
BINARY_BLOCKS = ['y', 'q', 's']


class BlockManifest:
    """Ordered list of named row or column blocks

    Each builder of the reformulation returns its matrices together with a manifest of
    their blocks. Consumers access blocks by name and validate the manifest against the
    matrix dimensions before they use them.

    Example:
        cols = BlockManifest([('v', 10), ('y', 3)])
        A[:, cols.slice('y')]
    """

    def __init__(self, blocks=()):
        self._names = []
        self._sizes = {}
        for name, size in blocks:
            self.add(name, size)

    def add(self, name, size):
        if name in self._sizes:
            raise StructuralError('Block ' + name + ' is defined twice.')
        if size < 0:
            raise StructuralError('Block ' + name + ' has a negative size.')
        self._names.append(name)
        self._sizes[name] = int(size)

    def size(self, name) -> int:
        self._check(name)
        return self._sizes[name]

    def offset(self, name) -> int:
        self._check(name)
        return sum(self._sizes[n] for n in self._names[:self._names.index(name)])

    def slice(self, name) -> slice:
        start = self.offset(name)
        return slice(start, start + self._sizes[name])

    def indices(self, name) -> List[int]:
        return list(range(self.offset(name), self.offset(name) + self._sizes[name]))

    @property
    def names(self) -> List[str]:
        return list(self._names)

    @property
    def total(self) -> int:
        return sum(self._sizes.values())

    def validate(self, n, what='matrix'):
        """Raise a StructuralError if n does not match the total size of the manifest"""
        if n != self.total:
            raise StructuralError('Dimension of ' + what + ' (' + str(n) + ') does not match its block manifest (' +
                                  str(self.total) + ': ' + str(self) + ').')

    def _check(self, name):
        if name not in self._sizes:
            raise StructuralError('Block ' + name + ' is not part of the manifest ' + str(self) + '.')

    def __contains__(self, name):
        return name in self._sizes

    def __iter__(self):
        return iter(self._names)

    def __repr__(self):
        return '[' + ', '.join(n + ':' + str(self._sizes[n]) for n in self._names) + ']'


def _selector(ind, n) -> sparse.csr_matrix:
    """Rows of the n x n identity matrix"""
    return sparse.csr_matrix((ones(len(ind)), (list(range(len(ind))), list(ind))), shape=(len(ind), n))


def _vstack(mats, num_cols) -> sparse.csr_matrix:
    """Vertically stack sparse matrices, skipping blocks without rows"""
    mats = [sparse.csr_matrix(M) for M in mats if M.shape[0]]
    if not mats:
        return sparse.csr_matrix((0, num_cols))
    return sparse.vstack(mats, format='csr')


def _row(vec) -> sparse.csr_matrix:
    return sparse.csr_matrix(array(vec, dtype=float).reshape((1, -1)))


def split_cols(M, manifest) -> Dict:
    """Split the columns of a matrix into the blocks of a manifest"""
    manifest.validate(M.shape[1], 'column blocks')
    M = sparse.csc_matrix(M)
    return {name: M[:, manifest.slice(name)] for name in manifest}


def block_row(cols, num_rows, **parts) -> sparse.csr_matrix:
    """Horizontally join matrix parts in the order of a column manifest

    Blocks that are not passed are filled with zeros.

    Example:
        M = block_row(cols, A.shape[0], v=A, y=Ay)
    """
    for name in parts:
        if name not in cols:
            raise StructuralError('Block ' + name + ' is not a column block of ' + str(cols) + '.')
    pieces = []
    for name in cols:
        size = cols.size(name)
        if name in parts and parts[name] is not None:
            M = sparse.csr_matrix(parts[name])
            if M.shape != (num_rows, size):
                raise StructuralError('Block ' + name + ' has shape ' + str(M.shape) + ', expected ' +
                                      str((num_rows, size)) + '.')
        else:
            M = sparse.csr_matrix((num_rows, size))
        if size:
            pieces.append(M)
    if not pieces:
        return sparse.csr_matrix((num_rows, 0))
    return sparse.hstack(pieces, format='csr')


def stack_blocks(cols, blocks) -> Tuple[sparse.csr_matrix, List, BlockManifest]:
    """Vertically stack named row blocks (name, matrix, rhs) into A x <= b"""
    rows = BlockManifest()
    mats = []
    b = []
    for name, M, rhs in blocks:
        if M.shape[1] != cols.total or M.shape[0] != len(rhs):
            raise StructuralError('Row block ' + name + ' has shape ' + str(M.shape) + ' and ' + str(len(rhs)) +
                                  ' right hand sides, expected ' + str(cols.total) + ' columns.')
        rows.add(name, M.shape[0])
        mats.append(M)
        b += [float(v) for v in rhs]
    return _vstack(mats, cols.total), b, rows


class PrimalSystem:
    """The inner LP  max c'v  s.t.  A v + Ay y <= b

    Attributes:
        A (sparse.csr_matrix): Coefficients of the one-way fluxes.
        Ay (sparse.csr_matrix): Coefficients of the binaries (y, q, s).
        b (list of float): Right hand side.
        c (list of float): Growth objective.
        rows (BlockManifest): stoich, stoich_neg, ub_free, lb_free, ub_gated, lb_gated.
        bins (BlockManifest): y, q, s.
        z_size (int): Number of nonzeros of Ay, i.e., of linearization variables of the dual.
    """

    def __init__(self, A, Ay, b, c, rows, bins):
        self.A = A
        self.Ay = Ay
        self.b = b
        self.c = c
        self.rows = rows
        self.bins = bins
        self.z_size = Ay.nnz
        self.validate()

    def validate(self):
        self.rows.validate(self.A.shape[0], 'primal constraint matrix')
        self.rows.validate(self.Ay.shape[0], 'primal binary coefficient matrix')
        self.rows.validate(len(self.b), 'primal right hand side')
        self.bins.validate(self.Ay.shape[1], 'binary columns of the primal system')
        if len(self.c) != self.A.shape[1]:
            raise StructuralError('Primal objective and constraint matrix differ in size.')


def build_primal(split, lb=None, ub=None) -> PrimalSystem:
    """Assemble the inner LP with big-M gated flux bounds

    Steady state is expressed by the two inequalities S v <= 0 and -S v <= 0. Finite bounds
    of ungated fluxes are added as rows. Gated fluxes get the rows v_i - ub_i*g <= 0 and
    -v_i + lb_i*g <= 0, where g is the binary variable of reaction i. The reverse one-way
    flux of a split reaction is gated by the binary of its forward flux. A zero bound of the
    forward flux leaves the coefficient of the reverse flux at zero.

    Example:
        primal = build_primal(split_one_way_fluxes(prepared))

    Args:
        split (OneWayFluxModel):
            The split model with its index sets.

        lb, ub (optional (list of float)):
            Flux bounds that replace the bounds of the split model.

    Returns:
        (PrimalSystem):
            The inner LP, its row manifest and the manifest of its binary columns.
    """
    model = split.model
    n = model.num_reacs
    m = model.num_mets
    lb = list(model.lb) if lb is None else [float(v) for v in lb]
    ub = list(model.ub) if ub is None else [float(v) for v in ub]
    bins = BlockManifest([('y', len(split.y_ind)), ('q', len(split.q_ind)), ('s', len(split.s_ind))])

    gated = split.gated
    col_of = {r: k for k, r in enumerate(split.binaries)}
    fwd_of = {r: f for f, r in split.rev_of.items()}
    G_ub = sparse.lil_matrix((len(gated), bins.total))
    G_lb = sparse.lil_matrix((len(gated), bins.total))
    for k, i in enumerate(gated):
        if i in col_of:
            G_ub[k, col_of[i]] = ub[i]
            G_lb[k, col_of[i]] = lb[i]
        else:
            f = fwd_of[i]
            if ub[f] != 0:
                G_ub[k, col_of[f]] = ub[i]
            if lb[f] != 0:
                G_lb[k, col_of[f]] = lb[i]

    free = split.not_yqs + split.not_yqs_coupled
    ub_free = [i for i in free if not isinf(ub[i])]
    lb_free = [i for i in free if not isinf(lb[i])]
    S = sparse.csr_matrix(model.S)
    blocks = [
        ('stoich', S, zeros(m)),
        ('stoich_neg', -S, zeros(m)),
        ('ub_free', _selector(ub_free, n), [ub[i] for i in ub_free]),
        ('lb_free', -_selector(lb_free, n), [-lb[i] for i in lb_free]),
        ('ub_gated', _selector(gated, n), zeros(len(gated))),
        ('lb_gated', -_selector(gated, n), zeros(len(gated))),
    ]
    A, b, rows = stack_blocks(BlockManifest([('v', n)]), blocks)
    Ay = _vstack((sparse.csr_matrix((rows.offset('ub_gated'), bins.total)), -sparse.csr_matrix(G_ub),
                  sparse.csr_matrix(G_lb)), bins.total)
    Ay.eliminate_zeros()
    primal = PrimalSystem(A, Ay, b, list(model.organism_objective), rows, bins)
    logging.info('  Primal system: ' + str(A.shape[0]) + ' rows, ' + str(n) + ' fluxes, ' + str(bins.total) +
                 ' binaries, ' + str(primal.z_size) + ' gated bounds.')
    return primal


class DualSystem:
    """The linearized dual of an inner LP

    The dual min (b - Ay y)'w s.t. A'w = c, w >= 0 is expressed in the variables (w, z)
    with z_k = w_i*y_j for every nonzero Ay_ij:

        A_w (w, z) + Ay_w y <= B_w,  lb_w <= (w, z) <= ub_w

    The objective C_w = [-b; Ay_ij] is in maximization form, i.e. C_w'(w, z) is the
    negative dual objective.

    Attributes:
        A_w, Ay_w (sparse.csr_matrix), B_w, C_w, lb_w, ub_w (list of float)
        w_size, z_size (int)
        z_rows, z_cols (list of int): Row of w and column of y that z_k links.
        rows (BlockManifest): dual_pos, dual_neg, lin_zw, lin_zy, lin_wzy.
        cols (BlockManifest): w, z.
    """

    def __init__(self, A_w, Ay_w, B_w, C_w, lb_w, ub_w, z_rows, z_cols, rows, cols):
        self.A_w = A_w
        self.Ay_w = Ay_w
        self.B_w = B_w
        self.C_w = C_w
        self.lb_w = lb_w
        self.ub_w = ub_w
        self.z_rows = z_rows
        self.z_cols = z_cols
        self.rows = rows
        self.cols = cols
        self.w_size = cols.size('w')
        self.z_size = cols.size('z')
        self.validate()

    def validate(self):
        self.rows.validate(self.A_w.shape[0], 'dual constraint matrix')
        self.rows.validate(self.Ay_w.shape[0], 'dual binary coefficient matrix')
        self.rows.validate(len(self.B_w), 'dual right hand side')
        for vec, what in [(self.A_w.shape[1], 'dual constraint matrix'), (len(self.C_w), 'dual objective'),
                          (len(self.lb_w), 'dual lower bounds'), (len(self.ub_w), 'dual upper bounds')]:
            self.cols.validate(vec, what)


def separate_transpose_join(A, Ay, b, c, max_w, find_max_w=False, z_size=None, solver=None,
                            solver_params=None) -> DualSystem:
    """Embed the dual of the LP  max c'v  s.t.  A v + Ay y <= b  (v free, y binary)

    Every dual variable w_i is bounded by max_w. For every nonzero Ay_ij, the product w_i*y_j
    is replaced by a variable z_k with z_k <= w_i, z_k <= M_i*y_j and z_k >= w_i - M_i*(1-y_j),
    where M_i is the upper bound of w_i.

    Example:
        dual = separate_transpose_join(primal.A, primal.Ay, primal.b, primal.c, 1000, z_size=primal.z_size)

    Args:
        A (sparse.csr_matrix), Ay (sparse.csr_matrix), b (list of float), c (list of float):
            The primal LP.

        max_w (float):
            Upper bound of the dual variables.

        find_max_w (optional (bool)): (Default: False)
            Replace max_w by the largest value that each dual variable takes on the optimal face
            of the dual LP with all binaries set to 1. Requires additional LPs.

        z_size (optional (int)):
            The expected number of linearization variables. A StructuralError is raised on mismatch.

        solver, solver_params (optional):
            Used with find_max_w.

    Returns:
        (DualSystem):
            The linearized dual in maximization form.
    """
    A = sparse.csr_matrix(A)
    Ay = sparse.csr_matrix(Ay)
    Ay.eliminate_zeros()
    Ay.sort_indices()
    num_w, num_v = A.shape
    if Ay.shape[0] != num_w or len(b) != num_w or len(c) != num_v:
        raise StructuralError('Primal system of shape ' + str(A.shape) + ' does not match its binary block ' +
                              str(Ay.shape) + ', right hand side (' + str(len(b)) + ') or objective (' + str(len(c)) +
                              ').')
    Ay_coo = Ay.tocoo()
    z_rows = [int(i) for i in Ay_coo.row]
    z_cols = [int(j) for j in Ay_coo.col]
    z_vals = [float(a) for a in Ay_coo.data]
    num_z = len(z_rows)
    if z_size is not None and z_size != num_z:
        raise StructuralError('Expected ' + str(z_size) + ' linearization variables, but the binary block has ' +
                              str(num_z) + ' nonzeros.')
    num_y = Ay.shape[1]

    if find_max_w:
        b_y1 = [b_i - a_i for b_i, a_i in zip(b, Ay.dot(ones(num_y)))]
        ub_w = dual_bounds(A, b_y1, c, max_w, solver, solver_params)
    else:
        ub_w = [max_w] * num_w
    M = [ub_w[i] for i in z_rows]

    cols = BlockManifest([('w', num_w), ('z', num_z)])
    At = A.transpose().tocsr()
    Z_w = _selector(z_rows, num_w)
    I_z = sparse.identity(num_z, format='csr')
    M_y = sparse.csr_matrix((M, (list(range(num_z)), z_cols)), shape=(num_z, num_y))
    blocks = [
        ('dual_pos', block_row(cols, num_v, w=At), c),
        ('dual_neg', block_row(cols, num_v, w=-At), [-v for v in c]),
        ('lin_zw', block_row(cols, num_z, w=-Z_w, z=I_z), zeros(num_z)),
        ('lin_zy', block_row(cols, num_z, z=I_z), zeros(num_z)),
        ('lin_wzy', block_row(cols, num_z, w=Z_w, z=-I_z), M),
    ]
    A_w, B_w, rows = stack_blocks(cols, blocks)
    Ay_w = _vstack((sparse.csr_matrix((rows.offset('lin_zy'), num_y)), -M_y, M_y), num_y)
    Ay_w.eliminate_zeros()
    C_w = [-v for v in b] + z_vals
    return DualSystem(A_w, Ay_w, B_w, C_w, [0.0] * (num_w + num_z), ub_w + M, z_rows, z_cols, rows, cols)


class MILPProblem:
    """Assembled single-level MILP

        maximize C'x  s.t.  A x <= B,  lb <= x <= ub,  x_i binary for i in int_vars

    Attributes:
        C, B, lb, ub (list of float)
        A (sparse.csr_matrix)
        int_vars (list of int)
        rows, cols (BlockManifest)
        knock_type (str)
    """

    def __init__(self, C, A, B, lb, ub, int_vars, rows, cols, knock_type):
        self.C = C
        self.A = A
        self.B = B
        self.lb = lb
        self.ub = ub
        self.int_vars = int_vars
        self.rows = rows
        self.cols = cols
        self.knock_type = knock_type

    @property
    def vtype(self) -> str:
        int_vars = set(self.int_vars)
        return ''.join('B' if i in int_vars else 'C' for i in range(len(self.C)))

    def validate(self):
        """Check the dimensions of the MILP against its manifests"""
        self.rows.validate(self.A.shape[0], 'MILP constraint matrix')
        self.rows.validate(len(self.B), 'MILP right hand side')
        for n, what in [(self.A.shape[1], 'MILP constraint matrix'), (len(self.C), 'MILP objective'),
                        (len(self.lb), 'MILP lower bounds'), (len(self.ub), 'MILP upper bounds')]:
            self.cols.validate(n, what)
        if any(i < 0 or i >= len(self.C) for i in self.int_vars):
            raise StructuralError('Integer variables exceed the number of MILP variables.')
        binaries = [i for name in BINARY_BLOCKS if name in self.cols for i in self.cols.indices(name)]
        if sorted(self.int_vars) != binaries:
            raise StructuralError('Integer variables do not address the binary knockout and swap blocks.')

    def __repr__(self):
        return 'MILPProblem(' + self.knock_type + ', ' + str(self.A.shape[0]) + ' rows ' + str(self.rows) + ', ' + \
            str(self.A.shape[1]) + ' columns ' + str(self.cols) + ')'


class OptSwapProblem:
    """Reformulation of OptKnock, RobustKnock, OptSwap and OptSwapYield into one MILP

    All variants share the same assembly. The knock type selects the assembler of the
    variant-specific blocks, swap and count constraints are added afterwards:

        optknock:      columns [v, w, z, y], rows duality, primal, dual
        robustknock:   columns [u, z2, v, y], rows dual2, feasibility
        optswap:       columns [u, z2, v, y, q, s], rows dual2, feasibility, swap
        optswapyield:  columns [v, q, s], rows primal, swap

    Example:
        milp_problem = OptSwapProblem(split, setup).build()

    Args:
        split (OneWayFluxModel):
            The split, prepared model with its index sets.

        setup (OptSwapSetup):
            Knock type, intervention counts and bounds of the dual variables.
    """

    def __init__(self, split, setup):
        self.split = split
        self.setup = setup
        self.knock_type = setup[KNOCK_TYPE]
        self.primal = None
        self.dual = None
        self.dual2 = None
        self._assemblers = {
            OPTKNOCK: self._assemble_optknock,
            ROBUSTKNOCK: self._assemble_worst_case,
            OPTSWAP: self._assemble_worst_case,
            OPTSWAPYIELD: self._assemble_yield,
        }

    def build(self) -> MILPProblem:
        """Assemble and validate the MILP of the configured knock type"""
        if self.knock_type not in self._assemblers:
            raise StructuralError('No assembler for knock type ' + str(self.knock_type) + '.')
        if self.knock_type != OPTSWAPYIELD and self.split.y_ind == [] and self.split.q_ind == []:
            logging.warning('No knockout or swap candidates. The design problem has no binary variables.')
        cols, blocks, C, lb, ub = self._assemblers[self.knock_type]()
        logging.info('Stage ' + APPLY_COUNT_CONSTRAINTS)
        blocks += self.swap_rows(cols) + self.count_rows(cols)
        A, B, rows = stack_blocks(cols, blocks)
        int_vars = [i for name in BINARY_BLOCKS for i in cols.indices(name)]
        problem = MILPProblem(C, A, B, lb, ub, int_vars, rows, cols, self.knock_type)
        problem.validate()
        logging.info('  ' + str(problem))
        return problem

    def _embed_inner(self):
        logging.info('Stage ' + ASSEMBLE_PRIMAL)
        self.primal = build_primal(self.split)
        logging.info('Stage ' + EMBED_DUAL_1)
        self.dual = self._dualize(self.primal.A, self.primal.Ay, self.primal.b, self.primal.c, self.primal.z_size)
        self.primal.rows.validate(self.dual.w_size, 'first level dual variables')
        return self.primal, self.dual

    def _dualize(self, A, Ay, b, c, z_size):
        dual = separate_transpose_join(A,
                                       Ay,
                                       b,
                                       c,
                                       self.setup[MAX_W],
                                       find_max_w=self.setup[FIND_MAX_W],
                                       z_size=z_size,
                                       solver=self.setup[SOLVER],
                                       solver_params=self.setup[SOLVER_PARAMS])
        logging.info('  Dual system: ' + str(dual.A_w.shape[0]) + ' rows, ' + str(dual.w_size) + ' dual and ' +
                     str(dual.z_size) + ' linearization variables.')
        return dual

    def _bin_bounds(self):
        n = self.primal.bins.total
        return [0.0] * n, [1.0] * n

    def _optknock_blocks(self, cols):
        """Duality, primal and dual rows of the first level on the columns [v, w, z, y, q, s]"""
        primal, dual = self.primal, self.dual
        C_w = dual.C_w
        nw = dual.w_size
        blocks = [
            ('duality',
             block_row(cols,
                       1,
                       v=-_row(primal.c),
                       w=-_row(C_w[:nw]),
                       z=-_row(C_w[nw:])), [0.0]),
            ('primal', block_row(cols, primal.A.shape[0], v=primal.A, **split_cols(primal.Ay, primal.bins)), primal.b),
            ('dual',
             block_row(cols,
                       dual.A_w.shape[0],
                       w=dual.A_w[:, dual.cols.slice('w')],
                       z=dual.A_w[:, dual.cols.slice('z')],
                       **split_cols(dual.Ay_w, primal.bins)), dual.B_w),
        ]
        return blocks

    def _level1_cols(self):
        bins = self.primal.bins
        return BlockManifest([('v', self.primal.A.shape[1]), ('w', self.dual.w_size), ('z', self.dual.z_size)] +
                             [(name, bins.size(name)) for name in BINARY_BLOCKS])

    def _assemble_optknock(self):
        primal, dual = self._embed_inner()
        cols = self._level1_cols()
        n = primal.A.shape[1]
        lb_bin, ub_bin = self._bin_bounds()
        C = list(self.split.model.c_chemical) + [0.0] * (dual.w_size + dual.z_size + len(lb_bin))
        lb = [-inf] * n + dual.lb_w + lb_bin
        ub = [inf] * n + dual.ub_w + ub_bin
        return cols, self._optknock_blocks(cols), C, lb, ub

    def _assemble_worst_case(self):
        primal, dual = self._embed_inner()
        logging.info('Stage ' + ASSEMBLE_LEVEL2)
        # The first level system, extended by the bounds of (w, z), is the LP of the second level
        lvl1 = self._level1_cols()
        nwz = dual.w_size + dual.z_size
        I_wz = sparse.identity(nwz, format='csc')
        blocks = self._optknock_blocks(lvl1) + [
            ('lb_wz', block_row(lvl1, nwz, w=-I_wz[:, :dual.w_size], z=-I_wz[:, dual.w_size:]), [-v for v in dual.lb_w]),
            ('ub_wz', block_row(lvl1, nwz, w=I_wz[:, :dual.w_size], z=I_wz[:, dual.w_size:]), dual.ub_w),
        ]
        M2, b2, rows2 = stack_blocks(lvl1, blocks)
        nx = lvl1.offset('y')
        A2 = M2[:, :nx]
        Ay2 = M2[:, nx:]
        n = primal.A.shape[1]
        c2 = [-v for v in self.split.model.c_chemical] + [0.0] * nwz
        logging.info('  Second level system: ' + str(A2.shape[0]) + ' rows ' + str(rows2) + '.')

        logging.info('Stage ' + EMBED_DUAL_2)
        self.dual2 = self._dualize(A2, Ay2, b2, c2, primal.z_size + dual.Ay_w.nnz)
        rows2.validate(self.dual2.w_size, 'second level dual variables')
        dual2 = self.dual2
        bins = primal.bins
        cols = BlockManifest([('u', dual2.w_size), ('z2', dual2.z_size), ('v', n)] +
                             [(name, bins.size(name)) for name in BINARY_BLOCKS])
        blocks = [
            ('dual2',
             block_row(cols,
                       dual2.A_w.shape[0],
                       u=dual2.A_w[:, dual2.cols.slice('w')],
                       z2=dual2.A_w[:, dual2.cols.slice('z')],
                       **split_cols(dual2.Ay_w, bins)), dual2.B_w),
            ('feasibility', block_row(cols, primal.A.shape[0], v=primal.A, **split_cols(primal.Ay, bins)), primal.b),
        ]
        lb_bin, ub_bin = self._bin_bounds()
        C = list(dual2.C_w) + [0.0] * (n + len(lb_bin))
        lb = dual2.lb_w + [-inf] * n + lb_bin
        ub = dual2.ub_w + [inf] * n + ub_bin
        return cols, blocks, C, lb, ub

    def _assemble_yield(self):
        model = self.split.model
        lb = list(model.lb)
        g = model.organism_objective_ind
        lb[g] = max(lb[g], self.setup[MIN_BIOMASS])
        logging.info('Stage ' + ASSEMBLE_PRIMAL)
        self.primal = build_primal(self.split, lb=lb)
        primal = self.primal
        n = primal.A.shape[1]
        bins = primal.bins
        cols = BlockManifest([('v', n)] + [(name, bins.size(name)) for name in BINARY_BLOCKS])
        blocks = [('primal', block_row(cols, primal.A.shape[0], v=primal.A, **split_cols(primal.Ay, bins)), primal.b)]
        lb_bin, ub_bin = self._bin_bounds()
        C = list(model.c_chemical) + [0.0] * len(lb_bin)
        return cols, blocks, C, [-inf] * n + lb_bin, [inf] * n + ub_bin

    def swap_rows(self, cols) -> List:
        """Pairing of swappable reactions and their swapped variants

        q_k + s_k <= 1 for every pair. If dehydrogenase knockouts are not allowed, also
        -q_k - s_k <= -1, so that exactly one variant stays active.
        """
        num_q = cols.size('q')
        if cols.size('s') != num_q:
            raise StructuralError('Swap blocks q (' + str(num_q) + ') and s (' + str(cols.size('s')) + ') differ in size.')
        if not num_q:
            return []
        I_q = sparse.identity(num_q, format='csr')
        blocks = [('swap', block_row(cols, num_q, q=I_q, s=I_q), ones(num_q))]
        if not self.setup[ALLOW_DH_KO]:
            blocks += [('swap_required', block_row(cols, num_q, q=-I_q, s=-I_q), -ones(num_q))]
        return blocks

    def count_rows(self, cols) -> List:
        """Constraints on the number of knockouts (K), swaps (L) and interventions (X)

        A negative value omits the row. The knockout count includes swappable reactions of
        which neither variant is active. Swap and intervention counts are only applied to
        the knock types with swaps.
        """
        num_y, num_q, num_s = (cols.size(name) for name in BINARY_BLOCKS)
        K = self.setup[KNOCKOUT_NUM]
        L = self.setup[SWAP_NUM]
        X = self.setup[INTERVENTION_NUM]
        blocks = []
        if K >= 0 and num_y + num_q:
            blocks += [('knockouts',
                        block_row(cols,
                                  1,
                                  y=-ones((1, num_y)),
                                  q=-ones((1, num_q)),
                                  s=-ones((1, num_s))), [K - num_y - num_q])]
        if self.knock_type in SWAP_TYPES:
            if L >= 0 and num_s:
                blocks += [('swaps', block_row(cols, 1, s=ones((1, num_s))), [L])]
            if X >= 0 and num_y + num_q:
                blocks += [('interventions', block_row(cols, 1, y=-ones((1, num_y)), q=-ones((1, num_q))),
                            [X - num_y - num_q])]
        logging.info('  Count constraints: ' + (', '.join(name for name, _, _ in blocks) or 'none') + '.')
        return blocks
