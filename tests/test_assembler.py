import numpy as np
import pytest
import scipy.sparse as sp
from scipy.sparse.linalg import spsolve

from pycellfem.assembly import (
    DenseMatrixAssembler, DomainContribution, GenericAssemblyStrategy,
    MaskedAssemblyStrategy, SparseMatrixAssembler, collect_cell_matrix,
    collect_cell_matrix_and_vector, collect_cell_vector,
)
from pycellfem.assembly.forms import assemble_matrix, assemble_matrix_and_vector, assemble_vector
from pycellfem.assembly.testing import check_assembler
from pycellfem.core import CellDofSpace, SETTINGS, Triangulation
from pycellfem.utils.bitset import BitSet


def _laplace_1d(n):
    d = np.full(n, 2.0)
    d[0] = d[-1] = 1.0
    return np.diag(d) - np.eye(n, k=1) - np.eye(n, k=-1)


@pytest.fixture
def chain_data(chain_space, chain_trian, chain_stiffness):
    biform = DomainContribution({chain_trian: chain_stiffness})
    liform = DomainContribution({chain_trian: np.full((4, 2), 0.5)})
    matdata = collect_cell_matrix(chain_space, chain_space, biform)
    vecdata = collect_cell_vector(chain_space, liform)
    data = collect_cell_matrix_and_vector(chain_space, chain_space, biform, liform)
    return matdata, vecdata, data


@pytest.mark.parametrize("cls", [SparseMatrixAssembler, DenseMatrixAssembler])
def test_assembler_contract(cls, chain_space, chain_data):
    check_assembler(cls(chain_space, chain_space), *chain_data)


def test_global_matrix_shape(chain_space, chain_data):
    matdata, _, _ = chain_data
    A = SparseMatrixAssembler(chain_space, chain_space).assemble_matrix(matdata)
    assert A.shape == (5, 5)
    assert sp.issparse(A) and A.format == "csr"
    np.testing.assert_allclose(A.toarray(), _laplace_1d(5))


def test_overwrite_is_idempotent_and_add_accumulates(chain_space, chain_data):
    matdata, vecdata, _ = chain_data
    a = SparseMatrixAssembler(chain_space, chain_space)
    A = a.allocate_matrix(matdata)
    a.assemble_matrix_into(A, matdata)
    a.assemble_matrix_into(A, matdata)
    np.testing.assert_allclose(A.toarray(), _laplace_1d(5))
    a.assemble_matrix_add(A, matdata)
    np.testing.assert_allclose(A.toarray(), 2 * _laplace_1d(5))

    b = a.allocate_vector(vecdata)
    a.assemble_vector_into(b, vecdata)
    a.assemble_vector_into(b, vecdata)
    np.testing.assert_allclose(b, [0.5, 1.0, 1.0, 1.0, 0.5])
    a.assemble_vector_add(b, vecdata)
    np.testing.assert_allclose(b, [1.0, 2.0, 2.0, 2.0, 1.0])


def test_matrix_and_vector_match_separate_assembly(chain_space, chain_data):
    matdata, vecdata, data = chain_data
    a = SparseMatrixAssembler(chain_space, chain_space)
    A, b = a.assemble_matrix_and_vector(data)
    np.testing.assert_allclose(A.toarray(), a.assemble_matrix(matdata).toarray())
    np.testing.assert_allclose(b, a.assemble_vector(vecdata))


@pytest.mark.parametrize("cls", [SparseMatrixAssembler, DenseMatrixAssembler])
def test_empty_data_gives_zero_system(cls, chain_space):
    a = cls(chain_space, chain_space)
    no_domains = ([], [], [])
    no_cells = ([np.zeros((0, 2, 2))], [np.zeros((0, 2), dtype=int)], [np.zeros((0, 2), dtype=int)])
    for matdata in (no_domains, no_cells):
        A = a.allocate_matrix(matdata)
        assert A.shape == (5, 5)
        A = a.assemble_matrix(matdata)
        dense = A.toarray() if sp.issparse(A) else A
        np.testing.assert_array_equal(dense, np.zeros((5, 5)))
    A, b = a.assemble_matrix_and_vector((([], [], []), ([], [], []), ([], [])))
    assert A.shape == (5, 5) and b.shape == (5,)
    np.testing.assert_array_equal(b, np.zeros(5))


def test_zero_linear_form_gives_zero_vector(chain_space):
    vecdata = collect_cell_vector(chain_space, 0)
    assert vecdata == ([], [])
    a = SparseMatrixAssembler(chain_space, chain_space)
    b = a.assemble_vector(vecdata)
    np.testing.assert_array_equal(b, np.zeros(5))
    np.testing.assert_array_equal(assemble_vector(0, chain_space), np.zeros(5))


def test_shared_dof_sums_within_and_across_calls():
    # two cells sharing global dof 1
    space = CellDofSpace([[0, 1], [1, 2]])
    trian = Triangulation.from_num_cells(2)
    liform = DomainContribution({trian: np.array([[0.0, 1.0], [1.0, 0.0]])})
    vecdata = collect_cell_vector(space, liform)
    a = DenseMatrixAssembler(space, space)
    b = a.allocate_vector(vecdata)
    a.assemble_vector_into(b, vecdata)
    assert b[1] == 2.0
    a.assemble_vector_add(b, vecdata)
    assert b[1] == 4.0


def test_negative_ids_are_skipped():
    space = CellDofSpace([[-1, 0], [0, 1]])
    trian = Triangulation.from_num_cells(2)
    K = np.array([[1.0, -1.0], [-1.0, 1.0]])
    A = assemble_matrix(DomainContribution({trian: [K, K]}), space, space)
    np.testing.assert_allclose(A.toarray(), [[2.0, -1.0], [-1.0, 1.0]])


def test_dirichlet_lifting_solves_constant_problem():
    # -u'' = 0, u(0) = 3, natural condition on the right: u = 3 everywhere
    space = CellDofSpace([[-1, 0], [0, 1], [1, 2]])
    trian = Triangulation.from_num_cells(3)
    K = np.array([[1.0, -1.0], [-1.0, 1.0]])
    uhd = space.interpolate_dirichlet([3.0])
    A, b = assemble_matrix_and_vector(DomainContribution({trian: [K] * 3}), 0,
                                      space, space, uhd=uhd)
    np.testing.assert_allclose(b, [3.0, 0.0, 0.0])
    np.testing.assert_allclose(spsolve(A.tocsc(), b), [3.0, 3.0, 3.0])


def test_masked_strategy_renumbers_owned_dofs(chain_space, chain_data):
    matdata, vecdata, _ = chain_data
    owned = BitSet.from_indices([1, 2, 3], size=5)
    a = SparseMatrixAssembler(chain_space, chain_space,
                              strategy=MaskedAssemblyStrategy(owned, owned),
                              rows=owned.to_indices(), cols=owned.to_indices())
    assert a.size == (3, 3)
    A = a.assemble_matrix(matdata)
    np.testing.assert_allclose(A.toarray(), _laplace_1d(5)[1:4, 1:4])
    b = a.assemble_vector(vecdata)
    np.testing.assert_allclose(b, [1.0, 1.0, 1.0])


def test_generic_strategy_reverses_rows(chain_space, chain_data):
    matdata, _, _ = chain_data
    strategy = GenericAssemblyStrategy(row_map=lambda r: 4 - r)
    A = DenseMatrixAssembler(chain_space, chain_space, strategy=strategy).assemble_matrix(matdata)
    np.testing.assert_allclose(A, _laplace_1d(5)[::-1])


def test_sparse_pattern_must_cover_data(chain_space, chain_trian, chain_stiffness):
    left = Triangulation([0], name="left")
    a = SparseMatrixAssembler(chain_space, chain_space)
    small = collect_cell_matrix(chain_space, chain_space,
                                DomainContribution({left: chain_stiffness[:1]}))
    full = collect_cell_matrix(chain_space, chain_space,
                               DomainContribution({chain_trian: chain_stiffness}))
    A = a.allocate_matrix(small)
    with pytest.raises(ValueError):
        a.assemble_matrix_add(A, full)


def test_storage_is_checked(chain_space, chain_data):
    matdata, vecdata, _ = chain_data
    a = SparseMatrixAssembler(chain_space, chain_space)
    with pytest.raises(TypeError):
        a.assemble_matrix_into(np.zeros((5, 5)), matdata)
    with pytest.raises(ValueError):
        a.assemble_vector_into(np.zeros(4), vecdata)


def test_out_of_range_ids_raise(chain_space, chain_data):
    matdata, _, _ = chain_data
    a = DenseMatrixAssembler(chain_space, chain_space, rows=np.arange(3))
    with pytest.raises(IndexError):
        a.assemble_matrix(matdata)


def test_misaligned_cell_data_raises(chain_space, chain_trian):
    bad = ([np.ones((4, 3, 3))], [np.zeros((4, 2), dtype=int)], [np.zeros((4, 2), dtype=int)])
    with pytest.raises(ValueError):
        DenseMatrixAssembler(chain_space, chain_space).assemble_matrix(bad)


def test_dtype_setting(chain_space, chain_data, monkeypatch):
    _, vecdata, _ = chain_data
    monkeypatch.setattr(SETTINGS, "dtype", np.float32)
    b = DenseMatrixAssembler(chain_space, chain_space).assemble_vector(vecdata)
    assert b.dtype == np.float32
