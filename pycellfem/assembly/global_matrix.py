"""pycellfem.assembly.global_matrix

Concrete assemblers writing into scipy CSR matrices or dense ndarrays.
"""
from __future__ import annotations

import logging

import numpy as np
import scipy.sparse as sp

from pycellfem.assembly.assembler import Assembler
from pycellfem.assembly.contributions import CellMatVec
from pycellfem.assembly.kernels import csr_add_entries, csr_pattern_from_keys
from pycellfem.assembly.strategy import AssemblyStrategy, DefaultAssemblyStrategy
from pycellfem.core.settings import SETTINGS

logger = logging.getLogger(__name__)

__all__ = ["SparseMatrixAssembler", "DenseMatrixAssembler"]

_EMPTY_IDS = np.zeros(0, dtype=np.int64)


def _matrix_entries(cell_vals, cell_rows, cell_cols):
    """Flatten one domain of local matrices into COO triplets of global ids."""
    if not (len(cell_vals) == len(cell_rows) == len(cell_cols)):
        raise ValueError(
            f"Cell data is misaligned: {len(cell_vals)} values, "
            f"{len(cell_rows)} row ids, {len(cell_cols)} col ids")
    dtype = SETTINGS.dtype
    if (isinstance(cell_vals, np.ndarray) and cell_vals.ndim == 3
            and isinstance(cell_rows, np.ndarray) and isinstance(cell_cols, np.ndarray)):
        n, nr, nc = cell_vals.shape
        if cell_rows.shape != (n, nr) or cell_cols.shape != (n, nc):
            raise ValueError(
                f"Cell matrices of shape {cell_vals.shape} do not match row ids "
                f"{cell_rows.shape} and col ids {cell_cols.shape}")
        r = np.broadcast_to(cell_rows[:, :, None], (n, nr, nc)).ravel()
        c = np.broadcast_to(cell_cols[:, None, :], (n, nr, nc)).ravel()
        return r.astype(np.int64), c.astype(np.int64), cell_vals.ravel().astype(dtype)

    rs, cs, vs = [], [], []
    for K, rows, cols in zip(cell_vals, cell_rows, cell_cols):
        K = np.asarray(K, dtype=dtype)
        rows = np.asarray(rows, dtype=np.int64)
        cols = np.asarray(cols, dtype=np.int64)
        if K.shape != (rows.size, cols.size):
            raise ValueError(
                f"Cell matrix of shape {K.shape} does not match {rows.size} rows x {cols.size} cols")
        r, c = np.meshgrid(rows, cols, indexing="ij")
        rs.append(r.ravel()); cs.append(c.ravel()); vs.append(K.ravel())
    if not rs:
        return _EMPTY_IDS, _EMPTY_IDS, np.zeros(0, dtype=dtype)
    return np.concatenate(rs), np.concatenate(cs), np.concatenate(vs)


def _vector_entries(cell_vals, cell_rows):
    """Flatten one domain of local vectors into (global id, value) pairs."""
    if len(cell_vals) != len(cell_rows):
        raise ValueError(
            f"Cell data is misaligned: {len(cell_vals)} values, {len(cell_rows)} row ids")
    dtype = SETTINGS.dtype
    if (isinstance(cell_vals, np.ndarray) and cell_vals.ndim == 2
            and isinstance(cell_rows, np.ndarray)):
        if cell_rows.shape != cell_vals.shape:
            raise ValueError(
                f"Cell vectors of shape {cell_vals.shape} do not match row ids {cell_rows.shape}")
        return cell_rows.ravel().astype(np.int64), cell_vals.ravel().astype(dtype)

    rs, vs = [], []
    for f, rows in zip(cell_vals, cell_rows):
        f = np.asarray(f, dtype=dtype)
        rows = np.asarray(rows, dtype=np.int64)
        if f.shape != rows.shape:
            raise ValueError(f"Cell vector of shape {f.shape} does not match {rows.size} rows")
        rs.append(rows); vs.append(f)
    if not rs:
        return _EMPTY_IDS, np.zeros(0, dtype=dtype)
    return np.concatenate(rs), np.concatenate(vs)


class _CellwiseAssembler(Assembler):
    """
    Shared traversal: flatten cells, drop non-participating entries, map the
    rest to storage coordinates and hand them to the storage hooks.
    """

    def __init__(self, trial, test, strategy: AssemblyStrategy | None = None,
                 rows=None, cols=None):
        self.trial = trial
        self.test = test
        self.strategy = strategy if strategy is not None else DefaultAssemblyStrategy()
        self.rows = np.arange(test.num_free_dofs()) if rows is None else np.asarray(rows, dtype=np.int64)
        self.cols = np.arange(trial.num_free_dofs()) if cols is None else np.asarray(cols, dtype=np.int64)

    def get_rows(self):
        return self.rows

    def get_cols(self):
        return self.cols

    def get_assembly_strategy(self):
        return self.strategy

    # ------------------------------------------------------------------
    # index policy
    # ------------------------------------------------------------------
    def _row_participation(self, r):
        """True where row id ``r`` is written by this assembler."""
        keep = r >= 0 if SETTINGS.skip_negative_ids else np.ones(r.shape, dtype=bool)
        keep[keep] = self.strategy.row_mask(r[keep])
        return keep

    def _col_participation(self, c):
        keep = c >= 0 if SETTINGS.skip_negative_ids else np.ones(c.shape, dtype=bool)
        keep[keep] = self.strategy.col_mask(c[keep])
        return keep

    def _check_bounds(self, ids, n, what):
        if SETTINGS.check_bounds and ids.size and (ids.min() < 0 or ids.max() >= n):
            raise IndexError(
                f"{what} index out of range [0, {n}) after mapping: "
                f"min={ids.min()}, max={ids.max()}")

    def _filter_matrix(self, r, c, v):
        keep = self._row_participation(r) & self._col_participation(c)
        r = np.asarray(self.strategy.row_map(r[keep]), dtype=np.int64)
        c = np.asarray(self.strategy.col_map(c[keep]), dtype=np.int64)
        self._check_bounds(r, self.num_rows(), "row")
        self._check_bounds(c, self.num_cols(), "col")
        return r, c, v[keep]

    def _filter_vector(self, r, v):
        keep = self._row_participation(r)
        r = np.asarray(self.strategy.row_map(r[keep]), dtype=np.int64)
        self._check_bounds(r, self.num_rows(), "row")
        return r, v[keep]

    # ------------------------------------------------------------------
    # traversal
    # ------------------------------------------------------------------
    def _iter_matrix(self, matdata):
        cell_vals, cell_rows, cell_cols = matdata
        for vals, rows, cols in zip(cell_vals, cell_rows, cell_cols):
            if isinstance(vals, CellMatVec):
                vals = vals.matrices
            yield self._filter_matrix(*_matrix_entries(vals, rows, cols))

    def _iter_vector(self, vecdata):
        cell_vals, cell_rows = vecdata
        for vals, rows in zip(cell_vals, cell_rows):
            if isinstance(vals, CellMatVec):
                vals = vals.vectors
            yield self._filter_vector(*_vector_entries(vals, rows))

    @staticmethod
    def _split(data):
        matvecdata, matdata, vecdata = data
        mv_vals, mv_rows, mv_cols = matvecdata
        return (mv_vals, mv_rows, mv_cols), (mv_vals, mv_rows), matdata, vecdata

    # ------------------------------------------------------------------
    # storage hooks
    # ------------------------------------------------------------------
    def _new_matrix(self, coo_iter):
        raise NotImplementedError

    def _zero_matrix(self, A):
        raise NotImplementedError

    def _add_to_matrix(self, A, r, c, v):
        raise NotImplementedError

    def _check_matrix(self, A):
        if A.shape != self.size:
            raise ValueError(f"Matrix has shape {A.shape}, assembler expects {self.size}")

    def _check_vector(self, b):
        if b.shape != (self.num_rows(),):
            raise ValueError(f"Vector has shape {b.shape}, assembler expects ({self.num_rows()},)")

    # ------------------------------------------------------------------
    # contract
    # ------------------------------------------------------------------
    def allocate_matrix(self, matdata):
        return self._new_matrix(self._iter_matrix(matdata))

    def allocate_vector(self, vecdata):
        return np.zeros(self.num_rows(), dtype=SETTINGS.dtype)

    def allocate_matrix_and_vector(self, data):
        mv_mat, _, matdata, _ = self._split(data)

        def _both():
            yield from self._iter_matrix(mv_mat)
            yield from self._iter_matrix(matdata)

        return self._new_matrix(_both()), np.zeros(self.num_rows(), dtype=SETTINGS.dtype)

    def assemble_matrix_add(self, A, matdata):
        self._check_matrix(A)
        for r, c, v in self._iter_matrix(matdata):
            self._add_to_matrix(A, r, c, v)
        return A

    def assemble_matrix_into(self, A, matdata):
        self._check_matrix(A)
        self._zero_matrix(A)
        return self.assemble_matrix_add(A, matdata)

    def assemble_vector_add(self, b, vecdata):
        self._check_vector(b)
        for r, v in self._iter_vector(vecdata):
            np.add.at(b, r, v)
        return b

    def assemble_vector_into(self, b, vecdata):
        self._check_vector(b)
        b[:] = 0
        return self.assemble_vector_add(b, vecdata)

    def assemble_matrix_and_vector_add(self, A, b, data):
        mv_mat, mv_vec, matdata, vecdata = self._split(data)
        self.assemble_matrix_add(A, mv_mat)
        self.assemble_vector_add(b, mv_vec)
        self.assemble_matrix_add(A, matdata)
        self.assemble_vector_add(b, vecdata)
        return A, b

    def assemble_matrix_and_vector_into(self, A, b, data):
        self._check_matrix(A)
        self._check_vector(b)
        self._zero_matrix(A)
        b[:] = 0
        return self.assemble_matrix_and_vector_add(A, b, data)


class SparseMatrixAssembler(_CellwiseAssembler):
    """
    Assembles into canonical CSR matrices.

    The allocated pattern is the set of all participating coordinates of
    the data, stored with explicit zeros; later passes must stay inside it.
    """

    def _new_matrix(self, coo_iter):
        n_rows, n_cols = self.size
        keys = [r * max(n_cols, 1) + c for r, c, _ in coo_iter]
        keys = np.unique(np.concatenate(keys)) if keys else _EMPTY_IDS
        indptr, indices = csr_pattern_from_keys(keys, n_rows, max(n_cols, 1))
        data = np.zeros(keys.size, dtype=SETTINGS.dtype)
        A = sp.csr_matrix((data, indices, indptr), shape=(n_rows, n_cols))
        logger.debug(f"Allocated {n_rows}x{n_cols} CSR pattern with {A.nnz} stored entries")
        return A

    def _check_matrix(self, A):
        if not (sp.issparse(A) and A.format == "csr"):
            raise TypeError(f"SparseMatrixAssembler writes into CSR matrices, got {type(A).__name__}")
        super()._check_matrix(A)
        if not A.has_sorted_indices:
            A.sort_indices()

    def _zero_matrix(self, A):
        A.data[:] = 0

    def _add_to_matrix(self, A, r, c, v):
        n_missing = csr_add_entries(A.indptr, A.indices, A.data, r, c, v)
        if n_missing:
            raise ValueError(
                f"{n_missing} entries fall outside the allocated sparsity pattern; "
                "allocate the matrix from data covering all assembled cells")


class DenseMatrixAssembler(_CellwiseAssembler):
    """Assembles into dense ndarrays; mostly useful for small systems and checks."""

    def _new_matrix(self, coo_iter):
        # the traversal still validates shapes and bounds
        for _ in coo_iter:
            pass
        return np.zeros(self.size, dtype=SETTINGS.dtype)

    def _zero_matrix(self, A):
        A[...] = 0

    def _add_to_matrix(self, A, r, c, v):
        np.add.at(A, (r, c), v)
