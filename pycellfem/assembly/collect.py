"""pycellfem.assembly.collect

Turn DomainContributions into the cell-indexed data consumed by assemblers:

* matdata  = (cell_matrices, cell_rows, cell_cols)
* vecdata  = (cell_vectors, cell_rows)
* data     = (matvecdata, matdata, vecdata)

with one entry per integration domain in each sequence.
"""
from __future__ import annotations

import logging
import numbers

import numpy as np

from pycellfem.assembly.contributions import (
    CellMatVec, DomainContribution, attach_dirichlet, pair_arrays,
)

__all__ = [
    "collect_cell_matrix", "collect_cell_vector", "collect_cell_matrix_and_vector",
    "pair_contribution_when_possible",
]

logger = logging.getLogger(__name__)


def _check_rank(cell_values, rank: int, what: str, trian) -> None:
    """Entries must be rank-``rank`` arrays (checks the first cell only)."""
    if len(cell_values) == 0:
        return
    first = cell_values[0]
    if np.ndim(first) != rank:
        raise TypeError(
            f"Expected cell {what} (rank {rank}) on {trian!r}, got entries of rank {np.ndim(first)}")


def _check_zero_literal(liform) -> None:
    """A number stands for 'no linear form' only when it is exactly zero."""
    if liform != 0:
        raise TypeError(
            f"A nonzero number ({liform!r}) is not a linear form. "
            "Only a literal 0 is accepted as 'no vector contribution'.")


def collect_cell_matrix(trial, test, contribution: DomainContribution):
    w, r, c = [], [], []
    for trian in contribution.get_domains():
        cell_mat = contribution.get_contribution(trian)
        _check_rank(cell_mat, 2, "matrices", trian)
        cell_mat_c = trial.attach_constraints_cols(cell_mat, trian)
        cell_mat_rc = test.attach_constraints_rows(cell_mat_c, trian)
        w.append(cell_mat_rc)
        r.append(test.get_cell_dof_ids(trian))
        c.append(trial.get_cell_dof_ids(trian))
        logger.debug(f"Collected {len(cell_mat)} cell matrices on {trian!r}")
    return w, r, c


def collect_cell_vector(test, contribution):
    if isinstance(contribution, numbers.Number):
        _check_zero_literal(contribution)
        return [], []
    w, r = [], []
    for trian in contribution.get_domains():
        cell_vec = contribution.get_contribution(trian)
        _check_rank(cell_vec, 1, "vectors", trian)
        w.append(test.attach_constraints_rows(cell_vec, trian))
        r.append(test.get_cell_dof_ids(trian))
        logger.debug(f"Collected {len(cell_vec)} cell vectors on {trian!r}")
    return w, r


def _collect_cell_matvec(trial, test, contribution: DomainContribution):
    w, r, c = [], [], []
    for trian in contribution.get_domains():
        cell_matvec = contribution.get_contribution(trian)
        if not isinstance(cell_matvec, CellMatVec):
            raise TypeError(
                f"Expected paired matrix-vector contributions on {trian!r}, got {type(cell_matvec).__name__}")
        cell_matvec_c = trial.attach_constraints_cols(cell_matvec, trian)
        cell_matvec_rc = test.attach_constraints_rows(cell_matvec_c, trian)
        w.append(cell_matvec_rc)
        r.append(test.get_cell_dof_ids(trian))
        c.append(trial.get_cell_dof_ids(trian))
        logger.debug(f"Collected {len(cell_matvec)} cell matrix-vector pairs on {trian!r}")
    return w, r, c


def pair_contribution_when_possible(biform: DomainContribution, liform: DomainContribution,
                                    uhd=None):
    """
    Split two contributions into (matvec, mat, vec).

    Domains present in both become paired matrix-vector contributions,
    the rest stay matrix-only or vector-only. With ``uhd`` the prescribed
    cell values of ``uhd`` are lifted into the vector side; matrix-only
    domains then become paired as well, so ``mat`` comes back empty.
    """
    matvec, mat, vec = DomainContribution(), DomainContribution(), DomainContribution()
    for trian, t in biform.items():
        if trian in liform:
            matvec.dict[trian] = pair_arrays(t, liform.dict[trian])
        else:
            mat.dict[trian] = t
    for trian, t in liform.items():
        if trian not in biform:
            vec.dict[trian] = t
    if uhd is None:
        return matvec, mat, vec

    lifted = DomainContribution()
    for group in (matvec, mat):
        for trian, t in group.items():
            cellvals = uhd.get_cell_dof_values(trian)
            lifted.dict[trian] = attach_dirichlet(t, cellvals)
    logger.debug(f"Lifted Dirichlet values on {lifted.num_domains()} domains")
    return lifted, DomainContribution(), vec


def collect_cell_matrix_and_vector(trial, test, biform: DomainContribution, liform, uhd=None):
    if isinstance(liform, numbers.Number):
        _check_zero_literal(liform)
        liform = DomainContribution()
    matvec, mat, vec = pair_contribution_when_possible(biform, liform, uhd)
    matvecdata = _collect_cell_matvec(trial, test, matvec)
    matdata = collect_cell_matrix(trial, test, mat)
    vecdata = collect_cell_vector(test, vec)
    return matvecdata, matdata, vecdata
