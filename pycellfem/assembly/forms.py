"""pycellfem.assembly.forms

Collect-then-assemble helpers working directly on DomainContributions.
"""
from __future__ import annotations

import logging

from pycellfem.assembly.collect import (
    collect_cell_matrix, collect_cell_matrix_and_vector, collect_cell_vector,
)
from pycellfem.assembly.global_matrix import SparseMatrixAssembler

logger = logging.getLogger(__name__)

__all__ = ["assemble_matrix", "assemble_vector", "assemble_matrix_and_vector"]


def assemble_matrix(biform, trial, test, assembler=None):
    """Global matrix of a bilinear-form contribution (CSR by default)."""
    if assembler is None:
        assembler = SparseMatrixAssembler(trial, test)
    return assembler.assemble_matrix(collect_cell_matrix(trial, test, biform))


def assemble_vector(liform, test, assembler=None):
    """Global vector of a linear-form contribution; ``0`` gives a zero vector."""
    if assembler is None:
        assembler = SparseMatrixAssembler(test, test)
    return assembler.assemble_vector(collect_cell_vector(test, liform))


def assemble_matrix_and_vector(biform, liform, trial, test, assembler=None, uhd=None):
    """
    Matrix and right-hand side in one pass.

    ``uhd`` carries the prescribed Dirichlet values; their effect is lifted
    into the right-hand side before assembly.
    """
    if assembler is None:
        assembler = SparseMatrixAssembler(trial, test)
    data = collect_cell_matrix_and_vector(trial, test, biform, liform, uhd)
    logger.debug(f"Assembling {len(data[0][0])} matvec, {len(data[1][0])} matrix and "
                 f"{len(data[2][0])} vector domains")
    return assembler.assemble_matrix_and_vector(data)
