"""pycellfem.assembly.assembler

Abstract assembler contract.

An assembler owns a fixed ordered set of global rows (test dofs) and
columns (trial dofs) plus an AssemblyStrategy, and turns cell-indexed
data into global storage:

    allocate_*  → zero storage of size (num_rows, num_cols) / num_rows
    assemble_*_into → overwrite: stored entries are reset, then summed
    assemble_*_add  → accumulate into existing storage
    assemble_*      → allocate + assemble_*_into in one call
"""
from __future__ import annotations

import abc
import logging

import numpy as np

logger = logging.getLogger(__name__)

__all__ = ["Assembler"]


class Assembler(abc.ABC):

    @abc.abstractmethod
    def get_rows(self) -> np.ndarray:
        """Ordered global row ids (test dofs) owned by this assembler."""

    @abc.abstractmethod
    def get_cols(self) -> np.ndarray:
        """Ordered global column ids (trial dofs) owned by this assembler."""

    @abc.abstractmethod
    def get_assembly_strategy(self):
        ...

    def num_rows(self) -> int:
        return len(self.get_rows())

    def num_cols(self) -> int:
        return len(self.get_cols())

    @property
    def axes(self):
        return self.get_rows(), self.get_cols()

    @property
    def size(self):
        return self.num_rows(), self.num_cols()

    # ------------------------------------------------------------------
    # allocation
    # ------------------------------------------------------------------
    @abc.abstractmethod
    def allocate_matrix(self, matdata):
        ...

    @abc.abstractmethod
    def allocate_vector(self, vecdata):
        ...

    @abc.abstractmethod
    def allocate_matrix_and_vector(self, data):
        ...

    # ------------------------------------------------------------------
    # in-place assembly
    # ------------------------------------------------------------------
    @abc.abstractmethod
    def assemble_matrix_into(self, A, matdata):
        ...

    @abc.abstractmethod
    def assemble_matrix_add(self, A, matdata):
        ...

    @abc.abstractmethod
    def assemble_vector_into(self, b, vecdata):
        ...

    @abc.abstractmethod
    def assemble_vector_add(self, b, vecdata):
        ...

    @abc.abstractmethod
    def assemble_matrix_and_vector_into(self, A, b, data):
        ...

    @abc.abstractmethod
    def assemble_matrix_and_vector_add(self, A, b, data):
        ...

    # ------------------------------------------------------------------
    # one-shot
    # ------------------------------------------------------------------
    def assemble_matrix(self, matdata):
        logger.info("Assembling matrix...")
        A = self.allocate_matrix(matdata)
        self.assemble_matrix_into(A, matdata)
        return A

    def assemble_vector(self, vecdata):
        logger.info("Assembling vector...")
        b = self.allocate_vector(vecdata)
        self.assemble_vector_into(b, vecdata)
        return b

    def assemble_matrix_and_vector(self, data):
        logger.info("Assembling matrix and vector...")
        A, b = self.allocate_matrix_and_vector(data)
        self.assemble_matrix_and_vector_into(A, b, data)
        return A, b

    def __repr__(self):
        return f"{self.__class__.__name__}(size={self.size})"
