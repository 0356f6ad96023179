"""pycellfem.assembly.strategy

Index policies applied by assemblers between the cell dof ids and the
storage coordinates. All four operations act element-wise on integer
numpy arrays.
"""
from __future__ import annotations

import abc
from typing import Callable

import numpy as np

from pycellfem.utils.bitset import BitSet

__all__ = [
    "AssemblyStrategy", "DefaultAssemblyStrategy", "GenericAssemblyStrategy",
    "MaskedAssemblyStrategy",
]


class AssemblyStrategy(abc.ABC):
    @abc.abstractmethod
    def row_map(self, rows: np.ndarray) -> np.ndarray:
        """Translate global row ids into the assembler's row storage index."""

    @abc.abstractmethod
    def col_map(self, cols: np.ndarray) -> np.ndarray:
        """Translate global column ids into the assembler's column storage index."""

    @abc.abstractmethod
    def row_mask(self, rows: np.ndarray) -> np.ndarray:
        """True for the rows this assembler writes."""

    @abc.abstractmethod
    def col_mask(self, cols: np.ndarray) -> np.ndarray:
        """True for the columns this assembler writes."""


class DefaultAssemblyStrategy(AssemblyStrategy):
    """Identity maps, every index participates."""

    def row_map(self, rows): return rows
    def col_map(self, cols): return cols
    def row_mask(self, rows): return np.ones(np.shape(rows), dtype=bool)
    def col_mask(self, cols): return np.ones(np.shape(cols), dtype=bool)

    def __repr__(self):
        return "DefaultAssemblyStrategy()"


def _identity(ids): return ids
def _all(ids): return np.ones(np.shape(ids), dtype=bool)


class GenericAssemblyStrategy(AssemblyStrategy):
    """Strategy built from four vectorised callables."""

    def __init__(self, row_map: Callable = _identity, col_map: Callable = _identity,
                 row_mask: Callable = _all, col_mask: Callable = _all):
        self._row_map = row_map
        self._col_map = col_map
        self._row_mask = row_mask
        self._col_mask = col_mask

    def row_map(self, rows): return np.asarray(self._row_map(rows), dtype=np.int64)
    def col_map(self, cols): return np.asarray(self._col_map(cols), dtype=np.int64)
    def row_mask(self, rows): return np.asarray(self._row_mask(rows), dtype=bool)
    def col_mask(self, cols): return np.asarray(self._col_mask(cols), dtype=bool)


class MaskedAssemblyStrategy(AssemblyStrategy):
    """
    Assemble only the rows/cols in the given sets and renumber them
    consecutively in increasing global order. Typical use is restricting
    assembly to the dofs owned by one block or one process.
    """

    def __init__(self, rows: BitSet | None = None, cols: BitSet | None = None):
        self.rows = rows
        self.cols = cols
        self._row_lid = None if rows is None else rows.local_ids()
        self._col_lid = None if cols is None else cols.local_ids()

    def row_map(self, rows):
        return rows if self._row_lid is None else self._row_lid[rows]

    def col_map(self, cols):
        return cols if self._col_lid is None else self._col_lid[cols]

    def row_mask(self, rows):
        return _all(rows) if self.rows is None else self.rows.contains(rows)

    def col_mask(self, cols):
        return _all(cols) if self.cols is None else self.cols.contains(cols)

    def __repr__(self):
        return f"MaskedAssemblyStrategy(rows={self.rows!r}, cols={self.cols!r})"
