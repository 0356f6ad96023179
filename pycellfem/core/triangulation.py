"""pycellfem.core.triangulation"""
from __future__ import annotations

import numpy as np


class Triangulation:
    """
    Integration-domain handle.

    A triangulation is a set of cells of a background model, identified by
    ``cell_to_bgcell``. It is hashed by identity so it can key a
    DomainContribution; two handles over the same cells are still two
    different domains.
    """

    def __init__(self, cell_to_bgcell, name: str = ""):
        self.cell_to_bgcell = np.asarray(cell_to_bgcell, dtype=np.int64)
        if self.cell_to_bgcell.ndim != 1:
            raise ValueError("cell_to_bgcell must be a 1-D array of background cell ids")
        self.name = name

    @classmethod
    def from_num_cells(cls, num_cells: int, name: str = "") -> "Triangulation":
        """Triangulation covering background cells ``0..num_cells-1``."""
        return cls(np.arange(int(num_cells)), name=name)

    def num_cells(self) -> int:
        return int(self.cell_to_bgcell.size)

    def get_cell_to_bgcell(self) -> np.ndarray:
        return self.cell_to_bgcell

    def restrict(self, cells, name: str = "") -> "Triangulation":
        """Sub-triangulation made of the given local cells."""
        cells = np.asarray(cells, dtype=np.int64)
        return Triangulation(self.cell_to_bgcell[cells], name=name or self.name)

    def __len__(self):
        return self.num_cells()

    def __repr__(self):
        label = f"'{self.name}', " if self.name else ""
        return f"Triangulation({label}num_cells={self.num_cells()})"
