# space.py
"""
Cell-to-dof spaces consumed by the collection routines.

Dof numbering follows the usual convention: free dofs are ``0..n_free-1``
and Dirichlet (prescribed) dofs are encoded as negative ids ``-1, -2, …``
so that Dirichlet dof ``k`` (0-based) has id ``-(k+1)``.
"""
from __future__ import annotations

import abc
from typing import Sequence

import numpy as np

from pycellfem.assembly.contributions import CellMatVec
from pycellfem.core.triangulation import Triangulation


def _as_table(cell_dof_ids):
    """Regular tables become a 2-D int array, ragged ones a list of 1-D arrays."""
    rows = [np.asarray(ids, dtype=np.int64) for ids in cell_dof_ids]
    if rows and all(r.shape == rows[0].shape for r in rows):
        return np.stack(rows, axis=0)
    if not rows:
        return np.zeros((0, 0), dtype=np.int64)
    return rows


def _take(table, cells: np.ndarray):
    if isinstance(table, np.ndarray):
        return table[cells]
    return [table[c] for c in cells]


class FESpace(abc.ABC):
    """Interface the assembly pipeline needs from a finite element space."""

    @abc.abstractmethod
    def num_free_dofs(self) -> int: ...

    @abc.abstractmethod
    def get_cell_dof_ids(self, trian: Triangulation): ...

    def num_dirichlet_dofs(self) -> int:
        return 0

    def attach_constraints_rows(self, cell_values, trian: Triangulation):
        return cell_values

    def attach_constraints_cols(self, cell_values, trian: Triangulation):
        return cell_values


class CellDofSpace(FESpace):
    """
    Space given by a background cell → global dof table.

    Parameters
    ----------
    cell_dof_ids : sequence of int sequences
        Global dof ids of every background cell (negative = Dirichlet).
    num_free_dofs : int
        Number of free dofs. Defaults to ``max(id) + 1``.
    num_dirichlet_dofs : int
        Number of Dirichlet dofs. Defaults to ``-min(id)`` over negative ids.
    cell_constraints : sequence of (n_local, n_constrained) arrays, optional
        Per background cell linear constraint ``u_local = C @ u_dofs``. When
        given, ``cell_dof_ids`` lists the ``n_constrained`` dofs of each cell
        and local matrices/vectors are condensed as ``C.T @ K @ C``.
    """

    def __init__(self, cell_dof_ids, num_free_dofs: int | None = None,
                 num_dirichlet_dofs: int | None = None,
                 cell_constraints: Sequence[np.ndarray] | None = None):
        self.cell_dof_ids = _as_table(cell_dof_ids)
        if isinstance(self.cell_dof_ids, np.ndarray):
            flat = self.cell_dof_ids.ravel()
        else:
            flat = np.concatenate(self.cell_dof_ids)
        if num_free_dofs is None:
            num_free_dofs = int(flat.max()) + 1 if flat.size and flat.max() >= 0 else 0
        if num_dirichlet_dofs is None:
            num_dirichlet_dofs = int(-flat.min()) if flat.size and flat.min() < 0 else 0
        self._num_free = int(num_free_dofs)
        self._num_dirichlet = int(num_dirichlet_dofs)
        if cell_constraints is not None:
            cell_constraints = [np.asarray(C, dtype=float) for C in cell_constraints]
            if len(cell_constraints) != len(self.cell_dof_ids):
                raise ValueError("cell_constraints must have one matrix per background cell")
            for c, C in enumerate(cell_constraints):
                if C.ndim != 2 or C.shape[1] != len(self.cell_dof_ids[c]):
                    raise ValueError(
                        f"constraint of cell {c} has shape {C.shape}, expected (n_local, {len(self.cell_dof_ids[c])})")
        self.cell_constraints = cell_constraints

    def num_free_dofs(self) -> int:
        return self._num_free

    def num_dirichlet_dofs(self) -> int:
        return self._num_dirichlet

    def num_cells(self) -> int:
        return len(self.cell_dof_ids)

    def get_cell_dof_ids(self, trian: Triangulation):
        return _take(self.cell_dof_ids, trian.get_cell_to_bgcell())

    def has_constraints(self) -> bool:
        return self.cell_constraints is not None

    def get_cell_constraints(self, trian: Triangulation):
        if self.cell_constraints is None:
            return None
        return [self.cell_constraints[c] for c in trian.get_cell_to_bgcell()]

    # ------------------------------------------------------------------
    # constraint attachment
    # ------------------------------------------------------------------
    def attach_constraints_cols(self, cell_values, trian: Triangulation):
        constraints = self.get_cell_constraints(trian)
        if constraints is None:
            return cell_values
        if isinstance(cell_values, CellMatVec):
            mats = [np.asarray(K) @ C for K, C in zip(cell_values.matrices, constraints)]
            return CellMatVec(mats, cell_values.vectors)
        return [np.asarray(K) @ C for K, C in zip(cell_values, constraints)]

    def attach_constraints_rows(self, cell_values, trian: Triangulation):
        constraints = self.get_cell_constraints(trian)
        if constraints is None:
            return cell_values
        if isinstance(cell_values, CellMatVec):
            mats = [C.T @ np.asarray(K) for K, C in zip(cell_values.matrices, constraints)]
            vecs = [C.T @ np.asarray(f) for f, C in zip(cell_values.vectors, constraints)]
            return CellMatVec(mats, vecs)
        return [C.T @ np.asarray(v) for v, C in zip(cell_values, constraints)]

    # ------------------------------------------------------------------
    def interpolate_dirichlet(self, dirichlet_values) -> "FEFunction":
        """Function with zero free values and the given Dirichlet values."""
        return FEFunction(self, np.zeros(self._num_free), dirichlet_values)

    def __repr__(self):
        return (f"CellDofSpace(num_cells={self.num_cells()}, free={self._num_free}, "
                f"dirichlet={self._num_dirichlet})")


class FEFunction:
    """Free and Dirichlet dof values attached to a CellDofSpace."""

    def __init__(self, space: CellDofSpace, free_values, dirichlet_values=None):
        self.space = space
        self.free_values = np.asarray(free_values, dtype=float)
        if self.free_values.shape != (space.num_free_dofs(),):
            raise ValueError(
                f"free_values has shape {self.free_values.shape}, expected ({space.num_free_dofs()},)")
        if dirichlet_values is None:
            dirichlet_values = np.zeros(space.num_dirichlet_dofs())
        self.dirichlet_values = np.asarray(dirichlet_values, dtype=float)
        if self.dirichlet_values.shape != (space.num_dirichlet_dofs(),):
            raise ValueError(
                f"dirichlet_values has shape {self.dirichlet_values.shape}, "
                f"expected ({space.num_dirichlet_dofs()},)")

    def get_free_dof_values(self) -> np.ndarray:
        return self.free_values

    def get_dirichlet_dof_values(self) -> np.ndarray:
        return self.dirichlet_values

    def _values_at(self, ids: np.ndarray) -> np.ndarray:
        ids = np.asarray(ids, dtype=np.int64)
        out = np.empty(ids.shape, dtype=float)
        free = ids >= 0
        out[free] = self.free_values[ids[free]]
        out[~free] = self.dirichlet_values[-ids[~free] - 1]
        return out

    def get_cell_dof_values(self, trian: Triangulation):
        """Per-cell local dof values in the local (unconstrained) numbering."""
        cell_ids = self.space.get_cell_dof_ids(trian)
        constraints = self.space.get_cell_constraints(trian)
        if constraints is None:
            if isinstance(cell_ids, np.ndarray):
                return self._values_at(cell_ids)
            return [self._values_at(ids) for ids in cell_ids]
        return [C @ self._values_at(ids) for ids, C in zip(cell_ids, constraints)]

    def __repr__(self):
        return f"FEFunction({self.space!r})"
