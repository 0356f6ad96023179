"""pycellfem.assembly.contributions

Per-cell local data keyed by the integration domain it was computed on.
"""
from __future__ import annotations

import numbers
from typing import Iterator

import numpy as np

__all__ = ["DomainContribution", "CellMatVec", "pair_arrays", "attach_dirichlet"]


class CellMatVec:
    """
    Aligned per-cell matrices and vectors of one domain.

    ``len`` is the number of cells and item ``c`` is the pair
    ``(matrices[c], vectors[c])``.
    """

    def __init__(self, matrices, vectors):
        if len(matrices) != len(vectors):
            raise ValueError(
                f"Cannot pair {len(matrices)} cell matrices with {len(vectors)} cell vectors")
        self.matrices = matrices
        self.vectors = vectors

    def __len__(self):
        return len(self.matrices)

    def __getitem__(self, c):
        return self.matrices[c], self.vectors[c]

    def __iter__(self) -> Iterator[tuple]:
        return zip(self.matrices, self.vectors)

    def __repr__(self):
        return f"CellMatVec(num_cells={len(self)})"


def pair_arrays(cell_mats, cell_vecs) -> CellMatVec:
    """Pair the matrix and vector contributions of the same cells."""
    return CellMatVec(cell_mats, cell_vecs)


def attach_dirichlet(cell_values, cell_dirichlet_values):
    """
    Move the effect of prescribed dof values into the vector side.

    ``cell_values`` is either a CellMatVec (the vector becomes
    ``vec - mat @ vals``) or a sequence of matrices (a CellMatVec with
    vectors ``-mat @ vals`` is returned).
    """
    if isinstance(cell_values, CellMatVec):
        mats, vecs = cell_values.matrices, cell_values.vectors
    else:
        mats, vecs = cell_values, None
    if len(mats) != len(cell_dirichlet_values):
        raise ValueError(
            f"Dirichlet values given for {len(cell_dirichlet_values)} cells, "
            f"contribution has {len(mats)}")
    lifted = []
    for c, (K, vals) in enumerate(zip(mats, cell_dirichlet_values)):
        K = np.asarray(K)
        vals = np.asarray(vals)
        f = np.zeros(K.shape[0], dtype=np.result_type(K, float)) if vecs is None else np.asarray(vecs[c])
        if np.any(vals != 0):
            f = f - K @ vals
        lifted.append(f)
    return CellMatVec(mats, lifted)


def _combine(a, b, sign: float):
    """Cell-wise ``a + sign*b`` for arrays, lists of arrays or CellMatVec."""
    if isinstance(a, CellMatVec) or isinstance(b, CellMatVec):
        if not (isinstance(a, CellMatVec) and isinstance(b, CellMatVec)):
            raise TypeError("Cannot add a paired matrix-vector contribution to an unpaired one")
        return CellMatVec(_combine(a.matrices, b.matrices, sign),
                          _combine(a.vectors, b.vectors, sign))
    if len(a) != len(b):
        raise ValueError(f"Contributions over the same domain have {len(a)} and {len(b)} cells")
    if isinstance(a, np.ndarray) and isinstance(b, np.ndarray):
        return a + sign * b
    return [np.asarray(x) + sign * np.asarray(y) for x, y in zip(a, b)]


def _scale(a, alpha):
    if isinstance(a, CellMatVec):
        return CellMatVec(_scale(a.matrices, alpha), _scale(a.vectors, alpha))
    if isinstance(a, np.ndarray):
        return alpha * a
    return [alpha * np.asarray(x) for x in a]


class DomainContribution:
    """
    Ordered mapping ``domain → per-cell values``.

    Each domain appears once; adding a second contribution over the same
    domain sums it cell-wise. Iteration order is insertion order, so the
    assembled system does not depend on hashing.
    """

    def __init__(self, contributions=None):
        self.dict: dict = {}
        if contributions is not None:
            for trian, values in dict(contributions).items():
                self.add_contribution(trian, values)

    def num_domains(self) -> int:
        return len(self.dict)

    def get_domains(self) -> tuple:
        return tuple(self.dict.keys())

    def get_contribution(self, trian):
        if trian not in self.dict:
            raise KeyError(f"There is no contribution associated with {trian!r}")
        return self.dict[trian]

    def add_contribution(self, trian, values, sign: float = 1.0):
        if trian in self.dict:
            self.dict[trian] = _combine(self.dict[trian], values, sign)
        elif sign == 1.0:
            self.dict[trian] = values
        else:
            self.dict[trian] = _scale(values, sign)
        return self

    def items(self):
        return self.dict.items()

    def __contains__(self, trian):
        return trian in self.dict

    def __len__(self):
        return len(self.dict)

    def __iter__(self):
        return iter(self.dict)

    def __add__(self, other):
        if not isinstance(other, DomainContribution):
            return NotImplemented
        out = DomainContribution()
        for trian, values in self.dict.items():
            out.add_contribution(trian, values)
        for trian, values in other.dict.items():
            out.add_contribution(trian, values)
        return out

    def __sub__(self, other):
        if not isinstance(other, DomainContribution):
            return NotImplemented
        out = DomainContribution()
        for trian, values in self.dict.items():
            out.add_contribution(trian, values)
        for trian, values in other.dict.items():
            out.add_contribution(trian, values, sign=-1.0)
        return out

    def __neg__(self):
        return DomainContribution({t: _scale(v, -1.0) for t, v in self.dict.items()})

    def __mul__(self, alpha):
        if not isinstance(alpha, numbers.Number):
            return NotImplemented
        return DomainContribution({t: _scale(v, alpha) for t, v in self.dict.items()})

    __rmul__ = __mul__

    def __repr__(self):
        if not self.dict:
            return "DomainContribution()"
        pieces = [f"  {trian!r}: {len(v)} cells" for trian, v in self.dict.items()]
        return "DomainContribution(\n" + ",\n".join(pieces) + "\n)"
