"""pycellfem.utils.bitset

Dof ownership sets for masked assembly. A BitSet marks which global ids of
``[0, size)`` are owned and numbers the owned ones consecutively.
"""
from __future__ import annotations

import numpy as np


class BitSet:
    """Boolean membership over the integer range ``[0, len(mask))``."""

    def __init__(self, mask):
        self.mask = np.asarray(mask, dtype=bool)

    @classmethod
    def from_indices(cls, indices, size: int) -> "BitSet":
        mask = np.zeros(int(size), dtype=bool)
        mask[np.asarray(indices, dtype=np.int64)] = True
        return cls(mask)

    def to_indices(self) -> np.ndarray:
        return np.flatnonzero(self.mask)

    def cardinality(self) -> int:
        return int(self.mask.sum())

    def contains(self, ids) -> np.ndarray:
        """Vectorised membership test; ids outside the range are not members."""
        ids = np.asarray(ids, dtype=np.int64)
        inside = (ids >= 0) & (ids < len(self.mask))
        out = np.zeros(ids.shape, dtype=bool)
        out[inside] = self.mask[ids[inside]]
        return out

    def local_ids(self) -> np.ndarray:
        """Global id → position among the owned ids, -1 where not owned."""
        lid = np.full(len(self.mask), -1, dtype=np.int64)
        owned = self.to_indices()
        lid[owned] = np.arange(owned.size)
        return lid

    def __len__(self):
        return len(self.mask)

    def __contains__(self, idx):
        return 0 <= idx < len(self.mask) and bool(self.mask[idx])

    def __repr__(self):
        return f"<BitSet {self.cardinality()}/{len(self)}>"
