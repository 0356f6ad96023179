"""pycellfem.utils.cachedarray"""
from __future__ import annotations

import logging
import numpy as np

logger = logging.getLogger(__name__)


class CachedArray:
    """
    Scratch buffer that is resized in place.

    ``array`` is a view of the first ``prod(shape)`` entries of a flat
    backing buffer. ``setsize`` only reallocates when the requested shape
    needs more entries than the buffer holds, so repeated evaluation on
    inputs of the same (or smaller) size never allocates.
    """

    def __init__(self, array):
        array = np.asarray(array)
        self._buffer = np.ascontiguousarray(array).reshape(-1).copy()
        self.array = self._buffer[: array.size].reshape(array.shape)

    @property
    def shape(self):
        return self.array.shape

    @property
    def dtype(self):
        return self.array.dtype

    @property
    def capacity(self) -> int:
        return self._buffer.size

    def setsize(self, shape) -> bool:
        """Make ``array`` have ``shape``. Returns True if the buffer was reallocated."""
        shape = tuple(int(s) for s in shape)
        if shape == self.array.shape:
            return False
        n = int(np.prod(shape, dtype=np.int64))
        grown = n > self._buffer.size
        if grown:
            logger.debug(f"CachedArray growing from {self._buffer.size} to {n} entries")
            self._buffer = np.empty(n, dtype=self._buffer.dtype)
        self.array = self._buffer[:n].reshape(shape)
        return grown

    def fill(self, value) -> None:
        self.array.fill(value)

    def __len__(self):
        return len(self.array)

    def __getitem__(self, idx):
        return self.array[idx]

    def __setitem__(self, idx, value):
        self.array[idx] = value

    def __repr__(self):
        return f"<CachedArray shape={self.array.shape} capacity={self._buffer.size}>"
