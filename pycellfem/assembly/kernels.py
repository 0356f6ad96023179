import numba
import numpy as np


@numba.njit(cache=True)
def csr_add_entries(indptr, indices, data, rows, cols, vals):
    """
    data[(rows[k], cols[k])] += vals[k] for a canonical CSR matrix.

    Each entry is located by binary search inside its row. Entries that are
    not stored in the pattern are skipped and counted; the count is returned.
    """
    n_missing = 0
    for k in range(rows.shape[0]):
        i = rows[k]
        j = cols[k]
        lo = indptr[i]
        end = indptr[i + 1]
        hi = end
        while lo < hi:
            mid = (lo + hi) // 2
            if indices[mid] < j:
                lo = mid + 1
            else:
                hi = mid
        if lo < end and indices[lo] == j:
            data[lo] += vals[k]
        else:
            n_missing += 1
    return n_missing


@numba.njit(cache=True)
def csr_pattern_from_keys(keys, n_rows, n_cols):
    """
    Build ``(indptr, indices)`` of a canonical CSR pattern from sorted,
    unique linear keys ``row*n_cols + col``.
    """
    indptr = np.zeros(n_rows + 1, dtype=np.int64)
    indices = np.empty(keys.shape[0], dtype=np.int64)
    for k in range(keys.shape[0]):
        i = keys[k] // n_cols
        indices[k] = keys[k] - i * n_cols
        indptr[i + 1] += 1
    for i in range(n_rows):
        indptr[i + 1] += indptr[i]
    return indptr, indices
