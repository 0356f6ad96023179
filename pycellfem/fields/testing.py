"""pycellfem.fields.testing"""
from __future__ import annotations

import numpy as np

from pycellfem.core.settings import SETTINGS
from pycellfem.fields.field import as_field, gradient, hessian


def _allclose(a, b):
    return np.allclose(a, b, atol=SETTINGS.zero_tol)


def _check_mapping(f, x, v, cmp):
    w = f(x)
    assert cmp(w, v), f"{f!r} at {np.shape(x)} gave {w}, expected {v}"
    # cached evaluation, twice to catch state leaking between calls
    cache = f.return_cache(x)
    for _ in range(2):
        w = f.evaluate_into(cache, x)
        assert cmp(w, v), f"cached evaluation of {f!r} gave {w}, expected {v}"
    assert np.shape(w) == np.shape(v), f"{f!r} returned shape {np.shape(w)}, expected {np.shape(v)}"


def check_field(f, x, v, cmp=None, grad=None, hessian_value=None):
    """
    Assert that field ``f`` evaluates to ``v`` at ``x`` (a point or a batch),
    both directly and through a reused cache. With ``grad`` (and
    ``hessian_value``) the derivatives are checked the same way.

    ``cmp`` defaults to ``np.allclose`` with ``SETTINGS.zero_tol`` as
    absolute tolerance.
    """
    cmp = _allclose if cmp is None else cmp
    f = as_field(f)
    _check_mapping(f, x, v, cmp)
    if grad is not None:
        _check_mapping(gradient(f), x, grad, cmp)
    if hessian_value is not None:
        _check_mapping(hessian(f), x, hessian_value, cmp)
