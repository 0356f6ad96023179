"""pycellfem.fields.field

Fields are functions of a point ``x`` (1-D array of shape ``(D,)``)
returning a scalar, a vector or a tensor. Evaluation always goes through a
cache created for inputs shaped like ``x``::

    c = f.return_cache(x)
    v = f.evaluate_into(c, x)      # reuse c for every further x of that shape

``x`` is a single point or a batch of points (array of shape
``batch + (D,)``). For batches the default strategy is a positional loop
over the point rule writing into a CachedArray, so evaluating again on
inputs of the same size does not allocate.

Gradients add a leading axis of length D: ``∇u[i, ...] = ∂u[...]/∂x_i``.
"""
from __future__ import annotations

import numbers

import numpy as np
import sympy as sp

from pycellfem.utils.cachedarray import CachedArray

__all__ = [
    "Field", "GenericField", "ConstantField", "FunctionField", "ZeroField",
    "FieldGradient", "FieldHessian", "as_field", "evaluate", "evaluate_into",
    "return_cache", "return_value_shape", "gradient", "grad", "hessian", "zero",
]


def _as_input(x) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    if x.ndim == 0:
        raise ValueError("Fields are evaluated at points (1-D arrays) or arrays of points")
    if x.ndim == 1 and x.size == 0:
        raise ValueError(
            "An empty sequence carries no point dimension; pass an array of shape (0, D)")
    return x


def _is_point(x: np.ndarray) -> bool:
    return x.ndim == 1


def _is_empty(x: np.ndarray) -> bool:
    return int(np.prod(x.shape[:-1])) == 0


def _sample_point(x: np.ndarray) -> np.ndarray:
    """
    First point of a batch, or the origin when the batch is empty.

    Empty batches still need the value shape of the field. Fields that can
    report it (constant, zero and sympy-backed fields, gradients of those)
    do so without evaluation; the others are evaluated at the origin.
    """
    if _is_empty(x):
        return np.zeros(x.shape[-1])
    return x[tuple(0 for _ in x.shape[:-1])]


def _as_value(v):
    """Scalars come back as Python floats, everything else as float arrays."""
    v = np.asarray(v, dtype=float)
    return float(v) if v.ndim == 0 else v


def _default_batch_cache(field, x):
    x0 = _sample_point(x)
    cf = field.return_point_cache(x0)
    if _is_empty(x):
        vshape = tuple(field.value_shape(x0))
    else:
        vshape = np.shape(field.evaluate_point(cf, x0))
    cb = CachedArray(np.zeros(x.shape[:-1] + vshape))
    return cb, cf, vshape


def _default_batch_evaluate(evaluate_point, cache, x):
    cb, cf, vshape = cache
    batch = x.shape[:-1]
    cb.setsize(batch + vshape)
    out = cb.array
    for idx in np.ndindex(*batch):
        out[idx] = evaluate_point(cf, x[idx])
    return out


class Field:
    """
    Base of every field.

    Subclasses provide the point rule (``return_point_cache`` and
    ``evaluate_point``) and may override the batch rule. Fields that know
    their derivatives implement the point hooks ``return_gradient_cache`` /
    ``evaluate_gradient_into`` (and the Hessian analogues); ``gradient(f)``
    then returns a FieldGradient that calls them.
    """

    # -------------------------- point rule ---------------------------
    def return_point_cache(self, x):
        return None

    def evaluate_point(self, cache, x):
        raise NotImplementedError(f"{type(self).__name__} does not implement point evaluation")

    # -------------------------- batch rule ---------------------------
    def return_batch_cache(self, x):
        return _default_batch_cache(self, x)

    def evaluate_batch(self, cache, x):
        return _default_batch_evaluate(self.evaluate_point, cache, x)

    # ---------------------------- API --------------------------------
    def return_cache(self, x):
        x = _as_input(x)
        return self.return_point_cache(x) if _is_point(x) else self.return_batch_cache(x)

    def evaluate_into(self, cache, x):
        x = _as_input(x)
        return self.evaluate_point(cache, x) if _is_point(x) else self.evaluate_batch(cache, x)

    def __call__(self, x):
        return evaluate(self, x)

    def value_shape(self, x) -> tuple:
        """Shape of the value at point ``x``."""
        return np.shape(evaluate(self, x))

    # ------------------------ differentiation ------------------------
    def return_gradient_cache(self, x):
        return None

    def evaluate_gradient_into(self, cache, x):
        raise NotImplementedError(f"{type(self).__name__} does not provide its gradient")

    def return_hessian_cache(self, x):
        return None

    def evaluate_hessian_into(self, cache, x):
        raise NotImplementedError(f"{type(self).__name__} does not provide its hessian")

    def gradient(self) -> "Field":
        return FieldGradient(self)

    # ------------------------- composition ---------------------------
    def compose(self, g) -> "Field":
        """``self ∘ g``: evaluate ``self`` at the values of ``g``."""
        from pycellfem.fields.operations import compose
        return compose(self, g)

    def __add__(self, other):
        from pycellfem.fields.operations import add
        return add(self, other)

    def __radd__(self, other):
        from pycellfem.fields.operations import add
        return add(other, self)

    def __sub__(self, other):
        from pycellfem.fields.operations import sub
        return sub(self, other)

    def __rsub__(self, other):
        from pycellfem.fields.operations import sub
        return sub(other, self)

    def __mul__(self, other):
        from pycellfem.fields.operations import mul
        return mul(self, other)

    def __rmul__(self, other):
        from pycellfem.fields.operations import mul
        return mul(other, self)

    def __neg__(self):
        from pycellfem.fields.operations import neg
        return neg(self)

    def __repr__(self):
        return f"{self.__class__.__name__}()"


# ======================================================================
# GenericField and its specialisations
# ======================================================================
class GenericField(Field):
    """
    Wraps an object implementing ``return_cache(x)`` and
    ``evaluate_into(cache, x)`` so that it behaves like a Field.
    """

    def __init__(self, obj):
        self.object = obj

    def return_cache(self, x):
        return self.object.return_cache(_as_input(x))

    def evaluate_into(self, cache, x):
        return self.object.evaluate_into(cache, _as_input(x))

    def return_point_cache(self, x):
        return self.object.return_cache(x)

    def evaluate_point(self, cache, x):
        return self.object.evaluate_into(cache, x)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.object!r})"


class ConstantField(GenericField):
    """The same value (number or array) at every point. Derivatives are zero."""

    def __init__(self, value):
        super().__init__(_as_value(value))

    @property
    def value(self):
        return self.object

    def return_cache(self, x):
        return Field.return_cache(self, x)

    def evaluate_into(self, cache, x):
        return Field.evaluate_into(self, cache, x)

    def return_point_cache(self, x):
        return None

    def evaluate_point(self, cache, x):
        return self.object

    def value_shape(self, x):
        return np.shape(self.object)

    def return_batch_cache(self, x):
        vshape = np.shape(self.object)
        return CachedArray(np.zeros(x.shape[:-1] + vshape)), None, vshape

    def evaluate_batch(self, cache, x):
        cb, _, vshape = cache
        cb.setsize(x.shape[:-1] + vshape)
        cb.array[...] = self.object
        return cb.array

    def return_gradient_cache(self, x):
        return np.zeros((x.shape[-1],) + np.shape(self.object))

    def evaluate_gradient_into(self, cache, x):
        return cache

    def return_hessian_cache(self, x):
        D = x.shape[-1]
        return np.zeros((D, D) + np.shape(self.object))

    def evaluate_hessian_into(self, cache, x):
        return cache


class FunctionField(GenericField):
    """
    A plain function of the point (or a sympy expression in the coordinate
    symbols). Derivatives are obtained symbolically through ``Analytic``.
    """

    def __init__(self, func):
        from pycellfem.fields.analytic import Analytic
        if isinstance(func, (sp.Basic, sp.MatrixBase, sp.NDimArray)) or not callable(func):
            func = Analytic(func)
        super().__init__(func)
        self._analytic = func if isinstance(func, Analytic) else None

    @property
    def analytic(self):
        if self._analytic is None:
            from pycellfem.fields.analytic import Analytic
            self._analytic = Analytic(self.object)
        return self._analytic

    def return_cache(self, x):
        return Field.return_cache(self, x)

    def evaluate_into(self, cache, x):
        return Field.evaluate_into(self, cache, x)

    def return_point_cache(self, x):
        return None

    def evaluate_point(self, cache, x):
        return _as_value(self.object(x))

    def value_shape(self, x):
        # sympy-backed fields know their shape without evaluation
        if self._analytic is not None:
            return self._analytic.value_shape(np.shape(x)[-1])
        return Field.value_shape(self, x)

    def return_gradient_cache(self, x):
        return self.analytic.derivative(1)

    def evaluate_gradient_into(self, cache, x):
        return cache(x)

    def return_hessian_cache(self, x):
        return self.analytic.derivative(2)

    def evaluate_hessian_into(self, cache, x):
        return cache(x)


# ======================================================================
# Zero field
# ======================================================================
class ZeroField(Field):
    """
    ``0*f`` for a field ``f``: zeros of the value shape of ``f``.

    ``order`` counts the gradients taken of the zero field; each one adds a
    leading axis of length D. Only the value shape of ``f`` is ever needed,
    so gradients exist whether or not ``f`` is differentiable.
    """

    def __init__(self, field: Field, order: int = 0):
        self.field = as_field(field)
        self.order = order

    def value_shape(self, x):
        return (np.shape(x)[-1],) * self.order + tuple(self.field.value_shape(x))

    def return_point_cache(self, x):
        vshape = self.value_shape(x)
        return 0.0 if vshape == () else np.zeros(vshape)

    def evaluate_point(self, cache, x):
        return cache

    def return_batch_cache(self, x):
        vshape = self.value_shape(_sample_point(x))
        return CachedArray(np.zeros(x.shape[:-1] + vshape)), None, vshape

    def evaluate_batch(self, cache, x):
        cb, _, vshape = cache
        if cb.setsize(x.shape[:-1] + vshape) or cb.array.any():
            cb.fill(0.0)
        return cb.array

    def gradient(self):
        return ZeroField(self.field, self.order + 1)

    def __repr__(self):
        if self.order == 0:
            return f"ZeroField({self.field!r})"
        return f"ZeroField({self.field!r}, order={self.order})"


# ======================================================================
# Differentiation
# ======================================================================
class FieldGradient(Field):
    """Gradient of a field that implements the gradient hooks."""

    def __init__(self, field: Field):
        self.object = field

    def return_point_cache(self, x):
        return self.object.return_gradient_cache(x)

    def evaluate_point(self, cache, x):
        return self.object.evaluate_gradient_into(cache, x)

    def value_shape(self, x):
        return (np.shape(x)[-1],) + tuple(self.object.value_shape(x))

    def gradient(self):
        return FieldHessian(self.object)

    def __repr__(self):
        return f"FieldGradient({self.object!r})"


class FieldHessian(Field):
    """Hessian of a field that implements the hessian hooks."""

    def __init__(self, field: Field):
        self.object = field

    def return_point_cache(self, x):
        return self.object.return_hessian_cache(x)

    def evaluate_point(self, cache, x):
        return self.object.evaluate_hessian_into(cache, x)

    def value_shape(self, x):
        D = np.shape(x)[-1]
        return (D, D) + tuple(self.object.value_shape(x))

    def gradient(self):
        raise NotImplementedError("Default implementation of 3rd order derivatives not available")

    def __repr__(self):
        return f"FieldHessian({self.object!r})"


# ======================================================================
# Functional API
# ======================================================================
def as_field(obj) -> Field:
    """Wrap numbers, arrays, functions and sympy expressions as fields."""
    if isinstance(obj, Field):
        return obj
    if isinstance(obj, numbers.Number) and not isinstance(obj, sp.Basic):
        return ConstantField(obj)
    if isinstance(obj, (np.ndarray, list, tuple)):
        return ConstantField(np.asarray(obj, dtype=float))
    if isinstance(obj, (sp.Basic, sp.MatrixBase, sp.NDimArray)) or callable(obj):
        return FunctionField(obj)
    if hasattr(obj, "return_cache") and hasattr(obj, "evaluate_into"):
        return GenericField(obj)
    raise TypeError(f"Cannot interpret {type(obj).__name__} as a Field")


def return_cache(f, x):
    return as_field(f).return_cache(x)


def evaluate_into(cache, f, x):
    return as_field(f).evaluate_into(cache, x)


def evaluate(f, x):
    f = as_field(f)
    cache = f.return_cache(x)
    return f.evaluate_into(cache, x)


def return_value_shape(f, x) -> tuple:
    x = _as_input(x)
    return tuple(as_field(f).value_shape(x if _is_point(x) else _sample_point(x)))


def gradient(f) -> Field:
    return as_field(f).gradient()


grad = gradient


def hessian(f) -> Field:
    return gradient(gradient(f))


def zero(f) -> ZeroField:
    return ZeroField(as_field(f))
