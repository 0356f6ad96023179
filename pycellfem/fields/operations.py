"""pycellfem.fields.operations

Lazy pointwise operations between fields and their differentiation rules.

``OperationField(op, fields)`` evaluates every operand at ``x`` and applies
``op`` to the values. When ``op`` is itself a Field it is evaluated at the
(vector) value of its single operand, which is function composition.

Gradient rules (leading gradient axis, see pycellfem.fields.field):

    ∇(f ± g)   = ∇f ± ∇g
    ∇B(f, g)   = B_left(∇f, g) + B_right(f, ∇g)    for bilinear B
    ∇(f ∘ g)   = ∇g · (∇f ∘ g)

``B_left`` applies B to every slice ``∇f[i]`` and stacks the results along
a new leading axis (``B_right`` does the same on the second operand).
"""
from __future__ import annotations

import functools
import operator

import numpy as np

from pycellfem.fields.field import Field, _as_value, _sample_point, as_field, gradient
from pycellfem.utils.cachedarray import CachedArray

__all__ = [
    "Operation", "BilinearOperation", "OperationField",
    "ADD", "SUB", "MUL", "DOT", "INNER", "OUTER", "INV", "DET",
    "add", "sub", "neg", "mul", "dot", "inner", "outer", "compose", "inv", "det",
]


class Operation:
    """Named pointwise function of the operand values."""

    def __init__(self, name: str, func):
        self.name = name
        self.func = func

    def __call__(self, *args):
        return self.func(*args)

    def __repr__(self):
        return f"Operation({self.name!r})"


def _lifted(kernel, lifts, a, b):
    if not lifts:
        return _as_value(kernel(a, b))
    side, rest = lifts[0], lifts[1:]
    if side == "left":
        return np.stack([_lifted(kernel, rest, ai, b) for ai in np.asarray(a)])
    return np.stack([_lifted(kernel, rest, a, bi) for bi in np.asarray(b)])


class BilinearOperation(Operation):
    """
    Operation linear in each of its two arguments.

    ``lifts`` lists the operands that carry an extra leading (gradient)
    axis, outermost first; the kernel is applied slice by slice.
    """

    def __init__(self, name: str, kernel, lifts=()):
        super().__init__(name, kernel)
        self.lifts = tuple(lifts)

    def __call__(self, *args):
        if len(args) != 2:
            raise NotImplementedError(
                f"'{self.name}' is bilinear; got {len(args)} operands")
        return _lifted(self.func, self.lifts, *args)

    def lift(self, side: str) -> "BilinearOperation":
        return BilinearOperation(self.name, self.func, (side,) + self.lifts)

    def __repr__(self):
        return f"BilinearOperation({self.name!r}, lifts={self.lifts})"


# ------------------------------------------------------------------
# kernels
# ------------------------------------------------------------------
def _add(*args):
    return functools.reduce(operator.add, args)


def _sub(*args):
    if len(args) == 1:
        return -args[0]
    return functools.reduce(operator.sub, args)


def _contract(a, b):
    """Scalar scaling or contraction of the last axis of a with the first of b."""
    if np.ndim(a) == 0 or np.ndim(b) == 0:
        return a * b
    return np.tensordot(a, b, axes=1)


def _inner(a, b):
    if np.ndim(a) == 0 or np.ndim(b) == 0:
        return a * b
    if np.shape(a) != np.shape(b):
        raise ValueError(f"inner needs equal shapes, got {np.shape(a)} and {np.shape(b)}")
    return np.tensordot(a, b, axes=np.ndim(a))


def _outer(a, b):
    return np.multiply.outer(a, b)


def _inv(a):
    return np.linalg.inv(a) if np.ndim(a) == 2 else 1.0 / a


def _det(a):
    return float(np.linalg.det(a)) if np.ndim(a) == 2 else a


ADD = Operation("+", _add)
SUB = Operation("-", _sub)
MUL = BilinearOperation("*", _contract)
DOT = BilinearOperation("dot", _contract)
INNER = BilinearOperation("inner", _inner)
OUTER = BilinearOperation("outer", _outer)
INV = Operation("inv", _inv)
DET = Operation("det", _det)


# ------------------------------------------------------------------
# OperationField
# ------------------------------------------------------------------
def _as_inner_point(v):
    v = np.asarray(v, dtype=float)
    if v.ndim != 1:
        raise ValueError(
            f"Composition needs a vector-valued inner field, got values of shape {v.shape}")
    return v


class OperationField(Field):
    """Lazy result of applying ``op`` to the values of ``fields``."""

    def __init__(self, op, fields):
        self.op = op
        self.fields = tuple(as_field(f) for f in fields)

    @property
    def is_composition(self) -> bool:
        return isinstance(self.op, Field)

    def _op_cache(self, values):
        if not self.is_composition:
            return None
        if len(values) != 1:
            raise NotImplementedError(
                f"Composition with {len(values)} inner fields is not implemented")
        return self.op.return_cache(_as_inner_point(values[0]))

    def _apply(self, op_cache, values):
        if self.is_composition:
            return self.op.evaluate_into(op_cache, _as_inner_point(values[0]))
        return self.op(*values)

    def return_point_cache(self, x):
        caches = [f.return_cache(x) for f in self.fields]
        values = [f.evaluate_into(c, x) for f, c in zip(self.fields, caches)]
        return self._op_cache(values), caches

    def evaluate_point(self, cache, x):
        op_cache, caches = cache
        values = [f.evaluate_into(c, x) for f, c in zip(self.fields, caches)]
        return self._apply(op_cache, values)

    def return_batch_cache(self, x):
        caches = [f.return_cache(x) for f in self.fields]
        x0 = _sample_point(x)
        values = [_eval_at(f, x0) for f in self.fields]
        op_cache = self._op_cache(values)
        vshape = np.shape(self._apply(op_cache, values))
        cb = CachedArray(np.zeros(x.shape[:-1] + vshape))
        return cb, op_cache, caches, vshape

    def evaluate_batch(self, cache, x):
        cb, op_cache, caches, vshape = cache
        batch = x.shape[:-1]
        cb.setsize(batch + vshape)
        values = [f.evaluate_into(c, x) for f, c in zip(self.fields, caches)]
        out = cb.array
        for idx in np.ndindex(*batch):
            out[idx] = self._apply(op_cache, [v[idx] for v in values])
        return out

    def gradient(self) -> Field:
        if self.is_composition:
            return _grad_composition(self)
        rule = _GRADIENT_RULES.get(self.op.name)
        if rule is None:
            raise NotImplementedError(f"No gradient rule for operation '{self.op.name}'")
        return rule(self)

    def __repr__(self):
        name = repr(self.op) if self.is_composition else self.op.name
        return f"OperationField({name}, {list(self.fields)!r})"


def _eval_at(f, x):
    return f.evaluate_into(f.return_cache(x), x)


# ------------------------------------------------------------------
# gradient rules
# ------------------------------------------------------------------
def _grad_linear(a: OperationField) -> Field:
    return OperationField(a.op, [gradient(f) for f in a.fields])


def _grad_bilinear(a: OperationField) -> Field:
    if len(a.fields) != 2:
        raise NotImplementedError(
            f"'{a.op.name}' is bilinear; got {len(a.fields)} operands")
    f, g = a.fields
    left = OperationField(a.op.lift("left"), (gradient(f), g))
    right = OperationField(a.op.lift("right"), (f, gradient(g)))
    return OperationField(ADD, (left, right))


def _grad_composition(a: OperationField) -> Field:
    if len(a.fields) != 1:
        raise NotImplementedError(
            f"Gradient of a composition with {len(a.fields)} inner fields is not implemented")
    (g,) = a.fields
    return dot(gradient(g), OperationField(gradient(a.op), (g,)))


_GRADIENT_RULES = {
    "+": _grad_linear,
    "-": _grad_linear,
    "*": _grad_bilinear,
    "dot": _grad_bilinear,
    "inner": _grad_bilinear,
    "outer": _grad_bilinear,
}


# ------------------------------------------------------------------
# builders
# ------------------------------------------------------------------
def add(*fields) -> OperationField:
    return OperationField(ADD, fields)


def sub(*fields) -> OperationField:
    return OperationField(SUB, fields)


def neg(f) -> OperationField:
    return OperationField(SUB, (f,))


def mul(f, g) -> OperationField:
    return OperationField(MUL, (f, g))


def dot(f, g) -> OperationField:
    return OperationField(DOT, (f, g))


def inner(f, g) -> OperationField:
    return OperationField(INNER, (f, g))


def outer(f, g) -> OperationField:
    return OperationField(OUTER, (f, g))


def compose(f, g) -> OperationField:
    """``f ∘ g``"""
    return OperationField(as_field(f), (g,))


def inv(f) -> OperationField:
    return OperationField(INV, (f,))


def det(f) -> OperationField:
    return OperationField(DET, (f,))
