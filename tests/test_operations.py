import numpy as np
import pytest

from pycellfem.fields import (
    OperationField, as_field, compose, det, dot, evaluate, gradient, hessian, inner,
    inv, outer, zero,
)
from pycellfem.fields.operations import MUL
from pycellfem.fields.testing import check_field


P = np.array([1.0, 2.0])
BATCH = np.array([[1.0, 2.0], [0.5, -1.0], [0.0, 3.0], [-2.0, 0.25]])

f = as_field(lambda x: x[0] ** 2)          # ∇f = [2 x0, 0]
g = as_field(lambda x: x[1])               # ∇g = [0, 1]
v = as_field(lambda x: [x[0], x[1]])       # ∇v = I
w = as_field(lambda x: [x[1], 1.0])        # ∇w = [[0, 0], [1, 0]]


def test_sum_and_difference():
    check_field(f + g, P, 3.0, grad=[2.0, 1.0])
    check_field(f - g, P, -1.0, grad=[2.0, -1.0])
    check_field(f + 1.0, P, 2.0, grad=[2.0, 0.0])
    check_field(1.0 - f, P, 0.0, grad=[-2.0, 0.0])


def test_negation():
    check_field(-f, np.array([3.0, 0.0]), -9.0, grad=[-6.0, 0.0])


def test_product_of_scalars():
    # f*g = x0^2 x1
    check_field(f * g, P, 2.0, grad=[4.0, 1.0], hessian_value=[[4.0, 2.0], [2.0, 0.0]])


def test_constant_times_field():
    check_field(2.0 * f, P, 2.0, grad=[4.0, 0.0])


def test_scalar_times_vector():
    # s*v = [x0^2, x0 x1], ∇[i, j] = ∂_i (s v)_j
    s = as_field(lambda x: x[0])
    check_field(s * v, P, [1.0, 2.0], grad=[[2.0, 2.0], [0.0, 1.0]])
    check_field(v * s, P, [1.0, 2.0], grad=[[2.0, 2.0], [0.0, 1.0]])


def test_dot_product():
    # v·w = x0 x1 + x1
    check_field(dot(v, w), P, 4.0, grad=[2.0, 2.0])


def test_inner_and_outer():
    check_field(inner(v, w), P, 4.0, grad=[2.0, 2.0])
    # (v⊗w)[a, b] = v_a w_b
    check_field(outer(v, w), P, [[2.0, 1.0], [4.0, 2.0]])
    G = evaluate(gradient(outer(v, w)), P)
    assert G.shape == (2, 2, 2)
    # ∂_1 (v⊗w) = e1⊗w + v⊗e0
    np.testing.assert_allclose(G[1], [[0.0, 0.0], [2.0, 1.0]] + np.array([[1.0, 0.0], [2.0, 0.0]]))


def test_matrix_times_vector():
    A = as_field([[2.0, 0.0], [1.0, 3.0]])
    check_field(A * v, P, [2.0, 7.0], grad=[[2.0, 1.0], [0.0, 3.0]])


def test_chain_rule_identity_inner_field():
    outer_f = as_field(lambda y: y[0] + y[1])
    h = compose(outer_f, v)
    check_field(h, P, 3.0, grad=[1.0, 1.0])


def test_chain_rule():
    # h(x) = F(G(x)), G = [x0 x1, x1], F(y) = y0^2 + y1  =>  h = x0^2 x1^2 + x1
    G = as_field(lambda x: [x[0] * x[1], x[1]])
    F = as_field(lambda y: y[0] ** 2 + y[1])
    h = F.compose(G)
    check_field(h, P, 6.0, grad=[8.0, 5.0])
    check_field(h, BATCH,
                np.array([(x[0] * x[1]) ** 2 + x[1] for x in BATCH]),
                grad=np.array([[2 * x[0] * x[1] ** 2, 2 * x[0] ** 2 * x[1] + 1.0] for x in BATCH]))


def test_composition_needs_vector_inner_field():
    h = compose(lambda y: y[0], f)
    with pytest.raises(ValueError):
        evaluate(h, P)


def test_composition_with_several_inner_fields():
    h = OperationField(as_field(lambda y: y[0]), (v, w))
    with pytest.raises(NotImplementedError):
        evaluate(h, P)
    with pytest.raises(NotImplementedError):
        gradient(h)


def test_bilinear_operation_needs_two_operands():
    h = OperationField(MUL, (f, g, f))
    with pytest.raises(NotImplementedError):
        evaluate(h, P)
    with pytest.raises(NotImplementedError):
        gradient(h)


def test_inv_and_det():
    A = as_field([[2.0, 0.0], [0.0, 4.0]])
    check_field(inv(A), P, [[0.5, 0.0], [0.0, 0.25]])
    check_field(det(A), P, 8.0)
    check_field(inv(f + 1.0), P, 0.5)
    with pytest.raises(NotImplementedError):
        gradient(inv(A))
    with pytest.raises(NotImplementedError):
        gradient(det(A))


def test_zero_field_is_neutral():
    check_field(f + zero(f), P, 1.0, grad=[2.0, 0.0])
    check_field(zero(f) * g, P, 0.0, grad=[0.0, 0.0])


@pytest.mark.parametrize("make", [
    lambda: f * g + 2.0,
    lambda: dot(v, w) - f,
    lambda: compose(lambda y: y[0] * y[1], w * g),
    lambda: outer(v, w),
])
def test_batched_matches_pointwise(make):
    h = make()
    for field in (h, gradient(h)):
        batched = evaluate(field, BATCH)
        pointwise = np.array([evaluate(field, x) for x in BATCH])
        np.testing.assert_allclose(batched, pointwise)
        # nested batch shape
        nested = evaluate(field, BATCH.reshape(2, 2, 2))
        np.testing.assert_allclose(nested.reshape(pointwise.shape), pointwise)


def test_operation_cache_is_reused():
    h = dot(v, w) + f
    c = h.return_cache(BATCH)
    a = h.evaluate_into(c, BATCH)
    b = h.evaluate_into(c, BATCH[::-1].copy())
    assert np.shares_memory(a, b)
    np.testing.assert_allclose(b, [evaluate(h, x) for x in BATCH[::-1]])


def test_hessian_of_sum():
    check_field(hessian(f + g), P, [[2.0, 0.0], [0.0, 0.0]])
