import sympy as sp
import numpy as np


def coordinate_symbols(dim):
    """x, y, z up to 3-D, x0, x1, ... above."""
    if dim <= 3:
        return sp.symbols("x y z")[:dim]
    return sp.symbols(f"x0:{dim}")


class Analytic:
    """
    Wraps a SymPy expression (scalar, vector or tensor) in the coordinate
    symbols, or a Python function of the point that SymPy can trace.
    Calling it with a point returns the numeric value; ``derivative(k)``
    returns the k-th derivative as another Analytic with k leading axes of
    length D.
    """

    def __init__(self, expr, order=0):
        self.expr = expr
        self.order = order
        self._by_dim = {}

    def _symbolic(self, dim):
        """(symbols, array expression) for points of dimension ``dim``."""
        if dim in self._by_dim:
            return self._by_dim[dim]
        syms = coordinate_symbols(dim)
        expr = self.expr
        if not isinstance(expr, (sp.Basic, sp.MatrixBase, sp.NDimArray)):
            try:
                expr = expr(sp.Array(syms))
            except Exception as e:
                raise NotImplementedError(
                    f"Cannot differentiate {expr!r} symbolically; give the gradient explicitly") from e
        if isinstance(expr, np.ndarray):
            expr = expr.tolist()
        expr = sp.Array(expr) if isinstance(expr, (sp.MatrixBase, list, tuple)) else sp.sympify(expr)
        for _ in range(self.order):
            expr = sp.derive_by_array(expr, syms)
        func = sp.lambdify(syms, expr.tolist() if isinstance(expr, sp.NDimArray) else expr, "numpy")
        self._by_dim[dim] = (syms, expr, func)
        return self._by_dim[dim]

    def sympy_expr(self, dim):
        return self._symbolic(dim)[1]

    def value_shape(self, dim):
        """Shape of the value for points of dimension ``dim``, read off the expression."""
        expr = self.sympy_expr(dim)
        return tuple(expr.shape) if isinstance(expr, sp.NDimArray) else ()

    def derivative(self, order=1):
        return Analytic(self.expr, self.order + order)

    def __call__(self, x):
        x = np.asarray(x, dtype=float)
        func = self._symbolic(x.shape[-1])[2]
        value = np.asarray(func(*x), dtype=float)
        if value.ndim == 0:
            return float(value)
        return value

    def __repr__(self):
        return f"Analytic({self.expr!r}, order={self.order})"
