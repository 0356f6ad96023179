"""Example: 1-D Poisson with P1 elements, Dirichlet lifting and a manufactured solution"""
import logging
import numpy as np, scipy.sparse.linalg as spla
import sympy as sp
from pycellfem.core import Triangulation, CellDofSpace
from pycellfem.assembly import DomainContribution
from pycellfem.assembly.forms import assemble_matrix_and_vector
from pycellfem.fields import as_field, evaluate, hessian, coordinate_symbols

logging.basicConfig(level=logging.INFO)

(x,) = coordinate_symbols(1)
u_exact = as_field(sp.sin(sp.pi*x) + 1 + x)
f_rhs   = -1.0*hessian(u_exact)                 # -u''

n = 32
nodes = np.linspace(0, 1, n+1)
cells = np.stack([np.arange(n), np.arange(1, n+1)], axis=1)
# end nodes are prescribed (ids -1, -2), interior nodes are free
node_ids = np.concatenate([[-1], np.arange(n-1), [-2]])
V = CellDofSpace(node_ids[cells])
omega = Triangulation.from_num_cells(n, name="Ω")

h  = np.diff(nodes)
Ke = np.array([[1.0, -1.0], [-1.0, 1.0]])[None] / h[:, None, None]
# two-point Gauss rule on every cell
gp  = np.array([-1.0, 1.0])/np.sqrt(3.0)
xq  = nodes[cells].mean(axis=1)[:, None] + 0.5*h[:, None]*gp[None, :]
fq  = evaluate(f_rhs, xq[..., None])[..., 0, 0]
phi = np.array([(1 - gp)/2, (1 + gp)/2])
Fe  = 0.5*h[:, None]*(fq @ phi.T)

uhd = V.interpolate_dirichlet([evaluate(u_exact, [0.0]), evaluate(u_exact, [1.0])])
A, b = assemble_matrix_and_vector(DomainContribution({omega: Ke}), DomainContribution({omega: Fe}),
                                  V, V, uhd=uhd)
uh = spla.spsolve(A.tocsc(), b)
print('max nodal error =', np.abs(uh - evaluate(u_exact, nodes[1:-1, None])).max())
