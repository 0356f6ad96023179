from .core import Triangulation, CellDofSpace, FEFunction, SETTINGS
from .assembly import (DomainContribution, CellMatVec, SparseMatrixAssembler,
                       DenseMatrixAssembler, collect_cell_matrix, collect_cell_vector,
                       collect_cell_matrix_and_vector)
from .fields import Field, as_field, evaluate, gradient, hessian

__version__ = "0.1.0"
