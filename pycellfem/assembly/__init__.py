from .contributions import CellMatVec, DomainContribution, attach_dirichlet, pair_arrays
from .collect import (collect_cell_matrix, collect_cell_vector,
                      collect_cell_matrix_and_vector, pair_contribution_when_possible)
from .strategy import (AssemblyStrategy, DefaultAssemblyStrategy,
                       GenericAssemblyStrategy, MaskedAssemblyStrategy)
from .assembler import Assembler
from .global_matrix import SparseMatrixAssembler, DenseMatrixAssembler
__all__=['CellMatVec','DomainContribution','attach_dirichlet','pair_arrays',
         'collect_cell_matrix','collect_cell_vector','collect_cell_matrix_and_vector',
         'pair_contribution_when_possible','AssemblyStrategy','DefaultAssemblyStrategy',
         'GenericAssemblyStrategy','MaskedAssemblyStrategy','Assembler',
         'SparseMatrixAssembler','DenseMatrixAssembler']
