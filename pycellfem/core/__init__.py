from .settings import AssemblySettings, SETTINGS
from .triangulation import Triangulation
from .space import FESpace, CellDofSpace, FEFunction
__all__=['AssemblySettings','SETTINGS','Triangulation','FESpace','CellDofSpace','FEFunction']
