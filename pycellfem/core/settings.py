# pycellfem/core/settings.py
from dataclasses import dataclass

import numpy as np


@dataclass
class AssemblySettings:
    """
    Library-wide conventions read at call time by the assembly and field code.
    """
    # Negative cell dof ids mark Dirichlet (prescribed) dofs and are never assembled.
    skip_negative_ids: bool = True
    # Floating point type of allocated matrices and vectors.
    dtype: type = np.float64
    # Raise IndexError when a mapped row/col falls outside the assembler's index sets.
    check_bounds: bool = True
    # Absolute tolerance of the default comparison in check_field.
    zero_tol: float = 1e-12


# Global, editable in one place:
SETTINGS = AssemblySettings()
