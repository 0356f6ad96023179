# conftest.py
import numpy as np
import pytest

from pycellfem.core import Triangulation, CellDofSpace


@pytest.fixture
def chain_space():
    """Four 1-D two-node cells on five free nodes: 0-1-2-3-4."""
    return CellDofSpace([[0, 1], [1, 2], [2, 3], [3, 4]])


@pytest.fixture
def chain_trian():
    return Triangulation.from_num_cells(4, name="Ω")


@pytest.fixture
def chain_stiffness():
    """Unit-length 1-D Laplace element matrices for the four chain cells."""
    K = np.array([[1.0, -1.0], [-1.0, 1.0]])
    return np.stack([K] * 4)
