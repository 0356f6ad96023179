import numpy as np
import pytest

from pycellfem.assembly import (
    CellMatVec, DomainContribution, attach_dirichlet, pair_contribution_when_possible,
)
from pycellfem.core import Triangulation


K = np.array([[2.0, -1.0], [-1.0, 2.0]])


@pytest.fixture
def domains():
    return (Triangulation.from_num_cells(1, "Ω1"),
            Triangulation.from_num_cells(1, "Ω2"),
            Triangulation.from_num_cells(1, "Ω3"))


def test_domain_contribution_basics(domains):
    t1, t2, _ = domains
    a = DomainContribution({t1: [K]})
    assert a.num_domains() == 1
    assert a.get_domains() == (t1,)
    assert t1 in a and t2 not in a
    with pytest.raises(KeyError):
        a.get_contribution(t2)


def test_same_domain_contributions_are_summed(domains):
    t1, t2, _ = domains
    a = DomainContribution({t1: [K]})
    b = DomainContribution({t1: [K], t2: [2 * K]})
    c = a + b
    assert c.get_domains() == (t1, t2)
    np.testing.assert_allclose(c.get_contribution(t1)[0], 2 * K)
    d = c - a
    np.testing.assert_allclose(d.get_contribution(t1)[0], K)
    np.testing.assert_allclose((-a).get_contribution(t1)[0], -K)
    np.testing.assert_allclose((3 * a).get_contribution(t1)[0], 3 * K)
    # operands are left untouched
    np.testing.assert_allclose(a.get_contribution(t1)[0], K)


def test_cannot_mix_paired_and_unpaired(domains):
    t1, _, _ = domains
    a = DomainContribution({t1: [K]})
    b = DomainContribution({t1: CellMatVec([K], [np.ones(2)])})
    with pytest.raises(TypeError):
        a + b


def test_cell_matvec_lengths_must_match():
    with pytest.raises(ValueError):
        CellMatVec([K, K], [np.ones(2)])
    mv = CellMatVec([K], [np.ones(2)])
    assert len(mv) == 1
    mat, vec = mv[0]
    np.testing.assert_allclose(mat, K)


def test_pairing_partitions_domains(domains):
    t1, t2, t3 = domains
    biform = DomainContribution({t1: [K], t2: [K]})
    liform = DomainContribution({t2: [np.ones(2)], t3: [np.ones(2)]})
    matvec, mat, vec = pair_contribution_when_possible(biform, liform)
    assert matvec.get_domains() == (t2,)
    assert mat.get_domains() == (t1,)
    assert vec.get_domains() == (t3,)
    assert isinstance(matvec.get_contribution(t2), CellMatVec)


def test_pairing_empty_liform(domains):
    t1, _, _ = domains
    matvec, mat, vec = pair_contribution_when_possible(
        DomainContribution({t1: [K]}), DomainContribution())
    assert len(matvec) == 0 and len(vec) == 0
    assert mat.get_domains() == (t1,)


def test_attach_dirichlet():
    vals = [np.array([0.0, 1.0])]
    lifted = attach_dirichlet(CellMatVec([K], [np.zeros(2)]), vals)
    np.testing.assert_allclose(lifted.vectors[0], [1.0, -2.0])
    # matrix-only input becomes paired
    lifted = attach_dirichlet([K], vals)
    assert isinstance(lifted, CellMatVec)
    np.testing.assert_allclose(lifted.vectors[0], [1.0, -2.0])
    # zero values leave the vector alone
    lifted = attach_dirichlet(CellMatVec([K], [np.ones(2)]), [np.zeros(2)])
    np.testing.assert_allclose(lifted.vectors[0], [1.0, 1.0])


def test_attach_dirichlet_cell_count_mismatch():
    with pytest.raises(ValueError):
        attach_dirichlet([K, K], [np.zeros(2)])
