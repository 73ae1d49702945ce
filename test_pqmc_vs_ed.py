"""
Full comparison test: PQMC vs ED for the TFIM ground state
"""

import numpy as np
import pytest

from pqmc import PQMC, seed
from pqmc.ed_tfim import ED_TFIM
from pqmc.lattice import checkerboard_signs, square_lattice_couplings


def run_compare(L, J, h, m, n_sweeps, n_delay):
    """Compare the mid-string <m_s^2> of PQMC with the ED ground state"""
    N = L * L
    Jmat = square_lattice_couplings(L, J=J, periodic=False)
    hvec = np.full(N, h)

    ed = ED_TFIM(Jmat, hvec)
    ed_m2, ed_m4 = ed.staggered_moments(checkerboard_signs(N))

    res = PQMC(Jmat, hvec, m).run(n_sweeps=n_sweeps, n_delay=n_delay)
    return ed_m2, res['m2']


@pytest.mark.parametrize("J, h", [
    (0.0, 1.0),   # Free spins
    (1.0, 2.0),   # Antiferromagnet
    (-1.0, 2.0),  # Ferromagnet
])
def test_pqmc_matches_ed(J, h):
    seed(42)
    ed_m2, qmc_m2 = run_compare(L=2, J=J, h=h, m=100, n_sweeps=10000, n_delay=1000)
    rel_err = abs(qmc_m2 - ed_m2) / ed_m2
    assert rel_err < 0.1, f"ED {ed_m2:.4f} vs PQMC {qmc_m2:.4f}"


def test_ed_free_spins():
    ed = ED_TFIM(np.zeros((4, 4)), np.ones(4))
    assert ed.ground_state_energy() == pytest.approx(-4.0)
    m2, m4 = ed.staggered_moments(checkerboard_signs(4))
    assert m2 == pytest.approx(0.25)
    assert m4 == pytest.approx(0.15625)


def test_ed_classical_antiferromagnet():
    # Vanishing field: the two Néel states dominate
    ed = ED_TFIM(square_lattice_couplings(2, J=1.0, periodic=False), np.full(4, 1e-3))
    m2, _ = ed.staggered_moments(checkerboard_signs(4))
    assert m2 == pytest.approx(1.0, abs=1e-3)
