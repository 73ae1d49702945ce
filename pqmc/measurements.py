"""
PQMC Measurement Modules (Numba)
"""

import numpy as np
from numba import jit

from .updates import OP_FLIP


@jit(nopython=True, cache=True)
def propagate(op_type, op_site1, spins_init, t):
    """
    Propagate the boundary state through slots [0, t).
    Only Type 1 (Spin-flip) operators change the state.
    """
    spins = spins_init.copy()
    for p in range(t):
        if op_type[p] == OP_FLIP:
            spins[op_site1[p]] = 1 - spins[op_site1[p]]
    return spins


@jit(nopython=True, cache=True)
def measure_observables(op_type, op_site1, spins_init, t_mid, signs):
    """
    Measure the magnetizations at imaginary time t_mid.
    Returns (staggered magnetization, uniform magnetization, spins at t_mid).
    """
    spins = propagate(op_type, op_site1, spins_init, t_mid)
    N = spins.shape[0]

    ms = 0.0
    mz = 0.0
    for site in range(N):
        sz = 2 * spins[site] - 1
        ms += signs[site] * sz
        mz += sz
    return ms / N, mz / N, spins


def binder_cumulant(m2, m4):
    """U = 1 - <m^4> / (3 <m^2>^2); zero for a vanishing second moment."""
    if m2 <= 1e-12:
        return 0.0
    return 1.0 - m4 / (3.0 * m2**2)


def mean_and_stderr(values):
    values = np.asarray(values, dtype=np.float64)
    n = len(values)
    if n < 2:
        return float(np.mean(values)), 0.0
    return float(np.mean(values)), float(np.std(values, ddof=1) / np.sqrt(n))
