"""
Visualization Utils
Responsible for generating the Binder-cumulant scans over the transverse
field and over the coupling-anisotropy angle.
"""

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

from .lattice import square_lattice_couplings
from .pqmc import run_ensemble


def _binder_curve(L, configs, label, n_sweeps, n_delay, n_repeat):
    """Binder cumulant with error bars for each (J, h) in configs."""
    N = L * L
    # Projector length scales with system size
    m = max(20 * N, 100)

    U = []
    U_err = []
    for value, Jmat, h in configs:
        res = run_ensemble(Jmat, h, m, n_sweeps=n_sweeps, n_delay=n_delay,
                           n_repeat=n_repeat)
        U.append(res['binder'])
        U_err.append(res['binder_err'])
        print(f"    {label}={value:.3f}: U = {res['binder']:.4f} ± {res['binder_err']:.4f}")
    return np.array(U), np.array(U_err)


def _save_plot(xlabel, filename):
    plt.xlabel(xlabel)
    plt.ylabel('U')
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(filename)
    print(f"Saved {filename}")


def binder_scan(Ls=[2, 4], h_values=None, J=1.0, n_sweeps=2000, n_delay=400,
                n_repeat=5, filename='binder_scan.png'):
    """Scan the transverse field and plot the Binder cumulant for each L."""
    if h_values is None:
        h_values = np.linspace(1.0, 5.0, 9)

    print("Scanning transverse field...")
    plt.figure(figsize=(8, 6))

    results = {}
    for L in Ls:
        print(f"  Simulating L={L}...")
        Jmat = square_lattice_couplings(L, J=J)
        configs = [(hv, Jmat, np.full(L * L, hv)) for hv in h_values]
        U, U_err = _binder_curve(L, configs, 'h', n_sweeps, n_delay, n_repeat)
        results[L] = (U, U_err)
        plt.errorbar(h_values, U, yerr=U_err, fmt='o-', label=f'L={L}', markersize=3)

    _save_plot('h', filename)
    return results


def anisotropy_scan(Ls=[2, 4], thetas=None, J=1.0, h=1.0, n_sweeps=2000, n_delay=400,
                    n_repeat=5, filename='anisotropy_scan.png'):
    """
    Scan the anisotropy angle theta (x bonds J cos(theta), y bonds J sin(theta))
    at fixed field and plot the Binder cumulant for each L.
    """
    if thetas is None:
        thetas = np.linspace(0.05, np.pi / 4, 8)

    print("Scanning coupling anisotropy...")
    plt.figure(figsize=(8, 6))

    results = {}
    for L in Ls:
        print(f"  Simulating L={L}...")
        configs = [(theta, square_lattice_couplings(L, J=J, theta=theta), np.full(L * L, h))
                   for theta in thetas]
        U, U_err = _binder_curve(L, configs, 'theta', n_sweeps, n_delay, n_repeat)
        results[L] = (U, U_err)
        plt.errorbar(thetas, U, yerr=U_err, fmt='o-', label=f'L={L}', markersize=3)

    _save_plot(r'$\theta$', filename)
    return results
