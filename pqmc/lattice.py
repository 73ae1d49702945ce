"""
Square Lattice Helpers
Coupling matrices and the checkerboard sign pattern for L x L lattices.
Sites are numbered s = x + L * y.
"""

import math

import numpy as np

from .errors import ConfigurationError


def lattice_side(N):
    """Side length of a square lattice of N sites."""
    L = math.isqrt(N)
    if N < 1 or L * L != N:
        raise ConfigurationError(f"N={N} is not a perfect square")
    return L


def square_lattice_couplings(L, J=1.0, periodic=True, theta=None):
    """
    Nearest-neighbour coupling matrix for an L x L lattice.
    J > 0 is antiferromagnetic, J < 0 ferromagnetic.
    With theta, x bonds carry J cos(theta) and y bonds J sin(theta).
    With periodic boundaries and L == 2, wrapped bonds add up.
    """
    if theta is None:
        Jx = Jy = J
    else:
        Jx, Jy = J * math.cos(theta), J * math.sin(theta)

    N = L * L
    Jmat = np.zeros((N, N))
    for y in range(L):
        for x in range(L):
            s = x + L * y
            for dx, dy, c in ((1, 0, Jx), (0, 1, Jy)):
                nx, ny = x + dx, y + dy
                if nx >= L or ny >= L:
                    if not periodic or L < 2:
                        continue
                    nx, ny = nx % L, ny % L
                t = nx + L * ny
                Jmat[s, t] += c
                Jmat[t, s] += c
    return Jmat


def checkerboard_signs(N):
    """Staggered sign (-1)^(x+y) of every site."""
    L = lattice_side(N)
    s = np.arange(N)
    return np.where((s % L + s // L) % 2 == 0, 1.0, -1.0)
