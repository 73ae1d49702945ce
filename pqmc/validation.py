"""
Configuration and Operator-String Validation
Not part of the sweep itself: configuration checks run once before the
first sweep, the string validator is a diagnostic for tests.
"""

import numpy as np

from .errors import (
    AF_BOND_ALIGNED,
    BOND_ZERO_COUPLING,
    FM_BOND_MISALIGNED,
    ConfigurationError,
    InvalidBondState,
)
from .lattice import lattice_side
from .updates import OP_BOND, OP_CONST, OP_FLIP


def validate_configuration(J, h, m):
    """
    Check couplings, fields and projector length.
    Returns J and h as float arrays.
    """
    J = np.asarray(J, dtype=np.float64)
    h = np.asarray(h, dtype=np.float64)

    if J.ndim != 2 or J.shape[0] != J.shape[1]:
        raise ConfigurationError(f"coupling matrix must be square, got shape {J.shape}")
    N = J.shape[0]
    if h.shape != (N,):
        raise ConfigurationError(f"field vector must have length {N}, got shape {h.shape}")
    if not np.allclose(J, J.T):
        raise ConfigurationError("coupling matrix must be symmetric")
    if np.any(np.diag(J) != 0.0):
        raise ConfigurationError("coupling matrix must have a zero diagonal")
    if np.any(h < 0.0):
        raise ConfigurationError("transverse fields must be non-negative")
    if int(m) != m or m < 1:
        raise ConfigurationError(f"projector length m must be a positive integer, got {m}")

    # Staggered magnetization needs the square-lattice checkerboard
    lattice_side(N)

    # Without a field there is no cluster seed, and a boundary state with
    # no admissible bond channel would stall the diagonal update
    if h.sum() <= 0.0:
        raise ConfigurationError("transverse field must be nonzero on at least one site")

    row = h + 2.0 * np.abs(J).sum(axis=1)
    empty = np.flatnonzero(row <= 0.0)
    if len(empty) > 0:
        raise ConfigurationError(f"site {empty[0]} has no coupling and no field")

    return J, h


def validate_operator_string(op_type, op_site1, op_site2, spins_init, J):
    """
    Replay propagation and raise InvalidBondState on the first bond whose
    sites violate its sign rule. Returns the final propagated state.
    """
    spins = np.array(spins_init, copy=True)

    for p in range(len(op_type)):
        t = op_type[p]
        if t == OP_FLIP:
            s = op_site1[p]
            spins[s] = 1 - spins[s]
        elif t == OP_BOND:
            i, j = int(op_site1[p]), int(op_site2[p])
            c = J[i, j]
            if c == 0.0:
                raise InvalidBondState(BOND_ZERO_COUPLING, p, (i, j))
            if c > 0.0 and spins[i] == spins[j]:
                raise InvalidBondState(AF_BOND_ALIGNED, p, (i, j))
            if c < 0.0 and spins[i] != spins[j]:
                raise InvalidBondState(FM_BOND_MISALIGNED, p, (i, j))
        elif t != OP_CONST:
            raise ValueError(f"unknown operator type {t} at slot {p}")

    return spins
