"""
Insertion Probability Tables
Two-stage cumulative distributions used to propose diagonal operators
with probability proportional to their matrix elements.

Weight matrix:
- W[i, i] = h[i]         (field operator at site i)
- W[i, j] = 2|J[i, j]|   (bond operator on sites i, j)
"""

import numpy as np
from numba import jit

from .errors import ConfigurationError


def weight_matrix(J, h):
    """Build the insertion weight matrix W from couplings J and fields h."""
    J = np.asarray(J, dtype=np.float64)
    h = np.asarray(h, dtype=np.float64)
    W = 2.0 * np.abs(J)
    W[np.diag_indices(len(h))] = h
    return W


def build_probability_tables(J, h):
    """
    Build the cumulative tables for pair sampling.

    Returns:
        cum_site: (N,) cumulative marginal over the first index i.
        cum_pair: (N, N) cumulative conditional over j, one row per i.
    """
    W = weight_matrix(J, h)
    row = W.sum(axis=1)
    total = row.sum()

    if total <= 0.0:
        raise ConfigurationError("all couplings and fields are zero")
    empty = np.flatnonzero(row <= 0.0)
    if len(empty) > 0:
        raise ConfigurationError(f"site {empty[0]} has zero insertion weight")

    cum_site = np.cumsum(row) / total
    cum_site[-1] = 1.0

    cum_pair = np.cumsum(W, axis=1) / row[:, None]
    cum_pair[:, -1] = 1.0

    return cum_site, cum_pair


@jit(nopython=True, cache=True)
def sample_pair(cum_site, cum_pair):
    """Draw (i, j) with probability W[i, j] / sum(W) by inverse-CDF search."""
    # Draws in (0, 1] so zero-weight entries are never selected
    r1 = 1.0 - np.random.random()
    i = np.searchsorted(cum_site, r1)
    r2 = 1.0 - np.random.random()
    j = np.searchsorted(cum_pair[i], r2)
    return i, j


@jit(nopython=True, cache=True)
def sample_pairs(cum_site, cum_pair, n):
    """Draw n independent pairs; returns two index arrays."""
    first = np.empty(n, dtype=np.int64)
    second = np.empty(n, dtype=np.int64)
    for k in range(n):
        i, j = sample_pair(cum_site, cum_pair)
        first[k] = i
        second[k] = j
    return first, second
