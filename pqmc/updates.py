"""
PQMC Update Kernels (Numba)
Contains the core Monte Carlo update functions:
- Diagonal Update (resampling of diagonal operators, fused with graph linking)
- Space-Time Graph Construction (vertex arena with back-patched links)
- Cluster Update (Type 1 <-> Type 2 swaps, boundary spin flips)

Operator encoding (op_type):
- 1: off-diagonal field (spin flip) at op_site1
- 2: diagonal field (constant) at op_site1
- 3: diagonal bond on (op_site1, op_site2)

Vertex arena (size M + 2N, M = 2m slots):
- v < M: the vertex of slot v
- M + s: bottom sentinel of site s (left boundary state)
- M + N + s: top sentinel of site s (closure)
Each vertex has four legs: lower1, lower2, upper1, upper2.
link_vertex[v, d] / link_leg[v, d] name the leg on the other side of leg (v, d).
"""

import numpy as np
from numba import jit

from .errors import ExhaustedSampling
from .probability import sample_pair

OP_FLIP = 1
OP_CONST = 2
OP_BOND = 3

LOWER1 = 0
LOWER2 = 1
UPPER1 = 2
UPPER2 = 3

COIN_RANDOM = -1
COIN_NEVER = 0
COIN_ALWAYS = 1

MAX_INSERTION_ATTEMPTS = 1000000


def new_graph(M, N):
    """Allocate the per-sweep arena: links, leg set and cluster labels."""
    n_vert = M + 2 * N
    link_vertex = np.full((n_vert, 4), -1, dtype=np.int64)
    link_leg = np.full((n_vert, 4), -1, dtype=np.int64)
    legs = np.zeros((2 * M, 2), dtype=np.int64)
    leg_cluster = np.full((n_vert, 4), -1, dtype=np.int64)
    cluster_flip = np.zeros(2 * M, dtype=np.int8)
    return link_vertex, link_leg, legs, leg_cluster, cluster_flip


@jit(nopython=True, cache=True)
def _link(v, d, w, e, link_vertex, link_leg):
    link_vertex[v, d] = w
    link_leg[v, d] = e
    link_vertex[w, e] = v
    link_leg[w, e] = d


@jit(nopython=True, cache=True)
def _init_frontier(M, N):
    front_v = np.empty(N, dtype=np.int64)
    front_l = np.empty(N, dtype=np.int64)
    for s in range(N):
        front_v[s] = M + s
        front_l[s] = UPPER1
    return front_v, front_l


@jit(nopython=True, cache=True)
def _attach_vertex(p, op_type, op_site1, op_site2, front_v, front_l,
                   link_vertex, link_leg, legs, n_legs):
    """
    Create the vertex of slot p and link its lower legs to the frontier.
    The frontier's open upper leg is patched to point back at p.
    Returns the updated leg-set length.
    """
    i = op_site1[p]
    _link(p, LOWER1, front_v[i], front_l[i], link_vertex, link_leg)
    front_v[i] = p
    front_l[i] = UPPER1

    if op_type[p] == OP_BOND:
        j = op_site2[p]
        _link(p, LOWER2, front_v[j], front_l[j], link_vertex, link_leg)
        front_v[j] = p
        front_l[j] = UPPER2
    else:
        # Field vertices seed clusters, bonds never do
        legs[n_legs, 0] = p
        legs[n_legs, 1] = LOWER1
        legs[n_legs + 1, 0] = p
        legs[n_legs + 1, 1] = UPPER1
        n_legs += 2

    return n_legs


@jit(nopython=True, cache=True)
def _close_graph(front_v, front_l, link_vertex, link_leg, M, N):
    """Link every site's last open upper leg to its top sentinel."""
    for s in range(N):
        _link(M + N + s, LOWER1, front_v[s], front_l[s], link_vertex, link_leg)


@jit(nopython=True, cache=True)
def build_graph(op_type, op_site1, op_site2, N, link_vertex, link_leg, legs):
    """
    Build the space-time graph of an existing operator string.
    Standalone version of the linking done inside diagonal_update.
    Returns the leg-set length.
    """
    M = op_type.shape[0]
    front_v, front_l = _init_frontier(M, N)
    n_legs = 0
    for p in range(M):
        n_legs = _attach_vertex(p, op_type, op_site1, op_site2, front_v, front_l,
                                link_vertex, link_leg, legs, n_legs)
    _close_graph(front_v, front_l, link_vertex, link_leg, M, N)
    return n_legs


@jit(nopython=True, cache=True)
def diagonal_update(op_type, op_site1, op_site2, spins_init, J, cum_site, cum_pair,
                    link_vertex, link_leg, legs, max_attempts):
    """
    Diagonal Update: resample every diagonal slot and link the graph.

    Update rule:
    - Type 1 (Flip) operators are kept and propagate the spin state.
    - Every other slot is redrawn from W[i, j] / sum(W) until accepted:
      i == j gives a constant at site i; i != j gives a bond when the
      propagated spins satisfy its sign rule (AF: opposite, FM: equal).
    The rejection loop is finite whenever some channel is admissible;
    max_attempts bounds it for degenerate weights.

    Returns (n_const, n_flip, n_bond, n_legs, n_draws).
    """
    M = op_type.shape[0]
    N = spins_init.shape[0]
    spins = spins_init.copy()
    front_v, front_l = _init_frontier(M, N)

    n_const = 0
    n_flip = 0
    n_bond = 0
    n_legs = 0
    n_draws = 0

    for p in range(M):
        if op_type[p] == OP_FLIP:
            site = op_site1[p]
            spins[site] = 1 - spins[site]
            n_flip += 1
        else:
            attempts = 0
            while True:
                if attempts >= max_attempts:
                    raise ExhaustedSampling("no admissible diagonal operator found")
                attempts += 1
                i, j = sample_pair(cum_site, cum_pair)

                if i == j:
                    op_type[p] = OP_CONST
                    op_site1[p] = i
                    op_site2[p] = -1
                    n_const += 1
                    break

                c = J[i, j]
                if (c > 0.0 and spins[i] != spins[j]) or (c < 0.0 and spins[i] == spins[j]):
                    op_type[p] = OP_BOND
                    op_site1[p] = i
                    op_site2[p] = j
                    n_bond += 1
                    break
            n_draws += attempts

        n_legs = _attach_vertex(p, op_type, op_site1, op_site2, front_v, front_l,
                                link_vertex, link_leg, legs, n_legs)

    _close_graph(front_v, front_l, link_vertex, link_leg, M, N)
    return n_const, n_flip, n_bond, n_legs, n_draws


@jit(nopython=True, cache=True)
def cluster_update(op_type, spins, link_vertex, link_leg, legs, n_legs,
                   leg_cluster, cluster_flip, coin):
    """
    Space-Time Cluster Update.

    Algorithm:
    1. Every unvisited field leg in the leg set seeds a new cluster with
       its own coin (p=0.5 unless coin forces the decision).
    2. The cluster grows along links with an explicit stack:
       - Field vertex: terminal. The leg joins the cluster and nothing
         propagates past the vertex.
       - Bond vertex: pass-through. All four legs join the cluster once.
       - Sentinel: terminal. A bottom sentinel flips its boundary spin.
    3. A flipped cluster swaps the type of every field leg it owns
       (Type 1 <-> Type 2). A vertex with both legs flipped is unchanged.

    leg_cluster (filled with -1 on entry) receives cluster labels and
    cluster_flip the per-cluster decisions. Returns the cluster count.
    """
    M = op_type.shape[0]
    N = spins.shape[0]
    n_vert = link_vertex.shape[0]

    stack_v = np.empty(4 * n_vert + 1, dtype=np.int64)
    stack_l = np.empty(4 * n_vert + 1, dtype=np.int64)
    n_clusters = 0

    for k in range(n_legs):
        p = legs[k, 0]
        d = legs[k, 1]
        if leg_cluster[p, d] >= 0:
            continue

        c = n_clusters
        n_clusters += 1
        if coin == COIN_RANDOM:
            flip = np.random.random() < 0.5
        else:
            flip = coin == COIN_ALWAYS
        cluster_flip[c] = 1 if flip else 0

        leg_cluster[p, d] = c
        if flip:
            op_type[p] = 3 - op_type[p]

        top = 0
        stack_v[top] = link_vertex[p, d]
        stack_l[top] = link_leg[p, d]
        top += 1

        while top > 0:
            top -= 1
            q = stack_v[top]
            e = stack_l[top]

            if q >= M:
                # Boundary sentinel
                if leg_cluster[q, e] >= 0:
                    continue
                leg_cluster[q, e] = c
                if flip and e == UPPER1 and q < M + N:
                    s = q - M
                    spins[s] = 1 - spins[s]
                continue

            if op_type[q] == OP_BOND:
                if leg_cluster[q, LOWER1] >= 0:
                    continue
                for f in range(4):
                    leg_cluster[q, f] = c
                for f in range(4):
                    stack_v[top] = link_vertex[q, f]
                    stack_l[top] = link_leg[q, f]
                    top += 1
            else:
                if leg_cluster[q, e] >= 0:
                    continue
                leg_cluster[q, e] = c
                if flip:
                    op_type[q] = 3 - op_type[q]

    return n_clusters
