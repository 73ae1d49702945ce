"""
Main PQMC Class
Orchestrates the projector simulation, data structures, and high-level logic.

H = Σ_{i≠j} J_{ij} σz_i σz_j - Σ_i h_i σx_i
The string of 2m operators is projected between two boundary states;
observables are measured at the middle slot m.
"""

from collections import namedtuple

import numpy as np
from numba import jit

from .errors import ConfigurationError
from .lattice import checkerboard_signs
from .measurements import binder_cumulant, mean_and_stderr, measure_observables
from .probability import build_probability_tables
from .updates import (
    COIN_RANDOM,
    MAX_INSERTION_ATTEMPTS,
    OP_CONST,
    cluster_update,
    diagonal_update,
    new_graph,
)
from .validation import validate_configuration

SweepResult = namedtuple(
    "SweepResult",
    ["staggered", "magnetization", "spins", "n_const", "n_flip", "n_bond", "n_clusters"],
)


@jit(nopython=True, cache=True)
def _seed_numba(value):
    np.random.seed(value)


def seed(value):
    """Seed numpy's global generator and the one used inside the kernels."""
    np.random.seed(value)
    _seed_numba(value)


class PQMC:
    def __init__(self, J, h, m, max_attempts=MAX_INSERTION_ATTEMPTS):
        self.J, self.h = validate_configuration(J, h, m)
        self.N = len(self.h)
        self.m = int(m)
        self.max_attempts = max_attempts

        # Operator list of fixed length M = 2m (no identities in the projector)
        self.M = 2 * self.m

        self.cum_site, self.cum_pair = build_probability_tables(self.J, self.h)
        self.signs = checkerboard_signs(self.N)

        # Diagonal placeholders, all resampled by the first diagonal update
        self.op_type = np.full(self.M, OP_CONST, dtype=np.int8)
        self.op_site1 = np.zeros(self.M, dtype=np.int32)
        self.op_site2 = np.full(self.M, -1, dtype=np.int32)

        # Boundary state (Z-basis sample of the |+x⟩ trial state)
        self.spins = np.random.randint(0, 2, size=self.N).astype(np.int8)

        (self.link_vertex, self.link_leg, self.legs,
         self.leg_cluster, self.cluster_flip) = new_graph(self.M, self.N)
        self.n_legs = 0
        self.n_clusters = 0

    def _reset_graph(self):
        self.link_vertex.fill(-1)
        self.link_leg.fill(-1)
        self.leg_cluster.fill(-1)
        self.cluster_flip.fill(0)

    def diagonal_step(self):
        """
        Local phase: resample diagonal operators and rebuild the graph.
        Returns (n_const, n_flip, n_bond, n_draws).
        """
        self._reset_graph()
        n_const, n_flip, n_bond, self.n_legs, n_draws = diagonal_update(
            self.op_type, self.op_site1, self.op_site2, self.spins, self.J,
            self.cum_site, self.cum_pair, self.link_vertex, self.link_leg,
            self.legs, self.max_attempts)
        return n_const, n_flip, n_bond, n_draws

    def cluster_step(self, coin=COIN_RANDOM):
        """Global phase on the graph of the last diagonal_step."""
        self.n_clusters = cluster_update(
            self.op_type, self.spins, self.link_vertex, self.link_leg,
            self.legs, self.n_legs, self.leg_cluster, self.cluster_flip, coin)
        return self.n_clusters

    def measure(self):
        """(staggered, uniform, spins) at the middle of the string."""
        return measure_observables(self.op_type, self.op_site1, self.spins,
                                   self.m, self.signs)

    def mc_step(self, coin=COIN_RANDOM):
        """Perform one Monte Carlo sweep (Diagonal + Cluster Update) and measure."""
        n_const, n_flip, n_bond, _ = self.diagonal_step()
        n_clusters = self.cluster_step(coin)
        ms, mz, mid = self.measure()
        return SweepResult(ms, mz, mid, n_const, n_flip, n_bond, n_clusters)

    def run(self, n_sweeps=1000, n_delay=200):
        """
        Run the PQMC simulation.

        Args:
            n_sweeps: Total number of sweeps, including the delay.
            n_delay: Sweeps discarded before accumulating moments.
        """
        m2_acc = 0.0
        m4_acc = 0.0
        abs_acc = 0.0
        ops_acc = np.zeros(3)
        n_measure = 0

        for sweep in range(n_sweeps):
            r = self.mc_step()
            if sweep < n_delay:
                continue
            m2_acc += r.staggered**2
            m4_acc += r.staggered**4
            abs_acc += abs(r.staggered)
            ops_acc += (r.n_const, r.n_flip, r.n_bond)
            n_measure += 1

        if n_measure == 0:
            raise ConfigurationError("n_sweeps must exceed n_delay")

        m2 = m2_acc / n_measure
        m4 = m4_acc / n_measure
        n_const, n_flip, n_bond = ops_acc / n_measure

        return {
            'm2': m2,
            'm4': m4,
            'abs_m': abs_acc / n_measure,
            'binder': binder_cumulant(m2, m4),
            'n_const': n_const,
            'n_flip': n_flip,
            'n_bond': n_bond,
            'n_measure': n_measure,
        }


def run_ensemble(J, h, m, n_sweeps=1000, n_delay=200, n_repeat=10, seed_value=None):
    """
    Run n_repeat independent simulations and combine their Binder cumulants.
    Each member owns its own operator string and boundary state.
    """
    if seed_value is not None:
        seed(seed_value)

    binders = []
    m2s = []
    for _ in range(n_repeat):
        res = PQMC(J, h, m).run(n_sweeps=n_sweeps, n_delay=n_delay)
        binders.append(res['binder'])
        m2s.append(res['m2'])

    U, U_err = mean_and_stderr(binders)
    m2, m2_err = mean_and_stderr(m2s)
    return {'binder': U, 'binder_err': U_err, 'm2': m2, 'm2_err': m2_err}
