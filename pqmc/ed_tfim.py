"""
Exact Diagonalization for the Transverse Field Ising Model (TFIM)
H = Σ_{i≠j} J_ij sz_i sz_j - Σ_i h_i sx_i

The ordered-pair sum matches the PQMC insertion weights.
Ground-state reference for PQMC results on small systems.
"""

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import eigsh
import scipy.linalg as la


class ED_TFIM:
    def __init__(self, J, h):
        """
        J: (N, N) symmetric coupling matrix (J > 0 antiferromagnetic)
        h: (N,) transverse fields
        """
        self.J = np.asarray(J, dtype=np.float64)
        self.h = np.asarray(h, dtype=np.float64)
        self.N = len(self.h)
        self.dim = 2**self.N

        self.H = self._build_hamiltonian()

        self._energy = None
        self._psi = None

    def _sz(self):
        """sz of every site in every basis state, shape (dim, N)."""
        states = np.arange(self.dim)[:, None]
        bits = (states >> np.arange(self.N)[None, :]) & 1
        return 2 * bits - 1

    def _build_hamiltonian(self):
        """Build the Hamiltonian in the sz basis"""
        N = self.N
        dim = self.dim
        sz = self._sz()

        H = sparse.lil_matrix((dim, dim), dtype=np.float64)

        # Ising term, diagonal
        diag = np.einsum('si,ij,sj->s', sz, self.J, sz)
        H.setdiag(diag)

        # Transverse field term: -h_i sx_i flips bit i
        for state in range(dim):
            for i in range(N):
                if self.h[i] != 0.0:
                    H[state, state ^ (1 << i)] += -self.h[i]

        return H.tocsr()

    def ground_state(self):
        """Lowest eigenpair (energy, wavefunction)"""
        if self._psi is not None:
            return self._energy, self._psi

        if self.dim <= 64:
            eigenvalues, eigenvectors = la.eigh(self.H.toarray())
        else:
            eigenvalues, eigenvectors = eigsh(self.H, k=1, which='SA')

        idx = np.argmin(eigenvalues)
        self._energy = eigenvalues[idx]
        self._psi = eigenvectors[:, idx]
        return self._energy, self._psi

    def ground_state_energy(self):
        return self.ground_state()[0]

    def staggered_moments(self, signs):
        """Ground-state <m_s^2> and <m_s^4> with m_s = Σ_i signs_i sz_i / N"""
        _, psi = self.ground_state()
        prob = np.abs(psi)**2
        ms = self._sz() @ np.asarray(signs) / self.N
        return np.sum(prob * ms**2), np.sum(prob * ms**4)
