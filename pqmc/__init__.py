"""
Projector Stochastic Series Expansion QMC for the transverse-field Ising model.
"""

from .errors import ConfigurationError, ExhaustedSampling, InvalidBondState
from .pqmc import PQMC, SweepResult, run_ensemble, seed
from .validation import validate_operator_string
