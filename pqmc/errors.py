"""
PQMC Exceptions
"""

# Violation kinds reported by the operator-string validator
AF_BOND_ALIGNED = "af-bond-on-aligned-spins"
FM_BOND_MISALIGNED = "fm-bond-on-misaligned-spins"
BOND_ZERO_COUPLING = "bond-on-zero-coupling"


class ConfigurationError(ValueError):
    """Invalid couplings, fields or string length, raised before any sweep."""


class ExhaustedSampling(RuntimeError):
    """The diagonal rejection sampler ran out of attempts in a single slot."""


class InvalidBondState(Exception):
    """A bond operator violates its sign rule (or sits on a zero coupling)."""

    def __init__(self, kind, slot, sites):
        self.kind = kind
        self.slot = slot
        self.sites = sites
        super().__init__(f"{kind} at slot {slot}, sites {sites}")
