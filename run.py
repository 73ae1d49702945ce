"""
Main Entry Point for PQMC Simulation
"""
from pqmc import seed
from pqmc.visualization import anisotropy_scan

if __name__ == "__main__":
    seed(42)
    print("Starting PQMC Simulation...")
    anisotropy_scan(Ls=[2, 4], n_sweeps=2000)
    print("Simulation Complete.")
