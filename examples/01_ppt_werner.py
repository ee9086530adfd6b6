import torch
import sys
import os

# Adjust path to import from src
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from torchqi.states import DensityMatrix, werner_state

def main():
    """Scans two-qutrit Werner states and reports which ones fail the
    positive partial transpose (PPT) test."""

    dim = 3
    print(f"--- PPT test on {dim}x{dim} Werner states ---")
    print(f"Entanglement threshold p > 1/(d+1) = {1 / (dim + 1):.3f}\n")

    for p in torch.linspace(0, 1, 11).tolist():
        dm = DensityMatrix([dim, dim], werner_state(dim, p))
        # Transposing either subsystem gives the same spectrum
        pt = dm.partial_transpose(2)
        min_eig = torch.linalg.eigvalsh(pt.density_matrix).min().item()
        status = "entangled" if min_eig < -1e-12 else "PPT"
        print(f"p = {p:.1f}: min eigenvalue of rho^T_B = {min_eig:+.4f} ({status})")

    print("\nReduced state of the maximally entangled state:")
    print(DensityMatrix([dim, dim], werner_state(dim, 1.0)).ptrace(2).density_matrix)

if __name__ == '__main__':
    main()
