import torch
import sys
import os

# Adjust path to import from src
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from torchqi.channels import compose, is_cptp
from torchqi.matrixbases import ChannelBasis, combine, represent
from torchqi.noise import amplitude_damping_channel, depolarizing_channel
from torchqi.ptrace import ptrace

def main():
    """Converts a noisy qubit channel between Kraus, superoperator and
    dynamical-matrix form, then expands it in the channel basis."""

    channel = compose(amplitude_damping_channel(0.2), depolarizing_channel(0.1))
    print("--- Channel representations ---")
    print(f"{channel}")

    sup = channel.to_superoperator()
    choi = channel.to_dynamical_matrix()
    print(f"\nSuperoperator {tuple(sup.matrix.shape)}:\n{sup.matrix}")
    print(f"\nDynamical matrix {tuple(choi.matrix.shape)}:\n{choi.matrix}")
    print(f"\nTrace over the output (identity for a trace preserving map):\n"
          f"{ptrace(choi.matrix, [choi.odim, choi.idim], 1)}")
    print(f"CPTP: {is_cptp(channel)}")

    rho = torch.tensor([[0, 0], [0, 1]], dtype=torch.complex128)
    print(f"\nAction on |1><1| (Kraus):\n{channel(rho)}")
    print(f"Action on |1><1| (dynamical matrix):\n{choi(rho)}")

    basis = ChannelBasis(channel.idim, channel.odim)
    coordinates = represent(basis, channel)
    print(f"\n{len(basis)} channel basis coordinates:\n{coordinates}")
    error = torch.linalg.matrix_norm(combine(basis, coordinates) - choi.matrix).item()
    print(f"Reconstruction error of the dynamical matrix: {error:.2e}")

if __name__ == '__main__':
    main()
