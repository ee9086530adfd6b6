import torch
import sys
import os

# Adjust path to import from src
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from torchqi.matrixbases import HermitianBasis, combine, represent

def main():
    """Expands a Hermitian matrix in the elementary Hermitian basis and
    rebuilds it from its real coordinates."""

    dim = 4
    A = torch.arange(1, dim * dim + 1, dtype=torch.float64).reshape(dim, dim)
    A = A + A.T
    print(f"--- Hermitian basis of dimension {dim} ---")
    print(f"Matrix to expand:\n{A}\n")

    basis = HermitianBasis(dim)
    print(f"Basis {basis} has {len(basis)} elements of shape {basis.shape}")

    coordinates = represent(basis, A)
    print(f"Coordinates ({coordinates.dtype}):\n{coordinates}\n")

    reconstructed = combine(basis, coordinates)
    error = torch.linalg.matrix_norm(reconstructed - A.to(reconstructed.dtype)).item()
    print(f"Reconstruction error: {error:.2e}")

    # Single precision basis yields float32 coordinates
    coordinates32 = represent(HermitianBasis(dim, dtype=torch.complex64), A.float())
    print(f"complex64 basis -> coordinates of dtype {coordinates32.dtype}")

if __name__ == '__main__':
    main()
