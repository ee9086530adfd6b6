import torch
import pytest
import sys
import os
import itertools

# Adjust sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from torchqi.ptranspose import partial_transpose
from torchqi.errors import DimensionMismatchError, SubsystemIndexError
from torchqi.utils import mixed_radix_to_number, number_to_mixed_radix

RHO = torch.tensor([[1, 2, 3, 4], [5, 6, 7, 8], [9, 10, 11, 12], [13, 14, 15, 16]])
TRANS1 = torch.tensor([[1, 2, 9, 10], [5, 6, 13, 14], [3, 4, 11, 12], [7, 8, 15, 16]])
TRANS2 = torch.tensor([[1, 5, 3, 7], [2, 6, 4, 8], [9, 13, 11, 15], [10, 14, 12, 16]])


def random_matrix(dim: int, seed: int = 1234, dtype: torch.dtype = torch.complex128) -> torch.Tensor:
    generator = torch.Generator().manual_seed(seed)
    return torch.randn(dim, dim, dtype=dtype, generator=generator)


def reference_partial_transpose(matrix, dims, systems):
    """Element-by-element partial transpose through mixed-radix digits."""
    n = matrix.shape[0]
    out = torch.empty_like(matrix)
    for r in range(n):
        for c in range(n):
            row_digits = number_to_mixed_radix(r, dims)
            col_digits = number_to_mixed_radix(c, dims)
            for s in systems:
                row_digits[s - 1], col_digits[s - 1] = col_digits[s - 1], row_digits[s - 1]
            out[r, c] = matrix[mixed_radix_to_number(row_digits, dims), mixed_radix_to_number(col_digits, dims)]
    return out

# --- Tests for dense 2x2 systems ---

def test_partial_transpose_first_subsystem():
    res1 = partial_transpose(RHO, [2, 2], [1])
    torch.testing.assert_close(res1, TRANS1)

def test_partial_transpose_second_subsystem():
    res2 = partial_transpose(RHO, [2, 2], [2])
    torch.testing.assert_close(res2, TRANS2)

def test_partial_transpose_accepts_single_index():
    torch.testing.assert_close(partial_transpose(RHO, [2, 2], 1), TRANS1)
    torch.testing.assert_close(partial_transpose(RHO, (2, 2), 2), TRANS2)

def test_partial_transpose_all_subsystems_is_full_transpose():
    torch.testing.assert_close(partial_transpose(RHO, [2, 2], [1, 2]), RHO.T)

def test_partial_transpose_empty_selection_returns_copy():
    result = partial_transpose(RHO, [2, 2], [])
    torch.testing.assert_close(result, RHO)
    assert result.data_ptr() != RHO.data_ptr()

# --- Tests for general composite systems ---

def test_partial_transpose_matches_reference_three_systems():
    dims = [2, 3, 2]
    matrix = random_matrix(12)
    for r in range(0, 4):
        for systems in itertools.combinations([1, 2, 3], r):
            expected = reference_partial_transpose(matrix, dims, systems)
            torch.testing.assert_close(partial_transpose(matrix, dims, systems), expected)

def test_partial_transpose_of_product_operator():
    A = random_matrix(2, seed=1)
    B = random_matrix(3, seed=2)
    AB = torch.kron(A, B)
    torch.testing.assert_close(partial_transpose(AB, [2, 3], 1), torch.kron(A.T, B))
    torch.testing.assert_close(partial_transpose(AB, [2, 3], 2), torch.kron(A, B.T))

def test_partial_transpose_twice_is_identity():
    dims = [3, 2, 2]
    matrix = random_matrix(12, seed=7)
    for r in range(0, 4):
        for systems in itertools.combinations([1, 2, 3], r):
            twice = partial_transpose(partial_transpose(matrix, dims, systems), dims, systems)
            torch.testing.assert_close(twice, matrix)

def test_partial_transpose_does_not_mutate_input():
    matrix = random_matrix(4, seed=3)
    original = matrix.clone()
    partial_transpose(matrix, [2, 2], 1)
    torch.testing.assert_close(matrix, original)

def test_partial_transpose_preserves_dtype():
    for dtype in [torch.complex64, torch.complex128, torch.float32]:
        matrix = torch.ones(6, 6, dtype=dtype)
        result = partial_transpose(matrix, [2, 3], 2)
        assert result.dtype == dtype
        assert result.shape == (6, 6)

def test_partial_transpose_single_subsystem_is_transpose():
    matrix = random_matrix(3, seed=5)
    torch.testing.assert_close(partial_transpose(matrix, [3], 1), matrix.T)

# --- Tests for invalid input ---

def test_partial_transpose_non_square():
    with pytest.raises(DimensionMismatchError, match="Non square matrix"):
        partial_transpose(torch.ones(2, 3), [2, 2], 1)

def test_partial_transpose_dimension_product_mismatch():
    with pytest.raises(DimensionMismatchError, match="Product of dimensions"):
        partial_transpose(torch.ones(4, 4), [2, 3], 1)

def test_partial_transpose_index_out_of_range():
    with pytest.raises(SubsystemIndexError, match="out of range"):
        partial_transpose(torch.ones(4, 4), [2, 2], 3)
    with pytest.raises(SubsystemIndexError):
        partial_transpose(torch.ones(4, 4), [2, 2], 0)
    # SubsystemIndexError is an IndexError
    with pytest.raises(IndexError):
        partial_transpose(torch.ones(4, 4), [2, 2], [1, 5])

def test_partial_transpose_rejects_duplicates():
    with pytest.raises(ValueError, match="Duplicate subsystem indices"):
        partial_transpose(torch.ones(4, 4), [2, 2], [1, 1])

def test_partial_transpose_rejects_non_tensor():
    with pytest.raises(TypeError):
        partial_transpose([[1, 2], [3, 4]], [2], 1)

if __name__ == "__main__":
    pytest.main([__file__, "-v"])
