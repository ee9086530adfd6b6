import torch
import numpy as np
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .config import resolve_dtype
from .errors import DimensionMismatchError, DomainError, SubsystemIndexError


# --- Mixed-radix encoding ---

def number_to_mixed_radix(n: int, bases: Sequence[int]) -> List[int]:
    """
    Decomposes a flat index into its per-subsystem digits.

    Digits are returned most-significant first, i.e. the last base varies
    fastest. This matches the row-major layout of `torch.kron`.

    Args:
        n (int): Flat index, ``0 <= n < prod(bases)``.
        bases (Sequence[int]): Radix of every position (subsystem dimensions).

    Returns:
        List[int]: Digits ``[i_1, ..., i_k]`` with ``0 <= i_s < bases[s]``.

    Raises:
        DomainError: If `n` is negative or not representable with `bases`.
    """
    check_dims(bases)
    total = int(np.prod(bases))
    if n < 0 or n >= total:
        raise DomainError(f"Number {n} cannot be represented with bases {list(bases)} (valid range [0, {total - 1}]).")

    digits = [0] * len(bases)
    for pos in range(len(bases) - 1, -1, -1):
        n, digits[pos] = divmod(n, bases[pos])
    return digits


def mixed_radix_to_number(digits: Sequence[int], bases: Sequence[int]) -> int:
    """
    Inverse of `number_to_mixed_radix`.

    Raises:
        DimensionMismatchError: If `digits` and `bases` differ in length.
        DomainError: If a digit is outside ``[0, base)``.
    """
    check_dims(bases)
    if len(digits) != len(bases):
        raise DimensionMismatchError(f"Got {len(digits)} digits for {len(bases)} bases.")

    n = 0
    for digit, base in zip(digits, bases):
        if not (0 <= digit < base):
            raise DomainError(f"Digit {digit} out of range for base {base}.")
        n = n * base + digit
    return n


# --- Dimension and subsystem validation ---

def check_dims(dims: Sequence[int]) -> List[int]:
    """
    Validates a composite dimension vector and returns it as a list of ints.

    Raises:
        ValueError: If `dims` is empty or contains non-positive entries.
        TypeError: If an entry is not an integer.
    """
    dims = list(dims)
    if len(dims) == 0:
        raise ValueError("Dimension vector cannot be empty.")
    for d in dims:
        if isinstance(d, bool) or not isinstance(d, (int, np.integer)):
            raise TypeError(f"Subsystem dimensions must be integers, got {type(d).__name__}.")
        if d < 1:
            raise ValueError(f"Subsystem dimensions must be positive, got {d}.")
    return [int(d) for d in dims]


def check_square(matrix: torch.Tensor, dims: Sequence[int]) -> None:
    """
    Checks that `matrix` is square and its size equals ``prod(dims)``.

    Raises:
        TypeError: If `matrix` is not a PyTorch Tensor.
        DimensionMismatchError: On either shape violation.
    """
    if not isinstance(matrix, torch.Tensor):
        raise TypeError(f"Expected a PyTorch Tensor, got {type(matrix).__name__}.")
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise DimensionMismatchError(f"Non square matrix passed, got shape {tuple(matrix.shape)}.")
    if int(np.prod(dims)) != matrix.shape[0]:
        raise DimensionMismatchError(
            f"Product of dimensions {list(dims)} does not match shape of matrix {tuple(matrix.shape)}."
        )


def normalize_systems(systems: Union[int, Iterable[int]], num_systems: int) -> Tuple[int, ...]:
    """
    Normalizes a 1-based subsystem selection into sorted 0-based positions.

    Args:
        systems (Union[int, Iterable[int]]): A single subsystem index or a
            collection of them, counted from 1.
        num_systems (int): Number of subsystems in the dimension vector.

    Returns:
        Tuple[int, ...]: Sorted 0-based subsystem positions.

    Raises:
        TypeError: If an index is not an integer.
        SubsystemIndexError: If an index is outside ``[1, num_systems]``.
        ValueError: If an index is repeated.
    """
    if isinstance(systems, (int, np.integer)) and not isinstance(systems, bool):
        systems = (systems,)
    systems = tuple(systems)

    for s in systems:
        if isinstance(s, bool) or not isinstance(s, (int, np.integer)):
            raise TypeError(f"Subsystem indices must be integers, got {type(s).__name__} for index {s}.")
        if not (1 <= s <= num_systems):
            raise SubsystemIndexError(f"System index {s} out of range [1, {num_systems}].")

    if len(set(systems)) != len(systems):
        raise ValueError(f"Duplicate subsystem indices specified: {systems}.")

    return tuple(sorted(int(s) - 1 for s in systems))


# --- Computational basis helpers ---

def ket(i: int, dim: int, dtype: Optional[torch.dtype] = None,
        device: Union[str, torch.device] = 'cpu') -> torch.Tensor:
    """Computational basis vector |i> (0-based) of dimension `dim`."""
    if not (0 <= i < dim):
        raise SubsystemIndexError(f"Basis index {i} out of range [0, {dim - 1}].")
    vec = torch.zeros(dim, dtype=resolve_dtype(dtype), device=device)
    vec[i] = 1.0
    return vec


def bra(i: int, dim: int, dtype: Optional[torch.dtype] = None,
        device: Union[str, torch.device] = 'cpu') -> torch.Tensor:
    """Computational basis covector <i| (0-based); real-valued, so equal to `ket`."""
    return ket(i, dim, dtype=dtype, device=device)


def ketbra(i: int, j: int, dim: int, dtype: Optional[torch.dtype] = None,
           device: Union[str, torch.device] = 'cpu') -> torch.Tensor:
    """Matrix unit |i><j| (0-based indices) of shape (dim, dim)."""
    if not (0 <= i < dim and 0 <= j < dim):
        raise SubsystemIndexError(f"Basis indices ({i}, {j}) out of range [0, {dim - 1}].")
    mat = torch.zeros((dim, dim), dtype=resolve_dtype(dtype), device=device)
    mat[i, j] = 1.0
    return mat


def base_matrices(dim: int, dtype: Optional[torch.dtype] = None,
                  device: Union[str, torch.device] = 'cpu') -> Iterator[torch.Tensor]:
    """
    Yields the matrix units |i><j| of a `dim`-dimensional space, row index
    outer, so the n-th element is ``unres`` of the n-th unit vector.
    """
    if dim < 1:
        raise DomainError(f"dim must be a positive integer, got {dim}.")
    for i in range(dim):
        for j in range(dim):
            yield ketbra(i, j, dim, dtype=dtype, device=device)


def proj(psi: torch.Tensor) -> torch.Tensor:
    """Projector |psi><psi| onto the (not necessarily normalized) vector `psi`."""
    if psi.ndim != 1:
        raise DimensionMismatchError(f"proj expects a 1D tensor, got shape {tuple(psi.shape)}.")
    return torch.outer(psi, psi.conj())


# --- Vectorisation ---

def res(matrix: torch.Tensor) -> torch.Tensor:
    """
    Row-major vectorisation of a matrix.

    Satisfies ``res(A @ X @ B) == kron(A, B.T) @ res(X)``.
    """
    if matrix.ndim != 2:
        raise DimensionMismatchError(f"res expects a 2D tensor, got shape {tuple(matrix.shape)}.")
    return matrix.reshape(-1).clone()


def unres(vector: torch.Tensor, cols: Optional[int] = None) -> torch.Tensor:
    """
    Inverse of `res`.

    Args:
        vector (torch.Tensor): 1D tensor of length ``rows * cols``.
        cols (Optional[int]): Number of columns. If None the result is square.

    Raises:
        DimensionMismatchError: If the length is not compatible with `cols`.
    """
    if vector.ndim != 1:
        raise DimensionMismatchError(f"unres expects a 1D tensor, got shape {tuple(vector.shape)}.")
    n = vector.shape[0]
    if cols is None:
        cols = int(round(np.sqrt(n)))
        if cols * cols != n:
            raise DimensionMismatchError(f"Vector of length {n} cannot be reshaped into a square matrix.")
    if cols < 1 or n % cols != 0:
        raise DimensionMismatchError(f"Vector of length {n} cannot be reshaped into {cols} columns.")
    return vector.reshape(n // cols, cols).clone()
