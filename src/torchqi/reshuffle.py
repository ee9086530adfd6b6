import torch
import numpy as np
from typing import List, Optional, Sequence

from .errors import DimensionMismatchError, SubsystemIndexError
from .logging import get_logger
from .utils import check_dims, check_square

logger = get_logger(__name__)


def _realignment_permutation(num_systems: int, cut: int) -> List[int]:
    """
    Axis permutation taking ``[i_1..i_k, j_1..j_k]`` to
    ``[i_A, j_A, i_B, j_B]`` where party A holds subsystems ``0..cut-1``.
    """
    perm: List[int] = []
    for party in (range(0, cut), range(cut, num_systems)):
        perm.extend(party)
        perm.extend(s + num_systems for s in party)
    return perm


def reshuffle(matrix: torch.Tensor,
              dims: Sequence[int],
              col_dims: Optional[Sequence[int]] = None,
              cut: Optional[int] = None) -> torch.Tensor:
    """
    Reshuffling (realignment) of a multipartite matrix.

    The subsystems are split into party A (the first `cut` subsystems) and
    party B (the rest). With ``a, b`` the row digits and ``a', b'`` the column
    digits of the two parties, the result is

        R[(a, a'), (b, b')] = M[(a, b), (a', b')]

    For a bipartite operator this is ``M_{(m,mu),(n,nu)} -> M_{(m,n),(mu,nu)}``,
    so ``reshuffle(kron(A, B)) == outer(res(A), res(B))``. It converts a
    superoperator into its dynamical (Choi) matrix and back. Applying it twice
    with the same `dims` is the identity whenever both parties carry the same
    dimensions (e.g. ``[d, d]`` or ``[2, 3, 2, 3]``).

    Args:
        matrix (torch.Tensor): Matrix to reshuffle. Not modified.
        dims (Sequence[int]): Dimensions of the subsystems of the row space.
        col_dims (Optional[Sequence[int]]): Dimensions of the subsystems of the
            column space, for rectangular operators. If None, `matrix` must be
            square and `dims` describes both spaces.
        cut (Optional[int]): Number of leading subsystems forming party A.
            Defaults to ``len(dims) // 2``.

    Returns:
        torch.Tensor: Reshuffled matrix of shape
            ``(prod(dims_A) * prod(col_dims_A), prod(dims_B) * prod(col_dims_B))``.

    Raises:
        DimensionMismatchError: If the shape of `matrix` does not match the
            dimensions, or fewer than two subsystems are given.
        SubsystemIndexError: If `cut` is outside ``[1, len(dims) - 1]``.
    """
    row_dims = check_dims(dims)
    if col_dims is None:
        check_square(matrix, row_dims)
        col_dims = row_dims
    else:
        col_dims = check_dims(col_dims)
        if not isinstance(matrix, torch.Tensor):
            raise TypeError(f"Expected a PyTorch Tensor, got {type(matrix).__name__}.")
        if len(col_dims) != len(row_dims):
            raise DimensionMismatchError(
                f"Row and column dimension vectors differ in length: {row_dims} vs {col_dims}."
            )
        expected_shape = (int(np.prod(row_dims)), int(np.prod(col_dims)))
        if matrix.ndim != 2 or tuple(matrix.shape) != expected_shape:
            raise DimensionMismatchError(
                f"Matrix of shape {tuple(matrix.shape)} does not match dimensions "
                f"{row_dims} x {col_dims} (expected {expected_shape})."
            )

    k = len(row_dims)
    if k < 2:
        raise DimensionMismatchError(f"Reshuffling needs at least two subsystems, got dims {row_dims}.")
    if cut is None:
        cut = k // 2
    if not (1 <= cut < k):
        raise SubsystemIndexError(f"Cut {cut} out of range [1, {k - 1}].")

    perm = _realignment_permutation(k, cut)
    rows = int(np.prod(row_dims[:cut])) * int(np.prod(col_dims[:cut]))
    cols = int(np.prod(row_dims[cut:])) * int(np.prod(col_dims[cut:]))
    logger.debug("reshuffle dims=%s col_dims=%s cut=%d perm=%s", row_dims, col_dims, cut, perm)

    tensor = matrix.reshape(row_dims + col_dims).permute(*perm)
    return tensor.clone(memory_format=torch.contiguous_format).reshape(rows, cols)


def permute_systems(matrix: torch.Tensor,
                    dims: Sequence[int],
                    perm: Sequence[int]) -> torch.Tensor:
    """
    Reorders the subsystems of a composite-system matrix.

    Subsystem ``t`` of the result is subsystem ``perm[t]`` of the input, so
    ``permute_systems(kron(A, B), [dA, dB], [2, 1]) == kron(B, A)``.

    Args:
        matrix (torch.Tensor): Square matrix of size ``prod(dims)``.
        dims (Sequence[int]): Dimensions of the subsystems.
        perm (Sequence[int]): Permutation of ``1..len(dims)``.

    Returns:
        torch.Tensor: Matrix on the permuted composite space (same shape).

    Raises:
        DimensionMismatchError: On shape/dimension mismatch.
        ValueError: If `perm` is not a permutation of ``1..len(dims)``.
    """
    dims = check_dims(dims)
    check_square(matrix, dims)
    k = len(dims)
    if sorted(perm) != list(range(1, k + 1)):
        raise ValueError(f"perm must be a permutation of 1..{k}, got {list(perm)}.")

    axes = [p - 1 for p in perm]
    axes = axes + [a + k for a in axes]
    logger.debug("permute_systems dims=%s axes=%s", dims, axes)

    tensor = matrix.reshape(dims + dims).permute(*axes)
    return tensor.clone(memory_format=torch.contiguous_format).reshape(matrix.shape)
