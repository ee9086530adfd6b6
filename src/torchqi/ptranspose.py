import torch
from typing import Iterable, List, Sequence, Union

from .logging import get_logger
from .utils import check_dims, check_square, normalize_systems

logger = get_logger(__name__)


def _transpose_permutation(num_systems: int, positions: Sequence[int]) -> List[int]:
    """
    Axis permutation of the rank-2k tensor ``[i_1..i_k, j_1..j_k]`` that swaps
    the row and column axis of every subsystem in `positions` (0-based).

    The permutation is a product of disjoint transpositions, hence its own inverse.
    """
    perm = list(range(2 * num_systems))
    for s in positions:
        perm[s], perm[s + num_systems] = perm[s + num_systems], perm[s]
    return perm


def partial_transpose(matrix: torch.Tensor,
                      dims: Sequence[int],
                      systems: Union[int, Iterable[int]]) -> torch.Tensor:
    """
    Partial transposition of a composite-system matrix.

    The linear row and column index of `matrix` are read as mixed-radix tuples
    over `dims` (last subsystem fastest, as produced by `torch.kron`). The row
    and column digit of every selected subsystem are exchanged; all other
    digits are left untouched. For ``dims = [dA, dB]`` and ``systems = 2`` this
    maps ``A (x) B`` to ``A (x) B.T``.

    Args:
        matrix (torch.Tensor): Square matrix of size ``prod(dims)``. Not modified.
        dims (Sequence[int]): Dimensions of the subsystems, in declared order.
        systems (Union[int, Iterable[int]]): Subsystem(s) to transpose, counted
            from 1. An empty collection returns a copy of `matrix`.

    Returns:
        torch.Tensor: New matrix with the same shape and dtype as `matrix`.

    Raises:
        DimensionMismatchError: If `matrix` is not square or ``prod(dims)`` does
            not match its size.
        SubsystemIndexError: If a subsystem index is outside ``[1, len(dims)]``.
        ValueError: If a subsystem index is repeated.
    """
    dims = check_dims(dims)
    check_square(matrix, dims)
    positions = normalize_systems(systems, len(dims))

    perm = _transpose_permutation(len(dims), positions)
    logger.debug("partial_transpose dims=%s systems=%s perm=%s", dims, positions, perm)

    tensor = matrix.reshape(dims + dims).permute(*perm)
    return tensor.clone(memory_format=torch.contiguous_format).reshape(matrix.shape)
