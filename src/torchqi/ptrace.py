import torch
import numpy as np
from typing import Iterable, Sequence, Union

from .logging import get_logger
from .utils import check_dims, check_square, normalize_systems

logger = get_logger(__name__)


def ptrace(matrix: torch.Tensor,
           dims: Sequence[int],
           systems: Union[int, Iterable[int]]) -> torch.Tensor:
    """
    Partial trace of a composite-system matrix.

    Args:
        matrix (torch.Tensor): Square matrix of size ``prod(dims)``.
        dims (Sequence[int]): Dimensions of the subsystems, in declared order.
        systems (Union[int, Iterable[int]]): Subsystem(s) to trace out, counted from 1.

    Returns:
        torch.Tensor: Reduced operator on the remaining subsystems (declared
            order kept). Tracing out every subsystem gives a ``(1, 1)`` matrix.

    Raises:
        DimensionMismatchError: If `matrix` is not square or ``prod(dims)`` does
            not match its size.
        SubsystemIndexError: If a subsystem index is outside ``[1, len(dims)]``.
        ValueError: If a subsystem index is repeated.
    """
    dims = check_dims(dims)
    check_square(matrix, dims)
    traced = list(normalize_systems(systems, len(dims)))
    kept = [s for s in range(len(dims)) if s not in traced]
    k = len(dims)

    # Traced axes to the front of both the row and the column block.
    perm = traced + kept + [s + k for s in traced] + [s + k for s in kept]
    tr_dim = int(np.prod([dims[s] for s in traced]))
    kept_dim = int(np.prod([dims[s] for s in kept]))
    logger.debug("ptrace dims=%s traced=%s kept=%s", dims, traced, kept)

    tensor = matrix.reshape(dims + dims).permute(*perm).reshape(tr_dim, kept_dim, tr_dim, kept_dim)
    return torch.diagonal(tensor, dim1=0, dim2=2).sum(dim=-1)
