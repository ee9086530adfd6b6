import torch
import numpy as np
from typing import Iterable, List, Optional, Sequence, Union

from .config import resolve_dtype
from .errors import DomainError
from .ptrace import ptrace
from .ptranspose import partial_transpose
from .reshuffle import permute_systems
from .utils import check_dims, check_square, normalize_systems, proj


def max_mixed(dim: int, dtype: Optional[torch.dtype] = None,
              device: Union[str, torch.device] = 'cpu') -> torch.Tensor:
    """Maximally mixed state I / dim."""
    if dim < 1:
        raise DomainError(f"dim must be a positive integer, got {dim}.")
    return torch.eye(dim, dtype=resolve_dtype(dtype), device=device) / dim


def max_entangled(dim: int, dtype: Optional[torch.dtype] = None,
                  device: Union[str, torch.device] = 'cpu') -> torch.Tensor:
    """
    Maximally entangled vector ``sum_i |i>|i> / sqrt(dim)`` on a ``dim x dim``
    bipartite system.

    Returns:
        torch.Tensor: 1D tensor of length ``dim**2``.
    """
    if dim < 1:
        raise DomainError(f"dim must be a positive integer, got {dim}.")
    return torch.eye(dim, dtype=resolve_dtype(dtype), device=device).reshape(-1) / np.sqrt(dim)


def werner_state(dim: int, p: float, dtype: Optional[torch.dtype] = None,
                 device: Union[str, torch.device] = 'cpu') -> torch.Tensor:
    """
    Werner state ``p |Omega><Omega| + (1 - p) I / dim**2`` on a ``dim x dim``
    bipartite system, with ``|Omega>`` the maximally entangled vector.

    Raises:
        DomainError: If `p` is outside [0, 1].
    """
    if not (0 <= p <= 1):
        raise DomainError(f"Werner state mixing parameter must be between 0 and 1, got {p}.")
    omega = max_entangled(dim, dtype=dtype, device=device)
    return p * proj(omega) + (1 - p) * max_mixed(dim ** 2, dtype=dtype, device=device)


class DensityMatrix:
    """
    A density matrix on a composite system with arbitrary subsystem dimensions.

    Subsystem ordering follows `torch.kron`: the last subsystem varies fastest.

    Attributes:
        dims (List[int]): Dimensions of the subsystems.
        dim (int): Dimension of the composite Hilbert space, ``prod(dims)``.
        device (torch.device): The PyTorch device where the matrix is stored.
        density_matrix (torch.Tensor): The (dim, dim) tensor.
    """
    def __init__(self,
                 dims: Sequence[int],
                 initial_density_matrix_tensor: Optional[torch.Tensor] = None,
                 dtype: Optional[torch.dtype] = None,
                 device: Union[str, torch.device] = 'cpu'):
        """Initializes a DensityMatrix.

        Args:
            dims: Dimensions of the subsystems. Must be positive integers.
            initial_density_matrix_tensor: Optional (dim, dim) tensor. It is
                converted to the requested complex dtype. If None, the state
                is initialized to |0...0><0...0|.
            dtype: Complex dtype of the stored matrix. Defaults to `COMPLEX_DTYPE`.
            device: The PyTorch device (e.g., 'cpu', 'cuda'). Defaults to 'cpu'.

        Raises:
            ValueError: If `dims` is invalid or the device string is invalid.
            DimensionMismatchError: If the tensor does not match `dims`.
            TypeError: If initial_density_matrix_tensor is not a PyTorch Tensor.
        """
        self.dims: List[int] = check_dims(dims)
        self.dim = int(np.prod(self.dims))
        self.dtype = resolve_dtype(dtype)

        try:
            self.device = torch.device(device)
        except RuntimeError:
            raise ValueError(f"Invalid device string: {device}")

        if initial_density_matrix_tensor is not None:
            check_square(initial_density_matrix_tensor, self.dims)
            self.density_matrix = initial_density_matrix_tensor.to(device=self.device, dtype=self.dtype)
        else:
            self.density_matrix = torch.zeros((self.dim, self.dim), dtype=self.dtype, device=self.device)
            self.density_matrix[0, 0] = 1.0

    @property
    def num_systems(self) -> int:
        return len(self.dims)

    def partial_transpose(self, systems: Union[int, Iterable[int]]) -> 'DensityMatrix':
        """Partial transpose over the given (1-based) subsystems."""
        return DensityMatrix(self.dims, partial_transpose(self.density_matrix, self.dims, systems),
                             dtype=self.dtype, device=self.device)

    def ptrace(self, systems: Union[int, Iterable[int]]) -> 'DensityMatrix':
        """Reduced state after tracing out the given (1-based) subsystems."""
        traced = normalize_systems(systems, self.num_systems)
        reduced = ptrace(self.density_matrix, self.dims, [s + 1 for s in traced])
        kept = [d for s, d in enumerate(self.dims) if s not in traced]
        return DensityMatrix(kept or [1], reduced, dtype=self.dtype, device=self.device)

    def permute_systems(self, perm: Sequence[int]) -> 'DensityMatrix':
        """State with subsystem ``t`` taken from subsystem ``perm[t]`` (1-based)."""
        permuted = permute_systems(self.density_matrix, self.dims, perm)
        return DensityMatrix([self.dims[p - 1] for p in perm], permuted, dtype=self.dtype, device=self.device)

    def to(self, device: Union[str, torch.device]) -> 'DensityMatrix':
        """
        Moves the density matrix to the specified PyTorch device.

        Returns:
            A new DensityMatrix on `device`, or self if it is already there.
        """
        new_device = torch.device(device)
        if new_device == self.device:
            return self
        return DensityMatrix(self.dims, self.density_matrix.to(new_device), dtype=self.dtype, device=new_device)

    def __repr__(self) -> str:
        return (
            f"DensityMatrix(dims={self.dims}, device='{self.device}', "
            f"density_matrix=\n{self.density_matrix})"
        )
