import math
import torch
from abc import ABCMeta, abstractmethod
from typing import Iterator, Optional, Sequence, Tuple, Type, Union

from .channels import AbstractQuantumOperation
from .config import ATOL, real_dtype, resolve_dtype
from .errors import DimensionMismatchError, DomainError
from .logging import get_logger
from .utils import ketbra

logger = get_logger(__name__)


def _check_basis_dim(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}.")
    if value < 1:
        raise DomainError(f"{name} must be a positive integer, got {value}.")
    return value


class AbstractMatrixBasisIterator(metaclass=ABCMeta):
    """
    Lazily enumerates an orthonormal family of matrices in a fixed order.

    Iterating yields a fresh, independent sequence every time; elements are
    recomputed on demand and never cached. A single generator obtained from
    `iter()` must not be shared between concurrent consumers.
    """
    def __init__(self, dtype: Optional[torch.dtype] = None,
                 device: Union[str, torch.device] = 'cpu'):
        self.dtype = resolve_dtype(dtype)
        self.device = torch.device(device)

    @abstractmethod
    def __iter__(self) -> Iterator[torch.Tensor]:
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

    @property
    @abstractmethod
    def shape(self) -> Tuple[int, int]:
        pass

    def _ketbra(self, i: int, j: int, dim: int) -> torch.Tensor:
        return ketbra(i, j, dim, dtype=self.dtype, device=self.device)


class HermitianBasisIterator(AbstractMatrixBasisIterator):
    """
    Orthonormal basis of the real space of ``dim x dim`` Hermitian matrices.

    Elements are enumerated over pairs ``(a, b)``, ``a`` the outer and ``b`` the
    inner loop (1-based):

    - ``a > b``: ``(i|a><b| - i|b><a|) / sqrt(2)``
    - ``a < b``: ``(|a><b| + |b><a|) / sqrt(2)``
    - ``a = b``: ``|a><a|``

    The order is what `represent` and `combine` agree on.
    """
    def __init__(self, dim: int, dtype: Optional[torch.dtype] = None,
                 device: Union[str, torch.device] = 'cpu'):
        super().__init__(dtype=dtype, device=device)
        self.dim = _check_basis_dim("dim", dim)

    def element(self, a: int, b: int) -> torch.Tensor:
        """Basis element at 0-based position ``(a, b)`` of the enumeration."""
        if a > b:
            return (1j * self._ketbra(a, b, self.dim) - 1j * self._ketbra(b, a, self.dim)) / math.sqrt(2)
        if a < b:
            return (self._ketbra(a, b, self.dim) + self._ketbra(b, a, self.dim)) / math.sqrt(2)
        return self._ketbra(a, a, self.dim)

    def __iter__(self) -> Iterator[torch.Tensor]:
        for a in range(self.dim):
            for b in range(self.dim):
                yield self.element(a, b)

    def __len__(self) -> int:
        return self.dim ** 2

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.dim, self.dim)

    def __repr__(self) -> str:
        return f"HermitianBasisIterator(dim={self.dim}, dtype={self.dtype})"


class ChannelBasisIterator(AbstractMatrixBasisIterator):
    """
    Basis of the real span of dynamical (Choi) matrices of channels from an
    `idim`-dimensional input to an `odim`-dimensional output.

    Elements live on ``output (x) input`` and are enumerated with the counter
    ``(a, c, b, d)`` (1-based), ``d`` advancing fastest, then ``b``, ``c``, ``a``:

    - ``a != c``: ``H_out(a, c) (x) H_in(b, d)``, both factors elements of the
      Hermitian bases; their partial trace over the output vanishes.
    - ``a == c < odim``: ``diag(1, ..., 1, -a, 0, ..., 0) / sqrt(a + a^2) (x) H_in(b, d)``
      with ``a`` leading ones.
    - ``a == c == odim``: the normalized identity on the whole space, emitted once.

    Iteration stops at ``a == odim and c == odim and d == 2``; the number of
    elements is ``idim^2 odim^2 - idim^2 + 1``.
    """
    def __init__(self, idim: int, odim: int, dtype: Optional[torch.dtype] = None,
                 device: Union[str, torch.device] = 'cpu'):
        super().__init__(dtype=dtype, device=device)
        self.idim = _check_basis_dim("idim", idim)
        self.odim = _check_basis_dim("odim", odim)
        self._input_basis = HermitianBasisIterator(self.idim, dtype=self.dtype, device=self.device)
        self._output_basis = HermitianBasisIterator(self.odim, dtype=self.dtype, device=self.device)

    def element(self, a: int, c: int, b: int, d: int) -> torch.Tensor:
        """Basis element for the 1-based counter state ``(a, c, b, d)``."""
        if a == self.odim and c == self.odim:
            n = self.idim * self.odim
            return torch.eye(n, dtype=self.dtype, device=self.device) / math.sqrt(n)

        if a != c:
            out = self._output_basis.element(a - 1, c - 1)
        else:
            diagonal = torch.zeros(self.odim, dtype=self.dtype, device=self.device)
            diagonal[:a] = 1.0
            diagonal[a] = -a
            out = torch.diag(diagonal) / math.sqrt(a + a ** 2)
        return torch.kron(out, self._input_basis.element(b - 1, d - 1))

    def __iter__(self) -> Iterator[torch.Tensor]:
        idim, odim = self.idim, self.odim
        a, c, b, d = 1, 1, 1, 1
        while not (a == odim and c == odim and d == 2):
            yield self.element(a, c, b, d)
            if a == odim and c == odim:
                d += 1
            elif d < idim:
                d += 1
            elif b < idim:
                b, d = b + 1, 1
            elif c < odim:
                c, b, d = c + 1, 1, 1
            else:
                a, c, b, d = a + 1, 1, 1, 1

    def __len__(self) -> int:
        return self.idim ** 2 * self.odim ** 2 - self.idim ** 2 + 1

    @property
    def shape(self) -> Tuple[int, int]:
        n = self.idim * self.odim
        return (n, n)

    def __repr__(self) -> str:
        return f"ChannelBasisIterator(idim={self.idim}, odim={self.odim}, dtype={self.dtype})"


def hermitianbasis(dim: int, dtype: Optional[torch.dtype] = None,
                   device: Union[str, torch.device] = 'cpu') -> HermitianBasisIterator:
    """Elementary Hermitian matrices of dimension ``dim x dim``."""
    return HermitianBasisIterator(dim, dtype=dtype, device=device)


def channelbasis(idim: int, odim: int, dtype: Optional[torch.dtype] = None,
                 device: Union[str, torch.device] = 'cpu') -> ChannelBasisIterator:
    """Basis elements for dynamical matrices of channels ``idim -> odim``."""
    return ChannelBasisIterator(idim, odim, dtype=dtype, device=device)


class MatrixBasis:
    """
    A matrix basis backed by a lazy iterator.

    Attributes:
        iterator (AbstractMatrixBasisIterator): Source of the basis elements.
    """
    def __init__(self, iterator: AbstractMatrixBasisIterator):
        self.iterator = iterator

    @property
    def dtype(self) -> torch.dtype:
        return self.iterator.dtype

    @property
    def device(self) -> torch.device:
        return self.iterator.device

    @property
    def shape(self) -> Tuple[int, int]:
        return self.iterator.shape

    def __iter__(self) -> Iterator[torch.Tensor]:
        return iter(self.iterator)

    def __len__(self) -> int:
        return len(self.iterator)

    def elements(self) -> torch.Tensor:
        """Materializes the basis as a tensor of shape ``(len(self), *self.shape)``."""
        return torch.stack(list(self.iterator))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.iterator!r})"


class HermitianBasis(MatrixBasis):
    def __init__(self, dim: int, dtype: Optional[torch.dtype] = None,
                 device: Union[str, torch.device] = 'cpu'):
        super().__init__(HermitianBasisIterator(dim, dtype=dtype, device=device))


class ChannelBasis(MatrixBasis):
    def __init__(self, idim: int, odim: int, dtype: Optional[torch.dtype] = None,
                 device: Union[str, torch.device] = 'cpu'):
        super().__init__(ChannelBasisIterator(idim, odim, dtype=dtype, device=device))

    @property
    def idim(self) -> int:
        return self.iterator.idim

    @property
    def odim(self) -> int:
        return self.iterator.odim


def _basis_for(basis: Union[MatrixBasis, Type[MatrixBasis]], matrix: torch.Tensor) -> MatrixBasis:
    if not isinstance(basis, type):
        return basis
    if not issubclass(basis, HermitianBasis):
        raise TypeError(
            f"Cannot infer the dimensions of {basis.__name__} from a matrix; pass a basis instance instead."
        )
    if not isinstance(matrix, torch.Tensor):
        raise TypeError(f"Expected a PyTorch Tensor, got {type(matrix).__name__}.")
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise DimensionMismatchError(f"Non square matrix passed, got shape {tuple(matrix.shape)}.")
    dtype = matrix.dtype if matrix.is_floating_point() or matrix.is_complex() else None
    if dtype in (torch.float16, torch.bfloat16):
        dtype = None
    return basis(matrix.shape[0], dtype=dtype, device=matrix.device)


def represent(basis: Union[MatrixBasis, Type[MatrixBasis]],
              matrix: Union[torch.Tensor, AbstractQuantumOperation]) -> torch.Tensor:
    """
    Coordinates of `matrix` in `basis`.

    Coordinate ``i`` is ``Re tr(B_i^dagger M)`` with ``B_i`` the i-th element of
    the basis enumeration. Only the real part is kept: `matrix` is expected to
    lie in the real span of the basis (a Hermitian matrix for `HermitianBasis`).

    Args:
        basis (Union[MatrixBasis, Type[MatrixBasis]]): A basis instance, or the
            `HermitianBasis` class, in which case the dimension is taken from
            `matrix` and the precision from its dtype.
        matrix (Union[torch.Tensor, AbstractQuantumOperation]): Matrix to
            expand. For a `ChannelBasis` a channel object is accepted as well
            and replaced by its dynamical matrix.

    Returns:
        torch.Tensor: 1D real tensor of length ``len(basis)``; float32 for a
            complex64 basis, float64 for a complex128 basis.

    Raises:
        DimensionMismatchError: If the shape of `matrix` does not match the basis.
        TypeError: If `matrix` is neither a tensor nor a supported channel.
    """
    basis = _basis_for(basis, matrix)

    if isinstance(matrix, AbstractQuantumOperation):
        if not isinstance(basis, ChannelBasis):
            raise TypeError(f"Channels can only be represented in a ChannelBasis, got {type(basis).__name__}.")
        if (matrix.idim, matrix.odim) != (basis.idim, basis.odim):
            raise DimensionMismatchError(
                f"Channel {matrix.idim} -> {matrix.odim} does not match basis {basis.idim} -> {basis.odim}."
            )
        matrix = matrix.to_dynamical_matrix().matrix

    if not isinstance(matrix, torch.Tensor):
        raise TypeError(f"Expected a PyTorch Tensor, got {type(matrix).__name__}.")
    if tuple(matrix.shape) != basis.shape:
        raise DimensionMismatchError(
            f"Matrix of shape {tuple(matrix.shape)} does not match basis elements of shape {basis.shape}."
        )

    flat = matrix.to(dtype=basis.dtype, device=basis.device).reshape(-1)
    coefficients = torch.stack([torch.vdot(element.reshape(-1), flat) for element in basis])

    discarded = coefficients.imag.abs().max().item()
    scale = max(1.0, torch.linalg.vector_norm(flat).item())
    if discarded > ATOL * scale:
        logger.warning(
            "represent discarded imaginary parts up to %.3e; the matrix is not in the real span of %r.",
            discarded, basis,
        )
    return coefficients.real.clone()


def combine(basis: MatrixBasis, coordinates: Union[torch.Tensor, Sequence[float]]) -> torch.Tensor:
    """
    Reconstructs ``sum_i coordinates[i] * B_i``.

    Inverse of `represent` on the span of the basis.

    Raises:
        DimensionMismatchError: If the number of coordinates differs from ``len(basis)``.
    """
    if isinstance(coordinates, torch.Tensor) and coordinates.is_complex():
        coordinates = coordinates.to(dtype=basis.dtype, device=basis.device)
    else:
        # Real coordinates keep the precision of the basis.
        coordinates = torch.as_tensor(coordinates, dtype=real_dtype(basis.dtype), device=basis.device)
    if coordinates.ndim != 1 or coordinates.shape[0] != len(basis):
        raise DimensionMismatchError(
            f"Expected {len(basis)} coordinates, got shape {tuple(coordinates.shape)}."
        )

    result = torch.zeros(basis.shape, dtype=basis.dtype, device=basis.device)
    for coefficient, element in zip(coordinates, basis):
        result = result + coefficient * element
    return result
