"""
Representations of quantum channels.

A channel from an `idim`-dimensional input to an `odim`-dimensional output is
held in one of four equivalent forms:

- `KrausOperators`: ``Phi(rho) = sum_k K_k rho K_k^dagger`` with ``K_k`` of shape (odim, idim).
- `SuperOperator`: the (odim^2, idim^2) matrix ``S`` with ``res(Phi(rho)) = S res(rho)``,
  ``S = sum_k K_k (x) conj(K_k)`` for row-major `res`.
- `DynamicalMatrix`: the Choi matrix ``J = sum_ij Phi(|i><j|) (x) |i><j|`` on
  ``output (x) input``, equal to ``sum_k res(K_k) res(K_k)^dagger``. The channel
  is trace preserving iff ``ptrace(J, [odim, idim], 1) == I``.
- `Stinespring`: the (odim * edim, idim) matrix ``V`` into ``output (x) environment``
  with ``Phi(rho) = Tr_env[V rho V^dagger]``; its block ``k`` of the environment is ``K_k``.

`SuperOperator` and `DynamicalMatrix` are related by `reshuffle`.
`POVMMeasurement` and `PostSelectionMeasurement` are measurement channels built
from effects.
"""
import torch
from abc import ABCMeta, abstractmethod
from typing import List, Optional, Sequence, Tuple

from .config import ATOL, COMPLEX_DTYPE, resolve_dtype
from .errors import DimensionMismatchError, DomainError
from .logging import get_logger
from .ptrace import ptrace
from .reshuffle import reshuffle
from .utils import ketbra, res, unres

logger = get_logger(__name__)


def _complex_dtype_of(tensor: torch.Tensor) -> torch.dtype:
    if tensor.dtype in (torch.complex64, torch.complex128, torch.float32, torch.float64):
        return resolve_dtype(tensor.dtype)
    return COMPLEX_DTYPE


def _check_matrix(name: str, matrix: torch.Tensor, shape: tuple) -> None:
    if not isinstance(matrix, torch.Tensor):
        raise TypeError(f"{name} must be a PyTorch Tensor, got {type(matrix).__name__}.")
    if tuple(matrix.shape) != shape:
        raise DimensionMismatchError(f"{name} must have shape {shape}, but got {tuple(matrix.shape)}.")


class AbstractQuantumOperation(metaclass=ABCMeta):
    """
    Common interface of all channel representations.

    Attributes:
        idim (int): Dimension of the input space.
        odim (int): Dimension of the output space.
    """
    idim: int
    odim: int

    @abstractmethod
    def to_kraus(self) -> 'KrausOperators':
        pass

    def to_superoperator(self) -> 'SuperOperator':
        return self.to_kraus().to_superoperator()

    def to_dynamical_matrix(self) -> 'DynamicalMatrix':
        return self.to_kraus().to_dynamical_matrix()

    def to_stinespring(self) -> 'Stinespring':
        return self.to_kraus().to_stinespring()

    @property
    def dtype(self) -> torch.dtype:
        return self.to_kraus().dtype

    def _check_input(self, rho: torch.Tensor) -> torch.Tensor:
        _check_matrix("rho", rho, (self.idim, self.idim))
        return rho.to(dtype=self.dtype)

    def __call__(self, rho: torch.Tensor) -> torch.Tensor:
        return self.to_kraus()(rho)


class KrausOperators(AbstractQuantumOperation):
    """
    Channel given by a list of Kraus operators.

    Args:
        operators (Sequence[torch.Tensor]): Non-empty list of (odim, idim) matrices.
        idim (Optional[int]): Expected input dimension; inferred if None.
        odim (Optional[int]): Expected output dimension; inferred if None.

    Raises:
        ValueError: If `operators` is empty.
        DimensionMismatchError: If the operators disagree in shape, or with `idim`/`odim`.
    """
    def __init__(self, operators: Sequence[torch.Tensor],
                 idim: Optional[int] = None, odim: Optional[int] = None):
        operators = list(operators)
        if not operators:
            raise ValueError("operators must contain at least one Kraus operator.")
        if not all(isinstance(k, torch.Tensor) for k in operators):
            raise TypeError("All Kraus operators must be PyTorch Tensors.")
        if operators[0].ndim != 2:
            raise DimensionMismatchError(f"Kraus operators must be 2D, got shape {tuple(operators[0].shape)}.")

        self.odim = operators[0].shape[0] if odim is None else odim
        self.idim = operators[0].shape[1] if idim is None else idim
        dtype = _complex_dtype_of(operators[0])
        for i, k in enumerate(operators):
            _check_matrix(f"Kraus operator {i}", k, (self.odim, self.idim))
        self.operators: List[torch.Tensor] = [k.to(dtype=dtype) for k in operators]

    @property
    def dtype(self) -> torch.dtype:
        return self.operators[0].dtype

    def to_kraus(self) -> 'KrausOperators':
        return self

    def to_superoperator(self) -> 'SuperOperator':
        matrix = sum(torch.kron(k, k.conj()) for k in self.operators)
        return SuperOperator(matrix, self.idim, self.odim)

    def to_dynamical_matrix(self) -> 'DynamicalMatrix':
        matrix = sum(torch.outer(res(k), res(k).conj()) for k in self.operators)
        return DynamicalMatrix(matrix, self.idim, self.odim)

    def to_stinespring(self) -> 'Stinespring':
        # V[(m, k), i] = K_k[m, i]
        matrix = torch.stack(self.operators, dim=1).reshape(self.odim * len(self.operators), self.idim)
        return Stinespring(matrix, self.idim, self.odim)

    def __call__(self, rho: torch.Tensor) -> torch.Tensor:
        rho = self._check_input(rho)
        return sum(k @ rho @ k.adjoint() for k in self.operators)

    def __len__(self) -> int:
        return len(self.operators)

    def __repr__(self) -> str:
        return f"KrausOperators(num_operators={len(self.operators)}, idim={self.idim}, odim={self.odim}, dtype={self.dtype})"


class SuperOperator(AbstractQuantumOperation):
    """Channel given by its (odim^2, idim^2) superoperator matrix."""
    def __init__(self, matrix: torch.Tensor, idim: int, odim: int):
        _check_matrix("SuperOperator matrix", matrix, (odim ** 2, idim ** 2))
        self.idim = idim
        self.odim = odim
        self.matrix = matrix.to(dtype=_complex_dtype_of(matrix))

    @property
    def dtype(self) -> torch.dtype:
        return self.matrix.dtype

    def to_kraus(self) -> 'KrausOperators':
        return self.to_dynamical_matrix().to_kraus()

    def to_superoperator(self) -> 'SuperOperator':
        return self

    def to_dynamical_matrix(self) -> 'DynamicalMatrix':
        matrix = reshuffle(self.matrix, [self.odim, self.odim], col_dims=[self.idim, self.idim])
        return DynamicalMatrix(matrix, self.idim, self.odim)

    def __call__(self, rho: torch.Tensor) -> torch.Tensor:
        rho = self._check_input(rho)
        return unres(self.matrix @ res(rho), self.odim)

    def __repr__(self) -> str:
        return f"SuperOperator(idim={self.idim}, odim={self.odim}, dtype={self.dtype})"


class DynamicalMatrix(AbstractQuantumOperation):
    """Channel given by its dynamical (Choi) matrix on ``output (x) input``."""
    def __init__(self, matrix: torch.Tensor, idim: int, odim: int):
        _check_matrix("DynamicalMatrix matrix", matrix, (odim * idim, odim * idim))
        self.idim = idim
        self.odim = odim
        self.matrix = matrix.to(dtype=_complex_dtype_of(matrix))

    @property
    def dtype(self) -> torch.dtype:
        return self.matrix.dtype

    def to_kraus(self, atol: float = ATOL) -> 'KrausOperators':
        """
        Kraus decomposition from the eigen-decomposition of the Hermitian part
        of the dynamical matrix. Eigenvalues below `atol` are dropped.
        """
        hermitian = (self.matrix + self.matrix.adjoint()) / 2
        eigenvalues, eigenvectors = torch.linalg.eigh(hermitian)
        if eigenvalues.min().item() < -atol:
            logger.warning("Dynamical matrix has negative eigenvalue %.3e; the map is not completely positive.",
                           eigenvalues.min().item())

        operators = [
            torch.sqrt(eigenvalues[i]) * unres(eigenvectors[:, i], self.idim)
            for i in range(eigenvalues.shape[0]) if eigenvalues[i].item() > atol
        ]
        if not operators:
            operators = [torch.zeros((self.odim, self.idim), dtype=self.dtype, device=self.matrix.device)]
        return KrausOperators(operators, self.idim, self.odim)

    def to_superoperator(self) -> 'SuperOperator':
        matrix = reshuffle(self.matrix, [self.odim, self.idim])
        return SuperOperator(matrix, self.idim, self.odim)

    def to_dynamical_matrix(self) -> 'DynamicalMatrix':
        return self

    def __call__(self, rho: torch.Tensor) -> torch.Tensor:
        # Phi(rho) = Tr_in[J (I (x) rho^T)]
        rho = self._check_input(rho)
        identity = torch.eye(self.odim, dtype=self.dtype, device=self.matrix.device)
        return ptrace(self.matrix @ torch.kron(identity, rho.transpose(0, 1)), [self.odim, self.idim], 2)

    def __repr__(self) -> str:
        return f"DynamicalMatrix(idim={self.idim}, odim={self.odim}, dtype={self.dtype})"


class Stinespring(AbstractQuantumOperation):
    """
    Channel given by its Stinespring isometry.

    Args:
        matrix (torch.Tensor): (odim * edim, idim) matrix mapping the input into
            ``output (x) environment``; `edim` is inferred from its row count.
        idim (int): Dimension of the input space.
        odim (int): Dimension of the output space.

    Raises:
        DimensionMismatchError: If the row count is not a positive multiple of
            `odim`, or the column count differs from `idim`.
    """
    def __init__(self, matrix: torch.Tensor, idim: int, odim: int):
        if not isinstance(matrix, torch.Tensor):
            raise TypeError(f"Stinespring matrix must be a PyTorch Tensor, got {type(matrix).__name__}.")
        if (matrix.ndim != 2 or matrix.shape[1] != idim
                or matrix.shape[0] < odim or matrix.shape[0] % odim != 0):
            raise DimensionMismatchError(
                f"Stinespring matrix must have shape (odim * edim, {idim}) with odim={odim}, "
                f"but got {tuple(matrix.shape)}."
            )
        self.idim = idim
        self.odim = odim
        self.edim = matrix.shape[0] // odim
        self.matrix = matrix.to(dtype=_complex_dtype_of(matrix))

    @property
    def dtype(self) -> torch.dtype:
        return self.matrix.dtype

    def to_kraus(self) -> KrausOperators:
        blocks = self.matrix.reshape(self.odim, self.edim, self.idim)
        return KrausOperators([blocks[:, k, :] for k in range(self.edim)], self.idim, self.odim)

    def to_stinespring(self) -> 'Stinespring':
        return self

    def __call__(self, rho: torch.Tensor) -> torch.Tensor:
        rho = self._check_input(rho)
        return ptrace(self.matrix @ rho @ self.matrix.adjoint(), [self.odim, self.edim], 2)

    def __repr__(self) -> str:
        return f"Stinespring(idim={self.idim}, odim={self.odim}, edim={self.edim}, dtype={self.dtype})"


class POVMMeasurement(AbstractQuantumOperation):
    """
    Measurement channel ``rho -> sum_j tr(E_j rho) |j><j|`` of the POVM ``{E_j}``.

    The output is the classical register of outcomes, so ``odim`` is the
    number of effects and the dynamical matrix is ``sum_j |j><j| (x) E_j^T``.

    Raises:
        ValueError: If `elements` is empty.
        DimensionMismatchError: If the effects are not square matrices of equal size.
        DomainError: If the effects are not positive or do not sum to the identity.
    """
    def __init__(self, elements: Sequence[torch.Tensor], atol: float = ATOL):
        elements = list(elements)
        if not elements:
            raise ValueError("elements must contain at least one effect.")
        if not all(isinstance(e, torch.Tensor) for e in elements):
            raise TypeError("All POVM elements must be PyTorch Tensors.")
        dim = elements[0].shape[0]
        for i, e in enumerate(elements):
            _check_matrix(f"POVM element {i}", e, (dim, dim))
        if not is_povm(elements, atol=atol):
            raise DomainError("Elements do not form a POVM: effects must be positive and sum to the identity.")

        self.idim = dim
        self.odim = len(elements)
        dtype = _complex_dtype_of(elements[0])
        self.elements: List[torch.Tensor] = [e.to(dtype=dtype) for e in elements]

    @property
    def dtype(self) -> torch.dtype:
        return self.elements[0].dtype

    def to_kraus(self) -> KrausOperators:
        return self.to_dynamical_matrix().to_kraus()

    def to_dynamical_matrix(self) -> DynamicalMatrix:
        device = self.elements[0].device
        matrix = sum(
            torch.kron(ketbra(j, j, self.odim, dtype=self.dtype, device=device), e.transpose(0, 1))
            for j, e in enumerate(self.elements)
        )
        return DynamicalMatrix(matrix, self.idim, self.odim)

    def __call__(self, rho: torch.Tensor) -> torch.Tensor:
        rho = self._check_input(rho)
        return torch.diag(torch.stack([torch.trace(e @ rho) for e in self.elements]))

    def __len__(self) -> int:
        return len(self.elements)

    def __repr__(self) -> str:
        return f"POVMMeasurement(num_outcomes={self.odim}, dim={self.idim}, dtype={self.dtype})"


class PostSelectionMeasurement(AbstractQuantumOperation):
    """
    Post-selection on a single effect ``E``: ``rho -> E rho E^dagger``.

    The map has the single Kraus operator ``E`` and is trace non-increasing.

    Raises:
        DimensionMismatchError: If `effect` is not square.
        DomainError: If `effect` is not an effect (``0 <= E <= I``).
    """
    def __init__(self, effect: torch.Tensor, atol: float = ATOL):
        if not isinstance(effect, torch.Tensor):
            raise TypeError(f"effect must be a PyTorch Tensor, got {type(effect).__name__}.")
        if effect.ndim != 2 or effect.shape[0] != effect.shape[1]:
            raise DimensionMismatchError(f"effect must be square, got shape {tuple(effect.shape)}.")
        if not is_effect(effect, atol=atol):
            raise DomainError("effect must satisfy 0 <= E <= I.")
        self.idim = self.odim = effect.shape[0]
        self.effect = effect.to(dtype=_complex_dtype_of(effect))

    @property
    def dtype(self) -> torch.dtype:
        return self.effect.dtype

    def to_kraus(self) -> KrausOperators:
        return KrausOperators([self.effect])

    def __call__(self, rho: torch.Tensor) -> torch.Tensor:
        rho = self._check_input(rho)
        return self.effect @ rho @ self.effect.adjoint()

    def __repr__(self) -> str:
        return f"PostSelectionMeasurement(dim={self.idim}, dtype={self.dtype})"


class UnitaryChannel(AbstractQuantumOperation):
    """Channel ``rho -> U rho U^dagger``."""
    def __init__(self, unitary: torch.Tensor):
        if not isinstance(unitary, torch.Tensor):
            raise TypeError(f"unitary must be a PyTorch Tensor, got {type(unitary).__name__}.")
        if unitary.ndim != 2 or unitary.shape[0] != unitary.shape[1]:
            raise DimensionMismatchError(f"unitary must be square, got shape {tuple(unitary.shape)}.")
        self.idim = self.odim = unitary.shape[0]
        self.unitary = unitary.to(dtype=_complex_dtype_of(unitary))

    @property
    def dtype(self) -> torch.dtype:
        return self.unitary.dtype

    def to_kraus(self) -> KrausOperators:
        return KrausOperators([self.unitary])

    def __call__(self, rho: torch.Tensor) -> torch.Tensor:
        rho = self._check_input(rho)
        return self.unitary @ rho @ self.unitary.adjoint()

    def __repr__(self) -> str:
        return f"UnitaryChannel(dim={self.idim}, dtype={self.dtype})"


class IdentityChannel(AbstractQuantumOperation):
    """Identity channel on a `dim`-dimensional system."""
    def __init__(self, dim: int, dtype: Optional[torch.dtype] = None):
        if dim < 1:
            raise DomainError(f"dim must be a positive integer, got {dim}.")
        self.idim = self.odim = dim
        self._dtype = resolve_dtype(dtype)

    @property
    def dtype(self) -> torch.dtype:
        return self._dtype

    def to_kraus(self) -> KrausOperators:
        return KrausOperators([torch.eye(self.idim, dtype=self._dtype)])

    def __call__(self, rho: torch.Tensor) -> torch.Tensor:
        return self._check_input(rho).clone()

    def __repr__(self) -> str:
        return f"IdentityChannel(dim={self.idim}, dtype={self.dtype})"


def apply_channel(channel: AbstractQuantumOperation, rho: torch.Tensor) -> torch.Tensor:
    """Applies `channel` to the (idim, idim) matrix `rho`."""
    return channel(rho)


def compose(*channels: AbstractQuantumOperation) -> KrausOperators:
    """
    Composition ``channels[0] o channels[1] o ... o channels[-1]``.

    The last channel is applied first, as in function composition.

    Raises:
        ValueError: If no channel is given.
        DimensionMismatchError: If an output dimension does not feed the next input.
    """
    if not channels:
        raise ValueError("compose needs at least one channel.")
    result = channels[-1].to_kraus()
    for channel in reversed(channels[:-1]):
        outer = channel.to_kraus()
        if outer.idim != result.odim:
            raise DimensionMismatchError(
                f"Cannot compose channel with input dimension {outer.idim} after output dimension {result.odim}."
            )
        dtype = torch.promote_types(outer.dtype, result.dtype)
        result = KrausOperators([a.to(dtype) @ b.to(dtype) for a in outer.operators for b in result.operators])
    return result


def kron(*channels: AbstractQuantumOperation) -> KrausOperators:
    """Tensor product ``channels[0] (x) channels[1] (x) ...`` of channels."""
    if not channels:
        raise ValueError("kron needs at least one channel.")
    result = channels[0].to_kraus()
    for channel in channels[1:]:
        other = channel.to_kraus()
        dtype = torch.promote_types(other.dtype, result.dtype)
        result = KrausOperators([torch.kron(a.to(dtype), b.to(dtype))
                                 for a in result.operators for b in other.operators])
    return result


def _trace_over_output(channel: AbstractQuantumOperation) -> Tuple[torch.Tensor, torch.Tensor]:
    choi = channel.to_dynamical_matrix()
    return choi.matrix, ptrace(choi.matrix, [choi.odim, choi.idim], 1)


def is_positive(matrix: torch.Tensor, atol: float = ATOL) -> bool:
    """True if `matrix` is Hermitian and positive semidefinite up to `atol`."""
    if not isinstance(matrix, torch.Tensor):
        raise TypeError(f"Expected a PyTorch Tensor, got {type(matrix).__name__}.")
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise DimensionMismatchError(f"Non square matrix passed, got shape {tuple(matrix.shape)}.")
    if not torch.allclose(matrix, matrix.adjoint(), atol=atol):
        return False
    return torch.linalg.eigvalsh(matrix).min().item() >= -atol


def is_identity(matrix: torch.Tensor, atol: float = ATOL) -> bool:
    """True if `matrix` is the identity up to `atol`."""
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        return False
    identity = torch.eye(matrix.shape[0], dtype=matrix.dtype, device=matrix.device)
    return torch.allclose(matrix, identity, atol=atol)


def is_effect(matrix: torch.Tensor, atol: float = ATOL) -> bool:
    """True if ``0 <= matrix <= I``."""
    if not is_positive(matrix, atol):
        return False
    identity = torch.eye(matrix.shape[0], dtype=matrix.dtype, device=matrix.device)
    return is_positive(identity - matrix, atol)


def is_povm(elements: Sequence[torch.Tensor], atol: float = ATOL) -> bool:
    """True if `elements` are positive and sum to the identity."""
    elements = list(elements)
    if not elements:
        return False
    return all(is_positive(e, atol) for e in elements) and is_identity(sum(elements), atol)


def is_cptp(channel: AbstractQuantumOperation, atol: float = ATOL) -> bool:
    """True if `channel` is completely positive and trace preserving."""
    choi, reduced = _trace_over_output(channel)
    return is_positive(choi, atol) and is_identity(reduced, atol)


def is_cptni(channel: AbstractQuantumOperation, atol: float = ATOL) -> bool:
    """True if `channel` is completely positive and trace non-increasing."""
    choi, reduced = _trace_over_output(channel)
    identity = torch.eye(channel.idim, dtype=reduced.dtype, device=reduced.device)
    return is_positive(choi, atol) and is_positive(identity - reduced, atol)
