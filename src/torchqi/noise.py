import torch
import numpy as np
from typing import Optional, Union

from .channels import KrausOperators
from .config import resolve_dtype
from .errors import DomainError


def _pauli_matrices(dtype: torch.dtype, device: torch.device):
    """Single-qubit I, X, Y, Z."""
    return (
        torch.tensor([[1, 0], [0, 1]], dtype=dtype, device=device),
        torch.tensor([[0, 1], [1, 0]], dtype=dtype, device=device),
        torch.tensor([[0, -1j], [1j, 0]], dtype=dtype, device=device),
        torch.tensor([[1, 0], [0, -1]], dtype=dtype, device=device),
    )


def _check_probability(name: str, value: float) -> None:
    if not (0 <= value <= 1):
        raise DomainError(f"{name} must be between 0 and 1, got {value}.")


def pauli_channel(px: float, py: float, pz: float,
                  dtype: Optional[torch.dtype] = None,
                  device: Union[str, torch.device] = 'cpu') -> KrausOperators:
    """
    Single-qubit Pauli channel.

    Applies X, Y or Z with probabilities px, py, pz; with probability
    ``1 - px - py - pz`` nothing happens.

    Returns:
        KrausOperators: ``[sqrt(1-px-py-pz) I, sqrt(px) X, sqrt(py) Y, sqrt(pz) Z]``.

    Raises:
        DomainError: If a probability is outside [0, 1] or their sum exceeds 1.
    """
    for name, value in (("px", px), ("py", py), ("pz", pz)):
        _check_probability(name, value)
    sum_p = px + py + pz
    if sum_p > 1.000001: # Allow for small floating point inaccuracies
        raise DomainError(f"Sum of probabilities px + py + pz ({sum_p}) must be between 0 and 1.")
    p_i = max(0.0, 1.0 - sum_p)

    dev = torch.device(device)
    eye, x, y, z = _pauli_matrices(resolve_dtype(dtype), dev)
    return KrausOperators([eye * np.sqrt(p_i), x * np.sqrt(px), y * np.sqrt(py), z * np.sqrt(pz)])


def depolarizing_channel(p: float,
                         dtype: Optional[torch.dtype] = None,
                         device: Union[str, torch.device] = 'cpu') -> KrausOperators:
    """
    Single-qubit depolarizing channel with error probability `p`, split evenly
    between X, Y and Z errors.
    """
    _check_probability("p", p)
    return pauli_channel(p / 3, p / 3, p / 3, dtype=dtype, device=device)


def amplitude_damping_channel(gamma: float,
                              dtype: Optional[torch.dtype] = None,
                              device: Union[str, torch.device] = 'cpu') -> KrausOperators:
    """
    Amplitude damping channel with damping rate `gamma`.

    Returns:
        KrausOperators: ``K0 = [[1, 0], [0, sqrt(1-gamma)]]``, ``K1 = [[0, sqrt(gamma)], [0, 0]]``.
    """
    _check_probability("gamma", gamma)
    dev = torch.device(device)
    dtype = resolve_dtype(dtype)

    K0 = torch.tensor([[1, 0], [0, np.sqrt(1 - gamma)]], dtype=dtype, device=dev)
    K1 = torch.tensor([[0, np.sqrt(gamma)], [0, 0]], dtype=dtype, device=dev)
    return KrausOperators([K0, K1])


def phase_damping_channel(gamma: float,
                          dtype: Optional[torch.dtype] = None,
                          device: Union[str, torch.device] = 'cpu') -> KrausOperators:
    """
    Phase damping channel with damping rate `gamma`.

    Returns:
        KrausOperators: ``K0 = [[1, 0], [0, sqrt(1-gamma)]]``, ``K1 = [[0, 0], [0, sqrt(gamma)]]``.
    """
    _check_probability("gamma", gamma)
    dev = torch.device(device)
    dtype = resolve_dtype(dtype)

    K0 = torch.tensor([[1, 0], [0, np.sqrt(1 - gamma)]], dtype=dtype, device=dev)
    K1 = torch.tensor([[0, 0], [0, np.sqrt(gamma)]], dtype=dtype, device=dev)
    return KrausOperators([K0, K1])
