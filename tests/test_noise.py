import torch
import pytest
import sys
import os
import numpy as np # For np.sqrt, used in constructing expected values

# Adjust sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from torchqi.noise import (
    pauli_channel,
    depolarizing_channel,
    amplitude_damping_channel,
    phase_damping_channel,
)
from torchqi.channels import KrausOperators, is_cptp
from torchqi.config import COMPLEX_DTYPE
from torchqi.errors import DomainError

I = torch.tensor([[1, 0], [0, 1]], dtype=COMPLEX_DTYPE)
X = torch.tensor([[0, 1], [1, 0]], dtype=COMPLEX_DTYPE)
Y = torch.tensor([[0, -1j], [1j, 0]], dtype=COMPLEX_DTYPE)
Z = torch.tensor([[1, 0], [0, -1]], dtype=COMPLEX_DTYPE)

# --- Helper Function ---

def check_kraus_properties(channel: KrausOperators, expected_num_ops: int, expected_shape: tuple):
    assert isinstance(channel, KrausOperators)
    assert len(channel) == expected_num_ops, f"Expected {expected_num_ops} Kraus operators, got {len(channel)}"

    sum_KdagK = torch.zeros(expected_shape, dtype=COMPLEX_DTYPE)
    for i, K in enumerate(channel.operators):
        assert K.shape == expected_shape, f"Kraus op {i} shape mismatch: expected {expected_shape}, got {K.shape}"
        assert K.dtype == COMPLEX_DTYPE, f"Kraus op {i} dtype mismatch: expected {COMPLEX_DTYPE}, got {K.dtype}"
        sum_KdagK += K.adjoint() @ K

    identity_matrix = torch.eye(expected_shape[0], dtype=COMPLEX_DTYPE)
    torch.testing.assert_close(sum_KdagK, identity_matrix, rtol=1e-6, atol=1e-7, msg="Sum K_dag @ K is not Identity")
    assert is_cptp(channel)

# --- Tests for pauli_channel() ---

def test_pauli_channel_no_error():
    channel = pauli_channel(px=0, py=0, pz=0)
    check_kraus_properties(channel, expected_num_ops=4, expected_shape=(2, 2))
    ops = channel.operators
    torch.testing.assert_close(ops[0], I)
    for K in ops[1:]:
        torch.testing.assert_close(K, torch.zeros_like(I))

def test_pauli_channel_full():
    px, py, pz = 0.1, 0.05, 0.02
    p_sum = px + py + pz
    ops = pauli_channel(px=px, py=py, pz=pz).operators
    torch.testing.assert_close(ops[0], I * np.sqrt(1 - p_sum))
    torch.testing.assert_close(ops[1], X * np.sqrt(px))
    torch.testing.assert_close(ops[2], Y * np.sqrt(py))
    torch.testing.assert_close(ops[3], Z * np.sqrt(pz))

def test_pauli_channel_sum_prob_one():
    channel = pauli_channel(px=0.5, py=0.5, pz=0.0) # p_i = 0
    check_kraus_properties(channel, expected_num_ops=4, expected_shape=(2, 2))
    torch.testing.assert_close(channel.operators[0], torch.zeros_like(I))

def test_pauli_channel_action():
    rho = torch.tensor([[1, 0], [0, 0]], dtype=COMPLEX_DTYPE)
    result = pauli_channel(px=0.25, py=0, pz=0)(rho)
    torch.testing.assert_close(result, torch.tensor([[0.75, 0], [0, 0.25]], dtype=COMPLEX_DTYPE))

def test_pauli_channel_invalid_probs():
    with pytest.raises(DomainError, match="px must be between 0 and 1"):
        pauli_channel(px=-0.1, py=0, pz=0)
    with pytest.raises(ValueError, match=r"Sum of probabilities px \+ py \+ pz \([^)]+\) must be between 0 and 1\."):
        pauli_channel(px=0.5, py=0.6, pz=0)

# --- Tests for depolarizing_channel() ---

def test_depolarizing_general_p():
    p = 0.3
    channel = depolarizing_channel(p=p)
    check_kraus_properties(channel, expected_num_ops=4, expected_shape=(2, 2))
    val = np.sqrt(p / 3.0)
    torch.testing.assert_close(channel.operators[0], I * np.sqrt(1 - p))
    torch.testing.assert_close(channel.operators[1], X * val)
    torch.testing.assert_close(channel.operators[3], Z * val)

def test_depolarizing_full_error_maps_to_mixture():
    rho = torch.tensor([[1, 0], [0, 0]], dtype=COMPLEX_DTYPE)
    result = depolarizing_channel(p=0.75)(rho)
    torch.testing.assert_close(result, I / 2)

def test_depolarizing_invalid_p():
    with pytest.raises(DomainError, match=r"p must be between 0 and 1"):
        depolarizing_channel(p=-0.1)
    with pytest.raises(DomainError):
        depolarizing_channel(p=1.1)

# --- Tests for amplitude_damping_channel() ---

def test_amplitude_damping_full_damping():
    channel = amplitude_damping_channel(gamma=1.0)
    check_kraus_properties(channel, expected_num_ops=2, expected_shape=(2, 2))
    expected_K0 = torch.tensor([[1, 0], [0, 0]], dtype=COMPLEX_DTYPE)
    expected_K1 = torch.tensor([[0, 1], [0, 0]], dtype=COMPLEX_DTYPE)
    torch.testing.assert_close(channel.operators[0], expected_K0)
    torch.testing.assert_close(channel.operators[1], expected_K1)

def test_amplitude_damping_general_gamma():
    gamma = 0.2
    channel = amplitude_damping_channel(gamma=gamma)
    check_kraus_properties(channel, expected_num_ops=2, expected_shape=(2, 2))
    rho = torch.tensor([[0, 0], [0, 1]], dtype=COMPLEX_DTYPE)
    expected = torch.tensor([[gamma, 0], [0, 1 - gamma]], dtype=COMPLEX_DTYPE)
    torch.testing.assert_close(channel(rho), expected)

def test_amplitude_damping_invalid_gamma():
    with pytest.raises(DomainError, match="gamma must be between 0 and 1"):
        amplitude_damping_channel(gamma=-0.1)
    with pytest.raises(DomainError):
        amplitude_damping_channel(gamma=1.1)

# --- Tests for phase_damping_channel() ---

def test_phase_damping_general_gamma():
    gamma = 0.25
    channel = phase_damping_channel(gamma=gamma)
    check_kraus_properties(channel, expected_num_ops=2, expected_shape=(2, 2))
    plus = torch.full((2, 2), 0.5, dtype=COMPLEX_DTYPE)
    result = channel(plus)
    torch.testing.assert_close(torch.diagonal(result), torch.diagonal(plus))
    torch.testing.assert_close(result[0, 1], plus[0, 1] * float(np.sqrt(1 - gamma)))

def test_phase_damping_invalid_gamma():
    with pytest.raises(DomainError):
        phase_damping_channel(gamma=1.1)

def test_noise_channel_dtype():
    channel = amplitude_damping_channel(0.1, dtype=torch.complex64)
    assert channel.dtype == torch.complex64

if __name__ == "__main__":
    pytest.main([__file__, "-v"])
