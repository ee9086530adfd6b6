import torch
from typing import Optional

# Default complex dtype for every matrix the library builds.
COMPLEX_DTYPE = torch.complex128
# Real dtype corresponding to the complex one (float64 for complex128).
REAL_DTYPE = torch.tensor(0., dtype=COMPLEX_DTYPE).real.dtype

# Absolute tolerance used by the property checks (is_cptp, represent warnings, ...).
ATOL = 1e-8

_COMPLEX_FOR_REAL = {
    torch.float32: torch.complex64,
    torch.float64: torch.complex128,
}


def resolve_dtype(dtype: Optional[torch.dtype] = None) -> torch.dtype:
    """Returns the complex dtype to build matrices with.

    Args:
        dtype (Optional[torch.dtype]): Requested dtype. ``None`` selects
            `COMPLEX_DTYPE`. Real floating dtypes are mapped to their complex
            counterpart (float32 -> complex64, float64 -> complex128).

    Returns:
        torch.dtype: A complex dtype.

    Raises:
        TypeError: If `dtype` is neither a supported complex nor real floating dtype.
    """
    if dtype is None:
        return COMPLEX_DTYPE
    if dtype in (torch.complex64, torch.complex128):
        return dtype
    if dtype in _COMPLEX_FOR_REAL:
        return _COMPLEX_FOR_REAL[dtype]
    raise TypeError(f"Unsupported dtype {dtype}. Expected complex64, complex128, float32 or float64.")


def real_dtype(dtype: torch.dtype) -> torch.dtype:
    """Real dtype matching the precision of `dtype` (complex64 -> float32)."""
    return torch.tensor(0., dtype=resolve_dtype(dtype)).real.dtype
