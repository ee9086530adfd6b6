"""
TorchQI - A PyTorch-based library of numerical primitives for quantum information
"""

__version__ = "0.1.0"

from .config import ATOL, COMPLEX_DTYPE, REAL_DTYPE, real_dtype, resolve_dtype
from .errors import DimensionMismatchError, DomainError, SubsystemIndexError
from .logging import get_logger, set_log_level
from .utils import (
    base_matrices,
    bra,
    ket,
    ketbra,
    mixed_radix_to_number,
    number_to_mixed_radix,
    proj,
    res,
    unres,
)
from .ptranspose import partial_transpose
from .ptrace import ptrace
from .reshuffle import permute_systems, reshuffle
from .states import DensityMatrix, max_entangled, max_mixed, werner_state
from .channels import (
    AbstractQuantumOperation,
    DynamicalMatrix,
    IdentityChannel,
    KrausOperators,
    POVMMeasurement,
    PostSelectionMeasurement,
    Stinespring,
    SuperOperator,
    UnitaryChannel,
    apply_channel,
    compose,
    is_cptni,
    is_cptp,
    is_effect,
    is_identity,
    is_positive,
    is_povm,
    kron,
)
from .noise import (
    amplitude_damping_channel,
    depolarizing_channel,
    pauli_channel,
    phase_damping_channel,
)
from .matrixbases import (
    AbstractMatrixBasisIterator,
    ChannelBasis,
    ChannelBasisIterator,
    HermitianBasis,
    HermitianBasisIterator,
    MatrixBasis,
    channelbasis,
    combine,
    hermitianbasis,
    represent,
)
