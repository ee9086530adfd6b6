class DimensionMismatchError(ValueError):
    """Input matrix is not square, or its size disagrees with the declared dimensions."""


class SubsystemIndexError(IndexError):
    """A subsystem index lies outside ``[1, number of subsystems]``."""


class DomainError(ValueError):
    """An argument lies outside the mathematical domain of the operation."""
