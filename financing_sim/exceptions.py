"""Exception hierarchy for the financing simulator.

Input problems subclass ``ValueError`` so callers that only know about the
built-in exception keep working.
"""


class FinancingSimError(Exception):
    """Base exception for all financing simulator errors."""


class InvalidInputError(FinancingSimError, ValueError):
    """Raised when simulation inputs are out of range or malformed."""


class InvalidRateError(InvalidInputError):
    """Raised when a rate is at or below -100 %."""


class InvalidPrepaymentError(InvalidInputError):
    """Raised when a prepayment event cannot be applied at all."""


class SimulationNotFoundError(FinancingSimError, LookupError):
    """Raised when a saved simulation id does not exist."""


class StorageError(FinancingSimError):
    """Raised when the persisted simulations cannot be decoded."""
