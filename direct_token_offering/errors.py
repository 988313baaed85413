"""Exception hierarchy shared by the offering encoders and deploy tooling."""
from __future__ import annotations


class DirectTokenOfferingError(RuntimeError):
    """Base class for every failure raised by this package."""


class ConfigurationError(DirectTokenOfferingError):
    """Raised when a required setting is missing or malformed."""


class ArtifactMissing(DirectTokenOfferingError):
    """Raised when the compiled contract bytecode cannot be loaded."""


class EncodingError(DirectTokenOfferingError):
    """Raised when a value does not fit the cell field it is written to."""


class CapacityExceeded(EncodingError):
    """Raised when a cell would exceed its bit or reference budget."""


class NetworkError(DirectTokenOfferingError):
    """Raised when the ledger endpoint cannot be resolved or a call fails."""


class StackUnderflow(DirectTokenOfferingError):
    """Raised when a get-method result holds fewer values than requested."""


class TypeMismatch(DirectTokenOfferingError):
    """Raised when a get-method stack entry has an unexpected tag."""


__all__ = [
    "ArtifactMissing",
    "CapacityExceeded",
    "ConfigurationError",
    "DirectTokenOfferingError",
    "EncodingError",
    "NetworkError",
    "StackUnderflow",
    "TypeMismatch",
]
