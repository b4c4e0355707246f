"""
PixelChads Registry - Exceptions

This module defines the error taxonomy for registry operations. Every failure
aborts the triggering operation without mutating state.
"""


class RegistryError(Exception):
    """Base exception for all registry errors."""

    code = "RegistryError"


class Unauthorized(RegistryError):
    """Raised when the caller lacks owner privilege."""

    code = "Unauthorized"


class OperationPaused(RegistryError):
    """Raised when minting is attempted while the registry is paused."""

    code = "OperationPaused"


class SupplyExhausted(RegistryError):
    """Raised when minting is attempted at the supply cap."""

    code = "SupplyExhausted"


class TokenNotFound(RegistryError):
    """Raised when a token id has not been minted."""

    code = "TokenNotFound"


class AlreadyLocked(RegistryError):
    """Raised on a second write to a token URI."""

    code = "AlreadyLocked"


class TransferFailed(RegistryError):
    """Raised when a payout could not be delivered."""

    code = "TransferFailed"


class InvalidAddress(RegistryError):
    """Raised when an address is malformed or not allowed for the operation."""

    code = "InvalidAddress"


class NotTokenHolder(RegistryError):
    """Raised when a token transfer is attempted by someone other than its holder."""

    code = "NotTokenHolder"


class RegistryNotDeployed(RegistryError):
    """Raised when no persisted registry exists for a data directory."""

    code = "RegistryNotDeployed"


class RegistryExistsError(RegistryError):
    """Raised when deploying over an existing persisted registry."""

    code = "RegistryExistsError"
