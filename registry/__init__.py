"""
PixelChads Registry

Issuance registry for a fixed-supply digital collectible collection:
- Sequential minting up to a supply cap, gated by an owner pause switch
- One-time, permanently locked token metadata URIs
- Basis-points royalty quotes for a single payment receiver
- Treasury balance with owner withdrawal
- JSON persistence of the registry state

Dependencies:
- pydantic: state models and validation
"""

from .events import EventType, RegistryEvent
from .exceptions import (
    RegistryError,
    Unauthorized,
    OperationPaused,
    SupplyExhausted,
    TokenNotFound,
    AlreadyLocked,
    TransferFailed,
    InvalidAddress,
    NotTokenHolder,
    RegistryNotDeployed,
    RegistryExistsError,
)
from .manager import RegistryManager
from .royalty import RoyaltyInfo
from .schema import (
    BASIS_POINTS_DENOMINATOR,
    MAX_SUPPLY,
    ROYALTY_BASIS_POINTS,
    ZERO_ADDRESS,
    LockedURI,
    RegistryState,
)
from .treasury import JournalPayoutGateway, LedgerPayoutGateway, PayoutGateway

__version__ = "1.0.0"

__all__ = [
    "RegistryManager",
    "RegistryState",
    "LockedURI",
    "RoyaltyInfo",
    "EventType",
    "RegistryEvent",
    "PayoutGateway",
    "LedgerPayoutGateway",
    "JournalPayoutGateway",
    "RegistryError",
    "Unauthorized",
    "OperationPaused",
    "SupplyExhausted",
    "TokenNotFound",
    "AlreadyLocked",
    "TransferFailed",
    "InvalidAddress",
    "NotTokenHolder",
    "RegistryNotDeployed",
    "RegistryExistsError",
    "MAX_SUPPLY",
    "ROYALTY_BASIS_POINTS",
    "BASIS_POINTS_DENOMINATOR",
    "ZERO_ADDRESS",
]
