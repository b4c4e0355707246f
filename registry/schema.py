"""
PixelChads Registry - Schema Models

This module defines the Pydantic models for the registry state aggregate,
per-token metadata locks and address validation.
"""

import re
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


ZERO_ADDRESS = "0x" + "0" * 40

MAX_SUPPLY = 500
ROYALTY_BASIS_POINTS = 100
BASIS_POINTS_DENOMINATOR = 10000

SCHEMA_VERSION = "1.0.0"

_ADDRESS_RE = re.compile(r'^0x[a-fA-F0-9]{40}$')


def normalize_address(value: str) -> str:
    """Validate an address and return its lower-case form."""
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise ValueError(f"Address must be 0x followed by 40 hex characters: {value!r}")
    return value.lower()


def is_zero_address(value: str) -> bool:
    return value.lower() == ZERO_ADDRESS


class LockedURI(BaseModel):
    """A token URI that has been written and can never change again."""

    model_config = ConfigDict(frozen=True)

    uri: str = Field(..., description="Token metadata URI")
    locked_at: datetime = Field(default_factory=datetime.utcnow)


class RegistryMetadata(BaseModel):
    """Registry metadata model."""

    version: str = Field(default=SCHEMA_VERSION, description="Registry schema version")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    name: str = Field(default="PixelChads")
    symbol: str = Field(default="CHAD")

    def update_timestamp(self) -> None:
        """Update the last modified timestamp."""
        self.updated_at = datetime.utcnow()


class RegistryState(BaseModel):
    """Complete registry state.

    A token id without an entry in ``token_uris`` has an unset URI; an entry
    is a ``LockedURI`` and is final.
    """

    owner: str = Field(..., description="Administrative owner address")
    payment_receiver: str = Field(..., description="Royalty and payment receiver address")
    contract_uri: str = Field(..., description="Collection-level metadata URI")
    base_uri: str = Field(..., description="Prefix for default token URIs")
    max_supply: int = Field(default=MAX_SUPPLY, gt=0)
    royalty_basis_points: int = Field(default=ROYALTY_BASIS_POINTS, ge=0, le=BASIS_POINTS_DENOMINATOR)
    total_minted: int = Field(default=0, ge=0)
    paused: bool = Field(default=False)
    balance: int = Field(default=0, ge=0, description="Treasury balance")
    holders: Dict[int, str] = Field(default_factory=dict, description="Token id to holder address")
    token_uris: Dict[int, LockedURI] = Field(default_factory=dict)
    metadata: RegistryMetadata = Field(default_factory=RegistryMetadata)

    @field_validator('owner', 'payment_receiver')
    @classmethod
    def validate_address(cls, v):
        """Validate address format."""
        return normalize_address(v)

    @model_validator(mode='after')
    def validate_supply(self):
        """Validate supply invariants."""
        if self.total_minted > self.max_supply:
            raise ValueError('Total minted cannot exceed maximum supply')

        if len(self.holders) != self.total_minted:
            raise ValueError('Holder table does not match total minted')

        for token_id in self.token_uris:
            if not 0 <= token_id < self.total_minted:
                raise ValueError(f'URI recorded for unminted token {token_id}')

        return self

    def token_exists(self, token_id: int) -> bool:
        return 0 <= token_id < self.total_minted

    def tokens_of(self, holder: str) -> List[int]:
        """List token ids held by an address, in id order."""
        holder = holder.lower()
        return sorted(t for t, h in self.holders.items() if h == holder)

    def get_locked_uri(self, token_id: int) -> Optional[LockedURI]:
        return self.token_uris.get(token_id)
