"""
PixelChads Registry - Token Ledger

Holder tracking for minted tokens: who holds each token, how many tokens an
address holds, and holder-initiated transfers.
"""

import logging
from typing import List

from .exceptions import InvalidAddress, NotTokenHolder, TokenNotFound
from .schema import RegistryState, is_zero_address, normalize_address


class TokenLedger:
    """Token to holder mapping stored on the registry state."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def _address(self, value: str) -> str:
        try:
            address = normalize_address(value)
        except ValueError as e:
            raise InvalidAddress(str(e)) from e

        if is_zero_address(address):
            raise InvalidAddress("Zero address cannot hold tokens")
        return address

    def record_mint(self, state: RegistryState, token_id: int, to: str) -> str:
        to = self._address(to)
        state.holders[token_id] = to
        return to

    def owner_of(self, state: RegistryState, token_id: int) -> str:
        holder = state.holders.get(token_id)
        if holder is None:
            raise TokenNotFound(f"Token does not exist: {token_id}")
        return holder

    def balance_of(self, state: RegistryState, holder: str) -> int:
        return len(state.tokens_of(self._address(holder)))

    def tokens_of(self, state: RegistryState, holder: str) -> List[int]:
        return state.tokens_of(self._address(holder))

    def transfer(self, state: RegistryState, token_id: int, to: str, caller: str) -> str:
        """Move a token to a new holder; only the current holder may do this."""
        current = self.owner_of(state, token_id)
        to = self._address(to)

        if not isinstance(caller, str) or caller.lower() != current:
            raise NotTokenHolder(f"Caller {caller} does not hold token {token_id}")

        state.holders[token_id] = to
        return current
