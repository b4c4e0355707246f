"""
PixelChads Registry - Royalty Policy

Fixed basis-points royalty paid to a single receiver on secondary sales.
"""

import logging
from typing import NamedTuple

from .exceptions import InvalidAddress
from .schema import BASIS_POINTS_DENOMINATOR, RegistryState, is_zero_address, normalize_address


class RoyaltyInfo(NamedTuple):
    receiver: str
    amount: int


class RoyaltyPolicy:
    """Royalty computation against the registry's payment receiver."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def royalty_info(self, state: RegistryState, token_id: int, sale_price: int) -> RoyaltyInfo:
        """
        Compute the royalty owed on a sale.

        Token existence is not checked so marketplaces can preview royalties
        for any id. The amount is truncated, never rounded up.

        Args:
            state: Registry state
            token_id: Token being sold
            sale_price: Sale price in the smallest currency unit

        Returns:
            RoyaltyInfo with receiver address and royalty amount
        """
        if sale_price < 0:
            raise ValueError(f"Sale price cannot be negative: {sale_price}")

        amount = sale_price * state.royalty_basis_points // BASIS_POINTS_DENOMINATOR
        return RoyaltyInfo(receiver=state.payment_receiver, amount=amount)

    def update_receiver(self, state: RegistryState, new_receiver: str) -> str:
        """Overwrite the payment receiver and return the previous one."""
        try:
            new_receiver = normalize_address(new_receiver)
        except ValueError as e:
            raise InvalidAddress(str(e)) from e

        if is_zero_address(new_receiver):
            self.logger.warning("Payment receiver set to the zero address; royalties will be unrecoverable")

        previous = state.payment_receiver
        state.payment_receiver = new_receiver
        return previous
