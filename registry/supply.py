"""
PixelChads Registry - Supply Counter

Monotonic token id allocation bounded by the collection's maximum supply.
"""

import logging
from typing import Any, Dict

from .exceptions import SupplyExhausted
from .schema import RegistryState


class SupplyCounter:
    """Sequential id allocator.

    Ids start at 0 and are handed out in strictly increasing order. The
    counter only runs inside the registry write transaction, so two callers
    can never observe or consume the same id.
    """

    def __init__(self, warning_threshold: float = 0.9):
        """
        Initialize supply counter.

        Args:
            warning_threshold: Supply utilization threshold for warnings (0.0-1.0)
        """
        self.warning_threshold = warning_threshold
        self.logger = logging.getLogger(__name__)

    def next_id(self, state: RegistryState) -> int:
        """Return the id the next mint will receive, without allocating it."""
        return state.total_minted

    def remaining(self, state: RegistryState) -> int:
        return state.max_supply - state.total_minted

    def allocate(self, state: RegistryState) -> int:
        """Consume and return the next id."""
        if state.total_minted >= state.max_supply:
            raise SupplyExhausted(f"Max supply reached ({state.max_supply})")

        token_id = state.total_minted
        state.total_minted += 1

        utilization = state.total_minted / state.max_supply
        if utilization >= self.warning_threshold:
            self.logger.warning(
                f"Supply utilization at {utilization * 100:.1f}%, "
                f"{self.remaining(state)} tokens remaining"
            )

        return token_id

    def utilization(self, state: RegistryState) -> Dict[str, Any]:
        """Summarize supply usage."""
        percent = (state.total_minted / state.max_supply) * 100
        remaining = self.remaining(state)

        if remaining <= 0:
            band = "exhausted"
        elif percent >= 90:
            band = "high"
        elif percent >= 50:
            band = "medium"
        else:
            band = "low"

        return {
            'max_supply': state.max_supply,
            'total_minted': state.total_minted,
            'remaining_supply': remaining,
            'utilization_percent': round(percent, 2),
            'utilization_band': band,
        }
