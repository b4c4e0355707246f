"""
PixelChads Registry - Pause Switch

Two-state gate that blocks minting while paused.
"""

import logging
from enum import Enum

from .exceptions import OperationPaused
from .schema import RegistryState


class PauseState(str, Enum):
    """Pause switch states."""
    ACTIVE = "active"
    PAUSED = "paused"


class PauseSwitch:
    """Active/paused gate stored on the registry state."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def state_of(self, state: RegistryState) -> PauseState:
        return PauseState.PAUSED if state.paused else PauseState.ACTIVE

    def pause(self, state: RegistryState) -> bool:
        """Move to PAUSED. Returns False if the switch was already paused."""
        if state.paused:
            self.logger.debug("Pause requested while already paused")
            return False
        state.paused = True
        return True

    def unpause(self, state: RegistryState) -> bool:
        """Move to ACTIVE. Returns False if the switch was already active."""
        if not state.paused:
            self.logger.debug("Unpause requested while already active")
            return False
        state.paused = False
        return True

    def require_active(self, state: RegistryState) -> None:
        if state.paused:
            raise OperationPaused("Pausable: paused")
