"""
PixelChads Registry - Access Control

Single-owner authorization used by every administrative operation, plus the
standard ownership transfer and renouncement transitions.
"""

import inspect
import logging
from functools import wraps

from .exceptions import InvalidAddress, Unauthorized
from .schema import RegistryState, ZERO_ADDRESS, is_zero_address, normalize_address


class AccessGuard:
    """Owner check and ownership transitions."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def is_owner(self, state: RegistryState, caller: str) -> bool:
        if not isinstance(caller, str):
            return False
        return caller.lower() == state.owner and not is_zero_address(caller)

    def require_owner(self, state: RegistryState, caller: str) -> None:
        """Raise Unauthorized unless caller is the registry owner."""
        if not self.is_owner(state, caller):
            self.logger.warning(f"Rejected owner-only call from {caller}")
            raise Unauthorized(f"Caller {caller} is not the owner")

    def transfer_ownership(self, state: RegistryState, new_owner: str) -> str:
        """Move ownership to a new address and return the previous owner."""
        try:
            new_owner = normalize_address(new_owner)
        except ValueError as e:
            raise InvalidAddress(str(e)) from e

        if is_zero_address(new_owner):
            raise InvalidAddress("New owner is the zero address")

        previous = state.owner
        state.owner = new_owner
        return previous

    def renounce_ownership(self, state: RegistryState) -> str:
        """Leave the registry without an owner; owner-only calls become impossible."""
        previous = state.owner
        state.owner = ZERO_ADDRESS
        return previous


def owner_only(func):
    """Decorator running the owner check before a registry operation.

    The decorated method must accept a ``caller`` argument. The check and the
    operation run in the same write transaction.
    """
    signature = inspect.signature(func)
    if 'caller' not in signature.parameters:
        raise TypeError(f"{func.__name__} has no 'caller' parameter")

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        bound = signature.bind(self, *args, **kwargs)
        caller = bound.arguments['caller']

        with self._transaction() as state:
            self.access.require_owner(state, caller)
            return func(self, *args, **kwargs)

    return wrapper
