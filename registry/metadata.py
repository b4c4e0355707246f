"""
PixelChads Registry - Token Metadata Store

Per-token metadata URIs with a one-time write lock. Once a token's URI has
been written it is frozen permanently; there is no correction path.
"""

import logging
from typing import Dict

from .exceptions import AlreadyLocked, TokenNotFound
from .schema import LockedURI, RegistryState


class MetadataStore:
    """Token URI storage.

    Tokens start out with no entry (unset) and display
    ``base_uri + token_id``. The first explicit write stores a
    ``LockedURI``; every later write fails with ``AlreadyLocked``.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def _require_minted(self, state: RegistryState, token_id: int) -> None:
        if not state.token_exists(token_id):
            raise TokenNotFound(f"Token does not exist: {token_id}")

    def set_uri(self, state: RegistryState, token_id: int, uri: str) -> LockedURI:
        """Write and lock a token URI."""
        self._require_minted(state, token_id)

        existing = state.token_uris.get(token_id)
        if existing is not None:
            raise AlreadyLocked(
                f"Token URI already updated for token {token_id}: {existing.uri}"
            )

        locked = LockedURI(uri=uri)
        state.token_uris[token_id] = locked
        self.logger.debug(f"Locked URI for token {token_id}")
        return locked

    def get_uri(self, state: RegistryState, token_id: int) -> str:
        """Return the locked URI, or the base URI default when unset."""
        self._require_minted(state, token_id)

        locked = state.token_uris.get(token_id)
        if locked is not None:
            return locked.uri

        return self.default_uri(state, token_id)

    def default_uri(self, state: RegistryState, token_id: int) -> str:
        return f"{state.base_uri}{token_id}"

    def is_locked(self, state: RegistryState, token_id: int) -> bool:
        self._require_minted(state, token_id)
        return token_id in state.token_uris

    def locked_uris(self, state: RegistryState) -> Dict[int, str]:
        return {token_id: entry.uri for token_id, entry in sorted(state.token_uris.items())}
