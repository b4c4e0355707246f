"""
PixelChads Registry - Registry Manager

This module composes access control, supply allocation, the pause switch,
metadata storage, royalties and the treasury into the public registry
operations. Every mutation runs as one serialised, all-or-nothing
transaction that is persisted before its events are published.
"""

import logging
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .access import AccessGuard, owner_only
from .concurrency import ReadWriteLock
from .events import EventCallback, EventLog, EventType, RegistryEvent
from .exceptions import InvalidAddress, RegistryExistsError, RegistryNotDeployed
from .metadata import MetadataStore
from .ownership import TokenLedger
from .pause import PauseSwitch
from .royalty import RoyaltyInfo, RoyaltyPolicy
from .schema import (
    MAX_SUPPLY, ROYALTY_BASIS_POINTS, ZERO_ADDRESS,
    RegistryMetadata, RegistryState, normalize_address
)
from .storage import RegistryStorage, StorageError
from .supply import SupplyCounter
from .treasury import LedgerPayoutGateway, PayoutGateway, Treasury


class RegistryManager:
    """Collection registry with owner-controlled administration."""

    def __init__(
        self,
        state: RegistryState,
        storage: Optional[RegistryStorage] = None,
        gateway: Optional[PayoutGateway] = None,
        lock_timeout: Optional[float] = 30.0
    ):
        self.logger = logging.getLogger(__name__)
        self.storage = storage
        self.gateway = gateway or LedgerPayoutGateway()

        self.access = AccessGuard()
        self.supply = SupplyCounter()
        self.pause_switch = PauseSwitch()
        self.metadata = MetadataStore()
        self.royalty = RoyaltyPolicy()
        self.treasury = Treasury(self.gateway)
        self.ledger = TokenLedger()
        self.event_log = EventLog()

        self._state = state
        self._lock = ReadWriteLock("registry_state", timeout=lock_timeout)
        self._depth = 0
        self._checkpointed = False
        self._paid_out = 0
        self._pending_events: List[RegistryEvent] = []

    @classmethod
    def deploy(
        cls,
        owner: str,
        contract_uri: str,
        base_uri: str,
        storage_dir: Optional[Union[str, Path]] = None,
        max_supply: int = MAX_SUPPLY,
        royalty_basis_points: int = ROYALTY_BASIS_POINTS,
        gateway: Optional[PayoutGateway] = None,
        overwrite: bool = False,
        name: str = "PixelChads",
        symbol: str = "CHAD",
        backup_count: int = 5,
        lock_timeout: float = 30.0
    ) -> "RegistryManager":
        """
        Create a new registry owned by the deployer.

        Args:
            owner: Deployer address; also the initial payment receiver
            contract_uri: Collection-level metadata URI
            base_uri: Prefix for default token URIs
            storage_dir: Directory to persist state in (in-memory when None)
            max_supply: Maximum number of tokens
            royalty_basis_points: Royalty rate in 1/10000 units
            gateway: Payout gateway for withdrawals
            overwrite: Replace an existing persisted registry
            backup_count: State file backups to keep
            lock_timeout: Seconds to wait for the state and file locks

        Returns:
            The deployed RegistryManager
        """
        try:
            owner = normalize_address(owner)
        except ValueError as e:
            raise InvalidAddress(str(e)) from e

        if owner == ZERO_ADDRESS:
            raise InvalidAddress("Registry cannot be deployed by the zero address")

        state = RegistryState(
            owner=owner,
            payment_receiver=owner,
            contract_uri=contract_uri,
            base_uri=base_uri,
            max_supply=max_supply,
            royalty_basis_points=royalty_basis_points,
            metadata=RegistryMetadata(name=name, symbol=symbol)
        )

        storage = None
        if storage_dir is not None:
            storage = RegistryStorage(storage_dir, backup_count=backup_count, lock_timeout=lock_timeout)
            with storage.locked():
                if storage.exists() and not overwrite:
                    raise RegistryExistsError(f"A registry already exists in {storage.storage_dir}")
                storage.save_state(state)

        manager = cls(state, storage=storage, gateway=gateway, lock_timeout=lock_timeout)
        manager.logger.info(f"Deployed registry owned by {owner} (max supply {max_supply})")
        return manager

    @classmethod
    def load(
        cls,
        storage_dir: Union[str, Path],
        gateway: Optional[PayoutGateway] = None,
        backup_count: int = 5,
        lock_timeout: float = 30.0
    ) -> "RegistryManager":
        """Open a previously deployed registry."""
        storage = RegistryStorage(storage_dir, backup_count=backup_count, lock_timeout=lock_timeout)
        state = storage.load_state()
        if state is None:
            raise RegistryNotDeployed(f"No registry found in {storage_dir}")
        return cls(state, storage=storage, gateway=gateway, lock_timeout=lock_timeout)

    # Transactions

    @contextmanager
    def _transaction(self):
        """Run a mutation atomically.

        Nested transactions on the same thread join the outer one; each level
        restores its own starting state on failure. Only the outermost level
        persists and publishes events.

        With storage, the outermost level holds the state file lock from a
        fresh load of the persisted state until its save, so registries in
        other processes sharing the directory see each mutation whole.
        """
        with self._lock.write_lock(), ExitStack() as file_lock:
            if self._depth == 0 and self.storage is not None:
                # Held until the commit so other processes cannot interleave
                file_lock.enter_context(self.storage.locked())
                self._refresh()

            snapshot = self._state.model_copy(deep=True)
            mark = len(self._pending_events)
            paid_before = self._paid_out
            self._depth += 1

            try:
                yield self._state

                if self._depth == 1:
                    self._state.metadata.update_timestamp()
                    if self.storage is not None:
                        self.storage.save_state(self._state)
            except BaseException:
                self._restore(snapshot)
                # Funds already sent never return to the balance
                paid = self._paid_out - paid_before
                if paid:
                    self._state.balance = max(0, self._state.balance - paid)
                del self._pending_events[mark:]
                if self._depth == 1 and self._checkpointed:
                    self._persist_rollback()
                raise
            finally:
                if self._depth == 1:
                    self._checkpointed = False
                    self._paid_out = 0
                self._depth -= 1

            events: List[RegistryEvent] = []
            if self._depth == 0:
                events, self._pending_events = self._pending_events, []

        if events:
            self.event_log.publish(events)

    @contextmanager
    def _read(self):
        with self._lock.read_lock():
            yield self._state

    def _refresh(self) -> None:
        """Reload the persisted state, which another process may have changed."""
        state = self.storage.load_state()
        if state is None:
            raise RegistryNotDeployed(f"No registry found in {self.storage.storage_dir}")
        self._restore(state)

    def _checkpoint(self) -> None:
        """Persist the in-flight state before an external side effect."""
        if self.storage is not None:
            self.storage.save_state(self._state)
            self._checkpointed = True

    def _persist_rollback(self) -> None:
        try:
            self.storage.save_state(self._state)
        except StorageError as e:
            self.logger.critical(f"Failed to persist rolled back state: {e}")

    def _restore(self, snapshot: RegistryState) -> None:
        # In place, so outer transactions keep a valid reference
        for field_name in type(self._state).model_fields:
            setattr(self._state, field_name, getattr(snapshot, field_name))

    def _emit(self, event_type: EventType, **args) -> None:
        self._pending_events.append(RegistryEvent(event_type=event_type, args=args))

    # Issuance

    def mint(self, caller: str) -> int:
        """Mint the next token to the caller. Open to any address."""
        with self._transaction() as state:
            self.pause_switch.require_active(state)
            token_id = self.supply.allocate(state)
            holder = self.ledger.record_mint(state, token_id, caller)
            self._emit(EventType.TOKEN_MINTED, to=holder, token_id=token_id)

        self.logger.debug(f"Minted token {token_id} to {holder}")
        return token_id

    def next_token_id(self) -> int:
        with self._read() as state:
            return self.supply.next_id(state)

    # Metadata

    @owner_only
    def update_token_uri(self, token_id: int, uri: str, caller: str) -> None:
        """Write a token's URI once; the token is locked afterwards."""
        with self._transaction() as state:
            locked = self.metadata.set_uri(state, token_id, uri)
            self._emit(EventType.TOKEN_UPDATED, token_id=token_id, uri=locked.uri)

    def token_uri(self, token_id: int) -> str:
        with self._read() as state:
            return self.metadata.get_uri(state, token_id)

    def is_uri_locked(self, token_id: int) -> bool:
        with self._read() as state:
            return self.metadata.is_locked(state, token_id)

    # Pause switch

    @owner_only
    def pause(self, caller: str) -> bool:
        with self._transaction() as state:
            changed = self.pause_switch.pause(state)
            if changed:
                self._emit(EventType.PAUSED, account=caller.lower())
        return changed

    @owner_only
    def unpause(self, caller: str) -> bool:
        with self._transaction() as state:
            changed = self.pause_switch.unpause(state)
            if changed:
                self._emit(EventType.UNPAUSED, account=caller.lower())
        return changed

    # Royalties

    @owner_only
    def update_payment_receiver(self, new_receiver: str, caller: str) -> None:
        with self._transaction() as state:
            previous = self.royalty.update_receiver(state, new_receiver)
            self._emit(
                EventType.PAYMENT_RECEIVER_UPDATED,
                previous_receiver=previous,
                new_receiver=state.payment_receiver
            )

    def royalty_info(self, token_id: int, sale_price: int) -> RoyaltyInfo:
        with self._read() as state:
            return self.royalty.royalty_info(state, token_id, sale_price)

    # Collection metadata

    @owner_only
    def update_contract_uri(self, new_uri: str, caller: str) -> None:
        with self._transaction() as state:
            state.contract_uri = new_uri
            self._emit(EventType.CONTRACT_URI_UPDATED, contract_uri=new_uri)

    # Treasury

    def deposit(self, amount: int, sender: str) -> int:
        """Credit value received from ``sender``; returns the new balance."""
        try:
            sender = normalize_address(sender)
        except ValueError as e:
            raise InvalidAddress(str(e)) from e

        with self._transaction() as state:
            balance = self.treasury.deposit(state, amount)
            self._emit(EventType.DEPOSITED, sender=sender, amount=amount)
        return balance

    @owner_only
    def withdraw(self, caller: str) -> int:
        """Send the whole balance to the owner and return the amount sent."""
        with self._transaction() as state:
            recipient = state.owner
            amount = self.treasury.withdraw(state, checkpoint=self._checkpoint)
            self._paid_out += amount
            self._emit(EventType.WITHDRAWN, to=recipient, amount=amount)
        return amount

    # Ownership

    @owner_only
    def transfer_ownership(self, new_owner: str, caller: str) -> None:
        with self._transaction() as state:
            previous = self.access.transfer_ownership(state, new_owner)
            self._emit(EventType.OWNERSHIP_TRANSFERRED, previous_owner=previous, new_owner=state.owner)

    @owner_only
    def renounce_ownership(self, caller: str) -> None:
        with self._transaction() as state:
            previous = self.access.renounce_ownership(state)
            self._emit(EventType.OWNERSHIP_TRANSFERRED, previous_owner=previous, new_owner=state.owner)

    # Token holders

    def transfer_token(self, token_id: int, to: str, caller: str) -> None:
        with self._transaction() as state:
            previous = self.ledger.transfer(state, token_id, to, caller)
            self._emit(EventType.TRANSFER, from_address=previous, to=state.holders[token_id], token_id=token_id)

    def owner_of(self, token_id: int) -> str:
        with self._read() as state:
            return self.ledger.owner_of(state, token_id)

    def balance_of(self, holder: str) -> int:
        with self._read() as state:
            return self.ledger.balance_of(state, holder)

    def tokens_of(self, holder: str) -> List[int]:
        with self._read() as state:
            return self.ledger.tokens_of(state, holder)

    # Queries

    @property
    def owner(self) -> str:
        with self._read() as state:
            return state.owner

    @property
    def payment_receiver(self) -> str:
        with self._read() as state:
            return state.payment_receiver

    @property
    def contract_uri(self) -> str:
        with self._read() as state:
            return state.contract_uri

    @property
    def base_uri(self) -> str:
        with self._read() as state:
            return state.base_uri

    @property
    def paused(self) -> bool:
        with self._read() as state:
            return state.paused

    @property
    def total_minted(self) -> int:
        with self._read() as state:
            return state.total_minted

    @property
    def max_supply(self) -> int:
        with self._read() as state:
            return state.max_supply

    @property
    def balance(self) -> int:
        with self._read() as state:
            return state.balance

    def snapshot(self) -> RegistryState:
        """Return a detached copy of the committed state."""
        with self._read() as state:
            return state.model_copy(deep=True)

    def status(self) -> Dict[str, Any]:
        """Summarize the registry for display."""
        with self._read() as state:
            info = {
                'name': state.metadata.name,
                'symbol': state.metadata.symbol,
                'owner': state.owner,
                'payment_receiver': state.payment_receiver,
                'contract_uri': state.contract_uri,
                'base_uri': state.base_uri,
                'pause_state': self.pause_switch.state_of(state).value,
                'royalty_basis_points': state.royalty_basis_points,
                'balance': state.balance,
                'locked_uris': len(state.token_uris),
                'updated_at': state.metadata.updated_at,
            }
            info.update(self.supply.utilization(state))
            return info

    # Events

    def subscribe(self, callback: EventCallback) -> None:
        self.event_log.subscribe(callback)

    def events(self, event_type: Optional[EventType] = None) -> List[RegistryEvent]:
        return self.event_log.history(event_type)

    def get_lock_metrics(self) -> Dict[str, Any]:
        return self._lock.get_metrics()
