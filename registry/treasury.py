"""
PixelChads Registry - Treasury

Balance accounting for value received by the registry and owner withdrawal
through a payout gateway.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Union

from .exceptions import TransferFailed
from .schema import RegistryState, normalize_address


class PayoutGateway(ABC):
    """External value transfer used for withdrawals."""

    @abstractmethod
    def send(self, to: str, amount: int) -> None:
        """Deliver ``amount`` to ``to`` or raise."""


class LedgerPayoutGateway(PayoutGateway):
    """In-process ledger of external account balances."""

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._balances: Dict[str, int] = {
            normalize_address(address): amount
            for address, amount in (balances or {}).items()
        }
        self._lock = Lock()

    def send(self, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Payout amount cannot be negative: {amount}")

        to = normalize_address(to)
        with self._lock:
            self._balances[to] = self._balances.get(to, 0) + amount

    def balance_of(self, address: str) -> int:
        with self._lock:
            return self._balances.get(address.lower(), 0)

    def balances(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._balances)


class JournalPayoutGateway(PayoutGateway):
    """Payout gateway appending each transfer to a JSON-lines journal.

    Used by the command line tool, where the registry lives only for one
    invocation and payouts must outlive it.
    """

    def __init__(self, journal_path: Union[str, Path]):
        self.journal_path = Path(journal_path)
        self.journal_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    def send(self, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Payout amount cannot be negative: {amount}")

        record = {
            'to': normalize_address(to),
            'amount': amount,
            'timestamp': datetime.utcnow().isoformat(),
        }
        with self._lock:
            with open(self.journal_path, 'a') as f:
                f.write(json.dumps(record) + "\n")
                f.flush()
                os.fsync(f.fileno())

    def entries(self) -> List[Dict[str, Any]]:
        if not self.journal_path.exists():
            return []
        with open(self.journal_path, 'r') as f:
            return [json.loads(line) for line in f if line.strip()]

    def total_paid(self, address: str) -> int:
        address = address.lower()
        return sum(e['amount'] for e in self.entries() if e['to'] == address)


class Treasury:
    """Registry balance and withdrawal."""

    def __init__(self, gateway: PayoutGateway):
        self.gateway = gateway
        self.logger = logging.getLogger(__name__)

    def deposit(self, state: RegistryState, amount: int) -> int:
        """Credit the registry balance and return the new balance."""
        if amount <= 0:
            raise ValueError(f"Deposit amount must be positive: {amount}")

        state.balance += amount
        return state.balance

    def withdraw(self, state: RegistryState, checkpoint: Optional[Callable[[], None]] = None) -> int:
        """
        Pay the full balance out to the owner.

        The balance is captured and zeroed before the external transfer, which
        is always the final step. A payout that re-enters the registry sees a
        zero balance. If the transfer fails, TransferFailed is raised and the
        caller's transaction restores the balance.

        Args:
            state: Registry state
            checkpoint: Called after the balance is zeroed and before the
                payout, to make the zeroed balance durable

        Returns:
            The amount transferred
        """
        amount = state.balance
        recipient = state.owner
        state.balance = 0

        if checkpoint is not None:
            checkpoint()

        try:
            self.gateway.send(recipient, amount)
        except Exception as e:
            self.logger.error(f"Payout of {amount} to {recipient} failed: {e}")
            raise TransferFailed(f"Transfer of {amount} to {recipient} failed: {e}") from e

        self.logger.info(f"Withdrew {amount} to {recipient}")
        return amount
