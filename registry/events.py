"""
PixelChads Registry - Domain Events

Typed events emitted by registry operations and an in-process event log that
fans them out to subscriber callbacks.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from threading import RLock
from typing import Any, Callable, Dict, List, Optional


class EventType(str, Enum):
    """Registry event types."""
    TOKEN_MINTED = "TokenMinted"
    TOKEN_UPDATED = "TokenUpdated"
    TRANSFER = "Transfer"
    PAUSED = "Paused"
    UNPAUSED = "Unpaused"
    PAYMENT_RECEIVER_UPDATED = "PaymentReceiverUpdated"
    CONTRACT_URI_UPDATED = "ContractURIUpdated"
    DEPOSITED = "Deposited"
    WITHDRAWN = "Withdrawn"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


@dataclass
class RegistryEvent:
    """A single emitted event."""
    event_type: EventType
    args: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def name(self) -> str:
        return self.event_type.value

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['event_type'] = self.event_type.value
        return data


EventCallback = Callable[[RegistryEvent], None]


class EventLog:
    """Ordered event history with subscriber callbacks."""

    def __init__(self, max_history: Optional[int] = 10000):
        self.max_history = max_history
        self.logger = logging.getLogger(__name__)
        self._events: List[RegistryEvent] = []
        self._callbacks: List[EventCallback] = []
        self._lock = RLock()

    def subscribe(self, callback: EventCallback) -> None:
        """Register a callback invoked for every published event."""
        with self._lock:
            self._callbacks.append(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def publish(self, events: List[RegistryEvent]) -> None:
        """Record committed events and notify subscribers."""
        with self._lock:
            self._events.extend(events)
            if self.max_history and len(self._events) > self.max_history:
                del self._events[:len(self._events) - self.max_history]
            callbacks = list(self._callbacks)

        for event in events:
            self.logger.info(f"{event.name} {event.args}")
            for callback in callbacks:
                try:
                    callback(event)
                except Exception as e:
                    # The operation has already committed
                    self.logger.error(f"Event callback failed for {event.name}: {e}")

    def history(self, event_type: Optional[EventType] = None) -> List[RegistryEvent]:
        """Return recorded events, optionally filtered by type."""
        with self._lock:
            events = list(self._events)

        if event_type:
            events = [e for e in events if e.event_type == event_type]

        return events

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
