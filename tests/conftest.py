"""
Pytest configuration and fixtures for PixelChads registry tests.
"""

import tempfile
import threading

import pytest

from registry.manager import RegistryManager
from registry.storage import RegistryStorage
from registry.treasury import LedgerPayoutGateway


OWNER = "0x" + "a1" * 20
ALICE = "0x" + "b2" * 20
BOB = "0x" + "c3" * 20
CAROL = "0x" + "d4" * 20

CONTRACT_URI = "https://pixelchads.com/"
BASE_URI = "https://pixelchads.com/tokens/"


@pytest.fixture
def addresses():
    """Well-known test addresses."""
    return {"owner": OWNER, "alice": ALICE, "bob": BOB, "carol": CAROL}


@pytest.fixture
def temp_storage_dir():
    """Create temporary storage directory."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def gateway():
    """In-process payout ledger."""
    return LedgerPayoutGateway()


@pytest.fixture
def registry(gateway):
    """In-memory registry deployed by OWNER."""
    return RegistryManager.deploy(
        owner=OWNER,
        contract_uri=CONTRACT_URI,
        base_uri=BASE_URI,
        gateway=gateway
    )


@pytest.fixture
def persistent_registry(temp_storage_dir, gateway):
    """Registry persisted to a temporary directory."""
    return RegistryManager.deploy(
        owner=OWNER,
        contract_uri=CONTRACT_URI,
        base_uri=BASE_URI,
        storage_dir=temp_storage_dir,
        gateway=gateway
    )


@pytest.fixture
def registry_storage(temp_storage_dir):
    """Create registry storage for testing."""
    return RegistryStorage(storage_dir=temp_storage_dir)


@pytest.fixture
def minted_registry(registry):
    """Registry with three tokens minted by ALICE."""
    for _ in range(3):
        registry.mint(ALICE)
    return registry


class ThreadSafeCounter:
    """Thread-safe counter for testing."""

    def __init__(self, initial_value: int = 0):
        self._value = initial_value
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def get_value(self) -> int:
        with self._lock:
            return self._value


@pytest.fixture
def thread_counter():
    """Create thread-safe counter for testing."""
    return ThreadSafeCounter()


def pytest_collection_modifyitems(config, items):
    """Add markers based on test location and name."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        if "concurrent" in item.name or "thread" in item.name:
            item.add_marker(pytest.mark.concurrency)
