"""
Unit tests for the registry manager.
"""

import threading
from unittest.mock import Mock

import pytest

from conftest import ALICE, BASE_URI, BOB, CONTRACT_URI, OWNER
from registry.events import EventType
from registry.exceptions import (
    AlreadyLocked, InvalidAddress, NotTokenHolder, OperationPaused,
    RegistryExistsError, RegistryNotDeployed, SupplyExhausted,
    TokenNotFound, TransferFailed, Unauthorized
)
from registry.manager import RegistryManager
from registry.schema import MAX_SUPPLY, ZERO_ADDRESS
from registry.treasury import LedgerPayoutGateway, PayoutGateway


class TestDeployment:
    """Test registry construction."""

    def test_initial_state(self, registry):
        """Test the deployed registry's initial values."""
        assert registry.owner == OWNER
        assert registry.payment_receiver == OWNER
        assert registry.contract_uri == CONTRACT_URI
        assert registry.base_uri == BASE_URI
        assert registry.max_supply == MAX_SUPPLY == 500
        assert registry.total_minted == 0
        assert registry.next_token_id() == 0
        assert registry.paused is False
        assert registry.balance == 0

    def test_addresses_are_normalized(self):
        """Test mixed-case deployer addresses are stored lower case."""
        registry = RegistryManager.deploy(
            owner="0x" + "AB" * 20,
            contract_uri=CONTRACT_URI,
            base_uri=BASE_URI
        )
        assert registry.owner == "0x" + "ab" * 20

    def test_invalid_owner_rejected(self):
        """Test malformed or zero deployer addresses."""
        with pytest.raises(InvalidAddress):
            RegistryManager.deploy(owner="not-an-address", contract_uri=CONTRACT_URI, base_uri=BASE_URI)

        with pytest.raises(InvalidAddress):
            RegistryManager.deploy(owner=ZERO_ADDRESS, contract_uri=CONTRACT_URI, base_uri=BASE_URI)

    def test_deploy_refuses_existing_registry(self, persistent_registry, temp_storage_dir):
        """Test a second deploy into the same directory."""
        with pytest.raises(RegistryExistsError):
            RegistryManager.deploy(
                owner=OWNER, contract_uri=CONTRACT_URI, base_uri=BASE_URI,
                storage_dir=temp_storage_dir
            )

        replaced = RegistryManager.deploy(
            owner=ALICE, contract_uri=CONTRACT_URI, base_uri=BASE_URI,
            storage_dir=temp_storage_dir, overwrite=True
        )
        assert replaced.owner == ALICE

    def test_load_missing_registry(self, temp_storage_dir):
        """Test loading from an empty directory."""
        with pytest.raises(RegistryNotDeployed):
            RegistryManager.load(temp_storage_dir)


class TestMinting:
    """Test sequential minting and the supply cap."""

    def test_sequential_ids(self, registry):
        """Test N mints produce ids 0..N-1 in order."""
        ids = [registry.mint(ALICE) for _ in range(10)]

        assert ids == list(range(10))
        assert registry.total_minted == 10
        assert registry.next_token_id() == 10

    def test_mint_records_holder_and_event(self, registry):
        """Test the minted token belongs to the caller."""
        expected_id = registry.next_token_id()
        token_id = registry.mint(BOB)

        assert token_id == expected_id
        assert registry.owner_of(token_id) == BOB
        assert registry.balance_of(BOB) == 1

        events = registry.events(EventType.TOKEN_MINTED)
        assert len(events) == 1
        assert events[0].args == {'to': BOB, 'token_id': token_id}

    def test_any_caller_may_mint(self, registry):
        """Test minting is not owner restricted."""
        assert registry.mint(ALICE) == 0
        assert registry.mint(BOB) == 1
        assert registry.mint(OWNER) == 2

    def test_supply_cap(self, registry):
        """Test the 500th mint succeeds and the 501st fails."""
        for _ in range(MAX_SUPPLY - 1):
            registry.mint(ALICE)

        assert registry.mint(ALICE) == MAX_SUPPLY - 1
        assert registry.total_minted == MAX_SUPPLY

        with pytest.raises(SupplyExhausted):
            registry.mint(ALICE)

        assert registry.total_minted == MAX_SUPPLY
        assert len(registry.events(EventType.TOKEN_MINTED)) == MAX_SUPPLY

    def test_mint_to_invalid_address(self, registry):
        """Test a failed mint leaves the counter untouched."""
        with pytest.raises(InvalidAddress):
            registry.mint("bogus")

        assert registry.total_minted == 0
        assert registry.events() == []


class TestPauseSwitch:
    """Test pausing and unpausing."""

    def test_mint_while_paused(self, registry):
        """Test minting is blocked while paused and restored after."""
        registry.mint(ALICE)
        assert registry.pause(caller=OWNER) is True

        with pytest.raises(OperationPaused):
            registry.mint(ALICE)
        assert registry.total_minted == 1

        assert registry.unpause(caller=OWNER) is True
        assert registry.mint(ALICE) == 1

    def test_pause_is_idempotent(self, registry):
        """Test repeated pause calls do not change state or emit events."""
        registry.pause(caller=OWNER)
        assert registry.pause(caller=OWNER) is False
        assert registry.paused is True
        assert len(registry.events(EventType.PAUSED)) == 1

        registry.unpause(caller=OWNER)
        assert registry.unpause(caller=OWNER) is False
        assert registry.paused is False
        assert len(registry.events(EventType.UNPAUSED)) == 1

    def test_pause_owner_only(self, registry):
        """Test non-owners cannot toggle the switch."""
        with pytest.raises(Unauthorized):
            registry.pause(caller=ALICE)
        assert registry.paused is False

        registry.pause(caller=OWNER)
        with pytest.raises(Unauthorized):
            registry.unpause(caller=ALICE)
        assert registry.paused is True


class TestTokenURI:
    """Test one-time token URI updates."""

    def test_default_uri(self, minted_registry):
        """Test unset tokens show base URI plus id."""
        assert minted_registry.token_uri(2) == BASE_URI + "2"
        assert minted_registry.is_uri_locked(2) is False

    def test_update_token_uri(self, minted_registry):
        """Test the first write succeeds and emits TokenUpdated."""
        uri = "https://pixelchads.com/tokens/1.json"
        minted_registry.update_token_uri(1, uri, caller=OWNER)

        assert minted_registry.token_uri(1) == uri
        assert minted_registry.is_uri_locked(1) is True

        events = minted_registry.events(EventType.TOKEN_UPDATED)
        assert [e.args for e in events] == [{'token_id': 1, 'uri': uri}]

    def test_second_update_fails(self, minted_registry):
        """Test the URI is locked after the first write."""
        minted_registry.update_token_uri(0, "X", caller=OWNER)

        with pytest.raises(AlreadyLocked):
            minted_registry.update_token_uri(0, "Y", caller=OWNER)

        assert minted_registry.token_uri(0) == "X"
        assert len(minted_registry.events(EventType.TOKEN_UPDATED)) == 1

    def test_update_unminted_token(self, minted_registry):
        """Test ids at or beyond total minted are rejected."""
        with pytest.raises(TokenNotFound):
            minted_registry.update_token_uri(3, "X", caller=OWNER)

        with pytest.raises(TokenNotFound):
            minted_registry.update_token_uri(123456, "X", caller=OWNER)

        with pytest.raises(TokenNotFound):
            minted_registry.update_token_uri(-1, "X", caller=OWNER)

    def test_update_owner_only(self, minted_registry):
        """Test non-owners cannot set URIs, including the token holder."""
        with pytest.raises(Unauthorized):
            minted_registry.update_token_uri(0, "X", caller=ALICE)

        assert minted_registry.is_uri_locked(0) is False

    def test_token_uri_unminted(self, registry):
        """Test reading the URI of an unminted token."""
        with pytest.raises(TokenNotFound):
            registry.token_uri(0)

    def test_empty_uri_locks(self, minted_registry):
        """Test an empty URI is a valid final value."""
        minted_registry.update_token_uri(0, "", caller=OWNER)

        assert minted_registry.is_uri_locked(0) is True
        assert minted_registry.token_uri(0) == ""
        with pytest.raises(AlreadyLocked):
            minted_registry.update_token_uri(0, "ipfs://later", caller=OWNER)


class TestRoyalties:
    """Test royalty quotes and the payment receiver."""

    def test_royalty_info(self, registry):
        """Test 100 bps of 1000 is 10 to the payment receiver."""
        info = registry.royalty_info(0, 1000)

        assert info.receiver == OWNER
        assert info.amount == 10

    def test_royalty_truncates(self, registry):
        """Test amounts are floored."""
        assert registry.royalty_info(7, 199).amount == 1
        assert registry.royalty_info(7, 99).amount == 0
        assert registry.royalty_info(7, 0).amount == 0

    def test_royalty_for_unminted_token(self, registry):
        """Test quotes do not require the token to exist."""
        assert registry.royalty_info(999999, 10 ** 20).amount == 10 ** 18

    def test_negative_price(self, registry):
        with pytest.raises(ValueError):
            registry.royalty_info(0, -1)

    def test_update_receiver(self, registry):
        """Test receiver changes apply to subsequent quotes."""
        registry.update_payment_receiver(BOB, caller=OWNER)

        assert registry.payment_receiver == BOB
        assert registry.royalty_info(0, 1000).receiver == BOB

        events = registry.events(EventType.PAYMENT_RECEIVER_UPDATED)
        assert events[0].args == {'previous_receiver': OWNER, 'new_receiver': BOB}

    def test_update_receiver_owner_only(self, registry):
        with pytest.raises(Unauthorized):
            registry.update_payment_receiver(BOB, caller=BOB)
        assert registry.payment_receiver == OWNER

    def test_zero_receiver_allowed(self, registry):
        """Test the zero address is accepted as receiver."""
        registry.update_payment_receiver(ZERO_ADDRESS, caller=OWNER)
        assert registry.royalty_info(0, 1000).receiver == ZERO_ADDRESS

    def test_malformed_receiver(self, registry):
        with pytest.raises(InvalidAddress):
            registry.update_payment_receiver("0x1234", caller=OWNER)
        assert registry.payment_receiver == OWNER


class TestContractURI:
    """Test collection URI updates."""

    def test_update_contract_uri(self, registry):
        new_uri = "https://newpixelchads.com/"
        registry.update_contract_uri(new_uri, caller=OWNER)

        assert registry.contract_uri == new_uri
        # Updates are not locked
        registry.update_contract_uri(CONTRACT_URI, caller=OWNER)
        assert registry.contract_uri == CONTRACT_URI

    def test_update_contract_uri_owner_only(self, registry):
        with pytest.raises(Unauthorized):
            registry.update_contract_uri("https://evil.example/", caller=ALICE)
        assert registry.contract_uri == CONTRACT_URI


class TestTreasury:
    """Test deposits and withdrawals."""

    def test_withdraw(self, registry, gateway):
        """Test withdraw empties the balance into the owner's account."""
        registry.deposit(750, sender=ALICE)
        before = gateway.balance_of(OWNER)

        assert registry.withdraw(caller=OWNER) == 750
        assert registry.balance == 0
        assert gateway.balance_of(OWNER) == before + 750

        events = registry.events(EventType.WITHDRAWN)
        assert events[0].args == {'to': OWNER, 'amount': 750}

    def test_second_withdraw_is_zero(self, registry, gateway):
        """Test an immediate second withdraw transfers nothing."""
        registry.deposit(100, sender=ALICE)
        registry.withdraw(caller=OWNER)

        assert registry.withdraw(caller=OWNER) == 0
        assert gateway.balance_of(OWNER) == 100

    def test_withdraw_owner_only(self, registry, gateway):
        registry.deposit(100, sender=ALICE)

        with pytest.raises(Unauthorized):
            registry.withdraw(caller=BOB)

        assert registry.balance == 100
        assert gateway.balance_of(BOB) == 0
        assert gateway.balance_of(OWNER) == 0

    def test_failed_transfer_rolls_back(self):
        """Test a failing payout restores the balance."""
        failing = Mock(spec=PayoutGateway)
        failing.send.side_effect = ConnectionError("payout rail down")

        registry = RegistryManager.deploy(
            owner=OWNER, contract_uri=CONTRACT_URI, base_uri=BASE_URI, gateway=failing
        )
        registry.deposit(500, sender=ALICE)

        with pytest.raises(TransferFailed) as exc_info:
            registry.withdraw(caller=OWNER)

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert registry.balance == 500
        assert registry.events(EventType.WITHDRAWN) == []
        failing.send.assert_called_once_with(OWNER, 500)

    def test_reentrant_withdraw_pays_once(self):
        """Test a payout re-entering withdraw observes a zero balance."""
        ledger = LedgerPayoutGateway()
        inner_results = []
        entered = threading.Event()

        class ReentrantGateway(PayoutGateway):
            def send(self, to, amount):
                if not entered.is_set():
                    entered.set()
                    inner_results.append(registry.withdraw(caller=OWNER))
                ledger.send(to, amount)

        registry = RegistryManager.deploy(
            owner=OWNER, contract_uri=CONTRACT_URI, base_uri=BASE_URI,
            gateway=ReentrantGateway()
        )
        registry.deposit(300, sender=ALICE)

        assert registry.withdraw(caller=OWNER) == 300
        assert inner_results == [0]
        assert ledger.balance_of(OWNER) == 300
        assert registry.balance == 0

    def test_invalid_deposits(self, registry):
        with pytest.raises(ValueError):
            registry.deposit(0, sender=ALICE)

        with pytest.raises(InvalidAddress):
            registry.deposit(10, sender="nope")

        assert registry.balance == 0


class TestOwnership:
    """Test ownership transfer and token transfers."""

    def test_transfer_ownership(self, registry):
        registry.transfer_ownership(ALICE, caller=OWNER)

        assert registry.owner == ALICE
        with pytest.raises(Unauthorized):
            registry.pause(caller=OWNER)

        registry.pause(caller=ALICE)
        assert registry.paused is True

    def test_transfer_ownership_to_zero(self, registry):
        with pytest.raises(InvalidAddress):
            registry.transfer_ownership(ZERO_ADDRESS, caller=OWNER)
        assert registry.owner == OWNER

    def test_renounce_ownership(self, registry):
        registry.renounce_ownership(caller=OWNER)

        assert registry.owner == ZERO_ADDRESS
        with pytest.raises(Unauthorized):
            registry.pause(caller=OWNER)
        with pytest.raises(Unauthorized):
            registry.pause(caller=ZERO_ADDRESS)

    def test_transfer_token(self, minted_registry):
        minted_registry.transfer_token(1, BOB, caller=ALICE)

        assert minted_registry.owner_of(1) == BOB
        assert minted_registry.tokens_of(ALICE) == [0, 2]
        assert minted_registry.tokens_of(BOB) == [1]

        events = minted_registry.events(EventType.TRANSFER)
        assert events[0].args == {'from_address': ALICE, 'to': BOB, 'token_id': 1}

    def test_transfer_token_not_holder(self, minted_registry):
        with pytest.raises(NotTokenHolder):
            minted_registry.transfer_token(1, BOB, caller=OWNER)
        assert minted_registry.owner_of(1) == ALICE

    def test_transfer_unminted_token(self, minted_registry):
        with pytest.raises(TokenNotFound):
            minted_registry.transfer_token(10, BOB, caller=ALICE)


class TestEventsAndStatus:
    """Test event subscription and the status summary."""

    def test_subscribers_receive_committed_events(self, registry):
        received = []
        registry.subscribe(received.append)

        registry.mint(ALICE)
        with pytest.raises(Unauthorized):
            registry.pause(caller=ALICE)

        assert [e.event_type for e in received] == [EventType.TOKEN_MINTED]

    def test_failing_subscriber_does_not_break_operation(self, registry):
        def broken(event):
            raise RuntimeError("subscriber bug")

        registry.subscribe(broken)
        assert registry.mint(ALICE) == 0
        assert registry.total_minted == 1

    def test_status(self, minted_registry):
        minted_registry.update_token_uri(0, "X", caller=OWNER)
        info = minted_registry.status()

        assert info['owner'] == OWNER
        assert info['total_minted'] == 3
        assert info['remaining_supply'] == MAX_SUPPLY - 3
        assert info['pause_state'] == 'active'
        assert info['locked_uris'] == 1
        assert info['utilization_band'] == 'low'
