"""
Unit tests for the command line interface.
"""

import json

import pytest
from click.testing import CliRunner

from cli.main import cli
from conftest import ALICE, BOB, OWNER


@pytest.fixture
def runner(monkeypatch):
    for key in ("PIXELCHADS_CLI__OUTPUT_FORMAT", "PIXELCHADS_CLI__VERBOSE"):
        monkeypatch.delenv(key, raising=False)
    return CliRunner()


@pytest.fixture
def invoke(runner, temp_storage_dir):
    """Run a command against a temporary data directory with JSON output."""
    def _invoke(*args, input=None):
        return runner.invoke(cli, ['-d', temp_storage_dir, '-o', 'json', *args], input=input)
    return _invoke


@pytest.fixture
def deployed(invoke):
    result = invoke('deploy', '--owner', OWNER)
    assert result.exit_code == 0, result.output
    return invoke


def payload(result):
    return json.loads(result.stdout)


class TestDeployCommands:

    def test_help(self, runner):
        result = runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        assert "mint" in result.output
        assert "set-uri" in result.output
        assert "royalty-info" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ['--version'])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_deploy(self, invoke):
        result = invoke('deploy', '--owner', OWNER, '--max-supply', '10', '--royalty-bps', '250')

        assert result.exit_code == 0, result.output
        data = payload(result)
        assert data['owner'] == OWNER
        assert data['max_supply'] == 10
        assert data['royalty_basis_points'] == 250
        assert data['total_minted'] == 0

    def test_deploy_twice(self, deployed):
        result = deployed('deploy', '--owner', OWNER)

        assert result.exit_code == 1
        assert "Error: RegistryExistsError" in result.output

    def test_deploy_force(self, deployed):
        result = deployed('deploy', '--owner', ALICE, '--force', input="y\n")

        assert result.exit_code == 0, result.output
        assert payload_tail(result)['owner'] == ALICE

    def test_deploy_bad_owner(self, invoke):
        result = invoke('deploy', '--owner', 'nobody')

        assert result.exit_code == 1
        assert "Error: InvalidAddress" in result.output

    def test_not_deployed(self, invoke):
        result = invoke('status')

        assert result.exit_code == 1
        assert "Error: RegistryNotDeployed" in result.output

    def test_status(self, deployed):
        result = deployed('status')

        assert result.exit_code == 0, result.output
        data = payload(result)
        assert data['pause_state'] == 'active'
        assert data['storage'].endswith("registry.json")


class TestMintCommands:

    def test_mint_sequence(self, deployed):
        first = payload(deployed('mint', '--caller', ALICE))
        second = payload(deployed('mint', '--caller', BOB))

        assert first['token_id'] == 0
        assert first['to'] == ALICE
        assert second['token_id'] == 1
        assert payload(deployed('next-id')) == {'next_token_id': 2}

    def test_set_uri_once(self, deployed):
        deployed('mint', '--caller', ALICE)

        result = deployed('set-uri', '0', 'ipfs://chad-0', '--caller', OWNER)
        assert result.exit_code == 0, result.output

        again = deployed('set-uri', '0', 'ipfs://other', '--caller', OWNER)
        assert again.exit_code == 1
        assert "Error: AlreadyLocked" in again.output

        data = payload(deployed('token-uri', '0'))
        assert data == {'token_id': 0, 'uri': 'ipfs://chad-0', 'locked': True}

    def test_set_uri_not_owner(self, deployed):
        deployed('mint', '--caller', ALICE)
        result = deployed('set-uri', '0', 'ipfs://x', '--caller', ALICE)

        assert result.exit_code == 1
        assert "Error: Unauthorized" in result.output

    def test_token_uri_default(self, deployed):
        deployed('mint', '--caller', ALICE)
        data = payload(deployed('token-uri', '0'))

        assert data['uri'] == "https://pixelchads.com/tokens/0"
        assert data['locked'] is False

    def test_transfer(self, deployed):
        deployed('mint', '--caller', ALICE)

        result = deployed('transfer', '0', BOB, '--caller', ALICE)
        assert result.exit_code == 0, result.output

        assert payload(deployed('owner-of', '0'))['holder'] == BOB
        assert payload(deployed('tokens-of', BOB))['tokens'] == [0]


class TestAdminCommands:

    def test_pause_blocks_mint(self, deployed):
        result = deployed('pause', '--caller', OWNER)
        assert payload(result) == {'paused': True, 'changed': True}

        minted = deployed('mint', '--caller', ALICE)
        assert minted.exit_code == 1
        assert "Error: OperationPaused" in minted.output

        assert payload(deployed('pause', '--caller', OWNER))['changed'] is False
        assert payload(deployed('unpause', '--caller', OWNER))['paused'] is False
        assert deployed('mint', '--caller', ALICE).exit_code == 0

    def test_update_receiver(self, deployed):
        result = deployed('update-receiver', BOB, '--caller', OWNER)

        assert payload(result) == {'payment_receiver': BOB}
        assert payload(deployed('royalty-info', '5', '1000')) == {'receiver': BOB, 'royalty_amount': 10}

    def test_update_contract_uri(self, deployed):
        deployed('update-contract-uri', 'ipfs://collection', '--caller', OWNER)
        assert payload(deployed('contract-uri')) == {'contract_uri': 'ipfs://collection'}

    def test_transfer_ownership(self, deployed):
        deployed('transfer-ownership', ALICE, '--caller', OWNER)

        result = deployed('pause', '--caller', OWNER)
        assert result.exit_code == 1
        assert "Unauthorized" in result.output

    def test_renounce_requires_confirmation(self, deployed):
        result = deployed('renounce-ownership', '--caller', OWNER, input="n\n")
        assert result.exit_code == 1

        status = payload(deployed('status'))
        assert status['owner'] == OWNER


class TestTreasuryCommands:

    def test_deposit_withdraw(self, deployed):
        assert payload(deployed('deposit', '300', '--sender', ALICE))['balance'] == 300

        result = deployed('withdraw', '--caller', OWNER)
        assert payload(result) == {'withdrawn': 300, 'to': OWNER, 'balance': 0}

        payouts = payload(deployed('payouts'))
        assert [(p['to'], p['amount']) for p in payouts] == [(OWNER, 300)]

    def test_withdraw_not_owner(self, deployed):
        deployed('deposit', '300', '--sender', ALICE)
        result = deployed('withdraw', '--caller', ALICE)

        assert result.exit_code == 1
        assert payload(deployed('payouts')) == []

    def test_deposit_must_be_positive(self, deployed):
        result = deployed('deposit', '0', '--sender', ALICE)
        assert result.exit_code == 2


class TestOutputFormats:

    def test_table_output(self, runner, temp_storage_dir):
        runner.invoke(cli, ['-d', temp_storage_dir, 'deploy', '--owner', OWNER])
        result = runner.invoke(cli, ['-d', temp_storage_dir, 'next-id'])

        assert result.exit_code == 0
        assert "next_token_id" in result.output
        assert "Field" in result.output

    def test_yaml_output(self, runner, temp_storage_dir):
        runner.invoke(cli, ['-d', temp_storage_dir, 'deploy', '--owner', OWNER])
        result = runner.invoke(cli, ['-d', temp_storage_dir, '-o', 'yaml', 'next-id'])

        assert result.output.strip() == "next_token_id: 0"


def payload_tail(result):
    """Parse JSON printed after an interactive prompt."""
    text = result.stdout
    return json.loads(text[text.index('{'):])
