#!/usr/bin/env python3
"""
Owner Administration Commands for the PixelChads CLI

Pause switch, payment receiver, contract URI and ownership management. All
of these require --caller to be the registry owner.
"""

import click

from ..context import CLIContext, handle_cli_error, pass_context


@click.command()
@click.option('--caller', required=True, help='Owner address')
@pass_context
@handle_cli_error
def pause(ctx: CLIContext, caller: str):
    """Pause minting."""
    registry = ctx.open_registry()
    changed = registry.pause(caller=caller)

    ctx.output_events(registry)
    ctx.output({'paused': registry.paused, 'changed': changed})


@click.command()
@click.option('--caller', required=True, help='Owner address')
@pass_context
@handle_cli_error
def unpause(ctx: CLIContext, caller: str):
    """Resume minting."""
    registry = ctx.open_registry()
    changed = registry.unpause(caller=caller)

    ctx.output_events(registry)
    ctx.output({'paused': registry.paused, 'changed': changed})


@click.command('update-receiver')
@click.argument('new_receiver')
@click.option('--caller', required=True, help='Owner address')
@pass_context
@handle_cli_error
def update_receiver(ctx: CLIContext, new_receiver: str, caller: str):
    """Set the royalty payment receiver to NEW_RECEIVER."""
    registry = ctx.open_registry()
    registry.update_payment_receiver(new_receiver, caller=caller)

    ctx.output_events(registry)
    ctx.output({'payment_receiver': registry.payment_receiver})


@click.command('update-contract-uri')
@click.argument('new_uri')
@click.option('--caller', required=True, help='Owner address')
@pass_context
@handle_cli_error
def update_contract_uri(ctx: CLIContext, new_uri: str, caller: str):
    """Replace the collection metadata URI."""
    registry = ctx.open_registry()
    registry.update_contract_uri(new_uri, caller=caller)

    ctx.output_events(registry)
    ctx.output({'contract_uri': registry.contract_uri})


@click.command('transfer-ownership')
@click.argument('new_owner')
@click.option('--caller', required=True, help='Current owner address')
@pass_context
@handle_cli_error
def transfer_ownership(ctx: CLIContext, new_owner: str, caller: str):
    """Hand registry ownership to NEW_OWNER."""
    registry = ctx.open_registry()
    registry.transfer_ownership(new_owner, caller=caller)

    ctx.output_events(registry)
    ctx.output({'owner': registry.owner})


@click.command('renounce-ownership')
@click.option('--caller', required=True, help='Current owner address')
@click.option('--yes', is_flag=True, help='Skip the confirmation prompt')
@pass_context
@handle_cli_error
def renounce_ownership(ctx: CLIContext, caller: str, yes: bool):
    """Give up ownership permanently. Owner-only commands stop working."""
    if not yes:
        click.confirm("Renouncing ownership cannot be undone. Continue?", abort=True)

    registry = ctx.open_registry()
    registry.renounce_ownership(caller=caller)

    ctx.output_events(registry)
    ctx.output({'owner': registry.owner})
