#!/usr/bin/env python3
"""
Treasury and Royalty Commands for the PixelChads CLI
"""

import click

from ..context import CLIContext, handle_cli_error, pass_context


@click.command()
@click.argument('amount', type=click.IntRange(min=1))
@click.option('--sender', required=True, help='Paying address')
@pass_context
@handle_cli_error
def deposit(ctx: CLIContext, amount: int, sender: str):
    """Credit AMOUNT to the registry balance."""
    registry = ctx.open_registry()
    balance = registry.deposit(amount, sender=sender)

    ctx.output_events(registry)
    ctx.output({'deposited': amount, 'balance': balance})


@click.command()
@click.option('--caller', required=True, help='Owner address')
@pass_context
@handle_cli_error
def withdraw(ctx: CLIContext, caller: str):
    """Pay the whole registry balance out to the owner."""
    registry = ctx.open_registry()
    amount = registry.withdraw(caller=caller)

    ctx.output_events(registry)
    ctx.output({'withdrawn': amount, 'to': registry.owner, 'balance': registry.balance})


@click.command()
@pass_context
@handle_cli_error
def payouts(ctx: CLIContext):
    """List payouts recorded in the payout journal."""
    ctx.output(ctx.payout_gateway().entries())


@click.command('royalty-info')
@click.argument('token_id', type=int)
@click.argument('sale_price', type=click.IntRange(min=0))
@pass_context
@handle_cli_error
def royalty_info(ctx: CLIContext, token_id: int, sale_price: int):
    """Quote the royalty owed on a sale of TOKEN_ID at SALE_PRICE."""
    registry = ctx.open_registry()
    info = registry.royalty_info(token_id, sale_price)
    ctx.output({'receiver': info.receiver, 'royalty_amount': info.amount})
