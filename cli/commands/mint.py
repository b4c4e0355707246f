#!/usr/bin/env python3
"""
Minting and Token Commands for the PixelChads CLI

Mint tokens, inspect token URIs and holders, lock token metadata and
transfer tokens between holders.
"""

import click

from ..context import CLIContext, handle_cli_error, pass_context


@click.command()
@click.option('--caller', required=True, help='Minting address; receives the token')
@pass_context
@handle_cli_error
def mint(ctx: CLIContext, caller: str):
    """Mint the next token to CALLER."""
    registry = ctx.open_registry()
    token_id = registry.mint(caller)

    ctx.output_events(registry)
    ctx.output({
        'token_id': token_id,
        'to': registry.owner_of(token_id),
        'total_minted': registry.total_minted,
        'max_supply': registry.max_supply,
    })


@click.command('next-id')
@pass_context
@handle_cli_error
def next_id(ctx: CLIContext):
    """Show the id the next mint will receive."""
    registry = ctx.open_registry()
    ctx.output({'next_token_id': registry.next_token_id()})


@click.command('set-uri')
@click.argument('token_id', type=int)
@click.argument('uri')
@click.option('--caller', required=True, help='Owner address')
@pass_context
@handle_cli_error
def set_uri(ctx: CLIContext, token_id: int, uri: str, caller: str):
    """Set and permanently lock the URI of TOKEN_ID."""
    registry = ctx.open_registry()
    registry.update_token_uri(token_id, uri, caller=caller)

    ctx.output_events(registry)
    ctx.output({'token_id': token_id, 'uri': registry.token_uri(token_id), 'locked': True})


@click.command('token-uri')
@click.argument('token_id', type=int)
@pass_context
@handle_cli_error
def token_uri(ctx: CLIContext, token_id: int):
    """Show the URI of TOKEN_ID."""
    registry = ctx.open_registry()
    ctx.output({
        'token_id': token_id,
        'uri': registry.token_uri(token_id),
        'locked': registry.is_uri_locked(token_id),
    })


@click.command('owner-of')
@click.argument('token_id', type=int)
@pass_context
@handle_cli_error
def owner_of(ctx: CLIContext, token_id: int):
    """Show the holder of TOKEN_ID."""
    registry = ctx.open_registry()
    ctx.output({'token_id': token_id, 'holder': registry.owner_of(token_id)})


@click.command('tokens-of')
@click.argument('holder')
@pass_context
@handle_cli_error
def tokens_of(ctx: CLIContext, holder: str):
    """List the token ids held by HOLDER."""
    registry = ctx.open_registry()
    ctx.output({'holder': holder.lower(), 'tokens': registry.tokens_of(holder)})


@click.command()
@click.argument('token_id', type=int)
@click.argument('to')
@click.option('--caller', required=True, help='Current holder address')
@pass_context
@handle_cli_error
def transfer(ctx: CLIContext, token_id: int, to: str, caller: str):
    """Transfer TOKEN_ID to address TO."""
    registry = ctx.open_registry()
    registry.transfer_token(token_id, to, caller=caller)

    ctx.output_events(registry)
    ctx.output({'token_id': token_id, 'holder': registry.owner_of(token_id)})
