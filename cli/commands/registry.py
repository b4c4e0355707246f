#!/usr/bin/env python3
"""
Registry Deployment and Status Commands for the PixelChads CLI
"""

from typing import Optional

import click

from registry.manager import RegistryManager

from ..context import CLIContext, handle_cli_error, pass_context


@click.command()
@click.option('--owner', required=True, help='Deployer and owner address (0x...)')
@click.option('--contract-uri', help='Collection metadata URI')
@click.option('--base-uri', help='Prefix for default token URIs')
@click.option('--max-supply', type=int, help='Maximum number of tokens')
@click.option('--royalty-bps', type=int, help='Royalty in basis points (1/10000)')
@click.option('--force', is_flag=True, help='Replace an existing registry in the data directory')
@pass_context
@handle_cli_error
def deploy(ctx: CLIContext, owner: str, contract_uri: Optional[str], base_uri: Optional[str],
           max_supply: Optional[int], royalty_bps: Optional[int], force: bool):
    """Deploy a new registry into the data directory."""
    data_dir = ctx.resolve_data_dir()

    if force and (data_dir / 'registry.json').exists():
        click.confirm(f"Replace the registry in {data_dir}?", abort=True)

    registry = RegistryManager.deploy(
        owner=owner,
        contract_uri=contract_uri or ctx.get_config('registry.contract_uri'),
        base_uri=base_uri or ctx.get_config('registry.base_uri'),
        storage_dir=data_dir,
        max_supply=max_supply or ctx.get_config('registry.max_supply'),
        royalty_basis_points=(
            royalty_bps if royalty_bps is not None
            else ctx.get_config('registry.royalty_basis_points')
        ),
        gateway=ctx.payout_gateway(),
        overwrite=force,
        **ctx.storage_options()
    )

    ctx.logger.info(f"Registry deployed to {data_dir}")
    ctx.output(registry.status())


@click.command()
@pass_context
@handle_cli_error
def status(ctx: CLIContext):
    """Show registry state and supply usage."""
    registry = ctx.open_registry()
    info = registry.status()
    info['storage'] = registry.storage.get_storage_info()['file_path']
    ctx.output(info)


@click.command('contract-uri')
@pass_context
@handle_cli_error
def contract_uri(ctx: CLIContext):
    """Print the collection metadata URI."""
    registry = ctx.open_registry()
    ctx.output({'contract_uri': registry.contract_uri})


@click.command()
@pass_context
@handle_cli_error
def backups(ctx: CLIContext):
    """List state file backups, newest first."""
    registry = ctx.open_registry()
    ctx.output([{'backup': path} for path in registry.storage.list_backups()])
