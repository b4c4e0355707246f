#!/usr/bin/env python3
"""
PixelChads Registry - Command Line Interface

Deploy a collection registry, mint tokens, manage token metadata, administer
the pause switch and royalties, and withdraw the treasury balance.
"""

from typing import Optional

import click

from . import __version__
from .commands import admin, config, mint, registry, treasury
from .config import OUTPUT_FORMATS
from .context import CLIContext, pass_context


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c',
              type=click.Path(dir_okay=False),
              help='Path to configuration file (YAML or JSON)')
@click.option('--output-format', '-o',
              type=click.Choice(OUTPUT_FORMATS),
              default=None,
              help='Output format')
@click.option('--data-dir', '-d',
              type=click.Path(file_okay=False),
              help='Directory holding the registry state')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.version_option(__version__, prog_name='pixelchads')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], output_format: Optional[str],
        data_dir: Optional[str], verbose: int):
    """
    PixelChads collection registry.

    Examples:
        pixelchads deploy --owner 0xabc...
        pixelchads mint --caller 0xdef...
        pixelchads set-uri 0 https://pixelchads.com/tokens/0.json --caller 0xabc...
        pixelchads royalty-info 0 1000
    """
    ctx.config_file = config_file
    ctx.data_dir = data_dir
    ctx.verbose = verbose

    ctx.setup_logging()
    ctx.load_config()

    ctx.verbose = verbose or ctx.get_config('cli.verbose', 0)
    if ctx.verbose != verbose:
        ctx.setup_logging()
    ctx.output_format = output_format or ctx.get_config('cli.output_format', 'table')

    ctx.logger.debug("CLI initialized with context")


def register_commands(group: click.Group) -> None:
    """Register all command modules with the main CLI."""
    for command in (
        registry.deploy, registry.status, registry.contract_uri, registry.backups,
        mint.mint, mint.next_id, mint.set_uri, mint.token_uri,
        mint.owner_of, mint.tokens_of, mint.transfer,
        admin.pause, admin.unpause, admin.update_receiver, admin.update_contract_uri,
        admin.transfer_ownership, admin.renounce_ownership,
        treasury.deposit, treasury.withdraw, treasury.payouts, treasury.royalty_info,
        config.config,
    ):
        group.add_command(command)


register_commands(cli)


def main():
    cli(prog_name='pixelchads')


if __name__ == '__main__':
    main()
