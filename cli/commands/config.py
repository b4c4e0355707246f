#!/usr/bin/env python3
"""
Configuration Commands for the PixelChads CLI
"""

from typing import Optional

import click

from ..config import CONFIG_SEARCH_PATHS, ENV_PREFIX
from ..context import CLIContext, handle_cli_error, pass_context


@click.group()
def config():
    """Inspect and validate CLI configuration."""


@config.command('show')
@click.argument('key', required=False)
@click.option('--sources', is_flag=True, help='Show which sources were loaded')
@pass_context
@handle_cli_error
def show_config(ctx: CLIContext, key: Optional[str], sources: bool):
    """Show the effective configuration, or a single dotted KEY."""
    if sources:
        ctx.output({'sources': ctx.config.get_sources()})
        return

    if key:
        value = ctx.config.get(key)
        if value is None:
            raise click.BadParameter(f"Unknown configuration key: {key}")
        ctx.output({key: value})
    else:
        ctx.output(ctx.config.load())


@config.command('validate')
@pass_context
@handle_cli_error
def validate_config(ctx: CLIContext):
    """Check the effective configuration for errors."""
    errors = ctx.config.validate()
    if errors:
        for error in errors:
            click.echo(f"  - {error}", err=True)
        raise click.ClickException(f"{len(errors)} configuration error(s)")
    click.echo("Configuration is valid.")


@config.command('search-paths')
def search_paths():
    """List the config file locations searched, in order."""
    for path in CONFIG_SEARCH_PATHS:
        marker = '*' if path.exists() else ' '
        click.echo(f"{marker} {path}")
    click.echo(f"Environment overrides: {ENV_PREFIX}<SECTION>__<KEY>")
