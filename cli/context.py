#!/usr/bin/env python3
"""
Shared CLI context for the PixelChads command line tool.
"""

import logging
import sys
import traceback
from functools import wraps
from pathlib import Path
from typing import Any, List, Optional

import click

from registry.manager import RegistryManager
from registry.treasury import JournalPayoutGateway

from .config import ConfigurationManager
from .output import OutputFormatter, event_rows

PAYOUT_JOURNAL = "payouts.jsonl"


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.output_format: str = "table"
        self.verbose: int = 0
        self.data_dir: Optional[str] = None
        self.config: Optional[ConfigurationManager] = None
        self.logger: logging.Logger = logging.getLogger('pixelchads-cli')

    def setup_logging(self):
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }

        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        logging.basicConfig(
            level=level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            stream=sys.stderr,
            force=True
        )

    def load_config(self):
        """Load configuration from file, search paths and environment."""
        self.config = ConfigurationManager(self.config_file)
        self.config.load()

        errors = self.config.validate()
        if errors:
            raise click.UsageError("Invalid configuration: " + "; ".join(errors))

        self.logger.debug(f"Configuration sources: {self.config.get_sources()}")

    def get_config(self, key: str, default: Any = None) -> Any:
        if self.config is None:
            return default
        return self.config.get(key, default)

    def resolve_data_dir(self) -> Path:
        return Path(self.data_dir or self.get_config('registry.data_dir')).expanduser()

    def payout_gateway(self) -> JournalPayoutGateway:
        return JournalPayoutGateway(self.resolve_data_dir() / PAYOUT_JOURNAL)

    def open_registry(self) -> RegistryManager:
        """Load the registry persisted in the data directory."""
        data_dir = self.resolve_data_dir()
        self.logger.debug(f"Opening registry in {data_dir}")
        return RegistryManager.load(data_dir, gateway=self.payout_gateway(), **self.storage_options())

    def storage_options(self) -> dict:
        return {
            'backup_count': self.get_config('registry.backup_count', 5),
            'lock_timeout': self.get_config('registry.lock_timeout', 30.0),
        }

    def output(self, data: Any, headers: Optional[List[str]] = None):
        """Output data in the selected format."""
        formatter = OutputFormatter(self.output_format)
        click.echo(formatter.format(data, headers))

    def output_events(self, registry: RegistryManager):
        """Echo the events a command produced when verbose."""
        events = registry.events()
        if events and self.verbose:
            click.echo(OutputFormatter(self.output_format).format(event_rows(events)), err=True)


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Decorator to report command errors and exit non-zero."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.Abort):
            raise
        except KeyboardInterrupt:
            click.echo("\nOperation cancelled by user.", err=True)
            sys.exit(130)
        except Exception as e:
            ctx = click.get_current_context(silent=True)
            cli_ctx = ctx.find_object(CLIContext) if ctx else None

            kind = getattr(e, 'code', None)
            kind = kind if isinstance(kind, str) else type(e).__name__
            click.echo(f"Error: {kind}: {e}", err=True)

            if cli_ctx and cli_ctx.verbose >= 2:
                click.echo(traceback.format_exc(), err=True)

            sys.exit(1)

    return wrapper
