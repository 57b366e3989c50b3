"""
Shared CLI context for the Asset Registry command line.

Holds the loaded configuration, output settings and the lazily built
registry manager, and maps registry errors to exit codes.
"""

import functools
import json
import logging
import sys
from typing import Any, Dict, Optional

import click
import yaml
from pydantic import ValidationError
from tabulate import tabulate

from cli.config import ConfigurationManager
from registry.exceptions import ErrorKind, InvalidInputError, RegistryError
from registry.manager import RegistryManager
from registry.storage import FileLedger


# Exit status per error kind
EXIT_CODES = {
    ErrorKind.INVALID_INPUT: 2,
    ErrorKind.ALREADY_EXISTS: 3,
    ErrorKind.NOT_FOUND: 4,
    ErrorKind.PRIVATE_DATA_FAILURE: 5,
    ErrorKind.OPERATION_FAILURE: 6,
    ErrorKind.INVALID_ENCODING: 7,
}

LOGGER_NAMES = ('assetreg-cli', 'registry')


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.output_format: Optional[str] = None
        self.verbose: int = 0
        self.data_dir: Optional[str] = None
        self.organization: Optional[str] = None
        self.config_manager: Optional[ConfigurationManager] = None
        self.logger: logging.Logger = logging.getLogger('assetreg-cli')
        self._manager: Optional[RegistryManager] = None

    def load_config(self):
        """Load configuration from defaults, files and environment."""
        self.config_manager = ConfigurationManager(self.config_file, self.profile)
        self.config_manager.load()

        if self.output_format is None:
            self.output_format = self.config_manager.get('cli.output_format', 'table')
        if not self.verbose:
            self.verbose = self.config_manager.get('cli.verbose', 0)

    def get_config(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value with fallback to default."""
        if self.config_manager is None:
            self.load_config()
        return self.config_manager.get(key_path, default)

    def setup_logging(self):
        """Configure logging based on verbosity level or configured level."""
        log_levels = {
            1: logging.INFO,
            2: logging.DEBUG
        }

        if self.verbose:
            level = log_levels.get(min(self.verbose, 2), logging.DEBUG)
        else:
            level = logging.getLevelName(str(self.get_config('logging.level', 'WARNING')).upper())
            if not isinstance(level, int):
                level = logging.WARNING

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        for name in LOGGER_NAMES:
            logger = logging.getLogger(name)
            for handler in list(logger.handlers):
                if getattr(handler, '_assetreg_handler', False):
                    logger.removeHandler(handler)

            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            handler._assetreg_handler = True
            logger.addHandler(handler)
            logger.setLevel(level)

    def get_manager(self) -> RegistryManager:
        """Build the registry manager over the configured file ledger."""
        if self._manager is None:
            if self.config_manager is None:
                self.load_config()

            try:
                settings = self.config_manager.settings()
            except ValidationError as e:
                problems = "; ".join(self.config_manager.validate())
                raise InvalidInputError(f"Invalid configuration: {problems}", e) from e

            gateway = FileLedger(
                data_dir=self.data_dir or settings.ledger.data_dir,
                organization=self.organization or settings.ledger.organization,
                lock_timeout=settings.ledger.lock_timeout,
            )
            self._manager = RegistryManager(
                gateway,
                cache_capacity=settings.registry.cache_capacity,
                private_collection=settings.registry.private_collection,
            )
        return self._manager

    def output(self, data: Any, format_override: Optional[str] = None):
        """Output data in specified format."""
        format_type = format_override or self.output_format or 'table'

        if format_type == "json":
            click.echo(json.dumps(data, indent=2, default=str))
        elif format_type == "yaml":
            click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))
        elif format_type == "table":
            self._output_table(data)
        else:
            click.echo(str(data))

    def _format_value(self, value: Any) -> str:
        if isinstance(value, dict):
            return ", ".join(f"{k}={v}" for k, v in value.items())
        return str(value)

    def _output_table(self, data: Any):
        """Output data in table format."""
        if isinstance(data, dict):
            table_data = [[key, self._format_value(value)] for key, value in data.items()]
            click.echo(tabulate(table_data, tablefmt='plain'))
        elif isinstance(data, list) and data:
            if isinstance(data[0], dict):
                headers = list(data[0].keys())
                table_data = [
                    [self._format_value(item.get(h, '')) for h in headers]
                    for item in data
                ]
                click.echo(tabulate(table_data, headers=headers, tablefmt='grid'))
            else:
                for item in data:
                    click.echo(item)
        else:
            click.echo(str(data))


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Decorator to report errors and exit with a status per error kind."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo("\nOperation cancelled by user.", err=True)
            sys.exit(130)
        except RegistryError as e:
            click.echo(f"Error [{e.kind.value}]: {e}", err=True)
            sys.exit(EXIT_CODES.get(e.kind, 1))
        except (click.ClickException, click.exceptions.Exit):
            raise
        except Exception as e:
            ctx = click.get_current_context(silent=True)
            cli_ctx = ctx.find_object(CLIContext) if ctx else None

            click.echo(f"Error: {e}", err=True)
            if cli_ctx and cli_ctx.verbose >= 2:
                import traceback
                click.echo(traceback.format_exc(), err=True)
            else:
                click.echo("Use -vv for detailed error information.", err=True)

            sys.exit(1)

    return wrapper
