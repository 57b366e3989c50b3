#!/usr/bin/env python3
"""
Asset Registry - Command Line Interface

Create, query and transfer assets, manage confidential details and inspect
ledger history against a file-backed ledger.
"""

from typing import Optional

import click

from cli import __version__
from cli.commands.asset import asset
from cli.commands.config import config
from cli.config import OUTPUT_FORMATS
from cli.context import CLIContext, pass_context


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c',
              help='Path to configuration file')
@click.option('--profile', type=click.Choice(['production', 'development']),
              help='Configuration profile')
@click.option('--output-format', '-o',
              type=click.Choice(OUTPUT_FORMATS),
              help='Output format')
@click.option('--data-dir', help='Ledger data directory')
@click.option('--org', 'organization', help='Calling organization identifier')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.version_option(__version__, prog_name='assetreg')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], profile: Optional[str],
        output_format: Optional[str], data_dir: Optional[str],
        organization: Optional[str], verbose: int):
    """
    Asset Registry Command Line Interface

    Examples:
        assetreg asset create A1 --owner alice --type gold --value 10.5
        assetreg asset transfer A1 bob
        assetreg -o json asset history A1
    """
    ctx.config_file = config_file
    ctx.profile = profile
    ctx.output_format = output_format
    ctx.data_dir = data_dir
    ctx.organization = organization
    ctx.verbose = verbose

    ctx.load_config()
    ctx.setup_logging()

    ctx.logger.debug("CLI initialized with context")


cli.add_command(asset)
cli.add_command(config)


def main():
    """Console script entry point."""
    cli()


if __name__ == '__main__':
    main()
