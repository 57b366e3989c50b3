#!/usr/bin/env python3
"""
Configuration Commands for the Asset Registry CLI

Commands for inspecting and validating the merged configuration.
"""

import sys
from typing import Optional

import click

from cli.config import CONFIG_SEARCH_PATHS, OUTPUT_FORMATS
from cli.context import CLIContext, handle_cli_error, pass_context


@click.group()
@pass_context
def config(ctx: CLIContext):
    """
    Configuration management commands.

    Inspect and validate CLI configuration and registry settings.
    """
    ctx.logger.debug("Config command group invoked")


@config.command('show')
@click.option('--key', help='Specific configuration key to show (dot notation)')
@click.option('--sources', is_flag=True, help='Show configuration sources')
@click.option('--format', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              help='Override output format')
@pass_context
@handle_cli_error
def show_config(ctx: CLIContext, key: Optional[str], sources: bool,
                output_format: Optional[str]):
    """
    Display current configuration settings.

    Examples:
        assetreg config show
        assetreg config show --key registry.cache_capacity
        assetreg config show --sources
    """
    manager = ctx.config_manager

    if sources:
        click.echo("Configuration sources (lowest to highest precedence):")
        for i, source in enumerate(manager.get_sources(), 1):
            click.echo(f"   {i}. {source}")
        return

    if key:
        value = manager.get(key)
        if value is None:
            click.echo(f"Configuration key not found: {key}", err=True)
            sys.exit(1)

        if isinstance(value, dict) or output_format:
            ctx.output({key: value}, output_format or 'yaml')
        else:
            click.echo(f"{key}: {value}")
        return

    ctx.output(manager.load(), output_format or 'yaml')


@config.command('validate')
@pass_context
@handle_cli_error
def validate_config(ctx: CLIContext):
    """Validate the merged configuration."""
    errors = ctx.config_manager.validate()

    if errors:
        click.echo("Configuration errors:", err=True)
        for error in errors:
            click.echo(f"   - {error}", err=True)
        sys.exit(1)

    click.echo("Configuration is valid")


@config.command('search-paths')
def search_paths():
    """List configuration file locations in search order."""
    for path in CONFIG_SEARCH_PATHS:
        marker = "*" if path.exists() else " "
        click.echo(f" {marker} {path}")
