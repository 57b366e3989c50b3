#!/usr/bin/env python3
"""
Asset Commands for the Asset Registry CLI

Commands for creating, querying and transferring assets, storing and reading
confidential details, and inspecting ledger history.
"""

import json
from pathlib import Path
from typing import Optional

import click

from cli.config import OUTPUT_FORMATS
from cli.context import CLIContext, handle_cli_error, pass_context
from registry.codec import decode_asset
from registry.manager import TRANSIENT_PROPERTIES_KEY


@click.group()
@pass_context
def asset(ctx: CLIContext):
    """
    Asset management commands.

    Create, query and transfer assets and manage their confidential details.
    """
    ctx.logger.debug("Asset command group invoked")


@asset.command('init')
@pass_context
@handle_cli_error
def init_ledger(ctx: CLIContext):
    """Initialize the registry on the configured ledger."""
    ctx.get_manager().init_ledger()
    click.echo("Registry initialized")


@asset.command('create')
@click.argument('asset_id')
@click.option('--owner', required=True, help='Owning party')
@click.option('--type', 'asset_type', required=True, help='Asset category')
@click.option('--description', default='', help='Free text description')
@click.option('--value', type=float, default=0.0, show_default=True, help='Monetary value')
@pass_context
@handle_cli_error
def create_asset(ctx: CLIContext, asset_id: str, owner: str, asset_type: str,
                 description: str, value: float):
    """
    Create a new asset.

    Examples:
        assetreg asset create A1 --owner alice --type gold --description bar --value 10.5
    """
    ctx.logger.info(f"Creating asset: {asset_id}")

    ctx.get_manager().create_asset(asset_id, owner, asset_type, description, value)
    click.echo(f"Asset {asset_id} created")


@asset.command('query')
@click.argument('asset_id')
@click.option('--raw', is_flag=True, help='Print the stored record text')
@click.option('--format', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              help='Override output format')
@pass_context
@handle_cli_error
def query_asset(ctx: CLIContext, asset_id: str, raw: bool, output_format: Optional[str]):
    """
    Display an asset record.

    Examples:
        assetreg asset query A1
        assetreg asset query A1 --raw
    """
    encoded = ctx.get_manager().query_asset(asset_id)

    if raw:
        click.echo(encoded)
        return

    ctx.output(decode_asset(encoded).model_dump(by_alias=True), output_format)


@asset.command('transfer')
@click.argument('asset_id')
@click.argument('new_owner')
@pass_context
@handle_cli_error
def transfer_asset(ctx: CLIContext, asset_id: str, new_owner: str):
    """
    Transfer an asset to a new owner.

    Examples:
        assetreg asset transfer A1 bob
    """
    ctx.logger.info(f"Transferring asset {asset_id} to {new_owner}")

    ctx.get_manager().transfer_asset(asset_id, new_owner)
    click.echo(f"Asset {asset_id} transferred to {new_owner}")


@asset.command('history')
@click.argument('asset_id')
@click.option('--format', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              help='Override output format')
@pass_context
@handle_cli_error
def asset_history(ctx: CLIContext, asset_id: str, output_format: Optional[str]):
    """
    Display the ledger history of an asset, oldest first.

    Examples:
        assetreg asset history A1 --format json
    """
    entries = json.loads(ctx.get_manager().get_asset_history(asset_id))

    if not entries:
        click.echo(f"No history found for asset: {asset_id}")
        return

    ctx.output(entries, output_format)


@asset.command('store-private')
@click.argument('asset_id')
@click.option('--properties', help='Confidential details as text')
@click.option('--properties-file', type=click.Path(exists=True, dir_okay=False),
              help='File holding the confidential details')
@pass_context
@handle_cli_error
def store_private(ctx: CLIContext, asset_id: str, properties: Optional[str],
                  properties_file: Optional[str]):
    """
    Store confidential details for an asset.

    The payload travels as the transient ``asset_properties`` entry and is
    written verbatim to the private collection.

    Examples:
        assetreg asset store-private A1 --properties '{"appraisal": 12000}'
        assetreg asset store-private A1 --properties-file details.json
    """
    if properties is not None and properties_file is not None:
        raise click.UsageError("Use either --properties or --properties-file, not both")

    transient = {}
    if properties is not None:
        transient[TRANSIENT_PROPERTIES_KEY] = properties.encode('utf-8')
    elif properties_file is not None:
        transient[TRANSIENT_PROPERTIES_KEY] = Path(properties_file).read_bytes()

    ctx.get_manager().create_confidential_details(asset_id, transient)
    click.echo(f"Private data for asset {asset_id} stored")


@asset.command('query-private')
@click.argument('asset_id')
@pass_context
@handle_cli_error
def query_private(ctx: CLIContext, asset_id: str):
    """
    Print the confidential details of an asset verbatim.

    Examples:
        assetreg --org Org1MSP asset query-private A1
    """
    click.echo(ctx.get_manager().query_confidential_details(asset_id))


@asset.command('stats')
@click.option('--format', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              help='Override output format')
@pass_context
@handle_cli_error
def registry_stats(ctx: CLIContext, output_format: Optional[str]):
    """Display cache and ledger storage information for this process."""
    manager = ctx.get_manager()

    stats = manager.get_registry_stats()
    stats['storage_info'] = manager.gateway.get_storage_info()

    ctx.output(stats, output_format)
