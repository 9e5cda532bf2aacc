"""Driver commands."""

import click

from fareledger.cli.error_handling import handle_domain_error
from fareledger.domain.errors import DomainError
from fareledger.domain.fleet import FleetService


@click.group()
def driver_group():
    """Manage drivers."""
    pass


@driver_group.command("create")
@click.argument("tenant_id", metavar="TENANT_ID")
@click.option("--first-name", help="Driver first name")
@click.option("--last-name", help="Driver last name")
@click.pass_context
def create_driver(ctx, tenant_id: str, first_name: str | None, last_name: str | None):
    """Create a driver profile for a tenant.

    Examples:
        fareledger driver create <tenant-id> --first-name Nikos --last-name Papadopoulos
    """
    service = FleetService(ctx.obj["db"])
    try:
        driver_id = service.create_driver(tenant_id, first_name=first_name, last_name=last_name)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created driver (ID: {driver_id})")


def register_commands(cli):
    """Register driver commands with main CLI."""
    cli.add_command(driver_group, name="driver")
