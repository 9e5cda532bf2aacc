"""Tenant management commands."""

import click

from fareledger.cli.error_handling import handle_domain_error
from fareledger.domain.errors import DomainError
from fareledger.domain.fleet import FleetService


@click.group()
def tenant_group():
    """Manage tenants."""
    pass


@tenant_group.command("create")
@click.argument("name", metavar="TENANT_NAME")
@click.option("--business-id", help="Business registration ID printed on receipts")
@click.option("--vat-id", help="VAT registration ID printed on receipts")
@click.pass_context
def create_tenant(ctx, name: str, business_id: str | None, vat_id: str | None):
    """Create a new tenant.

    Examples:
        fareledger tenant create "Acme Taxi" --business-id 123456789 --vat-id EL123456789
    """
    service = FleetService(ctx.obj["db"])
    try:
        tenant_id = service.create_tenant(name=name, business_id=business_id, vat_id=vat_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created tenant '{name}' (ID: {tenant_id})")


@tenant_group.command("list")
@click.pass_context
def list_tenants(ctx):
    """List all tenants."""
    service = FleetService(ctx.obj["db"])

    tenants = service.list_tenants()
    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\nTenants:")
    click.echo("-" * 90)
    for t in tenants:
        click.echo(f"ID: {t.id} | {t.name:24s} | Business ID: {t.business_id or '-'} | VAT ID: {t.vat_id or '-'}")


def register_commands(cli):
    """Register tenant commands with main CLI."""
    cli.add_command(tenant_group, name="tenant")
