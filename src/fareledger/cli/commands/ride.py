"""Ride commands."""

import click

from fareledger.cli.error_handling import handle_domain_error
from fareledger.domain.entities import RideStatus
from fareledger.domain.errors import DomainError
from fareledger.domain.fleet import FleetService
from fareledger.utils.amount_parser import parse_amount
from fareledger.utils.date_parser import parse_instant


def _parse_or_exit(ctx, parser, value: str | None, label: str):
    if value is None:
        return None
    try:
        return parser(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


@click.group()
def ride_group():
    """Record rides."""
    pass


@ride_group.command("add")
@click.argument("tenant_id", metavar="TENANT_ID")
@click.option(
    "--status",
    type=click.Choice([s.value for s in RideStatus], case_sensitive=False),
    default=RideStatus.COMPLETED.value,
    show_default=True,
    help="Ride status",
)
@click.option("--driver", "driver_id", help="Driver ID")
@click.option("--started-at", help="Start instant (ISO 8601)")
@click.option("--ended-at", help="End instant (ISO 8601); used as the VAT service date")
@click.option("--subtotal", help="Net fare (e.g., 100.00)")
@click.option("--tax", help="Fare tax (e.g., 14.00)")
@click.option("--total", help="Gross fare (e.g., 114.00)")
@click.pass_context
def add_ride(
    ctx,
    tenant_id: str,
    status: str,
    driver_id: str | None,
    started_at: str | None,
    ended_at: str | None,
    subtotal: str | None,
    tax: str | None,
    total: str | None,
):
    """Record a ride.

    Examples:
        fareledger ride add <tenant-id> --ended-at 2025-01-15T09:00:00Z --total 114.00
        fareledger ride add <tenant-id> --status CANCELLED --driver <driver-id>
    """
    service = FleetService(ctx.obj["db"])

    started = _parse_or_exit(ctx, parse_instant, started_at, "start")
    ended = _parse_or_exit(ctx, parse_instant, ended_at, "end")
    fare_subtotal = _parse_or_exit(ctx, parse_amount, subtotal, "subtotal")
    tax_amount = _parse_or_exit(ctx, parse_amount, tax, "tax")
    fare_total = _parse_or_exit(ctx, parse_amount, total, "total")

    try:
        ride_id = service.record_ride(
            tenant_id,
            status=status.upper(),
            driver_id=driver_id,
            started_at=started,
            ended_at=ended,
            fare_subtotal=fare_subtotal,
            tax_amount=tax_amount,
            fare_total=fare_total,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded ride (ID: {ride_id})")


def register_commands(cli):
    """Register ride commands with main CLI."""
    cli.add_command(ride_group, name="ride")
