"""Payment commands."""

import click

from fareledger.cli.error_handling import handle_domain_error
from fareledger.domain.entities import PaymentProvider, PaymentStatus
from fareledger.domain.errors import DomainError
from fareledger.domain.fleet import FleetService
from fareledger.utils.amount_parser import parse_amount
from fareledger.utils.date_parser import parse_instant


@click.group()
def payment_group():
    """Record payments and change their status."""
    pass


@payment_group.command("add")
@click.argument("tenant_id", metavar="TENANT_ID")
@click.argument("amount", metavar="AMOUNT")
@click.option(
    "--provider",
    type=click.Choice([p.value for p in PaymentProvider], case_sensitive=False),
    default=PaymentProvider.CASH.value,
    show_default=True,
    help="Payment provider",
)
@click.option(
    "--status",
    type=click.Choice([s.value for s in PaymentStatus], case_sensitive=False),
    default=PaymentStatus.PAID.value,
    show_default=True,
    help="Payment status",
)
@click.option("--captured-at", help="Capture instant (ISO 8601); required for PAID payments")
@click.option("--ride", "ride_id", help="Ride ID this payment settles")
@click.option("--currency", default="EUR", show_default=True, help="ISO currency code")
@click.option("--external-id", help="Provider-side payment reference")
@click.pass_context
def add_payment(
    ctx,
    tenant_id: str,
    amount: str,
    provider: str,
    status: str,
    captured_at: str | None,
    ride_id: str | None,
    currency: str,
    external_id: str | None,
):
    """Record a payment.

    Examples:
        fareledger payment add <tenant-id> 114.00 --captured-at 2025-01-15T09:05:00Z --ride <ride-id>
        fareledger payment add <tenant-id> 25.50 --provider VIVA --status PENDING
    """
    service = FleetService(ctx.obj["db"])

    try:
        parsed_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount: {e}", err=True)
        ctx.exit(1)

    captured = None
    if captured_at is not None:
        try:
            captured = parse_instant(captured_at)
        except ValueError as e:
            click.echo(f"Error: Invalid capture time: {e}", err=True)
            ctx.exit(1)

    try:
        payment_id = service.record_payment(
            tenant_id,
            provider=provider.upper(),
            amount=parsed_amount,
            status=status.upper(),
            captured_at=captured,
            ride_id=ride_id,
            currency=currency.upper(),
            external_payment_id=external_id,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded payment (ID: {payment_id})")


@payment_group.command("status")
@click.argument("payment_id", metavar="PAYMENT_ID")
@click.argument(
    "status",
    metavar="STATUS",
    type=click.Choice([s.value for s in PaymentStatus], case_sensitive=False),
)
@click.pass_context
def set_payment_status(ctx, payment_id: str, status: str):
    """Change a payment's status.

    Examples:
        fareledger payment status <payment-id> REFUNDED
    """
    service = FleetService(ctx.obj["db"])
    try:
        service.update_payment_status(payment_id, status.upper())
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Payment {payment_id} is now {status.upper()}")


def register_commands(cli):
    """Register payment commands with main CLI."""
    cli.add_command(payment_group, name="payment")
