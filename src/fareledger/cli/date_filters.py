"""CLI helpers for export window resolution."""

from datetime import datetime

import click

from fareledger.utils.date_parser import get_month_window, parse_instant, parse_month


def window_options(command):
    """Attach the export window options to a command."""
    options = [
        click.option("--from", "from_str", help="Inclusive window start (ISO 8601, e.g. 2025-01-01T00:00:00Z)"),
        click.option("--to", "to_str", help="Exclusive window end (ISO 8601, e.g. 2025-02-01T00:00:00Z)"),
        click.option("--month", help="Calendar month in UTC (YYYY-MM)"),
        click.option("--this-month", is_flag=True, help="Use the current month"),
        click.option("--last-month", is_flag=True, help="Use the previous month"),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def resolve_cli_window(
    ctx,
    *,
    from_str: str | None,
    to_str: str | None,
    month: str | None,
    period_flags: dict[str, bool],
) -> tuple[datetime, datetime]:
    """Resolve an export window from --from/--to, --month or a period flag."""
    period_count = sum(1 for is_set in period_flags.values() if is_set)
    explicit = bool(from_str or to_str)

    if period_count + (1 if month else 0) + (1 if explicit else 0) > 1:
        click.echo(
            "Error: Use only one of --from/--to, --month, --this-month or --last-month.",
            err=True,
        )
        ctx.exit(1)

    if period_count == 1:
        for period, is_set in period_flags.items():
            if is_set:
                return get_month_window(period)

    if month:
        try:
            return parse_month(month)
        except ValueError as e:
            click.echo(f"Error: Invalid month: {e}", err=True)
            ctx.exit(1)

    if not (from_str and to_str):
        click.echo(
            "Error: An export window is required: --from and --to, --month, --this-month or --last-month.",
            err=True,
        )
        ctx.exit(1)

    try:
        start = parse_instant(from_str)
    except ValueError as e:
        click.echo(f"Error: Invalid start: {e}", err=True)
        ctx.exit(1)

    try:
        end = parse_instant(to_str)
    except ValueError as e:
        click.echo(f"Error: Invalid end: {e}", err=True)
        ctx.exit(1)

    return start, end
