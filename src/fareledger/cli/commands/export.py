"""Export commands: numbering, preview, archive and verification."""

import click

from fareledger.cli.date_filters import resolve_cli_window, window_options
from fareledger.cli.error_handling import handle_domain_error
from fareledger.domain.archive import ExportArchiveService
from fareledger.domain.entities import GeneratedBy
from fareledger.domain.errors import DomainError
from fareledger.domain.numbering import NumberingService
from fareledger.domain.rendering import TextSnapshotRenderer
from fareledger.domain.snapshot import SnapshotService


def _window(ctx, from_str, to_str, month, this_month, last_month):
    return resolve_cli_window(
        ctx,
        from_str=from_str,
        to_str=to_str,
        month=month,
        period_flags={"this-month": this_month, "last-month": last_month},
    )


def _actor_options(command):
    command = click.option("--email", default="", help="E-mail recorded as the export author")(command)
    command = click.option("--user-id", default="cli", show_default=True, help="User ID recorded as the export author")(command)
    return command


@click.group()
def export_group():
    """Number receipts and produce payment exports."""
    pass


@export_group.command("number")
@click.argument("tenant_id", metavar="TENANT_ID")
@window_options
@click.pass_context
def number_receipts(ctx, tenant_id: str, from_str, to_str, month, this_month, last_month):
    """Assign receipt numbers to unnumbered PAID payments in a month.

    Running it again over the same month assigns nothing new.

    Examples:
        fareledger export number <tenant-id> --month 2025-01
    """
    start, end = _window(ctx, from_str, to_str, month, this_month, last_month)
    service = NumberingService(ctx.obj["db"])
    try:
        result = service.assign_simplified_receipt_numbers(tenant_id, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Period {result.period}: assigned {result.assigned_count}, already numbered {result.already_numbered_count}")
    if result.assigned:
        click.echo(f"Numbers {result.assigned[0].receipt_number} .. {result.assigned[-1].receipt_number}")
    for assigned in result.assigned:
        click.echo(f"  {assigned.receipt_number}  {assigned.payment_id}")


@export_group.command("preview")
@click.argument("tenant_id", metavar="TENANT_ID")
@window_options
@_actor_options
@click.option("--json", "as_json", is_flag=True, help="Print the canonical snapshot JSON instead of text")
@click.option("--annex", is_flag=True, help="Mark the annex as requested")
@click.pass_context
def preview_export(ctx, tenant_id: str, from_str, to_str, month, this_month, last_month, user_id, email, as_json, annex):
    """Build an export snapshot and print it without archiving.

    Receipt numbering runs first, so previewing a month numbers its
    outstanding payments.

    Examples:
        fareledger export preview <tenant-id> --month 2025-01
        fareledger export preview <tenant-id> --last-month --json
    """
    start, end = _window(ctx, from_str, to_str, month, this_month, last_month)
    service = SnapshotService(ctx.obj["db"])
    try:
        built = service.build_snapshot(
            tenant_id,
            start,
            end,
            generated_by=GeneratedBy(user_id=user_id, email=email),
            include_annex=annex,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if as_json:
        click.echo(built.canonical_json)
        return
    for line in TextSnapshotRenderer().render_lines(built.snapshot, built.sha256):
        click.echo(line)


@export_group.command("create")
@click.argument("tenant_id", metavar="TENANT_ID")
@window_options
@_actor_options
@click.option("--annex", is_flag=True, help="Mark the annex as requested")
@click.option(
    "--exports-root",
    type=click.Path(file_okay=False),
    envvar="FARELEDGER_EXPORTS_ROOT",
    help="Archive directory (overrides FARELEDGER_EXPORTS_ROOT environment variable)",
)
@click.pass_context
def create_export(ctx, tenant_id: str, from_str, to_str, month, this_month, last_month, user_id, email, annex, exports_root):
    """Build an export and archive its JSON and text document.

    Examples:
        fareledger export create <tenant-id> --month 2025-01 --email ops@example.com
    """
    start, end = _window(ctx, from_str, to_str, month, this_month, last_month)
    root = exports_root or ctx.obj["settings"].exports_root
    service = ExportArchiveService(ctx.obj["db"], exports_root=root)
    try:
        archive = service.export(
            tenant_id,
            start,
            end,
            generated_by=GeneratedBy(user_id=user_id, email=email),
            include_annex=annex,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created export {archive.id} for {archive.period}")
    click.echo(f"Payments: {archive.count}  Total: {archive.total_amount}")
    click.echo(f"JSON:     {archive.json_path}")
    click.echo(f"Document: {archive.document_path}")
    click.echo(f"SHA-256:  {archive.sha256}")


@export_group.command("list")
@click.argument("tenant_id", metavar="TENANT_ID")
@click.option("--period", help="Only archives of this period (YYYYMM)")
@click.pass_context
def list_exports(ctx, tenant_id: str, period: str | None):
    """List archived exports of a tenant, newest first."""
    service = ExportArchiveService(ctx.obj["db"], exports_root=ctx.obj["settings"].exports_root)

    archives = service.list_archives(tenant_id, period=period)
    if not archives:
        click.echo("No exports found.")
        return

    click.echo("\nExports:")
    click.echo("-" * 100)
    for a in archives:
        click.echo(
            f"ID: {a.id} | {a.period} | {a.type.value} | {a.count:4d} payments | "
            f"{a.total_amount:>10} | {a.sha256[:12]}"
        )


@export_group.command("verify")
@click.argument("archive_id", metavar="ARCHIVE_ID")
@click.pass_context
def verify_export(ctx, archive_id: str):
    """Check an archived JSON file against its recorded SHA-256.

    Exits with status 1 if the file is missing or has changed.
    """
    service = ExportArchiveService(ctx.obj["db"], exports_root=ctx.obj["settings"].exports_root)
    try:
        ok = service.verify_archive(archive_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if ok:
        click.echo(f"Export {archive_id}: OK")
        return
    click.echo(f"Export {archive_id}: MISMATCH", err=True)
    ctx.exit(1)


def register_commands(cli):
    """Register export commands with main CLI."""
    cli.add_command(export_group, name="export")
