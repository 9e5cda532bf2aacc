"""Export snapshot domain service.

A snapshot is the archival JSON document of one export run. Its SHA-256 is
printed on the rendered document, so the serialization must be byte-for-byte
reproducible: every object is emitted through an explicit field order,
collections are sorted canonically, money is a fixed 2-decimal string.
"""

import hashlib
import json
from datetime import datetime, UTC
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from fareledger.database.base import Database
from fareledger.domain.entities import (
    BuiltSnapshot,
    ExportExceptions,
    ExportPaymentRow,
    ExportType,
    GeneratedBy,
    NumberingResult,
    Tenant,
    VatRateBucket,
)
from fareledger.domain.errors import NotFoundError, ValidationError, tenant_not_found, unsupported_export_type
from fareledger.domain.export_data import ExportDataService
from fareledger.domain.numbering import NumberingService, receipt_sequence_part
from fareledger.domain.periods import single_month_period
from fareledger.domain.vat import format_rate, money
from fareledger.utils.date_parser import ensure_utc, to_iso
from fareledger.utils.logger import get_logger

logger = get_logger(__name__)

SNAPSHOT_VERSION = "payments-export/v1"

SNAPSHOT_FIELDS = ("meta", "vat", "payments", "exceptions", "annex")
META_FIELDS = ("version", "type", "period", "tenant", "generatedAt", "generatedBy", "numbering")
PERIOD_FIELDS = ("from", "to", "yyyymm")
TENANT_FIELDS = ("id", "name", "businessId", "vatId")
GENERATED_BY_FIELDS = ("userId", "email")
NUMBERING_FIELDS = ("period", "startingNumber", "endingNumber", "assignedCount", "alreadyNumberedCount")
VAT_FIELDS = ("summaryByRate", "summaryByRateAndMethod")
BUCKET_FIELDS = ("rate", "method", "count", "base", "tax", "total")
PAYMENT_FIELDS = (
    "paymentId",
    "receiptNumber",
    "capturedAt",
    "serviceDate",
    "description",
    "rate",
    "base",
    "tax",
    "total",
    "currency",
    "method",
    "driverName",
    "rideId",
    "externalPaymentId",
)
EXCEPTIONS_FIELDS = ("ridesWithoutPayments", "paymentsWithoutRide", "warnings")
RIDE_WITHOUT_PAYMENT_FIELDS = ("rideId", "endedAt")
PAYMENT_WITHOUT_RIDE_FIELDS = ("paymentId", "capturedAt")
ANNEX_FIELDS = ("enabled",)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _record(fields: Sequence[str], values: Sequence[Any]) -> dict[str, Any]:
    """Build a JSON object whose keys are exactly ``fields``, in that order."""
    if len(fields) != len(values):
        raise ValueError(f"Expected {len(fields)} values for {fields}, got {len(values)}")
    return dict(zip(fields, values))


def _instant_key(value: Optional[datetime]) -> tuple[bool, datetime]:
    return (value is None, ensure_utc(value) if value is not None else _EPOCH)


def canonical_json(document: dict[str, Any]) -> str:
    """Serialize a snapshot document deterministically.

    Compact separators, non-ASCII kept as UTF-8, keys in construction order.
    """
    return json.dumps(document, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def sha256_hex(text: str) -> str:
    """Return the SHA-256 hex digest of a string's UTF-8 bytes."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def sort_payment_rows(rows: Iterable[ExportPaymentRow]) -> list[ExportPaymentRow]:
    """Sort by receipt sequence number (unnumbered last), then captured time, then id."""

    def key(row: ExportPaymentRow):
        number = receipt_sequence_part(row.receipt_number)
        return (number is None, number or 0, _instant_key(row.captured_at), row.payment_id)

    return sorted(rows, key=key)


def sort_exceptions(exceptions: ExportExceptions) -> ExportExceptions:
    """Return exceptions with every list in canonical order."""
    return ExportExceptions(
        rides_without_payments=tuple(
            sorted(exceptions.rides_without_payments, key=lambda r: (_instant_key(r.ended_at), r.ride_id))
        ),
        payments_without_ride=tuple(
            sorted(exceptions.payments_without_ride, key=lambda p: (_instant_key(p.captured_at), p.payment_id))
        ),
        warnings=tuple(sorted(exceptions.warnings)),
    )


def sort_buckets(buckets: Iterable[VatRateBucket]) -> list[VatRateBucket]:
    """Sort VAT buckets by rate, then method (rate-only buckets first)."""
    return sorted(buckets, key=lambda b: (b.rate, b.method is not None, b.method or ""))


def bucket_to_json(bucket: VatRateBucket) -> dict[str, Any]:
    return _record(
        BUCKET_FIELDS,
        (
            format_rate(bucket.rate),
            bucket.method,
            bucket.count,
            money(bucket.base),
            money(bucket.tax),
            money(bucket.total),
        ),
    )


def payment_row_to_json(row: ExportPaymentRow) -> dict[str, Any]:
    return _record(
        PAYMENT_FIELDS,
        (
            row.payment_id,
            row.receipt_number,
            to_iso(row.captured_at),
            to_iso(row.service_date),
            row.description,
            format_rate(row.rate),
            money(row.base),
            money(row.tax),
            money(row.total),
            row.currency,
            row.method,
            row.driver_name,
            row.ride_id,
            row.external_payment_id,
        ),
    )


def exceptions_to_json(exceptions: ExportExceptions) -> dict[str, Any]:
    return _record(
        EXCEPTIONS_FIELDS,
        (
            [
                _record(RIDE_WITHOUT_PAYMENT_FIELDS, (r.ride_id, to_iso(r.ended_at)))
                for r in exceptions.rides_without_payments
            ],
            [
                _record(PAYMENT_WITHOUT_RIDE_FIELDS, (p.payment_id, to_iso(p.captured_at)))
                for p in exceptions.payments_without_ride
            ],
            list(exceptions.warnings),
        ),
    )


def numbering_to_json(numbering: NumberingResult) -> dict[str, Any]:
    return _record(
        NUMBERING_FIELDS,
        (
            numbering.period,
            numbering.starting_number,
            numbering.ending_number,
            numbering.assigned_count,
            numbering.already_numbered_count,
        ),
    )


class SnapshotService:
    """Service that builds hashed export snapshots."""

    def __init__(
        self,
        db: Database,
        numbering: Optional[NumberingService] = None,
        data: Optional[ExportDataService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize snapshot service.

        Args:
            db: Database instance
            numbering: Numbering service (defaults to one over db)
            data: Export data service (defaults to one over db)
            clock: Source of the generatedAt instant (defaults to now, UTC)
        """
        self.db = db
        self.numbering = numbering or NumberingService(db)
        self.data = data or ExportDataService(db)
        self.clock = clock or (lambda: datetime.now(UTC))

    def build_snapshot(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        generated_by: GeneratedBy,
        export_type: Union[ExportType, str] = ExportType.SIMPLIFIED,
        include_annex: bool = False,
    ) -> BuiltSnapshot:
        """Number the window's payments, load the dataset and hash the snapshot.

        Numbering runs first and is idempotent, so previews and retries are
        safe. Over an unchanged, fully numbered window (and a fixed clock) the
        result is byte-identical and so is the hash.

        Args:
            tenant_id: Tenant ID
            start: Inclusive window start
            end: Exclusive window end, within the same month as start
            generated_by: Actor recorded in the audit trail
            export_type: Only "simplified" is supported
            include_annex: Recorded as annex.enabled; no annex content in v1

        Returns:
            BuiltSnapshot with the document, its canonical JSON and SHA-256

        Raises:
            ValidationError: Unsupported type, invalid or multi-month window
            NotFoundError: If the tenant does not exist
        """
        export_type = self._check_type(export_type)
        single_month_period(start, end)

        tenant = self.db.get_tenant(tenant_id)
        if tenant is None:
            raise NotFoundError(tenant_not_found(tenant_id))

        numbering = self.numbering.assign_simplified_receipt_numbers(tenant_id, start, end)
        dataset = self.data.load_payments_dataset(tenant_id, start, end)

        rows = sort_payment_rows(dataset.rows)
        exceptions = sort_exceptions(dataset.exceptions)

        snapshot = _record(
            SNAPSHOT_FIELDS,
            (
                self._meta(tenant, start, end, export_type, generated_by, numbering),
                _record(
                    VAT_FIELDS,
                    (
                        [bucket_to_json(b) for b in sort_buckets(dataset.summary_by_rate)],
                        [bucket_to_json(b) for b in sort_buckets(dataset.summary_by_rate_and_method)],
                    ),
                ),
                [payment_row_to_json(r) for r in rows],
                exceptions_to_json(exceptions),
                _record(ANNEX_FIELDS, (bool(include_annex),)),
            ),
        )

        text = canonical_json(snapshot)
        digest = sha256_hex(text)

        logger.info(
            "Export snapshot built",
            tenant_id=tenant_id,
            period=numbering.period,
            payments=len(rows),
            sha256=digest,
        )
        return BuiltSnapshot(snapshot=snapshot, sha256=digest, canonical_json=text)

    def _check_type(self, export_type: Union[ExportType, str]) -> ExportType:
        try:
            return ExportType(export_type)
        except ValueError:
            raise ValidationError(unsupported_export_type(str(export_type)))

    def _meta(
        self,
        tenant: Tenant,
        start: datetime,
        end: datetime,
        export_type: ExportType,
        generated_by: GeneratedBy,
        numbering: NumberingResult,
    ) -> dict[str, Any]:
        return _record(
            META_FIELDS,
            (
                SNAPSHOT_VERSION,
                export_type.value,
                _record(PERIOD_FIELDS, (to_iso(start), to_iso(end), numbering.period)),
                _record(TENANT_FIELDS, (tenant.id, tenant.name, tenant.business_id, tenant.vat_id)),
                to_iso(self.clock()),
                _record(GENERATED_BY_FIELDS, (generated_by.user_id, generated_by.email)),
                numbering_to_json(numbering),
            ),
        )
