"""Export dataset domain service: rows, VAT summaries and data exceptions."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fareledger.database.base import Database
from fareledger.domain.entities import (
    ExportExceptions,
    ExportPaymentRow,
    PaymentLine,
    PaymentWithoutRide,
    PaymentsDataset,
    VatRateBucket,
)
from fareledger.domain.periods import validate_window
from fareledger.domain.vat import RECONCILIATION_THRESHOLD, VatCalculator, reconciliation_warning
from fareledger.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CURRENCY = "EUR"


@dataclass
class _Totals:
    """Running exact sums for one summary bucket."""

    count: int = 0
    base: Decimal = field(default_factory=Decimal)
    tax: Decimal = field(default_factory=Decimal)
    total: Decimal = field(default_factory=Decimal)

    def add(self, row: ExportPaymentRow) -> None:
        self.count += 1
        self.base += row.base
        self.tax += row.tax
        self.total += row.total


class ExportDataService:
    """Service that loads and computes the payments export dataset."""

    def __init__(
        self,
        db: Database,
        vat: Optional[VatCalculator] = None,
        reconciliation_threshold: Decimal = RECONCILIATION_THRESHOLD,
    ):
        """Initialize export data service.

        Args:
            db: Database instance
            vat: VAT calculator (defaults to the statutory rates)
            reconciliation_threshold: Largest tolerated payment/ride total difference
        """
        self.db = db
        self.vat = vat or VatCalculator()
        self.reconciliation_threshold = reconciliation_threshold

    def load_payments_dataset(self, tenant_id: str, start: datetime, end: datetime) -> PaymentsDataset:
        """Load PAID payments captured in [start, end) and compute VAT.

        Args:
            tenant_id: Tenant ID
            start: Inclusive window start
            end: Exclusive window end

        Returns:
            PaymentsDataset with rows in (captured_at, id) order, summaries
            by rate and by rate and method, and data exceptions

        Raises:
            ValidationError: If the window is invalid
        """
        start, end = validate_window(start, end)

        lines = self.db.list_paid_payment_lines(tenant_id, start, end)

        rows: list[ExportPaymentRow] = []
        warnings: list[str] = []
        by_rate: dict[Decimal, _Totals] = {}
        by_rate_and_method: dict[tuple[Decimal, Optional[str]], _Totals] = {}

        for line in lines:
            row = self.build_row(line)
            rows.append(row)

            warning = self.check_reconciliation(line)
            if warning is not None:
                warnings.append(warning)

            by_rate.setdefault(row.rate, _Totals()).add(row)
            by_rate_and_method.setdefault((row.rate, row.method), _Totals()).add(row)

        rides_without_payments = self.db.list_completed_rides_without_paid_payment(tenant_id, start, end)
        payments_without_ride = [
            PaymentWithoutRide(payment_id=line.payment.id, captured_at=line.payment.captured_at)
            for line in lines
            if line.ride is None
        ]

        if warnings or rides_without_payments or payments_without_ride:
            logger.info(
                "Export dataset has exceptions",
                tenant_id=tenant_id,
                warnings=len(warnings),
                rides_without_payments=len(rides_without_payments),
                payments_without_ride=len(payments_without_ride),
            )

        return PaymentsDataset(
            rows=tuple(rows),
            summary_by_rate=tuple(
                VatRateBucket(rate=rate, method=None, count=t.count, base=t.base, tax=t.tax, total=t.total)
                for rate, t in by_rate.items()
            ),
            summary_by_rate_and_method=tuple(
                VatRateBucket(rate=rate, method=method, count=t.count, base=t.base, tax=t.tax, total=t.total)
                for (rate, method), t in by_rate_and_method.items()
            ),
            exceptions=ExportExceptions(
                rides_without_payments=tuple(rides_without_payments),
                payments_without_ride=tuple(payments_without_ride),
                warnings=tuple(warnings),
            ),
        )

    def build_row(self, line: PaymentLine) -> ExportPaymentRow:
        """Project one payment (and its ride, if any) into an export row."""
        payment, ride = line.payment, line.ride
        service_date = ride.ended_at if ride is not None else None
        rate = self.vat.rate_for(service_date)

        if ride is not None:
            amounts = self.vat.compute_amounts(
                rate,
                ride_subtotal=ride.fare_subtotal,
                ride_tax=ride.tax_amount,
                ride_total=ride.fare_total,
                payment_amount=payment.amount,
            )
        else:
            amounts = self.vat.compute_amounts(rate, payment_amount=payment.amount)

        return ExportPaymentRow(
            payment_id=payment.id,
            receipt_number=payment.receipt_number,
            captured_at=payment.captured_at,
            service_date=service_date,
            rate=rate,
            base=amounts.base,
            tax=amounts.tax,
            total=amounts.total,
            currency=payment.currency or DEFAULT_CURRENCY,
            method=payment.method,
            driver_name=ride.driver_name if ride is not None else None,
            ride_id=ride.id if ride is not None else None,
            external_payment_id=payment.external_payment_id,
        )

    def check_reconciliation(self, line: PaymentLine) -> Optional[str]:
        """Return a warning if the payment amount drifted from its ride total."""
        if line.ride is None:
            return None
        return reconciliation_warning(
            line.payment.id,
            line.ride.id,
            line.payment.amount,
            line.ride.fare_total,
            threshold=self.reconciliation_threshold,
        )
