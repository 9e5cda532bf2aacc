"""Sequential receipt numbering domain service."""

from datetime import datetime
from typing import Optional

from fareledger.database.base import Database
from fareledger.domain.entities import (
    AssignedNumber,
    DocumentType,
    ExportType,
    NumberingResult,
    PaymentStatus,
)
from fareledger.domain.errors import (
    IntegrityViolationError,
    captured_outside_period,
    foreign_tenant_payment,
    period_mismatch,
)
from fareledger.domain.periods import single_month_period, yyyymm
from fareledger.utils.logger import get_logger

logger = get_logger(__name__)

RECEIPT_NUMBER_WIDTH = 4


def format_receipt_number(period: str, number: int) -> str:
    """Format a receipt number as '{YYYYMM}-{NNNN}'.

    The sequence part is zero-padded to 4 digits and grows past 9999.
    """
    return f"{period}-{number:0{RECEIPT_NUMBER_WIDTH}d}"


def receipt_sequence_part(receipt_number: Optional[str]) -> Optional[int]:
    """Return the numeric suffix of 'YYYYMM-NNNN', or None if absent or malformed."""
    if not receipt_number:
        return None
    parts = receipt_number.split("-")
    if len(parts) != 2 or not parts[1].isdigit():
        return None
    return int(parts[1])


class NumberingService:
    """Service for assigning sequential receipt numbers."""

    def __init__(self, db: Database):
        """Initialize numbering service.

        Args:
            db: Database instance
        """
        self.db = db

    def assign_simplified_receipt_numbers(self, tenant_id: str, start: datetime, end: datetime) -> NumberingResult:
        """Number every PAID payment captured in [start, end) that has no receipt number yet.

        Payments are numbered in (captured_at, id) order inside one
        serializable transaction that holds the tenant's sequence row for the
        period. Calling this again on unchanged data assigns nothing.

        Args:
            tenant_id: Tenant ID
            start: Inclusive window start
            end: Exclusive window end; the window must stay within one month

        Returns:
            NumberingResult with the counter before and after the run

        Raises:
            ValidationError: If the window is invalid or spans two months
            IntegrityViolationError: If a payment is numbered under another
                period or belongs to another tenant; nothing is committed
            ConflictError: If a concurrent run got in the way; safe to retry
        """
        period = single_month_period(start, end)

        payments = self.db.list_paid_payments(tenant_id, start, end)
        already = [p for p in payments if p.receipt_number]
        to_assign = [p for p in payments if not p.receipt_number]

        for payment in already:
            if payment.number_period and payment.number_period != period:
                raise IntegrityViolationError(period_mismatch(payment.id, payment.number_period, period))

        if not to_assign:
            current = self.db.get_sequence_value(tenant_id, DocumentType.RECEIPT, period)
            return NumberingResult(
                tenant_id=tenant_id,
                period=period,
                type=ExportType.SIMPLIFIED,
                starting_number=current,
                ending_number=current,
                assigned_count=0,
                already_numbered_count=len(already),
            )

        logger.info(
            "Assigning receipt numbers",
            tenant_id=tenant_id,
            period=period,
            candidates=len(to_assign),
        )

        assigned: list[AssignedNumber] = []
        with self.db.sequence_transaction(tenant_id, DocumentType.RECEIPT, period) as sequence:
            starting_number = sequence.starting_value
            current = starting_number

            for candidate in to_assign:
                fresh = sequence.get_payment(candidate.id)
                if fresh is None:
                    logger.warning("Skipping payment: no longer exists", payment_id=candidate.id)
                    continue
                if fresh.tenant_id != tenant_id:
                    raise IntegrityViolationError(foreign_tenant_payment(candidate.id))
                if fresh.status != PaymentStatus.PAID:
                    logger.warning(
                        "Skipping payment: no longer PAID",
                        payment_id=candidate.id,
                        status=fresh.status.value,
                    )
                    continue
                if fresh.receipt_number:
                    logger.warning(
                        "Skipping payment: numbered concurrently",
                        payment_id=candidate.id,
                        receipt_number=fresh.receipt_number,
                    )
                    continue
                captured_period = yyyymm(fresh.captured_at) if fresh.captured_at else None
                if captured_period != period:
                    raise IntegrityViolationError(
                        captured_outside_period(candidate.id, captured_period or "unknown", period)
                    )

                current += 1
                receipt_number = format_receipt_number(period, current)
                sequence.set_receipt_number(candidate.id, receipt_number, period)
                assigned.append(AssignedNumber(payment_id=candidate.id, receipt_number=receipt_number))

            sequence.save_counter(current)

        logger.info(
            "Receipt numbers assigned",
            tenant_id=tenant_id,
            period=period,
            starting_number=starting_number,
            ending_number=current,
            assigned_count=len(assigned),
        )

        return NumberingResult(
            tenant_id=tenant_id,
            period=period,
            type=ExportType.SIMPLIFIED,
            starting_number=starting_number,
            ending_number=current,
            assigned_count=len(assigned),
            already_numbered_count=len(already),
            assigned=tuple(assigned),
        )
