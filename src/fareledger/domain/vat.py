"""VAT rate selection and base/tax/total splits.

All arithmetic is Decimal. Values are rounded only by ``money`` when they are
written into a snapshot.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from fareledger.utils.date_parser import ensure_utc

# Passenger transport VAT moved from 10% to 14% at this instant
VAT_CUTOVER = datetime(2025, 1, 1, tzinfo=UTC)
RATE_BEFORE_CUTOVER = Decimal("0.10")
RATE_FROM_CUTOVER = Decimal("0.14")

RECONCILIATION_THRESHOLD = Decimal("0.01")

CENT = Decimal("0.01")


def money(value: Optional[Decimal]) -> str:
    """Format an amount as a 2-decimal string, rounding half away from zero.

    None formats as "0.00".
    """
    if value is None:
        value = Decimal(0)
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def format_rate(rate: Decimal) -> str:
    """Format a VAT rate with 2 decimals, e.g. "0.14"."""
    return str(rate.quantize(CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class VatAmounts:
    """Unrounded base/tax/total split."""

    base: Decimal
    tax: Decimal
    total: Decimal


class VatCalculator:
    """Pick the VAT rate for a service date and split amounts."""

    def __init__(
        self,
        cutover: datetime = VAT_CUTOVER,
        rate_before: Decimal = RATE_BEFORE_CUTOVER,
        rate_from: Decimal = RATE_FROM_CUTOVER,
    ):
        """Initialize the calculator.

        Args:
            cutover: Instant from which rate_from applies
            rate_before: Rate for service dates strictly before the cutover
            rate_from: Rate for service dates on or after the cutover
        """
        self.cutover = ensure_utc(cutover)
        self.rate_before = rate_before
        self.rate_from = rate_from

    @property
    def current_rate(self) -> Decimal:
        return self.rate_from

    def rate_for(self, service_date: Optional[datetime]) -> Decimal:
        """Return the VAT rate for a service date.

        A missing service date (payment without a ride) falls back to the
        current rate instead of failing the export.
        """
        if not isinstance(service_date, datetime):
            return self.current_rate
        if ensure_utc(service_date) < self.cutover:
            return self.rate_before
        return self.rate_from

    def compute_amounts(
        self,
        rate: Decimal,
        ride_subtotal: Optional[Decimal] = None,
        ride_tax: Optional[Decimal] = None,
        ride_total: Optional[Decimal] = None,
        payment_amount: Optional[Decimal] = None,
    ) -> VatAmounts:
        """Split a payment into base, tax and total.

        Ride figures are used verbatim when all three are present; they were
        computed with the rate in effect when the ride ended. Otherwise the
        payment amount is treated as a tax-inclusive total.
        """
        if ride_subtotal is not None and ride_tax is not None and ride_total is not None:
            return VatAmounts(base=Decimal(ride_subtotal), tax=Decimal(ride_tax), total=Decimal(ride_total))

        total = Decimal(payment_amount) if payment_amount is not None else Decimal(0)
        base = total / (Decimal(1) + rate)
        tax = total - base
        return VatAmounts(base=base, tax=tax, total=total)


def reconciliation_warning(
    payment_id: str,
    ride_id: str,
    payment_amount: Optional[Decimal],
    ride_total: Optional[Decimal],
    threshold: Decimal = RECONCILIATION_THRESHOLD,
) -> Optional[str]:
    """Describe a payment whose amount drifted from its ride total, or return None."""
    if payment_amount is None or ride_total is None:
        return None
    delta = abs(Decimal(payment_amount) - Decimal(ride_total))
    if delta <= threshold:
        return None
    return (
        f"Payment {payment_id} amount ({payment_amount}) differs from "
        f"ride {ride_id} total ({ride_total}) by {delta}."
    )
