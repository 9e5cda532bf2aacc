"""Domain model entities for fareledger.

These are pure data classes representing business concepts, independent of
database schema. The repository layer converts ORM rows into these so that
export logic never touches a session or a lazily loaded relationship.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class PaymentStatus(str, Enum):
    """Lifecycle of a captured payment."""

    PENDING = "PENDING"
    REQUIRES_ACTION = "REQUIRES_ACTION"
    SUBMITTED = "SUBMITTED"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class RideStatus(str, Enum):
    """Lifecycle of a ride."""

    DRAFT = "DRAFT"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentProvider(str, Enum):
    """Where the money was taken."""

    CASH = "CASH"
    VIVA = "VIVA"
    STRIPE = "STRIPE"


class DocumentType(str, Enum):
    """Document series with their own number sequence."""

    RECEIPT = "RECEIPT"


class ExportType(str, Enum):
    """Export document types. Only simplified receipts exist in v1."""

    SIMPLIFIED = "simplified"


@dataclass(frozen=True)
class Tenant:
    """Fleet operator that owns drivers, rides and payments."""

    id: str
    name: str
    business_id: Optional[str]
    vat_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Driver:
    """Driver profile belonging to a tenant."""

    id: str
    tenant_id: str
    first_name: Optional[str]
    last_name: Optional[str]

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


@dataclass(frozen=True)
class Ride:
    """Ride domain entity."""

    id: str
    tenant_id: str
    driver_id: Optional[str]
    status: RideStatus
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    fare_subtotal: Optional[Decimal]
    tax_amount: Optional[Decimal]
    fare_total: Optional[Decimal]


@dataclass(frozen=True)
class Payment:
    """Payment domain entity."""

    id: str
    tenant_id: str
    ride_id: Optional[str]
    provider: PaymentProvider
    status: PaymentStatus
    amount: Decimal
    currency: str
    captured_at: Optional[datetime]
    external_payment_id: Optional[str] = None
    receipt_number: Optional[str] = None
    number_period: Optional[str] = None

    @property
    def method(self) -> str:
        """Payment method shown on exports: cash, or card for any terminal/online provider."""
        return "CASH" if self.provider == PaymentProvider.CASH else "CARD"


@dataclass(frozen=True)
class RideContext:
    """Ride facts joined onto a payment for export."""

    id: str
    ended_at: Optional[datetime]
    fare_subtotal: Optional[Decimal]
    tax_amount: Optional[Decimal]
    fare_total: Optional[Decimal]
    driver_name: Optional[str]


@dataclass(frozen=True)
class PaymentLine:
    """A paid payment and, if it has one, its ride."""

    payment: Payment
    ride: Optional[RideContext]


@dataclass(frozen=True)
class AssignedNumber:
    """One receipt number issued during a numbering run."""

    payment_id: str
    receipt_number: str


@dataclass(frozen=True)
class NumberingResult:
    """Outcome of a numbering run for one tenant and period."""

    tenant_id: str
    period: str
    type: ExportType
    starting_number: Optional[int]
    ending_number: Optional[int]
    assigned_count: int
    already_numbered_count: int
    assigned: tuple[AssignedNumber, ...] = ()


@dataclass(frozen=True)
class ExportPaymentRow:
    """Flattened per-payment projection used for summaries and rendering.

    Money stays Decimal here; it is formatted to 2 decimals only when the
    snapshot is serialized.
    """

    payment_id: str
    receipt_number: Optional[str]
    captured_at: Optional[datetime]
    service_date: Optional[datetime]
    rate: Decimal
    base: Decimal
    tax: Decimal
    total: Decimal
    currency: str
    description: str = "Passenger transport"
    method: Optional[str] = None
    driver_name: Optional[str] = None
    ride_id: Optional[str] = None
    external_payment_id: Optional[str] = None


@dataclass(frozen=True)
class VatRateBucket:
    """Aggregated amounts for one VAT rate, optionally split by method."""

    rate: Decimal
    method: Optional[str]
    count: int
    base: Decimal
    tax: Decimal
    total: Decimal


@dataclass(frozen=True)
class RideWithoutPayment:
    """Completed ride with no PAID payment."""

    ride_id: str
    ended_at: datetime


@dataclass(frozen=True)
class PaymentWithoutRide:
    """PAID payment not linked to any ride."""

    payment_id: str
    captured_at: Optional[datetime]


@dataclass(frozen=True)
class ExportExceptions:
    """Data-integrity findings reported alongside an export."""

    rides_without_payments: tuple[RideWithoutPayment, ...] = ()
    payments_without_ride: tuple[PaymentWithoutRide, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class PaymentsDataset:
    """Rows, VAT summaries and exceptions for one export window."""

    rows: tuple[ExportPaymentRow, ...]
    summary_by_rate: tuple[VatRateBucket, ...]
    summary_by_rate_and_method: tuple[VatRateBucket, ...]
    exceptions: ExportExceptions


@dataclass(frozen=True)
class GeneratedBy:
    """Actor recorded in the snapshot audit trail."""

    user_id: str
    email: str


@dataclass(frozen=True)
class BuiltSnapshot:
    """Snapshot document, the exact JSON that was hashed, and its digest."""

    snapshot: dict
    sha256: str
    canonical_json: str = field(repr=False)

    @property
    def period(self) -> str:
        return self.snapshot["meta"]["period"]["yyyymm"]


@dataclass(frozen=True)
class ExportArchive:
    """Archived export artifacts and their integrity fingerprint."""

    id: str
    tenant_id: str
    period: str
    type: ExportType
    created_by: str
    json_path: str
    document_path: str
    sha256: str
    count: int
    total_amount: Decimal
    created_at: datetime
