"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal
from typing import Optional

# Import entities directly to avoid circular import through domain/__init__.py
from fareledger.domain.entities import (
    Tenant,
    Driver,
    Ride,
    RideStatus,
    Payment,
    PaymentLine,
    PaymentProvider,
    PaymentStatus,
    DocumentType,
    ExportArchive,
    ExportType,
    RideWithoutPayment,
)


class SequenceTransaction(ABC):
    """Unit of work holding one locked number sequence.

    Obtained from ``Database.sequence_transaction``. Everything done through
    it commits together when the context exits cleanly and is rolled back
    otherwise.

    Attributes:
        starting_value: Counter value read when the sequence was locked
    """

    starting_value: int

    @abstractmethod
    def get_payment(self, payment_id: str) -> Optional[Payment]:
        """Re-read a payment inside the transaction."""
        pass

    @abstractmethod
    def set_receipt_number(self, payment_id: str, receipt_number: str, period: str) -> None:
        """Write a receipt number and numbering period onto a payment."""
        pass

    @abstractmethod
    def save_counter(self, current: int) -> None:
        """Persist the last issued number.

        Raises:
            ConflictError: If the stored counter moved since it was locked
        """
        pass


class Database(ABC):
    """Abstract database interface for fareledger."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Tenant operations
    @abstractmethod
    def create_tenant(self, name: str, business_id: Optional[str] = None, vat_id: Optional[str] = None) -> str:
        """Create a tenant. Returns tenant ID."""
        pass

    @abstractmethod
    def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        """Get tenant by ID."""
        pass

    @abstractmethod
    def list_tenants(self) -> list[Tenant]:
        """List all tenants."""
        pass

    # Driver operations
    @abstractmethod
    def create_driver(self, tenant_id: str, first_name: Optional[str], last_name: Optional[str]) -> str:
        """Create a driver profile. Returns driver ID."""
        pass

    @abstractmethod
    def get_driver(self, driver_id: str) -> Optional[Driver]:
        """Get driver by ID."""
        pass

    # Ride operations
    @abstractmethod
    def create_ride(
        self,
        tenant_id: str,
        status: RideStatus,
        driver_id: Optional[str] = None,
        started_at: Optional[datetime] = None,
        ended_at: Optional[datetime] = None,
        fare_subtotal: Optional[Decimal] = None,
        tax_amount: Optional[Decimal] = None,
        fare_total: Optional[Decimal] = None,
        ride_id: Optional[str] = None,
    ) -> str:
        """Create a ride. Returns ride ID."""
        pass

    @abstractmethod
    def get_ride(self, ride_id: str) -> Optional[Ride]:
        """Get ride by ID."""
        pass

    @abstractmethod
    def list_completed_rides_without_paid_payment(
        self, tenant_id: str, start: datetime, end: datetime
    ) -> list[RideWithoutPayment]:
        """List COMPLETED rides ended in [start, end) with no payment or a non-PAID one."""
        pass

    # Payment operations
    @abstractmethod
    def create_payment(
        self,
        tenant_id: str,
        provider: PaymentProvider,
        status: PaymentStatus,
        amount: Decimal,
        currency: str = "EUR",
        captured_at: Optional[datetime] = None,
        ride_id: Optional[str] = None,
        external_payment_id: Optional[str] = None,
        payment_id: Optional[str] = None,
        receipt_number: Optional[str] = None,
        number_period: Optional[str] = None,
    ) -> str:
        """Create a payment. Returns payment ID."""
        pass

    @abstractmethod
    def get_payment(self, payment_id: str) -> Optional[Payment]:
        """Get payment by ID."""
        pass

    @abstractmethod
    def get_payment_for_ride(self, ride_id: str) -> Optional[Payment]:
        """Get the payment linked to a ride, if any."""
        pass

    @abstractmethod
    def update_payment_status(self, payment_id: str, status: PaymentStatus) -> None:
        """Change a payment's status."""
        pass

    @abstractmethod
    def list_paid_payments(self, tenant_id: str, start: datetime, end: datetime) -> list[Payment]:
        """List PAID payments captured in [start, end), ordered by (captured_at, id)."""
        pass

    @abstractmethod
    def list_paid_payment_lines(self, tenant_id: str, start: datetime, end: datetime) -> list[PaymentLine]:
        """List PAID payments captured in [start, end) joined with their rides.

        Ordered by (captured_at, id).
        """
        pass

    # Number sequence operations
    @abstractmethod
    def get_sequence_value(self, tenant_id: str, document_type: DocumentType, period: str) -> Optional[int]:
        """Get the last issued number, or None if the sequence was never created."""
        pass

    @abstractmethod
    def sequence_transaction(
        self, tenant_id: str, document_type: DocumentType, period: str
    ) -> AbstractContextManager[SequenceTransaction]:
        """Open a serializable transaction holding the sequence row.

        The row is created with current = 0 if missing.

        Raises:
            ConflictError: On uniqueness violations or a lost counter update
        """
        pass

    # Export archive operations
    @abstractmethod
    def create_export_archive(
        self,
        tenant_id: str,
        period: str,
        export_type: ExportType,
        created_by: str,
        json_path: str,
        document_path: str,
        sha256: str,
        count: int,
        total_amount: Decimal,
    ) -> str:
        """Record an archived export. Returns archive ID."""
        pass

    @abstractmethod
    def get_export_archive(self, archive_id: str) -> Optional[ExportArchive]:
        """Get export archive by ID."""
        pass

    @abstractmethod
    def list_export_archives(self, tenant_id: str, period: Optional[str] = None) -> list[ExportArchive]:
        """List export archives for a tenant, newest first."""
        pass
