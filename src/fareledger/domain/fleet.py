"""Fleet records domain service: tenants, drivers, rides and payments."""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from fareledger.database.base import Database
from fareledger.domain.entities import (
    Driver,
    Payment,
    PaymentProvider,
    PaymentStatus,
    Ride,
    RideStatus,
    Tenant,
)
from fareledger.domain.errors import (
    NotFoundError,
    ValidationError,
    payment_not_found,
    ride_not_found,
    tenant_not_found,
)
from fareledger.utils.logger import get_logger

logger = get_logger(__name__)


class FleetService:
    """Service for recording the data the export runs over."""

    def __init__(self, db: Database):
        """Initialize fleet service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_tenant(self, name: str, business_id: Optional[str] = None, vat_id: Optional[str] = None) -> str:
        """Create a new tenant.

        Raises:
            ValidationError: If the name is blank
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Tenant name cannot be empty")
        tenant_id = self.db.create_tenant(name=name, business_id=business_id, vat_id=vat_id)
        logger.info("Tenant created", tenant_id=tenant_id)
        return tenant_id

    def get_tenant(self, tenant_id: str) -> Tenant:
        """Get tenant by ID.

        Raises:
            NotFoundError: If the tenant does not exist
        """
        tenant = self.db.get_tenant(tenant_id)
        if tenant is None:
            raise NotFoundError(tenant_not_found(tenant_id))
        return tenant

    def list_tenants(self) -> list[Tenant]:
        """List all tenants, by name."""
        return self.db.list_tenants()

    def create_driver(self, tenant_id: str, first_name: Optional[str], last_name: Optional[str]) -> str:
        """Create a driver profile for a tenant.

        Raises:
            NotFoundError: If the tenant does not exist
            ValidationError: If both name parts are blank
        """
        self.get_tenant(tenant_id)
        if not (first_name or "").strip() and not (last_name or "").strip():
            raise ValidationError("Driver needs a first or last name")
        return self.db.create_driver(tenant_id=tenant_id, first_name=first_name, last_name=last_name)

    def get_driver(self, driver_id: str) -> Optional[Driver]:
        return self.db.get_driver(driver_id)

    def record_ride(
        self,
        tenant_id: str,
        status: Union[RideStatus, str] = RideStatus.COMPLETED,
        driver_id: Optional[str] = None,
        started_at: Optional[datetime] = None,
        ended_at: Optional[datetime] = None,
        fare_subtotal: Optional[Decimal] = None,
        tax_amount: Optional[Decimal] = None,
        fare_total: Optional[Decimal] = None,
    ) -> str:
        """Record a ride.

        Args:
            tenant_id: Owning tenant
            status: Ride status (defaults to COMPLETED)
            driver_id: Driver of the same tenant, if any
            started_at: Start instant
            ended_at: End instant; this is the VAT service date
            fare_subtotal: Net fare, if known
            tax_amount: Fare tax, if known
            fare_total: Gross fare, if known

        Returns:
            Ride ID

        Raises:
            NotFoundError: If the tenant or driver does not exist
            ValidationError: On a foreign driver, negative amounts or an end before the start
        """
        self.get_tenant(tenant_id)
        try:
            status = RideStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown ride status '{status}'")

        if driver_id is not None:
            driver = self.db.get_driver(driver_id)
            if driver is None:
                raise NotFoundError(f"Driver {driver_id} not found")
            if driver.tenant_id != tenant_id:
                raise ValidationError(f"Driver {driver_id} belongs to a different tenant")

        for label, value in (("subtotal", fare_subtotal), ("tax", tax_amount), ("total", fare_total)):
            if value is not None and value < 0:
                raise ValidationError(f"Ride {label} cannot be negative")

        if started_at is not None and ended_at is not None and ended_at < started_at:
            raise ValidationError("Ride cannot end before it starts")

        return self.db.create_ride(
            tenant_id=tenant_id,
            status=status,
            driver_id=driver_id,
            started_at=started_at,
            ended_at=ended_at,
            fare_subtotal=fare_subtotal,
            tax_amount=tax_amount,
            fare_total=fare_total,
        )

    def get_ride(self, ride_id: str) -> Ride:
        """Get ride by ID.

        Raises:
            NotFoundError: If the ride does not exist
        """
        ride = self.db.get_ride(ride_id)
        if ride is None:
            raise NotFoundError(ride_not_found(ride_id))
        return ride

    def record_payment(
        self,
        tenant_id: str,
        provider: Union[PaymentProvider, str],
        amount: Decimal,
        status: Union[PaymentStatus, str] = PaymentStatus.PAID,
        captured_at: Optional[datetime] = None,
        ride_id: Optional[str] = None,
        currency: str = "EUR",
        external_payment_id: Optional[str] = None,
    ) -> str:
        """Record a payment, optionally linked to a ride.

        Returns:
            Payment ID

        Raises:
            NotFoundError: If the tenant or ride does not exist
            ValidationError: On a foreign ride, a ride that already has a
                payment, a negative amount, or a PAID payment without a capture time
        """
        self.get_tenant(tenant_id)
        try:
            provider = PaymentProvider(provider)
            status = PaymentStatus(status)
        except ValueError as e:
            raise ValidationError(str(e))

        if amount < 0:
            raise ValidationError("Payment amount cannot be negative")
        if status == PaymentStatus.PAID and captured_at is None:
            raise ValidationError("A PAID payment needs a capture time")

        if ride_id is not None:
            ride = self.get_ride(ride_id)
            if ride.tenant_id != tenant_id:
                raise ValidationError(f"Ride {ride_id} belongs to a different tenant")
            existing = self.db.get_payment_for_ride(ride_id)
            if existing is not None:
                raise ValidationError(f"Ride {ride_id} already has payment {existing.id}")

        payment_id = self.db.create_payment(
            tenant_id=tenant_id,
            provider=provider,
            status=status,
            amount=amount,
            currency=currency,
            captured_at=captured_at,
            ride_id=ride_id,
            external_payment_id=external_payment_id,
        )
        logger.info("Payment recorded", payment_id=payment_id, status=status.value, ride_id=ride_id)
        return payment_id

    def get_payment(self, payment_id: str) -> Payment:
        """Get payment by ID.

        Raises:
            NotFoundError: If the payment does not exist
        """
        payment = self.db.get_payment(payment_id)
        if payment is None:
            raise NotFoundError(payment_not_found(payment_id))
        return payment

    def update_payment_status(self, payment_id: str, status: Union[PaymentStatus, str]) -> None:
        """Move a payment to another status.

        Receipt numbers already issued are kept whatever the new status is.

        Raises:
            NotFoundError: If the payment does not exist
            ValidationError: On an unknown status, or PAID without a capture time
        """
        payment = self.get_payment(payment_id)
        try:
            status = PaymentStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown payment status '{status}'")
        if status == PaymentStatus.PAID and payment.captured_at is None:
            raise ValidationError(f"Payment {payment_id} has no capture time and cannot be PAID")
        self.db.update_payment_status(payment_id, status)
        logger.info("Payment status changed", payment_id=payment_id, old=payment.status.value, new=status.value)
