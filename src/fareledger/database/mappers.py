"""Mapper functions to convert SQLAlchemy models into domain entities.

This layer isolates the conversion logic, including the naive-UTC storage
convention for datetimes.
"""

from datetime import datetime
from typing import Optional

from fareledger.domain import entities as domain
from fareledger.database.models import (
    Tenant as ORMTenant,
    Driver as ORMDriver,
    Ride as ORMRide,
    Payment as ORMPayment,
    ExportArchive as ORMExportArchive,
)
from fareledger.utils.date_parser import ensure_utc


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


def tenant_to_domain(orm_tenant: ORMTenant) -> domain.Tenant:
    """Convert SQLAlchemy Tenant model to domain Tenant entity."""
    return domain.Tenant(
        id=orm_tenant.id,
        name=orm_tenant.name,
        business_id=orm_tenant.business_id,
        vat_id=orm_tenant.vat_id,
        created_at=_utc(orm_tenant.created_at),
    )


def driver_to_domain(orm_driver: ORMDriver) -> domain.Driver:
    """Convert SQLAlchemy Driver model to domain Driver entity."""
    return domain.Driver(
        id=orm_driver.id,
        tenant_id=orm_driver.tenant_id,
        first_name=orm_driver.first_name,
        last_name=orm_driver.last_name,
    )


def ride_to_domain(orm_ride: ORMRide) -> domain.Ride:
    """Convert SQLAlchemy Ride model to domain Ride entity."""
    return domain.Ride(
        id=orm_ride.id,
        tenant_id=orm_ride.tenant_id,
        driver_id=orm_ride.driver_id,
        status=domain.RideStatus(orm_ride.status),
        started_at=_utc(orm_ride.started_at),
        ended_at=_utc(orm_ride.ended_at),
        fare_subtotal=orm_ride.fare_subtotal,
        tax_amount=orm_ride.tax_amount,
        fare_total=orm_ride.fare_total,
    )


def ride_to_context(orm_ride: ORMRide) -> domain.RideContext:
    """Project a ride and its driver into the export context."""
    driver_name = None
    if orm_ride.driver is not None:
        driver_name = driver_to_domain(orm_ride.driver).display_name or None
    return domain.RideContext(
        id=orm_ride.id,
        ended_at=_utc(orm_ride.ended_at),
        fare_subtotal=orm_ride.fare_subtotal,
        tax_amount=orm_ride.tax_amount,
        fare_total=orm_ride.fare_total,
        driver_name=driver_name,
    )


def payment_to_domain(orm_payment: ORMPayment) -> domain.Payment:
    """Convert SQLAlchemy Payment model to domain Payment entity."""
    return domain.Payment(
        id=orm_payment.id,
        tenant_id=orm_payment.tenant_id,
        ride_id=orm_payment.ride_id,
        provider=domain.PaymentProvider(orm_payment.provider),
        status=domain.PaymentStatus(orm_payment.status),
        amount=orm_payment.amount,
        currency=orm_payment.currency,
        captured_at=_utc(orm_payment.captured_at),
        external_payment_id=orm_payment.external_payment_id,
        receipt_number=orm_payment.receipt_number,
        number_period=orm_payment.number_period,
    )


def payment_to_line(orm_payment: ORMPayment) -> domain.PaymentLine:
    """Convert a payment and its optional ride into a PaymentLine."""
    ride = ride_to_context(orm_payment.ride) if orm_payment.ride is not None else None
    return domain.PaymentLine(payment=payment_to_domain(orm_payment), ride=ride)


def export_archive_to_domain(orm_archive: ORMExportArchive) -> domain.ExportArchive:
    """Convert SQLAlchemy ExportArchive model to domain ExportArchive entity."""
    return domain.ExportArchive(
        id=orm_archive.id,
        tenant_id=orm_archive.tenant_id,
        period=orm_archive.period,
        type=domain.ExportType(orm_archive.type),
        created_by=orm_archive.created_by,
        json_path=orm_archive.json_path,
        document_path=orm_archive.document_path,
        sha256=orm_archive.sha256,
        count=orm_archive.count,
        total_amount=orm_archive.total_amount,
        created_at=_utc(orm_archive.created_at),
    )
