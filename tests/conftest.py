"""Shared pytest fixtures for fareledger tests."""

import logging
import os
import tempfile
from datetime import datetime, UTC
from decimal import Decimal

import pytest

from fareledger.database.factories import create_sqlite_database
from fareledger.domain.entities import GeneratedBy, PaymentProvider, PaymentStatus, RideStatus
from fareledger.domain.export_data import ExportDataService
from fareledger.domain.fleet import FleetService
from fareledger.domain.numbering import NumberingService
from fareledger.domain.snapshot import SnapshotService

FIXED_NOW = datetime(2025, 2, 3, 10, 0, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def reset_root_logging():
    """Drop handlers installed by CLI invocations (they point at CliRunner streams)."""
    yield
    logging.root.handlers = []


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def fleet_service(temp_db):
    """Create a FleetService with a temporary database."""
    return FleetService(temp_db)


@pytest.fixture
def numbering_service(temp_db):
    """Create a NumberingService with a temporary database."""
    return NumberingService(temp_db)


@pytest.fixture
def export_data_service(temp_db):
    """Create an ExportDataService with a temporary database."""
    return ExportDataService(temp_db)


@pytest.fixture
def snapshot_service(temp_db):
    """Create a SnapshotService with a fixed clock."""
    return SnapshotService(temp_db, clock=lambda: FIXED_NOW)


@pytest.fixture
def generated_by():
    return GeneratedBy(user_id="user-1", email="ops@example.com")


@pytest.fixture
def sample_tenant(fleet_service):
    """Create a sample tenant for testing."""
    tenant_id = fleet_service.create_tenant(name="Acme Taxi", business_id="123456789", vat_id="EL123456789")
    return fleet_service.get_tenant(tenant_id)


@pytest.fixture
def other_tenant(fleet_service):
    """Create a second tenant for isolation tests."""
    tenant_id = fleet_service.create_tenant(name="Other Cabs")
    return fleet_service.get_tenant(tenant_id)


@pytest.fixture
def add_ride(temp_db, sample_tenant):
    """Factory that inserts a COMPLETED ride for the sample tenant."""

    def _add(ended_at, total=None, subtotal=None, tax=None, status=RideStatus.COMPLETED, tenant_id=None, driver_id=None):
        return temp_db.create_ride(
            tenant_id=tenant_id or sample_tenant.id,
            status=status,
            driver_id=driver_id,
            started_at=ended_at,
            ended_at=ended_at,
            fare_subtotal=Decimal(subtotal) if subtotal is not None else None,
            tax_amount=Decimal(tax) if tax is not None else None,
            fare_total=Decimal(total) if total is not None else None,
        )

    return _add


@pytest.fixture
def add_payment(temp_db, sample_tenant):
    """Factory that inserts a payment (PAID by default) for the sample tenant."""

    def _add(
        captured_at,
        amount="114.00",
        status=PaymentStatus.PAID,
        provider=PaymentProvider.CASH,
        ride_id=None,
        tenant_id=None,
        payment_id=None,
        receipt_number=None,
        number_period=None,
    ):
        return temp_db.create_payment(
            tenant_id=tenant_id or sample_tenant.id,
            provider=provider,
            status=status,
            amount=Decimal(amount),
            captured_at=captured_at,
            ride_id=ride_id,
            payment_id=payment_id,
            receipt_number=receipt_number,
            number_period=number_period,
        )

    return _add


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
