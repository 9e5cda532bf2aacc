"""Tests for Database interface returning domain models."""

from datetime import datetime, timedelta, timezone, UTC
from decimal import Decimal

from sqlalchemy import inspect

from fareledger.database.models import Base
from fareledger.domain import entities
from fareledger.domain.entities import DocumentType, PaymentProvider, PaymentStatus, RideStatus


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_initialize_schema_recreates_dropped_tables(self, temp_db):
        engine = temp_db.session_factory.kw["bind"]
        Base.metadata.drop_all(engine)
        assert inspect(engine).get_table_names() == []

        temp_db.initialize_schema()
        temp_db.initialize_schema()

        assert set(inspect(engine).get_table_names()) == set(Base.metadata.tables)
        assert temp_db.get_tenant(temp_db.create_tenant(name="Acme Taxi")).name == "Acme Taxi"

    def test_get_tenant_returns_domain_model(self, temp_db):
        tenant_id = temp_db.create_tenant(name="Acme Taxi", business_id="123", vat_id="EL123")

        tenant = temp_db.get_tenant(tenant_id)

        assert isinstance(tenant, entities.Tenant)
        assert tenant.business_id == "123"
        assert tenant.created_at.tzinfo is not None

    def test_get_missing_returns_none(self, temp_db):
        assert temp_db.get_tenant("missing") is None
        assert temp_db.get_driver("missing") is None
        assert temp_db.get_ride("missing") is None
        assert temp_db.get_payment("missing") is None
        assert temp_db.get_export_archive("missing") is None
        assert temp_db.get_payment_for_ride("missing") is None

    def test_datetimes_are_stored_as_utc(self, temp_db, sample_tenant):
        captured = datetime(2025, 1, 1, 1, 30, tzinfo=timezone(timedelta(hours=2)))
        payment_id = temp_db.create_payment(
            tenant_id=sample_tenant.id,
            provider=PaymentProvider.CASH,
            status=PaymentStatus.PAID,
            amount=Decimal("10.00"),
            captured_at=captured,
        )

        payment = temp_db.get_payment(payment_id)

        assert payment.captured_at == datetime(2024, 12, 31, 23, 30, tzinfo=UTC)
        # Falls into December, not January
        december = temp_db.list_paid_payments(
            sample_tenant.id, datetime(2024, 12, 1, tzinfo=UTC), datetime(2025, 1, 1, tzinfo=UTC)
        )
        assert [p.id for p in december] == [payment_id]

    def test_paid_payment_lines_join_rides(self, temp_db, sample_tenant, add_ride, add_payment):
        ride_id = add_ride(datetime(2025, 1, 5, tzinfo=UTC), total="20.00")
        with_ride = add_payment(datetime(2025, 1, 5, 1, tzinfo=UTC), amount="20.00", ride_id=ride_id)
        without_ride = add_payment(datetime(2025, 1, 6, tzinfo=UTC), amount="10.00")

        lines = temp_db.list_paid_payment_lines(
            sample_tenant.id, datetime(2025, 1, 1, tzinfo=UTC), datetime(2025, 2, 1, tzinfo=UTC)
        )

        assert [line.payment.id for line in lines] == [with_ride, without_ride]
        assert isinstance(lines[0].ride, entities.RideContext)
        assert lines[0].ride.fare_total == Decimal("20.00")
        assert lines[1].ride is None

    def test_completed_rides_without_paid_payment(self, temp_db, sample_tenant, add_ride, add_payment):
        unpaid = add_ride(datetime(2025, 1, 3, tzinfo=UTC))
        pending = add_ride(datetime(2025, 1, 4, tzinfo=UTC))
        add_payment(datetime(2025, 1, 4, tzinfo=UTC), status=PaymentStatus.PENDING, ride_id=pending)
        paid = add_ride(datetime(2025, 1, 5, tzinfo=UTC))
        add_payment(datetime(2025, 1, 5, tzinfo=UTC), ride_id=paid)
        add_ride(datetime(2025, 1, 6, tzinfo=UTC), status=RideStatus.ONGOING)

        rides = temp_db.list_completed_rides_without_paid_payment(
            sample_tenant.id, datetime(2025, 1, 1, tzinfo=UTC), datetime(2025, 2, 1, tzinfo=UTC)
        )

        assert [r.ride_id for r in rides] == [unpaid, pending]
        assert rides[0].ended_at == datetime(2025, 1, 3, tzinfo=UTC)

    def test_sequence_value(self, temp_db, sample_tenant):
        assert temp_db.get_sequence_value(sample_tenant.id, DocumentType.RECEIPT, "202501") is None

        with temp_db.sequence_transaction(sample_tenant.id, DocumentType.RECEIPT, "202501") as sequence:
            sequence.save_counter(7)

        assert temp_db.get_sequence_value(sample_tenant.id, DocumentType.RECEIPT, "202501") == 7

    def test_export_archives(self, temp_db, sample_tenant):
        archive_id = temp_db.create_export_archive(
            tenant_id=sample_tenant.id,
            period="202501",
            export_type=entities.ExportType.SIMPLIFIED,
            created_by="user-1",
            json_path="/tmp/a.json",
            document_path="/tmp/a.txt",
            sha256="f" * 64,
            count=2,
            total_amount=Decimal("134.50"),
        )

        archive = temp_db.get_export_archive(archive_id)
        assert isinstance(archive, entities.ExportArchive)
        assert archive.total_amount == Decimal("134.50")
        assert [a.id for a in temp_db.list_export_archives(sample_tenant.id, "202501")] == [archive_id]
        assert temp_db.list_export_archives(sample_tenant.id, "202502") == []
