"""SQLAlchemy models for fareledger database.

Datetime columns hold naive UTC values; the mappers attach UTC on the way out.
"""

import uuid
from datetime import datetime, UTC

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Numeric,
    UniqueConstraint,
    Index,
    create_engine,
    event,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Tenant(Base):
    """Fleet operator model."""

    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    business_id = Column(String, nullable=True)
    vat_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    drivers = relationship("Driver", back_populates="tenant")


class Driver(Base):
    """Driver profile model."""

    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    tenant = relationship("Tenant", back_populates="drivers")
    rides = relationship("Ride", back_populates="driver")


class Ride(Base):
    """Ride model."""

    __tablename__ = "rides"

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    driver_id = Column(String(36), ForeignKey("drivers.id"), nullable=True)
    status = Column(String(16), nullable=False)
    started_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)
    fare_subtotal = Column(Numeric(10, 2), nullable=True)
    tax_amount = Column(Numeric(10, 2), nullable=True)
    fare_total = Column(Numeric(10, 2), nullable=True)

    __table_args__ = (Index("ix_rides_tenant_status_ended", "tenant_id", "status", "ended_at"),)

    driver = relationship("Driver", back_populates="rides")
    payment = relationship("Payment", back_populates="ride", uselist=False)


class Payment(Base):
    """Payment model. One payment per ride at most."""

    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    ride_id = Column(String(36), ForeignKey("rides.id"), nullable=True, unique=True)
    provider = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), default="EUR", nullable=False)
    captured_at = Column(DateTime, nullable=True)
    external_payment_id = Column(String, nullable=True)
    receipt_number = Column(String, nullable=True)
    number_period = Column(String(6), nullable=True)

    # Backstop for numbering when the store cannot serialize allocators
    __table_args__ = (
        UniqueConstraint("tenant_id", "number_period", "receipt_number", name="uq_payment_receipt_number"),
        Index("ix_payments_tenant_status_captured", "tenant_id", "status", "captured_at"),
    )

    ride = relationship("Ride", back_populates="payment")


class NumberSequence(Base):
    """Last issued number per (tenant, document type, period)."""

    __tablename__ = "number_sequences"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    type = Column(String(16), nullable=False)
    period = Column(String(6), nullable=False)
    current = Column(Integer, default=0, nullable=False)

    __table_args__ = (UniqueConstraint("tenant_id", "type", "period", name="uq_number_sequence_key"),)


class ExportArchive(Base):
    """Archived export artifacts."""

    __tablename__ = "export_archives"

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    period = Column(String(6), nullable=False)
    type = Column(String(16), nullable=False)
    created_by = Column(String, nullable=False)
    json_path = Column(String, nullable=False)
    document_path = Column(String, nullable=False)
    sha256 = Column(String(64), nullable=False)
    count = Column(Integer, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
