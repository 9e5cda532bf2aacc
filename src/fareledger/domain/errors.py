"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class IntegrityViolationError(ValidationError):
    """Stored data contradicts the requested operation (e.g. mixed periods)."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Transient conflict with a concurrent writer. Safe to retry."""


def invalid_date_range() -> str:
    """Return message for an unusable export window."""
    return "Invalid date range"


def window_spans_months(period_from: str, period_to: str) -> str:
    """Return message for a window covering more than one period."""
    return (
        f"Export must cover a single month (one YYYYMM period), "
        f"got {period_from} to {period_to}."
    )


def unsupported_export_type(export_type: str) -> str:
    """Return message for an export type other than simplified."""
    return f"Unsupported export type '{export_type}'. Only 'simplified' is supported in v1."


def tenant_not_found(tenant_id: str) -> str:
    """Return message for missing tenant."""
    return f"Tenant {tenant_id} not found"


def payment_not_found(payment_id: str) -> str:
    """Return message for missing payment."""
    return f"Payment {payment_id} not found"


def ride_not_found(ride_id: str) -> str:
    """Return message for missing ride."""
    return f"Ride {ride_id} not found"


def archive_not_found(archive_id: str) -> str:
    """Return message for missing export archive."""
    return f"Export archive {archive_id} not found"


def period_mismatch(payment_id: str, number_period: str, period: str) -> str:
    """Return message for a payment numbered under another period."""
    return (
        f"Payment {payment_id} already has numberPeriod={number_period}, "
        f"not {period}. Refuse to mix periods."
    )


def captured_outside_period(payment_id: str, captured_period: str, period: str) -> str:
    """Return message for a payment whose capture month is not the export period."""
    return f"Payment {payment_id} captured in {captured_period}, but export period is {period}."


def foreign_tenant_payment(payment_id: str) -> str:
    """Return message for a payment that belongs to a different tenant."""
    return f"Payment {payment_id} belongs to a different tenant."
