"""Tests for sequential receipt numbering."""

import threading
from datetime import datetime, UTC, timedelta

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from fareledger.database.factories import create_sqlite_database
from fareledger.database.models import NumberSequence
from fareledger.domain.entities import DocumentType, PaymentStatus
from fareledger.domain.errors import ConflictError, IntegrityViolationError, ValidationError
from fareledger.domain.numbering import NumberingService, format_receipt_number, receipt_sequence_part

JAN_START = datetime(2025, 1, 1, tzinfo=UTC)
FEB_START = datetime(2025, 2, 1, tzinfo=UTC)


def jan(day, hour=12, minute=0):
    return datetime(2025, 1, day, hour, minute, tzinfo=UTC)


class TestReceiptNumberFormat:
    def test_zero_padded(self):
        assert format_receipt_number("202501", 1) == "202501-0001"
        assert format_receipt_number("202501", 9999) == "202501-9999"

    def test_grows_past_four_digits(self):
        assert format_receipt_number("202501", 10000) == "202501-10000"

    def test_sequence_part(self):
        assert receipt_sequence_part("202501-0042") == 42
        assert receipt_sequence_part("202501-10000") == 10000
        assert receipt_sequence_part(None) is None
        assert receipt_sequence_part("garbage") is None


class TestAssignReceiptNumbers:
    def test_numbers_paid_payments_in_capture_order(self, temp_db, numbering_service, sample_tenant, add_payment):
        third = add_payment(jan(20))
        first = add_payment(jan(5))
        second = add_payment(jan(10))

        result = numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert result.period == "202501"
        assert result.starting_number == 0
        assert result.ending_number == 3
        assert result.assigned_count == 3
        assert result.already_numbered_count == 0
        assert [a.payment_id for a in result.assigned] == [first, second, third]

        assert temp_db.get_payment(first).receipt_number == "202501-0001"
        assert temp_db.get_payment(second).receipt_number == "202501-0002"
        assert temp_db.get_payment(third).receipt_number == "202501-0003"
        assert temp_db.get_payment(third).number_period == "202501"
        assert temp_db.get_sequence_value(sample_tenant.id, DocumentType.RECEIPT, "202501") == 3

    def test_second_run_is_a_no_op(self, temp_db, numbering_service, sample_tenant, add_payment):
        add_payment(jan(5))
        add_payment(jan(6))

        first = numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)
        second = numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert first.assigned_count == 2
        assert second.assigned_count == 0
        assert second.already_numbered_count == first.assigned_count
        assert second.starting_number == second.ending_number == 2
        assert second.assigned == ()

    def test_no_payments_and_no_sequence(self, numbering_service, sample_tenant):
        result = numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert result.assigned_count == 0
        assert result.starting_number is None
        assert result.ending_number is None

    def test_new_payments_continue_the_sequence(self, temp_db, numbering_service, sample_tenant, add_payment):
        add_payment(jan(5))
        numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        late = add_payment(jan(2))
        result = numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert result.starting_number == 1
        assert result.ending_number == 2
        assert result.already_numbered_count == 1
        # Numbers are never reissued, even for an earlier capture time
        assert temp_db.get_payment(late).receipt_number == "202501-0002"

    def test_ties_on_capture_time_are_broken_by_id(self, temp_db, numbering_service, sample_tenant, add_payment):
        add_payment(jan(5), payment_id="pay-b")
        add_payment(jan(5), payment_id="pay-a")

        numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert temp_db.get_payment("pay-a").receipt_number == "202501-0001"
        assert temp_db.get_payment("pay-b").receipt_number == "202501-0002"

    def test_only_paid_payments_in_window_of_tenant_are_numbered(
        self, temp_db, numbering_service, sample_tenant, other_tenant, add_payment
    ):
        paid = add_payment(jan(5))
        pending = add_payment(jan(6), status=PaymentStatus.PENDING)
        failed = add_payment(jan(7), status=PaymentStatus.FAILED)
        refunded = add_payment(jan(8), status=PaymentStatus.REFUNDED)
        december = add_payment(datetime(2024, 12, 31, 23, 59, 59, tzinfo=UTC))
        february = add_payment(FEB_START)
        foreign = add_payment(jan(9), tenant_id=other_tenant.id)

        result = numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert result.assigned_count == 1
        assert temp_db.get_payment(paid).receipt_number == "202501-0001"
        for payment_id in (pending, failed, refunded, december, february, foreign):
            assert temp_db.get_payment(payment_id).receipt_number is None

    def test_tenants_have_independent_sequences(
        self, temp_db, numbering_service, sample_tenant, other_tenant, add_payment
    ):
        add_payment(jan(5))
        foreign = add_payment(jan(6), tenant_id=other_tenant.id)

        numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)
        numbering_service.assign_simplified_receipt_numbers(other_tenant.id, JAN_START, FEB_START)

        assert temp_db.get_payment(foreign).receipt_number == "202501-0001"

    def test_partial_window_then_full_month(self, temp_db, numbering_service, sample_tenant, add_payment):
        early = add_payment(jan(3))
        mid = add_payment(jan(15))

        numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, jan(10, 0), jan(20, 0))
        result = numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert temp_db.get_payment(mid).receipt_number == "202501-0001"
        assert temp_db.get_payment(early).receipt_number == "202501-0002"
        assert result.already_numbered_count == 1

    def test_multi_month_window_is_rejected_before_numbering(
        self, temp_db, numbering_service, sample_tenant, add_payment
    ):
        payment_id = add_payment(jan(20))

        with pytest.raises(ValidationError):
            numbering_service.assign_simplified_receipt_numbers(
                sample_tenant.id, jan(15, 0), datetime(2025, 2, 5, tzinfo=UTC)
            )

        assert temp_db.get_payment(payment_id).receipt_number is None
        assert temp_db.get_sequence_value(sample_tenant.id, DocumentType.RECEIPT, "202501") is None

    def test_payment_numbered_under_other_period_aborts(self, temp_db, numbering_service, sample_tenant, add_payment):
        add_payment(jan(5), receipt_number="202412-0007", number_period="202412")
        untouched = add_payment(jan(6))

        with pytest.raises(IntegrityViolationError, match="202412"):
            numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert temp_db.get_payment(untouched).receipt_number is None

    def test_payment_of_other_tenant_aborts_and_rolls_back(
        self, temp_db, numbering_service, sample_tenant, other_tenant, add_payment, monkeypatch
    ):
        own = add_payment(jan(5))
        foreign = add_payment(jan(6), tenant_id=other_tenant.id)
        listed = [temp_db.get_payment(own), temp_db.get_payment(foreign)]
        monkeypatch.setattr(temp_db, "list_paid_payments", lambda *args: listed)

        with pytest.raises(IntegrityViolationError, match="different tenant"):
            numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert temp_db.get_payment(own).receipt_number is None
        assert temp_db.get_sequence_value(sample_tenant.id, DocumentType.RECEIPT, "202501") is None

    def test_payment_no_longer_paid_is_skipped(self, temp_db, numbering_service, sample_tenant, add_payment, monkeypatch):
        refunded = add_payment(jan(5))
        kept = add_payment(jan(6))
        listed = [temp_db.get_payment(refunded), temp_db.get_payment(kept)]
        temp_db.update_payment_status(refunded, PaymentStatus.REFUNDED)
        monkeypatch.setattr(temp_db, "list_paid_payments", lambda *args: listed)

        result = numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert result.assigned_count == 1
        assert temp_db.get_payment(refunded).receipt_number is None
        assert temp_db.get_payment(kept).receipt_number == "202501-0001"

    def test_unique_violation_surfaces_as_conflict(self, temp_db, numbering_service, sample_tenant, add_payment):
        # A number issued without a sequence row collides with the first new number
        add_payment(jan(5), receipt_number="202501-0001", number_period="202501")
        pending = add_payment(jan(6))

        with pytest.raises(ConflictError):
            numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        assert temp_db.get_payment(pending).receipt_number is None
        assert temp_db.get_sequence_value(sample_tenant.id, DocumentType.RECEIPT, "202501") is None


class TestConcurrentNumbering:
    def test_parallel_runs_leave_no_gaps_or_repeats(self, temp_db, numbering_service, sample_tenant, add_payment):
        payment_ids = [add_payment(jan(2) + timedelta(minutes=i)) for i in range(40)]
        barrier = threading.Barrier(4)
        errors = []

        def allocate():
            db = create_sqlite_database(database_path=temp_db.database_path)
            service = NumberingService(db)
            try:
                barrier.wait()
                for _ in range(5):
                    try:
                        service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)
                    except Exception as e:
                        errors.append(e)
            finally:
                db.disconnect()

        workers = [threading.Thread(target=allocate) for _ in range(4)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        assert all(isinstance(e, ConflictError) for e in errors), errors

        # Whatever the interleaving, a later run completes the period
        numbering_service.assign_simplified_receipt_numbers(sample_tenant.id, JAN_START, FEB_START)

        numbers = sorted(receipt_sequence_part(temp_db.get_payment(p).receipt_number) for p in payment_ids)
        assert numbers == list(range(1, 41))
        assert temp_db.get_sequence_value(sample_tenant.id, DocumentType.RECEIPT, "202501") == 40


class TestSequenceTransaction:
    def test_lost_counter_update_is_a_conflict(self, temp_db, sample_tenant, add_payment):
        payment_id = add_payment(jan(5))

        with pytest.raises(ConflictError):
            with temp_db.sequence_transaction(sample_tenant.id, DocumentType.RECEIPT, "202501") as sequence:
                sequence.set_receipt_number(payment_id, "202501-0001", "202501")
                # Another writer moves the counter after it was read
                temp_db._get_session().execute(
                    update(NumberSequence).where(NumberSequence.tenant_id == sample_tenant.id).values(current=5)
                )
                sequence.save_counter(1)

        assert temp_db.get_payment(payment_id).receipt_number is None
        assert temp_db.get_sequence_value(sample_tenant.id, DocumentType.RECEIPT, "202501") is None

    def test_sequence_row_is_created_lazily(self, temp_db, sample_tenant):
        assert temp_db.get_sequence_value(sample_tenant.id, DocumentType.RECEIPT, "202503") is None

        with temp_db.sequence_transaction(sample_tenant.id, DocumentType.RECEIPT, "202503") as sequence:
            assert sequence.starting_value == 0
            sequence.save_counter(0)

        assert temp_db.get_sequence_value(sample_tenant.id, DocumentType.RECEIPT, "202503") == 0

    def test_other_errors_roll_back_and_propagate(self, temp_db, sample_tenant, add_payment):
        payment_id = add_payment(jan(5))

        with pytest.raises(RuntimeError):
            with temp_db.sequence_transaction(sample_tenant.id, DocumentType.RECEIPT, "202501") as sequence:
                sequence.set_receipt_number(payment_id, "202501-0001", "202501")
                raise RuntimeError("boom")

        assert temp_db.get_payment(payment_id).receipt_number is None

    def test_lock_failure_is_a_conflict(self, temp_db, sample_tenant, add_payment):
        payment_id = add_payment(jan(5))

        with pytest.raises(ConflictError, match="could not lock"):
            with temp_db.sequence_transaction(sample_tenant.id, DocumentType.RECEIPT, "202501") as sequence:
                sequence.set_receipt_number(payment_id, "202501-0001", "202501")
                raise OperationalError("UPDATE number_sequences", {}, Exception("database is locked"))

        assert temp_db.get_payment(payment_id).receipt_number is None
