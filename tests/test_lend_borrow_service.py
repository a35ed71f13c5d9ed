import pytest

from pocketledger.errors import ConstraintViolationError, InvalidStateError, NotFoundError
from pocketledger.models.lend_borrow import LendBorrowFilter, derive_status


class TestDeriveStatus:
    @pytest.mark.parametrize("amount,remaining,expected", [
        (5000.0, 5000.0, "pending"),
        (5000.0, 3000.0, "partial"),
        (5000.0, 0.0, "completed"),
        (5000.0, -1.0, "completed"),
    ])
    def test_status_from_remaining(self, amount, remaining, expected):
        assert derive_status(amount, remaining) == expected


class TestRecords:
    def test_defaults(self, ledger):
        record = ledger.lend_borrow.create("lent", "Asha", 5000.0)
        assert record.remaining_amount == 5000.0
        assert record.status == "pending"

    def test_explicit_remaining(self, ledger):
        record = ledger.lend_borrow.create("borrowed", "Bank loan", 1000.0, remaining_amount=400.0)
        assert record.status == "partial"
        [opening] = ledger.lend_borrow.get_payments(record.id)
        assert opening.amount == 600.0

    def test_explicit_remaining_survives_notes_update(self, ledger):
        record = ledger.lend_borrow.create("borrowed", "Bank loan", 1000.0, remaining_amount=400.0)
        updated = ledger.lend_borrow.update(record.id, notes="refinanced")
        assert (updated.remaining_amount, updated.status) == (400.0, "partial")

    def test_payment_reduces_explicit_remaining(self, ledger):
        record = ledger.lend_borrow.create("borrowed", "Bank loan", 1000.0, remaining_amount=400.0)
        ledger.lend_borrow.add_payment(record.id, 100.0)
        after = ledger.lend_borrow.get_by_id(record.id)
        assert (after.remaining_amount, after.status) == (300.0, "partial")
        ledger.lend_borrow.add_payment(record.id, 300.0)
        assert ledger.lend_borrow.get_by_id(record.id).status == "completed"

    def test_explicit_zero_remaining_is_completed(self, ledger):
        record = ledger.lend_borrow.create("lent", "Asha", 250.0, remaining_amount=0.0)
        assert record.status == "completed"
        assert ledger.lend_borrow.get_with_payments(record.id)["total_paid"] == 250.0

    @pytest.mark.parametrize("remaining,status", [
        (1000.0, "completed"),
        (1000.0, "partial"),
        (400.0, "pending"),
        (0.0, "partial"),
    ])
    def test_status_must_agree_with_remaining(self, ledger, remaining, status):
        with pytest.raises(ValueError):
            ledger.lend_borrow.create(
                "lent", "Asha", 1000.0, remaining_amount=remaining, status=status
            )
        assert ledger.lend_borrow.get_all() == []

    def test_matching_status_is_accepted(self, ledger):
        record = ledger.lend_borrow.create(
            "lent", "Asha", 1000.0, remaining_amount=400.0, status="partial"
        )
        assert record.status == "partial"

    @pytest.mark.parametrize("kwargs", [
        {"type_": "gifted", "person_name": "A", "amount": 1.0},
        {"type_": "lent", "person_name": " ", "amount": 1.0},
        {"type_": "lent", "person_name": "A", "amount": 0.0},
        {"type_": "lent", "person_name": "A", "amount": 10.0, "remaining_amount": 11.0},
    ])
    def test_invalid(self, ledger, kwargs):
        with pytest.raises(ValueError):
            ledger.lend_borrow.create(**kwargs)

    def test_missing_wallet(self, ledger):
        with pytest.raises(ConstraintViolationError):
            ledger.lend_borrow.create("lent", "Asha", 10.0, wallet_id=8)

    def test_filters(self, ledger):
        a = ledger.lend_borrow.create("lent", "Asha", 100.0)
        b = ledger.lend_borrow.create("borrowed", "Ravi", 200.0)
        c = ledger.lend_borrow.create("lent", "Ravi", 300.0)
        ledger.lend_borrow.add_payment(c.id, 50.0)
        assert {r.id for r in ledger.lend_borrow.get_lent_records()} == {a.id, c.id}
        assert [r.id for r in ledger.lend_borrow.get_lent_records("partial")] == [c.id]
        assert [r.id for r in ledger.lend_borrow.get_borrowed_records()] == [b.id]
        assert {r.id for r in ledger.lend_borrow.get_by_person("Ravi")} == {b.id, c.id}
        assert {r.id for r in ledger.lend_borrow.get_pending_records()} == {a.id, b.id}
        found = ledger.lend_borrow.find(LendBorrowFilter(type="lent", person_name="Asha"))
        assert [r.id for r in found] == [a.id]

    def test_find_rejects_unknown_status(self, ledger):
        with pytest.raises(ValueError):
            ledger.lend_borrow.find(LendBorrowFilter(status="overdue"))

    def test_overdue(self, ledger):
        late = ledger.lend_borrow.create("lent", "A", 10.0, due_date="2024-01-10")
        ledger.lend_borrow.create("lent", "B", 10.0, due_date="2024-03-01")
        done = ledger.lend_borrow.create("lent", "C", 10.0, due_date="2024-01-01")
        ledger.lend_borrow.add_payment(done.id, 10.0)
        ledger.lend_borrow.create("lent", "D", 10.0)
        overdue = ledger.lend_borrow.get_overdue_records(now="2024-02-01 12:00:00")
        assert [r.id for r in overdue] == [late.id]

    def test_update_amount_rederives_remaining(self, ledger):
        record = ledger.lend_borrow.create("lent", "Asha", 1000.0)
        ledger.lend_borrow.add_payment(record.id, 400.0)
        updated = ledger.lend_borrow.update(record.id, amount=400.0)
        assert updated.remaining_amount == 0.0
        assert updated.status == "completed"

    def test_update_cannot_set_status(self, ledger):
        record = ledger.lend_borrow.create("lent", "Asha", 1000.0)
        with pytest.raises(ValueError):
            ledger.lend_borrow.update(record.id, status="completed")

    def test_delete_removes_payments(self, ledger):
        record = ledger.lend_borrow.create("lent", "Asha", 1000.0)
        payment = ledger.lend_borrow.add_payment(record.id, 100.0)
        ledger.lend_borrow.delete(record.id)
        assert ledger.lend_borrow.get_by_id(record.id) is None
        with pytest.raises(NotFoundError):
            ledger.lend_borrow.delete_payment(payment.id)


class TestPayments:
    def test_status_follows_payments(self, ledger):
        record = ledger.lend_borrow.create("lent", "Asha", 5000.0)

        ledger.lend_borrow.add_payment(record.id, 2000.0, payment_date="2024-01-01")
        after_first = ledger.lend_borrow.get_by_id(record.id)
        assert (after_first.remaining_amount, after_first.status) == (3000.0, "partial")

        second = ledger.lend_borrow.add_payment(record.id, 3000.0, payment_date="2024-02-01")
        after_second = ledger.lend_borrow.get_by_id(record.id)
        assert (after_second.remaining_amount, after_second.status) == (0.0, "completed")

        ledger.lend_borrow.delete_payment(second.id)
        reverted = ledger.lend_borrow.get_by_id(record.id)
        assert (reverted.remaining_amount, reverted.status) == (3000.0, "partial")

    def test_overpayment_clamps_to_zero(self, ledger):
        record = ledger.lend_borrow.create("borrowed", "Ravi", 100.0)
        ledger.lend_borrow.add_payment(record.id, 150.0)
        assert ledger.lend_borrow.get_by_id(record.id).remaining_amount == 0.0

    def test_missing_record(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.lend_borrow.add_payment(77, 10.0)

    def test_missing_payment(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.lend_borrow.delete_payment(77)

    def test_non_positive_payment(self, ledger):
        record = ledger.lend_borrow.create("lent", "Asha", 100.0)
        with pytest.raises(ValueError):
            ledger.lend_borrow.add_payment(record.id, 0)

    def test_payments_newest_first(self, ledger):
        record = ledger.lend_borrow.create("lent", "Asha", 100.0)
        ledger.lend_borrow.add_payment(record.id, 10.0, payment_date="2024-01-01")
        ledger.lend_borrow.add_payment(record.id, 20.0, payment_date="2024-03-01")
        assert [p.amount for p in ledger.lend_borrow.get_payments(record.id)] == [20.0, 10.0]

    def test_with_payments(self, ledger):
        record = ledger.lend_borrow.create("lent", "Asha", 200.0)
        ledger.lend_borrow.add_payment(record.id, 50.0)
        detail = ledger.lend_borrow.get_with_payments(record.id)
        assert detail["total_paid"] == 50.0
        assert detail["payment_percentage"] == 25.0
        assert len(detail["payments"]) == 1
        assert ledger.lend_borrow.get_with_payments(999) is None


class TestBookedPayments:
    def test_lent_repayment_is_income(self, ledger, bank):
        record = ledger.lend_borrow.create("lent", "Asha", 500.0, wallet_id=bank.id)
        payment = ledger.lend_borrow.add_payment(record.id, 200.0, record_transaction=True)
        tx = ledger.transactions.get_by_id(payment.transaction_id)
        assert tx.type == "income"
        assert tx.amount == 200.0
        assert ledger.wallets.get_by_id(bank.id).balance == 1200.0

    def test_borrowed_repayment_is_expense(self, ledger, bank):
        record = ledger.lend_borrow.create("borrowed", "Ravi", 500.0, wallet_id=bank.id)
        ledger.lend_borrow.add_payment(record.id, 200.0, record_transaction=True)
        assert ledger.wallets.get_by_id(bank.id).balance == 800.0

    def test_deleting_booked_payment_reverses_transaction(self, ledger, bank):
        record = ledger.lend_borrow.create("lent", "Asha", 500.0, wallet_id=bank.id)
        payment = ledger.lend_borrow.add_payment(record.id, 200.0, record_transaction=True)
        ledger.lend_borrow.delete_payment(payment.id)
        assert ledger.transactions.get_by_id(payment.transaction_id) is None
        assert ledger.wallets.get_by_id(bank.id).balance == 1000.0
        assert ledger.lend_borrow.get_by_id(record.id).status == "pending"

    def test_booking_needs_a_wallet(self, ledger):
        record = ledger.lend_borrow.create("lent", "Asha", 500.0)
        with pytest.raises(InvalidStateError):
            ledger.lend_borrow.add_payment(record.id, 100.0, record_transaction=True)
        assert ledger.lend_borrow.get_payments(record.id) == []


class TestSummary:
    def test_totals_by_direction(self, ledger):
        lent = ledger.lend_borrow.create("lent", "Asha", 1000.0)
        ledger.lend_borrow.create("lent", "Ravi", 500.0)
        borrowed = ledger.lend_borrow.create("borrowed", "Bank", 800.0)
        ledger.lend_borrow.add_payment(lent.id, 400.0)
        ledger.lend_borrow.add_payment(borrowed.id, 300.0)

        summary = ledger.lend_borrow.get_summary()
        assert summary["lent"] == {"total": 1500.0, "remaining": 1100.0, "received": 400.0, "count": 2}
        assert summary["borrowed"] == {"total": 800.0, "remaining": 500.0, "paid": 300.0, "count": 1}
        assert summary["net_amount"] == 600.0
