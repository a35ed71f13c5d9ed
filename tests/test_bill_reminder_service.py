import dataclasses
from datetime import date

import pytest

from pocketledger.errors import ConstraintViolationError, NotFoundError

NOW = "2024-03-10 12:00:00"


class TestRecurring:
    def test_monthly_successor_keeps_lead_time(self, ledger):
        bill = ledger.bills.create(
            "Internet", "2024-03-15", amount=799.0,
            reminder_date="2024-03-12", is_recurring=True, frequency="monthly",
        )
        paid = ledger.bills.mark_as_paid(bill.id)
        assert paid.is_paid

        [successor] = [b for b in ledger.bills.get_all() if b.id != bill.id]
        assert successor.due_date == "2024-04-15 00:00:00"
        assert successor.reminder_date == "2024-04-12 00:00:00"
        assert successor.is_paid is False
        assert successor.is_recurring
        assert successor.amount == 799.0

    def test_paying_twice_creates_one_successor(self, ledger):
        bill = ledger.bills.create("Rent", "2024-03-15", is_recurring=True, frequency="monthly")
        ledger.bills.mark_as_paid(bill.id)
        ledger.bills.mark_as_paid(bill.id)
        successors = [b for b in ledger.bills.get_all() if b.id != bill.id]
        assert [b.due_date for b in successors] == ["2024-04-15 00:00:00"]

    def test_yearly_successor(self, ledger):
        bill = ledger.bills.create(
            "Insurance", "2024-02-29", is_recurring=True, frequency="yearly"
        )
        successor = ledger.bills.create_next_recurring(bill)
        assert successor.due_date == "2025-02-28 00:00:00"
        assert successor.reminder_date is None

    def test_month_end_clamps(self, ledger):
        bill = ledger.bills.create("Rent", "2024-01-31", is_recurring=True, frequency="monthly")
        assert ledger.bills.create_next_recurring(bill).due_date == "2024-02-29 00:00:00"

    def test_unknown_frequency_yields_nothing(self, ledger):
        bill = ledger.bills.create("Gym", "2024-01-31", is_recurring=True, frequency="monthly")
        weekly = dataclasses.replace(bill, frequency="weekly")
        assert ledger.bills.create_next_recurring(weekly) is None
        assert len(ledger.bills.get_all()) == 1

    def test_one_off_bill_has_no_successor(self, ledger):
        bill = ledger.bills.create("Repair", "2024-03-01")
        ledger.bills.mark_as_paid(bill.id)
        assert len(ledger.bills.get_all()) == 1

    def test_recurring_needs_frequency(self, ledger):
        with pytest.raises(ValueError):
            ledger.bills.create("Gym", "2024-01-31", is_recurring=True)


class TestMarkPaid:
    def test_links_transaction(self, ledger, bank):
        tx = ledger.transactions.create(bank.id, "expense", 50.0)
        bill = ledger.bills.create("Water", "2024-03-01")
        assert ledger.bills.mark_as_paid(bill.id, tx.id).transaction_id == tx.id

    def test_missing_reminder(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.bills.mark_as_paid(12)

    def test_missing_transaction_rolls_back(self, ledger):
        bill = ledger.bills.create("Water", "2024-03-01", is_recurring=True, frequency="monthly")
        with pytest.raises(ConstraintViolationError):
            ledger.bills.mark_as_paid(bill.id, 404)
        assert ledger.bills.get_by_id(bill.id).is_paid is False
        assert len(ledger.bills.get_all()) == 1

    def test_successor_failure_rolls_back_paid_flag(self, ledger, monkeypatch):
        bill = ledger.bills.create("Water", "2024-03-01", is_recurring=True, frequency="monthly")

        def boom(reminder):
            raise RuntimeError("disk full")

        monkeypatch.setattr(ledger.bills, "create_next_recurring", boom)
        with pytest.raises(RuntimeError):
            ledger.bills.mark_as_paid(bill.id)
        assert ledger.bills.get_by_id(bill.id).is_paid is False

    def test_mark_as_unpaid_clears_link(self, ledger, bank):
        tx = ledger.transactions.create(bank.id, "expense", 50.0)
        bill = ledger.bills.create("Water", "2024-03-01")
        ledger.bills.mark_as_paid(bill.id, tx.id)
        reopened = ledger.bills.mark_as_unpaid(bill.id)
        assert reopened.is_paid is False
        assert reopened.transaction_id is None

    def test_deleting_linked_transaction_clears_link(self, ledger, bank):
        tx = ledger.transactions.create(bank.id, "expense", 50.0)
        bill = ledger.bills.create("Water", "2024-03-01")
        ledger.bills.mark_as_paid(bill.id, tx.id)
        ledger.transactions.delete(tx.id)
        assert ledger.bills.get_by_id(bill.id).transaction_id is None


class TestWindows:
    @pytest.fixture
    def bills(self, ledger):
        return {
            "old": ledger.bills.create("Old", "2024-03-01", amount=10.0),
            "now": ledger.bills.create("Now", NOW, amount=20.0),
            "soon": ledger.bills.create("Soon", "2024-03-15", amount=40.0),
            "later": ledger.bills.create("Later", "2024-04-30", amount=80.0),
            "paid": ledger.bills.create("Paid", "2024-03-05", amount=160.0),
        }

    def test_upcoming(self, ledger, bills):
        ledger.bills.mark_as_paid(bills["paid"].id)
        upcoming = ledger.bills.get_upcoming(7, now=NOW)
        assert [b.title for b in upcoming] == ["Now", "Soon"]

    def test_overdue(self, ledger, bills):
        ledger.bills.mark_as_paid(bills["paid"].id)
        assert [b.title for b in ledger.bills.get_overdue(now=NOW)] == ["Old", "Now"]

    def test_due_today_half_open(self, ledger, bills):
        ledger.bills.create("Tomorrow midnight", "2024-03-11 00:00:00")
        assert [b.title for b in ledger.bills.get_due_today(date(2024, 3, 10))] == ["Now"]

    def test_summary_overlaps_on_now(self, ledger, bills):
        ledger.bills.mark_as_paid(bills["paid"].id)
        summary = ledger.bills.get_summary(now=NOW)
        assert summary["unpaid"] == {"total": 150.0, "count": 4}
        assert summary["overdue"] == {"total": 30.0, "count": 2}
        assert summary["upcoming"] == {"total": 140.0, "count": 3}

    def test_by_month_includes_paid(self, ledger, bills):
        ledger.bills.mark_as_paid(bills["paid"].id)
        titles = [b.title for b in ledger.bills.get_by_month(3, 2024)]
        assert titles == ["Old", "Paid", "Now", "Soon"]

    def test_paid_and_unpaid_lists(self, ledger, bills):
        ledger.bills.mark_as_paid(bills["paid"].id)
        assert [b.title for b in ledger.bills.get_paid()] == ["Paid"]
        assert len(ledger.bills.get_unpaid()) == 4


class TestSnoozeAndNotify:
    def test_snooze_shifts_both_dates(self, ledger):
        bill = ledger.bills.create("Card", "2024-03-28 09:30:00", reminder_date="2024-03-25 09:30:00")
        snoozed = ledger.bills.snooze(bill.id, 5)
        assert snoozed.due_date == "2024-04-02 09:30:00"
        assert snoozed.reminder_date == "2024-03-30 09:30:00"

    def test_snooze_missing(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.bills.snooze(3, 1)

    def test_reminders_to_notify(self, ledger):
        due = ledger.bills.create("Due", "2024-03-20", reminder_date="2024-03-08")
        ledger.bills.create("Not yet", "2024-03-30", reminder_date="2024-03-27")
        ledger.bills.create("No reminder", "2024-03-09")
        assert [b.id for b in ledger.bills.get_reminders_to_notify(now=NOW)] == [due.id]


class TestValidation:
    def test_unknown_wallet(self, ledger):
        with pytest.raises(ConstraintViolationError):
            ledger.bills.create("Phone", "2024-03-01", wallet_id=3)

    def test_bad_date(self, ledger):
        with pytest.raises(ValueError):
            ledger.bills.create("Phone", "next tuesday")

    def test_update(self, ledger, food):
        bill = ledger.bills.create("Phone", "2024-03-01")
        updated = ledger.bills.update(bill.id, amount=499.0, category_id=food.id)
        assert updated.amount == 499.0
        assert ledger.bills.get_by_category(food.id)[0].id == bill.id
