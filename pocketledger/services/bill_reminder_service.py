from datetime import timedelta

import structlog

from pocketledger.database.bill_reminder_dao import BillReminderDAO, UPDATABLE_COLUMNS
from pocketledger.database.category_dao import CategoryDAO
from pocketledger.database.db_manager import DatabaseManager
from pocketledger.database.transaction_dao import TransactionDAO
from pocketledger.database.wallet_dao import WalletDAO
from pocketledger.errors import ConstraintViolationError, NotFoundError
from pocketledger.models.bill_reminder import BillReminder
from pocketledger.utils.constants import BILL_FREQUENCIES, UPCOMING_BILL_DAYS
from pocketledger.utils.date_helpers import (
    add_months, add_years, day_range, format_datetime, month_range,
    now, optional_to_storage, parse_datetime, to_storage,
)

_ADVANCE = {
    "monthly": lambda d: add_months(d, 1),
    "yearly": lambda d: add_years(d, 1),
}


class BillReminderService:
    """Bill reminders, their date windows and recurring successors."""

    def __init__(
        self,
        db: DatabaseManager,
        reminder_dao: BillReminderDAO,
        wallet_dao: WalletDAO,
        category_dao: CategoryDAO,
        tx_dao: TransactionDAO,
    ):
        self._db = db
        self._dao = reminder_dao
        self._wallet_dao = wallet_dao
        self._category_dao = category_dao
        self._tx_dao = tx_dao
        self._log = structlog.get_logger(__name__)

    # ── Queries ──────────────────────────────────────────────────────────────

    def get_all(self) -> list[BillReminder]:
        return self._dao.get_all()

    def get_by_id(self, reminder_id: int) -> BillReminder | None:
        return self._dao.get_by_id(reminder_id)

    def get_unpaid(self) -> list[BillReminder]:
        return self._dao.get_by_paid(False)

    def get_paid(self) -> list[BillReminder]:
        return self._dao.get_by_paid(True)

    def get_by_wallet(self, wallet_id: int) -> list[BillReminder]:
        return self._dao.get_by_wallet(wallet_id)

    def get_by_category(self, category_id: int) -> list[BillReminder]:
        return self._dao.get_by_category(category_id)

    def get_recurring(self) -> list[BillReminder]:
        return self._dao.get_recurring()

    def get_by_month(self, month: int, year: int) -> list[BillReminder]:
        start, end = month_range(month, year)
        return self._dao.get_due_between(start, end)

    def get_upcoming(self, days: int = UPCOMING_BILL_DAYS, now=None) -> list[BillReminder]:
        """Unpaid reminders with now <= due_date <= now + days."""
        if days < 0:
            raise ValueError("days cannot be negative.")
        start = self._now(now)
        return self._dao.get_unpaid_between(
            format_datetime(start), format_datetime(start + timedelta(days=days))
        )

    def get_overdue(self, now=None) -> list[BillReminder]:
        """Unpaid reminders with due_date <= now."""
        return self._dao.get_unpaid_between(None, format_datetime(self._now(now)))

    def get_due_today(self, today=None) -> list[BillReminder]:
        start, end = day_range((parse_datetime(today) if today else now()).date())
        return self._dao.get_unpaid_in_window(start, end)

    def get_reminders_to_notify(self, now=None) -> list[BillReminder]:
        """Unpaid reminders whose reminder_date has been reached."""
        return self._dao.get_to_notify(format_datetime(self._now(now)))

    def get_summary(self, now=None) -> dict:
        """Unpaid, overdue and upcoming totals. A bill due exactly now is in both of the last two."""
        stamp = format_datetime(self._now(now))
        return {
            "unpaid": self._dao.get_unpaid_totals(None, None),
            "overdue": self._dao.get_unpaid_totals(None, stamp),
            "upcoming": self._dao.get_unpaid_totals(stamp, None),
        }

    # ── Writes ───────────────────────────────────────────────────────────────

    def create(
        self,
        title: str,
        due_date,
        amount: float | None = None,
        category_id: int | None = None,
        wallet_id: int | None = None,
        reminder_date=None,
        is_recurring: bool = False,
        frequency: str | None = None,
        notes: str = "",
    ) -> BillReminder:
        title = self._clean_title(title)
        due = to_storage(due_date, "due date")
        remind = optional_to_storage(reminder_date, "reminder date")
        self._validate(amount, is_recurring, frequency)
        with self._db.transaction():
            self._check_references(wallet_id, category_id)
            reminder = self._dao.create(
                title=title,
                due_date=due,
                amount=amount,
                category_id=category_id,
                wallet_id=wallet_id,
                reminder_date=remind,
                is_recurring=is_recurring,
                frequency=frequency if is_recurring else None,
                notes=notes or "",
            )
        self._log.info(
            "bill_reminder_created", reminder_id=reminder.id, due_date=due, recurring=is_recurring
        )
        return reminder

    def update(self, reminder_id: int, **changes) -> BillReminder:
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update bill reminder field(s): {', '.join(sorted(unknown))}.")
        if "title" in changes:
            changes["title"] = self._clean_title(changes["title"])
        if "due_date" in changes:
            changes["due_date"] = to_storage(changes["due_date"], "due date")
        if "reminder_date" in changes:
            changes["reminder_date"] = optional_to_storage(changes["reminder_date"], "reminder date")
        with self._db.transaction():
            current = self._dao.get_by_id(reminder_id)
            if current is None:
                raise NotFoundError("BillReminder", reminder_id)
            self._validate(
                changes.get("amount", current.amount),
                changes.get("is_recurring", current.is_recurring),
                changes.get("frequency", current.frequency),
            )
            self._check_references(changes.get("wallet_id"), changes.get("category_id"))
            if changes.get("transaction_id") is not None:
                self._check_transaction(changes["transaction_id"])
            updated = self._dao.update(reminder_id, **changes)
        self._log.info("bill_reminder_updated", reminder_id=reminder_id, fields=sorted(changes))
        return updated

    def mark_as_paid(self, reminder_id: int, transaction_id: int | None = None) -> BillReminder:
        """Mark paid and, for a recurring bill, create the next one in the same unit."""
        with self._db.transaction():
            reminder = self._dao.get_by_id(reminder_id)
            if reminder is None:
                raise NotFoundError("BillReminder", reminder_id)
            if transaction_id is not None:
                self._check_transaction(transaction_id)
            updated = self._dao.update(reminder_id, is_paid=True, transaction_id=transaction_id)
            # A successor exists already once the reminder has been paid.
            successor = None
            if reminder.is_recurring and not reminder.is_paid:
                successor = self.create_next_recurring(reminder)
        self._log.info(
            "bill_marked_paid",
            reminder_id=reminder_id,
            transaction_id=transaction_id,
            successor_id=successor.id if successor else None,
        )
        return updated

    def mark_as_unpaid(self, reminder_id: int) -> BillReminder:
        with self._db.transaction():
            if self._dao.get_by_id(reminder_id) is None:
                raise NotFoundError("BillReminder", reminder_id)
            updated = self._dao.update(reminder_id, is_paid=False, transaction_id=None)
        self._log.info("bill_marked_unpaid", reminder_id=reminder_id)
        return updated

    def create_next_recurring(self, reminder: BillReminder) -> BillReminder | None:
        """Insert the next occurrence one period later, keeping the reminder lead time.

        Returns None when the reminder has no recognised frequency.
        """
        advance = _ADVANCE.get(reminder.frequency or "")
        if not reminder.is_recurring or advance is None:
            return None
        due = parse_datetime(reminder.due_date)
        next_due = advance(due)
        next_remind = None
        if reminder.reminder_date:
            lead = due - parse_datetime(reminder.reminder_date)
            next_remind = format_datetime(next_due - lead)
        with self._db.transaction():
            successor = self._dao.create(
                title=reminder.title,
                due_date=format_datetime(next_due),
                amount=reminder.amount,
                category_id=reminder.category_id,
                wallet_id=reminder.wallet_id,
                reminder_date=next_remind,
                is_recurring=True,
                frequency=reminder.frequency,
                is_paid=False,
                transaction_id=None,
                notes=reminder.notes,
            )
        self._log.info(
            "bill_recurrence_created",
            reminder_id=reminder.id,
            successor_id=successor.id,
            due_date=successor.due_date,
        )
        return successor

    def snooze(self, reminder_id: int, days: int) -> BillReminder:
        """Push due_date and reminder_date forward by whole days."""
        with self._db.transaction():
            reminder = self._dao.get_by_id(reminder_id)
            if reminder is None:
                raise NotFoundError("BillReminder", reminder_id)
            shift = timedelta(days=days)
            changes = {"due_date": format_datetime(parse_datetime(reminder.due_date) + shift)}
            if reminder.reminder_date:
                changes["reminder_date"] = format_datetime(
                    parse_datetime(reminder.reminder_date) + shift
                )
            updated = self._dao.update(reminder_id, **changes)
        self._log.info("bill_snoozed", reminder_id=reminder_id, days=days)
        return updated

    def delete(self, reminder_id: int):
        with self._db.transaction():
            self._dao.delete(reminder_id)
        self._log.info("bill_reminder_deleted", reminder_id=reminder_id)

    # ── Helpers ──────────────────────────────────────────────────────────────

    @staticmethod
    def _now(value):
        if value is None:
            return now()
        parsed = parse_datetime(value)
        if parsed is None:
            raise ValueError(f"Invalid timestamp: {value!r}")
        return parsed

    def _check_references(self, wallet_id: int | None, category_id: int | None):
        if wallet_id is not None and not self._wallet_dao.exists(wallet_id):
            raise ConstraintViolationError("Wallet", wallet_id, "wallet_id")
        if category_id is not None and self._category_dao.get_by_id(category_id) is None:
            raise ConstraintViolationError("Category", category_id, "category_id")

    def _check_transaction(self, transaction_id: int):
        if not self._tx_dao.exists(transaction_id):
            raise ConstraintViolationError("Transaction", transaction_id, "transaction_id")

    @staticmethod
    def _clean_title(title: str) -> str:
        title = (title or "").strip()
        if not title:
            raise ValueError("Bill title cannot be empty.")
        return title

    @staticmethod
    def _validate(amount: float | None, is_recurring: bool, frequency: str | None):
        if amount is not None and amount < 0:
            raise ValueError("Bill amount cannot be negative.")
        if is_recurring and frequency not in BILL_FREQUENCIES:
            raise ValueError(
                f"A recurring bill needs a frequency: {', '.join(BILL_FREQUENCIES)}."
            )
