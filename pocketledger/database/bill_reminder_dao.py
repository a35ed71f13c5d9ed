from typing import Optional
from pocketledger.database.db_manager import DatabaseManager
from pocketledger.models.bill_reminder import BillReminder

UPDATABLE_COLUMNS = (
    "title", "amount", "category_id", "wallet_id", "due_date", "reminder_date",
    "is_recurring", "frequency", "is_paid", "transaction_id", "notes",
)
_BOOL_COLUMNS = ("is_recurring", "is_paid")


class BillReminderDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> BillReminder:
        return BillReminder(
            id=row["id"],
            title=row["title"],
            due_date=row["due_date"],
            amount=row["amount"],
            category_id=row["category_id"],
            wallet_id=row["wallet_id"],
            reminder_date=row["reminder_date"],
            is_recurring=bool(row["is_recurring"]),
            frequency=row["frequency"],
            is_paid=bool(row["is_paid"]),
            transaction_id=row["transaction_id"],
            notes=row["notes"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _fetch(self, where: str, params=()) -> list[BillReminder]:
        conn = self._db.get_connection()
        rows = conn.execute(
            f"SELECT * FROM bill_reminders WHERE {where} ORDER BY due_date ASC, id ASC",
            params,
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_all(self) -> list[BillReminder]:
        return self._fetch("1=1")

    def get_by_id(self, reminder_id: int) -> Optional[BillReminder]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM bill_reminders WHERE id = ?", (reminder_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_by_paid(self, is_paid: bool) -> list[BillReminder]:
        return self._fetch("is_paid = ?", (1 if is_paid else 0,))

    def get_unpaid_between(self, start: str | None, end: str | None) -> list[BillReminder]:
        """Unpaid reminders with start <= due_date <= end (None = unbounded)."""
        return self._fetch(
            """is_paid = 0
               AND (:start IS NULL OR due_date >= :start)
               AND (:end IS NULL OR due_date <= :end)""",
            {"start": start, "end": end},
        )

    def get_unpaid_in_window(self, start: str, end_exclusive: str) -> list[BillReminder]:
        return self._fetch(
            "is_paid = 0 AND due_date >= ? AND due_date < ?", (start, end_exclusive)
        )

    def get_due_between(self, start: str, end: str) -> list[BillReminder]:
        return self._fetch("due_date >= ? AND due_date <= ?", (start, end))

    def get_by_wallet(self, wallet_id: int) -> list[BillReminder]:
        return self._fetch("wallet_id = ?", (wallet_id,))

    def get_by_category(self, category_id: int) -> list[BillReminder]:
        return self._fetch("category_id = ?", (category_id,))

    def get_recurring(self) -> list[BillReminder]:
        return self._fetch("is_recurring = 1")

    def get_to_notify(self, now: str) -> list[BillReminder]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT * FROM bill_reminders
               WHERE is_paid = 0
                 AND reminder_date IS NOT NULL
                 AND reminder_date <= ?
               ORDER BY reminder_date ASC, id ASC""",
            (now,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_unpaid_totals(self, start: str | None, end: str | None) -> dict:
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT COALESCE(SUM(amount), 0) AS total, COUNT(*) AS cnt
               FROM bill_reminders
               WHERE is_paid = 0
                 AND (:start IS NULL OR due_date >= :start)
                 AND (:end IS NULL OR due_date <= :end)""",
            {"start": start, "end": end},
        ).fetchone()
        return {"total": row["total"], "count": row["cnt"]}

    def create(
        self,
        title: str,
        due_date: str,
        amount: float | None = None,
        category_id: int | None = None,
        wallet_id: int | None = None,
        reminder_date: str | None = None,
        is_recurring: bool = False,
        frequency: str | None = None,
        is_paid: bool = False,
        transaction_id: int | None = None,
        notes: str = "",
    ) -> BillReminder:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO bill_reminders
               (title, amount, category_id, wallet_id, due_date, reminder_date,
                is_recurring, frequency, is_paid, transaction_id, notes)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                title, amount, category_id, wallet_id, due_date, reminder_date,
                1 if is_recurring else 0, frequency, 1 if is_paid else 0,
                transaction_id, notes,
            ),
        )
        return self.get_by_id(cursor.lastrowid)

    def update(self, reminder_id: int, **changes) -> Optional[BillReminder]:
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update bill reminder field(s): {', '.join(sorted(unknown))}.")
        if changes:
            for col in _BOOL_COLUMNS:
                if col in changes:
                    changes[col] = 1 if changes[col] else 0
            assignments = ", ".join(f"{col} = ?" for col in changes)
            conn = self._db.get_connection()
            conn.execute(
                f"""UPDATE bill_reminders
                    SET {assignments}, updated_at = datetime('now', 'localtime')
                    WHERE id = ?""",
                (*changes.values(), reminder_id),
            )
        return self.get_by_id(reminder_id)

    def delete(self, reminder_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM bill_reminders WHERE id = ?", (reminder_id,))

    def upsert_row(self, row: dict):
        conn = self._db.get_connection()
        conn.execute(
            """INSERT INTO bill_reminders
               (id, title, amount, category_id, wallet_id, due_date, reminder_date,
                is_recurring, frequency, is_paid, transaction_id, notes,
                created_at, updated_at)
               VALUES (:id, :title, :amount, :category_id, :wallet_id, :due_date,
                       :reminder_date, :is_recurring, :frequency, :is_paid,
                       :transaction_id, :notes, :created_at, :updated_at)
               ON CONFLICT(id) DO UPDATE SET
                   title = excluded.title, amount = excluded.amount,
                   category_id = excluded.category_id,
                   wallet_id = excluded.wallet_id, due_date = excluded.due_date,
                   reminder_date = excluded.reminder_date,
                   is_recurring = excluded.is_recurring,
                   frequency = excluded.frequency, is_paid = excluded.is_paid,
                   transaction_id = excluded.transaction_id,
                   notes = excluded.notes, created_at = excluded.created_at,
                   updated_at = excluded.updated_at""",
            row,
        )
