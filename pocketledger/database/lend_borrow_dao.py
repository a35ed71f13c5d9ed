from typing import Optional
from pocketledger.database.db_manager import DatabaseManager
from pocketledger.models.lend_borrow import LendBorrow, LendBorrowFilter, LendBorrowPayment

UPDATABLE_COLUMNS = (
    "type", "person_name", "amount", "remaining_amount", "status",
    "description", "notes", "due_date", "wallet_id",
)


class LendBorrowDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> LendBorrow:
        return LendBorrow(
            id=row["id"],
            type=row["type"],
            person_name=row["person_name"],
            amount=row["amount"],
            remaining_amount=row["remaining_amount"],
            status=row["status"],
            description=row["description"],
            notes=row["notes"],
            due_date=row["due_date"],
            wallet_id=row["wallet_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _payment_to_model(self, row) -> LendBorrowPayment:
        return LendBorrowPayment(
            id=row["id"],
            lend_borrow_id=row["lend_borrow_id"],
            amount=row["amount"],
            payment_date=row["payment_date"],
            notes=row["notes"],
            transaction_id=row["transaction_id"],
            created_at=row["created_at"],
        )

    # ── Records ──────────────────────────────────────────────────────────────

    def find(self, filters: LendBorrowFilter) -> list[LendBorrow]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT * FROM lend_borrow
               WHERE (:type IS NULL OR type = :type)
                 AND (:status IS NULL OR status = :status)
                 AND (:person_name IS NULL OR person_name = :person_name)
               ORDER BY created_at DESC, id DESC""",
            {"type": filters.type, "status": filters.status, "person_name": filters.person_name},
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, record_id: int) -> Optional[LendBorrow]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM lend_borrow WHERE id = ?", (record_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_overdue(self, now: str) -> list[LendBorrow]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT * FROM lend_borrow
               WHERE status != 'completed'
                 AND due_date IS NOT NULL
                 AND due_date < ?
               ORDER BY due_date ASC, id ASC""",
            (now,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_totals_by_type(self, type_: str) -> dict:
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT COALESCE(SUM(amount), 0) AS total,
                      COALESCE(SUM(remaining_amount), 0) AS remaining,
                      COUNT(*) AS cnt
               FROM lend_borrow
               WHERE type = ?""",
            (type_,),
        ).fetchone()
        return {"total": row["total"], "remaining": row["remaining"], "count": row["cnt"]}

    def create(
        self,
        type_: str,
        person_name: str,
        amount: float,
        remaining_amount: float,
        status: str,
        description: str = "",
        notes: str = "",
        due_date: str | None = None,
        wallet_id: int | None = None,
    ) -> LendBorrow:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO lend_borrow
               (type, person_name, amount, remaining_amount, status,
                description, notes, due_date, wallet_id)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                type_, person_name, amount, remaining_amount, status,
                description, notes, due_date, wallet_id,
            ),
        )
        return self.get_by_id(cursor.lastrowid)

    def update(self, record_id: int, **changes) -> Optional[LendBorrow]:
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update lend/borrow field(s): {', '.join(sorted(unknown))}.")
        if changes:
            assignments = ", ".join(f"{col} = ?" for col in changes)
            conn = self._db.get_connection()
            conn.execute(
                f"""UPDATE lend_borrow
                    SET {assignments}, updated_at = datetime('now', 'localtime')
                    WHERE id = ?""",
                (*changes.values(), record_id),
            )
        return self.get_by_id(record_id)

    def delete(self, record_id: int):
        """Payments first, then the record."""
        conn = self._db.get_connection()
        conn.execute(
            "DELETE FROM lend_borrow_payments WHERE lend_borrow_id = ?", (record_id,)
        )
        conn.execute("DELETE FROM lend_borrow WHERE id = ?", (record_id,))

    # ── Payments ─────────────────────────────────────────────────────────────

    def get_payments(self, record_id: int) -> list[LendBorrowPayment]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT * FROM lend_borrow_payments
               WHERE lend_borrow_id = ?
               ORDER BY payment_date DESC, id DESC""",
            (record_id,),
        ).fetchall()
        return [self._payment_to_model(r) for r in rows]

    def get_all_payments(self) -> list[LendBorrowPayment]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM lend_borrow_payments ORDER BY id"
        ).fetchall()
        return [self._payment_to_model(r) for r in rows]

    def get_payment(self, payment_id: int) -> Optional[LendBorrowPayment]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM lend_borrow_payments WHERE id = ?", (payment_id,)
        ).fetchone()
        return self._payment_to_model(row) if row else None

    def sum_payments(self, record_id: int) -> float:
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT COALESCE(SUM(amount), 0) AS total
               FROM lend_borrow_payments WHERE lend_borrow_id = ?""",
            (record_id,),
        ).fetchone()
        return row["total"]

    def create_payment(
        self,
        record_id: int,
        amount: float,
        payment_date: str,
        notes: str = "",
        transaction_id: int | None = None,
    ) -> LendBorrowPayment:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO lend_borrow_payments
               (lend_borrow_id, amount, payment_date, notes, transaction_id)
               VALUES (?, ?, ?, ?, ?)""",
            (record_id, amount, payment_date, notes, transaction_id),
        )
        return self.get_payment(cursor.lastrowid)

    def delete_payment(self, payment_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM lend_borrow_payments WHERE id = ?", (payment_id,))

    # ── Backup import ────────────────────────────────────────────────────────

    def upsert_row(self, row: dict):
        conn = self._db.get_connection()
        conn.execute(
            """INSERT INTO lend_borrow
               (id, type, person_name, amount, remaining_amount, status,
                description, notes, due_date, wallet_id, created_at, updated_at)
               VALUES (:id, :type, :person_name, :amount, :remaining_amount,
                       :status, :description, :notes, :due_date, :wallet_id,
                       :created_at, :updated_at)
               ON CONFLICT(id) DO UPDATE SET
                   type = excluded.type, person_name = excluded.person_name,
                   amount = excluded.amount,
                   remaining_amount = excluded.remaining_amount,
                   status = excluded.status, description = excluded.description,
                   notes = excluded.notes, due_date = excluded.due_date,
                   wallet_id = excluded.wallet_id,
                   created_at = excluded.created_at,
                   updated_at = excluded.updated_at""",
            row,
        )

    def upsert_payment_row(self, row: dict):
        conn = self._db.get_connection()
        conn.execute(
            """INSERT INTO lend_borrow_payments
               (id, lend_borrow_id, amount, payment_date, notes, transaction_id, created_at)
               VALUES (:id, :lend_borrow_id, :amount, :payment_date, :notes,
                       :transaction_id, :created_at)
               ON CONFLICT(id) DO UPDATE SET
                   lend_borrow_id = excluded.lend_borrow_id,
                   amount = excluded.amount,
                   payment_date = excluded.payment_date,
                   notes = excluded.notes,
                   transaction_id = excluded.transaction_id,
                   created_at = excluded.created_at""",
            row,
        )
