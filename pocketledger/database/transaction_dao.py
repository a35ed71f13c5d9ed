from typing import Optional
from pocketledger.database.db_manager import DatabaseManager
from pocketledger.models.transaction import Transaction, TransactionFilter

# Columns a caller may patch through update().
UPDATABLE_COLUMNS = (
    "wallet_id", "type", "amount", "category_id", "description", "notes",
    "to_wallet_id", "transfer_fee", "transaction_date",
)


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class TransactionDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Transaction:
        return Transaction(
            id=row["id"],
            wallet_id=row["wallet_id"],
            type=row["type"],
            amount=row["amount"],
            transaction_date=row["transaction_date"],
            category_id=row["category_id"],
            category_name=row["category_name"] if "category_name" in row.keys() else "",
            description=row["description"],
            notes=row["notes"],
            to_wallet_id=row["to_wallet_id"],
            transfer_fee=row["transfer_fee"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _select(self) -> str:
        return """
            SELECT t.*,
                   COALESCE(c.name, '') AS category_name
            FROM transactions t
            LEFT JOIN categories c ON t.category_id = c.id
        """

    def find(self, filters: TransactionFilter) -> list[Transaction]:
        """Every predicate is always present; a None field makes it inert."""
        conn = self._db.get_connection()
        rows = conn.execute(
            self._select() + """
            WHERE (:wallet_id IS NULL OR t.wallet_id = :wallet_id)
              AND (:category_id IS NULL OR t.category_id = :category_id)
              AND (:type IS NULL OR t.type = :type)
              AND (:start IS NULL OR t.transaction_date >= :start)
              AND (:end IS NULL OR t.transaction_date <= :end)
            ORDER BY t.transaction_date DESC, t.id DESC
            LIMIT COALESCE(:limit, -1)""",
            {
                "wallet_id": filters.wallet_id,
                "category_id": filters.category_id,
                "type": filters.type,
                "start": filters.start,
                "end": filters.end,
                "limit": filters.limit,
            },
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, tx_id: int) -> Optional[Transaction]:
        conn = self._db.get_connection()
        row = conn.execute(
            self._select() + " WHERE t.id = ?", (tx_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def exists(self, tx_id: int) -> bool:
        conn = self._db.get_connection()
        row = conn.execute("SELECT 1 FROM transactions WHERE id = ?", (tx_id,)).fetchone()
        return row is not None

    def get_touching_wallet(self, wallet_id: int) -> list[Transaction]:
        """All transactions with the wallet on either leg, oldest first."""
        conn = self._db.get_connection()
        rows = conn.execute(
            self._select() + """
            WHERE t.wallet_id = ? OR t.to_wallet_id = ?
            ORDER BY t.transaction_date ASC, t.id ASC""",
            (wallet_id, wallet_id),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def search(self, term: str, limit: int) -> list[Transaction]:
        conn = self._db.get_connection()
        pattern = _like_pattern(term)
        rows = conn.execute(
            self._select() + """
            WHERE t.description LIKE ? ESCAPE '\\'
               OR t.notes LIKE ? ESCAPE '\\'
            ORDER BY t.transaction_date DESC, t.id DESC
            LIMIT ?""",
            (pattern, pattern, limit),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_summary(self, start: str | None, end: str | None) -> dict:
        """Return income/expense totals and row count within inclusive bounds."""
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT
                COALESCE(SUM(CASE WHEN type='income'  THEN amount ELSE 0 END), 0) AS income,
                COALESCE(SUM(CASE WHEN type='expense' THEN amount ELSE 0 END), 0) AS expense,
                COUNT(*) AS cnt
               FROM transactions
               WHERE (:start IS NULL OR transaction_date >= :start)
                 AND (:end IS NULL OR transaction_date <= :end)""",
            {"start": start, "end": end},
        ).fetchone()
        return {
            "income": row["income"],
            "expense": row["expense"],
            "count": row["cnt"],
        }

    def get_totals_by_category(
        self, type_: str, start: str | None, end: str | None
    ) -> list[dict]:
        """Per-category totals for one transaction type, largest first."""
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT t.category_id AS category_id,
                      c.name AS category_name,
                      c.color_hex AS color_hex,
                      SUM(t.amount) AS total_amount,
                      COUNT(*) AS transaction_count
               FROM transactions t
               LEFT JOIN categories c ON t.category_id = c.id
               WHERE t.type = :type
                 AND (:start IS NULL OR t.transaction_date >= :start)
                 AND (:end IS NULL OR t.transaction_date <= :end)
               GROUP BY t.category_id, c.name, c.color_hex
               ORDER BY total_amount DESC""",
            {"type": type_, "start": start, "end": end},
        ).fetchall()
        return [dict(r) for r in rows]

    def get_category_spending(self, category_id: int, start: str, end: str) -> tuple[float, int]:
        """(sum, count) of expense transactions for a category within [start, end]."""
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT COALESCE(SUM(amount), 0) AS spent, COUNT(*) AS cnt
               FROM transactions
               WHERE category_id = ?
                 AND type = 'expense'
                 AND transaction_date >= ?
                 AND transaction_date <= ?""",
            (category_id, start, end),
        ).fetchone()
        return row["spent"], row["cnt"]

    def get_wallet_effect(self, wallet_id: int) -> float:
        """Net balance effect of every stored transaction on one wallet."""
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT COALESCE(SUM(
                   CASE
                       WHEN t.wallet_id = :w AND t.type = 'income'  THEN t.amount
                       WHEN t.wallet_id = :w AND t.type = 'expense' THEN -t.amount
                       ELSE 0
                   END
                   + CASE
                       WHEN t.type = 'transfer' AND t.to_wallet_id IS NOT NULL
                            AND t.wallet_id = :w THEN -(t.amount + t.transfer_fee)
                       ELSE 0
                   END
                   + CASE
                       WHEN t.type = 'transfer' AND t.to_wallet_id = :w THEN t.amount
                       ELSE 0
                   END
               ), 0) AS effect
               FROM transactions t
               WHERE t.wallet_id = :w OR t.to_wallet_id = :w""",
            {"w": wallet_id},
        ).fetchone()
        return row["effect"]

    def create(
        self,
        wallet_id: int,
        type_: str,
        amount: float,
        transaction_date: str,
        category_id: int | None = None,
        description: str = "",
        notes: str = "",
        to_wallet_id: int | None = None,
        transfer_fee: float = 0.0,
    ) -> Transaction:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO transactions
               (wallet_id, type, amount, category_id, description, notes,
                to_wallet_id, transfer_fee, transaction_date)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                wallet_id, type_, amount, category_id, description, notes,
                to_wallet_id, transfer_fee, transaction_date,
            ),
        )
        return self.get_by_id(cursor.lastrowid)

    def update(self, tx_id: int, **changes) -> Optional[Transaction]:
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update transaction field(s): {', '.join(sorted(unknown))}.")
        if changes:
            assignments = ", ".join(f"{col} = ?" for col in changes)
            conn = self._db.get_connection()
            conn.execute(
                f"""UPDATE transactions
                    SET {assignments}, updated_at = datetime('now', 'localtime')
                    WHERE id = ?""",
                (*changes.values(), tx_id),
            )
        return self.get_by_id(tx_id)

    def delete(self, tx_id: int):
        conn = self._db.get_connection()
        conn.execute(
            "UPDATE lend_borrow_payments SET transaction_id = NULL WHERE transaction_id = ?",
            (tx_id,),
        )
        conn.execute(
            "UPDATE bill_reminders SET transaction_id = NULL WHERE transaction_id = ?",
            (tx_id,),
        )
        conn.execute("DELETE FROM transactions WHERE id = ?", (tx_id,))

    def upsert_row(self, row: dict):
        conn = self._db.get_connection()
        conn.execute(
            """INSERT INTO transactions
               (id, wallet_id, type, amount, category_id, description, notes,
                to_wallet_id, transfer_fee, transaction_date, created_at, updated_at)
               VALUES (:id, :wallet_id, :type, :amount, :category_id, :description,
                       :notes, :to_wallet_id, :transfer_fee, :transaction_date,
                       :created_at, :updated_at)
               ON CONFLICT(id) DO UPDATE SET
                   wallet_id = excluded.wallet_id, type = excluded.type,
                   amount = excluded.amount, category_id = excluded.category_id,
                   description = excluded.description, notes = excluded.notes,
                   to_wallet_id = excluded.to_wallet_id,
                   transfer_fee = excluded.transfer_fee,
                   transaction_date = excluded.transaction_date,
                   created_at = excluded.created_at,
                   updated_at = excluded.updated_at""",
            row,
        )
