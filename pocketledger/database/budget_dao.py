from typing import Optional
from pocketledger.database.db_manager import DatabaseManager
from pocketledger.models.budget import Budget


class BudgetDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Budget:
        return Budget(
            id=row["id"],
            category_id=row["category_id"],
            amount=row["amount"],
            month=row["month"],
            year=row["year"],
            period=row["period"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get_all(self) -> list[Budget]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM budgets ORDER BY year, month, id"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, budget_id: int) -> Optional[Budget]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM budgets WHERE id = ?", (budget_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_by_period(self, month: int, year: int) -> list[Budget]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM budgets WHERE month = ? AND year = ? ORDER BY id",
            (month, year),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_category_and_period(
        self, category_id: int, month: int, year: int
    ) -> Optional[Budget]:
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT * FROM budgets
               WHERE category_id = ? AND month = ? AND year = ?
               ORDER BY id LIMIT 1""",
            (category_id, month, year),
        ).fetchone()
        return self._row_to_model(row) if row else None

    def create(
        self,
        category_id: int,
        amount: float,
        month: int,
        year: int,
        period: str = "monthly",
    ) -> Budget:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO budgets(category_id, amount, period, month, year)
               VALUES (?, ?, ?, ?, ?)""",
            (category_id, amount, period, month, year),
        )
        return self.get_by_id(cursor.lastrowid)

    def update(self, budget_id: int, amount: float, period: str) -> Optional[Budget]:
        conn = self._db.get_connection()
        conn.execute(
            """UPDATE budgets
               SET amount = ?, period = ?, updated_at = datetime('now', 'localtime')
               WHERE id = ?""",
            (amount, period, budget_id),
        )
        return self.get_by_id(budget_id)

    def delete(self, budget_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))

    def upsert_row(self, row: dict):
        conn = self._db.get_connection()
        conn.execute(
            """INSERT INTO budgets
               (id, category_id, amount, period, month, year, created_at, updated_at)
               VALUES (:id, :category_id, :amount, :period, :month, :year,
                       :created_at, :updated_at)
               ON CONFLICT(id) DO UPDATE SET
                   category_id = excluded.category_id, amount = excluded.amount,
                   period = excluded.period, month = excluded.month,
                   year = excluded.year, created_at = excluded.created_at,
                   updated_at = excluded.updated_at""",
            row,
        )
