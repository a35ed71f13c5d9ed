from typing import Optional
from pocketledger.database.db_manager import DatabaseManager
from pocketledger.models.category import Category


class CategoryDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Category:
        return Category(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            color_hex=row["color_hex"],
            parent_id=row["parent_id"],
            created_at=row["created_at"],
        )

    def get_all(self) -> list[Category]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM categories ORDER BY type, name, id"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def count(self) -> int:
        conn = self._db.get_connection()
        return conn.execute("SELECT COUNT(*) AS cnt FROM categories").fetchone()["cnt"]

    def get_by_id(self, category_id: int) -> Optional[Category]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM categories WHERE id = ?", (category_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_by_type(self, type_: str) -> list[Category]:
        """type_: 'income' or 'expense'."""
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM categories WHERE type = ? ORDER BY name, id",
            (type_,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_parents(self) -> list[Category]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM categories WHERE parent_id IS NULL ORDER BY type, name, id"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_children(self, parent_id: int) -> list[Category]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM categories WHERE parent_id = ? ORDER BY name, id",
            (parent_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def create(
        self,
        name: str,
        type_: str,
        color_hex: str = "#888888",
        parent_id: int | None = None,
    ) -> Category:
        conn = self._db.get_connection()
        cursor = conn.execute(
            "INSERT INTO categories(name, type, color_hex, parent_id) VALUES (?, ?, ?, ?)",
            (name, type_, color_hex, parent_id),
        )
        return self.get_by_id(cursor.lastrowid)

    def update(
        self,
        category_id: int,
        name: str,
        type_: str,
        color_hex: str,
        parent_id: int | None,
    ) -> Category:
        conn = self._db.get_connection()
        conn.execute(
            "UPDATE categories SET name=?, type=?, color_hex=?, parent_id=? WHERE id=?",
            (name, type_, color_hex, parent_id, category_id),
        )
        return self.get_by_id(category_id)

    def detach_and_delete(self, category_id: int):
        """Ordered removal of a single category row and what hangs off it."""
        conn = self._db.get_connection()
        conn.execute(
            "UPDATE transactions SET category_id = NULL WHERE category_id = ?",
            (category_id,),
        )
        conn.execute(
            "UPDATE bill_reminders SET category_id = NULL WHERE category_id = ?",
            (category_id,),
        )
        conn.execute("DELETE FROM budgets WHERE category_id = ?", (category_id,))
        conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))

    def upsert_row(self, row: dict):
        conn = self._db.get_connection()
        conn.execute(
            """INSERT INTO categories(id, name, type, color_hex, parent_id, created_at)
               VALUES (:id, :name, :type, :color_hex, :parent_id, :created_at)
               ON CONFLICT(id) DO UPDATE SET
                   name = excluded.name, type = excluded.type,
                   color_hex = excluded.color_hex,
                   parent_id = excluded.parent_id,
                   created_at = excluded.created_at""",
            row,
        )
