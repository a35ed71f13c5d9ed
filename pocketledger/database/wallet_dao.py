from typing import Optional
from pocketledger.database.db_manager import DatabaseManager
from pocketledger.models.wallet import Wallet

# Columns a caller may change through update(); balance moves only via adjust_balance().
UPDATABLE_COLUMNS = (
    "name", "type", "currency", "credit_limit", "billing_date", "due_date",
    "cashback_rate", "notes", "is_active",
)


class WalletDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Wallet:
        return Wallet(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            balance=row["balance"],
            opening_balance=row["opening_balance"],
            currency=row["currency"],
            credit_limit=row["credit_limit"],
            billing_date=row["billing_date"],
            due_date=row["due_date"],
            cashback_rate=row["cashback_rate"],
            notes=row["notes"],
            is_active=bool(row["is_active"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get_all(self, include_inactive: bool = False) -> list[Wallet]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT * FROM wallets
               WHERE ? = 1 OR is_active = 1
               ORDER BY created_at DESC, id DESC""",
            (1 if include_inactive else 0,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, wallet_id: int) -> Optional[Wallet]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM wallets WHERE id = ?", (wallet_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_by_type(self, type_: str) -> list[Wallet]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT * FROM wallets
               WHERE type = ? AND is_active = 1
               ORDER BY created_at DESC, id DESC""",
            (type_,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def exists(self, wallet_id: int) -> bool:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT 1 FROM wallets WHERE id = ?", (wallet_id,)
        ).fetchone()
        return row is not None

    def create(
        self,
        name: str,
        type_: str,
        opening_balance: float = 0.0,
        currency: str = "INR",
        credit_limit: float | None = None,
        billing_date: int | None = None,
        due_date: int | None = None,
        cashback_rate: float | None = None,
        notes: str = "",
        is_active: bool = True,
    ) -> Wallet:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO wallets
               (name, type, balance, opening_balance, currency, credit_limit,
                billing_date, due_date, cashback_rate, notes, is_active)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                name, type_, opening_balance, opening_balance, currency,
                credit_limit, billing_date, due_date, cashback_rate, notes,
                1 if is_active else 0,
            ),
        )
        return self.get_by_id(cursor.lastrowid)

    def update(self, wallet_id: int, **changes) -> Optional[Wallet]:
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update wallet field(s): {', '.join(sorted(unknown))}.")
        if changes:
            if "is_active" in changes:
                changes["is_active"] = 1 if changes["is_active"] else 0
            assignments = ", ".join(f"{col} = ?" for col in changes)
            conn = self._db.get_connection()
            conn.execute(
                f"""UPDATE wallets
                    SET {assignments}, updated_at = datetime('now', 'localtime')
                    WHERE id = ?""",
                (*changes.values(), wallet_id),
            )
        return self.get_by_id(wallet_id)

    def adjust_balance(self, wallet_id: int, delta: float):
        conn = self._db.get_connection()
        conn.execute(
            """UPDATE wallets
               SET balance = balance + ?, updated_at = datetime('now', 'localtime')
               WHERE id = ?""",
            (delta, wallet_id),
        )

    def set_balance(self, wallet_id: int, balance: float):
        conn = self._db.get_connection()
        conn.execute(
            """UPDATE wallets
               SET balance = ?, updated_at = datetime('now', 'localtime')
               WHERE id = ?""",
            (balance, wallet_id),
        )

    def delete(self, wallet_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM wallets WHERE id = ?", (wallet_id,))

    def detach_references(self, wallet_id: int):
        """Null optional references to the wallet ahead of deleting it."""
        conn = self._db.get_connection()
        conn.execute(
            "UPDATE lend_borrow SET wallet_id = NULL WHERE wallet_id = ?", (wallet_id,)
        )
        conn.execute(
            "UPDATE bill_reminders SET wallet_id = NULL WHERE wallet_id = ?", (wallet_id,)
        )

    def get_total_balance(self) -> float:
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT COALESCE(SUM(balance), 0) AS total
               FROM wallets
               WHERE is_active = 1 AND type != 'credit_card'"""
        ).fetchone()
        return row["total"]

    def get_total_credit_card_debt(self) -> float:
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT COALESCE(SUM(ABS(balance)), 0) AS total
               FROM wallets
               WHERE is_active = 1 AND type = 'credit_card'"""
        ).fetchone()
        return row["total"]

    def upsert_row(self, row: dict):
        """Insert or replace a wallet by id exactly as given (backup import)."""
        conn = self._db.get_connection()
        conn.execute(
            """INSERT INTO wallets
               (id, name, type, balance, opening_balance, currency, credit_limit,
                billing_date, due_date, cashback_rate, notes, is_active,
                created_at, updated_at)
               VALUES (:id, :name, :type, :balance, :opening_balance, :currency,
                       :credit_limit, :billing_date, :due_date, :cashback_rate,
                       :notes, :is_active, :created_at, :updated_at)
               ON CONFLICT(id) DO UPDATE SET
                   name = excluded.name, type = excluded.type,
                   balance = excluded.balance,
                   opening_balance = excluded.opening_balance,
                   currency = excluded.currency,
                   credit_limit = excluded.credit_limit,
                   billing_date = excluded.billing_date,
                   due_date = excluded.due_date,
                   cashback_rate = excluded.cashback_rate,
                   notes = excluded.notes, is_active = excluded.is_active,
                   created_at = excluded.created_at,
                   updated_at = excluded.updated_at""",
            row,
        )
