import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from pocketledger.utils.constants import DB_FILE


class DatabaseManager:
    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or DB_FILE
        self._conn: sqlite3.Connection | None = None
        self._tx_depth = 0

    def get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed writes as one atomic unit.

        Re-entrant: only the outermost block commits or rolls back, so a
        service may call another service's write method from inside its own
        transaction.
        """
        conn = self.get_connection()
        self._tx_depth += 1
        try:
            yield conn
        except BaseException:
            self._tx_depth -= 1
            if self._tx_depth == 0:
                conn.rollback()
            raise
        else:
            self._tx_depth -= 1
            if self._tx_depth == 0:
                conn.commit()

    @property
    def in_transaction(self) -> bool:
        return self._tx_depth > 0

    def initialize(self):
        """Create schema. Defaults are seeded by the settings/category services."""
        conn = self.get_connection()
        self._create_schema(conn)
        conn.commit()

    def _create_schema(self, conn: sqlite3.Connection):
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS wallets (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                name            TEXT    NOT NULL,
                type            TEXT    NOT NULL
                    CHECK(type IN ('bank','cash','digital_wallet','credit_card')),
                balance         REAL    NOT NULL DEFAULT 0.0,
                opening_balance REAL    NOT NULL DEFAULT 0.0,
                currency        TEXT    NOT NULL DEFAULT 'INR',
                credit_limit    REAL,
                billing_date    INTEGER,
                due_date        INTEGER,
                cashback_rate   REAL,
                notes           TEXT    NOT NULL DEFAULT '',
                is_active       INTEGER NOT NULL DEFAULT 1,
                created_at      TEXT    NOT NULL DEFAULT (datetime('now', 'localtime')),
                updated_at      TEXT    NOT NULL DEFAULT (datetime('now', 'localtime'))
            );

            CREATE TABLE IF NOT EXISTS categories (
                id         INTEGER PRIMARY KEY AUTOINCREMENT,
                name       TEXT NOT NULL,
                type       TEXT NOT NULL CHECK(type IN ('expense','income')),
                color_hex  TEXT NOT NULL DEFAULT '#888888',
                parent_id  INTEGER REFERENCES categories(id),
                created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
            );

            CREATE TABLE IF NOT EXISTS transactions (
                id               INTEGER PRIMARY KEY AUTOINCREMENT,
                wallet_id        INTEGER NOT NULL REFERENCES wallets(id),
                type             TEXT NOT NULL CHECK(type IN ('income','expense','transfer')),
                amount           REAL NOT NULL,
                category_id      INTEGER REFERENCES categories(id),
                description      TEXT NOT NULL DEFAULT '',
                notes            TEXT NOT NULL DEFAULT '',
                to_wallet_id     INTEGER REFERENCES wallets(id),
                transfer_fee     REAL NOT NULL DEFAULT 0.0,
                transaction_date TEXT NOT NULL,
                created_at       TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
                updated_at       TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
            );

            CREATE INDEX IF NOT EXISTS idx_transactions_wallet_id    ON transactions(wallet_id);
            CREATE INDEX IF NOT EXISTS idx_transactions_to_wallet_id ON transactions(to_wallet_id);
            CREATE INDEX IF NOT EXISTS idx_transactions_date         ON transactions(transaction_date);
            CREATE INDEX IF NOT EXISTS idx_transactions_category_id  ON transactions(category_id);

            CREATE TABLE IF NOT EXISTS lend_borrow (
                id               INTEGER PRIMARY KEY AUTOINCREMENT,
                type             TEXT NOT NULL CHECK(type IN ('lent','borrowed')),
                person_name      TEXT NOT NULL,
                amount           REAL NOT NULL,
                remaining_amount REAL NOT NULL,
                status           TEXT NOT NULL DEFAULT 'pending'
                    CHECK(status IN ('pending','partial','completed')),
                description      TEXT NOT NULL DEFAULT '',
                notes            TEXT NOT NULL DEFAULT '',
                due_date         TEXT,
                wallet_id        INTEGER REFERENCES wallets(id),
                created_at       TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
                updated_at       TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
            );

            CREATE TABLE IF NOT EXISTS lend_borrow_payments (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                lend_borrow_id INTEGER NOT NULL REFERENCES lend_borrow(id),
                amount         REAL NOT NULL,
                payment_date   TEXT NOT NULL,
                notes          TEXT NOT NULL DEFAULT '',
                transaction_id INTEGER REFERENCES transactions(id),
                created_at     TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
            );

            CREATE INDEX IF NOT EXISTS idx_payments_lend_borrow_id ON lend_borrow_payments(lend_borrow_id);

            CREATE TABLE IF NOT EXISTS budgets (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                category_id INTEGER NOT NULL REFERENCES categories(id),
                amount      REAL NOT NULL,
                period      TEXT NOT NULL DEFAULT 'monthly' CHECK(period IN ('monthly','yearly')),
                month       INTEGER NOT NULL CHECK(month BETWEEN 1 AND 12),
                year        INTEGER NOT NULL,
                created_at  TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
                updated_at  TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
            );

            CREATE INDEX IF NOT EXISTS idx_budgets_period ON budgets(year, month);

            CREATE TABLE IF NOT EXISTS bill_reminders (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                title          TEXT NOT NULL,
                amount         REAL,
                category_id    INTEGER REFERENCES categories(id),
                wallet_id      INTEGER REFERENCES wallets(id),
                due_date       TEXT NOT NULL,
                reminder_date  TEXT,
                is_recurring   INTEGER NOT NULL DEFAULT 0,
                frequency      TEXT,
                is_paid        INTEGER NOT NULL DEFAULT 0,
                transaction_id INTEGER REFERENCES transactions(id),
                notes          TEXT NOT NULL DEFAULT '',
                created_at     TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
                updated_at     TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
            );

            CREATE INDEX IF NOT EXISTS idx_bill_reminders_due_date ON bill_reminders(due_date);

            CREATE TABLE IF NOT EXISTS app_settings (
                key        TEXT PRIMARY KEY,
                value      TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
            );
        """)

    # ── Settings (key → string) ─────────────────────────────────────────────

    def get_setting(self, key: str, default: str | None = None) -> str | None:
        conn = self.get_connection()
        row = conn.execute(
            "SELECT value FROM app_settings WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str):
        conn = self.get_connection()
        conn.execute(
            """INSERT INTO app_settings(key, value) VALUES (?, ?)
               ON CONFLICT(key)
               DO UPDATE SET value = excluded.value,
                             updated_at = datetime('now', 'localtime')""",
            (key, value),
        )

    def delete_setting(self, key: str):
        conn = self.get_connection()
        conn.execute("DELETE FROM app_settings WHERE key = ?", (key,))

    def get_all_settings(self) -> dict[str, str]:
        conn = self.get_connection()
        rows = conn.execute("SELECT key, value FROM app_settings ORDER BY key").fetchall()
        return {r["key"]: r["value"] for r in rows}

    @staticmethod
    def open(db_folder: str | None = None, db_file: str = DB_FILE) -> "DatabaseManager":
        """Startup factory: open (creating if needed) the ledger database.

        db_folder: if provided, the DB file is stored in that directory instead of CWD.
        """
        if db_folder:
            os.makedirs(db_folder, exist_ok=True)
            path = os.path.join(db_folder, db_file)
        else:
            path = db_file
        db = DatabaseManager(path)
        db.initialize()
        return db

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None
            self._tx_depth = 0
