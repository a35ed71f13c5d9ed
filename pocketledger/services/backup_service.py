"""JSON backup of the whole ledger.

The envelope is ``{"version": "1.0", "timestamp": ..., "data": {...}}`` with one
array per table (settings as a key/value object). Import validates the
envelope with pydantic before touching the database, then upserts by id in
foreign-key order inside a single DB transaction. Rows are written exactly as
exported; wallet balances are restored from the backup, not recomputed.
"""
from datetime import datetime
from typing import Literal, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from pocketledger.database.bill_reminder_dao import BillReminderDAO
from pocketledger.database.budget_dao import BudgetDAO
from pocketledger.database.category_dao import CategoryDAO
from pocketledger.database.db_manager import DatabaseManager
from pocketledger.database.lend_borrow_dao import LendBorrowDAO
from pocketledger.database.transaction_dao import TransactionDAO
from pocketledger.database.wallet_dao import WalletDAO
from pocketledger.models.lend_borrow import LendBorrowFilter
from pocketledger.models.transaction import TransactionFilter
from pocketledger.utils.constants import BACKUP_VERSION
from pocketledger.utils.date_helpers import now, now_str


class _Row(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class WalletRow(_Row):
    id: int
    name: str
    type: Literal["bank", "cash", "digital_wallet", "credit_card"]
    balance: float = 0.0
    opening_balance: float = 0.0
    currency: str = "INR"
    credit_limit: Optional[float] = None
    billing_date: Optional[int] = Field(default=None, ge=1, le=31)
    due_date: Optional[int] = Field(default=None, ge=1, le=31)
    cashback_rate: Optional[float] = None
    notes: str = ""
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CategoryRow(_Row):
    id: int
    name: str
    type: Literal["expense", "income"]
    color_hex: str = "#888888"
    parent_id: Optional[int] = None
    created_at: Optional[str] = None


class TransactionRow(_Row):
    id: int
    wallet_id: int
    type: Literal["income", "expense", "transfer"]
    amount: float
    transaction_date: str
    category_id: Optional[int] = None
    description: str = ""
    notes: str = ""
    to_wallet_id: Optional[int] = None
    transfer_fee: float = 0.0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class LendBorrowRow(_Row):
    id: int
    type: Literal["lent", "borrowed"]
    person_name: str
    amount: float
    remaining_amount: float
    status: Literal["pending", "partial", "completed"] = "pending"
    description: str = ""
    notes: str = ""
    due_date: Optional[str] = None
    wallet_id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class LendBorrowPaymentRow(_Row):
    id: int
    lend_borrow_id: int
    amount: float
    payment_date: str
    notes: str = ""
    transaction_id: Optional[int] = None
    created_at: Optional[str] = None


class BudgetRow(_Row):
    id: int
    category_id: int
    amount: float = Field(ge=0)
    month: int = Field(ge=1, le=12)
    year: int
    period: Literal["monthly", "yearly"] = "monthly"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class BillReminderRow(_Row):
    id: int
    title: str
    due_date: str
    amount: Optional[float] = None
    category_id: Optional[int] = None
    wallet_id: Optional[int] = None
    reminder_date: Optional[str] = None
    is_recurring: bool = False
    frequency: Optional[str] = None
    is_paid: bool = False
    transaction_id: Optional[int] = None
    notes: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class BackupData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    wallets: list[WalletRow] = []
    categories: list[CategoryRow] = []
    transactions: list[TransactionRow] = []
    lend_borrow: list[LendBorrowRow] = Field(default=[], alias="lendBorrow")
    lend_borrow_payments: list[LendBorrowPaymentRow] = Field(
        default=[], alias="lendBorrowPayments"
    )
    budgets: list[BudgetRow] = []
    bill_reminders: list[BillReminderRow] = Field(default=[], alias="billReminders")
    settings: dict[str, Optional[str]] = {}


class BackupEnvelope(BaseModel):
    version: str
    timestamp: datetime
    data: BackupData

    @field_validator("version")
    @classmethod
    def check_version(cls, v: str) -> str:
        if v != BACKUP_VERSION:
            raise ValueError(f"Unsupported backup version {v!r}; expected {BACKUP_VERSION!r}.")
        return v


class BackupService:
    def __init__(
        self,
        db: DatabaseManager,
        wallet_dao: WalletDAO,
        category_dao: CategoryDAO,
        tx_dao: TransactionDAO,
        lend_borrow_dao: LendBorrowDAO,
        budget_dao: BudgetDAO,
        reminder_dao: BillReminderDAO,
    ):
        self._db = db
        self._wallet_dao = wallet_dao
        self._category_dao = category_dao
        self._tx_dao = tx_dao
        self._lb_dao = lend_borrow_dao
        self._budget_dao = budget_dao
        self._reminder_dao = reminder_dao
        self._log = structlog.get_logger(__name__)

    # ── Export ───────────────────────────────────────────────────────────────

    def _snapshot(self) -> BackupEnvelope:
        return BackupEnvelope(
            version=BACKUP_VERSION,
            timestamp=now(),
            data=BackupData(
                wallets=[WalletRow.model_validate(w) for w in self._wallet_dao.get_all(True)],
                categories=[CategoryRow.model_validate(c) for c in self._category_dao.get_all()],
                transactions=[
                    TransactionRow.model_validate(t)
                    for t in self._tx_dao.find(TransactionFilter())
                ],
                lend_borrow=[
                    LendBorrowRow.model_validate(r)
                    for r in self._lb_dao.find(LendBorrowFilter())
                ],
                lend_borrow_payments=[
                    LendBorrowPaymentRow.model_validate(p)
                    for p in self._lb_dao.get_all_payments()
                ],
                budgets=[BudgetRow.model_validate(b) for b in self._budget_dao.get_all()],
                bill_reminders=[
                    BillReminderRow.model_validate(r) for r in self._reminder_dao.get_all()
                ],
                settings=self._db.get_all_settings(),
            ),
        )

    def export_data(self) -> dict:
        """The backup envelope as a JSON-compatible dict."""
        return self._snapshot().model_dump(mode="json", by_alias=True)

    def export_json(self, indent: int | None = 2) -> str:
        snapshot = self._snapshot()
        self._log.info(
            "backup_exported",
            wallets=len(snapshot.data.wallets),
            transactions=len(snapshot.data.transactions),
        )
        return snapshot.model_dump_json(indent=indent, by_alias=True)

    # ── Import ───────────────────────────────────────────────────────────────

    def import_json(self, text: str) -> dict[str, int]:
        """Validate and merge a backup document. Raises pydantic.ValidationError if invalid."""
        return self._import(BackupEnvelope.model_validate_json(text))

    def import_data(self, data: dict) -> dict[str, int]:
        return self._import(BackupEnvelope.model_validate(data))

    def _import(self, envelope: BackupEnvelope) -> dict[str, int]:
        data = envelope.data
        stamp = now_str()

        def rows(models):
            out = []
            for m in models:
                row = m.model_dump()
                for key in ("created_at", "updated_at"):
                    if key in row and row[key] is None:
                        row[key] = stamp
                out.append(row)
            return out

        # Parents before subcategories.
        categories = sorted(data.categories, key=lambda c: c.parent_id is not None)

        with self._db.transaction():
            for row in rows(data.wallets):
                self._wallet_dao.upsert_row(row)
            for row in rows(categories):
                self._category_dao.upsert_row(row)
            for row in rows(data.transactions):
                self._tx_dao.upsert_row(row)
            for row in rows(data.lend_borrow):
                self._lb_dao.upsert_row(row)
            for row in rows(data.lend_borrow_payments):
                self._lb_dao.upsert_payment_row(row)
            for row in rows(data.budgets):
                self._budget_dao.upsert_row(row)
            for row in rows(data.bill_reminders):
                self._reminder_dao.upsert_row(row)
            for key, value in data.settings.items():
                if value is not None:
                    self._db.set_setting(key, value)

        counts = {
            "wallets": len(data.wallets),
            "categories": len(data.categories),
            "transactions": len(data.transactions),
            "lendBorrow": len(data.lend_borrow),
            "lendBorrowPayments": len(data.lend_borrow_payments),
            "budgets": len(data.budgets),
            "billReminders": len(data.bill_reminders),
            "settings": len(data.settings),
        }
        self._log.info("backup_imported", version=envelope.version, counts=counts)
        return counts
