import dataclasses

import structlog

from pocketledger.database.db_manager import DatabaseManager
from pocketledger.database.transaction_dao import TransactionDAO, UPDATABLE_COLUMNS
from pocketledger.database.wallet_dao import WalletDAO
from pocketledger.database.category_dao import CategoryDAO
from pocketledger.errors import ConstraintViolationError, NotFoundError
from pocketledger.models.transaction import Transaction, TransactionFilter
from pocketledger.services.balance_mutator import BalanceMutator
from pocketledger.utils.constants import SEARCH_LIMIT, TRANSACTION_TYPES
from pocketledger.utils.date_helpers import now_str, optional_to_storage, to_storage


class TransactionService:
    """Creates, edits and deletes transactions together with their balance effects.

    Every write runs in one DB transaction: referenced ids are resolved first,
    then the old effect (if any) is reversed, the row is written, and the new
    effect is applied. An edit never computes a difference between the old and
    new rows; reversing the old effect and applying the new one is correct
    whatever fields changed.
    """

    def __init__(
        self,
        db: DatabaseManager,
        tx_dao: TransactionDAO,
        wallet_dao: WalletDAO,
        category_dao: CategoryDAO,
    ):
        self._db = db
        self._dao = tx_dao
        self._wallet_dao = wallet_dao
        self._category_dao = category_dao
        self._mutator = BalanceMutator(wallet_dao)
        self._log = structlog.get_logger(__name__)

    # ── Queries ──────────────────────────────────────────────────────────────

    def get_all(self, limit: int | None = None) -> list[Transaction]:
        return self._dao.find(TransactionFilter(limit=limit))

    def get_by_id(self, tx_id: int) -> Transaction | None:
        return self._dao.get_by_id(tx_id)

    def get_by_wallet(self, wallet_id: int, limit: int | None = None) -> list[Transaction]:
        return self._dao.find(TransactionFilter(wallet_id=wallet_id, limit=limit))

    def get_by_category(self, category_id: int, limit: int | None = None) -> list[Transaction]:
        return self._dao.find(TransactionFilter(category_id=category_id, limit=limit))

    def get_by_type(self, type_: str, limit: int | None = None) -> list[Transaction]:
        self._validate_type(type_)
        return self._dao.find(TransactionFilter(type=type_, limit=limit))

    def get_by_date_range(self, start, end) -> list[Transaction]:
        return self._dao.find(TransactionFilter(
            start=to_storage(start, "start"), end=to_storage(end, "end"),
        ))

    def find(self, filters: TransactionFilter) -> list[Transaction]:
        filters = dataclasses.replace(
            filters,
            start=optional_to_storage(filters.start, "start"),
            end=optional_to_storage(filters.end, "end"),
        )
        return self._dao.find(filters)

    def search(self, term: str, limit: int = SEARCH_LIMIT) -> list[Transaction]:
        """Case-insensitive substring match on description or notes, newest first."""
        return self._dao.search(term, limit)

    def get_summary(self, start=None, end=None) -> dict:
        totals = self._dao.get_summary(
            optional_to_storage(start, "start"), optional_to_storage(end, "end")
        )
        return {
            "total_income": totals["income"],
            "total_expense": totals["expense"],
            "net_amount": totals["income"] - totals["expense"],
            "transaction_count": totals["count"],
        }

    def get_spending_by_category(self, start=None, end=None) -> list[dict]:
        return self._dao.get_totals_by_category(
            "expense", optional_to_storage(start, "start"), optional_to_storage(end, "end")
        )

    def get_income_by_category(self, start=None, end=None) -> list[dict]:
        return self._dao.get_totals_by_category(
            "income", optional_to_storage(start, "start"), optional_to_storage(end, "end")
        )

    # ── Writes ───────────────────────────────────────────────────────────────

    def create(
        self,
        wallet_id: int,
        type_: str,
        amount: float,
        transaction_date=None,
        category_id: int | None = None,
        description: str = "",
        notes: str = "",
        to_wallet_id: int | None = None,
        transfer_fee: float = 0.0,
    ) -> Transaction:
        draft = Transaction(
            id=0,
            wallet_id=wallet_id,
            type=type_,
            amount=amount,
            transaction_date=to_storage(transaction_date or now_str(), "transaction date"),
            category_id=category_id,
            description=description or "",
            notes=notes or "",
            to_wallet_id=to_wallet_id,
            transfer_fee=transfer_fee or 0.0,
        )
        self._validate(draft)
        with self._db.transaction():
            self._check_references(draft)
            tx = self._dao.create(
                wallet_id=draft.wallet_id,
                type_=draft.type,
                amount=draft.amount,
                transaction_date=draft.transaction_date,
                category_id=draft.category_id,
                description=draft.description,
                notes=draft.notes,
                to_wallet_id=draft.to_wallet_id,
                transfer_fee=draft.transfer_fee,
            )
            deltas = self._mutator.apply(tx)
        self._log.info(
            "transaction_created",
            transaction_id=tx.id,
            type=tx.type,
            amount=tx.amount,
            balance_deltas=deltas,
        )
        return tx

    def update(self, tx_id: int, **changes) -> Transaction:
        """Patch a transaction: reverse its old effect, write, apply the new one."""
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update transaction field(s): {', '.join(sorted(unknown))}.")
        if "transaction_date" in changes:
            changes["transaction_date"] = to_storage(changes["transaction_date"], "transaction date")
        if changes.get("type") in ("income", "expense"):
            changes.setdefault("to_wallet_id", None)
            changes.setdefault("transfer_fee", 0.0)
        if changes.get("transfer_fee") is None and "transfer_fee" in changes:
            changes["transfer_fee"] = 0.0

        with self._db.transaction():
            old = self._dao.get_by_id(tx_id)
            if old is None:
                raise NotFoundError("Transaction", tx_id)
            try:
                merged = dataclasses.replace(old, **changes)
            except TypeError as exc:
                raise ValueError(f"Invalid transaction field in update: {exc}") from exc
            self._validate(merged)
            self._check_references(merged)

            self._mutator.reverse(old)
            self._dao.update(tx_id, **changes)
            new = self._dao.get_by_id(tx_id)
            self._mutator.apply(new)
        self._log.info(
            "transaction_updated",
            transaction_id=tx_id,
            fields=sorted(changes),
        )
        return new

    def delete(self, tx_id: int) -> None:
        """Reverse and remove; a missing id is a silent no-op."""
        with self._db.transaction():
            tx = self._dao.get_by_id(tx_id)
            if tx is None:
                return
            deltas = self._mutator.reverse(tx)
            self._dao.delete(tx_id)
        self._log.info("transaction_deleted", transaction_id=tx_id, balance_deltas=deltas)

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _check_references(self, tx: Transaction):
        """Resolve every referenced id before any balance is touched."""
        if not self._wallet_dao.exists(tx.wallet_id):
            raise ConstraintViolationError("Wallet", tx.wallet_id, "wallet_id")
        if tx.to_wallet_id is not None and not self._wallet_dao.exists(tx.to_wallet_id):
            raise ConstraintViolationError("Wallet", tx.to_wallet_id, "to_wallet_id")
        if tx.category_id is not None and self._category_dao.get_by_id(tx.category_id) is None:
            raise ConstraintViolationError("Category", tx.category_id, "category_id")

    @staticmethod
    def _validate_type(type_: str):
        if type_ not in TRANSACTION_TYPES:
            raise ValueError(f"Invalid type: {type_}")

    def _validate(self, tx: Transaction):
        self._validate_type(tx.type)
        if tx.amount is None or tx.amount <= 0:
            raise ValueError("Amount must be positive.")
        if tx.transfer_fee < 0:
            raise ValueError("Transfer fee cannot be negative.")
        if tx.type == "transfer":
            if tx.to_wallet_id is None:
                raise ValueError("A transfer needs a destination wallet.")
            if tx.to_wallet_id == tx.wallet_id:
                raise ValueError("Cannot transfer to the same wallet.")
        elif tx.to_wallet_id is not None or tx.transfer_fee:
            raise ValueError("Only transfers may have a destination wallet or fee.")
