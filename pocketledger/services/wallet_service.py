import structlog

from pocketledger.database.db_manager import DatabaseManager
from pocketledger.database.transaction_dao import TransactionDAO
from pocketledger.database.wallet_dao import WalletDAO, UPDATABLE_COLUMNS
from pocketledger.errors import InvalidStateError, NotFoundError
from pocketledger.models.wallet import Wallet
from pocketledger.services.transaction_service import TransactionService
from pocketledger.utils.constants import DEFAULT_CURRENCY, WALLET_TYPES

CREDIT_CARD_FIELDS = ("credit_limit", "billing_date", "due_date", "cashback_rate")


class WalletService:
    def __init__(
        self,
        db: DatabaseManager,
        wallet_dao: WalletDAO,
        tx_dao: TransactionDAO,
        tx_service: TransactionService,
    ):
        self._db = db
        self._dao = wallet_dao
        self._tx_dao = tx_dao
        self._tx_svc = tx_service
        self._log = structlog.get_logger(__name__)

    def get_all(self, include_inactive: bool = False) -> list[Wallet]:
        return self._dao.get_all(include_inactive)

    def get_by_id(self, wallet_id: int) -> Wallet | None:
        return self._dao.get_by_id(wallet_id)

    def get_by_type(self, type_: str) -> list[Wallet]:
        self._validate_type(type_)
        return self._dao.get_by_type(type_)

    def create(
        self,
        name: str,
        type_: str,
        balance: float = 0.0,
        currency: str = DEFAULT_CURRENCY,
        credit_limit: float | None = None,
        billing_date: int | None = None,
        due_date: int | None = None,
        cashback_rate: float | None = None,
        notes: str = "",
    ) -> Wallet:
        """Create a wallet; `balance` becomes both its opening and current balance."""
        name = (name or "").strip()
        if not name:
            raise ValueError("Wallet name cannot be empty.")
        self._validate_type(type_)
        card = self._sanitize_card_fields(type_, {
            "credit_limit": credit_limit,
            "billing_date": billing_date,
            "due_date": due_date,
            "cashback_rate": cashback_rate,
        })
        with self._db.transaction():
            wallet = self._dao.create(
                name=name,
                type_=type_,
                opening_balance=balance,
                currency=currency or DEFAULT_CURRENCY,
                notes=notes or "",
                **card,
            )
        self._log.info("wallet_created", wallet_id=wallet.id, type=wallet.type)
        return wallet

    def update(self, wallet_id: int, **changes) -> Wallet:
        """Patch descriptive fields. Balance changes only through transactions."""
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update wallet field(s): {', '.join(sorted(unknown))}.")
        with self._db.transaction():
            current = self._dao.get_by_id(wallet_id)
            if current is None:
                raise NotFoundError("Wallet", wallet_id)
            if "name" in changes:
                changes["name"] = (changes["name"] or "").strip()
                if not changes["name"]:
                    raise ValueError("Wallet name cannot be empty.")
            new_type = changes.get("type", current.type)
            self._validate_type(new_type)
            if new_type != "credit_card":
                changes.update({f: None for f in CREDIT_CARD_FIELDS})
            else:
                card = {f: changes[f] for f in CREDIT_CARD_FIELDS if f in changes}
                changes.update(self._sanitize_card_fields(new_type, card))
            updated = self._dao.update(wallet_id, **changes)
        self._log.info("wallet_updated", wallet_id=wallet_id, fields=sorted(changes))
        return updated

    def soft_delete(self, wallet_id: int) -> Wallet:
        return self.update(wallet_id, is_active=False)

    def delete(self, wallet_id: int) -> None:
        """Remove a wallet with its transactions, in order.

        Each transaction touching the wallet is reversed and deleted first so
        that counterpart wallets of transfers stay consistent, then optional
        references are cleared, then the wallet row goes.
        """
        with self._db.transaction():
            if self._dao.get_by_id(wallet_id) is None:
                raise NotFoundError("Wallet", wallet_id)
            touching = self._tx_dao.get_touching_wallet(wallet_id)
            for tx in touching:
                self._tx_svc.delete(tx.id)
            self._dao.detach_references(wallet_id)
            self._dao.delete(wallet_id)
        self._log.info(
            "wallet_deleted", wallet_id=wallet_id, transactions_removed=len(touching)
        )

    def recalculate_balance(self, wallet_id: int) -> Wallet:
        """Rebuild balance as opening balance plus every stored transaction effect."""
        with self._db.transaction():
            wallet = self._dao.get_by_id(wallet_id)
            if wallet is None:
                raise NotFoundError("Wallet", wallet_id)
            balance = wallet.opening_balance + self._tx_dao.get_wallet_effect(wallet_id)
            self._dao.set_balance(wallet_id, balance)
        if balance != wallet.balance:
            self._log.warning(
                "wallet_balance_corrected",
                wallet_id=wallet_id,
                stored=wallet.balance,
                recalculated=balance,
            )
        return self._dao.get_by_id(wallet_id)

    def get_credit_card_info(self, wallet_id: int) -> dict:
        wallet = self._dao.get_by_id(wallet_id)
        if wallet is None:
            raise NotFoundError("Wallet", wallet_id)
        if not wallet.is_credit_card:
            raise InvalidStateError(f"Wallet {wallet_id} is not a credit card.")
        limit = wallet.credit_limit or 0.0
        usage = abs(wallet.balance)  # credit card balances are negative
        return {
            "wallet": wallet,
            "current_usage": usage,
            "available_credit": limit - usage,
            "utilization_rate": wallet.utilization * 100,
            "is_over_limit": usage > limit,
        }

    def get_total_balance(self) -> float:
        """Sum of active non-credit-card balances."""
        return self._dao.get_total_balance()

    def get_total_credit_card_debt(self) -> float:
        return self._dao.get_total_credit_card_debt()

    # ── Helpers ──────────────────────────────────────────────────────────────

    @staticmethod
    def _validate_type(type_: str):
        if type_ not in WALLET_TYPES:
            raise ValueError(
                f"Invalid wallet type '{type_}'. "
                f"Must be one of: {', '.join(WALLET_TYPES)}."
            )

    @staticmethod
    def _sanitize_card_fields(type_: str, fields: dict) -> dict:
        if type_ != "credit_card":
            return {f: None for f in fields}
        for day_field in ("billing_date", "due_date"):
            day = fields.get(day_field)
            if day is not None and not 1 <= int(day) <= 31:
                raise ValueError(f"{day_field} must be a day of month (1-31).")
        limit = fields.get("credit_limit")
        if limit is not None and limit < 0:
            raise ValueError("Credit limit must be 0 or greater.")
        return fields
