import structlog

from pocketledger.database.db_manager import DatabaseManager
from pocketledger.database.lend_borrow_dao import LendBorrowDAO
from pocketledger.database.wallet_dao import WalletDAO
from pocketledger.errors import ConstraintViolationError, InvalidStateError, NotFoundError
from pocketledger.models.lend_borrow import (
    LendBorrow, LendBorrowFilter, LendBorrowPayment, derive_status,
)
from pocketledger.services.transaction_service import TransactionService
from pocketledger.utils.constants import LEND_BORROW_STATUSES, LEND_BORROW_TYPES
from pocketledger.utils.date_helpers import now_str, optional_to_storage, to_storage

# Fields a caller may patch; remaining_amount and status always follow the payments.
EDITABLE_FIELDS = ("type", "person_name", "amount", "description", "notes", "due_date", "wallet_id")
OPENING_PAYMENT_NOTE = "Opening balance"


class LendBorrowService:
    """Money lent to or borrowed from people, and the payments against it.

    remaining_amount and status are never adjusted incrementally: after every
    payment change they are recomputed from the full payment history, so the
    stored values cannot drift from the payments table.
    """

    def __init__(
        self,
        db: DatabaseManager,
        lend_borrow_dao: LendBorrowDAO,
        wallet_dao: WalletDAO,
        tx_service: TransactionService,
    ):
        self._db = db
        self._dao = lend_borrow_dao
        self._wallet_dao = wallet_dao
        self._tx_svc = tx_service
        self._log = structlog.get_logger(__name__)

    # ── Records ──────────────────────────────────────────────────────────────

    def get_all(self) -> list[LendBorrow]:
        return self._dao.find(LendBorrowFilter())

    def get_by_id(self, record_id: int) -> LendBorrow | None:
        return self._dao.get_by_id(record_id)

    def find(self, filters: LendBorrowFilter) -> list[LendBorrow]:
        if filters.type is not None:
            self._validate_type(filters.type)
        if filters.status is not None:
            self._validate_status(filters.status)
        return self._dao.find(filters)

    def get_lent_records(self, status: str | None = None) -> list[LendBorrow]:
        return self.find(LendBorrowFilter(type="lent", status=status))

    def get_borrowed_records(self, status: str | None = None) -> list[LendBorrow]:
        return self.find(LendBorrowFilter(type="borrowed", status=status))

    def get_by_person(self, person_name: str) -> list[LendBorrow]:
        return self._dao.find(LendBorrowFilter(person_name=person_name))

    def get_pending_records(self) -> list[LendBorrow]:
        return self._dao.find(LendBorrowFilter(status="pending"))

    def get_overdue_records(self, now=None) -> list[LendBorrow]:
        """Not completed, with a due date strictly before now, earliest first."""
        return self._dao.get_overdue(to_storage(now or now_str(), "now"))

    def create(
        self,
        type_: str,
        person_name: str,
        amount: float,
        remaining_amount: float | None = None,
        status: str | None = None,
        description: str = "",
        notes: str = "",
        due_date=None,
        wallet_id: int | None = None,
    ) -> LendBorrow:
        self._validate_type(type_)
        person_name = self._clean_person(person_name)
        self._validate_amount(amount)
        if remaining_amount is None:
            remaining_amount = amount
        if not 0 <= remaining_amount <= amount:
            raise ValueError("Remaining amount must be between 0 and the amount.")
        derived = derive_status(amount, remaining_amount)
        if status is not None:
            self._validate_status(status)
            if status != derived:
                raise ValueError(
                    f"Status '{status}' does not match remaining amount {remaining_amount} of {amount}."
                )
        due = optional_to_storage(due_date, "due date")
        with self._db.transaction():
            self._check_wallet(wallet_id)
            record = self._dao.create(
                type_=type_,
                person_name=person_name,
                amount=amount,
                remaining_amount=remaining_amount,
                status=derived,
                description=description or "",
                notes=notes or "",
                due_date=due,
                wallet_id=wallet_id,
            )
            # Already-settled part is kept as a payment so recompute sees it.
            if remaining_amount < amount:
                self._dao.create_payment(
                    record.id, amount - remaining_amount, now_str(), OPENING_PAYMENT_NOTE
                )
        self._log.info(
            "lend_borrow_created", record_id=record.id, type=type_, amount=amount
        )
        return record

    def update(self, record_id: int, **changes) -> LendBorrow:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update lend/borrow field(s): {', '.join(sorted(unknown))}.")
        if "type" in changes:
            self._validate_type(changes["type"])
        if "person_name" in changes:
            changes["person_name"] = self._clean_person(changes["person_name"])
        if "amount" in changes:
            self._validate_amount(changes["amount"])
        if "due_date" in changes:
            changes["due_date"] = optional_to_storage(changes["due_date"], "due date")
        with self._db.transaction():
            if self._dao.get_by_id(record_id) is None:
                raise NotFoundError("LendBorrow", record_id)
            if "wallet_id" in changes:
                self._check_wallet(changes["wallet_id"])
            record = self._dao.update(record_id, **changes)
            if "amount" in changes:
                record = self._recompute(record_id)
        self._log.info("lend_borrow_updated", record_id=record_id, fields=sorted(changes))
        return record

    def delete(self, record_id: int):
        """Remove the record and its payments. Booked transactions are kept."""
        with self._db.transaction():
            if self._dao.get_by_id(record_id) is None:
                raise NotFoundError("LendBorrow", record_id)
            self._dao.delete(record_id)
        self._log.info("lend_borrow_deleted", record_id=record_id)

    # ── Payments ─────────────────────────────────────────────────────────────

    def get_payments(self, record_id: int) -> list[LendBorrowPayment]:
        return self._dao.get_payments(record_id)

    def add_payment(
        self,
        record_id: int,
        amount: float,
        payment_date=None,
        notes: str = "",
        record_transaction: bool = False,
    ) -> LendBorrowPayment:
        """Record a payment and recompute the record.

        With record_transaction the payment is also booked on the record's
        wallet: money coming back on a loan is income, repaying a debt is an
        expense.
        """
        self._validate_amount(amount)
        paid_on = to_storage(payment_date or now_str(), "payment date")
        with self._db.transaction():
            record = self._dao.get_by_id(record_id)
            if record is None:
                raise NotFoundError("LendBorrow", record_id)
            tx_id = None
            if record_transaction:
                if record.wallet_id is None:
                    raise InvalidStateError(
                        f"Lend/borrow record {record_id} has no wallet to book the payment on."
                    )
                direction = "Received from" if record.type == "lent" else "Paid to"
                tx = self._tx_svc.create(
                    wallet_id=record.wallet_id,
                    type_="income" if record.type == "lent" else "expense",
                    amount=amount,
                    transaction_date=paid_on,
                    description=f"{direction} {record.person_name}",
                    notes=notes or "",
                )
                tx_id = tx.id
            payment = self._dao.create_payment(
                record_id, amount, paid_on, notes or "", tx_id
            )
            updated = self._recompute(record_id)
        self._log.info(
            "payment_added",
            record_id=record_id,
            payment_id=payment.id,
            amount=amount,
            remaining=updated.remaining_amount,
            status=updated.status,
        )
        return payment

    def delete_payment(self, payment_id: int):
        """Remove a payment (and the transaction it booked, if any), then recompute."""
        with self._db.transaction():
            payment = self._dao.get_payment(payment_id)
            if payment is None:
                raise NotFoundError("LendBorrowPayment", payment_id)
            self._dao.delete_payment(payment_id)
            if payment.transaction_id is not None:
                self._tx_svc.delete(payment.transaction_id)
            updated = self._recompute(payment.lend_borrow_id)
        self._log.info(
            "payment_deleted",
            record_id=payment.lend_borrow_id,
            payment_id=payment_id,
            remaining=updated.remaining_amount,
            status=updated.status,
        )

    def get_with_payments(self, record_id: int) -> dict | None:
        record = self._dao.get_by_id(record_id)
        if record is None:
            return None
        total_paid = record.paid_amount
        return {
            "record": record,
            "payments": self._dao.get_payments(record_id),
            "total_paid": total_paid,
            "payment_percentage": total_paid / record.amount * 100 if record.amount else 0.0,
        }

    # ── Summary ──────────────────────────────────────────────────────────────

    def get_summary(self) -> dict:
        lent = self._dao.get_totals_by_type("lent")
        borrowed = self._dao.get_totals_by_type("borrowed")
        return {
            "lent": {
                "total": lent["total"],
                "remaining": lent["remaining"],
                "received": lent["total"] - lent["remaining"],
                "count": lent["count"],
            },
            "borrowed": {
                "total": borrowed["total"],
                "remaining": borrowed["remaining"],
                "paid": borrowed["total"] - borrowed["remaining"],
                "count": borrowed["count"],
            },
            "net_amount": lent["remaining"] - borrowed["remaining"],
        }

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _recompute(self, record_id: int) -> LendBorrow:
        record = self._dao.get_by_id(record_id)
        remaining = max(0.0, record.amount - self._dao.sum_payments(record_id))
        return self._dao.update(
            record_id,
            remaining_amount=remaining,
            status=derive_status(record.amount, remaining),
        )

    def _check_wallet(self, wallet_id: int | None):
        if wallet_id is not None and not self._wallet_dao.exists(wallet_id):
            raise ConstraintViolationError("Wallet", wallet_id, "wallet_id")

    @staticmethod
    def _clean_person(person_name: str) -> str:
        person_name = (person_name or "").strip()
        if not person_name:
            raise ValueError("Person name cannot be empty.")
        return person_name

    @staticmethod
    def _validate_amount(amount: float):
        if amount is None or amount <= 0:
            raise ValueError("Amount must be positive.")

    @staticmethod
    def _validate_type(type_: str):
        if type_ not in LEND_BORROW_TYPES:
            raise ValueError(
                f"Invalid lend/borrow type '{type_}'. Must be one of: {', '.join(LEND_BORROW_TYPES)}."
            )

    @staticmethod
    def _validate_status(status: str):
        if status not in LEND_BORROW_STATUSES:
            raise ValueError(
                f"Invalid status '{status}'. Must be one of: {', '.join(LEND_BORROW_STATUSES)}."
            )
