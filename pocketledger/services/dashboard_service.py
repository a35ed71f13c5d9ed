from pocketledger.services.bill_reminder_service import BillReminderService
from pocketledger.services.lend_borrow_service import LendBorrowService
from pocketledger.services.transaction_service import TransactionService
from pocketledger.services.wallet_service import WalletService
from pocketledger.utils.constants import UPCOMING_BILL_DAYS
from pocketledger.utils.date_helpers import month_range, now as current_time, parse_datetime


class DashboardService:
    """Read-only composition of the other services for the home screen."""

    def __init__(
        self,
        wallet_service: WalletService,
        tx_service: TransactionService,
        lend_borrow_service: LendBorrowService,
        bill_service: BillReminderService,
    ):
        self._wallets = wallet_service
        self._transactions = tx_service
        self._lend_borrow = lend_borrow_service
        self._bills = bill_service

    def get_dashboard_summary(self, now=None) -> dict:
        """Net worth plus this month's activity, debts and bills, as of `now`.

        The reads run one after another on the same connection; there is no
        write in between, so every part sees the same committed state.
        """
        at = parse_datetime(now) if now is not None else current_time()
        if at is None:
            raise ValueError(f"Invalid timestamp: {now!r}")

        total_balance = self._wallets.get_total_balance()
        total_debt = self._wallets.get_total_credit_card_debt()
        return {
            "total_balance": total_balance,
            "total_debt": total_debt,
            "net_worth": total_balance - total_debt,
            "lend_borrow": self._lend_borrow.get_summary(),
            "this_month": self._transactions.get_summary(*month_range(at.month, at.year)),
            "upcoming_bills": self._bills.get_upcoming(UPCOMING_BILL_DAYS, at),
            "overdue_bills": self._bills.get_overdue(at),
            "bill_summary": self._bills.get_summary(at),
        }
