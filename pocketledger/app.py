import structlog

from pocketledger.database.db_manager import DatabaseManager
from pocketledger.database.wallet_dao import WalletDAO
from pocketledger.database.transaction_dao import TransactionDAO
from pocketledger.database.category_dao import CategoryDAO
from pocketledger.database.lend_borrow_dao import LendBorrowDAO
from pocketledger.database.budget_dao import BudgetDAO
from pocketledger.database.bill_reminder_dao import BillReminderDAO

from pocketledger.services.wallet_service import WalletService
from pocketledger.services.transaction_service import TransactionService
from pocketledger.services.category_service import CategoryService
from pocketledger.services.lend_borrow_service import LendBorrowService
from pocketledger.services.budget_service import BudgetService
from pocketledger.services.bill_reminder_service import BillReminderService
from pocketledger.services.settings_service import SettingsService
from pocketledger.services.backup_service import BackupService
from pocketledger.services.dashboard_service import DashboardService

from pocketledger.utils.app_config import get_db_folder, get_log_level
from pocketledger.utils.log_config import configure_logging


class Ledger:
    """One database handle with every DAO and service wired to it."""

    def __init__(self, db: DatabaseManager):
        self.db = db

        # ── DAOs ─────────────────────────────────────────────────────────────
        wallet_dao = WalletDAO(db)
        tx_dao = TransactionDAO(db)
        category_dao = CategoryDAO(db)
        lend_borrow_dao = LendBorrowDAO(db)
        budget_dao = BudgetDAO(db)
        reminder_dao = BillReminderDAO(db)

        # ── Services ─────────────────────────────────────────────────────────
        self.transactions = TransactionService(db, tx_dao, wallet_dao, category_dao)
        self.wallets = WalletService(db, wallet_dao, tx_dao, self.transactions)
        self.categories = CategoryService(db, category_dao)
        self.lend_borrow = LendBorrowService(db, lend_borrow_dao, wallet_dao, self.transactions)
        self.budgets = BudgetService(db, budget_dao, tx_dao, category_dao)
        self.bills = BillReminderService(db, reminder_dao, wallet_dao, category_dao, tx_dao)
        self.settings = SettingsService(db)
        self.backup = BackupService(
            db, wallet_dao, category_dao, tx_dao, lend_borrow_dao, budget_dao, reminder_dao
        )
        self.dashboard = DashboardService(
            self.wallets, self.transactions, self.lend_borrow, self.bills
        )
        self._log = structlog.get_logger(__name__)

    @classmethod
    def open(cls, db_folder: str | None = None) -> "Ledger":
        """Open the ledger database, defaulting to the folder from the bootstrap config."""
        return cls(DatabaseManager.open(db_folder=db_folder or get_db_folder()))

    @classmethod
    def in_memory(cls) -> "Ledger":
        db = DatabaseManager(":memory:")
        db.initialize()
        return cls(db)

    def initialize_database(self) -> dict:
        """First-run seeding: default settings and categories, never overwriting."""
        settings_added = self.settings.initialize_defaults()
        categories_added = self.categories.seed_default_categories()
        self._log.info(
            "ledger_initialized",
            settings_added=len(settings_added),
            categories_added=categories_added,
        )
        return {"settings": len(settings_added), "categories": categories_added}

    def close(self):
        self.db.close()

    def __enter__(self) -> "Ledger":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def startup(db_folder: str | None = None) -> Ledger:
    """Configure logging from the bootstrap config, open and seed the ledger."""
    configure_logging(get_log_level())
    ledger = Ledger.open(db_folder)
    ledger.initialize_database()
    return ledger
