import structlog
from structlog.testing import capture_logs

from pocketledger.app import Ledger
from pocketledger.utils import app_config
from pocketledger.utils.log_config import configure_logging


class TestLedger:
    def test_initialize_database_is_repeatable(self):
        with Ledger.in_memory() as ledger:
            first = ledger.initialize_database()
            assert first["categories"] == 18
            assert first["settings"] > 0
            assert ledger.initialize_database() == {"settings": 0, "categories": 0}

    def test_open_creates_database_file(self, tmp_path):
        folder = tmp_path / "data"
        ledger = Ledger.open(str(folder))
        try:
            ledger.wallets.create("Main", "bank", balance=10.0)
        finally:
            ledger.close()
        reopened = Ledger.open(str(folder))
        try:
            assert [w.name for w in reopened.wallets.get_all()] == ["Main"]
        finally:
            reopened.close()


class TestBootstrapConfig:
    def test_missing_or_corrupt_config_is_empty(self, tmp_path):
        path = tmp_path / "config.json"
        assert app_config.load_config(path) == {}
        path.write_text("{broken", encoding="utf-8")
        assert app_config.load_config(path) == {}

    def test_db_folder_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        app_config.set_db_folder("/srv/ledger", path)
        assert app_config.get_db_folder(path) == "/srv/ledger"
        app_config.set_db_folder(None, path)
        assert app_config.get_db_folder(path) is None

    def test_log_level_default(self, tmp_path):
        assert app_config.get_log_level(tmp_path / "config.json") == "INFO"


class TestLogging:
    def test_writes_are_logged(self):
        with capture_logs() as logs:
            with Ledger.in_memory() as ledger:
                wallet = ledger.wallets.create("Main", "bank")
                ledger.transactions.create(wallet.id, "income", 5.0)
        events = [entry["event"] for entry in logs]
        assert "wallet_created" in events
        assert "transaction_created" in events

    def test_configure_logging_is_idempotent(self):
        configure_logging("DEBUG", json_output=False)
        configure_logging("INFO")
        structlog.reset_defaults()
