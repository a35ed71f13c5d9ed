from datetime import datetime

import pytest

from pocketledger.utils.constants import DEFAULT_SETTINGS


class TestSettings:
    def test_initialize_defaults_never_overwrites(self, ledger):
        ledger.settings.set_currency("USD")
        added = ledger.settings.initialize_defaults()
        assert "currency" not in added
        assert set(added) == set(DEFAULT_SETTINGS) - {"currency"}
        assert ledger.settings.get_currency() == "USD"
        assert ledger.settings.initialize_defaults() == []

    def test_typed_round_trip(self, ledger):
        ledger.settings.set_typed("billReminderDays", 5)
        ledger.settings.set_typed("notificationsEnabled", False)
        ledger.settings.set_typed("tags", ["a", "b"])
        assert ledger.settings.get("billReminderDays") == "5"
        assert ledger.settings.get_typed("billReminderDays") == 5
        assert ledger.settings.get_typed("notificationsEnabled") is False
        assert ledger.settings.get_typed("tags") == ["a", "b"]

    def test_raw_string_when_not_json(self, ledger):
        ledger.settings.set("theme", "dark")
        assert ledger.settings.get_typed("theme") == "dark"

    def test_default_when_missing(self, ledger):
        assert ledger.settings.get("nope") is None
        assert ledger.settings.get_typed("nope", 7) == 7

    def test_delete_and_get_all(self, ledger):
        ledger.settings.set("a", "1")
        ledger.settings.set("b", "2")
        ledger.settings.delete("a")
        assert ledger.settings.get_all() == {"b": "2"}

    def test_accessors_after_defaults(self, ledger):
        ledger.settings.initialize_defaults()
        assert ledger.settings.get_currency() == "INR"
        assert ledger.settings.get_theme() == "system"
        assert ledger.settings.get_bill_reminder_days() == 3
        assert ledger.settings.get_notifications_enabled() is True
        assert ledger.settings.get_onboarding_completed() is False
        assert ledger.settings.get_last_backup_date() is None

    def test_last_backup_date(self, ledger):
        ledger.settings.set_last_backup_date("2024-05-01 08:00:00")
        assert ledger.settings.get_last_backup_date() == datetime(2024, 5, 1, 8, 0, 0)

    def test_theme_validation(self, ledger):
        with pytest.raises(ValueError):
            ledger.settings.set_theme("neon")
