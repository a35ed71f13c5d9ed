import json

import structlog

from pocketledger.database.db_manager import DatabaseManager
from pocketledger.utils.constants import DEFAULT_SETTINGS
from pocketledger.utils.date_helpers import format_datetime, now, parse_datetime

THEMES = ("light", "dark", "system")


class SettingsService:
    """Key/value application settings stored in the ledger database.

    Values are text. Non-string values go through JSON on the way in
    (set_typed) and are decoded on the way out (get_typed); a stored value
    that is not valid JSON is returned as the raw string.
    """

    def __init__(self, db: DatabaseManager):
        self._db = db
        self._log = structlog.get_logger(__name__)

    def get(self, key: str) -> str | None:
        return self._db.get_setting(key)

    def get_typed(self, key: str, default=None):
        value = self._db.get_setting(key)
        if value is None:
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    def set(self, key: str, value: str):
        if not key:
            raise ValueError("Setting key cannot be empty.")
        with self._db.transaction():
            self._db.set_setting(key, value)
        self._log.info("setting_changed", key=key)

    def set_typed(self, key: str, value):
        self.set(key, value if isinstance(value, str) else json.dumps(value))

    def delete(self, key: str):
        with self._db.transaction():
            self._db.delete_setting(key)
        self._log.info("setting_deleted", key=key)

    def get_all(self) -> dict[str, str]:
        return self._db.get_all_settings()

    def initialize_defaults(self) -> list[str]:
        """Store every default whose key is absent; existing values are left alone."""
        added = []
        with self._db.transaction():
            for key, value in DEFAULT_SETTINGS.items():
                if self._db.get_setting(key) is None:
                    self._db.set_setting(
                        key, value if isinstance(value, str) else json.dumps(value)
                    )
                    added.append(key)
        if added:
            self._log.info("default_settings_initialized", keys=added)
        return added

    # ── Typed accessors ──────────────────────────────────────────────────────

    def get_currency(self) -> str:
        return self.get_typed("currency", DEFAULT_SETTINGS["currency"])

    def set_currency(self, currency: str):
        self.set_typed("currency", currency)

    def get_theme(self) -> str:
        return self.get_typed("theme", DEFAULT_SETTINGS["theme"])

    def set_theme(self, theme: str):
        if theme not in THEMES:
            raise ValueError(f"Invalid theme '{theme}'. Must be one of: {', '.join(THEMES)}.")
        self.set_typed("theme", theme)

    def get_notifications_enabled(self) -> bool:
        return bool(self.get_typed("notificationsEnabled", True))

    def set_notifications_enabled(self, enabled: bool):
        self.set_typed("notificationsEnabled", bool(enabled))

    def get_bill_reminder_days(self) -> int:
        return int(self.get_typed("billReminderDays", DEFAULT_SETTINGS["billReminderDays"]))

    def set_bill_reminder_days(self, days: int):
        if days < 0:
            raise ValueError("Bill reminder days cannot be negative.")
        self.set_typed("billReminderDays", int(days))

    def get_onboarding_completed(self) -> bool:
        return bool(self.get_typed("onboardingCompleted", False))

    def set_onboarding_completed(self, completed: bool):
        self.set_typed("onboardingCompleted", bool(completed))

    def get_last_backup_date(self):
        """The last backup time as a datetime, or None if never backed up."""
        return parse_datetime(self.get_typed("lastBackupDate"))

    def set_last_backup_date(self, when=None):
        self.set_typed("lastBackupDate", format_datetime(parse_datetime(when) if when else now()))
