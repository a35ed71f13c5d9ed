APP_NAME = "Pocket Ledger"
DB_FILE = "pocketledger.db"

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

BACKUP_VERSION = "1.0"

WALLET_TYPES = ("bank", "cash", "digital_wallet", "credit_card")
CATEGORY_TYPES = ("expense", "income")
TRANSACTION_TYPES = ("income", "expense", "transfer")
LEND_BORROW_TYPES = ("lent", "borrowed")
LEND_BORROW_STATUSES = ("pending", "partial", "completed")
BUDGET_PERIODS = ("monthly", "yearly")
BILL_FREQUENCIES = ("monthly", "yearly")

DEFAULT_CURRENCY = "INR"
BUDGET_ALERT_THRESHOLD = 80.0  # percent
UPCOMING_BILL_DAYS = 7
SEARCH_LIMIT = 50
TREND_MONTHS = 6

DEFAULT_SETTINGS = {
    "currency": "INR",
    "currencySymbol": "₹",
    "dateFormat": "DD/MM/YYYY",
    "firstDayOfWeek": 1,           # Monday
    "theme": "system",             # 'light' | 'dark' | 'system'
    "notificationsEnabled": True,
    "billReminderDays": 3,         # lead days before a bill is due
    "backupEnabled": False,
    "lastBackupDate": None,
    "appVersion": "1.0.0",
    "onboardingCompleted": False,
    "biometricEnabled": False,
    "language": "en",
}

DEFAULT_CATEGORIES = [
    {"name": "Food & Dining",     "type": "expense", "color_hex": "#FF6B6B"},
    {"name": "Transportation",    "type": "expense", "color_hex": "#4ECDC4"},
    {"name": "Shopping",          "type": "expense", "color_hex": "#95E1D3"},
    {"name": "Entertainment",     "type": "expense", "color_hex": "#F38181"},
    {"name": "Bills & Utilities", "type": "expense", "color_hex": "#AA96DA"},
    {"name": "Healthcare",        "type": "expense", "color_hex": "#FCBAD3"},
    {"name": "Education",         "type": "expense", "color_hex": "#A8D8EA"},
    {"name": "Personal Care",     "type": "expense", "color_hex": "#FFD3B6"},
    {"name": "Travel",            "type": "expense", "color_hex": "#FFAAA5"},
    {"name": "Investments",       "type": "expense", "color_hex": "#FF8B94"},
    {"name": "Gifts & Donations", "type": "expense", "color_hex": "#A8E6CF"},
    {"name": "Other Expenses",    "type": "expense", "color_hex": "#C7CEEA"},
    {"name": "Salary",            "type": "income",  "color_hex": "#06D6A0"},
    {"name": "Freelance",         "type": "income",  "color_hex": "#118AB2"},
    {"name": "Business",          "type": "income",  "color_hex": "#073B4C"},
    {"name": "Investments",       "type": "income",  "color_hex": "#EF476F"},
    {"name": "Gifts",             "type": "income",  "color_hex": "#FFD166"},
    {"name": "Other Income",      "type": "income",  "color_hex": "#06D6A0"},
]
