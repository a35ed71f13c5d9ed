from dataclasses import dataclass
from typing import Optional

WALLET_TYPE_LABELS = {
    "bank": "Bank",
    "cash": "Cash",
    "digital_wallet": "Digital Wallet",
    "credit_card": "Credit Card",
}


@dataclass
class Wallet:
    id: int
    name: str
    type: str               # 'bank' | 'cash' | 'digital_wallet' | 'credit_card'
    balance: float = 0.0
    opening_balance: float = 0.0
    currency: str = "INR"
    credit_limit: Optional[float] = None
    billing_date: Optional[int] = None   # day of month 1-31
    due_date: Optional[int] = None       # day of month 1-31
    cashback_rate: Optional[float] = None  # percent, e.g. 1.5
    notes: str = ""
    is_active: bool = True
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_credit_card(self) -> bool:
        return self.type == "credit_card"

    @property
    def utilization(self) -> float:
        """|balance| / credit_limit; 0 when no limit is set."""
        if not self.credit_limit:
            return 0.0
        return abs(self.balance) / self.credit_limit
