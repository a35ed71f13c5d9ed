from dataclasses import dataclass
from typing import Optional


@dataclass
class BillReminder:
    id: int
    title: str
    due_date: str                   # 'YYYY-MM-DD HH:MM:SS'
    amount: Optional[float] = None
    category_id: Optional[int] = None
    wallet_id: Optional[int] = None
    reminder_date: Optional[str] = None
    is_recurring: bool = False
    frequency: Optional[str] = None  # 'monthly' | 'yearly'
    is_paid: bool = False
    transaction_id: Optional[int] = None
    notes: str = ""
    created_at: str = ""
    updated_at: str = ""
