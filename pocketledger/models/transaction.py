from dataclasses import dataclass
from typing import Optional


@dataclass
class Transaction:
    id: int
    wallet_id: int
    type: str               # 'income' | 'expense' | 'transfer'
    amount: float
    transaction_date: str   # 'YYYY-MM-DD HH:MM:SS'
    category_id: Optional[int] = None
    category_name: str = ""
    description: str = ""
    notes: str = ""
    to_wallet_id: Optional[int] = None
    transfer_fee: float = 0.0
    created_at: str = ""
    updated_at: str = ""


@dataclass
class TransactionFilter:
    """Query specification; a field left as None does not filter."""
    wallet_id: Optional[int] = None
    category_id: Optional[int] = None
    type: Optional[str] = None
    start: Optional[str] = None     # inclusive
    end: Optional[str] = None       # inclusive
    limit: Optional[int] = None
