from dataclasses import dataclass
from typing import Optional


@dataclass
class LendBorrow:
    id: int
    type: str               # 'lent' | 'borrowed'
    person_name: str
    amount: float
    remaining_amount: float
    status: str = "pending"  # 'pending' | 'partial' | 'completed'
    description: str = ""
    notes: str = ""
    due_date: Optional[str] = None
    wallet_id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def paid_amount(self) -> float:
        return self.amount - self.remaining_amount


@dataclass
class LendBorrowPayment:
    id: int
    lend_borrow_id: int
    amount: float
    payment_date: str
    notes: str = ""
    transaction_id: Optional[int] = None
    created_at: str = ""


@dataclass
class LendBorrowFilter:
    """Query specification; a field left as None does not filter."""
    type: Optional[str] = None
    status: Optional[str] = None
    person_name: Optional[str] = None


def derive_status(amount: float, remaining: float) -> str:
    """Status is a pure function of remaining vs original amount."""
    if remaining <= 0:
        return "completed"
    if remaining < amount:
        return "partial"
    return "pending"
