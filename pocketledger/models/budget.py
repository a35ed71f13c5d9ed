import math
from dataclasses import dataclass
from typing import Optional

from pocketledger.models.category import Category


@dataclass
class Budget:
    id: int
    category_id: int
    amount: float
    month: int          # 1-12
    year: int
    period: str = "monthly"   # 'monthly' | 'yearly'
    created_at: str = ""
    updated_at: str = ""


@dataclass
class BudgetSpending:
    """A budget paired with what was spent against it in its month."""
    budget: Budget
    category: Optional[Category]
    spent: float = 0.0
    transaction_count: int = 0

    @property
    def amount(self) -> float:
        return self.budget.amount

    @property
    def remaining(self) -> float:
        return self.budget.amount - self.spent

    @property
    def percentage(self) -> float:
        if self.budget.amount <= 0:
            return 0.0 if self.spent <= 0 else math.inf
        return self.spent / self.budget.amount * 100

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.budget.amount
