import structlog

from pocketledger.database.budget_dao import BudgetDAO
from pocketledger.database.category_dao import CategoryDAO
from pocketledger.database.db_manager import DatabaseManager
from pocketledger.database.transaction_dao import TransactionDAO
from pocketledger.errors import ConstraintViolationError, NotFoundError
from pocketledger.models.budget import Budget, BudgetSpending
from pocketledger.utils.constants import BUDGET_ALERT_THRESHOLD, BUDGET_PERIODS, TREND_MONTHS
from pocketledger.utils.date_helpers import month_range, recent_months, today, validate_month


class BudgetService:
    def __init__(
        self,
        db: DatabaseManager,
        budget_dao: BudgetDAO,
        tx_dao: TransactionDAO,
        category_dao: CategoryDAO,
    ):
        self._db = db
        self._budget_dao = budget_dao
        self._tx_dao = tx_dao
        self._category_dao = category_dao
        self._log = structlog.get_logger(__name__)

    # ── Queries ──────────────────────────────────────────────────────────────

    def get_all(self) -> list[Budget]:
        return self._budget_dao.get_all()

    def get_by_id(self, budget_id: int) -> Budget | None:
        return self._budget_dao.get_by_id(budget_id)

    def get_by_period(self, month: int, year: int) -> list[Budget]:
        validate_month(month, year)
        return self._budget_dao.get_by_period(month, year)

    def get_by_category_and_period(self, category_id: int, month: int, year: int) -> Budget | None:
        validate_month(month, year)
        return self._budget_dao.get_by_category_and_period(category_id, month, year)

    def get_budget_with_spending(self, month: int, year: int) -> list[BudgetSpending]:
        """Every budget of the period with the expenses booked against its category."""
        start, end = month_range(month, year)
        result = []
        for budget in self._budget_dao.get_by_period(month, year):
            spent, count = self._tx_dao.get_category_spending(budget.category_id, start, end)
            result.append(BudgetSpending(
                budget=budget,
                category=self._category_dao.get_by_id(budget.category_id),
                spent=spent,
                transaction_count=count,
            ))
        return result

    def get_budget_summary(self, month: int, year: int) -> dict:
        budgets = self.get_budget_with_spending(month, year)
        total_budget = sum(b.amount for b in budgets)
        total_spent = sum(b.spent for b in budgets)
        return {
            "total_budget": total_budget,
            "total_spent": total_spent,
            "total_remaining": total_budget - total_spent,
            "overall_percentage": total_spent / total_budget * 100 if total_budget > 0 else 0.0,
            "category_count": len(budgets),
            "over_budget_count": sum(1 for b in budgets if b.is_over_budget),
            "is_over_budget": total_spent > total_budget,
            "budgets": budgets,
        }

    def get_budget_alerts(
        self, month: int, year: int, threshold: float = BUDGET_ALERT_THRESHOLD
    ) -> list[BudgetSpending]:
        return [
            b for b in self.get_budget_with_spending(month, year)
            if b.percentage >= threshold or b.is_over_budget
        ]

    def get_category_trend(
        self, category_id: int, months: int = TREND_MONTHS, ref=None
    ) -> list[dict]:
        """Budget and spending for the last `months` calendar months, oldest first."""
        if months < 1:
            raise ValueError("months must be at least 1.")
        trend = []
        for month, year in recent_months(ref or today(), months):
            budget = self._budget_dao.get_by_category_and_period(category_id, month, year)
            start, end = month_range(month, year)
            spent, _ = self._tx_dao.get_category_spending(category_id, start, end)
            trend.append({
                "month": month,
                "year": year,
                "budget": budget.amount if budget else 0.0,
                "spent": spent,
            })
        return trend

    # ── Writes ───────────────────────────────────────────────────────────────

    def create(
        self,
        category_id: int,
        amount: float,
        month: int,
        year: int,
        period: str = "monthly",
    ) -> Budget:
        self._validate(amount, month, year, period)
        with self._db.transaction():
            self._check_category(category_id)
            if self._budget_dao.get_by_category_and_period(category_id, month, year):
                raise ValueError(
                    f"A budget for category {category_id} already exists for {year}-{month:02d}."
                )
            budget = self._budget_dao.create(category_id, amount, month, year, period)
        self._log.info(
            "budget_created", budget_id=budget.id, category_id=category_id,
            month=month, year=year, amount=amount,
        )
        return budget

    def upsert_budget(
        self,
        category_id: int,
        amount: float,
        month: int,
        year: int,
        period: str = "monthly",
    ) -> Budget:
        """Set the amount for (category, month, year), creating the row only if absent."""
        self._validate(amount, month, year, period)
        with self._db.transaction():
            self._check_category(category_id)
            existing = self._budget_dao.get_by_category_and_period(category_id, month, year)
            if existing:
                budget = self._budget_dao.update(existing.id, amount, period)
            else:
                budget = self._budget_dao.create(category_id, amount, month, year, period)
        self._log.info(
            "budget_upserted", budget_id=budget.id, category_id=category_id,
            month=month, year=year, amount=amount, created=existing is None,
        )
        return budget

    def update(self, budget_id: int, amount: float, period: str | None = None) -> Budget:
        with self._db.transaction():
            budget = self._budget_dao.get_by_id(budget_id)
            if budget is None:
                raise NotFoundError("Budget", budget_id)
            period = period or budget.period
            self._validate(amount, budget.month, budget.year, period)
            updated = self._budget_dao.update(budget_id, amount, period)
        self._log.info("budget_updated", budget_id=budget_id, amount=amount)
        return updated

    def delete(self, budget_id: int):
        with self._db.transaction():
            self._budget_dao.delete(budget_id)
        self._log.info("budget_deleted", budget_id=budget_id)

    def copy_budgets(self, from_month: int, from_year: int, to_month: int, to_year: int) -> int:
        """Copy a period's budgets into another, skipping categories already budgeted there.

        Returns the number of budgets created.
        """
        validate_month(from_month, from_year)
        validate_month(to_month, to_year)
        copied = 0
        with self._db.transaction():
            for src in self._budget_dao.get_by_period(from_month, from_year):
                if self._budget_dao.get_by_category_and_period(src.category_id, to_month, to_year):
                    continue
                self._budget_dao.create(src.category_id, src.amount, to_month, to_year, src.period)
                copied += 1
        self._log.info(
            "budgets_copied",
            source=f"{from_year}-{from_month:02d}",
            target=f"{to_year}-{to_month:02d}",
            count=copied,
        )
        return copied

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _check_category(self, category_id: int):
        if self._category_dao.get_by_id(category_id) is None:
            raise ConstraintViolationError("Category", category_id, "category_id")

    @staticmethod
    def _validate(amount: float, month: int, year: int, period: str):
        if amount is None or amount < 0:
            raise ValueError("Budget amount must be non-negative.")
        validate_month(month, year)
        if period not in BUDGET_PERIODS:
            raise ValueError(f"Invalid budget period '{period}'.")
