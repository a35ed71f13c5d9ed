import math
from datetime import date

import pytest

from pocketledger.errors import ConstraintViolationError, NotFoundError


@pytest.fixture
def spend(ledger, bank):
    def _spend(category_id, amount, when, type_="expense"):
        return ledger.transactions.create(
            bank.id, type_, amount, transaction_date=when, category_id=category_id
        )
    return _spend


class TestBudgetCrud:
    def test_upsert_keeps_one_row_per_period(self, ledger, food):
        first = ledger.budgets.upsert_budget(food.id, 10000.0, 3, 2024)
        second = ledger.budgets.upsert_budget(food.id, 12000.0, 3, 2024)
        assert first.id == second.id
        rows = ledger.budgets.get_by_period(3, 2024)
        assert len(rows) == 1
        assert rows[0].amount == 12000.0

    def test_upsert_other_month_creates_row(self, ledger, food):
        ledger.budgets.upsert_budget(food.id, 100.0, 3, 2024)
        ledger.budgets.upsert_budget(food.id, 100.0, 4, 2024)
        assert len(ledger.budgets.get_all()) == 2

    def test_create_rejects_second_budget_for_period(self, ledger, food):
        ledger.budgets.upsert_budget(food.id, 100.0, 3, 2024)
        with pytest.raises(ValueError):
            ledger.budgets.create(food.id, 200.0, 3, 2024)
        rows = ledger.budgets.get_by_period(3, 2024)
        assert [(r.category_id, r.amount) for r in rows] == [(food.id, 100.0)]

    def test_unknown_category(self, ledger):
        with pytest.raises(ConstraintViolationError):
            ledger.budgets.upsert_budget(55, 100.0, 1, 2024)

    @pytest.mark.parametrize("amount,month", [(-1.0, 1), (10.0, 0), (10.0, 13)])
    def test_invalid(self, ledger, food, amount, month):
        with pytest.raises(ValueError):
            ledger.budgets.create(food.id, amount, month, 2024)

    def test_update_and_delete(self, ledger, food):
        budget = ledger.budgets.create(food.id, 100.0, 5, 2024)
        assert ledger.budgets.update(budget.id, 250.0).amount == 250.0
        ledger.budgets.delete(budget.id)
        assert ledger.budgets.get_by_id(budget.id) is None
        with pytest.raises(NotFoundError):
            ledger.budgets.update(budget.id, 1.0)


class TestSpending:
    def test_percentage_and_alert(self, ledger, food, spend):
        ledger.budgets.upsert_budget(food.id, 10000.0, 3, 2024)
        spend(food.id, 5000.0, "2024-03-01 00:00:00")
        spend(food.id, 3500.0, "2024-03-31 23:59:59")
        spend(food.id, 999.0, "2024-04-01 00:00:00")
        spend(food.id, 700.0, "2024-03-10", type_="income")

        [row] = ledger.budgets.get_budget_with_spending(3, 2024)
        assert row.spent == 8500.0
        assert row.transaction_count == 2
        assert row.percentage == 85.0
        assert row.remaining == 1500.0
        assert row.is_over_budget is False
        assert row.category.name == "Food"
        assert [a.budget.id for a in ledger.budgets.get_budget_alerts(3, 2024)] == [row.budget.id]
        assert ledger.budgets.get_budget_alerts(3, 2024, threshold=90) == []

    def test_over_budget_is_alerted_even_above_threshold(self, ledger, food, spend):
        ledger.budgets.upsert_budget(food.id, 100.0, 3, 2024)
        spend(food.id, 150.0, "2024-03-02")
        [alert] = ledger.budgets.get_budget_alerts(3, 2024, threshold=200)
        assert alert.is_over_budget

    def test_zero_amount_budget(self, ledger, food, spend):
        ledger.budgets.upsert_budget(food.id, 0.0, 3, 2024)
        assert ledger.budgets.get_budget_with_spending(3, 2024)[0].percentage == 0.0
        spend(food.id, 1.0, "2024-03-02")
        assert math.isinf(ledger.budgets.get_budget_with_spending(3, 2024)[0].percentage)

    def test_summary(self, ledger, food, spend):
        travel = ledger.categories.create("Travel", "expense", "#4ECDC4")
        ledger.budgets.upsert_budget(food.id, 100.0, 3, 2024)
        ledger.budgets.upsert_budget(travel.id, 300.0, 3, 2024)
        spend(food.id, 150.0, "2024-03-02")
        spend(travel.id, 50.0, "2024-03-03")
        summary = ledger.budgets.get_budget_summary(3, 2024)
        assert summary["total_budget"] == 400.0
        assert summary["total_spent"] == 200.0
        assert summary["total_remaining"] == 200.0
        assert summary["overall_percentage"] == 50.0
        assert summary["category_count"] == 2
        assert summary["over_budget_count"] == 1
        assert summary["is_over_budget"] is False


class TestCopyBudgets:
    def test_copy_does_not_overwrite(self, ledger, food):
        travel = ledger.categories.create("Travel", "expense", "#4ECDC4")
        ledger.budgets.upsert_budget(food.id, 100.0, 1, 2024)
        ledger.budgets.upsert_budget(travel.id, 200.0, 1, 2024)
        existing = ledger.budgets.upsert_budget(food.id, 999.0, 2, 2024)

        assert ledger.budgets.copy_budgets(1, 2024, 2, 2024) == 1

        target = {b.category_id: b for b in ledger.budgets.get_by_period(2, 2024)}
        assert target[food.id].id == existing.id
        assert target[food.id].amount == 999.0
        assert target[travel.id].amount == 200.0

    def test_copy_is_idempotent(self, ledger, food):
        ledger.budgets.upsert_budget(food.id, 100.0, 12, 2023)
        assert ledger.budgets.copy_budgets(12, 2023, 1, 2024) == 1
        assert ledger.budgets.copy_budgets(12, 2023, 1, 2024) == 0
        assert len(ledger.budgets.get_by_period(1, 2024)) == 1


class TestCategoryTrend:
    def test_walks_back_across_year_boundary(self, ledger, food, spend):
        ledger.budgets.upsert_budget(food.id, 500.0, 12, 2023)
        spend(food.id, 120.0, "2023-12-15")
        spend(food.id, 80.0, "2024-02-01")

        trend = ledger.budgets.get_category_trend(food.id, months=3, ref=date(2024, 2, 20))

        assert trend == [
            {"month": 12, "year": 2023, "budget": 500.0, "spent": 120.0},
            {"month": 1, "year": 2024, "budget": 0.0, "spent": 0},
            {"month": 2, "year": 2024, "budget": 0.0, "spent": 80.0},
        ]
