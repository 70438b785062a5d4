"""Budget evaluation and budget domain service."""

import calendar
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from bolsas.database.base import Database
from bolsas.domain.entities import (
    Budget,
    BudgetAlert,
    BudgetStatus,
    Transaction,
    TransactionType,
)
from bolsas.domain.errors import (
    NotFoundError,
    ValidationError,
    budget_not_found,
    category_not_found,
)
from bolsas.utils.date_parser import month_bounds, validate_month

DEFAULT_ALERT_THRESHOLD = 80


def evaluate_budget(budget: Budget, transactions: Iterable[Transaction]) -> BudgetStatus:
    """Compute spend-vs-limit status for one budget.

    Only expenses dated within the budget month count, filed under the
    budget category either directly or as their subcategory.
    A zero limit yields an infinite percentage; callers decide how to show it.
    """
    spent = Decimal("0")
    for txn in transactions:
        if (
            txn.transaction_type == TransactionType.EXPENSE
            and budget.category_id in (txn.category_id, txn.subcategory_id)
            and txn.date.strftime("%Y-%m") == budget.month_year
        ):
            spent += txn.amount

    limit = budget.limit_amount
    if limit == 0:
        percentage = Decimal("Infinity")
    else:
        percentage = spent / limit * 100

    return BudgetStatus(
        budget=budget,
        spent=spent,
        remaining=max(Decimal("0"), limit - spent),
        percentage=percentage,
        is_exceeded=percentage > 100,
        should_alert=percentage >= budget.alert_threshold,
    )


def _checked_month(month_year: str) -> str:
    try:
        return validate_month(month_year)
    except ValueError as e:
        raise ValidationError(str(e))


def days_remaining(month_year: str, today: date) -> int:
    """Days left in month_year after today, never negative."""
    year, month = (int(part) for part in month_year.split("-"))
    last_day = date(year, month, calendar.monthrange(year, month)[1])
    return max(0, (last_day - today).days)


class BudgetService:
    """Service for managing monthly budgets."""

    def __init__(self, db: Database):
        """Initialize budget service.

        Args:
            db: Database instance
        """
        self.db = db

    def set_budget(
        self,
        category_id: int,
        month_year: str,
        limit_amount: Decimal,
        alert_threshold: int = DEFAULT_ALERT_THRESHOLD,
    ) -> int:
        """Create or replace the budget of a category for a month.

        Raises:
            ValidationError: If the month, limit or threshold is invalid
            NotFoundError: If category doesn't exist
        """
        month_year = _checked_month(month_year)
        if limit_amount is None or limit_amount <= 0:
            raise ValidationError("Budget limit must be greater than zero")
        if not 1 <= alert_threshold <= 100:
            raise ValidationError("Alert threshold must be between 1 and 100 percent")
        if self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))

        return self.db.save_budget(
            category_id=category_id,
            month_year=month_year,
            limit_amount=limit_amount,
            alert_threshold=alert_threshold,
        )

    def get_budget(self, budget_id: int) -> Optional[Budget]:
        """Get budget by ID."""
        return self.db.get_budget(budget_id)

    def list_budgets(self, month_year: Optional[str] = None) -> list[Budget]:
        """List budgets, optionally for one month."""
        if month_year is not None:
            month_year = _checked_month(month_year)
        return self.db.list_budgets(month_year=month_year)

    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget.

        Raises:
            NotFoundError: If budget doesn't exist
        """
        if self.db.get_budget(budget_id) is None:
            raise NotFoundError(budget_not_found(budget_id))
        self.db.delete_budget(budget_id)

    def get_statuses(self, month_year: str) -> list[BudgetStatus]:
        """Evaluate every budget of a month against that month's expenses."""
        month_year = _checked_month(month_year)
        budgets = self.db.list_budgets(month_year=month_year)
        if not budgets:
            return []

        start, end = month_bounds(month_year)
        transactions = self.db.list_transactions(start_date=start, end_date=end)
        return [evaluate_budget(budget, transactions) for budget in budgets]

    def get_alerts(self, month_year: str, today: Optional[date] = None) -> list[BudgetAlert]:
        """List budgets of a month that reached their alert threshold."""
        today = today or date.today()
        alerts = []
        for status in self.get_statuses(month_year):
            if not status.should_alert:
                continue
            alerts.append(
                BudgetAlert(
                    budget_id=status.budget.id,
                    category_id=status.budget.category_id,
                    month_year=status.budget.month_year,
                    percentage=status.percentage,
                    spent=status.spent,
                    limit_amount=status.budget.limit_amount,
                    remaining_days=days_remaining(status.budget.month_year, today),
                )
            )
        return alerts
