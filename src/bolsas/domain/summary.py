"""Monthly summary, spending trend and month-end projection."""

import calendar
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from bolsas.database.base import Database
from bolsas.domain.entities import (
    Category,
    CategoryTotal,
    MonthEndPrediction,
    MonthlySummary,
    MonthlyTotal,
    Transaction,
    TransactionType,
    TrendDirection,
    TrendStats,
)
from bolsas.domain.errors import NotFoundError, ValidationError, account_not_found, category_not_found
from bolsas.domain.ledger import CENT, ZERO, compute_tithe
from bolsas.utils.date_parser import month_bounds, trailing_months, validate_month

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
TREND_THRESHOLD = Decimal("0.03")
DEFAULT_TREND_MONTHS = 6


def summarize_month(
    transactions: Iterable[Transaction],
    month_year: str,
    categories: Optional[Mapping[int, Category]] = None,
) -> MonthlySummary:
    """Total one month's income and expenses and the Maaser owed on them.

    Income counts toward the Maaser base unless it was opted out;
    expenses reduce it only when marked deductible. Transfers, including
    the generated tithe and refund rows, are ignored.
    """
    categories = categories or {}
    income = expense = maaserable = deductible = ZERO
    by_category: dict[Optional[int], Decimal] = defaultdict(Decimal)

    for txn in transactions:
        if txn.date.strftime("%Y-%m") != month_year:
            continue
        if txn.transaction_type == TransactionType.INCOME:
            income += txn.amount
            if txn.is_maaserable is not False:
                maaserable += txn.amount
        elif txn.transaction_type == TransactionType.EXPENSE:
            expense += txn.amount
            by_category[txn.category_id] += txn.amount
            if txn.is_deductible is True:
                deductible += txn.amount

    base = maaserable - deductible
    if base > 0:
        maaser = compute_tithe(base)
        jomesh = compute_tithe(base - maaser)
    else:
        maaser = jomesh = ZERO

    totals = []
    for category_id, total in by_category.items():
        category = categories.get(category_id) if category_id is not None else None
        totals.append(
            CategoryTotal(
                category_id=category_id,
                name=category.name if category else UNCATEGORIZED,
                total=total,
                color=category.color if category else None,
            )
        )
    totals.sort(key=lambda item: item.total, reverse=True)

    return MonthlySummary(
        month_year=month_year,
        income=income,
        expense=expense,
        net=income - expense,
        maaserable_income=maaserable,
        deductible_expenses=deductible,
        maaser_base=base,
        maaser=maaser,
        jomesh=jomesh,
        expenses_by_category=tuple(totals),
    )


def monthly_totals(
    transactions: Iterable[Transaction],
    months: Sequence[str],
    category_id: Optional[int] = None,
) -> list[MonthlyTotal]:
    """Expense totals for each of months, in the given order.

    With category_id, only expenses filed under it directly or as their
    subcategory count. Months without expenses get a zero total.
    """
    totals: dict[str, Decimal] = {month: ZERO for month in months}
    per_category: dict[str, dict[Optional[int], Decimal]] = {month: defaultdict(Decimal) for month in months}

    for txn in transactions:
        if txn.transaction_type != TransactionType.EXPENSE:
            continue
        if category_id is not None and category_id not in (txn.category_id, txn.subcategory_id):
            continue
        month = txn.date.strftime("%Y-%m")
        if month not in totals:
            continue
        totals[month] += txn.amount
        per_category[month][txn.category_id] += txn.amount

    return [
        MonthlyTotal(month_year=month, total=totals[month], category_totals=dict(per_category[month]))
        for month in months
    ]


def calculate_average(months: Sequence[MonthlyTotal]) -> Decimal:
    if not months:
        return ZERO
    return (sum((m.total for m in months), ZERO) / len(months)).quantize(CENT)


def calculate_std_dev(months: Sequence[MonthlyTotal]) -> Decimal:
    """Population standard deviation of the monthly totals."""
    if len(months) <= 1:
        return ZERO
    mean = sum((m.total for m in months), ZERO) / len(months)
    variance = sum(((m.total - mean) ** 2 for m in months), ZERO) / len(months)
    return variance.sqrt().quantize(CENT)


def detect_trend(months: Sequence[MonthlyTotal]) -> TrendDirection:
    """Classify the mean month-over-month change against 3% of the average."""
    if len(months) < 2:
        return TrendDirection.STABLE

    diffs = [later.total - earlier.total for earlier, later in zip(months, months[1:])]
    mean_diff = sum(diffs, ZERO) / len(diffs)
    threshold = calculate_average(months) * TREND_THRESHOLD

    if mean_diff > threshold:
        return TrendDirection.INCREASING
    if mean_diff < -threshold:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def build_trend(months: Sequence[MonthlyTotal]) -> TrendStats:
    return TrendStats(
        months=tuple(months),
        average=calculate_average(months),
        std_dev=calculate_std_dev(months),
        direction=detect_trend(months),
    )


def predict_month_end(
    months: Sequence[MonthlyTotal],
    historical_average: Decimal,
    today: date,
) -> MonthEndPrediction:
    """Project the last month's spending to its end at the current daily rate.

    months ends with today's month. The projection is compared with the
    previous month, or with historical_average when the previous month
    has no spending. A zero baseline gives an infinite change unless the
    projection is zero too.
    """
    if not months:
        raise ValueError("At least one month is required for a prediction")

    current = months[-1]
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    days_passed = today.day
    days_left = days_in_month - days_passed

    avg_per_day = current.total / days_passed
    projected = (current.total + avg_per_day * days_left).quantize(CENT)

    baseline = months[-2].total if len(months) >= 2 else ZERO
    if baseline == 0:
        baseline = historical_average

    difference = projected - baseline
    if baseline == 0:
        change = ZERO if projected == 0 else Decimal("Infinity")
    else:
        change = abs(difference / baseline * 100)

    if difference > 0:
        direction = "up"
    elif difference < 0:
        direction = "down"
    else:
        direction = "same"

    return MonthEndPrediction(
        month_year=current.month_year,
        spent=current.total,
        projected_total=projected,
        avg_per_day=avg_per_day.quantize(CENT),
        days_passed=days_passed,
        days_remaining=days_left,
        baseline=baseline,
        change_percentage=change,
        change_direction=direction,
    )


class SummaryService:
    """Service for monthly summaries and spending trends."""

    def __init__(self, db: Database):
        """Initialize summary service.

        Args:
            db: Database instance
        """
        self.db = db

    def month_summary(self, month_year: str, account_id: Optional[int] = None) -> MonthlySummary:
        """Summarize one month, optionally limited to one account.

        Raises:
            ValidationError: If month_year is not a valid month
            NotFoundError: If account_id does not exist
        """
        month_year = self._checked_month(month_year)
        if account_id is not None and self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        start, end = month_bounds(month_year)
        transactions = self.db.list_transactions(
            start_date=start, end_date=end, account_id=account_id, include_system=False
        )
        category_ids = {txn.category_id for txn in transactions if txn.category_id is not None}
        categories = {category_id: self.db.get_category(category_id) for category_id in category_ids}
        categories = {key: value for key, value in categories.items() if value is not None}
        logger.debug("Summarizing %d transactions for %s", len(transactions), month_year)
        return summarize_month(transactions, month_year, categories)

    def trend(
        self,
        months: int = DEFAULT_TREND_MONTHS,
        category_id: Optional[int] = None,
        end_month: Optional[str] = None,
    ) -> TrendStats:
        """Expense trend over the months ending at end_month (default: this month).

        Raises:
            ValidationError: If months is below 1 or end_month is invalid
            NotFoundError: If category_id does not exist
        """
        month_list = self._month_window(months, end_month)
        if category_id is not None and self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))

        start, _ = month_bounds(month_list[0])
        _, end = month_bounds(month_list[-1])
        transactions = self.db.list_transactions(start_date=start, end_date=end, include_system=False)
        return build_trend(monthly_totals(transactions, month_list, category_id))

    def predict(
        self,
        today: Optional[date] = None,
        months: int = DEFAULT_TREND_MONTHS,
        category_id: Optional[int] = None,
    ) -> MonthEndPrediction:
        """Project this month's expenses from the spending so far."""
        today = today or date.today()
        trend = self.trend(months=months, category_id=category_id, end_month=today.strftime("%Y-%m"))
        return predict_month_end(trend.months, trend.average, today)

    def _month_window(self, months: int, end_month: Optional[str]) -> list[str]:
        end_month = self._checked_month(end_month) if end_month else date.today().strftime("%Y-%m")
        try:
            return trailing_months(months, end_month)
        except ValueError as e:
            raise ValidationError(str(e))

    @staticmethod
    def _checked_month(month_year: str) -> str:
        try:
            return validate_month(month_year)
        except ValueError as e:
            raise ValidationError(str(e))
