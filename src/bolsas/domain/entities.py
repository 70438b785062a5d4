"""Domain model entities for bolsas.

These are pure data classes representing business concepts, independent of
database schema. Money is always a Decimal with two places and transaction
amounts are stored positive; the sign of a balance effect comes from the
transaction type.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    """Kind of ledger movement."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class TransactionStatus(str, Enum):
    """Clearing status of a transaction."""

    PENDING = "pending"
    CLEARED = "cleared"


class AccountType(str, Enum):
    """Account ("bolsa") classification."""

    PERSONAL = "personal"
    BUSINESS = "business"
    INVESTMENT = "investment"
    WALLET = "wallet"
    SAVINGS = "savings"
    OTHER = "other"


class CategoryType(str, Enum):
    """Category classification."""

    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class Account:
    """Account ("bolsa") domain entity."""

    id: int
    name: str
    account_type: AccountType
    currency: str
    initial_balance: Decimal
    current_balance: Decimal
    created_at: datetime
    default_income_maaserable: Optional[bool] = None
    default_expense_deductible: Optional[bool] = None
    is_maaser: bool = False
    is_savings_goal: bool = False
    target_amount: Optional[Decimal] = None
    deadline: Optional[date] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class AccountDefaults:
    """Per-account defaults used when a draft leaves its flags unset."""

    default_income_maaserable: Optional[bool] = None
    default_expense_deductible: Optional[bool] = None

    @classmethod
    def from_account(cls, account: Account) -> "AccountDefaults":
        return cls(
            default_income_maaserable=account.default_income_maaserable,
            default_expense_deductible=account.default_expense_deductible,
        )


@dataclass(frozen=True)
class Category:
    """Category domain entity. A category with a parent is a subcategory."""

    id: int
    name: str
    parent_id: Optional[int]
    created_at: datetime
    category_type: Optional[CategoryType] = None
    is_system: bool = False
    color: Optional[str] = None


@dataclass(frozen=True)
class TransactionDraft:
    """User-entered transaction before posting."""

    date: date
    amount: Decimal
    description: str
    transaction_type: TransactionType
    account_id: int
    to_account_id: Optional[int] = None
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    status: TransactionStatus = TransactionStatus.CLEARED
    notes: Optional[str] = None
    cardholder: Optional[str] = None
    is_maaserable: Optional[bool] = None
    is_deductible: Optional[bool] = None
    is_system_generated: bool = False
    id: Optional[str] = None


@dataclass(frozen=True)
class LedgerRow:
    """Ledger row ready to be written to the store."""

    id: str
    user_id: str
    date: date
    amount: Decimal
    description: str
    transaction_type: TransactionType
    account_id: int
    to_account_id: Optional[int] = None
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    status: TransactionStatus = TransactionStatus.CLEARED
    notes: Optional[str] = None
    cardholder: Optional[str] = None
    is_maaserable: Optional[bool] = None
    is_deductible: Optional[bool] = None
    is_system_generated: bool = False
    related_transaction_id: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    """Persisted transaction domain entity."""

    id: str
    user_id: str
    date: date
    amount: Decimal
    description: str
    transaction_type: TransactionType
    account_id: int
    to_account_id: Optional[int]
    category_id: Optional[int]
    subcategory_id: Optional[int]
    status: TransactionStatus
    notes: Optional[str]
    cardholder: Optional[str]
    is_maaserable: Optional[bool]
    is_deductible: Optional[bool]
    is_system_generated: bool
    related_transaction_id: Optional[str]
    version: int
    created_at: datetime


@dataclass(frozen=True)
class TransactionEffects:
    """Rows and per-account balance deltas produced by posting one draft.

    The main row is always first.
    """

    rows: tuple[LedgerRow, ...]
    deltas: dict[int, Decimal]

    @property
    def main_row(self) -> LedgerRow:
        return self.rows[0]

    @property
    def dependents(self) -> tuple[LedgerRow, ...]:
        return self.rows[1:]


@dataclass(frozen=True)
class LedgerChanges:
    """One unit of work against the store.

    Applied in this order: delete_ids, replacement, inserts, deltas.
    """

    inserts: tuple[LedgerRow, ...] = ()
    delete_ids: tuple[str, ...] = ()
    replacement: Optional[LedgerRow] = None
    expected_version: Optional[int] = None
    deltas: dict[int, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class Budget:
    """Monthly spending limit for one category."""

    id: int
    category_id: int
    month_year: str
    limit_amount: Decimal
    alert_threshold: int
    created_at: datetime


@dataclass(frozen=True)
class BudgetStatus:
    """Spend-vs-limit status of a budget. Derived, never persisted."""

    budget: Budget
    spent: Decimal
    remaining: Decimal
    percentage: Decimal
    is_exceeded: bool
    should_alert: bool


@dataclass(frozen=True)
class BudgetAlert:
    """Budget that crossed its alert threshold."""

    budget_id: int
    category_id: int
    month_year: str
    percentage: Decimal
    spent: Decimal
    limit_amount: Decimal
    remaining_days: int


@dataclass(frozen=True)
class RecurringTransaction:
    """Template used to synthesize transactions once per month."""

    id: int
    description: str
    amount: Decimal
    transaction_type: TransactionType
    account_id: int
    day_of_month: int
    active: bool
    created_at: datetime
    to_account_id: Optional[int] = None
    category_id: Optional[int] = None


@dataclass(frozen=True)
class SavingsGoalProgress:
    """Progress of a savings-goal account towards its target."""

    account: Account
    target_amount: Decimal
    current_balance: Decimal
    percentage: Decimal

    @property
    def is_completed(self) -> bool:
        return self.percentage >= 100


class TrendDirection(str, Enum):
    """Direction of month-over-month spending."""

    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


@dataclass(frozen=True)
class CategoryTotal:
    """Amount spent in one top-level category. category_id None is uncategorized."""

    category_id: Optional[int]
    name: str
    total: Decimal
    color: Optional[str] = None


@dataclass(frozen=True)
class MonthlySummary:
    """Income, expenses and Maaser obligation of one month.

    maaser is 10% of the Maaser base (eligible income minus deductible
    expenses) and jomesh is 10% of what remains after it; both are zero
    when the base is not positive.
    """

    month_year: str
    income: Decimal
    expense: Decimal
    net: Decimal
    maaserable_income: Decimal
    deductible_expenses: Decimal
    maaser_base: Decimal
    maaser: Decimal
    jomesh: Decimal
    expenses_by_category: tuple[CategoryTotal, ...] = ()


@dataclass(frozen=True)
class MonthlyTotal:
    """Expense total of one month, with per-category subtotals."""

    month_year: str
    total: Decimal
    category_totals: dict[Optional[int], Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class TrendStats:
    """Spending trend over consecutive months, oldest first."""

    months: tuple[MonthlyTotal, ...]
    average: Decimal
    std_dev: Decimal
    direction: TrendDirection


@dataclass(frozen=True)
class MonthEndPrediction:
    """Linear projection of the current month's spending."""

    month_year: str
    spent: Decimal
    projected_total: Decimal
    avg_per_day: Decimal
    days_passed: int
    days_remaining: int
    baseline: Decimal
    change_percentage: Decimal
    change_direction: str
