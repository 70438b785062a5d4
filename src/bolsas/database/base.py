"""Abstract database interface."""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Any, Sequence
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from bolsas.domain.entities import (
    Account,
    Category,
    Transaction,
    LedgerRow,
    LedgerChanges,
    Budget,
    RecurringTransaction,
)
from bolsas.domain.errors import PartialApplyError

logger = logging.getLogger(__name__)


class Database(ABC):
    """Abstract database interface for bolsas."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        name: str,
        account_type: str,
        currency: str,
        initial_balance: Decimal = Decimal("0"),
        default_income_maaserable: Optional[bool] = None,
        default_expense_deductible: Optional[bool] = None,
        is_maaser: bool = False,
        is_savings_goal: bool = False,
        target_amount: Optional[Decimal] = None,
        deadline: Optional[date] = None,
        color: Optional[str] = None,
    ) -> int:
        """Create a new account with current balance equal to its initial balance. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_accounts(self, account_ids: Sequence[int]) -> list[Account]:
        """Get every existing account among account_ids."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    @abstractmethod
    def find_account_by_name(self, name: str) -> Optional[Account]:
        """Get account by name, ignoring case."""
        pass

    @abstractmethod
    def find_maaser_account(self) -> Optional[Account]:
        """Get the account flagged as the Maaser account."""
        pass

    @abstractmethod
    def update_account(self, account_id: int, **fields: Any) -> None:
        """Update account columns given as keyword arguments."""
        pass

    @abstractmethod
    def increment_account_balance(self, account_id: int, delta: Decimal) -> None:
        """Atomically add delta to the account's current balance."""
        pass

    @abstractmethod
    def set_account_balance(self, account_id: int, balance: Decimal) -> None:
        """Overwrite the account's current balance."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account."""
        pass

    @abstractmethod
    def get_account_transaction_count(self, account_id: int) -> int:
        """Get count of transactions referencing an account on either side."""
        pass

    @abstractmethod
    def get_account_template_count(self, account_id: int) -> int:
        """Get count of recurring templates referencing an account."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self,
        name: str,
        parent_id: Optional[int] = None,
        category_type: Optional[str] = None,
        is_system: bool = False,
        color: Optional[str] = None,
    ) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_path(self, path: str) -> Optional[Category]:
        """Get category by path (e.g., 'Hogar > Renta')."""
        pass

    @abstractmethod
    def list_categories(self, parent_id: Optional[int] = None) -> list[Category]:
        """List categories, optionally filtered by parent."""
        pass

    @abstractmethod
    def get_category_tree(self) -> list[dict[str, Any]]:
        """Get full category tree with hierarchy."""
        pass

    # Transaction operations
    @abstractmethod
    def insert_transactions(self, rows: Sequence[LedgerRow]) -> None:
        """Insert ledger rows in one batch."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def get_transaction_family(self, transaction_id: str) -> list[Transaction]:
        """Get a transaction followed by every row whose related_transaction_id is its ID.

        Returns an empty list when the transaction does not exist.
        """
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        include_system: bool = True,
    ) -> list[Transaction]:
        """List transactions with optional filters, newest first.

        account_id matches both the source and the destination account.
        """
        pass

    @abstractmethod
    def replace_transaction(self, row: LedgerRow, expected_version: Optional[int] = None) -> None:
        """Overwrite a transaction's fields, keeping its ID and bumping its version.

        Raises:
            ConflictError: If expected_version is given and no longer matches
            NotFoundError: If the transaction does not exist
        """
        pass

    @abstractmethod
    def delete_transactions(self, transaction_ids: Sequence[str]) -> None:
        """Delete every transaction in transaction_ids."""
        pass

    def apply_ledger_changes(self, changes: LedgerChanges) -> None:
        """Apply a unit of ledger work.

        This default composes the primitive operations: row deletes, the
        replacement and the batch insert come first, then one atomic increment
        per account. If an increment fails after rows were written, the store
        is left with rows whose effect is not fully reflected in the cached
        balances, and PartialApplyError reports what did and did not apply.
        Backends that can run the whole unit in one storage transaction
        should override this.
        """
        if changes.delete_ids:
            self.delete_transactions(changes.delete_ids)
        if changes.replacement is not None:
            self.replace_transaction(changes.replacement, changes.expected_version)
        if changes.inserts:
            self.insert_transactions(changes.inserts)

        applied: list[int] = []
        for account_id, delta in changes.deltas.items():
            try:
                self.increment_account_balance(account_id, delta)
            except Exception as exc:
                failed = [acc for acc in changes.deltas if acc not in applied]
                logger.error(
                    "Balance increment failed after ledger rows were written; "
                    "accounts %s need reconciliation",
                    failed,
                )
                raise PartialApplyError(
                    f"Ledger rows were written but the balance of account {account_id} "
                    f"could not be updated: {exc}",
                    inserted_ids=[row.id for row in changes.inserts],
                    applied_accounts=applied,
                    failed_accounts=failed,
                    cause=exc,
                ) from exc
            applied.append(account_id)

    # Budget operations
    @abstractmethod
    def save_budget(
        self, category_id: int, month_year: str, limit_amount: Decimal, alert_threshold: int
    ) -> int:
        """Create or replace the budget of a category for a month. Returns budget ID."""
        pass

    @abstractmethod
    def get_budget(self, budget_id: int) -> Optional[Budget]:
        """Get budget by ID."""
        pass

    @abstractmethod
    def list_budgets(self, month_year: Optional[str] = None) -> list[Budget]:
        """List budgets, optionally for one month."""
        pass

    @abstractmethod
    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget."""
        pass

    # Recurring template operations
    @abstractmethod
    def create_recurring(
        self,
        description: str,
        amount: Decimal,
        transaction_type: str,
        account_id: int,
        day_of_month: int,
        to_account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        active: bool = True,
    ) -> int:
        """Create a recurring template. Returns template ID."""
        pass

    @abstractmethod
    def get_recurring(self, template_id: int) -> Optional[RecurringTransaction]:
        """Get recurring template by ID."""
        pass

    @abstractmethod
    def list_recurring(self, active_only: bool = False) -> list[RecurringTransaction]:
        """List recurring templates ordered by day of month."""
        pass

    @abstractmethod
    def set_recurring_active(self, template_id: int, active: bool) -> None:
        """Activate or deactivate a recurring template."""
        pass

    @abstractmethod
    def delete_recurring(self, template_id: int) -> None:
        """Delete a recurring template."""
        pass
