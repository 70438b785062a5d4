"""Account domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from bolsas.database.base import Database
from bolsas.domain.entities import (
    Account as AccountEntity,
    AccountType,
    SavingsGoalProgress,
)
from bolsas.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    account_delete_blocked,
    account_name_taken,
    account_not_found,
)

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "MXN"
MAASER_ACCOUNT_NAME = "Maaser"


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        name: str,
        account_type: AccountType = AccountType.PERSONAL,
        currency: str = DEFAULT_CURRENCY,
        initial_balance: Decimal = Decimal("0"),
        default_income_maaserable: Optional[bool] = None,
        default_expense_deductible: Optional[bool] = None,
        is_savings_goal: bool = False,
        target_amount: Optional[Decimal] = None,
        deadline: Optional[date] = None,
        color: Optional[str] = None,
    ) -> int:
        """Create a new account.

        Args:
            name: Account name, unique ignoring case
            account_type: Account classification
            currency: ISO currency code
            initial_balance: Opening balance; the current balance starts here
            default_income_maaserable: Default Maaser eligibility of income
            default_expense_deductible: Default deductibility of expenses
            is_savings_goal: Whether the account tracks a savings goal
            target_amount: Savings goal target
            deadline: Savings goal deadline
            color: Display color

        Returns:
            Account ID

        Raises:
            ValidationError: If the name is empty or goal fields are inconsistent
            ConflictError: If account name already exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Account name cannot be empty")
        if target_amount is not None and target_amount <= 0:
            raise ValidationError("Savings goal target must be greater than zero")

        if self.db.find_account_by_name(name) is not None:
            raise ConflictError(account_name_taken(name))

        return self.db.create_account(
            name=name,
            account_type=AccountType(account_type).value,
            currency=currency.upper(),
            initial_balance=initial_balance,
            default_income_maaserable=default_income_maaserable,
            default_expense_deductible=default_expense_deductible,
            is_maaser=False,
            is_savings_goal=is_savings_goal or target_amount is not None,
            target_amount=target_amount,
            deadline=deadline,
            color=color,
        )

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def require_account(self, account_id: int) -> AccountEntity:
        """Get account by ID or raise NotFoundError."""
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def find_account_by_name(self, name: str) -> Optional[AccountEntity]:
        """Get account by name, ignoring case."""
        return self.db.find_account_by_name(name)

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts.

        Returns:
            List of account entities
        """
        return self.db.list_accounts()

    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        account_type: Optional[AccountType] = None,
        currency: Optional[str] = None,
        default_income_maaserable: Optional[bool] = None,
        default_expense_deductible: Optional[bool] = None,
        target_amount: Optional[Decimal] = None,
        deadline: Optional[date] = None,
        color: Optional[str] = None,
    ) -> None:
        """Update account settings. Fields left as None are not changed.

        Balances are not editable here; they only move through posted
        transactions or reconciliation.

        Raises:
            NotFoundError: If account not found
            ConflictError: If the new name already exists
        """
        self.require_account(account_id)

        fields = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Account name cannot be empty")
            fields["name"] = name.strip()
        if account_type is not None:
            fields["account_type"] = AccountType(account_type).value
        if currency is not None:
            fields["currency"] = currency.upper()
        if default_income_maaserable is not None:
            fields["default_income_maaserable"] = default_income_maaserable
        if default_expense_deductible is not None:
            fields["default_expense_deductible"] = default_expense_deductible
        if target_amount is not None:
            if target_amount <= 0:
                raise ValidationError("Savings goal target must be greater than zero")
            fields["target_amount"] = target_amount
            fields["is_savings_goal"] = True
        if deadline is not None:
            fields["deadline"] = deadline
        if color is not None:
            fields["color"] = color

        if fields:
            self.db.update_account(account_id, **fields)

    def delete_account(self, account_id: int) -> None:
        """Delete an account.

        Args:
            account_id: Account ID to delete

        Raises:
            NotFoundError: If account not found
            DependencyError: If transactions or recurring templates reference it
        """
        self.require_account(account_id)

        transaction_count = self.db.get_account_transaction_count(account_id)
        template_count = self.db.get_account_template_count(account_id)
        if transaction_count > 0 or template_count > 0:
            raise DependencyError(account_delete_blocked(account_id, transaction_count, template_count))

        self.db.delete_account(account_id)

    def savings_goals(self) -> list[SavingsGoalProgress]:
        """Return progress of every savings-goal account with a target."""
        goals = []
        for account in self.db.list_accounts():
            if not account.is_savings_goal or not account.target_amount:
                continue
            percentage = min(
                account.current_balance / account.target_amount * 100, Decimal("100")
            )
            goals.append(
                SavingsGoalProgress(
                    account=account,
                    target_amount=account.target_amount,
                    current_balance=account.current_balance,
                    percentage=max(percentage, Decimal("0")),
                )
            )
        return goals


class MaaserAccountResolver:
    """Locates, and on demand creates, the Maaser account.

    The account is recognised by its is_maaser flag. Older data may only
    have an account named "maaser"; the first such account (ignoring case)
    is adopted and flagged. The result is cached on the resolver and
    re-read on each lookup, so a batch sharing one resolver creates the
    account at most once.
    """

    def __init__(self, db: Database, currency: str = DEFAULT_CURRENCY):
        self.db = db
        self.currency = currency
        self._account: Optional[AccountEntity] = None

    def find(self) -> Optional[AccountEntity]:
        """Return the Maaser account, or None if there is none yet."""
        if self._account is not None:
            # The cached account may have been deleted or unflagged since
            cached = self.db.get_account(self._account.id)
            if cached is not None and cached.is_maaser:
                self._account = cached
                return cached
            self._account = None

        account = self.db.find_maaser_account()
        if account is None:
            account = self.db.find_account_by_name(MAASER_ACCOUNT_NAME)
            if account is not None:
                logger.info("Adopting account %s (%s) as the Maaser account", account.id, account.name)
                self.db.update_account(account.id, is_maaser=True)

        self._account = account
        return account

    def find_or_create(self) -> AccountEntity:
        """Return the Maaser account, creating an empty one if needed."""
        account = self.find()
        if account is not None:
            return account

        account_id = self.db.create_account(
            name=MAASER_ACCOUNT_NAME,
            account_type=AccountType.SAVINGS.value,
            currency=self.currency,
            initial_balance=Decimal("0"),
            is_maaser=True,
        )
        logger.info("Created Maaser account %s", account_id)
        self._account = self.db.get_account(account_id)
        return self._account

    def reset(self) -> None:
        """Forget the cached account."""
        self._account = None
