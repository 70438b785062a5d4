"""Shared pytest fixtures for bolsas tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
import pytest

from bolsas.database.factories import create_sqlite_database
from bolsas.domain.account import AccountService
from bolsas.domain.budget import BudgetService
from bolsas.domain.category import CategoryService
from bolsas.domain.entities import AccountType, CategoryType, TransactionDraft, TransactionType
from bolsas.domain.recurring import RecurringService
from bolsas.domain.transaction import TransactionService


SAMPLE_CATEGORIES = [
    ("Ingresos", None, CategoryType.INCOME),
    ("Sueldo", "Ingresos", None),
    ("Hogar", None, CategoryType.EXPENSE),
    ("Renta", "Hogar", None),
    ("Comida", None, CategoryType.EXPENSE),
    ("Tzedaka", None, CategoryType.EXPENSE),
]


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db, user_id="tester")


@pytest.fixture
def budget_service(temp_db):
    """Create a BudgetService with a temporary database."""
    return BudgetService(temp_db)


@pytest.fixture
def recurring_service(temp_db, transaction_service):
    """Create a RecurringService posting through the shared TransactionService."""
    return RecurringService(temp_db, transaction_service)


@pytest.fixture
def sample_account(account_service):
    """Create a sample account for testing."""
    account_id = account_service.create_account(name="Test Account")
    return account_service.get_account(account_id)


@pytest.fixture
def sample_accounts(account_service):
    """Create a personal, a business and a savings account."""
    ids = {
        "personal": account_service.create_account(name="Banco", initial_balance=Decimal("1000.00")),
        "business": account_service.create_account(
            name="Negocio",
            account_type=AccountType.BUSINESS,
            default_income_maaserable=False,
            default_expense_deductible=True,
        ),
        "savings": account_service.create_account(name="Ahorro", account_type=AccountType.SAVINGS),
    }
    return {key: account_service.get_account(account_id) for key, account_id in ids.items()}


@pytest.fixture
def sample_categories(category_service):
    """Create sample categories and return their IDs keyed by path."""
    category_ids = {}
    for name, parent, category_type in SAMPLE_CATEGORIES:
        category_id = category_service.create_category(
            name=name, parent_path=parent, category_type=category_type
        )
        category_ids[f"{parent} > {name}" if parent else name] = category_id
    return category_ids


@pytest.fixture
def make_draft():
    """Build TransactionDrafts with sensible defaults."""

    def _make(account_id, amount="100.00", transaction_type=TransactionType.EXPENSE, **kwargs):
        kwargs.setdefault("date", date(2024, 3, 15))
        kwargs.setdefault("description", "Test")
        return TransactionDraft(
            amount=Decimal(amount),
            transaction_type=transaction_type,
            account_id=account_id,
            **kwargs,
        )

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
