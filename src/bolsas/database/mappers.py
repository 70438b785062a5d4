"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so enum values and Decimal
handling live in one place.
"""

from decimal import Decimal
from typing import Optional

from bolsas.domain import entities as domain
from bolsas.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    Budget as ORMBudget,
    RecurringTransaction as ORMRecurringTransaction,
)


def _decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(value)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        currency=orm_account.currency,
        initial_balance=_decimal(orm_account.initial_balance),
        current_balance=_decimal(orm_account.current_balance),
        created_at=orm_account.created_at,
        default_income_maaserable=orm_account.default_income_maaserable,
        default_expense_deductible=orm_account.default_expense_deductible,
        is_maaser=orm_account.is_maaser,
        is_savings_goal=orm_account.is_savings_goal,
        target_amount=_decimal(orm_account.target_amount),
        deadline=orm_account.deadline,
        color=orm_account.color,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    category_type = None
    if orm_category.category_type is not None:
        category_type = domain.CategoryType(orm_category.category_type)
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        created_at=orm_category.created_at,
        category_type=category_type,
        is_system=orm_category.is_system,
        color=orm_category.color,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        user_id=orm_transaction.user_id,
        date=orm_transaction.date,
        amount=_decimal(orm_transaction.amount),
        description=orm_transaction.description,
        transaction_type=domain.TransactionType(orm_transaction.transaction_type),
        account_id=orm_transaction.account_id,
        to_account_id=orm_transaction.to_account_id,
        category_id=orm_transaction.category_id,
        subcategory_id=orm_transaction.subcategory_id,
        status=domain.TransactionStatus(orm_transaction.status),
        notes=orm_transaction.notes,
        cardholder=orm_transaction.cardholder,
        is_maaserable=orm_transaction.is_maaserable,
        is_deductible=orm_transaction.is_deductible,
        is_system_generated=orm_transaction.is_system_generated,
        related_transaction_id=orm_transaction.related_transaction_id,
        version=orm_transaction.version,
        created_at=orm_transaction.created_at,
    )


def ledger_row_values(row: domain.LedgerRow) -> dict:
    """Return column values for writing a domain LedgerRow."""
    return {
        "user_id": row.user_id,
        "date": row.date,
        "amount": row.amount,
        "description": row.description,
        "transaction_type": domain.TransactionType(row.transaction_type).value,
        "account_id": row.account_id,
        "to_account_id": row.to_account_id,
        "category_id": row.category_id,
        "subcategory_id": row.subcategory_id,
        "status": domain.TransactionStatus(row.status).value,
        "notes": row.notes,
        "cardholder": row.cardholder,
        "is_maaserable": row.is_maaserable,
        "is_deductible": row.is_deductible,
        "is_system_generated": row.is_system_generated,
        "related_transaction_id": row.related_transaction_id,
    }


def ledger_row_to_orm(row: domain.LedgerRow) -> ORMTransaction:
    """Convert a domain LedgerRow to a new SQLAlchemy Transaction model."""
    return ORMTransaction(id=row.id, version=1, **ledger_row_values(row))


def transaction_to_ledger_row(txn: domain.Transaction) -> domain.LedgerRow:
    """Drop the bookkeeping fields of a persisted transaction."""
    return domain.LedgerRow(
        id=txn.id,
        user_id=txn.user_id,
        date=txn.date,
        amount=txn.amount,
        description=txn.description,
        transaction_type=txn.transaction_type,
        account_id=txn.account_id,
        to_account_id=txn.to_account_id,
        category_id=txn.category_id,
        subcategory_id=txn.subcategory_id,
        status=txn.status,
        notes=txn.notes,
        cardholder=txn.cardholder,
        is_maaserable=txn.is_maaserable,
        is_deductible=txn.is_deductible,
        is_system_generated=txn.is_system_generated,
        related_transaction_id=txn.related_transaction_id,
    )


def budget_to_domain(orm_budget: ORMBudget) -> domain.Budget:
    """Convert SQLAlchemy Budget model to domain Budget entity."""
    return domain.Budget(
        id=orm_budget.id,
        category_id=orm_budget.category_id,
        month_year=orm_budget.month_year,
        limit_amount=_decimal(orm_budget.limit_amount),
        alert_threshold=orm_budget.alert_threshold,
        created_at=orm_budget.created_at,
    )


def recurring_to_domain(orm_recurring: ORMRecurringTransaction) -> domain.RecurringTransaction:
    """Convert SQLAlchemy RecurringTransaction model to domain entity."""
    return domain.RecurringTransaction(
        id=orm_recurring.id,
        description=orm_recurring.description,
        amount=_decimal(orm_recurring.amount),
        transaction_type=domain.TransactionType(orm_recurring.transaction_type),
        account_id=orm_recurring.account_id,
        day_of_month=orm_recurring.day_of_month,
        active=orm_recurring.active,
        created_at=orm_recurring.created_at,
        to_account_id=orm_recurring.to_account_id,
        category_id=orm_recurring.category_id,
    )
