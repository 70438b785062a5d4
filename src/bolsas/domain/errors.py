"""Shared domain error messages and error types."""

from typing import Iterable, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or a stale version."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class PartialApplyError(RuntimeError):
    """Rows were written but at least one balance increment failed.

    Retrying the whole posting would double-apply the increments that did
    succeed, so callers should alert an operator and reconcile the listed
    accounts instead.
    """

    def __init__(
        self,
        message: str,
        inserted_ids: Iterable[str] = (),
        applied_accounts: Iterable[int] = (),
        failed_accounts: Iterable[int] = (),
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.inserted_ids = tuple(inserted_ids)
        self.applied_accounts = tuple(applied_accounts)
        self.failed_accounts = tuple(failed_accounts)
        self.cause = cause


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_name_taken(name: str) -> str:
    """Return message for duplicate account name."""
    return f"Account with name '{name}' already exists"


def transaction_not_found(transaction_id: str) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def category_path_not_found(path: str) -> str:
    """Return message for missing category by path."""
    return f"Category '{path}' not found"


def budget_not_found(budget_id: int) -> str:
    """Return message for missing budget."""
    return f"Budget {budget_id} not found"


def recurring_not_found(template_id: int) -> str:
    """Return message for missing recurring template."""
    return f"Recurring transaction {template_id} not found"


def stale_transaction_version(transaction_id: str, expected: int) -> str:
    """Return message when a transaction changed since it was read."""
    return (
        f"Transaction {transaction_id} was modified by someone else "
        f"(expected version {expected}). Reload it and try again."
    )


def account_delete_blocked(account_id: int, transaction_count: int, template_count: int) -> str:
    """Return message when account has dependent transactions or templates."""
    parts = []
    if transaction_count > 0:
        parts.append(f"{transaction_count} transaction{'s' if transaction_count != 1 else ''}")
    if template_count > 0:
        parts.append(
            f"{template_count} recurring template{'s' if template_count != 1 else ''}"
        )
    return (
        f"Cannot delete account {account_id}: it has {', '.join(parts)}. "
        "Please reassign or delete them first."
    )
