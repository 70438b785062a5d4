"""Recurring transaction templates and monthly generation."""

import calendar
import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from bolsas.database.base import Database
from bolsas.domain.entities import (
    RecurringTransaction,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
)
from bolsas.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    category_not_found,
    recurring_not_found,
)
from bolsas.domain.transaction import TransactionService
from bolsas.utils.date_parser import validate_month

logger = logging.getLogger(__name__)


def expand_recurring(
    templates: Iterable[RecurringTransaction], target_month: str
) -> list[TransactionDraft]:
    """Turn active templates into drafts dated within target_month.

    A day_of_month past the end of the month is clamped to its last day,
    so a template for the 31st lands on Feb 28 (or 29).
    """
    year, month = (int(part) for part in validate_month(target_month).split("-"))
    last_day = calendar.monthrange(year, month)[1]

    drafts = []
    for template in templates:
        if not template.active:
            continue
        drafts.append(
            TransactionDraft(
                date=date(year, month, min(template.day_of_month, last_day)),
                amount=template.amount,
                description=template.description,
                transaction_type=template.transaction_type,
                account_id=template.account_id,
                to_account_id=template.to_account_id,
                category_id=template.category_id,
                status=TransactionStatus.CLEARED,
                is_system_generated=False,
            )
        )
    return drafts


class RecurringService:
    """Service for managing recurring templates."""

    def __init__(self, db: Database, transaction_service: Optional[TransactionService] = None):
        """Initialize recurring service.

        Args:
            db: Database instance
            transaction_service: Used to post generated transactions
        """
        self.db = db
        self.transaction_service = transaction_service or TransactionService(db)

    def create_template(
        self,
        description: str,
        amount: Decimal,
        transaction_type: TransactionType,
        account_id: int,
        day_of_month: int,
        to_account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        active: bool = True,
    ) -> int:
        """Create a recurring template.

        Returns:
            Template ID

        Raises:
            ValidationError: If the day, amount or transfer destination is invalid
            NotFoundError: If a referenced account or category doesn't exist
        """
        description = description.strip()
        if not description:
            raise ValidationError("Recurring description cannot be empty")
        if not 1 <= day_of_month <= 31:
            raise ValidationError("Day of month must be between 1 and 31")
        if amount is None or amount <= 0:
            raise ValidationError("Recurring amount must be greater than zero")

        transaction_type = TransactionType(transaction_type)
        if transaction_type == TransactionType.TRANSFER:
            if to_account_id is None:
                raise ValidationError("Transfer requires a destination account")
            if to_account_id == account_id:
                raise ValidationError("Transfer source and destination must differ")
        elif to_account_id is not None:
            raise ValidationError(f"Only transfers have a destination account, not {transaction_type.value}")

        for referenced in (account_id, to_account_id):
            if referenced is not None and self.db.get_account(referenced) is None:
                raise NotFoundError(account_not_found(referenced))
        if category_id is not None and self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))

        return self.db.create_recurring(
            description=description,
            amount=amount,
            transaction_type=transaction_type.value,
            account_id=account_id,
            day_of_month=day_of_month,
            to_account_id=to_account_id,
            category_id=category_id,
            active=active,
        )

    def get_template(self, template_id: int) -> Optional[RecurringTransaction]:
        """Get recurring template by ID."""
        return self.db.get_recurring(template_id)

    def list_templates(self, active_only: bool = False) -> list[RecurringTransaction]:
        """List templates ordered by day of month."""
        return self.db.list_recurring(active_only=active_only)

    def set_active(self, template_id: int, active: bool) -> None:
        """Activate or deactivate a template.

        Raises:
            NotFoundError: If template doesn't exist
        """
        if self.db.get_recurring(template_id) is None:
            raise NotFoundError(recurring_not_found(template_id))
        self.db.set_recurring_active(template_id, active)

    def delete_template(self, template_id: int) -> None:
        """Delete a template. Transactions it already generated are kept.

        Raises:
            NotFoundError: If template doesn't exist
        """
        if self.db.get_recurring(template_id) is None:
            raise NotFoundError(recurring_not_found(template_id))
        self.db.delete_recurring(template_id)

    def generate_for_month(self, month_year: str) -> list[str]:
        """Post one transaction per active template for month_year.

        The drafts go through the regular posting path as a single batch,
        so Maaser rows are generated for them like for any manual entry.

        Returns:
            IDs of the posted main rows
        """
        try:
            month_year = validate_month(month_year)
        except ValueError as e:
            raise ValidationError(str(e))

        drafts = expand_recurring(self.db.list_recurring(active_only=True), month_year)
        if not drafts:
            logger.info("No active recurring templates for %s", month_year)
            return []

        ids = self.transaction_service.post_transactions(drafts)
        logger.info("Generated %d recurring transaction(s) for %s", len(ids), month_year)
        return ids
