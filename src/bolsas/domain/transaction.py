"""Transaction domain service.

Posting, editing and deleting transactions always goes through the ledger
calculator so that automatic Maaser rows and account balances stay in step
with the rows that exist.
"""

import dataclasses
import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from bolsas.database.base import Database
from bolsas.domain.account import MaaserAccountResolver
from bolsas.domain.entities import (
    Account,
    AccountDefaults,
    LedgerChanges,
    LedgerRow,
    Transaction as TransactionEntity,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
)
from bolsas.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    category_not_found,
    stale_transaction_version,
    transaction_not_found,
)
from bolsas.domain.ledger import (
    CENT,
    ZERO,
    compute_effects,
    merge_deltas,
    needs_maaser_account,
    reverse_deltas,
    row_deltas,
)

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "local"


class TransactionService:
    """Service for posting, editing and deleting transactions."""

    def __init__(
        self,
        db: Database,
        user_id: str = DEFAULT_USER_ID,
        maaser_resolver: Optional[MaaserAccountResolver] = None,
    ):
        """Initialize transaction service.

        Args:
            db: Database instance
            user_id: Owner stamped on rows posted through this service
            maaser_resolver: Locates or creates the Maaser account
        """
        self.db = db
        self.user_id = user_id
        self.maaser_resolver = maaser_resolver or MaaserAccountResolver(db)

    def validate_draft(self, draft: TransactionDraft) -> None:
        """Check a draft before anything is computed or stored.

        Raises:
            ValidationError: If a required field is missing or inconsistent
        """
        if draft.account_id is None:
            raise ValidationError("Transaction requires an account")
        if draft.date is None:
            raise ValidationError("Transaction requires a date")
        if draft.amount is None:
            raise ValidationError("Transaction requires an amount")
        amount = Decimal(draft.amount)
        if not amount.is_finite():
            raise ValidationError(f"Transaction amount must be a finite number (got {draft.amount})")
        if amount < ZERO:
            raise ValidationError(
                f"Transaction amount must not be negative (got {draft.amount}); "
                "use the transaction type to express direction"
            )
        if amount != amount.quantize(CENT):
            raise ValidationError(f"Transaction amount has more than two decimal places (got {draft.amount})")
        try:
            transaction_type = TransactionType(draft.transaction_type)
        except ValueError:
            raise ValidationError(f"Unknown transaction type '{draft.transaction_type}'")

        if transaction_type == TransactionType.TRANSFER:
            if draft.to_account_id is None:
                raise ValidationError("Transfer requires a destination account")
            if draft.to_account_id == draft.account_id:
                raise ValidationError("Transfer source and destination must differ")
        elif draft.to_account_id is not None:
            raise ValidationError(f"Only transfers have a destination account, not {transaction_type.value}")

    def _load_accounts(self, drafts: Sequence[TransactionDraft]) -> dict[int, Account]:
        wanted = set()
        for draft in drafts:
            wanted.add(draft.account_id)
            if draft.to_account_id is not None:
                wanted.add(draft.to_account_id)

        accounts = {account.id: account for account in self.db.get_accounts(sorted(wanted))}
        for account_id in sorted(wanted):
            if account_id not in accounts:
                raise NotFoundError(account_not_found(account_id))
        return accounts

    def _check_categories(self, drafts: Sequence[TransactionDraft]) -> None:
        wanted = set()
        for draft in drafts:
            for category_id in (draft.category_id, draft.subcategory_id):
                if category_id is not None:
                    wanted.add(category_id)
        for category_id in sorted(wanted):
            if self.db.get_category(category_id) is None:
                raise NotFoundError(category_not_found(category_id))

    def post_transactions(self, drafts: Sequence[TransactionDraft]) -> list[str]:
        """Post a batch of transactions.

        Every draft is validated and every referenced account is loaded
        before anything is written. The Maaser account is created at most
        once, and only if some draft needs it. All rows go to the store in
        one batch, with the balance deltas of the whole batch merged per
        account.

        Args:
            drafts: Transactions to post

        Returns:
            IDs of the main rows, in input order

        Raises:
            ValidationError: If a draft is malformed
            NotFoundError: If a referenced account or category doesn't exist
        """
        if not drafts:
            return []

        for draft in drafts:
            self.validate_draft(draft)
        accounts = self._load_accounts(drafts)
        self._check_categories(drafts)

        contexts = [AccountDefaults.from_account(accounts[draft.account_id]) for draft in drafts]
        if any(needs_maaser_account(draft, ctx) for draft, ctx in zip(drafts, contexts)):
            maaser = self.maaser_resolver.find_or_create()
        else:
            maaser = self.maaser_resolver.find()

        rows: list[LedgerRow] = []
        delta_maps = []
        main_ids = []
        for draft, ctx in zip(drafts, contexts):
            effects = compute_effects(draft, self.user_id, maaser, ctx)
            rows.extend(effects.rows)
            delta_maps.append(effects.deltas)
            main_ids.append(effects.main_row.id)

        deltas = merge_deltas(*delta_maps)
        logger.debug("Balance deltas for batch of %d: %s", len(drafts), deltas)
        self.db.apply_ledger_changes(LedgerChanges(inserts=tuple(rows), deltas=deltas))
        logger.info(
            "Posted %d transaction(s) as %d ledger row(s) touching %d account(s)",
            len(drafts),
            len(rows),
            len(deltas),
        )
        return main_ids

    def post_transaction(self, draft: TransactionDraft) -> str:
        """Post one transaction. Returns the main row's ID."""
        return self.post_transactions([draft])[0]

    def get_transaction(self, transaction_id: str) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def get_dependents(self, transaction_id: str) -> list[TransactionEntity]:
        """Get the system-generated rows owned by a transaction."""
        return self.db.get_transaction_family(transaction_id)[1:]

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        include_system: bool = True,
    ) -> list[TransactionEntity]:
        """List transactions with filters.

        Args:
            start_date: Optional start date filter
            end_date: Optional end date filter
            account_id: Optional account filter (source or destination)
            category_id: Optional category filter
            include_system: If False, hide automatic Maaser rows

        Returns:
            List of transaction entities, newest first
        """
        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            account_id=account_id,
            category_id=category_id,
            include_system=include_system,
        )

    def delete_transaction(self, transaction_id: str) -> list[str]:
        """Delete a transaction together with its system-generated dependents.

        The balance effect of every deleted row is reversed in the same unit
        of work.

        Args:
            transaction_id: Transaction ID to delete

        Returns:
            IDs of every deleted row

        Raises:
            NotFoundError: If transaction doesn't exist
        """
        family = self.db.get_transaction_family(transaction_id)
        if not family:
            raise NotFoundError(transaction_not_found(transaction_id))

        deleted_ids = tuple(txn.id for txn in family)
        deltas = reverse_deltas(family)
        self.db.apply_ledger_changes(LedgerChanges(delete_ids=deleted_ids, deltas=deltas))
        logger.info("Deleted transaction %s and %d dependent row(s)", transaction_id, len(family) - 1)
        return list(deleted_ids)

    def delete_transactions(self, transaction_ids: Sequence[str]) -> list[str]:
        """Delete several transactions, one at a time.

        IDs already removed as a dependent of an earlier ID are skipped.
        """
        deleted: list[str] = []
        for transaction_id in transaction_ids:
            if transaction_id in deleted:
                continue
            deleted.extend(self.delete_transaction(transaction_id))
        return deleted

    def update_transaction(
        self,
        transaction_id: str,
        expected_version: Optional[int] = None,
        account_id: Optional[int] = None,
        to_account_id: Optional[int] = None,
        date: Optional[date] = None,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
        category_id: Optional[int] = None,
        subcategory_id: Optional[int] = None,
        status: Optional[TransactionStatus] = None,
        notes: Optional[str] = None,
        cardholder: Optional[str] = None,
        is_maaserable: Optional[bool] = None,
        is_deductible: Optional[bool] = None,
        clear_category: bool = False,
    ) -> list[str]:
        """Update a transaction and regenerate its dependents.

        The old row and its dependents are reversed, the dependents are
        dropped, the row is rewritten under the same ID, and the calculator
        runs again on the result. Everything is applied as one unit of work,
        so an edited amount, account, type or Maaser flag never leaves a
        stale tithe or refund behind.

        Args:
            transaction_id: Transaction ID to update
            expected_version: Version the caller last read; when given, the
                update is refused if someone else changed the row since
            clear_category: If True, clear category and subcategory
            Other arguments: new field values; None leaves a field unchanged

        Returns:
            IDs of the newly generated dependent rows

        Raises:
            NotFoundError: If transaction, account or category doesn't exist
            ValidationError: If the updated transaction is inconsistent
            ConflictError: If expected_version is stale
        """
        family = self.db.get_transaction_family(transaction_id)
        if not family:
            raise NotFoundError(transaction_not_found(transaction_id))
        target, dependents = family[0], family[1:]

        if expected_version is not None and target.version != expected_version:
            raise ConflictError(stale_transaction_version(transaction_id, expected_version))

        if clear_category and (category_id is not None or subcategory_id is not None):
            raise ValidationError("Cannot set a category and clear_category together")

        new_type = TransactionType(transaction_type) if transaction_type is not None else target.transaction_type
        type_changed = new_type != target.transaction_type

        new_to_account_id = to_account_id if to_account_id is not None else target.to_account_id
        if type_changed and new_type != TransactionType.TRANSFER and to_account_id is None:
            new_to_account_id = None

        new_is_maaserable = target.is_maaserable if is_maaserable is None else is_maaserable
        new_is_deductible = target.is_deductible if is_deductible is None else is_deductible
        if type_changed:
            # Flags recorded for the old type fall back to the account defaults
            if is_maaserable is None:
                new_is_maaserable = None
            if is_deductible is None:
                new_is_deductible = None

        draft = TransactionDraft(
            id=target.id,
            date=date if date is not None else target.date,
            amount=amount if amount is not None else target.amount,
            description=description if description is not None else target.description,
            transaction_type=new_type,
            account_id=account_id if account_id is not None else target.account_id,
            to_account_id=new_to_account_id,
            category_id=None if clear_category else (category_id if category_id is not None else target.category_id),
            subcategory_id=None
            if clear_category
            else (subcategory_id if subcategory_id is not None else target.subcategory_id),
            status=status if status is not None else target.status,
            notes=notes if notes is not None else target.notes,
            cardholder=cardholder if cardholder is not None else target.cardholder,
            is_maaserable=new_is_maaserable,
            is_deductible=new_is_deductible,
            is_system_generated=target.is_system_generated,
        )

        self.validate_draft(draft)
        accounts = self._load_accounts([draft])
        self._check_categories([draft])

        context = AccountDefaults.from_account(accounts[draft.account_id])
        if needs_maaser_account(draft, context):
            maaser = self.maaser_resolver.find_or_create()
        else:
            maaser = self.maaser_resolver.find()

        effects = compute_effects(draft, target.user_id, maaser, context)
        replacement = dataclasses.replace(
            effects.main_row, related_transaction_id=target.related_transaction_id
        )
        deltas = merge_deltas(reverse_deltas(family), effects.deltas)

        self.db.apply_ledger_changes(
            LedgerChanges(
                delete_ids=tuple(dep.id for dep in dependents),
                replacement=replacement,
                expected_version=expected_version,
                inserts=effects.dependents,
                deltas=deltas,
            )
        )
        logger.info(
            "Updated transaction %s: replaced %d dependent row(s) with %d",
            transaction_id,
            len(dependents),
            len(effects.dependents),
        )
        return [row.id for row in effects.dependents]

    def reconcile_account(self, account_id: int) -> Decimal:
        """Recompute an account balance from the ledger.

        Returns:
            initial balance plus the signed delta of every row referencing
            the account

        Raises:
            NotFoundError: If account doesn't exist
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        total = account.initial_balance
        for txn in self.db.list_transactions(account_id=account_id):
            total += row_deltas(txn).get(account_id, ZERO)
        return total

    def repair_account_balance(self, account_id: int) -> tuple[Decimal, Decimal]:
        """Overwrite the cached balance with the reconciled one.

        Returns:
            (previous cached balance, reconciled balance)
        """
        expected = self.reconcile_account(account_id)
        account = self.db.get_account(account_id)
        if account.current_balance != expected:
            logger.warning(
                "Account %s balance drifted: cached %s, ledger %s",
                account_id,
                account.current_balance,
                expected,
            )
            self.db.set_account_balance(account_id, expected)
        return account.current_balance, expected
