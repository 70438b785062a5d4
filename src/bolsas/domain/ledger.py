"""Ledger effect calculator.

Given one transaction draft, work out every ledger row that posting it
produces (the main row plus any automatic Maaser tithe or refund transfer)
and the signed balance delta each touched account receives. Nothing here
talks to the database.
"""

import uuid
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping, Optional, Protocol

from bolsas.domain.entities import (
    AccountDefaults,
    LedgerRow,
    TransactionDraft,
    TransactionEffects,
    TransactionStatus,
    TransactionType,
)

MAASER_RATE = Decimal("0.10")
CENT = Decimal("0.01")
ZERO = Decimal("0")

TITHE_DESCRIPTION = "Maaser (10%): {description}"
REFUND_DESCRIPTION = "Reembolso Maaser: {description}"


class HasId(Protocol):
    id: int


class LedgerMovement(Protocol):
    transaction_type: TransactionType
    amount: Decimal
    account_id: int
    to_account_id: Optional[int]


@dataclass(frozen=True)
class ResolvedFlags:
    is_maaserable: Optional[bool]
    is_deductible: Optional[bool]


def compute_tithe(amount: Decimal) -> Decimal:
    """Return 10% of amount rounded half away from zero to the cent."""
    return (Decimal(amount) * MAASER_RATE).quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_flags(
    draft: TransactionDraft, account_context: Optional[AccountDefaults] = None
) -> ResolvedFlags:
    """Fill unset Maaser flags from the owning account's defaults.

    Income defaults to maaserable and expenses default to not deductible
    when the account itself leaves the default unset. Without an account
    context the flags are left as given.
    """
    is_maaserable = draft.is_maaserable
    is_deductible = draft.is_deductible

    if account_context is not None:
        if is_maaserable is None and draft.transaction_type == TransactionType.INCOME:
            default = account_context.default_income_maaserable
            is_maaserable = True if default is None else default
        if is_deductible is None and draft.transaction_type == TransactionType.EXPENSE:
            default = account_context.default_expense_deductible
            is_deductible = False if default is None else default

    return ResolvedFlags(is_maaserable=is_maaserable, is_deductible=is_deductible)


def spawns_tithe(draft: TransactionDraft, flags: ResolvedFlags) -> bool:
    return (
        not draft.is_system_generated
        and draft.transaction_type == TransactionType.INCOME
        and flags.is_maaserable is not False
    )


def spawns_refund(draft: TransactionDraft, flags: ResolvedFlags) -> bool:
    return (
        not draft.is_system_generated
        and draft.transaction_type == TransactionType.EXPENSE
        and flags.is_deductible is True
    )


def needs_maaser_account(
    draft: TransactionDraft, account_context: Optional[AccountDefaults] = None
) -> bool:
    """Return True if posting the draft would use the Maaser account."""
    flags = resolve_flags(draft, account_context)
    return spawns_tithe(draft, flags) or spawns_refund(draft, flags)


def row_deltas(row: LedgerMovement) -> dict[int, Decimal]:
    """Return the signed balance deltas a posted row applies."""
    amount = Decimal(row.amount)
    deltas: dict[int, Decimal] = defaultdict(lambda: ZERO)
    if row.transaction_type == TransactionType.INCOME:
        deltas[row.account_id] += amount
    elif row.transaction_type == TransactionType.EXPENSE:
        deltas[row.account_id] -= amount
    elif row.transaction_type == TransactionType.TRANSFER and row.to_account_id is not None:
        deltas[row.account_id] -= amount
        deltas[row.to_account_id] += amount
    return dict(deltas)


def merge_deltas(*delta_maps: Mapping[int, Decimal]) -> dict[int, Decimal]:
    """Add delta maps together, dropping accounts that net to zero."""
    merged: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for deltas in delta_maps:
        for account_id, delta in deltas.items():
            merged[account_id] += delta
    return {account_id: delta for account_id, delta in merged.items() if delta != ZERO}


def reverse_deltas(rows: Iterable[LedgerMovement]) -> dict[int, Decimal]:
    """Return the deltas that undo every row in rows."""
    reversed_maps = []
    for row in rows:
        reversed_maps.append({account_id: -delta for account_id, delta in row_deltas(row).items()})
    return merge_deltas(*reversed_maps)


def compute_effects(
    draft: TransactionDraft,
    user_id: str,
    maaser_account: Optional[HasId],
    account_context: Optional[AccountDefaults] = None,
) -> TransactionEffects:
    """Compute the ledger rows and balance deltas of posting one draft.

    Args:
        draft: Transaction to post. Its id is kept when set.
        user_id: Owner stamped on every row
        maaser_account: The Maaser account, or None when none exists yet
        account_context: Defaults of the draft's owning account

    Returns:
        TransactionEffects with the main row first
    """
    flags = resolve_flags(draft, account_context)
    main_id = draft.id or str(uuid.uuid4())

    main_row = LedgerRow(
        id=main_id,
        user_id=user_id,
        date=draft.date,
        amount=draft.amount,
        description=draft.description,
        transaction_type=draft.transaction_type,
        account_id=draft.account_id,
        to_account_id=draft.to_account_id,
        category_id=draft.category_id,
        subcategory_id=draft.subcategory_id,
        status=draft.status,
        notes=draft.notes,
        cardholder=draft.cardholder,
        is_maaserable=flags.is_maaserable,
        is_deductible=flags.is_deductible,
        is_system_generated=draft.is_system_generated,
    )
    rows = [main_row]
    delta_maps = [row_deltas(main_row)]

    if maaser_account is not None and draft.account_id != maaser_account.id:
        if spawns_tithe(draft, flags):
            tithe = compute_tithe(draft.amount)
            if tithe > ZERO:
                rows.append(
                    _system_transfer(
                        main_row,
                        amount=tithe,
                        description=TITHE_DESCRIPTION.format(description=draft.description),
                        from_account_id=draft.account_id,
                        to_account_id=maaser_account.id,
                    )
                )
                delta_maps.append(row_deltas(rows[-1]))

        if spawns_refund(draft, flags):
            rows.append(
                _system_transfer(
                    main_row,
                    amount=draft.amount,
                    description=REFUND_DESCRIPTION.format(description=draft.description),
                    from_account_id=maaser_account.id,
                    to_account_id=draft.account_id,
                )
            )
            delta_maps.append(row_deltas(rows[-1]))

    return TransactionEffects(rows=tuple(rows), deltas=merge_deltas(*delta_maps))


def _system_transfer(
    parent: LedgerRow,
    amount: Decimal,
    description: str,
    from_account_id: int,
    to_account_id: int,
) -> LedgerRow:
    return LedgerRow(
        id=str(uuid.uuid4()),
        user_id=parent.user_id,
        date=parent.date,
        amount=amount,
        description=description,
        transaction_type=TransactionType.TRANSFER,
        account_id=from_account_id,
        to_account_id=to_account_id,
        status=TransactionStatus.CLEARED,
        is_system_generated=True,
        related_transaction_id=parent.id,
    )
