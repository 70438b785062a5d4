"""Tests for the ledger effect calculator."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest

from bolsas.domain.entities import AccountDefaults, TransactionDraft, TransactionType
from bolsas.domain.ledger import (
    compute_effects,
    compute_tithe,
    merge_deltas,
    needs_maaser_account,
    resolve_flags,
    reverse_deltas,
    row_deltas,
)

BANK = 1
MAASER = 9
SAVINGS = 3


@dataclass
class StubAccount:
    id: int


def draft(amount, transaction_type, **kwargs) -> TransactionDraft:
    kwargs.setdefault("account_id", BANK)
    kwargs.setdefault("description", "Sueldo")
    return TransactionDraft(
        date=date(2024, 5, 1),
        amount=Decimal(amount),
        transaction_type=transaction_type,
        **kwargs,
    )


class TestComputeTithe:
    """Tests for tithe rounding."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            ("1000", "100.00"),
            ("10.20", "1.02"),
            ("0.05", "0.01"),
            ("0.04", "0.00"),
            ("333.35", "33.34"),
        ],
    )
    def test_ten_percent_rounded_half_up(self, amount, expected):
        assert compute_tithe(Decimal(amount)) == Decimal(expected)


class TestResolveFlags:
    """Tests for defaulting of Maaser flags."""

    def test_income_defaults_to_maaserable(self):
        flags = resolve_flags(draft("100", TransactionType.INCOME), AccountDefaults())
        assert flags.is_maaserable is True
        assert flags.is_deductible is None

    def test_expense_defaults_to_not_deductible(self):
        flags = resolve_flags(draft("100", TransactionType.EXPENSE), AccountDefaults())
        assert flags.is_deductible is False
        assert flags.is_maaserable is None

    def test_account_defaults_apply(self):
        context = AccountDefaults(default_income_maaserable=False, default_expense_deductible=True)
        assert resolve_flags(draft("100", TransactionType.INCOME), context).is_maaserable is False
        assert resolve_flags(draft("100", TransactionType.EXPENSE), context).is_deductible is True

    def test_explicit_flag_beats_account_default(self):
        context = AccountDefaults(default_income_maaserable=False)
        flags = resolve_flags(draft("100", TransactionType.INCOME, is_maaserable=True), context)
        assert flags.is_maaserable is True

    def test_without_context_flags_stay_unset(self):
        flags = resolve_flags(draft("100", TransactionType.INCOME))
        assert flags.is_maaserable is None

    def test_transfer_flags_untouched(self):
        flags = resolve_flags(draft("100", TransactionType.TRANSFER, to_account_id=SAVINGS), AccountDefaults())
        assert flags.is_maaserable is None
        assert flags.is_deductible is None


class TestRowDeltas:
    """Tests for signed balance deltas of a single row."""

    def test_income(self):
        assert row_deltas(draft("50", TransactionType.INCOME)) == {BANK: Decimal("50")}

    def test_expense(self):
        assert row_deltas(draft("50", TransactionType.EXPENSE)) == {BANK: Decimal("-50")}

    def test_transfer(self):
        deltas = row_deltas(draft("50", TransactionType.TRANSFER, to_account_id=SAVINGS))
        assert deltas == {BANK: Decimal("-50"), SAVINGS: Decimal("50")}

    def test_transfer_without_destination_moves_nothing(self):
        assert row_deltas(draft("50", TransactionType.TRANSFER)) == {}


class TestMergeDeltas:
    """Tests for combining delta maps."""

    def test_sums_per_account(self):
        merged = merge_deltas({BANK: Decimal("10")}, {BANK: Decimal("5"), MAASER: Decimal("1")})
        assert merged == {BANK: Decimal("15"), MAASER: Decimal("1")}

    def test_drops_zero_net(self):
        assert merge_deltas({BANK: Decimal("10")}, {BANK: Decimal("-10")}) == {}

    def test_reverse_undoes_rows(self):
        rows = [
            draft("100", TransactionType.INCOME),
            draft("10", TransactionType.TRANSFER, to_account_id=MAASER),
        ]
        forward = merge_deltas(*(row_deltas(row) for row in rows))
        assert merge_deltas(forward, reverse_deltas(rows)) == {}


class TestComputeEffects:
    """Tests for rows and deltas produced by posting a draft."""

    def test_income_spawns_tithe(self):
        effects = compute_effects(
            draft("1000", TransactionType.INCOME), "u1", StubAccount(MAASER), AccountDefaults()
        )

        assert len(effects.rows) == 2
        main, tithe = effects.rows
        assert main.is_maaserable is True
        assert main.is_system_generated is False
        assert tithe.transaction_type == TransactionType.TRANSFER
        assert tithe.amount == Decimal("100.00")
        assert tithe.account_id == BANK
        assert tithe.to_account_id == MAASER
        assert tithe.is_system_generated is True
        assert tithe.related_transaction_id == main.id
        assert tithe.description == "Maaser (10%): Sueldo"
        assert tithe.date == main.date
        assert tithe.user_id == "u1"
        assert effects.deltas == {BANK: Decimal("900.00"), MAASER: Decimal("100.00")}

    def test_small_income_deltas(self):
        effects = compute_effects(
            draft("100", TransactionType.INCOME), "u1", StubAccount(MAASER), AccountDefaults()
        )
        assert effects.deltas == {BANK: Decimal("90.00"), MAASER: Decimal("10.00")}

    def test_income_opt_out(self):
        effects = compute_effects(
            draft("1000", TransactionType.INCOME, is_maaserable=False),
            "u1",
            StubAccount(MAASER),
            AccountDefaults(),
        )
        assert len(effects.rows) == 1
        assert effects.deltas == {BANK: Decimal("1000")}

    def test_deductible_expense_spawns_full_refund(self):
        effects = compute_effects(
            draft("500", TransactionType.EXPENSE, description="Tzedaka", is_deductible=True),
            "u1",
            StubAccount(MAASER),
            AccountDefaults(),
        )

        main, refund = effects.rows
        assert refund.amount == Decimal("500")
        assert refund.account_id == MAASER
        assert refund.to_account_id == BANK
        assert refund.description == "Reembolso Maaser: Tzedaka"
        assert refund.related_transaction_id == main.id
        # Expense and refund cancel out on the paying account
        assert effects.deltas == {MAASER: Decimal("-500")}

    def test_plain_expense_has_no_dependents(self):
        effects = compute_effects(
            draft("500", TransactionType.EXPENSE), "u1", StubAccount(MAASER), AccountDefaults()
        )
        assert effects.dependents == ()
        assert effects.deltas == {BANK: Decimal("-500")}

    def test_transfer_never_spawns(self):
        effects = compute_effects(
            draft("500", TransactionType.TRANSFER, to_account_id=SAVINGS, is_maaserable=True),
            "u1",
            StubAccount(MAASER),
            AccountDefaults(),
        )
        assert effects.dependents == ()

    def test_system_generated_row_never_spawns(self):
        effects = compute_effects(
            draft("1000", TransactionType.INCOME, is_system_generated=True),
            "u1",
            StubAccount(MAASER),
            AccountDefaults(),
        )
        assert effects.dependents == ()

    def test_income_into_maaser_account_is_not_tithed(self):
        effects = compute_effects(
            draft("1000", TransactionType.INCOME, account_id=MAASER),
            "u1",
            StubAccount(MAASER),
            AccountDefaults(),
        )
        assert effects.dependents == ()

    def test_no_maaser_account_means_no_dependents(self):
        effects = compute_effects(draft("1000", TransactionType.INCOME), "u1", None, AccountDefaults())
        assert effects.dependents == ()
        assert effects.deltas == {BANK: Decimal("1000")}

    def test_tiny_income_rounds_tithe_to_zero(self):
        effects = compute_effects(
            draft("0.04", TransactionType.INCOME), "u1", StubAccount(MAASER), AccountDefaults()
        )
        assert effects.dependents == ()

    def test_draft_id_is_kept(self):
        effects = compute_effects(
            draft("10", TransactionType.EXPENSE, id="fixed-id"), "u1", None, AccountDefaults()
        )
        assert effects.main_row.id == "fixed-id"

    def test_new_ids_are_unique(self):
        effects = compute_effects(
            draft("1000", TransactionType.INCOME), "u1", StubAccount(MAASER), AccountDefaults()
        )
        assert len({row.id for row in effects.rows}) == 2


class TestNeedsMaaserAccount:
    """Tests for deciding whether a draft needs the Maaser account."""

    def test_income(self):
        assert needs_maaser_account(draft("1", TransactionType.INCOME), AccountDefaults()) is True

    def test_opted_out_income(self):
        context = AccountDefaults(default_income_maaserable=False)
        assert needs_maaser_account(draft("1", TransactionType.INCOME), context) is False

    def test_plain_expense(self):
        assert needs_maaser_account(draft("1", TransactionType.EXPENSE), AccountDefaults()) is False
