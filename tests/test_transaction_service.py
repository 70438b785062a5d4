"""Tests for TransactionService posting, editing and deleting."""

from decimal import Decimal

import pytest

from bolsas.database.base import Database
from bolsas.database.mappers import transaction_to_ledger_row
from bolsas.database.sqlalchemy_db import SQLAlchemyDatabase
from bolsas.domain.account import AccountService
from bolsas.domain.entities import TransactionType
from bolsas.domain.errors import ConflictError, NotFoundError, PartialApplyError, ValidationError
from bolsas.domain.transaction import TransactionService


def balance(db, account_id) -> Decimal:
    return db.get_account(account_id).current_balance


def maaser_account(db):
    return db.find_maaser_account()


class TestPostTransaction:
    """Tests for posting single transactions."""

    def test_income_creates_maaser_account_and_tithe(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank = sample_accounts["personal"]
        assert maaser_account(temp_db) is None

        txn_id = transaction_service.post_transaction(
            make_draft(bank.id, "1000.00", TransactionType.INCOME, description="Sueldo")
        )

        maaser = maaser_account(temp_db)
        assert maaser is not None
        assert maaser.name == "Maaser"
        assert balance(temp_db, bank.id) == Decimal("1900.00")
        assert balance(temp_db, maaser.id) == Decimal("100.00")

        main = transaction_service.get_transaction(txn_id)
        assert main.is_maaserable is True
        assert main.user_id == "tester"
        assert main.version == 1

        dependents = transaction_service.get_dependents(txn_id)
        assert len(dependents) == 1
        assert dependents[0].amount == Decimal("100.00")
        assert dependents[0].related_transaction_id == txn_id
        assert dependents[0].is_system_generated is True

    def test_opted_out_income_does_not_create_maaser_account(
        self, temp_db, transaction_service, sample_accounts, make_draft
    ):
        business = sample_accounts["business"]
        transaction_service.post_transaction(make_draft(business.id, "500", TransactionType.INCOME))

        assert maaser_account(temp_db) is None
        assert balance(temp_db, business.id) == Decimal("500")

    def test_deductible_expense_refunded(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank = sample_accounts["personal"]
        transaction_service.post_transaction(make_draft(bank.id, "1000", TransactionType.INCOME))
        maaser = maaser_account(temp_db)

        txn_id = transaction_service.post_transaction(
            make_draft(bank.id, "50", TransactionType.EXPENSE, description="Tzedaka", is_deductible=True)
        )

        assert balance(temp_db, bank.id) == Decimal("1900.00")
        assert balance(temp_db, maaser.id) == Decimal("50.00")
        refund = transaction_service.get_dependents(txn_id)[0]
        assert refund.description == "Reembolso Maaser: Tzedaka"
        assert refund.account_id == maaser.id
        assert refund.to_account_id == bank.id

    def test_account_default_makes_expense_deductible(
        self, temp_db, transaction_service, sample_accounts, make_draft
    ):
        business = sample_accounts["business"]
        txn_id = transaction_service.post_transaction(make_draft(business.id, "80", TransactionType.EXPENSE))

        assert transaction_service.get_transaction(txn_id).is_deductible is True
        assert len(transaction_service.get_dependents(txn_id)) == 1
        assert balance(temp_db, business.id) == Decimal("0")

    def test_transfer_moves_balance(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank, savings = sample_accounts["personal"], sample_accounts["savings"]
        txn_id = transaction_service.post_transaction(
            make_draft(bank.id, "250", TransactionType.TRANSFER, to_account_id=savings.id)
        )

        assert balance(temp_db, bank.id) == Decimal("750.00")
        assert balance(temp_db, savings.id) == Decimal("250")
        assert transaction_service.get_dependents(txn_id) == []

    def test_existing_maaser_named_account_is_adopted(
        self, temp_db, account_service, transaction_service, sample_accounts, make_draft
    ):
        legacy_id = account_service.create_account(name="maaser")
        transaction_service.post_transaction(
            make_draft(sample_accounts["personal"].id, "100", TransactionType.INCOME)
        )

        assert maaser_account(temp_db).id == legacy_id
        assert len(account_service.list_accounts()) == 4
        assert balance(temp_db, legacy_id) == Decimal("10.00")


class TestPostValidation:
    """Tests for draft validation before anything is stored."""

    def test_negative_amount_rejected(self, transaction_service, sample_account, make_draft):
        with pytest.raises(ValidationError):
            transaction_service.post_transaction(make_draft(sample_account.id, "-5"))

    def test_sub_cent_amount_rejected(self, temp_db, transaction_service, sample_account, make_draft):
        with pytest.raises(ValidationError, match="two decimal places"):
            transaction_service.post_transaction(make_draft(sample_account.id, "10.005", TransactionType.INCOME))

        assert transaction_service.list_transactions() == []

    def test_trailing_zero_decimals_accepted(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank = sample_accounts["personal"]
        transaction_service.post_transaction(make_draft(bank.id, "10.500", TransactionType.INCOME))

        assert balance(temp_db, bank.id) == Decimal("1009.45")
        assert transaction_service.reconcile_account(bank.id) == balance(temp_db, bank.id)

    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "sNaN"])
    def test_non_finite_amount_rejected(self, transaction_service, sample_account, make_draft, amount):
        with pytest.raises(ValidationError, match="finite"):
            transaction_service.post_transaction(make_draft(sample_account.id, amount))

    def test_update_to_sub_cent_amount_rejected(self, transaction_service, sample_account, make_draft):
        txn_id = transaction_service.post_transaction(make_draft(sample_account.id, "10"))

        with pytest.raises(ValidationError):
            transaction_service.update_transaction(txn_id, amount=Decimal("9.999"))

        assert transaction_service.get_transaction(txn_id).amount == Decimal("10")

    def test_transfer_requires_destination(self, transaction_service, sample_account, make_draft):
        with pytest.raises(ValidationError, match="destination"):
            transaction_service.post_transaction(
                make_draft(sample_account.id, "5", TransactionType.TRANSFER)
            )

    def test_transfer_to_same_account_rejected(self, transaction_service, sample_account, make_draft):
        with pytest.raises(ValidationError):
            transaction_service.post_transaction(
                make_draft(sample_account.id, "5", TransactionType.TRANSFER, to_account_id=sample_account.id)
            )

    def test_destination_only_for_transfers(self, transaction_service, sample_accounts, make_draft):
        with pytest.raises(ValidationError):
            transaction_service.post_transaction(
                make_draft(
                    sample_accounts["personal"].id,
                    "5",
                    TransactionType.EXPENSE,
                    to_account_id=sample_accounts["savings"].id,
                )
            )

    def test_unknown_account(self, transaction_service, make_draft):
        with pytest.raises(NotFoundError):
            transaction_service.post_transaction(make_draft(999, "5"))

    def test_unknown_category(self, transaction_service, sample_account, make_draft):
        with pytest.raises(NotFoundError):
            transaction_service.post_transaction(make_draft(sample_account.id, "5", category_id=999))

    def test_invalid_batch_writes_nothing(self, temp_db, transaction_service, sample_account, make_draft):
        with pytest.raises(NotFoundError):
            transaction_service.post_transactions(
                [make_draft(sample_account.id, "5"), make_draft(999, "5")]
            )

        assert transaction_service.list_transactions() == []
        assert balance(temp_db, sample_account.id) == Decimal("0")


class TestPostBatch:
    """Tests for posting several transactions at once."""

    def test_batch_merges_deltas(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank = sample_accounts["personal"]
        ids = transaction_service.post_transactions(
            [
                make_draft(bank.id, "1000", TransactionType.INCOME, description="A"),
                make_draft(bank.id, "200", TransactionType.INCOME, description="B"),
                make_draft(bank.id, "300", TransactionType.EXPENSE, description="C"),
            ]
        )

        assert len(ids) == 3
        assert [transaction_service.get_transaction(i).description for i in ids] == ["A", "B", "C"]
        maaser = maaser_account(temp_db)
        assert balance(temp_db, maaser.id) == Decimal("120.00")
        assert balance(temp_db, bank.id) == Decimal("1780.00")
        assert len(transaction_service.list_transactions()) == 5

    def test_batch_creates_maaser_account_once(
        self, account_service, transaction_service, sample_accounts, make_draft
    ):
        bank = sample_accounts["personal"]
        transaction_service.post_transactions(
            [make_draft(bank.id, "100", TransactionType.INCOME) for _ in range(3)]
        )

        names = [acc.name for acc in account_service.list_accounts()]
        assert names.count("Maaser") == 1

    def test_empty_batch(self, transaction_service):
        assert transaction_service.post_transactions([]) == []


class TestDeleteTransaction:
    """Tests for deleting transactions with their dependents."""

    def test_delete_removes_tithe(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank = sample_accounts["personal"]
        txn_id = transaction_service.post_transaction(make_draft(bank.id, "1000", TransactionType.INCOME))
        maaser = maaser_account(temp_db)

        deleted = transaction_service.delete_transaction(txn_id)

        assert len(deleted) == 2
        assert deleted[0] == txn_id
        assert balance(temp_db, bank.id) == Decimal("1000.00")
        assert balance(temp_db, maaser.id) == Decimal("0")
        assert transaction_service.list_transactions() == []

    @pytest.mark.parametrize(
        "account_key,amount,transaction_type,extra",
        [
            ("personal", "1000", TransactionType.INCOME, {}),
            ("personal", "1000", TransactionType.INCOME, {"is_maaserable": False}),
            ("business", "750", TransactionType.INCOME, {}),
            ("personal", "120.50", TransactionType.EXPENSE, {}),
            ("personal", "80", TransactionType.EXPENSE, {"is_deductible": True}),
            ("business", "45.55", TransactionType.EXPENSE, {}),
            ("personal", "250", TransactionType.TRANSFER, {"to_account_key": "savings"}),
        ],
        ids=[
            "tithed-income",
            "opted-out-income",
            "business-income",
            "plain-expense",
            "deductible-expense",
            "business-deductible-expense",
            "transfer",
        ],
    )
    def test_delete_restores_balances(
        self, temp_db, transaction_service, sample_accounts, make_draft, account_key, amount, transaction_type, extra
    ):
        extra = dict(extra)
        to_account_key = extra.pop("to_account_key", None)
        if to_account_key is not None:
            extra["to_account_id"] = sample_accounts[to_account_key].id
        before = {acc.id: acc.current_balance for acc in temp_db.list_accounts()}

        txn_id = transaction_service.post_transaction(
            make_draft(sample_accounts[account_key].id, amount, transaction_type, **extra)
        )

        for account in temp_db.list_accounts():
            assert transaction_service.reconcile_account(account.id) == account.current_balance

        transaction_service.delete_transaction(txn_id)

        assert transaction_service.list_transactions() == []
        for account in temp_db.list_accounts():
            assert account.current_balance == before.get(account.id, Decimal("0"))
            assert transaction_service.reconcile_account(account.id) == account.current_balance

    def test_delete_unknown(self, transaction_service):
        with pytest.raises(NotFoundError):
            transaction_service.delete_transaction("missing")

    def test_delete_many_skips_already_deleted_dependents(
        self, temp_db, transaction_service, sample_accounts, make_draft
    ):
        bank = sample_accounts["personal"]
        txn_id = transaction_service.post_transaction(make_draft(bank.id, "1000", TransactionType.INCOME))
        dependent_id = transaction_service.get_dependents(txn_id)[0].id

        deleted = transaction_service.delete_transactions([txn_id, dependent_id])

        assert set(deleted) == {txn_id, dependent_id}
        assert balance(temp_db, bank.id) == Decimal("1000.00")


class TestUpdateTransaction:
    """Tests for editing transactions and regenerating dependents."""

    def test_amount_change_regenerates_tithe(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank = sample_accounts["personal"]
        txn_id = transaction_service.post_transaction(make_draft(bank.id, "1000", TransactionType.INCOME))
        maaser = maaser_account(temp_db)
        old_dependent = transaction_service.get_dependents(txn_id)[0].id

        new_ids = transaction_service.update_transaction(txn_id, amount=Decimal("2000"))

        assert len(new_ids) == 1
        assert new_ids[0] != old_dependent
        assert transaction_service.get_transaction(old_dependent) is None
        assert transaction_service.get_dependents(txn_id)[0].amount == Decimal("200.00")
        assert balance(temp_db, bank.id) == Decimal("2800.00")
        assert balance(temp_db, maaser.id) == Decimal("200.00")
        assert transaction_service.get_transaction(txn_id).version == 2

    def test_opting_out_removes_tithe(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank = sample_accounts["personal"]
        txn_id = transaction_service.post_transaction(make_draft(bank.id, "1000", TransactionType.INCOME))
        maaser = maaser_account(temp_db)

        assert transaction_service.update_transaction(txn_id, is_maaserable=False) == []

        assert transaction_service.get_dependents(txn_id) == []
        assert balance(temp_db, bank.id) == Decimal("2000.00")
        assert balance(temp_db, maaser.id) == Decimal("0")

    def test_type_change_to_expense(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank = sample_accounts["personal"]
        txn_id = transaction_service.post_transaction(make_draft(bank.id, "100", TransactionType.INCOME))

        transaction_service.update_transaction(txn_id, transaction_type=TransactionType.EXPENSE)

        txn = transaction_service.get_transaction(txn_id)
        assert txn.transaction_type == TransactionType.EXPENSE
        assert txn.is_maaserable is None
        assert txn.is_deductible is False
        assert balance(temp_db, bank.id) == Decimal("900.00")

    def test_moving_to_another_account(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank, savings = sample_accounts["personal"], sample_accounts["savings"]
        txn_id = transaction_service.post_transaction(make_draft(bank.id, "100"))

        transaction_service.update_transaction(txn_id, account_id=savings.id)

        assert balance(temp_db, bank.id) == Decimal("1000.00")
        assert balance(temp_db, savings.id) == Decimal("-100.00")

    def test_update_category_and_clear(self, transaction_service, sample_account, sample_categories, make_draft):
        txn_id = transaction_service.post_transaction(make_draft(sample_account.id, "10"))

        transaction_service.update_transaction(
            txn_id, category_id=sample_categories["Hogar"], subcategory_id=sample_categories["Hogar > Renta"]
        )
        txn = transaction_service.get_transaction(txn_id)
        assert txn.category_id == sample_categories["Hogar"]
        assert txn.subcategory_id == sample_categories["Hogar > Renta"]

        transaction_service.update_transaction(txn_id, clear_category=True)
        txn = transaction_service.get_transaction(txn_id)
        assert txn.category_id is None
        assert txn.subcategory_id is None

    def test_stale_version_conflicts(self, transaction_service, sample_account, make_draft):
        txn_id = transaction_service.post_transaction(make_draft(sample_account.id, "10"))

        transaction_service.update_transaction(txn_id, expected_version=1, description="first")
        with pytest.raises(ConflictError):
            transaction_service.update_transaction(txn_id, expected_version=1, description="second")

        assert transaction_service.get_transaction(txn_id).description == "first"

    def test_stale_version_rejected_by_store(self, temp_db, transaction_service, sample_account, make_draft):
        txn_id = transaction_service.post_transaction(make_draft(sample_account.id, "10"))
        transaction_service.update_transaction(txn_id, description="edited")

        row = transaction_service.get_transaction(txn_id)
        with pytest.raises(ConflictError):
            temp_db.replace_transaction(transaction_to_ledger_row(row), expected_version=1)

    def test_update_unknown(self, transaction_service):
        with pytest.raises(NotFoundError):
            transaction_service.update_transaction("missing", amount=Decimal("1"))

    def test_invalid_update_changes_nothing(self, temp_db, transaction_service, sample_account, make_draft):
        txn_id = transaction_service.post_transaction(make_draft(sample_account.id, "10"))

        with pytest.raises(ValidationError):
            transaction_service.update_transaction(txn_id, transaction_type=TransactionType.TRANSFER)

        assert transaction_service.get_transaction(txn_id).version == 1
        assert balance(temp_db, sample_account.id) == Decimal("-10")


class TestReconcile:
    """Tests for recomputing balances from the ledger."""

    def test_reconcile_matches_cached_balance(self, temp_db, transaction_service, sample_accounts, make_draft):
        bank = sample_accounts["personal"]
        transaction_service.post_transactions(
            [
                make_draft(bank.id, "1000", TransactionType.INCOME),
                make_draft(bank.id, "35.50", TransactionType.EXPENSE),
            ]
        )
        maaser = maaser_account(temp_db)

        assert transaction_service.reconcile_account(bank.id) == balance(temp_db, bank.id)
        assert transaction_service.reconcile_account(maaser.id) == Decimal("100.00")

    def test_repair_fixes_drift(self, temp_db, transaction_service, sample_account, make_draft):
        transaction_service.post_transaction(make_draft(sample_account.id, "40"))
        temp_db.set_account_balance(sample_account.id, Decimal("999"))

        stored, expected = transaction_service.repair_account_balance(sample_account.id)

        assert stored == Decimal("999")
        assert expected == Decimal("-40")
        assert balance(temp_db, sample_account.id) == Decimal("-40")

    def test_reconcile_unknown_account(self, transaction_service):
        with pytest.raises(NotFoundError):
            transaction_service.reconcile_account(999)


class TestAtomicity:
    """Tests for all-or-nothing application of ledger changes."""

    def test_failed_increment_rolls_back_everything(
        self, temp_db, transaction_service, sample_accounts, make_draft, monkeypatch
    ):
        bank = sample_accounts["personal"]
        transaction_service.maaser_resolver.find_or_create()
        maaser = maaser_account(temp_db)
        original = temp_db._increment_balance

        def failing_increment(session, account_id, delta):
            if account_id == maaser.id:
                raise RuntimeError("disk full")
            original(session, account_id, delta)

        monkeypatch.setattr(temp_db, "_increment_balance", failing_increment)

        with pytest.raises(RuntimeError, match="disk full"):
            transaction_service.post_transaction(make_draft(bank.id, "1000", TransactionType.INCOME))

        assert transaction_service.list_transactions() == []
        assert balance(temp_db, bank.id) == Decimal("1000.00")
        assert balance(temp_db, maaser.id) == Decimal("0")


class StepwiseDatabase(SQLAlchemyDatabase):
    """Store that applies ledger changes one primitive at a time."""

    fail_account = None

    def apply_ledger_changes(self, changes):
        Database.apply_ledger_changes(self, changes)

    def increment_account_balance(self, account_id, delta):
        if account_id == self.fail_account:
            raise RuntimeError("connection lost")
        super().increment_account_balance(account_id, delta)


class TestPartialApply:
    """Tests for stores that cannot apply a posting in one transaction."""

    @pytest.fixture
    def stepwise_db(self, temp_db):
        db = StepwiseDatabase(temp_db.database_url)
        yield db
        db.disconnect()

    def test_partial_failure_is_reported_and_repairable(self, stepwise_db, make_draft):
        account_service = AccountService(stepwise_db)
        service = TransactionService(stepwise_db)
        bank_id = account_service.create_account(name="Banco")
        maaser = service.maaser_resolver.find_or_create()
        stepwise_db.fail_account = maaser.id

        with pytest.raises(PartialApplyError) as exc_info:
            service.post_transaction(make_draft(bank_id, "1000", TransactionType.INCOME))

        error = exc_info.value
        assert len(error.inserted_ids) == 2
        assert error.applied_accounts == (bank_id,)
        assert error.failed_accounts == (maaser.id,)
        assert isinstance(error.cause, RuntimeError)
        assert stepwise_db.get_account(bank_id).current_balance == Decimal("900.00")
        assert stepwise_db.get_account(maaser.id).current_balance == Decimal("0")

        stepwise_db.fail_account = None
        stored, expected = service.repair_account_balance(maaser.id)
        assert (stored, expected) == (Decimal("0"), Decimal("100.00"))

    def test_stepwise_store_succeeds_without_failures(self, stepwise_db, make_draft):
        account_service = AccountService(stepwise_db)
        service = TransactionService(stepwise_db)
        bank_id = account_service.create_account(name="Banco")

        service.post_transaction(make_draft(bank_id, "50", TransactionType.EXPENSE))

        assert stepwise_db.get_account(bank_id).current_balance == Decimal("-50")

