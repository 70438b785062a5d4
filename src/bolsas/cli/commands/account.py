"""Account management commands."""

import click
from bolsas.domain.account import AccountService, DEFAULT_CURRENCY
from bolsas.domain.entities import AccountType
from bolsas.domain.errors import DomainError
from bolsas.domain.transaction import TransactionService
from bolsas.cli.account_resolution import resolve_account_or_exit
from bolsas.cli.error_handling import handle_domain_error
from bolsas.utils.amount_parser import parse_amount
from bolsas.utils.date_parser import parse_date

ACCOUNT_TYPES = [t.value for t in AccountType]


def _parse_optional_amount(ctx, value: str | None, label: str):
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def _parse_optional_date(ctx, value: str | None, label: str):
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


@click.group()
def account_group():
    """Manage accounts ("bolsas")."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False),
    default=AccountType.PERSONAL.value,
    show_default=True,
    help="Account type",
)
@click.option("--currency", default=DEFAULT_CURRENCY, show_default=True, help="Currency code")
@click.option("--initial-balance", default="0", help="Opening balance")
@click.option(
    "--maaserable/--no-maaserable",
    "default_income_maaserable",
    default=None,
    help="Whether income into this account pays Maaser by default",
)
@click.option(
    "--deductible/--no-deductible",
    "default_expense_deductible",
    default=None,
    help="Whether expenses from this account are Maaser-deductible by default",
)
@click.option("--goal", "target_amount", help="Savings goal target amount")
@click.option("--deadline", help="Savings goal deadline")
@click.option("--color", help="Display color")
@click.pass_context
def create_account(
    ctx,
    name: str,
    account_type: str,
    currency: str,
    initial_balance: str,
    default_income_maaserable: bool | None,
    default_expense_deductible: bool | None,
    target_amount: str | None,
    deadline: str | None,
    color: str | None,
):
    """Create a new account.

    Examples:
        bolsas account create "Banco"
        bolsas account create "Negocio" --type business --maaserable
        bolsas account create "Viaje" --type savings --goal 20000 --deadline 2025-12-01
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    opening = _parse_optional_amount(ctx, initial_balance, "initial balance")
    goal = _parse_optional_amount(ctx, target_amount, "goal amount")
    deadline_date = _parse_optional_date(ctx, deadline, "deadline")

    try:
        account_id = service.create_account(
            name=name,
            account_type=AccountType(account_type.lower()),
            currency=currency,
            initial_balance=opening,
            default_income_maaserable=default_income_maaserable,
            default_expense_deductible=default_expense_deductible,
            target_amount=goal,
            deadline=deadline_date,
            color=color,
        )
        click.echo(f"Created account '{name.strip()}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts with their balances."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in accounts:
        marker = " [Maaser]" if acc.is_maaser else ""
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.account_type.value:10s} | "
            f"{acc.current_balance:>12,.2f} {acc.currency}{marker}"
        )


@account_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.option("--name", help="New account name")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES, case_sensitive=False))
@click.option("--currency", help="Currency code")
@click.option("--maaserable/--no-maaserable", "default_income_maaserable", default=None)
@click.option("--deductible/--no-deductible", "default_expense_deductible", default=None)
@click.option("--goal", "target_amount", help="Savings goal target amount")
@click.option("--deadline", help="Savings goal deadline")
@click.option("--color", help="Display color")
@click.pass_context
def update_account(
    ctx,
    account: str,
    name: str | None,
    account_type: str | None,
    currency: str | None,
    default_income_maaserable: bool | None,
    default_expense_deductible: bool | None,
    target_amount: str | None,
    deadline: str | None,
    color: str | None,
) -> None:
    """Update account settings.

    ACCOUNT can be an account name or ID. Only the options given change.

    Examples:
        bolsas account update "Banco" --name "Banco Principal"
        bolsas account update 2 --maaserable
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    goal = _parse_optional_amount(ctx, target_amount, "goal amount")
    deadline_date = _parse_optional_date(ctx, deadline, "deadline")

    try:
        service.update_account(
            account_id=account_id,
            name=name,
            account_type=AccountType(account_type.lower()) if account_type else None,
            currency=currency,
            default_income_maaserable=default_income_maaserable,
            default_expense_deductible=default_expense_deductible,
            target_amount=goal,
            deadline=deadline_date,
            color=color,
        )
        click.echo(f"Updated account {account_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account name or ID.

    The account can only be deleted if no transactions or recurring
    templates reference it.

    Examples:
        bolsas account delete "Banco"
        bolsas account delete 1 --yes
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.get_account(account_id)

    if not yes and not click.confirm(
        f"Are you sure you want to delete account '{account_obj.name}' (ID: {account_id})?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
        click.echo(f"Deleted account '{account_obj.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("reconcile")
@click.argument("account", metavar="ACCOUNT")
@click.option("--fix", is_flag=True, help="Overwrite the stored balance with the ledger balance")
@click.pass_context
def reconcile_account(ctx, account: str, fix: bool) -> None:
    """Compare an account's stored balance with its ledger.

    ACCOUNT can be an account name or ID.
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    transaction_service = TransactionService(db, user_id=ctx.obj["user"])
    account_id = resolve_account_or_exit(ctx, account_service, account)

    if fix:
        stored, expected = transaction_service.repair_account_balance(account_id)
    else:
        stored = account_service.get_account(account_id).current_balance
        expected = transaction_service.reconcile_account(account_id)

    click.echo(f"Stored balance: {stored:,.2f}")
    click.echo(f"Ledger balance: {expected:,.2f}")
    if stored == expected:
        click.echo("Balance is consistent.")
    elif fix:
        click.echo("Balance repaired.")
    else:
        click.echo("Balance differs; run again with --fix to repair it.")


@account_group.command("goals")
@click.pass_context
def list_goals(ctx) -> None:
    """Show progress of savings-goal accounts."""
    db = ctx.obj["db"]
    service = AccountService(db)

    goals = service.savings_goals()
    if not goals:
        click.echo("No savings goals found.")
        return

    click.echo("\nSavings goals:")
    click.echo("-" * 72)
    for goal in goals:
        status = "done" if goal.is_completed else f"{goal.percentage:.0f}%"
        deadline = f" | by {goal.account.deadline}" if goal.account.deadline else ""
        click.echo(
            f"{goal.account.name:20s} | {goal.current_balance:>12,.2f} / "
            f"{goal.target_amount:,.2f} | {status}{deadline}"
        )


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
