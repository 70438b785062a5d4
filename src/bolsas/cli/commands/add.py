"""Add transaction command."""

import click
from bolsas.domain.transaction import TransactionService
from bolsas.domain.account import AccountService
from bolsas.domain.category import CategoryService
from bolsas.domain.entities import TransactionDraft, TransactionStatus, TransactionType
from bolsas.domain.errors import DomainError, PartialApplyError
from bolsas.cli.account_resolution import resolve_account_or_exit, resolve_optional_account
from bolsas.cli.error_handling import handle_domain_error, handle_partial_apply
from bolsas.utils.date_parser import parse_date
from bolsas.utils.amount_parser import parse_amount


@click.command("add")
@click.option("--account", required=True, help="Account name or ID")
@click.option(
    "--type",
    "transaction_type",
    type=click.Choice([t.value for t in TransactionType], case_sensitive=False),
    default=TransactionType.EXPENSE.value,
    show_default=True,
    help="Transaction type",
)
@click.option(
    "--date",
    default="today",
    show_default=True,
    help="Transaction date (YYYY-MM-DD or relative like 'today', 'yesterday')",
)
@click.option("--amount", required=True, help="Transaction amount, always positive (e.g., 123.45)")
@click.option("--description", default="", help="Transaction description")
@click.option("--to-account", help="Destination account name or ID (transfers only)")
@click.option("--category", help="Category path (e.g., 'Hogar > Renta')")
@click.option(
    "--status",
    type=click.Choice([s.value for s in TransactionStatus], case_sensitive=False),
    default=TransactionStatus.CLEARED.value,
    show_default=True,
)
@click.option("--notes", help="Notes")
@click.option("--cardholder", help="Cardholder")
@click.option(
    "--maaserable/--no-maaserable",
    default=None,
    help="Income pays Maaser (defaults to the account setting)",
)
@click.option(
    "--deductible/--no-deductible",
    default=None,
    help="Expense is refunded from Maaser (defaults to the account setting)",
)
@click.pass_context
def add_transaction(
    ctx,
    account: str,
    transaction_type: str,
    date: str,
    amount: str,
    description: str,
    to_account: str | None,
    category: str | None,
    status: str,
    notes: str | None,
    cardholder: str | None,
    maaserable: bool | None,
    deductible: bool | None,
):
    """Add a transaction manually.

    Income marked Maaser-eligible also posts 10% into the Maaser account;
    a deductible expense is refunded in full from it.

    Examples:
        bolsas add --account Banco --type income --amount 1000 --description "Sueldo"
        bolsas add --account Banco --amount 250 --category "Hogar > Renta"
        bolsas add --account Banco --type transfer --to-account Ahorro --amount 500
    """
    db = ctx.obj["db"]
    transaction_service = TransactionService(db, user_id=ctx.obj["user"])
    account_service = AccountService(db)
    category_service = CategoryService(db)

    # Resolve account names to IDs
    account_id = resolve_account_or_exit(ctx, account_service, account)
    to_account_id = resolve_optional_account(ctx, account_service, to_account)

    # Parse date
    try:
        txn_date = parse_date(date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    # Parse amount
    try:
        txn_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    # Split category path into category and subcategory
    category_id = subcategory_id = None
    if category:
        try:
            category_id, subcategory_id = category_service.resolve_path(category)
        except DomainError as e:
            handle_domain_error(ctx, e)

    draft = TransactionDraft(
        date=txn_date,
        amount=txn_amount,
        description=description,
        transaction_type=TransactionType(transaction_type.lower()),
        account_id=account_id,
        to_account_id=to_account_id,
        category_id=category_id,
        subcategory_id=subcategory_id,
        status=TransactionStatus(status.lower()),
        notes=notes,
        cardholder=cardholder,
        is_maaserable=maaserable,
        is_deductible=deductible,
    )

    try:
        transaction_id = transaction_service.post_transaction(draft)
    except DomainError as e:
        handle_domain_error(ctx, e)
    except PartialApplyError as e:
        handle_partial_apply(ctx, e)

    click.echo(f"Created transaction {transaction_id}")
    click.echo(f"  Account: {account_service.get_account(account_id).name}")
    click.echo(f"  Date: {txn_date}")
    click.echo(f"  Amount: {txn_amount:,.2f} ({draft.transaction_type.value})")
    if description:
        click.echo(f"  Description: {description}")
    if category:
        click.echo(f"  Category: {category}")
    for dependent in transaction_service.get_dependents(transaction_id):
        click.echo(f"  + {dependent.description}: {dependent.amount:,.2f}")


def register_commands(cli):
    """Register add command with main CLI."""
    cli.add_command(add_transaction)
