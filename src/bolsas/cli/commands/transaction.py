"""Transaction management commands."""

import click
from bolsas.domain.transaction import TransactionService
from bolsas.domain.account import AccountService
from bolsas.domain.category import CategoryService
from bolsas.domain.entities import TransactionStatus, TransactionType
from bolsas.domain.errors import DomainError, PartialApplyError
from bolsas.cli.account_resolution import resolve_optional_account
from bolsas.cli.error_handling import handle_domain_error, handle_partial_apply
from bolsas.utils.date_parser import parse_date
from bolsas.utils.amount_parser import parse_amount


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("update")
@click.argument("transaction_id")
@click.option("--version", "expected_version", type=int, help="Refuse the update unless the row is at this version")
@click.option("--account", help="Account name or ID")
@click.option("--to-account", help="Destination account name or ID (transfers only)")
@click.option("--type", "transaction_type", type=click.Choice([t.value for t in TransactionType], case_sensitive=False))
@click.option("--date", help="Transaction date (YYYY-MM-DD or relative like 'today', 'yesterday')")
@click.option("--amount", help="Transaction amount, always positive")
@click.option("--description", help="Transaction description")
@click.option("--category", help="Category path (e.g., 'Hogar > Renta') or empty string to clear")
@click.option("--status", type=click.Choice([s.value for s in TransactionStatus], case_sensitive=False))
@click.option("--notes", help="Notes")
@click.option("--cardholder", help="Cardholder")
@click.option("--maaserable/--no-maaserable", default=None)
@click.option("--deductible/--no-deductible", default=None)
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: str,
    expected_version: int | None,
    account: str | None,
    to_account: str | None,
    transaction_type: str | None,
    date: str | None,
    amount: str | None,
    description: str | None,
    category: str | None,
    status: str | None,
    notes: str | None,
    cardholder: str | None,
    maaserable: bool | None,
    deductible: bool | None,
) -> None:
    """Update a transaction and regenerate its Maaser rows.

    Updates only the fields that are provided. Use --category "" to clear the category.

    Examples:
        bolsas transaction update <id> --amount 200
        bolsas transaction update <id> --no-maaserable
        bolsas transaction update <id> --category ""  # Clear category
    """
    db = ctx.obj["db"]
    transaction_service = TransactionService(db, user_id=ctx.obj["user"])
    account_service = AccountService(db)
    category_service = CategoryService(db)

    account_id = resolve_optional_account(ctx, account_service, account)
    to_account_id = resolve_optional_account(ctx, account_service, to_account)

    # Parse date if provided
    txn_date = None
    if date is not None:
        try:
            txn_date = parse_date(date)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    # Parse amount if provided
    txn_amount = None
    if amount is not None:
        try:
            txn_amount = parse_amount(amount)
        except ValueError as e:
            click.echo(f"Error: Invalid amount format: {e}", err=True)
            ctx.exit(1)

    category_id = subcategory_id = None
    clear_category = False
    if category is not None:
        if category == "":
            # Empty string means clear category
            clear_category = True
        else:
            try:
                category_id, subcategory_id = category_service.resolve_path(category)
            except DomainError as e:
                handle_domain_error(ctx, e)

    try:
        dependent_ids = transaction_service.update_transaction(
            transaction_id=transaction_id,
            expected_version=expected_version,
            account_id=account_id,
            to_account_id=to_account_id,
            date=txn_date,
            amount=txn_amount,
            description=description,
            transaction_type=TransactionType(transaction_type.lower()) if transaction_type else None,
            category_id=category_id,
            subcategory_id=subcategory_id,
            status=TransactionStatus(status.lower()) if status else None,
            notes=notes,
            cardholder=cardholder,
            is_maaserable=maaserable,
            is_deductible=deductible,
            clear_category=clear_category,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    except PartialApplyError as e:
        handle_partial_apply(ctx, e)

    click.echo(f"Updated transaction {transaction_id}")
    if dependent_ids:
        click.echo(f"  Regenerated {len(dependent_ids)} Maaser row(s)")


@transaction_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'yesterday')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option("--category", help="Category path (e.g., 'Hogar > Renta')")
@click.option("--account", help="Account name or ID")
@click.option("--hide-system", is_flag=True, help="Hide automatic Maaser rows")
@click.option("--verbose", "-v", is_flag=True, help="Show all fields of each transaction")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    category: str | None,
    account: str | None,
    hide_system: bool,
    verbose: bool,
):
    """View transactions with optional filters.

    Account can be specified by name or ID.
    """
    db = ctx.obj["db"]
    service = TransactionService(db, user_id=ctx.obj["user"])
    category_service = CategoryService(db)
    account_service = AccountService(db)

    # Parse dates
    start = None
    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    end = None
    if end_date:
        try:
            end = parse_date(end_date)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    account_id = resolve_optional_account(ctx, account_service, account)

    category_id = None
    if category:
        try:
            category_id = category_service.require_category_by_path(category).id
        except DomainError as e:
            handle_domain_error(ctx, e)

    transactions = service.list_transactions(
        start_date=start,
        end_date=end,
        account_id=account_id,
        category_id=category_id,
        include_system=not hide_system,
    )

    if not transactions:
        click.echo("No transactions found.")
        return

    # Get account names for display
    accounts = {acc.id: acc.name for acc in account_service.list_accounts()}

    def category_label(txn) -> str:
        if txn.subcategory_id:
            return category_service.format_category_path(txn.subcategory_id)
        if txn.category_id:
            return category_service.format_category_path(txn.category_id)
        return ""

    def account_label(txn) -> str:
        name = accounts.get(txn.account_id, "Unknown")
        if txn.to_account_id is not None:
            name = f"{name} -> {accounts.get(txn.to_account_id, 'Unknown')}"
        return name

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    if verbose:
        click.echo("=" * 100)
        for txn in transactions:
            click.echo(f"\nTransaction ID: {txn.id} (version {txn.version})")
            click.echo(f"  Date: {txn.date}")
            click.echo(f"  Type: {txn.transaction_type.value}")
            click.echo(f"  Amount: {txn.amount:,.2f}")
            click.echo(f"  Account: {account_label(txn)}")
            click.echo(f"  Category: {category_label(txn) or 'Uncategorized'}")
            click.echo(f"  Status: {txn.status.value}")
            if txn.description:
                click.echo(f"  Description: {txn.description}")
            if txn.is_maaserable is not None:
                click.echo(f"  Maaserable: {txn.is_maaserable}")
            if txn.is_deductible is not None:
                click.echo(f"  Deductible: {txn.is_deductible}")
            if txn.related_transaction_id:
                click.echo(f"  Generated from: {txn.related_transaction_id}")
            if txn.cardholder:
                click.echo(f"  Cardholder: {txn.cardholder}")
            if txn.notes:
                click.echo(f"  Notes: {txn.notes}")
            click.echo("-" * 100)
    else:
        click.echo("-" * 100)
        click.echo(
            f"{'ID':<10} {'Date':<12} {'Type':<9} {'Amount':>12} {'Account':<24} {'Description':<30}"
        )
        click.echo("-" * 100)
        for txn in transactions:
            marker = "*" if txn.is_system_generated else " "
            click.echo(
                f"{txn.id[:8]:<9}{marker} {str(txn.date):<12} {txn.transaction_type.value:<9} "
                f"{txn.amount:>12,.2f} {account_label(txn)[:24]:<24} {txn.description[:30]:<30}"
            )

    # Show totals
    total_expenses = sum(t.amount for t in transactions if t.transaction_type == TransactionType.EXPENSE)
    total_income = sum(t.amount for t in transactions if t.transaction_type == TransactionType.INCOME)
    click.echo("-" * 100)
    click.echo(
        f"Expenses: {total_expenses:,.2f} | Income: {total_income:,.2f} | Count: {len(transactions)}"
    )


@transaction_group.command("delete")
@click.argument("transaction_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: str, yes: bool) -> None:
    """Delete a transaction and its automatic Maaser rows.

    Examples:
        bolsas transaction delete <id>
    """
    db = ctx.obj["db"]
    transaction_service = TransactionService(db, user_id=ctx.obj["user"])

    txn = transaction_service.get_transaction(transaction_id)
    if txn is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    dependents = transaction_service.get_dependents(transaction_id)
    prompt = f"Are you sure you want to delete transaction {transaction_id}"
    if dependents:
        prompt += f" and its {len(dependents)} Maaser row(s)"
    if not yes and not click.confirm(prompt + "?"):
        click.echo("Deletion cancelled.")
        return

    try:
        deleted = transaction_service.delete_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    except PartialApplyError as e:
        handle_partial_apply(ctx, e)

    click.echo(f"Deleted transaction {transaction_id} ({len(deleted)} row(s))")


def register_commands(cli: click.Group) -> None:
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
