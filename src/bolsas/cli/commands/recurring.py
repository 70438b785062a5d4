"""Recurring transaction commands."""

import click
from bolsas.domain.account import AccountService
from bolsas.domain.category import CategoryService
from bolsas.domain.entities import TransactionType
from bolsas.domain.errors import DomainError, PartialApplyError
from bolsas.domain.recurring import RecurringService
from bolsas.domain.transaction import TransactionService
from bolsas.cli.account_resolution import resolve_account_or_exit, resolve_optional_account
from bolsas.cli.error_handling import handle_domain_error, handle_partial_apply
from bolsas.utils.amount_parser import parse_amount
from bolsas.utils.date_parser import parse_month


def _service(ctx) -> RecurringService:
    db = ctx.obj["db"]
    return RecurringService(db, TransactionService(db, user_id=ctx.obj["user"]))


@click.group()
def recurring_group():
    """Manage recurring transactions."""
    pass


@recurring_group.command("add")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--amount", required=True, help="Amount, always positive")
@click.option("--day", "day_of_month", type=int, required=True, help="Day of month (1-31)")
@click.option("--description", required=True, help="Description")
@click.option(
    "--type",
    "transaction_type",
    type=click.Choice([t.value for t in TransactionType], case_sensitive=False),
    default=TransactionType.EXPENSE.value,
    show_default=True,
)
@click.option("--to-account", help="Destination account name or ID (transfers only)")
@click.option("--category", help="Category path")
@click.pass_context
def add_recurring(
    ctx,
    account: str,
    amount: str,
    day_of_month: int,
    description: str,
    transaction_type: str,
    to_account: str | None,
    category: str | None,
):
    """Add a recurring transaction template.

    A day past the end of a short month falls on its last day.

    Examples:
        bolsas recurring add --account Banco --amount 8000 --day 1 --description Renta
        bolsas recurring add --account Banco --type income --amount 30000 --day 31 --description Sueldo
    """
    db = ctx.obj["db"]
    service = _service(ctx)
    account_service = AccountService(db)
    category_service = CategoryService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account)
    to_account_id = resolve_optional_account(ctx, account_service, to_account)

    try:
        txn_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        category_id = None
        if category:
            category_id = category_service.require_category_by_path(category).id
        template_id = service.create_template(
            description=description,
            amount=txn_amount,
            transaction_type=TransactionType(transaction_type.lower()),
            account_id=account_id,
            day_of_month=day_of_month,
            to_account_id=to_account_id,
            category_id=category_id,
        )
        click.echo(f"Created recurring '{description}' on day {day_of_month} (ID: {template_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@recurring_group.command("list")
@click.option("--active-only", is_flag=True, help="Hide inactive templates")
@click.pass_context
def list_recurring(ctx, active_only: bool):
    """List recurring templates by day of month."""
    service = _service(ctx)
    accounts = {acc.id: acc.name for acc in AccountService(ctx.obj["db"]).list_accounts()}

    templates = service.list_templates(active_only=active_only)
    if not templates:
        click.echo("No recurring transactions found.")
        return

    click.echo("\nRecurring transactions:")
    click.echo("-" * 80)
    for tpl in templates:
        state = "active" if tpl.active else "inactive"
        click.echo(
            f"ID: {tpl.id:3d} | day {tpl.day_of_month:2d} | {tpl.transaction_type.value:8s} | "
            f"{tpl.amount:>10,.2f} | {accounts.get(tpl.account_id, 'Unknown'):15s} | "
            f"{tpl.description} ({state})"
        )


@recurring_group.command("activate")
@click.argument("template_id", type=int)
@click.pass_context
def activate_recurring(ctx, template_id: int):
    """Activate a recurring template."""
    try:
        _service(ctx).set_active(template_id, True)
        click.echo(f"Activated recurring {template_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@recurring_group.command("deactivate")
@click.argument("template_id", type=int)
@click.pass_context
def deactivate_recurring(ctx, template_id: int):
    """Deactivate a recurring template."""
    try:
        _service(ctx).set_active(template_id, False)
        click.echo(f"Deactivated recurring {template_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@recurring_group.command("delete")
@click.argument("template_id", type=int)
@click.pass_context
def delete_recurring(ctx, template_id: int):
    """Delete a recurring template. Generated transactions are kept."""
    try:
        _service(ctx).delete_template(template_id)
        click.echo(f"Deleted recurring {template_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@recurring_group.command("generate")
@click.option("--month", default="this month", show_default=True, help="Month (YYYY-MM or 'next month')")
@click.pass_context
def generate_recurring(ctx, month: str):
    """Post one transaction per active template for a month."""
    try:
        month_year = parse_month(month)
    except ValueError as e:
        click.echo(f"Error: Invalid month: {e}", err=True)
        ctx.exit(1)

    try:
        ids = _service(ctx).generate_for_month(month_year)
    except DomainError as e:
        handle_domain_error(ctx, e)
    except PartialApplyError as e:
        handle_partial_apply(ctx, e)

    if not ids:
        click.echo("No active recurring transactions.")
        return
    click.echo(f"Generated {len(ids)} transaction(s) for {month_year}")


def register_commands(cli):
    """Register recurring commands with main CLI."""
    cli.add_command(recurring_group, name="recurring")
