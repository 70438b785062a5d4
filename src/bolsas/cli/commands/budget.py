"""Budget commands."""

import click
from bolsas.domain.budget import BudgetService, DEFAULT_ALERT_THRESHOLD
from bolsas.domain.category import CategoryService
from bolsas.domain.errors import DomainError
from bolsas.cli.error_handling import handle_domain_error
from bolsas.utils.amount_parser import parse_amount
from bolsas.utils.date_parser import parse_month


def _month_or_exit(ctx, month: str) -> str:
    try:
        return parse_month(month)
    except ValueError as e:
        click.echo(f"Error: Invalid month: {e}", err=True)
        ctx.exit(1)


def _format_percentage(percentage) -> str:
    if not percentage.is_finite():
        return "n/a"
    return f"{percentage:.0f}%"


@click.group()
def budget_group():
    """Manage monthly category budgets."""
    pass


@budget_group.command("set")
@click.argument("category")
@click.argument("limit")
@click.option("--month", default="this month", show_default=True, help="Month (YYYY-MM or 'next month')")
@click.option(
    "--alert-at",
    "alert_threshold",
    type=int,
    default=DEFAULT_ALERT_THRESHOLD,
    show_default=True,
    help="Alert when spending reaches this percent of the limit",
)
@click.pass_context
def set_budget(ctx, category: str, limit: str, month: str, alert_threshold: int):
    """Set the spending limit of CATEGORY for a month.

    Setting a budget again for the same category and month replaces it.

    Examples:
        bolsas budget set Hogar 5000
        bolsas budget set "Comida" 3000 --month 2024-03 --alert-at 90
    """
    db = ctx.obj["db"]
    service = BudgetService(db)
    category_service = CategoryService(db)

    month_year = _month_or_exit(ctx, month)
    try:
        limit_amount = parse_amount(limit)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        category_obj = category_service.require_category_by_path(category)
        budget_id = service.set_budget(
            category_id=category_obj.id,
            month_year=month_year,
            limit_amount=limit_amount,
            alert_threshold=alert_threshold,
        )
        click.echo(f"Budget for '{category}' in {month_year}: {limit_amount:,.2f} (ID: {budget_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@budget_group.command("status")
@click.option("--month", default="this month", show_default=True, help="Month (YYYY-MM or 'last month')")
@click.pass_context
def budget_status(ctx, month: str):
    """Show spending against every budget of a month."""
    db = ctx.obj["db"]
    service = BudgetService(db)
    category_service = CategoryService(db)

    month_year = _month_or_exit(ctx, month)
    statuses = service.get_statuses(month_year)
    if not statuses:
        click.echo(f"No budgets for {month_year}.")
        return

    click.echo(f"\nBudgets for {month_year}:")
    click.echo("-" * 80)
    for status in statuses:
        name = category_service.format_category_path(status.budget.category_id)
        flag = " EXCEEDED" if status.is_exceeded else (" ALERT" if status.should_alert else "")
        click.echo(
            f"{status.budget.id:3d} | {name:25s} | {status.spent:>10,.2f} / "
            f"{status.budget.limit_amount:>10,.2f} | {_format_percentage(status.percentage):>5s}{flag}"
        )


@budget_group.command("alerts")
@click.option("--month", default="this month", show_default=True, help="Month (YYYY-MM or 'last month')")
@click.pass_context
def budget_alerts(ctx, month: str):
    """List budgets that reached their alert threshold."""
    db = ctx.obj["db"]
    service = BudgetService(db)
    category_service = CategoryService(db)

    month_year = _month_or_exit(ctx, month)
    alerts = service.get_alerts(month_year)
    if not alerts:
        click.echo(f"No budget alerts for {month_year}.")
        return

    for alert in alerts:
        name = category_service.format_category_path(alert.category_id)
        click.echo(
            f"'{name}' is at {_format_percentage(alert.percentage)} of its budget "
            f"({alert.spent:,.2f} of {alert.limit_amount:,.2f}), "
            f"{alert.remaining_days} day(s) left in {alert.month_year}"
        )


@budget_group.command("delete")
@click.argument("budget_id", type=int)
@click.pass_context
def delete_budget(ctx, budget_id: int):
    """Delete a budget."""
    db = ctx.obj["db"]
    service = BudgetService(db)

    try:
        service.delete_budget(budget_id)
        click.echo(f"Deleted budget {budget_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register budget commands with main CLI."""
    cli.add_command(budget_group, name="budget")
