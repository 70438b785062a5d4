"""Summary commands."""

import click
from bolsas.domain.account import AccountService
from bolsas.domain.category import CategoryService
from bolsas.domain.errors import DomainError
from bolsas.domain.summary import DEFAULT_TREND_MONTHS, SummaryService
from bolsas.cli.error_handling import handle_domain_error
from bolsas.utils.account_resolver import resolve_account
from bolsas.utils.date_parser import parse_date, parse_month


def _format_change(percentage) -> str:
    if not percentage.is_finite():
        return "n/a"
    return f"{percentage:.0f}%"


@click.group()
def summary_group():
    """Monthly totals, Maaser owed and spending trends."""
    pass


@summary_group.command("month")
@click.option("--month", default="this month", show_default=True, help="Month (YYYY-MM or 'last month')")
@click.option("--account", help="Only count this account (name or ID)")
@click.pass_context
def month_summary(ctx, month: str, account: str | None):
    """Show income, expenses and the Maaser owed for a month.

    Examples:
        bolsas summary month
        bolsas summary month --month 2024-03 --account Negocio
    """
    db = ctx.obj["db"]
    service = SummaryService(db)

    try:
        month_year = parse_month(month)
    except ValueError as e:
        click.echo(f"Error: Invalid month: {e}", err=True)
        ctx.exit(1)

    try:
        account_id = resolve_account(AccountService(db), account) if account else None
        report = service.month_summary(month_year, account_id=account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nSummary for {report.month_year}:")
    click.echo("-" * 80)
    click.echo(f"{'Income':30s} {report.income:>15,.2f}")
    click.echo(f"{'Expense':30s} {report.expense:>15,.2f}")
    click.echo(f"{'Net':30s} {report.net:>15,.2f}")
    click.echo("-" * 80)
    click.echo(f"{'Maaser-eligible income':30s} {report.maaserable_income:>15,.2f}")
    click.echo(f"{'Deductible expenses':30s} {report.deductible_expenses:>15,.2f}")
    click.echo(f"{'Maaser base':30s} {report.maaser_base:>15,.2f}")
    click.echo(f"{'Maaser (10%)':30s} {report.maaser:>15,.2f}")
    click.echo(f"{'Jomesh':30s} {report.jomesh:>15,.2f}")

    if report.expenses_by_category:
        click.echo("\nExpenses by category:")
        click.echo("-" * 80)
        for item in report.expenses_by_category:
            click.echo(f"{item.name:30s} {item.total:>15,.2f}")


@summary_group.command("trend")
@click.option("--months", type=click.IntRange(min=1), default=DEFAULT_TREND_MONTHS, show_default=True)
@click.option("--category", help="Only count this category (e.g., 'Hogar' or 'Hogar > Renta')")
@click.option("--month", "end_month", default="this month", show_default=True, help="Last month of the window")
@click.pass_context
def trend_summary(ctx, months: int, category: str | None, end_month: str):
    """Show monthly expense totals and their trend."""
    db = ctx.obj["db"]
    service = SummaryService(db)

    try:
        end_month = parse_month(end_month)
    except ValueError as e:
        click.echo(f"Error: Invalid month: {e}", err=True)
        ctx.exit(1)

    try:
        category_id = CategoryService(db).require_category_by_path(category).id if category else None
        stats = service.trend(months=months, category_id=category_id, end_month=end_month)
    except DomainError as e:
        handle_domain_error(ctx, e)

    title = f"Expenses for '{category}'" if category else "Expenses"
    click.echo(f"\n{title}, last {months} month(s):")
    click.echo("-" * 80)
    for month_total in stats.months:
        click.echo(f"{month_total.month_year:10s} {month_total.total:>15,.2f}")
    click.echo("-" * 80)
    click.echo(f"{'Average':10s} {stats.average:>15,.2f}")
    click.echo(f"{'Std dev':10s} {stats.std_dev:>15,.2f}")
    click.echo(f"Trend: {stats.direction.value}")


@summary_group.command("predict")
@click.option("--category", help="Only count this category")
@click.option("--date", "as_of", help="Project as of this date (default: today)")
@click.pass_context
def predict_summary(ctx, category: str | None, as_of: str | None):
    """Project this month's expenses to month end."""
    db = ctx.obj["db"]
    service = SummaryService(db)

    try:
        today = parse_date(as_of) if as_of else None
    except ValueError as e:
        click.echo(f"Error: Invalid date: {e}", err=True)
        ctx.exit(1)

    try:
        category_id = CategoryService(db).require_category_by_path(category).id if category else None
        prediction = service.predict(today=today, category_id=category_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nProjection for {prediction.month_year}:")
    click.echo("-" * 80)
    click.echo(f"Spent so far:   {prediction.spent:,.2f} in {prediction.days_passed} day(s)")
    click.echo(f"Per day:        {prediction.avg_per_day:,.2f}")
    click.echo(f"Projected:      {prediction.projected_total:,.2f} ({prediction.days_remaining} day(s) left)")
    click.echo(
        f"Versus {prediction.baseline:,.2f}: "
        f"{prediction.change_direction} {_format_change(prediction.change_percentage)}"
    )


def register_commands(cli):
    """Register summary commands with main CLI."""
    cli.add_command(summary_group, name="summary")
