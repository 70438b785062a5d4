"""CLI error handling helpers."""

import click

from bolsas.domain.errors import DomainError, PartialApplyError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def handle_partial_apply(ctx: click.Context, error: PartialApplyError) -> None:
    """Render a partially applied write and point at the repair command."""
    click.echo(f"Error: {error}", err=True)
    accounts = sorted(set(error.applied_accounts) | set(error.failed_accounts))
    for account_id in accounts:
        click.echo(f"  Run 'bolsas account reconcile {account_id} --fix' to repair its balance", err=True)
    ctx.exit(1)
