"""Category management commands."""

import click
from bolsas.domain.category import CategoryService
from bolsas.domain.entities import CategoryType
from bolsas.domain.errors import DomainError
from bolsas.cli.error_handling import handle_domain_error


def print_category_tree(categories: list[dict], indent: int = 0) -> None:
    """Recursively print category tree."""
    for cat in categories:
        prefix = "  " * indent
        kind = f" [{cat['category_type'].value}]" if cat.get("category_type") else ""
        click.echo(f"{prefix}{cat['name']} (ID: {cat['id']}){kind}")
        if cat.get("children"):
            print_category_tree(cat["children"], indent + 1)


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List all categories in tree format."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    tree = service.get_category_tree()
    if not tree:
        click.echo("No categories found. Use 'category create' to add one.")
        return

    click.echo("\nCategories:")
    print_category_tree(tree)


@category_group.command("create")
@click.argument("name")
@click.option("--parent", help="Parent category path (e.g., 'Hogar')")
@click.option(
    "--type",
    "category_type",
    type=click.Choice([t.value for t in CategoryType], case_sensitive=False),
    help="Category type (subcategories inherit their parent's)",
)
@click.option("--color", help="Display color")
@click.pass_context
def create_category(ctx, name: str, parent: str | None, category_type: str | None, color: str | None):
    """Create a new category or subcategory."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    try:
        category_id = service.create_category(
            name=name,
            parent_path=parent,
            category_type=CategoryType(category_type.lower()) if category_type else None,
            color=color,
        )
        parent_str = f" under '{parent}'" if parent else ""
        click.echo(f"Created category '{name.strip()}'{parent_str} (ID: {category_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
