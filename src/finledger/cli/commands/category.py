"""Category management commands."""

import click

from finledger.cli.error_handling import handle_domain_error
from finledger.domain.category import CategoryService
from finledger.domain.entities import CategoryKind
from finledger.domain.errors import DomainError

CATEGORY_KINDS = [kind.value for kind in CategoryKind]


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.option("--kind", type=click.Choice(CATEGORY_KINDS, case_sensitive=False), help="Only this kind")
@click.pass_context
def list_categories(ctx, kind: str | None):
    """List categories, grouped."""
    user_id = ctx.obj["user_id"]
    service = CategoryService(ctx.obj["db"])

    categories = service.list_categories(user_id, kind.lower() if kind else None)
    if not categories:
        click.echo("No categories found.")
        return

    groups = {group.id: group.name for group in service.list_groups(user_id)}
    click.echo("\nCategories:")
    for cat in categories:
        group = f"  [{groups[cat.group_id]}]" if cat.group_id in groups else ""
        click.echo(f"{cat.name} (ID: {cat.id}, {cat.kind.value}){group}")


@category_group.command("create")
@click.argument("name")
@click.option("--kind", type=click.Choice(CATEGORY_KINDS, case_sensitive=False), default="expense", help="Category kind (default: expense)")
@click.option("--group", "group_name", help="Category group name (created if missing)")
@click.pass_context
def create_category(ctx, name: str, kind: str, group_name: str | None):
    """Create a new category."""
    user_id = ctx.obj["user_id"]
    service = CategoryService(ctx.obj["db"])

    try:
        group_id = None
        if group_name:
            existing = {group.name: group.id for group in service.list_groups(user_id)}
            group_id = existing.get(group_name) or service.create_group(user_id, group_name)
        category_id = service.create_category(user_id, name=name, kind=kind.lower(), group_id=group_id)
        group_str = f" in group '{group_name}'" if group_name else ""
        click.echo(f"Created category '{name}'{group_str} (ID: {category_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@category_group.command("delete")
@click.argument("category_id", type=int)
@click.pass_context
def delete_category(ctx, category_id: int):
    """Delete a category. Its transactions become uncategorized."""
    service = CategoryService(ctx.obj["db"])
    try:
        service.delete_category(ctx.obj["user_id"], category_id)
        click.echo(f"Deleted category {category_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
