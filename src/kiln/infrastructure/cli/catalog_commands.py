"""CLI commands for the catalog: categories, products, sizes and colors."""

from __future__ import annotations

import click

from kiln.application.catalog import (
    AddCategoryHandler,
    AddColorHandler,
    AddProductHandler,
    AddSizeHandler,
    ListCatalogHandler,
    UpdateCatalogEntryHandler,
)
from kiln.domain.exceptions import DomainException
from kiln.infrastructure.cli.context import CliContext

STATUS_CHOICE = click.Choice(["active", "discontinued"], case_sensitive=False)


def _update_command(kind: str) -> click.Command:
    @click.command("update")
    @click.option("--id", "entry_id", required=True, type=int, help=f"{kind.capitalize()} ID.")
    @click.option("--name", help="New name.")
    @click.option("--status", type=STATUS_CHOICE, help="New status.")
    @click.pass_obj
    def update(ctx: CliContext, entry_id: int, name: str | None, status: str | None) -> None:
        handler = UpdateCatalogEntryHandler(ctx.uow_factory, ctx.max_attempts)

        try:
            handler.handle(kind, entry_id, name=name, status=status)
        except DomainException as exc:
            raise click.ClickException(str(exc))

        click.echo(f"{kind.capitalize()} #{entry_id} updated")

    update.help = f"Rename a {kind} or change its status."
    return update


# --- Categories ---------------------------------------------------------------


@click.command("add")
@click.option("--name", required=True, help="Category name.")
@click.option("--description", help="Optional description.")
@click.pass_obj
def category_add(ctx: CliContext, name: str, description: str | None) -> None:
    """Add an item category."""
    handler = AddCategoryHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        category = handler.handle(name=name, description=description)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Category #{category.id} '{category.name}' added")


@click.command("list")
@click.option("--status", type=STATUS_CHOICE, help="Only entries with this status.")
@click.pass_obj
def category_list(ctx: CliContext, status: str | None) -> None:
    """List item categories."""
    categories = ListCatalogHandler(ctx.uow_factory).list_categories(status)

    if not categories:
        click.echo("No categories found.")
        return

    click.echo(f"{'ID':<6} {'Name':<24} {'Status':<13}")
    click.echo("-" * 45)
    for c in categories:
        click.echo(f"{c.id:<6} {c.name:<24} {c.status.value:<13}")


category_update = _update_command("category")


# --- Products -----------------------------------------------------------------


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--category", "category_id", type=int, help="Category ID.")
@click.option("--description", help="Optional description.")
@click.pass_obj
def product_add(
    ctx: CliContext, name: str, category_id: int | None, description: str | None
) -> None:
    """Add a new product to the catalog."""
    handler = AddProductHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        product = handler.handle(name=name, category_id=category_id, description=description)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product #{product.id} '{product.name}' added")


@click.command("list")
@click.option("--status", type=STATUS_CHOICE, help="Only entries with this status.")
@click.pass_obj
def product_list(ctx: CliContext, status: str | None) -> None:
    """List all products in the catalog."""
    products = ListCatalogHandler(ctx.uow_factory).list_products(status)

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<6} {'Name':<24} {'Category':>8} {'Status':<13}")
    click.echo("-" * 54)
    for p in products:
        category_id = p.category_id if p.category_id is not None else "-"
        click.echo(f"{p.id:<6} {p.name:<24} {category_id:>8} {p.status.value:<13}")


product_update = _update_command("product")


# --- Sizes --------------------------------------------------------------------


@click.command("add")
@click.option("--product", "product_id", required=True, type=int, help="Product ID.")
@click.option("--name", required=True, help="Size name, e.g. 'Large'.")
@click.option("--code", help="Short code, e.g. 'L'.")
@click.option("--order", "size_order", default=0, show_default=True, type=int,
              help="Sort position among the product's sizes.")
@click.pass_obj
def size_add(
    ctx: CliContext, product_id: int, name: str, code: str | None, size_order: int
) -> None:
    """Add a size to a product."""
    handler = AddSizeHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        size = handler.handle(product_id, name, code=code, size_order=size_order)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Size #{size.id} '{size.name}' added to product #{product_id}")


@click.command("list")
@click.option("--product", "product_id", required=True, type=int, help="Product ID.")
@click.pass_obj
def size_list(ctx: CliContext, product_id: int) -> None:
    """List a product's sizes in size order."""
    try:
        sizes = ListCatalogHandler(ctx.uow_factory).list_sizes(product_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not sizes:
        click.echo("No sizes found.")
        return

    click.echo(f"{'ID':<6} {'Name':<16} {'Code':<6} {'Order':>5} {'Status':<13}")
    click.echo("-" * 50)
    for s in sizes:
        click.echo(
            f"{s.id:<6} {s.name:<16} {s.code or '-':<6} {s.size_order:>5} {s.status.value:<13}"
        )


size_update = _update_command("size")


# --- Enamel colors ------------------------------------------------------------


@click.command("add")
@click.option("--name", required=True, help="Color name.")
@click.option("--code", help="Short code.")
@click.option("--hex", "hex_code", help="Display color, e.g. '#1f4e9c'.")
@click.pass_obj
def color_add(ctx: CliContext, name: str, code: str | None, hex_code: str | None) -> None:
    """Add an enamel color."""
    handler = AddColorHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        color = handler.handle(name=name, code=code, hex_code=hex_code)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Color #{color.id} '{color.name}' added")


@click.command("list")
@click.option("--status", type=STATUS_CHOICE, help="Only entries with this status.")
@click.pass_obj
def color_list(ctx: CliContext, status: str | None) -> None:
    """List enamel colors."""
    colors = ListCatalogHandler(ctx.uow_factory).list_colors(status)

    if not colors:
        click.echo("No colors found.")
        return

    click.echo(f"{'ID':<6} {'Name':<16} {'Code':<6} {'Hex':<8} {'Status':<13}")
    click.echo("-" * 53)
    for c in colors:
        click.echo(
            f"{c.id:<6} {c.name:<16} {c.code or '-':<6} {c.hex_code or '-':<8} "
            f"{c.status.value:<13}"
        )


color_update = _update_command("color")
