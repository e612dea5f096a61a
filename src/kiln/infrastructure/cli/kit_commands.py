"""CLI commands for the Kit aggregate."""

from __future__ import annotations

import click

from kiln.application.adjust_kit_stock import AdjustKitStockHandler
from kiln.application.create_kit import CreateKitHandler
from kiln.application.delete_kit import DeleteKitHandler
from kiln.application.dto import KitComponentSpec, KitDTO
from kiln.application.show_available_inventory import ShowAvailableInventoryHandler
from kiln.application.show_kit import ListKitsHandler, ShowKitHandler
from kiln.application.update_kit import UpdateKitHandler
from kiln.domain.exceptions import DomainException
from kiln.domain.model.kit import DEFAULT_MAX_STOCK
from kiln.infrastructure.cli.context import CliContext
from kiln.infrastructure.cli.stage_commands import display_balances


def _parse_components(raw: tuple[str, ...]) -> list[KitComponentSpec]:
    """Parse ('1:2:3:4', ...) as product:size:color:quantity specs."""
    specs: list[KitComponentSpec] = []
    for entry in raw:
        parts = entry.strip().split(":")
        if len(parts) != 4:
            raise click.BadParameter(
                f"Invalid component '{entry}'. Expected 'product:size:color:quantity'."
            )
        try:
            product_id, size_id, color_id, quantity = (int(p) for p in parts)
        except ValueError:
            raise click.BadParameter(f"Component '{entry}' must contain only numbers.")
        specs.append(KitComponentSpec(product_id, size_id, color_id, quantity))
    return specs


def _display_kit(dto: KitDTO) -> None:
    status = "active" if dto.is_active else "inactive"
    click.echo(f"Kit #{dto.id} '{dto.name}'  ({status})")
    if dto.sku:
        click.echo(f"SKU:         {dto.sku}")
    if dto.description:
        click.echo(f"Description: {dto.description}")
    click.echo(f"Price:       {dto.price}")
    click.echo(f"Stock:       {dto.current_stock} (min {dto.min_stock}, max {dto.max_stock})")
    click.echo()
    click.echo(f"  {'Component':<36} {'Per kit':>8}")
    click.echo(f"  {'-'*45}")
    for c in dto.components:
        click.echo(f"  {c.label:<36} {c.quantity:>8}")


@click.command("create")
@click.option("--name", required=True, help="Kit name.")
@click.option("--price", required=True, help="Price (e.g. 450.00).")
@click.option("--component", "components", required=True, multiple=True,
              help="Component as 'product:size:color:quantity'. Repeatable.")
@click.option("--min-stock", default=0, show_default=True, type=int)
@click.option("--max-stock", default=DEFAULT_MAX_STOCK, show_default=True, type=int)
@click.option("--sku", help="Unique stock keeping unit.")
@click.option("--description", help="Optional description.")
@click.option("--inactive", is_flag=True, help="Create the kit as inactive.")
@click.pass_obj
def kit_create(
    ctx: CliContext,
    name: str,
    price: str,
    components: tuple[str, ...],
    min_stock: int,
    max_stock: int,
    sku: str | None,
    description: str | None,
    inactive: bool,
) -> None:
    """Define a new kit with zero stock."""
    specs = _parse_components(components)
    handler = CreateKitHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        dto = handler.handle(
            name=name,
            price=price,
            components=specs,
            min_stock=min_stock,
            max_stock=max_stock,
            sku=sku,
            description=description,
            is_active=not inactive,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Kit #{dto.id} created")
    _display_kit(dto)


@click.command("update")
@click.option("--id", "kit_id", required=True, type=int, help="Kit ID.")
@click.option("--name", help="New name.")
@click.option("--price", help="New price.")
@click.option("--component", "components", multiple=True,
              help="Replace components; 'product:size:color:quantity'. Repeatable.")
@click.option("--min-stock", type=int)
@click.option("--max-stock", type=int)
@click.option("--sku", help="New SKU; pass '' to clear.")
@click.option("--description", help="New description; pass '' to clear.")
@click.option("--active/--inactive", "is_active", default=None)
@click.pass_obj
def kit_update(
    ctx: CliContext,
    kit_id: int,
    name: str | None,
    price: str | None,
    components: tuple[str, ...],
    min_stock: int | None,
    max_stock: int | None,
    sku: str | None,
    description: str | None,
    is_active: bool | None,
) -> None:
    """Edit a kit. Components cannot change while it has stock."""
    specs = _parse_components(components) if components else None
    handler = UpdateKitHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        dto = handler.handle(
            kit_id,
            name=name,
            price=price,
            min_stock=min_stock,
            max_stock=max_stock,
            sku=sku,
            description=description,
            is_active=is_active,
            components=specs,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Kit #{dto.id} updated")
    _display_kit(dto)


@click.command("delete")
@click.option("--id", "kit_id", required=True, type=int, help="Kit ID.")
@click.pass_obj
def kit_delete(ctx: CliContext, kit_id: int) -> None:
    """Delete a kit with no stock."""
    handler = DeleteKitHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        handler.handle(kit_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Kit #{kit_id} deleted.")


@click.command("adjust")
@click.option("--id", "kit_id", required=True, type=int, help="Kit ID.")
@click.option("--delta", required=True, type=int,
              help="Kits to assemble (positive) or take apart (negative).")
@click.option("--notes", help="Free-text note for the log.")
@click.pass_obj
def kit_adjust(ctx: CliContext, kit_id: int, delta: int, notes: str | None) -> None:
    """Assemble or disassemble kits, moving their glazed pieces."""
    handler = AdjustKitStockHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        dto = handler.handle(kit_id, delta, notes=notes, actor=ctx.actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Kit #{dto.kit_id} stock {dto.previous_stock} -> {dto.new_stock} "
        f"(adjustment #{dto.id})"
    )


@click.command("show")
@click.option("--id", "kit_id", required=True, type=int, help="Kit ID to display.")
@click.pass_obj
def kit_show(ctx: CliContext, kit_id: int) -> None:
    """Show a kit with component availability and its stock log."""
    handler = ShowKitHandler(ctx.uow_factory)

    try:
        detail = handler.handle(kit_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_kit(detail.kit)
    if detail.is_below_min:
        click.echo(f"Warning: stock is below the minimum of {detail.kit.min_stock}.")

    click.echo()
    click.echo(
        f"  {'Component':<36} {'Per kit':>8} {'In GLAZE':>9} {'In kits':>8} {'Backs':>6}"
    )
    click.echo(f"  {'-'*71}")
    for a in detail.availability:
        click.echo(
            f"  {a.label:<36} {a.per_kit:>8} {a.available:>9} "
            f"{a.held_by_stock:>8} {a.buildable_units:>6}"
        )
    click.echo(f"  Can assemble {detail.max_additional_units} more now.")

    if detail.adjustments:
        click.echo()
        click.echo(f"  {'ID':<6} {'When':<21} {'Reason':<16} {'Delta':>6} {'Stock':>11}")
        click.echo(f"  {'-'*64}")
        for adj in detail.adjustments:
            stock = f"{adj.previous_stock}->{adj.new_stock}"
            click.echo(
                f"  {adj.id:<6} {adj.created_at:<21} {adj.reason:<16} "
                f"{adj.delta:>+6} {stock:>11}"
            )


@click.command("list")
@click.option("--active", "active_only", is_flag=True, help="Only active kits.")
@click.pass_obj
def kit_list(ctx: CliContext, active_only: bool) -> None:
    """List kits, newest first."""
    kits = ListKitsHandler(ctx.uow_factory).handle(active_only=active_only)

    if not kits:
        click.echo("No kits found.")
        return

    click.echo(f"{'ID':<6} {'Name':<24} {'SKU':<12} {'Price':>10} {'Stock':>6} {'Max':>5}")
    click.echo("-" * 68)
    for k in kits:
        click.echo(
            f"{k.id:<6} {k.name:<24} {k.sku or '-':<12} {k.price:>10} "
            f"{k.current_stock:>6} {k.max_stock:>5}"
        )


@click.command("available")
@click.pass_obj
def kit_available(ctx: CliContext) -> None:
    """Show glazed stock not held by any kit."""
    display_balances(ShowAvailableInventoryHandler(ctx.uow_factory).handle())
