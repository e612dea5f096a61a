"""CLI commands for the Order aggregate."""

from __future__ import annotations

import click

from kiln.application.cancel_order import CancelOrderHandler
from kiln.application.confirm_order import ConfirmOrderHandler
from kiln.application.create_order import CreateOrderHandler
from kiln.application.dto import OrderDTO, OrderItemSpec
from kiln.application.show_order import ShowOrderHandler
from kiln.domain.exceptions import DomainException
from kiln.infrastructure.cli.context import CliContext


def _parse_items(raw: str) -> list[OrderItemSpec]:
    """Parse '1:3,2:5' (kit ID : quantity) into an OrderItemSpec list."""
    specs: list[OrderItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'KitID:Quantity'."
            )
        kit_str, qty_str = pair.split(":", 1)
        try:
            kit_id = int(kit_str)
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(f"Invalid item '{pair}': kit ID and quantity must be numbers.")
        specs.append(OrderItemSpec(kit_id=kit_id, quantity=qty))
    return specs


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order #{dto.id}  (status={dto.status})")
    click.echo(f"Customer: {dto.customer_name}")
    click.echo(f"Created:  {dto.created_at}")
    click.echo()
    click.echo(f"  {'Kit':<24} {'Qty':>5} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*51}")
    for item in dto.items:
        click.echo(
            f"  {item.kit_name:<24} {item.quantity:>5} {item.unit_price:>10} {item.line_total:>10}"
        )
    click.echo(f"  {'-'*51}")
    click.echo(f"  {'Order Total':<31} {dto.total:>20}")


@click.command("create")
@click.option("--customer", required=True, help="Customer name.")
@click.option("--items", required=True, help="Items as 'KitID:Qty,KitID:Qty'.")
@click.pass_obj
def order_create(ctx: CliContext, customer: str, items: str) -> None:
    """Create a new draft order for kits."""
    specs = _parse_items(items)
    handler = CreateOrderHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        dto = handler.handle(customer_name=customer, item_specs=specs)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to display.")
@click.pass_obj
def order_show(ctx: CliContext, order_id: int) -> None:
    """Show details of an existing order."""
    handler = ShowOrderHandler(ctx.uow_factory)

    try:
        dto = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("confirm")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to confirm.")
@click.pass_obj
def order_confirm(ctx: CliContext, order_id: int) -> None:
    """Confirm a draft order (takes the kits out of stock)."""
    handler = ConfirmOrderHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        handler.handle(order_id, actor=ctx.actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} confirmed, kit stock consumed.")


@click.command("cancel")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to cancel.")
@click.pass_obj
def order_cancel(ctx: CliContext, order_id: int) -> None:
    """Cancel an order (restores kit stock if it was confirmed)."""
    handler = CancelOrderHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        handler.handle(order_id, actor=ctx.actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} cancelled.")
