"""CLI commands for the stage ledger."""

from __future__ import annotations

import click

from kiln.application.dto import BalanceListDTO
from kiln.application.record_raw_receipt import RecordRawReceiptHandler
from kiln.application.record_transition import RecordTransitionHandler
from kiln.application.show_balances import ShowBalancesHandler
from kiln.application.show_history import DEFAULT_PAGE_SIZE, ShowHistoryHandler
from kiln.domain.exceptions import DomainException
from kiln.infrastructure.cli.context import CliContext

STAGE_CHOICE = click.Choice(["RAW", "BISQUE", "GLAZE"], case_sensitive=False)


def display_balances(dto: BalanceListDTO) -> None:
    """Shared formatting for a balance listing."""
    if not dto.items:
        click.echo(f"No {dto.stage} stock.")
        return

    click.echo(f"{dto.stage} stock")
    click.echo(f"  {'Product':<20} {'Size':<10} {'Color':<12} {'Qty':>8}")
    click.echo(f"  {'-'*53}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<20} {item.size_name:<10} "
            f"{item.color_name or '-':<12} {item.quantity:>8}"
        )
    click.echo(f"  {'-'*53}")
    click.echo(f"  {dto.total_items} variants, {dto.total_quantity} pieces")


@click.command("receive")
@click.option("--product", "product_id", required=True, type=int, help="Product ID.")
@click.option("--size", "size_id", required=True, type=int, help="Size ID.")
@click.option("--quantity", required=True, type=int, help="Pieces formed.")
@click.option("--notes", help="Free-text note for the log.")
@click.pass_obj
def stage_receive(
    ctx: CliContext, product_id: int, size_id: int, quantity: int, notes: str | None
) -> None:
    """Record freshly formed pieces into RAW."""
    handler = RecordRawReceiptHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        tx = handler.handle(product_id, size_id, quantity, notes=notes, actor=ctx.actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Received {tx.quantity_produced} RAW pieces of "
        f"{tx.product_name} {tx.size_name} (tx #{tx.id})"
    )


@click.command("move")
@click.option("--product", "product_id", required=True, type=int, help="Product ID.")
@click.option("--size", "size_id", required=True, type=int, help="Size ID.")
@click.option("--from", "from_stage", required=True, type=STAGE_CHOICE, help="Source stage.")
@click.option("--to", "to_stage", required=True, type=STAGE_CHOICE, help="Target stage.")
@click.option("--deducted", required=True, type=int, help="Pieces taken from the source.")
@click.option("--produced", required=True, type=int, help="Pieces that survived the firing.")
@click.option("--color", "color_id", type=int, help="Enamel color ID (GLAZE only).")
@click.option("--notes", help="Free-text note for the log.")
@click.pass_obj
def stage_move(
    ctx: CliContext,
    product_id: int,
    size_id: int,
    from_stage: str,
    to_stage: str,
    deducted: int,
    produced: int,
    color_id: int | None,
    notes: str | None,
) -> None:
    """Fire pieces from one stage into the next."""
    handler = RecordTransitionHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        result = handler.handle(
            product_id,
            size_id,
            from_stage,
            to_stage,
            quantity_deducted=deducted,
            quantity_produced=produced,
            color_id=color_id,
            notes=notes,
            actor=ctx.actor,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    tx = result.transaction
    label = f"{tx.product_name} {tx.size_name}"
    if tx.color_name:
        label += f" ({tx.color_name})"
    click.echo(f"Moved {label} {tx.from_stage} -> {tx.to_stage} (tx #{tx.id})")
    click.echo(
        f"  deducted {tx.quantity_deducted}, produced {tx.quantity_produced}, "
        f"loss {tx.loss} ({tx.loss_percentage}%)"
    )
    click.echo(
        f"  {tx.from_stage} balance {result.source_balance}, "
        f"{tx.to_stage} balance {result.destination_balance}"
    )
    if result.high_loss:
        click.echo(f"  Warning: loss of {tx.loss_percentage}% is unusually high.")


@click.command("balances")
@click.option("--stage", "stage_name", required=True, type=STAGE_CHOICE, help="Stage to list.")
@click.option("--product", "product_id", type=int, help="Only this product.")
@click.option("--all", "include_empty", is_flag=True, help="Include zero balances.")
@click.pass_obj
def stage_balances(
    ctx: CliContext, stage_name: str, product_id: int | None, include_empty: bool
) -> None:
    """Show the balances of one stage."""
    handler = ShowBalancesHandler(ctx.uow_factory)

    try:
        dto = handler.handle(stage_name, product_id=product_id, include_empty=include_empty)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    display_balances(dto)


@click.command("variant")
@click.option("--product", "product_id", required=True, type=int, help="Product ID.")
@click.option("--size", "size_id", required=True, type=int, help="Size ID.")
@click.pass_obj
def stage_variant(ctx: CliContext, product_id: int, size_id: int) -> None:
    """Show one product size across every stage."""
    handler = ShowBalancesHandler(ctx.uow_factory)

    try:
        rows = handler.for_variant(product_id, size_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{rows[0].product_name} {rows[0].size_name}")
    click.echo(f"  {'Stage':<8} {'Color':<12} {'Qty':>8}")
    click.echo(f"  {'-'*30}")
    for row in rows:
        click.echo(f"  {row.stage:<8} {row.color_name or '-':<12} {row.quantity:>8}")


@click.command("history")
@click.option("--product", "product_id", type=int, help="Only this product.")
@click.option("--size", "size_id", type=int, help="Only this size.")
@click.option("--from", "from_stage", type=STAGE_CHOICE, help="Only moves out of this stage.")
@click.option("--to", "to_stage", type=STAGE_CHOICE, help="Only moves into this stage.")
@click.option("--receipts", "receipts_only", is_flag=True, help="Only raw receipts.")
@click.option("--limit", default=DEFAULT_PAGE_SIZE, show_default=True, type=int)
@click.option("--offset", default=0, show_default=True, type=int)
@click.pass_obj
def stage_history(
    ctx: CliContext,
    product_id: int | None,
    size_id: int | None,
    from_stage: str | None,
    to_stage: str | None,
    receipts_only: bool,
    limit: int,
    offset: int,
) -> None:
    """Show the transaction log, newest first."""
    handler = ShowHistoryHandler(ctx.uow_factory)

    try:
        page = handler.handle(
            product_id=product_id,
            size_id=size_id,
            from_stage=from_stage,
            to_stage=to_stage,
            receipts_only=receipts_only,
            limit=limit,
            offset=offset,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not page.transactions:
        click.echo("No transactions found.")
        return

    click.echo(
        f"{'ID':<6} {'When':<21} {'Move':<16} {'Variant':<28} "
        f"{'Out':>6} {'In':>6} {'Loss%':>7}"
    )
    click.echo("-" * 95)
    for tx in page.transactions:
        move = f"{tx.from_stage or 'RECEIPT'}->{tx.to_stage}"
        variant = f"{tx.product_name} {tx.size_name}"
        if tx.color_name:
            variant += f" ({tx.color_name})"
        click.echo(
            f"{tx.id:<6} {tx.created_at:<21} {move:<16} {variant:<28} "
            f"{tx.quantity_deducted:>6} {tx.quantity_produced:>6} {str(tx.loss_percentage):>7}"
        )
    shown_to = page.offset + len(page.transactions)
    click.echo(f"Showing {page.offset + 1}-{shown_to} of {page.total}")
    if page.has_more:
        click.echo(f"More available: use --offset {shown_to}")
