"""CLI commands for reports: firing losses and ledger audit."""

from __future__ import annotations

import click

from kiln.application.audit_ledger import AuditLedgerHandler
from kiln.application.loss_analysis import LossAnalysisHandler
from kiln.domain.exceptions import DomainException
from kiln.infrastructure.cli.context import CliContext


@click.command("loss")
@click.option("--product", "product_id", type=int, help="Only this product.")
@click.pass_obj
def report_loss(ctx: CliContext, product_id: int | None) -> None:
    """Summarise firing losses per transition and product size."""
    rows = LossAnalysisHandler(ctx.uow_factory).handle(product_id=product_id)

    if not rows:
        click.echo("No transitions recorded.")
        return

    click.echo(
        f"{'Transition':<16} {'Product':<20} {'Size':<10} {'Runs':>5} "
        f"{'Out':>7} {'In':>7} {'Loss':>6} {'Loss%':>7}"
    )
    click.echo("-" * 84)
    for r in rows:
        click.echo(
            f"{r.transition:<16} {r.product_name:<20} {r.size_name:<10} {r.transactions:>5} "
            f"{r.total_deducted:>7} {r.total_produced:>7} {r.total_loss:>6} "
            f"{str(r.loss_percentage):>7}"
        )


@click.command("audit")
@click.option(
    "--repair", is_flag=True, help="Overwrite drifted balances and kit stock with log totals."
)
@click.pass_obj
def report_audit(ctx: CliContext, repair: bool) -> None:
    """Check every balance and kit stock level against the logs."""
    handler = AuditLedgerHandler(ctx.uow_factory, ctx.max_attempts)

    try:
        result = handler.handle(repair=repair)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Checked {result.transactions_checked} transactions and "
        f"{result.adjustments_checked} kit adjustments."
    )
    if result.clean:
        click.echo("Ledger is consistent.")
        return

    for d in result.drifts:
        label = f"{d.product_name} {d.size_name}"
        if d.color_name:
            label += f" ({d.color_name})"
        click.echo(f"  {d.stage:<7} {label:<36} recorded {d.recorded}, expected {d.expected}")
    for k in result.kit_drifts:
        click.echo(f"  KIT     {k.kit_name:<36} recorded {k.recorded}, expected {k.expected}")
    for tx_id in result.loss_mismatches:
        click.echo(f"  Transaction #{tx_id} has a stored loss percentage that does not match.")
    if result.repaired:
        click.echo("Balances repaired.")
        return
    if result.drifts or result.kit_drifts:
        click.echo("Run with --repair to overwrite drifted balances and kit stock.")
    click.get_current_context().exit(1)
