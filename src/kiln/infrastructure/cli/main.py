import click

from kiln.infrastructure.cli.catalog_commands import (
    category_add,
    category_list,
    category_update,
    color_add,
    color_list,
    color_update,
    product_add,
    product_list,
    product_update,
    size_add,
    size_list,
    size_update,
)
from kiln.infrastructure.cli.context import CliContext
from kiln.infrastructure.cli.kit_commands import (
    kit_adjust,
    kit_available,
    kit_create,
    kit_delete,
    kit_list,
    kit_show,
    kit_update,
)
from kiln.infrastructure.cli.order_commands import (
    order_cancel,
    order_confirm,
    order_create,
    order_show,
)
from kiln.infrastructure.cli.report_commands import report_audit, report_loss
from kiln.infrastructure.cli.stage_commands import (
    stage_balances,
    stage_history,
    stage_move,
    stage_receive,
    stage_variant,
)
from kiln.infrastructure.config import load_settings
from kiln.infrastructure.logging_config import configure_logging


@click.group()
@click.option("--actor", help="Name recorded on ledger entries (default: $KILN_ACTOR).")
@click.pass_context
def cli(ctx: click.Context, actor: str | None) -> None:
    """Kiln: ceramics production ledger and kit stock."""
    try:
        settings = load_settings()
    except ValueError as exc:
        raise click.UsageError(str(exc))
    configure_logging(settings.log_level)
    ctx.obj = CliContext(settings=settings, actor=actor or settings.actor)


@cli.group()
def category() -> None:
    """Manage item categories."""


@cli.group()
def product() -> None:
    """Manage products."""


@cli.group()
def size() -> None:
    """Manage product sizes."""


@cli.group()
def color() -> None:
    """Manage enamel colors."""


@cli.group()
def stage() -> None:
    """Receive and move stock through RAW, BISQUE and GLAZE."""


@cli.group()
def kit() -> None:
    """Manage kits and kit stock."""


@cli.group()
def order() -> None:
    """Manage kit orders."""


@cli.group()
def report() -> None:
    """Loss analysis and ledger audit."""


# Register subcommands
category.add_command(category_add)
category.add_command(category_list)
category.add_command(category_update)
product.add_command(product_add)
product.add_command(product_list)
product.add_command(product_update)
size.add_command(size_add)
size.add_command(size_list)
size.add_command(size_update)
color.add_command(color_add)
color.add_command(color_list)
color.add_command(color_update)
stage.add_command(stage_receive)
stage.add_command(stage_move)
stage.add_command(stage_balances)
stage.add_command(stage_history)
stage.add_command(stage_variant)
kit.add_command(kit_create)
kit.add_command(kit_update)
kit.add_command(kit_delete)
kit.add_command(kit_adjust)
kit.add_command(kit_show)
kit.add_command(kit_list)
kit.add_command(kit_available)
order.add_command(order_create)
order.add_command(order_show)
order.add_command(order_confirm)
order.add_command(order_cancel)
report.add_command(report_loss)
report.add_command(report_audit)
