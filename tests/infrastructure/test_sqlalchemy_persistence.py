"""Integration tests for the SQLAlchemy repositories and unit of work."""

from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from kiln.application.adjust_kit_stock import AdjustKitStockHandler, reservation_service
from kiln.application.audit_ledger import AuditLedgerHandler
from kiln.application.cancel_order import CancelOrderHandler
from kiln.application.catalog import (
    AddCategoryHandler,
    AddColorHandler,
    AddProductHandler,
    AddSizeHandler,
    ListCatalogHandler,
)
from kiln.application.confirm_order import ConfirmOrderHandler
from kiln.application.create_kit import CreateKitHandler
from kiln.application.create_order import CreateOrderHandler
from kiln.application.delete_kit import DeleteKitHandler
from kiln.application.dto import KitComponentSpec, OrderItemSpec
from kiln.application.record_raw_receipt import RecordRawReceiptHandler
from kiln.application.record_transition import RecordTransitionHandler
from kiln.application.show_balances import ShowBalancesHandler
from kiln.application.show_history import ShowHistoryHandler
from kiln.application.show_kit import ShowKitHandler
from kiln.application.update_kit import UpdateKitHandler
from kiln.domain.exceptions import (
    ConcurrencyConflictError,
    InsufficientComponentStockError,
    InsufficientStockError,
    KitLockedError,
    ValidationError,
)
from kiln.domain.model.kit import AdjustmentReason, Kit, KitComponent
from kiln.domain.model.ledger import Stage, StageBalance
from kiln.domain.model.value_objects import Money, Quantity, VariantKey
from kiln.infrastructure.bootstrap import build_engine, init_db, session_factory
from kiln.infrastructure.persistence.sql_kit_repository import kit_select
from kiln.infrastructure.persistence.sql_ledger_repository import balance_select
from kiln.infrastructure.persistence.sql_order_repository import order_select
from kiln.infrastructure.persistence.unit_of_work import SqlAlchemyUnitOfWork

MUG = VariantKey(1, 1)
BLUE_MUG = VariantKey(1, 1, 1)


def _open(database_url: str, **engine_options):
    engine = build_engine(database_url, **engine_options)
    init_db(engine)
    sessions = session_factory(engine)
    AddCategoryHandler(lambda: SqlAlchemyUnitOfWork(sessions)).handle("Tableware")
    return engine, lambda: SqlAlchemyUnitOfWork(sessions)


def _fire_mugs(uow_factory) -> None:
    """Mug Large in Blue: 10 RAW, 5 BISQUE, 78 GLAZE."""
    AddProductHandler(uow_factory).handle("Mug", category_id=1)
    AddSizeHandler(uow_factory).handle(1, "Large", code="L", size_order=2)
    AddColorHandler(uow_factory).handle("Blue", code="BL", hex_code="#1f4e9c")
    RecordRawReceiptHandler(uow_factory).handle(1, 1, 100, actor="ana")
    move = RecordTransitionHandler(uow_factory)
    move.handle(1, 1, "RAW", "BISQUE", 90, 85)
    move.handle(1, 1, "BISQUE", "GLAZE", 80, 78, color_id=1)


@pytest.fixture
def uow_factory():
    engine, factory = _open("sqlite://")
    yield factory
    engine.dispose()


@pytest.fixture
def fired(uow_factory):
    _fire_mugs(uow_factory)
    return uow_factory


@pytest.fixture
def fired_file(tmp_path):
    """Same stock in a SQLite file, where each unit of work gets its own connection."""
    engine, factory = _open(f"sqlite:///{tmp_path / 'kiln.db'}", lock_timeout=0.2)
    _fire_mugs(factory)
    yield factory
    engine.dispose()


def _balance(uow_factory, variant: VariantKey, stage: Stage) -> int:
    with uow_factory() as uow:
        balance = uow.balances.get(variant, stage)
        return balance.quantity if balance is not None else 0


class TestLockingStatements:

    def test_balance_lock_renders_for_update(self):
        stmt = balance_select(BLUE_MUG, Stage.GLAZE, for_update=True)
        assert "FOR UPDATE" in str(stmt.compile(dialect=postgresql.dialect()))

    def test_plain_balance_read_takes_no_lock(self):
        stmt = balance_select(MUG, Stage.RAW)
        assert "FOR UPDATE" not in str(stmt.compile(dialect=postgresql.dialect()))

    def test_kit_lock_renders_for_update(self):
        stmt = kit_select(1, for_update=True)
        assert "FOR UPDATE" in str(stmt.compile(dialect=postgresql.dialect()))

    def test_order_lock_renders_for_update(self):
        stmt = order_select(1, for_update=True)
        assert "FOR UPDATE" in str(stmt.compile(dialect=postgresql.dialect()))


class TestLedgerPersistence:

    def test_balances_round_trip(self, fired):
        assert _balance(fired, MUG, Stage.RAW) == 10
        assert _balance(fired, MUG, Stage.BISQUE) == 5
        assert _balance(fired, BLUE_MUG, Stage.GLAZE) == 78
        assert _balance(fired, VariantKey(1, 1, 2), Stage.GLAZE) == 0

    def test_history_round_trip(self, fired):
        page = ShowHistoryHandler(fired).handle()

        assert [t.id for t in page.transactions] == [3, 2, 1]
        glaze, bisque, receipt = page.transactions
        assert glaze.color_name == "Blue"
        assert glaze.loss_percentage == Decimal("2.50")
        assert bisque.loss_percentage == Decimal("5.56")
        assert receipt.from_stage is None
        assert receipt.actor == "ana"
        assert receipt.created_at.endswith("UTC")

    def test_history_filters_in_sql(self, fired):
        history = ShowHistoryHandler(fired)
        assert [t.id for t in history.handle(receipts_only=True).transactions] == [1]
        assert [t.id for t in history.handle(from_stage="BISQUE").transactions] == [3]
        assert history.handle(limit=1, offset=1).transactions[0].id == 2

    def test_for_variant(self, fired):
        rows = ShowBalancesHandler(fired).for_variant(1, 1)
        assert [(r.stage, r.quantity) for r in rows] == [("RAW", 10), ("BISQUE", 5), ("GLAZE", 78)]

    def test_failed_transition_rolls_back(self, fired):
        with pytest.raises(InsufficientStockError):
            RecordTransitionHandler(fired).handle(1, 1, "BISQUE", "GLAZE", 6, 6, color_id=1)

        assert _balance(fired, MUG, Stage.BISQUE) == 5
        assert ShowHistoryHandler(fired).handle().total == 3

    def test_uncommitted_work_is_discarded(self, fired):
        with fired() as uow:
            uow.balances.save(StageBalance(MUG, Stage.RAW, quantity=999))

        assert _balance(fired, MUG, Stage.RAW) == 10

    def test_audit_clean_after_operations(self, fired):
        kit = CreateKitHandler(fired).handle("Pair", "300", [KitComponentSpec(1, 1, 1, 2)])
        AdjustKitStockHandler(fired).handle(kit.id, 30)
        AdjustKitStockHandler(fired).handle(kit.id, -5)

        result = AuditLedgerHandler(fired).handle()

        assert result.clean
        assert result.adjustments_checked == 2


class TestKitPersistence:

    def test_scenario_round_trip(self, fired):
        kit = CreateKitHandler(fired).handle(
            "Breakfast set", "450.00", [KitComponentSpec(1, 1, 1, 2)], max_stock=50, sku="BRK-1"
        )
        adjust = AdjustKitStockHandler(fired)

        adjust.handle(kit.id, 30)
        with pytest.raises(InsufficientComponentStockError, match="need 20, have 18"):
            adjust.handle(kit.id, 10)
        adjust.handle(kit.id, -5)

        detail = ShowKitHandler(fired).handle(kit.id)
        assert detail.kit.current_stock == 25
        assert detail.kit.sku == "BRK-1"
        assert detail.kit.price == "$450.00"
        assert detail.availability[0].available == 28
        assert [a.delta for a in detail.adjustments] == [30, -5]
        assert _balance(fired, BLUE_MUG, Stage.GLAZE) == 28

        with pytest.raises(KitLockedError):
            UpdateKitHandler(fired).handle(kit.id, components=[KitComponentSpec(1, 1, 1, 3)])

    def test_component_replacement(self, fired):
        AddColorHandler(fired).handle("White")
        kit = CreateKitHandler(fired).handle(
            "Pair", "300", [KitComponentSpec(1, 1, 1, 2), KitComponentSpec(1, 1, 2, 1)]
        )

        dto = UpdateKitHandler(fired).handle(
            kit.id, components=[KitComponentSpec(1, 1, 2, 1), KitComponentSpec(1, 1, 1, 4)]
        )

        assert [(c.color_id, c.quantity) for c in dto.components] == [(2, 1), (1, 4)]
        with fired() as uow:
            stored = uow.kits.get_by_id(kit.id)
        assert [c.quantity.value for c in stored.components] == [1, 4]

    def test_delete_kit(self, fired):
        kit = CreateKitHandler(fired).handle("Pair", "300", [KitComponentSpec(1, 1, 1, 2)])

        DeleteKitHandler(fired).handle(kit.id)

        with fired() as uow:
            assert uow.kits.get_by_id(kit.id) is None

    def test_duplicate_sku_insert_becomes_conflict(self, fired):
        CreateKitHandler(fired).handle("Pair", "300", [KitComponentSpec(1, 1, 1, 2)], sku="X")
        twin = Kit.create(
            name="Twin",
            price=Money.of("10"),
            components=[KitComponent(BLUE_MUG, Quantity(1))],
            sku="X",
        )

        with pytest.raises(ConcurrencyConflictError, match="Concurrent update conflict"):
            with fired() as uow:
                uow.kits.save(twin)
                uow.commit()


class TestOrderPersistence:

    def test_confirm_and_cancel(self, fired):
        kit = CreateKitHandler(fired).handle("Pair", "300", [KitComponentSpec(1, 1, 1, 2)])
        AdjustKitStockHandler(fired).handle(kit.id, 5)

        order = CreateOrderHandler(fired).handle("Alice", [OrderItemSpec(kit.id, 2)])
        assert order.total == "$600.00"

        ConfirmOrderHandler(fired).handle(order.id)
        assert ShowKitHandler(fired).handle(kit.id).kit.current_stock == 3

        cancelled = CancelOrderHandler(fired).handle(order.id)
        assert cancelled.status == "CANCELLED"
        assert [(i.kit_name, i.quantity) for i in cancelled.items] == [("Pair", 2)]
        assert ShowKitHandler(fired).handle(kit.id).kit.current_stock == 5
        assert _balance(fired, BLUE_MUG, Stage.GLAZE) == 68


class TestCatalogPersistence:

    def test_name_lookup_is_case_insensitive(self, fired):
        with fired() as uow:
            assert uow.catalog.get_product_by_name("MUG").id == 1
            assert uow.catalog.get_color_by_name("blue").hex_code == "#1f4e9c"

    def test_lists(self, fired):
        catalog = ListCatalogHandler(fired)
        assert [p.name for p in catalog.list_products("active")] == ["Mug"]
        assert [(s.name, s.code) for s in catalog.list_sizes(1)] == [("Large", "L")]
        assert [c.name for c in catalog.list_categories()] == ["Tableware"]


class TestConflictTranslation:

    def test_foreign_key_violation_is_not_a_conflict(self, uow_factory):
        with pytest.raises(IntegrityError, match="FOREIGN KEY"):
            with uow_factory() as uow:
                uow.balances.save(StageBalance(VariantKey(99, 1), Stage.RAW, quantity=1))


class TestConcurrentWriters:
    """Two units of work on one SQLite file, interleaved in one thread."""

    def test_second_reservation_waits_for_the_first(self, fired_file):
        kit = CreateKitHandler(fired_file).handle("Pair", "300", [KitComponentSpec(1, 1, 1, 2)])

        with fired_file() as first:
            assert first.balances.get_for_update(BLUE_MUG, Stage.GLAZE).quantity == 78
            with pytest.raises(ConcurrencyConflictError):
                AdjustKitStockHandler(fired_file, max_attempts=1).handle(kit.id, 30)
            reservation_service(first).adjust_stock(kit.id, 30)
            first.commit()

        with pytest.raises(InsufficientComponentStockError, match="need 60, have 18"):
            AdjustKitStockHandler(fired_file).handle(kit.id, 30)
        assert _balance(fired_file, BLUE_MUG, Stage.GLAZE) == 18
        assert ShowKitHandler(fired_file).handle(kit.id).kit.current_stock == 30
        assert AuditLedgerHandler(fired_file).handle().clean

    def test_second_confirm_waits_for_the_order_lock(self, fired_file):
        kit = CreateKitHandler(fired_file).handle("Pair", "300", [KitComponentSpec(1, 1, 1, 2)])
        AdjustKitStockHandler(fired_file).handle(kit.id, 10)
        order = CreateOrderHandler(fired_file).handle("Alice", [OrderItemSpec(kit.id, 5)])

        with fired_file() as first:
            draft = first.orders.get_for_update(order.id)
            with pytest.raises(ConcurrencyConflictError):
                ConfirmOrderHandler(fired_file, max_attempts=1).handle(order.id)
            draft.confirm()
            reservation_service(first).adjust_stock(kit.id, -5, reason=AdjustmentReason.ORDER)
            first.orders.save(draft)
            first.commit()

        with pytest.raises(ValidationError, match="Cannot confirm order"):
            ConfirmOrderHandler(fired_file).handle(order.id)
        assert ShowKitHandler(fired_file).handle(kit.id).kit.current_stock == 5
        assert AuditLedgerHandler(fired_file).handle().clean
