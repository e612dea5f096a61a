"""In-memory fake repositories for testing.

These implement the same abstract interfaces as the SQLAlchemy
repositories but keep everything in a shared ``FakeStore``. Objects are
copied on the way in and out, so an unsaved mutation never leaks into
the store, and ``FakeUnitOfWork`` restores a snapshot on rollback.
"""

from __future__ import annotations

import copy
from dataclasses import replace

from kiln.domain.exceptions import ConcurrencyConflictError
from kiln.domain.model.catalog import CatalogStatus, EnamelColor, ItemCategory, Product, Size
from kiln.domain.model.kit import Kit, KitStockAdjustment
from kiln.domain.model.ledger import Stage, StageBalance, StageTransaction
from kiln.domain.model.order import Order
from kiln.domain.model.value_objects import VariantKey
from kiln.domain.repository.catalog_repository import CatalogRepository
from kiln.domain.repository.kit_repository import KitRepository, KitStockAdjustmentRepository
from kiln.domain.repository.ledger_repository import (
    StageBalanceRepository,
    StageTransactionRepository,
    TransactionQuery,
)
from kiln.domain.repository.order_repository import OrderRepository
from kiln.domain.repository.unit_of_work import UnitOfWork


class FakeStore:

    def __init__(self) -> None:
        self.categories: dict[int, ItemCategory] = {}
        self.products: dict[int, Product] = {}
        self.sizes: dict[int, Size] = {}
        self.colors: dict[int, EnamelColor] = {}
        self.balances: dict[tuple[VariantKey, Stage], StageBalance] = {}
        self.transactions: list[StageTransaction] = []
        self.kits: dict[int, Kit] = {}
        self.adjustments: list[KitStockAdjustment] = []
        self.orders: dict[int, Order] = {}
        self.sequences: dict[str, int] = {}
        self.locked: list[tuple] = []

    def next_id(self, kind: str) -> int:
        self.sequences[kind] = self.sequences.get(kind, 0) + 1
        return self.sequences[kind]


class FakeCatalogRepository(CatalogRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def get_product(self, product_id: int) -> Product | None:
        return copy.deepcopy(self._store.products.get(product_id))

    def get_product_by_name(self, name: str) -> Product | None:
        return self._by_name(self._store.products, name)

    def list_products(self, status: CatalogStatus | None = None) -> list[Product]:
        return self._list(self._store.products, status)

    def save_product(self, product: Product) -> None:
        self._save(self._store.products, "product", product)

    def get_size(self, size_id: int) -> Size | None:
        return copy.deepcopy(self._store.sizes.get(size_id))

    def list_sizes(self, product_id: int) -> list[Size]:
        sizes = [s for s in self._store.sizes.values() if s.product_id == product_id]
        return copy.deepcopy(sorted(sizes, key=lambda s: (s.size_order, s.name)))

    def save_size(self, size: Size) -> None:
        self._save(self._store.sizes, "size", size)

    def get_color(self, color_id: int) -> EnamelColor | None:
        return copy.deepcopy(self._store.colors.get(color_id))

    def get_color_by_name(self, name: str) -> EnamelColor | None:
        return self._by_name(self._store.colors, name)

    def list_colors(self, status: CatalogStatus | None = None) -> list[EnamelColor]:
        return self._list(self._store.colors, status)

    def save_color(self, color: EnamelColor) -> None:
        self._save(self._store.colors, "color", color)

    def get_category(self, category_id: int) -> ItemCategory | None:
        return copy.deepcopy(self._store.categories.get(category_id))

    def get_category_by_name(self, name: str) -> ItemCategory | None:
        return self._by_name(self._store.categories, name)

    def list_categories(self, status: CatalogStatus | None = None) -> list[ItemCategory]:
        return self._list(self._store.categories, status)

    def save_category(self, category: ItemCategory) -> None:
        self._save(self._store.categories, "category", category)

    # --- Helpers --------------------------------------------------------------

    @staticmethod
    def _by_name(entries: dict, name: str):
        for entry in entries.values():
            if entry.name.lower() == name.strip().lower():
                return copy.deepcopy(entry)
        return None

    @staticmethod
    def _list(entries: dict, status: CatalogStatus | None) -> list:
        matching = [e for e in entries.values() if status is None or e.status is status]
        return copy.deepcopy(sorted(matching, key=lambda e: e.name))

    def _save(self, entries: dict, kind: str, entry) -> None:
        if entry.id is None:
            entry.id = self._store.next_id(kind)
        entries[entry.id] = copy.deepcopy(entry)


class FakeStageBalanceRepository(StageBalanceRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def get(self, variant: VariantKey, stage: Stage) -> StageBalance | None:
        return copy.deepcopy(self._store.balances.get((variant, stage)))

    def get_for_update(self, variant: VariantKey, stage: Stage) -> StageBalance | None:
        self._store.locked.append((variant, stage))
        return self.get(variant, stage)

    def list_by_stage(self, stage: Stage, include_empty: bool = False) -> list[StageBalance]:
        balances = [
            b
            for (_, s), b in self._store.balances.items()
            if s is stage and (include_empty or b.quantity > 0)
        ]
        return copy.deepcopy(sorted(balances, key=lambda b: b.variant.sort_key()))

    def list_all(self) -> list[StageBalance]:
        balances = sorted(
            self._store.balances.values(),
            key=lambda b: (*b.variant.sort_key(), b.stage.order),
        )
        return copy.deepcopy(balances)

    def save(self, balance: StageBalance) -> None:
        self._store.balances[balance.key] = copy.deepcopy(balance)


class FakeStageTransactionRepository(StageTransactionRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def add(self, transaction: StageTransaction) -> StageTransaction:
        entry = replace(transaction, id=self._store.next_id("transaction"))
        self._store.transactions.append(entry)
        return entry

    def find(
        self,
        query: TransactionQuery,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[StageTransaction]:
        matching = [tx for tx in reversed(self._store.transactions) if _matches(tx, query)]
        end = None if limit is None else offset + limit
        return matching[offset:end]

    def count(self, query: TransactionQuery) -> int:
        return sum(1 for tx in self._store.transactions if _matches(tx, query))

    def list_all(self) -> list[StageTransaction]:
        return list(self._store.transactions)


def _matches(tx: StageTransaction, query: TransactionQuery) -> bool:
    if query.product_id is not None and tx.variant.product_id != query.product_id:
        return False
    if query.size_id is not None and tx.variant.size_id != query.size_id:
        return False
    if query.receipts_only:
        if tx.from_stage is not None:
            return False
    elif query.from_stage is not None and tx.from_stage is not query.from_stage:
        return False
    if query.to_stage is not None and tx.to_stage is not query.to_stage:
        return False
    return True


class FakeKitRepository(KitRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def get_by_id(self, kit_id: int) -> Kit | None:
        return copy.deepcopy(self._store.kits.get(kit_id))

    def get_for_update(self, kit_id: int) -> Kit | None:
        self._store.locked.append(("kit", kit_id))
        return self.get_by_id(kit_id)

    def get_by_sku(self, sku: str) -> Kit | None:
        for kit in self._store.kits.values():
            if kit.sku == sku:
                return copy.deepcopy(kit)
        return None

    def list_all(self) -> list[Kit]:
        kits = sorted(self._store.kits.values(), key=lambda k: k.id, reverse=True)
        return copy.deepcopy(kits)

    def save(self, kit: Kit) -> None:
        if kit.id is None:
            kit.id = self._store.next_id("kit")
        self._store.kits[kit.id] = copy.deepcopy(kit)

    def delete(self, kit_id: int) -> None:
        self._store.kits.pop(kit_id, None)


class FakeKitStockAdjustmentRepository(KitStockAdjustmentRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def add(self, adjustment: KitStockAdjustment) -> KitStockAdjustment:
        entry = replace(adjustment, id=self._store.next_id("adjustment"))
        self._store.adjustments.append(entry)
        return entry

    def list_for_kit(self, kit_id: int) -> list[KitStockAdjustment]:
        return [a for a in self._store.adjustments if a.kit_id == kit_id]

    def list_all(self) -> list[KitStockAdjustment]:
        return list(self._store.adjustments)


class FakeOrderRepository(OrderRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def get_by_id(self, order_id: int) -> Order | None:
        return copy.deepcopy(self._store.orders.get(order_id))

    def get_for_update(self, order_id: int) -> Order | None:
        self._store.locked.append(("order", order_id))
        return self.get_by_id(order_id)

    def save(self, order: Order) -> None:
        if order.id is None:
            order.id = self._store.next_id("order")
        self._store.orders[order.id] = copy.deepcopy(order)


class FakeUnitOfWork(UnitOfWork):
    """Snapshot on enter, restore on rollback unless committed.

    ``conflicts`` makes the next N commits fail with
    ConcurrencyConflictError, to exercise the retry path.
    """

    def __init__(self, store: FakeStore | None = None, conflicts: int = 0) -> None:
        self.store = store or FakeStore()
        self.conflicts = conflicts
        self.commits = 0
        self.attempts = 0
        self._snapshot: dict | None = None

    def __call__(self) -> FakeUnitOfWork:
        # Lets the instance itself act as the handlers' uow_factory.
        return self

    def __enter__(self) -> FakeUnitOfWork:
        self.attempts += 1
        self._snapshot = copy.deepcopy(self.store.__dict__)
        self.catalog = FakeCatalogRepository(self.store)
        self.balances = FakeStageBalanceRepository(self.store)
        self.transactions = FakeStageTransactionRepository(self.store)
        self.kits = FakeKitRepository(self.store)
        self.adjustments = FakeKitStockAdjustmentRepository(self.store)
        self.orders = FakeOrderRepository(self.store)
        return self

    def commit(self) -> None:
        if self.conflicts > 0:
            self.conflicts -= 1
            raise ConcurrencyConflictError("simulated serialization failure")
        self.commits += 1
        self._snapshot = None

    def rollback(self) -> None:
        if self._snapshot is not None:
            self.store.__dict__.update(self._snapshot)
            self._snapshot = None


def seed_catalog(store: FakeStore) -> None:
    """Mug/Large (1/1), Plate/Dinner (2/2), colors Blue (1) and White (2)."""
    catalog = FakeCatalogRepository(store)
    catalog.save_category(ItemCategory.create("Tableware"))
    catalog.save_product(Product.create("Mug", category_id=1))
    catalog.save_product(Product.create("Plate", category_id=1))
    catalog.save_size(Size.create(1, "Large", code="L", size_order=2))
    catalog.save_size(Size.create(2, "Dinner", code="D"))
    catalog.save_color(EnamelColor.create("Blue", code="BL", hex_code="#1f4e9c"))
    catalog.save_color(EnamelColor.create("White", code="WH", hex_code="#ffffff"))
