"""SQLAlchemy implementation of CatalogRepository."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kiln.domain.model.catalog import CatalogStatus, EnamelColor, ItemCategory, Product, Size
from kiln.domain.repository.catalog_repository import CatalogRepository
from kiln.infrastructure.persistence.orm import (
    EnamelColorRow,
    ItemCategoryRow,
    ProductRow,
    SizeRow,
)


class SqlCatalogRepository(CatalogRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    # --- Products -------------------------------------------------------------

    def get_product(self, product_id: int) -> Product | None:
        row = self._session.get(ProductRow, product_id)
        return self._product(row) if row is not None else None

    def get_product_by_name(self, name: str) -> Product | None:
        row = self._by_name(ProductRow, name)
        return self._product(row) if row is not None else None

    def list_products(self, status: CatalogStatus | None = None) -> list[Product]:
        return [self._product(row) for row in self._list(ProductRow, status)]

    def save_product(self, product: Product) -> None:
        row = self._row_for(ProductRow, product.id)
        row.name = product.name
        row.category_id = product.category_id
        row.description = product.description
        row.status = product.status.value
        self._session.flush()
        product.id = row.id

    # --- Sizes ----------------------------------------------------------------

    def get_size(self, size_id: int) -> Size | None:
        row = self._session.get(SizeRow, size_id)
        return self._size(row) if row is not None else None

    def list_sizes(self, product_id: int) -> list[Size]:
        stmt = (
            select(SizeRow)
            .where(SizeRow.product_id == product_id)
            .order_by(SizeRow.size_order, SizeRow.name)
        )
        return [self._size(row) for row in self._session.scalars(stmt)]

    def save_size(self, size: Size) -> None:
        row = self._row_for(SizeRow, size.id)
        row.product_id = size.product_id
        row.name = size.name
        row.code = size.code
        row.size_order = size.size_order
        row.status = size.status.value
        self._session.flush()
        size.id = row.id

    # --- Enamel colors --------------------------------------------------------

    def get_color(self, color_id: int) -> EnamelColor | None:
        row = self._session.get(EnamelColorRow, color_id)
        return self._color(row) if row is not None else None

    def get_color_by_name(self, name: str) -> EnamelColor | None:
        row = self._by_name(EnamelColorRow, name)
        return self._color(row) if row is not None else None

    def list_colors(self, status: CatalogStatus | None = None) -> list[EnamelColor]:
        return [self._color(row) for row in self._list(EnamelColorRow, status)]

    def save_color(self, color: EnamelColor) -> None:
        row = self._row_for(EnamelColorRow, color.id)
        row.name = color.name
        row.code = color.code
        row.hex_code = color.hex_code
        row.status = color.status.value
        self._session.flush()
        color.id = row.id

    # --- Item categories ------------------------------------------------------

    def get_category(self, category_id: int) -> ItemCategory | None:
        row = self._session.get(ItemCategoryRow, category_id)
        return self._category(row) if row is not None else None

    def get_category_by_name(self, name: str) -> ItemCategory | None:
        row = self._by_name(ItemCategoryRow, name)
        return self._category(row) if row is not None else None

    def list_categories(self, status: CatalogStatus | None = None) -> list[ItemCategory]:
        return [self._category(row) for row in self._list(ItemCategoryRow, status)]

    def save_category(self, category: ItemCategory) -> None:
        row = self._row_for(ItemCategoryRow, category.id)
        row.name = category.name
        row.description = category.description
        row.status = category.status.value
        self._session.flush()
        category.id = row.id

    # --- Query helpers --------------------------------------------------------

    def _by_name(self, row_cls, name: str):
        stmt = select(row_cls).where(func.lower(row_cls.name) == name.strip().lower())
        return self._session.scalars(stmt).first()

    def _list(self, row_cls, status: CatalogStatus | None):
        stmt = select(row_cls).order_by(row_cls.name)
        if status is not None:
            stmt = stmt.where(row_cls.status == status.value)
        return self._session.scalars(stmt).all()

    def _row_for(self, row_cls, entity_id: int | None):
        if entity_id is not None:
            row = self._session.get(row_cls, entity_id)
            if row is not None:
                return row
        row = row_cls()
        self._session.add(row)
        return row

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _product(row: ProductRow) -> Product:
        return Product(
            id=row.id,
            name=row.name,
            status=CatalogStatus(row.status),
            category_id=row.category_id,
            description=row.description,
        )

    @staticmethod
    def _size(row: SizeRow) -> Size:
        return Size(
            id=row.id,
            name=row.name,
            status=CatalogStatus(row.status),
            product_id=row.product_id,
            code=row.code,
            size_order=row.size_order,
        )

    @staticmethod
    def _color(row: EnamelColorRow) -> EnamelColor:
        return EnamelColor(
            id=row.id,
            name=row.name,
            status=CatalogStatus(row.status),
            code=row.code,
            hex_code=row.hex_code,
        )

    @staticmethod
    def _category(row: ItemCategoryRow) -> ItemCategory:
        return ItemCategory(
            id=row.id,
            name=row.name,
            status=CatalogStatus(row.status),
            description=row.description,
        )
