"""Application services: catalog maintenance and lookup.

The catalog is reference data. Adds require a unique, non-blank name;
updates are limited to renames and active/discontinued toggles.
"""

from __future__ import annotations

from collections.abc import Callable

from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.domain.exceptions import EntityNotFoundError, ValidationError
from kiln.domain.model.catalog import CatalogStatus, EnamelColor, ItemCategory, Product, Size
from kiln.domain.repository.catalog_repository import CatalogRepository
from kiln.domain.repository.unit_of_work import UnitOfWork

CATALOG_KINDS = ("product", "size", "color", "category")


def parse_status(value: str | CatalogStatus | None) -> CatalogStatus | None:
    if value is None or isinstance(value, CatalogStatus):
        return value
    try:
        return CatalogStatus(value.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(s.value for s in CatalogStatus)
        raise ValidationError(f"Unknown status '{value}' (expected one of: {allowed})") from exc


class AddCategoryHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(self, name: str, description: str | None = None) -> ItemCategory:
        return retry_on_conflict(lambda: self._add(name, description), self._max_attempts)

    def _add(self, name: str, description: str | None) -> ItemCategory:
        category = ItemCategory.create(name, description=description)
        with self._uow_factory() as uow:
            if uow.catalog.get_category_by_name(category.name) is not None:
                raise ValidationError(f"Category '{category.name}' already exists")
            uow.catalog.save_category(category)
            uow.commit()
        return category


class AddProductHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(
        self,
        name: str,
        category_id: int | None = None,
        description: str | None = None,
    ) -> Product:
        """Add a new product design to the catalog."""
        return retry_on_conflict(
            lambda: self._add(name, category_id, description), self._max_attempts
        )

    def _add(self, name: str, category_id: int | None, description: str | None) -> Product:
        product = Product.create(name, category_id=category_id, description=description)
        with self._uow_factory() as uow:
            if uow.catalog.get_product_by_name(product.name) is not None:
                raise ValidationError(f"Product '{product.name}' already exists")
            if category_id is not None and uow.catalog.get_category(category_id) is None:
                raise EntityNotFoundError(f"Category #{category_id} not found")
            uow.catalog.save_product(product)
            uow.commit()
        return product


class AddSizeHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(
        self,
        product_id: int,
        name: str,
        code: str | None = None,
        size_order: int = 0,
    ) -> Size:
        """Add a size to a product. Size names are unique per product."""
        return retry_on_conflict(
            lambda: self._add(product_id, name, code, size_order), self._max_attempts
        )

    def _add(self, product_id: int, name: str, code: str | None, size_order: int) -> Size:
        size = Size.create(product_id, name, code=code, size_order=size_order)
        with self._uow_factory() as uow:
            product = uow.catalog.get_product(product_id)
            if product is None:
                raise EntityNotFoundError(f"Product #{product_id} not found")
            _ensure_unique_size(uow.catalog, size)
            uow.catalog.save_size(size)
            uow.commit()
        return size


class AddColorHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(
        self,
        name: str,
        code: str | None = None,
        hex_code: str | None = None,
    ) -> EnamelColor:
        return retry_on_conflict(lambda: self._add(name, code, hex_code), self._max_attempts)

    def _add(self, name: str, code: str | None, hex_code: str | None) -> EnamelColor:
        color = EnamelColor.create(name, code=code, hex_code=hex_code)
        with self._uow_factory() as uow:
            if uow.catalog.get_color_by_name(color.name) is not None:
                raise ValidationError(f"Color '{color.name}' already exists")
            uow.catalog.save_color(color)
            uow.commit()
        return color


class UpdateCatalogEntryHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(
        self,
        kind: str,
        entry_id: int,
        name: str | None = None,
        status: str | CatalogStatus | None = None,
    ) -> None:
        """Rename an entry and/or change its status.

        Discontinuing an entry never touches existing balances or kits;
        it only stops new receipts and new kit components from using it.
        """
        if kind not in CATALOG_KINDS:
            raise ValidationError(f"Unknown catalog kind '{kind}'")
        new_status = parse_status(status)
        if name is None and new_status is None:
            raise ValidationError("Nothing to update: give a new name or status")
        retry_on_conflict(
            lambda: self._update(kind, entry_id, name, new_status), self._max_attempts
        )

    def _update(
        self,
        kind: str,
        entry_id: int,
        name: str | None,
        status: CatalogStatus | None,
    ) -> None:
        with self._uow_factory() as uow:
            catalog = uow.catalog
            getter, saver, by_name = {
                "product": (catalog.get_product, catalog.save_product, catalog.get_product_by_name),
                "size": (catalog.get_size, catalog.save_size, None),
                "color": (catalog.get_color, catalog.save_color, catalog.get_color_by_name),
                "category": (
                    catalog.get_category,
                    catalog.save_category,
                    catalog.get_category_by_name,
                ),
            }[kind]

            entry = getter(entry_id)
            if entry is None:
                raise EntityNotFoundError(f"{kind.capitalize()} #{entry_id} not found")

            if name is not None:
                entry.rename(name)
                if isinstance(entry, Size):
                    _ensure_unique_size(catalog, entry)
                else:
                    clash = by_name(entry.name)
                    if clash is not None and clash.id != entry.id:
                        raise ValidationError(
                            f"{kind.capitalize()} '{entry.name}' already exists"
                        )
            if status is not None:
                entry.set_status(status)

            saver(entry)
            uow.commit()


class ListCatalogHandler:
    """Read-only catalog provider for the CLI and for kit definition."""

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def list_products(self, status: str | CatalogStatus | None = None) -> list[Product]:
        with self._uow_factory() as uow:
            return uow.catalog.list_products(parse_status(status))

    def list_sizes(self, product_id: int) -> list[Size]:
        with self._uow_factory() as uow:
            if uow.catalog.get_product(product_id) is None:
                raise EntityNotFoundError(f"Product #{product_id} not found")
            return uow.catalog.list_sizes(product_id)

    def list_colors(self, status: str | CatalogStatus | None = None) -> list[EnamelColor]:
        with self._uow_factory() as uow:
            return uow.catalog.list_colors(parse_status(status))

    def list_categories(
        self, status: str | CatalogStatus | None = None
    ) -> list[ItemCategory]:
        with self._uow_factory() as uow:
            return uow.catalog.list_categories(parse_status(status))


def _ensure_unique_size(catalog: CatalogRepository, size: Size) -> None:
    for other in catalog.list_sizes(size.product_id):
        if other.id != size.id and other.name.lower() == size.name.lower():
            raise ValidationError(f"Size '{size.name}' already exists for this product")
