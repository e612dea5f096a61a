"""Catalog aggregates: products, sizes, enamel colors and item categories.

Reference data only. The ledger and kits key off these identifiers but
the catalog itself owns no quantities. Updates are limited to renames
and status toggles.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from kiln.domain.exceptions import ValidationError


class CatalogStatus(Enum):
    ACTIVE = "active"
    DISCONTINUED = "discontinued"


def _clean_name(name: str | None, what: str) -> str:
    if not name or not name.strip():
        raise ValidationError(f"{what} name is required")
    return name.strip()


@dataclass
class _CatalogEntry:
    id: int | None
    name: str
    status: CatalogStatus

    @property
    def is_active(self) -> bool:
        return self.status is CatalogStatus.ACTIVE

    def rename(self, new_name: str) -> None:
        self.name = _clean_name(new_name, type(self).__name__)

    def set_status(self, status: CatalogStatus) -> None:
        self.status = status


@dataclass
class ItemCategory(_CatalogEntry):
    description: str | None = None

    @staticmethod
    def create(name: str, description: str | None = None) -> ItemCategory:
        return ItemCategory(
            id=None,
            name=_clean_name(name, "Category"),
            status=CatalogStatus.ACTIVE,
            description=description,
        )


@dataclass
class Product(_CatalogEntry):
    """A ceramic piece design, e.g. a mug or a plate."""

    category_id: int | None = None
    description: str | None = None

    @staticmethod
    def create(
        name: str,
        category_id: int | None = None,
        description: str | None = None,
    ) -> Product:
        return Product(
            id=None,
            name=_clean_name(name, "Product"),
            status=CatalogStatus.ACTIVE,
            category_id=category_id,
            description=description,
        )


@dataclass
class Size(_CatalogEntry):
    """A size variant, scoped to one product and ordered by ``size_order``."""

    product_id: int = 0
    code: str | None = None
    size_order: int = 0

    @staticmethod
    def create(
        product_id: int,
        name: str,
        code: str | None = None,
        size_order: int = 0,
    ) -> Size:
        return Size(
            id=None,
            name=_clean_name(name, "Size"),
            status=CatalogStatus.ACTIVE,
            product_id=product_id,
            code=code,
            size_order=size_order,
        )


@dataclass
class EnamelColor(_CatalogEntry):
    code: str | None = None
    hex_code: str | None = None

    @staticmethod
    def create(
        name: str,
        code: str | None = None,
        hex_code: str | None = None,
    ) -> EnamelColor:
        if hex_code is not None and not _is_hex_color(hex_code):
            raise ValidationError(f"Invalid hex color: {hex_code!r}")
        return EnamelColor(
            id=None,
            name=_clean_name(name, "Color"),
            status=CatalogStatus.ACTIVE,
            code=code,
            hex_code=hex_code,
        )


def _is_hex_color(value: str) -> bool:
    if not value.startswith("#") or len(value) not in (4, 7):
        return False
    return all(c in "0123456789abcdefABCDEF" for c in value[1:])
