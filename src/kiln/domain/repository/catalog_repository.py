"""Abstract repository for the catalog aggregates.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations live in the infrastructure
layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from kiln.domain.model.catalog import CatalogStatus, EnamelColor, ItemCategory, Product, Size


class CatalogRepository(ABC):

    # --- Products -------------------------------------------------------------

    @abstractmethod
    def get_product(self, product_id: int) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    def get_product_by_name(self, name: str) -> Product | None:
        """Return a product by its name (case-insensitive), or None."""

    @abstractmethod
    def list_products(self, status: CatalogStatus | None = None) -> list[Product]:
        """Return products ordered by name, optionally filtered by status."""

    @abstractmethod
    def save_product(self, product: Product) -> None:
        """Persist a new or updated product, assigning an ID if needed."""

    # --- Sizes ----------------------------------------------------------------

    @abstractmethod
    def get_size(self, size_id: int) -> Size | None:
        """Return a size by its ID, or None if not found."""

    @abstractmethod
    def list_sizes(self, product_id: int) -> list[Size]:
        """Return a product's sizes ordered by ``size_order`` then name."""

    @abstractmethod
    def save_size(self, size: Size) -> None:
        """Persist a new or updated size, assigning an ID if needed."""

    # --- Enamel colors --------------------------------------------------------

    @abstractmethod
    def get_color(self, color_id: int) -> EnamelColor | None:
        """Return a color by its ID, or None if not found."""

    @abstractmethod
    def get_color_by_name(self, name: str) -> EnamelColor | None:
        """Return a color by its name (case-insensitive), or None."""

    @abstractmethod
    def list_colors(self, status: CatalogStatus | None = None) -> list[EnamelColor]:
        """Return colors ordered by name, optionally filtered by status."""

    @abstractmethod
    def save_color(self, color: EnamelColor) -> None:
        """Persist a new or updated color, assigning an ID if needed."""

    # --- Item categories ------------------------------------------------------

    @abstractmethod
    def get_category(self, category_id: int) -> ItemCategory | None:
        """Return a category by its ID, or None if not found."""

    @abstractmethod
    def get_category_by_name(self, name: str) -> ItemCategory | None:
        """Return a category by its name (case-insensitive), or None."""

    @abstractmethod
    def list_categories(self, status: CatalogStatus | None = None) -> list[ItemCategory]:
        """Return categories ordered by name, optionally filtered by status."""

    @abstractmethod
    def save_category(self, category: ItemCategory) -> None:
        """Persist a new or updated category, assigning an ID if needed."""
