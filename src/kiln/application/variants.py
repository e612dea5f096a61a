"""Helpers that turn catalog identifiers into ledger variant keys."""

from __future__ import annotations

from dataclasses import dataclass

from kiln.domain.exceptions import EntityNotFoundError, ValidationError
from kiln.domain.model.value_objects import VariantKey
from kiln.domain.repository.catalog_repository import CatalogRepository


def resolve_variant(
    catalog: CatalogRepository,
    product_id: int,
    size_id: int,
    color_id: int | None = None,
    require_active: bool = False,
) -> VariantKey:
    """Validate the catalog references and build the variant key.

    The size must belong to the product. With ``require_active`` every
    referenced entry must also be active.
    """
    product = catalog.get_product(product_id)
    if product is None:
        raise EntityNotFoundError(f"Product #{product_id} not found")
    size = catalog.get_size(size_id)
    if size is None:
        raise EntityNotFoundError(f"Size #{size_id} not found")
    if size.product_id != product.id:
        raise ValidationError(
            f"Size '{size.name}' does not belong to product '{product.name}'"
        )
    entries = [product, size]
    if color_id is not None:
        color = catalog.get_color(color_id)
        if color is None:
            raise EntityNotFoundError(f"Enamel color #{color_id} not found")
        entries.append(color)
    if require_active:
        for entry in entries:
            if not entry.is_active:
                raise ValidationError(f"'{entry.name}' is discontinued")
    return VariantKey(product_id, size_id, color_id)


@dataclass(frozen=True)
class VariantNames:
    product_name: str
    size_name: str
    color_name: str | None

    def __str__(self) -> str:
        label = f"{self.product_name} {self.size_name}"
        return f"{label} ({self.color_name})" if self.color_name else label


def variant_names(catalog: CatalogRepository, variant: VariantKey) -> VariantNames:
    product = catalog.get_product(variant.product_id)
    size = catalog.get_size(variant.size_id)
    color = catalog.get_color(variant.color_id) if variant.color_id is not None else None
    return VariantNames(
        product_name=product.name if product else f"#{variant.product_id}",
        size_name=size.name if size else f"#{variant.size_id}",
        color_name=(color.name if color else f"#{variant.color_id}")
        if variant.color_id is not None
        else None,
    )
