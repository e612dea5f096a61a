"""Abstract repositories for kits and their stock adjustments."""

from __future__ import annotations

from abc import ABC, abstractmethod

from kiln.domain.model.kit import Kit, KitStockAdjustment


class KitRepository(ABC):

    @abstractmethod
    def get_by_id(self, kit_id: int) -> Kit | None:
        """Return a kit by its ID, or None if not found."""

    @abstractmethod
    def get_for_update(self, kit_id: int) -> Kit | None:
        """Return a kit locked until the end of the transaction."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Kit | None:
        """Return the kit carrying ``sku``, or None."""

    @abstractmethod
    def list_all(self) -> list[Kit]:
        """Return every kit, newest first."""

    @abstractmethod
    def save(self, kit: Kit) -> None:
        """Persist a new or updated kit, assigning an ID if needed."""

    @abstractmethod
    def delete(self, kit_id: int) -> None:
        """Remove a kit and its component lines."""


class KitStockAdjustmentRepository(ABC):

    @abstractmethod
    def add(self, adjustment: KitStockAdjustment) -> KitStockAdjustment:
        """Append an adjustment and return it with its assigned ID."""

    @abstractmethod
    def list_for_kit(self, kit_id: int) -> list[KitStockAdjustment]:
        """Return a kit's adjustments, oldest first."""

    @abstractmethod
    def list_all(self) -> list[KitStockAdjustment]:
        """Return every adjustment, oldest first."""
