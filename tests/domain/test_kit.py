"""Unit tests for the Kit aggregate and its business rules."""

import pytest

from kiln.domain.exceptions import (
    KitLockedError,
    MaxStockExceededError,
    MissingColorError,
    NegativeStockError,
    ValidationError,
)
from kiln.domain.model.kit import AdjustmentReason, Kit, KitComponent
from kiln.domain.model.value_objects import Money, Quantity, VariantKey

BLUE_MUG = VariantKey(1, 1, 1)
WHITE_PLATE = VariantKey(2, 2, 2)


def _component(variant: VariantKey = BLUE_MUG, qty: int = 2) -> KitComponent:
    return KitComponent(variant=variant, quantity=Quantity(qty))


def _make_kit(**overrides) -> Kit:
    params = dict(
        name="Breakfast set",
        price=Money.of("450.00"),
        components=[_component(), _component(WHITE_PLATE, 1)],
        max_stock=50,
    )
    params.update(overrides)
    return Kit.create(**params)


class TestKitCreation:

    def test_happy_path(self):
        kit = _make_kit(sku="  BRK-01 ")
        assert kit.id is None
        assert kit.current_stock == 0
        assert kit.sku == "BRK-01"
        assert kit.is_active
        assert not kit.is_locked

    def test_blank_sku_becomes_none(self):
        assert _make_kit(sku="   ").sku is None

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="name is required"):
            _make_kit(name=" ")

    def test_empty_components_rejected(self):
        with pytest.raises(ValidationError, match="at least one component"):
            _make_kit(components=[])

    def test_duplicate_variants_rejected(self):
        with pytest.raises(ValidationError, match="only once"):
            _make_kit(components=[_component(qty=1), _component(qty=3)])

    def test_colorless_component_rejected(self):
        with pytest.raises(MissingColorError, match="must reference glazed stock"):
            _component(VariantKey(1, 1))

    def test_negative_limits_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            _make_kit(min_stock=-1)

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError, match="cannot exceed max_stock"):
            _make_kit(min_stock=10, max_stock=5)


class TestKitStock:

    def test_add_within_max(self):
        kit = _make_kit(max_stock=10)
        kit.add_stock(10)
        assert kit.current_stock == 10
        assert kit.is_locked

    def test_add_beyond_max_rejected(self):
        kit = _make_kit(max_stock=10)
        kit.add_stock(8)
        with pytest.raises(MaxStockExceededError, match="max stock of 10"):
            kit.add_stock(3)
        assert kit.current_stock == 8

    def test_restore_ignores_max(self):
        kit = _make_kit(max_stock=5)
        kit.add_stock(5)
        kit.restore_stock(2)
        assert kit.current_stock == 7

    def test_remove_below_zero_rejected(self):
        kit = _make_kit()
        kit.add_stock(3)
        with pytest.raises(NegativeStockError, match="below 0"):
            kit.remove_stock(4)
        assert kit.current_stock == 3

    def test_requirements_scale_with_units(self):
        kit = _make_kit()
        assert kit.requirements(30) == [(BLUE_MUG, 60), (WHITE_PLATE, 30)]

    def test_below_min_flag(self):
        kit = _make_kit(min_stock=5)
        assert kit.is_below_min
        kit.add_stock(5)
        assert not kit.is_below_min


class TestKitEditing:

    def test_components_editable_without_stock(self):
        kit = _make_kit()
        kit.replace_components([_component(qty=4)])
        assert kit.components == [_component(qty=4)]

    def test_components_locked_with_stock(self):
        kit = _make_kit()
        kit.add_stock(1)
        with pytest.raises(KitLockedError, match="release them before editing"):
            kit.replace_components([_component(qty=4)])

    def test_unchanged_components_allowed_with_stock(self):
        kit = _make_kit()
        kit.add_stock(1)
        kit.replace_components([_component(), _component(WHITE_PLATE, 1)])
        assert kit.current_stock == 1

    def test_details_editable_with_stock(self):
        kit = _make_kit()
        kit.add_stock(5)
        kit.update_details("Brunch set", Money.of("500"), 0, 20, is_active=False)
        assert kit.name == "Brunch set"
        assert not kit.is_active

    def test_max_below_current_stock_rejected(self):
        kit = _make_kit()
        kit.add_stock(5)
        with pytest.raises(ValidationError, match="below the current stock"):
            kit.update_details(kit.name, kit.price, 0, 4, is_active=True)

    def test_delete_requires_zero_stock(self):
        kit = _make_kit()
        kit.assert_deletable()
        kit.add_stock(1)
        with pytest.raises(KitLockedError, match="reduce stock to 0"):
            kit.assert_deletable()


class TestAdjustmentReason:

    def test_only_manual_moves_components(self):
        assert AdjustmentReason.MANUAL.moves_components
        assert not AdjustmentReason.ORDER.moves_components
        assert not AdjustmentReason.ORDER_CANCELLED.moves_components
