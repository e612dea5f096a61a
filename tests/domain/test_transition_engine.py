"""Unit tests for the TransitionEngine domain service."""

import logging
from decimal import Decimal

import pytest

from kiln.domain.exceptions import InsufficientStockError, MissingColorError, ValidationError
from kiln.domain.model.ledger import Stage, StageBalance
from kiln.domain.model.value_objects import VariantKey
from kiln.domain.service.stage_ledger import StageLedger
from kiln.domain.service.transition_engine import TransitionEngine
from tests.fakes import FakeStageBalanceRepository, FakeStageTransactionRepository, FakeStore

MUG = VariantKey(1, 1)
BLUE_MUG = VariantKey(1, 1, 1)


def _make_engine(*balances: StageBalance) -> tuple[TransitionEngine, FakeStore]:
    store = FakeStore()
    repo = FakeStageBalanceRepository(store)
    for balance in balances:
        repo.save(balance)
    return TransitionEngine(StageLedger(repo), FakeStageTransactionRepository(store)), store


def _qty(store: FakeStore, variant: VariantKey, stage: Stage) -> int:
    balance = store.balances.get((variant, stage))
    return balance.quantity if balance is not None else 0


class TestRawReceipt:

    def test_credits_raw_and_logs_receipt(self):
        engine, store = _make_engine()

        entry = engine.record_raw_receipt(MUG, 100, notes="batch 7", actor="ana")

        assert _qty(store, MUG, Stage.RAW) == 100
        assert entry.id == 1
        assert entry.is_receipt
        assert entry.notes == "batch 7"
        assert store.transactions == [entry]

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_non_positive_rejected(self, quantity):
        engine, store = _make_engine()
        with pytest.raises(ValidationError, match="must be positive"):
            engine.record_raw_receipt(MUG, quantity)
        assert store.transactions == []

    def test_colored_variant_rejected(self):
        engine, _ = _make_engine()
        with pytest.raises(ValidationError, match="cannot carry an enamel color"):
            engine.record_raw_receipt(BLUE_MUG, 10)


class TestTransition:

    def test_raw_to_bisque(self):
        engine, store = _make_engine(StageBalance(MUG, Stage.RAW, quantity=100))

        entry = engine.transition(MUG, Stage.RAW, Stage.BISQUE, 90, 85)

        assert _qty(store, MUG, Stage.RAW) == 10
        assert _qty(store, MUG, Stage.BISQUE) == 85
        assert entry.loss == 5
        assert entry.loss_percentage == Decimal("5.56")

    def test_bisque_to_glaze_lands_in_color(self):
        engine, store = _make_engine(StageBalance(MUG, Stage.BISQUE, quantity=85))

        entry = engine.transition(MUG, Stage.BISQUE, Stage.GLAZE, 80, 78, color_id=1)

        assert _qty(store, MUG, Stage.BISQUE) == 5
        assert _qty(store, BLUE_MUG, Stage.GLAZE) == 78
        assert entry.color_id == 1
        assert entry.loss_percentage == Decimal("2.50")

    def test_total_loss_writes_no_destination_row(self):
        engine, store = _make_engine(StageBalance(MUG, Stage.RAW, quantity=10))

        entry = engine.transition(MUG, Stage.RAW, Stage.BISQUE, 10, 0)

        assert _qty(store, MUG, Stage.RAW) == 0
        assert (MUG, Stage.BISQUE) not in store.balances
        assert entry.loss_percentage == Decimal("100.00")

    @pytest.mark.parametrize(
        "from_stage, to_stage",
        [
            (Stage.RAW, Stage.GLAZE),
            (Stage.BISQUE, Stage.RAW),
            (Stage.GLAZE, Stage.GLAZE),
            (Stage.RAW, Stage.RAW),
        ],
    )
    def test_only_adjacent_forward_moves(self, from_stage, to_stage):
        engine, _ = _make_engine(StageBalance(MUG, Stage.RAW, quantity=10))
        with pytest.raises(ValidationError, match="advance one at a time"):
            engine.transition(MUG, from_stage, to_stage, 1, 1, color_id=1)

    def test_produced_above_deducted_rejected(self):
        engine, _ = _make_engine(StageBalance(MUG, Stage.RAW, quantity=10))
        with pytest.raises(ValidationError, match=r"Produced quantity \(6\) cannot exceed"):
            engine.transition(MUG, Stage.RAW, Stage.BISQUE, 5, 6)

    def test_zero_deducted_rejected(self):
        engine, _ = _make_engine(StageBalance(MUG, Stage.RAW, quantity=10))
        with pytest.raises(ValidationError, match="must be positive"):
            engine.transition(MUG, Stage.RAW, Stage.BISQUE, 0, 0)

    def test_stage_check_precedes_quantity_check(self):
        engine, _ = _make_engine()
        with pytest.raises(ValidationError, match="advance one at a time"):
            engine.transition(MUG, Stage.RAW, Stage.GLAZE, 5, 6)

    def test_insufficient_source_changes_nothing(self):
        engine, store = _make_engine(StageBalance(MUG, Stage.BISQUE, quantity=5))

        with pytest.raises(InsufficientStockError, match="need 8, have 5 available") as exc_info:
            engine.transition(MUG, Stage.BISQUE, Stage.GLAZE, 8, 8, color_id=1)

        assert exc_info.value.available == 5
        assert _qty(store, MUG, Stage.BISQUE) == 5
        assert (BLUE_MUG, Stage.GLAZE) not in store.balances
        assert store.transactions == []

    def test_stock_check_precedes_color_check(self):
        engine, _ = _make_engine(StageBalance(MUG, Stage.BISQUE, quantity=5))
        with pytest.raises(InsufficientStockError):
            engine.transition(MUG, Stage.BISQUE, Stage.GLAZE, 8, 8)

    def test_glaze_requires_color(self):
        engine, store = _make_engine(StageBalance(MUG, Stage.BISQUE, quantity=5))
        with pytest.raises(MissingColorError):
            engine.transition(MUG, Stage.BISQUE, Stage.GLAZE, 5, 5)
        assert _qty(store, MUG, Stage.BISQUE) == 5

    def test_color_rejected_before_glaze(self):
        engine, _ = _make_engine(StageBalance(MUG, Stage.RAW, quantity=5))
        with pytest.raises(ValidationError, match="only assigned when entering GLAZE"):
            engine.transition(MUG, Stage.RAW, Stage.BISQUE, 5, 5, color_id=1)

    def test_high_loss_is_logged(self, caplog):
        engine, _ = _make_engine(StageBalance(MUG, Stage.RAW, quantity=100))

        with caplog.at_level(logging.WARNING, logger="kiln"):
            entry = engine.transition(MUG, Stage.RAW, Stage.BISQUE, 100, 80)

        assert entry.is_high_loss
        assert "High loss" in caplog.text

    def test_loss_at_threshold_not_logged(self, caplog):
        engine, _ = _make_engine(StageBalance(MUG, Stage.RAW, quantity=100))

        with caplog.at_level(logging.WARNING, logger="kiln"):
            engine.transition(MUG, Stage.RAW, Stage.BISQUE, 100, 85)

        assert "High loss" not in caplog.text
