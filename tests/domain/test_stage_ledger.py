"""Unit tests for the StageLedger domain service."""

import pytest

from kiln.domain.exceptions import InsufficientStockError, MissingColorError
from kiln.domain.model.ledger import Stage, StageBalance
from kiln.domain.model.value_objects import VariantKey
from kiln.domain.service.stage_ledger import StageLedger
from tests.fakes import FakeStageBalanceRepository, FakeStore

MUG = VariantKey(1, 1)
PLATE = VariantKey(2, 2)
BLUE_MUG = VariantKey(1, 1, 1)
WHITE_MUG = VariantKey(1, 1, 2)


def _make_ledger(*balances: StageBalance) -> tuple[StageLedger, FakeStore]:
    store = FakeStore()
    repo = FakeStageBalanceRepository(store)
    for balance in balances:
        repo.save(balance)
    return StageLedger(repo), store


class TestReads:

    def test_unseen_variant_is_zero(self):
        ledger, _ = _make_ledger()
        assert ledger.get_balance(MUG, Stage.BISQUE) == 0

    def test_reads_stored_quantity(self):
        ledger, _ = _make_ledger(StageBalance(BLUE_MUG, Stage.GLAZE, quantity=12))
        assert ledger.get_balance(BLUE_MUG, Stage.GLAZE) == 12

    def test_glaze_read_requires_color(self):
        ledger, _ = _make_ledger()
        with pytest.raises(MissingColorError):
            ledger.get_balance(MUG, Stage.GLAZE)

    def test_list_hides_empty_rows_by_default(self):
        ledger, _ = _make_ledger(
            StageBalance(MUG, Stage.RAW, quantity=4),
            StageBalance(PLATE, Stage.RAW, quantity=0),
        )
        assert [b.variant for b in ledger.list_balances(Stage.RAW)] == [MUG]
        assert len(ledger.list_balances(Stage.RAW, include_empty=True)) == 2


class TestMutations:

    def test_credit_creates_row(self):
        ledger, store = _make_ledger()
        ledger.credit(MUG, Stage.RAW, 100)
        assert store.balances[(MUG, Stage.RAW)].quantity == 100

    def test_credit_then_debit(self):
        ledger, store = _make_ledger()
        ledger.credit(MUG, Stage.RAW, 100)
        ledger.debit(MUG, Stage.RAW, 90)
        assert store.balances[(MUG, Stage.RAW)].quantity == 10
        assert ledger.get_balance(MUG, Stage.RAW) == 10

    def test_debit_beyond_balance_leaves_store_untouched(self):
        ledger, store = _make_ledger(StageBalance(MUG, Stage.BISQUE, quantity=5))

        with pytest.raises(InsufficientStockError, match="need 6, have 5 available"):
            ledger.debit(MUG, Stage.BISQUE, 6)

        assert store.balances[(MUG, Stage.BISQUE)].quantity == 5

    def test_row_is_locked_once_per_ledger(self):
        ledger, store = _make_ledger()
        ledger.credit(MUG, Stage.RAW, 10)
        ledger.debit(MUG, Stage.RAW, 3)
        assert store.locked == [(MUG, Stage.RAW)]


class TestLockOrder:

    def test_locks_in_product_size_color_stage_order(self):
        ledger, store = _make_ledger()

        ledger.lock(
            [
                (WHITE_MUG, Stage.GLAZE),
                (PLATE, Stage.RAW),
                (MUG, Stage.BISQUE),
                (BLUE_MUG, Stage.GLAZE),
                (MUG, Stage.RAW),
            ]
        )

        assert store.locked == [
            (MUG, Stage.RAW),
            (MUG, Stage.BISQUE),
            (BLUE_MUG, Stage.GLAZE),
            (WHITE_MUG, Stage.GLAZE),
            (PLATE, Stage.RAW),
        ]

    def test_duplicate_entries_locked_once(self):
        ledger, store = _make_ledger()
        ledger.lock([(MUG, Stage.RAW), (MUG, Stage.RAW)])
        assert store.locked == [(MUG, Stage.RAW)]

    def test_unseen_rows_come_back_empty_and_unwritten(self):
        ledger, store = _make_ledger()
        locked = ledger.lock([(BLUE_MUG, Stage.GLAZE)])
        assert locked[(BLUE_MUG, Stage.GLAZE)].quantity == 0
        assert store.balances == {}
