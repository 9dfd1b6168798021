"""
Reordering tests.

After any move the order values are exactly 0..n-1 and the relative order
of the untouched items is preserved.
"""

import pytest

from katalog.reorder import drop_target, move, order_mapping, reorder, restore_orders
from katalog.tests.conftest import make_katas
from katalog.types import Kata


def _ids(items):
    return [item.id for item in items]


class TestMove:
    def test_two_item_swap(self):
        katas = [
            Kata(id=1, name="Heian Shodan", order=0),
            Kata(id=2, name="Heian Nidan", order=1),
        ]
        result = reorder(katas, 0, 1)
        assert [(k.id, k.order) for k in result] == [(2, 0), (1, 1)]

    def test_move_down_and_up(self):
        katas = make_katas()
        assert _ids(move(katas, 0, 2)) == [2, 3, 1]
        assert _ids(move(katas, 2, 0)) == [3, 1, 2]

    def test_same_index_is_identity(self):
        katas = make_katas()
        assert _ids(move(katas, 1, 1)) == [1, 2, 3]

    def test_input_untouched(self):
        katas = make_katas()
        reorder(katas, 0, 2)
        assert _ids(katas) == [1, 2, 3]
        assert [k.order for k in katas] == [0, 1, 2]

    def test_out_of_range(self):
        with pytest.raises(IndexError):
            move(make_katas(), 3, 0)
        with pytest.raises(IndexError):
            move(make_katas(), 0, -1)


class TestRenumber:
    def test_orders_are_dense_after_move(self):
        katas = [
            Kata(id=10, name="A", order=4),
            Kata(id=11, name="B", order=9),
            Kata(id=12, name="C", order=20),
            Kata(id=13, name="D", order=21),
        ]
        for old in range(4):
            for new in range(4):
                result = reorder(katas, old, new)
                assert sorted(k.order for k in result) == [0, 1, 2, 3]
                assert [k.order for k in result] == [0, 1, 2, 3]

    def test_inverse_move_restores_order(self):
        katas = make_katas()
        for old in range(3):
            for new in range(3):
                there = reorder(katas, old, new)
                back = reorder(there, new, old)
                assert _ids(back) == _ids(katas)

    def test_order_mapping(self):
        result = reorder(make_katas(), 2, 0)
        assert order_mapping(result) == {3: 0, 1: 1, 2: 2}


class TestDropTarget:
    def test_moving_down_subtracts_one(self):
        assert drop_target(0, 2) == 1
        assert drop_target(1, 3) == 2

    def test_moving_up_unchanged(self):
        assert drop_target(2, 0) == 0
        assert drop_target(1, 1) == 1


class TestRestoreOrders:
    def test_puts_back_previous_orders(self):
        previous = make_katas()
        moved = reorder(previous, 0, 2)
        restored = restore_orders(moved, previous)
        assert [(k.id, k.order) for k in restored] == [(1, 0), (2, 1), (3, 2)]

    def test_removed_items_stay_removed(self):
        previous = make_katas()
        moved = reorder(previous, 0, 1)
        current = [k for k in moved if k.id != 3]
        assert _ids(restore_orders(current, previous)) == [1, 2]

    def test_added_items_keep_their_order(self):
        previous = make_katas()
        moved = reorder(previous, 2, 0)
        current = [*moved, Kata(id=4, name="Jion", order=3)]
        restored = restore_orders(current, previous)
        assert [(k.id, k.order) for k in restored] == [(1, 0), (2, 1), (3, 2), (4, 3)]

    def test_current_items_untouched(self):
        previous = make_katas()
        moved = reorder(previous, 0, 2)
        restore_orders(moved, previous)
        assert [k.order for k in moved] == [0, 1, 2]
