from __future__ import annotations

import math

import pytest

from money_tracker.reordering import (
    MoveOutcome,
    PositionUpdate,
    heal_group_if_needed,
    move_item,
    place_first_in_group,
    position_for_first,
    position_for_last,
)
from money_tracker.stern_brocot import InvalidRangeError
from tests.helpers.memory_store import (
    FailingOrderingTransaction,
    MemoryItem,
    MemoryOrderingTransaction,
)


def _store() -> MemoryOrderingTransaction:
    """Group ``g`` shown as a, b, c, d plus group ``h`` shown as x, y."""

    return MemoryOrderingTransaction(
        [
            MemoryItem("a", "g", 4.0),
            MemoryItem("b", "g", 3.0),
            MemoryItem("c", "g", 2.0),
            MemoryItem("d", "g", 1.0),
            MemoryItem("x", "h", 5.0),
            MemoryItem("y", "h", 2.0),
        ]
    )


def _move(tx: MemoryOrderingTransaction, name: str, *, before: str | None, after: str | None):
    return move_item(
        tx,
        tx.items[name],
        before=tx.items[before] if before else None,
        after=tx.items[after] if after else None,
    )


@pytest.mark.parametrize(
    ("name", "before", "after"),
    [
        ("b", "c", "a"),
        ("b", None, "a"),
        ("b", "c", None),
        ("a", None, None),
        ("d", None, "c"),
        ("d", None, None),
    ],
)
def test_move_into_current_slot_is_skipped(name: str, before: str | None, after: str | None):
    tx = _store()

    assert _move(tx, name, before=before, after=after) is MoveOutcome.SKIPPED
    assert tx.batches == []
    assert tx.ids("g") == ["a", "b", "c", "d"]


def test_move_one_step_down_swaps_with_next() -> None:
    tx = _store()

    assert _move(tx, "b", before="d", after="c") is MoveOutcome.SWAPPED

    assert tx.items["b"].position == 2.0
    assert tx.items["c"].position == 3.0
    assert tx.ids("g") == ["a", "c", "b", "d"]
    assert tx.batches == [[PositionUpdate("b", 2.0), PositionUpdate("c", 3.0)]]


def test_move_one_step_up_swaps_with_previous() -> None:
    tx = _store()

    assert _move(tx, "c", before="b", after="a") is MoveOutcome.SWAPPED

    assert tx.ids("g") == ["a", "c", "b", "d"]
    assert len(tx.batches) == 1


def test_move_to_bottom_next_to_last_swaps() -> None:
    tx = _store()

    assert _move(tx, "c", before=None, after="d") is MoveOutcome.SWAPPED

    assert tx.items["c"].position == 1.0
    assert tx.items["d"].position == 2.0


def test_move_to_top_uses_first_position_as_lower_bound() -> None:
    tx = _store()

    assert _move(tx, "d", before="a", after=None) is MoveOutcome.MOVED

    assert tx.items["d"].position == 5.0
    assert tx.ids("g") == ["d", "a", "b", "c"]


def test_move_to_bottom_uses_zero_as_lower_bound() -> None:
    tx = _store()

    assert _move(tx, "a", before=None, after="d") is MoveOutcome.MOVED

    assert tx.items["a"].position == 0.5
    assert tx.ids("g") == ["b", "c", "d", "a"]


def test_move_between_two_items_picks_simplest_fraction() -> None:
    tx = _store()

    assert _move(tx, "a", before="d", after="c") is MoveOutcome.MOVED

    assert tx.items["a"].position == 1.5
    assert tx.ids("g") == ["b", "c", "a", "d"]
    # Only the moved item is written.
    assert tx.batches == [[PositionUpdate("a", 1.5)]]


def test_move_into_another_group_writes_group_key_with_position() -> None:
    tx = _store()

    assert _move(tx, "b", before="y", after="x") is MoveOutcome.MOVED

    assert tx.batches == [[PositionUpdate("b", 3.0, group_key="h")]]
    assert tx.ids("h") == ["x", "b", "y"]
    assert tx.ids("g") == ["a", "c", "d"]


def test_move_into_another_group_never_takes_a_shortcut() -> None:
    tx = _store()

    # "a" sits at index 0 of group "g"; indices of group "h" must not be compared.
    assert _move(tx, "a", before="x", after=None) is MoveOutcome.MOVED

    assert tx.items["a"].group_key == "h"
    assert tx.items["a"].position == 6.0


def test_neighbours_are_read_fresh_from_snapshot() -> None:
    tx = _store()
    stale_d = MemoryItem("d", "g", 0.25)

    assert move_item(tx, tx.items["a"], before=stale_d, after=tx.items["c"]) is MoveOutcome.MOVED

    assert tx.items["a"].position == 1.5


def test_item_next_to_itself_is_rejected() -> None:
    tx = _store()

    with pytest.raises(ValueError):
        _move(tx, "b", before="b", after="a")
    with pytest.raises(ValueError):
        _move(tx, "b", before=None, after="b")
    assert tx.batches == []


def test_inconsistent_neighbours_raise_invalid_range() -> None:
    tx = _store()

    with pytest.raises(InvalidRangeError):
        _move(tx, "c", before="a", after="d")
    assert tx.batches == []


def test_failed_write_leaves_group_unchanged() -> None:
    tx = FailingOrderingTransaction(_store().items.values())

    with pytest.raises(RuntimeError):
        _move(tx, "d", before="a", after=None)
    assert tx.ids("g") == ["a", "b", "c", "d"]
    assert tx.items["d"].position == 1.0


def test_edge_positions() -> None:
    tx = _store()

    assert position_for_first(tx, "g") == 5.0
    assert position_for_last(tx, "g") == 0.5
    assert position_for_first(tx, "empty") == 1.0
    assert position_for_last(tx, "empty") == 1.0
    assert position_for_first(tx, "h") == 6.0
    assert position_for_last(tx, "h") == 1.0


def test_place_first_in_empty_group() -> None:
    tx = _store()

    assert place_first_in_group(tx, tx.items["b"], "empty") == 1.0

    assert tx.items["b"].group_key == "empty"
    assert tx.ids("empty") == ["b"]
    assert tx.batches == [[PositionUpdate("b", 1.0, group_key="empty")]]


def test_place_first_in_populated_group() -> None:
    tx = _store()

    assert place_first_in_group(tx, tx.items["d"], "h") == 6.0
    assert tx.ids("h") == ["d", "x", "y"]


def test_heal_group_if_needed_repairs_collisions_and_zero() -> None:
    tx = MemoryOrderingTransaction(
        [
            MemoryItem("p", "k", 2.0),
            MemoryItem("q", "k", 2.0),
            MemoryItem("r", "k", 0.0),
        ]
    )

    assert heal_group_if_needed(tx, "k") == 2

    assert [tx.items[n].position for n in ("p", "q", "r")] == [3.0, 2.0, 1.0]
    assert tx.ids("k") == ["p", "q", "r"]
    assert len(tx.batches) == 1


def test_heal_group_if_needed_leaves_healthy_group_alone() -> None:
    tx = _store()

    assert heal_group_if_needed(tx, "g") == 0
    assert tx.batches == []


def test_move_after_heal_has_room_again() -> None:
    tx = MemoryOrderingTransaction(
        [MemoryItem("p", "k", 0.0), MemoryItem("q", "k", 0.0), MemoryItem("r", "k", 0.0)]
    )
    heal_group_if_needed(tx, "k")
    order_before = tx.ids("k")

    assert _move(tx, order_before[0], before=None, after=order_before[-1]) is MoveOutcome.MOVED

    assert tx.ids("k") == order_before[1:] + order_before[:1]
    assert all(0.0 < item.position < math.inf for item in tx.items.values())


def test_move_renumbers_group_when_neighbours_are_too_close() -> None:
    tx = MemoryOrderingTransaction(
        [
            MemoryItem("a", "g", 4.0),
            MemoryItem("b", "g", 3.0),
            MemoryItem("c", "g", 1.5),
            MemoryItem("d", "g", 1.25),
        ]
    )

    outcome = move_item(
        tx, tx.items["a"], before=tx.items["d"], after=tx.items["c"], max_depth=2
    )

    assert outcome is MoveOutcome.MOVED
    assert tx.batches == [
        [PositionUpdate("c", 2.0), PositionUpdate("d", 1.0), PositionUpdate("a", 1.5)]
    ]
    assert tx.ids("g") == ["b", "c", "a", "d"]


def test_place_first_renumbers_group_whose_top_is_out_of_depth() -> None:
    tx = MemoryOrderingTransaction([MemoryItem("a", "g", 2001.0), MemoryItem("x", "h", 1.0)])

    assert place_first_in_group(tx, tx.items["x"], "g") == 2.0

    assert tx.batches == [
        [PositionUpdate("a", 1.0)],
        [PositionUpdate("x", 2.0, group_key="g")],
    ]
    assert tx.ids("g") == ["x", "a"]
    assert tx.items["x"].position != tx.items["a"].position


def test_position_for_last_renumbers_group_whose_bottom_is_out_of_depth() -> None:
    tx = MemoryOrderingTransaction([MemoryItem("a", "g", 3.0), MemoryItem("b", "g", 1 / 2001)])

    assert position_for_last(tx, "g") == 0.5

    assert tx.batches == [[PositionUpdate("a", 2.0), PositionUpdate("b", 1.0)]]


def test_move_heals_colliding_target_group_first() -> None:
    tx = MemoryOrderingTransaction(
        [MemoryItem("a", "g", 2.0), MemoryItem("b", "g", 2.0), MemoryItem("c", "g", 1.0)]
    )

    assert _move(tx, "c", before="b", after="a") is MoveOutcome.SWAPPED

    assert tx.batches == [
        [PositionUpdate("a", 3.0)],
        [PositionUpdate("c", 2.0), PositionUpdate("b", 1.0)],
    ]
    assert tx.ids("g") == ["a", "c", "b"]
