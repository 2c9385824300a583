"""Reordering policies: turn a user intent into position writes.

Every policy works against an :class:`OrderingTransaction`, the storage seam
that reads a group snapshot and applies position updates atomically. Policies
read a snapshot, decide, and write through that transaction only, so nothing
lands when the decision fails or the transaction is abandoned.

Decision order for :func:`move_item`, after healing a target group whose
positions collide:

1. already in place: nothing is written;
2. one step away from the requested slot: the item swaps positions with its
   neighbour and no new fraction is made;
3. otherwise the simplest rational between the new neighbours is written,
   together with the new group key when the item changes groups. When the
   neighbours are too close for the search depth, the target group is
   renumbered and the renumbering goes into the same write.

Groups are shown in descending position order: "before" an item means a
greater position, the top of a group is ``+inf`` and the bottom is ``0``.
"""

from __future__ import annotations

import math
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from .logging_setup import get_logger
from .position_healer import DescPositionHealer
from .stern_brocot import DEFAULT_MAX_DEPTH, SternBrocotTreeSearch

_logger = get_logger("money_tracker.reordering")


class OrderedItem(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def position(self) -> float: ...

    @property
    def group_key(self) -> Hashable: ...


@dataclass(frozen=True, slots=True)
class PositionUpdate:
    """New position for one item; ``group_key`` is set only on a group change."""

    item_id: str
    position: float
    group_key: Hashable | None = None


class OrderingTransaction[T: OrderedItem](Protocol):
    """Snapshot reads and atomic writes within one storage transaction."""

    def read_group(self, group_key: Hashable) -> list[T]:
        """Return visible items of the group, greatest position first."""
        ...

    def apply(self, updates: Sequence[PositionUpdate]) -> None:
        """Apply all updates together or none of them."""
        ...


class MoveOutcome(StrEnum):
    SKIPPED = "skipped"
    SWAPPED = "swapped"
    MOVED = "moved"


def _index_of(
    snapshot: Sequence[OrderedItem], item: OrderedItem | None, missing: int
) -> int | None:
    """Index of ``item`` in the snapshot; ``missing`` stands for ``None``.

    Returns ``None`` for an item that is given but absent from the snapshot,
    which never matches a shortcut rule.
    """

    if item is None:
        return missing
    for index, candidate in enumerate(snapshot):
        if candidate.id == item.id:
            return index
    return None


def _bounds(
    positions: Mapping[str, float], before: OrderedItem | None, after: OrderedItem | None
) -> tuple[float, float]:
    """Search bounds from the snapshot positions, falling back to the given items."""

    lower_bound = positions.get(before.id, before.position) if before is not None else 0.0
    upper_bound = positions.get(after.id, after.position) if after is not None else math.inf
    return lower_bound, upper_bound


def _renumbered(snapshot: Sequence[OrderedItem]) -> dict[str, float]:
    """Healed positions of the whole snapshot, keeping its order."""

    rank = {item.id: index for index, item in enumerate(snapshot)}
    positions = {item.id: item.position for item in snapshot}
    DescPositionHealer(lambda item: item.position).heal_positions(
        snapshot,
        lambda item, new_position: positions.__setitem__(item.id, new_position),
        key=lambda item: rank[item.id],
    )
    return positions


def _edge_bounds(
    snapshot: Sequence[OrderedItem], positions: Mapping[str, float], *, first: bool
) -> tuple[float, float]:
    if not snapshot:
        return 0.0, math.inf
    if first:
        return positions[snapshot[0].id], math.inf
    return 0.0, positions[snapshot[-1].id]


def _position_at_edge(
    tx: OrderingTransaction, group_key: Hashable, *, first: bool, max_depth: int
) -> float:
    snapshot = tx.read_group(group_key)
    positions = {item.id: item.position for item in snapshot}
    search = SternBrocotTreeSearch().go_between(
        *_edge_bounds(snapshot, positions, first=first), max_depth
    )
    if search.exhausted:
        # The edge drifted too far from 1/1; renumber the group to get it back.
        renumbered = _renumbered(snapshot)
        updates = [
            PositionUpdate(item_id, new_position)
            for item_id, new_position in renumbered.items()
            if new_position != positions[item_id]
        ]
        tx.apply(updates)
        _logger.info(
            "Renumbered group %r to make room at the %s: updates=%d",
            group_key,
            "top" if first else "bottom",
            len(updates),
        )
        search = SternBrocotTreeSearch().go_between(
            *_edge_bounds(snapshot, renumbered, first=first), max_depth
        )
    return search.value


def position_for_first(
    tx: OrderingTransaction, group_key: Hashable, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> float:
    """Position that puts a new or reactivated item at the top of the group.

    When the top is out of search depth the group is renumbered through
    ``tx`` first, so the caller must write the returned position in the same
    transaction.
    """

    return _position_at_edge(tx, group_key, first=True, max_depth=max_depth)


def position_for_last(
    tx: OrderingTransaction, group_key: Hashable, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> float:
    """Position that puts a new or reactivated item at the bottom of the group.

    Renumbers the group through ``tx`` under the same conditions as
    :func:`position_for_first`.
    """

    return _position_at_edge(tx, group_key, first=False, max_depth=max_depth)


def place_first_in_group(
    tx: OrderingTransaction,
    item: OrderedItem,
    group_key: Hashable,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> float:
    """Move ``item`` into another group as its first item.

    The new position and group key are written in one update.
    """

    new_position = position_for_first(tx, group_key, max_depth=max_depth)
    _logger.debug(
        "Placing %s first in group %r: new_position=%r", item.id, group_key, new_position
    )
    tx.apply([PositionUpdate(item.id, new_position, group_key=group_key)])
    return new_position


def move_item[T: OrderedItem](
    tx: OrderingTransaction[T],
    item: T,
    *,
    before: T | None = None,
    after: T | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> MoveOutcome:
    """Move ``item`` so it ends up right before ``before`` and right after ``after``.

    ``before=None`` means the bottom of the group and ``after=None`` the top.
    The target group is taken from ``before``, then ``after``, then ``item``
    itself; when it differs from the item's group the group key is written
    together with the new position.
    """

    if (before is not None and before.id == item.id) or (after is not None and after.id == item.id):
        raise ValueError(f"Can't place item {item.id!r} next to itself")

    if before is not None:
        target_group = before.group_key
    elif after is not None:
        target_group = after.group_key
    else:
        target_group = item.group_key
    is_changing_group = target_group != item.group_key

    # Colliding positions would leave no room between the neighbours.
    heal_group_if_needed(tx, target_group)
    snapshot = tx.read_group(target_group)

    if not is_changing_group:
        move_index = _index_of(snapshot, item, missing=-1)
        if move_index is not None:
            # A missing "after" is the slot above the first item, a missing
            # "before" the slot below the last one.
            after_index = _index_of(snapshot, after, missing=-1)
            before_index = _index_of(snapshot, before, missing=len(snapshot))

            if before_index == move_index + 1 or after_index == move_index - 1:
                _logger.debug("Skipping move of %s: already in place", item.id)
                return MoveOutcome.SKIPPED

            if before_index == move_index + 2 or after_index == move_index - 2:
                moved = snapshot[move_index]
                neighbour = (
                    snapshot[move_index + 1]
                    if before_index == move_index + 2
                    else snapshot[move_index - 1]
                )
                _logger.debug(
                    "Swapping positions within group %r: swap=%s (%r), with=%s (%r)",
                    target_group,
                    moved.id,
                    moved.position,
                    neighbour.id,
                    neighbour.position,
                )
                tx.apply(
                    [
                        PositionUpdate(moved.id, neighbour.position),
                        PositionUpdate(neighbour.id, moved.position),
                    ]
                )
                return MoveOutcome.SWAPPED
        else:
            _logger.debug("Item %s is not in its group snapshot; using bounds only", item.id)

    positions = {candidate.id: candidate.position for candidate in snapshot}
    lower_bound, upper_bound = _bounds(positions, before, after)
    search = SternBrocotTreeSearch().go_between(lower_bound, upper_bound, max_depth)

    updates: list[PositionUpdate] = []
    if search.exhausted:
        # The neighbours are too close to separate; renumber the target group
        # and write the result together with the move.
        renumbered = _renumbered(snapshot)
        updates = [
            PositionUpdate(item_id, new_position)
            for item_id, new_position in renumbered.items()
            if item_id != item.id and new_position != positions[item_id]
        ]
        _logger.info(
            "Renumbered group %r to make room for %s: updates=%d",
            target_group,
            item.id,
            len(updates),
        )
        lower_bound, upper_bound = _bounds(renumbered, before, after)
        search = SternBrocotTreeSearch().go_between(lower_bound, upper_bound, max_depth)

    new_position = search.value
    _logger.debug(
        "Moving %s: lower=%r, upper=%r, new_position=%r, target_group=%r, changing_group=%s",
        item.id,
        lower_bound,
        upper_bound,
        new_position,
        target_group,
        is_changing_group,
    )
    updates.append(
        PositionUpdate(
            item.id,
            new_position,
            group_key=target_group if is_changing_group else None,
        )
    )
    tx.apply(updates)
    return MoveOutcome.MOVED


def heal_group_if_needed(tx: OrderingTransaction, group_key: Hashable) -> int:
    """Heal the group when its positions collide or drop to zero.

    Returns the number of updated items (``0`` for a healthy group).
    """

    items = tx.read_group(group_key)
    healer = DescPositionHealer(lambda item: item.position)
    if healer.are_positions_healthy(items):
        return 0

    _logger.debug("Healing positions within group %r", group_key)
    # The snapshot order is the desired order; colliding items keep it.
    updates = [
        PositionUpdate(item.id, new_position)
        for item, new_position in zip(items, _renumbered(items).values(), strict=True)
        if new_position != item.position
    ]
    tx.apply(updates)
    _logger.info("Healed positions within group %r: updates=%d", group_key, len(updates))
    return len(updates)


__all__ = [
    "MoveOutcome",
    "OrderedItem",
    "OrderingTransaction",
    "PositionUpdate",
    "heal_group_if_needed",
    "move_item",
    "place_first_in_group",
    "position_for_first",
    "position_for_last",
]
