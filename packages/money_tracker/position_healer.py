"""Repair of ordering groups whose positions collided or fell to zero.

Healing reassigns the integers ``1, 2, 3, ...`` (the right spine of the
Stern–Brocot tree) from the last item upwards, so the first item receives the
greatest position. Integers are the simplest rationals, so a healed group also
gets its full precision budget back for later fractional inserts.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from .stern_brocot import SternBrocotTreeSearch


class DescPositionHealer[T]:
    """Healer for groups displayed in descending position order."""

    def __init__(self, position_of: Callable[[T], float]) -> None:
        self._position_of = position_of

    def are_positions_healthy(self, items: Sequence[T]) -> bool:
        """Return ``True`` when positions are pairwise distinct and all above zero."""

        positions = {self._position_of(item) for item in items}
        return len(positions) == len(items) and all(p > 0 for p in positions)

    def heal_positions(
        self,
        items: Sequence[T],
        update_position: Callable[[T, float], None],
        *,
        key: Callable[[T], Any] | None = None,
    ) -> None:
        """Assign fresh positions preserving the desired order.

        Parameters
        ----------
        items:
            Items of one ordering group, in any order.
        update_position:
            Called as ``update_position(item, new_position)`` only for items
            whose position actually changes.
        key:
            Sort key of the desired order, highest-priority item first.
            Defaults to descending current position; ties keep input order.
        """

        sort_key = key if key is not None else (lambda item: -self._position_of(item))
        ordered = sorted(items, key=sort_key)

        tree = SternBrocotTreeSearch()
        for item in reversed(ordered):
            new_position = tree.value
            if new_position != self._position_of(item):
                update_position(item, new_position)
            tree.go_right()


__all__ = ["DescPositionHealer"]
