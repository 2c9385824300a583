"""Position engine entry points used by services, CLI and tests.

- ``compute_position(lower, upper)``: simplest rational strictly between the
  bounds (``math.inf`` as the upper bound means "no item above").
- ``is_group_healthy(positions)``: no duplicates and nothing at or below zero.
- ``heal_group(items, position_of)``: the ``(item, new_position)`` pairs that
  restore a healthy group, items given highest-priority first.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from .position_healer import DescPositionHealer
from .stern_brocot import DEFAULT_MAX_DEPTH, SternBrocotTreeSearch


def compute_position(
    lower_bound: float,
    upper_bound: float,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> float:
    """Return a position strictly between the bounds.

    Raises :class:`~money_tracker.stern_brocot.InvalidRangeError` when
    ``lower_bound >= upper_bound`` or ``lower_bound < 0``. If ``max_depth`` is
    exhausted the best-effort value is returned (a warning is logged).
    """

    return SternBrocotTreeSearch().go_between(lower_bound, upper_bound, max_depth).value


def is_group_healthy(positions: Iterable[float]) -> bool:
    values = list(positions)
    return len(set(values)) == len(values) and all(p > 0 for p in values)


def heal_group[T](
    items_in_desired_order: Sequence[T],
    position_of: Callable[[T], float],
) -> list[tuple[T, float]]:
    """Return the position updates that heal the group.

    The first item of ``items_in_desired_order`` ends up with the greatest
    position. Items already holding their healed value are left out.
    """

    # Pair items with their index so the list order is the sort key even when
    # the same object is listed twice.
    indexed = list(enumerate(items_in_desired_order))
    updates: list[tuple[T, float]] = []
    DescPositionHealer(lambda pair: position_of(pair[1])).heal_positions(
        indexed,
        lambda pair, new_position: updates.append((pair[1], new_position)),
        key=lambda pair: pair[0],
    )
    # Report in the caller's order rather than the bottom-up healing walk.
    updates.reverse()
    return updates


__all__ = [
    "compute_position",
    "heal_group",
    "is_group_healthy",
]
