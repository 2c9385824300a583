"""Public interface for the ``money_tracker`` package.

The ordering engine (fractional positions, healing and reordering policies)
is re-exported here; account/category services live in
``money_tracker.accounts`` and ``money_tracker.categories`` and need the
``db`` library.
"""

from .position_healer import DescPositionHealer
from .positions import compute_position, heal_group, is_group_healthy
from .reordering import (
    MoveOutcome,
    OrderingTransaction,
    PositionUpdate,
    heal_group_if_needed,
    move_item,
    place_first_in_group,
    position_for_first,
    position_for_last,
)
from .stern_brocot import DEFAULT_MAX_DEPTH, InvalidRangeError, SternBrocotTreeSearch

__all__ = [
    # Engine
    "compute_position",
    "is_group_healthy",
    "heal_group",
    "SternBrocotTreeSearch",
    "DescPositionHealer",
    "InvalidRangeError",
    "DEFAULT_MAX_DEPTH",
    # Policies
    "MoveOutcome",
    "OrderingTransaction",
    "PositionUpdate",
    "heal_group_if_needed",
    "move_item",
    "place_first_in_group",
    "position_for_first",
    "position_for_last",
]
