"""Binary search over the Stern–Brocot tree of positive rationals.

Right is for bigger numbers, left is for smaller ones. Starting from ``1/1``
and steering towards an open interval, the search stops at the simplest
fraction (smallest numerator and denominator) lying strictly inside it. That
keeps fractional positions short when items are repeatedly inserted at the
same spot, unlike arithmetic bisection which halves the precision every time.

See https://en.wikipedia.org/wiki/Stern%E2%80%93Brocot_tree and
https://begriffs.com/posts/2018-03-20-user-defined-order.html
"""

from __future__ import annotations

import math

from .logging_setup import get_logger

_logger = get_logger("money_tracker.stern_brocot")

DEFAULT_MAX_DEPTH = 2000


class InvalidRangeError(ValueError):
    """Raised when search bounds are inverted, empty or negative."""


class SternBrocotTreeSearch:
    """Stateful walk down the tree; create a fresh instance per search.

    Moves return the instance so calls can be chained::

        SternBrocotTreeSearch().go_between(15 / 16, 1.0).value  # 16/17
    """

    __slots__ = (
        "numerator",
        "denominator",
        "depth",
        "exhausted",
        "_left_n",
        "_left_d",
        "_right_n",
        "_right_d",
    )

    def __init__(self) -> None:
        self.numerator = 1
        self.denominator = 1
        self.depth = 0
        # Set by go_between when max_depth stops the walk outside the bounds.
        self.exhausted = False
        # Closest ancestors: 0/1 on the left, 1/0 (+inf) on the right.
        self._left_n, self._left_d = 0, 1
        self._right_n, self._right_d = 1, 0

    @property
    def value(self) -> float:
        return self.numerator / self.denominator

    def go_right(self) -> SternBrocotTreeSearch:
        """Descend towards bigger numbers."""

        self._left_n, self._left_d = self.numerator, self.denominator
        self.numerator += self._right_n
        self.denominator += self._right_d
        self.depth += 1
        return self

    def go_left(self) -> SternBrocotTreeSearch:
        """Descend towards smaller numbers."""

        self._right_n, self._right_d = self.numerator, self.denominator
        self.numerator += self._left_n
        self.denominator += self._left_d
        self.depth += 1
        return self

    def go_between(
        self,
        lower_bound: float,
        upper_bound: float,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> SternBrocotTreeSearch:
        """Walk to the fraction lying strictly within the bounds.

        ``lower_bound`` may be ``0.0`` (the bottom of a list) and
        ``upper_bound`` may be ``math.inf`` (the top). When ``max_depth`` is
        reached first the walk stops where it is: the current value is a best
        effort that may violate the bounds, and ``exhausted`` is set.
        """

        if math.isnan(lower_bound) or math.isnan(upper_bound) or not lower_bound < upper_bound:
            raise InvalidRangeError(
                f"Lower bound must be smaller than the upper one: {lower_bound} >= {upper_bound}"
            )
        if lower_bound < 0.0:
            raise InvalidRangeError(f"Lower bound can't be smaller than 0: {lower_bound}")

        while not (lower_bound < self.value < upper_bound):
            if self.depth >= max_depth:
                self.exhausted = True
                _logger.warning(
                    "Search exhausted at depth %d without fitting (%r, %r); using %s",
                    self.depth,
                    lower_bound,
                    upper_bound,
                    self,
                )
                break
            if self.value <= lower_bound:
                self.go_right()
            else:
                self.go_left()
        return self

    def __repr__(self) -> str:
        return (
            f"SternBrocotTreeSearch({self.numerator}/{self.denominator}, "
            f"{self.value}, depth={self.depth})"
        )


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "InvalidRangeError",
    "SternBrocotTreeSearch",
]
