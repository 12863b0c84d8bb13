"""State objects shared between traversal steps and callbacks."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .node import XQuery


class SiblingCursor:
    """Position of a next()/prev() walk relative to the node it started from.

    ``offset`` counts element siblings: positive values follow the anchor,
    negative values precede it and zero is the anchor itself.
    """

    __slots__ = ("anchor", "offset")

    anchor: XQuery
    offset: int

    def __init__(self, anchor: XQuery, offset: int) -> None:
        self.anchor = anchor
        self.offset = offset

    def step(self, delta: int) -> SiblingCursor:
        return SiblingCursor(self.anchor, self.offset + delta)

    def __repr__(self) -> str:
        return f"SiblingCursor({self.anchor.path!r}, offset={self.offset})"


class Cancellation:
    """Handed to each() callbacks; call cancel() to stop the iteration."""

    __slots__ = ("cancelled",)

    cancelled: bool

    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
