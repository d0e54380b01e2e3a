"""Order index rules for setlist entries.

A setlist's entries carry an integer ``order``. After every operation in this
module the orders of one setlist are exactly ``1..n``: no gaps, no
duplicates. The functions work on anything with a mutable ``order``
attribute, so the store can hand them ORM rows and the tests can hand them
plain objects.
"""

from typing import Hashable, Iterable, Sequence

from errors import InvalidOrderSequence, InvalidPosition, ValidationError


def is_dense(orders: Iterable[int]) -> bool:
    """True when ``orders`` is a permutation of ``1..len(orders)``."""
    orders = list(orders)
    return sorted(orders) == list(range(1, len(orders) + 1))


def append_order(entries: Sequence) -> int:
    """Order for a new entry placed after every existing one."""
    if not entries:
        return 1
    return max(e.order for e in entries) + 1


def check_position(position: int, count: int) -> int:
    """Validate an insert position against a setlist of ``count`` entries."""
    if isinstance(position, bool) or not isinstance(position, int):
        raise ValidationError("Position must be an integer", position=position)
    if position < 1 or position > count + 1:
        raise InvalidPosition(
            f"Position must be between 1 and {count + 1}",
            position=position,
            maxPosition=count + 1,
        )
    return position


def insert_at(entries: Sequence, position: int) -> int:
    """Open a slot at ``position`` and return it as the new entry's order.

    Every entry at or after ``position`` moves down by one. Nothing is
    shifted when the position is rejected.
    """
    check_position(position, len(entries))
    for entry in entries:
        if entry.order >= position:
            entry.order += 1
    return position


def close_gap(entries: Iterable, removed_order: int) -> None:
    """Pull every entry after ``removed_order`` up by one.

    ``entries`` are the survivors; the removed entry must not be among them.
    """
    for entry in entries:
        if entry.order > removed_order:
            entry.order -= 1


def orders_for(song_ids: Sequence[Hashable]) -> list[tuple[Hashable, int]]:
    """Pair each song id with its 1-based position in ``song_ids``."""
    return [(song_id, idx) for idx, song_id in enumerate(song_ids, start=1)]


def validate_sequence(pairs: Iterable[tuple[Hashable, int]]) -> list[tuple[Hashable, int]]:
    """Check ``(song_id, order)`` pairs for a bulk replace.

    Returns the pairs sorted by order.

    Raises:
        ValidationError: an order is not a positive integer
        InvalidOrderSequence: duplicate songs, or orders that are not 1..n
    """
    pairs = list(pairs)
    seen_songs = set()
    for song_id, order in pairs:
        if isinstance(order, bool) or not isinstance(order, int) or order < 1:
            raise ValidationError("Order must be a positive integer", songId=song_id, order=order)
        if song_id in seen_songs:
            raise InvalidOrderSequence("Song appears more than once", songId=song_id)
        seen_songs.add(song_id)

    orders = [order for _, order in pairs]
    if not is_dense(orders):
        raise InvalidOrderSequence(
            f"Orders must be exactly 1..{len(orders)} with no gaps or duplicates",
            orders=sorted(orders),
        )
    return sorted(pairs, key=lambda pair: pair[1])
