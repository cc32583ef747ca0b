"""
Fixed-size action space for Tak turns.

Every turn on an N×N board maps to a unique index in [0, A(N)), independent
of the board contents, so a flat evaluator output can be masked against the
legal turns of any position:

- Placements: square × shape, 3·N² indices
- Spreads: origin square × direction × drop pattern, where a drop pattern is
  any composition of a carry in 1..N into at most N-1 positive parts

A(N) = 3·N² + 4·N²·(2^N - 2)
"""
from __future__ import annotations
from functools import lru_cache
from typing import Dict, List, Tuple

from alpha_tak.core.constants import Direction, MAX_BOARD_SIZE, MIN_BOARD_SIZE, Shape
from alpha_tak.core.errors import EncodingMismatchError
from alpha_tak.core.turn import PlaceTurn, SpreadTurn, Square, Turn

SHAPES: Tuple[Shape, ...] = (Shape.FLAT, Shape.WALL, Shape.CAPSTONE)
DIRECTIONS: Tuple[Direction, ...] = (Direction.UP, Direction.DOWN, Direction.RIGHT, Direction.LEFT)


def compositions(total: int, max_parts: int) -> List[Tuple[int, ...]]:
    """All ordered ways to split `total` into at most `max_parts` positive parts."""
    if total == 0:
        return [()]
    if max_parts == 0:
        return []
    result = []
    for first in range(1, total + 1):
        for rest in compositions(total - first, max_parts - 1):
            result.append((first,) + rest)
    return result


@lru_cache(maxsize=None)
def drop_patterns(size: int) -> Tuple[Tuple[int, ...], ...]:
    """
    Get every drop pattern representable on a board of the given size.

    Patterns are ordered by carry, then lexicographically.
    """
    _check_size(size)
    patterns: List[Tuple[int, ...]] = []
    for carry in range(1, size + 1):
        patterns.extend(compositions(carry, size - 1))
    return tuple(patterns)


@lru_cache(maxsize=None)
def _pattern_indices(size: int) -> Dict[Tuple[int, ...], int]:
    return {pattern: i for i, pattern in enumerate(drop_patterns(size))}


def action_space_size(size: int) -> int:
    """Get A(N), the number of indices in the action space."""
    squares = size * size
    return squares * len(SHAPES) + squares * len(DIRECTIONS) * len(drop_patterns(size))


def encode_turn(turn: Turn, size: int) -> int:
    """
    Map a turn to its action index.

    Args:
        turn: Turn to encode
        size: Board size

    Returns:
        Index in [0, A(size))

    Raises:
        EncodingMismatchError: If the turn has no index on this board size
    """
    _check_size(size)
    if not turn.square.in_bounds(size):
        raise EncodingMismatchError(f"{turn} is outside a {size}x{size} board")
    square_index = turn.square.index(size)

    if isinstance(turn, PlaceTurn):
        return square_index * len(SHAPES) + SHAPES.index(turn.shape)

    if isinstance(turn, SpreadTurn):
        pattern_index = _pattern_indices(size).get(tuple(turn.drops))
        if pattern_index is None:
            raise EncodingMismatchError(f"{turn} has no drop pattern on a {size}x{size} board")
        offset = size * size * len(SHAPES)
        slot = square_index * len(DIRECTIONS) + DIRECTIONS.index(turn.direction)
        return offset + slot * len(drop_patterns(size)) + pattern_index

    raise EncodingMismatchError(f"Unknown turn type: {type(turn).__name__}")


def decode_turn(index: int, size: int) -> Turn:
    """
    Map an action index back to its turn.

    Args:
        index: Action index
        size: Board size

    Returns:
        The turn with that index

    Raises:
        EncodingMismatchError: If the index is outside the action space
    """
    if not 0 <= index < action_space_size(size):
        raise EncodingMismatchError(f"Index {index} is outside the action space of size {size}")

    place_block = size * size * len(SHAPES)
    if index < place_block:
        square_index, shape_index = divmod(index, len(SHAPES))
        return PlaceTurn(Square.from_index(square_index, size), SHAPES[shape_index])

    patterns = drop_patterns(size)
    slot, pattern_index = divmod(index - place_block, len(patterns))
    square_index, direction_index = divmod(slot, len(DIRECTIONS))
    return SpreadTurn(
        Square.from_index(square_index, size),
        DIRECTIONS[direction_index],
        patterns[pattern_index],
    )


def _check_size(size: int) -> None:
    if not MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE:
        raise EncodingMismatchError(f"Unsupported board size: {size}")


class MoveCodec:
    """
    Stateless bijection between turns and action indices for one board size.

    This is a thin convenience wrapper around the module-level functions.
    """

    def __init__(self, size: int):
        _check_size(size)
        self.size = size
        self.action_size = action_space_size(size)

    def encode(self, turn: Turn) -> int:
        return encode_turn(turn, self.size)

    def decode(self, index: int) -> Turn:
        return decode_turn(index, self.size)

    def __len__(self) -> int:
        return self.action_size

    def __repr__(self) -> str:
        return f"MoveCodec(size={self.size}, actions={self.action_size})"
