"""
Constants for the Tak game.

This module defines the game constants used throughout the Tak implementation,
including piece colours and shapes, movement directions, board sizes and the
piece allotments each side starts with.
"""
from enum import Enum
from typing import Dict, Final, Tuple


class Colour(Enum):
    """Enum representing the two sides in Tak."""
    WHITE = 0
    BLACK = 1

    def next(self) -> 'Colour':
        """Get the opposing colour."""
        return Colour.BLACK if self is Colour.WHITE else Colour.WHITE


class Shape(Enum):
    """Enum representing the three piece shapes."""
    FLAT = 0
    WALL = 1  # Standing stone
    CAPSTONE = 2

    @property
    def is_road(self) -> bool:
        """Whether a piece of this shape on top of a stack counts for roads."""
        return self is not Shape.WALL


class Direction(Enum):
    """Enum representing the four spread directions."""
    UP = 0
    DOWN = 1
    RIGHT = 2
    LEFT = 3

    @property
    def offset(self) -> Tuple[int, int]:
        """Get the (dx, dy) step for this direction."""
        return DIRECTION_OFFSETS[self]

    @property
    def symbol(self) -> str:
        """Get the PTN symbol for this direction."""
        return DIRECTION_SYMBOLS[self]


DIRECTION_OFFSETS: Final[Dict[Direction, Tuple[int, int]]] = {
    Direction.UP: (0, 1),
    Direction.DOWN: (0, -1),
    Direction.RIGHT: (1, 0),
    Direction.LEFT: (-1, 0),
}

DIRECTION_SYMBOLS: Final[Dict[Direction, str]] = {
    Direction.UP: "+",
    Direction.DOWN: "-",
    Direction.RIGHT: ">",
    Direction.LEFT: "<",
}

SHAPE_SYMBOLS: Final[Dict[Shape, str]] = {
    Shape.FLAT: "",
    Shape.WALL: "S",
    Shape.CAPSTONE: "C",
}

# Board sizes
MIN_BOARD_SIZE: Final[int] = 3
MAX_BOARD_SIZE: Final[int] = 8
DEFAULT_BOARD_SIZE: Final[int] = 5

# Starting (stones, capstones) per side, by board size
PIECE_COUNTS: Final[Dict[int, Tuple[int, int]]] = {
    3: (10, 0),
    4: (15, 0),
    5: (21, 1),
    6: (30, 1),
    7: (40, 2),
    8: (50, 2),
}

# Flats added to Black's count when the game is decided on flats
KOMI: Final[int] = 2

# Opening plies in which each side places an opponent flat
SWAP_PLIES: Final[int] = 2

# AI and search settings
DEFAULT_EXPLORATION: Final[float] = 1.0  # PUCT exploration constant
DEFAULT_ROLLOUTS_PER_MOVE: Final[int] = 1000
MAX_EXAMPLES: Final[int] = 250_000
WIN_RATE_THRESHOLD: Final[float] = 0.55
