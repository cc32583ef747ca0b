"""
Game state and rules for Tak.

This module defines the core game mechanics, including:
- GameResult: Outcome of a game (ongoing, won by road/flats/default, drawn)
- GameState: Complete representation of a position, legal turn generation,
  atomic turn application and exact terminal detection
- Helper functions for creating games from turn lists

The game follows the standard Tak rules with a configurable komi.
"""
from __future__ import annotations
from collections import deque
import copy
from dataclasses import dataclass, field
from enum import Enum, auto
import random
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from alpha_tak.core.codec import DIRECTIONS, compositions, encode_turn
from alpha_tak.core.constants import (
    Colour, Shape, DEFAULT_BOARD_SIZE, KOMI, MAX_BOARD_SIZE, MIN_BOARD_SIZE,
    PIECE_COUNTS, SWAP_PLIES
)
from alpha_tak.core.errors import IllegalMoveError
from alpha_tak.core.turn import Piece, PlaceTurn, SpreadTurn, Square, Turn


class ResultType(Enum):
    """Enum representing possible game results."""
    ONGOING = auto()
    WINNER = auto()
    DRAW = auto()


class WinReason(Enum):
    """How a game was won."""
    ROAD = auto()
    FLATS = auto()
    DEFAULT = auto()  # Resignation, time or disconnection


_REASON_SYMBOLS = {WinReason.ROAD: "R", WinReason.FLATS: "F", WinReason.DEFAULT: "1"}


@dataclass(frozen=True)
class GameResult:
    """Outcome of a game; `colour` and `reason` are set only for a winner."""
    type: ResultType = ResultType.ONGOING
    colour: Optional[Colour] = None
    reason: Optional[WinReason] = None

    @classmethod
    def ongoing(cls) -> 'GameResult':
        return cls()

    @classmethod
    def winner(cls, colour: Colour, reason: WinReason) -> 'GameResult':
        return cls(ResultType.WINNER, colour, reason)

    @classmethod
    def draw(cls) -> 'GameResult':
        return cls(ResultType.DRAW)

    @property
    def is_ongoing(self) -> bool:
        return self.type is ResultType.ONGOING

    def value_for(self, colour: Colour) -> float:
        """
        Score the result from one side's perspective.

        Returns:
            1.0 for a win, -1.0 for a loss, 0.0 for a draw or ongoing game
        """
        if self.type is ResultType.WINNER:
            return 1.0 if self.colour is colour else -1.0
        return 0.0

    def to_ptn(self) -> str:
        if self.type is ResultType.DRAW:
            return "1/2-1/2"
        if self.type is ResultType.WINNER:
            symbol = _REASON_SYMBOLS[self.reason]
            return f"{symbol}-0" if self.colour is Colour.WHITE else f"0-{symbol}"
        return "*"

    def __str__(self) -> str:
        if self.type is ResultType.WINNER:
            return f"{self.colour.name.lower()} wins by {self.reason.name.lower()}"
        return self.type.name.lower()


# Feature planes produced by GameState.get_state_features
STACK_FEATURE_DEPTH = 6  # pieces below the top whose colour is encoded
FEATURE_PLANES = 6 + 2 * STACK_FEATURE_DEPTH + 1 + 1 + 4 + 1


@dataclass
class GameState:
    """
    Complete representation of a Tak position.

    The board is a row-major list of stacks; each stack is a tuple of pieces
    from bottom to top, so cloning only copies the outer list.
    """
    size: int = DEFAULT_BOARD_SIZE
    komi: int = KOMI

    board: List[Tuple[Piece, ...]] = field(default_factory=list)
    stones: Dict[Colour, int] = field(default_factory=dict)
    caps: Dict[Colour, int] = field(default_factory=dict)

    ply: int = 0
    to_move: Colour = Colour.WHITE
    result: GameResult = field(default_factory=GameResult.ongoing)

    def __post_init__(self):
        """Initialize the empty board and full reserves."""
        if not MIN_BOARD_SIZE <= self.size <= MAX_BOARD_SIZE:
            raise ValueError(f"Board size must be between {MIN_BOARD_SIZE} and {MAX_BOARD_SIZE}")
        if not self.board:
            self.board = [() for _ in range(self.size * self.size)]
        stones, caps = PIECE_COUNTS[self.size]
        if not self.stones:
            self.stones = {colour: stones for colour in Colour}
        if not self.caps:
            self.caps = {colour: caps for colour in Colour}

    def stack(self, square: Square) -> Tuple[Piece, ...]:
        """Get the stack on a square, bottom first."""
        return self.board[square.index(self.size)]

    def play(self, turn: Turn) -> GameResult:
        """
        Apply a turn to the game state.

        The turn is fully validated before anything changes, so a rejected
        turn leaves the state untouched.

        Args:
            turn: Turn to play

        Returns:
            The result after the turn

        Raises:
            IllegalMoveError: If the turn is not legal
        """
        if not self.result.is_ongoing:
            raise IllegalMoveError("the game is already over")

        turn.validate(self)
        turn.execute(self)

        mover = self.to_move
        self.ply += 1
        self.to_move = mover.next()
        self.result = self._compute_result(mover)
        return self.result

    def winner(self) -> GameResult:
        """Get the cached result of the game."""
        return self.result

    def _compute_result(self, mover: Colour) -> GameResult:
        # A turn completing both roads is won by the mover
        for colour in (mover, mover.next()):
            if self.has_road(colour):
                return GameResult.winner(colour, WinReason.ROAD)

        out_of_pieces = any(self.stones[c] + self.caps[c] == 0 for c in Colour)
        if out_of_pieces or self.is_board_full():
            return self._flat_result()

        return GameResult.ongoing()

    def _flat_result(self) -> GameResult:
        counts = self.flat_counts()
        white = counts[Colour.WHITE]
        black = counts[Colour.BLACK] + self.komi
        if white > black:
            return GameResult.winner(Colour.WHITE, WinReason.FLATS)
        if black > white:
            return GameResult.winner(Colour.BLACK, WinReason.FLATS)
        return GameResult.draw()

    def flat_counts(self) -> Dict[Colour, int]:
        """Count the stacks each colour controls with a flat or capstone on top."""
        counts = {colour: 0 for colour in Colour}
        for stack in self.board:
            if stack and stack[-1].shape is not Shape.WALL:
                counts[stack[-1].colour] += 1
        return counts

    def is_board_full(self) -> bool:
        return all(self.board)

    def has_road(self, colour: Colour) -> bool:
        """
        Check whether a colour connects two opposite edges.

        Roads run through orthogonally adjacent squares topped by that
        colour's flats or capstones.
        """
        size = self.size

        def is_road(square: Square) -> bool:
            stack = self.board[square.index(size)]
            return bool(stack) and stack[-1].colour is colour and stack[-1].shape.is_road

        edges = (
            ([Square(x, 0) for x in range(size)], lambda sq: sq.y == size - 1),
            ([Square(0, y) for y in range(size)], lambda sq: sq.x == size - 1),
        )
        for starts, reached_goal in edges:
            frontier = deque(sq for sq in starts if is_road(sq))
            seen = set(frontier)
            while frontier:
                square = frontier.popleft()
                if reached_goal(square):
                    return True
                for direction in DIRECTIONS:
                    neighbour = square.step(direction)
                    if neighbour.in_bounds(size) and neighbour not in seen and is_road(neighbour):
                        seen.add(neighbour)
                        frontier.append(neighbour)
        return False

    def legal_turns(self) -> List[Turn]:
        """
        Get all legal turns for the side to move.

        Returns:
            Legal turns, ordered by action index
        """
        if not self.result.is_ongoing:
            return []

        turns: List[Turn] = []
        empty = [Square.from_index(i, self.size) for i, stack in enumerate(self.board) if not stack]

        if self.ply < SWAP_PLIES:
            return [PlaceTurn(square, Shape.FLAT) for square in empty]

        mover = self.to_move
        shapes = []
        if self.stones[mover] > 0:
            shapes.extend([Shape.FLAT, Shape.WALL])
        if self.caps[mover] > 0:
            shapes.append(Shape.CAPSTONE)
        for square in empty:
            turns.extend(PlaceTurn(square, shape) for shape in shapes)

        for index, stack in enumerate(self.board):
            if stack and stack[-1].colour is mover:
                turns.extend(self._spreads_from(Square.from_index(index, self.size), stack))

        turns.sort(key=lambda turn: encode_turn(turn, self.size))
        return turns

    def _spreads_from(self, origin: Square, stack: Tuple[Piece, ...]) -> Iterable[SpreadTurn]:
        max_carry = min(len(stack), self.size)
        crushing = stack[-1].shape is Shape.CAPSTONE

        for direction in DIRECTIONS:
            # Count open squares before the edge or an obstacle
            reach = 0
            ends_on_wall = False
            square = origin.step(direction)
            while square.in_bounds(self.size):
                target = self.stack(square)
                if target and target[-1].shape is Shape.CAPSTONE:
                    break
                if target and target[-1].shape is Shape.WALL:
                    ends_on_wall = crushing
                    break
                reach += 1
                square = square.step(direction)

            for carry in range(1, max_carry + 1):
                for drops in compositions(carry, reach):
                    yield SpreadTurn(origin, direction, drops)
                if ends_on_wall:
                    # The lone capstone lands on the wall after covering every open square
                    for prefix in compositions(carry - 1, reach):
                        if len(prefix) == reach:
                            yield SpreadTurn(origin, direction, prefix + (1,))

    def opening(self, seed: Optional[int] = None) -> List[Turn]:
        """
        Play a symmetric two-ply opening from the initial position.

        The first ply takes a random corner; the reply takes either the
        diagonally opposite or an adjacent corner.

        Args:
            seed: Seed for the opening choice

        Returns:
            The turns played
        """
        if self.ply != 0:
            raise IllegalMoveError("an opening can only be played from the initial position")

        rng = random.Random(seed)
        last = self.size - 1
        corners = [Square(0, 0), Square(0, last), Square(last, 0), Square(last, last)]
        first = rng.choice(corners)
        if rng.random() < 0.5:
            reply = Square(last - first.x, last - first.y)
        else:
            reply = Square(last - first.x, first.y)

        turns: List[Turn] = [PlaceTurn(first, Shape.FLAT), PlaceTurn(reply, Shape.FLAT)]
        for turn in turns:
            self.play(turn)
        return turns

    def clone(self) -> 'GameState':
        """
        Create an independent copy of the game state.

        Stacks are immutable tuples, so only the containers are copied.

        Returns:
            Copy of the game state
        """
        other = copy.copy(self)
        other.board = list(self.board)
        other.stones = dict(self.stones)
        other.caps = dict(self.caps)
        return other

    def get_state_features(self) -> np.ndarray:
        """
        Get feature planes representing the position for ML models.

        Planes: top piece one-hot (colour × shape), colours of the pieces
        below the top, stack height, side to move, reserves and komi.

        Returns:
            Float32 array of shape (FEATURE_PLANES, size, size)
        """
        size = self.size
        features = np.zeros((FEATURE_PLANES, size, size), dtype=np.float32)
        stones, caps = PIECE_COUNTS[size]

        for index, stack in enumerate(self.board):
            if not stack:
                continue
            y, x = divmod(index, size)
            top = stack[-1]
            features[top.colour.value * 3 + top.shape.value, y, x] = 1.0
            below = stack[-2::-1][:STACK_FEATURE_DEPTH]
            for depth, piece in enumerate(below):
                features[6 + 2 * depth + piece.colour.value, y, x] = 1.0
            features[6 + 2 * STACK_FEATURE_DEPTH, y, x] = len(stack) / (2 * size)

        offset = 6 + 2 * STACK_FEATURE_DEPTH + 1
        features[offset] = 1.0 if self.to_move is Colour.WHITE else 0.0
        for i, colour in enumerate(Colour):
            features[offset + 1 + i] = self.stones[colour] / stones
            features[offset + 3 + i] = self.caps[colour] / caps if caps else 0.0
        features[offset + 5] = self.komi / size
        return features

    def render(self) -> str:
        """
        Render the board as text, top row first.

        Pieces are listed bottom to top as W/B; a trailing S or C marks a
        standing wall or capstone on top.
        """
        cells = []
        for y in reversed(range(self.size)):
            row = []
            for x in range(self.size):
                stack = self.stack(Square(x, y))
                text = "".join("W" if p.colour is Colour.WHITE else "B" for p in stack)
                if stack and stack[-1].shape is not Shape.FLAT:
                    text += "S" if stack[-1].shape is Shape.WALL else "C"
                row.append(text or ".")
            cells.append((y + 1, row))

        width = max(len(text) for _, row in cells for text in row) + 1
        lines = [f"{rank} " + "".join(text.ljust(width) for text in row) for rank, row in cells]
        lines.append("  " + "".join(chr(ord('a') + x).ljust(width) for x in range(self.size)))
        return "\n".join(line.rstrip() for line in lines)

    def __str__(self) -> str:
        return self.render()

    @classmethod
    def from_turns(
        cls,
        turns: Iterable[Turn],
        size: int = DEFAULT_BOARD_SIZE,
        komi: int = KOMI
    ) -> 'GameState':
        """
        Create a game state by replaying turns from the initial position.

        Args:
            turns: Turns to play in order
            size: Board size
            komi: Komi for Black

        Returns:
            Resulting game state
        """
        state = cls(size=size, komi=komi)
        for turn in turns:
            state.play(turn)
        return state


def create_game(size: int = DEFAULT_BOARD_SIZE, komi: int = KOMI) -> GameState:
    """Create an empty game."""
    return GameState(size=size, komi=komi)
