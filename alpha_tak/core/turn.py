"""
Turns (moves) for the Tak game.

This module defines the two kinds of turn in Tak:
- Placing a piece (flat, standing wall or capstone) on an empty square
- Spreading a stack segment across consecutive squares in one direction

Each turn includes validation logic, the state mutation it performs, and
conversion to and from Portable Tak Notation (PTN).
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
import re
from typing import ClassVar, Dict, NamedTuple, Tuple

from alpha_tak.core.constants import (
    Colour, Direction, Shape, SHAPE_SYMBOLS, SWAP_PLIES
)
from alpha_tak.core.errors import IllegalMoveError, PTNParseError


class Square(NamedTuple):
    """A board coordinate; x is the column (file a..), y the row (rank 1..)."""
    x: int
    y: int

    def index(self, size: int) -> int:
        """Get the row-major index of this square."""
        return self.y * size + self.x

    def in_bounds(self, size: int) -> bool:
        """Check whether the square lies on a board of the given size."""
        return 0 <= self.x < size and 0 <= self.y < size

    def step(self, direction: Direction, distance: int = 1) -> 'Square':
        """Get the square `distance` steps away in `direction`."""
        dx, dy = direction.offset
        return Square(self.x + dx * distance, self.y + dy * distance)

    def to_ptn(self) -> str:
        return f"{chr(ord('a') + self.x)}{self.y + 1}"

    @classmethod
    def from_ptn(cls, text: str) -> 'Square':
        match = re.fullmatch(r"([a-h])([1-8])", text)
        if match is None:
            raise PTNParseError(f"Invalid square: {text!r}")
        return cls(ord(match.group(1)) - ord('a'), int(match.group(2)) - 1)

    @classmethod
    def from_index(cls, index: int, size: int) -> 'Square':
        return cls(index % size, index // size)


class Piece(NamedTuple):
    """A single piece inside a stack."""
    colour: Colour
    shape: Shape


class Turn(ABC):
    """
    Abstract base class for all Tak turns.

    Turns are immutable and hashable so they can key the children of a
    search node.
    """
    kind: ClassVar[str]

    square: Square

    @abstractmethod
    def validate(self, game_state) -> None:
        """
        Check that the turn is legal in the given state.

        Args:
            game_state: Current state of the game

        Raises:
            IllegalMoveError: If the turn breaks a rule
        """

    @abstractmethod
    def execute(self, game_state) -> None:
        """
        Apply the turn to the board and reserves of a state.

        Only called after `validate` succeeded; ply and side to move are
        advanced by the game state itself.

        Args:
            game_state: Current state of the game
        """

    @abstractmethod
    def to_ptn(self) -> str:
        """Get the canonical PTN for this turn."""

    @abstractmethod
    def to_dict(self) -> Dict:
        """Convert the turn to a dictionary for serialization."""

    @classmethod
    def from_ptn(cls, text: str) -> 'Turn':
        """
        Parse a turn from PTN.

        Args:
            text: PTN text such as "a1", "Cc3" or "3b2>12"

        Returns:
            Parsed turn

        Raises:
            PTNParseError: If the text is not a valid turn
        """
        return turn_from_ptn(text)

    def __str__(self) -> str:
        return self.to_ptn()


@dataclass(frozen=True)
class PlaceTurn(Turn):
    """Place a new piece from the reserve onto an empty square."""
    kind: ClassVar[str] = "place"
    square: Square
    shape: Shape = Shape.FLAT

    def validate(self, game_state) -> None:
        size = game_state.size
        if not self.square.in_bounds(size):
            raise IllegalMoveError(f"{self.square.to_ptn()} is off the board")
        if game_state.stack(self.square):
            raise IllegalMoveError(f"{self.square.to_ptn()} is not empty")

        colour = self.piece_colour(game_state)
        if game_state.ply < SWAP_PLIES:
            if self.shape is not Shape.FLAT:
                raise IllegalMoveError("only flats may be placed in the opening")
        elif self.shape is Shape.CAPSTONE:
            if game_state.caps[colour] <= 0:
                raise IllegalMoveError(f"{colour.name.lower()} has no capstones left")
            return
        if game_state.stones[colour] <= 0:
            raise IllegalMoveError(f"{colour.name.lower()} has no stones left")

    def execute(self, game_state) -> None:
        colour = self.piece_colour(game_state)
        if self.shape is Shape.CAPSTONE:
            game_state.caps[colour] -= 1
        else:
            game_state.stones[colour] -= 1
        game_state.board[self.square.index(game_state.size)] = (Piece(colour, self.shape),)

    @staticmethod
    def piece_colour(game_state) -> Colour:
        """Colour of the piece placed: the opponent's during the opening swap."""
        if game_state.ply < SWAP_PLIES:
            return game_state.to_move.next()
        return game_state.to_move

    def to_ptn(self) -> str:
        return f"{SHAPE_SYMBOLS[self.shape]}{self.square.to_ptn()}"

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "square": [self.square.x, self.square.y],
            "shape": self.shape.name,
        }


@dataclass(frozen=True)
class SpreadTurn(Turn):
    """
    Pick up part of a stack and drop it across consecutive squares.

    `drops` lists how many pieces are left on each square along the way,
    starting with the square next to the origin; their sum is the number
    of pieces carried.
    """
    kind: ClassVar[str] = "spread"
    square: Square
    direction: Direction
    drops: Tuple[int, ...] = (1,)

    @property
    def carry(self) -> int:
        return sum(self.drops)

    def validate(self, game_state) -> None:
        size = game_state.size
        origin = self.square
        if game_state.ply < SWAP_PLIES:
            raise IllegalMoveError("stacks cannot be moved in the opening")
        if not origin.in_bounds(size):
            raise IllegalMoveError(f"{origin.to_ptn()} is off the board")

        stack = game_state.stack(origin)
        if not stack:
            raise IllegalMoveError(f"{origin.to_ptn()} is empty")
        if stack[-1].colour is not game_state.to_move:
            raise IllegalMoveError(f"{origin.to_ptn()} is not controlled by the mover")

        if not self.drops or any(drop < 1 for drop in self.drops):
            raise IllegalMoveError("every square along a spread must receive a piece")
        carry = self.carry
        if carry > size:
            raise IllegalMoveError(f"cannot carry more than {size} pieces")
        if carry > len(stack):
            raise IllegalMoveError(f"{origin.to_ptn()} holds only {len(stack)} pieces")

        crushing = stack[-1].shape is Shape.CAPSTONE
        for distance in range(1, len(self.drops) + 1):
            target = origin.step(self.direction, distance)
            if not target.in_bounds(size):
                raise IllegalMoveError(f"spread from {origin.to_ptn()} leaves the board")
            target_stack = game_state.stack(target)
            if not target_stack:
                continue
            top = target_stack[-1].shape
            if top is Shape.CAPSTONE:
                raise IllegalMoveError(f"cannot spread onto the capstone at {target.to_ptn()}")
            if top is Shape.WALL:
                is_last = distance == len(self.drops)
                if not (crushing and is_last and self.drops[-1] == 1):
                    raise IllegalMoveError(
                        f"only a lone capstone can flatten the wall at {target.to_ptn()}"
                    )

    def execute(self, game_state) -> None:
        size = game_state.size
        origin_index = self.square.index(size)
        stack = game_state.board[origin_index]
        carry = self.carry

        carried = stack[-carry:]
        game_state.board[origin_index] = stack[:-carry]

        for distance, drop in enumerate(self.drops, start=1):
            target_index = self.square.step(self.direction, distance).index(size)
            target_stack = game_state.board[target_index]
            if target_stack and target_stack[-1].shape is Shape.WALL:
                # flattened by the capstone
                target_stack = target_stack[:-1] + (Piece(target_stack[-1].colour, Shape.FLAT),)
            game_state.board[target_index] = target_stack + carried[:drop]
            carried = carried[drop:]

    def to_ptn(self) -> str:
        carry = self.carry
        count = str(carry) if carry > 1 else ""
        drops = "" if len(self.drops) == 1 else "".join(str(d) for d in self.drops)
        return f"{count}{self.square.to_ptn()}{self.direction.symbol}{drops}"

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "square": [self.square.x, self.square.y],
            "direction": self.direction.name,
            "drops": list(self.drops),
        }


_PLACE_PATTERN = re.compile(r"([FSC]?)([a-h][1-8])")
_SPREAD_PATTERN = re.compile(r"([1-8]?)([a-h][1-8])([+\-<>])([1-8]*)")
_SYMBOL_DIRECTIONS = {direction.symbol: direction for direction in Direction}
_SYMBOL_SHAPES = {"": Shape.FLAT, "F": Shape.FLAT, "S": Shape.WALL, "C": Shape.CAPSTONE}


def turn_from_ptn(text: str) -> Turn:
    """
    Parse a single turn from PTN.

    Annotation marks (', ", !, ?) and the wall-crush marker (*) are ignored.

    Args:
        text: PTN text

    Returns:
        Parsed turn

    Raises:
        PTNParseError: If the text is not a valid turn
    """
    cleaned = text.strip().rstrip("'\"!?*")

    match = _PLACE_PATTERN.fullmatch(cleaned)
    if match is not None:
        return PlaceTurn(Square.from_ptn(match.group(2)), _SYMBOL_SHAPES[match.group(1)])

    match = _SPREAD_PATTERN.fullmatch(cleaned)
    if match is None:
        raise PTNParseError(f"Invalid turn: {text.strip()!r}")

    carry = int(match.group(1) or 1)
    drops = tuple(int(d) for d in match.group(4)) or (carry,)
    if sum(drops) != carry:
        raise PTNParseError(f"Drops of {text.strip()!r} do not add up to {carry}")
    return SpreadTurn(
        Square.from_ptn(match.group(2)),
        _SYMBOL_DIRECTIONS[match.group(3)],
        drops,
    )


def create_turn_from_dict(data: Dict) -> Turn:
    """
    Create a turn from its dictionary representation.

    Args:
        data: Dictionary produced by `Turn.to_dict`

    Returns:
        Turn object
    """
    square = Square(*data["square"])
    if data["kind"] == PlaceTurn.kind:
        return PlaceTurn(square, Shape[data["shape"]])
    if data["kind"] == SpreadTurn.kind:
        return SpreadTurn(square, Direction[data["direction"]], tuple(data["drops"]))
    raise ValueError(f"Unknown turn kind: {data['kind']}")
