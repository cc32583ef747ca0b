"""
Alpha Tak Core Package

This package contains the core game logic for Tak, including:
- Game state representation and rules
- Turns and Portable Tak Notation
- The fixed-size action space used by evaluators
- Constants, enums and errors

All core components can be imported directly from this package.
"""

# Game and game state
from alpha_tak.core.game import (
    GameState, GameResult, ResultType, WinReason,
    FEATURE_PLANES, create_game
)

# Turns
from alpha_tak.core.turn import (
    Turn, PlaceTurn, SpreadTurn, Square, Piece,
    turn_from_ptn, create_turn_from_dict
)

# Action space
from alpha_tak.core.codec import (
    MoveCodec, action_space_size, encode_turn, decode_turn
)

# Game notation
from alpha_tak.core.ptn import game_to_ptn, game_from_ptn, parse_ptn

# Errors
from alpha_tak.core.errors import (
    TakError, IllegalMoveError, EncodingMismatchError,
    EvaluatorUnavailableError, PTNParseError
)

# Constants
from alpha_tak.core.constants import (
    Colour, Shape, Direction,
    PIECE_COUNTS, KOMI, DEFAULT_BOARD_SIZE
)

__all__ = [
    # Game
    'GameState', 'GameResult', 'ResultType', 'WinReason',
    'FEATURE_PLANES', 'create_game',

    # Turns
    'Turn', 'PlaceTurn', 'SpreadTurn', 'Square', 'Piece',
    'turn_from_ptn', 'create_turn_from_dict',

    # Action space
    'MoveCodec', 'action_space_size', 'encode_turn', 'decode_turn',

    # Notation
    'game_to_ptn', 'game_from_ptn', 'parse_ptn',

    # Errors
    'TakError', 'IllegalMoveError', 'EncodingMismatchError',
    'EvaluatorUnavailableError', 'PTNParseError',

    # Constants
    'Colour', 'Shape', 'Direction',
    'PIECE_COUNTS', 'KOMI', 'DEFAULT_BOARD_SIZE'
]
