"""
Alpha Tak - tree search and self-play training for the board game Tak.

This package provides a complete implementation of the Tak rules, a fixed
action space for evaluators, a Monte Carlo Tree Search player guided by an
injected evaluator, and the self-play loop that trains such evaluators.
"""

__version__ = "0.1.0"
__author__ = "Alpha Tak Team"

# Make key components available at package level
from alpha_tak.core.game import GameState, GameResult
from alpha_tak.core.turn import Turn, PlaceTurn, SpreadTurn
from alpha_tak.core.codec import MoveCodec
from alpha_tak.mcts.agent import Player

# Version info as a tuple for programmatic access
VERSION_INFO = tuple(map(int, __version__.split('.')))

# Default configuration
DEFAULT_CONFIG = {
    "board_size": 5,
    "komi": 2,
    "exploration_weight": 1.0,
    "rollouts_per_move": 1000
}
