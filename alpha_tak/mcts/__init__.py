"""
Monte Carlo Tree Search (MCTS) implementation for Tak.

This package provides a search tree guided by an evaluator that supplies
move priors and position values. Each rollout works by:

1. Selection: Starting from the root node, descend by PUCT score until
   reaching a node that has not been expanded or ends the game.
2. Expansion: Ask the evaluator for priors over the legal turns and a value.
3. Backup: Update visit counts and running mean rewards along the path,
   flipping the sign at every ply.

The Player keeps a game and its tree in lockstep so that statistics below
the chosen turn carry over to the next move.
"""

from alpha_tak.mcts.node import MCTSNode
from alpha_tak.mcts.agent import Analysis, AnalysisEntry, Example, Player
from alpha_tak.mcts.search import (
    run_rollouts,
    rollout_for,
    rollout_until,
    count_nodes,
    get_principal_variation,
    get_action_statistics,
    visit_distribution
)
from alpha_tak.mcts.config import MCTSConfig

# Default configuration
DEFAULT_CONFIG = MCTSConfig(
    exploration_weight=1.0,   # PUCT exploration constant
    rollouts_per_move=1000,   # Rollouts per move decision
    time_limit=None,          # Optional thinking time in seconds (None = rollout count)
    dirichlet_alpha=1.0,      # Root noise concentration
    dirichlet_epsilon=0.3     # Root noise weight
)

__all__ = [
    'Player',
    'MCTSNode',
    'MCTSConfig',
    'Analysis',
    'AnalysisEntry',
    'Example',
    'run_rollouts',
    'rollout_for',
    'rollout_until',
    'count_nodes',
    'get_principal_variation',
    'get_action_statistics',
    'visit_distribution',
    'DEFAULT_CONFIG'
]
