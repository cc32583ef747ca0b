"""
Monte Carlo Tree Search loops and tree statistics for Tak.

Each rollout performs the three phases on a fresh copy of the position:
1. Selection: Descend by PUCT score until an unexpanded or terminal node
2. Expansion: Ask the evaluator for priors and a value at the new node
3. Backup: Update visit counts and running means on the way back up

The helpers here drive rollouts for a fixed count or until a deadline and
summarize a searched tree for analysis.
"""
from __future__ import annotations
import logging
import time
from typing import TYPE_CHECKING, Callable, Dict, List, Tuple

import numpy as np

from alpha_tak.core.codec import action_space_size, encode_turn
from alpha_tak.core.constants import DEFAULT_EXPLORATION
from alpha_tak.core.game import GameState
from alpha_tak.core.turn import Turn
from alpha_tak.mcts.node import MCTSNode

if TYPE_CHECKING:
    from alpha_tak.rl.agents import Evaluator

logger = logging.getLogger(__name__)


def run_rollouts(
    node: MCTSNode,
    state: GameState,
    evaluator: 'Evaluator',
    count: int,
    exploration_weight: float = DEFAULT_EXPLORATION
) -> None:
    """
    Run a fixed number of rollouts from a node.

    Args:
        node: Root of the search
        state: Position at the root; left untouched
        evaluator: Source of priors and values
        count: Number of rollouts
        exploration_weight: PUCT exploration constant
    """
    for _ in range(count):
        node.rollout(state.clone(), evaluator, exploration_weight)


def rollout_until(
    node: MCTSNode,
    state: GameState,
    evaluator: 'Evaluator',
    should_stop: Callable[[], bool],
    batch: int = 100,
    exploration_weight: float = DEFAULT_EXPLORATION
) -> int:
    """
    Run rollouts in batches until a stop condition holds.

    The condition is only checked between batches, so a rollout is never
    interrupted halfway.

    Args:
        node: Root of the search
        state: Position at the root; left untouched
        evaluator: Source of priors and values
        should_stop: Callable returning True once searching should end
        batch: Rollouts run between checks
        exploration_weight: PUCT exploration constant

    Returns:
        Number of rollouts performed
    """
    performed = 0
    while not should_stop():
        run_rollouts(node, state, evaluator, batch, exploration_weight)
        performed += batch
    return performed


def rollout_for(
    node: MCTSNode,
    state: GameState,
    evaluator: 'Evaluator',
    seconds: float,
    batch: int = 100,
    exploration_weight: float = DEFAULT_EXPLORATION
) -> int:
    """
    Run rollouts in batches until a wall-clock budget is spent.

    Returns:
        Number of rollouts performed
    """
    start_time = time.time()
    performed = rollout_until(
        node, state, evaluator,
        lambda: time.time() - start_time >= seconds,
        batch, exploration_weight
    )
    elapsed = time.time() - start_time
    logger.debug("%d rollouts in %.2fs (%.0f/s)", performed, elapsed, performed / max(elapsed, 1e-3))
    return performed


def count_nodes(node: MCTSNode) -> int:
    """
    Count the total number of nodes in the tree.

    Args:
        node: Root node of the tree

    Returns:
        Total number of nodes
    """
    count = 0
    stack = [node]
    while stack:
        current = stack.pop()
        count += 1
        stack.extend(current.children.values())
    return count


def get_principal_variation(root: MCTSNode, max_depth: int = 10) -> List[Tuple[Turn, float]]:
    """
    Get the principal variation (most visited path) from the root.

    This is useful for analysis and debugging.

    Args:
        root: Root node of the search tree
        max_depth: Maximum depth to explore

    Returns:
        List of (turn, value) pairs, each value from the perspective of the
        player making that turn
    """
    result = []
    current = root
    while current.children and len(result) < max_depth:
        turn = current.pick_move()
        child = current.children[turn]
        if child.visits == 0:
            break
        result.append((turn, -child.expected_reward))
        current = child
    return result


def get_action_statistics(root: MCTSNode) -> Dict[str, Dict[str, float]]:
    """
    Get statistics for all turns from the root.

    Args:
        root: Root node of the search tree

    Returns:
        Dictionary mapping turn PTN to statistics
    """
    return {
        turn.to_ptn(): {
            "visits": child.visits,
            "value": MCTSNode.q_value(child),
            "policy": child.policy,
        }
        for turn, child in root.children.items()
    }


def visit_distribution(node: MCTSNode, size: int) -> np.ndarray:
    """
    Get the visit counts of a node's children as a distribution over the action space.

    Args:
        node: Searched node
        size: Board size

    Returns:
        Float32 array of length A(size) summing to 1, or all zeros when no
        child has been visited
    """
    distribution = np.zeros(action_space_size(size), dtype=np.float32)
    for turn, child in node.children.items():
        distribution[encode_turn(turn, size)] = child.visits
    total = distribution.sum()
    if total > 0:
        distribution /= total
    return distribution
