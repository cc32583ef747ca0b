"""
Monte Carlo Tree Search Node for Tak.

This module defines the MCTSNode class which represents a node in the search
tree. Nodes do not store positions: the caller replays turns on a working
copy of the game while descending, so a node only holds its statistics, its
prior and its children keyed by turn.

Values are always from the perspective of the player to move at the node.
"""
from __future__ import annotations
import math
from typing import TYPE_CHECKING, Dict, List, Optional

import numpy as np

from alpha_tak.core.codec import encode_turn
from alpha_tak.core.constants import DEFAULT_EXPLORATION
from alpha_tak.core.game import GameResult, GameState
from alpha_tak.core.turn import Turn

if TYPE_CHECKING:
    from alpha_tak.rl.agents import Evaluator


class MCTSNode:
    """
    A node in the Monte Carlo Tree Search.

    Each node owns its children exclusively; committing a move hands one
    child over to the caller and drops the rest.
    """

    __slots__ = ("policy", "visits", "expected_reward", "children", "result")

    def __init__(self, policy: float = 0.0):
        """
        Initialize an MCTS node.

        Args:
            policy: Prior probability of the turn leading to this node
        """
        self.policy = policy
        self.visits = 0
        self.expected_reward = 0.0
        self.children: Dict[Turn, MCTSNode] = {}
        self.result: Optional[GameResult] = None

    def is_expanded(self) -> bool:
        """Check whether the priors of this node's children have been set."""
        return bool(self.children)

    def is_terminal(self) -> bool:
        return self.result is not None and not self.result.is_ongoing

    def rollout(
        self,
        state: GameState,
        evaluator: 'Evaluator',
        exploration_weight: float = DEFAULT_EXPLORATION
    ) -> float:
        """
        Run one simulation through this node.

        The state is advanced in place along the selected path, so callers
        pass a clone of the real position.

        Args:
            state: Position at this node (consumed)
            evaluator: Source of priors and values at new nodes
            exploration_weight: PUCT exploration constant

        Returns:
            Value of the position for the player to move at this node
        """
        self.visits += 1
        if self.result is None:
            self.result = state.winner()

        if not self.result.is_ongoing:
            value = self.result.value_for(state.to_move)
        elif not self.children:
            value = self.expand(state, evaluator)
        else:
            turn = self.select(exploration_weight)
            state.play(turn)
            value = -self.children[turn].rollout(state, evaluator, exploration_weight)

        self.expected_reward += (value - self.expected_reward) / self.visits
        return value

    def select(self, exploration_weight: float = DEFAULT_EXPLORATION) -> Turn:
        """
        Select the child turn with the highest PUCT score.

        Ties go to the first child in action index order.
        """
        sqrt_visits = math.sqrt(self.visits)
        best_turn = None
        best_score = -math.inf
        for turn, child in self.children.items():
            score = (self.q_value(child)
                     + exploration_weight * child.policy * sqrt_visits / (1 + child.visits))
            if score > best_score:
                best_turn, best_score = turn, score
        return best_turn

    @staticmethod
    def q_value(child: 'MCTSNode') -> float:
        """Value of a child from this node's perspective."""
        return -child.expected_reward if child.visits > 0 else 0.0

    def expand(self, state: GameState, evaluator: 'Evaluator') -> float:
        """
        Create one child per legal turn with priors from the evaluator.

        The evaluator's output is restricted to the legal turns and
        renormalized; a degenerate output falls back to uniform priors.

        Returns:
            The evaluator's value for this position
        """
        priors, value = evaluator.evaluate(state)
        turns = state.legal_turns()
        if not turns:
            return 0.0

        legal = np.asarray([priors[encode_turn(turn, state.size)] for turn in turns], dtype=np.float64)
        total = legal.sum()
        if not np.isfinite(total) or total <= 0:
            legal = np.full(len(turns), 1.0 / len(turns))
        else:
            legal = legal / total

        self.children = {turn: MCTSNode(float(p)) for turn, p in zip(turns, legal)}
        return float(value)

    def pick_move(
        self,
        explore: bool = False,
        rng: Optional[np.random.Generator] = None,
        temperature: float = 1.0
    ) -> Turn:
        """
        Choose a turn to play from this node.

        Args:
            explore: Sample proportionally to visits instead of taking the best
            rng: Random generator used when exploring
            temperature: Temperature applied to visit counts when exploring

        Returns:
            Chosen turn
        """
        if not self.children:
            raise ValueError("Cannot pick a move from a node with no children")

        turns = list(self.children)
        if explore:
            rng = rng if rng is not None else np.random.default_rng()
            visits = np.array([self.children[t].visits for t in turns], dtype=np.float64)
            if visits.sum() > 0:
                weights = visits ** (1.0 / temperature)
            else:
                weights = np.array([self.children[t].policy for t in turns], dtype=np.float64)
            if not np.isfinite(weights).all() or weights.sum() <= 0:
                weights = np.ones(len(turns))
            return turns[rng.choice(len(turns), p=weights / weights.sum())]

        # Children are stored in action index order, so position breaks the last tie
        _, best = max(
            enumerate(turns),
            key=lambda item: (self.children[item[1]].visits, self.children[item[1]].policy, -item[0])
        )
        return best

    def play(self, turn: Turn) -> 'MCTSNode':
        """
        Commit a turn and hand over the subtree below it.

        Sibling subtrees are dropped; an unseen turn yields a fresh node.
        """
        child = self.children.pop(turn, None)
        self.children.clear()
        return child if child is not None else MCTSNode()

    def continuation(self, min_visit_count: int, depth: int) -> List[Turn]:
        """
        Follow the most visited children to build a principal variation.

        Stops at `depth` turns, at a node without children, or at an ongoing
        node visited fewer than `min_visit_count` times.
        """
        node = self
        turns: List[Turn] = []
        while depth > 0 and node.children:
            ongoing = node.result is None or node.result.is_ongoing
            if ongoing and node.visits < min_visit_count:
                break
            turn = node.pick_move()
            turns.append(turn)
            node = node.children[turn]
            depth -= 1
        return turns

    def apply_dirichlet(self, alpha: float, epsilon: float, rng: Optional[np.random.Generator] = None) -> None:
        """
        Mix Dirichlet noise into the priors of this node's children.

        Args:
            alpha: Concentration of the noise
            epsilon: Weight of the noise; 0 leaves the priors unchanged
            rng: Random generator for the noise
        """
        if not self.children:
            return
        rng = rng if rng is not None else np.random.default_rng()
        noise = rng.dirichlet([alpha] * len(self.children))
        for child, eta in zip(self.children.values(), noise):
            child.policy = (1.0 - epsilon) * child.policy + epsilon * float(eta)

    def debug(
        self,
        limit: Optional[int] = None,
        min_visit_count: int = 10,
        continuation_len: int = 8
    ) -> str:
        """
        Render a search report for this node's children.

        Children are listed by visit count, most visited first, each with
        its visits, expected reward, prior and continuation.
        """
        lines = ["turn      visited   reward   policy | continuation"]
        ranked = sorted(self.children.items(), key=lambda item: item[1].visits, reverse=True)
        if limit is not None:
            ranked = ranked[:limit]
        for turn, child in ranked:
            continuation = " ".join(
                t.to_ptn() for t in child.continuation(min_visit_count, continuation_len)
            )
            lines.append(
                f"{turn.to_ptn():<8} {child.visits:>8} {child.expected_reward:>8.4f} "
                f"{child.policy:>8.4f} | {continuation}"
            )
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return (f"MCTSNode(visits={self.visits}, "
                f"reward={self.expected_reward:.3f}, "
                f"policy={self.policy:.3f}, "
                f"children={len(self.children)})")
