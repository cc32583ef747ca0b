"""
Monte Carlo Tree Search Player for Tak.

This module provides the Player class, which keeps a game and its search
tree in lockstep: rollouts grow the tree under the current position, and
committing a turn advances both while keeping the statistics gathered
below the chosen turn. The player also records the search results it sees
as analysis and as training examples.
"""
from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Tuple, Union
import threading

import numpy as np

from alpha_tak.core.constants import Colour, DEFAULT_BOARD_SIZE, KOMI
from alpha_tak.core.game import GameResult, GameState
from alpha_tak.core.ptn import game_to_ptn
from alpha_tak.core.turn import Turn
from alpha_tak.mcts.config import MCTSConfig
from alpha_tak.mcts.node import MCTSNode
from alpha_tak.mcts.search import (
    count_nodes, rollout_for, rollout_until, run_rollouts, visit_distribution
)

if TYPE_CHECKING:
    from alpha_tak.rl.agents import Evaluator

logger = logging.getLogger(__name__)


@dataclass
class Example:
    """A training example: position features, search policy target and outcome."""
    state: np.ndarray
    policy: np.ndarray
    value: float


@dataclass
class AnalysisEntry:
    """Search summary for one played turn."""
    turn: Turn
    visits: int
    reward: float
    """Expected reward before the turn, from the mover's perspective"""
    principal_variation: List[Turn] = field(default_factory=list)

    def comment(self) -> str:
        text = f"eval {self.reward:+.3f}"
        if self.principal_variation:
            text += " pv " + " ".join(turn.to_ptn() for turn in self.principal_variation)
        return text


@dataclass
class Analysis:
    """Turns played in a game together with what the search thought of them."""
    size: int = DEFAULT_BOARD_SIZE
    komi: int = KOMI
    opening: List[Turn] = field(default_factory=list)
    entries: List[AnalysisEntry] = field(default_factory=list)
    result: Optional[GameResult] = None

    @property
    def turns(self) -> List[Turn]:
        return self.opening + [entry.turn for entry in self.entries]

    def to_ptn(self) -> str:
        """Write the game as PTN with the search summary as move comments."""
        comments = [None] * len(self.opening) + [entry.comment() for entry in self.entries]
        return game_to_ptn(
            self.turns,
            size=self.size,
            komi=self.komi,
            result=self.result,
            comments=comments
        )


class Player:
    """
    Tree search player driven by an injected evaluator.

    The player owns its game state and search tree. Several players may
    share one evaluator; each keeps its tree to itself.
    """

    def __init__(
        self,
        evaluator: 'Evaluator',
        opening: Sequence[Turn] = (),
        size: int = DEFAULT_BOARD_SIZE,
        komi: int = KOMI,
        config: Optional[MCTSConfig] = None,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Initialize a player.

        Args:
            evaluator: Source of priors and values
            opening: Turns already played before the player takes over
            size: Board size
            komi: Komi for Black
            config: Search configuration
            rng: Random generator for noise and exploratory picks
        """
        self.evaluator = evaluator
        self.config = config or MCTSConfig()
        self.rng = rng if rng is not None else np.random.default_rng()

        self.game = GameState.from_turns(opening, size=size, komi=komi)
        self.root = MCTSNode()

        self.analysis = Analysis(size=size, komi=komi, opening=list(opening))
        self._pending: List[Tuple[np.ndarray, np.ndarray, Colour]] = []

    @property
    def is_ongoing(self) -> bool:
        return self.game.result.is_ongoing

    def rollout(self, count: int) -> None:
        """Run a fixed number of rollouts on the current position."""
        run_rollouts(self.root, self.game, self.evaluator, count, self.config.exploration_weight)

    def rollout_for(self, seconds: float) -> int:
        """
        Run rollouts until a wall-clock budget is spent.

        Returns:
            Number of rollouts performed
        """
        return rollout_for(
            self.root, self.game, self.evaluator, seconds,
            self.config.rollout_batch, self.config.exploration_weight
        )

    def ponder(self, should_stop: Union[Callable[[], bool], threading.Event]) -> int:
        """
        Keep searching the current position until told to stop.

        Used while waiting for an opponent; the stop signal is checked
        between batches of rollouts.

        Args:
            should_stop: Callable returning True, or an Event that gets set

        Returns:
            Number of rollouts performed
        """
        check = should_stop.is_set if isinstance(should_stop, threading.Event) else should_stop
        return rollout_until(
            self.root, self.game, self.evaluator, check,
            self.config.rollout_batch, self.config.exploration_weight
        )

    def think(self) -> None:
        """Search the current position with the configured budget."""
        if self.config.time_limit is not None:
            self.rollout_for(self.config.time_limit)
        else:
            self.rollout(self.config.rollouts_per_move)

    def pick_move(self, explore: bool = False) -> Turn:
        """
        Choose a turn for the current position.

        Args:
            explore: Sample proportionally to visits instead of taking the best

        Returns:
            Chosen turn
        """
        if not self.is_ongoing:
            raise ValueError(f"Cannot pick a move, the game is over ({self.game.result})")
        if not self.root.is_expanded():
            self.rollout(1)
        return self.root.pick_move(explore, self.rng, self.config.temperature)

    def play_move(self, turn: Turn) -> GameResult:
        """
        Commit a turn to both the game and the search tree.

        The turn is tried on a copy first, so an illegal turn leaves the
        player exactly as it was.

        Args:
            turn: Turn played by either side

        Returns:
            The result after the turn

        Raises:
            IllegalMoveError: If the turn is not legal
        """
        next_state = self.game.clone()
        result = next_state.play(turn)

        root = self.root
        if any(child.visits > 0 for child in root.children.values()):
            self._pending.append((
                self.game.get_state_features(),
                visit_distribution(root, self.game.size),
                self.game.to_move,
            ))
        self.analysis.entries.append(AnalysisEntry(
            turn=turn,
            visits=root.visits,
            reward=root.expected_reward,
            principal_variation=root.continuation(
                self.config.debug_min_visits, self.config.debug_continuation_len
            ),
        ))

        logger.debug("ply %d: %s (%d visits)", self.game.ply, turn.to_ptn(), root.visits)
        self.game = next_state
        self.root = root.play(turn)
        return result

    def apply_dirichlet(self, alpha: Optional[float] = None, epsilon: Optional[float] = None) -> None:
        """
        Mix Dirichlet noise into the root priors.

        The root is expanded first if the search has not reached it yet.

        Args:
            alpha: Concentration of the noise (config default if None)
            epsilon: Weight of the noise (config default if None)
        """
        alpha = self.config.dirichlet_alpha if alpha is None else alpha
        epsilon = self.config.dirichlet_epsilon if epsilon is None else epsilon
        if self.is_ongoing and not self.root.is_expanded():
            self.rollout(1)
        self.root.apply_dirichlet(alpha, epsilon, self.rng)

    def debug(self, limit: Optional[int] = None) -> str:
        """Render a search report for the current position."""
        return self.root.debug(limit, self.config.debug_min_visits, self.config.debug_continuation_len)

    def get_analysis(self) -> Analysis:
        """Get the turns played so far with their search summaries."""
        self.analysis.result = self.game.result
        return self.analysis

    def get_examples(self, result: GameResult) -> List[Example]:
        """
        Convert the recorded searches into training examples.

        Args:
            result: Final result of the game

        Returns:
            One example per searched turn, valued for the side that was to move
        """
        return [
            Example(state=state, policy=policy, value=result.value_for(colour))
            for state, policy, colour in self._pending
        ]

    def tree_size(self) -> int:
        return count_nodes(self.root)

    def __str__(self) -> str:
        return f"Player(ply={self.game.ply}, root={self.root})"
