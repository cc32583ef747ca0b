"""
Training infrastructure for Tak evaluators.

This module provides the self-play training pipeline, including:

1. Example buffer keeping the most recent self-play examples
2. Self-play games run concurrently over a worker pool
3. Pitting a candidate evaluator against the current one
4. The training loop that trains, pits, promotes and self-plays
5. Review games played by newly promoted evaluators
6. Seeding for reproducibility

Workers share evaluators read-only; each game owns its players and trees.
"""
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import pickle
import random
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union
from collections import deque

import numpy as np
from tqdm import tqdm

import torch
from torch.utils.tensorboard import SummaryWriter

from alpha_tak.core.constants import Colour, MAX_EXAMPLES
from alpha_tak.core.game import GameResult, GameState, ResultType
from alpha_tak.core.turn import PlaceTurn, Square, Turn
from alpha_tak.mcts.agent import Analysis, Example, Player
from alpha_tak.rl.agents import Evaluator
from alpha_tak.rl.config import TrainingConfig

logger = logging.getLogger(__name__)


class ExampleBuffer:
    """
    Buffer keeping the most recent training examples.

    Once full, adding examples drops the oldest ones.
    """

    def __init__(self, capacity: int = MAX_EXAMPLES):
        """
        Initialize the buffer.

        Args:
            capacity: Maximum number of examples to keep
        """
        self.capacity = capacity
        self.buffer: deque = deque(maxlen=capacity)

    def add(self, example: Example) -> None:
        self.buffer.append(example)

    def extend(self, examples: Iterable[Example]) -> None:
        self.buffer.extend(examples)

    def sample(self, batch_size: int, rng: Optional[np.random.Generator] = None) -> List[Example]:
        """
        Sample examples without replacement.

        Args:
            batch_size: Number of examples to sample
            rng: Random generator

        Returns:
            Sampled examples
        """
        rng = rng if rng is not None else np.random.default_rng()
        batch_size = min(batch_size, len(self.buffer))
        indices = rng.choice(len(self.buffer), size=batch_size, replace=False)
        return [self.buffer[i] for i in indices]

    @property
    def examples(self) -> List[Example]:
        return list(self.buffer)

    def __len__(self) -> int:
        """Get the number of examples in the buffer."""
        return len(self.buffer)

    def save(self, path: Union[str, Path]) -> None:
        """
        Save the buffer to disk.

        Args:
            path: Path to save the buffer
        """
        with open(path, 'wb') as f:
            pickle.dump(list(self.buffer), f)

    def load(self, path: Union[str, Path]) -> None:
        """
        Load examples from disk, keeping the newest ones that fit.

        Args:
            path: Path to load the buffer from
        """
        with open(path, 'rb') as f:
            self.buffer = deque(pickle.load(f), maxlen=self.capacity)


def _finish(player: Player) -> GameResult:
    # Games cut off by the ply limit count as draws
    result = player.game.result
    return GameResult.draw() if result.is_ongoing else result


def self_play_game(
    evaluator: Evaluator,
    config: TrainingConfig,
    seed: Optional[int] = None
) -> Tuple[List[Example], Analysis]:
    """
    Play one self-play game and collect its training examples.

    Root noise is applied during the first `noise_plies` plies and moves are
    sampled during the first `exploration_plies` plies.

    Args:
        evaluator: Evaluator guiding both sides
        config: Training configuration
        seed: Seed for the opening, noise and move sampling

    Returns:
        Tuple of (examples, analysis of the game)
    """
    mcts = config.mcts
    opening = GameState(size=config.board_size, komi=config.komi).opening(seed)
    player = Player(
        evaluator, opening,
        size=config.board_size, komi=config.komi,
        config=mcts, rng=np.random.default_rng(seed)
    )

    while player.is_ongoing and player.game.ply < config.max_plies:
        ply = player.game.ply
        if ply < mcts.noise_plies:
            player.apply_dirichlet()
        player.think()
        player.play_move(player.pick_move(explore=ply < mcts.exploration_plies))

    result = _finish(player)
    return player.get_examples(result), player.get_analysis()


def _seeds(count: int, seed: Optional[int]) -> List[int]:
    return [int(s) for s in np.random.default_rng(seed).integers(0, 2**31 - 1, size=count)]


def _run_pool(
    fn: Callable[[int], Any],
    seeds: List[int],
    workers: int,
    desc: str,
    progress: bool
) -> List[Any]:
    outputs = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(fn, s) for s in seeds]
        for future in tqdm(as_completed(futures), total=len(futures), desc=desc, disable=not progress):
            outputs.append(future.result())
    return outputs


def self_play(
    evaluator: Evaluator,
    config: TrainingConfig,
    games: Optional[int] = None,
    seed: Optional[int] = None,
    progress: bool = True
) -> List[Example]:
    """
    Play self-play games concurrently and gather their examples.

    Args:
        evaluator: Evaluator guiding every game (shared read-only)
        config: Training configuration
        games: Number of games (defaults to games_per_iteration)
        seed: Seed from which per-game seeds are drawn
        progress: Whether to show a progress bar

    Returns:
        Examples from all games
    """
    games = games or config.games_per_iteration
    start_time = time.time()
    outputs = _run_pool(
        lambda s: self_play_game(evaluator, config, s),
        _seeds(games, seed), config.num_workers, "Self-play", progress
    )

    examples = [example for game_examples, _ in outputs for example in game_examples]
    logger.info(
        "Self-play: %d games, %d examples in %.1fs",
        games, len(examples), time.time() - start_time
    )
    return examples


@dataclass
class PitResult:
    """Results of a candidate evaluator against the current one."""
    wins: int = 0
    draws: int = 0
    losses: int = 0

    @property
    def win_rate(self) -> float:
        """Share of decisive games won by the candidate (draws ignored)."""
        decisive = self.wins + self.losses
        return self.wins / decisive if decisive else 0.0

    @property
    def games(self) -> int:
        return self.wins + self.draws + self.losses

    def update(self, result: GameResult, colour: Colour) -> None:
        """Record a finished game played by the candidate as `colour`."""
        if result.type is ResultType.WINNER:
            if result.colour is colour:
                self.wins += 1
            else:
                self.losses += 1
        elif result.type is ResultType.DRAW:
            self.draws += 1

    def __str__(self) -> str:
        return f"+{self.wins} ={self.draws} -{self.losses} (win rate {self.win_rate:.3f})"


def pit_game(
    new: Evaluator,
    old: Evaluator,
    config: TrainingConfig,
    seed: Optional[int] = None
) -> Tuple[GameResult, GameResult]:
    """
    Play one opening twice, with the candidate taking each colour once.

    Args:
        new: Candidate evaluator
        old: Current evaluator
        config: Training configuration
        seed: Seed for the opening and move sampling

    Returns:
        Tuple of (result with the candidate as White, result with the candidate as Black)
    """
    mcts = config.mcts
    opening = GameState(size=config.board_size, komi=config.komi).opening(seed)
    rng = np.random.default_rng(seed)

    results = []
    for my_colour in Colour:
        players = {
            my_colour: Player(new, opening, config.board_size, config.komi, mcts, rng),
            my_colour.next(): Player(old, opening, config.board_size, config.komi, mcts, rng),
        }
        game = players[my_colour].game
        while game.result.is_ongoing and game.ply < config.max_plies:
            mover = players[game.to_move]
            mover.think()
            turn: Turn = mover.pick_move(explore=game.ply < mcts.exploration_plies)
            for player in players.values():
                player.play_move(turn)
            game = players[my_colour].game
        results.append(_finish(players[my_colour]))

    return results[0], results[1]


def pit(
    new: Evaluator,
    old: Evaluator,
    config: TrainingConfig,
    seed: Optional[int] = None,
    progress: bool = True
) -> PitResult:
    """
    Pit a candidate evaluator against the current one.

    Args:
        new: Candidate evaluator
        old: Current evaluator
        config: Training configuration (pit_games openings, num_workers)
        seed: Seed from which per-opening seeds are drawn
        progress: Whether to show a progress bar

    Returns:
        Results from the candidate's perspective
    """
    outputs = _run_pool(
        lambda s: pit_game(new, old, config, s),
        _seeds(config.pit_games, seed), config.num_workers, "Pit", progress
    )

    result = PitResult()
    for as_white, as_black in outputs:
        result.update(as_white, Colour.WHITE)
        result.update(as_black, Colour.BLACK)
    logger.info("Pit: %s", result)
    return result


def example_game(
    evaluator: Evaluator,
    config: TrainingConfig,
    seed: Optional[int] = None
) -> str:
    """
    Play a fully searched game for review and save it as PTN.

    White opens in the a1 corner and Black replies in one of the two far
    corners, picked at random. The search report is logged every move.

    Args:
        evaluator: Evaluator guiding both sides
        config: Training configuration
        seed: Seed for the reply corner and move sampling

    Returns:
        Path of the written PTN file
    """
    size = config.board_size
    rng = np.random.default_rng(seed)
    far = Square(size - 1, 0 if rng.random() < 0.5 else size - 1)
    opening = [PlaceTurn(Square(0, 0)), PlaceTurn(far)]
    player = Player(evaluator, opening, size=size, komi=config.komi, config=config.mcts, rng=rng)

    while player.is_ongoing and player.game.ply < config.max_plies:
        player.think()
        logger.debug(
            "Example game move %d, %s to move, ply %d\n%s",
            player.game.ply // 2 + 1, player.game.to_move.name.lower(),
            player.game.ply, player.debug()
        )
        player.play_move(player.pick_move(explore=True))

    analysis = player.get_analysis()
    analysis.result = _finish(player)
    logger.info("Example game result: %s\n%s", analysis.result, player.game.render())

    path = os.path.join(config.example_dir, f"{int(time.time())}.ptn")
    with open(path, 'w') as f:
        f.write(analysis.to_ptn())
    return path


def training_loop(
    evaluator: Evaluator,
    examples: Optional[Iterable[Example]] = None,
    config: Optional[TrainingConfig] = None,
    iterations: Optional[int] = None,
    progress: bool = True
) -> Tuple[Evaluator, List[Dict[str, float]]]:
    """
    Improve an evaluator by alternating training, pitting and self-play.

    Each iteration trains a copy on the buffered examples, pits it against
    the current evaluator and promotes (and saves) it when its win rate
    beats the threshold. A promoted evaluator also plays a review
    game saved as PTN. Fresh self-play examples are then added to the
    buffer, which keeps only the newest ones.

    Args:
        evaluator: Starting evaluator
        examples: Examples to start from
        config: Training configuration
        iterations: Number of iterations (None = run forever)
        progress: Whether to show progress bars

    Returns:
        Tuple of (final evaluator, per-iteration statistics)
    """
    config = config or TrainingConfig()
    config.create_directories()
    if config.seed is not None:
        set_seed(config.seed)

    buffer = ExampleBuffer(config.max_examples)
    buffer.extend(examples or [])

    writer = None
    if config.use_tensorboard:
        writer = SummaryWriter(log_dir=os.path.join(config.log_dir, f"alpha_tak_{time.strftime('%Y%m%d_%H%M%S')}"))

    history: List[Dict[str, float]] = []
    iteration = 0
    try:
        while iterations is None or iteration < iterations:
            iteration += 1
            seed = None if config.seed is None else config.seed + iteration
            stats: Dict[str, float] = {"iteration": iteration}

            if len(buffer) > 0:
                candidate = evaluator.copy()
                stats.update(candidate.train(buffer.examples))

                logger.info("Iteration %d: pitting candidate against current evaluator", iteration)
                results = pit(candidate, evaluator, config, seed, progress)
                stats.update(win_rate=results.win_rate, wins=results.wins,
                             draws=results.draws, losses=results.losses)

                promoted = results.win_rate > config.win_rate_threshold
                stats["promoted"] = float(promoted)
                if promoted:
                    evaluator = candidate
                    path = os.path.join(config.model_dir, f"{int(time.time())}.model")
                    evaluator.save(path)
                    logger.info("Promoted candidate, saved to %s", path)
                    logger.info("Review game saved to %s", example_game(evaluator, config, seed))

            new_examples = self_play(evaluator, config, seed=seed, progress=progress)
            buffer.extend(new_examples)
            buffer.save(os.path.join(config.example_dir, "examples.pkl"))
            stats["examples"] = len(buffer)
            history.append(stats)

            if writer is not None:
                for key, value in stats.items():
                    if key != "iteration":
                        writer.add_scalar(f"train/{key}", value, iteration)
    finally:
        if writer is not None:
            writer.close()

    return evaluator, history


def set_seed(seed: int) -> None:
    """
    Set random seed for reproducibility.

    Args:
        seed: Random seed
    """
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    if torch.cuda.is_available():
        torch.cuda.manual_seed(seed)
        torch.cuda.manual_seed_all(seed)
        torch.backends.cudnn.deterministic = True
        torch.backends.cudnn.benchmark = False
