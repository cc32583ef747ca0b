#!/usr/bin/env python
"""
Interactive Tak game against the search engine.

The engine keeps searching ("pondering") while waiting for your move, and
writes the game with its evaluations as PTN once the game ends.

Example usage:
    # Play as White against the untrained search
    tak-play --colour white

    # Play against a trained model with 10 seconds per move
    tak-play --model models/1700000000.model --seconds 10
"""
import argparse
import logging
import queue
import sys
import threading
import time
from typing import Optional

import numpy as np
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box

from alpha_tak.core.constants import Colour, DEFAULT_BOARD_SIZE, KOMI, PIECE_COUNTS
from alpha_tak.core.errors import EvaluatorUnavailableError, IllegalMoveError, PTNParseError
from alpha_tak.core.turn import Turn, turn_from_ptn
from alpha_tak.mcts.agent import Player
from alpha_tak.mcts.config import MCTSConfig
from alpha_tak.rl.agents import Evaluator, NetworkEvaluator, UniformEvaluator

console = Console()


def parse_args(argv=None):
    """Parse command-line arguments for game configuration."""
    parser = argparse.ArgumentParser(description="Play Tak against the search engine")

    # Engine configuration
    parser.add_argument("--model", type=str, default=None,
                        help="Path to a trained model (default: uniform evaluator)")
    parser.add_argument("--device", type=str, default=None,
                        help="Device for the model (cpu, cuda)")
    parser.add_argument("--seconds", type=float, default=5.0,
                        help="Thinking time per engine move")
    parser.add_argument("--noise-plies", type=int, default=16,
                        help="Plies during which the engine adds root noise")
    parser.add_argument("--debug-limit", type=int, default=5,
                        help="Rows of the search report shown after each engine move")

    # Game configuration
    parser.add_argument("--size", type=int, default=DEFAULT_BOARD_SIZE,
                        choices=sorted(PIECE_COUNTS),
                        help="Board size")
    parser.add_argument("--komi", type=int, default=KOMI,
                        help="Komi for Black")
    parser.add_argument("--colour", type=str, default="white",
                        choices=["white", "black"],
                        help="Colour you play")

    # Output
    parser.add_argument("--analysis", type=str, default=None,
                        help="Where to write the analysed game (default: analysis_<time>.ptn)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for the engine")
    parser.add_argument("--verbose", action="store_true",
                        help="Show search log messages")

    return parser.parse_args(argv)


def load_evaluator(args) -> Evaluator:
    """Load the evaluator, exiting if the model cannot be loaded."""
    if args.model is None:
        return UniformEvaluator(args.size)
    try:
        evaluator = NetworkEvaluator.from_checkpoint(args.model, args.device)
    except EvaluatorUnavailableError as e:
        console.print(f"[bold red]Could not load model:[/bold red] {e}")
        sys.exit(1)
    if evaluator.size != args.size:
        console.print(f"[bold red]Model plays on {evaluator.size}x{evaluator.size}, not {args.size}x{args.size}[/bold red]")
        sys.exit(1)
    return evaluator


def board_panel(player: Player) -> Panel:
    """Render the board and reserves."""
    game = player.game
    reserves = "  ".join(
        f"{colour.name.lower()}: {game.stones[colour]} stones, {game.caps[colour]} caps"
        for colour in Colour
    )
    title = f"[bold]Move {game.ply // 2 + 1}[/bold], {game.to_move.name.lower()} to move"
    return Panel(f"{game.render()}\n\n{reserves}", title=title, box=box.ROUNDED)


def report_table(player: Player, limit: Optional[int]) -> Table:
    """Render the engine's search report as a table."""
    table = Table(title="Search", box=box.SIMPLE)
    for column in ("turn", "visited", "reward", "policy", "continuation"):
        table.add_column(column, justify="left" if column in ("turn", "continuation") else "right")

    lines = player.debug(limit).splitlines()[1:]
    for line in lines:
        stats, _, continuation = line.partition("|")
        table.add_row(*stats.split(), continuation.strip())
    return table


def read_human_turn(player: Player) -> Turn:
    """
    Ask for a turn while the engine ponders on the current position.

    Input is read on a separate thread; pondering stops as soon as a line
    has been entered.
    """
    lines: "queue.Queue[str]" = queue.Queue()
    entered = threading.Event()

    def read_line():
        lines.put(console.input("[bold]your move:[/bold] "))
        entered.set()

    while True:
        entered.clear()
        threading.Thread(target=read_line, daemon=True).start()
        player.ponder(entered)
        text = lines.get()
        try:
            return turn_from_ptn(text)
        except PTNParseError as e:
            console.print(f"[red]{e}[/red]")


def play(args) -> int:
    evaluator = load_evaluator(args)
    config = MCTSConfig(time_limit=args.seconds, noise_plies=args.noise_plies)

    player = Player(
        evaluator,
        size=args.size,
        komi=args.komi,
        config=config,
        rng=np.random.default_rng(args.seed)
    )
    human = Colour.WHITE if args.colour == "white" else Colour.BLACK

    while player.is_ongoing:
        console.print(board_panel(player))

        if player.game.to_move is human:
            turn = read_human_turn(player)
            try:
                player.play_move(turn)
            except IllegalMoveError as e:
                console.print(f"[red]Illegal move: {e}[/red]")
            continue

        if player.game.ply < config.noise_plies:
            player.apply_dirichlet()
        with console.status("Thinking..."):
            player.think()
        console.print(report_table(player, args.debug_limit))

        turn = player.pick_move()
        console.print(f"[bold cyan]engine plays {turn.to_ptn()}[/bold cyan]")
        player.play_move(turn)

    console.print(board_panel(player))
    console.print(f"[bold]Game over:[/bold] {player.game.result} ({player.game.result.to_ptn()})")

    path = args.analysis or f"analysis_{int(time.time())}.ptn"
    with open(path, "w") as f:
        f.write(player.get_analysis().to_ptn())
    console.print(f"Analysis written to {path}")
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )
    try:
        return play(args)
    except KeyboardInterrupt:
        console.print("\nGame aborted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
