#!/usr/bin/env python
"""
Self-play training for Tak evaluators.

Each iteration trains a copy of the current network on recent self-play
examples, pits it against the current network, promotes it if it wins
often enough, then plays new self-play games.

Example usage:
    # Start from a fresh network
    tak-train --iterations 10

    # Continue from a saved model and examples
    tak-train --model models/1700000000.model --examples examples/examples.pkl

    # Quick smoke run on a 3x3 board
    tak-train --fast --size 3 --iterations 2
"""
import argparse
import logging
import os
import sys
from typing import Dict, List

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from alpha_tak.core.constants import PIECE_COUNTS
from alpha_tak.core.errors import EvaluatorUnavailableError
from alpha_tak.rl.agents import NetworkEvaluator
from alpha_tak.rl.config import NetworkConfig, TrainingConfig
from alpha_tak.rl.training import ExampleBuffer, training_loop


def parse_args(argv=None):
    """Parse command-line arguments for training configuration."""
    parser = argparse.ArgumentParser(description="Train Tak evaluators by self-play")

    # Training configuration
    parser.add_argument("--config", type=str, default=None,
                        help="JSON training configuration (flags below override it)")
    parser.add_argument("--fast", action="store_true",
                        help="Use small settings for a smoke run")
    parser.add_argument("--iterations", type=int, default=None,
                        help="Number of iterations (default: run forever)")
    parser.add_argument("--size", type=int, default=None, choices=sorted(PIECE_COUNTS),
                        help="Board size")
    parser.add_argument("--games", type=int, default=None,
                        help="Self-play games per iteration")
    parser.add_argument("--pit-games", type=int, default=None,
                        help="Openings played when pitting networks")
    parser.add_argument("--workers", type=int, default=None,
                        help="Games played concurrently")
    parser.add_argument("--rollouts", type=int, default=None,
                        help="Rollouts per move")

    # Network configuration
    parser.add_argument("--network-config", type=str, default=None,
                        help="JSON network configuration")
    parser.add_argument("--device", type=str, default=None,
                        help="Device to train on (cpu, cuda)")

    # Saving and loading
    parser.add_argument("--model", type=str, default=None,
                        help="Model to start from (default: a fresh network)")
    parser.add_argument("--examples", type=str, nargs="*", default=[],
                        help="Saved example files to start from")
    parser.add_argument("--model-dir", type=str, default=None,
                        help="Directory for promoted models")

    # Logging and visualization
    parser.add_argument("--use-tensorboard", action="store_true",
                        help="Use TensorBoard for logging")
    parser.add_argument("--plot", action="store_true",
                        help="Save training curves when finished")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for reproducibility")
    parser.add_argument("--verbose", action="store_true",
                        help="Print verbose output")

    return parser.parse_args(argv)


def build_config(args) -> TrainingConfig:
    """Combine the configuration file, preset and command-line overrides."""
    if args.config:
        config = TrainingConfig.load(args.config)
    elif args.fast:
        config = TrainingConfig.fast()
    else:
        config = TrainingConfig()

    overrides = {
        "board_size": args.size,
        "games_per_iteration": args.games,
        "pit_games": args.pit_games,
        "num_workers": args.workers,
        "model_dir": args.model_dir,
        "seed": args.seed,
    }
    data = config.to_dict()
    data.update({k: v for k, v in overrides.items() if v is not None})
    if args.use_tensorboard:
        data["use_tensorboard"] = True
    if args.rollouts is not None:
        data["mcts"]["rollouts_per_move"] = args.rollouts
    return TrainingConfig.from_dict(data)


def visualize_training(history: List[Dict[str, float]], save_dir: str) -> None:
    """
    Plot per-iteration training statistics.

    Args:
        history: Statistics returned by the training loop
        save_dir: Directory to save the plots
    """
    os.makedirs(save_dir, exist_ok=True)

    for key, title in [("total_loss", "Training Loss"), ("win_rate", "Candidate Win Rate"),
                       ("examples", "Buffered Examples")]:
        points = [(h["iteration"], h[key]) for h in history if key in h]
        if not points:
            continue
        iterations, values = zip(*points)
        plt.figure(figsize=(10, 6))
        plt.plot(iterations, values, marker="o")
        plt.title(title)
        plt.xlabel("Iteration")
        plt.ylabel(title)
        plt.savefig(os.path.join(save_dir, f"{key}.png"))
        plt.close()


def main(argv=None) -> int:
    """Main function."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )

    try:
        config = build_config(args)
        network_config = NetworkConfig.load(args.network_config) if args.network_config else NetworkConfig()
    except (OSError, ValueError, TypeError) as e:
        print(f"Invalid configuration: {e}")
        return 2
    if args.device is not None:
        network_config.device = args.device

    try:
        if args.model:
            evaluator = NetworkEvaluator.from_checkpoint(args.model, args.device)
        else:
            print("Generating a fresh network")
            evaluator = NetworkEvaluator(config.board_size, network_config)
    except EvaluatorUnavailableError as e:
        print(f"Could not load model: {e}")
        return 1
    if evaluator.size != config.board_size:
        print(f"Model plays on {evaluator.size}x{evaluator.size}, not {config.board_size}x{config.board_size}")
        return 1

    buffer = ExampleBuffer(config.max_examples)
    for path in args.examples:
        print(f"Loading {path}")
        loaded = ExampleBuffer(config.max_examples)
        loaded.load(path)
        buffer.extend(loaded.examples)

    print(f"Training on {config.board_size}x{config.board_size} with {len(buffer)} examples")
    try:
        evaluator, history = training_loop(evaluator, buffer.examples, config, args.iterations)
    except KeyboardInterrupt:
        print("\nTraining interrupted")
        return 130

    for stats in history:
        print(", ".join(f"{k}={v:.3f}" if isinstance(v, float) else f"{k}={v}" for k, v in stats.items()))

    if args.plot:
        visualize_training(history, config.log_dir)
        print(f"Plots saved to {config.log_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
