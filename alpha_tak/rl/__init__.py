"""
Reinforcement Learning package for Alpha Tak.

This package provides the evaluators that guide the tree search and the
self-play training infrastructure around them. It includes:

1. Evaluators (uniform stub and torch network)
2. The policy and value network
3. Example buffer, self-play and pitting over a worker pool
4. The training loop and seeding

Evaluators are injected into mcts.Player; the search itself never depends
on this package.
"""

# Evaluators
from alpha_tak.rl.agents import Evaluator, UniformEvaluator, NetworkEvaluator
from alpha_tak.rl.models import TakNetwork, MLP
from alpha_tak.rl.training import (
    ExampleBuffer, PitResult,
    self_play_game, self_play,
    pit_game, pit,
    training_loop, set_seed
)
from alpha_tak.rl.config import NetworkConfig, TrainingConfig

# Default configurations
DEFAULT_NETWORK_CONFIG = NetworkConfig()
DEFAULT_TRAINING_CONFIG = TrainingConfig()


def create_evaluator(size, model_path=None, config=None):
    """Create a network evaluator, loading weights when a path is given."""
    if model_path is not None:
        return NetworkEvaluator.from_checkpoint(model_path, config.device if config else None)
    return NetworkEvaluator(size, config or DEFAULT_NETWORK_CONFIG)


__all__ = [
    # Evaluators
    'Evaluator', 'UniformEvaluator', 'NetworkEvaluator',

    # Models
    'TakNetwork', 'MLP',

    # Training
    'ExampleBuffer', 'PitResult', 'self_play_game', 'self_play',
    'pit_game', 'pit', 'training_loop', 'set_seed',

    # Configuration
    'NetworkConfig', 'TrainingConfig',
    'DEFAULT_NETWORK_CONFIG', 'DEFAULT_TRAINING_CONFIG',

    # Factory functions
    'create_evaluator'
]
