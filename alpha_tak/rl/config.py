"""
Configuration classes for the evaluator network and the training loop.

This module provides dataclasses for configuring the network architecture,
its optimizer and the self-play training process. Each configuration class
includes validation and sensible defaults.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Union
import json
import math
import os
from pathlib import Path

from alpha_tak.core.constants import (
    DEFAULT_BOARD_SIZE, KOMI, MAX_BOARD_SIZE, MAX_EXAMPLES, MIN_BOARD_SIZE,
    WIN_RATE_THRESHOLD
)
from alpha_tak.mcts.config import MCTSConfig


def _save_json(data: Dict[str, Any], path: Union[str, Path]) -> None:
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


def _load_json(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path, 'r') as f:
        return json.load(f)


@dataclass
class NetworkConfig:
    """
    Configuration for the evaluator network and its optimizer.

    This class defines parameters for the shared trunk and the policy and
    value heads.
    """
    # Network architecture
    conv_channels: List[int] = field(default_factory=lambda: [64, 64])
    """Channels of the convolutional stem"""

    hidden_sizes: List[int] = field(default_factory=lambda: [256, 128])
    """Sizes of hidden layers in the shared trunk"""

    activation: str = "relu"
    """Activation function (relu, tanh, leaky_relu, elu, selu)"""

    dropout_rate: float = 0.0
    """Dropout rate (0 = no dropout)"""

    # Initialization
    init_type: str = "orthogonal"
    """Weight initialization method (orthogonal, xavier, kaiming, normal, uniform)"""

    gain: float = math.sqrt(2)
    """Gain factor for weight initialization"""

    # Optimization
    learning_rate: float = 1e-3
    """Learning rate"""

    weight_decay: float = 1e-4
    """L2 penalty"""

    batch_size: int = 128
    """Batch size for optimization"""

    epochs: int = 4
    """Passes over the examples per training call"""

    value_loss_coef: float = 1.0
    """Weight of the value loss against the policy loss"""

    max_grad_norm: float = 1.0
    """Maximum gradient norm for clipping"""

    device: str = "cpu"
    """Device to run the model on (cpu or cuda)"""

    def __post_init__(self):
        """Validate configuration parameters."""
        if not self.hidden_sizes:
            raise ValueError("hidden_sizes must not be empty")

        if any(c <= 0 for c in self.conv_channels):
            raise ValueError("conv_channels must be positive")

        if self.activation not in ["relu", "tanh", "leaky_relu", "elu", "selu"]:
            raise ValueError("activation must be one of: relu, tanh, leaky_relu, elu, selu")

        if self.dropout_rate < 0 or self.dropout_rate >= 1:
            raise ValueError("dropout_rate must be in [0, 1)")

        if self.init_type not in ["orthogonal", "xavier", "kaiming", "normal", "uniform"]:
            raise ValueError("init_type must be one of: orthogonal, xavier, kaiming, normal, uniform")

        if self.learning_rate <= 0:
            raise ValueError("learning_rate must be positive")

        if self.batch_size <= 0 or self.epochs <= 0:
            raise ValueError("batch_size and epochs must be positive")

        if self.max_grad_norm <= 0:
            raise ValueError("max_grad_norm must be positive")

        if self.device not in ["cpu", "cuda"]:
            if not self.device.startswith("cuda:"):
                raise ValueError("device must be 'cpu', 'cuda', or 'cuda:n'")

    @classmethod
    def small(cls) -> 'NetworkConfig':
        """Tiny network for tests and quick experiments."""
        return cls(conv_channels=[8], hidden_sizes=[32], batch_size=16, epochs=1)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'NetworkConfig':
        """Create configuration from dictionary."""
        return cls(**{k: v for k, v in config_dict.items() if k in cls.__dataclass_fields__})

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file."""
        _save_json(self.to_dict(), path)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'NetworkConfig':
        """Load configuration from JSON file."""
        return cls.from_dict(_load_json(path))


@dataclass
class TrainingConfig:
    """
    Configuration for the training process.

    This class defines parameters for self-play, pitting candidate networks
    against the current one, logging and checkpointing.
    """
    # Game parameters
    board_size: int = DEFAULT_BOARD_SIZE
    """Board size"""

    komi: int = KOMI
    """Komi for Black"""

    # Self-play parameters
    games_per_iteration: int = 100
    """Self-play games per training iteration"""

    num_workers: int = 4
    """Games played concurrently"""

    max_plies: int = 400
    """Plies after which a self-play game is abandoned as a draw"""

    max_examples: int = MAX_EXAMPLES
    """Number of most recent examples kept for training"""

    # Evaluation parameters
    pit_games: int = 20
    """Openings played (from both colours) when pitting networks"""

    win_rate_threshold: float = WIN_RATE_THRESHOLD
    """Win rate a candidate network needs to replace the current one"""

    # Search used by the players
    mcts: MCTSConfig = field(default_factory=MCTSConfig)
    """Search configuration for self-play and pitting"""

    # Logging and checkpointing
    model_dir: str = "models"
    """Directory for promoted models"""

    example_dir: str = "examples"
    """Directory for saved self-play examples"""

    log_dir: str = "runs"
    """Directory for logs"""

    use_tensorboard: bool = False
    """Whether to use TensorBoard for logging"""

    # Reproducibility
    seed: Optional[int] = None
    """Random seed for reproducibility"""

    def __post_init__(self):
        """Validate configuration parameters."""
        if isinstance(self.mcts, dict):
            self.mcts = MCTSConfig.from_dict(self.mcts)

        if not MIN_BOARD_SIZE <= self.board_size <= MAX_BOARD_SIZE:
            raise ValueError(f"board_size must be between {MIN_BOARD_SIZE} and {MAX_BOARD_SIZE}")

        if self.games_per_iteration <= 0:
            raise ValueError("games_per_iteration must be positive")

        if self.num_workers <= 0:
            raise ValueError("num_workers must be positive")

        if self.max_plies <= 0:
            raise ValueError("max_plies must be positive")

        if self.max_examples <= 0:
            raise ValueError("max_examples must be positive")

        if self.pit_games <= 0:
            raise ValueError("pit_games must be positive")

        if not 0.0 <= self.win_rate_threshold <= 1.0:
            raise ValueError("win_rate_threshold must be in [0, 1]")

    @classmethod
    def default(cls) -> 'TrainingConfig':
        return cls()

    @classmethod
    def fast(cls) -> 'TrainingConfig':
        """Small settings for smoke runs."""
        return cls(
            games_per_iteration=8,
            num_workers=2,
            pit_games=4,
            mcts=MCTSConfig.fast()
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'TrainingConfig':
        """Create configuration from dictionary."""
        return cls(**{k: v for k, v in config_dict.items() if k in cls.__dataclass_fields__})

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file."""
        _save_json(self.to_dict(), path)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'TrainingConfig':
        """Load configuration from JSON file."""
        return cls.from_dict(_load_json(path))

    def create_directories(self) -> None:
        """Create necessary directories for models, examples and logs."""
        os.makedirs(self.model_dir, exist_ok=True)
        os.makedirs(self.example_dir, exist_ok=True)
        os.makedirs(self.log_dir, exist_ok=True)
