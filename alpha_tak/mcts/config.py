"""
Configuration for Monte Carlo Tree Search (MCTS).

This module defines the configuration parameters for the search and for the
decision-time exploration a player applies on top of it.
"""
from dataclasses import dataclass, fields
from typing import Optional

from alpha_tak.core.constants import DEFAULT_EXPLORATION, DEFAULT_ROLLOUTS_PER_MOVE


@dataclass
class MCTSConfig:
    """
    Configuration parameters for Monte Carlo Tree Search.

    This class defines all tunable parameters for the search,
    with validation and sensible defaults.
    """
    # Search parameters
    exploration_weight: float = DEFAULT_EXPLORATION
    """PUCT exploration constant"""

    rollouts_per_move: int = DEFAULT_ROLLOUTS_PER_MOVE
    """Number of rollouts to run before each move decision"""

    rollout_batch: int = 100
    """Rollouts run between deadline or stop checks"""

    time_limit: Optional[float] = None
    """Optional thinking time in seconds per move (overrides rollouts_per_move)"""

    # Exploration parameters
    temperature: float = 1.0
    """Temperature applied to visit counts when sampling a move"""

    exploration_plies: int = 30
    """Plies during which self-play samples moves instead of picking the best"""

    dirichlet_alpha: float = 1.0
    """Concentration of the root noise"""

    dirichlet_epsilon: float = 0.3
    """Weight of the root noise mixed into the priors"""

    noise_plies: int = 16
    """Plies during which root noise is applied"""

    # Introspection
    debug_min_visits: int = 10
    """Visits below which a continuation is cut off in search reports"""

    debug_continuation_len: int = 8
    """Maximum continuation length in search reports"""

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.exploration_weight <= 0:
            raise ValueError("exploration_weight must be positive")

        if self.rollouts_per_move <= 0:
            raise ValueError("rollouts_per_move must be positive")

        if self.rollout_batch <= 0:
            raise ValueError("rollout_batch must be positive")

        if self.time_limit is not None and self.time_limit <= 0:
            raise ValueError("time_limit must be positive or None")

        if self.temperature <= 0:
            raise ValueError("temperature must be positive")

        if self.exploration_plies < 0 or self.noise_plies < 0:
            raise ValueError("exploration_plies and noise_plies cannot be negative")

        if self.dirichlet_alpha <= 0:
            raise ValueError("dirichlet_alpha must be positive")

        if not 0.0 <= self.dirichlet_epsilon <= 1.0:
            raise ValueError("dirichlet_epsilon must be between 0 and 1")

        if self.debug_min_visits < 0 or self.debug_continuation_len < 0:
            raise ValueError("debug settings cannot be negative")

    @classmethod
    def default(cls) -> 'MCTSConfig':
        """
        Get the default configuration.

        Returns:
            Default MCTSConfig object
        """
        return cls()

    @classmethod
    def fast(cls) -> 'MCTSConfig':
        """
        Get a configuration optimized for speed (fewer rollouts).

        Returns:
            Fast MCTSConfig object
        """
        return cls(
            rollouts_per_move=100,
            rollout_batch=25,
            exploration_plies=8,
            noise_plies=4
        )

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'MCTSConfig':
        """
        Create a configuration from a dictionary.

        Args:
            config_dict: Dictionary of configuration parameters

        Returns:
            MCTSConfig object
        """
        # Filter out any keys that aren't valid parameters
        valid_params = {k: v for k, v in config_dict.items()
                        if k in cls.__dataclass_fields__}
        return cls(**valid_params)

    def to_dict(self) -> dict:
        """
        Convert the configuration to a dictionary.

        Returns:
            Dictionary of configuration parameters
        """
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def __str__(self) -> str:
        params = ", ".join(f"{name}={value}" for name, value in self.to_dict().items())
        return f"MCTSConfig({params})"
