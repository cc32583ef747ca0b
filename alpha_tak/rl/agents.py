"""
Evaluators for guiding the Tak search.

This module provides the evaluators a Player can be given:

1. Base Evaluator class defining the common interface
2. UniformEvaluator, a fixed uniform prior with a neutral value
3. NetworkEvaluator, a trainable torch network

Each evaluator maps a position to a prior over the action space and a value
for the player to move, can be trained on self-play examples, and can save
and load its model.
"""
import copy
import logging
import os
import pickle
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import torch
import torch.nn.functional as F
import torch.optim as optim

from alpha_tak.core.codec import action_space_size
from alpha_tak.core.errors import EvaluatorUnavailableError
from alpha_tak.core.game import GameState
from alpha_tak.mcts.agent import Example
from alpha_tak.rl.config import NetworkConfig
from alpha_tak.rl.models import TakNetwork

logger = logging.getLogger(__name__)


class Evaluator(ABC):
    """
    Abstract base class for position evaluators.

    Evaluators may be shared by several players searching in parallel, so
    `evaluate` must be safe to call concurrently.
    """

    size: int

    @abstractmethod
    def evaluate(self, state: GameState) -> Tuple[np.ndarray, float]:
        """
        Evaluate a position.

        Args:
            state: Position to evaluate

        Returns:
            Tuple of (prior over the action space, value in [-1, 1] for the
            player to move)
        """
        pass

    @abstractmethod
    def train(self, examples: Sequence[Example]) -> Dict[str, float]:
        """
        Fit the evaluator to self-play examples.

        Args:
            examples: Training examples

        Returns:
            Dictionary of training metrics
        """
        pass

    @abstractmethod
    def save(self, path: Union[str, Path]) -> None:
        """
        Save the evaluator's model.

        Raises:
            EvaluatorUnavailableError: If the model cannot be written
        """
        pass

    @abstractmethod
    def load(self, path: Union[str, Path]) -> None:
        """
        Load the evaluator's model.

        Raises:
            EvaluatorUnavailableError: If the model cannot be read
        """
        pass

    def copy(self) -> 'Evaluator':
        """Get an independent copy that can be trained without touching this one."""
        return copy.deepcopy(self)


class UniformEvaluator(Evaluator):
    """
    Evaluator with a uniform prior and a value of zero everywhere.

    With it the search reduces to visit-count driven exploration whose
    values come only from finished games.
    """

    def __init__(self, size: int):
        self.size = size
        self._prior = np.full(action_space_size(size), 1.0 / action_space_size(size), dtype=np.float32)
        self._prior.setflags(write=False)

    def evaluate(self, state: GameState) -> Tuple[np.ndarray, float]:
        return self._prior, 0.0

    def train(self, examples: Sequence[Example]) -> Dict[str, float]:
        """No-op train method (nothing to learn)."""
        return {}

    def save(self, path: Union[str, Path]) -> None:
        """No-op save method (no model)."""
        pass

    def load(self, path: Union[str, Path]) -> None:
        """No-op load method (no model)."""
        pass

    def copy(self) -> 'UniformEvaluator':
        return UniformEvaluator(self.size)


class NetworkEvaluator(Evaluator):
    """
    Evaluator backed by a TakNetwork.

    The policy head is trained against search visit distributions with a
    cross-entropy loss and the value head against game outcomes with a
    mean squared error loss.
    """

    def __init__(self, size: int, config: Optional[NetworkConfig] = None):
        """
        Initialize the evaluator.

        Args:
            size: Board size
            config: Network configuration (architecture, optimizer, device)
        """
        self.size = size
        self.config = config or NetworkConfig()
        self.device = torch.device(self.config.device)

        self.network = TakNetwork(size, self.config).to(self.device)
        self.optimizer = optim.Adam(
            self.network.parameters(),
            lr=self.config.learning_rate,
            weight_decay=self.config.weight_decay
        )

        self.updates = 0
        self.training_stats: Dict[str, List[float]] = {
            "policy_loss": [],
            "value_loss": [],
            "total_loss": [],
        }

        self._lock = threading.Lock()

    def evaluate(self, state: GameState) -> Tuple[np.ndarray, float]:
        x = torch.from_numpy(state.get_state_features()).unsqueeze(0).to(self.device)
        with self._lock, torch.no_grad():
            self.network.eval()
            logits, value = self.network(x)
            probs = F.softmax(logits, dim=-1)
        return probs.squeeze(0).cpu().numpy(), float(value.item())

    def train(self, examples: Sequence[Example]) -> Dict[str, float]:
        """
        Fit the network to self-play examples.

        Args:
            examples: Training examples

        Returns:
            Mean policy, value and total loss over the last epoch
        """
        if not examples:
            return {}

        states = torch.as_tensor(np.stack([e.state for e in examples]), dtype=torch.float32, device=self.device)
        policies = torch.as_tensor(np.stack([e.policy for e in examples]), dtype=torch.float32, device=self.device)
        values = torch.as_tensor([e.value for e in examples], dtype=torch.float32, device=self.device)

        batch_size = self.config.batch_size
        metrics: Dict[str, float] = {}
        with self._lock:
            self.network.train()
            for epoch in range(self.config.epochs):
                totals = {"policy_loss": 0.0, "value_loss": 0.0, "total_loss": 0.0}
                batches = 0
                permutation = torch.randperm(len(examples), device=self.device)
                for start in range(0, len(examples), batch_size):
                    idx = permutation[start:start + batch_size]
                    logits, predicted = self.network(states[idx])

                    policy_loss = -(policies[idx] * F.log_softmax(logits, dim=-1)).sum(dim=-1).mean()
                    value_loss = F.mse_loss(predicted, values[idx])
                    loss = policy_loss + self.config.value_loss_coef * value_loss

                    self.optimizer.zero_grad()
                    loss.backward()
                    torch.nn.utils.clip_grad_norm_(self.network.parameters(), self.config.max_grad_norm)
                    self.optimizer.step()

                    totals["policy_loss"] += policy_loss.item()
                    totals["value_loss"] += value_loss.item()
                    totals["total_loss"] += loss.item()
                    batches += 1

                metrics = {k: v / batches for k, v in totals.items()}
                logger.debug("epoch %d: %s", epoch + 1, metrics)
            self.network.eval()

        for k, v in metrics.items():
            self.training_stats[k].append(v)
        self.updates += 1
        return metrics

    def save(self, path: Union[str, Path]) -> None:
        """
        Save the network, optimizer and configuration.

        Args:
            path: Path to save the model
        """
        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with self._lock:
                torch.save({
                    "size": self.size,
                    "model_state_dict": self.network.state_dict(),
                    "optimizer_state_dict": self.optimizer.state_dict(),
                    "updates": self.updates,
                    "training_stats": self.training_stats,
                    "config": self.config.to_dict()
                }, path)
        except OSError as e:
            raise EvaluatorUnavailableError(f"Could not save model to {path}: {e}") from e

    def load(self, path: Union[str, Path]) -> None:
        """
        Load the network and optimizer from a checkpoint.

        Args:
            path: Path to load the model from
        """
        checkpoint = _read_checkpoint(path, self.device)
        if checkpoint.get("size", self.size) != self.size:
            raise EvaluatorUnavailableError(
                f"Model at {path} is for size {checkpoint['size']}, not {self.size}"
            )
        try:
            with self._lock:
                self.network.load_state_dict(checkpoint["model_state_dict"])
                self.optimizer.load_state_dict(checkpoint["optimizer_state_dict"])
        except (KeyError, RuntimeError, ValueError) as e:
            raise EvaluatorUnavailableError(f"Model at {path} does not match this network: {e}") from e

        self.updates = checkpoint.get("updates", 0)
        self.training_stats = checkpoint.get("training_stats", self.training_stats)

    @classmethod
    def from_checkpoint(cls, path: Union[str, Path], device: Optional[str] = None) -> 'NetworkEvaluator':
        """
        Build an evaluator with the architecture stored in a checkpoint.

        Args:
            path: Path to the checkpoint
            device: Device override

        Returns:
            Loaded evaluator
        """
        checkpoint = _read_checkpoint(path, torch.device(device or "cpu"))
        try:
            config = NetworkConfig.from_dict(checkpoint["config"])
            size = checkpoint["size"]
        except (KeyError, TypeError, ValueError) as e:
            raise EvaluatorUnavailableError(f"Model at {path} has no usable configuration: {e}") from e
        if device is not None:
            config.device = device
        evaluator = cls(size, config)
        evaluator.load(path)
        return evaluator

    def copy(self) -> 'NetworkEvaluator':
        other = NetworkEvaluator(self.size, copy.deepcopy(self.config))
        with self._lock:
            other.network.load_state_dict(copy.deepcopy(self.network.state_dict()))
            other.optimizer.load_state_dict(copy.deepcopy(self.optimizer.state_dict()))
        other.updates = self.updates
        return other


def _read_checkpoint(path: Union[str, Path], device: torch.device) -> Dict:
    try:
        checkpoint = torch.load(path, map_location=device)
    except (OSError, RuntimeError, ValueError, pickle.UnpicklingError, EOFError) as e:
        raise EvaluatorUnavailableError(f"Could not load model at {path}: {e}") from e
    if not isinstance(checkpoint, dict):
        raise EvaluatorUnavailableError(f"Model at {path} is not a checkpoint")
    return checkpoint
