"""
Neural network models for evaluating Tak positions.

This module defines the network used by the evaluator:

1. Weight initialization and activation helpers
2. A configurable multi-layer perceptron
3. TakNetwork: convolutional stem, shared trunk, policy and value heads
"""
import math
from typing import List, Optional, Tuple

import torch
import torch.nn as nn

from alpha_tak.core.codec import action_space_size
from alpha_tak.core.game import FEATURE_PLANES
from alpha_tak.rl.config import NetworkConfig


def init_weights(module: nn.Module, init_type: str = 'orthogonal', gain: float = 1.0) -> None:
    """
    Initialize network weights using various methods.

    Args:
        module: The module to initialize
        init_type: Initialization method ('orthogonal', 'xavier', 'kaiming', etc.)
        gain: Gain factor for initialization
    """
    if isinstance(module, (nn.Linear, nn.Conv2d)):
        if init_type == 'orthogonal':
            nn.init.orthogonal_(module.weight.data, gain=gain)
        elif init_type == 'xavier':
            nn.init.xavier_uniform_(module.weight.data, gain=gain)
        elif init_type == 'kaiming':
            nn.init.kaiming_normal_(module.weight.data, a=0, mode='fan_in')
        elif init_type == 'normal':
            nn.init.normal_(module.weight.data, mean=0, std=0.1)
        elif init_type == 'uniform':
            nn.init.uniform_(module.weight.data, -0.1, 0.1)

        if module.bias is not None:
            nn.init.constant_(module.bias.data, 0)


def get_activation(activation: str) -> nn.Module:
    """
    Get activation function by name.

    Args:
        activation: Name of activation function

    Returns:
        Activation module
    """
    activations = {
        'relu': nn.ReLU,
        'leaky_relu': lambda: nn.LeakyReLU(0.2),
        'tanh': nn.Tanh,
        'sigmoid': nn.Sigmoid,
        'elu': nn.ELU,
        'selu': nn.SELU,
    }
    if activation not in activations:
        raise ValueError(f"Unknown activation: {activation}")
    return activations[activation]()


class MLP(nn.Module):
    """
    Multi-layer perceptron with configurable architecture.

    This is the building block for the trunk and the heads.
    """

    def __init__(
        self,
        input_dim: int,
        output_dim: int,
        hidden_sizes: List[int],
        activation: str = 'relu',
        output_activation: Optional[str] = None,
        dropout_rate: float = 0.0,
        init_type: str = 'orthogonal',
        gain: float = math.sqrt(2)
    ):
        """
        Initialize the MLP.

        Args:
            input_dim: Input dimension
            output_dim: Output dimension
            hidden_sizes: List of hidden layer sizes
            activation: Activation function
            output_activation: Output activation function (None for no activation)
            dropout_rate: Dropout rate (0 = no dropout)
            init_type: Weight initialization method
            gain: Gain factor for weight initialization
        """
        super().__init__()

        self.input_dim = input_dim
        self.output_dim = output_dim

        layers = []
        prev_size = input_dim
        for size in hidden_sizes:
            layers.append(nn.Linear(prev_size, size))
            layers.append(get_activation(activation))
            if dropout_rate > 0:
                layers.append(nn.Dropout(dropout_rate))
            prev_size = size

        layers.append(nn.Linear(prev_size, output_dim))
        if output_activation is not None:
            layers.append(get_activation(output_activation))

        self.model = nn.Sequential(*layers)
        self.apply(lambda m: init_weights(m, init_type, gain))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.model(x)


class TakNetwork(nn.Module):
    """
    Policy and value network over Tak feature planes.

    Input: (batch, FEATURE_PLANES, N, N) planes from GameState.get_state_features.
    Output: policy logits over the A(N) action space and a value in [-1, 1]
    for the player to move.
    """

    def __init__(self, size: int, config: Optional[NetworkConfig] = None):
        """
        Initialize the network.

        Args:
            size: Board size
            config: Network configuration
        """
        super().__init__()
        config = config or NetworkConfig()
        self.size = size
        self.config = config
        self.action_dim = action_space_size(size)

        convs = []
        channels = FEATURE_PLANES
        for out_channels in config.conv_channels:
            convs.append(nn.Conv2d(channels, out_channels, kernel_size=3, padding=1))
            convs.append(get_activation(config.activation))
            channels = out_channels
        self.stem = nn.Sequential(*convs)

        trunk_input = channels * size * size
        trunk_output = config.hidden_sizes[-1]
        self.trunk = MLP(
            input_dim=trunk_input,
            output_dim=trunk_output,
            hidden_sizes=config.hidden_sizes[:-1],
            activation=config.activation,
            output_activation=config.activation,
            dropout_rate=config.dropout_rate,
            init_type=config.init_type,
            gain=config.gain
        )

        self.policy_head = nn.Linear(trunk_output, self.action_dim)
        self.value_head = MLP(
            input_dim=trunk_output,
            output_dim=1,
            hidden_sizes=[max(trunk_output // 2, 1)],
            activation=config.activation,
            output_activation='tanh',
            init_type=config.init_type,
            gain=config.gain
        )

        self.stem.apply(lambda m: init_weights(m, config.init_type, config.gain))
        # Small policy weights keep the initial priors close to uniform
        init_weights(self.policy_head, config.init_type, 0.01)

    def forward(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Forward pass through the network.

        Args:
            x: Feature planes of shape (batch, FEATURE_PLANES, N, N)

        Returns:
            Tuple of (policy logits, state value)
        """
        features = self.stem(x).flatten(start_dim=1)
        hidden = self.trunk(features)
        return self.policy_head(hidden), self.value_head(hidden).squeeze(-1)
