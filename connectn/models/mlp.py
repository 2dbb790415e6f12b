"""
Multi-Layer Perceptron models for connect-N.

Simple feed-forward networks over hand-engineered feature vectors:
- QNetwork: per-column action values in (0, 1) via sigmoid
- ValueNetwork: position value in (-1, 1) via tanh
"""

import torch
import torch.nn as nn

from .base import ConnectNModel


def build_backbone(input_size: int, hidden_sizes: list[int]) -> tuple[nn.Sequential, int]:
    """
    Builds Linear+ReLU layers.

    Returns:
        The backbone and the size of its output features.
    """
    layers = []
    prev_size = input_size
    for hidden_size in hidden_sizes:
        layers.append(nn.Linear(prev_size, hidden_size))
        layers.append(nn.ReLU())
        prev_size = hidden_size
    return nn.Sequential(*layers), prev_size


class QNetwork(ConnectNModel):
    """
    Action-value MLP.

    Architecture: Input -> [Hidden layers with ReLU] -> Linear(width) -> Sigmoid

    The sigmoid bounds outputs to the reward range, so every reward the
    learner trains toward must lie in [0, 1].
    """

    def __init__(self, input_size: int, num_actions: int, hidden_sizes: list[int] | None = None):
        """
        Initialize the Q-network.

        Args:
            input_size: Length of the encoded feature vector
            num_actions: Number of board columns
            hidden_sizes: Hidden layer sizes. Default is [128, 64]
        """
        super().__init__(input_size=input_size, output_size=num_actions)

        if hidden_sizes is None:
            hidden_sizes = [128, 64]

        self._hidden_sizes = list(hidden_sizes)
        self._architecture_name = f"q-mlp-{len(self._hidden_sizes)}x{max(self._hidden_sizes, default=0)}"

        self.backbone, features = build_backbone(input_size, self._hidden_sizes)
        self.head = nn.Sequential(nn.Linear(features, num_actions), nn.Sigmoid())

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.head(self.backbone(x))

    def get_config(self) -> dict:
        """Returns model configuration for serialization."""
        config = super().get_config()
        config["hidden_sizes"] = self._hidden_sizes
        return config


class ValueNetwork(ConnectNModel):
    """
    Position-value MLP.

    Architecture: Input -> [Hidden layers with ReLU] -> Linear(1) -> Tanh
    """

    def __init__(self, input_size: int, hidden_sizes: list[int] | None = None):
        super().__init__(input_size=input_size, output_size=1)

        if hidden_sizes is None:
            hidden_sizes = [64, 32]

        self._hidden_sizes = list(hidden_sizes)
        self._architecture_name = f"value-mlp-{len(self._hidden_sizes)}x{max(self._hidden_sizes, default=0)}"

        self.backbone, features = build_backbone(input_size, self._hidden_sizes)
        self.head = nn.Sequential(nn.Linear(features, 1), nn.Tanh())

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.head(self.backbone(x))

    def get_config(self) -> dict:
        """Returns model configuration for serialization."""
        config = super().get_config()
        config["hidden_sizes"] = self._hidden_sizes
        return config
