"""
Base class for connect-N function approximators.

All networks inherit from this class and share a common interface for
prediction, introspection and serialization.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator

import torch
import torch.nn as nn


@contextmanager
def seeded_init(seed: int | None) -> Iterator[None]:
    """
    Runs the block under a private torch seed.

    The global RNG state is restored afterwards. With seed None the block
    draws from the global RNG as usual.
    """
    if seed is None:
        yield
        return
    with torch.random.fork_rng(devices=[]):
        torch.manual_seed(seed)
        yield


class ConnectNModel(nn.Module, ABC):
    """
    Abstract base class for connect-N neural networks.

    All models must:
    - Accept flat encoded feature vectors of length input_size
    - Output a bounded tensor of shape (batch, output_size)
    """

    def __init__(self, input_size: int, output_size: int):
        """
        Initialize the model.

        Args:
            input_size: Total number of input features
            output_size: Number of outputs (columns for Q-networks, 1 for value networks)
        """
        super().__init__()
        self.input_size = input_size
        self.output_size = output_size
        self._architecture_name = "base"

    @abstractmethod
    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Forward pass through the network.

        Args:
            x: Input tensor of shape (batch, input_size)

        Returns:
            Output tensor of shape (batch, output_size)
        """
        pass

    def predict(self, x: torch.Tensor) -> torch.Tensor:
        """
        Inference without gradient tracking.

        Accepts a single feature vector or a batch.
        """
        single = x.dim() == 1
        if single:
            x = x.unsqueeze(0)
        with torch.no_grad():
            out = self(x)
        return out[0] if single else out

    def param_count(self) -> int:
        """Returns total number of trainable parameters."""
        return sum(p.numel() for p in self.parameters() if p.requires_grad)

    def architecture_string(self) -> str:
        """Returns human-readable architecture description."""
        return f"{self._architecture_name} ({self.param_count():,} params)"

    def get_config(self) -> dict:
        """Returns model configuration for serialization."""
        return {
            "architecture": self._architecture_name,
            "input_size": self.input_size,
            "output_size": self.output_size,
            "param_count": self.param_count(),
        }
