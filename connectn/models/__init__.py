"""
Neural network function approximators for connect-N agents.
"""

from .base import ConnectNModel, seeded_init
from .mlp import QNetwork, ValueNetwork, build_backbone

__all__ = [
    "ConnectNModel",
    "QNetwork",
    "ValueNetwork",
    "build_backbone",
    "seeded_init",
]
