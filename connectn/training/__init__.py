"""
Optimizers and losses for training connect-N agents.
"""

from .losses import full_q_targets, masked_q_loss, td_targets, value_loss
from .optimizers import create_optimizer, set_lr

__all__ = [
    # Losses
    "full_q_targets",
    "masked_q_loss",
    "td_targets",
    "value_loss",
    # Optimizers
    "create_optimizer",
    "set_lr",
]
