"""
Loss Functions for connect-N Agent Training

Provides the action-masked Q regression loss and the value regression loss.
"""

import torch
import torch.nn.functional as F
from torch import Tensor


def masked_q_loss(q_pred: Tensor, actions: Tensor, targets: Tensor) -> Tensor:
    """
    MSE loss on the taken action's output only.

    Equivalent to regressing the full output vector toward a target vector
    that equals the prediction everywhere except at the taken action, so
    the other columns receive no gradient.

    Args:
        q_pred: (batch, width) predicted action values.
        actions: (batch,) integer column indices.
        targets: (batch,) target values for the taken actions.

    Returns:
        Scalar loss tensor.
    """
    chosen = q_pred.gather(1, actions.long().view(-1, 1)).view(-1)
    return F.mse_loss(chosen, targets.view(-1))


def full_q_targets(q_pred: Tensor, actions: Tensor, targets: Tensor) -> Tensor:
    """
    Builds the full target vectors implied by masked_q_loss.

    Returns:
        (batch, width) copy of the detached prediction with the taken
        action's entry replaced by its target.
    """
    full = q_pred.detach().clone()
    full.scatter_(1, actions.long().view(-1, 1), targets.view(-1, 1).to(full.dtype))
    return full


def value_loss(value_pred: Tensor, target_value: Tensor) -> Tensor:
    """
    MSE loss for position evaluation.

    Args:
        value_pred: (batch, 1) or (batch,) predicted value in [-1, 1].
        target_value: (batch, 1) or (batch,) actual game outcome.

    Returns:
        Scalar loss tensor.
    """
    # Ensure consistent shapes
    value_pred = value_pred.view(-1)
    target_value = target_value.view(-1)

    return F.mse_loss(value_pred, target_value)


def td_targets(
    rewards: Tensor,
    next_q: Tensor,
    gamma: float,
    terminal: Tensor | None = None,
) -> Tensor:
    """
    Convex blend of immediate reward and best next-state value.

    target = (1 - gamma) * reward + gamma * max_a next_q[a]

    Terminal entries take the literal reward.

    Args:
        rewards: (batch,) immediate rewards.
        next_q: (batch, width) target-network values of the next states.
        gamma: Blend weight of the bootstrapped value, in [0, 1].
        terminal: (batch,) bool mask of terminal transitions.
    """
    bootstrapped = (1.0 - gamma) * rewards + gamma * next_q.max(dim=1).values
    if terminal is None:
        return bootstrapped
    return torch.where(terminal.bool(), rewards, bootstrapped)
