"""
Optimizer Factory and Learning Rate Helpers

Agents decay their learning rate per game from a schedule, so the optimizer
is built once and its rate is overwritten in place.
"""

from torch.optim import SGD, Adam, Optimizer


def create_optimizer(
    params,
    optimizer_type: str = "sgd",
    learning_rate: float = 0.1,
    momentum: float = 0.05,
) -> Optimizer:
    """
    Creates an optimizer from configuration.

    Args:
        params: Model parameters to optimize.
        optimizer_type: "sgd" (with momentum) or "adam".
        learning_rate: Initial learning rate.
        momentum: Momentum for SGD. Ignored by Adam.

    Raises:
        ValueError: If optimizer_type is not recognized.
    """
    optimizer_type = optimizer_type.lower()

    if optimizer_type == "sgd":
        return SGD(params, lr=learning_rate, momentum=momentum)
    elif optimizer_type == "adam":
        return Adam(params, lr=learning_rate)
    else:
        raise ValueError(f"Unknown optimizer type: {optimizer_type}. Supported: sgd, adam")


def set_lr(optimizer: Optimizer, lr: float) -> None:
    """Sets the learning rate for all parameter groups."""
    for param_group in optimizer.param_groups:
        param_group["lr"] = lr
