"""
Strategy registry for connect-N players.

Provides a unified interface for creating strategies by name and listing
available players.
"""

from dataclasses import replace
from pathlib import Path
from typing import Callable

from .evaluation import ConsoleStrategy, RandomStrategy, SearchConfig, SearchStrategy, Strategy
from .learning import (
    QLearningConfig,
    QLearningStrategy,
    QOffConfig,
    QOffStrategy,
    ValueLearningConfig,
    ValueStrategy,
)


def create_random(seed: int | None = None, **_) -> Strategy:
    return RandomStrategy(seed=seed)


def create_console(**_) -> Strategy:
    return ConsoleStrategy()


def create_search(depth: int | None = None, config_path: str | Path | None = None, **_) -> Strategy:
    config = SearchConfig.from_yaml(config_path) if config_path else SearchConfig()
    if depth is not None:
        config = replace(config, depth=depth)
    return SearchStrategy(config)


def _create_qlearn(
    fixed: bool,
    state_path: str | Path | None = None,
    config_path: str | Path | None = None,
    seed: int | None = None,
    **_,
) -> Strategy:
    config = QLearningConfig.from_yaml(config_path) if config_path else QLearningConfig()
    config = replace(config, fixed=fixed, seed=seed if seed is not None else config.seed)
    return QLearningStrategy(config, state_path=state_path)


def _create_qoff(
    fixed: bool,
    state_path: str | Path | None = None,
    config_path: str | Path | None = None,
    seed: int | None = None,
    **_,
) -> Strategy:
    config = QOffConfig.from_yaml(config_path) if config_path else QOffConfig()
    config = replace(config, fixed=fixed, seed=seed if seed is not None else config.seed)
    return QOffStrategy(config, state_path=state_path)


def _create_value(
    fixed: bool,
    state_path: str | Path | None = None,
    config_path: str | Path | None = None,
    depth: int | None = None,
    seed: int | None = None,
    **_,
) -> Strategy:
    config = ValueLearningConfig.from_yaml(config_path) if config_path else ValueLearningConfig()
    config = replace(
        config,
        fixed=fixed,
        depth=depth if depth is not None else config.depth,
        seed=seed if seed is not None else config.seed,
    )
    return ValueStrategy(config, state_path=state_path)


def create_qlearn(**kwargs) -> Strategy:
    return _create_qlearn(fixed=False, **kwargs)


def create_qlearn_fixed(**kwargs) -> Strategy:
    return _create_qlearn(fixed=True, **kwargs)


def create_qoff(**kwargs) -> Strategy:
    return _create_qoff(fixed=False, **kwargs)


def create_qoff_fixed(**kwargs) -> Strategy:
    return _create_qoff(fixed=True, **kwargs)


def create_value(**kwargs) -> Strategy:
    return _create_value(fixed=False, **kwargs)


def create_value_fixed(**kwargs) -> Strategy:
    return _create_value(fixed=True, **kwargs)


# Registry of strategy factory functions
STRATEGY_REGISTRY: dict[str, Callable[..., Strategy]] = {
    "random": create_random,
    "console": create_console,
    "search": create_search,
    "qlearn": create_qlearn,
    "qlearn-fixed": create_qlearn_fixed,
    "qoff": create_qoff,
    "qoff-fixed": create_qoff_fixed,
    "value": create_value,
    "value-fixed": create_value_fixed,
}

# Strategy info for documentation
STRATEGY_INFO: dict[str, dict] = {
    "random": {
        "description": "Uniform random legal column",
        "learns": False,
    },
    "console": {
        "description": "Human player on the terminal",
        "learns": False,
    },
    "search": {
        "description": "Parallel bounded minimax with a formation heuristic",
        "learns": False,
    },
    "qlearn": {
        "description": "Double-Q learner with experience replay",
        "learns": True,
    },
    "qlearn-fixed": {
        "description": "Double-Q learner, evaluation mode (no updates, no exploration)",
        "learns": False,
    },
    "qoff": {
        "description": "Q-learner trained on discounted results after each game",
        "learns": True,
    },
    "qoff-fixed": {
        "description": "Offline Q-learner, evaluation mode",
        "learns": False,
    },
    "value": {
        "description": "Minimax over a learned value network",
        "learns": True,
    },
    "value-fixed": {
        "description": "Value-network minimax, evaluation mode",
        "learns": False,
    },
}


def create_strategy(kind: str, **kwargs) -> Strategy:
    """
    Create a strategy by name.

    Args:
        kind: Strategy name (e.g., "random", "search", "qlearn")
        **kwargs: Options understood by the factory (seed, depth,
            state_path, config_path). Unknown options are ignored.

    Returns:
        Instantiated, uninitialized strategy

    Raises:
        ValueError: If the strategy name is not recognized
    """
    if kind not in STRATEGY_REGISTRY:
        available = ", ".join(sorted(STRATEGY_REGISTRY.keys()))
        raise ValueError(f"Unknown strategy: {kind}. Available strategies: {available}")
    return STRATEGY_REGISTRY[kind](**kwargs)


def list_strategies() -> list[str]:
    """Returns the names of all registered strategies."""
    return list(STRATEGY_REGISTRY.keys())
