"""
Learning Agent Configuration

Dataclass-based configuration for the double-Q learner, the offline
Q-learner and the value-network search agent.
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Literal

import yaml


@dataclass
class RewardConfig:
    """
    Rewards for the Q-learner. All must lie inside the sigmoid output range.
    """

    win: float = 1.0
    loss: float = 0.0
    draw: float = 0.5
    step: float = 0.5  # ordinary non-terminal ply
    illegal: float = 0.4  # correction for an illegal greedy pick

    def validate(self) -> None:
        for name, value in asdict(self).items():
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Reward '{name}' must be in [0, 1], got {value}")


@dataclass
class ScheduleConfig:
    """Decay of a scalar (learning rate or exploration) with games played."""

    start: float
    floor: float
    kind: Literal["exponential", "linear"] = "exponential"
    half_life: float = 1000.0  # games, exponential only
    decay_games: int = 10000  # games to reach the floor, linear only


@dataclass
class QLearningConfig:
    """Configuration for the double-Q learning agent."""

    # Network
    hidden_sizes: list[int] = field(default_factory=lambda: [128, 64])
    optimizer: str = "sgd"
    momentum: float = 0.05

    # Update rule
    gamma: float = 0.9  # weight of the bootstrapped next-state value
    rewards: RewardConfig = field(default_factory=RewardConfig)

    # Schedules
    learning_rate: ScheduleConfig = field(
        default_factory=lambda: ScheduleConfig(start=0.1, floor=0.005, half_life=20000.0)
    )
    exploration: ScheduleConfig = field(
        default_factory=lambda: ScheduleConfig(start=0.2, floor=0.01, half_life=2000.0)
    )

    # Experience replay
    replay_capacity: int = 10000
    replay_batch_size: int = 16
    target_sync_every: int = 1  # games between target network syncs

    # Runtime
    fixed: bool = False  # evaluation mode: no learning, no exploration
    state_path: str | None = None  # None disables persistence
    seed: int | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.gamma <= 1.0:
            raise ValueError(f"gamma must be in [0, 1], got {self.gamma}")
        if self.replay_capacity < 1:
            raise ValueError(f"replay_capacity must be positive, got {self.replay_capacity}")
        if self.target_sync_every < 1:
            raise ValueError(f"target_sync_every must be positive, got {self.target_sync_every}")
        self.rewards.validate()

    @classmethod
    def from_yaml(cls, path: str | Path) -> "QLearningConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "QLearningConfig":
        data = dict(data)
        kwargs = {}
        if "rewards" in data:
            kwargs["rewards"] = RewardConfig(**data.pop("rewards"))
        if "learning_rate" in data:
            kwargs["learning_rate"] = ScheduleConfig(**data.pop("learning_rate"))
        if "exploration" in data:
            kwargs["exploration"] = ScheduleConfig(**data.pop("exploration"))
        return cls(**kwargs, **data)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)


@dataclass
class QOffConfig:
    """Configuration for the offline (end-of-game) Q-learner."""

    # Network. None sizes the hidden layers from the board: 4n, 2n, n, n, n//2
    # for n cells.
    hidden_sizes: list[int] | None = None
    optimizer: str = "sgd"
    momentum: float = 0.05

    # Labels
    gamma: float = 0.99  # per-move discount of the final result
    illegal_target: float = 0.0
    epochs: int = 1  # passes over a finished game

    # Schedules
    learning_rate: ScheduleConfig = field(
        default_factory=lambda: ScheduleConfig(start=0.1, floor=0.01, half_life=10000.0)
    )
    exploration: ScheduleConfig = field(
        default_factory=lambda: ScheduleConfig(start=1.0, floor=0.0, half_life=20000.0)
    )

    # Runtime
    fixed: bool = False
    state_path: str | None = None
    seed: int | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.gamma <= 1.0:
            raise ValueError(f"gamma must be in [0, 1], got {self.gamma}")
        if not 0.0 <= self.illegal_target <= 1.0:
            raise ValueError(f"illegal_target must be in [0, 1], got {self.illegal_target}")
        if self.epochs < 1:
            raise ValueError(f"epochs must be positive, got {self.epochs}")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "QOffConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "QOffConfig":
        data = dict(data)
        kwargs = {}
        if "learning_rate" in data:
            kwargs["learning_rate"] = ScheduleConfig(**data.pop("learning_rate"))
        if "exploration" in data:
            kwargs["exploration"] = ScheduleConfig(**data.pop("exploration"))
        return cls(**kwargs, **data)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)


@dataclass
class ValueLearningConfig:
    """Configuration for the value-network search agent."""

    # Search
    depth: int = 2
    max_workers: int | None = None
    value_scale: float = 1000.0  # leaf value multiplier, must stay below WIN_SCORE

    # Network
    hidden_sizes: list[int] = field(default_factory=lambda: [64, 32])
    optimizer: str = "adam"

    # Training
    learn_every: int = 100  # games between training rounds
    epochs: int = 1
    batch_size: int = 64
    learning_rate: ScheduleConfig = field(
        default_factory=lambda: ScheduleConfig(
            start=0.01, floor=0.0005, kind="linear", decay_games=100000
        )
    )
    exploration: ScheduleConfig = field(
        default_factory=lambda: ScheduleConfig(start=0.5, floor=0.1, half_life=1000.0)
    )

    # Runtime
    fixed: bool = False
    state_path: str | None = None
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.depth < 0:
            raise ValueError(f"depth must be non-negative, got {self.depth}")
        if self.learn_every < 1:
            raise ValueError(f"learn_every must be positive, got {self.learn_every}")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ValueLearningConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "ValueLearningConfig":
        data = dict(data)
        kwargs = {}
        if "learning_rate" in data:
            kwargs["learning_rate"] = ScheduleConfig(**data.pop("learning_rate"))
        if "exploration" in data:
            kwargs["exploration"] = ScheduleConfig(**data.pop("exploration"))
        return cls(**kwargs, **data)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)
