"""
Decay schedules for learning rate and exploration.

Every schedule is a pure function of the number of games played, so an agent
reloaded from disk continues with exactly the values it would have had.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .config import ScheduleConfig


class Schedule(ABC):
    """Monotonic decay toward a floor."""

    @abstractmethod
    def value(self, games_played: int) -> float:
        pass

    def __call__(self, games_played: int) -> float:
        return self.value(games_played)


@dataclass
class ExponentialDecay(Schedule):
    """start * 2^(-games / half_life), clamped at floor."""

    start: float
    floor: float
    half_life: float

    def value(self, games_played: int) -> float:
        if self.half_life <= 0:
            return self.floor
        return max(self.floor, self.start * 2.0 ** (-games_played / self.half_life))


@dataclass
class LinearDecay(Schedule):
    """Straight line from start to floor over decay_games, then flat."""

    start: float
    floor: float
    decay_games: int

    def value(self, games_played: int) -> float:
        if self.decay_games <= 0:
            return self.floor
        progress = min(1.0, games_played / self.decay_games)
        return max(self.floor, self.start - (self.start - self.floor) * progress)


def create_schedule(config: ScheduleConfig) -> Schedule:
    """
    Creates a schedule from configuration.

    Raises:
        ValueError: If config.kind is not recognized.
    """
    if config.kind == "exponential":
        return ExponentialDecay(config.start, config.floor, config.half_life)
    elif config.kind == "linear":
        return LinearDecay(config.start, config.floor, config.decay_games)
    else:
        raise ValueError(
            f"Unknown schedule kind: {config.kind}. Supported: exponential, linear"
        )
