"""
Learning strategies for connect-N.

Provides the double-Q learner with experience replay, the offline Q-learner,
the value-network search agent, and their configuration, schedules and
persistence.
"""

from .config import QLearningConfig, QOffConfig, RewardConfig, ScheduleConfig, ValueLearningConfig
from .persistence import (
    STATE_FORMAT_VERSION,
    AgentStateError,
    default_state_path,
    load_agent_state,
    save_agent_state,
)
from .q_agent import QLearningStrategy
from .qoff_agent import QOffStrategy, default_hidden_sizes, discounted_labels
from .replay_buffer import ReplayBuffer, Transition
from .schedules import ExponentialDecay, LinearDecay, Schedule, create_schedule
from .value_agent import NetworkEvaluator, ValueStrategy

__all__ = [
    # Config
    "QLearningConfig",
    "QOffConfig",
    "RewardConfig",
    "ScheduleConfig",
    "ValueLearningConfig",
    # Persistence
    "STATE_FORMAT_VERSION",
    "AgentStateError",
    "default_state_path",
    "load_agent_state",
    "save_agent_state",
    # Agents
    "QLearningStrategy",
    "QOffStrategy",
    "ValueStrategy",
    "default_hidden_sizes",
    "discounted_labels",
    "NetworkEvaluator",
    # Replay
    "ReplayBuffer",
    "Transition",
    # Schedules
    "Schedule",
    "ExponentialDecay",
    "LinearDecay",
    "create_schedule",
]
