"""
Replay Buffer for Q-Learning

Fixed-size FIFO buffer of transitions with uniform sampling for experience
replay. Agents drive it from a single thread, so it carries no lock.
"""

import random
from collections import deque
from dataclasses import dataclass

import numpy as np
import torch


@dataclass
class Transition:
    """One observed step: state, chosen column, reward, resulting state."""

    state: np.ndarray
    action: int
    reward: float
    next_state: np.ndarray


class ReplayBuffer:
    """
    Fixed-size replay buffer with uniform sampling.

    When full, adding a transition evicts the oldest one.
    """

    def __init__(self, max_size: int = 10000):
        """
        Initialize the replay buffer.

        Args:
            max_size: Maximum number of transitions to store.
        """
        self.max_size = max_size
        self.buffer: deque[Transition] = deque(maxlen=max_size)

    def add(self, transition: Transition) -> None:
        """Add a single transition, evicting the oldest when full."""
        self.buffer.append(transition)

    def sample(self, batch_size: int, rng: random.Random | None = None) -> list[Transition]:
        """
        Sample random transitions without replacement.

        Args:
            batch_size: Number of transitions to sample.
            rng: Random generator. Defaults to the module-level generator.

        Returns:
            Up to batch_size transitions.
        """
        if len(self.buffer) == 0 or batch_size <= 0:
            return []
        rng = rng or random
        indices = rng.sample(range(len(self.buffer)), min(batch_size, len(self.buffer)))
        return [self.buffer[i] for i in indices]

    def sample_batch(
        self,
        batch_size: int,
        rng: random.Random | None = None,
        device: torch.device | str = "cpu",
    ) -> dict[str, torch.Tensor]:
        """
        Sample a batch of transitions as PyTorch tensors.

        Returns:
            Dictionary with 'state', 'action', 'reward' and 'next_state'
            tensors, or an empty dict if the buffer is empty.
        """
        transitions = self.sample(batch_size, rng)
        if not transitions:
            return {}
        return _to_tensors(transitions, device)

    def __len__(self) -> int:
        """Return the current size of the buffer."""
        return len(self.buffer)

    def clear(self) -> None:
        """Clear all transitions from the buffer."""
        self.buffer.clear()

    def get_statistics(self) -> dict:
        """
        Get buffer statistics.

        Returns:
            Dictionary of statistics.
        """
        stats = {
            "size": len(self.buffer),
            "max_size": self.max_size,
            "fill_ratio": len(self.buffer) / self.max_size,
        }
        if self.buffer:
            stats["mean_reward"] = float(np.mean([t.reward for t in self.buffer]))
        return stats

    def to_state(self) -> dict[str, torch.Tensor]:
        """Serializes the contents (oldest first) as tensors."""
        if not self.buffer:
            return {}
        return _to_tensors(list(self.buffer), "cpu")

    def load_state(self, state: dict[str, torch.Tensor] | None) -> None:
        """
        Replaces the contents with serialized transitions.

        Raises:
            ValueError: If the tensors have inconsistent lengths.
        """
        self.buffer.clear()
        if not state:
            return

        states = state["state"]
        actions = state["action"]
        rewards = state["reward"]
        next_states = state["next_state"]
        if not (len(states) == len(actions) == len(rewards) == len(next_states)):
            raise ValueError("Replay buffer state has inconsistent lengths")

        for i in range(len(states)):
            self.buffer.append(
                Transition(
                    state=states[i].numpy().astype(np.float32),
                    action=int(actions[i]),
                    reward=float(rewards[i]),
                    next_state=next_states[i].numpy().astype(np.float32),
                )
            )


def _to_tensors(transitions: list[Transition], device: torch.device | str) -> dict[str, torch.Tensor]:
    return {
        "state": torch.tensor(np.stack([t.state for t in transitions]), device=device),
        "action": torch.tensor([t.action for t in transitions], dtype=torch.long, device=device),
        "reward": torch.tensor([t.reward for t in transitions], dtype=torch.float32, device=device),
        "next_state": torch.tensor(np.stack([t.next_state for t in transitions]), device=device),
    }
