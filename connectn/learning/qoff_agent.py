"""
Offline Q-Learning Strategy

Chooses columns epsilon-greedily from a Q-network like the double-Q learner,
but defers learning to the end of each game. Every (state, column) the agent
played is labelled with the final result discounted by the number of moves
that were still to come, and the whole game is fitted at once. Only an
illegal greedy pick is corrected immediately.

The label of the move made k moves before the end (k >= 1) is

    (gamma ** k * reward + 1) / 2    with reward +1 win, -1 loss, 0 draw

which maps the discounted return into the sigmoid output range.
"""

import logging
import random
from pathlib import Path

import numpy as np
import torch

from ..data import Board, GameState, Player, encode_features, feature_size, winner_of
from ..evaluation.agents import Strategy
from ..models import QNetwork, seeded_init
from ..training import create_optimizer, masked_q_loss, set_lr
from .config import QOffConfig
from .persistence import AgentStateError, load_agent_state, save_agent_state
from .schedules import create_schedule

logger = logging.getLogger(__name__)

STATE_KIND = "qoff"


def default_hidden_sizes(width: int, height: int) -> list[int]:
    """Hidden layers sized from the number of cells n: 4n, 2n, n, n, n//2."""
    n = width * height
    return [4 * n, 2 * n, n, n, max(1, n // 2)]


def discounted_labels(num_moves: int, reward: float, gamma: float) -> list[float]:
    """
    Training targets for one finished game.

    Args:
        num_moves: Number of moves the agent made, oldest first.
        reward: Final result for the agent: 1 win, -1 loss, 0 draw.
        gamma: Per-move discount.

    Returns:
        One label in [0, 1] per move. The last move is discounted once.
    """
    return [(gamma ** (num_moves - i) * reward + 1.0) / 2.0 for i in range(num_moves)]


class QOffStrategy(Strategy):
    """Epsilon-greedy Q-learner trained once per finished game."""

    def __init__(self, config: QOffConfig | None = None, state_path: str | Path | None = None):
        """
        Initialize the learner. The network is built by init().

        Args:
            config: Learner configuration.
            state_path: Overrides config.state_path. None disables persistence.
        """
        super().__init__()
        self.config = config or QOffConfig()
        path = state_path if state_path is not None else self.config.state_path
        self.state_path = Path(path) if path is not None else None

        self._rng = random.Random(self.config.seed)
        self.lr_schedule = create_schedule(self.config.learning_rate)
        self.exploration_schedule = create_schedule(self.config.exploration)

        self.model: QNetwork | None = None
        self.optimizer: torch.optim.Optimizer | None = None

        self.games_played = 0
        self.start_player: Player | None = None
        self._trajectory: list[tuple[np.ndarray, int]] = []

        self.last_labels: list[float] | None = None
        self.last_loss: float | None = None

    @property
    def name(self) -> str:
        return "qoff-fixed" if self.config.fixed else "qoff"

    @property
    def fixed(self) -> bool:
        return self.config.fixed

    @property
    def epsilon(self) -> float:
        if self.fixed:
            return 0.0
        return self.exploration_schedule(self.games_played)

    @property
    def learning_rate(self) -> float:
        return self.lr_schedule(self.games_played)

    @property
    def pending_moves(self) -> int:
        """Moves of the current game waiting for the result."""
        return len(self._trajectory)

    # =========================================================================
    # Setup / persistence
    # =========================================================================

    def setup(self, board: Board) -> bool:
        hidden_sizes = self.config.hidden_sizes
        if hidden_sizes is None:
            hidden_sizes = default_hidden_sizes(board.width, board.height)

        with seeded_init(self.config.seed):
            model = QNetwork(feature_size(board.width, board.height), board.width, hidden_sizes)
        games_played = 0

        if self.state_path is not None:
            try:
                state = load_agent_state(
                    self.state_path, STATE_KIND, board.width, board.height, board.connect
                )
                if state is not None:
                    model.load_state_dict(state["model"])
                    games_played = state["games_played"]
            except (AgentStateError, KeyError, RuntimeError) as e:
                logger.warning(f"{self.name}: unusable state file {self.state_path}: {e}")
                return False

        self.model = model
        self.games_played = games_played
        self.optimizer = create_optimizer(
            self.model.parameters(),
            optimizer_type=self.config.optimizer,
            learning_rate=self.learning_rate,
            momentum=self.config.momentum,
        )
        self._trajectory = []

        logger.info(
            f"{self.name} ready as player {self.player_id}: "
            f"{self.model.architecture_string()}, {self.games_played} games played"
        )
        return True

    def state_dict(self) -> dict:
        return {
            "kind": STATE_KIND,
            "width": self.width,
            "height": self.height,
            "connect": self.connect,
            "games_played": self.games_played,
            "model": self.model.state_dict(),
        }

    def close(self) -> None:
        """Persists the network. Fixed or uninitialized agents write nothing."""
        if self.closed:
            return
        if self.initialized and not self.fixed and self.state_path is not None:
            save_agent_state(self.state_path, self.state_dict())
        super().close()

    # =========================================================================
    # Game loop
    # =========================================================================

    def notify_start_player(self, player_id: Player) -> None:
        self.start_player = player_id
        self._trajectory = []

    def encode(self, board: Board) -> np.ndarray:
        start = self.start_player if self.start_player is not None else self.player_id
        return encode_features(board, self.player_id, start)

    def q_values(self, state: np.ndarray) -> torch.Tensor:
        return self.model.predict(torch.from_numpy(state))

    def play(self, board: Board) -> bool:
        if not self.initialized or not board.legal_moves():
            return False

        state = self.encode(board)
        column = self._select_action(state, board)
        if not board.play(self.player_id, column):
            return False

        if not self.fixed:
            self._trajectory.append((state, column))
        return True

    def outcome(self, board: Board, state: GameState) -> None:
        if not self.initialized:
            return

        if not self.fixed and self._trajectory:
            labels = discounted_labels(len(self._trajectory), self._reward(state), self.config.gamma)
            states = torch.from_numpy(np.stack([s for s, _ in self._trajectory]))
            actions = torch.tensor([a for _, a in self._trajectory], dtype=torch.long)
            targets = torch.tensor(labels, dtype=torch.float32)
            for _ in range(self.config.epochs):
                self._fit(states, actions, targets)
            self.last_labels = labels
        self._trajectory = []

        self.games_played += 1
        if self.fixed:
            return
        set_lr(self.optimizer, self.learning_rate)

        if self.games_played % 1000 == 0:
            logger.info(
                f"{self.name} (player {self.player_id}): {self.games_played} games, "
                f"epsilon={self.epsilon:.4f}, lr={self.learning_rate:.5f}"
            )

    def _reward(self, state: GameState) -> float:
        winner = winner_of(state)
        if winner is None:
            return 0.0
        return 1.0 if winner == self.player_id else -1.0

    # =========================================================================
    # Action selection and updates
    # =========================================================================

    def _select_action(self, state: np.ndarray, board: Board) -> int:
        legal = board.legal_moves()
        if self._rng.random() < self.epsilon:
            return self._rng.choice(legal)

        q = self.q_values(state)
        column = int(torch.argmax(q))
        if column in legal:
            return column

        if self.fixed:
            return max(legal, key=lambda col: (float(q[col]), -col))

        self._fit(
            torch.from_numpy(state).unsqueeze(0),
            torch.tensor([column], dtype=torch.long),
            torch.tensor([self.config.illegal_target], dtype=torch.float32),
        )
        return self._rng.choice(legal)

    def _fit(self, states: torch.Tensor, actions: torch.Tensor, targets: torch.Tensor) -> None:
        self.model.train()
        loss = masked_q_loss(self.model(states), actions, targets)

        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.step()
        self.last_loss = loss.item()
