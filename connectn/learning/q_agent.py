"""
Double-Q Learning Strategy with Experience Replay

An online network is trained every ply toward a blend of the step reward and
the target network's best value for the resulting position. The target
network is resynchronized after completed games. Each update also replays a
random batch of stored transitions with targets recomputed through the
current target network.

Lifecycle:
    init() -> [notify_start_player() -> play()* -> outcome()]* -> close()
"""

import logging
import random
from pathlib import Path

import numpy as np
import torch

from ..data import Board, GameState, Player, encode_features, feature_size, winner_of
from ..evaluation.agents import Strategy
from ..models import QNetwork, seeded_init
from ..training import create_optimizer, full_q_targets, masked_q_loss, set_lr, td_targets
from .config import QLearningConfig
from .persistence import AgentStateError, load_agent_state, save_agent_state
from .replay_buffer import ReplayBuffer, Transition
from .schedules import create_schedule

logger = logging.getLogger(__name__)

STATE_KIND = "qlearn"


class QLearningStrategy(Strategy):
    """
    Epsilon-greedy double-Q learner.

    Transition timing: the (state, action) of one turn stays pending until
    the agent's next turn (completed with the new observation as next
    state) or until the game ends (completed with the literal terminal
    reward).
    """

    def __init__(self, config: QLearningConfig | None = None, state_path: str | Path | None = None):
        """
        Initialize the learner. Networks are built by init().

        Args:
            config: Learner configuration.
            state_path: Overrides config.state_path. None disables persistence.
        """
        super().__init__()
        self.config = config or QLearningConfig()
        path = state_path if state_path is not None else self.config.state_path
        self.state_path = Path(path) if path is not None else None

        self._rng = random.Random(self.config.seed)
        self.lr_schedule = create_schedule(self.config.learning_rate)
        self.exploration_schedule = create_schedule(self.config.exploration)

        self.online: QNetwork | None = None
        self.target: QNetwork | None = None
        self.optimizer: torch.optim.Optimizer | None = None
        self.buffer = ReplayBuffer(self.config.replay_capacity)

        self.games_played = 0
        self.start_player: Player | None = None
        self._pending: tuple[np.ndarray, int] | None = None

        self.last_targets: torch.Tensor | None = None
        self.last_action: int | None = None
        self.last_loss: float | None = None

    @property
    def name(self) -> str:
        return "qlearn-fixed" if self.config.fixed else "qlearn"

    @property
    def fixed(self) -> bool:
        return self.config.fixed

    @property
    def epsilon(self) -> float:
        """Current exploration probability. Always 0 in fixed mode."""
        if self.fixed:
            return 0.0
        return self.exploration_schedule(self.games_played)

    @property
    def learning_rate(self) -> float:
        return self.lr_schedule(self.games_played)

    # =========================================================================
    # Setup / persistence
    # =========================================================================

    def setup(self, board: Board) -> bool:
        input_size = feature_size(board.width, board.height)
        with seeded_init(self.config.seed):
            online = QNetwork(input_size, board.width, self.config.hidden_sizes)
            target = QNetwork(input_size, board.width, self.config.hidden_sizes)
        buffer = ReplayBuffer(self.config.replay_capacity)
        games_played = 0

        if self.state_path is not None:
            try:
                state = load_agent_state(
                    self.state_path, STATE_KIND, board.width, board.height, board.connect
                )
                if state is not None:
                    online.load_state_dict(state["online"])
                    target.load_state_dict(state["target"])
                    buffer.load_state(state.get("buffer"))
                    games_played = state["games_played"]
            except (AgentStateError, KeyError, RuntimeError, ValueError) as e:
                logger.warning(f"{self.name}: unusable state file {self.state_path}: {e}")
                return False
            if state is None:
                target.load_state_dict(online.state_dict())
        else:
            target.load_state_dict(online.state_dict())

        self.online = online
        self.target = target
        self.buffer = buffer
        self.games_played = games_played
        self.optimizer = create_optimizer(
            self.online.parameters(),
            optimizer_type=self.config.optimizer,
            learning_rate=self.learning_rate,
            momentum=self.config.momentum,
        )
        self.target.eval()
        for param in self.target.parameters():
            param.requires_grad_(False)

        logger.info(
            f"{self.name} ready as player {self.player_id}: "
            f"{self.online.architecture_string()}, {self.games_played} games played"
        )
        return True

    def state_dict(self) -> dict:
        """Returns the persistable agent state."""
        return {
            "kind": STATE_KIND,
            "width": self.width,
            "height": self.height,
            "connect": self.connect,
            "games_played": self.games_played,
            "online": self.online.state_dict(),
            "target": self.target.state_dict(),
            "buffer": self.buffer.to_state(),
        }

    def close(self) -> None:
        """Persists learned state. Fixed or uninitialized agents write nothing."""
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
        self._pending = None

    def encode(self, board: Board) -> np.ndarray:
        start = self.start_player if self.start_player is not None else self.player_id
        return encode_features(board, self.player_id, start)

    def play(self, board: Board) -> bool:
        if not self.initialized or not board.legal_moves():
            return False

        state = self.encode(board)
        if self._pending is not None and not self.fixed:
            prev_state, prev_action = self._pending
            self._learn_step(prev_state, prev_action, state)

        column = self._select_action(state, board)
        if not board.play(self.player_id, column):
            return False

        self._pending = (state, column)
        return True

    def outcome(self, board: Board, state: GameState) -> None:
        if not self.initialized:
            return

        if self._pending is not None and not self.fixed:
            prev_state, prev_action = self._pending
            reward = self._terminal_reward(state)
            self._fit(
                torch.from_numpy(prev_state).unsqueeze(0),
                torch.tensor([prev_action], dtype=torch.long),
                torch.tensor([reward], dtype=torch.float32),
            )
        self._pending = None
        self._end_game()

    def _terminal_reward(self, state: GameState) -> float:
        rewards = self.config.rewards
        winner = winner_of(state)
        if winner is None:
            return rewards.draw
        return rewards.win if winner == self.player_id else rewards.loss

    def _end_game(self) -> None:
        self.games_played += 1
        if self.fixed:
            return

        if self.games_played % self.config.target_sync_every == 0:
            self.target.load_state_dict(self.online.state_dict())
        set_lr(self.optimizer, self.learning_rate)

        if self.games_played % 1000 == 0:
            logger.info(
                f"{self.name} (player {self.player_id}): {self.games_played} games, "
                f"epsilon={self.epsilon:.4f}, lr={self.learning_rate:.5f}, "
                f"buffer={len(self.buffer)}"
            )

    # =========================================================================
    # Action selection and updates
    # =========================================================================

    def q_values(self, state: np.ndarray) -> torch.Tensor:
        """Online network action values for an encoded state."""
        return self.online.predict(torch.from_numpy(state))

    def _select_action(self, state: np.ndarray, board: Board) -> int:
        legal = board.legal_moves()
        if self._rng.random() < self.epsilon:
            return self._rng.choice(legal)

        q = self.q_values(state)
        column = int(torch.argmax(q))
        if column in legal:
            return column

        if self.fixed:
            # Best legal column keeps evaluation deterministic
            return max(legal, key=lambda col: (float(q[col]), -col))

        self._fit(
            torch.from_numpy(state).unsqueeze(0),
            torch.tensor([column], dtype=torch.long),
            torch.tensor([self.config.rewards.illegal], dtype=torch.float32),
        )
        return self._rng.choice(legal)

    def _learn_step(self, state: np.ndarray, action: int, next_state: np.ndarray) -> None:
        """Trains on the completed transition plus a replayed batch, then stores it."""
        states = torch.from_numpy(state).unsqueeze(0)
        actions = torch.tensor([action], dtype=torch.long)
        rewards = torch.tensor([self.config.rewards.step], dtype=torch.float32)
        next_states = torch.from_numpy(next_state).unsqueeze(0)

        batch = self.buffer.sample_batch(self.config.replay_batch_size, self._rng)
        if batch:
            states = torch.cat([states, batch["state"]])
            actions = torch.cat([actions, batch["action"]])
            rewards = torch.cat([rewards, batch["reward"]])
            next_states = torch.cat([next_states, batch["next_state"]])

        with torch.no_grad():
            next_q = self.target(next_states)
        targets = td_targets(rewards, next_q, self.config.gamma)
        self._fit(states, actions, targets)

        self.buffer.add(
            Transition(
                state=state,
                action=action,
                reward=self.config.rewards.step,
                next_state=next_state,
            )
        )

    def _fit(self, states: torch.Tensor, actions: torch.Tensor, targets: torch.Tensor) -> None:
        """One optimizer step of action-masked regression. Row 0 is recorded."""
        self.online.train()
        q_pred = self.online(states)
        loss = masked_q_loss(q_pred, actions, targets)

        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.step()

        self.last_targets = full_q_targets(q_pred, actions, targets)[0]
        self.last_action = int(actions[0])
        self.last_loss = loss.item()
