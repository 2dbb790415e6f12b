"""
Value-Network Search Strategy

Bounded minimax whose leaves are scored by a learned value network. The
network sees the board relative to the player who started the game and
predicts the final result from that player's side (+1 win, -1 loss, 0 draw).

Positions the agent moves from are labelled with the game result
once it is known and queued; the queue is trained on every learn_every games.
"""

import logging
import random
from pathlib import Path

import numpy as np
import torch

from ..data import Board, GameState, Player, encode_cells, winner_of
from ..evaluation.agents import Strategy
from ..evaluation.search import SearchConfig, SearchEngine
from ..models import ValueNetwork, seeded_init
from ..training import create_optimizer, set_lr, value_loss
from .config import ValueLearningConfig
from .persistence import AgentStateError, load_agent_state, save_agent_state
from .schedules import create_schedule

logger = logging.getLogger(__name__)

STATE_KIND = "value"


class NetworkEvaluator:
    """
    Leaf evaluator backed by a value network.

    Called concurrently from search threads; inference only.
    """

    def __init__(self, model: ValueNetwork, scale: float = 1000.0):
        self.model = model
        self.scale = scale
        self.start_player: Player = 1

    def __call__(self, board: Board, player: Player) -> float:
        features = torch.from_numpy(encode_cells(board, self.start_player))
        value = float(self.model.predict(features)[0])
        if player != self.start_player:
            value = -value
        return value * self.scale


class ValueStrategy(Strategy):
    """Minimax player with a trainable value-network heuristic."""

    def __init__(self, config: ValueLearningConfig | None = None, state_path: str | Path | None = None):
        """
        Initialize the strategy. The network is built by init().

        Args:
            config: Agent configuration.
            state_path: Overrides config.state_path. None disables persistence.
        """
        super().__init__()
        self.config = config or ValueLearningConfig()
        path = state_path if state_path is not None else self.config.state_path
        self.state_path = Path(path) if path is not None else None

        self._rng = random.Random(self.config.seed)
        self.lr_schedule = create_schedule(self.config.learning_rate)
        self.exploration_schedule = create_schedule(self.config.exploration)

        self.model: ValueNetwork | None = None
        self.optimizer: torch.optim.Optimizer | None = None
        self.evaluator: NetworkEvaluator | None = None
        self.engine: SearchEngine | None = None

        self.games_played = 0
        self.start_player: Player | None = None
        self._game_positions: list[np.ndarray] = []
        self._queue: list[tuple[np.ndarray, float]] = []
        self.last_loss: float | None = None

    @property
    def name(self) -> str:
        return "value-fixed" if self.config.fixed else "value"

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
    def pending_samples(self) -> int:
        """Number of labelled positions waiting for the next training round."""
        return len(self._queue)

    def setup(self, board: Board) -> bool:
        with seeded_init(self.config.seed):
            model = ValueNetwork(board.width * board.height, self.config.hidden_sizes)
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
        )
        self.evaluator = NetworkEvaluator(self.model, self.config.value_scale)
        self.engine = SearchEngine(
            SearchConfig(depth=self.config.depth, max_workers=self.config.max_workers),
            evaluator=self.evaluator,
        )
        self._game_positions = []
        self._queue = []
        return True

    def notify_start_player(self, player_id: Player) -> None:
        self.start_player = player_id
        self._game_positions = []

    def play(self, board: Board) -> bool:
        if not self.initialized or not board.legal_moves():
            return False

        start = self.start_player if self.start_player is not None else self.player_id
        self.evaluator.start_player = start

        if self._rng.random() < self.epsilon:
            column = self._rng.choice(board.legal_moves())
        else:
            column = self.engine.choose_move(board, self.player_id)

        position = encode_cells(board, start)
        if not board.play(self.player_id, column):
            return False

        if not self.fixed:
            self._game_positions.append(position)
        return True

    def outcome(self, board: Board, state: GameState) -> None:
        if not self.initialized:
            return

        self.games_played += 1
        if self.fixed:
            return

        start = self.start_player if self.start_player is not None else self.player_id
        winner = winner_of(state)
        if winner is None:
            label = 0.0
        else:
            label = 1.0 if winner == start else -1.0
        self._queue.extend((position, label) for position in self._game_positions)
        self._game_positions = []

        if self.games_played % self.config.learn_every == 0:
            self.learn()
        set_lr(self.optimizer, self.learning_rate)

    def learn(self) -> float | None:
        """
        Trains on all queued positions and empties the queue.

        Returns:
            Mean loss over the round, or None if nothing was queued.
        """
        if self.fixed or not self._queue:
            return None

        samples = list(self._queue)
        self._queue = []
        losses = []

        self.model.train()
        for _ in range(self.config.epochs):
            self._rng.shuffle(samples)
            for start in range(0, len(samples), self.config.batch_size):
                chunk = samples[start : start + self.config.batch_size]
                boards = torch.from_numpy(np.stack([s[0] for s in chunk]))
                labels = torch.tensor([s[1] for s in chunk], dtype=torch.float32)

                loss = value_loss(self.model(boards), labels)
                self.optimizer.zero_grad()
                loss.backward()
                self.optimizer.step()
                losses.append(loss.item())

        self.last_loss = float(np.mean(losses))
        logger.info(
            f"{self.name}: trained on {len(samples)} positions after "
            f"{self.games_played} games, loss={self.last_loss:.4f}"
        )
        return self.last_loss

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
        """Trains on any queued positions and persists the network."""
        if self.closed:
            return
        if self.initialized and not self.fixed:
            self.learn()
            if self.state_path is not None:
                save_agent_state(self.state_path, self.state_dict())
        super().close()
