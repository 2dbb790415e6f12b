"""Tests for the value-network search strategy."""

import numpy as np
import pytest
import torch

from connectn.data import Board, encode_cells
from connectn.evaluation import Arena, RandomStrategy
from connectn.learning import (
    NetworkEvaluator,
    QLearningConfig,
    QLearningStrategy,
    ScheduleConfig,
    ValueLearningConfig,
    ValueStrategy,
)
from connectn.models import ValueNetwork


def quiet_config(**kwargs) -> ValueLearningConfig:
    """Value agent config without exploration and with shallow search."""
    options = {
        "depth": 1,
        "seed": 0,
        "exploration": ScheduleConfig(start=0.0, floor=0.0),
    }
    options.update(kwargs)
    return ValueLearningConfig(**options)


class TestNetworkEvaluator:
    """Tests for the network-backed leaf evaluator."""

    def test_perspective_flip(self):
        """The non-starting player sees the negated value."""
        torch.manual_seed(0)
        evaluator = NetworkEvaluator(ValueNetwork(42), scale=100.0)
        evaluator.start_player = 1
        board = Board.from_moves([3, 2, 3])
        assert evaluator(board, 1) == pytest.approx(-evaluator(board, 2))

    def test_bounded_by_scale(self):
        """Leaf values stay within the configured scale."""
        evaluator = NetworkEvaluator(ValueNetwork(42), scale=50.0)
        assert abs(evaluator(Board.from_moves([0, 1]), 2)) <= 50.0


class TestValueStrategy:
    """Tests for the value-network player."""

    def test_takes_immediate_win(self):
        """Terminal scores dominate the learned heuristic."""
        board = Board()
        for col in range(3):
            board.play(1, col)
            board.play(2, col)
        agent = ValueStrategy(quiet_config())
        agent.init(board, 1)
        agent.notify_start_player(1)
        assert agent.play(board)
        assert board.moves[-1] == (3, 5)

    def test_records_position_before_move(self):
        """The recorded position is the board the agent moved from."""
        board = Board()
        agent = ValueStrategy(quiet_config())
        agent.init(board, 1)
        agent.notify_start_player(1)
        before = encode_cells(board, 1)

        assert agent.play(board)
        assert len(agent._game_positions) == 1
        np.testing.assert_array_equal(agent._game_positions[0], before)
        assert not np.any(agent._game_positions[0])

    def test_positions_labelled_from_start_player(self):
        """Recorded positions get +1 when the starting player wins."""
        board = Board()
        agent = ValueStrategy(quiet_config(learn_every=1000))
        agent.init(board, 2)
        agent.notify_start_player(1)
        board.play(1, 0)
        agent.play(board)
        board.play(1, 0)
        agent.play(board)

        agent.outcome(board, "player1_win")
        assert agent.pending_samples == 2
        assert all(label == 1.0 for _, label in agent._queue)

    def test_learns_every_n_games(self):
        """Queued positions are trained on and flushed every learn_every games."""
        agent = ValueStrategy(quiet_config(learn_every=2))
        arena = Arena(5, 4)
        arena.set_player(1, agent)
        arena.set_player(2, RandomStrategy(seed=1))

        arena.play_many(1)
        assert agent.pending_samples > 0
        assert agent.last_loss is None

        arena.play_many(1)
        assert agent.pending_samples == 0
        assert agent.last_loss is not None
        assert agent.games_played == 2

    def test_fixed_mode(self):
        """Fixed agents neither record positions nor change weights."""
        agent = ValueStrategy(quiet_config(fixed=True, learn_every=1))
        arena = Arena(5, 4)
        arena.set_player(1, agent)
        arena.set_player(2, RandomStrategy(seed=1))
        before = {k: v.clone() for k, v in agent.model.state_dict().items()}

        arena.play_many(3)

        assert agent.pending_samples == 0
        assert agent.epsilon == 0.0
        for key, value in agent.model.state_dict().items():
            assert torch.equal(before[key], value)

    def test_close_trains_and_saves(self, tmp_path):
        """Closing flushes queued positions and writes state."""
        path = tmp_path / "value-5x4.pt"
        agent = ValueStrategy(quiet_config(learn_every=100), state_path=path)
        with Arena(5, 4) as arena:
            arena.set_player(1, agent)
            arena.set_player(2, RandomStrategy(seed=1))
            arena.play_many(3)
            assert agent.pending_samples > 0

        assert agent.pending_samples == 0
        assert agent.last_loss is not None
        assert path.exists()

        restored = ValueStrategy(quiet_config(), state_path=path)
        assert restored.init(Board(5, 4), 1)
        assert restored.games_played == 3
        for key, value in agent.model.state_dict().items():
            assert torch.equal(restored.model.state_dict()[key], value)

    def test_wrong_kind_state_rejected(self, tmp_path):
        """A Q-learner state file cannot be loaded by the value agent."""
        path = tmp_path / "state.pt"
        q_agent = QLearningStrategy(QLearningConfig(), state_path=path)
        q_agent.init(Board(), 1)
        q_agent.close()

        agent = ValueStrategy(quiet_config(), state_path=path)
        assert not agent.init(Board(), 1)
