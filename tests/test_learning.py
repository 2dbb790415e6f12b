"""Tests for the double-Q learner, replay buffer, schedules and persistence."""

import random

import numpy as np
import pytest
import torch

from connectn.data import Board, feature_size
from connectn.evaluation import Arena, RandomStrategy
from connectn.learning import (
    AgentStateError,
    ExponentialDecay,
    LinearDecay,
    QLearningConfig,
    QLearningStrategy,
    ReplayBuffer,
    RewardConfig,
    ScheduleConfig,
    Transition,
    create_schedule,
    default_state_path,
    load_agent_state,
    q_agent,
    save_agent_state,
)


def greedy_config(**kwargs) -> QLearningConfig:
    """Learner config without exploration."""
    return QLearningConfig(
        exploration=ScheduleConfig(start=0.0, floor=0.0),
        seed=0,
        **kwargs,
    )


def make_transition(action: int, size: int = 4) -> Transition:
    return Transition(
        state=np.full(size, action, dtype=np.float32),
        action=action,
        reward=0.5,
        next_state=np.zeros(size, dtype=np.float32),
    )


class TestSchedules:
    """Tests for decay schedules."""

    def test_exponential_half_life(self):
        """Value halves every half_life games."""
        schedule = ExponentialDecay(start=0.4, floor=0.0, half_life=100)
        assert schedule(0) == pytest.approx(0.4)
        assert schedule(100) == pytest.approx(0.2)
        assert schedule(200) == pytest.approx(0.1)

    def test_exponential_floor(self):
        """Value never drops below the floor."""
        schedule = ExponentialDecay(start=1.0, floor=0.05, half_life=10)
        assert schedule(10_000) == 0.05

    def test_linear(self):
        """Linear decay reaches the floor after decay_games."""
        schedule = LinearDecay(start=1.0, floor=0.2, decay_games=100)
        assert schedule(50) == pytest.approx(0.6)
        assert schedule(100) == pytest.approx(0.2)
        assert schedule(500) == pytest.approx(0.2)

    @pytest.mark.parametrize("kind", ["exponential", "linear"])
    def test_monotonic(self, kind):
        """Schedules never increase with games played."""
        schedule = create_schedule(ScheduleConfig(start=0.5, floor=0.01, kind=kind, half_life=50, decay_games=300))
        values = [schedule(g) for g in range(0, 1000, 7)]
        assert all(a >= b for a, b in zip(values, values[1:]))

    def test_unknown_kind(self):
        """Unknown schedule kinds are rejected."""
        with pytest.raises(ValueError):
            create_schedule(ScheduleConfig(start=1.0, floor=0.0, kind="cosine"))


class TestReplayBuffer:
    """Tests for the FIFO replay buffer."""

    def test_fifo_eviction(self):
        """Oldest transitions are dropped first."""
        buffer = ReplayBuffer(max_size=3)
        for action in range(5):
            buffer.add(make_transition(action))
        assert len(buffer) == 3
        assert [t.action for t in buffer.buffer] == [2, 3, 4]

    def test_sample_size(self):
        """Sampling never returns more than the buffer holds."""
        buffer = ReplayBuffer(max_size=10)
        assert buffer.sample(4) == []
        for action in range(3):
            buffer.add(make_transition(action))
        assert len(buffer.sample(8)) == 3

    def test_sample_distinct_stored(self):
        """Samples are distinct transitions taken from the buffer."""
        buffer = ReplayBuffer(max_size=20)
        for action in range(20):
            buffer.add(make_transition(action))
        sample = buffer.sample(8, random.Random(0))
        actions = [t.action for t in sample]
        assert len(set(actions)) == 8
        assert all(any(t is stored for stored in buffer.buffer) for t in sample)

    def test_sample_batch_tensors(self):
        """Batches are stacked tensors."""
        buffer = ReplayBuffer(max_size=10)
        for action in range(5):
            buffer.add(make_transition(action))
        batch = buffer.sample_batch(4)
        assert batch["state"].shape == (4, 4)
        assert batch["action"].dtype == torch.long
        assert batch["reward"].shape == (4,)
        assert batch["next_state"].shape == (4, 4)

    def test_empty_batch(self):
        """An empty buffer yields an empty batch."""
        assert ReplayBuffer().sample_batch(8) == {}

    def test_state_round_trip(self):
        """Serialized contents reload in order."""
        buffer = ReplayBuffer(max_size=5)
        for action in range(4):
            buffer.add(make_transition(action))
        restored = ReplayBuffer(max_size=5)
        restored.load_state(buffer.to_state())
        assert [t.action for t in restored.buffer] == [0, 1, 2, 3]
        np.testing.assert_array_equal(restored.buffer[2].state, buffer.buffer[2].state)

    def test_statistics(self):
        """Statistics report fill level."""
        buffer = ReplayBuffer(max_size=4)
        buffer.add(make_transition(0))
        stats = buffer.get_statistics()
        assert stats["size"] == 1
        assert stats["fill_ratio"] == 0.25


class TestConfig:
    """Tests for learner configuration."""

    def test_yaml_round_trip(self, tmp_path):
        """Nested config survives save and load."""
        config = QLearningConfig(
            gamma=0.8,
            hidden_sizes=[32],
            rewards=RewardConfig(win=0.9),
            exploration=ScheduleConfig(start=0.3, floor=0.02, kind="linear", decay_games=500),
        )
        path = tmp_path / "q.yaml"
        config.to_yaml(path)
        loaded = QLearningConfig.from_yaml(path)
        assert loaded == config

    def test_rewards_in_output_range(self):
        """Rewards outside the sigmoid range are rejected."""
        with pytest.raises(ValueError):
            QLearningConfig(rewards=RewardConfig(win=2.0))

    def test_invalid_gamma(self):
        """gamma is a blend weight in [0, 1]."""
        with pytest.raises(ValueError):
            QLearningConfig(gamma=1.5)

    def test_default_reward_shape(self):
        """Illegal sits just below the midpoint; win and loss bound the range."""
        rewards = RewardConfig()
        assert rewards.loss < rewards.illegal < rewards.step == rewards.draw < rewards.win


class TestQLearningStrategy:
    """Tests for the double-Q learner."""

    def test_init_builds_networks(self):
        """init sizes the networks from the board geometry."""
        agent = QLearningStrategy(greedy_config())
        assert agent.init(Board(5, 4), 1)
        assert agent.online.input_size == feature_size(5, 4)
        assert agent.online.output_size == 5
        for a, b in zip(agent.online.parameters(), agent.target.parameters()):
            assert torch.equal(a, b)

    def test_terminal_target_is_win_reward(self):
        """After a won game the last action's target is exactly the win reward."""
        board = Board()
        agent = QLearningStrategy(greedy_config())
        agent.init(board, 1)
        agent.notify_start_player(1)
        assert agent.play(board)
        column = board.moves[-1][0]

        agent.outcome(board, "player1_win")
        assert agent.last_action == column
        assert agent.last_targets[column].item() == 1.0

    @pytest.mark.parametrize(
        "state, expected",
        [("player2_win", 0.0), ("draw", 0.5)],
    )
    def test_terminal_target_loss_and_draw(self, state, expected):
        """Losses and draws use their literal rewards."""
        board = Board()
        agent = QLearningStrategy(greedy_config())
        agent.init(board, 1)
        agent.notify_start_player(1)
        agent.play(board)
        agent.outcome(board, state)
        assert agent.last_targets[agent.last_action].item() == expected

    def test_terminal_update_moves_toward_reward(self):
        """Training on a win raises the chosen action's value."""
        board = Board()
        agent = QLearningStrategy(greedy_config())
        agent.init(board, 1)
        agent.notify_start_player(1)
        state = agent.encode(board)
        agent.play(board)
        column = board.moves[-1][0]
        before = agent.q_values(state)[column].item()
        agent.outcome(board, "player1_win")
        after = agent.q_values(state)[column].item()
        assert after > before

    def test_other_outputs_keep_prediction(self):
        """Targets for untaken actions equal the prediction."""
        board = Board()
        agent = QLearningStrategy(greedy_config())
        agent.init(board, 1)
        agent.notify_start_player(1)
        state = agent.encode(board)
        predicted = agent.q_values(state)
        agent.play(board)
        agent.outcome(board, "player1_win")
        column = agent.last_action
        for col in range(board.width):
            if col != column:
                assert agent.last_targets[col].item() == pytest.approx(predicted[col].item())

    def test_transition_stored_on_next_turn(self):
        """The previous move becomes a replay transition on the agent's next turn."""
        board = Board()
        agent = QLearningStrategy(greedy_config())
        agent.init(board, 1)
        agent.notify_start_player(1)
        agent.play(board)
        assert len(agent.buffer) == 0
        board.play(2, 0)
        agent.play(board)
        assert len(agent.buffer) == 1
        assert agent.buffer.buffer[0].reward == agent.config.rewards.step

    def test_target_synced_after_game(self):
        """The target network matches the online network after each game."""
        board = Board()
        agent = QLearningStrategy(greedy_config())
        agent.init(board, 1)
        agent.notify_start_player(1)
        agent.play(board)
        board.play(2, 0)
        agent.play(board)
        agent.outcome(board, "draw")
        for a, b in zip(agent.online.parameters(), agent.target.parameters()):
            assert torch.equal(a, b)
        assert agent.games_played == 1

    def test_illegal_greedy_pick(self, monkeypatch):
        """An illegal argmax is penalised and replaced by a legal column."""
        board = Board(3, 1)
        board.play(2, 0)
        agent = QLearningStrategy(greedy_config())
        agent.init(board, 1)
        agent.notify_start_player(2)
        monkeypatch.setattr(agent, "q_values", lambda state: torch.tensor([0.9, 0.1, 0.2]))

        assert agent.play(board)
        assert board.moves[-1][0] in (1, 2)
        assert agent.last_action == 0
        assert agent.last_targets[0].item() == pytest.approx(0.4)

    def test_fixed_mode_does_not_learn(self):
        """Fixed agents never change weights or buffer and never explore."""
        agent = QLearningStrategy(QLearningConfig(fixed=True, seed=0))
        arena = Arena(5, 4)
        arena.set_player(1, agent)
        arena.set_player(2, RandomStrategy(seed=1))
        before = {k: v.clone() for k, v in agent.online.state_dict().items()}

        arena.play_many(5)

        assert agent.epsilon == 0.0
        assert len(agent.buffer) == 0
        for key, value in agent.online.state_dict().items():
            assert torch.equal(before[key], value)
        assert agent.last_targets is None

    def test_fixed_mode_illegal_pick_is_deterministic(self, monkeypatch):
        """Fixed agents fall back to their best legal column."""
        board = Board(3, 1)
        board.play(2, 0)
        agent = QLearningStrategy(QLearningConfig(fixed=True, seed=0))
        agent.init(board, 1)
        monkeypatch.setattr(agent, "q_values", lambda state: torch.tensor([0.9, 0.1, 0.2]))
        assert agent.play(board)
        assert board.moves[-1][0] == 2

    def test_training_games(self):
        """A learner completes a run of games against random play."""
        agent = QLearningStrategy(QLearningConfig(seed=0, replay_batch_size=4))
        arena = Arena(5, 4)
        arena.set_player(1, agent)
        arena.set_player(2, RandomStrategy(seed=1))
        result = arena.play_many(20)
        assert result.num_games == 20
        assert agent.games_played == 20
        assert len(agent.buffer) > 0

    def test_epsilon_decays(self):
        """Exploration shrinks as games are played."""
        agent = QLearningStrategy(QLearningConfig(exploration=ScheduleConfig(start=0.5, floor=0.01, half_life=10)))
        start = agent.epsilon
        agent.games_played = 50
        assert agent.epsilon < start

    def test_bootstrap_uses_target_network(self):
        """A non-terminal target blends the step reward with the target net's best value."""
        board = Board()
        agent = QLearningStrategy(greedy_config())
        agent.init(board, 1)
        agent.notify_start_player(1)
        with torch.no_grad():
            agent.target.head[0].bias.fill_(2.0)

        state = agent.encode(board)
        board.play(1, 3)
        board.play(2, 3)
        next_state = agent.encode(board)
        next_tensor = torch.from_numpy(next_state)
        target_best = agent.target.predict(next_tensor).max().item()
        online_best = agent.online.predict(next_tensor).max().item()
        assert target_best != pytest.approx(online_best)

        agent._learn_step(state, 3, next_state)

        gamma = agent.config.gamma
        expected = (1 - gamma) * agent.config.rewards.step + gamma * target_best
        assert agent.last_action == 3
        assert agent.last_targets[3].item() == pytest.approx(expected, abs=1e-6)

    def test_replay_batch_joins_update(self, monkeypatch):
        """Each update fits the newest transition together with a replayed batch."""
        board = Board(5, 4)
        agent = QLearningStrategy(greedy_config(replay_batch_size=4))
        agent.init(board, 1)
        size = feature_size(5, 4)
        for action in range(10):
            agent.buffer.add(make_transition(action % 5, size))

        batch_sizes = []
        real_loss = q_agent.masked_q_loss

        def recording_loss(q_pred, actions, targets):
            batch_sizes.append(q_pred.shape[0])
            return real_loss(q_pred, actions, targets)

        monkeypatch.setattr(q_agent, "masked_q_loss", recording_loss)
        state = agent.encode(board)
        agent._learn_step(state, 0, state)

        assert batch_sizes == [1 + 4]
        assert len(agent.buffer) == 11

    def test_seeded_init_leaves_global_rng(self):
        """Seeding a learner does not reseed torch for the rest of the process."""
        torch.manual_seed(123)
        expected = torch.rand(3)

        torch.manual_seed(123)
        QLearningStrategy(QLearningConfig(seed=7, hidden_sizes=[8])).init(Board(5, 4), 1)
        assert torch.equal(torch.rand(3), expected)

    def test_same_seed_same_weights(self):
        """Equal seeds give equal initial networks."""
        a = QLearningStrategy(QLearningConfig(seed=7, hidden_sizes=[8]))
        b = QLearningStrategy(QLearningConfig(seed=7, hidden_sizes=[8]))
        a.init(Board(5, 4), 1)
        b.init(Board(5, 4), 2)
        for pa, pb in zip(a.online.parameters(), b.online.parameters()):
            assert torch.equal(pa, pb)


class TestPersistence:
    """Tests for saving and loading agent state."""

    def test_default_path(self, tmp_path):
        """Default file name carries kind and geometry."""
        assert default_state_path("qlearn", 7, 6, 4, tmp_path) == tmp_path / "qlearn-7x6-connect4.pt"
        assert default_state_path("qlearn", 7, 6, 5, tmp_path) == tmp_path / "qlearn-7x6-connect5.pt"

    def test_missing_file(self, tmp_path):
        """A missing file means fresh state."""
        assert load_agent_state(tmp_path / "none.pt", "qlearn", 7, 6, 4) is None

    def test_geometry_mismatch(self, tmp_path):
        """State for another board size is rejected."""
        path = tmp_path / "state.pt"
        save_agent_state(
            path, {"kind": "qlearn", "width": 7, "height": 6, "connect": 4, "games_played": 3}
        )
        with pytest.raises(AgentStateError):
            load_agent_state(path, "qlearn", 5, 4, 4)

    def test_win_length_mismatch(self, tmp_path):
        """State for another win length on the same board is rejected."""
        path = tmp_path / "state.pt"
        save_agent_state(
            path, {"kind": "qlearn", "width": 7, "height": 6, "connect": 4, "games_played": 3}
        )
        assert load_agent_state(path, "qlearn", 7, 6, 4)["games_played"] == 3
        with pytest.raises(AgentStateError):
            load_agent_state(path, "qlearn", 7, 6, 5)

    def test_win_length_mismatch_fails_init(self, tmp_path):
        """A connect-4 learner cannot be loaded into a connect-5 game or overwrite its file."""
        path = tmp_path / "q.pt"
        agent = QLearningStrategy(QLearningConfig(hidden_sizes=[16]), state_path=path)
        assert agent.init(Board(7, 6, 4), 1)
        agent.close()
        saved = path.read_bytes()

        other = QLearningStrategy(QLearningConfig(hidden_sizes=[16]), state_path=path)
        assert not other.init(Board(7, 6, 5), 1)
        other.close()
        assert path.read_bytes() == saved

    def test_round_trip(self, tmp_path):
        """A closed learner reloads its games, weights and buffer."""
        path = tmp_path / "qlearn-5x4.pt"
        agent = QLearningStrategy(QLearningConfig(seed=0), state_path=path)
        with Arena(5, 4) as arena:
            arena.set_player(1, agent)
            arena.set_player(2, RandomStrategy(seed=1))
            arena.play_many(5)
        assert path.exists()

        restored = QLearningStrategy(QLearningConfig(seed=1), state_path=path)
        assert restored.init(Board(5, 4), 2)
        assert restored.games_played == 5
        assert len(restored.buffer) == len(agent.buffer)
        for key, value in agent.online.state_dict().items():
            assert torch.equal(restored.online.state_dict()[key], value)
        assert restored.epsilon == agent.epsilon

    def test_malformed_file_fails_init(self, tmp_path):
        """A corrupt state file makes init fail and is left untouched."""
        path = tmp_path / "qlearn-7x6.pt"
        path.write_bytes(b"not a torch file")
        agent = QLearningStrategy(QLearningConfig(), state_path=path)
        assert not agent.init(Board(), 1)
        assert not agent.initialized
        agent.close()
        assert path.read_bytes() == b"not a torch file"

    def test_incompatible_network_fails_init(self, tmp_path):
        """Weights for different layer sizes make init fail."""
        path = tmp_path / "q.pt"
        agent = QLearningStrategy(QLearningConfig(hidden_sizes=[16]), state_path=path)
        agent.init(Board(), 1)
        agent.close()

        other = QLearningStrategy(QLearningConfig(hidden_sizes=[32]), state_path=path)
        assert not other.init(Board(), 1)

    def test_fixed_agent_does_not_save(self, tmp_path):
        """Fixed agents never write state."""
        path = tmp_path / "q.pt"
        agent = QLearningStrategy(QLearningConfig(fixed=True), state_path=path)
        agent.init(Board(), 1)
        agent.close()
        assert not path.exists()

    def test_close_idempotent(self, tmp_path):
        """Closing twice writes once and does not fail."""
        path = tmp_path / "q.pt"
        agent = QLearningStrategy(QLearningConfig(), state_path=path)
        agent.init(Board(), 1)
        agent.close()
        mtime = path.stat().st_mtime_ns
        agent.close()
        assert path.stat().st_mtime_ns == mtime
