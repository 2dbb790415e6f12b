"""Tests for the network function approximators."""

import torch

from connectn.models import ConnectNModel, QNetwork, ValueNetwork


class TestQNetwork:
    """Tests for the action-value network."""

    def test_output_shape_and_range(self):
        """One sigmoid output per column."""
        model = QNetwork(92, 7)
        out = model(torch.randn(5, 92) * 10)
        assert out.shape == (5, 7)
        assert torch.all(out > 0) and torch.all(out < 1)

    def test_predict_single(self):
        """predict accepts an unbatched vector."""
        model = QNetwork(92, 7)
        assert model.predict(torch.zeros(92)).shape == (7,)

    def test_predict_no_grad(self):
        """predict does not track gradients."""
        model = QNetwork(92, 7)
        assert not model.predict(torch.zeros(2, 92)).requires_grad

    def test_config(self):
        """Config records sizes for serialization."""
        model = QNetwork(20, 4, [16, 8])
        config = model.get_config()
        assert config["input_size"] == 20
        assert config["output_size"] == 4
        assert config["hidden_sizes"] == [16, 8]
        assert config["param_count"] == model.param_count()

    def test_is_connectn_model(self):
        """Networks share the common base class."""
        assert isinstance(QNetwork(4, 2), ConnectNModel)
        assert "params" in QNetwork(4, 2).architecture_string()


class TestValueNetwork:
    """Tests for the position-value network."""

    def test_output_range(self):
        """Values are bounded by tanh."""
        model = ValueNetwork(42)
        out = model(torch.randn(8, 42) * 10)
        assert out.shape == (8, 1)
        assert torch.all(out.abs() < 1)

    def test_no_hidden_layers(self):
        """An empty hidden list is a linear model."""
        model = ValueNetwork(6, [])
        assert model(torch.zeros(1, 6)).shape == (1, 1)
