"""
Strategy Implementations for Connect-N

Provides the strategy base class and the non-learning players:
- RandomStrategy: Uniform random column with a rejection loop
- ConsoleStrategy: Human player over text input/output
- SearchStrategy: Parallel bounded minimax

Learning strategies live in connectn.learning.
"""

import logging
import random
from abc import ABC, abstractmethod
from typing import Callable

from ..data import PLAYERS, Board, GameState, Player, board_to_string, winner_of
from .search import Evaluator, SearchConfig, SearchEngine, evaluate_position

logger = logging.getLogger(__name__)


class Strategy(ABC):
    """
    Abstract base class for connect-N players.

    A strategy is bound to one player id on one board geometry by init(),
    may be reused for many sequential games, and must be closed with
    close() (or used as a context manager) so learned state is persisted.
    """

    def __init__(self) -> None:
        self.player_id: Player | None = None
        self.width: int | None = None
        self.height: int | None = None
        self.connect: int | None = None
        self.initialized = False
        self.closed = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Returns the strategy's name."""
        pass

    def init(self, board: Board, player_id: int) -> bool:
        """
        Binds the strategy to a board geometry and a player id.

        Returns:
            False if the id is not 1 or 2 or the strategy cannot set up
            (for example, incompatible persisted state).
        """
        if player_id not in PLAYERS:
            logger.warning(f"{self.name}: invalid player id {player_id}")
            return False

        self.player_id = player_id
        self.width = board.width
        self.height = board.height
        self.connect = board.connect
        self.initialized = self.setup(board)
        return self.initialized

    def setup(self, board: Board) -> bool:
        """Strategy-specific initialization. Called by init()."""
        return True

    def notify_start_player(self, player_id: Player) -> None:
        """Called before each game with the id of the player who moves first."""
        pass

    @abstractmethod
    def play(self, board: Board) -> bool:
        """
        Applies exactly one legal move for this strategy's player.

        Returns:
            True if a move was made, False on failure (board unchanged).
        """
        pass

    def outcome(self, board: Board, state: GameState) -> None:
        """Called once after each finished game. Must not mutate the board."""
        pass

    def close(self) -> None:
        """Releases resources and persists learned state. Idempotent."""
        self.closed = True

    def __enter__(self) -> "Strategy":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(player_id={self.player_id})"


class RandomStrategy(Strategy):
    """Strategy that plays uniformly random legal columns."""

    def __init__(self, seed: int | None = None):
        super().__init__()
        self._rng = random.Random(seed)

    @property
    def name(self) -> str:
        return "random"

    def play(self, board: Board) -> bool:
        if not self.initialized or not board.legal_moves():
            return False

        # Rejection loop terminates because a legal column exists
        while True:
            column = self._rng.randrange(board.width)
            if board.play(self.player_id, column):
                return True


class ConsoleStrategy(Strategy):
    """
    Human player reading column indices from a text prompt.

    Input and output are injectable so the strategy can be driven by tests
    or by any line-oriented frontend.
    """

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
    ):
        super().__init__()
        self._input = input_fn
        self._output = output_fn

    @property
    def name(self) -> str:
        return "console"

    def play(self, board: Board) -> bool:
        if not self.initialized or not board.legal_moves():
            return False

        self._output(board_to_string(board))
        prompt = f"Player {self.player_id}, choose a column [0-{board.width - 1}]: "
        while True:
            try:
                text = self._input(prompt)
            except EOFError:
                logger.info("Console input closed")
                return False

            try:
                column = int(text.strip())
            except ValueError:
                self._output(f"Not a column number: {text!r}")
                continue

            if board.play(self.player_id, column):
                return True
            self._output(f"Column {column} cannot be played")

    def outcome(self, board: Board, state: GameState) -> None:
        self._output(board_to_string(board))
        winner = winner_of(state)
        if winner is None:
            self._output("Draw!")
        elif winner == self.player_id:
            self._output("You win!")
        else:
            self._output("You lose!")


class SearchStrategy(Strategy):
    """Strategy that picks moves with parallel bounded minimax."""

    def __init__(
        self,
        config: SearchConfig | None = None,
        evaluator: Evaluator = evaluate_position,
    ):
        """
        Initialize the search strategy.

        Args:
            config: Search configuration (depth, workers).
            evaluator: Leaf evaluation function.
        """
        super().__init__()
        self.engine = SearchEngine(config, evaluator)

    @property
    def name(self) -> str:
        return f"search-d{self.engine.config.depth}"

    def play(self, board: Board) -> bool:
        if not self.initialized or not board.legal_moves():
            return False
        column = self.engine.choose_move(board, self.player_id)
        return board.play(self.player_id, column)
