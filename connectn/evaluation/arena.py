"""
Arena for Match Management

Drives games between two bound strategies on a single board and tallies
results over repeated games.
"""

import logging
import time
from dataclasses import dataclass

from tqdm import tqdm

from ..data import COLUMNS, CONNECT, PLAYERS, ROWS, Board, GameState, Player, other_player
from .agents import Strategy

logger = logging.getLogger(__name__)


@dataclass
class GameOutcome:
    """Result of a single completed game."""

    state: GameState
    start_player: Player
    num_moves: int

    @property
    def is_draw(self) -> bool:
        return self.state == "draw"


@dataclass
class MatchResult:
    """Result of a series of games between player 1 and player 2."""

    player1_wins: int = 0
    player2_wins: int = 0
    draws: int = 0
    num_games: int = 0
    total_moves: int = 0
    time_seconds: float = 0.0

    def record(self, outcome: GameOutcome) -> None:
        """Adds one game outcome to the tallies."""
        if outcome.state == "player1_win":
            self.player1_wins += 1
        elif outcome.state == "player2_win":
            self.player2_wins += 1
        else:
            self.draws += 1
        self.num_games += 1
        self.total_moves += outcome.num_moves

    @property
    def player1_score(self) -> float:
        """Score for player 1 (1 for win, 0.5 for draw, 0 for loss)."""
        return (self.player1_wins + 0.5 * self.draws) / self.num_games

    @property
    def player2_score(self) -> float:
        """Score for player 2 (1 for win, 0.5 for draw, 0 for loss)."""
        return (self.player2_wins + 0.5 * self.draws) / self.num_games

    @property
    def avg_moves(self) -> float:
        return self.total_moves / self.num_games if self.num_games else 0.0


class Arena:
    """
    Match controller for two strategies.

    Idle -> Ready (both players bound) -> InGame -> Scored -> Idle.
    The arena owns its board; strategies only ever see it during their turn
    and in the post-game outcome hook.
    """

    def __init__(self, width: int = COLUMNS, height: int = ROWS, connect: int = CONNECT):
        """
        Initialize the arena.

        Args:
            width: Board columns.
            height: Board rows.
            connect: Win length.
        """
        self.board = Board(width, height, connect)
        self.players: dict[Player, Strategy | None] = {1: None, 2: None}
        self.start_player: Player = 1

    def set_player(self, player_id: int, strategy: Strategy | None) -> bool:
        """
        Binds a strategy to a player slot.

        Passing None unbinds the slot. If the strategy fails to initialize,
        the slot is left unbound and False is returned.
        """
        if player_id not in PLAYERS:
            return False

        self.players[player_id] = None
        if strategy is None:
            return True

        if not strategy.init(self.board, player_id):
            logger.warning(f"Strategy {strategy.name} failed to initialize as player {player_id}")
            return False

        self.players[player_id] = strategy
        return True

    def set_start_player(self, player_id: int) -> bool:
        """Sets who moves first in the next game."""
        if player_id not in PLAYERS:
            return False
        self.start_player = player_id
        return True

    def is_ready(self) -> bool:
        return all(self.players[p] is not None for p in PLAYERS)

    def play_game(self) -> GameOutcome | None:
        """
        Plays one game to completion.

        Returns:
            The game outcome, or None if the arena is not ready.

        Raises:
            RuntimeError: If a strategy fails to move while the game is running.
        """
        if not self.is_ready():
            logger.error("Cannot start game: both players must be bound")
            return None

        self.board.reset()
        for strategy in self.players.values():
            strategy.notify_start_player(self.start_player)

        current = self.start_player
        state = self.board.get_state()
        while state == "running":
            strategy = self.players[current]
            moves_before = self.board.move_count
            if not strategy.play(self.board) or self.board.move_count != moves_before + 1:
                logger.error(
                    f"Strategy {strategy.name} (player {current}) failed to move "
                    f"after {moves_before} moves"
                )
                raise RuntimeError(f"Player {current} ({strategy.name}) failed to play a move")

            state = self.board.get_state()
            current = other_player(current)

        for strategy in self.players.values():
            strategy.outcome(self.board, state)

        return GameOutcome(
            state=state,
            start_player=self.start_player,
            num_moves=self.board.move_count,
        )

    def play_many(
        self,
        num_games: int,
        switch_every: int = 1,
        show_progress: bool = False,
    ) -> MatchResult | None:
        """
        Plays a series of games, alternating the starting player.

        Args:
            num_games: Number of games to play.
            switch_every: Flip the starting player after this many games.
            show_progress: Display a progress bar.

        Returns:
            Tallied results, or None if num_games < 1 or the arena is not ready.
        """
        if num_games < 1 or switch_every < 1:
            logger.error(f"Invalid match parameters: num_games={num_games}, switch_every={switch_every}")
            return None
        if not self.is_ready():
            logger.error("Cannot start match: both players must be bound")
            return None

        result = MatchResult()
        start_time = time.time()

        pbar = tqdm(total=num_games, desc="Playing games") if show_progress else None
        try:
            for i in range(num_games):
                self.start_player = 1 if (i // switch_every) % 2 == 0 else 2
                outcome = self.play_game()
                result.record(outcome)
                if pbar is not None:
                    pbar.update(1)
        finally:
            if pbar is not None:
                pbar.close()

        result.time_seconds = time.time() - start_time
        logger.info(
            f"Played {result.num_games} games in {result.time_seconds:.1f}s: "
            f"P1 {result.player1_wins}, P2 {result.player2_wins}, draws {result.draws}"
        )
        return result

    def close(self) -> None:
        """
        Closes both bound strategies.

        Player 2 is still closed if closing player 1 raises.
        """
        try:
            if self.players[1] is not None:
                self.players[1].close()
        finally:
            if self.players[2] is not None:
                self.players[2].close()

    def __enter__(self) -> "Arena":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
