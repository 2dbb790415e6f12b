"""
Bounded Minimax Search with Root-Level Parallelism

Each legal root move is scored on its own copy of the board by a separate
task on a bounded worker pool. All tasks are joined before a move is chosen.
There is no alpha-beta pruning, no timeout and no cancellation: latency is
bounded only by depth and board width.
"""

import logging
import os
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, TypeAlias

import yaml

from ..data import DIRECTIONS, Board, Player, other_player, win_state

logger = logging.getLogger(__name__)

Evaluator: TypeAlias = Callable[[Board, Player], float]

# Heuristic weights
EVAL_WEIGHTS = {
    "WIN": 1_000_000,
    "THREE_IN_ROW": 100,  # open window one mark short of a win
    "TWO_IN_ROW": 10,  # open window two marks short of a win
    "MOBILITY": 1,  # empty cell touching an own mark
}

WIN_SCORE = EVAL_WEIGHTS["WIN"]

NEIGHBOURS = tuple(
    (d_col, d_row)
    for d_col in (-1, 0, 1)
    for d_row in (-1, 0, 1)
    if (d_col, d_row) != (0, 0)
)


@dataclass
class SearchConfig:
    """Configuration for the minimax search engine."""

    depth: int = 4  # plies expanded below each root move
    max_workers: int | None = None  # None = min(width, cpu count)
    use_processes: bool = False  # process pool instead of threads

    @classmethod
    def from_yaml(cls, path: str | Path) -> "SearchConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)


# =============================================================================
# Heuristic
# =============================================================================


def _count_formations(board: Board, player: Player) -> tuple[int, int]:
    """
    Counts open windows of length N holding N-1 and N-2 marks of player.

    A window is open when it contains no opposing mark.
    """
    n = board.connect
    threes = 0
    twos = 0
    for row in range(board.height):
        for col in range(board.width):
            for d_col, d_row in DIRECTIONS:
                end_col = col + d_col * (n - 1)
                end_row = row + d_row * (n - 1)
                if not (0 <= end_col < board.width and 0 <= end_row < board.height):
                    continue

                own = 0
                blocked = False
                for i in range(n):
                    cell = board.get(col + d_col * i, row + d_row * i)
                    if cell == player:
                        own += 1
                    elif cell is not None:
                        blocked = True
                        break

                if blocked:
                    continue
                if own == n - 1 and own > 0:
                    threes += 1
                elif own == n - 2 and own > 0:
                    twos += 1
    return threes, twos


def _count_mobility(board: Board, player: Player) -> int:
    """Counts empty cells adjacent (8-neighbourhood) to a mark of player."""
    count = 0
    for row in range(board.height):
        for col in range(board.width):
            if board.get(col, row) is not None:
                continue
            for d_col, d_row in NEIGHBOURS:
                if board.get(col + d_col, row + d_row) == player:
                    count += 1
                    break
    return count


def score_player(board: Board, player: Player) -> int:
    """Returns the unsigned heuristic score of one player's formations."""
    threes, twos = _count_formations(board, player)
    return (
        threes * EVAL_WEIGHTS["THREE_IN_ROW"]
        + twos * EVAL_WEIGHTS["TWO_IN_ROW"]
        + _count_mobility(board, player) * EVAL_WEIGHTS["MOBILITY"]
    )


def evaluate_position(board: Board, player: Player) -> float:
    """Evaluates a non-terminal position; positive favours player."""
    return float(score_player(board, player) - score_player(board, other_player(player)))


# =============================================================================
# Minimax
# =============================================================================


def minimax(
    board: Board,
    root_player: Player,
    to_move: Player,
    ply: int,
    depth: int,
    evaluator: Evaluator = evaluate_position,
) -> float:
    """
    Scores a position from root_player's perspective.

    Root moves are applied at ply 1, so odd plies have the opponent to move
    (minimizing) and even plies have root_player to move (maximizing).
    Terminal scores shrink with ply so faster wins and slower losses are
    preferred. The board is restored before returning.

    Args:
        board: Position to score. Mutated with play/undo during search.
        root_player: Player whose perspective is fixed at the search root.
        to_move: Player to move in this position.
        ply: Number of moves applied since the search root.
        depth: Plies to expand below the root move before the heuristic.
        evaluator: Static evaluation for positions beyond depth.
    """
    state = board.get_state()
    if state == win_state(root_player):
        return float(WIN_SCORE - ply)
    if state == win_state(other_player(root_player)):
        return float(-(WIN_SCORE - ply))
    if state == "draw":
        return 0.0

    if ply > depth:
        return evaluator(board, root_player)

    maximizing = to_move == root_player
    best = float("-inf") if maximizing else float("inf")
    for col in board.legal_moves():
        board.play(to_move, col)
        value = minimax(board, root_player, other_player(to_move), ply + 1, depth, evaluator)
        board.undo()
        if maximizing:
            best = max(best, value)
        else:
            best = min(best, value)
    return best


def _evaluate_root(
    board: Board,
    column: int,
    player: Player,
    depth: int,
    evaluator: Evaluator,
) -> float:
    """Worker task: apply one root move on a private board and search below it."""
    board.play(player, column)
    return minimax(board, player, other_player(player), 1, depth, evaluator)


# =============================================================================
# Engine
# =============================================================================


class SearchEngine:
    """
    Parallel bounded-depth minimax.

    One task per legal root move, each owning an exclusive board copy, so no
    synchronization is needed beyond joining the futures.
    """

    def __init__(
        self,
        config: SearchConfig | None = None,
        evaluator: Evaluator = evaluate_position,
    ):
        """
        Initialize the engine.

        Args:
            config: Search configuration. Defaults to SearchConfig().
            evaluator: Leaf evaluation function. Must be picklable (module-level)
                when config.use_processes is set.
        """
        self.config = config or SearchConfig()
        self.evaluator = evaluator

        if self.config.depth < 0:
            raise ValueError(f"Search depth must be non-negative, got {self.config.depth}")

    def _create_executor(self, num_tasks: int) -> Executor:
        max_workers = self.config.max_workers or min(num_tasks, os.cpu_count() or 1)
        if self.config.use_processes:
            return ProcessPoolExecutor(max_workers=max_workers)
        return ThreadPoolExecutor(max_workers=max_workers)

    def evaluate_moves(self, board: Board, player: Player) -> dict[int, float]:
        """
        Scores every legal root move.

        Returns:
            Mapping of column to minimax value, ordered by column.

        Raises:
            ValueError: If there is no legal move.
        """
        legal = board.legal_moves()
        if not legal:
            raise ValueError("No legal moves available")

        with self._create_executor(len(legal)) as executor:
            futures = {
                col: executor.submit(
                    _evaluate_root,
                    board.copy(),
                    col,
                    player,
                    self.config.depth,
                    self.evaluator,
                )
                for col in legal
            }
            # Join all root tasks before deciding
            scores = {col: future.result() for col, future in futures.items()}

        logger.debug(f"Root scores for player {player}: {scores}")
        return scores

    def choose_move(self, board: Board, player: Player) -> int:
        """
        Returns the best column for player.

        Ties go to the lowest column index.

        Raises:
            ValueError: If there is no legal move.
        """
        scores = self.evaluate_moves(board, player)
        best_col = -1
        best_score = float("-inf")
        for col in sorted(scores):
            if best_col < 0 or scores[col] > best_score:
                best_col = col
                best_score = scores[col]
        return best_col
