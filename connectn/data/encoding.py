"""
Position Encoding for Neural Network Input

Hand-engineered feature vectors fed to the learning agents. The Q-learning
encoding gives the approximator built-in one-ply tactical lookahead; the
value encoding is a plain relative occupancy map.
"""

import numpy as np

from .board import Board, Player, other_player, win_state


def feature_size(width: int, height: int) -> int:
    """
    Returns the length of the vector produced by encode_features.

    2 features per cell, 1 per column, 1 for the starting player.
    """
    return 2 * width * height + width + 1


def encode_features(board: Board, player: Player, start_player: Player) -> np.ndarray:
    """
    Encodes a position from the perspective of player.

    Layout (row-major cells, top row first):
        [0, 2*W*H): for each cell, occupancy (+1 own, -1 opponent, 0 empty)
            followed by a reachable indicator (1 if the cell is empty and the
            next mark dropped in its column lands there).
        [2*W*H, 2*W*H + W): per column, +1 if player wins immediately by
            playing there, -1 if the opponent would, else 0.
        last: +1 if player started the game, -1 otherwise.

    Each column is tried with play/undo and the board is left exactly as it was.
    """
    width, height = board.width, board.height
    opponent = other_player(player)
    encoded = np.zeros(feature_size(width, height), dtype=np.float32)

    idx = 0
    for row in range(height):
        for col in range(width):
            cell = board.get(col, row)
            if cell == player:
                encoded[idx] = 1.0
            elif cell == opponent:
                encoded[idx] = -1.0
            elif row == height - 1 or board.get(col, row + 1) is not None:
                encoded[idx + 1] = 1.0
            idx += 2

    for col in range(width):
        encoded[idx + col] = _immediate_win(board, col, player, opponent)
    idx += width

    encoded[idx] = 1.0 if start_player == player else -1.0
    return encoded


def _immediate_win(board: Board, col: int, player: Player, opponent: Player) -> float:
    """Returns +1/-1/0 for whether playing col wins for player/opponent/neither."""
    if not board.play(player, col):
        return 0.0
    won = board.get_state() == win_state(player)
    board.undo()
    if won:
        return 1.0

    board.play(opponent, col)
    lost = board.get_state() == win_state(opponent)
    board.undo()
    return -1.0 if lost else 0.0


def encode_cells(board: Board, start_player: Player) -> np.ndarray:
    """
    Encodes occupancy relative to the starting player.

    +1 for the starting player's marks, -1 for the other player's, 0 empty.
    Shape: [W*H], row-major, top row first.
    """
    encoded = np.zeros(board.width * board.height, dtype=np.float32)
    for i, cell in enumerate(board.cells):
        if cell is None:
            continue
        encoded[i] = 1.0 if cell == start_player else -1.0
    return encoded


def legal_mask(board: Board) -> np.ndarray:
    """Returns a float mask of shape [W] with 1.0 for playable columns."""
    mask = np.zeros(board.width, dtype=np.float32)
    for col in board.legal_moves():
        mask[col] = 1.0
    return mask
