"""
Board state and feature encodings for connect-N.
"""

from .board import (
    COLUMNS,
    CONNECT,
    DIRECTIONS,
    PLAYERS,
    ROWS,
    Board,
    Cell,
    GameState,
    Move,
    Player,
    board_to_string,
    other_player,
    win_state,
    winner_of,
)
from .encoding import (
    encode_cells,
    encode_features,
    feature_size,
    legal_mask,
)

__all__ = [
    # Board
    "COLUMNS",
    "CONNECT",
    "DIRECTIONS",
    "PLAYERS",
    "ROWS",
    "Board",
    "Cell",
    "GameState",
    "Move",
    "Player",
    "board_to_string",
    "other_player",
    "win_state",
    "winner_of",
    # Encoding
    "encode_cells",
    "encode_features",
    "feature_size",
    "legal_mask",
]
