"""
Connect-N Board State Machine

Mutable grid with gravity, a reversible move stack and win/draw detection.
Board geometry and win length are configurable; defaults are the classic
7 columns x 6 rows, connect four.

Row 0 is the top row. Pieces fall to the highest empty row index.
"""

from typing import Iterable, Literal, TypeAlias

# Default geometry
COLUMNS = 7
ROWS = 6
CONNECT = 4

# Type aliases
Player: TypeAlias = Literal[1, 2]
Cell: TypeAlias = int | None  # None=empty, 1=player1, 2=player2
GameState: TypeAlias = Literal["running", "draw", "player1_win", "player2_win"]
Move: TypeAlias = tuple[int, int]  # (column, row)

# Line directions as (d_col, d_row): horizontal, vertical, both diagonals
DIRECTIONS: tuple[tuple[int, int], ...] = ((1, 0), (0, 1), (1, 1), (1, -1))

PLAYERS: tuple[Player, Player] = (1, 2)


def other_player(player: Player) -> Player:
    """Returns the opponent of the given player."""
    return 2 if player == 1 else 1


def win_state(player: Player) -> GameState:
    """Returns the game state in which the given player has won."""
    return "player1_win" if player == 1 else "player2_win"


def winner_of(state: GameState) -> Player | None:
    """Returns the winning player for a state, or None for running/draw."""
    if state == "player1_win":
        return 1
    if state == "player2_win":
        return 2
    return None


class Board:
    """
    Connect-N board with a LIFO move stack.

    Cells are stored flat (index = row * width + column). Every placement
    is recorded as a (column, row) pair so it can be undone exactly, which
    lets search explore positions in place without allocating new boards.
    """

    def __init__(self, width: int = COLUMNS, height: int = ROWS, connect: int = CONNECT):
        """
        Initialize an empty board.

        Args:
            width: Number of columns.
            height: Number of rows.
            connect: Number of marks in a line needed to win.

        Raises:
            ValueError: If any dimension is not positive.
        """
        if width < 1 or height < 1 or connect < 1:
            raise ValueError(
                f"Invalid board geometry: width={width}, height={height}, connect={connect}"
            )
        self.width = width
        self.height = height
        self.connect = connect
        self._cells: list[Cell] = [None] * (width * height)
        self._moves: list[Move] = []

    # =========================================================================
    # Mutation
    # =========================================================================

    def play(self, player: int, column: int) -> bool:
        """
        Drops a mark for player into column.

        Returns:
            True on success. False (and no mutation) if the column is out of
            range, the player id is not 1 or 2, or the column is full.
        """
        if player not in PLAYERS or not self.is_valid_play(column):
            return False

        for row in range(self.height - 1, -1, -1):
            index = row * self.width + column
            if self._cells[index] is None:
                self._cells[index] = player
                self._moves.append((column, row))
                return True

        return False

    def undo(self) -> bool:
        """Removes the most recent placement. Returns False if there is none."""
        if not self._moves:
            return False
        column, row = self._moves.pop()
        self._cells[row * self.width + column] = None
        return True

    def reset(self) -> None:
        """Clears all cells and the move stack."""
        self._cells = [None] * (self.width * self.height)
        self._moves = []

    # =========================================================================
    # Queries
    # =========================================================================

    def is_valid_play(self, column: int) -> bool:
        """Returns True if column is in range and its top cell is empty."""
        return 0 <= column < self.width and self._cells[column] is None

    def legal_moves(self) -> list[int]:
        """Returns the columns that can currently be played, ascending."""
        return [col for col in range(self.width) if self._cells[col] is None]

    def is_full(self) -> bool:
        return len(self._moves) == len(self._cells)

    def get(self, column: int, row: int) -> Cell:
        """Returns the owner of a cell. Out-of-range coordinates read as empty."""
        if 0 <= column < self.width and 0 <= row < self.height:
            return self._cells[row * self.width + column]
        return None

    def drop_row(self, column: int) -> int | None:
        """Returns the row a mark dropped into column would land on, or None if full."""
        if not self.is_valid_play(column):
            return None
        for row in range(self.height - 1, -1, -1):
            if self._cells[row * self.width + column] is None:
                return row
        return None

    def get_state(self) -> GameState:
        """
        Determines the state of the position.

        Every occupied cell is checked as the start of a line in each of the
        four directions, so arbitrary (synthetic) positions are classified
        correctly, not just those reached by a single last move.
        """
        for column, row in self._moves:
            owner = self._cells[row * self.width + column]
            for d_col, d_row in DIRECTIONS:
                if self._line_length(column, row, d_col, d_row, owner) >= self.connect:
                    return win_state(owner)

        if self.is_full():
            return "draw"
        return "running"

    def _line_length(self, column: int, row: int, d_col: int, d_row: int, owner: Cell) -> int:
        """Counts consecutive cells owned by owner starting at (column, row)."""
        length = 0
        while (
            0 <= column < self.width
            and 0 <= row < self.height
            and self._cells[row * self.width + column] == owner
        ):
            length += 1
            if length >= self.connect:
                break
            column += d_col
            row += d_row
        return length

    @property
    def cells(self) -> list[Cell]:
        """Snapshot of the flat cell list."""
        return list(self._cells)

    @property
    def moves(self) -> list[Move]:
        """Snapshot of the move stack, oldest first."""
        return list(self._moves)

    @property
    def move_count(self) -> int:
        return len(self._moves)

    def rows(self) -> list[list[Cell]]:
        """Returns the grid as a list of rows, top row first."""
        return [
            self._cells[row * self.width : (row + 1) * self.width]
            for row in range(self.height)
        ]

    # =========================================================================
    # Copying / construction
    # =========================================================================

    def copy(self) -> "Board":
        """Returns a fully independent snapshot, move stack included."""
        clone = Board.__new__(Board)
        clone.width = self.width
        clone.height = self.height
        clone.connect = self.connect
        clone._cells = list(self._cells)
        clone._moves = list(self._moves)
        return clone

    @classmethod
    def from_moves(
        cls,
        moves: Iterable[int],
        width: int = COLUMNS,
        height: int = ROWS,
        connect: int = CONNECT,
        first_player: Player = 1,
    ) -> "Board":
        """
        Builds a board by replaying columns with alternating players.

        Raises:
            ValueError: If a column cannot be played.
        """
        board = cls(width, height, connect)
        player = first_player
        for column in moves:
            if not board.play(player, column):
                raise ValueError(f"Illegal move in sequence: column {column}")
            player = other_player(player)
        return board

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and self.connect == other.connect
            and self._cells == other._cells
            and self._moves == other._moves
        )

    def __repr__(self) -> str:
        return (
            f"Board(width={self.width}, height={self.height}, "
            f"connect={self.connect}, moves={len(self._moves)})"
        )

    def __str__(self) -> str:
        return board_to_string(self)


SYMBOLS = {None: ".", 1: "X", 2: "O"}


def board_to_string(board: Board) -> str:
    """
    Renders the board as text, top row first, with a column index footer.

    Example (7x6, after columns 3 then 3):
        |. . . . . . .|
        ...
        |. . . O . . .|
        |. . . X . . .|
         0 1 2 3 4 5 6
    """
    lines = []
    for row in board.rows():
        lines.append("|" + " ".join(SYMBOLS[cell] for cell in row) + "|")
    lines.append(" " + " ".join(str(col % 10) for col in range(board.width)))
    return "\n".join(lines)
