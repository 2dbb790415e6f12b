"""
Result Analysis for Matches

Turns tallied match results into human-readable reports.
"""

from dataclasses import asdict, dataclass
from typing import Any

from .arena import MatchResult


@dataclass
class MatchSummary:
    """Percentages for a finished match."""

    games: int
    player1_wins: int
    player2_wins: int
    draws: int
    player1_pct: float
    player2_pct: float
    draw_pct: float
    avg_moves: float
    time_seconds: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def summarize_match(result: MatchResult) -> MatchSummary:
    """Computes percentages from raw match tallies."""
    games = result.num_games

    def pct(count: int) -> float:
        return 100.0 * count / games if games else 0.0

    return MatchSummary(
        games=games,
        player1_wins=result.player1_wins,
        player2_wins=result.player2_wins,
        draws=result.draws,
        player1_pct=pct(result.player1_wins),
        player2_pct=pct(result.player2_wins),
        draw_pct=pct(result.draws),
        avg_moves=result.avg_moves,
        time_seconds=result.time_seconds,
    )


def format_match_summary(
    result: MatchResult,
    player1_name: str = "Player 1",
    player2_name: str = "Player 2",
) -> str:
    """
    Formats a match result as a percentage report.

    Args:
        result: Match tallies.
        player1_name: Label for player 1.
        player2_name: Label for player 2.

    Returns:
        Multi-line report string.
    """
    summary = summarize_match(result)
    lines = [
        "=" * 50,
        f"MATCH SUMMARY ({summary.games} games)",
        "=" * 50,
        f"{player1_name} wins: {summary.player1_pct:>6.2f}% ({summary.player1_wins}/{summary.games})",
        f"{player2_name} wins: {summary.player2_pct:>6.2f}% ({summary.player2_wins}/{summary.games})",
        f"Draws: {summary.draw_pct:>6.2f}% ({summary.draws}/{summary.games})",
        "",
        f"Average game length: {summary.avg_moves:.1f} moves",
        f"Time: {summary.time_seconds:.1f}s",
        "=" * 50,
    ]
    return "\n".join(lines)
