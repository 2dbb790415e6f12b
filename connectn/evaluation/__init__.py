"""
Strategies, search and match management for connect-N.
"""

from .agents import ConsoleStrategy, RandomStrategy, SearchStrategy, Strategy
from .analysis import MatchSummary, format_match_summary, summarize_match
from .arena import Arena, GameOutcome, MatchResult
from .search import (
    EVAL_WEIGHTS,
    WIN_SCORE,
    Evaluator,
    SearchConfig,
    SearchEngine,
    evaluate_position,
    minimax,
)

__all__ = [
    # Strategies
    "Strategy",
    "RandomStrategy",
    "ConsoleStrategy",
    "SearchStrategy",
    # Search
    "EVAL_WEIGHTS",
    "WIN_SCORE",
    "Evaluator",
    "SearchConfig",
    "SearchEngine",
    "evaluate_position",
    "minimax",
    # Arena
    "Arena",
    "GameOutcome",
    "MatchResult",
    # Analysis
    "MatchSummary",
    "format_match_summary",
    "summarize_match",
]
