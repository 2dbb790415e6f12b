"""
Match CLI

Pits two strategies against each other for a number of games and prints a
percentage summary. Learning strategies load and save their state next to
the working directory unless --no-persist is given.

Usage:
    # Train a Q-learner against random play
    connectn-play --player1 qlearn --player2 random --games 10000 --progress

    # Evaluate the trained learner against search without updating it
    connectn-play --player1 qlearn-fixed --player2 search --depth 3 --games 100

    # Play against the search engine on the terminal
    connectn-play --player1 console --player2 search --games 1
"""

import argparse
import logging
import sys
from pathlib import Path

from .evaluation import Arena, format_match_summary
from .learning import default_state_path
from .registry import STRATEGY_INFO, create_strategy, list_strategies

logger = logging.getLogger(__name__)

STATE_KINDS = {
    "qlearn": "qlearn",
    "qlearn-fixed": "qlearn",
    "qoff": "qoff",
    "qoff-fixed": "qoff",
    "value": "value",
    "value-fixed": "value",
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    strategies = list_strategies()
    parser = argparse.ArgumentParser(
        description="Play connect-N matches between two strategies",
        epilog="Strategies: "
        + ", ".join(f"{k} ({STRATEGY_INFO[k]['description']})" for k in strategies),
    )

    # Players
    parser.add_argument("--player1", type=str, default="random", choices=strategies)
    parser.add_argument("--player2", type=str, default="random", choices=strategies)
    parser.add_argument("--config1", type=str, default=None, help="YAML config for player 1")
    parser.add_argument("--config2", type=str, default=None, help="YAML config for player 2")

    # Match
    parser.add_argument("--games", type=int, default=100, help="Number of games to play")
    parser.add_argument(
        "--switch-every",
        type=int,
        default=1,
        help="Flip the starting player after this many games",
    )
    parser.add_argument("--depth", type=int, default=None, help="Search depth for search players")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")

    # Board
    parser.add_argument("--width", type=int, default=7)
    parser.add_argument("--height", type=int, default=6)
    parser.add_argument("--connect", type=int, default=4)

    # State
    parser.add_argument(
        "--state-dir",
        type=str,
        default=".",
        help="Directory for learned agent state files",
    )
    parser.add_argument(
        "--no-persist",
        action="store_true",
        help="Do not load or save learned agent state",
    )
    parser.add_argument("--progress", action="store_true", help="Show a progress bar")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    return parser.parse_args(argv)


def build_strategy(args: argparse.Namespace, player_id: int):
    """Creates the strategy for one player slot from parsed arguments."""
    kind = args.player1 if player_id == 1 else args.player2
    config_path = args.config1 if player_id == 1 else args.config2

    state_path: Path | None = None
    if kind in STATE_KINDS and not args.no_persist:
        state_path = default_state_path(
            STATE_KINDS[kind], args.width, args.height, args.connect, args.state_dir
        )

    seed = None if args.seed is None else args.seed + player_id - 1
    return create_strategy(
        kind,
        seed=seed,
        depth=args.depth,
        state_path=state_path,
        config_path=config_path,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        arena = Arena(args.width, args.height, args.connect)
    except ValueError as e:
        logger.error(str(e))
        return 1

    with arena:
        for player_id in (1, 2):
            strategy = build_strategy(args, player_id)
            if not arena.set_player(player_id, strategy):
                logger.error(f"Player {player_id} ({strategy.name}) could not be initialized")
                return 1

        result = arena.play_many(args.games, args.switch_every, show_progress=args.progress)
        if result is None:
            return 1

    print(
        format_match_summary(
            result,
            player1_name=f"Player 1 ({args.player1})",
            player2_name=f"Player 2 ({args.player2})",
        )
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
