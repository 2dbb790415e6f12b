"""
Agent State Persistence

Learned state is stored as a single torch-serialized dict: format version,
agent kind, board geometry, games played, network weights and (for replay
agents) the buffer contents.
"""

import logging
from pathlib import Path
from typing import Any

import torch

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1


class AgentStateError(RuntimeError):
    """Persisted agent state exists but cannot be used."""


def default_state_path(
    kind: str,
    width: int,
    height: int,
    connect: int,
    directory: str | Path = ".",
) -> Path:
    """Returns the conventional state file path, e.g. ./qlearn-7x6-connect4.pt."""
    return Path(directory) / f"{kind}-{width}x{height}-connect{connect}.pt"


def save_agent_state(path: str | Path, state: dict[str, Any]) -> None:
    """
    Writes agent state to path.

    The blob is written to a temporary file and then renamed over path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    blob = {"version": STATE_FORMAT_VERSION, **state}
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    torch.save(blob, tmp_path)
    tmp_path.replace(path)
    logger.info(f"Agent state saved to {path} ({state.get('games_played', 0)} games)")


def load_agent_state(
    path: str | Path,
    kind: str,
    width: int,
    height: int,
    connect: int,
) -> dict[str, Any] | None:
    """
    Loads agent state from path.

    Returns:
        The state dict, or None if the file does not exist.

    Raises:
        AgentStateError: If the file is unreadable or belongs to a different
            agent kind, format version, board size or win length.
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No agent state at {path}, starting fresh")
        return None

    try:
        state = torch.load(path, map_location="cpu", weights_only=True)
    except Exception as e:
        raise AgentStateError(f"Cannot read agent state {path}: {e}") from e

    if not isinstance(state, dict):
        raise AgentStateError(f"Agent state {path} is not a mapping")

    expected = {
        "version": STATE_FORMAT_VERSION,
        "kind": kind,
        "width": width,
        "height": height,
        "connect": connect,
    }
    for key, value in expected.items():
        if state.get(key) != value:
            raise AgentStateError(
                f"Agent state {path} has {key}={state.get(key)!r}, expected {value!r}"
            )

    games_played = state.get("games_played")
    if not isinstance(games_played, int) or games_played < 0:
        raise AgentStateError(f"Agent state {path} has invalid games_played={games_played!r}")

    logger.info(f"Loaded agent state from {path} ({games_played} games)")
    return state
