"""Shared pytest fixtures."""
import os

# Must be chosen before app is imported: gevent monkey-patching mid-session breaks pytest.
os.environ.setdefault("SOCKETIO_ASYNC_MODE", "threading")

import pytest

from game.logic import new_game


def make_snapshot(boards=None, winners=None, player="X", forced=None, difficulty="hard"):
    """Build a snapshot from plain lists; boards maps index -> 9-cell list."""
    snap = new_game(difficulty)
    full = [list(b) for b in snap.boards]
    for i, cells in (boards or {}).items():
        full[i] = list(cells)
    return snap._replace(
        boards=tuple(tuple(b) for b in full),
        winners=tuple(winners) if winners else snap.winners,
        player=player,
        forced=forced,
    )


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def fresh_game():
    return new_game()
