"""Shared fixtures for the ladder tests."""

from datetime import datetime, timedelta

import pytest
import pytz

from data.models.player_rating_state import PlayerRatingState
from helpers.business_logic.ping_pong_calculator import PingPongCalculator
from integrations.memory.ping_pong_store import MemoryPlayersTable, MemoryMatchesTable

START = pytz.utc.localize(datetime(2025, 3, 1, 18, 0, 0))


def at(days: float = 0, hours: float = 0) -> datetime:
    """A timestamp relative to the start of the test season."""
    return START + timedelta(days=days, hours=hours)


def snapshot(player: PlayerRatingState) -> tuple:
    """Everything that replay is responsible for; player equality only looks at the id."""
    return (
        player.player_id,
        player.rating,
        player.wins,
        player.losses,
        player.games_played,
        player.last_played_at,
        player.accumulated_rust,
    )


def snapshots(players) -> dict[str, tuple]:
    values = players.values() if isinstance(players, dict) else players
    return {player.player_id: snapshot(player) for player in values}


@pytest.fixture
def players() -> MemoryPlayersTable:
    return MemoryPlayersTable()


@pytest.fixture
def matches() -> MemoryMatchesTable:
    return MemoryMatchesTable()


@pytest.fixture
def calculator(players, matches) -> PingPongCalculator:
    return PingPongCalculator(players=players, matches=matches, timezone=pytz.utc)


@pytest.fixture
def roster(calculator) -> dict[str, PlayerRatingState]:
    return {name: calculator.add_player(name) for name in ('Alice', 'Bob', 'Carol', 'Dan')}
