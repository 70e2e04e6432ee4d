"""Tests for the in-memory ladder storage."""

from dataclasses import replace

import pytest

from data.models.match_outcome import MatchOutcome
from data.models.match_record import MatchRecord
from data.models.player_rating_state import PlayerRatingState
from integrations.memory.ping_pong_store import MemoryPlayersTable, MemoryMatchesTable

from conftest import at


def record(match_id: str, player1_id: str, player2_id: str, score1: int, score2: int, day: float) -> MatchRecord:
    outcome = MatchOutcome(
        match_id=match_id,
        player1_id=player1_id,
        player2_id=player2_id,
        player1_score=score1,
        player2_score=score2,
        played_at=at(day),
    )
    return MatchRecord(outcome=outcome, player1_rating_before=1000.0, player2_rating_before=1000.0)


class TestMemoryPlayersTable:
    def test_save_and_find(self):
        table = MemoryPlayersTable([PlayerRatingState(player_id='p1', name='Alice')])

        assert table.get_player('p1').name == 'Alice'
        assert table.find_by_name(' ALICE ').player_id == 'p1'
        assert table.get_player('p2') is None
        assert table.find_by_name('Bob') is None

    def test_save_replaces_the_existing_state(self):
        table = MemoryPlayersTable([PlayerRatingState(player_id='p1', name='Alice')])

        table.save(table.get_player('p1').copy(rating=1100.0, wins=1))

        assert table.get_player('p1').rating == 1100.0
        assert table.find_by_name('alice').wins == 1
        assert len(table.get_all_players()) == 1

    def test_renaming_updates_the_name_lookup(self):
        table = MemoryPlayersTable([PlayerRatingState(player_id='p1', name='Alice')])

        table.save(table.get_player('p1').copy(name='Alicia'))

        assert table.find_by_name('alice') is None
        assert table.find_by_name('alicia').player_id == 'p1'

    def test_delete(self):
        table = MemoryPlayersTable([PlayerRatingState(player_id='p1', name='Alice')])

        table.delete('p1')
        table.delete('p1')

        assert table.get_player('p1') is None
        assert table.find_by_name('alice') is None
        assert table.get_all_players() == []


class TestMemoryMatchesTable:
    def test_chronological_order(self):
        table = MemoryMatchesTable()
        table.insert(record('m2', 'a', 'b', 11, 5, 2))
        table.insert(record('m1', 'a', 'c', 11, 5, 1))
        table.insert(record('m3', 'b', 'c', 11, 5, 3))

        assert [match.match_id for match in table.get_all_matches()] == ['m1', 'm2', 'm3']
        assert [match.match_id for match in table.get_matches('a')] == ['m1', 'm2']
        assert [match.match_id for match in table.get_matches('c')] == ['m1', 'm3']
        assert table.get_matches('z') == []

    def test_ties_keep_the_insertion_order(self):
        table = MemoryMatchesTable()
        for match_id in ('x', 'y', 'z'):
            table.insert(record(match_id, 'a', 'b', 11, 5, 1))

        assert [match.match_id for match in table.get_all_matches()] == ['x', 'y', 'z']

    def test_updates_keep_the_order(self):
        table = MemoryMatchesTable([record('x', 'a', 'b', 11, 5, 1), record('y', 'a', 'b', 11, 5, 1)])

        table.save_all([replace(table.get_match('x'), player1_rating_change=12.5)])

        assert [match.match_id for match in table.get_all_matches()] == ['x', 'y']
        assert table.get_match('x').player1_rating_change == 12.5

    def test_duplicate_insert(self):
        table = MemoryMatchesTable([record('x', 'a', 'b', 11, 5, 1)])

        with pytest.raises(ValueError):
            table.insert(record('x', 'a', 'b', 11, 5, 1))

    def test_unknown_matches_are_not_saved(self):
        table = MemoryMatchesTable()

        table.save_all([record('x', 'a', 'b', 11, 5, 1)])

        assert table.get_match('x') is None

    def test_streak(self):
        table = MemoryMatchesTable([
            record('m1', 'a', 'b', 5, 11, 1),
            record('m2', 'a', 'b', 11, 5, 2),
            record('m3', 'c', 'a', 3, 11, 3),
        ])

        assert table.get_streak('a') == 2
        assert table.get_streak('b') == -1
        assert table.get_streak('c') == -1
        assert table.get_streak('z') == 0

    def test_delete(self):
        table = MemoryMatchesTable([record('m1', 'a', 'b', 11, 5, 1), record('m2', 'b', 'c', 11, 5, 2)])

        table.delete('m1')
        table.delete('m1')

        assert table.get_match('m1') is None
        assert table.get_matches('a') == []
        assert [match.match_id for match in table.get_all_matches()] == ['m2']

    def test_delete_for_player(self):
        table = MemoryMatchesTable([
            record('m1', 'a', 'b', 11, 5, 1),
            record('m2', 'b', 'c', 11, 5, 2),
            record('m3', 'c', 'a', 11, 5, 3),
        ])

        removed = table.delete_for_player('a')

        assert [match.match_id for match in removed] == ['m1', 'm3']
        assert [match.match_id for match in table.get_all_matches()] == ['m2']
        assert [match.match_id for match in table.get_matches('c')] == ['m2']
        assert table.delete_for_player('a') == []
