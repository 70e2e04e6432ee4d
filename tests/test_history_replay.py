"""Tests for rebuilding the ladder from the match history."""

import pytest

from data.models.match_outcome import MatchOutcome
from data.models.match_record import MatchRecord
from data.models.player_rating_state import PlayerRatingState, BASE_RATING, BASE_RUST
from helpers.business_logic.history_replay import replay_match_history, replay_all_matches, HistoryReplay
from helpers.business_logic.league.rating_calculator import apply_match
from helpers.exceptions import ReplayError
from integrations.memory.ping_pong_store import MemoryPlayersTable, MemoryMatchesTable

from conftest import at, snapshot, snapshots


def player(player_id: str, **changes) -> PlayerRatingState:
    return PlayerRatingState(player_id=player_id, name=player_id.title()).copy(**changes)


def outcome(match_id: str, player1_id: str, player2_id: str, score1: int, score2: int, day: float) -> MatchOutcome:
    return MatchOutcome(
        match_id=match_id,
        player1_id=player1_id,
        player2_id=player2_id,
        player1_score=score1,
        player2_score=score2,
        played_at=at(day),
    )


def stale_record(match: MatchOutcome) -> MatchRecord:
    return MatchRecord(outcome=match, player1_rating_before=1234.0, player2_rating_before=987.0, player1_rating_change=99.0, player2_rating_change=-99.0)


class BrokenPlayersTable(MemoryPlayersTable):
    broken = False

    def save_all(self, models):
        if self.broken:
            raise ConnectionError('The storage went away')
        super().save_all(models)


class TestReplayMatchHistory:
    def test_no_matches_resets_everyone(self):
        veteran = player('veteran', rating=1450.0, wins=30, losses=2, last_played_at=at(3), accumulated_rust=1.8)

        states = replay_all_matches([], [veteran])

        assert snapshot(states['veteran']) == ('veteran', BASE_RATING, 0, 0, 0, None, BASE_RUST)
        assert states['veteran'].name == 'Veteran'

    def test_single_match(self):
        match = outcome('m1', 'ana', 'bob', 11, 7, 1)

        states = replay_all_matches([match], [player('ana', rating=1500.0), player('bob')])
        winner, loser, _ = apply_match(player('ana'), player('bob'), 11, 7, at(1))

        assert snapshots(states) == snapshots([winner, loser])

    def test_player_order_does_not_decide_the_winner(self):
        match = outcome('m1', 'ana', 'bob', 4, 11, 1)

        states = replay_all_matches([match], {'ana': player('ana'), 'bob': player('bob')})

        assert states['bob'].wins == 1
        assert states['ana'].losses == 1
        assert states['bob'].rating > states['ana'].rating

    def test_later_matches_build_on_earlier_ones(self):
        history = [
            outcome('m1', 'ana', 'bob', 11, 7, 1),
            outcome('m2', 'bob', 'cat', 11, 9, 2),
            outcome('m3', 'ana', 'cat', 8, 11, 40),
        ]

        states = replay_all_matches(history, [player('ana'), player('bob'), player('cat')])

        ana, bob, _ = apply_match(player('ana'), player('bob'), 11, 7, at(1))
        bob, cat, _ = apply_match(bob, player('cat'), 11, 9, at(2))
        cat, ana, _ = apply_match(cat, ana, 11, 8, at(40))

        assert snapshots(states) == snapshots([ana, bob, cat])

    def test_matches_with_unknown_players_are_skipped(self):
        history = [
            outcome('m1', 'ana', 'ghost', 11, 2, 1),
            outcome('m2', 'ana', 'bob', 11, 7, 2),
        ]

        result = replay_match_history(history, [player('ana'), player('bob')])

        assert [match.match_id for match in result.skipped] == ['m1']
        assert [record.match_id for record in result.matches] == ['m2']
        assert result.players['ana'].games_played == 1
        assert 'ghost' not in result.players

    def test_sort_key_keeps_ties_in_the_given_order(self):
        history = [
            outcome('late', 'ana', 'bob', 11, 3, 5),
            outcome('first', 'bob', 'ana', 11, 9, 1),
            outcome('second', 'ana', 'bob', 11, 8, 1),
        ]

        result = replay_match_history(history, [player('ana'), player('bob')], key=lambda match: match.played_at)

        assert [record.match_id for record in result.matches] == ['first', 'second', 'late']

    def test_records_are_recomputed(self):
        match = outcome('m1', 'ana', 'bob', 5, 11, 1)

        result = replay_match_history([stale_record(match)], [player('ana'), player('bob')])
        record = result.matches[0]

        assert record.player1_rating_before == BASE_RATING
        assert record.player2_rating_before == BASE_RATING
        assert record.player1_rating_after == pytest.approx(result.players['ana'].rating)
        assert record.player2_rating_after == pytest.approx(result.players['bob'].rating)
        assert record.rating_change_for('bob') > 0

        with pytest.raises(ValueError):
            record.rust_for('cat')

    def test_inputs_are_left_alone(self):
        ana = player('ana', rating=1300.0)

        replay_all_matches([outcome('m1', 'ana', 'bob', 11, 7, 1)], [ana, player('bob')])

        assert ana.rating == 1300.0


class TestHistoryReplay:
    @pytest.fixture
    def stored(self):
        players = BrokenPlayersTable([player('ana', rating=1800.0, wins=9), player('bob'), player('cat')])
        matches = MemoryMatchesTable([
            stale_record(outcome('m1', 'ana', 'bob', 11, 7, 1)),
            stale_record(outcome('m2', 'cat', 'bob', 11, 13, 3)),
            stale_record(outcome('m3', 'cat', 'ana', 11, 1, 20)),
        ])
        return players, matches

    def test_replay_saves_the_rebuilt_ladder(self, stored):
        players, matches = stored

        states = HistoryReplay(players, matches).replay()

        expected = replay_all_matches(matches.get_all_matches(), [player('ana'), player('bob'), player('cat')])
        assert snapshots(states) == snapshots(expected)
        assert snapshots(players.get_all_players()) == snapshots(expected)

    def test_replay_refreshes_the_stored_records(self, stored):
        players, matches = stored

        HistoryReplay(players, matches).replay()

        first = matches.get_match('m1')
        assert first.player1_rating_before == BASE_RATING
        assert first.player1_rating_change > 0
        assert first.player2_rating_change < 0
        assert [record.match_id for record in matches.get_all_matches()] == ['m1', 'm2', 'm3']

    def test_replay_is_idempotent(self, stored):
        players, matches = stored
        history = HistoryReplay(players, matches)

        first = snapshots(history.replay())
        second = snapshots(history.replay())

        assert first == second

    def test_failures_leave_the_stored_state_intact(self, stored):
        players, matches = stored
        before = snapshots(players.get_all_players())
        records_before = [(record.match_id, record.player1_rating_before) for record in matches.get_all_matches()]

        players.broken = True
        with pytest.raises(ReplayError) as error:
            HistoryReplay(players, matches).replay()

        assert isinstance(error.value.__cause__, ConnectionError)
        assert snapshots(players.get_all_players()) == before
        assert [(record.match_id, record.player1_rating_before) for record in matches.get_all_matches()] == records_before

    def test_replay_can_run_again_after_a_failure(self, stored):
        players, matches = stored
        history = HistoryReplay(players, matches)

        players.broken = True
        with pytest.raises(ReplayError):
            history.replay()

        players.broken = False
        states = history.replay()

        assert states['ana'].games_played == 2
        assert states['bob'].games_played == 2
        assert states['cat'].games_played == 2
