import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from readerwriterlock.rwlock import RWLockWrite

from data.models.match_outcome import MatchOutcome
from data.models.match_record import MatchRecord
from data.models.player_rating_state import PlayerRatingState
from data.repositories.match import MatchRepository
from data.repositories.player import PlayerRepository
from helpers.business_logic.league.rating_calculator import apply_match
from helpers.exceptions import ReplayError

logger = logging.getLogger(__name__)

ReplayableMatch = Union[MatchOutcome, MatchRecord]
PlayerLookup = Union[Mapping[str, PlayerRatingState], Iterable[PlayerRatingState]]


@dataclass(frozen=True)
class ReplayResult:
    players: dict[str, PlayerRatingState] = field(default_factory=dict)
    matches: list[MatchRecord] = field(default_factory=list)
    skipped: list[MatchOutcome] = field(default_factory=list)


def replay_match_history(matches: Iterable[ReplayableMatch], players: PlayerLookup, key: Optional[Callable[[MatchOutcome], Any]] = None) -> ReplayResult:
    """Rebuild every player's rating state from scratch.

    Each player is reset to the baseline and every match is folded in, oldest first, using the
    match's own timestamp as "now". The matches must already be in chronological order unless
    a sort key is given; the sort is stable, so matches played at the same moment stay in the
    order they were given in. Matches that reference an unknown player are skipped.
    """
    outcomes = [_outcome(match) for match in matches]
    if key:
        outcomes = sorted(outcomes, key=key)

    known_players = players.values() if isinstance(players, Mapping) else players
    states = {player.player_id: player.reset() for player in known_players}

    records = []
    skipped = []

    for outcome in outcomes:
        winner = states.get(outcome.winner_id)
        loser = states.get(outcome.loser_id)

        # One of the players is gone, so this match can no longer affect anyone's rating
        if not winner or not loser:
            logger.debug(f"Skipping match {outcome.match_id} because one of its players no longer exists")
            skipped.append(outcome)
            continue

        new_winner, new_loser, change = apply_match(winner, loser, outcome.winner_score, outcome.loser_score, outcome.played_at)

        player1_rating = states[outcome.player1_id].rating
        player2_rating = states[outcome.player2_id].rating
        records.append(MatchRecord.from_change(outcome, player1_rating, player2_rating, change))

        states[new_winner.player_id] = new_winner
        states[new_loser.player_id] = new_loser

    return ReplayResult(players=states, matches=records, skipped=skipped)


def replay_all_matches(matches: Iterable[ReplayableMatch], players: PlayerLookup, key: Optional[Callable[[MatchOutcome], Any]] = None) -> dict[str, PlayerRatingState]:
    return replay_match_history(matches, players, key).players


def _outcome(match: ReplayableMatch) -> MatchOutcome:
    return match.outcome if isinstance(match, MatchRecord) else match


# Keeps the stored ratings equal to "every player at baseline, folded through every remaining match"
# Local patches can't undo a match, because every later match used ratings and game counts that it produced
class HistoryReplay:
    def __init__(self, players: PlayerRepository, matches: MatchRepository, lock: RWLockWrite = None):
        self._players = players
        self._matches = matches
        self._lock = lock or RWLockWrite()

    def replay(self) -> dict[str, PlayerRatingState]:
        with self._lock.gen_wlock():
            return self.rebuild()

    # The caller must already hold the write lock
    def rebuild(self) -> dict[str, PlayerRatingState]:
        logger.info('Replaying the match history')

        try:
            result = replay_match_history(self._matches.get_all_matches(), self._players.get_all_players())

            # Everything is computed before anything is written, so a failed load leaves the stored state intact
            self._players.save_all(list(result.players.values()))
            self._matches.save_all(result.matches)
        except Exception as e:
            logger.exception(e)
            raise ReplayError('The rating history could not be replayed; running the replay again is safe') from e

        logger.info(f"Replayed {len(result.matches)} matches for {len(result.players)} players ({len(result.skipped)} skipped)")

        return result.players
