import logging
import uuid

import pytz
from datetime import datetime
from typing import Optional

from readerwriterlock.rwlock import RWLockWrite

from data.models.match_outcome import MatchOutcome
from data.models.match_record import MatchRecord
from data.models.player_rating_state import PlayerRatingState
from data.repositories.match import MatchRepository
from data.repositories.player import PlayerRepository
from helpers.business_logic.history_replay import HistoryReplay
from helpers.business_logic.league.delta import Delta
from helpers.business_logic.league.match_result import MatchResult
from helpers.business_logic.league.prediction import Prediction
from helpers.business_logic.league.rating_calculator import apply_match
from helpers.exceptions import InvalidPlayerError, DuplicatePlayerError, PlayerNotFoundError, InvalidMatchError, MatchNotFoundError

logger = logging.getLogger(__name__)


class PingPongCalculator:
    def __init__(self, players: PlayerRepository, matches: MatchRepository, timezone: pytz.timezone = None):
        self._players = players
        self._matches = matches
        self._timezone = timezone or pytz.utc

        # Recording a match and replaying the history both rewrite player ratings, so they must never overlap
        self._lock = RWLockWrite()
        self._history = HistoryReplay(players, matches, self._lock)

    def get_player(self, player_id: str) -> PlayerRatingState:
        with self._lock.gen_rlock():
            return self._require_player(player_id)

    def get_standings(self) -> list[tuple[int, PlayerRatingState]]:
        with self._lock.gen_rlock():
            return self._rank_all()

    def get_rank(self, player_id: str) -> int:
        with self._lock.gen_rlock():
            self._require_player(player_id)
            return self._ranks().get(player_id)

    def get_streak(self, player_id: str) -> int:
        with self._lock.gen_rlock():
            return self._matches.get_streak(player_id)

    def get_matches(self, player_id: Optional[str] = None) -> list[MatchRecord]:
        with self._lock.gen_rlock():
            matches = self._matches.get_matches(player_id) if player_id else self._matches.get_all_matches()
            return matches[::-1]  # newest first

    def predict(self, player1_id: str, player2_id: str) -> Prediction:
        with self._lock.gen_rlock():
            return Prediction.between(self._require_player(player1_id), self._require_player(player2_id))

    def add_player(self, name: str) -> PlayerRatingState:
        clean_name = (name or '').strip()
        if not clean_name:
            raise InvalidPlayerError()

        with self._lock.gen_wlock():
            if self._players.find_by_name(clean_name):
                raise DuplicatePlayerError()

            player = PlayerRatingState(
                player_id=uuid.uuid4().hex,
                name=clean_name,
                created_at=self._now(),
            )
            self._players.save(player)

        logger.info(f"Added player {player.name}")
        return player

    def delete_player(self, player_id: str) -> None:
        with self._lock.gen_wlock():
            player = self._require_player(player_id)

            removed = self._matches.delete_for_player(player_id)
            self._players.delete(player_id)

            logger.info(f"Deleted player {player.name} and {len(removed)} of their matches")

            # The opponents' ratings were built on those matches as well
            if removed:
                self._history.rebuild()

    def record_match(self, player1_id: str, player2_id: str, player1_score: int | str, player2_score: int | str, played_at: Optional[datetime] = None) -> tuple[MatchResult, MatchResult]:
        if not player1_id or not player2_id:
            raise InvalidMatchError('Both players are required.')

        if player1_id == player2_id:
            raise InvalidMatchError('A player cannot play against themselves.')

        score1 = PingPongCalculator._parse_score(player1_score)
        score2 = PingPongCalculator._parse_score(player2_score)

        if score1 == score2:
            raise InvalidMatchError('Scores cannot be equal (one player must win).')

        with self._lock.gen_wlock():
            player1 = self._require_player(player1_id)
            player2 = self._require_player(player2_id)

            outcome = MatchOutcome(
                match_id=uuid.uuid4().hex,
                player1_id=player1.player_id,
                player2_id=player2.player_id,
                player1_score=score1,
                player2_score=score2,
                played_at=self._normalize_played_at(played_at) if played_at else self._now(),
            )

            return self._game_over(outcome)

    def delete_match(self, match_id: str) -> dict[str, PlayerRatingState]:
        with self._lock.gen_wlock():
            if not self._matches.get_match(match_id):
                raise MatchNotFoundError()

            self._matches.delete(match_id)
            logger.info(f"Deleted match {match_id}")

            return self._history.rebuild()

    def recalculate(self) -> dict[str, PlayerRatingState]:
        return self._history.replay()

    def _game_over(self, outcome: MatchOutcome) -> tuple[MatchResult, MatchResult]:
        # Get the existing data
        old_winner = self._require_player(outcome.winner_id)
        old_loser = self._require_player(outcome.loser_id)

        old_winner_streak = self._matches.get_streak(old_winner.player_id)
        old_loser_streak = self._matches.get_streak(old_loser.player_id)

        old_ranks = self._ranks()
        backdated = self._is_backdated(outcome)

        (new_winner, new_loser, change) = apply_match(old_winner, old_loser, outcome.winner_score, outcome.loser_score, outcome.played_at)

        # Save the changes to storage
        player1_rating = old_winner.rating if outcome.player1_won else old_loser.rating
        player2_rating = old_loser.rating if outcome.player1_won else old_winner.rating
        record = MatchRecord.from_change(outcome, player1_rating, player2_rating, change)

        self._players.save_all([new_winner, new_loser])
        self._matches.insert(record)

        # A match slotted in before others changes every rating that came after it
        if backdated:
            logger.info(f"Match {outcome.match_id} was played before the latest recorded match")
            states = self._history.rebuild()
            new_winner = states[new_winner.player_id]
            new_loser = states[new_loser.player_id]
            record = self._matches.get_match(outcome.match_id) or record

        logger.info(f"{new_winner.name} beat {new_loser.name} {outcome.winner_score}-{outcome.loser_score}")

        new_ranks = self._ranks()

        results = (
            self._match_result(record, old_winner, new_winner, old_ranks, new_ranks, old_winner_streak),
            self._match_result(record, old_loser, new_loser, old_ranks, new_ranks, old_loser_streak),
        )

        for result in results:
            if result.rank.changed:
                logger.info(f"{result.player.name} moved from #{result.rank.before} to #{result.rank.after}")

        return results

    def _match_result(self, record: MatchRecord, before: PlayerRatingState, after: PlayerRatingState, old_ranks: dict[str, int], new_ranks: dict[str, int], old_streak: int) -> MatchResult:
        player_id = after.player_id
        won = record.outcome.winner_id == player_id

        return MatchResult(
            player=after,
            won=won,
            score=record.outcome.winner_score if won else record.outcome.loser_score,
            rating=Delta(before=before.rating, after=after.rating),
            rank=Delta(before=old_ranks.get(player_id), after=new_ranks.get(player_id)),
            streak=Delta(before=old_streak, after=self._matches.get_streak(player_id)),
            rust=record.rust_for(player_id),
            days_inactive=record.days_inactive_for(player_id),
        )

    def _now(self) -> datetime:
        # Stored timestamps only keep whole seconds
        return datetime.now(self._timezone).replace(microsecond=0)

    def _normalize_played_at(self, played_at: datetime) -> datetime:
        # Naive dates are taken to be in the ladder's timezone; stored timestamps are always aware
        if not played_at.tzinfo:
            played_at = self._timezone.localize(played_at)

        return played_at.replace(microsecond=0)

    def _is_backdated(self, outcome: MatchOutcome) -> bool:
        all_matches = self._matches.get_all_matches()
        return bool(all_matches) and outcome.played_at < all_matches[-1].outcome.played_at

    def _require_player(self, player_id: str) -> PlayerRatingState:
        player = self._players.get_player(player_id)
        if not player:
            raise PlayerNotFoundError()
        return player

    def _rank_all(self) -> list[tuple[int, PlayerRatingState]]:
        # Sort by rating; players on the same rating are listed by name
        players = sorted(self._players.get_all_players(), key=lambda p: (-p.rating, p.name.lower()))
        return [(i + 1, player) for i, player in enumerate(players)]

    def _ranks(self) -> dict[str, int]:
        return {player.player_id: rank for rank, player in self._rank_all()}

    @staticmethod
    def _parse_score(score: int | str) -> int:
        if isinstance(score, bool):
            raise InvalidMatchError('Please enter valid scores (non-negative numbers).')

        try:
            parsed = int(str(score).strip())
        except ValueError:
            raise InvalidMatchError('Please enter valid scores (non-negative numbers).') from None

        if parsed < 0:
            raise InvalidMatchError('Please enter valid scores (non-negative numbers).')

        return parsed
