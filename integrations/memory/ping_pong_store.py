import itertools
import logging
from typing import Optional

from readerwriterlock.rwlock import RWLockWrite

from data.models.match_record import MatchRecord
from data.models.player_rating_state import PlayerRatingState
from data.repositories.match import MatchRepository
from data.repositories.player import PlayerRepository
from integrations.memory.indexes import UniqueIndex, SortedBucketIndex

logger = logging.getLogger(__name__)

ALL_MATCHES = '*'


class MemoryPlayersTable(PlayerRepository):
    def __init__(self, initial: list[PlayerRatingState] = None):
        self._lock = RWLockWrite()

        self._by_id = UniqueIndex[PlayerRatingState, str](lambda model: model.player_id, self._lock)
        self._by_name = UniqueIndex[PlayerRatingState, str](lambda model: model.name.lower(), self._lock)

        if initial:
            self.save_all(initial)

    def get_player(self, player_id: str) -> Optional[PlayerRatingState]:
        return self._by_id.get(player_id)

    def get_all_players(self) -> list[PlayerRatingState]:
        return list(self._by_id.raw().values())

    def find_by_name(self, name: str) -> Optional[PlayerRatingState]:
        return self._by_name.get(name.strip().lower())

    def save(self, model: PlayerRatingState) -> None:
        self.save_all([model])

    def save_all(self, models: list[PlayerRatingState]) -> None:
        with self._lock.gen_wlock():
            changes = []
            new_models = []
            for model in models:
                existing = self._by_id.get_for_writing(model.player_id)
                if existing:
                    changes.append((existing, model))
                else:
                    new_models.append(model)

            for index in self._indexes():
                index.update_all(changes)
                index.insert_all(new_models)

    def delete(self, player_id: str) -> None:
        with self._lock.gen_wlock():
            existing = self._by_id.get_for_writing(player_id)
            if not existing:
                return

            for index in self._indexes():
                index.delete_all([existing])

    def _indexes(self) -> list[UniqueIndex]:
        return [self._by_id, self._by_name]


class MemoryMatchesTable(MatchRepository):
    def __init__(self, initial: list[MatchRecord] = None):
        self._lock = RWLockWrite()

        # Timestamps can collide, so the insertion order settles ties
        self._sequence = itertools.count()
        self._inserted_at: dict[str, int] = {}

        self._by_id = UniqueIndex[MatchRecord, str](lambda model: model.match_id, self._lock)
        self._by_player_id = SortedBucketIndex[MatchRecord, str](
            keys=[
                lambda model: model.outcome.player1_id,
                lambda model: model.outcome.player2_id,
                lambda model: ALL_MATCHES,
            ],
            sorter=self._chronological,
            shared_lock=self._lock,
        )

        if initial:
            for model in initial:
                self.insert(model)

    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        return self._by_id.get(match_id)

    def get_all_matches(self) -> list[MatchRecord]:
        return self._by_player_id.get(ALL_MATCHES) or []

    def get_matches(self, player_id: str) -> list[MatchRecord]:
        return self._by_player_id.get(player_id) or []

    def get_streak(self, player_id: str) -> int:
        last_result = None
        streak = 0

        for match in self.get_matches(player_id)[::-1]:  # newest first
            result = 1 if match.outcome.winner_id == player_id else -1
            if last_result and result != last_result:
                return streak

            streak += result
            last_result = result

        return streak

    def insert(self, model: MatchRecord) -> None:
        with self._lock.gen_wlock():
            if self._by_id.get_for_writing(model.match_id):
                raise ValueError(f"Match {model.match_id} has already been recorded")

            self._inserted_at[model.match_id] = next(self._sequence)
            for index in self._indexes():
                index.insert_all([model])

    def save_all(self, models: list[MatchRecord]) -> None:
        with self._lock.gen_wlock():
            changes = []
            for model in models:
                existing = self._by_id.get_for_writing(model.match_id)
                if not existing:
                    logger.warning(f"Match {model.match_id} is not stored and will not be saved")
                    continue

                changes.append((existing, model))

            for index in self._indexes():
                index.update_all(changes)

    def delete(self, match_id: str) -> None:
        with self._lock.gen_wlock():
            existing = self._by_id.get_for_writing(match_id)
            if existing:
                self._delete_inner([existing])

    def delete_for_player(self, player_id: str) -> list[MatchRecord]:
        with self._lock.gen_wlock():
            matches = self._by_player_id.get_for_writing(player_id) or []
            self._delete_inner(matches)
            return matches

    def _delete_inner(self, matches: list[MatchRecord]) -> None:
        for index in self._indexes():
            index.delete_all(matches)

        for match in matches:
            self._inserted_at.pop(match.match_id, None)

    def _chronological(self, model: MatchRecord) -> tuple:
        return model.outcome.played_at, self._inserted_at.get(model.match_id, 0)

    def _indexes(self) -> list:
        return [self._by_id, self._by_player_id]
