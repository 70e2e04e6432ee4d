import itertools
import logging
from typing import Optional, TYPE_CHECKING

from data.models.match_outcome import MatchOutcome
from data.models.match_record import MatchRecord
from data.repositories.match import MatchRepository
from integrations.google.sheets.contracts.tables.sheet_table import SheetTable, Row
from integrations.memory.indexes import Index, UniqueIndex, SortedBucketIndex

if TYPE_CHECKING:
    from integrations.google.sheets.contracts.database import Database

logger = logging.getLogger(__name__)

ALL_MATCHES = '*'


class MatchesTable(
    SheetTable[MatchRecord],
    MatchRepository,
):
    def __init__(self, database: 'Database', sheet_name: str):
        # New matches are appended at the bottom, so the row order doubles as the insertion order
        self._sequence = itertools.count()
        self._inserted_at: dict[str, int] = {}

        super().__init__(database, sheet_name)

        self._by_id = UniqueIndex[MatchRecord, str](lambda model: model.match_id, self._lock)
        self._by_player_id = SortedBucketIndex[MatchRecord, str](
            keys=[
                lambda model: model.outcome.player1_id,
                lambda model: model.outcome.player2_id,
                lambda model: ALL_MATCHES,
            ],
            sorter=lambda model: (model.outcome.played_at, self._inserted_at.get(model.match_id, 0)),
            shared_lock=self._lock,
        )

    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        return self._by_id.get(match_id)

    def get_all_matches(self) -> list[MatchRecord]:
        return self._by_player_id.get(ALL_MATCHES) or []

    def get_matches(self, player_id: str) -> list[MatchRecord]:
        return self._by_player_id.get(player_id) or []

    def get_streak(self, player_id: str) -> int:
        last_result = None
        streak = 0

        for match in self.get_matches(player_id)[::-1]:  # reversed
            result = 1 if match.outcome.winner_id == player_id else -1
            if last_result and result != last_result:
                return streak

            streak += result
            last_result = result

        return streak

    def insert(self, model: MatchRecord) -> None:
        with self._lock.gen_wlock():
            self._append_rows([self._serialize(model)])

            self._inserted_at[model.match_id] = next(self._sequence)
            for index in self._get_indexes():
                index.insert_all([model])

    def save_all(self, models: list[MatchRecord]) -> None:
        with self._lock.gen_wlock():
            changes = []
            to_update = {}

            for model in models:
                existing = self._by_id.get_for_writing(model.match_id)
                if not existing:
                    logger.warning(f"Match {model.match_id} is not in the sheet and will not be saved")
                    continue

                row = self._serialize(model)
                old_row = self._serialize(existing)
                diff = {k: v for k, v in row.items() if old_row.get(k) != v}
                if diff:
                    changes.append((existing, model))
                    to_update[model.match_id] = diff

            self._update_rows(to_update)

            for index in self._get_indexes():
                index.update_all(changes)

    def delete(self, match_id: str) -> None:
        with self._lock.gen_wlock():
            existing = self._by_id.get_for_writing(match_id)
            if existing:
                self._delete_matches([existing])

    def delete_for_player(self, player_id: str) -> list[MatchRecord]:
        with self._lock.gen_wlock():
            matches = self._by_player_id.get_for_writing(player_id) or []
            self._delete_matches(matches)
            return matches

    def _delete_matches(self, matches: list[MatchRecord]) -> None:
        self._delete_rows([match.match_id for match in matches])

        for index in self._get_indexes():
            index.delete_all(matches)

        for match in matches:
            self._inserted_at.pop(match.match_id, None)

    def _reload(self, models: list[MatchRecord]) -> None:
        with self._lock.gen_wlock():
            self._sequence = itertools.count()
            self._inserted_at = {model.match_id: next(self._sequence) for model in models}

        super()._reload(models)

    def _get_key_name(self) -> str:
        return 'match_id'

    def _get_indexes(self) -> list[Index]:
        return [self._by_id, self._by_player_id]

    def _serialize(self, model: MatchRecord) -> Row:
        outcome = model.outcome
        return {
            'match_id': outcome.match_id,
            'player1_id': outcome.player1_id,
            'player2_id': outcome.player2_id,
            'player1_score': str(outcome.player1_score),
            'player2_score': str(outcome.player2_score),
            'player1_elo_before': repr(model.player1_rating_before),
            'player2_elo_before': repr(model.player2_rating_before),
            'player1_elo_after': repr(model.player1_rating_after),
            'player2_elo_after': repr(model.player2_rating_after),
            'player1_elo_change': repr(model.player1_rating_change),
            'player2_elo_change': repr(model.player2_rating_change),
            'player1_rust': repr(model.player1_rust),
            'player2_rust': repr(model.player2_rust),
            'player1_days_inactive': str(model.player1_days_inactive),
            'player2_days_inactive': str(model.player2_days_inactive),
            'created_at': self._database.to_datetime_string(outcome.played_at),
        }

    def _deserialize(self, row: Row) -> Optional[MatchRecord]:
        match_id = row.get('match_id', '').strip()
        if not match_id:
            return None

        player1_id = row.get('player1_id', '').strip()
        player2_id = row.get('player2_id', '').strip()
        if not player1_id or not player2_id or player1_id == player2_id:
            return None

        player1_score = MatchesTable._parse_int(row.get('player1_score', ''))
        player2_score = MatchesTable._parse_int(row.get('player2_score', ''))
        if player1_score is None or player2_score is None or player1_score == player2_score:
            return None

        played_at = self._database.from_datetime_string(row.get('created_at', ''))
        if not played_at:
            return None

        return MatchRecord(
            outcome=MatchOutcome(
                match_id=match_id,
                player1_id=player1_id,
                player2_id=player2_id,
                player1_score=player1_score,
                player2_score=player2_score,
                played_at=played_at,
            ),
            player1_rating_before=MatchesTable._parse_float(row.get('player1_elo_before', '')) or 0.0,
            player2_rating_before=MatchesTable._parse_float(row.get('player2_elo_before', '')) or 0.0,
            player1_rating_change=MatchesTable._parse_float(row.get('player1_elo_change', '')) or 0.0,
            player2_rating_change=MatchesTable._parse_float(row.get('player2_elo_change', '')) or 0.0,
            player1_rust=MatchesTable._parse_float(row.get('player1_rust', '')) or 1.0,
            player2_rust=MatchesTable._parse_float(row.get('player2_rust', '')) or 1.0,
            player1_days_inactive=MatchesTable._parse_int(row.get('player1_days_inactive', '')) or 0,
            player2_days_inactive=MatchesTable._parse_int(row.get('player2_days_inactive', '')) or 0,
        )
