from typing import Optional, TYPE_CHECKING

from data.models.player_rating_state import PlayerRatingState, BASE_RATING, BASE_RUST
from data.repositories.player import PlayerRepository
from integrations.google.sheets.contracts.tables.sheet_table import SheetTable, Row
from integrations.memory.indexes import Index, UniqueIndex

if TYPE_CHECKING:
    from integrations.google.sheets.contracts.database import Database


class PlayersTable(
    SheetTable[PlayerRatingState],
    PlayerRepository,
):
    def __init__(self, database: 'Database', sheet_name: str):
        super().__init__(database, sheet_name)

        self._by_id = UniqueIndex[PlayerRatingState, str](lambda model: model.player_id, self._lock)
        self._by_name = UniqueIndex[PlayerRatingState, str](lambda model: model.name.lower(), self._lock)

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
            to_update = {}
            to_insert = []

            for model in models:
                existing = self._by_id.get_for_writing(model.player_id)
                if not existing:
                    to_insert.append(model)
                    continue

                # Only players with data changes will be saved
                diff = self._diff(existing, model)
                if diff:
                    changes.append((existing, model))
                    to_update[model.player_id] = diff

            self._update_rows(to_update)
            self._append_rows([self._serialize(model) for model in to_insert])

            for index in self._get_indexes():
                index.update_all(changes)
                index.insert_all(to_insert)

    def delete(self, player_id: str) -> None:
        with self._lock.gen_wlock():
            existing = self._by_id.get_for_writing(player_id)
            if not existing:
                return

            self._delete_rows([player_id])

            for index in self._get_indexes():
                index.delete_all([existing])

    def _diff(self, a: PlayerRatingState, b: PlayerRatingState) -> Row:
        a_row = self._serialize(a)
        b_row = self._serialize(b)
        return {k: v for k, v in b_row.items() if a_row.get(k) != v}

    def _get_key_name(self) -> str:
        return 'player_id'

    def _get_indexes(self) -> list[Index]:
        return [self._by_id, self._by_name]

    def _serialize(self, model: PlayerRatingState) -> Row:
        return {
            'player_id': model.player_id,
            'name': model.name,
            'rating': repr(model.rating),
            'wins': str(model.wins),
            'losses': str(model.losses),
            'matches_played': str(model.games_played),
            'last_played': self._database.to_datetime_string(model.last_played_at),
            'rust_accumulated': repr(model.accumulated_rust),
            'created_at': self._database.to_datetime_string(model.created_at),
        }

    def _deserialize(self, row: Row) -> Optional[PlayerRatingState]:
        player_id = row.get('player_id', '').strip()
        if not player_id:
            return None

        name = row.get('name', '').strip()
        if not name:
            return None

        rating = PlayersTable._parse_float(row.get('rating', ''))

        return PlayerRatingState(
            player_id=player_id,
            name=name,
            rating=rating if rating is not None else BASE_RATING,
            wins=PlayersTable._parse_int(row.get('wins', '')) or 0,
            losses=PlayersTable._parse_int(row.get('losses', '')) or 0,
            last_played_at=self._database.from_datetime_string(row.get('last_played', '')),
            accumulated_rust=PlayersTable._parse_float(row.get('rust_accumulated', '')) or BASE_RUST,
            created_at=self._database.from_datetime_string(row.get('created_at', '')),
        )
