from abc import ABC, abstractmethod
from typing import Optional

from data.models.player_rating_state import PlayerRatingState


class PlayerRepository(ABC):
    @abstractmethod
    def get_player(self, player_id: str) -> Optional[PlayerRatingState]:
        pass

    @abstractmethod
    def get_all_players(self) -> list[PlayerRatingState]:
        pass

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[PlayerRatingState]:
        pass

    @abstractmethod
    def save(self, model: PlayerRatingState) -> None:
        pass

    @abstractmethod
    def save_all(self, models: list[PlayerRatingState]) -> None:
        pass

    @abstractmethod
    def delete(self, player_id: str) -> None:
        pass
