from abc import ABC, abstractmethod
from typing import Optional

from data.models.match_record import MatchRecord


class MatchRepository(ABC):
    @abstractmethod
    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        pass

    # Oldest first; matches played at the same time keep the order in which they were inserted
    @abstractmethod
    def get_all_matches(self) -> list[MatchRecord]:
        pass

    @abstractmethod
    def get_matches(self, player_id: str) -> list[MatchRecord]:
        pass

    @abstractmethod
    def get_streak(self, player_id: str) -> int:
        pass

    @abstractmethod
    def insert(self, model: MatchRecord) -> None:
        pass

    @abstractmethod
    def save_all(self, models: list[MatchRecord]) -> None:
        pass

    @abstractmethod
    def delete(self, match_id: str) -> None:
        pass

    @abstractmethod
    def delete_for_player(self, player_id: str) -> list[MatchRecord]:
        pass
