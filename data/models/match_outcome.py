from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class MatchOutcome:
    match_id: str
    player1_id: str
    player2_id: str
    player1_score: int
    player2_score: int
    played_at: datetime

    @property
    def player1_won(self) -> bool:
        return self.player1_score > self.player2_score

    @property
    def winner_id(self) -> str:
        return self.player1_id if self.player1_won else self.player2_id

    @property
    def loser_id(self) -> str:
        return self.player2_id if self.player1_won else self.player1_id

    @property
    def winner_score(self) -> int:
        return max(self.player1_score, self.player2_score)

    @property
    def loser_score(self) -> int:
        return min(self.player1_score, self.player2_score)

    def involves(self, player_id: str) -> bool:
        return player_id in (self.player1_id, self.player2_id)
