from dataclasses import dataclass

from data.models.match_outcome import MatchOutcome
from data.models.rating_change import RatingChangeResult


# A match together with the rating effect it had on both players at the time it was applied
# The values are stored in player1/player2 order, like the outcome itself
@dataclass(frozen=True)
class MatchRecord:
    outcome: MatchOutcome
    player1_rating_before: float
    player2_rating_before: float
    player1_rating_change: float = 0.0
    player2_rating_change: float = 0.0
    player1_rust: float = 1.0
    player2_rust: float = 1.0
    player1_days_inactive: int = 0
    player2_days_inactive: int = 0

    @property
    def match_id(self) -> str:
        return self.outcome.match_id

    @property
    def player1_rating_after(self) -> float:
        return self.player1_rating_before + self.player1_rating_change

    @property
    def player2_rating_after(self) -> float:
        return self.player2_rating_before + self.player2_rating_change

    def rating_change_for(self, player_id: str) -> float:
        return self._pick(player_id, self.player1_rating_change, self.player2_rating_change)

    def rust_for(self, player_id: str) -> float:
        return self._pick(player_id, self.player1_rust, self.player2_rust)

    def days_inactive_for(self, player_id: str) -> int:
        return self._pick(player_id, self.player1_days_inactive, self.player2_days_inactive)

    def _pick(self, player_id: str, player1_value, player2_value):
        if not self.outcome.involves(player_id):
            raise ValueError(f"Player {player_id} did not play in match {self.match_id}")

        return player1_value if player_id == self.outcome.player1_id else player2_value

    @staticmethod
    def from_change(outcome: MatchOutcome, player1_rating: float, player2_rating: float, change: RatingChangeResult) -> 'MatchRecord':
        # The engine works in winner/loser terms, so map the values back to player1/player2 order
        if outcome.player1_won:
            ordered = (change.winner_change, change.loser_change, change.winner_rust, change.loser_rust, change.winner_days_inactive, change.loser_days_inactive)
        else:
            ordered = (change.loser_change, change.winner_change, change.loser_rust, change.winner_rust, change.loser_days_inactive, change.winner_days_inactive)

        player1_change, player2_change, player1_rust, player2_rust, player1_days, player2_days = ordered

        return MatchRecord(
            outcome=outcome,
            player1_rating_before=player1_rating,
            player2_rating_before=player2_rating,
            player1_rating_change=player1_change,
            player2_rating_change=player2_change,
            player1_rust=player1_rust,
            player2_rust=player2_rust,
            player1_days_inactive=player1_days,
            player2_days_inactive=player2_days,
        )

    def __eq__(self, other):
        return isinstance(other, MatchRecord) and self.match_id == other.match_id

    def __hash__(self):
        return hash(self.match_id)
