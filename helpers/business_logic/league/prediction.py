from dataclasses import dataclass
from typing import Optional

from data.models.player_rating_state import PlayerRatingState

from helpers.business_logic.league.rating_calculator import expected_performance


@dataclass(frozen=True)
class Prediction:
    player1: PlayerRatingState
    player2: PlayerRatingState
    player1_win_probability: float
    player2_win_probability: float

    @property
    def rating_difference(self) -> float:
        return self.player1.rating - self.player2.rating

    # Players on the same rating are an even match, so neither is the favourite
    @property
    def favourite(self) -> Optional[PlayerRatingState]:
        if self.rating_difference == 0:
            return None
        return self.player1 if self.rating_difference > 0 else self.player2

    @property
    def underdog(self) -> Optional[PlayerRatingState]:
        if self.rating_difference == 0:
            return None
        return self.player2 if self.rating_difference > 0 else self.player1

    @staticmethod
    def between(player1: PlayerRatingState, player2: PlayerRatingState) -> 'Prediction':
        player1_win_probability = expected_performance(player1.rating, player2.rating)
        return Prediction(
            player1=player1,
            player2=player2,
            player1_win_probability=player1_win_probability,
            player2_win_probability=1.0 - player1_win_probability,
        )
