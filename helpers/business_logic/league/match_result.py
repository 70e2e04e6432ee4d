from dataclasses import dataclass

from data.models.player_rating_state import PlayerRatingState

from helpers.business_logic.league.delta import Delta


# How a single match moved one of its players around the ladder
@dataclass(frozen=True)
class MatchResult:
    player: PlayerRatingState
    won: bool
    score: int
    rating: Delta[float]
    rank: Delta[int]
    streak: Delta[int]
    rust: float = 1.0
    days_inactive: int = 0
