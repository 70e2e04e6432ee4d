from dataclasses import dataclass, replace
from copy import deepcopy
from datetime import datetime
from typing import Optional

BASE_RATING = 1000.0
BASE_RUST = 1.0


@dataclass(frozen=True)
class PlayerRatingState:
    player_id: str
    name: str
    rating: float = BASE_RATING
    wins: int = 0
    losses: int = 0
    last_played_at: Optional[datetime] = None
    accumulated_rust: float = BASE_RUST
    created_at: Optional[datetime] = None

    @property
    def games_played(self) -> int:
        return self.wins + self.losses

    def reset(self) -> 'PlayerRatingState':
        # Everything except the identity goes back to what a brand-new player has
        return self.copy(
            rating=BASE_RATING,
            wins=0,
            losses=0,
            last_played_at=None,
            accumulated_rust=BASE_RUST,
        )

    def __eq__(self, other):
        return isinstance(other, PlayerRatingState) and self.player_id == other.player_id

    def __hash__(self):
        return hash(self.player_id)

    def copy(self, **changes) -> 'PlayerRatingState':
        return replace(deepcopy(self), **changes)
