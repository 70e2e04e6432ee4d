from dataclasses import dataclass


# What the rating engine produces for a single match, seen from the winner's and the loser's side.
# Rust values are rounded; the new rust is the value to store before the post-match decay is applied.
@dataclass(frozen=True)
class RatingChangeResult:
    winner_change: float
    loser_change: float
    winner_rust: float
    loser_rust: float
    new_winner_rust: float
    new_loser_rust: float
    winner_days_inactive: int
    loser_days_inactive: int
