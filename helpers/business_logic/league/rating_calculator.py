import math
from datetime import datetime, timedelta
from typing import Optional

from data.models.player_rating_state import PlayerRatingState
from data.models.rating_change import RatingChangeResult

# Experience: new players move fast until they have settled in
K_PROVISIONAL = 40
K_ESTABLISHED = 24
PROVISIONAL_GAMES = 10

RATING_SCALE = 400.0

# Performance model
WIN_ANCHOR_BONUS = 0.08
MARGIN_WEIGHT = 0.4
DEUCE_BATTLE_BONUS = 0.06

# A regular game of table tennis goes to 11
MAX_POINTS = 11

# Inactivity
RUST_GRACE_PERIOD = 14
RUST_SCALE = 60.0
RUST_MAX = 2.0
RUST_DECAY_RATE = 0.4
RUST_SNAP = 1.01

ONE_DAY = timedelta(days=1)


def expected_performance(rating_a: float, rating_b: float) -> float:
    exponent = (rating_b - rating_a) / RATING_SCALE
    return 1.0 / (1.0 + 10.0 ** exponent)


def actual_performance(points_for: int, points_against: int, won: bool) -> float:
    """Turn a score line into a performance between 0 and 1.

    Roughly: 11-0 -> 1.0, 11-9 -> 0.55 plus the win bonus, 9-11 -> 0.45, 0-11 -> 0.0.
    Games that went past 11 give both sides a small bonus for the extended rally.
    """
    total = points_for + points_against
    if total == 0:
        return 0.5

    performance = points_for / total

    if won:
        performance += WIN_ANCHOR_BONUS

    top_score = max(points_for, points_against)
    if top_score > MAX_POINTS:
        deuce_intensity = (top_score - MAX_POINTS) / 10
        performance += DEUCE_BATTLE_BONUS * deuce_intensity

    return max(0.0, min(1.0, performance))


def margin_multiplier(margin: int, total_points: int, winner_score: int) -> float:
    if total_points == 0:
        return 1.0

    if winner_score > MAX_POINTS:
        # Long deuce games would otherwise inflate the margin, so it is taken relative to the total
        relative_margin = margin / total_points
        normalized_margin = relative_margin * (total_points / MAX_POINTS) * 0.5
    else:
        normalized_margin = margin / MAX_POINTS

    # From ~1.0 for a close game to ~1.4 for a blowout
    return 1.0 + normalized_margin * MARGIN_WEIGHT


def days_inactive(last_played_at: Optional[datetime], now: datetime) -> int:
    if not last_played_at:
        return 0

    return max(0, math.floor((now - last_played_at) / ONE_DAY))


def time_based_rust(days: int) -> float:
    if days <= RUST_GRACE_PERIOD:
        return 1.0

    excess_days = days - RUST_GRACE_PERIOD
    return min(1.0 + excess_days / RUST_SCALE, RUST_MAX)


def rust_multiplier(days: int, accumulated_rust: float) -> float:
    return min(max(time_based_rust(days), accumulated_rust), RUST_MAX)


def decay_rust(accumulated_rust: float) -> float:
    # Every game played shakes off part of the rust above 1.0
    excess_rust = accumulated_rust - 1.0
    new_rust = 1.0 + excess_rust * (1.0 - RUST_DECAY_RATE)

    return 1.0 if new_rust < RUST_SNAP else new_rust


def k_factor(games_played: int, rust: float = 1.0) -> float:
    if games_played < PROVISIONAL_GAMES:
        progress = games_played / PROVISIONAL_GAMES
        base_k = K_PROVISIONAL - (K_PROVISIONAL - K_ESTABLISHED) * progress
    else:
        base_k = K_ESTABLISHED

    # Rusty players swing harder so they recalibrate faster
    return base_k * rust


def round_half_away(value: float, digits: int = 2) -> float:
    # Replays must reproduce stored values exactly, so ties always go away from zero
    factor = 10 ** digits
    rounded = math.floor(abs(value) * factor + 0.5) / factor
    return math.copysign(rounded, value) if rounded else 0.0


def calculate_rating_changes(
    winner_rating: float,
    loser_rating: float,
    winner_score: int,
    loser_score: int,
    winner_games_played: int,
    loser_games_played: int,
    winner_last_played_at: Optional[datetime],
    loser_last_played_at: Optional[datetime],
    winner_accumulated_rust: float,
    loser_accumulated_rust: float,
    played_at: datetime,
) -> RatingChangeResult:
    # The rating moves by how much each side beat (or missed) its expected performance,
    # not by the bare win/loss. A narrow loss against a stronger player can still earn points.
    winner_delta = actual_performance(winner_score, loser_score, True) - expected_performance(winner_rating, loser_rating)
    loser_delta = actual_performance(loser_score, winner_score, False) - expected_performance(loser_rating, winner_rating)

    multiplier = margin_multiplier(winner_score - loser_score, winner_score + loser_score, winner_score)

    winner_days = days_inactive(winner_last_played_at, played_at)
    loser_days = days_inactive(loser_last_played_at, played_at)

    winner_rust = rust_multiplier(winner_days, winner_accumulated_rust)
    loser_rust = rust_multiplier(loser_days, loser_accumulated_rust)

    # Rust only grows from inactivity here; the decay happens after the game
    new_winner_rust = max(winner_accumulated_rust, time_based_rust(winner_days))
    new_loser_rust = max(loser_accumulated_rust, time_based_rust(loser_days))

    winner_change = k_factor(winner_games_played, winner_rust) * winner_delta * multiplier
    loser_change = k_factor(loser_games_played, loser_rust) * loser_delta * multiplier

    return RatingChangeResult(
        winner_change=round_half_away(winner_change),
        loser_change=round_half_away(loser_change),
        winner_rust=round_half_away(winner_rust),
        loser_rust=round_half_away(loser_rust),
        new_winner_rust=round_half_away(new_winner_rust),
        new_loser_rust=round_half_away(new_loser_rust),
        winner_days_inactive=winner_days,
        loser_days_inactive=loser_days,
    )


def compute_rating_change(winner: PlayerRatingState, loser: PlayerRatingState, winner_score: int, loser_score: int, played_at: datetime) -> RatingChangeResult:
    return calculate_rating_changes(
        winner_rating=winner.rating,
        loser_rating=loser.rating,
        winner_score=winner_score,
        loser_score=loser_score,
        winner_games_played=winner.games_played,
        loser_games_played=loser.games_played,
        winner_last_played_at=winner.last_played_at,
        loser_last_played_at=loser.last_played_at,
        winner_accumulated_rust=winner.accumulated_rust,
        loser_accumulated_rust=loser.accumulated_rust,
        played_at=played_at,
    )


def apply_match(
    winner: PlayerRatingState,
    loser: PlayerRatingState,
    winner_score: int,
    loser_score: int,
    played_at: datetime,
) -> tuple[PlayerRatingState, PlayerRatingState, RatingChangeResult]:
    change = compute_rating_change(winner, loser, winner_score, loser_score, played_at)

    new_winner = winner.copy(
        rating=winner.rating + change.winner_change,
        wins=winner.wins + 1,
        last_played_at=played_at,
        accumulated_rust=decay_rust(change.new_winner_rust),
    )
    new_loser = loser.copy(
        rating=loser.rating + change.loser_change,
        losses=loser.losses + 1,
        last_played_at=played_at,
        accumulated_rust=decay_rust(change.new_loser_rust),
    )

    return new_winner, new_loser, change
