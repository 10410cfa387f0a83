"""
Feature Engineering

Pure functions that turn raw race/horse attributes into the normalized
feature set consumed by the scoring ensemble. Input is assumed valid;
validation happens in the prediction service before this runs.
"""

import math

from racecast.config import (
    FEATURE_DEFAULT_DAYS_SINCE_LAST_RACE,
    FEATURE_DEFAULT_HISTORICAL_WIN_RATE,
    FEATURE_DEFAULT_RECENT_FORM_SCORE,
    FEATURE_DISTANCE_NORMALIZER,
    FEATURE_FORM_DECAY_DAYS,
    FEATURE_LONG_DECAY_DAYS,
    FEATURE_MAX_RACE_CLASS,
)
from racecast.schemas.prediction import RaceInput

# Race class keywords, highest class first
RACE_CLASS_PATTERNS: list[tuple[int, tuple[str, ...]]] = [
    (5, ("group 1", "grp 1", "g1")),
    (4, ("group 2", "grp 2", "g2")),
    (3, ("group 3", "grp 3", "g3")),
    (2, ("listed",)),
    (1, ("cup", "classic", "guineas", "stakes", "trophy")),
]

FeatureVector = dict[str, float]


def extract_race_class(details: str | None = None, stakes: str | None = None) -> int:
    """
    Resolve a race class score in [0, 5] from free-text descriptors.

    Args:
        details: Race name or class description
        stakes: Stakes description

    Returns:
        5 for Group 1 down to 1 for named feature races, 0 otherwise
    """
    text = f"{details or ''} {stakes or ''}".lower()

    for race_class, keywords in RACE_CLASS_PATTERNS:
        if any(keyword in text for keyword in keywords):
            return race_class
    return 0


def extract_features(race_input: RaceInput) -> FeatureVector:
    """
    Build the feature vector for a single horse.

    Args:
        race_input: Validated race input

    Returns:
        Mapping of feature name to float
    """
    features: FeatureVector = {}

    # Distance
    features["distance_numeric"] = float(race_input.distance)
    features["distance_normalized"] = race_input.distance / FEATURE_DISTANCE_NORMALIZER

    # Time since last start
    days_since = (
        race_input.days_since_last_race
        if race_input.days_since_last_race is not None
        else FEATURE_DEFAULT_DAYS_SINCE_LAST_RACE
    )
    features["days_since_last_race"] = float(days_since)
    features["days_since_last_race_squared"] = float(days_since * days_since)

    # Form
    win_streak = race_input.winning_streak
    lose_streak = race_input.losing_streak
    features["winning_streak"] = float(win_streak)
    features["losing_streak"] = float(lose_streak)
    features["recent_form_score"] = (win_streak - lose_streak) / max(1, win_streak + lose_streak)

    # Historical performance
    historical = (
        race_input.historical_win_rate
        if race_input.historical_win_rate is not None
        else FEATURE_DEFAULT_HISTORICAL_WIN_RATE
    )
    recent_form = (
        race_input.recent_form_score
        if race_input.recent_form_score is not None
        else FEATURE_DEFAULT_RECENT_FORM_SCORE
    )
    features["historical_win_rate"] = historical
    features["recent_form_decay"] = recent_form * math.exp(-days_since / FEATURE_FORM_DECAY_DAYS)

    # Track-specific
    features["track_specific_win_rate"] = (
        race_input.track_specific_win_rate
        if race_input.track_specific_win_rate is not None
        else historical
    )

    # Race class
    race_class = extract_race_class(race_input.details, race_input.stakes)
    features["race_class"] = float(race_class)
    features["race_class_normalized"] = race_class / FEATURE_MAX_RACE_CLASS

    # Rolling statistics (simulated from streaks)
    features["horse_rank_rolling_mean_10"] = 0.5 + win_streak * 0.05
    features["horse_rank_rolling_std_10"] = abs(lose_streak * 0.02)

    # Long-horizon decay
    features["horse_name_decay_form_90"] = (
        math.exp(-days_since / FEATURE_LONG_DECAY_DAYS) * features["recent_form_score"]
    )

    return features
