"""
Unit tests for feature engineering.
"""

import math

import pytest

from racecast.features import extract_features, extract_race_class
from racecast.schemas.prediction import RaceInput


class TestRaceClass:
    """Test race class extraction from free text."""

    @pytest.mark.parametrize(
        "details,stakes,expected",
        [
            ("Group 1 Cox Plate", None, 5),
            ("G1 Stakes", None, 5),
            ("Grp 2 Sprint", None, 4),
            ("Group 3 Handicap", None, 3),
            ("Listed Handicap", None, 2),
            ("Group 1 Stakes", None, 5),
            ("Melbourne Cup", None, 1),
            ("Cup Final", None, 1),
            ("Maiden 1200m", None, 0),
            (None, "Group 3", 3),
            (None, None, 0),
        ],
    )
    def test_extract_race_class(self, details, stakes, expected):
        assert extract_race_class(details, stakes) == expected

    def test_highest_class_wins(self):
        """Test a Group 1 cup race is class 5, not 1."""
        assert extract_race_class("Group 1 Caulfield Cup") == 5


class TestExtractFeatures:
    """Test the feature vector for a single horse."""

    def test_full_input(self, sample_race_input):
        features = extract_features(RaceInput(**sample_race_input))

        assert features["distance_numeric"] == 1600.0
        assert features["distance_normalized"] == pytest.approx(0.5)
        assert features["days_since_last_race"] == 14.0
        assert features["days_since_last_race_squared"] == 196.0
        assert features["winning_streak"] == 2.0
        assert features["losing_streak"] == 0.0
        assert features["recent_form_score"] == pytest.approx(1.0)
        assert features["historical_win_rate"] == pytest.approx(0.4)
        assert features["recent_form_decay"] == pytest.approx(0.7 * math.exp(-14 / 30))
        assert features["race_class"] == 5.0
        assert features["race_class_normalized"] == pytest.approx(1.0)
        assert features["horse_rank_rolling_mean_10"] == pytest.approx(0.6)
        assert features["horse_rank_rolling_std_10"] == pytest.approx(0.0)
        assert features["horse_name_decay_form_90"] == pytest.approx(math.exp(-14 / 90))

    def test_track_rate_falls_back_to_historical(self, sample_race_input):
        features = extract_features(RaceInput(**sample_race_input))

        assert features["track_specific_win_rate"] == pytest.approx(0.4)

    def test_defaults_for_missing_history(self):
        """Test defaults when only the required fields are given."""
        features = extract_features(
            RaceInput(
                horse_name="Midnight Express",
                track="Hamilton Racecourse",
                race_type="Flat",
                distance=1200,
                race_date="2026-10-19",
            )
        )

        assert features["days_since_last_race"] == 14.0
        assert features["historical_win_rate"] == pytest.approx(0.25)
        assert features["track_specific_win_rate"] == pytest.approx(0.25)
        assert features["recent_form_score"] == 0.0
        assert features["recent_form_decay"] == pytest.approx(0.5 * math.exp(-14 / 30))
        assert features["race_class"] == 0.0

    def test_losing_streak_form(self):
        features = extract_features(
            RaceInput(
                horse_name="Swift Victory",
                track="Cambridge Racecourse",
                race_type="Flat",
                distance=2000,
                race_date="2026-10-19",
                days_since_last_race=45,
                winning_streak=1,
                losing_streak=3,
            )
        )

        assert features["recent_form_score"] == pytest.approx(-0.5)
        assert features["horse_rank_rolling_std_10"] == pytest.approx(0.06)
        assert features["horse_name_decay_form_90"] == pytest.approx(math.exp(-0.5) * -0.5)
