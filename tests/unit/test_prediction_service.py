"""
Unit tests for prediction service.

Tests input validation, scoring and quota-checked issuance.
"""

import gc
import threading
from unittest.mock import MagicMock

import pytest

from racecast.db.prediction_store import InMemoryPredictionStore, get_prediction_store
from racecast.exceptions import DataValidationError, QuotaExceededError
from racecast.schemas.prediction import RaceInput
from racecast.services import prediction_service
from racecast.services.prediction_service import (
    check_rate_limit,
    issue_prediction,
    predict,
    validate_prediction_input,
)


class TestValidation:
    """Test required field validation."""

    def test_valid_input(self, sample_race_input):
        assert validate_prediction_input(sample_race_input) is None

    @pytest.mark.parametrize(
        "field,value,message",
        [
            ("horse_name", "", "Horse name is required"),
            ("horse_name", "   ", "Horse name is required"),
            ("track", None, "Track is required"),
            ("race_type", "", "Race type is required"),
            ("distance", 0, "Valid distance is required"),
            ("distance", -1200, "Valid distance is required"),
            ("distance", "1200", "Valid distance is required"),
            ("distance", True, "Valid distance is required"),
            ("race_date", "", "Race date is required"),
        ],
    )
    def test_invalid_field(self, sample_race_input, field, value, message):
        data = dict(sample_race_input, **{field: value})

        assert validate_prediction_input(data) == message

    def test_first_error_reported(self):
        assert validate_prediction_input({}) == "Horse name is required"


class TestPredict:
    """Test single-horse scoring."""

    def test_predict_returns_bounded_result(self, sample_race_input, quiet_ensemble):
        result = predict(sample_race_input, quiet_ensemble)

        assert result.horse_name == "Lucky Strike"
        assert 0.05 <= result.ensemble_probability <= 0.95
        for score in result.per_model_scores.values():
            assert 0.05 <= score <= 0.95
        assert result.ensemble_probability == pytest.approx(
            sum(result.per_model_scores.values()) / 4
        )
        assert result.model_explanation.startswith(result.confidence)

    def test_predict_accepts_model(self, sample_race_input, quiet_ensemble):
        from_dict = predict(sample_race_input, quiet_ensemble)
        from_model = predict(RaceInput(**sample_race_input), quiet_ensemble)

        assert from_dict == from_model

    def test_invalid_input_is_not_scored(self, sample_race_input):
        ensemble = MagicMock()

        with pytest.raises(DataValidationError, match="Valid distance is required"):
            predict(dict(sample_race_input, distance=0), ensemble)

        ensemble.score.assert_not_called()

    def test_out_of_range_rate_rejected(self, sample_race_input, quiet_ensemble):
        with pytest.raises(DataValidationError):
            predict(dict(sample_race_input, historical_win_rate=1.5), quiet_ensemble)


class TestIssuePrediction:
    """Test quota-checked issuance."""

    def test_issue_persists_prediction(self, sample_race_input, memory_store, quiet_ensemble):
        issued = issue_prediction(1, sample_race_input, memory_store, quiet_ensemble)

        assert issued.id == 1
        assert issued.user_id == 1
        assert memory_store.count_today(1) == 1
        assert memory_store.list_by_user(1)[0].result == issued.result

    def test_free_tier_quota(self, sample_race_input, memory_store, quiet_ensemble):
        """Test the sixth free-tier prediction of the day is refused."""
        for _ in range(5):
            issue_prediction(7, sample_race_input, memory_store, quiet_ensemble)

        with pytest.raises(QuotaExceededError) as exc_info:
            issue_prediction(7, sample_race_input, memory_store, quiet_ensemble)

        assert exc_info.value.tier == "free"
        assert exc_info.value.limit == 5
        assert exc_info.value.remaining == 0
        assert memory_store.count_today(7) == 5

    def test_quota_is_per_user(self, sample_race_input, memory_store, quiet_ensemble):
        for _ in range(5):
            issue_prediction(7, sample_race_input, memory_store, quiet_ensemble)

        issued = issue_prediction(8, sample_race_input, memory_store, quiet_ensemble)

        assert issued.user_id == 8

    def test_invalid_input_consumes_no_quota(self, sample_race_input, memory_store):
        with pytest.raises(DataValidationError):
            issue_prediction(3, dict(sample_race_input, track=""), memory_store)

        assert memory_store.count_today(3) == 0

    def test_concurrent_requests_respect_quota(
        self, sample_race_input, memory_store, quiet_ensemble
    ):
        """Test parallel issuance for one user never exceeds the daily limit."""
        outcomes = []
        outcomes_lock = threading.Lock()

        def worker():
            try:
                issue_prediction(9, sample_race_input, memory_store, quiet_ensemble)
                outcome = "issued"
            except QuotaExceededError:
                outcome = "refused"
            with outcomes_lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(12)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("issued") == 5
        assert outcomes.count("refused") == 7
        assert memory_store.count_today(9) == 5


class TestCheckRateLimit:
    """Test the service-level quota check."""

    def test_remaining_after_two(self, sample_race_input, memory_store, quiet_ensemble):
        for _ in range(2):
            issue_prediction(4, sample_race_input, memory_store, quiet_ensemble)

        decision = check_rate_limit(4, memory_store)

        assert decision.allowed is True
        assert decision.remaining == 3
        assert decision.tier == "free"


class TestSharedStore:
    """Test issuance against the configured store."""

    @pytest.fixture
    def shared_store(self, monkeypatch):
        monkeypatch.setattr("racecast.db.prediction_store._store_instance", None)
        return get_prediction_store()

    def test_defaults_to_shared_store(self, sample_race_input, quiet_ensemble, shared_store):
        issue_prediction(11, sample_race_input, ensemble=quiet_ensemble)
        issue_prediction(11, sample_race_input, ensemble=quiet_ensemble)

        assert isinstance(shared_store, InMemoryPredictionStore)
        assert shared_store.count_today(11) == 2
        assert check_rate_limit(11).remaining == 3


class TestUserLocks:
    """Test per-user lock bookkeeping."""

    def test_lock_released_after_issue(self, sample_race_input, memory_store, quiet_ensemble):
        issue_prediction(21, sample_race_input, memory_store, quiet_ensemble)
        gc.collect()

        assert 21 not in prediction_service._user_locks

    def test_same_user_shares_lock(self):
        first = prediction_service._lock_for(22)

        assert prediction_service._lock_for(22) is first
        assert prediction_service._lock_for(23) is not first
