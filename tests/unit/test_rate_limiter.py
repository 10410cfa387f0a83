"""
Unit tests for the subscription quota guard.
"""

from unittest.mock import MagicMock

import pytest

from racecast.db.prediction_store import InMemoryPredictionStore
from racecast.services.rate_limiter import QuotaGuard


@pytest.fixture
def counting_store():
    """Store mock with a configurable tier and daily count."""
    store = MagicMock()
    store.get_subscription_tier.return_value = None
    store.count_today.return_value = 0
    return store


class TestQuotaGuard:
    """Test daily quota decisions."""

    def test_new_user_defaults_to_free(self, counting_store):
        decision = QuotaGuard(counting_store).check(1)

        assert decision.allowed is True
        assert decision.tier == "free"
        assert decision.remaining == 5

    def test_free_tier_two_used(self, counting_store):
        counting_store.count_today.return_value = 2

        decision = QuotaGuard(counting_store).check(1)

        assert decision.allowed is True
        assert decision.remaining == 3

    def test_free_tier_exhausted(self, counting_store):
        counting_store.count_today.return_value = 5

        decision = QuotaGuard(counting_store).check(1)

        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.message == "Daily limit of 5 predictions exceeded for free tier"

    @pytest.mark.parametrize(
        "tier,limit",
        [("basic", 50), ("premium", 500), ("elite", 5000)],
    )
    def test_paid_tiers(self, counting_store, tier, limit):
        counting_store.get_subscription_tier.return_value = tier
        counting_store.count_today.return_value = limit - 1

        decision = QuotaGuard(counting_store).check(1)

        assert decision.allowed is True
        assert decision.remaining == 1
        assert decision.tier == tier

    def test_unknown_tier_denied(self, counting_store):
        counting_store.get_subscription_tier.return_value = "platinum"

        decision = QuotaGuard(counting_store).check(1)

        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.message == "Subscription tier not found"
        counting_store.count_today.assert_not_called()

    def test_store_failure_fails_closed(self, counting_store):
        counting_store.count_today.side_effect = RuntimeError("connection reset")

        decision = QuotaGuard(counting_store).check(1)

        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.tier == "unknown"
        assert decision.message == "Error checking rate limit"

    def test_custom_limits(self, counting_store):
        counting_store.count_today.return_value = 1
        guard = QuotaGuard(counting_store, limits={"free": {"per_day": 1, "per_hour": 1}})

        assert guard.check(1).allowed is False


class TestRateLimitInfo:
    """Test quota summary."""

    def test_info_for_subscribed_user(self):
        store = InMemoryPredictionStore(tiers={42: "basic"})

        info = QuotaGuard(store).get_rate_limit_info(42)

        assert info == {
            "tier": "basic",
            "daily_limit": 50,
            "hourly_limit": 10,
            "predictions_today": 0,
            "remaining_today": 50,
        }
