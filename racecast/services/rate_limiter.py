"""
Subscription quota guard

Tier-based daily prediction quota. The check reads today's count from the
prediction store and decides; it does not reserve a slot, so callers that
need check-then-insert atomicity serialise around it (see
``prediction_service.issue_prediction``).
"""

import logging
from typing import Any

from racecast.config import DEFAULT_TIER, TIER_LIMITS
from racecast.db.prediction_store import PredictionStore
from racecast.schemas.agent import RateLimitDecision

logger = logging.getLogger(__name__)


class QuotaGuard:
    """Daily quota check per user"""

    def __init__(self, store: PredictionStore, limits: dict[str, dict[str, int]] | None = None):
        """
        Args:
            store: Prediction store (tier lookup and today's count)
            limits: Tier table, {tier: {"per_day": n, "per_hour": n}}
        """
        self.store = store
        self.limits = limits or TIER_LIMITS

    def _resolve_tier(self, user_id: int) -> str:
        return self.store.get_subscription_tier(user_id) or DEFAULT_TIER

    def check(self, user_id: int) -> RateLimitDecision:
        """
        Check whether the user may issue another prediction today.

        Returns:
            RateLimitDecision: denied with remaining=0 once the quota is used
        """
        try:
            tier_name = self._resolve_tier(user_id)

            tier_limits = self.limits.get(tier_name)
            if tier_limits is None:
                logger.warning(f"Unknown subscription tier: user_id={user_id}, tier={tier_name}")
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    tier=tier_name,
                    message="Subscription tier not found",
                )

            predictions_today = self.store.count_today(user_id)
            limit = tier_limits["per_day"]

            if predictions_today >= limit:
                logger.warning(
                    f"Quota exceeded: user_id={user_id}, {predictions_today}/{limit} ({tier_name})"
                )
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    tier=tier_name,
                    message=f"Daily limit of {limit} predictions exceeded for {tier_name} tier",
                )

            logger.debug(f"Quota OK: user_id={user_id}, {predictions_today}/{limit} ({tier_name})")
            return RateLimitDecision(
                allowed=True,
                remaining=limit - predictions_today,
                tier=tier_name,
            )

        except Exception as e:
            # Fail closed
            logger.error(f"Error checking rate limit: user_id={user_id}, error={e}")
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                tier="unknown",
                message="Error checking rate limit",
            )

    def get_rate_limit_info(self, user_id: int) -> dict[str, Any]:
        """
        Quota summary for display.

        Returns:
            dict: tier, daily_limit, hourly_limit, predictions_today, remaining_today
        """
        tier_name = self._resolve_tier(user_id)
        limits = self.limits.get(tier_name, self.limits[DEFAULT_TIER])
        predictions_today = self.store.count_today(user_id)

        return {
            "tier": tier_name,
            "daily_limit": limits["per_day"],
            "hourly_limit": limits["per_hour"],
            "predictions_today": predictions_today,
            "remaining_today": max(0, limits["per_day"] - predictions_today),
        }
