"""
Prediction Service

Validates race input, scores it with the ensemble and, for user-facing
issuance, enforces the subscription quota and persists the result.
"""

import logging
import threading
import weakref
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from racecast.db.prediction_store import PredictionStore, get_prediction_store
from racecast.exceptions import DataValidationError, QuotaExceededError
from racecast.features import extract_features
from racecast.schemas.agent import RateLimitDecision
from racecast.schemas.prediction import IssuedPrediction, PredictionResult, RaceInput
from racecast.services.prediction import ModelEnsemble
from racecast.services.rate_limiter import QuotaGuard

logger = logging.getLogger(__name__)

_default_ensemble: ModelEnsemble | None = None

# Per-user locks so quota check and insert happen as one step in-process;
# an entry is dropped once no request references it
_user_locks: weakref.WeakValueDictionary[int, threading.Lock] = weakref.WeakValueDictionary()
_user_locks_guard = threading.Lock()


def _get_default_ensemble() -> ModelEnsemble:
    global _default_ensemble
    if _default_ensemble is None:
        _default_ensemble = ModelEnsemble()
    return _default_ensemble


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def validate_prediction_input(data: Mapping[str, Any]) -> str | None:
    """
    Check the required race input fields.

    Args:
        data: Raw input mapping (snake_case keys)

    Returns:
        Error message for the first invalid field, or None when valid
    """
    if not _is_non_empty_string(data.get("horse_name")):
        return "Horse name is required"
    if not _is_non_empty_string(data.get("track")):
        return "Track is required"
    if not _is_non_empty_string(data.get("race_type")):
        return "Race type is required"

    distance = data.get("distance")
    if (
        isinstance(distance, bool)
        or not isinstance(distance, (int, float))
        or distance <= 0
    ):
        return "Valid distance is required"

    if not _is_non_empty_string(data.get("race_date")):
        return "Race date is required"
    return None


def _coerce_race_input(race_input: RaceInput | Mapping[str, Any]) -> RaceInput:
    data = race_input.model_dump() if isinstance(race_input, RaceInput) else dict(race_input)

    error = validate_prediction_input(data)
    if error:
        raise DataValidationError(error)

    try:
        return RaceInput.model_validate(data)
    except ValidationError as e:
        raise DataValidationError(f"Invalid race input: {e}") from e


def predict(
    race_input: RaceInput | Mapping[str, Any],
    ensemble: ModelEnsemble | None = None,
) -> PredictionResult:
    """
    Score one horse.

    Args:
        race_input: RaceInput or raw mapping
        ensemble: Scoring ensemble (shared default when omitted)

    Returns:
        PredictionResult

    Raises:
        DataValidationError: Input rejected before any scoring
    """
    validated = _coerce_race_input(race_input)
    ensemble = ensemble or _get_default_ensemble()

    features = extract_features(validated)
    scored = ensemble.score(features)

    return PredictionResult(
        horse_name=validated.horse_name,
        lightgbm_probability=scored.per_model["lightgbm"],
        random_forest_probability=scored.per_model["random_forest"],
        gradient_boosting_probability=scored.per_model["gradient_boosting"],
        logistic_regression_probability=scored.per_model["logistic_regression"],
        ensemble_probability=scored.ensemble,
        confidence=scored.confidence,
        model_explanation=scored.explanation,
    )


def check_rate_limit(user_id: int, store: PredictionStore | None = None) -> RateLimitDecision:
    """Quota decision for ``user_id`` (shared store when omitted)."""
    return QuotaGuard(store or get_prediction_store()).check(user_id)


def _lock_for(user_id: int) -> threading.Lock:
    with _user_locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = threading.Lock()
            _user_locks[user_id] = lock
        return lock


def issue_prediction(
    user_id: int,
    race_input: RaceInput | Mapping[str, Any],
    store: PredictionStore | None = None,
    ensemble: ModelEnsemble | None = None,
    guard: QuotaGuard | None = None,
) -> IssuedPrediction:
    """
    Quota-checked prediction for a user, persisted to the store.

    Raises:
        DataValidationError: Input rejected
        QuotaExceededError: Daily quota used up
    """
    store = store or get_prediction_store()
    guard = guard or QuotaGuard(store)
    validated = _coerce_race_input(race_input)

    user_lock = _lock_for(user_id)
    with user_lock:
        decision = guard.check(user_id)
        if not decision.allowed:
            limit = guard.limits.get(decision.tier, {}).get("per_day", 0)
            raise QuotaExceededError(decision.tier, limit, decision.message)

        result = predict(validated, ensemble)
        issued = store.insert(
            IssuedPrediction(user_id=user_id, race_input=validated, result=result)
        )

    logger.info(
        f"Prediction issued: user_id={user_id}, horse={validated.horse_name}, "
        f"p={result.ensemble_probability:.4f}, remaining={decision.remaining - 1}"
    )
    return issued


__all__ = [
    "check_rate_limit",
    "issue_prediction",
    "predict",
    "validate_prediction_input",
]
