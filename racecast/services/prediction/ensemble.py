"""
Ensemble Prediction Utilities

Four fixed-weight scoring functions (boosted, forest, boosting and
logistic styles) combined by an unweighted mean, plus confidence labels
and a plain-language explanation.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from racecast.config import (
    CONFIDENCE_BANDS,
    CONFIDENCE_FLOOR_LABEL,
    ENSEMBLE_NOISE_SCALE,
    PROBABILITY_MAX,
    PROBABILITY_MIN,
    REST_PERIOD_MAX_DAYS,
    REST_PERIOD_MIN_DAYS,
    REST_PERIOD_RUSTY_DAYS,
)
from racecast.features import FeatureVector

logger = logging.getLogger(__name__)

MODEL_NAMES = ("lightgbm", "random_forest", "gradient_boosting", "logistic_regression")


def clamp_probability(value: float) -> float:
    """Clamp a raw score into [PROBABILITY_MIN, PROBABILITY_MAX]."""
    return float(np.clip(value, PROBABILITY_MIN, PROBABILITY_MAX))


def _in_rest_band(days: float) -> bool:
    return REST_PERIOD_MIN_DAYS <= days <= REST_PERIOD_MAX_DAYS


def lightgbm_predict(features: FeatureVector) -> float:
    """Boosted-style model tuned for ranking."""
    score = 0.30

    score += features["historical_win_rate"] * 0.25
    score += features["track_specific_win_rate"] * 0.20
    score += features["recent_form_decay"] * 0.15
    score += features["horse_rank_rolling_mean_10"] * 0.12
    score += features["race_class_normalized"] * 0.08
    score += min(features["winning_streak"] * 0.08, 0.15)
    score -= min(features["losing_streak"] * 0.05, 0.10)

    days = features["days_since_last_race"]
    if _in_rest_band(days):
        score += 0.08
    elif days < REST_PERIOD_MIN_DAYS:
        score -= 0.05
    elif days > REST_PERIOD_RUSTY_DAYS:
        score -= 0.08

    # Sprints reward current form
    if features["distance_normalized"] < 0.5:
        score += features["recent_form_score"] * 0.05

    return clamp_probability(score)


def random_forest_predict(
    features: FeatureVector,
    rng: np.random.Generator | None = None,
    noise_scale: float = ENSEMBLE_NOISE_SCALE,
) -> float:
    """Forest-style model leaning on recent form, with a bounded diversity term.

    Args:
        features: Feature vector
        rng: Random source for the diversity term; no term when None
        noise_scale: Width of the symmetric term, (u - 0.5) * noise_scale
    """
    score = 0.35

    score += features["recent_form_decay"] * 0.25
    score += features["historical_win_rate"] * 0.20
    score += features["track_specific_win_rate"] * 0.18
    score += features["horse_rank_rolling_mean_10"] * 0.10
    score += features["race_class_normalized"] * 0.07

    score += min(features["winning_streak"] * 0.06, 0.12)
    score -= min(features["losing_streak"] * 0.04, 0.08)

    if rng is not None and noise_scale:
        score += (rng.random() - 0.5) * noise_scale

    return clamp_probability(score)


def gradient_boosting_predict(features: FeatureVector) -> float:
    """Boosting-style model balancing rates, class and freshness."""
    score = 0.32

    score += features["historical_win_rate"] * 0.22
    score += features["recent_form_decay"] * 0.20
    score += features["track_specific_win_rate"] * 0.18
    score += features["race_class_normalized"] * 0.10
    score += features["horse_rank_rolling_mean_10"] * 0.10

    wins = features["winning_streak"]
    losses = features["losing_streak"]
    form_factor = (wins - losses) / max(1.0, wins + losses)
    score += form_factor * 0.08

    # Freshness peaks at 14 days
    days_optimality = math.exp(-((features["days_since_last_race"] - 14) ** 2) / 100)
    score += days_optimality * 0.05

    return clamp_probability(score)


def logistic_regression_predict(features: FeatureVector) -> float:
    """Linear baseline passed through a sigmoid."""
    linear_score = -1.5

    linear_score += features["historical_win_rate"] * 3.0
    linear_score += features["track_specific_win_rate"] * 2.5
    linear_score += features["recent_form_decay"] * 2.0
    linear_score += features["race_class_normalized"] * 1.2
    linear_score += features["horse_rank_rolling_mean_10"] * 1.5
    linear_score += features["winning_streak"] * 0.3
    linear_score -= features["losing_streak"] * 0.2

    probability = 1.0 / (1.0 + math.exp(-linear_score))

    return clamp_probability(probability)


def calculate_ensemble(probabilities: list[float]) -> float:
    """Unweighted arithmetic mean of the model probabilities."""
    if not probabilities:
        return 0.0
    return float(np.mean(probabilities))


def get_confidence(probability: float) -> str:
    """Map an ensemble probability onto the 7-band confidence label."""
    for lower_bound, label in CONFIDENCE_BANDS:
        if probability >= lower_bound:
            return label
    return CONFIDENCE_FLOOR_LABEL


def generate_explanation(features: FeatureVector, probability: float) -> str:
    """Assemble a one-sentence explanation from the factors that fired."""
    factors: list[str] = []

    if features["historical_win_rate"] > 0.35:
        factors.append("strong historical win rate")

    if features["recent_form_decay"] > 0.5:
        factors.append("excellent recent form")

    if features["winning_streak"] > 2:
        factors.append(f"{int(features['winning_streak'])} consecutive wins")

    if features["track_specific_win_rate"] > 0.4:
        factors.append("proven track record at this venue")

    days = features["days_since_last_race"]
    if _in_rest_band(days):
        factors.append("optimal rest period")
    elif days > REST_PERIOD_RUSTY_DAYS:
        factors.append("long time since last race (may be rusty)")

    if features["race_class"] > 2:
        factors.append("competing in high-class race")

    factor_text = ", ".join(factors) if factors else "mixed form indicators"
    return f"{get_confidence(probability)} confidence based on {factor_text}."


@dataclass(frozen=True)
class EnsembleScore:
    per_model: dict[str, float]
    ensemble: float
    confidence: str
    explanation: str


class ModelEnsemble:
    """Scores a feature vector with all four models.

    The forest model's diversity term draws from ``rng``; pass a seeded
    generator (or ``seed``) for reproducible output, or ``noise_scale=0``
    to switch the term off.
    """

    def __init__(
        self,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
        noise_scale: float = ENSEMBLE_NOISE_SCALE,
    ):
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.noise_scale = noise_scale

    def score(self, features: FeatureVector) -> EnsembleScore:
        per_model = {
            "lightgbm": lightgbm_predict(features),
            "random_forest": random_forest_predict(features, self.rng, self.noise_scale),
            "gradient_boosting": gradient_boosting_predict(features),
            "logistic_regression": logistic_regression_predict(features),
        }
        ensemble = calculate_ensemble(list(per_model.values()))
        confidence = get_confidence(ensemble)
        explanation = generate_explanation(features, ensemble)

        logger.debug(f"Ensemble scored: {per_model} -> {ensemble:.4f} ({confidence})")
        return EnsembleScore(
            per_model=per_model,
            ensemble=ensemble,
            confidence=confidence,
            explanation=explanation,
        )
