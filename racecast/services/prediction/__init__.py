"""
Prediction Service Module

Scoring components used by the prediction service and live agents.
"""

from racecast.services.prediction.ensemble import (
    MODEL_NAMES,
    EnsembleScore,
    ModelEnsemble,
    calculate_ensemble,
    clamp_probability,
    generate_explanation,
    get_confidence,
    gradient_boosting_predict,
    lightgbm_predict,
    logistic_regression_predict,
    random_forest_predict,
)

__all__ = [
    "MODEL_NAMES",
    "EnsembleScore",
    "ModelEnsemble",
    "calculate_ensemble",
    "clamp_probability",
    "generate_explanation",
    "get_confidence",
    "gradient_boosting_predict",
    "lightgbm_predict",
    "logistic_regression_predict",
    "random_forest_predict",
]
