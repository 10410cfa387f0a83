"""
Feature engineering for the scoring ensemble
"""

from racecast.features.feature_engineer import (
    RACE_CLASS_PATTERNS,
    FeatureVector,
    extract_features,
    extract_race_class,
)

__all__ = [
    "RACE_CLASS_PATTERNS",
    "FeatureVector",
    "extract_features",
    "extract_race_class",
]
