"""
Pydantic schemas shared across services and agents
"""

from racecast.schemas.agent import AgentMetrics, CollectorStatus, RateLimitDecision
from racecast.schemas.prediction import (
    AccuracyMetrics,
    IssuedPrediction,
    PredictionRecord,
    PredictionResult,
    RaceInput,
    ResultEntry,
    TrackAccuracy,
)
from racecast.schemas.race import Meet, Race, RaceResultEntry, Runner

__all__ = [
    "AccuracyMetrics",
    "AgentMetrics",
    "CollectorStatus",
    "IssuedPrediction",
    "Meet",
    "PredictionRecord",
    "PredictionResult",
    "Race",
    "RaceInput",
    "RaceResultEntry",
    "RateLimitDecision",
    "ResultEntry",
    "Runner",
    "TrackAccuracy",
]
