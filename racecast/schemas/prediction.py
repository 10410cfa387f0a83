"""
Prediction schemas
"""

from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from racecast.config import MODEL_VERSION, PROBABILITY_MAX, PROBABILITY_MIN


class RaceInput(BaseModel):
    """Raw race/horse attributes for one prediction."""

    horse_name: str = Field(..., min_length=1, description="Horse name")
    track: str = Field(..., min_length=1, description="Track / venue")
    race_type: str = Field(..., min_length=1, description="Race type")
    distance: float = Field(..., gt=0, description="Distance (metres)")
    race_date: str = Field(..., min_length=1, description="Race date (YYYY-MM-DD)")
    days_since_last_race: Optional[float] = Field(None, ge=0, description="Days since last start")
    winning_streak: int = Field(0, ge=0, description="Consecutive wins")
    losing_streak: int = Field(0, ge=0, description="Consecutive losses")
    details: Optional[str] = Field(None, description="Free-text race class descriptor")
    stakes: Optional[str] = Field(None, description="Stakes descriptor")
    historical_win_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    recent_form_score: Optional[float] = Field(None, ge=0.0, le=1.0)
    track_specific_win_rate: Optional[float] = Field(None, ge=0.0, le=1.0)


class PredictionResult(BaseModel):
    """Ensemble output for one horse."""

    horse_name: str
    lightgbm_probability: float = Field(..., ge=PROBABILITY_MIN, le=PROBABILITY_MAX)
    random_forest_probability: float = Field(..., ge=PROBABILITY_MIN, le=PROBABILITY_MAX)
    gradient_boosting_probability: float = Field(..., ge=PROBABILITY_MIN, le=PROBABILITY_MAX)
    logistic_regression_probability: float = Field(..., ge=PROBABILITY_MIN, le=PROBABILITY_MAX)
    ensemble_probability: float = Field(..., ge=PROBABILITY_MIN, le=PROBABILITY_MAX)
    confidence: str
    model_explanation: str

    @property
    def per_model_scores(self) -> dict[str, float]:
        return {
            "lightgbm": self.lightgbm_probability,
            "random_forest": self.random_forest_probability,
            "gradient_boosting": self.gradient_boosting_probability,
            "logistic_regression": self.logistic_regression_probability,
        }


class PredictionRecord(BaseModel):
    """A prediction issued by the live agent. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    race_key: str
    horse_name: str
    track: str
    ensemble_probability: float
    confidence: str
    explanation: str
    per_model_scores: Mapping[str, float] = Field(default_factory=dict, validate_default=True)
    model_version: str = MODEL_VERSION
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator("per_model_scores")
    @classmethod
    def freeze_scores(cls, v: Mapping[str, float]) -> Mapping[str, float]:
        return MappingProxyType(dict(v))

    @field_serializer("per_model_scores")
    def dump_scores(self, v: Mapping[str, float]) -> dict[str, float]:
        return dict(v)


class IssuedPrediction(BaseModel):
    """A prediction issued to a user and persisted for quota/history."""

    id: Optional[int] = None
    user_id: int
    race_input: RaceInput
    result: PredictionResult
    created_at: datetime = Field(default_factory=datetime.now)


class ResultEntry(BaseModel):
    """A registered prediction matched against a settled result."""

    race_key: str
    horse_name: str
    track: str
    predicted_probability: float
    finishing_position: int
    actual_result: Literal["win", "place", "loss"]
    timestamp: datetime = Field(default_factory=datetime.now)


class TrackAccuracy(BaseModel):
    total: int = 0
    correct: int = 0
    accuracy: float = 0.0


class AccuracyMetrics(BaseModel):
    """Accuracy derived on demand from the collected results."""

    total_predictions: int = 0
    correct_predictions: int = 0
    accuracy: float = 0.0
    by_track: dict[str, TrackAccuracy] = Field(default_factory=dict)
