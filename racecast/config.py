"""
System-wide constants

Magic numbers and fixed tables live here so the scoring, quota and
scheduler modules share one source.
"""

from typing import Final

# =====================================
# Probability settings
# =====================================
PROBABILITY_MIN: Final[float] = 0.05
PROBABILITY_MAX: Final[float] = 0.95

# Random forest style diversity term: (u - 0.5) * scale -> ±0.025
ENSEMBLE_NOISE_SCALE: Final[float] = 0.05

MODEL_VERSION: Final[str] = "v1.0"

# Confidence bands (lower bound, label), checked top-down
CONFIDENCE_BANDS: Final[tuple] = (
    (0.75, "Very High"),
    (0.65, "High"),
    (0.55, "Medium-High"),
    (0.45, "Medium"),
    (0.35, "Medium-Low"),
    (0.25, "Low"),
)
CONFIDENCE_FLOOR_LABEL: Final[str] = "Very Low"

# =====================================
# Feature settings
# =====================================
FEATURE_DISTANCE_NORMALIZER: Final[float] = 3200.0
FEATURE_DEFAULT_DAYS_SINCE_LAST_RACE: Final[int] = 14
FEATURE_DEFAULT_HISTORICAL_WIN_RATE: Final[float] = 0.25
FEATURE_DEFAULT_RECENT_FORM_SCORE: Final[float] = 0.5
FEATURE_FORM_DECAY_DAYS: Final[float] = 30.0
FEATURE_LONG_DECAY_DAYS: Final[float] = 90.0
FEATURE_MAX_RACE_CLASS: Final[int] = 5

# Optimal rest band (days since last race)
REST_PERIOD_MIN_DAYS: Final[int] = 7
REST_PERIOD_MAX_DAYS: Final[int] = 21
REST_PERIOD_RUSTY_DAYS: Final[int] = 30

# =====================================
# Subscription tiers
# =====================================
DEFAULT_TIER: Final[str] = "free"
TIER_LIMITS: Final[dict] = {
    "free": {"per_day": 5, "per_hour": 2},
    "basic": {"per_day": 50, "per_hour": 10},
    "premium": {"per_day": 500, "per_hour": 50},
    "elite": {"per_day": 5000, "per_hour": 500},
}

# =====================================
# Scheduler settings
# =====================================
SCHEDULER_PREDICTION_INTERVAL_SECONDS: Final[int] = 5 * 60
SCHEDULER_RESULT_INTERVAL_SECONDS: Final[int] = 10 * 60
SCHEDULER_EXTERNAL_CALL_TIMEOUT: Final[float] = 30.0

# Inputs for runners polled from the live feed
SCHEDULER_DEFAULT_RACE_TYPE: Final[str] = "Standard"
SCHEDULER_DEFAULT_DISTANCE: Final[int] = 1600
SCHEDULER_DEFAULT_DAYS_SINCE_LAST_RACE: Final[int] = 30

# Retention
PREDICTION_RETENTION_HOURS: Final[int] = 24
RESULT_RETENTION_DAYS: Final[int] = 7

# Result classification
PLACE_MAX_POSITION: Final[int] = 4
ACCURACY_PROBABILITY_THRESHOLD: Final[float] = 0.5

# =====================================
# Racing API settings
# =====================================
RACING_API_BASE_URL_DEFAULT: Final[str] = "https://api.racing.com"
RACING_API_TIMEOUT: Final[int] = 15
RACING_API_TOKEN_TTL_SECONDS: Final[int] = 3600

# =====================================
# Persistence
# =====================================
PREDICTION_HISTORY_DEFAULT_LIMIT: Final[int] = 50
DB_CONNECTION_POOL_MIN: Final[int] = 1
DB_CONNECTION_POOL_MAX: Final[int] = 10
