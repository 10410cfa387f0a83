"""
Prediction store

Persists issued predictions for quota counting and history, and answers
subscription tier lookups. ``PostgresPredictionStore`` talks to the
``predictions`` / ``user_subscriptions`` tables; ``InMemoryPredictionStore``
backs mock mode and tests.
"""

import logging
import threading
from datetime import date, datetime, time
from typing import Optional, Protocol

import psycopg2
from psycopg2.extras import RealDictCursor

from racecast.config import PREDICTION_HISTORY_DEFAULT_LIMIT
from racecast.db.connection import DatabaseConnection, get_db
from racecast.exceptions import DatabaseQueryError
from racecast.schemas.prediction import IssuedPrediction, PredictionResult, RaceInput
from racecast.settings import settings

logger = logging.getLogger(__name__)


def to_basis_points(probability: float) -> int:
    """Probability -> integer basis points (0.4321 -> 4321)."""
    return round(probability * 10000)


def from_basis_points(value: int) -> float:
    return value / 10000


class PredictionStore(Protocol):
    """Persistence collaborator used by the quota guard and issuance path."""

    def insert(self, prediction: IssuedPrediction) -> IssuedPrediction: ...

    def count_today(self, user_id: int) -> int: ...

    def get_subscription_tier(self, user_id: int) -> Optional[str]: ...

    def list_by_user(
        self, user_id: int, limit: int = PREDICTION_HISTORY_DEFAULT_LIMIT
    ) -> list[IssuedPrediction]: ...


class InMemoryPredictionStore:
    """Process-local store. Safe to share between threads."""

    def __init__(self, tiers: dict[int, str] | None = None):
        self._predictions: list[IssuedPrediction] = []
        self._tiers: dict[int, str] = dict(tiers or {})
        self._next_id = 1
        self._lock = threading.Lock()

    def set_subscription_tier(self, user_id: int, tier_name: str) -> None:
        with self._lock:
            self._tiers[user_id] = tier_name

    def insert(self, prediction: IssuedPrediction) -> IssuedPrediction:
        with self._lock:
            stored = prediction.model_copy(update={"id": self._next_id})
            self._next_id += 1
            self._predictions.append(stored)
        return stored

    def count_today(self, user_id: int) -> int:
        today = date.today()
        with self._lock:
            return sum(
                1
                for p in self._predictions
                if p.user_id == user_id and p.created_at.date() == today
            )

    def get_subscription_tier(self, user_id: int) -> Optional[str]:
        with self._lock:
            return self._tiers.get(user_id)

    def list_by_user(
        self, user_id: int, limit: int = PREDICTION_HISTORY_DEFAULT_LIMIT
    ) -> list[IssuedPrediction]:
        with self._lock:
            rows = [p for p in self._predictions if p.user_id == user_id]
        rows.sort(key=lambda p: p.created_at, reverse=True)
        return rows[:limit]


class PostgresPredictionStore:
    """
    PostgreSQL-backed prediction store

    Probabilities are stored as integer basis points. Table creation is
    handled outside this package.
    """

    def __init__(self, db: DatabaseConnection | None = None):
        self.db = db or get_db()

    def _execute(self, query: str, params: tuple, fetch: str = "one", commit: bool = False):
        conn = self.db.get_connection()
        cursor = None
        try:
            cursor = conn.cursor(cursor_factory=RealDictCursor)
            cursor.execute(query, params)
            if fetch == "all":
                rows = cursor.fetchall()
            else:
                rows = cursor.fetchone()
            if commit:
                conn.commit()
            return rows
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Prediction store query failed: {e}")
            raise DatabaseQueryError(f"Prediction store query failed: {e}") from e
        finally:
            if cursor:
                cursor.close()
            self.db.release_connection(conn)

    def insert(self, prediction: IssuedPrediction) -> IssuedPrediction:
        race = prediction.race_input
        result = prediction.result
        row = self._execute(
            """
            INSERT INTO predictions (
                user_id, horse_name, track, race_type, distance, race_date,
                days_since_last_race, winning_streak, losing_streak,
                lightgbm_probability, random_forest_probability,
                gradient_boosting_probability, logistic_regression_probability,
                ensemble_probability, confidence, model_explanation, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                prediction.user_id,
                race.horse_name,
                race.track,
                race.race_type,
                race.distance,
                race.race_date,
                race.days_since_last_race,
                race.winning_streak,
                race.losing_streak,
                to_basis_points(result.lightgbm_probability),
                to_basis_points(result.random_forest_probability),
                to_basis_points(result.gradient_boosting_probability),
                to_basis_points(result.logistic_regression_probability),
                to_basis_points(result.ensemble_probability),
                result.confidence,
                result.model_explanation,
                prediction.created_at,
            ),
            commit=True,
        )
        if not row:
            raise DatabaseQueryError("Prediction insert returned no id")

        logger.info(f"Prediction saved: id={row['id']}, user_id={prediction.user_id}")
        return prediction.model_copy(update={"id": row["id"]})

    def count_today(self, user_id: int) -> int:
        start_of_day = datetime.combine(date.today(), time.min)
        row = self._execute(
            "SELECT COUNT(*) AS count FROM predictions WHERE user_id = %s AND created_at >= %s",
            (user_id, start_of_day),
        )
        return int(row["count"]) if row else 0

    def get_subscription_tier(self, user_id: int) -> Optional[str]:
        row = self._execute(
            "SELECT tier_name FROM user_subscriptions WHERE user_id = %s LIMIT 1",
            (user_id,),
        )
        return row["tier_name"] if row else None

    def list_by_user(
        self, user_id: int, limit: int = PREDICTION_HISTORY_DEFAULT_LIMIT
    ) -> list[IssuedPrediction]:
        rows = self._execute(
            """
            SELECT * FROM predictions
            WHERE user_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (user_id, limit),
            fetch="all",
        )
        return [self._row_to_prediction(row) for row in rows or []]

    @staticmethod
    def _row_to_prediction(row: dict) -> IssuedPrediction:
        race_input = RaceInput(
            horse_name=row["horse_name"],
            track=row["track"],
            race_type=row["race_type"],
            distance=row["distance"],
            race_date=str(row["race_date"]),
            days_since_last_race=row.get("days_since_last_race"),
            winning_streak=row.get("winning_streak") or 0,
            losing_streak=row.get("losing_streak") or 0,
        )
        result = PredictionResult(
            horse_name=row["horse_name"],
            lightgbm_probability=from_basis_points(row["lightgbm_probability"]),
            random_forest_probability=from_basis_points(row["random_forest_probability"]),
            gradient_boosting_probability=from_basis_points(row["gradient_boosting_probability"]),
            logistic_regression_probability=from_basis_points(
                row["logistic_regression_probability"]
            ),
            ensemble_probability=from_basis_points(row["ensemble_probability"]),
            confidence=row["confidence"],
            model_explanation=row["model_explanation"],
        )
        return IssuedPrediction(
            id=row["id"],
            user_id=row["user_id"],
            race_input=race_input,
            result=result,
            created_at=row["created_at"],
        )


_store_instance: Optional[PredictionStore] = None


def get_prediction_store() -> PredictionStore:
    """Shared store for the configured ``db_mode`` (in-memory in mock mode)."""
    global _store_instance
    if _store_instance is None:
        if settings.is_mock_mode:
            _store_instance = InMemoryPredictionStore()
        else:
            _store_instance = PostgresPredictionStore(get_db())
    return _store_instance
