"""
Shared pytest fixtures for racecast tests.

Provides a scripted race data provider, stores and sample inputs.
"""

import asyncio
import os
from collections import defaultdict
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

# Set mock mode for tests
os.environ["DB_MODE"] = "mock"
os.environ["RACING_API_MODE"] = "mock"

from racecast.db.prediction_store import InMemoryPredictionStore  # noqa: E402
from racecast.schemas.race import Meet, Race, RaceResultEntry, Runner  # noqa: E402
from racecast.services.prediction import ModelEnsemble  # noqa: E402


# =============================================================================
# Race Data Provider
# =============================================================================


class ScriptedRaceDataProvider:
    """In-memory provider whose feed content and failures are set per test."""

    def __init__(self):
        self.meets: List[Meet] = []
        self.races: Dict[str, List[Race]] = {}
        self.runners: Dict[tuple, List[Runner]] = {}
        self.results: Dict[tuple, List[RaceResultEntry]] = {}
        self.failures: Dict[str, Exception] = {}
        self.calls: Dict[str, int] = defaultdict(int)

    def add_meet(self, meet_id: str, venue: str, race_count: int = 1) -> Meet:
        meet = Meet(id=meet_id, name=venue.split()[0], venue=venue, date="2026-10-19")
        self.meets.append(meet)
        self.races[meet_id] = [
            Race(id=f"{meet_id}-r{n}", number=n, name=f"Race {n}", distance="1400m")
            for n in range(1, race_count + 1)
        ]
        return meet

    def _maybe_fail(self, key: str) -> None:
        self.calls[key] += 1
        if key in self.failures:
            raise self.failures[key]

    def list_meets_for_today(self) -> List[Meet]:
        self._maybe_fail("meets")
        return list(self.meets)

    def list_races(self, meet_id: str) -> List[Race]:
        self._maybe_fail(f"races:{meet_id}")
        return list(self.races.get(meet_id, []))

    def list_runners(self, meet_id: str, race_number: int) -> List[Runner]:
        self._maybe_fail(f"runners:{meet_id}-{race_number}")
        return list(self.runners.get((meet_id, race_number), []))

    def fetch_results(self, meet_id: str, race_number: int) -> List[RaceResultEntry]:
        self._maybe_fail(f"results:{meet_id}-{race_number}")
        return list(self.results.get((meet_id, race_number), []))


@pytest.fixture
def provider() -> ScriptedRaceDataProvider:
    """Empty scripted provider."""
    return ScriptedRaceDataProvider()


@pytest.fixture
def make_runners():
    """Factory for numbered runners sharing one form string."""

    def _make(*names: str, form: Optional[str] = None) -> List[Runner]:
        return [
            Runner(id=f"runner-{i}", number=i, name=name, form=form)
            for i, name in enumerate(names, start=1)
        ]

    return _make


@pytest.fixture
def hold_sleep():
    """Timer sleep that never wakes up, so only explicit cycles run."""

    async def _sleep(_seconds: float) -> None:
        await asyncio.Event().wait()

    return _sleep


# =============================================================================
# Store / Ensemble Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryPredictionStore:
    """Empty in-memory prediction store."""
    return InMemoryPredictionStore()


@pytest.fixture
def quiet_ensemble() -> ModelEnsemble:
    """Deterministic ensemble with the forest diversity term switched off."""
    return ModelEnsemble(noise_scale=0)


@pytest.fixture
def mock_db_connection():
    """DatabaseConnection whose connection is a MagicMock."""
    mock_db = MagicMock()
    mock_conn = MagicMock()
    mock_db.get_connection.return_value = mock_conn
    return mock_db


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def sample_race_input() -> Dict[str, Any]:
    """Valid race input for a seasoned horse."""
    return {
        "horse_name": "Lucky Strike",
        "track": "Matamata Racecourse",
        "race_type": "Flat",
        "distance": 1600,
        "race_date": "2026-10-19",
        "days_since_last_race": 14,
        "winning_streak": 2,
        "losing_streak": 0,
        "details": "Group 1 Guineas",
        "historical_win_rate": 0.4,
        "recent_form_score": 0.7,
    }


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_environment():
    """Reset environment variables after each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)

