"""
Racing API Data Service

Fetches meets, races, runners and results from the live racing feed.
In ``mock`` mode the fixed development fixtures are served instead; in
``live`` mode every failure surfaces as ``ExternalFetchError`` so the
polling agents can count and isolate it.
"""

import logging
import re
import time
from datetime import date
from typing import Any, Optional, Protocol

import requests

from racecast.config import RACING_API_TOKEN_TTL_SECONDS
from racecast.exceptions import ExternalFetchError
from racecast.schemas.race import Meet, Race, RaceResultEntry, Runner
from racecast.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class RaceDataProvider(Protocol):
    """Race data collaborator used by the prediction and result agents."""

    def list_meets_for_today(self) -> list[Meet]: ...

    def list_races(self, meet_id: str) -> list[Race]: ...

    def list_runners(self, meet_id: str, race_number: int) -> list[Runner]: ...

    def fetch_results(self, meet_id: str, race_number: int) -> list[RaceResultEntry]: ...


def parse_distance(distance: str | int | float | None, default: int) -> int:
    """Published distance ("1200m", "1,600 m", 2000) -> metres."""
    if isinstance(distance, (int, float)) and not isinstance(distance, bool):
        return int(distance) if distance > 0 else default
    match = re.search(r"\d+", (distance or "").replace(",", ""))
    if not match:
        return default
    value = int(match.group())
    return value if value > 0 else default


class RacingApiClient:
    """HTTP client for the racing feed with cached bearer-token auth."""

    def __init__(
        self,
        config: Settings | None = None,
        session: Optional[requests.Session] = None,
    ):
        config = config or default_settings
        self.base_url = config.racing_api_base_url.rstrip("/")
        self.username = config.racing_api_username
        self.password = config.racing_api_password
        self.timeout = config.racing_api_timeout
        self.session = session or requests.Session()
        self._token = ""
        self._token_expiry = 0.0

    def authenticate(self) -> str:
        """
        Get a bearer token, reusing the cached one until it expires.

        Raises:
            ExternalFetchError: Login failed
        """
        now = time.time()
        if self._token and self._token_expiry > now:
            return self._token

        try:
            response = self.session.post(
                f"{self.base_url}/auth/login",
                json={"username": self.username, "password": self.password},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Racing API authentication failed: {e}")
            raise ExternalFetchError(f"Authentication failed: {e}", scope="auth") from e

        self._token = data.get("token", "")
        self._token_expiry = now + data.get("expiresIn", RACING_API_TOKEN_TTL_SECONDS)
        return self._token

    def _get(self, path: str, scope: str, params: dict | None = None) -> Any:
        token = self.authenticate()
        try:
            response = self.session.get(
                f"{self.base_url}{path}",
                params=params,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout as e:
            logger.error(f"Racing API timeout: {path}")
            raise ExternalFetchError(f"Timeout fetching {path}", scope=scope) from e
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Racing API request failed: {path}, error={e}")
            raise ExternalFetchError(f"Failed to fetch {path}: {e}", scope=scope) from e

    def list_meets_for_today(self) -> list[Meet]:
        data = self._get("/meets", scope="meets", params={"date": date.today().isoformat()})
        return [Meet.model_validate(m) for m in data.get("meets", [])]

    def list_races(self, meet_id: str) -> list[Race]:
        data = self._get(f"/meets/{meet_id}/races", scope=f"meet:{meet_id}")
        return [Race.model_validate(r) for r in data.get("races", [])]

    def list_runners(self, meet_id: str, race_number: int) -> list[Runner]:
        data = self._get(
            f"/meets/{meet_id}/races/{race_number}/runners",
            scope=f"race:{meet_id}-{race_number}",
        )
        return [Runner.model_validate(r) for r in data.get("runners", [])]

    def fetch_results(self, meet_id: str, race_number: int) -> list[RaceResultEntry]:
        """Settled finishing order; empty while the race is unsettled."""
        data = self._get(
            f"/meets/{meet_id}/races/{race_number}/results",
            scope=f"results:{meet_id}-{race_number}",
        )
        results = [
            RaceResultEntry(
                horse_name=r.get("horseName") or r.get("horse_name"),
                finishing_position=r.get("position") or r.get("finishing_position"),
            )
            for r in data.get("results", [])
        ]
        return sorted(results, key=lambda r: r.finishing_position)


class MockRacingApi:
    """Development fixtures: three meets, five races, five runners, no results."""

    def list_meets_for_today(self) -> list[Meet]:
        today = date.today().isoformat()
        return [
            Meet(id="meet-1", name="Matamata", venue="Matamata Racecourse", date=today),
            Meet(id="meet-2", name="Cambridge", venue="Cambridge Racecourse", date=today),
            Meet(id="meet-3", name="Hamilton", venue="Hamilton Racecourse", date=today),
        ]

    def list_races(self, meet_id: str) -> list[Race]:
        return [
            Race(id="race-1", number=1, time="12:00 PM", name="Maiden 1200m", distance="1200m", conditions="Good"),
            Race(id="race-2", number=2, time="12:35 PM", name="Class 4 1400m", distance="1400m", conditions="Good"),
            Race(id="race-3", number=3, time="1:10 PM", name="Class 3 1600m", distance="1600m", conditions="Good"),
            Race(id="race-4", number=4, time="1:45 PM", name="Class 2 2000m", distance="2000m", conditions="Good"),
            Race(id="race-5", number=5, time="2:20 PM", name="Class 1 2200m", distance="2200m", conditions="Good"),
        ]

    def list_runners(self, meet_id: str, race_number: int) -> list[Runner]:
        return [
            Runner(id="runner-1", number=1, name="Lucky Strike", odds=2.5, form="1-2-3", weight=58, jockey="John Smith", trainer="Jane Doe"),
            Runner(id="runner-2", number=2, name="Thunder Runner", odds=3.0, form="2-1-4", weight=59, jockey="Mike Johnson", trainer="Bob Wilson"),
            Runner(id="runner-3", number=3, name="Swift Victory", odds=4.0, form="3-4-2", weight=57, jockey="Sarah Davis", trainer="Tom Brown"),
            Runner(id="runner-4", number=4, name="Golden Dream", odds=5.5, form="4-3-1", weight=60, jockey="Emma Wilson", trainer="Chris Lee"),
            Runner(id="runner-5", number=5, name="Midnight Express", odds=6.0, form="5-5-5", weight=56, jockey="David Miller", trainer="Lisa Anderson"),
        ]

    def fetch_results(self, meet_id: str, race_number: int) -> list[RaceResultEntry]:
        return []


def get_race_data_provider(config: Settings | None = None) -> RaceDataProvider:
    """Provider for the configured ``racing_api_mode``."""
    config = config or default_settings
    if config.is_live_feed:
        return RacingApiClient(config)
    logger.info("Racing API in mock mode: serving development fixtures")
    return MockRacingApi()
