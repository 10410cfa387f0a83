"""
Continuous Race Prediction Agent

Polls the racing feed every five minutes and issues ensemble predictions
for every runner of each race not yet processed:
1. Fetch today's meets
2. For each unprocessed race, fetch runners and score them
3. Store the records per race and mark the race processed
"""

import asyncio
import logging
import re
import time
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Optional

from racecast.config import (
    PREDICTION_RETENTION_HOURS,
    SCHEDULER_DEFAULT_DAYS_SINCE_LAST_RACE,
    SCHEDULER_DEFAULT_DISTANCE,
    SCHEDULER_DEFAULT_RACE_TYPE,
)
from racecast.exceptions import DataValidationError, ExternalFetchError
from racecast.scheduler.ledger import PredictionLedger, make_race_key
from racecast.scheduler.ticker import RepeatingTask, SleepFunc, call_external
from racecast.schemas.agent import AgentMetrics
from racecast.schemas.prediction import PredictionRecord
from racecast.schemas.race import Meet, Race, Runner
from racecast.services.prediction import ModelEnsemble
from racecast.services.prediction_service import predict
from racecast.services.racing_api import RaceDataProvider, parse_distance
from racecast.settings import settings

if TYPE_CHECKING:
    from racecast.scheduler.result_collector import ResultCollector

logger = logging.getLogger(__name__)


def streaks_from_form(form: Optional[str]) -> tuple[int, int]:
    """
    Current winning/losing streak from a form string.

    The most recent start is the last position ("4-3-1" -> one win).

    Returns:
        (winning_streak, losing_streak)
    """
    if not form:
        return 0, 0

    if re.search(r"[-\s,/]", form):
        positions = [p for p in re.split(r"[-\s,/]+", form) if p]
    else:
        positions = list(form)

    wins = losses = 0
    for position in reversed(positions):
        if position == "1":
            if losses:
                break
            wins += 1
        else:
            if wins:
                break
            losses += 1
    return wins, losses


def build_race_input(meet: Meet, race: Race, runner: Runner) -> dict[str, Any]:
    """Race input for a runner polled from the live feed."""
    winning_streak, losing_streak = streaks_from_form(runner.form)
    return {
        "horse_name": runner.name,
        "track": meet.venue,
        "race_type": SCHEDULER_DEFAULT_RACE_TYPE,
        "distance": parse_distance(race.distance, SCHEDULER_DEFAULT_DISTANCE),
        "race_date": date.today().isoformat(),
        "days_since_last_race": SCHEDULER_DEFAULT_DAYS_SINCE_LAST_RACE,
        "winning_streak": winning_streak,
        "losing_streak": losing_streak,
        "details": race.name,
        "stakes": race.conditions,
    }


class PredictionScheduler:
    """Always-on prediction agent (idle -> running -> idle)."""

    def __init__(
        self,
        provider: RaceDataProvider,
        ensemble: Optional[ModelEnsemble] = None,
        ledger: Optional[PredictionLedger] = None,
        result_collector: Optional["ResultCollector"] = None,
        interval_seconds: Optional[float] = None,
        call_timeout: Optional[float] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Args:
            provider: Race data collaborator
            ensemble: Scoring ensemble (fresh unseeded one when omitted)
            ledger: Prediction ledger owned by this agent
            result_collector: Collector to register every issued record with
            interval_seconds: Cycle cadence (settings.prediction_interval_seconds)
            call_timeout: Bound per external call (settings.external_call_timeout)
            sleep: Awaitable sleep used by the timer
        """
        self.provider = provider
        self.ensemble = ensemble or ModelEnsemble()
        self.ledger = ledger or PredictionLedger()
        self.result_collector = result_collector
        self.interval_seconds = interval_seconds or settings.prediction_interval_seconds
        self.call_timeout = call_timeout or settings.external_call_timeout
        self.metrics = AgentMetrics()
        self._cycle_running = False
        self._ticker = RepeatingTask(
            "prediction-agent", self.interval_seconds, self.run_cycle, sleep=sleep
        )

    @property
    def is_running(self) -> bool:
        return self.metrics.is_running

    async def start(self) -> None:
        """Run one cycle now, then every ``interval_seconds``."""
        if self.metrics.is_running:
            logger.info("Prediction agent already running")
            return

        logger.info("Starting continuous prediction monitoring")
        self.metrics.is_running = True

        await self.run_cycle()
        if not self.metrics.is_running:
            logger.info("Prediction agent stopped during first cycle")
            return

        self._ticker.start()
        logger.info(f"Continuous monitoring started: every {self.interval_seconds}s")

    def stop(self) -> None:
        """Cancel future cycles. A cycle in progress runs to completion."""
        if not self.metrics.is_running:
            logger.info("Prediction agent not running")
            return

        self._ticker.stop()
        self.metrics.is_running = False
        self.metrics.next_run_time = None
        logger.info("Prediction agent stopped")

    async def run_cycle(self) -> None:
        """Fetch races and predict every unprocessed one."""
        if self._cycle_running:
            logger.warning("Prediction cycle already in progress, skipping")
            return

        self._cycle_running = True
        started = time.monotonic()
        self.metrics.last_run_time = datetime.now()
        self.metrics.next_run_time = self.metrics.last_run_time + timedelta(
            seconds=self.interval_seconds
        )

        try:
            logger.info("Starting prediction cycle")
            try:
                meets = await call_external(
                    self.provider.list_meets_for_today, timeout=self.call_timeout, scope="meets"
                )
            except ExternalFetchError as e:
                logger.error(f"Failed to fetch meets: {e}")
                self.metrics.error_count += 1
                return

            if not meets:
                logger.info("No meets available")
                return

            for meet in meets:
                try:
                    await self._process_meet(meet)
                except ExternalFetchError as e:
                    logger.error(f"Error processing meet {meet.id}: {e}")
                    self.metrics.error_count += 1
                except Exception as e:
                    logger.exception(f"Unexpected error processing meet {meet.id}: {e}")
                    self.metrics.error_count += 1

            duration_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                f"Prediction cycle completed in {duration_ms}ms. "
                f"Processed {self.metrics.races_processed} races, "
                f"made {self.metrics.total_predictions} predictions"
            )
        finally:
            self._cycle_running = False

    async def _process_meet(self, meet: Meet) -> None:
        races = await call_external(
            self.provider.list_races, meet.id, timeout=self.call_timeout, scope=f"meet:{meet.id}"
        )
        if not races:
            return

        for race in races:
            race_key = make_race_key(meet.id, race.number)
            if self.ledger.is_processed(race_key):
                continue

            try:
                await self._process_race(meet, race, race_key)
            except ExternalFetchError as e:
                logger.error(f"Error processing race {race_key}: {e}")
                self.metrics.error_count += 1
            except Exception as e:
                logger.exception(f"Unexpected error processing race {race_key}: {e}")
                self.metrics.error_count += 1

    async def _process_race(self, meet: Meet, race: Race, race_key: str) -> None:
        runners = await call_external(
            self.provider.list_runners,
            meet.id,
            race.number,
            timeout=self.call_timeout,
            scope=f"race:{race_key}",
        )
        if not runners:
            logger.debug(f"No runners yet for {race_key}")
            return

        for runner in runners:
            try:
                record = self._predict_runner(meet, race, race_key, runner)
            except DataValidationError as e:
                logger.error(f"Error making prediction for {runner.name} ({race_key}): {e}")
                self.metrics.error_count += 1
                continue

            self.ledger.add(record)
            self.metrics.total_predictions += 1
            if self.result_collector is not None:
                self.result_collector.register_prediction(race_key, runner.name, record)

        self.ledger.mark_processed(race_key)
        self.metrics.races_processed += 1

    def _predict_runner(
        self, meet: Meet, race: Race, race_key: str, runner: Runner
    ) -> PredictionRecord:
        result = predict(build_race_input(meet, race, runner), self.ensemble)
        return PredictionRecord(
            race_key=race_key,
            horse_name=runner.name,
            track=meet.venue,
            ensemble_probability=result.ensemble_probability,
            confidence=result.confidence,
            explanation=result.model_explanation,
            per_model_scores=result.per_model_scores,
        )

    def get_predictions(self) -> dict[str, list[PredictionRecord]]:
        """Snapshot of predictions grouped by race key."""
        return self.ledger.snapshot()

    def get_metrics(self) -> AgentMetrics:
        return self.metrics.model_copy()

    def clear_old_predictions(self) -> int:
        """Drop predictions older than 24 hours; returns races cleared."""
        cutoff = datetime.now() - timedelta(hours=PREDICTION_RETENTION_HOURS)
        cleared = self.ledger.clear_older_than(cutoff)
        if cleared > 0:
            logger.info(f"Cleared {cleared} old race predictions")
        return cleared
