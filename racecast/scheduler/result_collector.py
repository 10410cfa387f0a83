"""
Result Collector

Polls the racing feed for settled races and matches the finishing order
with predictions registered earlier:
- Every ten minutes: fetch results for each of today's races
- Registered predictions whose horse appears in a result become result entries
- Unmatched registrations stay pending for the next cycle
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from racecast.config import RESULT_RETENTION_DAYS
from racecast.exceptions import ExternalFetchError
from racecast.scheduler.ledger import ResultLedger, make_race_key
from racecast.scheduler.result.analyzer import classify_outcome, compute_accuracy_metrics
from racecast.scheduler.ticker import RepeatingTask, SleepFunc, call_external
from racecast.schemas.agent import CollectorStatus
from racecast.schemas.prediction import AccuracyMetrics, PredictionRecord, ResultEntry
from racecast.schemas.race import Meet
from racecast.services.racing_api import RaceDataProvider
from racecast.settings import settings

logger = logging.getLogger(__name__)


class ResultCollector:
    """Race result collection agent"""

    def __init__(
        self,
        provider: RaceDataProvider,
        ledger: Optional[ResultLedger] = None,
        interval_seconds: Optional[float] = None,
        call_timeout: Optional[float] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.provider = provider
        self.ledger = ledger or ResultLedger()
        self.interval_seconds = interval_seconds or settings.result_interval_seconds
        self.call_timeout = call_timeout or settings.external_call_timeout
        self.is_running = False
        self.error_count = 0
        self.last_run_time: Optional[datetime] = None
        self._cycle_running = False
        self._ticker = RepeatingTask(
            "result-collector", self.interval_seconds, self.run_cycle, sleep=sleep
        )

    async def start(self) -> None:
        if self.is_running:
            logger.info("Result collector already running")
            return

        logger.info("Starting result collection")
        self.is_running = True

        await self.run_cycle()
        if not self.is_running:
            logger.info("Result collector stopped during first cycle")
            return

        self._ticker.start()
        logger.info(f"Result collection started: every {self.interval_seconds}s")

    def stop(self) -> None:
        if not self.is_running:
            logger.info("Result collector not running")
            return

        self._ticker.stop()
        self.is_running = False
        logger.info("Result collector stopped")

    def register_prediction(
        self, race_key: str, horse_name: str, prediction: PredictionRecord
    ) -> None:
        """Track a prediction until its race settles."""
        self.ledger.register(race_key, horse_name, prediction)

    async def run_cycle(self) -> None:
        """Fetch results and match them with registered predictions."""
        if self._cycle_running:
            logger.warning("Collection cycle already in progress, skipping")
            return

        self._cycle_running = True
        self.last_run_time = datetime.now()
        try:
            logger.info("Starting result collection cycle")
            try:
                meets = await call_external(
                    self.provider.list_meets_for_today, timeout=self.call_timeout, scope="meets"
                )
            except ExternalFetchError as e:
                logger.error(f"Failed to fetch meets: {e}")
                self.error_count += 1
                return

            if not meets:
                logger.info("No meets available")
                return

            matched = 0
            for meet in meets:
                try:
                    matched += await self._collect_meet(meet)
                except ExternalFetchError as e:
                    logger.error(f"Error processing meet {meet.id}: {e}")
                    self.error_count += 1
                except Exception as e:
                    logger.exception(f"Unexpected error processing meet {meet.id}: {e}")
                    self.error_count += 1

            logger.info(f"Collection cycle completed. Matched {matched} results")
        finally:
            self._cycle_running = False

    async def _collect_meet(self, meet: Meet) -> int:
        races = await call_external(
            self.provider.list_races, meet.id, timeout=self.call_timeout, scope=f"meet:{meet.id}"
        )
        matched = 0
        for race in races or []:
            race_key = make_race_key(meet.id, race.number)
            try:
                results = await call_external(
                    self.provider.fetch_results,
                    meet.id,
                    race.number,
                    timeout=self.call_timeout,
                    scope=f"results:{race_key}",
                )
            except ExternalFetchError as e:
                logger.error(f"Error fetching results for race {race_key}: {e}")
                self.error_count += 1
                continue

            # Unsettled
            if not results:
                continue

            for result in results:
                prediction = self.ledger.pop_pending(race_key, result.horse_name)
                if prediction is None:
                    continue

                self.ledger.append_result(
                    ResultEntry(
                        race_key=race_key,
                        horse_name=result.horse_name,
                        track=prediction.track or meet.venue,
                        predicted_probability=prediction.ensemble_probability,
                        finishing_position=result.finishing_position,
                        actual_result=classify_outcome(result.finishing_position),
                    )
                )
                matched += 1
        return matched

    def get_results(self) -> list[ResultEntry]:
        return self.ledger.results()

    def get_accuracy_metrics(self) -> AccuracyMetrics:
        """Recomputed from the current result list on every call."""
        return compute_accuracy_metrics(self.ledger.results())

    def clear_old_results(self) -> int:
        """
        Drop results and unmatched registrations older than seven days.

        Returns:
            Number of results removed
        """
        cutoff = datetime.now() - timedelta(days=RESULT_RETENTION_DAYS)
        cleared = self.ledger.purge_results_before(cutoff)
        if cleared > 0:
            logger.info(f"Cleared {cleared} old results")

        # Races that never settled
        expired = self.ledger.purge_pending_before(cutoff)
        if expired > 0:
            logger.info(f"Dropped {expired} unmatched registrations")
        return cleared

    def get_status(self) -> CollectorStatus:
        return CollectorStatus(
            is_running=self.is_running,
            total_results=len(self.ledger.results()),
            registered_predictions=self.ledger.pending_count,
            error_count=self.error_count,
            last_run_time=self.last_run_time,
        )
