"""
Agent runner

Wires the prediction agent and the result collector to the configured
race data provider and keeps them running until interrupted.

Usage:
    racecast-agents            # run continuously
    racecast-agents --once     # single prediction + collection cycle
"""

import argparse
import asyncio
import logging
from typing import Optional

from racecast.logging_config import setup_logging
from racecast.scheduler.race_predictor import PredictionScheduler
from racecast.scheduler.result_collector import ResultCollector
from racecast.scheduler.ticker import RepeatingTask
from racecast.schemas.prediction import PredictionRecord
from racecast.services.racing_api import RaceDataProvider, get_race_data_provider

logger = logging.getLogger(__name__)

# Retention sweep cadence
HOUSEKEEPING_INTERVAL_SECONDS = 3600


def build_agents(
    provider: Optional[RaceDataProvider] = None,
) -> tuple[PredictionScheduler, ResultCollector]:
    """Prediction agent and collector sharing one provider."""
    provider = provider or get_race_data_provider()
    collector = ResultCollector(provider)
    scheduler = PredictionScheduler(provider, result_collector=collector)
    return scheduler, collector


def print_predictions(predictions: dict[str, list[PredictionRecord]]) -> None:
    """Display predictions grouped by race."""
    print("\n" + "=" * 60)
    print("Race predictions")
    print("=" * 60)

    if not predictions:
        print("No predictions yet")
        return

    for race_key, records in sorted(predictions.items()):
        print(f"\n■ {race_key}")
        print("-" * 40)
        ranked = sorted(records, key=lambda r: r.ensemble_probability, reverse=True)
        for rank, record in enumerate(ranked, start=1):
            win_pct = record.ensemble_probability * 100
            print(f"  {rank}. {record.horse_name} ({win_pct:.1f}%, {record.confidence})")

    print("\n" + "=" * 60)


async def run_agents(once: bool = False) -> None:
    scheduler, collector = build_agents()

    if once:
        await scheduler.run_cycle()
        await collector.run_cycle()
        print_predictions(scheduler.get_predictions())
        return

    async def housekeeping() -> None:
        scheduler.clear_old_predictions()
        collector.clear_old_results()

    sweeper = RepeatingTask("housekeeping", HOUSEKEEPING_INTERVAL_SECONDS, housekeeping)

    await scheduler.start()
    await collector.start()
    sweeper.start()
    try:
        await asyncio.Event().wait()
    finally:
        sweeper.stop()
        collector.stop()
        scheduler.stop()
        logger.info(f"Agents stopped: {scheduler.get_metrics().model_dump()}")


def main():
    parser = argparse.ArgumentParser(description="Race prediction agents")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")

    args = parser.parse_args()

    setup_logging(level=args.log_level)

    try:
        asyncio.run(run_agents(once=args.once))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
