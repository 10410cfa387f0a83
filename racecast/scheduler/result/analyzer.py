"""
Result Analyzer Module

Functions for classifying settled results and calculating accuracy
metrics over matched predictions.
"""

import logging
from typing import Iterable

from racecast.config import ACCURACY_PROBABILITY_THRESHOLD, PLACE_MAX_POSITION
from racecast.schemas.prediction import AccuracyMetrics, ResultEntry, TrackAccuracy

logger = logging.getLogger(__name__)


def classify_outcome(finishing_position: int) -> str:
    """1st -> win, up to PLACE_MAX_POSITION -> place, otherwise loss."""
    if finishing_position == 1:
        return "win"
    if finishing_position <= PLACE_MAX_POSITION:
        return "place"
    return "loss"


def is_correct(
    entry: ResultEntry, threshold: float = ACCURACY_PROBABILITY_THRESHOLD
) -> bool:
    """A prediction counts as correct only when it favoured a horse that won."""
    return entry.actual_result == "win" and entry.predicted_probability > threshold


def compute_accuracy_metrics(
    results: Iterable[ResultEntry],
    threshold: float = ACCURACY_PROBABILITY_THRESHOLD,
) -> AccuracyMetrics:
    """
    Overall and per-track accuracy.

    Args:
        results: Matched result entries
        threshold: Probability above which a prediction backs the horse to win

    Returns:
        AccuracyMetrics
    """
    metrics = AccuracyMetrics()

    for entry in results:
        metrics.total_predictions += 1
        track = metrics.by_track.setdefault(entry.track, TrackAccuracy())
        track.total += 1

        if is_correct(entry, threshold):
            metrics.correct_predictions += 1
            track.correct += 1

    if metrics.total_predictions > 0:
        metrics.accuracy = metrics.correct_predictions / metrics.total_predictions

    for track in metrics.by_track.values():
        if track.total > 0:
            track.accuracy = track.correct / track.total

    return metrics
