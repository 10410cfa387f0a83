"""
Result Collection Module

Outcome classification and accuracy metrics for the result collector.
"""

from racecast.scheduler.result.analyzer import (
    classify_outcome,
    compute_accuracy_metrics,
    is_correct,
)

__all__ = [
    "classify_outcome",
    "compute_accuracy_metrics",
    "is_correct",
]
