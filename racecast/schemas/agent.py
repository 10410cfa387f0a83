"""
Agent status schemas
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RateLimitDecision(BaseModel):
    """Outcome of a quota check. Computed per call, never cached."""

    allowed: bool
    remaining: int = Field(..., ge=0)
    tier: str
    message: Optional[str] = None


class AgentMetrics(BaseModel):
    """Prediction agent counters."""

    total_predictions: int = 0
    races_processed: int = 0
    last_run_time: Optional[datetime] = None
    next_run_time: Optional[datetime] = None
    is_running: bool = False
    error_count: int = 0


class CollectorStatus(BaseModel):
    """Result collector counters."""

    is_running: bool = False
    total_results: int = 0
    registered_predictions: int = 0
    error_count: int = 0
    last_run_time: Optional[datetime] = None
